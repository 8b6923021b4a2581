"""SQLAlchemy models registered on the shared metadata."""

from __future__ import annotations

from .user import PreferredSport, Sport, User, UserRole

__all__ = ["PreferredSport", "Sport", "User", "UserRole"]
