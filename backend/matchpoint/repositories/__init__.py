"""Repository package exposing persistence-layer access for domain models."""

from __future__ import annotations

from matchpoint.repositories.base import BaseRepository
from matchpoint.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
]
