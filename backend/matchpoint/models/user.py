"""League member profile model."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Index, Numeric, String, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column, validates

from matchpoint.core.extensions import db

from .base import PKMixin, ReprMixin, SoftDeleteMixin, TimestampMixin


class Sport(str, Enum):
    """Sports a member can pick at registration."""

    TENNIS = "tennis"
    PICKLEBALL = "pickleball"


class PreferredSport(str, Enum):
    """Collapsed sport preference stored on the profile."""

    TENNIS = "tennis"
    PICKLEBALL = "pickleball"
    BOTH = "both"


class UserRole(str, Enum):
    """Access roles, lowest privilege first."""

    PLAYER = "player"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


ROLE_RANK = {role.value: rank for rank, role in enumerate(UserRole)}


def has_role(role: str | None, minimum: UserRole) -> bool:
    """Return ``True`` when ``role`` ranks at or above ``minimum``.

    Unknown or missing roles hold no privileges.
    """
    rank = ROLE_RANK.get(role or "")
    return rank is not None and rank >= ROLE_RANK[minimum.value]


SKILL_LEVEL_MIN = Decimal("1.0")
SKILL_LEVEL_MAX = Decimal("5.5")


class User(PKMixin, ReprMixin, SoftDeleteMixin, TimestampMixin, db.Model):
    """
    Profile row for a league member.

    Authentication lives in the identity provider; this table only holds the
    profile. The two halves are loosely coupled by ``email`` and by
    ``firebase_uid``, which is an external reference and not a foreign key.

    Fields
    ------
    firebase_uid : str | None
        Identity-provider account id written at registration.
    email : str
        Login email. Stored normalized (lowercase, trimmed). Unique.
    name : str
        Full name.
    display_name : str
        Public handle shown on match listings.
    skill_level : Decimal
        Rating between 1.0 and 5.5 in 0.5 steps.
    preferred_sport : str
        One of :class:`PreferredSport`.
    is_competitive : bool
        Looking for competitive matches.
    city : str
        ``"City, ST"`` resolved from the ZIP code, or empty.
    zip_code : str
        US ZIP or ZIP+4.
    allow_direct_contact : bool
        Other members may contact this member directly.
    role : str
        One of :class:`UserRole`.
    """

    __tablename__ = "users"

    firebase_uid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    skill_level: Mapped[Decimal] = mapped_column(Numeric(2, 1), nullable=False)
    preferred_sport: Mapped[str] = mapped_column(String(20), nullable=False)
    is_competitive: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(10), nullable=False)
    allow_direct_contact: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.PLAYER.value,
        server_default=UserRole.PLAYER.value,
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("firebase_uid", name="uq_users_firebase_uid"),
        CheckConstraint("skill_level >= 1.0 AND skill_level <= 5.5", name="skill_level_range"),
        CheckConstraint(
            "preferred_sport IN ('tennis', 'pickleball', 'both')",
            name="preferred_sport_valid",
        ),
        CheckConstraint("role IN ('player', 'admin', 'superadmin')", name="role_valid"),
        Index("ix_users_preferred_sport", "preferred_sport"),
        Index("ix_users_role", "role"),
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """Lowercase and trim; format checks happen before the row is built."""
        if not isinstance(value, str):
            return value
        return value.strip().lower()
