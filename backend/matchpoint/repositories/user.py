"""User profile repository."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from matchpoint.models.user import User
from matchpoint.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User` profiles.

    Credentials never pass through here; they belong to the identity
    provider. Lookups are keyed by normalized email, the loose link between
    the two systems.
    """

    model = User

    def _filterable_fields(self):
        return {
            "email": User.email,
            "firebase_uid": User.firebase_uid,
            "role": User.role,
        }

    def get_by_email(self, email: str) -> User | None:
        """Fetch a profile by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == email.lower().strip())
        stmt = self._default_eagerload(stmt)
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a profile with the provided email exists."""
        stmt = select(User.id).where(User.email == email.lower().strip())
        return bool(self.session.execute(stmt).first())

    def get_by_firebase_uid(self, uid: str) -> User | None:
        """Fetch a profile by identity-provider UID."""
        return self.find_one(firebase_uid=uid)

    def get_role_by_email(self, email: str) -> str | None:
        """Return the stored role for ``email``, or ``None`` without a row."""
        stmt = select(User.role).where(User.email == email.lower().strip())
        return cast(str | None, self.session.execute(stmt).scalar_one_or_none())
