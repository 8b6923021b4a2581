"""Tests for the User profile model."""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from matchpoint.models.user import User, UserRole


def _user(**overrides) -> User:
    data = dict(
        firebase_uid="uid-1",
        email="player@example.com",
        name="Jane Doe",
        display_name="JD",
        skill_level=Decimal("3.0"),
        preferred_sport="tennis",
        city="New York, NY",
        zip_code="10001",
    )
    data.update(overrides)
    return User(**data)


class TestUser:
    def test_email_normalized_and_unique(self, session):
        u1 = _user(email="  Alice@Example.com ")
        session.add(u1)
        session.commit()
        assert u1.email == "alice@example.com"

        session.add(_user(email="alice@example.com", firebase_uid="uid-2"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_firebase_uid_unique(self, session):
        session.add(_user(email="a1@example.com", firebase_uid="same"))
        session.commit()

        session.add(_user(email="a2@example.com", firebase_uid="same"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_defaults(self, session):
        u = _user()
        session.add(u)
        session.commit()

        assert u.role == UserRole.PLAYER.value
        assert u.is_competitive is False
        assert u.allow_direct_contact is False
        assert u.created_at is not None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"skill_level": Decimal("6.0")},
            {"skill_level": Decimal("0.5")},
            {"preferred_sport": "squash"},
            {"role": "owner"},
        ],
    )
    def test_check_constraints(self, session, overrides):
        session.add(_user(**overrides))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_required_columns(self, session):
        session.add(_user(display_name=None))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()
