"""Unit tests for the sign-up saga (identity account + profile row)."""

from __future__ import annotations

import logging
import sqlite3
import threading
from concurrent import futures
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from matchpoint.repositories.user import UserRepository
from matchpoint.services._shared.ports import (
    CityInfo,
    InMemoryIdentityProvider,
    StaticPostalLookup,
)
from matchpoint.services._shared.ports import identity_provider as idp
from matchpoint.services.registration import service as registration_service
from matchpoint.services.registration.dto import SignUpFailure
from matchpoint.services.registration.service import (
    MSG_INCOMPLETE,
    MSG_TIMEOUT,
    MSG_VALIDATION_FAILED,
    PROFILE_FIELDS,
    UserRegistrationService,
)
from matchpoint.services.registration.store_errors import (
    MSG_ALREADY_EXISTS,
    MSG_GENERIC,
    MSG_REQUIRED_MISSING,
    MSG_TRY_AGAIN,
)
from matchpoint.services.validation.service import FieldValidationService
from tests.factories.user import UserFactory
from tests.helpers.utils import not_raises, registration, wait_until


def _transient() -> OperationalError:
    return OperationalError("INSERT INTO users", {}, sqlite3.OperationalError("database is locked"))


def _not_null() -> IntegrityError:
    return IntegrityError(
        "INSERT INTO users", {}, sqlite3.IntegrityError("NOT NULL constraint failed: users.name")
    )


class InsertSpy:
    """Count ``UserRepository.add`` calls, raising queued errors first."""

    def __init__(self, monkeypatch, failures=()) -> None:
        self.calls = 0
        self.failures = list(failures)
        original = UserRepository.add

        def add(repo, instance):
            self.calls += 1
            if self.failures:
                raise self.failures.pop(0)
            return original(repo, instance)

        monkeypatch.setattr(UserRepository, "add", add)


class TestUserRegistrationService:
    """Forward steps, retries, compensation and completeness checks."""

    @pytest.fixture()
    def provider(self) -> InMemoryIdentityProvider:
        return InMemoryIdentityProvider()

    @pytest.fixture()
    def lookup(self) -> StaticPostalLookup:
        return StaticPostalLookup(table={"10001": CityInfo(city="New York", state="NY")})

    @pytest.fixture()
    def sleeps(self) -> list[float]:
        return []

    @pytest.fixture()
    def service(self, provider, lookup, sleeps) -> UserRegistrationService:
        return UserRegistrationService(
            identity_provider=provider,
            validator=FieldValidationService(postal_lookup=lookup),
            timeout=5.0,
            attempts=3,
            base_delay=1.0,
            sleep=sleeps.append,
        )

    @pytest.fixture()
    def repo(self, session) -> UserRepository:
        return UserRepository(session=session)

    # -------------------------- Happy path -------------------------------- #

    def test_sign_up_creates_account_and_profile(self, service, provider, repo):
        out = service.sign_up(registration(email="A@B.com", confirm_email="A@B.com"))

        assert out.success is True
        assert out.user_id == "uid-1"
        assert out.message == "User created successfully"
        assert out.warning is None
        assert provider.created == ["uid-1"]
        assert provider.delete_calls == 0

        user = repo.get_by_email("a@b.com")
        assert user is not None
        assert user.firebase_uid == "uid-1"
        assert user.email == "a@b.com"
        assert user.name == "Jane Doe"
        assert user.display_name == "JD"
        assert user.preferred_sport == "tennis"
        assert Decimal(str(user.skill_level)) == Decimal("3.0")
        assert user.city == "New York, NY"
        assert user.zip_code == "10001"
        assert user.role == "player"
        assert user.is_competitive is False
        assert user.allow_direct_contact is False

    def test_unknown_zip_stores_empty_city(self, service, repo):
        out = service.sign_up(registration(zip_code="00000"))

        assert out.success is True
        assert repo.get_by_email("a@b.com").city == ""

    def test_both_sports_collapse_to_both(self, service, repo):
        out = service.sign_up(registration(preferred_sports=("Tennis", "pickleball")))

        assert out.success is True
        assert repo.get_by_email("a@b.com").preferred_sport == "both"

    # -------------------------- Validation -------------------------------- #

    def test_invalid_submission_makes_no_external_calls(
        self, service, provider, lookup, monkeypatch
    ):
        spy = InsertSpy(monkeypatch)
        out = service.sign_up(registration(skill_level=0.99, zip_code="abc"))

        assert out.success is False
        assert out.error == MSG_VALIDATION_FAILED
        assert out.failure is SignUpFailure.VALIDATION
        assert set(out.field_errors) == {"skillLevel", "zipCode"}
        assert provider.create_calls == 0
        assert provider.delete_calls == 0
        assert lookup.calls == []
        assert spy.calls == 0

    def test_oversized_skill_level_is_a_field_error(self, service, provider):
        out = service.sign_up(registration(skill_level=10**400))

        assert out.failure is SignUpFailure.VALIDATION
        assert out.field_errors == {"skillLevel": "Skill level must be a number"}
        assert provider.create_calls == 0

    # -------------------------- Identity failures ------------------------- #

    def test_existing_identity_account_is_a_conflict(self, service, provider, monkeypatch):
        provider.create_account(email="a@b.com", password="Abcdef1", display_name="x")
        spy = InsertSpy(monkeypatch)

        out = service.sign_up(registration())

        assert out.success is False
        assert out.failure is SignUpFailure.CONFLICT
        assert out.error == "An account with this email already exists"
        assert spy.calls == 0
        assert provider.delete_calls == 0

    def test_weak_password_rejected_by_provider_maps_to_field(self, service, provider):
        provider.fail_create_with = idp.WEAK_PASSWORD

        out = service.sign_up(registration())

        assert out.failure is SignUpFailure.VALIDATION
        assert out.field_errors == {"password": "Password is too weak"}

    def test_raw_provider_text_is_never_returned(self, service, provider):
        provider.fail_create_with = "auth/some-internal-thing"

        out = service.sign_up(registration())

        assert out.failure is SignUpFailure.IDENTITY
        assert out.error == "Authentication failed"
        assert "injected" not in out.error

    def test_unconfigured_provider_is_unavailable(self, service, provider):
        provider.fail_create_with = idp.NOT_CONFIGURED

        out = service.sign_up(registration())

        assert out.failure is SignUpFailure.UNAVAILABLE

    def test_identity_timeout_deletes_late_account(self, lookup, sleeps, repo):
        provider = InMemoryIdentityProvider(create_delay=0.3)
        service = UserRegistrationService(
            identity_provider=provider,
            validator=FieldValidationService(postal_lookup=lookup),
            timeout=0.05,
            sleep=sleeps.append,
        )

        out = service.sign_up(registration())

        assert out.success is False
        assert out.failure is SignUpFailure.UNAVAILABLE
        assert out.error == MSG_TIMEOUT
        assert wait_until(lambda: provider.deleted == ["uid-1"])
        assert repo.get_by_email("a@b.com") is None

    def test_queued_identity_call_is_cancelled_on_timeout(
        self, provider, lookup, sleeps, monkeypatch
    ):
        pool = futures.ThreadPoolExecutor(max_workers=1)
        release = threading.Event()
        pool.submit(release.wait, 2.0)
        monkeypatch.setattr(registration_service, "_identity_pool", pool)
        service = UserRegistrationService(
            identity_provider=provider,
            validator=FieldValidationService(postal_lookup=lookup),
            timeout=0.05,
            sleep=sleeps.append,
        )

        try:
            out = service.sign_up(registration())
        finally:
            release.set()
            pool.shutdown(wait=True)

        assert out.failure is SignUpFailure.UNAVAILABLE
        assert out.error == MSG_TIMEOUT
        assert provider.create_calls == 0
        assert provider.deleted == []

    # -------------------------- Store failures ---------------------------- #

    def test_transient_errors_are_retried_then_succeed(
        self, service, provider, sleeps, monkeypatch
    ):
        spy = InsertSpy(monkeypatch, failures=[_transient(), _transient()])

        out = service.sign_up(registration())

        assert out.success is True
        assert spy.calls == 3
        assert sleeps == [1.0, 2.0]
        assert provider.delete_calls == 0

    def test_exhausted_retries_compensate(self, service, provider, sleeps, monkeypatch):
        spy = InsertSpy(monkeypatch, failures=[_transient(), _transient(), _transient()])

        out = service.sign_up(registration())

        assert out.success is False
        assert out.failure is SignUpFailure.UNAVAILABLE
        assert out.error == MSG_TRY_AGAIN
        assert spy.calls == 3
        assert sleeps == [1.0, 2.0, 4.0]
        assert provider.deleted == ["uid-1"]

    def test_non_transient_error_compensates_once(self, service, provider, sleeps, monkeypatch):
        spy = InsertSpy(monkeypatch, failures=[_not_null()])

        out = service.sign_up(registration())

        assert out.success is False
        assert out.failure is SignUpFailure.PERSISTENCE
        assert out.error == MSG_REQUIRED_MISSING
        assert spy.calls == 1
        assert sleeps == []
        assert provider.delete_calls == 1
        assert provider.deleted == ["uid-1"]

    def test_unexpected_store_error_is_generic(self, service, provider, monkeypatch):
        InsertSpy(monkeypatch, failures=[RuntimeError("driver exploded")])

        out = service.sign_up(registration())

        assert out.success is False
        assert out.error == MSG_GENERIC
        assert provider.deleted == ["uid-1"]

    def test_compensation_failure_keeps_original_error(
        self, service, provider, monkeypatch, caplog
    ):
        provider.fail_delete = True
        InsertSpy(monkeypatch, failures=[_not_null()])

        with not_raises(Exception):
            out = service.sign_up(registration())

        assert out.success is False
        assert out.error == MSG_REQUIRED_MISSING
        assert provider.delete_calls == 1
        assert any(
            r.levelno == logging.ERROR and "Compensation failed" in r.getMessage()
            for r in caplog.records
        )

    # -------------------------- Duplicates and races ---------------------- #

    def test_duplicate_email_second_signup_is_compensated(self, lookup, sleeps, repo):
        provider = InMemoryIdentityProvider(unique_emails=False)
        service = UserRegistrationService(
            identity_provider=provider,
            validator=FieldValidationService(postal_lookup=lookup),
            sleep=sleeps.append,
        )

        first = service.sign_up(registration())
        second = service.sign_up(registration())

        assert first.success is True
        assert second.success is False
        assert second.failure is SignUpFailure.CONFLICT
        assert second.error == MSG_ALREADY_EXISTS
        assert provider.deleted == ["uid-2"]
        assert provider.delete_calls == 1
        assert "uid-1" in provider.accounts
        assert repo.get_by_email("a@b.com").firebase_uid == "uid-1"

    def test_existing_profile_row_blocks_signup(self, lookup, sleeps, session):
        UserFactory(email="a@b.com")
        session.commit()
        provider = InMemoryIdentityProvider()
        service = UserRegistrationService(
            identity_provider=provider,
            validator=FieldValidationService(postal_lookup=lookup),
            sleep=sleeps.append,
        )

        out = service.sign_up(registration())

        assert out.failure is SignUpFailure.CONFLICT
        assert provider.deleted == ["uid-1"]

    # -------------------------- Completeness ------------------------------ #

    def test_drift_after_write_is_a_warning(self, service, provider, monkeypatch):
        original = UserRepository.get_by_email

        def drifted(repo, email):
            user = original(repo, email)
            values = {name: getattr(user, name) for name in PROFILE_FIELDS}
            values["city"] = ""
            return SimpleNamespace(**values)

        monkeypatch.setattr(UserRepository, "get_by_email", drifted)

        out = service.sign_up(registration())

        assert out.success is True
        assert out.user_id == "uid-1"
        assert out.warning == MSG_INCOMPLETE
        assert provider.delete_calls == 0

    def test_missing_row_on_reread_is_a_warning(self, service, monkeypatch):
        monkeypatch.setattr(UserRepository, "get_by_email", lambda repo, email: None)

        out = service.sign_up(registration())

        assert out.success is True
        assert out.warning == MSG_INCOMPLETE

    # -------------------------- Robustness -------------------------------- #

    def test_unexpected_validator_error_is_returned_not_raised(self, provider):
        class Boom:
            def validate(self, dto):
                raise RuntimeError("bug")

        service = UserRegistrationService(identity_provider=provider, validator=Boom())

        out = service.sign_up(registration())

        assert out.success is False
        assert out.error == MSG_GENERIC
        assert provider.create_calls == 0

    def test_backoff_doubles(self, service):
        assert [service.backoff_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]
