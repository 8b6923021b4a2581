"""
UserRegistrationService
=======================

Process-level service that signs a new member up across two systems that
share no transaction:

- Validates the submission and resolves the ZIP code.
- Creates the identity-provider account, bounded by an end-to-end timeout.
- Inserts the profile row, retrying transient store errors with exponential
  backoff.
- Deletes the identity account again when the row cannot be written.
- Re-reads the row and downgrades the result to a warning on drift.

Every failure is returned as a :class:`SignUpOut`; ``sign_up`` never raises.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent import futures
from decimal import Decimal
from typing import Any

from matchpoint.models.user import User
from matchpoint.services._shared.base import BaseService, ServiceContext
from matchpoint.services._shared.errors import IdentityProviderError
from matchpoint.services._shared.ports import IdentityAccount, IdentityProvider
from matchpoint.services._shared.ports import identity_provider as idp
from matchpoint.services.auth.errors import identity_error_message
from matchpoint.services.registration.dto import RegistrationIn, SignUpFailure, SignUpOut
from matchpoint.services.registration.store_errors import (
    MSG_GENERIC,
    StoreErrorKind,
    StoreFailure,
    classify_store_error,
)
from matchpoint.services.validation.dto import ValidationResult
from matchpoint.services.validation.service import (
    FieldValidationService,
    as_skill_level,
    collapse_sports,
    default_role,
)

log = logging.getLogger(__name__)

MSG_VALIDATION_FAILED = "Validation failed"
MSG_CREATED = "User created successfully"
MSG_TIMEOUT = "Sign up is taking too long. Please try again later"
MSG_INCOMPLETE = (
    "Account created, but some profile data may be incomplete. "
    "Please review your profile."
)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0

# Provider codes the member can fix by editing one field
_FIELD_CODES = {idp.INVALID_EMAIL: "email", idp.WEAK_PASSWORD: "password"}
_UNAVAILABLE_CODES = frozenset({idp.UNAVAILABLE, idp.NOT_CONFIGURED})

# Identity calls run here so they can be abandoned at the deadline
_identity_pool = futures.ThreadPoolExecutor(max_workers=8, thread_name_prefix="signup-identity")

PROFILE_FIELDS = (
    "firebase_uid",
    "email",
    "name",
    "display_name",
    "skill_level",
    "preferred_sport",
    "is_competitive",
    "city",
    "zip_code",
    "allow_direct_contact",
    "role",
)


class UserRegistrationService(BaseService):
    """
    Orchestrates sign-up as a saga: forward steps plus a best-effort undo.

    :param identity_provider: Account system of record.
    :type identity_provider: IdentityProvider
    :param validator: Structural validator and ZIP enricher.
    :type validator: FieldValidationService
    :param timeout: Seconds to wait for account creation; ``0`` disables it.
    :type timeout: float
    :param attempts: Maximum profile insert attempts on transient errors.
    :type attempts: int
    :param base_delay: First backoff delay; doubled after each failure.
    :type base_delay: float
    :param sleep: Blocking sleep used between attempts.
    :type sleep: Callable[[float], None]
    """

    def __init__(
        self,
        *,
        identity_provider: IdentityProvider,
        validator: FieldValidationService,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        attempts: int = DEFAULT_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.identity = identity_provider
        self.validator = validator
        self.timeout = timeout
        self.attempts = max(1, int(attempts))
        self.base_delay = base_delay
        self.sleep = sleep

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    def sign_up(self, dto: RegistrationIn) -> SignUpOut:
        """
        Register a member: identity account plus profile row, or neither.

        :param dto: Raw sign-up submission.
        :type dto: RegistrationIn
        :returns: Structured outcome; failures carry a :class:`SignUpFailure`.
        :rtype: SignUpOut
        """
        try:
            return self._sign_up(dto)
        except Exception:
            log.exception("Unexpected sign-up failure", extra={"state": "FAILED"})
            return SignUpOut(success=False, error=MSG_GENERIC, failure=SignUpFailure.PERSISTENCE)

    def _sign_up(self, dto: RegistrationIn) -> SignUpOut:
        log.info("Validating sign-up submission", extra={"state": "VALIDATING"})
        checked = self.validator.validate(dto)
        if not checked.valid:
            log.info(
                "Sign-up rejected: %d field error(s)",
                len(checked.errors),
                extra={"state": "FAILED_VALIDATION"},
            )
            return SignUpOut(
                success=False,
                error=MSG_VALIDATION_FAILED,
                field_errors=dict(checked.errors),
                failure=SignUpFailure.VALIDATION,
            )

        log.info("Creating identity account", extra={"state": "CREATING_IDENTITY"})
        try:
            account = self._create_identity(dto)
        except futures.TimeoutError:
            log.warning(
                "Identity account creation timed out after %.1fs",
                self.timeout,
                extra={"state": "FAILED_IDENTITY"},
            )
            return SignUpOut(success=False, error=MSG_TIMEOUT, failure=SignUpFailure.UNAVAILABLE)
        except IdentityProviderError as exc:
            log.warning(
                "Identity provider rejected sign-up: %s",
                exc,
                extra={"state": "FAILED_IDENTITY"},
            )
            return self._identity_failure(exc.code)

        try:
            row = self._profile_row(dto, checked, account)
            log.info(
                "Persisting profile",
                extra={"state": "PERSISTING_PROFILE", "external_id": account.external_id},
            )
            failure = self._persist_profile(row)
        except Exception:
            log.exception(
                "Unexpected failure after identity creation",
                extra={"state": "PERSISTING_PROFILE", "external_id": account.external_id},
            )
            failure = StoreFailure(StoreErrorKind.UNKNOWN, MSG_GENERIC)

        if failure is not None:
            self._compensate(account.external_id)
            log.info(
                "Sign-up failed after compensation (%s)",
                failure.kind.value,
                extra={"state": "FAILED_PERSISTENCE", "external_id": account.external_id},
            )
            return SignUpOut(
                success=False,
                error=failure.message,
                failure=self._persistence_failure_kind(failure),
            )

        warning = None if self._profile_complete(row) else MSG_INCOMPLETE
        log.info(
            "Sign-up succeeded%s",
            " with warning" if warning else "",
            extra={
                "state": "SUCCEEDED_WITH_WARNING" if warning else "SUCCEEDED",
                "external_id": account.external_id,
            },
        )
        return SignUpOut(
            success=True,
            user_id=account.external_id,
            message=MSG_CREATED,
            warning=warning,
        )

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    def _create_identity(self, dto: RegistrationIn) -> IdentityAccount:
        kwargs = {
            "email": dto.email.strip(),
            "password": dto.password,
            "display_name": dto.display_name.strip(),
        }
        if not self.timeout or self.timeout <= 0:
            return self.identity.create_account(**kwargs)

        future = _identity_pool.submit(self.identity.create_account, **kwargs)
        try:
            return future.result(timeout=self.timeout)
        except futures.TimeoutError:
            # Still queued: nothing was sent to the provider
            if not future.cancel():
                future.add_done_callback(self._discard_late_account)
            raise

    def _discard_late_account(self, future: futures.Future) -> None:
        """Delete an account whose creation finished after the deadline."""
        if future.cancelled() or future.exception() is not None:
            return
        account = future.result()
        log.warning(
            "Identity account created after timeout; deleting it",
            extra={"state": "COMPENSATING", "external_id": account.external_id},
        )
        self._compensate(account.external_id)

    def _compensate(self, external_id: str) -> None:
        """Best-effort delete of ``external_id``; failures are logged only."""
        log.info(
            "Deleting identity account", extra={"state": "COMPENSATING", "external_id": external_id}
        )
        try:
            self.identity.delete_account(external_id)
        except Exception:
            log.error(
                "Compensation failed; identity account %s is orphaned",
                external_id,
                exc_info=True,
                extra={"state": "COMPENSATING", "external_id": external_id},
            )

    @staticmethod
    def _identity_failure(code: str) -> SignUpOut:
        message = identity_error_message(code)
        if code == idp.EMAIL_ALREADY_EXISTS:
            return SignUpOut(success=False, error=message, failure=SignUpFailure.CONFLICT)
        if code in _FIELD_CODES:
            return SignUpOut(
                success=False,
                error=message,
                field_errors={_FIELD_CODES[code]: message},
                failure=SignUpFailure.VALIDATION,
            )
        if code in _UNAVAILABLE_CODES:
            return SignUpOut(success=False, error=message, failure=SignUpFailure.UNAVAILABLE)
        return SignUpOut(success=False, error=message, failure=SignUpFailure.IDENTITY)

    # ------------------------------------------------------------------ #
    # Store
    # ------------------------------------------------------------------ #

    @staticmethod
    def _profile_row(
        dto: RegistrationIn, checked: ValidationResult, account: IdentityAccount
    ) -> dict[str, Any]:
        skill = as_skill_level(dto.skill_level)
        return {
            "firebase_uid": account.external_id,
            "email": dto.email.strip().lower(),
            "name": dto.full_name.strip(),
            "display_name": dto.display_name.strip(),
            "skill_level": Decimal(str(skill)).quantize(Decimal("0.1")),
            "preferred_sport": collapse_sports(dto.preferred_sports).value,
            "is_competitive": False,
            "city": checked.city_info.full_location if checked.city_info else "",
            "zip_code": dto.zip_code.strip(),
            "allow_direct_contact": False,
            "role": default_role().value,
        }

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed attempt ``attempt`` (1-based): ``base * 2**(n-1)``."""
        return self.base_delay * 2 ** (attempt - 1)

    def _persist_profile(self, row: dict[str, Any]) -> StoreFailure | None:
        """Insert the profile; return the final classified failure, if any."""
        failure: StoreFailure | None = None
        for attempt in range(1, self.attempts + 1):
            try:
                with self.rw_uow() as uow:
                    uow.users.add(User(**row))
                return None
            except Exception as exc:
                failure = classify_store_error(exc)
                if not failure.retryable:
                    log.warning(
                        "Profile insert failed: %s",
                        failure.kind.value,
                        extra={"attempt": attempt, "store_error": type(exc).__name__},
                    )
                    return failure
                delay = self.backoff_delay(attempt)
                log.warning(
                    "Transient store error on attempt %d; backing off %.1fs",
                    attempt,
                    delay,
                    extra={"attempt": attempt, "store_error": type(exc).__name__},
                )
                self.sleep(delay)
        log.error(
            "Profile insert failed after %d attempts",
            self.attempts,
            extra={"attempt": self.attempts},
        )
        return failure

    @staticmethod
    def _persistence_failure_kind(failure: StoreFailure) -> SignUpFailure:
        if failure.kind is StoreErrorKind.UNIQUE:
            return SignUpFailure.CONFLICT
        if failure.kind is StoreErrorKind.TRANSIENT:
            return SignUpFailure.UNAVAILABLE
        return SignUpFailure.PERSISTENCE

    # ------------------------------------------------------------------ #
    # Completeness
    # ------------------------------------------------------------------ #

    def _profile_complete(self, row: dict[str, Any]) -> bool:
        """Re-read the row by email and compare every intended field."""
        log.info("Verifying stored profile", extra={"state": "VERIFYING_COMPLETENESS"})
        try:
            with self.ro_uow() as uow:
                stored = uow.users.get_by_email(row["email"])
                if stored is None:
                    log.warning("Stored profile not found on re-read")
                    return False
                mismatched = [
                    name
                    for name in PROFILE_FIELDS
                    if not _same(getattr(stored, name), row[name])
                ]
        except Exception:
            log.warning("Profile re-read failed", exc_info=True)
            return False
        if mismatched:
            log.warning("Stored profile differs from intended values: %s", ", ".join(mismatched))
            return False
        return True


def _same(stored: Any, intended: Any) -> bool:
    if isinstance(intended, Decimal):
        try:
            return stored is not None and Decimal(str(stored)) == intended
        except ArithmeticError:
            return False
    return stored == intended
