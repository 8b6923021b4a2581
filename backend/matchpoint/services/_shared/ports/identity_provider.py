from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Protocol

from matchpoint.services._shared.errors import IdentityProviderError

# Normalized failure codes shared by every adapter
EMAIL_ALREADY_EXISTS = "email-already-exists"
INVALID_EMAIL = "invalid-email"
WEAK_PASSWORD = "weak-password"
USER_NOT_FOUND = "user-not-found"
WRONG_PASSWORD = "wrong-password"
INVALID_CREDENTIALS = "invalid-credentials"
USER_DISABLED = "user-disabled"
TOO_MANY_ATTEMPTS = "too-many-attempts"
INVALID_TOKEN = "invalid-token"
EXPIRED_TOKEN = "expired-token"
NOT_CONFIGURED = "not-configured"
UNAVAILABLE = "unavailable"
INTERNAL = "internal"


@dataclass(frozen=True, slots=True)
class IdentityAccount:
    """Account minted by the identity provider."""

    external_id: str
    email: str
    display_name: str | None


@dataclass(frozen=True, slots=True)
class VerifiedIdentity:
    """Claims extracted from a verified bearer token."""

    external_id: str
    email: str
    display_name: str | None = None
    email_verified: bool = False


class IdentityProvider(Protocol):
    """Port for the external identity system (accounts, credentials, tokens).

    Every method raises :class:`IdentityProviderError` with one of the module
    level codes on failure.
    """

    def create_account(
        self, *, email: str, password: str, display_name: str
    ) -> IdentityAccount: ...

    def delete_account(self, external_id: str) -> None: ...

    def verify_credential_token(self, token: str) -> VerifiedIdentity: ...

    def verify_password(self, *, email: str, password: str) -> str: ...

    def create_session_token(self, external_id: str) -> str: ...


@dataclass
class _StoredAccount:
    external_id: str
    email: str
    password: str
    display_name: str | None
    disabled: bool = False


@dataclass
class InMemoryIdentityProvider(IdentityProvider):
    """Deterministic identity provider used in tests and local runs.

    Records every call so tests can assert on invocations, and supports
    failure and latency injection.

    :param unique_emails: Reject duplicate emails like the real provider.
        Turn off to simulate two racing signups that both get an account.
    :param fail_create_with: Error code raised by ``create_account``.
    :param fail_delete: Make ``delete_account`` raise ``unavailable``.
    :param create_delay: Seconds ``create_account`` blocks before answering.
    """

    unique_emails: bool = True
    fail_create_with: str | None = None
    fail_delete: bool = False
    create_delay: float = 0.0
    accounts: dict[str, _StoredAccount] = field(default_factory=dict)
    created: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    create_calls: int = 0
    delete_calls: int = 0
    _seq: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def create_account(self, *, email: str, password: str, display_name: str) -> IdentityAccount:
        with self._lock:
            self.create_calls += 1
        if self.create_delay:
            time.sleep(self.create_delay)
        if self.fail_create_with:
            raise IdentityProviderError(self.fail_create_with, "injected failure")
        norm = email.strip().lower()
        with self._lock:
            if self.unique_emails and any(a.email == norm for a in self.accounts.values()):
                raise IdentityProviderError(EMAIL_ALREADY_EXISTS)
            self._seq += 1
            uid = f"uid-{self._seq}"
            self.accounts[uid] = _StoredAccount(uid, norm, password, display_name)
            self.created.append(uid)
        return IdentityAccount(external_id=uid, email=norm, display_name=display_name)

    def delete_account(self, external_id: str) -> None:
        with self._lock:
            self.delete_calls += 1
            if self.fail_delete:
                raise IdentityProviderError(UNAVAILABLE, "injected failure")
            if self.accounts.pop(external_id, None) is None:
                raise IdentityProviderError(USER_NOT_FOUND)
            self.deleted.append(external_id)

    def verify_credential_token(self, token: str) -> VerifiedIdentity:
        prefix = "token-"
        uid = token[len(prefix):] if token.startswith(prefix) else None
        account = self.accounts.get(uid) if uid else None
        if account is None:
            raise IdentityProviderError(INVALID_TOKEN)
        return VerifiedIdentity(
            external_id=account.external_id,
            email=account.email,
            display_name=account.display_name,
            email_verified=False,
        )

    def verify_password(self, *, email: str, password: str) -> str:
        norm = email.strip().lower()
        account = next((a for a in self.accounts.values() if a.email == norm), None)
        if account is None:
            raise IdentityProviderError(USER_NOT_FOUND)
        if account.disabled:
            raise IdentityProviderError(USER_DISABLED)
        if account.password != password:
            raise IdentityProviderError(WRONG_PASSWORD)
        return account.external_id

    def create_session_token(self, external_id: str) -> str:
        if external_id not in self.accounts:
            raise IdentityProviderError(USER_NOT_FOUND)
        return f"token-{external_id}"


class UnconfiguredIdentityProvider(IdentityProvider):
    """Stand-in used when no service account is configured.

    Every call fails with ``not-configured`` so callers report an identity
    error instead of crashing.
    """

    def _fail(self, *args, **kwargs):
        raise IdentityProviderError(NOT_CONFIGURED, "identity provider not configured")

    create_account = _fail
    delete_account = _fail
    verify_credential_token = _fail
    verify_password = _fail
    create_session_token = _fail
