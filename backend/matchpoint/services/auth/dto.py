"""DTOs for AuthService (sign-in and bearer-token verification)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SignInIn:
    """
    Credentials submitted at sign-in.

    :param email: Login email.
    :type email: str
    :param password: Raw password; checked by the identity provider only.
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class ProfileOut:
    """
    Profile fields returned after a successful sign-in.

    ``id`` is the identity-provider UID, not the table's surrogate key.
    """

    id: str
    email: str
    name: str
    display_name: str
    role: str


@dataclass(frozen=True, slots=True)
class SignInOut:
    """
    Outcome of a sign-in attempt. Never raised, always returned.

    :param success: ``True`` when credentials and profile both checked out.
    :param token: Fresh session token on success.
    :param profile: Member profile on success.
    :param message: Summary on success.
    :param error: Stable user-facing message on failure.
    :param error_code: Normalized failure code, for status-code mapping.
    """

    success: bool
    token: str | None = None
    profile: ProfileOut | None = None
    message: str | None = None
    error: str | None = None
    error_code: str | None = None


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """Caller identity attached to a request by bearer-token verification."""

    uid: str
    email: str
    display_name: str | None
    email_verified: bool
    role: str
