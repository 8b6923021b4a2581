"""User-facing messages for normalized identity-provider failure codes."""

from __future__ import annotations

from matchpoint.services._shared.ports import identity_provider as idp

GENERIC_AUTH_MESSAGE = "Authentication failed"

IDENTITY_ERROR_MESSAGES: dict[str, str] = {
    idp.EMAIL_ALREADY_EXISTS: "An account with this email already exists",
    idp.INVALID_EMAIL: "Invalid email address",
    idp.WEAK_PASSWORD: "Password is too weak",
    idp.USER_NOT_FOUND: "No account found with this email address",
    idp.WRONG_PASSWORD: "Incorrect password",
    idp.INVALID_CREDENTIALS: "Invalid email or password",
    idp.USER_DISABLED: "This account has been disabled",
    idp.TOO_MANY_ATTEMPTS: "Too many failed attempts. Please try again later",
    idp.INVALID_TOKEN: "Invalid authentication token",
    idp.EXPIRED_TOKEN: "Authentication token has expired",
    idp.NOT_CONFIGURED: "Authentication service is not configured",
    idp.UNAVAILABLE: "Authentication service is temporarily unavailable. Please try again later",
}


def identity_error_message(code: str | None) -> str:
    """Return the stable message for ``code``; unknown codes get a generic one.

    Raw provider text is never returned.
    """
    if code is None:
        return GENERIC_AUTH_MESSAGE
    return IDENTITY_ERROR_MESSAGES.get(code, GENERIC_AUTH_MESSAGE)
