"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. They serve as stable contracts between adapters,
repositories and application services.

Services report failures as result objects; the API layer turns those into
RFC 7807 responses through ``matchpoint/core/errors.py``.
"""

from __future__ import annotations

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - Adapters raise them; services catch them and return result objects.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


class IdentityProviderError(ServiceError):
    """
    Raised by identity-provider adapters with a normalized failure code.

    The raw provider text is kept for logs only; user-facing messages come
    from :func:`matchpoint.services.auth.errors.identity_error_message`.

    :param code: Normalized code such as ``"email-already-exists"``.
    :type code: str
    :param detail: Raw provider detail (never shown to clients).
    :type detail: str | None
    """

    def __init__(self, code: str, detail: str | None = None) -> None:
        super().__init__(f"{code}: {detail}" if detail else code)
        self.code = code
        self.detail = detail
