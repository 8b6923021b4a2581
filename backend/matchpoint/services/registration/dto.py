"""
DTOs for UserRegistrationService.

Contracts for the self-registration flow that creates an identity-provider
account and the matching profile row as one logical unit of work.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# --------------------------------------------------------------------------- #
# Input
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class RegistrationIn:
    """
    Raw sign-up submission, exactly as the client sent it.

    Nothing here is trusted: the field validator checks every attribute,
    including types, before any external call is made.

    :param full_name: Member's full name.
    :type full_name: str
    :param email: Login email.
    :type email: str
    :param confirm_email: Must equal ``email``.
    :type confirm_email: str
    :param password: Raw password, handed to the identity provider only.
    :type password: str
    :param confirm_password: Must equal ``password``.
    :type confirm_password: str
    :param display_name: Public handle.
    :type display_name: str
    :param preferred_sports: Non-empty subset of ``{"tennis", "pickleball"}``.
    :type preferred_sports: Sequence[str]
    :param skill_level: Numeric rating (1.0 to 5.5, 0.5 steps); raw value.
    :type skill_level: Any
    :param zip_code: US ZIP or ZIP+4.
    :type zip_code: str
    """

    full_name: str = ""
    email: str = ""
    confirm_email: str = ""
    password: str = ""
    confirm_password: str = ""
    display_name: str = ""
    preferred_sports: Sequence[str] = ()
    skill_level: Any = None
    zip_code: str = ""


# --------------------------------------------------------------------------- #
# Output
# --------------------------------------------------------------------------- #


class SignUpFailure(str, Enum):
    """Why a sign-up did not succeed; lets callers pick a status code."""

    VALIDATION = "validation"
    IDENTITY = "identity"
    CONFLICT = "conflict"
    PERSISTENCE = "persistence"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class SignUpOut:
    """
    Outcome of a sign-up attempt. Never raised, always returned.

    :param success: ``True`` when both the account and the profile exist.
    :type success: bool
    :param user_id: Identity-provider UID on success.
    :type user_id: str | None
    :param message: Human-readable summary on success.
    :type message: str | None
    :param error: User-facing error message on failure.
    :type error: str | None
    :param field_errors: Per-field messages when validation failed.
    :type field_errors: dict[str, str]
    :param warning: Set when the profile may be incomplete after a successful write.
    :type warning: str | None
    :param failure: Failure class on failure.
    :type failure: SignUpFailure | None
    """

    success: bool
    user_id: str | None = None
    message: str | None = None
    error: str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    warning: str | None = None
    failure: SignUpFailure | None = None
