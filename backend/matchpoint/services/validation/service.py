"""
FieldValidationService
======================

Structural validation of sign-up submissions, independent of the identity
provider and the database:

- Every field is checked on every call and all errors are returned at once.
  Checks are ``(field, predicate, message)`` rows; for a given field the
  first failing row wins.
- A ZIP lookup enriches the result only when every check passed. Lookup
  failures leave ``city_info`` empty and never invalidate the submission.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Sequence
from decimal import Decimal
from typing import Any

from matchpoint.models.user import PreferredSport, Sport, UserRole
from matchpoint.services._shared.ports import CityInfo, PostalLookup
from matchpoint.services.registration.dto import RegistrationIn
from matchpoint.services.validation.dto import ValidationResult

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")

MIN_PASSWORD_LENGTH = 6
SKILL_LEVEL_MIN = 1.0
SKILL_LEVEL_MAX = 5.5
SKILL_LEVEL_STEP = 0.5
_GRID_TOLERANCE = 1e-9

KNOWN_SPORTS = frozenset(s.value for s in Sport)

Message = str | Callable[[RegistrationIn], str]
FieldCheck = tuple[str, Callable[[RegistrationIn], bool], Message]


# --------------------------------------------------------------------------- #
# Coercion helpers (tolerate wrong types; the checks report them)
# --------------------------------------------------------------------------- #


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def as_skill_level(value: Any) -> float | None:
    """Return ``value`` as a finite float, or ``None`` when not numeric.

    Booleans are rejected even though they are ``int`` subclasses.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float | Decimal):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _on_half_grid(value: float) -> bool:
    steps = value / SKILL_LEVEL_STEP
    return abs(steps - round(steps)) < _GRID_TOLERANCE


def _sports(dto: RegistrationIn) -> list[Any]:
    raw = dto.preferred_sports
    if isinstance(raw, str) or not isinstance(raw, Sequence):
        return []
    return list(raw)


def _invalid_sports(dto: RegistrationIn) -> list[str]:
    return [
        str(s) for s in _sports(dto) if not isinstance(s, str) or s.lower() not in KNOWN_SPORTS
    ]


def _password_is_complex(password: str) -> bool:
    return (
        any(c.isupper() for c in password)
        and any(c.islower() for c in password)
        and any(c.isdigit() for c in password)
    )


# --------------------------------------------------------------------------- #
# Check table
# --------------------------------------------------------------------------- #

CHECKS: tuple[FieldCheck, ...] = (
    ("fullName", lambda r: bool(_text(r.full_name)), "Full name is required"),
    (
        "fullName",
        lambda r: len(_text(r.full_name)) >= 2,
        "Full name must be at least 2 characters",
    ),
    ("email", lambda r: bool(_text(r.email)), "Email is required"),
    (
        "email",
        lambda r: bool(EMAIL_RE.match(_text(r.email))),
        "Please enter a valid email address",
    ),
    ("confirmEmail", lambda r: bool(_text(r.confirm_email)), "Please confirm your email"),
    (
        "confirmEmail",
        lambda r: r.email == r.confirm_email,
        "Email addresses do not match",
    ),
    (
        "password",
        lambda r: isinstance(r.password, str) and bool(r.password),
        "Password is required",
    ),
    (
        "password",
        lambda r: len(r.password) >= MIN_PASSWORD_LENGTH,
        f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
    ),
    (
        "password",
        lambda r: _password_is_complex(r.password),
        "Password must contain at least one uppercase letter, one lowercase letter, "
        "and one number",
    ),
    (
        "confirmPassword",
        lambda r: isinstance(r.confirm_password, str) and bool(r.confirm_password),
        "Please confirm your password",
    ),
    ("confirmPassword", lambda r: r.password == r.confirm_password, "Passwords do not match"),
    ("displayName", lambda r: bool(_text(r.display_name)), "Display name is required"),
    ("preferredSports", lambda r: bool(_sports(r)), "Please select at least one sport"),
    (
        "preferredSports",
        lambda r: not _invalid_sports(r),
        lambda r: (
            f"Invalid sports selected: {', '.join(_invalid_sports(r))}. "
            "Only tennis and pickleball are allowed."
        ),
    ),
    (
        "skillLevel",
        lambda r: as_skill_level(r.skill_level) is not None,
        "Skill level must be a number",
    ),
    (
        "skillLevel",
        lambda r: SKILL_LEVEL_MIN <= as_skill_level(r.skill_level) <= SKILL_LEVEL_MAX,
        f"Skill level must be between {SKILL_LEVEL_MIN} and {SKILL_LEVEL_MAX}",
    ),
    (
        "skillLevel",
        lambda r: _on_half_grid(as_skill_level(r.skill_level)),
        "Skill level must be in increments of 0.5 (e.g., 1.0, 1.5, 2.0, etc.)",
    ),
    ("zipCode", lambda r: bool(_text(r.zip_code)), "ZIP code is required"),
    (
        "zipCode",
        lambda r: bool(ZIP_RE.match(_text(r.zip_code))),
        "Please enter a valid ZIP code",
    ),
)


def collect_field_errors(
    dto: RegistrationIn, checks: Sequence[FieldCheck] = CHECKS
) -> dict[str, str]:
    """Run every check and fold failures into ``{field: message}``.

    Later rows for a field only run while that field is still clean, so a
    predicate may assume the earlier rows for its field held.
    """
    errors: dict[str, str] = {}
    for field_name, predicate, message in checks:
        if field_name in errors:
            continue
        if not predicate(dto):
            errors[field_name] = message(dto) if callable(message) else message
    return errors


# --------------------------------------------------------------------------- #
# Derivations used when building the profile row
# --------------------------------------------------------------------------- #


def collapse_sports(sports: Sequence[str]) -> PreferredSport:
    """Collapse the selected sports into the stored preference."""
    chosen = {s.lower() for s in sports if isinstance(s, str)}
    if {Sport.TENNIS.value, Sport.PICKLEBALL.value} <= chosen:
        return PreferredSport.BOTH
    if Sport.PICKLEBALL.value in chosen:
        return PreferredSport.PICKLEBALL
    return PreferredSport.TENNIS


def default_role() -> UserRole:
    """Role assigned to every self-registered member."""
    return UserRole.PLAYER


class FieldValidationService:
    """
    Validate sign-up submissions and enrich them with a city.

    :param postal_lookup: Best-effort ZIP resolver.
    :type postal_lookup: PostalLookup
    """

    def __init__(self, *, postal_lookup: PostalLookup) -> None:
        self.postal_lookup = postal_lookup

    def validate(self, dto: RegistrationIn) -> ValidationResult:
        """
        Check every field; on a clean submission, look the ZIP code up.

        :param dto: Raw submission.
        :type dto: RegistrationIn
        :returns: Validation outcome with all field errors collected.
        :rtype: ValidationResult
        """
        errors = collect_field_errors(dto)
        if errors:
            return ValidationResult(valid=False, errors=errors)
        return ValidationResult(valid=True, city_info=self._lookup_city(dto.zip_code))

    def _lookup_city(self, zip_code: str) -> CityInfo | None:
        zip5 = zip_code.strip()[:5]
        try:
            return self.postal_lookup.lookup(zip5)
        except Exception:
            log.warning("Postal lookup raised for zip=%s; continuing without city", zip5, exc_info=True)
            return None
