"""DTOs for FieldValidationService."""

from __future__ import annotations

from dataclasses import dataclass, field

from matchpoint.services._shared.ports import CityInfo


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """
    Outcome of structural validation of a sign-up submission.

    :param valid: ``True`` when no field error was found.
    :type valid: bool
    :param errors: ``{wire_field_name: message}`` for every failing field.
    :type errors: dict[str, str]
    :param city_info: ZIP lookup result; absent when skipped or unavailable.
    :type city_info: CityInfo | None
    """

    valid: bool
    errors: dict[str, str] = field(default_factory=dict)
    city_info: CityInfo | None = None
