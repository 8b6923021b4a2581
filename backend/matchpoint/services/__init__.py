"""Service layer public API.

This package exposes the essential building blocks for the service layer so
that callers can import from :mod:`matchpoint.services` without knowing the
internal structure.

Re-exports
----------
- Base primitives (from ``matchpoint.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Field validation (from ``matchpoint.services.validation``)
    * :class:`FieldValidationService`, :class:`ValidationResult`

- Registration workflow (from ``matchpoint.services.registration``)
    * :class:`UserRegistrationService`
    * DTOs: :class:`RegistrationIn`, :class:`SignUpOut`, :class:`SignUpFailure`

- Sign-in (from ``matchpoint.services.auth``)
    * :class:`AuthService`
    * DTOs: :class:`SignInIn`, :class:`SignInOut`, :class:`ProfileOut`,
      :class:`AuthenticatedUser`
"""

from __future__ import annotations

# Base primitives (service base + request-scoped context)
from ._shared.base import BaseService, ServiceContext

# Sign-in + DTOs
from .auth.dto import AuthenticatedUser, ProfileOut, SignInIn, SignInOut
from .auth.service import AuthService

# Registration workflow + DTOs
from .registration.dto import RegistrationIn, SignUpFailure, SignUpOut
from .registration.service import UserRegistrationService

# Field validation
from .validation.dto import ValidationResult
from .validation.service import FieldValidationService

__all__ = [
    # Base
    "BaseService",
    "ServiceContext",
    # Validation
    "FieldValidationService",
    "ValidationResult",
    # Registration
    "UserRegistrationService",
    "RegistrationIn",
    "SignUpOut",
    "SignUpFailure",
    # Sign-in
    "AuthService",
    "SignInIn",
    "SignInOut",
    "ProfileOut",
    "AuthenticatedUser",
]
