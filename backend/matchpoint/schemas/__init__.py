"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    ProfileSchema,
    RegisterSchema,
    SignInResponseSchema,
    SignInSchema,
    SignUpResponseSchema,
    WhoAmISchema,
)

__all__ = [
    "ProfileSchema",
    "RegisterSchema",
    "SignInResponseSchema",
    "SignInSchema",
    "SignUpResponseSchema",
    "WhoAmISchema",
]
