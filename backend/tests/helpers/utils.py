"""Tiny helpers shared across test modules."""

from __future__ import annotations

import time
from collections.abc import Callable
from contextlib import contextmanager
from typing import Any

from matchpoint.services.registration.dto import RegistrationIn


@contextmanager
def not_raises(exception: type[BaseException]):
    """Context manager asserting that an exception is *not* raised.

    Parameters
    ----------
    exception: type[BaseException]
        Exception type that should not be raised within the context.

    Yields
    ------
    None
        Control enters the managed block when the exception is absent.
    """
    try:
        yield
    except exception as exc:  # pragma: no cover
        raise AssertionError(f"Did raise {exception}: {exc}") from exc


def signup_payload(**overrides: Any) -> dict[str, Any]:
    """Return a valid camelCase sign-up body, with ``overrides`` applied."""
    payload: dict[str, Any] = {
        "fullName": "Jane Doe",
        "email": "a@b.com",
        "confirmEmail": "a@b.com",
        "password": "Abcdef1",
        "confirmPassword": "Abcdef1",
        "displayName": "JD",
        "preferredSports": ["tennis"],
        "skillLevel": 3.0,
        "zipCode": "10001",
    }
    payload.update(overrides)
    return payload


def registration(**overrides: Any) -> RegistrationIn:
    """Return a valid :class:`RegistrationIn`, with ``overrides`` applied."""
    base: dict[str, Any] = {
        "full_name": "Jane Doe",
        "email": "a@b.com",
        "confirm_email": "a@b.com",
        "password": "Abcdef1",
        "confirm_password": "Abcdef1",
        "display_name": "JD",
        "preferred_sports": ("tennis",),
        "skill_level": 3.0,
        "zip_code": "10001",
    }
    base.update(overrides)
    return RegistrationIn(**base)


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
