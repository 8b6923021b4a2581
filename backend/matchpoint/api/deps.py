"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from matchpoint.core.errors import Forbidden, Unauthorized
from matchpoint.core.extensions import get_identity_provider, get_postal_lookup
from matchpoint.core.logger import ensure_request_id
from matchpoint.models.user import UserRole, has_role
from matchpoint.services._shared.base import ServiceContext
from matchpoint.services.auth.dto import AuthenticatedUser
from matchpoint.services.auth.service import AuthService
from matchpoint.services.registration.service import UserRegistrationService
from matchpoint.services.validation.service import FieldValidationService

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "Bearer "


def service_context() -> ServiceContext:
    """Build the request-scoped service context."""

    user = getattr(g, "current_user", None)
    return ServiceContext(
        actor_uid=user.uid if user is not None else None,
        request_id=ensure_request_id(),
    )


def build_registration_service() -> UserRegistrationService:
    """Wire the registration workflow from app extensions and config."""

    cfg = current_app.config
    return UserRegistrationService(
        identity_provider=get_identity_provider(),
        validator=FieldValidationService(postal_lookup=get_postal_lookup()),
        timeout=float(cfg.get("SIGNUP_TIMEOUT_SECONDS", 30.0)),
        attempts=int(cfg.get("STORE_RETRY_ATTEMPTS", 3)),
        base_delay=float(cfg.get("STORE_RETRY_BASE_DELAY", 1.0)),
        ctx=service_context(),
    )


def build_auth_service() -> AuthService:
    """Wire the sign-in service from app extensions."""

    return AuthService(identity_provider=get_identity_provider(), ctx=service_context())


def bearer_token() -> str | None:
    """Return the bearer token from ``Authorization``, if well-formed."""

    header = request.headers.get("Authorization", "")
    if not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX) :].strip()
    return token or None


def current_user() -> AuthenticatedUser:
    """Return the caller attached by :func:`require_auth`."""

    return g.current_user


def require_auth(func: F) -> F:
    """Ensure the request carries a valid identity-provider bearer token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        token = bearer_token()
        if token is None:
            raise Unauthorized("Authorization header required")
        user = build_auth_service().verify_token(token)
        if user is None:
            raise Unauthorized("Invalid or expired token")
        g.current_user = user
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_role(minimum: UserRole) -> Callable[[F], F]:
    """Authenticate the caller and require ``minimum`` or a higher role.

    Roles rank player < admin < superadmin.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def guarded(*args: Any, **kwargs: Any):
            if not has_role(g.current_user.role, minimum):
                raise Forbidden("Insufficient permissions")
            return func(*args, **kwargs)

        return require_auth(guarded)  # type: ignore[return-value]

    return decorator


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
