"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, request

from matchpoint.api.deps import (
    build_auth_service,
    build_registration_service,
    current_user,
    json_response,
    require_auth,
    timing,
)
from matchpoint.core.errors import (
    APIError,
    BadGateway,
    Conflict,
    FieldValidationFailed,
    ServiceUnavailable,
    TooManyRequests,
    Unauthorized,
)
from matchpoint.schemas import (
    RegisterSchema,
    SignInResponseSchema,
    SignInSchema,
    SignUpResponseSchema,
    WhoAmISchema,
)
from matchpoint.services._shared.ports import identity_provider as idp
from matchpoint.services.auth.dto import SignInIn, SignInOut
from matchpoint.services.registration.dto import RegistrationIn, SignUpFailure, SignUpOut

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
signin_schema = SignInSchema()
signup_response_schema = SignUpResponseSchema()
signin_response_schema = SignInResponseSchema()
whoami_schema = WhoAmISchema()


def _signup_error(result: SignUpOut) -> APIError:
    message = result.error or "Failed to sign up user"
    if result.failure is SignUpFailure.VALIDATION:
        return FieldValidationFailed(message, result.field_errors)
    if result.failure is SignUpFailure.CONFLICT:
        return Conflict(message)
    if result.failure is SignUpFailure.UNAVAILABLE:
        return ServiceUnavailable(message)
    if result.failure is SignUpFailure.IDENTITY:
        return BadGateway(message)
    return APIError(message, status_code=400, code="signup_failed")


def _signin_error(result: SignInOut) -> APIError:
    message = result.error or "Failed to sign in user"
    if result.error_code == idp.TOO_MANY_ATTEMPTS:
        return TooManyRequests(message)
    if result.error_code in (idp.UNAVAILABLE, idp.NOT_CONFIGURED):
        return ServiceUnavailable(message)
    return Unauthorized(message)


@bp.post("/signup")
@timing
def signup():
    """Create the identity account and the profile row, or neither."""

    payload = register_schema.load(request.get_json(silent=True) or {})
    result = build_registration_service().sign_up(RegistrationIn(**payload))
    if not result.success:
        raise _signup_error(result)
    body = {"data": signup_response_schema.dump(result)}
    return json_response(body, status=201)


@bp.post("/signin")
@timing
def signin():
    """Verify credentials and return a session token with the profile."""

    data = signin_schema.load(request.get_json(silent=True) or {})
    result = build_auth_service().sign_in(SignInIn(email=data["email"], password=data["password"]))
    if not result.success:
        raise _signin_error(result)
    body = {
        "data": signin_response_schema.dump(
            {"token": result.token, "user": result.profile, "message": result.message}
        )
    }
    return json_response(body)


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated caller with their role."""

    body = {"data": whoami_schema.dump(current_user())}
    return json_response(body)
