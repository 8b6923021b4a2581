# matchpoint/services/auth/service.py
from __future__ import annotations

import logging

from matchpoint.models.user import UserRole
from matchpoint.services._shared.base import BaseService, ServiceContext
from matchpoint.services._shared.errors import IdentityProviderError
from matchpoint.services._shared.ports import IdentityProvider
from matchpoint.services.auth.dto import AuthenticatedUser, ProfileOut, SignInIn, SignInOut
from matchpoint.services.auth.errors import GENERIC_AUTH_MESSAGE, identity_error_message

log = logging.getLogger(__name__)

PROFILE_NOT_FOUND = "profile-not-found"
MSG_PROFILE_NOT_FOUND = "User profile not found"
MSG_SIGNED_IN = "Sign in successful"


class AuthService(BaseService):
    """
    Sign-in and bearer-token verification.

    Credentials are verified by the identity provider; the profile row is
    matched by email and only read, so there is nothing to compensate.
    """

    def __init__(
        self, *, identity_provider: IdentityProvider, ctx: ServiceContext | None = None
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param identity_provider: Adapter verifying credentials and minting tokens.
        """
        super().__init__(ctx=ctx)
        self.identity = identity_provider

    # ------------------------------------------------------------------ #
    # Sign-in
    # ------------------------------------------------------------------ #

    def sign_in(self, dto: SignInIn) -> SignInOut:
        """
        Verify credentials, load the profile and issue a session token.

        :param dto: Sign-in credentials.
        :returns: Token and profile on success; a stable message otherwise.
        """
        email = dto.email.strip()
        try:
            uid = self.identity.verify_password(email=email, password=dto.password)
        except IdentityProviderError as exc:
            log.info("Sign-in rejected by identity provider: %s", exc.code)
            return SignInOut(
                success=False, error=identity_error_message(exc.code), error_code=exc.code
            )
        except Exception:
            log.exception("Unexpected error verifying credentials")
            return SignInOut(success=False, error=GENERIC_AUTH_MESSAGE)

        try:
            with self.ro_uow() as uow:
                user = uow.users.get_by_email(email)
                profile = (
                    ProfileOut(
                        id=uid,
                        email=user.email,
                        name=user.name,
                        display_name=user.display_name,
                        role=user.role or UserRole.PLAYER.value,
                    )
                    if user is not None
                    else None
                )
        except Exception:
            log.exception("Profile lookup failed during sign-in")
            return SignInOut(success=False, error=GENERIC_AUTH_MESSAGE)

        if profile is None:
            log.warning("Sign-in for account without profile", extra={"external_id": uid})
            return SignInOut(
                success=False, error=MSG_PROFILE_NOT_FOUND, error_code=PROFILE_NOT_FOUND
            )

        try:
            token = self.identity.create_session_token(uid)
        except IdentityProviderError as exc:
            log.warning("Session token minting failed: %s", exc.code)
            return SignInOut(
                success=False, error=identity_error_message(exc.code), error_code=exc.code
            )
        except Exception:
            log.exception("Unexpected error minting session token")
            return SignInOut(success=False, error=GENERIC_AUTH_MESSAGE)

        return SignInOut(success=True, token=token, profile=profile, message=MSG_SIGNED_IN)

    # ------------------------------------------------------------------ #
    # Bearer tokens
    # ------------------------------------------------------------------ #

    def verify_token(self, token: str) -> AuthenticatedUser | None:
        """
        Verify a bearer token and attach the caller's role.

        :param token: Raw bearer token.
        :returns: Authenticated caller, or ``None`` when the token is rejected.
        """
        try:
            identity = self.identity.verify_credential_token(token)
        except IdentityProviderError as exc:
            log.info("Bearer token rejected: %s", exc.code)
            return None

        role: str | None = None
        try:
            with self.ro_uow() as uow:
                role = uow.users.get_role_by_email(identity.email) if identity.email else None
        except Exception:
            log.warning("Role lookup failed; defaulting to player", exc_info=True)

        return AuthenticatedUser(
            uid=identity.external_id,
            email=identity.email,
            display_name=identity.display_name,
            email_verified=identity.email_verified,
            role=role or UserRole.PLAYER.value,
        )
