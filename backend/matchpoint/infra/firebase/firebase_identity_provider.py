# comments in English; reST docstrings
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import firebase_admin
import requests
from firebase_admin import auth, credentials
from firebase_admin import exceptions as fb_exceptions

from matchpoint.services._shared.errors import IdentityProviderError
from matchpoint.services._shared.ports import (
    IdentityAccount,
    IdentityProvider,
    VerifiedIdentity,
)
from matchpoint.services._shared.ports import identity_provider as idp

log = logging.getLogger(__name__)

APP_NAME = "matchpoint"
SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

# Identity Toolkit REST error messages -> normalized codes
REST_ERROR_CODES: dict[str, str] = {
    "EMAIL_NOT_FOUND": idp.USER_NOT_FOUND,
    "INVALID_PASSWORD": idp.WRONG_PASSWORD,
    "INVALID_LOGIN_CREDENTIALS": idp.INVALID_CREDENTIALS,
    "USER_DISABLED": idp.USER_DISABLED,
    "TOO_MANY_ATTEMPTS_TRY_LATER": idp.TOO_MANY_ATTEMPTS,
    "INVALID_EMAIL": idp.INVALID_EMAIL,
}


def rest_error_code(payload: Any) -> str:
    """Map an Identity Toolkit error body to a normalized code.

    Messages may carry a suffix (``"TOO_MANY_ATTEMPTS_TRY_LATER : ..."``);
    only the leading token is significant.
    """
    try:
        message = str(payload["error"]["message"])
    except (KeyError, TypeError):
        return idp.INTERNAL
    token = message.split(":", 1)[0].strip()
    return REST_ERROR_CODES.get(token, idp.INTERNAL)


def _admin_error_code(exc: Exception) -> str:
    if isinstance(exc, auth.EmailAlreadyExistsError):
        return idp.EMAIL_ALREADY_EXISTS
    if isinstance(exc, auth.UserNotFoundError):
        return idp.USER_NOT_FOUND
    if isinstance(exc, auth.UserDisabledError):
        return idp.USER_DISABLED
    if isinstance(exc, auth.ExpiredIdTokenError):
        return idp.EXPIRED_TOKEN
    if isinstance(exc, auth.InvalidIdTokenError):
        return idp.INVALID_TOKEN
    if isinstance(exc, fb_exceptions.UnavailableError | fb_exceptions.DeadlineExceededError):
        return idp.UNAVAILABLE
    return idp.INTERNAL


def _argument_error_code(exc: ValueError) -> str:
    """The Admin SDK rejects malformed arguments locally with ``ValueError``."""
    text = str(exc).lower()
    if "password" in text:
        return idp.WEAK_PASSWORD
    if "email" in text:
        return idp.INVALID_EMAIL
    return idp.INTERNAL


@dataclass(slots=True)
class FirebaseIdentityProvider(IdentityProvider):
    """
    Identity provider backed by Firebase Authentication.

    Account management and token checks go through the Admin SDK; password
    verification uses the Identity Toolkit REST API with the web API key,
    since the Admin SDK cannot check passwords.

    :param app: Initialized ``firebase_admin`` app.
    :param api_key: Web API key; password sign-in fails without it.
    :param timeout: Seconds before a REST call is abandoned.
    """

    app: firebase_admin.App
    api_key: str | None = None
    timeout: float = 10.0
    session: requests.Session = field(default_factory=requests.Session, repr=False)

    # -------------------- accounts --------------------

    def create_account(self, *, email: str, password: str, display_name: str) -> IdentityAccount:
        try:
            record = auth.create_user(
                email=email, password=password, display_name=display_name, app=self.app
            )
        except ValueError as exc:
            raise IdentityProviderError(_argument_error_code(exc), str(exc)) from exc
        except fb_exceptions.FirebaseError as exc:
            raise IdentityProviderError(_admin_error_code(exc), str(exc)) from exc
        return IdentityAccount(
            external_id=record.uid,
            email=record.email or email,
            display_name=record.display_name,
        )

    def delete_account(self, external_id: str) -> None:
        try:
            auth.delete_user(external_id, app=self.app)
        except ValueError as exc:
            raise IdentityProviderError(idp.INTERNAL, str(exc)) from exc
        except fb_exceptions.FirebaseError as exc:
            raise IdentityProviderError(_admin_error_code(exc), str(exc)) from exc

    # -------------------- tokens ----------------------

    def verify_credential_token(self, token: str) -> VerifiedIdentity:
        try:
            claims = auth.verify_id_token(token, app=self.app)
        except ValueError as exc:
            raise IdentityProviderError(idp.INVALID_TOKEN, str(exc)) from exc
        except auth.CertificateFetchError as exc:
            raise IdentityProviderError(idp.UNAVAILABLE, str(exc)) from exc
        except fb_exceptions.FirebaseError as exc:
            raise IdentityProviderError(_admin_error_code(exc), str(exc)) from exc
        return VerifiedIdentity(
            external_id=claims["uid"],
            email=claims.get("email") or "",
            display_name=claims.get("name") or None,
            email_verified=bool(claims.get("email_verified", False)),
        )

    def create_session_token(self, external_id: str) -> str:
        try:
            token = auth.create_custom_token(external_id, app=self.app)
        except ValueError as exc:
            raise IdentityProviderError(idp.INTERNAL, str(exc)) from exc
        except fb_exceptions.FirebaseError as exc:
            raise IdentityProviderError(_admin_error_code(exc), str(exc)) from exc
        return token.decode("utf-8") if isinstance(token, bytes) else str(token)

    # -------------------- passwords -------------------

    def verify_password(self, *, email: str, password: str) -> str:
        if not self.api_key:
            raise IdentityProviderError(idp.NOT_CONFIGURED, "FIREBASE_API_KEY is not set")
        try:
            resp = self.session.post(
                SIGN_IN_URL,
                params={"key": self.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise IdentityProviderError(idp.UNAVAILABLE, str(exc)) from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if resp.status_code != 200:
            code = rest_error_code(payload)
            if code == idp.INTERNAL and resp.status_code >= 500:
                code = idp.UNAVAILABLE
            raise IdentityProviderError(code, f"HTTP {resp.status_code}")

        uid = payload.get("localId") if isinstance(payload, dict) else None
        if not uid:
            raise IdentityProviderError(idp.INTERNAL, "sign-in response without localId")
        return str(uid)


def build_identity_provider(config: Mapping[str, Any]) -> FirebaseIdentityProvider | None:
    """
    Initialize the Firebase Admin app from service-account settings.

    :param config: Flask config (``FIREBASE_*`` keys).
    :returns: Provider, or ``None`` when credentials are missing or unusable.
    """
    project_id = config.get("FIREBASE_PROJECT_ID")
    client_email = config.get("FIREBASE_CLIENT_EMAIL")
    private_key = config.get("FIREBASE_PRIVATE_KEY")
    if not (project_id and client_email and private_key):
        return None

    try:
        app = firebase_admin.get_app(APP_NAME)
    except ValueError:
        try:
            cred = credentials.Certificate(
                {
                    "type": "service_account",
                    "project_id": project_id,
                    "client_email": client_email,
                    "private_key": private_key,
                    "token_uri": "https://oauth2.googleapis.com/token",
                }
            )
            app = firebase_admin.initialize_app(cred, {"projectId": project_id}, name=APP_NAME)
        except ValueError:
            log.error("Firebase service account is malformed", exc_info=True)
            return None

    log.info("Firebase identity provider initialized for project %s", project_id)
    return FirebaseIdentityProvider(
        app=app,
        api_key=config.get("FIREBASE_API_KEY"),
        timeout=float(config.get("IDENTITY_TIMEOUT", 10.0)),
    )
