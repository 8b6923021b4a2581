"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flask import Flask, current_app
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

if TYPE_CHECKING:
    from matchpoint.services._shared.ports import IdentityProvider, PostalLookup

log = logging.getLogger(__name__)

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)

IDENTITY_PROVIDER_KEY = "identity_provider"
POSTAL_LOOKUP_KEY = "postal_lookup"


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations and the external collaborators.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`matchpoint.models` package to ensure SQLAlchemy metadata is ready
        for migrations.

    Notes
    -----
    The identity provider is only registered when the Firebase service
    account is fully configured. Missing credentials are logged and every
    signup then fails with an identity error instead of crashing the app.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from matchpoint import models as _models  # noqa: F401

    migrate.init_app(app, db)

    from matchpoint.infra.firebase.firebase_identity_provider import build_identity_provider
    from matchpoint.infra.zippopotam.zippopotam_postal_lookup import ZippopotamPostalLookup

    app.extensions[POSTAL_LOOKUP_KEY] = ZippopotamPostalLookup(
        base_url=app.config.get("POSTAL_LOOKUP_URL", "https://api.zippopotam.us/US"),
        timeout=float(app.config.get("POSTAL_LOOKUP_TIMEOUT", 5.0)),
    )

    provider = build_identity_provider(app.config)
    if provider is None:
        log.warning("Firebase credentials missing; identity provider not initialized.")
        app.extensions.pop(IDENTITY_PROVIDER_KEY, None)
        return
    app.extensions[IDENTITY_PROVIDER_KEY] = provider


def identity_provider_configured() -> bool:
    """Return ``True`` when a real identity provider is registered."""
    return current_app.extensions.get(IDENTITY_PROVIDER_KEY) is not None


def get_identity_provider() -> IdentityProvider:
    """Return the registered identity provider.

    Falls back to a provider that fails every call with ``not-configured``.
    """
    from matchpoint.services._shared.ports import UnconfiguredIdentityProvider

    provider = current_app.extensions.get(IDENTITY_PROVIDER_KEY)
    return provider if provider is not None else UnconfiguredIdentityProvider()


def get_postal_lookup() -> PostalLookup:
    """Return the postal lookup registered on the current app."""
    lookup = current_app.extensions.get(POSTAL_LOOKUP_KEY)
    if lookup is None:
        raise RuntimeError("Postal lookup is not initialized. Call init_app() first.")
    return lookup
