"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Loads .env in development (no-op when the file is absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back on garbage."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    """Parse a float from an environment variable, falling back on garbage."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _private_key(raw: str | None) -> str | None:
    """Expand literal ``\\n`` sequences found in single-line PEM env values."""
    if not raw:
        return None
    return raw.replace("\\n", "\n")


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing.
    SQLALCHEMY_DATABASE_URI: str
        PostgreSQL connection string consumed by SQLAlchemy.
    SQLALCHEMY_ENGINE_OPTIONS: dict
        Bounded connection pool settings (checkout/return per query).
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.
    FIREBASE_PROJECT_ID, FIREBASE_CLIENT_EMAIL, FIREBASE_PRIVATE_KEY: str | None
        Service-account credentials for the Firebase Admin SDK. When any of
        them is missing the identity provider is not initialised.
    FIREBASE_API_KEY: str | None
        Web API key used for password verification over the Identity Toolkit
        REST API.
    IDENTITY_TIMEOUT: float
        Seconds before an Identity Toolkit REST call is abandoned.
    POSTAL_LOOKUP_URL: str
        Base URL of the public ZIP lookup service.
    POSTAL_LOOKUP_TIMEOUT: float
        Seconds before a ZIP lookup is abandoned.
    SIGNUP_TIMEOUT_SECONDS: float
        End-to-end bound on a registration attempt (guards account creation).
    STORE_RETRY_ATTEMPTS: int
        Maximum number of profile insert attempts on transient store errors.
    STORE_RETRY_BASE_DELAY: float
        First backoff delay in seconds; doubled after every failed attempt.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"
    APP_VERSION = os.getenv("APP_VERSION", "dev")

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL", "postgresql+psycopg2://localhost:5432/match_point_league"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": env_int("DB_POOL_SIZE", 20),
        "pool_recycle": 1800,
        "pool_pre_ping": True,
        "pool_timeout": 2,
    }

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")

    # Identity provider
    FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
    FIREBASE_CLIENT_EMAIL = os.getenv("FIREBASE_CLIENT_EMAIL")
    FIREBASE_PRIVATE_KEY = _private_key(os.getenv("FIREBASE_PRIVATE_KEY"))
    FIREBASE_API_KEY = os.getenv("FIREBASE_API_KEY")
    IDENTITY_TIMEOUT = env_float("IDENTITY_TIMEOUT", 10.0)

    # Postal lookup
    POSTAL_LOOKUP_URL = os.getenv("POSTAL_LOOKUP_URL", "https://api.zippopotam.us/US")
    POSTAL_LOOKUP_TIMEOUT = env_float("POSTAL_LOOKUP_TIMEOUT", 5.0)

    # Registration workflow
    SIGNUP_TIMEOUT_SECONDS = env_float("SIGNUP_TIMEOUT_SECONDS", 30.0)
    STORE_RETRY_ATTEMPTS = env_int("STORE_RETRY_ATTEMPTS", 3)
    STORE_RETRY_BASE_DELAY = env_float("STORE_RETRY_BASE_DELAY", 1.0)

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Never talks to Firebase: credentials are blanked out.
    - Retry backoff is disabled so tests never sleep.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    FIREBASE_PROJECT_ID = None
    FIREBASE_CLIENT_EMAIL = None
    FIREBASE_PRIVATE_KEY = None
    FIREBASE_API_KEY = None
    STORE_RETRY_BASE_DELAY = 0.0


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled while relying on WSGI-level log
    configuration for noise control.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
