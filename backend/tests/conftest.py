"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. External systems
are replaced by the in-memory identity provider and a table-backed ZIP
lookup registered on the app.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from matchpoint.core.config import TestingConfig
from matchpoint.core.extensions import IDENTITY_PROVIDER_KEY, POSTAL_LOOKUP_KEY
from matchpoint.core.extensions import db as _db  # Flask-SQLAlchemy instance
from matchpoint.factory import create_app  # application factory under test
from matchpoint.services._shared.ports import (
    CityInfo,
    InMemoryIdentityProvider,
    StaticPostalLookup,
)

KNOWN_ZIPS = {
    "10001": CityInfo(city="New York", state="NY"),
    "94103": CityInfo(city="San Francisco", state="CA"),
}


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Avoids hitting external services: Firebase credentials stay blank.
    - Keeps the signup timeout short and retry backoff at zero.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SIGNUP_TIMEOUT_SECONDS = 5.0
    STORE_RETRY_BASE_DELAY = 0.0
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig)
    app.logger.setLevel("WARNING")
    return app


def _enable_sqlite_savepoints(engine) -> None:
    """Let pysqlite honour SAVEPOINTs by emitting BEGIN ourselves."""
    if engine.url.get_backend_name() != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _no_implicit_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _enable_sqlite_savepoints(_db.engine)
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session.

    Yields
    ------
    sqlalchemy.engine.Connection
        Connection reused by nested transactions in each test.
    """
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; automatically rolled
        back after each test.

    Notes
    -----
    The fixture mirrors the SQLAlchemy 2.0 pattern for transactional tests: it
    begins a top-level transaction and joins the session in SAVEPOINT mode.
    Units of Work commit and roll back against their SAVEPOINT, never the
    outer transaction.
    """
    # 1) Top-level transaction
    top_trans = connection.begin()

    # 2) Scoped session bound to the connection; every session transaction
    #    is a SAVEPOINT inside the top-level one
    SessionFactory = sessionmaker(
        bind=connection, join_transaction_mode="create_savepoint", future=True
    )
    scoped = scoped_session(SessionFactory)

    # 3) Monkey-patch db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(autouse=True)
def _fresh_app_context(app, db):
    """Push a per-test app context so ``flask.g`` never leaks between tests."""
    with app.app_context():
        yield


@pytest.fixture()
def identity_provider(app):
    """Register a fresh in-memory identity provider on the app."""
    provider = InMemoryIdentityProvider()
    app.extensions[IDENTITY_PROVIDER_KEY] = provider
    yield provider
    app.extensions.pop(IDENTITY_PROVIDER_KEY, None)


@pytest.fixture()
def postal_lookup(app):
    """Register a table-backed ZIP lookup on the app."""
    lookup = StaticPostalLookup(table=dict(KNOWN_ZIPS))
    previous = app.extensions.get(POSTAL_LOOKUP_KEY)
    app.extensions[POSTAL_LOOKUP_KEY] = lookup
    yield lookup
    app.extensions[POSTAL_LOOKUP_KEY] = previous


@pytest.fixture()
def client(app, session, identity_provider, postal_lookup):
    """Flask test client wired to the transactional session and fakes."""
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield
