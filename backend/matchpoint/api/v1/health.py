"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text

from matchpoint.api.deps import json_response, timing
from matchpoint.core.extensions import db, identity_provider_configured

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and identity-provider health."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except Exception:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"
    identity_status = "ok" if identity_provider_configured() else "not_configured"
    version = current_app.config.get("APP_VERSION", "dev")
    payload = {
        "status": "ok" if db_status == "ok" else "degraded",
        "db": db_status,
        "identity_provider": identity_status,
        "version": version,
    }
    return json_response({"data": payload}, status=200 if db_status == "ok" else 503)
