"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Trust ``X-Forwarded-*`` headers from the hosting platform's router.

    Controlled by ``USE_PROXYFIX`` (defaults to ``True``); one hop is trusted
    for client address and scheme so request logs show the caller, not the
    load balancer.
    """
    if app.config.get("USE_PROXYFIX", True):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)
