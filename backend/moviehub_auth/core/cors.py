"""Cross-origin policy for the auth endpoints."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

# Browsers must be able to read these on cross-origin responses.
EXPOSED_HEADERS = ("X-Request-ID", "Retry-After", "WWW-Authenticate")


def init_app(app: Flask) -> None:
    """Allow configured front-end origins to call ``/api/*``.

    ``CORS_ORIGINS`` is a comma-separated allow-list. A blank value or ``"*"``
    opens the API to every origin, in which case credentialed requests are
    refused so tokens are only ever sent from trusted origins.
    """
    origins = [o.strip() for o in app.config.get("CORS_ORIGINS", "").split(",") if o.strip()]
    open_policy = not origins or origins == ["*"]

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if open_policy else origins}},
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=list(EXPOSED_HEADERS),
        methods=["GET", "POST", "OPTIONS"],
        supports_credentials=not open_policy,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
