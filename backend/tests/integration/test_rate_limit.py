"""Login throttling through Flask-Limiter."""

from __future__ import annotations

import pytest

from moviehub_auth.core.config import TestingConfig
from moviehub_auth.core.extensions import limiter
from moviehub_auth.factory import create_app


class RateLimitedConfig(TestingConfig):
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = "memory://"
    AUTH_LOGIN_RATE_LIMIT = "5 per minute"


@pytest.fixture()
def limited_client(app):
    limited_app = create_app(RateLimitedConfig, instance_relative_config=False)
    try:
        yield limited_app.test_client()
    finally:
        limiter.init_app(app)


def test_login_is_throttled(limited_client):
    payload = {"email": "nobody@example.com", "password": "guess"}

    statuses = [
        limited_client.post("/api/v1/auth/login", json=payload).status_code for _ in range(6)
    ]

    assert statuses[:5] == [401] * 5
    assert statuses[5] == 429


def test_throttled_response_is_problem_json(limited_client):
    payload = {"email": "nobody@example.com", "password": "guess"}
    for _ in range(5):
        limited_client.post("/api/v1/auth/login", json=payload)

    resp = limited_client.post("/api/v1/auth/login", json=payload)

    assert resp.status_code == 429
    assert resp.mimetype == "application/problem+json"
    assert resp.get_json()["code"] == "rate_limited"
