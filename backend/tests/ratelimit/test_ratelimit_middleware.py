"""
Tests for the rate limiting middleware.

Uses a lightweight app with stub routes; no database or auth involved.
"""
from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from app.core.auth.security import create_access_token, create_refresh_token
from app.ratelimit import (
    InMemoryStorage,
    RateLimiter,
    RateLimitMiddleware,
    get_user_identifier,
)


def create_rate_limited_app(
    default_limit=100,
    default_window=60,
    endpoint_limits=None,
    prefix_limits=None,
    skip_paths=None,
):
    app = FastAPI()
    limiter = RateLimiter(
        storage=InMemoryStorage(),
        default_limit=default_limit,
        default_window=default_window,
    )
    app.add_middleware(
        RateLimitMiddleware,
        limiter=limiter,
        skip_paths=skip_paths or [],
        endpoint_limits=endpoint_limits or {},
        prefix_limits=prefix_limits or {},
    )

    @app.get("/health")
    def health():
        return {"status": "UP"}

    @app.get("/api/v1/blogs/public")
    def blogs():
        return {"data": []}

    @app.post("/api/v1/auth/login")
    def login():
        return {"ok": True}

    @app.get("/api/v1/superadmin/users")
    def users():
        return {"data": []}

    @app.get("/api/v1/superadmin/tests")
    def tests():
        return {"data": []}

    return app


class TestDefaultLimit:
    def test_headers_on_allowed_requests(self):
        client = TestClient(create_rate_limited_app(default_limit=5))

        response = client.get("/api/v1/blogs/public")

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"
        assert "X-RateLimit-Reset" in response.headers

    def test_blocks_over_limit(self):
        client = TestClient(create_rate_limited_app(default_limit=2))
        for _ in range(2):
            client.get("/api/v1/blogs/public")

        response = client.get("/api/v1/blogs/public")

        assert response.status_code == 429
        body = response.json()
        assert body["message"] == "Too many requests, please try again later"
        assert body["error"]["reason"] == "Rate limit exceeded"
        assert body["error"]["retryAfter"] == 1
        assert int(response.headers["Retry-After"]) >= 1

    def test_skip_paths(self):
        client = TestClient(create_rate_limited_app(default_limit=1, skip_paths=["/health"]))

        statuses = [client.get("/health").status_code for _ in range(3)]

        assert statuses == [200, 200, 200]


class TestEndpointLimits:
    @pytest.fixture
    def client(self):
        app = create_rate_limited_app(
            default_limit=100,
            endpoint_limits={
                "/api/v1/auth/login": {
                    "limit": 2,
                    "window": 3600,
                    "message": "Too many login attempts, please try again after an hour",
                },
            },
            prefix_limits={"/api/v1/superadmin": {"limit": 3, "window": 900}},
        )
        return TestClient(app)

    def test_endpoint_limit_and_message(self, client):
        for _ in range(2):
            assert client.post("/api/v1/auth/login").status_code == 200

        response = client.post("/api/v1/auth/login")

        assert response.status_code == 429
        assert response.json()["message"] == (
            "Too many login attempts, please try again after an hour"
        )
        assert response.json()["error"]["retryAfter"] <= 60

    def test_endpoint_bucket_does_not_consume_default(self, client):
        for _ in range(3):
            client.post("/api/v1/auth/login")

        response = client.get("/api/v1/blogs/public")

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "99"

    def test_prefix_shares_one_bucket(self, client):
        client.get("/api/v1/superadmin/users")
        client.get("/api/v1/superadmin/tests")
        client.get("/api/v1/superadmin/users")

        assert client.get("/api/v1/superadmin/tests").status_code == 429


class TestUserIdentifier:
    def make_request(self, token=None):
        headers = []
        if token is not None:
            headers.append((b"authorization", f"Bearer {token}".encode()))
        return Request(
            {"type": "http", "method": "GET", "path": "/", "headers": headers, "client": ("9.9.9.9", 1234)}
        )

    def test_access_token_keys_on_user_id(self):
        token = create_access_token({"id": 12, "uuid": "u-12"})
        assert get_user_identifier(self.make_request(token)) == "user:12"

    def test_anonymous_falls_back_to_ip(self):
        assert get_user_identifier(self.make_request()) == "ip:9.9.9.9"

    def test_invalid_token_falls_back_to_ip(self):
        assert get_user_identifier(self.make_request("not-a-jwt")) == "ip:9.9.9.9"

    def test_expired_token_falls_back_to_ip(self):
        token = create_access_token({"id": 12}, expires_delta=timedelta(seconds=-5))
        assert get_user_identifier(self.make_request(token)) == "ip:9.9.9.9"

    def test_refresh_token_is_not_an_identity(self):
        token = create_refresh_token({"id": 12})
        assert get_user_identifier(self.make_request(token)) == "ip:9.9.9.9"


class TestPerUserBuckets:
    def test_users_behind_one_ip_get_separate_quotas(self):
        app = FastAPI()
        limiter = RateLimiter(storage=InMemoryStorage(), default_limit=1, default_window=60)
        app.add_middleware(
            RateLimitMiddleware, limiter=limiter, identifier_resolver=get_user_identifier
        )

        @app.get("/ping")
        def ping():
            return {"ok": True}

        client = TestClient(app)
        first = {"Authorization": f"Bearer {create_access_token({'id': 1})}"}
        second = {"Authorization": f"Bearer {create_access_token({'id': 2})}"}

        assert client.get("/ping", headers=first).status_code == 200
        assert client.get("/ping", headers=second).status_code == 200
        assert client.get("/ping", headers=first).status_code == 429
