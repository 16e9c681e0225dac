"""
Tests for the security headers and request size limit middleware.
"""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware


def build_app(**options):
    app = FastAPI(docs_url="/api-docs")

    @app.get("/ping")
    def ping():
        return {"ok": True}

    @app.get("/uploads/blog/image.png")
    def uploaded():
        return {"ok": True}

    @app.post("/echo")
    async def echo(payload: dict):
        return payload

    app.add_middleware(SecurityHeadersMiddleware, **options)
    return app


class TestSecurityHeaders:
    def test_default_headers(self):
        client = TestClient(build_app(hsts_enabled=False))

        response = client.get("/ping")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]
        assert "Strict-Transport-Security" not in response.headers

    def test_hsts_when_enabled(self):
        client = TestClient(build_app(hsts_enabled=True, hsts_max_age=600))

        response = client.get("/ping")

        assert response.headers["Strict-Transport-Security"] == "max-age=600; includeSubDomains"

    def test_docs_get_relaxed_policy(self):
        client = TestClient(build_app())

        response = client.get("/api-docs")

        assert "cdn.jsdelivr.net" in response.headers["Content-Security-Policy"]

    def test_csp_can_be_disabled(self):
        client = TestClient(build_app(csp_enabled=False))

        assert "Content-Security-Policy" not in client.get("/ping").headers

    def test_uploads_are_cacheable(self):
        client = TestClient(build_app(static_path="/uploads"))

        uploaded = client.get("/uploads/blog/image.png")
        other = client.get("/ping")

        assert uploaded.headers["Cache-Control"] == "max-age=2592000"
        assert "Cache-Control" not in other.headers


class TestRequestSizeLimit:
    @pytest.fixture
    def client(self):
        app = build_app()
        app.add_middleware(RequestSizeLimitMiddleware, max_body_size=32)
        return TestClient(app)

    def test_small_body_passes(self, client):
        response = client.post("/echo", json={"a": 1})

        assert response.status_code == 200

    def test_large_body_rejected(self, client):
        response = client.post("/echo", json={"text": "x" * 100})

        assert response.status_code == 413
        assert response.json()["message"] == "Request body too large"
