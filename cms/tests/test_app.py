"""Tests for the health check, middleware and CORS configuration."""

from httpx import ASGITransport, AsyncClient


def _client():
    from cms.main import app

    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def test_health_ok(mock_settings):
    async with _client() as client:
        response = await client.get("/api/cms/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["checks"] == {"config": "ok", "storage": "ok"}
    assert mock_settings.content_root.is_dir()
    assert mock_settings.projects_root.is_dir()


async def test_health_degraded_without_admin_key(mock_settings):
    mock_settings.admin_api_key = ""
    async with _client() as client:
        response = await client.get("/api/cms/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["checks"]["config"] == "fail"


async def test_security_headers_present(mock_settings):
    """Every response includes security headers."""
    async with _client() as client:
        response = await client.get("/api/cms/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


async def test_request_id_echoed_or_generated(mock_settings):
    async with _client() as client:
        echoed = await client.get(
            "/api/cms/health", headers={"X-Request-ID": "req-123"}
        )
        generated = await client.get("/api/cms/health")

    assert echoed.headers["X-Request-ID"] == "req-123"
    assert len(generated.headers["X-Request-ID"]) == 36


async def test_cors_preflight_allows_admin_header(mock_settings):
    async with _client() as client:
        response = await client.options(
            "/api/cms/posts",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "X-Admin-Key",
            },
        )

    assert response.status_code == 200
    assert "POST" in response.headers.get("Access-Control-Allow-Methods", "")
    allowed = response.headers.get("Access-Control-Allow-Headers", "").lower()
    assert "x-admin-key" in allowed


async def test_request_id_visible_to_handlers_and_logged(caplog):
    import logging

    from fastapi import FastAPI

    from cms.middleware import RequestIDMiddleware, request_id_var

    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.post("/echo")
    def echo() -> dict:
        return {"rid": request_id_var.get()}

    transport = ASGITransport(app=app)
    with caplog.at_level(logging.INFO, logger="cms.middleware"):
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            response = await c.post("/echo", headers={"X-Request-ID": "req-456"})

    assert response.json() == {"rid": "req-456"}
    assert any("req-456" in r.getMessage() for r in caplog.records)
