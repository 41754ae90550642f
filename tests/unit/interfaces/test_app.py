"""Tests for the FastAPI application factory."""

from __future__ import annotations

from fastapi.testclient import TestClient

from roomstream.infrastructure.config import AppConfig
from roomstream.interfaces.main import build_app


class TestBuildApp:
    def test_title_from_app_name(self) -> None:
        app = build_app(AppConfig(app_name="roomstream-edge"))
        assert app.title == "roomstream-edge"

    def test_routes_registered(self) -> None:
        paths = {route.path for route in build_app(AppConfig()).routes}
        assert "/healthz" in paths
        assert "/api/v1/catalog" in paths
        assert "/api/v1/rooms/{address}/stream" in paths
        assert "/api/v1/rooms/{address}/signature" in paths

    def test_healthz_without_lifespan(self) -> None:
        resp = TestClient(build_app(AppConfig())).get("/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
