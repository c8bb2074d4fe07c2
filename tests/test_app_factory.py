"""
Tests for api/app.py: create_app() factory

Verifies the FastAPI app is created with the expected metadata, routers
are registered, the lifespan builds an engine when none is injected, and
the exception handlers map engine errors to status codes.
"""
import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from storage.errors import StorageAccessError, StorageQuotaExceededError


class TestCreateApp:
    def test_creates_fastapi_instance(self, engine):
        app = create_app(engine)
        assert app.title == "Trip Widget API"
        assert app.version == "1.0.0"

    def test_registers_api_routes(self, engine):
        app = create_app(engine)
        route_paths = {getattr(r, "path", "") for r in app.routes}
        for path in (
            "/health",
            "/api/v1/widgets",
            "/api/v1/widgets/order",
            "/api/v1/widgets/{widget_id}/link",
            "/api/v1/items/{item_type}",
            "/api/v1/plugins",
            "/api/v1/drafts/{item_type}/{item_id}/save",
            "/api/v1/autosave/recent",
        ):
            assert path in route_paths

    def test_engine_on_state(self, engine):
        assert create_app(engine).state.engine is engine

    def test_lifespan_builds_engine_from_environment(self, monkeypatch):
        monkeypatch.setattr("api.app._cfg.storage_backend", "memory")
        app = create_app()
        with TestClient(app) as client:
            resp = client.get("/health")
            assert resp.status_code == 200
            assert resp.json()["storage"] == "MemoryKeyValueStore"


class TestMiddleware:
    def test_request_id_header(self, engine):
        with TestClient(create_app(engine)) as client:
            resp = client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 8

    def test_health_counts(self, engine):
        engine.widgets.create_widget("countdown")
        with TestClient(create_app(engine)) as client:
            body = client.get("/health").json()
        assert body == {
            "status": "ok",
            "storage": "MemoryKeyValueStore",
            "plugins": 4,
            "widgets": 1,
            "autosave_tasks": 0,
        }


class TestErrorHandlers:
    @pytest.fixture()
    def app(self, engine):
        app = create_app(engine)

        @app.get("/boom/{kind}")
        async def boom(kind: str):
            if kind == "value":
                raise ValueError("bad input")
            if kind == "quota":
                raise StorageQuotaExceededError("full", key="widget-configs")
            raise StorageAccessError("disk gone")

        return app

    def test_value_error_is_400(self, app):
        with TestClient(app) as client:
            resp = client.get("/boom/value")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "bad input"

    def test_quota_is_507(self, app):
        with TestClient(app) as client:
            assert client.get("/boom/quota").status_code == 507

    def test_storage_error_is_503(self, app):
        with TestClient(app) as client:
            resp = client.get("/boom/access")
        assert resp.status_code == 503
        assert resp.json()["error"] == "Storage unavailable"
