"""
FastAPI application factory.

Usage:
    python -m api.app                          # Dev server on port 8000
    APP_DB_PATH=/data/trips.sqlite python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

The app exposes one ``PlannerEngine`` to a local dashboard UI. Drafts sent
to ``/api/v1/drafts`` are saved by the engine's debounce timers, which run
on the server's event loop, so every route is ``async``.

Set APP_LOG_FORMAT=json for newline-delimited JSON logs and APP_CORS_ORIGINS
to restrict which dashboard origins may call the API.
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import HealthOut
from api.routes import drafts, items, plugins, widgets
from engine import PlannerEngine
from plugins.registry import UnknownItemTypeError
from storage.errors import StorageError, StorageQuotaExceededError
from utils.config import AppConfig

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── Logging ───────────────────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("trip_widgets_api")
_handler = logging.StreamHandler()
if _cfg.log_format == "json":
    _handler.setFormatter(_JsonFormatter())
else:
    _handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
logging.basicConfig(handlers=[_handler], level=logging.INFO, force=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine on startup if none was injected; flush drafts on shutdown."""
    if getattr(app.state, "engine", None) is None:
        app.state.engine = PlannerEngine.from_config(_cfg)
    yield
    await app.state.engine.shutdown()


def create_app(engine: PlannerEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        engine: Pre-built engine (useful for testing). When omitted the
            engine is built from environment settings at startup.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Trip Widget API",
        summary="Dashboard widgets bound to saved trip items, with debounced auto-save.",
        description=(
            "## Trip Widget Engine API\n\n"
            "### Key concepts\n"
            "- **Items** are saved countdowns, budgets, packing lists and itineraries.\n"
            "- **Widgets** are ordered dashboard tiles; each may show one item of its type.\n"
            "- **Drafts** are in-progress edits. `PUT` them as often as you like; "
            f"they are written after {_cfg.autosave_delay_ms} ms of quiet, "
            "or immediately via `POST .../save`.\n"
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "widgets", "description": "Dashboard layout and item binding."},
            {"name": "items", "description": "Saved items, one collection per type."},
            {"name": "plugins", "description": "Available item types."},
            {"name": "drafts", "description": "Debounced auto-save of item edits."},
            {"name": "meta", "description": "Health check."},
        ],
    )
    app.state.engine = engine

    # ── CORS ──────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request with its duration and a short request id."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if _cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f rid=%s",
                request.method, request.url.path, response.status_code,
                duration_ms, request_id,
            )
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of HTML traceback."""
        _logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc),
                "status_code": 500,
            },
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content={"error": "Bad request", "detail": str(exc), "status_code": 400},
        )

    @app.exception_handler(UnknownItemTypeError)
    async def unknown_type_handler(request: Request, exc: UnknownItemTypeError):
        return JSONResponse(
            status_code=404,
            content={"error": "Not found", "detail": str(exc.args[0]), "status_code": 404},
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        code = 507 if isinstance(exc, StorageQuotaExceededError) else 503
        return JSONResponse(
            status_code=code,
            content={"error": "Storage unavailable", "detail": str(exc), "status_code": code},
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check", response_model=HealthOut)
    async def health(request: Request):
        """Return 200 OK with component counts if the engine is up."""
        engine = getattr(request.app.state, "engine", None)
        if engine is None:
            return JSONResponse(status_code=503, content={"status": "starting"})
        return HealthOut(
            status="ok",
            storage=type(engine.store).__name__,
            plugins=len(engine.registry),
            widgets=len(engine.widgets.get_configs()),
            autosave_tasks=len(engine.autosave.tasks()),
        )

    # ── Register routers ──────────────────────────────────────────────────────

    prefix = "/api/v1"
    app.include_router(widgets.router, prefix=prefix)
    app.include_router(items.router,   prefix=prefix)
    app.include_router(plugins.router, prefix=prefix)
    app.include_router(drafts.router,  prefix=prefix)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.app:app", host=_cfg.api_host, port=_cfg.api_port, reload=False)
