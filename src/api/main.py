import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request

from api.routers.audit import router as audit_router
from api.routers.metrics import router as metrics_router
from api.routers.tools import router as tools_router
from config.settings import AppSettings, get_settings
from db.session import init_db
from observability.metrics import MetricsMiddleware
from observability.tracing import init_tracing, instrument_fastapi_app, shutdown_tracing
from toolgate.startup import ToolService, build_service_from_settings
from utils.logging import init_logging

_LOGGER = logging.getLogger("toolgate")


def create_app(settings: AppSettings | None = None, service: ToolService | None = None) -> FastAPI:
    """
    Application factory.

    The tool service is assembled before the app is returned: build errors,
    policy load errors and extension failures abort startup.
    """
    settings = settings or get_settings()

    if settings.logging_config_path:
        init_logging(settings.logging_config_path)
    else:
        init_logging()

    # No-op unless APP_ENABLE_TRACING
    init_tracing(settings)

    # Audit tables must exist before the first decision is persisted
    if settings.audit_log_enabled and not settings.is_prod:
        init_db()

    if service is None:
        service = build_service_from_settings(settings)

    app = FastAPI(
        title="toolgate",
        description="Registered tools behind a per-call authorization gate",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.service = service
    app.state.discovery_filtered = settings.discovery_filtered

    if settings.enable_tracing:
        instrument_fastapi_app(app)

    # Prometheus metrics middleware (low-cardinality labels; no PII)
    if settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    # Request logging (path and method only)
    @app.middleware("http")
    async def _request_logging_middleware(request: Request, call_next):
        _LOGGER.debug("request: method=%s endpoint=%s", request.method, request.url.path)
        return await call_next(request)

    @app.on_event("startup")
    async def _startup_log() -> None:
        _LOGGER.info(
            "api.startup: environment=%s version=%s tools=%d",
            settings.environment,
            app.version,
            len(service.registry),
        )

    # Graceful shutdown: flush tracing
    @app.on_event("shutdown")
    async def _shutdown_tracing() -> None:
        shutdown_tracing()

    app.include_router(tools_router, prefix="")
    if settings.audit_log_enabled:
        app.include_router(audit_router, prefix="")
    if settings.enable_metrics:
        app.include_router(metrics_router, prefix="")

    @app.get("/health", response_class=JSONResponse, tags=["system"])
    async def health() -> JSONResponse:
        return JSONResponse(
            {"status": "ok", "version": app.version, "tools": len(service.registry)}
        )

    return app
