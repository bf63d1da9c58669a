# app/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.

The data-access object (and its notification channel) is built once at
startup and shared through app.state; tests pass their own to create_app().
"""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.routers import alerts, alert_stream, emergency, health
from app.config import Settings, settings as default_settings
from app.services.data_access import DataAccess, SqlDataAccess
from app.utils.logger import get_logger
import time

logger = get_logger(__name__)

API_PREFIX = "/api/v1"
PUBLIC_PATHS = {f"{API_PREFIX}/health", "/docs", "/redoc", "/openapi.json"}
PUBLIC_PREFIXES = (f"{API_PREFIX}/emergency",)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth for dashboard endpoints.
    The emergency portal endpoints are excluded: submitters are never logged in.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    def __init__(self, app, api_key: str):
        super().__init__(app)
        self.api_key = api_key

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if request.method == "OPTIONS" or path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES):
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != self.api_key:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


def create_app(settings: Optional[Settings] = None, data_access: Optional[DataAccess] = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title="Sentinel Emergency Alerts API",
        description="Public emergency submissions, live dashboard alerts, acknowledgement.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.data_access = data_access

    if settings.API_KEY:
        app.add_middleware(APIKeyMiddleware, api_key=settings.API_KEY)

    # ── CORS (portal pages may be served from any origin) ───────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    )

    # ── Request Timing Middleware ────────────────────────────────────────────
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        duration = round((time.time() - start) * 1000, 2)
        logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
        return response

    # ── Global Exception Handler ─────────────────────────────────────────────
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Routers ──────────────────────────────────────────────────────────────
    app.include_router(emergency.router,    prefix=API_PREFIX, tags=["🚨 Emergency Portal"])
    app.include_router(alerts.router,       prefix=API_PREFIX, tags=["🔔 Alerts"])
    app.include_router(alert_stream.router, prefix=API_PREFIX, tags=["📡 Live Alerts"])
    app.include_router(health.router,       prefix=API_PREFIX, tags=["💚 Health"])

    # ── Startup ──────────────────────────────────────────────────────────────
    @app.on_event("startup")
    async def startup():
        logger.info("🚀 Sentinel alert backend starting up...")
        if app.state.data_access is None:
            app.state.data_access = SqlDataAccess.from_url(settings.DATABASE_URL)
            logger.info("✅ Database tables ready")
        logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
        logger.info("📖 API docs at /docs")

    @app.on_event("shutdown")
    async def shutdown():
        logger.info("🛑 Sentinel alert backend shutting down...")
        channel = getattr(app.state.data_access, "channel", None)
        if channel is not None:
            await channel.drain()

    return app


app = create_app()
