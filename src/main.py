from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from starlette.middleware.base import BaseHTTPMiddleware

from src.richmenu.api.routes import router as richmenu_router
from src.shared.database import close_database_engine
from src.shared.exceptions import register_exception_handlers  # central mapping
from src.shared.health import router as health_router
from src.shared.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    set_correlation_id,
    setup_logging,
)

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Ensures every request has a correlation id and a fresh log context.
    - Reads X-Correlation-ID if provided, otherwise generates one.
    - Exposes request.state.request_id for the error handlers.
    - Echoes X-Correlation-ID in response headers.
    """

    async def dispatch(self, request: Request, call_next):
        clear_request_context()
        corr = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        request.state.request_id = corr
        bind_request_context(
            path=request.url.path,
            method=request.method,
            client_ip=request.client.host if request.client else None,
        )
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.debug("Request finished", duration_ms=duration_ms)
        response.headers[CORRELATION_HEADER] = corr
        return response


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info("Rich menu publisher starting")
    yield
    await close_database_engine()


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="LINE Rich Menu Publisher — API",
        version="1.0.0",
        swagger_ui_parameters={"persistAuthorization": True},
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    app.add_middleware(CorrelationIdMiddleware)

    # Routers
    app.include_router(richmenu_router)
    app.include_router(health_router)

    # Centralized error handling → {code, message, details?, correlation_id?}
    register_exception_handlers(app)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint."""
        return {
            "message": "LINE Rich Menu Publisher API",
            "docs": "/docs",
            "health": "/_health/db",
        }

    # ---- Custom OpenAPI to add Bearer auth ----
    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            routes=app.routes,
        )
        schema.setdefault("components", {}).setdefault("securitySchemes", {})["bearerAuth"] = {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
        schema["security"] = [{"bearerAuth": []}]
        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi

    return app


app = create_app()
