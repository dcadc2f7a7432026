"""FastAPI application factory for kubetopo.

Usage::

    from kubetopo.api.app import create_app

    app = create_app(config=load_config())

The factory is used by both the production bootstrap (``kubetopo.app``)
and unit tests.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from kubetopo.api.routes import router
from kubetopo.api.schemas import ErrorResponse
from kubetopo.errors import OperationCancelled, TopologyValidationError
from kubetopo.layout.cache import LayoutCache
from kubetopo.models.config import TopologyConfig

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(
    config: TopologyConfig | None = None,
    layout_cache: LayoutCache | None = None,
) -> FastAPI:
    """Create and configure the kubetopo FastAPI application.

    Args:
        config:       TopologyConfig; defaults apply when omitted.
        layout_cache: Shared LayoutCache.  A fresh one sized from
                      ``config.api.layout_cache_size`` is created when omitted.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from kubetopo import __version__

    config = config or TopologyConfig()

    app = FastAPI(
        title="kubetopo",
        summary="Kubernetes topology graph API",
        version=__version__,
        description=(
            "kubetopo turns snapshots of Kubernetes resources into typed topology "
            "graphs, pod-to-pod connectivity under NetworkPolicies, and 2-D layouts."
        ),
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.config = config
    app.state.layout_cache = layout_cache or LayoutCache(config.api.layout_cache_size)

    app.include_router(router, prefix=_API_PREFIX)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(TopologyValidationError)
    async def topology_exception_handler(
        request: Request,
        exc: TopologyValidationError,
    ) -> JSONResponse:
        _log.info("topology_rejected", path=str(request.url.path), error=exc.code, detail=str(exc))
        return JSONResponse(status_code=422, content=exc.to_dict())

    @app.exception_handler(OperationCancelled)
    async def cancelled_exception_handler(
        request: Request,
        exc: OperationCancelled,
    ) -> JSONResponse:
        _log.warning("computation_timeout", path=str(request.url.path), operation=exc.operation)
        return JSONResponse(
            status_code=504,
            content=ErrorResponse(
                error="COMPUTATION_TIMEOUT",
                detail=str(exc),
                context={"operation": exc.operation},
            ).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Map Pydantic validation errors to our error envelope."""
        errors = exc.errors()
        first_field = ""
        first_msg = ""
        if errors:
            locs = errors[0].get("loc", ())
            first_field = ".".join(str(part) for part in locs if part != "body")
            first_msg = str(errors[0].get("msg", ""))

        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                error="INVALID_REQUEST",
                detail=first_msg,
                context={"field": first_field},
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
