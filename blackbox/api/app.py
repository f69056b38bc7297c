"""FastAPI application factory for Blackbox.

The daemon mounts the app returned by :func:`create_app` in uvicorn; tests
wrap it in a TestClient. Every error leaves the API as an ``ErrorResponse``
envelope, including unknown routes and request validation failures.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from blackbox.api.routes import router
from blackbox.api.schemas import ErrorResponse
from blackbox.runtime import BlackboxRuntime

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"

_HTTP_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message


def create_app(runtime: BlackboxRuntime) -> FastAPI:
    """Build the REST app for *runtime*."""
    from blackbox import __version__

    app = FastAPI(
        title="Blackbox",
        summary="Incident capture API",
        version=__version__,
        docs_url=f"{_API_PREFIX}/docs",
        redoc_url=None,
        openapi_url=f"{_API_PREFIX}/openapi.json",
    )
    app.state.runtime = runtime
    app.include_router(router, prefix=_API_PREFIX)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(RequestValidationError)
    async def on_invalid_request(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "INVALID_REQUEST", _describe_validation_error(exc))

    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        return _error(exc.status_code, code, str(exc.detail))

    @app.exception_handler(Exception)
    async def on_unhandled(request: Request, exc: Exception) -> JSONResponse:
        # Stack traces stay in the log.
        _log.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return _error(500, "INTERNAL_ERROR", "An unexpected error occurred.")

    return app
