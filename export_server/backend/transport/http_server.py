"""HTTP endpoints for frame export, health and metrics."""

import logging
from contextlib import asynccontextmanager
from copy import deepcopy
from typing import Any, AsyncIterator, Dict, Optional, Tuple

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from uvicorn.config import LOGGING_CONFIG

from export_server.backend.application.outcome import ExportOutcome
from export_server.backend.component.upload import decode_upload
from export_server.backend.runtime.runtime import ApplicationRuntime
from export_server.config.default import DEFAULT_ROUTE_PREFIX
from export_server.errors import (
    ErrorCode,
    ExportError,
    http_payload_for,
    http_status_for,
)
from export_server.utils.logger import clear_export_name

EXPORT_ROUTES = ("/saveBlob", "/stream-start", "/stream-end")
LOGGER = logging.getLogger("export_server.http_server")


class _AccessLogPathFilter(logging.Filter):
    """Filter out access logs for the export routes (one per frame)."""

    def __init__(self, ignored_paths: Tuple[str, ...]) -> None:
        super().__init__()
        self._ignored_paths = set(ignored_paths)

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, tuple) and len(record.args) >= 3:
            path = record.args[2]
            if path in self._ignored_paths:
                return False
        return True


def _build_uvicorn_log_config(route_prefix: str) -> Dict[str, Any]:
    log_config = deepcopy(LOGGING_CONFIG)
    log_config.setdefault("filters", {})
    log_config["filters"]["ignore_export_routes"] = {
        "()": _AccessLogPathFilter,
        "ignored_paths": tuple(f"{route_prefix}{route}" for route in EXPORT_ROUTES),
    }
    access_handler = log_config["handlers"].get("access", {})
    access_filters = access_handler.get("filters", [])
    access_handler["filters"] = [*access_filters, "ignore_export_routes"]
    log_config["handlers"]["access"] = access_handler
    return log_config


class StreamStartRequest(BaseModel):
    """Request body for stream-start."""

    filename: str
    encoding: Optional[str] = None
    fps: Optional[float] = None


class StreamEndRequest(BaseModel):
    """Request body for stream-end."""

    filename: Optional[str] = None


def _respond(outcome: ExportOutcome) -> JSONResponse:
    return JSONResponse(outcome.payload, status_code=outcome.status_code)


def _validation_detail(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{loc}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def build_http_app(
    runtime: ApplicationRuntime, route_prefix: str = DEFAULT_ROUTE_PREFIX
) -> FastAPI:
    """Create the FastAPI app serving the export routes."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await runtime.shutdown()

    app = FastAPI(lifespan=lifespan)
    app.state.runtime = runtime

    @app.exception_handler(ExportError)
    async def export_error_handler(_request: Request, exc: ExportError) -> JSONResponse:
        LOGGER.error("%s", exc)
        runtime.metrics.record_error(exc.code)
        return JSONResponse(
            http_payload_for(exc.code, exc.detail),
            status_code=exc.http_status,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        detail = _validation_detail(exc)
        LOGGER.warning("Rejected request body: %s", detail)
        runtime.metrics.record_error(ErrorCode.REQUEST_INVALID)
        return JSONResponse(
            http_payload_for(ErrorCode.REQUEST_INVALID, detail),
            status_code=http_status_for(ErrorCode.REQUEST_INVALID),
        )

    @app.post(f"{route_prefix}/stream-start")
    async def stream_start_endpoint(req: StreamStartRequest) -> JSONResponse:
        clear_export_name()
        outcome = await runtime.lifecycle.start(req.filename, req.encoding, req.fps)
        return _respond(outcome)

    @app.post(f"{route_prefix}/stream-end")
    async def stream_end_endpoint(
        req: Optional[StreamEndRequest] = None,
    ) -> JSONResponse:
        clear_export_name()
        outcome = await runtime.lifecycle.end(req.filename if req else None)
        return _respond(outcome)

    @app.post(f"{route_prefix}/saveBlob")
    async def save_blob_endpoint(request: Request) -> JSONResponse:
        clear_export_name()
        async with decode_upload(request) as parts:
            if len(parts) > 1:
                LOGGER.debug("saveBlob received %d files; using the first", len(parts))
            outcome = await runtime.frames.ingest(parts[0] if parts else None)
        return _respond(outcome)

    @app.get("/health")
    def health_endpoint() -> JSONResponse:
        return JSONResponse({"status": "ok", **runtime.health_snapshot()})

    @app.get("/metrics.json")
    def metrics_json_endpoint() -> JSONResponse:
        return JSONResponse(runtime.metrics.render(), status_code=200)

    return app


def run_http_server(
    runtime: ApplicationRuntime,
    host: str,
    port: int,
    route_prefix: str = DEFAULT_ROUTE_PREFIX,
    quiet: bool = False,
) -> None:
    """Serve the export app in the foreground until interrupted."""
    app = build_http_app(runtime, route_prefix)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info",
        access_log=not quiet,
        log_config=_build_uvicorn_log_config(route_prefix),
    )
    uvicorn.Server(config).run()


__all__ = ["build_http_app", "run_http_server", "StreamStartRequest", "StreamEndRequest"]
