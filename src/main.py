# src/main.py

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from api.routes import router
from engine.config import Settings, load_settings
from engine.errors import (
    AnalysisError,
    InsufficientSelectionError,
    IntegrationError,
    InvalidTransitionError,
    ScanNotFoundError,
)
from engine.scan_service import ScanService
import logging
import uuid


ERROR_STATUS = {
    ScanNotFoundError: 404,
    InsufficientSelectionError: 400,
    IntegrationError: 400,
    InvalidTransitionError: 409,
    AnalysisError: 502,
}


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s %(message)s'
    )


def create_app(service: Optional[ScanService] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.info("Audityzer scan core started.")
        yield
        await app.state.scan_service.job_manager.drain()
        await app.state.scan_service.aclose()
        logging.info("Audityzer scan core stopped.")

    app = FastAPI(title="Audityzer Scan Core", lifespan=lifespan)
    app.state.scan_service = service or ScanService.from_settings(settings)

    @app.middleware("http")
    async def add_trace_id_and_log(request: Request, call_next):
        trace_id = str(uuid.uuid4())
        request.state.trace_id = trace_id
        logging.info(f"[trace_id={trace_id}] Incoming request: {request.method} {request.url}")
        try:
            response = await call_next(request)
        except Exception as exc:
            logging.error(f"[trace_id={trace_id}] Unhandled error: {exc}")
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "Internal server error", "trace_id": trace_id}
            )
        response.headers["X-Trace-Id"] = trace_id
        return response

    for error_type, status_code in ERROR_STATUS.items():
        app.add_exception_handler(error_type, _scan_error_handler(status_code))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))
        logging.error(f"[trace_id={trace_id}] Exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(exc), "trace_id": trace_id}
        )

    app.include_router(router)
    return app


def _scan_error_handler(status_code: int):
    async def handler(request: Request, exc: Exception):
        trace_id = getattr(request.state, "trace_id", None)
        logging.warning(f"[trace_id={trace_id}] {type(exc).__name__}: {exc}")
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "error": str(exc), "trace_id": trace_id}
        )
    return handler
