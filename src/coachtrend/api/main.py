import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coachtrend.config import settings
from coachtrend.data.source import EventSource
from coachtrend.exceptions import DataSourceError, InvalidInput, NoData, PermissionDenied
from coachtrend.api.middleware import add_request_id, enforce_body_size, log_requests
from coachtrend.api import deps
from coachtrend.services.trends import EMPTY_STATE_MESSAGES

# Routers
from coachtrend.api.routers import system, trends

# Configure logging
logging.basicConfig(level=getattr(logging, settings.logging.level.upper(), logging.INFO))
logger = logging.getLogger("coachtrend.api")


def _error_payload(request: Request, error: str, detail, **extra) -> dict:
    payload = {"error": error, "detail": detail, **extra}
    rid = getattr(request.state, "request_id", None)
    if rid:
        payload["request_id"] = rid
    return payload


def create_app(event_source: Optional[EventSource] = None) -> FastAPI:
    """
    Factory to build the FastAPI application.
    An explicit event_source replaces the one configured in settings (used in tests).
    """
    if event_source is not None:
        deps.set_event_source(event_source)

    app = FastAPI(title="Coachtrend API", version=settings.app.version)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Custom Middleware
    app.middleware("http")(add_request_id)
    app.middleware("http")(enforce_body_size)
    if settings.logging.log_requests:
        app.middleware("http")(log_requests)

    app.include_router(system.router)
    app.include_router(trends.router)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        from starlette.exceptions import HTTPException as StarletteHTTPException
        if isinstance(exc, StarletteHTTPException):
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

        rid = getattr(request.state, "request_id", None)
        logger.exception("Unhandled error", extra={"path": str(request.url), "request_id": rid})
        return JSONResponse(
            status_code=500,
            content=_error_payload(request, "internal_error", "Unexpected server error"),
        )

    @app.exception_handler(NoData)
    async def no_data_handler(request: Request, exc: NoData):
        return JSONResponse(
            status_code=404,
            content=_error_payload(
                request,
                "no_data",
                str(exc),
                stage=exc.stage.value,
                message=EMPTY_STATE_MESSAGES[exc.stage],
            ),
        )

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput):
        return JSONResponse(status_code=422, content=_error_payload(request, "invalid_input", str(exc)))

    @app.exception_handler(PermissionDenied)
    async def permission_handler(request: Request, exc: PermissionDenied):
        return JSONResponse(status_code=403, content=_error_payload(request, "forbidden", str(exc)))

    @app.exception_handler(DataSourceError)
    async def datasource_exception_handler(request: Request, exc: DataSourceError):
        logger.warning("Event source failure: %s", exc)
        return JSONResponse(status_code=502, content=_error_payload(request, "data_source", str(exc)))

    return app

# Module-level app for uvicorn entrypoint
app = create_app()
