import time
import logging
from uuid import uuid4
from fastapi import Request
from fastapi.responses import JSONResponse
from coachtrend.config import settings

logger = logging.getLogger("coachtrend.api")

_BODY_METHODS = {"POST", "PUT", "PATCH"}


async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or uuid4().hex
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["x-request-id"] = rid
    return response


async def enforce_body_size(request: Request, call_next):
    """Rejects oversized event payloads posted for ad hoc builds before they are parsed."""
    if request.method not in _BODY_METHODS:
        return await call_next(request)
    limit_bytes = settings.security.max_upload_mb * 1024 * 1024
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit_bytes:
        return JSONResponse(
            status_code=413,
            content={
                "error": "request_too_large",
                "detail": f"Max request size is {settings.security.max_upload_mb}MB",
            },
        )
    return await call_next(request)


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        status = getattr(response, "status_code", 500)
        level = logging.WARNING if status >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s -> %s (%.2f ms)",
            request.method,
            request.url.path,
            status,
            duration_ms,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
