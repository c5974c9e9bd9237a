"""HTTP plumbing: correlation IDs, request logging and error envelopes."""
from __future__ import annotations

import time
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .models import ErrorResponse
from .observability.events import RequestEvent

_logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Request-ID"
SKIP_LOGGING_PATHS = frozenset({"/", "/favicon.ico"})

CallNext = Callable[[Request], Awaitable[Response]]


def mask_secret(value: str) -> str:
    """Keep the last four characters visible: ``"abcde-67890"`` -> ``"*******7890"``."""
    if not value:
        return value
    if len(value) <= 4:
        return "****"
    return "*" * (len(value) - 4) + value[-4:]


def correlation_id(request: Request) -> Optional[str]:
    return getattr(request.state, "correlation_id", None)


async def correlation_id_middleware(request: Request, call_next: CallNext) -> Response:
    cid = request.headers.get(CORRELATION_HEADER, "").strip() or uuid4().hex
    request.state.correlation_id = cid
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(correlation_id=cid)
    response = await call_next(request)
    response.headers[CORRELATION_HEADER] = cid
    return response


async def request_logging_middleware(request: Request, call_next: CallNext) -> Response:
    if request.url.path in SKIP_LOGGING_PATHS:
        return await call_next(request)

    started = time.perf_counter()
    fields = {
        "method": request.method,
        "path": request.url.path,
        "user_agent": request.headers.get("user-agent", ""),
        "client_ip": request.client.host if request.client else "unknown",
    }
    _logger.debug(RequestEvent.STARTED.value, method=request.method, path=request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        # Traceback is logged once, by the unhandled error handler.
        _logger.error(RequestEvent.FAILED.value, status_code=500, elapsed_ms=elapsed_ms, **fields)
        raise

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    status_code = response.status_code
    if status_code >= 500:
        log = _logger.error
    elif status_code >= 400:
        log = _logger.warning
    else:
        log = _logger.info
    log(
        RequestEvent.COMPLETED.value,
        status_code=status_code,
        elapsed_ms=elapsed_ms,
        length=int(response.headers.get("content-length", 0)),
        **fields,
    )
    return response


def _group_validation_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    details: Dict[str, List[str]] = defaultdict(list)
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        details[".".join(loc) or "body"].append(error.get("msg", "Invalid value"))
    return dict(details)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _group_validation_errors(exc)
    _logger.warning(RequestEvent.VALIDATION_FAILED.value, path=request.url.path, details=details)
    body = ErrorResponse(error="Invalid input", details=details, trace_id=correlation_id(request))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump(by_alias=True))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    _logger.error(RequestEvent.UNHANDLED_ERROR.value, path=request.url.path, error=type(exc).__name__, exc_info=exc)
    cid = correlation_id(request)
    body = ErrorResponse(error="Server error", trace_id=cid)
    response = JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )
    # Runs outside the user middleware, so the correlation header is not added for us.
    if cid:
        response.headers[CORRELATION_HEADER] = cid
    return response


def install(app: FastAPI) -> None:
    # Registered last runs first: correlation IDs wrap request logging.
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
