"""
Request-level middleware: request ids, error responses, timing
"""
import time
import traceback
import uuid
from datetime import datetime
from typing import Any, Tuple

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from app.utils.exceptions import AIAgentBaseException, map_to_http_exception
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def error_body(request_id: str, status_code: int, detail: Any) -> dict:
    """Uniform JSON error payload; ``detail`` may be a string or a dict"""
    if isinstance(detail, str):
        detail = {"message": detail}
    elif not isinstance(detail, dict):
        detail = {"message": str(detail)}

    return {
        "success": False,
        "timestamp": datetime.utcnow().isoformat(),
        "request_id": request_id,
        "status_code": status_code,
        **detail,
    }


def classify_exception(exc: Exception) -> Tuple[int, Any]:
    """HTTP status and response detail for an exception that escaped a route"""
    if isinstance(exc, AIAgentBaseException):
        http_exc = map_to_http_exception(exc)
        return http_exc.status_code, http_exc.detail
    if isinstance(exc, ValidationError):
        return 400, {
            "error": "Data validation failed",
            "message": "Invalid data format or values",
            "validation_errors": exc.errors(include_url=False),
        }
    if isinstance(exc, HTTPException):
        return exc.status_code, exc.detail
    return 500, {
        "error": "Internal server error",
        "message": "An unexpected error occurred. Please try again later.",
    }


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Assigns request ids and turns escaped exceptions into JSON errors.

    The id comes from the caller's X-Request-ID header when present, is
    stored on ``request.state.request_id`` for routers (which reuse it as
    the search trace id) and is echoed on every response.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        route = f"{request.method} {request.url.path}"

        logger.info(
            f"Request started: {route}",
            extra={
                "request_id": request_id,
                "client_ip": request.client.host if request.client else "unknown",
            }
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            status_code, detail = classify_exception(exc)
            extra = {
                "request_id": request_id,
                "exception_type": exc.__class__.__name__,
                "status_code": status_code,
            }
            if isinstance(exc, AIAgentBaseException):
                logger.error(f"{exc.error_code} in {route}: {exc.message}", extra={**extra, "details": exc.details})
            elif status_code >= 500:
                logger.error(
                    f"Unhandled exception in {route}: {exc}",
                    extra={**extra, "traceback": traceback.format_exc()},
                    exc_info=True
                )
            else:
                logger.warning(f"Request failed in {route}: {exc}", extra=extra)

            return JSONResponse(
                status_code=status_code,
                content=error_body(request_id, status_code, detail),
                headers={REQUEST_ID_HEADER: request_id},
            )

        logger.info(
            f"Request completed: {route} - {response.status_code}",
            extra={"request_id": request_id, "status_code": response.status_code}
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Adds X-Processing-Time and warns about requests slower than the threshold (seconds)"""

    def __init__(self, app, slow_request_threshold: float = 5.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        processing_time = time.time() - start_time

        request_id = getattr(request.state, "request_id", "unknown")
        if processing_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {processing_time:.3f}s",
                extra={"request_id": request_id, "threshold": self.slow_request_threshold}
            )
        else:
            logger.debug(f"{request.method} {request.url.path} took {processing_time:.3f}s", extra={"request_id": request_id})

        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"
        return response
