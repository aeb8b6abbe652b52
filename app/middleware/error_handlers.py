"""
Request middleware for the Resume Matcher API: error mapping, request logging
and timing.
"""
import time
import uuid
from datetime import datetime
from typing import Any, Dict

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from app.utils.exceptions import ResumeMatcherError, map_to_http_exception
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR = {
    "error": "Internal server error",
    "message": "An unexpected error occurred. Please try again later.",
}


def _request_context(request: Request, request_id: str, **extra) -> Dict[str, Any]:
    return {"request_id": request_id, "method": request.method, "path": request.url.path, **extra}


def error_response(request_id: str, status_code: int, detail: Any) -> JSONResponse:
    """Standard error body: success flag, request id, status and the mapped detail"""
    if not isinstance(detail, dict):
        detail = {"message": str(detail)}

    body = {
        "success": False,
        "timestamp": datetime.utcnow().isoformat(),
        "request_id": request_id,
        "status_code": status_code,
        **detail,
    }
    return JSONResponse(status_code=status_code, content=body, headers={"X-Request-ID": request_id})


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Assigns a request id and turns exceptions into JSON error responses"""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        route = f"{request.method} {request.url.path}"

        logger.info(f"Request started: {route}", extra=_request_context(
            request, request_id, client_ip=request.client.host if request.client else "unknown"))

        try:
            response = await call_next(request)
        except ResumeMatcherError as exc:
            logger.error(f"{exc.__class__.__name__} in {route}: {exc.message}", extra=_request_context(
                request, request_id, error_code=exc.error_code, details=exc.details))
            http_exc = map_to_http_exception(exc)
            return error_response(request_id, http_exc.status_code, http_exc.detail)
        except RequestValidationError as exc:
            logger.error(f"Validation error in {route}: {exc}", extra=_request_context(request, request_id))
            return error_response(request_id, 422, {
                "error": "Validation failed",
                "message": "Request data validation failed",
                "validation_errors": exc.errors(),
            })
        except HTTPException as exc:
            logger.warning(f"HTTP {exc.status_code} in {route}: {exc.detail}", extra=_request_context(request, request_id))
            return error_response(request_id, exc.status_code, exc.detail)
        except Exception as exc:
            logger.error(f"Unhandled exception in {route}: {exc}", extra=_request_context(
                request, request_id, exception_type=exc.__class__.__name__), exc_info=True)
            return error_response(request_id, 500, INTERNAL_ERROR)

        logger.info(f"Request completed: {route} - {response.status_code}",
                    extra=_request_context(request, request_id, status_code=response.status_code))
        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs request metadata and response status. Upload bodies are never read here."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = getattr(request.state, 'request_id', None) or str(uuid.uuid4())

        logger.debug(f"Request details: {request.method} {request.url}", extra={
            "request_id": request_id,
            "content_type": request.headers.get("content-type", ""),
            "content_length": request.headers.get("content-length", "unknown"),
        })

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Request failed: {request.method} {request.url.path} after {time.time() - start_time:.3f}s: {exc}",
                extra={"request_id": request_id}
            )
            raise

        processing_time = time.time() - start_time
        logger.info(
            f"Response: {request.method} {request.url.path} - {response.status_code} in {processing_time:.3f}s",
            extra={"request_id": request_id, "processing_time": processing_time}
        )
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Adds X-Processing-Time and warns about slow requests"""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        processing_time = time.time() - start_time

        if processing_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} took {processing_time:.3f}s",
                extra={"processing_time": processing_time, "threshold": self.slow_request_threshold}
            )

        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"
        return response
