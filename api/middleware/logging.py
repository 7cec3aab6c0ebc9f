# WORKFLOW: Structured request logging for the upload API.
# Used by: api.main (wraps every endpoint)
# Functions:
# 1. dispatch() - Bind a request id, time the call, log outcome, echo X-Request-ID
# 2. _log_request() - Method, path, declared content type and length
# 3. _log_response() - Status and timing; rejected requests (4xx) are warnings
# 4. _log_error() - Unhandled exception with context
#
# Logging flow: Request -> Bind request_id -> Log request -> Process -> Log response/error -> Unbind
# Upload bodies are never logged; only their declared type and size.

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import time
import uuid
import structlog
from typing import Callable

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for structured request/response logging."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start_time = time.perf_counter()

        try:
            self._log_request(request)
            try:
                response = await call_next(request)
            except Exception as e:
                self._log_error(request, e, time.perf_counter() - start_time)
                raise

            self._log_response(request, response, time.perf_counter() - start_time)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

    def _log_request(self, request: Request):
        logger.info(
            "Incoming request",
            method=request.method,
            path=request.url.path,
            content_type=request.headers.get("content-type"),
            content_length=request.headers.get("content-length"),
            client_ip=request.client.host if request.client else None,
        )

    def _log_response(self, request: Request, response: Response, process_time: float):
        rejected = 400 <= response.status_code < 500
        log = logger.warning if rejected else logger.info
        log(
            "Request rejected" if rejected else "Response sent",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time_ms=round(process_time * 1000, 2),
        )

    def _log_error(self, request: Request, error: Exception, process_time: float):
        """Log an exception that escaped the endpoint."""
        logger.error(
            "Request failed",
            method=request.method,
            path=request.url.path,
            error_type=type(error).__name__,
            error_message=str(error),
            process_time_ms=round(process_time * 1000, 2)
        )
