"""Request middleware: request IDs, trace propagation and access logging."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from learnhub.core.context import (
    clear_context,
    set_correlation_id,
    set_request_id,
    set_trace_id,
    set_user_id,
    set_user_role,
)


logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"
TRACE_ID_HEADERS = ("X-Trace-ID", "X-B3-TraceId")
TRACEPARENT_HEADER = "traceparent"

DEFAULT_EXCLUDED_PATHS = ("/health", "/health/live", "/health/ready")


def parse_traceparent(value: str | None) -> str | None:
    """Return the trace id from a W3C ``traceparent`` header.

    Format: ``{version}-{trace-id}-{parent-id}-{flags}``.
    """
    if not value:
        return None
    parts = value.split("-")
    return parts[1] if len(parts) >= 2 and parts[1] else None


def extract_trace_id(headers: Headers) -> str | None:
    for name in TRACE_ID_HEADERS:
        if headers.get(name):
            return headers[name]
    return parse_traceparent(headers.get(TRACEPARENT_HEADER))


def client_ip(request: Request) -> str | None:
    """Client address, honouring X-Forwarded-For and X-Real-IP from proxies."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request-scoped context and log each request.

    The request ID is taken from ``X-Request-ID`` when the caller sends one
    and echoed back on the response. Context is always cleared after the
    response, including when the handler raises.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths or DEFAULT_EXCLUDED_PATHS)

    def _is_excluded(self, path: str) -> bool:
        return path.startswith(self.exclude_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        set_trace_id(extract_trace_id(request.headers))
        set_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        request.state.request_id = request_id

        should_log = self.log_requests and not self._is_excluded(request.url.path)
        if should_log:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                query=str(request.query_params) if request.query_params else None,
                client_ip=client_ip(request),
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        else:
            if should_log:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()


def set_user_context(user_id: str | None, role: str | None = None) -> None:
    """Attach the authenticated user to the logging context."""
    set_user_id(user_id)
    set_user_role(role)


__all__ = [
    "RequestContextMiddleware",
    "client_ip",
    "extract_trace_id",
    "parse_traceparent",
    "set_user_context",
]
