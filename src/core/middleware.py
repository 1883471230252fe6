"""Request middleware: request ids, access logging and Cache-Control."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.context import clear_context, set_request_id, set_user_id


logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the lifetime of each request and log its outcome.

    The id comes from ``X-Request-ID`` when the caller sends one and is
    echoed back on the response, so error payloads and log lines can be
    matched to a single call.
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    QUIET_PATHS = ("/health",)

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        quiet_paths: tuple[str, ...] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.quiet_paths = quiet_paths or self.QUIET_PATHS

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))
        request.state.request_id = request_id

        path = request.url.path
        verbose = self.log_requests and not path.startswith(self.quiet_paths)
        if verbose:
            logger.info(
                "request_started",
                method=request.method,
                path=path,
                client_ip=_client_ip(request),
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=path,
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(started),
            )
            raise
        finally:
            clear_context()

        if verbose:
            log = logger.warning if response.status_code >= 400 else logger.info
            log(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=_elapsed_ms(started),
            )
        response.headers[self.REQUEST_ID_HEADER] = request_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _client_ip(request: Request) -> str | None:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


class CacheControlMiddleware(BaseHTTPMiddleware):
    """Set Cache-Control on responses.

    Anonymous successful GETs under one of ``cache_paths`` are publicly
    cacheable for ``max_age`` seconds. Anything carrying an Authorization
    header is ``no-store`` so personalised payloads never land in a shared
    cache.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_age: int = 300,
        cache_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.max_age = max_age
        self.cache_paths = cache_paths or ["/api/posts"]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)

        if request.headers.get("authorization"):
            response.headers["Cache-Control"] = "no-store"
        elif (
            request.method == "GET"
            and response.status_code < 400
            and any(request.url.path.startswith(p) for p in self.cache_paths)
        ):
            response.headers["Cache-Control"] = f"public, max-age={self.max_age}"

        return response


def set_user_context(user_id: str | None) -> None:
    """Set user ID in the current request context.

    Call this after authentication to include user_id in all subsequent logs.
    """
    set_user_id(user_id)


__all__ = [
    "CacheControlMiddleware",
    "RequestContextMiddleware",
    "set_user_context",
]
