# Core infrastructure
from src.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import (
    CacheControlMiddleware,
    RequestContextMiddleware,
    set_user_context,
)


__all__ = [
    "CacheControlMiddleware",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_request_id",
    "set_user_context",
    "set_user_id",
]
