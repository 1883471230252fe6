"""AI Wave Rider API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.auth.router import router as auth_router
from src.auth.service import UserService
from src.auth.verifier import (
    FirebaseIdentityVerifier,
    IdentityVerifier,
    UnconfiguredIdentityVerifier,
)
from src.comments.router import router as comments_router
from src.comments.service import CommentService
from src.config import Settings, get_settings
from src.core.context import get_request_id
from src.core.database import DocumentStore, create_document_store
from src.core.errors import AppError, Unauthorized, error_payload
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import CacheControlMiddleware, RequestContextMiddleware
from src.health.router import router as health_router
from src.posts.router import router as posts_router
from src.posts.service import PostService
from src.profile.router import router as profile_router
from src.profile.service import ProfileService
from src.storage import FirebaseStorageService, ImageHost, create_image_host


logger = get_logger(__name__)


def _build_identity_verifier(settings: Settings) -> IdentityVerifier:
    if not settings.firebase_configured:
        logger.warning("identity_provider_not_configured")
        return UnconfiguredIdentityVerifier()

    from src.core.firebase import init_firebase  # noqa: PLC0415

    return FirebaseIdentityVerifier(init_firebase(settings))


def _build_avatar_storage(settings: Settings) -> ImageHost | None:
    if not settings.firebase_storage_configured:
        logger.warning("avatar_storage_not_configured")
        return None
    return FirebaseStorageService(settings, folder="avatars")


def create_lifespan(
    store: DocumentStore | None = None,
    identity_verifier: IdentityVerifier | None = None,
    image_host: ImageHost | None = None,
    avatar_storage: ImageHost | None = None,
):
    """Build the lifespan that wires services onto ``app.state``.

    Components passed in are used as is; the rest are built from settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        settings: Settings = app.state.settings
        logger.info(
            "starting_application",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment,
            store_backend=settings.store_backend,
        )

        app.state.store = (
            store if store is not None else create_document_store(settings)
        )
        app.state.identity_verifier = (
            identity_verifier
            if identity_verifier is not None
            else _build_identity_verifier(settings)
        )
        app.state.image_host = (
            image_host if image_host is not None else create_image_host(settings)
        )
        app.state.avatar_storage = (
            avatar_storage
            if avatar_storage is not None
            else _build_avatar_storage(settings)
        )

        app.state.user_service = UserService(app.state.store)
        app.state.comment_service = CommentService(
            app.state.store, app.state.user_service
        )
        app.state.post_service = PostService(
            store=app.state.store,
            image_host=app.state.image_host,
            user_service=app.state.user_service,
            comment_service=app.state.comment_service,
            settings=settings,
        )
        app.state.profile_service = ProfileService(
            store=app.state.store,
            user_service=app.state.user_service,
            avatar_storage=app.state.avatar_storage,
            settings=settings,
        )
        logger.info(
            "services_initialized",
            image_host=type(app.state.image_host).__name__,
            avatar_storage=app.state.avatar_storage is not None,
        )

        yield

        # Shutdown
        logger.info("shutting_down_application")
        close = getattr(app.state.image_host, "aclose", None)
        if close is not None:
            await close()

    return lifespan


def _get_request_id_safe(request: Request) -> str | None:
    """Get request_id from request state or context."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return get_request_id()


def register_exception_handlers(app: FastAPI) -> None:
    """Map errors to the structured error payload."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> ORJSONResponse:
        """Handle application errors raised by services and dependencies."""
        request_id = _get_request_id_safe(request)
        is_server_error = exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR

        log = logger.error if is_server_error else logger.warning
        log(
            "app_error",
            code=exc.code,
            status_code=exc.status_code,
            error_message=exc.message,
            path=request.url.path,
            method=request.method,
        )

        # 5xx details stay in the logs
        message = exc.default_message if is_server_error else exc.message
        headers = (
            {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc.status_code, message, exc.code, request_id),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc.status_code, message, "http_error", request_id),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle request schema errors as 400 validation errors."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        content = error_payload(
            status.HTTP_400_BAD_REQUEST,
            "Validation error",
            "validation_error",
            request_id,
        )
        content["details"] = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ORJSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Stack traces are logged, never returned.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_payload(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An unexpected error occurred. Please try again later.",
                "internal_error",
                request_id,
            ),
        )


def create_app(
    settings: Settings | None = None,
    *,
    store: DocumentStore | None = None,
    identity_verifier: IdentityVerifier | None = None,
    image_host: ImageHost | None = None,
    avatar_storage: ImageHost | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_structlog(settings)

    # debug=False keeps Starlette from rendering tracebacks in responses
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="AI Wave Rider - posts, threaded comments and profiles API",
        debug=False,
        lifespan=create_lifespan(
            store=store,
            identity_verifier=identity_verifier,
            image_host=image_host,
            avatar_storage=avatar_storage,
        ),
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )
    app.state.settings = settings

    app.add_middleware(
        CacheControlMiddleware,
        max_age=settings.cache_max_age_seconds,
        cache_paths=settings.cache_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    # Added last so it wraps everything else
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        quiet_paths=tuple(settings.log_quiet_paths),
    )

    register_exception_handlers(app)

    # Comments first: /batch-comments must not match /{post_id}
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(comments_router)
    app.include_router(posts_router)
    app.include_router(profile_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "AI Wave Rider API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
