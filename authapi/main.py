"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from authapi.core.config import settings
from authapi.core.exceptions import AuthPlatformError
from authapi.core.middleware import setup_middleware
from authapi.core.rate_limiter import limiter
from authapi.dependencies import ServiceContainer, build_container

from authapi.api.auth import router as auth_router
from authapi.api.users import router as users_router
from authapi.api.roles import router as roles_router
from authapi.api.permissions import router as permissions_router
from authapi.api.admin import router as admin_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("authapi")

API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    container: ServiceContainer = app.state.container
    logger.info(f"🚀 Starting {container.settings.APP_NAME} ({container.settings.ENVIRONMENT})")

    if container.settings.CACHE_ENABLED:
        if container.cache.health_check():
            logger.info("✅ Redis connected")
        else:
            logger.warning("⚠️  Redis not available, role resolution will not be cached")

    yield

    logger.info(f"🔻 Shutting down {container.settings.APP_NAME}")


def _error_body(code: int, detail: str) -> dict:
    return {"status": code, "detail": detail}


def register_exception_handlers(app: FastAPI) -> None:
    debug = app.state.container.settings.DEBUG

    @app.exception_handler(AuthPlatformError)
    async def auth_platform_exception_handler(request: Request, exc: AuthPlatformError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.status_code, exc.message),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(status.HTTP_400_BAD_REQUEST, "; ".join(messages)),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        detail = str(exc) if debug else "Internal server error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, detail),
        )

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the application around a service container (a default one from ``settings``)."""
    container = container or build_container(settings)

    app = FastAPI(
        title=container.settings.APP_NAME,
        description="Authentication, session management and role-based access control",
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.container = container

    # Middleware
    setup_middleware(app, container.settings)

    # Rate limiting
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    register_exception_handlers(app)

    # Register routers
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(roles_router)
    app.include_router(permissions_router)
    app.include_router(admin_router)

    @app.get("/")
    def root():
        return {
            "name": container.settings.APP_NAME,
            "version": API_VERSION,
            "docs": "/docs",
        }

    @app.get("/health")
    def health():
        """Quick liveness check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()
