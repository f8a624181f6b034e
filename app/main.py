"""
Account Service - FastAPI Application
Main entry point for the account backend.
Handles registration, credential login, token rotation and profile management.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from app.core.config import is_development, is_production, settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import get_logger, log_request, setup_logging
from app.domain.repositories.account_repository import account_repository

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    setup_logging()
    logger.info(f"{settings.APP_NAME} starting", environment=settings.ENVIRONMENT)
    yield
    # Shutdown
    await account_repository.disconnect()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="User account backend - registration, login, JWT access/refresh token rotation and profile management",
        version="1.0.0",
        docs_url="/docs" if not is_production() else None,
        redoc_url="/redoc" if not is_production() else None,
        openapi_url="/openapi.json" if not is_production() else None,
        lifespan=lifespan,
    )

    # CORS middleware - credentials are required for the token cookies
    logger.info(f"CORS configured with origins: {settings.ALLOWED_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if is_production():
        logger.info(
            f"TrustedHost middleware enabled with hosts: {settings.ALLOWED_HOSTS}"
        )
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.ALLOWED_HOSTS,
        )
    else:
        logger.info("TrustedHost middleware disabled (development mode)")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log method, path, status and duration of every request."""
        started = time.perf_counter()
        response = await call_next(request)
        log_request(
            method=request.method,
            url=request.url.path,
            status_code=response.status_code,
            duration=round(time.perf_counter() - started, 4),
        )
        return response

    register_exception_handlers(app)

    from app.api.routers import account_router

    app.include_router(
        account_router.router,
        prefix="/api/v1/users",
        tags=["Account Management"],
    )

    @app.get("/")
    async def root():
        """Root endpoint for health check."""
        return {
            "message": f"{settings.APP_NAME} API",
            "version": "1.0.0",
            "status": "healthy",
            "features": [
                "Account Registration",
                "Credential Login",
                "Access/Refresh Token Rotation",
                "Profile Management",
                "Avatar & Cover Image Upload",
            ],
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "features_enabled": {
                "media_upload": bool(settings.get_media_upload_url()),
            },
        }

    return app


# Create the FastAPI app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=is_development(),
        log_level="info",
    )
