"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from mediaedge.config import Settings, get_settings
from mediaedge.services.context import ContextOverrides, DefaultContextOverrides
from mediaedge.services.rewrite_middleware import EdgeRewriteMiddleware

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("mediaedge")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    settings: Settings = app.state.settings

    logger.info("Starting MediaEdge")
    if settings.rewrite_config.is_active:
        logger.info("Edge rewriting enabled via %s", settings.edge_domain)
    else:
        logger.info("Edge rewriting disabled")
    if settings.debug:
        logger.debug("Allowed origins: %s", ", ".join(settings.allowed_origin_domains_list) or "any")

    yield

    logger.info("Shutting down MediaEdge")


def install_edge_rewriting(
    app: FastAPI,
    settings: Settings,
    overrides_factory: Callable[[], ContextOverrides] = DefaultContextOverrides,
) -> bool:
    """
    Add edge rewriting to a FastAPI app.

    Nothing is installed when rewriting is disabled or no edge domain is
    configured.

    Returns:
        True if the middleware was added
    """
    if not settings.rewrite_config.is_active:
        return False
    app.add_middleware(EdgeRewriteMiddleware, settings=settings, overrides_factory=overrides_factory)
    return True


def create_app(
    settings: Settings | None = None,
    overrides_factory: Callable[[], ContextOverrides] = DefaultContextOverrides,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="MediaEdge",
        description="Rewrites media URLs in rendered pages to a content-delivery edge",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    # Route dependencies must see the same settings as the middleware
    app.dependency_overrides[get_settings] = lambda: settings

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions as JSON."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception(f"Unhandled exception: {exc}")

        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={"detail": str(exc), "type": type(exc).__name__},
            )

        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # Rewriting must sit inside the session middleware so it can read login state
    install_edge_rewriting(app, settings, overrides_factory)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie="mediaedge_session",
        max_age=86400 * 7,  # 7 days
        same_site="lax",
        https_only=not settings.debug,
    )

    # Health check endpoint
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint for container orchestration."""
        return {"status": "healthy"}

    return app


# Create the application instance
app = create_app()
