"""
Main FastAPI application for Repostit
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..auth.session import SessionMiddleware, SessionStore
from ..config import settings
from ..database import init_database
from ..database.connection import test_database_connection
from ..logging import configure_logging, get_logger
from ..middleware import LoggingContextMiddleware
from ..redis_pool import close_redis_pool

# Configure logging before creating logger
configure_logging(debug=settings.debug)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    _ = app
    logger.info("Starting Repostit API...")
    init_database()

    ok, error = await test_database_connection()
    if not ok:
        logger.error("Database connection check failed", error=error)
        if settings.is_production:
            raise RuntimeError(error)

    yield

    logger.info("Shutting down Repostit API...")
    if settings.session_backend == "redis":
        await close_redis_pool()


def create_app(session_store: SessionStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Repostit API",
        description="Forum-style post sharing",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # Middleware added last runs first: CORS, then logging, then sessions
    app.add_middleware(SessionMiddleware, store=session_store)
    app.add_middleware(LoggingContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():  # pyright: ignore [reportUnusedFunction]
        """Health check endpoint."""
        return {"status": "healthy", "version": "0.1.0"}

    # GraphQL endpoint (allow disabling for tests)
    if not os.getenv("REPOSTIT_DISABLE_GRAPHQL"):
        try:
            from ..graphql.schema import create_graphql_router, validate_schema

            logger.info("Validating GraphQL schema...")
            validate_schema()

            app.include_router(create_graphql_router(), prefix="")
            logger.info("GraphQL endpoint initialized successfully", endpoint="/graphql")
        except Exception as e:  # pragma: no cover
            logger.error("Failed to initialize GraphQL endpoint", error=str(e))
            raise

    # Server-rendered frontend
    from ..client import GraphQLClientError, NotAuthenticatedError
    from ..web.routes import api_error_handler, not_authenticated_handler
    from ..web.routes import router as web_router

    app.include_router(web_router, tags=["Web"])
    app.add_exception_handler(NotAuthenticatedError, not_authenticated_handler)
    app.add_exception_handler(GraphQLClientError, api_error_handler)

    return app


# Create the main application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "repostit.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
