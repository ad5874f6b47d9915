"""FastAPI application factory."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .web import web_router
from .middleware.logging import LoggingMiddleware


def create_app(registry, config) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        registry: Loaded LinkRegistry (or None when set later by lifespan)
        config: Configuration instance

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Link Registry",
        description="Expiring short links with click tracking",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Store instances in app state for access in routes
    app.state.registry = registry
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.include_router(api_router, prefix="/api", tags=["API"])
    # Catch-all /{short_code} route goes last
    app.include_router(web_router, tags=["Redirect"])

    return app
