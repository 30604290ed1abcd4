"""
Publishing-company REST API with a GraphQL overlay
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import Settings, settings
from ..logging import configure_logging, get_logger
from ..middleware import LoggingContextMiddleware
from . import views

# Configure logging before creating logger
configure_logging(debug=settings.debug, log_level=settings.log_level)
logger = get_logger(__name__)


def create_app(config: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or settings

    app = FastAPI(
        title="Publishing API",
        description="Authors, books and profiles, over REST and GraphQL",
        version=__version__,
        debug=config.debug,
    )

    app.add_middleware(LoggingContextMiddleware, graphql_path=config.graphql_path)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():  # pyright: ignore [reportUnusedFunction]
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    # REST API endpoints
    app.include_router(views.router)

    # GraphQL overlay over the routes registered above
    from graphwrap import graphql_router

    app.include_router(graphql_router(app, config))

    return app


# Create the main application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "graphwrap.example.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
