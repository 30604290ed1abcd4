"""
FastAPI integration: mount the generated schema next to the REST views
"""

from typing import Any

import strawberry
from fastapi import FastAPI, Request
from strawberry.fastapi import GraphQLRouter

from .config import Settings, settings as default_settings
from .dispatch import RestDispatcher
from .loaders import ResourceLoader
from .logging import get_logger
from .schema import build_schema

logger = get_logger(__name__)


def build_context(app: FastAPI, request: Request, config: Settings) -> dict[str, Any]:
    """Per-request resolver context: dispatcher plus a fresh loader."""
    dispatcher = RestDispatcher(app, request=request, config=config)
    return {
        "request": request,
        "dispatcher": dispatcher,
        "loader": ResourceLoader(dispatcher),
    }


def graphql_router(
    app: FastAPI,
    config: Settings | None = None,
    schema: strawberry.Schema | None = None,
) -> GraphQLRouter[dict[str, Any], None]:
    """Create a GraphQL router exposing the REST views of ``app``.

    The schema is built from the routes registered on ``app`` at call time,
    so include the returned router after the REST routes::

        app.include_router(graphql_router(app))

    Raises:
        SchemaBuildError: If the REST views cannot be mapped to a valid schema
    """
    config = config or default_settings
    if schema is None:
        schema = build_schema(app, config)

    async def get_context(request: Request) -> dict[str, Any]:
        return build_context(app, request, config)

    logger.info("GraphQL endpoint initialized", endpoint=config.graphql_path)
    return GraphQLRouter(
        schema,
        path=config.graphql_path,
        graphql_ide="graphiql" if config.graphiql else None,
        context_getter=get_context,
    )
