"""
GraphWrap
Overlay a GraphQL query interface on an existing FastAPI REST API
"""

__version__ = "0.1.0"

from .config import settings
from .exceptions import (
    GraphWrapError,
    InvalidArgumentsError,
    NotAuthenticatedError,
    PermissionDeniedError,
    RestDispatchError,
    SchemaBuildError,
)
from .fields import LinksTo
from .introspection import RESOURCE_NAME_KEY, discover_resources
from .router import graphql_router
from .schema import SchemaBuilder, build_schema, print_schema

__all__ = [
    "settings",
    "__version__",
    "graphql_router",
    "build_schema",
    "print_schema",
    "SchemaBuilder",
    "discover_resources",
    "LinksTo",
    "RESOURCE_NAME_KEY",
    "GraphWrapError",
    "SchemaBuildError",
    "RestDispatchError",
    "NotAuthenticatedError",
    "PermissionDeniedError",
    "InvalidArgumentsError",
]
