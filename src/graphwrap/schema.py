"""
GraphQL schema composition for a wrapped REST application
"""

import inspect
import keyword
import re
from dataclasses import dataclass
from typing import Any, Optional

import strawberry
from fastapi import FastAPI
from graphql import get_introspection_query, graphql_sync
from graphql import validate_schema as gql_validate_schema
from strawberry.extensions import DisableIntrospection, QueryDepthLimiter, SchemaExtension
from strawberry.schema.config import StrawberryConfig

from .config import Settings, settings as default_settings
from .exceptions import RestDispatchError, SchemaBuildError
from .introspection import QueryParam, RestResource, discover_resources
from .logging import get_logger
from .types import TypeBuilder, scalar_type, sequence_item, split_optional

logger = get_logger(__name__)

_RESERVED_ARGUMENTS = {"info", "root", "self"}


@dataclass(frozen=True)
class Argument:
    """A GraphQL argument forwarded to a list view as a query parameter."""

    python_name: str
    rest_name: str
    annotation: Any
    required: bool


def _argument_name(rest_name: str, taken: set[str]) -> str:
    name = re.sub(r"\W", "_", rest_name)
    if not name or name[0].isdigit():
        name = f"_{name}"
    if keyword.iskeyword(name) or name in _RESERVED_ARGUMENTS:
        name = f"{name}_"
    while name in taken:
        name = f"{name}_"
    taken.add(name)
    return name


def input_type(annotation: Any) -> Any:
    """Map a query parameter annotation onto a GraphQL input scalar or list."""
    _, inner = split_optional(annotation)
    item = sequence_item(inner)
    if item is not None:
        return list[scalar_type(split_optional(item)[1])]
    return scalar_type(inner)


def list_arguments(params: list[QueryParam]) -> list[Argument]:
    taken: set[str] = set()
    arguments = []
    for param in params:
        graphql_type = input_type(param.annotation)
        arguments.append(
            Argument(
                python_name=_argument_name(param.name, taken),
                rest_name=param.name,
                annotation=graphql_type if param.required else Optional[graphql_type],
                required=param.required,
            )
        )
    return arguments


def configured(extension_class: type[SchemaExtension], **options: Any) -> type[SchemaExtension]:
    """Bind constructor options to an extension class.

    Strawberry instantiates extension classes itself, once per operation.
    """

    def __init__(self, **_: Any) -> None:
        extension_class.__init__(self, **options)

    return type(extension_class.__name__, (extension_class,), {"__init__": __init__})


def _detail_resolver(resource: RestResource, graphql_type: Any):
    detail = resource.detail
    assert detail is not None

    async def resolve(info: strawberry.Info, id: strawberry.ID) -> Any:
        try:
            return await info.context["loader"].load(detail.path_for(id))
        except RestDispatchError as e:
            raise e.as_graphql_error() from e

    resolve.__annotations__["return"] = Optional[graphql_type]
    resolve.__name__ = f"resolve_{resource.name}"
    return resolve


def _list_resolver(resource: RestResource, graphql_type: Any, arguments: list[Argument]):
    listing = resource.listing
    assert listing is not None

    async def resolve(**kwargs: Any) -> Any:
        info = kwargs.pop("info")
        params = {arg.rest_name: kwargs.get(arg.python_name) for arg in arguments}
        try:
            return await info.context["dispatcher"].get_many(listing.path, params)
        except RestDispatchError as e:
            raise e.as_graphql_error() from e

    parameters = [
        inspect.Parameter("info", inspect.Parameter.KEYWORD_ONLY, annotation=strawberry.Info)
    ]
    for arg in arguments:
        parameters.append(
            inspect.Parameter(
                arg.python_name,
                inspect.Parameter.KEYWORD_ONLY,
                annotation=arg.annotation,
                default=inspect.Parameter.empty if arg.required else None,
            )
        )
    resolve.__signature__ = inspect.Signature(parameters, return_annotation=list[graphql_type])
    resolve.__name__ = f"resolve_all_{resource.name}"
    return resolve


class SchemaBuilder:
    """Compose one Query type over every REST resource of an application."""

    def __init__(self, app: FastAPI, config: Settings | None = None):
        self.app = app
        self.config = config or default_settings
        self.resources: list[RestResource] = []
        self.types: TypeBuilder | None = None

    def detail_field_name(self, resource: RestResource) -> str:
        return resource.name

    def list_field_name(self, resource: RestResource) -> str:
        return f"{self.config.list_field_prefix}{resource.name}{self.config.list_field_suffix}"

    def build_query(self) -> type:
        self.resources = discover_resources(self.app, self.config)
        if not self.resources:
            raise SchemaBuildError("No REST views found to expose over GraphQL")

        self.types = TypeBuilder(self.resources)
        annotations: dict[str, Any] = {}
        attrs: dict[str, Any] = {"__module__": __name__, "__doc__": "Root GraphQL query type."}

        for resource in self.resources:
            graphql_type = self.types.object_type(resource.model)

            if resource.detail is not None:
                name = self.detail_field_name(resource)
                self._check_free(name, attrs)
                annotations[name] = Optional[graphql_type]
                attrs[name] = strawberry.field(
                    resolver=_detail_resolver(resource, graphql_type),
                    description=f"Get a {resource.name} by ID via GET {resource.detail.route.path}",
                )

            if resource.listing is not None:
                name = self.list_field_name(resource)
                self._check_free(name, attrs)
                item_type = self.types.object_type(resource.listing.model)
                arguments = list_arguments(resource.listing.query_params)
                annotations[name] = list[item_type]
                attrs[name] = strawberry.field(
                    resolver=_list_resolver(resource, item_type, arguments),
                    description=f"List {resource.name} objects via GET {resource.listing.path}",
                )

        self.types.finalize()
        attrs["__annotations__"] = annotations
        return strawberry.type(type("Query", (), attrs))

    @staticmethod
    def _check_free(name: str, attrs: dict[str, Any]) -> None:
        if name in attrs:
            raise SchemaBuildError(f"Query field {name!r} would be defined twice")

    def extensions(self) -> list[type[SchemaExtension]]:
        extensions = [configured(QueryDepthLimiter, max_depth=self.config.max_query_depth)]
        if not self.config.allow_introspection:
            extensions.append(configured(DisableIntrospection))
        return extensions

    def build(self) -> strawberry.Schema:
        """Introspect the app and return a validated schema.

        Raises:
            SchemaBuildError: If the REST views cannot be mapped or the result is invalid
        """
        query = self.build_query()
        schema = strawberry.Schema(
            query=query,
            config=StrawberryConfig(auto_camel_case=False),
            extensions=self.extensions(),
        )
        validate_schema(schema)
        logger.info(
            "GraphQL schema built",
            resources=[resource.name for resource in self.resources],
            types=len(schema._schema.type_map),
        )
        return schema


def validate_schema(schema: strawberry.Schema) -> None:
    """Validate a GraphQL schema at startup.

    This ensures that all type references can be resolved, causing the
    server to fail fast rather than erroring at query time.

    Raises:
        SchemaBuildError: If the schema is invalid or has unresolved types
    """
    graphql_schema = schema._schema

    errors = gql_validate_schema(graphql_schema)
    if errors:
        error_messages = [str(e) for e in errors]
        logger.error("GraphQL schema validation failed", errors=error_messages)
        raise SchemaBuildError(f"GraphQL schema validation failed: {'; '.join(error_messages)}")

    # Check that introspection query works (catches most resolution issues)
    result = graphql_sync(graphql_schema, get_introspection_query())
    if result.errors:
        error_messages = [str(e) for e in result.errors]
        logger.error("GraphQL introspection failed", errors=error_messages)
        raise SchemaBuildError(f"GraphQL introspection failed: {'; '.join(error_messages)}")

    logger.debug("GraphQL schema validation successful")


def build_schema(app: FastAPI, config: Settings | None = None) -> strawberry.Schema:
    return SchemaBuilder(app, config).build()


def print_schema(schema: strawberry.Schema) -> str:
    """Render the schema as SDL."""
    return schema.as_str()
