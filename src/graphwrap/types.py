"""
GraphQL type inference from REST serializers.

Every Pydantic response model becomes one Strawberry object type. Classes
are created bare first and decorated with ``strawberry.type`` only once all
of them exist, so serializers that link to each other (Author -> Book ->
Author) resolve without forward references.
"""

import asyncio
import re
import types as pytypes
from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Literal, Optional, Union, get_args, get_origin
from urllib.parse import urlsplit

import strawberry
from pydantic import BaseModel
from pydantic.fields import FieldInfo
from strawberry.scalars import JSON

from .exceptions import RestDispatchError, SchemaBuildError
from .fields import LinksTo, find_link, link_of_annotation
from .introspection import RestResource
from .logging import get_logger

logger = get_logger(__name__)

GRAPHQL_NAME_RE = re.compile(r"^[_A-Za-z][_0-9A-Za-z]*$")

_ID_SOURCES = (int, str)


def read_key(root: Any, key: str) -> Any:
    """Read a serialized value from a REST payload (or any attribute holder)."""
    if isinstance(root, Mapping):
        return root.get(key)
    return getattr(root, key, None)


def url_path(url: str) -> str:
    """Reduce a link URL to the path and query the REST app is dispatched with."""
    parts = urlsplit(url)
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


def split_optional(annotation: Any) -> tuple[bool, Any]:
    origin = get_origin(annotation)
    if origin is Union or origin is pytypes.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        nullable = len(args) != len(get_args(annotation))
        if len(args) == 1:
            return nullable, args[0]
        return nullable, Union[tuple(args)]
    return False, annotation


def scalar_type(annotation: Any, *, is_id: bool = False) -> Any:
    """Map a non-model Python annotation onto a GraphQL scalar.

    Values arrive already serialized by the REST view, so anything without
    a native GraphQL scalar keeps its wire form as a String.
    """
    if get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    if annotation is Any or annotation is dict or get_origin(annotation) in (dict, Mapping):
        return JSON
    if get_origin(annotation) is Literal:
        values = get_args(annotation)
        if all(isinstance(v, bool) for v in values):
            return bool
        if all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            return int
        return str
    if get_origin(annotation) in (Union, pytypes.UnionType):
        return JSON
    if isinstance(annotation, type):
        if is_id and issubclass(annotation, _ID_SOURCES):
            return strawberry.ID
        if issubclass(annotation, bool):
            return bool
        if issubclass(annotation, int):
            return int
        if issubclass(annotation, float):
            return float
    return str


def sequence_item(annotation: Any) -> Any | None:
    origin = get_origin(annotation)
    if origin in (list, tuple, set, frozenset, Sequence):
        args = [a for a in get_args(annotation) if a is not Ellipsis]
        return args[0] if args else Any
    if annotation in (list, tuple, set, frozenset):
        return Any
    return None


def _type_name(model: type[BaseModel]) -> str:
    return re.sub(r"\W", "_", model.__name__)


def _description(model: type[BaseModel]) -> str | None:
    doc = model.__doc__
    if not doc:
        return None
    return doc.strip().split("\n\n")[0].strip() or None


def _value_resolver(key: str, graphql_type: Any):
    def resolve(root) -> Any:
        return read_key(root, key)

    resolve.__annotations__["return"] = graphql_type
    return resolve


async def _load_each(loader: Any, paths: list[str]) -> list[Any]:
    """Load linked objects independently so one refused link nulls only its own item.

    Failed items are returned as ``GraphQLError`` values; graphql-core reports
    each at its list index and resolves the (nullable) item to null.
    """
    results = await asyncio.gather(*(loader.load(path) for path in paths), return_exceptions=True)
    items: list[Any] = []
    for result in results:
        if isinstance(result, RestDispatchError):
            items.append(result.as_graphql_error())
        elif isinstance(result, BaseException):
            raise result
        else:
            items.append(result)
    return items


def _link_resolver(key: str, graphql_type: Any, *, many: bool):
    async def resolve(root, info: strawberry.Info) -> Any:
        value = read_key(root, key)
        if value is None:
            return None
        loader = info.context["loader"]
        if many:
            return await _load_each(loader, [url_path(v) for v in value])
        try:
            return await loader.load(url_path(value))
        except RestDispatchError as e:
            raise e.as_graphql_error() from e

    resolve.__annotations__["return"] = graphql_type
    return resolve


class TypeBuilder:
    """Build Strawberry object types for the REST resources' serializers."""

    def __init__(self, resources: list[RestResource]):
        self.resources = {resource.name: resource for resource in resources}
        self._classes: dict[type[BaseModel], type] = {}
        self._names: set[str] = {"Query"}
        self._pending: list[tuple[type[BaseModel], type]] = []
        self._finalized = False

    def object_type(self, model: type[BaseModel]) -> type:
        """Return the (possibly not yet decorated) GraphQL class for ``model``."""
        if model in self._classes:
            return self._classes[model]
        if self._finalized:
            raise SchemaBuildError(f"Type for {model.__name__} requested after finalize()")

        name = _type_name(model)
        if name in self._names:
            suffix = 2
            while f"{name}{suffix}" in self._names:
                suffix += 1
            logger.warning(
                "Serializer name already used, renaming GraphQL type",
                model=f"{model.__module__}.{model.__qualname__}",
                graphql_type=f"{name}{suffix}",
            )
            name = f"{name}{suffix}"

        cls = type(name, (), {"__module__": __name__, "__doc__": _description(model)})
        self._names.add(name)
        self._classes[model] = cls
        self._pending.append((model, cls))
        self._populate(model, cls)
        return cls

    def resource_type(self, resource_name: str) -> type:
        resource = self.resources.get(resource_name)
        if resource is None or resource.detail is None:
            raise SchemaBuildError(
                f"Link to resource {resource_name!r}, which has no detail view"
            )
        return self.object_type(resource.model)

    def finalize(self) -> None:
        """Decorate every created class with ``strawberry.type``."""
        for model, cls in self._pending:
            strawberry.type(cls, name=cls.__name__, description=cls.__doc__)
            logger.debug(
                "Built GraphQL type",
                graphql_type=cls.__name__,
                model=model.__name__,
                fields=list(cls.__annotations__),
            )
        self._pending.clear()
        self._finalized = True

    def _populate(self, model: type[BaseModel], cls: type) -> None:
        annotations: dict[str, Any] = {}
        for python_name, field_info in model.model_fields.items():
            key = field_info.serialization_alias or field_info.alias or python_name
            if not GRAPHQL_NAME_RE.match(key):
                raise SchemaBuildError(
                    f"{model.__name__}.{python_name} serializes as {key!r}, "
                    "which is not a valid GraphQL field name"
                )
            graphql_type, resolver = self._field(model, python_name, key, field_info)
            annotations[python_name] = graphql_type
            setattr(
                cls,
                python_name,
                strawberry.field(
                    resolver=resolver, name=key, description=field_info.description
                ),
            )
        if not annotations:
            raise SchemaBuildError(f"Serializer {model.__name__} declares no fields")
        cls.__annotations__ = annotations

    def _field(
        self, model: type[BaseModel], python_name: str, key: str, field_info: FieldInfo
    ) -> tuple[Any, Any]:
        link = find_link(field_info.metadata)
        nullable, annotation = split_optional(field_info.annotation)

        if link is not None:
            target = self.resource_type(link.resource)
            graphql_type = Optional[target]
            return graphql_type, _link_resolver(key, graphql_type, many=False)

        item = sequence_item(annotation)
        if item is not None:
            item_link = link_of_annotation(item)
            if item_link is not None:
                target = self.resource_type(item_link.resource)
                graphql_type = list[Optional[target]]
                if nullable:
                    graphql_type = Optional[graphql_type]
                return graphql_type, _link_resolver(key, graphql_type, many=True)
            graphql_type = list[self._output_type(item, is_id=False)]
        else:
            graphql_type = self._output_type(annotation, is_id=key == "id")

        if nullable:
            graphql_type = Optional[graphql_type]
        return graphql_type, _value_resolver(key, graphql_type)

    def _output_type(self, annotation: Any, *, is_id: bool) -> Any:
        nullable, inner = split_optional(annotation)
        if get_origin(inner) is Annotated:
            inner = get_args(inner)[0]
        if isinstance(inner, type) and issubclass(inner, BaseModel):
            result = self.object_type(inner)
        elif sequence_item(inner) is not None:
            result = list[self._output_type(sequence_item(inner), is_id=False)]
        else:
            result = scalar_type(inner, is_id=is_id)
        return Optional[result] if nullable else result


def links_of(model: type[BaseModel]) -> dict[str, LinksTo]:
    """Return the link fields declared directly on ``model`` keyed by REST key."""
    links = {}
    for python_name, field_info in model.model_fields.items():
        key = field_info.serialization_alias or field_info.alias or python_name
        link = find_link(field_info.metadata)
        if link is None:
            item = sequence_item(split_optional(field_info.annotation)[1])
            link = link_of_annotation(item) if item is not None else None
        if link is not None:
            links[key] = link
    return links
