"""
Discovery of REST views on a FastAPI application.

Each GET route is classified as a detail view (one trailing path parameter,
model response), a list view (no path parameters, ``list[Model]`` response),
or ignored. Detail and list views that share a collection path are grouped
into a single :class:`RestResource`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, get_args, get_origin
from urllib.parse import quote

from fastapi import FastAPI
from fastapi.dependencies.models import Dependant
from fastapi.routing import APIRoute
from pydantic import BaseModel

from .config import Settings, settings as default_settings
from .exceptions import SchemaBuildError
from .logging import get_logger

logger = get_logger(__name__)

RESOURCE_NAME_KEY = "x-graphwrap-resource"

_DETAIL_PATH_RE = re.compile(r"^(?P<collection>.*)/\{(?P<param>\w+)\}/?$")


@dataclass(frozen=True)
class QueryParam:
    """A query-string parameter accepted by a list view."""

    name: str
    annotation: Any
    required: bool
    default: Any = None


@dataclass
class DetailView:
    route: APIRoute
    path_param: str
    model: type[BaseModel]

    def path_for(self, identifier: Any) -> str:
        """Build the request path for a single object."""
        value = quote(str(identifier), safe="")
        return self.route.path_format.replace("{" + self.path_param + "}", value)


@dataclass
class ListView:
    route: APIRoute
    model: type[BaseModel]
    query_params: list[QueryParam] = field(default_factory=list)

    @property
    def path(self) -> str:
        return self.route.path_format


@dataclass
class RestResource:
    """A REST resource: a detail view, a list view, or both."""

    name: str
    collection_path: str
    detail: DetailView | None = None
    listing: ListView | None = None

    @property
    def model(self) -> type[BaseModel]:
        if self.detail is not None:
            return self.detail.model
        assert self.listing is not None
        return self.listing.model


def _is_model(candidate: Any) -> bool:
    return isinstance(candidate, type) and issubclass(candidate, BaseModel)


def list_item_model(response_model: Any) -> type[BaseModel] | None:
    """Return ``Model`` for a ``list[Model]`` response model, else None."""
    if get_origin(response_model) is not list:
        return None
    args = get_args(response_model)
    if len(args) == 1 and _is_model(args[0]):
        return args[0]
    return None


def default_resource_name(collection_path: str) -> str:
    """Derive a resource name from the last static segment of a collection path."""
    segments = [s for s in collection_path.split("/") if s and not s.startswith("{")]
    if not segments:
        raise SchemaBuildError(f"Cannot derive a resource name from path {collection_path!r}")
    name = re.sub(r"\W", "_", segments[-1])
    if name[0].isdigit():
        name = f"_{name}"
    return name


def _query_params(dependant: Dependant, seen: set[str] | None = None) -> list[QueryParam]:
    """Collect the query parameters of a route and of its sub-dependencies, in order."""
    seen = set() if seen is None else seen
    params = []
    for param in dependant.query_params:
        name = param.alias or param.name
        if name in seen:
            continue
        seen.add(name)
        field_info = param.field_info
        params.append(
            QueryParam(
                name=name,
                annotation=field_info.annotation,
                required=field_info.is_required(),
                default=None if field_info.is_required() else field_info.default,
            )
        )
    for sub_dependant in dependant.dependencies:
        params.extend(_query_params(sub_dependant, seen))
    return params


def _under_prefix(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def _is_excluded(path: str, config: Settings) -> bool:
    if _under_prefix(path, config.graphql_path):
        return True
    return any(_under_prefix(path, prefix) for prefix in config.exclude_paths)


def _explicit_name(route: APIRoute) -> str | None:
    extra = route.openapi_extra or {}
    name = extra.get(RESOURCE_NAME_KEY)
    return str(name) if name else None


def discover_resources(app: FastAPI, config: Settings | None = None) -> list[RestResource]:
    """Introspect ``app`` and return its REST resources in route order.

    Raises:
        SchemaBuildError: If two views claim the same resource slot or name.
    """
    config = config or default_settings
    by_collection: dict[str, RestResource] = {}
    explicit_names: dict[str, str] = {}

    for route in app.routes:
        if not isinstance(route, APIRoute) or "GET" not in route.methods:
            continue
        if _is_excluded(route.path_format, config):
            continue

        response_model = route.response_model
        detail_match = _DETAIL_PATH_RE.match(route.path_format)

        if detail_match and _is_model(response_model) and len(route.dependant.path_params) == 1:
            collection = detail_match.group("collection").rstrip("/") or "/"
            resource = by_collection.setdefault(
                collection, RestResource(name="", collection_path=collection)
            )
            if resource.detail is not None:
                raise SchemaBuildError(
                    f"Duplicate detail views for {collection!r}: "
                    f"{resource.detail.route.path} and {route.path}"
                )
            resource.detail = DetailView(
                route=route, path_param=detail_match.group("param"), model=response_model
            )
        elif not route.dependant.path_params and list_item_model(response_model) is not None:
            collection = route.path_format.rstrip("/") or "/"
            resource = by_collection.setdefault(
                collection, RestResource(name="", collection_path=collection)
            )
            if resource.listing is not None:
                raise SchemaBuildError(
                    f"Duplicate list views for {collection!r}: "
                    f"{resource.listing.route.path} and {route.path}"
                )
            resource.listing = ListView(
                route=route,
                model=list_item_model(response_model),
                query_params=_query_params(route.dependant),
            )
        else:
            logger.debug("Skipping route that is not a REST view", path=route.path)
            continue

        name = _explicit_name(route)
        if name:
            explicit_names[collection] = name

    resources = []
    seen: dict[str, str] = {}
    for collection, resource in by_collection.items():
        resource.name = explicit_names.get(collection) or default_resource_name(collection)
        if resource.name in seen:
            raise SchemaBuildError(
                f"Resource name {resource.name!r} is used by both {seen[resource.name]!r} "
                f"and {collection!r}; set openapi_extra={{{RESOURCE_NAME_KEY!r}: ...}} "
                "on one of them"
            )
        seen[resource.name] = collection
        resources.append(resource)
        logger.debug(
            "Discovered REST resource",
            resource=resource.name,
            collection=collection,
            detail=resource.detail.route.path if resource.detail else None,
            listing=resource.listing.route.path if resource.listing else None,
        )

    return resources
