"""Serializer field markers understood by the type builder."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, get_args, get_origin


@dataclass(frozen=True)
class LinksTo:
    """Mark a URL-valued serializer field as a reference to another resource.

    Used as ``Annotated`` metadata::

        class BookSerializer(BaseModel):
            author: Annotated[str, LinksTo("author")]

    In REST the field stays a URL; in GraphQL it becomes the referenced
    resource's type, fetched through that resource's detail view.
    """

    resource: str


def find_link(metadata: list[Any] | tuple[Any, ...]) -> LinksTo | None:
    for item in metadata:
        if isinstance(item, LinksTo):
            return item
    return None


def link_of_annotation(annotation: Any) -> LinksTo | None:
    """Return the ``LinksTo`` marker carried by an ``Annotated`` type, if any."""
    if get_origin(annotation) is Annotated:
        return find_link(get_args(annotation)[1:])
    return None
