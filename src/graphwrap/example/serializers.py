"""
Serializers for the publishing API.

Related objects are represented by the URL of their detail view; the
``LinksTo`` marker tells GraphWrap which resource that URL belongs to.
"""

from typing import Annotated

from pydantic import BaseModel, Field

from ..fields import LinksTo


class Profile(BaseModel):
    """Public profile of an author."""

    bio: str
    website: str | None = None


class Author(BaseModel):
    """A writer published by the company."""

    name: str
    active: bool = Field(description="Whether the author is currently under contract")
    profile: Annotated[str, LinksTo("profile")]


class Book(BaseModel):
    """A published book."""

    author: Annotated[str, LinksTo("author")]
    title: str
    page_count: int


class BookWithAuthor(Book):
    """A book with its author embedded, saving clients a second request."""

    author_full: Author
