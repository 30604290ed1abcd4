"""
REST views of the publishing API
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..logging import get_logger
from .auth import get_current_user
from .serializers import Author, Book, BookWithAuthor, Profile
from .store import AuthorRecord, BookRecord, ProfileRecord, PublishingStore, User, get_store

logger = get_logger(__name__)

router = APIRouter()


def serialize_profile(profile: ProfileRecord) -> Profile:
    return Profile(bio=profile.bio, website=profile.website)


def serialize_author(request: Request, author: AuthorRecord) -> Author:
    return Author(
        name=author.name,
        active=author.active,
        profile=str(request.url_for("profile_detail", id=author.profile_id)),
    )


def serialize_book(request: Request, book: BookRecord) -> Book:
    return Book(
        author=str(request.url_for("author_detail", id=book.author_id)),
        title=book.title,
        page_count=book.page_count,
    )


def can_view_author(user: User, author: AuthorRecord) -> bool:
    """Authors no longer under contract are only visible to staff."""
    return author.active or user.is_staff


def _get_book(store: PublishingStore, id: int) -> BookRecord:
    book = store.books.get(id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.get("/book/", response_model=list[Book], name="book_list", tags=["Books"])
async def list_books(
    request: Request,
    author: int | None = Query(None, description="Only books by this author ID"),
    title: str | None = Query(None, description="Case-insensitive title substring"),
    min_pages: int | None = Query(None, ge=0),
    user: User = Depends(get_current_user),
    store: PublishingStore = Depends(get_store),
) -> list[Book]:
    """List books, optionally filtered."""
    books = store.list_books(author_id=author, title=title, min_pages=min_pages)
    return [serialize_book(request, book) for book in books]


@router.get("/book/{id}/", response_model=Book, name="book_detail", tags=["Books"])
async def get_book(
    request: Request,
    id: int,
    user: User = Depends(get_current_user),
    store: PublishingStore = Depends(get_store),
) -> Book:
    return serialize_book(request, _get_book(store, id))


@router.get(
    "/book/{id}/full/", response_model=BookWithAuthor, name="book_full", tags=["Books"]
)
async def get_book_with_author(
    request: Request,
    id: int,
    user: User = Depends(get_current_user),
    store: PublishingStore = Depends(get_store),
) -> BookWithAuthor:
    """Book detail with the author embedded under ``author_full``."""
    book = _get_book(store, id)
    author = store.authors[book.author_id]
    if not can_view_author(user, author):
        raise HTTPException(status_code=403, detail="You may not view this author")
    base = serialize_book(request, book)
    return BookWithAuthor(**base.model_dump(), author_full=serialize_author(request, author))


@router.get("/author/", response_model=list[Author], name="author_list", tags=["Authors"])
async def list_authors(
    request: Request,
    active: bool | None = None,
    user: User = Depends(get_current_user),
    store: PublishingStore = Depends(get_store),
) -> list[Author]:
    """List authors; inactive ones are filtered out for non-staff callers."""
    authors = [a for a in store.list_authors(active=active) if can_view_author(user, a)]
    return [serialize_author(request, author) for author in authors]


@router.get("/author/{id}/", response_model=Author, name="author_detail", tags=["Authors"])
async def get_author(
    request: Request,
    id: int,
    user: User = Depends(get_current_user),
    store: PublishingStore = Depends(get_store),
) -> Author:
    author = store.authors.get(id)
    if author is None:
        raise HTTPException(status_code=404, detail="Author not found")
    if not can_view_author(user, author):
        logger.info("Denied access to inactive author", author_id=id, username=user.username)
        raise HTTPException(status_code=403, detail="You may not view this author")
    return serialize_author(request, author)


@router.get("/profile/{id}/", response_model=Profile, name="profile_detail", tags=["Profiles"])
async def get_profile(
    id: int,
    user: User = Depends(get_current_user),
    store: PublishingStore = Depends(get_store),
) -> Profile:
    profile = store.profiles.get(id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return serialize_profile(profile)
