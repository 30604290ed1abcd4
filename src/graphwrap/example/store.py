"""In-memory data for the publishing API."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ProfileRecord:
    id: int
    bio: str
    website: str | None = None


@dataclass
class AuthorRecord:
    id: int
    name: str
    active: bool
    profile_id: int


@dataclass
class BookRecord:
    id: int
    title: str
    page_count: int
    author_id: int


@dataclass
class User:
    username: str
    is_staff: bool = False


@dataclass
class PublishingStore:
    profiles: dict[int, ProfileRecord] = field(default_factory=dict)
    authors: dict[int, AuthorRecord] = field(default_factory=dict)
    books: dict[int, BookRecord] = field(default_factory=dict)
    tokens: dict[str, User] = field(default_factory=dict)

    def add_profile(self, profile: ProfileRecord) -> ProfileRecord:
        self.profiles[profile.id] = profile
        return profile

    def add_author(self, author: AuthorRecord) -> AuthorRecord:
        if author.profile_id not in self.profiles:
            raise ValueError(f"Unknown profile {author.profile_id} for author {author.id}")
        self.authors[author.id] = author
        return author

    def add_book(self, book: BookRecord) -> BookRecord:
        if book.author_id not in self.authors:
            raise ValueError(f"Unknown author {book.author_id} for book {book.id}")
        self.books[book.id] = book
        return book

    def user_for_token(self, token: str) -> User | None:
        return self.tokens.get(token)

    def list_authors(self, active: bool | None = None) -> list[AuthorRecord]:
        authors = sorted(self.authors.values(), key=lambda a: a.id)
        if active is not None:
            authors = [a for a in authors if a.active is active]
        return authors

    def list_books(
        self,
        author_id: int | None = None,
        title: str | None = None,
        min_pages: int | None = None,
    ) -> list[BookRecord]:
        books = sorted(self.books.values(), key=lambda b: b.id)
        if author_id is not None:
            books = [b for b in books if b.author_id == author_id]
        if title:
            needle = title.casefold()
            books = [b for b in books if needle in b.title.casefold()]
        if min_pages is not None:
            books = [b for b in books if b.page_count >= min_pages]
        return books


def seed_store() -> PublishingStore:
    """Build the store the example app serves."""
    store = PublishingStore()
    store.add_profile(
        ProfileRecord(1, "Author of the Earthsea cycle.", "https://example.com/le-guin")
    )
    store.add_profile(ProfileRecord(2, "Pioneer of Afrofuturism.", "https://example.com/butler"))
    store.add_profile(ProfileRecord(3, "Writes other people's memoirs."))

    store.add_author(AuthorRecord(1, "Ursula K. Le Guin", True, 1))
    store.add_author(AuthorRecord(2, "Octavia E. Butler", True, 2))
    store.add_author(AuthorRecord(3, "J. Doe", False, 3))

    store.add_book(BookRecord(1, "A Wizard of Earthsea", 183, 1))
    store.add_book(BookRecord(2, "The Left Hand of Darkness", 304, 1))
    store.add_book(BookRecord(3, "Kindred", 264, 2))
    store.add_book(BookRecord(4, "Memoirs of a Ghost", 212, 3))

    store.tokens["reader-token"] = User(username="reader")
    store.tokens["staff-token"] = User(username="editor", is_staff=True)
    return store


store = seed_store()


def get_store() -> PublishingStore:
    """FastAPI dependency returning the active store."""
    return store
