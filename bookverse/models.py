"""Data models for books and client results."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List


@dataclass(frozen=True)
class AuthorDetail:
    """Author information resolved from the author endpoint."""
    name: str
    bio: str
    birth_date: str


UNKNOWN_AUTHOR = AuthorDetail(
    name="Unknown Author",
    bio="No biography available",
    birth_date="Unknown",
)


@dataclass(frozen=True)
class Book:
    """Normalized book representation."""
    id: str
    title: str
    authors: List[str]
    published_date: str
    description: str
    categories: List[str]
    thumbnail: Optional[str] = None
    preview_link: Optional[str] = None
    page_count: Optional[int] = None
    average_rating: float = 4.0
    isbn: Optional[str] = None
    first_sentence: Optional[str] = None
    subjects: List[str] = field(default_factory=list)
    author_details: List[AuthorDetail] = field(default_factory=list)
    links: List[dict] = field(default_factory=list)
    excerpts: List[str] = field(default_factory=list)

    @property
    def authors_str(self) -> str:
        """Format authors as comma-separated string."""
        return ", ".join(self.authors) if self.authors else "Unknown Author"

    @property
    def categories_str(self) -> str:
        """Format categories as comma-separated string."""
        return ", ".join(self.categories) if self.categories else "General"


class Status(str, Enum):
    """Whether a result came from the remote API or from a fallback."""
    OK = "ok"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class SearchResult:
    """Books returned for one page of a search."""
    books: List[Book]
    status: Status = Status.OK
    reason: Optional[str] = None
    offset: int = 0
    total: Optional[int] = None

    @property
    def degraded(self) -> bool:
        return self.status is Status.DEGRADED


@dataclass(frozen=True)
class DetailResult:
    """A single book fetched from the detail endpoint."""
    book: Book
    status: Status = Status.OK
    reason: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.status is Status.DEGRADED


@dataclass(frozen=True)
class AnswerResult:
    """Text produced for a question about a book."""
    text: str
    status: Status = Status.OK
    reason: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.status is Status.DEGRADED
