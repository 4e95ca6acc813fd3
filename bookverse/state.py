"""Immutable view state and the reducer that advances it."""
from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from bookverse.models import Book, SearchResult
from bookverse.parse import deduplicate_books


@dataclass(frozen=True)
class ViewState:
    """Snapshot of everything the view shows."""
    query: str = ""
    offset: int = 0
    loading: bool = False
    exhausted: bool = False
    search_seq: int = 0
    books: Tuple[Book, ...] = ()
    detail_seq: int = 0
    current_book: Optional[Book] = None
    answer: Optional[str] = None
    answer_loading: bool = False


@dataclass(frozen=True)
class SearchSubmitted:
    query: str


@dataclass(frozen=True)
class LoadMoreRequested:
    page_size: int


@dataclass(frozen=True)
class SearchCompleted:
    seq: int
    result: SearchResult
    append: bool = False


@dataclass(frozen=True)
class BookRequested:
    pass


@dataclass(frozen=True)
class BookOpened:
    seq: int
    book: Book


@dataclass(frozen=True)
class BookClosed:
    pass


@dataclass(frozen=True)
class QuestionAsked:
    pass


@dataclass(frozen=True)
class AnswerReceived:
    book_id: str
    text: str


Event = Union[
    SearchSubmitted, LoadMoreRequested, SearchCompleted, BookRequested,
    BookOpened, BookClosed, QuestionAsked, AnswerReceived,
]


def _has_more(result: SearchResult, shown: int) -> bool:
    if result.degraded or not result.books:
        return False
    if result.total is None:
        return True
    return result.offset + shown < result.total


def _complete_search(state: ViewState, event: SearchCompleted) -> ViewState:
    # A response for anything but the latest search is stale.
    if event.seq != state.search_seq:
        return state

    result = event.result
    if not event.append:
        return replace(
            state,
            loading=False,
            books=tuple(result.books),
            exhausted=not _has_more(result, len(result.books)),
        )

    if result.degraded:
        return replace(state, loading=False, exhausted=True)

    books = tuple(deduplicate_books(list(state.books) + list(result.books)))
    return replace(
        state,
        loading=False,
        books=books,
        exhausted=not _has_more(result, len(result.books)),
    )


def reduce(state: ViewState, event: Event) -> ViewState:
    """Return the state that follows ``event``."""
    if isinstance(event, SearchSubmitted):
        return replace(
            state,
            query=event.query,
            offset=0,
            loading=True,
            exhausted=False,
            search_seq=state.search_seq + 1,
            books=(),
        )

    if isinstance(event, LoadMoreRequested):
        if state.loading or state.exhausted:
            return state
        return replace(state, offset=state.offset + event.page_size, loading=True)

    if isinstance(event, SearchCompleted):
        return _complete_search(state, event)

    if isinstance(event, BookRequested):
        return replace(state, detail_seq=state.detail_seq + 1)

    if isinstance(event, BookOpened):
        if event.seq != state.detail_seq:
            return state
        return replace(state, current_book=event.book, answer=None, answer_loading=False)

    if isinstance(event, BookClosed):
        return replace(
            state,
            detail_seq=state.detail_seq + 1,
            current_book=None,
            answer=None,
            answer_loading=False,
        )

    if isinstance(event, QuestionAsked):
        return replace(state, answer_loading=True)

    if isinstance(event, AnswerReceived):
        if state.current_book is None or state.current_book.id != event.book_id:
            return state
        return replace(state, answer=event.text, answer_loading=False)

    raise TypeError(f"Unknown event: {event!r}")
