"""Wires user actions to the catalog and Q&A clients and renders results."""
import webbrowser
from typing import Callable, List, Optional, Protocol, Set
import logging

from bookverse.catalog_client import CatalogClient
from bookverse.models import Book
from bookverse.qa_client import QAClient
from bookverse.state import (
    AnswerReceived,
    BookClosed,
    BookOpened,
    BookRequested,
    Event,
    LoadMoreRequested,
    QuestionAsked,
    SearchCompleted,
    SearchSubmitted,
    ViewState,
    reduce,
)
from bookverse.storage import FavoriteStore, StorageError

logger = logging.getLogger(__name__)


class View(Protocol):
    def render_books(self, books: List[Book], append: bool, favorites: Set[str]) -> None: ...

    def set_loading(self, loading: bool) -> None: ...

    def set_load_more(self, visible: bool) -> None: ...

    def show_book(self, book: Book, favorite: bool) -> None: ...

    def close_book(self) -> None: ...

    def set_answer_loading(self, loading: bool) -> None: ...

    def show_answer(self, text: str) -> None: ...

    def notify(self, message: str, kind: str = "success") -> None: ...


class BookVerseController:
    """Event-to-render mapper for the book browser."""

    def __init__(
        self,
        catalog: CatalogClient,
        qa: QAClient,
        favorites: FavoriteStore,
        view: View,
        page_size: int = 12,
        default_query: str = "harry potter"
    ):
        self.catalog = catalog
        self.qa = qa
        self.favorites = favorites
        self.view = view
        self.page_size = page_size
        self.default_query = default_query
        self.state = ViewState()

    def dispatch(self, event: Event) -> ViewState:
        self.state = reduce(self.state, event)
        return self.state

    def _favorite_ids(self) -> Set[str]:
        try:
            return set(self.favorites.all())
        except StorageError as e:
            logger.error(f"Cannot read favorites: {e}")
            return set()

    async def submit_search(self, query: str) -> bool:
        """
        Start a new search, replacing the rendered results.

        Returns:
            False if a newer search superseded this one
        """
        state = self.dispatch(SearchSubmitted(query.strip() or self.default_query))
        return await self._run_search(state.search_seq, append=False)

    async def load_more(self) -> bool:
        """
        Fetch the next page of the current search and append it.

        Returns:
            False if nothing was requested or the response was stale
        """
        if not self.state.search_seq:
            return False
        before = self.state
        state = self.dispatch(LoadMoreRequested(self.page_size))
        if state is before:
            logger.info("Load more ignored (loading or no more results)")
            return False
        return await self._run_search(state.search_seq, append=True)

    async def _run_search(self, seq: int, append: bool) -> bool:
        query, offset = self.state.query, self.state.offset
        self.view.set_loading(True)
        self.view.set_load_more(False)

        result = await self.catalog.search(query, offset, self.page_size)

        before = self.state
        state = self.dispatch(SearchCompleted(seq, result, append))
        if before.search_seq != seq:
            logger.info(f"Discarding stale results for '{query}' (offset={offset})")
            return False

        self.view.set_loading(False)
        favorites = self._favorite_ids()

        if append:
            new_books = list(state.books[len(before.books):])
            if result.degraded:
                self.view.notify(f'No more books found for "{query}".', "error")
            elif new_books:
                self.view.render_books(new_books, True, favorites)
                self.view.notify(f'Found {len(new_books)} more books for "{query}" from OpenLibrary')
        else:
            self.view.render_books(list(state.books), False, favorites)
            if result.degraded:
                self.view.notify("Error loading from OpenLibrary. Using sample data.", "error")
            else:
                self.view.notify(f'Found {len(state.books)} books for "{query}" from OpenLibrary')

        self.view.set_load_more(not state.exhausted)
        return True

    async def open_book(self, book_id: str) -> Optional[Book]:
        """Fetch full details for a book and show them."""
        seq = self.dispatch(BookRequested()).detail_seq
        self.view.set_loading(True)
        try:
            result = await self.catalog.get_details(book_id)
        finally:
            self.view.set_loading(False)

        state = self.dispatch(BookOpened(seq, result.book))
        if state.detail_seq != seq:
            logger.info(f"Discarding stale details for {book_id}")
            return None

        if result.degraded:
            self.view.notify("Error loading book details from OpenLibrary.", "error")
        self.view.show_book(result.book, result.book.id in self._favorite_ids())
        return result.book

    def close_book(self):
        self.dispatch(BookClosed())
        self.view.close_book()

    async def ask(self, question: str) -> Optional[str]:
        """
        Answer a question about the open book.

        Returns:
            The answer text, or None if the question could not be asked
        """
        question = question.strip()
        if not question:
            self.view.notify("Please enter a question about the book.", "error")
            return None

        book = self.state.current_book
        if book is None:
            self.view.notify("No book selected. Please select a book first.", "error")
            return None

        self.dispatch(QuestionAsked())
        self.view.set_answer_loading(True)
        try:
            result = await self.qa.answer(book, question)
        finally:
            self.view.set_answer_loading(False)

        state = self.dispatch(AnswerReceived(book.id, result.text))
        if state.current_book is None or state.current_book.id != book.id:
            logger.info(f"Discarding answer for closed book {book.id}")
            return None

        self.view.show_answer(result.text)
        return result.text

    def toggle_favorite(self, book_id: str) -> Optional[bool]:
        """
        Flip a book's favorite flag.

        Returns:
            The new flag, or None if it could not be stored
        """
        try:
            added = self.favorites.toggle(book_id)
        except StorageError as e:
            logger.error(f"Cannot update favorites: {e}")
            self.view.notify("Could not update your favorites.", "error")
            return None

        if added:
            self.view.notify("Added to your favorites!")
        else:
            self.view.notify("Removed from your favorites!")
        return added

    def read_book(self, opener: Callable[[str], bool] = webbrowser.open) -> bool:
        """Open the preview page of the open book."""
        book = self.state.current_book
        if book is None:
            self.view.notify("No book selected. Please select a book first.", "error")
            return False

        if not book.preview_link:
            self.view.notify(
                f'No preview available for "{book.title}". Visit OpenLibrary for more details.',
                "error",
            )
            return False

        opener(book.preview_link)
        return True
