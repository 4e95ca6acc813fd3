"""Terminal rendering for books, details and answers."""
import json
import sys
from dataclasses import asdict
from typing import List, Optional, Set, TextIO
from tabulate import tabulate

from bookverse.models import Book


def _truncate(text: str, width: int) -> str:
    return text[:width] + "..." if len(text) > width else text


def format_books(
    books: List[Book],
    format_type: str = "table",
    favorites: Optional[Set[str]] = None,
    start: int = 1
) -> str:
    """Render books in the specified format."""
    favorites = favorites or set()

    if format_type == "json":
        return json.dumps([asdict(book) for book in books], indent=2)

    if format_type == "compact":
        return "\n".join(
            f"{i}. {'♥ ' if book.id in favorites else ''}{book.title} - {book.authors_str}"
            for i, book in enumerate(books, start)
        )

    headers = ["#", "", "Title", "Authors", "Published", "Pages", "Categories"]
    rows = [
        [
            i,
            "♥" if book.id in favorites else "",
            _truncate(book.title, 50),
            _truncate(book.authors_str, 30),
            book.published_date or "Unknown",
            book.page_count or "N/A",
            _truncate(book.categories_str, 30),
        ]
        for i, book in enumerate(books, start)
    ]
    return tabulate(rows, headers=headers, tablefmt="grid")


def format_book_details(book: Book, favorite: bool = False) -> str:
    """Render the full record of one book."""
    rows = [
        ["ID", book.id],
        ["Title", book.title],
        ["Authors", book.authors_str],
        ["Published", book.published_date or "Unknown"],
        ["Categories", book.categories_str],
        ["Rating", f"{book.average_rating:.1f}"],
        ["Pages", book.page_count or "N/A"],
        ["Cover", book.thumbnail or "-"],
        ["Preview", book.preview_link or "-"],
        ["Favorite", "yes" if favorite else "no"],
    ]
    if book.isbn:
        rows.append(["ISBN", book.isbn])
    if book.first_sentence:
        rows.append(["First sentence", book.first_sentence])

    parts = [tabulate(rows, tablefmt="plain"), "", book.description or "No description available from OpenLibrary."]
    for author in book.author_details:
        parts += ["", f"{author.name} (born {author.birth_date})", author.bio]
    return "\n".join(parts)


class TerminalView:
    """Prints results to one stream and status messages to another."""

    def __init__(self, format_type: str = "table", out: TextIO = sys.stdout, err: TextIO = sys.stderr):
        self.format_type = format_type
        self.out = out
        self.err = err
        self.shown: List[Book] = []
        self.load_more_visible = False

    def _print(self, text: str = ""):
        print(text, file=self.out)

    def render_books(self, books: List[Book], append: bool, favorites: Set[str]):
        if not append:
            self.shown = []
        if not books and not append:
            self._print("No books found. Try a different search.")
            return
        start = len(self.shown) + 1
        self.shown.extend(books)
        self._print("\n" + format_books(books, self.format_type, favorites, start))

    def set_loading(self, loading: bool):
        if loading:
            print("Loading...", file=self.err)

    def set_load_more(self, visible: bool):
        self.load_more_visible = visible

    def show_book(self, book: Book, favorite: bool):
        self._print("\n" + format_book_details(book, favorite))
        self._print("\nAsk a question about this book and Gemini AI will analyze the OpenLibrary data to answer it.")

    def close_book(self):
        pass

    def set_answer_loading(self, loading: bool):
        if loading:
            print("Analyzing OpenLibrary data with Gemini AI...", file=self.err)

    def show_answer(self, text: str):
        self._print("\n" + text)

    def notify(self, message: str, kind: str = "success"):
        marker = "✅" if kind == "success" else "❌" if kind == "error" else "•"
        print(f"{marker} {message}", file=self.err)

    def resolve(self, ref: str) -> str:
        """Map a result number from the last listing to its book id."""
        if ref.isdigit() and 1 <= int(ref) <= len(self.shown):
            return self.shown[int(ref) - 1].id
        return ref
