"""Embedded sample books used when Open Library cannot be reached."""
from typing import List

from bookverse.models import Book

SAMPLE_BOOKS = [
    Book(
        id="OL82565W",
        title="Harry Potter and the Philosopher's Stone",
        authors=["J.K. Rowling"],
        published_date="1997",
        description=(
            "Harry Potter discovers he is a wizard and begins his education "
            "at Hogwarts School of Witchcraft and Wizardry."
        ),
        categories=["Fantasy", "Fiction"],
        thumbnail="https://covers.openlibrary.org/b/id/10514553-M.jpg",
        preview_link="https://openlibrary.org/works/OL82565W",
        page_count=223,
        average_rating=4.5,
    ),
    Book(
        id="OL262758W",
        title="The Hobbit",
        authors=["J.R.R. Tolkien"],
        published_date="1937",
        description=(
            "Bilbo Baggins is swept into a quest to reclaim the dwarven "
            "kingdom of Erebor from the dragon Smaug."
        ),
        categories=["Fantasy", "Adventure"],
        preview_link="https://openlibrary.org/works/OL262758W",
        page_count=310,
        average_rating=4.3,
    ),
    Book(
        id="OL1168083W",
        title="Nineteen Eighty-Four",
        authors=["George Orwell"],
        published_date="1949",
        description=(
            "Winston Smith works for the Ministry of Truth in a totalitarian "
            "state ruled by the Party and its leader, Big Brother."
        ),
        categories=["Dystopian fiction", "Political fiction"],
        preview_link="https://openlibrary.org/works/OL1168083W",
        page_count=328,
        average_rating=4.2,
    ),
    Book(
        id="OL66554W",
        title="Pride and Prejudice",
        authors=["Jane Austen"],
        published_date="1813",
        description=(
            "Elizabeth Bennet and Fitzwilliam Darcy overcome pride and "
            "prejudice in Regency-era England."
        ),
        categories=["Romance", "Classics"],
        preview_link="https://openlibrary.org/works/OL66554W",
        page_count=279,
        average_rating=4.3,
    ),
]


def sample_books(query: str = "") -> List[Book]:
    """
    Return the sample books matching a query.

    Matching is a case-insensitive substring test against the title and
    each author. An empty query returns every sample.
    """
    if not query:
        return list(SAMPLE_BOOKS)

    query_lower = query.lower()
    return [
        book for book in SAMPLE_BOOKS
        if query_lower in book.title.lower()
        or any(query_lower in author.lower() for author in book.authors)
    ]


def sample_book(identifier: str) -> Book:
    """Return the sample with the given id, else the first sample."""
    for book in SAMPLE_BOOKS:
        if book.id == identifier or f"/works/{book.id}" == identifier:
            return book
    return SAMPLE_BOOKS[0]
