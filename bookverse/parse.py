"""Parse and normalize Open Library API responses."""
from typing import Dict, Any, List, Optional
import logging

from bookverse.models import AuthorDetail, Book, UNKNOWN_AUTHOR

logger = logging.getLogger(__name__)

OPENLIBRARY_URL = "https://openlibrary.org"
COVERS_URL = "https://covers.openlibrary.org/b/id"

WORKS_PREFIX = "/works/"


def text_value(value: Any) -> Optional[str]:
    """
    Unwrap an Open Library text field.

    Open Library returns some text either as a plain string or as
    ``{"type": "/type/text", "value": "..."}``.

    Args:
        value: Raw field value

    Returns:
        The text, or None when there is none
    """
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("value"), str):
        return value["value"]
    return None


def cover_url(cover_id: Any, size: str = "M", covers_url: str = COVERS_URL) -> Optional[str]:
    """Build a cover image URL from a numeric cover id."""
    if not cover_id or not isinstance(cover_id, int):
        return None
    return f"{covers_url}/{cover_id}-{size}.jpg"


def clean_work_id(identifier: str) -> str:
    """Strip the ``/works/`` prefix from a work key."""
    return identifier.replace(WORKS_PREFIX, "").strip()


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return []


def parse_search_doc(
    doc: Dict[str, Any],
    index: int = 0,
    base_url: str = OPENLIBRARY_URL,
    covers_url: str = COVERS_URL
) -> Book:
    """
    Parse a single document from the search endpoint.

    Args:
        doc: One entry of the ``docs`` list
        index: Position in the page, used when the doc has no key
        base_url: Open Library site root for preview links
        covers_url: Covers API root

    Returns:
        Book object
    """
    key = doc.get("key") if isinstance(doc.get("key"), str) else None
    subjects = _string_list(doc.get("subject"))
    year = doc.get("first_publish_year")
    isbns = _string_list(doc.get("isbn"))
    page_count = doc.get("number_of_pages_median")

    return Book(
        id=key or f"book-{index}",
        title=doc.get("title") or "Unknown Title",
        authors=_string_list(doc.get("author_name")) or ["Unknown Author"],
        published_date=str(year) if year else "Unknown",
        description="Description available in detailed view",
        categories=subjects[:3] or ["General"],
        thumbnail=cover_url(doc.get("cover_i"), "M", covers_url),
        preview_link=f"{base_url}{key}" if key else None,
        page_count=page_count if isinstance(page_count, int) else None,
        isbn=isbns[0] if isbns else None,
        subjects=subjects,
    )


def parse_search_response(
    response_json: Dict[str, Any],
    base_url: str = OPENLIBRARY_URL,
    covers_url: str = COVERS_URL
) -> List[Book]:
    """
    Parse a full search response.

    Args:
        response_json: Complete API response JSON

    Returns:
        List of Book objects (empty if no docs found)
    """
    docs = response_json.get("docs") or []
    if not isinstance(docs, list):
        return []

    books = []
    for index, doc in enumerate(docs):
        if not isinstance(doc, dict):
            logger.warning(f"Skipping malformed search doc at index {index}")
            continue
        books.append(parse_search_doc(doc, index, base_url, covers_url))

    return books


def parse_author(data: Dict[str, Any]) -> AuthorDetail:
    """Parse an author endpoint response."""
    return AuthorDetail(
        name=data.get("name") or UNKNOWN_AUTHOR.name,
        bio=text_value(data.get("bio")) or UNKNOWN_AUTHOR.bio,
        birth_date=data.get("birth_date") or UNKNOWN_AUTHOR.birth_date,
    )


def author_keys(data: Dict[str, Any]) -> List[str]:
    """
    Collect author keys from a work response.

    Entries look like ``{"author": {"key": "/authors/OL23919A"}}``. Entries
    without a usable key are kept as empty strings so every listed author
    still gets a slot (and later a placeholder).
    """
    keys = []
    for entry in data.get("authors") or []:
        author = entry.get("author") if isinstance(entry, dict) else None
        key = author.get("key") if isinstance(author, dict) else None
        keys.append(key if isinstance(key, str) else "")
    return keys


def parse_work(
    data: Dict[str, Any],
    work_id: str,
    author_details: List[AuthorDetail],
    base_url: str = OPENLIBRARY_URL,
    covers_url: str = COVERS_URL
) -> Book:
    """
    Combine a work response and its resolved authors into one Book.

    Args:
        data: Work endpoint response JSON
        work_id: Cleaned work identifier
        author_details: Resolved authors, in listing order
        base_url: Open Library site root for preview links
        covers_url: Covers API root

    Returns:
        Book object
    """
    description = "No description available"
    if data.get("description"):
        description = text_value(data["description"]) or "Description available"

    subjects = _string_list(data.get("subjects"))
    covers = data.get("covers") or []
    page_count = data.get("number_of_pages")

    excerpts = []
    for excerpt in data.get("excerpts") or []:
        text = text_value(excerpt.get("excerpt")) if isinstance(excerpt, dict) else None
        if text:
            excerpts.append(text)

    return Book(
        id=work_id,
        title=data.get("title") or "Unknown Title",
        authors=[a.name for a in author_details] or ["Unknown Author"],
        published_date=data.get("first_publish_date") or "Unknown",
        description=description,
        categories=subjects[:5] or ["General"],
        thumbnail=cover_url(covers[0] if isinstance(covers, list) and covers else None, "L", covers_url),
        preview_link=f"{base_url}/works/{work_id}",
        page_count=page_count if isinstance(page_count, int) else None,
        first_sentence=text_value(data.get("first_sentence")),
        subjects=subjects,
        author_details=list(author_details),
        links=[link for link in data.get("links") or [] if isinstance(link, dict)],
        excerpts=excerpts,
    )


def deduplicate_books(books: List[Book]) -> List[Book]:
    """
    Remove duplicate books by ID.

    Args:
        books: List of Book objects

    Returns:
        Deduplicated list of books
    """
    seen_ids = set()
    unique_books = []

    for book in books:
        if book.id not in seen_ids:
            seen_ids.add(book.id)
            unique_books.append(book)

    return unique_books
