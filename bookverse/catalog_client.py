"""Async Open Library client with sample-data fallback."""
import asyncio
import httpx
from typing import Optional, Dict, Any
import logging

from bookverse.models import AuthorDetail, DetailResult, SearchResult, Status, UNKNOWN_AUTHOR
from bookverse.parse import (
    COVERS_URL,
    OPENLIBRARY_URL,
    author_keys,
    clean_work_id,
    parse_author,
    parse_search_response,
    parse_work,
)
from bookverse.samples import sample_book, sample_books

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when an Open Library request cannot be turned into JSON."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CatalogClient:
    """Async client for Open Library search, work and author lookups."""

    def __init__(
        self,
        base_url: str = OPENLIBRARY_URL,
        covers_url: str = COVERS_URL,
        timeout: int = 10,
        page_size: int = 12,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize async client.

        Args:
            base_url: Open Library site root
            covers_url: Covers API root
            timeout: Request timeout
            page_size: Default number of results per search page
            client: Optional preconfigured HTTP client
        """
        self.base_url = base_url.rstrip("/")
        self.covers_url = covers_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size

        # Create async HTTP client
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET a URL and decode its JSON object body.

        Raises:
            CatalogError: on an invalid URL, transport failure, non-200 status
                or a body that is not a JSON object
        """
        try:
            response = await self.client.get(url, params=params)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise CatalogError(f"Request to {url!r} failed: {e}") from e

        if response.status_code != 200:
            raise CatalogError(
                f"Status {response.status_code} for {url}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise CatalogError(f"Invalid JSON from {url}") from e

        if not isinstance(payload, dict):
            raise CatalogError(f"Unexpected response shape from {url}")
        return payload

    async def search(
        self,
        query: str,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> SearchResult:
        """
        Search for books asynchronously.

        Args:
            query: Search query
            offset: Pagination offset
            limit: Max results (defaults to the page size)

        Returns:
            SearchResult, degraded to matching sample books when the
            request fails or finds nothing
        """
        limit = limit or self.page_size
        params = {"q": query, "offset": offset, "limit": limit}

        try:
            logger.info(f"Async request: {query} (offset={offset})")
            data = await self._get_json(f"{self.base_url}/search.json", params)
        except CatalogError as e:
            logger.error(f"OpenLibrary search failed: {e}")
            return self._sample_search(query, offset, str(e))

        books = parse_search_response(data, self.base_url, self.covers_url)
        if not books:
            logger.warning(f"No results for query: {query}")
            return self._sample_search(query, offset, "no results")

        total = data.get("numFound")
        logger.info(f"Found {len(books)} books from OpenLibrary")
        return SearchResult(
            books=books,
            offset=offset,
            total=total if isinstance(total, int) else None,
        )

    def _sample_search(self, query: str, offset: int, reason: str) -> SearchResult:
        books = sample_books(query)
        logger.warning(f"Using {len(books)} sample books for '{query}' ({reason})")
        return SearchResult(
            books=books,
            status=Status.DEGRADED,
            reason=reason,
            offset=offset,
        )

    async def get_author(self, author_key: str) -> AuthorDetail:
        """
        Resolve one author reference.

        Any failure degrades to the unknown-author placeholder.
        """
        if not author_key:
            return UNKNOWN_AUTHOR
        try:
            data = await self._get_json(f"{self.base_url}{author_key}.json")
        except CatalogError as e:
            logger.warning(f"Author lookup failed for {author_key}: {e}")
            return UNKNOWN_AUTHOR
        return parse_author(data)

    async def get_details(self, identifier: str) -> DetailResult:
        """
        Fetch a work and its authors.

        Author lookups run concurrently and are joined before the record
        is built.

        Args:
            identifier: Work id, with or without the ``/works/`` prefix

        Returns:
            DetailResult, degraded to a sample book when the work cannot
            be fetched
        """
        work_id = clean_work_id(identifier)
        if not work_id:
            return self._sample_details(identifier, "empty identifier")

        try:
            logger.info(f"Fetching book details for: {work_id}")
            data = await self._get_json(f"{self.base_url}/works/{work_id}.json")
        except CatalogError as e:
            logger.error(f"Book details failed: {e}")
            return self._sample_details(identifier, str(e))

        tasks = [self.get_author(key) for key in author_keys(data)]
        authors = await asyncio.gather(*tasks)

        book = parse_work(data, work_id, list(authors), self.base_url, self.covers_url)
        return DetailResult(book=book)

    def _sample_details(self, identifier: str, reason: str) -> DetailResult:
        book = sample_book(identifier)
        logger.warning(f"Using sample book {book.id} for '{identifier}' ({reason})")
        return DetailResult(book=book, status=Status.DEGRADED, reason=reason)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
