"""Gemini client that answers questions about a single book."""
import httpx
from typing import Optional, Dict, Any
import logging

from bookverse.models import AnswerResult, Book, Status

logger = logging.getLogger(__name__)

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 1024,
}

INSTRUCTIONS = """CRITICAL INSTRUCTIONS:
1. Use ONLY the book information provided above from OpenLibrary API
2. Do not use any external knowledge or general information about similar books
3. If the OpenLibrary data doesn't contain information to answer the question, clearly state this
4. Be specific and reference the exact data points from the OpenLibrary response
5. If describing the book, use the exact description, categories, and subjects provided
6. If discussing authors, use only the author information from the API
7. Structure your response to be helpful and informative based on the available data

IMPORTANT: Your response must be based SOLELY on the OpenLibrary data provided above. Do not add any external knowledge."""


class QAError(Exception):
    """Raised when the generative-language call does not yield text."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _authors(book: Book) -> str:
    return ", ".join(book.authors) if book.authors else "Unknown Author"


def _categories(book: Book) -> str:
    return ", ".join(book.categories) if book.categories else "General"


def book_info(book: Book) -> str:
    """
    Serialize a book into the data block of the prompt.

    Optional sections are left out when the book has nothing for them.
    """
    lines = [
        "EXACT BOOK DATA FROM OPENLIBRARY API:",
        "",
        f"BOOK ID: {book.id}",
        f'TITLE: "{book.title}"',
        f"AUTHOR(S): {_authors(book)}",
        f"PUBLICATION YEAR: {book.published_date or 'Unknown'}",
        f"DESCRIPTION: {book.description or 'No description available'}",
        f"CATEGORIES: {_categories(book)}",
    ]
    if book.subjects:
        lines.append(f"SUBJECTS: {', '.join(book.subjects[:10])}")
    lines.append(f"PAGE COUNT: {book.page_count or 'Unknown'}")
    if book.first_sentence:
        lines.append(f"FIRST SENTENCE: {book.first_sentence}")
    if book.author_details:
        lines.append(f"AUTHOR BIO: {book.author_details[0].bio or 'No biography available'}")
    if book.excerpts:
        lines.append("BOOK EXCERPTS: " + "\n".join(book.excerpts))
    return "\n".join(lines)


def build_prompt(book: Book, question: str) -> str:
    """
    Build the prompt sent to the model.

    Pure function of its arguments, so the same book and question always
    produce the same text.
    """
    return "\n\n".join([
        "You are an expert book analyst. I will provide you with exact book data "
        "from the OpenLibrary API, and you must answer the user's question using "
        "ONLY this specific book information.",
        book_info(book),
        f'USER\'S SPECIFIC QUESTION: "{question}"',
        INSTRUCTIONS,
        "Now, please answer the user's question using only the provided OpenLibrary book data:",
    ])


def fallback_answer(book: Book, question: str) -> str:
    """Templated answer built from the book fields alone."""
    authors = _authors(book)
    categories = _categories(book)
    lines = [
        f'I\'m analyzing "{book.title}" by {authors} based on OpenLibrary data.',
        "",
        f'Question: "{question}"',
        "",
        "OpenLibrary Book Data Available:",
        f"• Title: {book.title}",
        f"• Authors: {', '.join(book.authors) if book.authors else 'Unknown'}",
        f"• Published: {book.published_date or 'Unknown'}",
        f"• Description: {book.description or 'No description available'}",
        f"• Categories: {categories}",
    ]
    if book.subjects:
        lines.append(f"• Subjects: {', '.join(book.subjects[:5])}")
    lines += [
        "",
        "Based on the OpenLibrary data, this book appears to be about: "
        f"{book.description or 'topics related to ' + categories}.",
        "",
        "For more specific answers, the complete book would provide additional details.",
    ]
    return "\n".join(lines)


def extract_text(data: Dict[str, Any]) -> str:
    """
    Pull the first candidate's text out of a generateContent response.

    Raises:
        QAError: if the response does not have the expected shape
    """
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise QAError("Invalid response format from Gemini API") from e
    if not isinstance(text, str):
        raise QAError("Invalid response format from Gemini API")
    return text


class QAClient:
    """Async client for the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str] = None,
        use_proxy: bool = False,
        timeout: int = 30,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the client.

        Args:
            api_url: generateContent endpoint, or a proxy that holds the key
            api_key: Gemini API key (not needed behind a proxy)
            use_proxy: Whether api_url is a credential-holding proxy
            timeout: Request timeout
            client: Optional preconfigured HTTP client
        """
        self.api_url = api_url
        self.api_key = api_key
        self.use_proxy = use_proxy
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key and not self.use_proxy:
            headers["x-goog-api-key"] = self.api_key
        return headers

    async def _generate(self, prompt: str) -> str:
        if not self.api_key and not self.use_proxy:
            raise QAError("No Gemini API key configured")

        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": GENERATION_CONFIG,
        }

        try:
            response = await self.client.post(self.api_url, json=body, headers=self._headers())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise QAError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            raise QAError(
                f"Gemini API error: {response.status_code} - {self._error_message(response)}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise QAError("Invalid JSON from Gemini API") from e

        return extract_text(data)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return "Unknown error"

    async def answer(self, book: Book, question: str) -> AnswerResult:
        """
        Answer a question about a book.

        Args:
            book: The book the question is about
            question: Free-form user question

        Returns:
            AnswerResult, degraded to a templated answer on any failure
        """
        prompt = build_prompt(book, question)
        logger.info(f"Sending question to Gemini for: {book.title}")

        try:
            text = await self._generate(prompt)
        except QAError as e:
            logger.error(f"Gemini API failed: {e}")
            return AnswerResult(
                text=fallback_answer(book, question),
                status=Status.DEGRADED,
                reason=str(e),
            )

        logger.info("Gemini answer received")
        return AnswerResult(text=text)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
