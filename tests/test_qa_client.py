"""Tests for prompt building and the Gemini client."""
import asyncio
import json
import httpx

from bookverse.models import AuthorDetail, Book, Status
from bookverse.qa_client import (
    GENERATION_CONFIG,
    QAClient,
    build_prompt,
    fallback_answer,
)

API_URL = "https://generativelanguage.example/v1beta/models/test:generateContent"

BARE_BOOK = Book(
    id="OL1W",
    title="Plain Book",
    authors=["Some Author"],
    published_date="2001",
    description="A short description.",
    categories=["General"],
)

RICH_BOOK = Book(
    id="OL82565W",
    title="Harry Potter and the Philosopher's Stone",
    authors=["J.K. Rowling"],
    published_date="1997",
    description="A boy learns he is a wizard.",
    categories=["Magic", "Wizards"],
    page_count=223,
    first_sentence="Mr. and Mrs. Dursley, of number four, Privet Drive...",
    subjects=["Magic", "Wizards", "Schools"],
    author_details=[AuthorDetail("J.K. Rowling", "British author.", "1965")],
    excerpts=["It was a cold night.", "The owl arrived."],
)


def make_client(handler, api_key="test-key", use_proxy=False) -> QAClient:
    """Build a Q&A client whose requests go to ``handler``."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return QAClient(API_URL, api_key=api_key, use_proxy=use_proxy, client=http)


def gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_build_prompt_is_deterministic():
    """Test that the prompt depends only on book and question."""
    assert build_prompt(RICH_BOOK, "Who?") == build_prompt(RICH_BOOK, "Who?")
    assert build_prompt(RICH_BOOK, "Who?") != build_prompt(RICH_BOOK, "Where?")


def test_build_prompt_includes_optional_sections():
    """Test that populated optional fields appear in the prompt."""
    prompt = build_prompt(RICH_BOOK, "Who is the main character?")

    assert 'TITLE: "Harry Potter and the Philosopher\'s Stone"' in prompt
    assert "AUTHOR(S): J.K. Rowling" in prompt
    assert "SUBJECTS: Magic, Wizards, Schools" in prompt
    assert "PAGE COUNT: 223" in prompt
    assert "FIRST SENTENCE: Mr. and Mrs. Dursley" in prompt
    assert "AUTHOR BIO: British author." in prompt
    assert "BOOK EXCERPTS: It was a cold night.\nThe owl arrived." in prompt
    assert 'USER\'S SPECIFIC QUESTION: "Who is the main character?"' in prompt


def test_build_prompt_omits_empty_sections():
    """Test that empty optional fields leave no placeholder behind."""
    prompt = build_prompt(BARE_BOOK, "What is it about?")

    for label in ["SUBJECTS:", "FIRST SENTENCE:", "AUTHOR BIO:", "BOOK EXCERPTS:"]:
        assert label not in prompt
    assert "\n\n\n" not in prompt
    assert "PAGE COUNT: Unknown" in prompt


def test_answer_returns_first_candidate_text():
    """Test a successful call and the request it sends."""
    seen = {}

    def handler(request):
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=gemini_reply("Harry Potter."))

    result = asyncio.run(make_client(handler).answer(RICH_BOOK, "Who?"))

    assert result.status is Status.OK
    assert result.text == "Harry Potter."
    assert seen["headers"]["x-goog-api-key"] == "test-key"
    assert seen["body"]["generationConfig"] == GENERATION_CONFIG
    assert seen["body"]["contents"][0]["parts"][0]["text"] == build_prompt(RICH_BOOK, "Who?")


def test_answer_through_proxy_sends_no_key():
    """Test that a credential-holding proxy gets no key from the client."""
    seen = {}

    def handler(request):
        seen["headers"] = request.headers
        return httpx.Response(200, json=gemini_reply("ok"))

    client = make_client(handler, api_key=None, use_proxy=True)
    result = asyncio.run(client.answer(BARE_BOOK, "Q"))

    assert result.text == "ok"
    assert "x-goog-api-key" not in seen["headers"]


def test_answer_falls_back_deterministically_on_network_failure():
    """Test that identical inputs under failure give identical text."""
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    first = asyncio.run(make_client(handler).answer(RICH_BOOK, "Who?"))
    second = asyncio.run(make_client(handler).answer(RICH_BOOK, "Who?"))

    assert first.degraded and second.degraded
    assert first.text == second.text == fallback_answer(RICH_BOOK, "Who?")


def test_answer_falls_back_on_error_status():
    """Test that an API error status degrades with its message."""
    def handler(request):
        return httpx.Response(403, json={"error": {"message": "API key not valid"}})

    result = asyncio.run(make_client(handler).answer(BARE_BOOK, "Q"))

    assert result.degraded
    assert "403" in result.reason
    assert "API key not valid" in result.reason


def test_answer_falls_back_on_malformed_response():
    """Test that an unexpected response shape degrades."""
    def handler(request):
        return httpx.Response(200, json={"candidates": []})

    result = asyncio.run(make_client(handler).answer(BARE_BOOK, "Q"))

    assert result.degraded
    assert result.text == fallback_answer(BARE_BOOK, "Q")


def test_answer_without_key_never_calls_api():
    """Test that a missing key skips the request."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=gemini_reply("unused"))

    result = asyncio.run(make_client(handler, api_key=None).answer(BARE_BOOK, "Q"))

    assert result.degraded
    assert calls == []


def test_fallback_answer_content():
    """Test the templated answer built from book fields."""
    text = fallback_answer(RICH_BOOK, "Who?")

    assert text.startswith('I\'m analyzing "Harry Potter and the Philosopher\'s Stone" by J.K. Rowling')
    assert 'Question: "Who?"' in text
    assert "• Subjects: Magic, Wizards, Schools" in text
    assert "this book appears to be about: A boy learns he is a wizard." in text

    assert "• Subjects:" not in fallback_answer(BARE_BOOK, "Who?")


def test_fallback_answer_without_authors():
    """Test the author wording when a book lists no authors."""
    book = Book(
        id="OL2W",
        title="Anonymous Work",
        authors=[],
        published_date="",
        description="",
        categories=[],
    )
    text = fallback_answer(book, "Who wrote it?")

    assert 'by Unknown Author based on OpenLibrary data.' in text
    assert "• Authors: Unknown\n" in text


def test_answer_invalid_url_falls_back():
    """Test that an endpoint that is not a valid URL degrades to the template."""
    def handler(request):
        return httpx.Response(200, json=gemini_reply("unused"))

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = QAClient(API_URL + "\n", api_key="test-key", client=http)

    result = asyncio.run(client.answer(BARE_BOOK, "Q"))

    assert result.degraded
    assert result.text == fallback_answer(BARE_BOOK, "Q")
