"""Tests for genre answer validation and the OpenRouter-backed deducer."""

from __future__ import annotations

import json

import httpx
import pytest

from app.config import Settings
from app.models import GenreHints
from app.services.genre import GenreDeducer, match_genre

VOCABULARY = ("Science Fiction", "Fantasy")


def test_exact_answer_matches_case_insensitively() -> None:
    assert match_genre("science fiction", VOCABULARY, "Non-Fiction") == "Science Fiction"


def test_substring_answer_is_accepted() -> None:
    assert match_genre("a science-fiction-ish story", VOCABULARY, "Non-Fiction") == "Science Fiction"


def test_unmatched_answer_falls_back_to_default() -> None:
    assert match_genre("Romance", VOCABULARY, "Non-Fiction") == "Non-Fiction"
    assert match_genre("", VOCABULARY, "Non-Fiction") == "Non-Fiction"


def test_longest_contained_term_wins() -> None:
    vocabulary = ("Fiction", "Science Fiction")

    assert match_genre("Genre: Science Fiction.", vocabulary, "Fiction") == "Science Fiction"


def _settings(**overrides: str) -> Settings:
    base = {"OPENROUTER_API_KEY": "test-key", "OPENROUTER_API_URL": "https://router.example/api/v1"}
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


HINTS = GenreHints(
    title="Dune",
    creator="Frank Herbert",
    description="A desert planet and its spice.",
    subjects=["Space opera"],
)


@pytest.mark.anyio("asyncio")
async def test_deducer_validates_model_answer() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200, json={"choices": [{"message": {"content": " science fiction\n"}}]}
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        genre = await GenreDeducer(_settings(), client).deduce_genre("book", HINTS)

    assert genre == "Science Fiction"
    request = requests[0]
    assert str(request.url) == "https://router.example/api/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-key"
    prompt = json.loads(request.content)["messages"][0]["content"]
    assert "Respond with ONLY the genre name" in prompt
    assert "Graphic Novel" in prompt
    assert "- Author: Frank Herbert" in prompt
    assert "- Subjects/Categories: Space opera" in prompt


@pytest.mark.anyio("asyncio")
async def test_deducer_defaults_on_unrecognised_answer() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": "Cooking show"}}]})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        genre = await GenreDeducer(_settings(), client).deduce_genre("movie", HINTS)

    assert genre == "Drama"


@pytest.mark.anyio("asyncio")
async def test_deducer_returns_none_on_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="upstream down")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await GenreDeducer(_settings(), client).deduce_genre("book", HINTS) is None


@pytest.mark.anyio("asyncio")
async def test_deducer_returns_none_on_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await GenreDeducer(_settings(), client).deduce_genre("podcast", HINTS) is None


@pytest.mark.anyio("asyncio")
async def test_deducer_is_disabled_without_api_key() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not run
        calls.append(request)
        return httpx.Response(200, json={})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        deducer = GenreDeducer(Settings(_env_file=None, OPENROUTER_API_KEY=""), client)
        assert await deducer.deduce_genre("book", HINTS) is None

    assert calls == []
