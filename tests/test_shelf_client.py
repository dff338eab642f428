"""Drive a walker over a shelf through the HTTP detail endpoints."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from app.errors import RateLimitError
from app.services.shelf_client import ShelfApiClient
from app.walker import WalkerProgress, WalkerStatus

SHELF = {
    "kind": "book",
    "entries": [
        {"id": 1, "entity_id": "dune"},
        {"id": 2, "entity_id": "emma"},
        {"id": 3, "entity_id": "ulysses"},
    ],
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://shelf.test"
    )


@pytest.mark.anyio("asyncio")
async def test_get_details_surfaces_rate_limit_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "Rate limited by Google Books"})

    async with _client(handler) as http_client:
        client = ShelfApiClient(http_client)
        with pytest.raises(RateLimitError, match="Rate limited by Google Books"):
            await client.get_details("book", "dune")


@pytest.mark.anyio("asyncio")
async def test_walker_pauses_on_429_and_completes_after_resume() -> None:
    detail_requests: list[str] = []
    throttled = {"emma": 1}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/users/reader-1/shelf/books":
            return httpx.Response(200, json=SHELF)
        entity_id = request.url.path.split("/")[3]
        detail_requests.append(entity_id)
        if throttled.get(entity_id):
            throttled[entity_id] -= 1
            return httpx.Response(429, json={"error": "Rate limited by Open Library"})
        return httpx.Response(200, json={"kind": "book", "entity": {"id": entity_id}, "cached": False})

    async with _client(handler) as http_client:
        client = ShelfApiClient(http_client)
        walker = await client.walker_for_shelf("reader-1", "book")
        task = asyncio.create_task(walker.run())

        for _ in range(1000):
            if walker.status is WalkerStatus.PAUSED:
                break
            await asyncio.sleep(0)

        assert walker.status is WalkerStatus.PAUSED
        assert walker.pause_message == "Rate limited by Open Library"
        assert walker.progress == WalkerProgress(processed=1, total=3)

        walker.resume()
        report = await task

    assert report.status is WalkerStatus.COMPLETED
    assert detail_requests == ["dune", "emma", "emma", "ulysses"]


@pytest.mark.anyio("asyncio")
async def test_server_errors_are_recorded_as_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/api/users/"):
            return httpx.Response(200, json=SHELF)
        if "emma" in request.url.path:
            return httpx.Response(500, json={"detail": "boom"})
        return httpx.Response(200, json={"cached": True})

    async with _client(handler) as http_client:
        walker = await ShelfApiClient(http_client).walker_for_shelf("reader-1", "books")
        report = await walker.run()

    assert report.status is WalkerStatus.COMPLETED
    assert report.progress == WalkerProgress(processed=3, total=3)
    assert [failure.entry["entity_id"] for failure in report.failures] == ["emma"]
