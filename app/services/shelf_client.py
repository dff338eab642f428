"""HTTP client for the detail endpoints, used to drive a walker remotely."""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from ..errors import DEFAULT_RATE_LIMIT_MESSAGE, RateLimitError
from ..media_kinds import get_media_kind
from ..walker import EnrichmentWalker, WalkerProgress
from .base import response_payload

logger = logging.getLogger(__name__)


class ShelfApiClient:
    """Talk to a running MediaShelf service through ``http_client``.

    The client is expected to carry the service ``base_url``.
    """

    def __init__(self, http_client: httpx.AsyncClient):
        self._client = http_client

    async def get_details(self, kind: str, entity_id: str) -> dict[str, Any]:
        segment = get_media_kind(kind).segment
        return await self._request("GET", f"/api/{segment}/{entity_id}/details")

    async def refresh_details(self, kind: str, entity_id: str) -> dict[str, Any]:
        segment = get_media_kind(kind).segment
        return await self._request("POST", f"/api/{segment}/{entity_id}/details")

    async def list_shelf(self, user_id: str, kind: str) -> list[dict[str, Any]]:
        segment = get_media_kind(kind).segment
        data = await self._request("GET", f"/api/users/{user_id}/shelf/{segment}")
        return list(data.get("entries") or [])

    async def walker_for_shelf(
        self,
        user_id: str,
        kind: str,
        *,
        on_progress: Callable[[WalkerProgress], None] | None = None,
    ) -> EnrichmentWalker[dict[str, Any]]:
        """Build a walker over the user's shelf in insertion order."""

        entries = await self.list_shelf(user_id, kind)

        async def fetch(entry: dict[str, Any]) -> dict[str, Any]:
            return await self.get_details(kind, entry["entity_id"])

        return EnrichmentWalker(entries, fetch, on_progress=on_progress)

    async def _request(self, method: str, url: str) -> dict[str, Any]:
        response = await self._client.request(method, url)
        if response.status_code == 429:
            message = response_payload(response).get("error") or DEFAULT_RATE_LIMIT_MESSAGE
            raise RateLimitError(message)
        response.raise_for_status()
        return response_payload(response)
