"""Shared plumbing for the third-party metadata provider clients."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, ClassVar, Protocol

import httpx

from ..config import Settings
from ..errors import DEFAULT_RATE_LIMIT_MESSAGE, RateLimitError
from ..models import DetailsResult, EntityLookup

logger = logging.getLogger(__name__)


class DetailsProvider(Protocol):
    """Anything able to turn identifying fields into normalised details."""

    kind: str

    async def fetch_details(self, lookup: EntityLookup) -> DetailsResult: ...


class RequestThrottle:
    """Keeps a minimum spacing between consecutive upstream requests."""

    def __init__(self, interval_seconds: float):
        self._interval = max(interval_seconds, 0.0)
        self._lock = asyncio.Lock()
        self._last_request = 0.0

    async def wait(self) -> None:
        if self._interval <= 0:
            return
        async with self._lock:
            elapsed = time.monotonic() - self._last_request
            if elapsed < self._interval:
                await asyncio.sleep(self._interval - elapsed)
            self._last_request = time.monotonic()


class MetadataProvider:
    """Base class for provider clients.

    Every upstream call goes through :meth:`_get`, which turns quota exhaustion
    into :class:`RateLimitError` and every other failure (network errors,
    error statuses, unparseable bodies) into ``None`` so one provider outage
    never sinks the whole fetch.
    """

    kind: ClassVar[str] = ""
    user_agent: ClassVar[str] = "MediaShelf/1.0 (media shelf app)"

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        *,
        throttle: RequestThrottle | None = None,
    ):
        self._settings = settings
        self._client = http_client
        self._throttle = throttle or RequestThrottle(
            settings.provider_request_interval_ms / 1000
        )

    async def _get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response | None:
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)

        await self._throttle.wait()
        try:
            response = await self._client.get(
                url, params=params, headers=request_headers
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "%s request to %s failed: %s",
                type(self).__name__,
                url,
                exc.__class__.__name__,
            )
            return None

        if response.status_code == 429:
            raise RateLimitError(self._rate_limit_message(response))
        if self._is_quota_error(response):
            raise RateLimitError(self._rate_limit_message(response))
        if response.status_code >= 400:
            logger.warning(
                "%s request to %s returned %s",
                type(self).__name__,
                url,
                response.status_code,
            )
            return None
        return response

    async def _get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any | None:
        response = await self._get(url, params=params, headers=headers)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning("Unexpected non-JSON response from %s", url)
            return None

    async def _get_text(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> str | None:
        response = await self._get(url, headers=headers)
        if response is None:
            return None
        return response.text

    def _is_quota_error(self, response: httpx.Response) -> bool:
        """Return whether a non-429 response still signals an exhausted quota."""

        return False

    def _rate_limit_message(self, response: httpx.Response) -> str:
        return DEFAULT_RATE_LIMIT_MESSAGE


def response_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    if isinstance(data, dict):
        return data
    return {}


