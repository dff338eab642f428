"""Utilities for resolving metadata from The Movie Database (TMDB)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

import httpx

from ..config import Settings
from ..utils import parse_year
from .base import MetadataProvider

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
BACKDROP_BASE_URL = "https://image.tmdb.org/t/p/w780"

ContentType = Literal["movie", "tv"]


@dataclass(slots=True)
class TMDBSearchResult:
    """Normalized view of a TMDB search result."""

    tmdb_id: int
    title: str
    overview: str | None
    year: int | None


class TMDBProvider(MetadataProvider):
    """Base for providers that resolve entities through TMDB search and details."""

    content_type: ContentType = "movie"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient, **kwargs: Any):
        super().__init__(settings, http_client, **kwargs)
        self._tmdb_url = settings.api_base(settings.tmdb_api_url)

    @property
    def tmdb_enabled(self) -> bool:
        return bool(self._settings.tmdb_api_key)

    async def search(self, title: str, *, year: int | None) -> TMDBSearchResult | None:
        """Return the best search match for the supplied title."""

        if not self.tmdb_enabled:
            return None

        params: dict[str, Any] = {
            "query": title,
            "include_adult": "false",
            "language": "en-US",
            "page": 1,
            "api_key": self._settings.tmdb_api_key,
        }
        if year:
            if self.content_type == "movie":
                params["year"] = year
            else:
                params["first_air_date_year"] = year

        data = await self._get_json(
            f"{self._tmdb_url}/search/{self.content_type}", params=params
        )
        results = (data or {}).get("results") or []
        if not results:
            return None

        normalized_title = title.casefold()
        best_match: dict[str, Any] | None = None

        for candidate in results:
            candidate_title = candidate.get("title") or candidate.get("name")
            if not candidate_title:
                continue
            candidate_year = self._extract_year(candidate)
            if candidate_title.casefold() == normalized_title:
                if year is None or candidate_year == year:
                    best_match = candidate
                    break
            if best_match is None:
                best_match = candidate
            elif year is not None and candidate_year == year:
                best_match = candidate

        if not best_match:
            return None

        return TMDBSearchResult(
            tmdb_id=int(best_match["id"]),
            title=best_match.get("title") or best_match.get("name") or title,
            overview=best_match.get("overview"),
            year=self._extract_year(best_match),
        )

    async def details(self, tmdb_id: int, *, append: str) -> dict[str, Any] | None:
        """Fetch the full TMDB record with extra sub-resources appended."""

        if not self.tmdb_enabled:
            return None
        data = await self._get_json(
            f"{self._tmdb_url}/{self.content_type}/{tmdb_id}",
            params={
                "api_key": self._settings.tmdb_api_key,
                "append_to_response": append,
            },
        )
        if not isinstance(data, dict):
            return None
        return data

    async def resolve_tmdb_id(self, title: str, *, year: int | None, known: str | None) -> int | None:
        if known and known.isdigit():
            return int(known)
        result = await self.search(title, year=year)
        if result is None:
            logger.info("No TMDB %s match for %s (%s)", self.content_type, title, year)
            return None
        return result.tmdb_id

    def _extract_year(self, result: dict[str, Any]) -> int | None:
        date_key = "release_date" if self.content_type == "movie" else "first_air_date"
        return parse_year(result.get(date_key))

    @staticmethod
    def build_image_url(path: str | None, base_url: str) -> str | None:
        if not path:
            return None
        if path.startswith("http"):
            return path
        return f"{base_url}{path}"

    @staticmethod
    def top_cast(credits: dict[str, Any] | None, limit: int = 10) -> list[str]:
        cast = (credits or {}).get("cast") or []
        ordered = sorted(cast, key=lambda member: member.get("order", 0))
        return [member["name"] for member in ordered[:limit] if member.get("name")]

    @staticmethod
    def names(entries: list[dict[str, Any]] | None) -> list[str]:
        return [entry["name"] for entry in entries or [] if entry.get("name")]
