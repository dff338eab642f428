"""Podcast metadata resolved from iTunes, Podcast Index and the show's RSS feed."""

from __future__ import annotations

import hashlib
import logging
import re
import time
from typing import Any

import httpx

from ..config import Settings
from ..models import EntityLookup, PodcastDetails, RatingEntry
from ..utils import strip_html
from .base import MetadataProvider

logger = logging.getLogger(__name__)

RSS_DESCRIPTION_LIMIT = 1000
RSS_SUMMARY_RE = re.compile(r"<itunes:summary>(.*?)</itunes:summary>", re.IGNORECASE | re.DOTALL)
RSS_DESCRIPTION_RE = re.compile(r"<description>(.*?)</description>", re.IGNORECASE | re.DOTALL)

ITUNES_GENRE_MAP: dict[str, str] = {
    "Arts": "Arts",
    "Business": "Business",
    "Comedy": "Comedy",
    "Education": "Education",
    "Fiction": "Fiction",
    "Government": "Government",
    "Health & Fitness": "Health & Fitness",
    "History": "History",
    "Kids & Family": "Kids & Family",
    "Leisure": "Leisure",
    "Games & Hobbies": "Leisure",
    "Music": "Music",
    "News": "News",
    "Religion & Spirituality": "Religion & Spirituality",
    "Science": "Science",
    "Society & Culture": "Society & Culture",
    "Sports": "Sports",
    "Sports & Recreation": "Sports",
    "Technology": "Technology",
    "Tech": "Technology",
    "True Crime": "True Crime",
    "TV & Film": "TV & Film",
}


def apple_podcasts_url(itunes_id: Any) -> str:
    return f"https://podcasts.apple.com/podcast/id{itunes_id}"


def itunes_artwork_url(result: dict[str, Any]) -> str | None:
    if result.get("artworkUrl600"):
        return result["artworkUrl600"]
    if result.get("artworkUrl100"):
        return result["artworkUrl100"].replace("100x100", "600x600")
    return None


def map_podcast_genres(names: list[str]) -> list[str]:
    """Map iTunes and Podcast Index category names onto the shelf vocabulary."""

    genres: list[str] = []
    for name in names:
        mapped = ITUNES_GENRE_MAP.get(name)
        if mapped and mapped not in genres:
            genres.append(mapped)
    return genres


def description_from_feed(feed: str) -> str | None:
    match = RSS_SUMMARY_RE.search(feed) or RSS_DESCRIPTION_RE.search(feed)
    if not match:
        return None
    return strip_html(match.group(1), max_length=RSS_DESCRIPTION_LIMIT)


def _matches(candidate_title: str | None, candidate_creator: str | None, lookup: EntityLookup) -> bool:
    if not candidate_title or candidate_title.casefold() != lookup.title.casefold():
        return False
    if not lookup.creator:
        return True
    return lookup.creator.casefold() in (candidate_creator or "").casefold()


class PodcastDetailsProvider(MetadataProvider):
    kind = "podcast"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient, **kwargs: Any):
        super().__init__(settings, http_client, **kwargs)
        self._itunes_url = settings.api_base(settings.itunes_api_url)
        self._podcast_index_url = settings.api_base(settings.podcast_index_api_url)

    async def fetch_details(self, lookup: EntityLookup) -> PodcastDetails:
        itunes = await self._search_itunes(lookup)
        index_feed = await self._search_podcast_index(lookup)

        ratings: list[RatingEntry] = []
        if itunes:
            ratings.append(
                RatingEntry(
                    source="Apple Podcasts",
                    url=apple_podcasts_url(itunes.get("collectionId")),
                )
            )
        if index_feed:
            ratings.append(
                RatingEntry(
                    source="Podcast Index",
                    url=f"https://podcastindex.org/podcast/{index_feed.get('id')}",
                )
            )

        category_names = [
            genre for genre in (itunes or {}).get("genres") or [] if genre != "Podcasts"
        ]
        category_names.extend(((index_feed or {}).get("categories") or {}).values())
        genres = map_podcast_genres(category_names)

        rss_feed_url = (
            (itunes or {}).get("feedUrl")
            or (index_feed or {}).get("url")
            or lookup.known_id("rss_feed_url")
        )
        description = strip_html((index_feed or {}).get("description"))
        if not description and rss_feed_url:
            description = await self._description_from_rss(rss_feed_url)

        itunes_id = (itunes or {}).get("collectionId") or lookup.known_id("itunes_id")

        return PodcastDetails(
            creator=lookup.creator
            or (itunes or {}).get("artistName")
            or (index_feed or {}).get("author"),
            itunes_id=str(itunes_id) if itunes_id else None,
            podcast_index_id=(index_feed or {}).get("id"),
            description=description,
            cover_image=(itunes_artwork_url(itunes) if itunes else None)
            or (index_feed or {}).get("image"),
            rss_feed_url=rss_feed_url,
            total_episodes=(itunes or {}).get("trackCount")
            or (index_feed or {}).get("episodeCount"),
            genres=genres,
            language=(index_feed or {}).get("language"),
            publisher=(itunes or {}).get("artistName"),
            website_url=(index_feed or {}).get("link"),
            ratings=ratings,
            suggested_genre=genres[0] if genres else None,
        )

    async def _search_itunes(self, lookup: EntityLookup) -> dict[str, Any] | None:
        term = f"{lookup.title} {lookup.creator}" if lookup.creator else lookup.title
        payload = await self._get_json(
            f"{self._itunes_url}/search",
            params={"term": term, "media": "podcast", "entity": "podcast", "limit": 20},
        )
        results = (payload or {}).get("results") or []
        if not results:
            return None
        for result in results:
            title = result.get("collectionName") or result.get("trackName")
            if _matches(title, result.get("artistName"), lookup):
                return result
        return results[0]

    async def _search_podcast_index(self, lookup: EntityLookup) -> dict[str, Any] | None:
        headers = self._podcast_index_headers()
        if headers is None:
            return None
        payload = await self._get_json(
            f"{self._podcast_index_url}/search/byterm",
            params={"q": lookup.title},
            headers=headers,
        )
        feeds = (payload or {}).get("feeds") or []
        if not feeds:
            return None
        for feed in feeds:
            if _matches(feed.get("title"), feed.get("author"), lookup):
                return feed
        return feeds[0]

    def _podcast_index_headers(self) -> dict[str, str] | None:
        key = self._settings.podcast_index_api_key
        secret = self._settings.podcast_index_api_secret
        if not key or not secret:
            return None
        auth_date = str(int(time.time()))
        digest = hashlib.sha1(f"{key}{secret}{auth_date}".encode("utf-8")).hexdigest()
        return {"X-Auth-Key": key, "X-Auth-Date": auth_date, "Authorization": digest}

    async def _description_from_rss(self, feed_url: str) -> str | None:
        feed = await self._get_text(feed_url)
        if not feed:
            return None
        return description_from_feed(feed)
