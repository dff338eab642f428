"""Article metadata from the NYT Article Search API or the page's Open Graph tags."""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urlparse

import httpx

from ..config import Settings
from ..models import ArticleDetails, EntityLookup
from ..utils import reading_time_minutes, strip_html
from .base import MetadataProvider

logger = logging.getLogger(__name__)

NYT_PUBLICATION = "The New York Times"
PUBLICATION_DOMAINS: dict[str, str] = {
    "nytimes.com": NYT_PUBLICATION,
    "nyti.ms": NYT_PUBLICATION,
    "ft.com": "Financial Times",
}
NYT_SLUG_RE = re.compile(r"nytimes\.com/\d{4}/\d{2}/\d{2}/[^/]+/([^.]+)")
URL_DATE_RE = re.compile(r"/(\d{4})/(\d{2})/(\d{2})/")
TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def detect_publication(url: str) -> str | None:
    """Name the publication from the article host, if it is a known one."""

    host = (urlparse(url).hostname or "").lower()
    if host.endswith(".substack.com"):
        return f"{host[: -len('.substack.com')]} (Substack)"
    if host.startswith("www."):
        host = host[4:]
    return PUBLICATION_DOMAINS.get(host)


def meta_content(page: str, name: str) -> str | None:
    """Return a ``<meta>`` value by ``og:`` property or plain name."""

    escaped = re.escape(name)
    patterns = (
        rf"<meta[^>]*property=[\"']og:{escaped}[\"'][^>]*content=[\"']([^\"']*)[\"']",
        rf"<meta[^>]*name=[\"']{escaped}[\"'][^>]*content=[\"']([^\"']*)[\"']",
        rf"<meta[^>]*content=[\"']([^\"']*)[\"'][^>]*property=[\"']og:{escaped}[\"']",
    )
    for pattern in patterns:
        match = re.search(pattern, page, re.IGNORECASE)
        if match:
            return match.group(1)
    return None


def article_property(page: str, name: str) -> str | None:
    match = re.search(
        rf"<meta[^>]*property=[\"']article:{re.escape(name)}[\"'][^>]*content=[\"']([^\"']*)[\"']",
        page,
        re.IGNORECASE,
    )
    return match.group(1) if match else None


def info_from_url(url: str) -> dict[str, str]:
    """Recover a date and section from conventional article URL paths."""

    path = urlparse(url).path
    info: dict[str, str] = {}
    date_match = URL_DATE_RE.search(path)
    if date_match:
        info["publication_date"] = "-".join(date_match.groups())
    segments = [
        segment
        for segment in path.split("/")
        if segment and not re.fullmatch(r"\d{2}|\d{4}", segment)
    ]
    if len(segments) >= 2:
        candidate = segments[-2]
        if candidate.lower() not in {"article", "story", "post", "p", "a"}:
            info["section"] = " ".join(word.capitalize() for word in candidate.split("-"))
    return info


class ArticleDetailsProvider(MetadataProvider):
    kind = "article"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient, **kwargs: Any):
        super().__init__(settings, http_client, **kwargs)
        self._nyt_url = settings.api_base(settings.nyt_api_url)

    async def fetch_details(self, lookup: EntityLookup) -> ArticleDetails:
        url = lookup.known_id("article_url")
        if not url:
            logger.info("Article %s has no URL to enrich from", lookup.title)
            return ArticleDetails(author=lookup.creator)

        publication = detect_publication(url)
        metadata: dict[str, Any] | None = None
        if publication == NYT_PUBLICATION:
            metadata = await self._lookup_nyt(url)
        if metadata is None:
            metadata = await self._open_graph(url)
        if metadata is None:
            metadata = info_from_url(url)
        if publication:
            metadata["publication"] = publication

        word_count = metadata.get("word_count") or None
        return ArticleDetails(
            author=lookup.creator or metadata.get("author"),
            publication=metadata.get("publication"),
            publication_date=metadata.get("publication_date"),
            description=metadata.get("description"),
            thumbnail_image=metadata.get("thumbnail_image"),
            section=metadata.get("section"),
            word_count=word_count,
            reading_time_minutes=reading_time_minutes(word_count),
            subjects=metadata.get("subjects") or [],
        )

    async def _lookup_nyt(self, url: str) -> dict[str, Any] | None:
        if not self._settings.nyt_api_key:
            return None
        match = NYT_SLUG_RE.search(url)
        if not match:
            return None
        slug = match.group(1)
        payload = await self._get_json(
            f"{self._nyt_url}/articlesearch.json",
            params={"q": slug.replace("-", " "), "api-key": self._settings.nyt_api_key},
        )
        docs = ((payload or {}).get("response") or {}).get("docs") or []
        if not docs:
            return None
        article = next(
            (
                doc
                for doc in docs
                if doc.get("web_url") == url or slug in (doc.get("web_url") or "")
            ),
            docs[0],
        )
        return self._from_nyt(article)

    @staticmethod
    def _from_nyt(article: dict[str, Any]) -> dict[str, Any]:
        author = ((article.get("byline") or {}).get("original") or "").strip()
        if author.startswith("By "):
            author = author[3:]
        multimedia = article.get("multimedia") or {}
        image = None
        if isinstance(multimedia, dict):
            image = (multimedia.get("default") or {}).get("url") or (
                multimedia.get("thumbnail") or {}
            ).get("url")
        subjects = [
            keyword.get("value")
            for keyword in article.get("keywords") or []
            if str(keyword.get("name", "")).lower() == "subject" and keyword.get("value")
        ]
        return {
            "author": author or None,
            "publication": NYT_PUBLICATION,
            "publication_date": article.get("pub_date"),
            "description": article.get("abstract"),
            "thumbnail_image": image,
            "section": article.get("section_name"),
            "word_count": article.get("word_count"),
            "subjects": subjects,
        }

    async def _open_graph(self, url: str) -> dict[str, Any] | None:
        page = await self._get_text(
            url, headers={"Accept": HTML_ACCEPT, "Accept-Language": "en-US,en;q=0.5"}
        )
        if not page:
            return None
        title = meta_content(page, "title")
        if not title:
            title_match = TITLE_RE.search(page)
            title = title_match.group(1) if title_match else None
        if not title:
            return None
        return {
            "author": strip_html(meta_content(page, "author")),
            "publication": meta_content(page, "site_name"),
            "publication_date": article_property(page, "published_time"),
            "description": strip_html(meta_content(page, "description")),
            "thumbnail_image": meta_content(page, "image"),
            "section": article_property(page, "section"),
        }
