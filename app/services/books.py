"""Book metadata resolved from Google Books and Open Library."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote_plus

import httpx

from ..config import Settings
from ..models import BookDetails, EntityLookup, RatingEntry
from .base import MetadataProvider, response_payload

logger = logging.getLogger(__name__)

OPEN_LIBRARY_COVERS_URL = "https://covers.openlibrary.org/b"
OPEN_LIBRARY_SEARCH_FIELDS = (
    "key,title,author_name,cover_i,isbn,first_sentence,subject,"
    "ratings_average,ratings_count"
)
GOOGLE_QUOTA_REASONS = {"dailyLimitExceeded", "rateLimitExceeded", "userRateLimitExceeded"}

SUBJECT_TO_GENRE: dict[str, str] = {
    "fiction": "Fiction",
    "novel": "Fiction",
    "literary fiction": "Fiction",
    "science fiction": "Science Fiction",
    "sci-fi": "Science Fiction",
    "scifi": "Science Fiction",
    "space opera": "Science Fiction",
    "dystopian": "Science Fiction",
    "cyberpunk": "Science Fiction",
    "fantasy": "Fantasy",
    "epic fantasy": "Fantasy",
    "urban fantasy": "Fantasy",
    "magic": "Fantasy",
    "dragons": "Fantasy",
    "mystery": "Mystery",
    "detective": "Mystery",
    "crime fiction": "Mystery",
    "whodunit": "Mystery",
    "thriller": "Thriller",
    "suspense": "Thriller",
    "psychological thriller": "Thriller",
    "espionage": "Thriller",
    "romance": "Romance",
    "love stories": "Romance",
    "romantic": "Romance",
    "horror": "Horror",
    "scary": "Horror",
    "supernatural": "Horror",
    "ghost stories": "Horror",
    "vampires": "Horror",
    "non-fiction": "Non-Fiction",
    "nonfiction": "Non-Fiction",
    "biography": "Biography",
    "autobiography": "Biography",
    "memoir": "Biography",
    "biographies": "Biography",
    "history": "History",
    "historical": "History",
    "world history": "History",
    "military history": "History",
    "science": "Science",
    "popular science": "Science",
    "physics": "Science",
    "biology": "Science",
    "chemistry": "Science",
    "astronomy": "Science",
    "self-help": "Self-Help",
    "self help": "Self-Help",
    "personal development": "Self-Help",
    "motivation": "Self-Help",
    "business": "Business",
    "economics": "Business",
    "management": "Business",
    "entrepreneurship": "Business",
    "finance": "Business",
    "investing": "Business",
    "philosophy": "Philosophy",
    "philosophical": "Philosophy",
    "ethics": "Philosophy",
    "poetry": "Poetry",
    "poems": "Poetry",
    "verse": "Poetry",
    "children": "Children",
    "children's": "Children",
    "juvenile": "Children",
    "picture books": "Children",
    "young adult": "Young Adult",
    "ya": "Young Adult",
    "teen": "Young Adult",
    "teenagers": "Young Adult",
    "classics": "Classics",
    "classic literature": "Classics",
    "literary classics": "Classics",
    "graphic novel": "Graphic Novel",
    "graphic novels": "Graphic Novel",
    "comics": "Graphic Novel",
    "manga": "Graphic Novel",
    "cookbook": "Cookbook",
    "cooking": "Cookbook",
    "recipes": "Cookbook",
    "culinary": "Cookbook",
    "travel": "Travel",
    "travel writing": "Travel",
    "adventure travel": "Travel",
    "art": "Art",
    "art history": "Art",
    "painting": "Art",
    "photography": "Art",
    "music": "Music",
    "musicians": "Music",
    "rock music": "Music",
    "sports": "Sports",
    "athletics": "Sports",
    "football": "Sports",
    "baseball": "Sports",
    "basketball": "Sports",
    "religion": "Religion",
    "spirituality": "Religion",
    "christianity": "Religion",
    "buddhism": "Religion",
    "islam": "Religion",
    "technology": "Technology",
    "computers": "Technology",
    "programming": "Technology",
    "software": "Technology",
    "artificial intelligence": "Technology",
    "health": "Health",
    "wellness": "Health",
    "medicine": "Health",
    "fitness": "Health",
    "nutrition": "Health",
    "true crime": "True Crime",
    "crime": "True Crime",
    "murder": "True Crime",
    "humor": "Humor",
    "comedy": "Humor",
    "funny": "Humor",
    "satire": "Humor",
    "drama": "Drama",
    "plays": "Drama",
    "theatre": "Drama",
    "theater": "Drama",
}


def genre_from_subjects(subjects: list[str] | None) -> str | None:
    """Map publisher categories or library subjects onto a shelf genre.

    Each subject is tried against the keyword table directly first, then by
    containment in either direction. The first subject that maps wins.
    """

    for subject in subjects or []:
        normalized = subject.strip().lower()
        if not normalized:
            continue
        if normalized in SUBJECT_TO_GENRE:
            return SUBJECT_TO_GENRE[normalized]
        for keyword, genre in SUBJECT_TO_GENRE.items():
            if keyword in normalized or normalized in keyword:
                return genre
    return None


def upgrade_cover_url(image_links: dict[str, Any] | None) -> str | None:
    if not image_links:
        return None
    url = (
        image_links.get("medium")
        or image_links.get("small")
        or image_links.get("thumbnail")
        or image_links.get("smallThumbnail")
    )
    if not url:
        return None
    return (
        url.replace("http://", "https://")
        .replace("zoom=1", "zoom=2")
        .replace("&edge=curl", "")
    )


def goodreads_search_url(title: str, author: str | None) -> str:
    query = f"{title} {author}" if author else title
    return f"https://www.goodreads.com/search?q={quote_plus(query)}"


def amazon_search_url(title: str, author: str | None) -> str:
    query = f"{title} {author}" if author else title
    return f"https://www.amazon.com/s?k={quote_plus(query)}&i=stripbooks"


def _extract_isbn(identifiers: list[dict[str, Any]] | None) -> str | None:
    if not identifiers:
        return None
    by_type = {entry.get("type"): entry.get("identifier") for entry in identifiers}
    return by_type.get("ISBN_13") or by_type.get("ISBN_10")


class BookDetailsProvider(MetadataProvider):
    """Combine Google Books and Open Library into one set of book details."""

    kind = "book"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient, **kwargs: Any):
        super().__init__(settings, http_client, **kwargs)
        self._google_url = settings.api_base(settings.google_books_api_url)
        self._open_library_url = settings.api_base(settings.open_library_url)

    async def fetch_details(self, lookup: EntityLookup) -> BookDetails:
        google, open_library = await asyncio.gather(
            self._fetch_google_books(lookup), self._fetch_open_library(lookup)
        )

        ratings: list[RatingEntry] = []
        if google.get("rating"):
            ratings.append(google["rating"])
        if open_library.get("rating"):
            ratings.append(open_library["rating"])
        elif open_library.get("work_key"):
            rating = await self._fetch_open_library_rating(open_library["work_key"])
            if rating is not None:
                ratings.append(rating)

        author = lookup.creator or google.get("author")
        goodreads_url = goodreads_search_url(lookup.title, author)
        amazon_url = amazon_search_url(lookup.title, author)
        ratings.append(RatingEntry(source="Goodreads", url=goodreads_url))
        ratings.append(RatingEntry(source="Amazon", url=amazon_url))

        subjects = google.get("subjects") or open_library.get("subjects") or []
        combined = list(google.get("subjects") or []) + list(
            open_library.get("subjects") or []
        )

        return BookDetails(
            author=author,
            description=google.get("description") or open_library.get("description"),
            ratings=ratings,
            cover_image=google.get("cover_image") or open_library.get("cover_image"),
            isbn=google.get("isbn") or open_library.get("isbn"),
            published_date=google.get("published_date"),
            publisher=google.get("publisher"),
            page_count=google.get("page_count"),
            subjects=subjects,
            goodreads_url=goodreads_url,
            amazon_url=amazon_url,
            suggested_genre=genre_from_subjects(combined),
        )

    async def _fetch_google_books(self, lookup: EntityLookup) -> dict[str, Any]:
        isbn = lookup.known_id("isbn")
        if isbn:
            query = f"isbn:{isbn}"
        else:
            terms = [lookup.title]
            if lookup.creator:
                terms.append(f"inauthor:{lookup.creator}")
            query = " ".join(terms)

        params: dict[str, Any] = {"q": query, "maxResults": 1}
        if self._settings.google_books_api_key:
            params["key"] = self._settings.google_books_api_key

        payload = await self._get_json(f"{self._google_url}/volumes", params=params)
        items = (payload or {}).get("items") or []
        if not items:
            return {}

        volume = items[0]
        info = volume.get("volumeInfo") or {}
        result: dict[str, Any] = {
            "description": info.get("description"),
            "cover_image": upgrade_cover_url(info.get("imageLinks")),
            "isbn": _extract_isbn(info.get("industryIdentifiers")),
            "published_date": info.get("publishedDate"),
            "publisher": info.get("publisher"),
            "page_count": info.get("pageCount"),
            "subjects": info.get("categories") or [],
            "author": (info.get("authors") or [None])[0],
        }
        if info.get("averageRating"):
            result["rating"] = RatingEntry(
                source="Google Books",
                rating=info["averageRating"],
                ratings_count=info.get("ratingsCount"),
                url=f"https://books.google.com/books?id={volume.get('id')}",
            )
        return result

    async def _fetch_open_library(self, lookup: EntityLookup) -> dict[str, Any]:
        query = f"{lookup.title} {lookup.creator}" if lookup.creator else lookup.title
        payload = await self._get_json(
            f"{self._open_library_url}/search.json",
            params={"q": query, "limit": 1, "fields": OPEN_LIBRARY_SEARCH_FIELDS},
        )
        docs = (payload or {}).get("docs") or []
        if not docs:
            return {}

        doc = docs[0]
        isbns = doc.get("isbn") or []
        cover_image = None
        if doc.get("cover_i"):
            cover_image = f"{OPEN_LIBRARY_COVERS_URL}/id/{doc['cover_i']}-L.jpg"
        elif isbns:
            cover_image = f"{OPEN_LIBRARY_COVERS_URL}/isbn/{isbns[0]}-L.jpg"

        first_sentence = doc.get("first_sentence")
        if isinstance(first_sentence, list):
            first_sentence = " ".join(first_sentence)

        result: dict[str, Any] = {
            "description": first_sentence or None,
            "cover_image": cover_image,
            "isbn": isbns[0] if isbns else None,
            "subjects": (doc.get("subject") or [])[:5],
            "work_key": doc.get("key"),
        }
        if doc.get("ratings_average"):
            result["rating"] = RatingEntry(
                source="Open Library",
                rating=round(float(doc["ratings_average"]), 2),
                ratings_count=doc.get("ratings_count"),
                url=f"https://openlibrary.org{doc.get('key', '')}",
            )
        return result

    async def _fetch_open_library_rating(self, work_key: str) -> RatingEntry | None:
        payload = await self._get_json(f"{self._open_library_url}{work_key}/ratings.json")
        summary = (payload or {}).get("summary") or {}
        if not summary.get("average"):
            return None
        return RatingEntry(
            source="Open Library",
            rating=round(float(summary["average"]), 2),
            ratings_count=summary.get("count"),
            url=f"https://openlibrary.org{work_key}",
        )

    def _is_quota_error(self, response: httpx.Response) -> bool:
        if response.status_code != 403:
            return False
        error = response_payload(response).get("error") or {}
        reasons = {entry.get("reason") for entry in error.get("errors") or []}
        return bool(reasons & GOOGLE_QUOTA_REASONS)
