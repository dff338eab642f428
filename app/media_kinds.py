"""Media kind definitions shared by the catalog, providers and routes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


MediaKind = Literal["book", "movie", "podcast", "tvshow", "article"]


@dataclass(frozen=True)
class MediaKindDefinition:
    """Describes one kind of catalog entity and its category vocabulary."""

    key: MediaKind
    segment: str
    label: str
    creator_field: str
    genre_vocabulary: tuple[str, ...]
    default_genre: str


BOOK_GENRES: tuple[str, ...] = (
    "Fiction",
    "Non-Fiction",
    "Science Fiction",
    "Fantasy",
    "Mystery",
    "Thriller",
    "Romance",
    "Horror",
    "Biography",
    "History",
    "Science",
    "Self-Help",
    "Business",
    "Philosophy",
    "Poetry",
    "Children",
    "Young Adult",
    "Classics",
    "Graphic Novel",
    "Cookbook",
    "Travel",
    "Art",
    "Music",
    "Sports",
    "Religion",
    "Technology",
    "Health",
    "True Crime",
    "Humor",
    "Drama",
)

MOVIE_GENRES: tuple[str, ...] = (
    "Action",
    "Adventure",
    "Animation",
    "Comedy",
    "Crime",
    "Documentary",
    "Drama",
    "Family",
    "Fantasy",
    "History",
    "Horror",
    "Music",
    "Mystery",
    "Romance",
    "Science Fiction",
    "Thriller",
    "War",
    "Western",
)

TVSHOW_GENRES: tuple[str, ...] = (
    "Action & Adventure",
    "Animation",
    "Comedy",
    "Crime",
    "Documentary",
    "Drama",
    "Family",
    "Kids",
    "Mystery",
    "News",
    "Reality",
    "Sci-Fi & Fantasy",
    "Soap",
    "Talk",
    "War & Politics",
    "Western",
)

PODCAST_GENRES: tuple[str, ...] = (
    "Arts",
    "Business",
    "Comedy",
    "Education",
    "Fiction",
    "Government",
    "Health & Fitness",
    "History",
    "Kids & Family",
    "Leisure",
    "Music",
    "News",
    "Religion & Spirituality",
    "Science",
    "Society & Culture",
    "Sports",
    "Technology",
    "True Crime",
    "TV & Film",
)

ARTICLE_GENRES: tuple[str, ...] = (
    "News",
    "Politics",
    "Business",
    "Technology",
    "Science",
    "Health",
    "Culture",
    "Opinion",
    "Sports",
    "Travel",
    "Food",
    "Style",
    "Education",
    "Climate",
)


MEDIA_KINDS: tuple[MediaKindDefinition, ...] = (
    MediaKindDefinition(
        key="book",
        segment="books",
        label="Book",
        creator_field="author",
        genre_vocabulary=BOOK_GENRES,
        default_genre="Non-Fiction",
    ),
    MediaKindDefinition(
        key="movie",
        segment="movies",
        label="Movie",
        creator_field="director",
        genre_vocabulary=MOVIE_GENRES,
        default_genre="Drama",
    ),
    MediaKindDefinition(
        key="podcast",
        segment="podcasts",
        label="Podcast",
        creator_field="creator",
        genre_vocabulary=PODCAST_GENRES,
        default_genre="Society & Culture",
    ),
    MediaKindDefinition(
        key="tvshow",
        segment="tvshows",
        label="TV show",
        creator_field="creator",
        genre_vocabulary=TVSHOW_GENRES,
        default_genre="Drama",
    ),
    MediaKindDefinition(
        key="article",
        segment="articles",
        label="Article",
        creator_field="author",
        genre_vocabulary=ARTICLE_GENRES,
        default_genre="News",
    ),
)

MEDIA_KIND_KEYS: tuple[str, ...] = tuple(definition.key for definition in MEDIA_KINDS)


def get_media_kind(value: str) -> MediaKindDefinition:
    """Resolve a kind key (``book``) or URL segment (``books``)."""

    normalized = (value or "").strip().lower()
    for definition in MEDIA_KINDS:
        if normalized in (definition.key, definition.segment):
            return definition
    raise KeyError(f"Unknown media kind: {value}")
