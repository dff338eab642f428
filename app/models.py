"""Pydantic models describing provider lookups and fetched details."""

from __future__ import annotations

from typing import Any, ClassVar, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field

DisplayFormat = Literal["stars", "percentage", "score"]


class RatingEntry(BaseModel):
    """One named rating source, possibly link-only."""

    source: str
    rating: float | None = None
    ratings_count: int | None = None
    url: str | None = None
    display_format: DisplayFormat = "stars"


class EntityLookup(BaseModel):
    """Identifying fields handed to a provider client."""

    title: str
    creator: str | None = None
    year: int | None = None
    known_ids: dict[str, str] = Field(default_factory=dict)

    def known_id(self, name: str) -> str | None:
        value = self.known_ids.get(name)
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class GenreHints(BaseModel):
    """Context submitted to the genre classifier."""

    title: str
    creator: str | None = None
    description: str | None = None
    subjects: list[str] = Field(default_factory=list)

    def has_context(self) -> bool:
        return bool(self.description or self.subjects)


class DetailsResult(BaseModel):
    """Normalised provider output shared by every media kind.

    Field names match the catalog columns they are written to. Fields listed
    in ``identity_fields`` identify the entity (creator, year, external ids)
    and are only ever filled in, never cleared; all other fields are
    enrichment columns.
    """

    model_config = ConfigDict(extra="ignore")

    kind: ClassVar[str] = ""
    identity_fields: ClassVar[tuple[str, ...]] = ()

    description: str | None = None
    ratings: list[RatingEntry] = Field(default_factory=list)
    suggested_genre: str | None = None

    def column_values(self) -> dict[str, Any]:
        """Return column/value pairs with empty collections collapsed to ``None``."""

        values = self.model_dump(mode="json")
        return {
            name: (value if has_value(value) else None)
            for name, value in values.items()
        }

    def enrichment_fields(self) -> tuple[str, ...]:
        return tuple(
            name for name in type(self).model_fields if name not in self.identity_fields
        )

    def genre_subjects(self) -> list[str]:
        """Return the structured subjects worth showing the genre classifier."""

        return []

    def is_empty(self) -> bool:
        return not any(
            has_value(value)
            for name, value in self.column_values().items()
            if name not in self.identity_fields
        )


class BookDetails(DetailsResult):
    kind: ClassVar[str] = "book"
    identity_fields: ClassVar[tuple[str, ...]] = ("author",)

    author: str | None = None
    cover_image: str | None = None
    isbn: str | None = None
    published_date: str | None = None
    publisher: str | None = None
    page_count: int | None = None
    subjects: list[str] = Field(default_factory=list)
    goodreads_url: str | None = None
    amazon_url: str | None = None

    def genre_subjects(self) -> list[str]:
        return list(self.subjects)


class MovieDetails(DetailsResult):
    kind: ClassVar[str] = "movie"
    identity_fields: ClassVar[tuple[str, ...]] = (
        "director",
        "year",
        "tmdb_id",
        "imdb_id",
    )

    director: str | None = None
    year: int | None = None
    tmdb_id: int | None = None
    imdb_id: str | None = None
    runtime_minutes: int | None = None
    tagline: str | None = None
    poster_image: str | None = None
    backdrop_image: str | None = None
    cast_members: list[str] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    release_date: str | None = None
    budget: int | None = None
    revenue: int | None = None
    production_companies: list[str] = Field(default_factory=list)
    imdb_url: str | None = None
    letterboxd_url: str | None = None

    def genre_subjects(self) -> list[str]:
        return list(self.genres)


class TVShowDetails(DetailsResult):
    kind: ClassVar[str] = "tvshow"
    identity_fields: ClassVar[tuple[str, ...]] = (
        "creator",
        "first_air_date",
        "tmdb_id",
        "imdb_id",
    )

    creator: str | None = None
    first_air_date: str | None = None
    tmdb_id: int | None = None
    imdb_id: str | None = None
    tagline: str | None = None
    poster_image: str | None = None
    backdrop_image: str | None = None
    cast_members: list[str] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    networks: list[str] = Field(default_factory=list)
    number_of_seasons: int | None = None
    number_of_episodes: int | None = None
    episode_run_time: list[int] = Field(default_factory=list)
    status: str | None = None
    in_production: bool | None = None
    last_air_date: str | None = None
    production_companies: list[str] = Field(default_factory=list)
    origin_country: list[str] = Field(default_factory=list)
    original_language: str | None = None
    imdb_url: str | None = None

    def genre_subjects(self) -> list[str]:
        return list(self.genres)


class PodcastDetails(DetailsResult):
    kind: ClassVar[str] = "podcast"
    identity_fields: ClassVar[tuple[str, ...]] = (
        "creator",
        "itunes_id",
        "podcast_index_id",
    )

    creator: str | None = None
    itunes_id: str | None = None
    podcast_index_id: int | None = None
    cover_image: str | None = None
    rss_feed_url: str | None = None
    total_episodes: int | None = None
    genres: list[str] = Field(default_factory=list)
    language: str | None = None
    publisher: str | None = None
    website_url: str | None = None

    def genre_subjects(self) -> list[str]:
        return list(self.genres)


class ArticleDetails(DetailsResult):
    kind: ClassVar[str] = "article"
    identity_fields: ClassVar[tuple[str, ...]] = (
        "author",
        "publication",
        "publication_date",
    )

    author: str | None = None
    publication: str | None = None
    publication_date: str | None = None
    thumbnail_image: str | None = None
    section: str | None = None
    word_count: int | None = None
    reading_time_minutes: int | None = None
    subjects: list[str] = Field(default_factory=list)

    def genre_subjects(self) -> list[str]:
        subjects = list(self.subjects)
        if self.section and self.section not in subjects:
            subjects.insert(0, self.section)
        return subjects


DETAILS_MODELS: dict[str, type[DetailsResult]] = {
    model.kind: model
    for model in (BookDetails, MovieDetails, TVShowDetails, PodcastDetails, ArticleDetails)
}


def has_value(value: Any) -> bool:
    """Return whether a fetched value counts as present."""

    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)) and not value:
        return False
    return True


def merge_details(current: Mapping[str, Any], patch: DetailsResult) -> dict[str, Any]:
    """Merge fetched details onto stored values.

    Present provider values win; a field the provider left empty keeps the
    stored value.
    """

    merged: dict[str, Any] = {}
    for name, value in patch.column_values().items():
        merged[name] = value if has_value(value) else current.get(name)
    return merged


def replace_details(current: Mapping[str, Any], patch: DetailsResult) -> dict[str, Any]:
    """Overwrite stored enrichment values with fetched details.

    Enrichment fields the provider did not return become ``None``. Identity
    fields are still only filled in.
    """

    replaced = patch.column_values()
    for name in patch.identity_fields:
        if not has_value(replaced.get(name)):
            replaced[name] = current.get(name)
    return replaced


class CatalogEntryRequest(BaseModel):
    """Body of the find-or-create endpoint."""

    model_config = ConfigDict(extra="ignore")

    title: str
    creator: str | None = None
    year: int | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class ShelfEntryRequest(BaseModel):
    entity_id: str
    notes: str | None = None
    priority: str | None = None
    status: str | None = None


class CreatorCorrection(BaseModel):
    creator: str = Field(min_length=1)
