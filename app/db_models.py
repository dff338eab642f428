"""SQLAlchemy ORM models backing the persistent state."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base
from .models import EntityLookup


def _new_id() -> str:
    return str(uuid.uuid4())


class CatalogEntityMixin:
    """Columns shared by every catalog entity regardless of kind."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(500))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    ratings: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    suggested_genre: Mapped[str | None] = mapped_column(String(80), nullable=True)
    details_fetched_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    kind = ""
    creator_field = ""

    def column_values(self) -> dict[str, Any]:
        """Return the raw value of every mapped column."""

        return {
            column.key: getattr(self, column.key)
            for column in self.__table__.columns  # type: ignore[attr-defined]
        }

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-friendly view of the entity."""

        return serialise_entity(self.column_values())

    def to_lookup(self) -> EntityLookup:
        creator = getattr(self, self.creator_field, None) if self.creator_field else None
        return EntityLookup(title=self.title, creator=creator or None)


def serialise_entity(values: dict[str, Any]) -> dict[str, Any]:
    """Render datetimes as ISO strings so payloads survive JSON encoding."""

    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in values.items()
    }


class Book(CatalogEntityMixin, Base):
    """Shared book catalog entry."""

    __tablename__ = "books"
    __table_args__ = (UniqueConstraint("title", "author", name="uq_book_title_author"),)

    kind = "book"
    creator_field = "author"

    author: Mapped[str | None] = mapped_column(String(300), nullable=True)
    cover_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    isbn: Mapped[str | None] = mapped_column(String(20), nullable=True)
    published_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    publisher: Mapped[str | None] = mapped_column(String(300), nullable=True)
    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    subjects: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    goodreads_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    amazon_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_lookup(self) -> EntityLookup:
        lookup = super().to_lookup()
        if self.isbn:
            lookup.known_ids["isbn"] = self.isbn
        return lookup


class Movie(CatalogEntityMixin, Base):
    """Shared movie catalog entry."""

    __tablename__ = "movies"

    kind = "movie"
    creator_field = "director"

    director: Mapped[str | None] = mapped_column(String(300), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tmdb_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    imdb_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    runtime_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tagline: Mapped[str | None] = mapped_column(Text, nullable=True)
    poster_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    backdrop_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    cast_members: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    genres: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    release_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    budget: Mapped[int | None] = mapped_column(Integer, nullable=True)
    revenue: Mapped[int | None] = mapped_column(Integer, nullable=True)
    production_companies: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    imdb_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    letterboxd_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_lookup(self) -> EntityLookup:
        lookup = super().to_lookup()
        lookup.year = self.year
        if self.tmdb_id:
            lookup.known_ids["tmdb_id"] = str(self.tmdb_id)
        if self.imdb_id:
            lookup.known_ids["imdb_id"] = self.imdb_id
        return lookup


class TVShow(CatalogEntityMixin, Base):
    """Shared TV show catalog entry."""

    __tablename__ = "tvshows"

    kind = "tvshow"
    creator_field = "creator"

    creator: Mapped[str | None] = mapped_column(String(300), nullable=True)
    first_air_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    tmdb_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    imdb_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    tagline: Mapped[str | None] = mapped_column(Text, nullable=True)
    poster_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    backdrop_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    cast_members: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    genres: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    networks: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    number_of_seasons: Mapped[int | None] = mapped_column(Integer, nullable=True)
    number_of_episodes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    episode_run_time: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    in_production: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    last_air_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    production_companies: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    origin_country: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    original_language: Mapped[str | None] = mapped_column(String(16), nullable=True)
    imdb_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_lookup(self) -> EntityLookup:
        lookup = super().to_lookup()
        if self.first_air_date and self.first_air_date[:4].isdigit():
            lookup.year = int(self.first_air_date[:4])
        if self.tmdb_id:
            lookup.known_ids["tmdb_id"] = str(self.tmdb_id)
        return lookup


class Podcast(CatalogEntityMixin, Base):
    """Shared podcast catalog entry."""

    __tablename__ = "podcasts"

    kind = "podcast"
    creator_field = "creator"

    creator: Mapped[str | None] = mapped_column(String(300), nullable=True)
    itunes_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    podcast_index_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cover_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    rss_feed_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_episodes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    genres: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    language: Mapped[str | None] = mapped_column(String(32), nullable=True)
    publisher: Mapped[str | None] = mapped_column(String(300), nullable=True)
    website_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_lookup(self) -> EntityLookup:
        lookup = super().to_lookup()
        if self.itunes_id:
            lookup.known_ids["itunes_id"] = self.itunes_id
        if self.rss_feed_url:
            lookup.known_ids["rss_feed_url"] = self.rss_feed_url
        return lookup


class Article(CatalogEntityMixin, Base):
    """Shared article catalog entry, unique by URL."""

    __tablename__ = "articles"

    kind = "article"
    creator_field = "author"

    article_url: Mapped[str] = mapped_column(String(1000), unique=True)
    author: Mapped[str | None] = mapped_column(String(300), nullable=True)
    publication: Mapped[str | None] = mapped_column(String(200), nullable=True)
    publication_date: Mapped[str | None] = mapped_column(String(40), nullable=True)
    thumbnail_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    section: Mapped[str | None] = mapped_column(String(120), nullable=True)
    word_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reading_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    subjects: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    def to_lookup(self) -> EntityLookup:
        lookup = super().to_lookup()
        lookup.known_ids["article_url"] = self.article_url
        return lookup


class ShelfEntry(Base):
    """A user's membership row referencing one catalog entity."""

    __tablename__ = "shelf_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "kind", "entity_id", name="uq_shelf_entry"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    kind: Mapped[str] = mapped_column(String(16))
    entity_id: Mapped[str] = mapped_column(String(36), index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


CATALOG_MODELS: dict[str, type[CatalogEntityMixin]] = {
    model.kind: model for model in (Book, Movie, Podcast, TVShow, Article)
}
