from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, inspect, text

from app.database import Database


def _initialise_legacy_schema(database_path: str) -> None:
    """Create a legacy books table lacking the enrichment bookkeeping columns."""

    engine = create_engine(f"sqlite:///{database_path}")
    try:
        with engine.begin() as connection:
            connection.execute(
                text(
                    """
                    CREATE TABLE books (
                        id VARCHAR(36) PRIMARY KEY,
                        title VARCHAR(500),
                        description TEXT,
                        author VARCHAR(300),
                        cover_image TEXT,
                        isbn VARCHAR(20),
                        published_date VARCHAR(32),
                        publisher VARCHAR(300),
                        page_count INTEGER,
                        subjects JSON,
                        goodreads_url TEXT,
                        amazon_url TEXT,
                        created_at DATETIME
                    )
                    """
                )
            )
    finally:
        engine.dispose()


def test_create_all_adds_enrichment_columns(tmp_path) -> None:
    """Schema migrations should backfill the genre, ratings and stamp columns."""

    database_path = tmp_path / "legacy.db"
    _initialise_legacy_schema(str(database_path))

    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        columns = {column["name"] for column in inspector.get_columns("books")}
        tables = set(inspector.get_table_names())
    finally:
        inspector_engine.dispose()

    assert {"suggested_genre", "ratings", "details_fetched_at"} <= columns
    assert {"movies", "tvshows", "podcasts", "articles", "shelf_entries"} <= tables
