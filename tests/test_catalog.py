from __future__ import annotations

import asyncio

import pytest

from app.database import Database
from app.services.catalog import CatalogRepository


async def _repository(tmp_path, name: str) -> tuple[Database, CatalogRepository]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / name}")
    await database.create_all()
    return database, CatalogRepository(database.session_factory)


def test_find_or_create_matches_ignoring_case(tmp_path) -> None:
    async def runner() -> None:
        database, catalog = await _repository(tmp_path, "match.db")

        first, created = await catalog.find_or_create("book", "Dune", "Frank Herbert")
        again, created_again = await catalog.find_or_create("books", " dune ", "FRANK HERBERT")
        anonymous, created_anonymous = await catalog.find_or_create("book", "Dune")

        assert created is True
        assert created_again is False
        assert again["id"] == first["id"]
        assert created_anonymous is True
        assert anonymous["id"] != first["id"]
        assert anonymous["author"] is None
        assert first["details_fetched_at"] is None

        await database.dispose()

    asyncio.run(runner())


def test_new_entities_carry_identity_fields_only(tmp_path) -> None:
    async def runner() -> None:
        database, catalog = await _repository(tmp_path, "identity.db")

        movie, _ = await catalog.find_or_create(
            "movie",
            "Dune",
            "Denis Villeneuve",
            2021,
            {"tmdb_id": 438631, "details_fetched_at": "2020-01-01", "unknown": 1},
        )
        show, _ = await catalog.find_or_create("tvshow", "Severance", year=2022)

        assert movie["year"] == 2021
        assert movie["tmdb_id"] == 438631
        assert movie["details_fetched_at"] is None
        assert "unknown" not in movie
        assert show["first_air_date"] == "2022"

        await database.dispose()

    asyncio.run(runner())


def test_articles_are_matched_by_url(tmp_path) -> None:
    async def runner() -> None:
        database, catalog = await _repository(tmp_path, "articles.db")
        url = "https://news.example.com/2024/03/05/robots"

        first, _ = await catalog.find_or_create("article", "Robots", extra={"article_url": url})
        again, created = await catalog.find_or_create(
            "article", "Robots Rising (updated)", extra={"article_url": f" {url} "}
        )

        assert created is False
        assert again["id"] == first["id"]

        with pytest.raises(ValueError):
            await catalog.find_or_create("article", "No URL")

        await database.dispose()

    asyncio.run(runner())


def test_title_is_required(tmp_path) -> None:
    async def runner() -> None:
        database, catalog = await _repository(tmp_path, "title.db")

        with pytest.raises(ValueError):
            await catalog.find_or_create("podcast", "   ")

        await database.dispose()

    asyncio.run(runner())


def test_shelf_keeps_insertion_order_and_updates_on_re_add(tmp_path) -> None:
    async def runner() -> None:
        database, catalog = await _repository(tmp_path, "shelf.db")
        dune, _ = await catalog.find_or_create("book", "Dune", "Frank Herbert")
        emma, _ = await catalog.find_or_create("book", "Emma", "Jane Austen")

        await catalog.add_to_shelf("reader-1", "book", emma["id"], notes="Re-read")
        await catalog.add_to_shelf("reader-1", "book", dune["id"], priority="high")
        updated = await catalog.add_to_shelf("reader-1", "book", emma["id"], status="finished")

        assert updated["notes"] == "Re-read"
        assert updated["status"] == "finished"
        assert updated["entity"]["title"] == "Emma"

        shelf = await catalog.list_shelf("reader-1", "books")
        assert [entry["entity"]["title"] for entry in shelf] == ["Emma", "Dune"]
        assert shelf[1]["priority"] == "high"
        assert await catalog.list_shelf("reader-2", "book") == []
        assert await catalog.list_shelf("reader-1", "movie") == []

        await database.dispose()

    asyncio.run(runner())


def test_unknown_entities_raise_key_error(tmp_path) -> None:
    async def runner() -> None:
        database, catalog = await _repository(tmp_path, "unknown.db")

        with pytest.raises(KeyError):
            await catalog.get("movie", "missing")
        with pytest.raises(KeyError):
            await catalog.add_to_shelf("reader-1", "movie", "missing")

        await database.dispose()

    asyncio.run(runner())
