"""Database utilities for the MediaShelf service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import MetaData, inspect, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

CATALOG_TABLES: tuple[str, ...] = ("books", "movies", "podcasts", "tvshows", "articles")


class Base(DeclarativeBase):
    """Declarative base with consistent naming conventions."""

    metadata = MetaData()


class Database:
    """Thin wrapper managing the SQLAlchemy async engine and sessions."""

    def __init__(self, database_url: str):
        self._engine: AsyncEngine = create_async_engine(database_url, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_all(self) -> None:
        """Create database tables if they do not yet exist."""

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
            await connection.run_sync(self._apply_schema_migrations)

    @staticmethod
    def _apply_schema_migrations(sync_connection) -> None:
        """Ensure newly introduced columns are available on existing tables."""

        inspector = inspect(sync_connection)
        table_names = set(inspector.get_table_names())

        for table in CATALOG_TABLES:
            if table not in table_names:
                continue
            existing_columns = {
                column["name"] for column in inspector.get_columns(table)
            }

            def _ensure_column(name: str, ddl: str) -> None:
                if name in existing_columns:
                    return
                sync_connection.execute(text(ddl))
                existing_columns.add(name)

            _ensure_column(
                "suggested_genre",
                f"ALTER TABLE {table} ADD COLUMN suggested_genre VARCHAR(80)",
            )
            _ensure_column(
                "ratings",
                f"ALTER TABLE {table} ADD COLUMN ratings JSON",
            )
            _ensure_column(
                "details_fetched_at",
                f"ALTER TABLE {table} ADD COLUMN details_fetched_at DATETIME",
            )

    async def dispose(self) -> None:
        """Dispose of the underlying database engine."""

        await self._engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional scope around a series of operations."""

        async with self.session_factory() as session:
            yield session
