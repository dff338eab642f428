"""Catalog entity lifecycle and per-user shelf membership."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import CATALOG_MODELS, CatalogEntityMixin, ShelfEntry
from ..media_kinds import MediaKindDefinition, get_media_kind

logger = logging.getLogger(__name__)

SHELF_FIELDS = ("notes", "priority", "status")


class CatalogRepository:
    """Find-or-create catalog entities and keep users' shelves pointing at them."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_or_create(
        self,
        kind: str,
        title: str,
        creator: str | None = None,
        year: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> tuple[dict[str, Any], bool]:
        """Return the matching entity (creating it when needed) and whether it is new.

        Entities are matched on title and creator ignoring case; articles are
        matched on their URL instead. New rows carry identifying fields only.
        """

        definition = get_media_kind(kind)
        model = CATALOG_MODELS[definition.key]
        title = (title or "").strip()
        if not title:
            raise ValueError("Title is required")
        creator = (creator or "").strip() or None
        extra = dict(extra or {})

        async with self._session_factory() as session:
            existing = await self._find(session, definition, model, title, creator, extra)
            if existing is not None:
                return existing.to_payload(), False

            values = self._identity_values(definition, model, title, creator, year, extra)
            entity = model(**values)
            session.add(entity)
            await session.commit()
            logger.info("Created %s %r (%s)", definition.key, title, entity.id)
            return entity.to_payload(), True

    async def get(self, kind: str, entity_id: str) -> dict[str, Any]:
        definition = get_media_kind(kind)
        async with self._session_factory() as session:
            entity = await session.get(CATALOG_MODELS[definition.key], entity_id)
            if entity is None:
                raise KeyError(f"Unknown {definition.key}: {entity_id}")
            return entity.to_payload()

    async def add_to_shelf(
        self,
        user_id: str,
        kind: str,
        entity_id: str,
        *,
        notes: str | None = None,
        priority: str | None = None,
        status: str | None = None,
    ) -> dict[str, Any]:
        """Put an entity on a user's shelf; re-adding updates the user fields."""

        definition = get_media_kind(kind)
        async with self._session_factory() as session:
            entity = await session.get(CATALOG_MODELS[definition.key], entity_id)
            if entity is None:
                raise KeyError(f"Unknown {definition.key}: {entity_id}")

            result = await session.execute(
                select(ShelfEntry).where(
                    ShelfEntry.user_id == user_id,
                    ShelfEntry.kind == definition.key,
                    ShelfEntry.entity_id == entity_id,
                )
            )
            entry = result.scalar_one_or_none()
            if entry is None:
                entry = ShelfEntry(user_id=user_id, kind=definition.key, entity_id=entity_id)
                session.add(entry)
            for field, value in (("notes", notes), ("priority", priority), ("status", status)):
                if value is not None:
                    setattr(entry, field, value)
            await session.commit()
            return self._shelf_payload(entry, entity)

    async def list_shelf(self, user_id: str, kind: str) -> list[dict[str, Any]]:
        """Return a user's shelf for one kind in insertion order."""

        definition = get_media_kind(kind)
        model = CATALOG_MODELS[definition.key]
        async with self._session_factory() as session:
            result = await session.execute(
                select(ShelfEntry, model)
                .join(model, model.id == ShelfEntry.entity_id)
                .where(ShelfEntry.user_id == user_id, ShelfEntry.kind == definition.key)
                .order_by(ShelfEntry.id)
            )
            return [self._shelf_payload(entry, entity) for entry, entity in result.all()]

    @staticmethod
    async def _find(
        session: AsyncSession,
        definition: MediaKindDefinition,
        model: type[CatalogEntityMixin],
        title: str,
        creator: str | None,
        extra: dict[str, Any],
    ) -> CatalogEntityMixin | None:
        if definition.key == "article":
            url = (extra.get("article_url") or "").strip()
            if not url:
                raise ValueError("article_url is required for articles")
            statement = select(model).where(model.article_url == url)  # type: ignore[attr-defined]
        else:
            creator_column = getattr(model, definition.creator_field)
            statement = select(model).where(func.lower(model.title) == title.lower())
            if creator:
                statement = statement.where(func.lower(creator_column) == creator.lower())
            else:
                statement = statement.where(creator_column.is_(None))
        result = await session.execute(statement.limit(1))
        return result.scalar_one_or_none()

    @staticmethod
    def _identity_values(
        definition: MediaKindDefinition,
        model: type[CatalogEntityMixin],
        title: str,
        creator: str | None,
        year: int | None,
        extra: dict[str, Any],
    ) -> dict[str, Any]:
        columns = set(model.__table__.columns.keys())  # type: ignore[attr-defined]
        values = {
            key: value
            for key, value in extra.items()
            if key in columns and key not in {"id", "details_fetched_at", "created_at"}
        }
        values["title"] = title
        values[definition.creator_field] = creator
        if year is not None and "year" in columns:
            values["year"] = year
        elif year is not None and "first_air_date" in columns:
            values.setdefault("first_air_date", str(year))
        if "article_url" in values:
            values["article_url"] = values["article_url"].strip()
        return values

    @staticmethod
    def _shelf_payload(entry: ShelfEntry, entity: CatalogEntityMixin) -> dict[str, Any]:
        return {
            "id": entry.id,
            "user_id": entry.user_id,
            "kind": entry.kind,
            "entity_id": entry.entity_id,
            **{field: getattr(entry, field) for field in SHELF_FIELDS},
            "created_at": entry.created_at.isoformat() if entry.created_at else None,
            "entity": entity.to_payload(),
        }
