"""Fetch-once cache of provider details stored on the shared catalog rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import CATALOG_MODELS, CatalogEntityMixin, serialise_entity
from ..errors import CatalogConflictError, DetailPersistenceError
from ..media_kinds import MediaKindDefinition, get_media_kind
from ..models import (
    DetailsResult,
    EntityLookup,
    GenreHints,
    has_value,
    merge_details,
    replace_details,
)
from .base import DetailsProvider
from .genre import GenreDeducer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheLookup:
    """Outcome of :meth:`EntityDetailCache.get_or_fetch`."""

    entity: dict[str, Any]
    was_cached: bool
    persisted: bool = True


class EntityDetailCache:
    """Enrich catalog entities on first view and remember that it happened.

    ``details_fetched_at`` is the only cache key: once stamped, an entity is
    served from the database without contacting any provider until a forced
    refetch or an administrative clear. Rate limits propagate unstamped so
    the caller can retry; every other outcome stamps, even an empty one.
    Writes are plain ``UPDATE ... WHERE id = ?`` statements, so concurrent
    first viewers simply converge on the last write.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        providers: Mapping[str, DetailsProvider],
        genre_deducer: GenreDeducer | None = None,
        *,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._session_factory = session_factory
        self._providers = dict(providers)
        self._genre_deducer = genre_deducer
        self._clock = clock

    async def get_or_fetch(self, kind: str, entity_id: str) -> CacheLookup:
        definition = get_media_kind(kind)
        current = await self._load(definition, entity_id)
        if current.get("details_fetched_at") is not None:
            logger.debug("Serving cached %s %s", definition.key, entity_id)
            return CacheLookup(entity=serialise_entity(current), was_cached=True)

        details = await self._fetch(definition, entity_id, current)
        values = merge_details(current, details)
        await self._fill_genre(definition, current, values, details)
        values["details_fetched_at"] = self._clock()

        try:
            values = await self._store_details(definition, entity_id, current, values, details)
        except SQLAlchemyError:
            logger.exception(
                "Could not persist details for %s %s; serving them uncached",
                definition.key,
                entity_id,
            )
            unsaved = {**current, **values, "details_fetched_at": None}
            return CacheLookup(
                entity=serialise_entity(unsaved), was_cached=False, persisted=False
            )
        return CacheLookup(entity=serialise_entity({**current, **values}), was_cached=False)

    async def force_refetch(self, kind: str, entity_id: str) -> dict[str, Any]:
        """Re-query providers and replace the stored enrichment fields."""

        definition = get_media_kind(kind)
        current = await self._load(definition, entity_id)
        details = await self._fetch(definition, entity_id, current)
        values = replace_details(current, details)
        await self._fill_genre(definition, current, values, details)
        values["details_fetched_at"] = self._clock()

        try:
            values = await self._store_details(definition, entity_id, current, values, details)
        except SQLAlchemyError as exc:
            logger.exception("Could not persist refreshed %s %s", definition.key, entity_id)
            raise DetailPersistenceError(
                f"Failed to save refreshed details for {definition.key} {entity_id}"
            ) from exc
        return serialise_entity({**current, **values})

    async def invalidate(self, kind: str, entity_id: str) -> None:
        """Clear the stamp so the next view fetches again."""

        definition = get_media_kind(kind)
        await self._load(definition, entity_id)
        await self._store(definition, entity_id, {"details_fetched_at": None})
        logger.info("Cleared cached details for %s %s", definition.key, entity_id)

    async def correct_creator(self, kind: str, entity_id: str, creator: str) -> dict[str, Any]:
        """Replace the author/director/creator and re-open the entity for enrichment."""

        creator = (creator or "").strip()
        if not creator:
            raise ValueError("Creator must not be empty")
        definition = get_media_kind(kind)
        current = await self._load(definition, entity_id)
        values = {definition.creator_field: creator, "details_fetched_at": None}
        try:
            await self._store(definition, entity_id, values)
        except IntegrityError as exc:
            raise CatalogConflictError(
                f"Another {definition.key} titled {current['title']!r} already has"
                f" {definition.creator_field} {creator!r}"
            ) from exc
        return serialise_entity({**current, **values})

    def _model(self, definition: MediaKindDefinition) -> type[CatalogEntityMixin]:
        return CATALOG_MODELS[definition.key]

    async def _load(self, definition: MediaKindDefinition, entity_id: str) -> dict[str, Any]:
        model = self._model(definition)
        async with self._session_factory() as session:
            entity = await session.get(model, entity_id)
            if entity is None:
                raise KeyError(f"Unknown {definition.key}: {entity_id}")
            return entity.column_values()

    async def _fetch(
        self, definition: MediaKindDefinition, entity_id: str, current: dict[str, Any]
    ) -> DetailsResult:
        provider = self._providers.get(definition.key)
        if provider is None:
            raise KeyError(f"No details provider configured for {definition.key}")
        lookup = self._lookup_from(definition, current)
        logger.info("Fetching %s details for %s (%s)", definition.key, lookup.title, entity_id)
        return await provider.fetch_details(lookup)

    def _lookup_from(
        self, definition: MediaKindDefinition, current: dict[str, Any]
    ) -> EntityLookup:
        entity = self._model(definition)(**current)
        return entity.to_lookup()

    async def _fill_genre(
        self,
        definition: MediaKindDefinition,
        current: dict[str, Any],
        values: dict[str, Any],
        details: DetailsResult,
    ) -> None:
        if has_value(values.get("suggested_genre")) or self._genre_deducer is None:
            return

        merged = type(details).model_validate(
            {key: value for key, value in values.items() if value is not None}
        )
        hints = GenreHints(
            title=current["title"],
            creator=values.get(definition.creator_field) or current.get(definition.creator_field),
            description=merged.description,
            subjects=merged.genre_subjects(),
        )
        if not hints.has_context():
            return
        try:
            genre = await self._genre_deducer.deduce_genre(definition.key, hints)
        except Exception:  # pragma: no cover - deducer already absorbs its failures
            logger.exception("Genre deduction raised for %s %r", definition.key, hints.title)
            return
        if genre:
            values["suggested_genre"] = genre

    async def _store_details(
        self,
        definition: MediaKindDefinition,
        entity_id: str,
        current: dict[str, Any],
        values: dict[str, Any],
        details: DetailsResult,
    ) -> dict[str, Any]:
        """Write fetched values, keeping the stored identity on a unique-key clash.

        A provider may fill in an identity field (a book's author, say) that
        makes the row collide with another catalog entry. The enrichment and
        the stamp are still written in that case; only the changed identity
        fields are left as they were.
        """

        try:
            await self._store(definition, entity_id, values)
            return values
        except IntegrityError:
            kept = {
                name: value
                for name, value in values.items()
                if name not in details.identity_fields or value == current.get(name)
            }
            logger.warning(
                "Fetched identity for %s %s clashes with another entry; keeping stored %s",
                definition.key,
                entity_id,
                ", ".join(sorted(set(values) - set(kept))),
            )
        await self._store(definition, entity_id, kept)
        return kept

    async def _store(
        self, definition: MediaKindDefinition, entity_id: str, values: dict[str, Any]
    ) -> None:
        model = self._model(definition)
        async with self._session_factory() as session:
            await session.execute(
                update(model).where(model.id == entity_id).values(**values)
            )
            await session.commit()
