"""Entry point for the FastAPI-powered MediaShelf service."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from .config import Settings, settings
from .database import Database
from .errors import CatalogConflictError, DetailPersistenceError, RateLimitError
from .media_kinds import MediaKindDefinition, get_media_kind
from .models import CatalogEntryRequest, CreatorCorrection, ShelfEntryRequest
from .services.articles import ArticleDetailsProvider
from .services.base import DetailsProvider
from .services.books import BookDetailsProvider
from .services.catalog import CatalogRepository
from .services.detail_cache import EntityDetailCache
from .services.genre import GenreDeducer
from .services.movies import MovieDetailsProvider
from .services.podcasts import PodcastDetailsProvider
from .services.tvshows import TVShowDetailsProvider

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app: FastAPI


def build_providers(
    config: Settings, http_client: httpx.AsyncClient
) -> dict[str, DetailsProvider]:
    """Create one provider client per media kind sharing ``http_client``."""

    providers = (
        BookDetailsProvider(config, http_client),
        MovieDetailsProvider(config, http_client),
        TVShowDetailsProvider(config, http_client),
        PodcastDetailsProvider(config, http_client),
        ArticleDetailsProvider(config, http_client),
    )
    return {provider.kind: provider for provider in providers}


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    provider_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.provider_timeout_seconds, connect=5.0),
            follow_redirects=True,
        )
    )
    openrouter_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(timeout=httpx.Timeout(60.0, connect=10.0))
    )
    database = Database(settings.database_url)
    await database.create_all()

    fastapi_app.state.database = database
    fastapi_app.state.catalog = CatalogRepository(database.session_factory)
    fastapi_app.state.detail_cache = EntityDetailCache(
        database.session_factory,
        build_providers(settings, provider_client),
        GenreDeducer(settings, openrouter_client),
    )
    logger.info("%s ready (database %s)", settings.app_name, settings.database_url)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Shared media catalog with fetch-once metadata enrichment",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_detail_cache(fastapi_app: FastAPI) -> EntityDetailCache:
    cache = getattr(fastapi_app.state, "detail_cache", None)
    if cache is None:
        raise RuntimeError("Detail cache not initialised")
    return cache


def get_catalog(fastapi_app: FastAPI) -> CatalogRepository:
    catalog = getattr(fastapi_app.state, "catalog", None)
    if catalog is None:
        raise RuntimeError("Catalog repository not initialised")
    return catalog


def _resolve_kind(segment: str) -> MediaKindDefinition:
    try:
        return get_media_kind(segment)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown media kind: {segment}") from exc


def _rate_limited(exc: RateLimitError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=429)


async def _read_body(request: Request, model: type[BaseModel]) -> Any:
    try:
        payload = await request.json()
    except json.JSONDecodeError:
        payload = {}
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors()) from exc


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/{segment}/{entity_id}/details")
    async def get_details(segment: str, entity_id: str) -> JSONResponse:
        definition = _resolve_kind(segment)
        cache = get_detail_cache(fastapi_app)
        try:
            result = await cache.get_or_fetch(definition.key, entity_id)
        except RateLimitError as exc:
            logger.warning("Rate limited fetching %s %s", definition.key, entity_id)
            return _rate_limited(exc)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return JSONResponse(
            {
                "kind": definition.key,
                "entity": result.entity,
                "cached": result.was_cached,
            }
        )

    @fastapi_app.post("/api/{segment}/{entity_id}/details")
    async def refresh_details(segment: str, entity_id: str) -> JSONResponse:
        definition = _resolve_kind(segment)
        cache = get_detail_cache(fastapi_app)
        try:
            entity = await cache.force_refetch(definition.key, entity_id)
        except RateLimitError as exc:
            logger.warning("Rate limited refreshing %s %s", definition.key, entity_id)
            return _rate_limited(exc)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except DetailPersistenceError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return JSONResponse({"kind": definition.key, "entity": entity, "refreshed": True})

    @fastapi_app.delete("/api/{segment}/{entity_id}/details")
    async def clear_details(segment: str, entity_id: str) -> JSONResponse:
        definition = _resolve_kind(segment)
        try:
            await get_detail_cache(fastapi_app).invalidate(definition.key, entity_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return JSONResponse({"kind": definition.key, "id": entity_id, "cleared": True})

    @fastapi_app.put("/api/{segment}/{entity_id}/creator")
    async def correct_creator(segment: str, entity_id: str, request: Request) -> JSONResponse:
        definition = _resolve_kind(segment)
        body: CreatorCorrection = await _read_body(request, CreatorCorrection)
        cache = get_detail_cache(fastapi_app)
        try:
            entity = await cache.correct_creator(definition.key, entity_id, body.creator)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except CatalogConflictError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse({"kind": definition.key, "entity": entity})

    @fastapi_app.post("/api/{segment}")
    async def find_or_create(segment: str, request: Request) -> JSONResponse:
        definition = _resolve_kind(segment)
        body: CatalogEntryRequest = await _read_body(request, CatalogEntryRequest)
        catalog = get_catalog(fastapi_app)
        try:
            entity, created = await catalog.find_or_create(
                definition.key, body.title, body.creator, body.year, body.extra
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse(
            {"kind": definition.key, "entity": entity, "created": created},
            status_code=201 if created else 200,
        )

    @fastapi_app.get("/api/users/{user_id}/shelf/{segment}")
    async def list_shelf(user_id: str, segment: str) -> JSONResponse:
        definition = _resolve_kind(segment)
        entries = await get_catalog(fastapi_app).list_shelf(user_id, definition.key)
        return JSONResponse({"kind": definition.key, "entries": entries})

    @fastapi_app.post("/api/users/{user_id}/shelf/{segment}")
    async def add_to_shelf(user_id: str, segment: str, request: Request) -> JSONResponse:
        definition = _resolve_kind(segment)
        body: ShelfEntryRequest = await _read_body(request, ShelfEntryRequest)
        try:
            entry = await get_catalog(fastapi_app).add_to_shelf(
                user_id,
                definition.key,
                body.entity_id,
                notes=body.notes,
                priority=body.priority,
                status=body.status,
            )
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return JSONResponse(entry, status_code=201)


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
