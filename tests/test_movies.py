"""TMDB and OMDb backed movie and TV provider tests."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from app.config import Settings
from app.errors import RateLimitError
from app.models import EntityLookup
from app.services.movies import (
    MovieDetailsProvider,
    letterboxd_search_url,
    parse_omdb_scores,
)
from app.services.tvshows import TVShowDetailsProvider

SEARCH_RESULTS = {
    "results": [
        {"id": 841, "title": "Dune", "release_date": "1984-12-14"},
        {"id": 438631, "title": "Dune", "release_date": "2021-10-22"},
    ]
}

MOVIE_DETAILS = {
    "id": 438631,
    "imdb_id": "tt1160419",
    "overview": "Paul Atreides travels to Arrakis.",
    "tagline": "Beyond fear, destiny awaits.",
    "runtime": 155,
    "release_date": "2021-10-22",
    "vote_average": 7.8,
    "vote_count": 9000,
    "poster_path": "/poster.jpg",
    "backdrop_path": "/backdrop.jpg",
    "budget": 165000000,
    "revenue": 0,
    "genres": [{"name": "Science Fiction"}, {"name": "Adventure"}],
    "production_companies": [{"name": "Legendary Pictures"}],
    "credits": {
        "cast": [
            {"name": "Rebecca Ferguson", "order": 1},
            {"name": "Timothée Chalamet", "order": 0},
        ],
        "crew": [
            {"name": "Hans Zimmer", "job": "Original Music Composer"},
            {"name": "Denis Villeneuve", "job": "Director"},
        ],
    },
}

OMDB_PAYLOAD = {
    "Response": "True",
    "Ratings": [
        {"Source": "Internet Movie Database", "Value": "8.0/10"},
        {"Source": "Rotten Tomatoes", "Value": "83%"},
    ],
    "Metascore": "74",
    "imdbRating": "8.0",
    "imdbVotes": "1,234,567",
}


def _settings() -> Settings:
    return Settings(
        _env_file=None,
        TMDB_API_KEY="tmdb-key",
        OMDB_API_KEY="omdb-key",
        PROVIDER_REQUEST_INTERVAL_MS=0,
    )


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_omdb_scores_are_parsed() -> None:
    scores = parse_omdb_scores(OMDB_PAYLOAD)

    assert scores.rotten_tomatoes == 83
    assert scores.metacritic == 74
    assert scores.imdb_rating == 8.0
    assert scores.imdb_votes == 1234567


def test_omdb_placeholders_are_ignored() -> None:
    scores = parse_omdb_scores({"Metascore": "N/A", "imdbRating": "N/A", "imdbVotes": "N/A"})

    assert scores.metacritic is None
    assert scores.imdb_rating is None
    assert scores.imdb_votes is None


def test_letterboxd_search_url() -> None:
    assert letterboxd_search_url("Dune", 2021) == "https://letterboxd.com/search/Dune%202021/"


@pytest.mark.anyio("asyncio")
async def test_movie_details_combine_tmdb_and_omdb() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path == "/3/search/movie":
            assert request.url.params["year"] == "2021"
            return httpx.Response(200, json=SEARCH_RESULTS)
        if request.url.path == "/3/movie/438631":
            assert request.url.params["append_to_response"] == "credits"
            return httpx.Response(200, json=MOVIE_DETAILS)
        if request.url.host == "www.omdbapi.com":
            assert request.url.params["t"] == "Dune"
            assert request.url.params["y"] == "2021"
            return httpx.Response(200, json=OMDB_PAYLOAD)
        return httpx.Response(404)

    async with _client(handler) as client:
        provider = MovieDetailsProvider(_settings(), client)
        details = await provider.fetch_details(EntityLookup(title="Dune", year=2021))

    assert details.tmdb_id == 438631
    assert details.director == "Denis Villeneuve"
    assert details.cast_members == ["Timothée Chalamet", "Rebecca Ferguson"]
    assert details.poster_image == "https://image.tmdb.org/t/p/w500/poster.jpg"
    assert details.backdrop_image == "https://image.tmdb.org/t/p/w780/backdrop.jpg"
    assert details.revenue is None
    assert details.suggested_genre == "Science Fiction"
    assert details.imdb_url == "https://www.imdb.com/title/tt1160419"
    assert [rating.source for rating in details.ratings] == [
        "TMDB",
        "Rotten Tomatoes",
        "Metacritic",
        "IMDb",
        "Letterboxd",
    ]
    rotten = details.ratings[1]
    assert rotten.rating == 83
    assert rotten.display_format == "percentage"
    assert details.ratings[2].display_format == "score"
    assert details.ratings[3].ratings_count == 1234567
    assert details.ratings[4].url == "https://letterboxd.com/search/Dune%202021/"


@pytest.mark.anyio("asyncio")
async def test_known_tmdb_id_skips_search() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path == "/3/movie/438631":
            return httpx.Response(200, json=MOVIE_DETAILS)
        return httpx.Response(200, json={"Response": "False", "Error": "Movie not found!"})

    async with _client(handler) as client:
        provider = MovieDetailsProvider(_settings(), client)
        details = await provider.fetch_details(
            EntityLookup(title="Dune", creator="D. Villeneuve", known_ids={"tmdb_id": "438631"})
        )

    assert "/3/search/movie" not in paths
    assert details.director == "D. Villeneuve"
    assert details.year == 2021
    assert [rating.source for rating in details.ratings] == ["TMDB", "Letterboxd"]


@pytest.mark.anyio("asyncio")
async def test_omdb_request_limit_raises_rate_limit() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "www.omdbapi.com":
            return httpx.Response(
                401, json={"Response": "False", "Error": "Request limit reached!"}
            )
        return httpx.Response(200, json={"results": []})

    async with _client(handler) as client:
        provider = MovieDetailsProvider(_settings(), client)
        with pytest.raises(RateLimitError):
            await provider.fetch_details(EntityLookup(title="Dune"))


@pytest.mark.anyio("asyncio")
async def test_movie_without_matches_keeps_letterboxd_link() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "www.omdbapi.com":
            return httpx.Response(200, json={"Response": "False", "Error": "Movie not found!"})
        return httpx.Response(200, json={"results": []})

    async with _client(handler) as client:
        provider = MovieDetailsProvider(_settings(), client)
        details = await provider.fetch_details(EntityLookup(title="Nothing Like This"))

    assert details.tmdb_id is None
    assert details.description is None
    assert [rating.source for rating in details.ratings] == ["Letterboxd"]


@pytest.mark.anyio("asyncio")
async def test_tmdb_is_skipped_without_api_key() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    async with _client(handler) as client:
        provider = MovieDetailsProvider(
            Settings(_env_file=None, PROVIDER_REQUEST_INTERVAL_MS=0), client
        )
        details = await provider.fetch_details(EntityLookup(title="Dune"))

    assert calls == []
    assert details.letterboxd_url == "https://letterboxd.com/search/Dune/"


@pytest.mark.anyio("asyncio")
async def test_tv_details_use_external_ids() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/3/tv/1399"
        assert request.url.params["append_to_response"] == "credits,external_ids"
        return httpx.Response(
            200,
            json={
                "id": 1399,
                "overview": "Seven noble families fight for control.",
                "first_air_date": "2011-04-17",
                "vote_average": 8.4,
                "vote_count": 21000,
                "created_by": [{"name": "David Benioff"}, {"name": "D. B. Weiss"}],
                "genres": [{"name": "Sci-Fi & Fantasy"}, {"name": "Drama"}],
                "networks": [{"name": "HBO"}],
                "number_of_seasons": 8,
                "number_of_episodes": 73,
                "episode_run_time": [60],
                "status": "Ended",
                "in_production": False,
                "external_ids": {"imdb_id": "tt0944947"},
            },
        )

    async with _client(handler) as client:
        provider = TVShowDetailsProvider(_settings(), client)
        details = await provider.fetch_details(
            EntityLookup(title="Game of Thrones", known_ids={"tmdb_id": "1399"})
        )

    assert details.creator == "David Benioff, D. B. Weiss"
    assert details.networks == ["HBO"]
    assert details.in_production is False
    assert details.suggested_genre == "Sci-Fi & Fantasy"
    assert details.imdb_url == "https://www.imdb.com/title/tt0944947"
    assert [(rating.source, rating.rating) for rating in details.ratings] == [
        ("TMDB", 8.4),
        ("IMDb", None),
    ]
