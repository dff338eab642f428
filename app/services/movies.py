"""Movie metadata resolved from TMDB with OMDb critic scores."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from ..config import Settings
from ..media_kinds import MOVIE_GENRES
from ..models import EntityLookup, MovieDetails, RatingEntry
from ..utils import coerce_float, coerce_int, parse_year
from .base import response_payload
from .tmdb import BACKDROP_BASE_URL, POSTER_BASE_URL, TMDBProvider

logger = logging.getLogger(__name__)

OMDB_QUOTA_MESSAGE = "request limit reached"


@dataclass(slots=True)
class OMDbScores:
    rotten_tomatoes: int | None = None
    metacritic: int | None = None
    imdb_rating: float | None = None
    imdb_votes: int | None = None


def imdb_title_url(imdb_id: str) -> str:
    return f"https://www.imdb.com/title/{imdb_id}"


def letterboxd_search_url(title: str, year: int | None) -> str:
    query = f"{title} {year}" if year else title
    return f"https://letterboxd.com/search/{quote(query)}/"


def primary_genre(genres: list[str], vocabulary: tuple[str, ...]) -> str | None:
    """Return the first provider genre that belongs to the shelf vocabulary."""

    for genre in genres:
        if genre in vocabulary:
            return genre
    return None


def parse_omdb_scores(payload: dict[str, Any]) -> OMDbScores:
    scores = OMDbScores()
    for entry in payload.get("Ratings") or []:
        if entry.get("Source") == "Rotten Tomatoes":
            scores.rotten_tomatoes = coerce_int(str(entry.get("Value", "")).rstrip("%"))
    if payload.get("Metascore") not in (None, "N/A"):
        scores.metacritic = coerce_int(payload["Metascore"])
    if payload.get("imdbRating") not in (None, "N/A"):
        scores.imdb_rating = coerce_float(payload["imdbRating"])
    if payload.get("imdbVotes") not in (None, "N/A"):
        scores.imdb_votes = coerce_int(payload["imdbVotes"])
    return scores


class MovieDetailsProvider(TMDBProvider):
    """TMDB details and credits combined with OMDb ratings."""

    kind = "movie"
    content_type = "movie"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient, **kwargs: Any):
        super().__init__(settings, http_client, **kwargs)
        self._omdb_url = settings.api_base(settings.omdb_api_url)

    async def fetch_details(self, lookup: EntityLookup) -> MovieDetails:
        tmdb_id = await self.resolve_tmdb_id(
            lookup.title, year=lookup.year, known=lookup.known_id("tmdb_id")
        )
        details: dict[str, Any] = {}
        if tmdb_id is not None:
            details = await self.details(tmdb_id, append="credits") or {}

        year = lookup.year or parse_year(details.get("release_date"))
        omdb = await self._fetch_omdb(lookup.title, year)
        imdb_id = details.get("imdb_id") or lookup.known_id("imdb_id")

        ratings: list[RatingEntry] = []
        if details.get("vote_average"):
            ratings.append(
                RatingEntry(
                    source="TMDB",
                    rating=details["vote_average"],
                    ratings_count=details.get("vote_count"),
                    url=f"https://www.themoviedb.org/movie/{details.get('id')}",
                )
            )
        if omdb.rotten_tomatoes is not None:
            ratings.append(
                RatingEntry(
                    source="Rotten Tomatoes",
                    rating=omdb.rotten_tomatoes,
                    url=f"https://www.rottentomatoes.com/search?search={quote(lookup.title)}",
                    display_format="percentage",
                )
            )
        if omdb.metacritic is not None:
            ratings.append(
                RatingEntry(
                    source="Metacritic",
                    rating=omdb.metacritic,
                    url=f"https://www.metacritic.com/search/{quote(lookup.title)}/",
                    display_format="score",
                )
            )
        if omdb.imdb_rating is not None:
            ratings.append(
                RatingEntry(
                    source="IMDb",
                    rating=omdb.imdb_rating,
                    ratings_count=omdb.imdb_votes,
                    url=imdb_title_url(imdb_id)
                    if imdb_id
                    else f"https://www.imdb.com/find?q={quote(lookup.title)}",
                )
            )
        letterboxd_url = letterboxd_search_url(lookup.title, lookup.year)
        ratings.append(RatingEntry(source="Letterboxd", url=letterboxd_url))

        director = lookup.creator
        if not director:
            crew = (details.get("credits") or {}).get("crew") or []
            director = next(
                (member.get("name") for member in crew if member.get("job") == "Director"),
                None,
            )

        genres = self.names(details.get("genres"))

        return MovieDetails(
            director=director,
            year=year,
            tmdb_id=details.get("id"),
            imdb_id=imdb_id,
            runtime_minutes=details.get("runtime") or None,
            description=details.get("overview"),
            tagline=details.get("tagline"),
            ratings=ratings,
            poster_image=self.build_image_url(details.get("poster_path"), POSTER_BASE_URL),
            backdrop_image=self.build_image_url(
                details.get("backdrop_path"), BACKDROP_BASE_URL
            ),
            cast_members=self.top_cast(details.get("credits")),
            genres=genres,
            release_date=details.get("release_date"),
            budget=details.get("budget") or None,
            revenue=details.get("revenue") or None,
            production_companies=self.names(details.get("production_companies")),
            imdb_url=imdb_title_url(imdb_id) if imdb_id else None,
            letterboxd_url=letterboxd_url,
            suggested_genre=primary_genre(genres, MOVIE_GENRES),
        )

    async def _fetch_omdb(self, title: str, year: int | None) -> OMDbScores:
        if not self._settings.omdb_api_key:
            return OMDbScores()
        params: dict[str, Any] = {
            "apikey": self._settings.omdb_api_key,
            "t": title,
            "type": "movie",
        }
        if year:
            params["y"] = year
        payload = await self._get_json(f"{self._omdb_url}/", params=params)
        if not isinstance(payload, dict) or payload.get("Response") == "False":
            return OMDbScores()
        return parse_omdb_scores(payload)

    def _is_quota_error(self, response: httpx.Response) -> bool:
        payload = response_payload(response)
        if payload.get("Response") != "False":
            return False
        return OMDB_QUOTA_MESSAGE in str(payload.get("Error", "")).lower()
