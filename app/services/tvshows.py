"""TV show metadata resolved from TMDB."""

from __future__ import annotations

import logging
from typing import Any

from ..media_kinds import TVSHOW_GENRES
from ..models import EntityLookup, RatingEntry, TVShowDetails
from .movies import imdb_title_url, primary_genre
from .tmdb import BACKDROP_BASE_URL, POSTER_BASE_URL, TMDBProvider

logger = logging.getLogger(__name__)


class TVShowDetailsProvider(TMDBProvider):
    kind = "tvshow"
    content_type = "tv"

    async def fetch_details(self, lookup: EntityLookup) -> TVShowDetails:
        tmdb_id = await self.resolve_tmdb_id(
            lookup.title, year=lookup.year, known=lookup.known_id("tmdb_id")
        )
        details: dict[str, Any] = {}
        if tmdb_id is not None:
            details = await self.details(tmdb_id, append="credits,external_ids") or {}

        external_ids = details.get("external_ids") or {}
        imdb_id = external_ids.get("imdb_id") or lookup.known_id("imdb_id")

        ratings: list[RatingEntry] = []
        if details.get("vote_average"):
            ratings.append(
                RatingEntry(
                    source="TMDB",
                    rating=details["vote_average"],
                    ratings_count=details.get("vote_count"),
                    url=f"https://www.themoviedb.org/tv/{details.get('id')}",
                )
            )
        if imdb_id:
            ratings.append(RatingEntry(source="IMDb", url=imdb_title_url(imdb_id)))

        creator = lookup.creator
        if not creator:
            creator = ", ".join(self.names(details.get("created_by"))) or None

        genres = self.names(details.get("genres"))

        return TVShowDetails(
            creator=creator,
            first_air_date=details.get("first_air_date"),
            tmdb_id=details.get("id"),
            imdb_id=imdb_id,
            description=details.get("overview"),
            tagline=details.get("tagline"),
            ratings=ratings,
            poster_image=self.build_image_url(details.get("poster_path"), POSTER_BASE_URL),
            backdrop_image=self.build_image_url(
                details.get("backdrop_path"), BACKDROP_BASE_URL
            ),
            cast_members=self.top_cast(details.get("credits")),
            genres=genres,
            networks=self.names(details.get("networks")),
            number_of_seasons=details.get("number_of_seasons"),
            number_of_episodes=details.get("number_of_episodes"),
            episode_run_time=details.get("episode_run_time") or [],
            status=details.get("status"),
            in_production=details.get("in_production"),
            last_air_date=details.get("last_air_date"),
            production_companies=self.names(details.get("production_companies")),
            origin_country=details.get("origin_country") or [],
            original_language=details.get("original_language"),
            imdb_url=imdb_title_url(imdb_id) if imdb_id else None,
            suggested_genre=primary_genre(genres, TVSHOW_GENRES),
        )
