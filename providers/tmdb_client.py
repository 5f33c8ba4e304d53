from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from api.core.types import CandidateTitle, CreatorSummary, Filmography
from providers.errors import (
    ConfigurationError,
    ExternalApiError,
    ProviderValidationError,
    RateLimitError,
)

TMDB_BASE = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"

log = logging.getLogger(__name__)


class TmdbPerson(BaseModel):
    id: int
    name: str
    profile_path: Optional[str] = None
    known_for_department: Optional[str] = None
    popularity: Optional[float] = None


class TmdbPersonSearchResponse(BaseModel):
    page: int
    results: List[TmdbPerson]
    total_pages: int
    total_results: int


class TmdbMovie(BaseModel):
    id: int
    title: str
    release_date: Optional[str] = None
    poster_path: Optional[str] = None


class TmdbCrewCredit(TmdbMovie):
    job: str
    department: Optional[str] = None


class TmdbMovieCreditsResponse(BaseModel):
    id: int
    cast: List[TmdbMovie]
    crew: List[TmdbCrewCredit]


def _to_candidate(movie: TmdbMovie) -> CandidateTitle:
    return CandidateTitle(
        tmdb_id=movie.id,
        title=movie.title,
        # TMDB sends "" for unreleased titles
        release_date=movie.release_date or None,
        poster_path=movie.poster_path,
    )


def _creator_role(department: Optional[str]) -> str:
    return "director" if (department or "").lower() == "directing" else "actor"


class TMDBClient:
    def __init__(self, api_key: str, timeout: float = 15.0, rate_per_sec: float = 3.0):
        if not api_key:
            raise ConfigurationError("TMDB_API_KEY is not configured")
        self.api_key = api_key
        self.timeout = timeout
        self.rate = rate_per_sec
        self._last = 0.0
        self._throttle_lock = asyncio.Lock()
        self._client = httpx.AsyncClient(timeout=self.timeout)

    async def _throttle(self):
        # get_filmography issues its requests concurrently; space them one by one.
        async with self._throttle_lock:
            dt = time.time() - self._last
            min_gap = 1.0 / max(self.rate, 1e-6)
            if dt < min_gap:
                await asyncio.sleep(min_gap - dt)
            self._last = time.time()

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._throttle()
        q = dict(params)
        q["api_key"] = self.api_key
        try:
            r = await self._client.get(
                f"{TMDB_BASE}{path}", params=q, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as exc:
            raise ExternalApiError(f"Failed to fetch from TMDb: {exc}") from exc
        if r.status_code == 429:
            raise RateLimitError("TMDb API rate limit exceeded")
        if r.status_code >= 400:
            raise ExternalApiError(
                f"TMDb API error: {r.reason_phrase}", status_code=r.status_code
            )
        try:
            return r.json()
        except ValueError as exc:
            raise ProviderValidationError(f"TMDb returned invalid JSON: {exc}") from exc

    async def search_creators(self, query: str) -> List[CreatorSummary]:
        """
        Search people by name, keeping only actors and directors with a profile image.
        """
        query = (query or "").strip()
        if not query:
            return []
        data = await self._get(
            "/search/person", {"query": query, "language": "en-US", "page": 1}
        )
        try:
            response = TmdbPersonSearchResponse.model_validate(data)
        except ValidationError as exc:
            raise ProviderValidationError(f"Unexpected TMDb search payload: {exc}") from exc

        creators: List[CreatorSummary] = []
        for person in response.results:
            if not person.profile_path:
                continue
            department = (person.known_for_department or "").lower()
            if department not in {"acting", "directing"}:
                continue
            creators.append(
                CreatorSummary(
                    id=f"tmdb-{person.id}",
                    name=person.name,
                    creator_role=_creator_role(department),
                    avatar_url=f"{TMDB_IMAGE_BASE_URL}{person.profile_path}",
                )
            )
        return creators

    async def get_filmography(self, creator_id: int) -> Filmography:
        credits_raw, person_raw = await asyncio.gather(
            self._get(f"/person/{creator_id}/movie_credits", {}),
            self._get(f"/person/{creator_id}", {}),
        )
        try:
            credits = TmdbMovieCreditsResponse.model_validate(credits_raw)
            person = TmdbPerson.model_validate(person_raw)
        except ValidationError as exc:
            raise ProviderValidationError(
                f"Unexpected TMDb credits payload for person {creator_id}: {exc}"
            ) from exc

        directed = [credit for credit in credits.crew if credit.job == "Director"]
        log.debug(
            "Filmography for %s (%s): %d cast, %d directed",
            creator_id,
            person.name,
            len(credits.cast),
            len(directed),
        )
        return Filmography(
            creator_id=creator_id,
            name=person.name,
            cast_credits=[_to_candidate(movie) for movie in credits.cast],
            crew_credits=[_to_candidate(credit) for credit in directed],
        )

    async def aclose(self):
        await self._client.aclose()
