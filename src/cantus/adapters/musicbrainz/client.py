"""MusicBrainz API client."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from cantus.adapters.http_resilience import ResilientClient, shared_limiter
from cantus.domain.errors import ExternalSourceUnavailable, InvalidExternalPayload

from .schema import (
    MBEntityType,
    MusicBrainzArtistRelations,
    MusicBrainzArtistSearch,
    MusicBrainzBaseModel,
    MusicBrainzRecordingSearch,
    MusicBrainzRelease,
    MusicBrainzReleaseSearch,
    MusicBrainzWikipediaDocument,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from cantus.config.http_resilience import ResilienceConfig
    from cantus.config.musicbrainz import MusicBrainzConfig

log = getLogger(__name__)

DEFAULT_RELEASE_INC = (
    "recordings",
    "artist-credits",
    "labels",
    "release-groups",
    "genres",
    "media",
    "recording-level-rels",
    "artist-rels",
    "work-rels",
    "work-level-rels",
)
DEFAULT_RECORDING_INC = ("artist-credits", "releases", "release-groups", "media")
ARTIST_RELATIONS_INC = ("url-rels",)


class MusicBrainzAPIError(InvalidExternalPayload):
    """Raised when the MusicBrainz API returns an unexpected response."""


def lucene_query(fields: dict[str, str]) -> str:
    """Build a MusicBrainz search query matching every non-empty field as a phrase."""

    terms: list[str] = []
    for key, value in fields.items():
        text = value.strip()
        if not text:
            continue
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        terms.append(f'{key}:"{escaped}"')
    return " AND ".join(terms)


class MusicBrainzClient:
    """Low-level HTTP client for the MusicBrainz API."""

    def __init__(
        self,
        *,
        config: MusicBrainzConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    @property
    def source_name(self) -> str:
        return self._resilience.name

    def has_capacity(self) -> bool:
        ratelimit = self._resilience.ratelimit
        if ratelimit is None:
            return True
        return shared_limiter(self._resilience.name, ratelimit).has_capacity()

    async def search_releases(self, *, query: str, limit: int) -> MusicBrainzReleaseSearch:
        params = {"fmt": "json", "query": query, "limit": str(limit)}
        payload = await self._get(str(MBEntityType.RELEASE), params)
        return self._validate(MusicBrainzReleaseSearch, payload)

    async def search_recordings(self, *, query: str, limit: int) -> MusicBrainzRecordingSearch:
        params = {"fmt": "json", "query": query, "limit": str(limit)}
        payload = await self._get(str(MBEntityType.RECORDING), params)
        return self._validate(MusicBrainzRecordingSearch, payload)

    async def search_artists(self, *, query: str, limit: int) -> MusicBrainzArtistSearch:
        params = {"fmt": "json", "query": query, "limit": str(limit)}
        payload = await self._get(str(MBEntityType.ARTIST), params)
        return self._validate(MusicBrainzArtistSearch, payload)

    async def fetch_release(
        self,
        *,
        mbid: str,
        inc: tuple[str, ...] | None = None,
    ) -> MusicBrainzRelease | None:
        inc_values = inc if inc is not None else DEFAULT_RELEASE_INC
        params = {"fmt": "json", "inc": "+".join(inc_values)}
        payload = await self._get(f"{MBEntityType.RELEASE}/{mbid}", params, missing_ok=True)
        if payload is None:
            return None
        return self._validate(MusicBrainzRelease, payload)

    async def fetch_artist_relations(self, *, mbid: str) -> MusicBrainzArtistRelations | None:
        params = {"fmt": "json", "inc": "+".join(ARTIST_RELATIONS_INC)}
        payload = await self._get(f"{MBEntityType.ARTIST}/{mbid}", params, missing_ok=True)
        if payload is None:
            return None
        return self._validate(MusicBrainzArtistRelations, payload)

    async def fetch_wikipedia_extract(self, *, mbid: str) -> MusicBrainzWikipediaDocument | None:
        url = f"{self._config.web_url}/artist/{mbid}/wikipedia-extract"
        payload = await self._get(url, {}, missing_ok=True)
        if payload is None:
            return None
        return self._validate(MusicBrainzWikipediaDocument, payload)

    async def _get(
        self,
        path: str,
        params: dict[str, str],
        *,
        missing_ok: bool = False,
    ) -> dict[str, Any] | None:
        if self._resilience.base_url is None:
            raise MusicBrainzAPIError("Missing MusicBrainz base_url in resilience configuration")
        try:
            async with self._client_factory(self._resilience) as client:
                response = await client.get(path, params=params)
                if missing_ok and response.status_code == httpx.codes.NOT_FOUND:
                    return None
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            log.warning("MusicBrainz request %s failed: %s", path, exc)
            raise ExternalSourceUnavailable(self.source_name, str(exc)) from exc
        except ValueError as exc:
            raise MusicBrainzAPIError(f"Malformed MusicBrainz response for {path}") from exc

        if not isinstance(payload, dict):
            raise MusicBrainzAPIError("Unexpected MusicBrainz response payload")
        return payload

    @staticmethod
    def _validate[TModel: MusicBrainzBaseModel](
        model: type[TModel], payload: dict[str, Any]
    ) -> TModel:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise MusicBrainzAPIError(f"Invalid {model.__name__} payload: {exc}") from exc
