"""MusicBrainz-backed metadata and artist information sources."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from cantus.domain.model import EntityKind

from .client import MusicBrainzClient, lucene_query
from .translator import (
    translate_artist,
    translate_artist_urls,
    translate_recording,
    translate_release,
    translate_wikipedia_extract,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from cantus.config.musicbrainz import MusicBrainzConfig
    from cantus.domain.model import ArtistUrl, CandidateRelease
    from cantus.domain.ports.fetching import Candidate

log = getLogger(__name__)


class MusicBrainzSource:
    """Candidate search and artist lookups against MusicBrainz.

    Release searches only return summaries, so every release hit is looked up again
    with its media, recordings and relations before it is handed to the matcher.
    """

    def __init__(
        self,
        *,
        config: MusicBrainzConfig,
        client: MusicBrainzClient | None = None,
    ) -> None:
        self._config = config
        self._client = client or MusicBrainzClient(config=config)

    @property
    def source_name(self) -> str:
        return self._client.source_name

    def has_capacity(self) -> bool:
        return self._client.has_capacity()

    async def search(
        self,
        scope: EntityKind,
        query: Mapping[str, str],
        *,
        limit: int | None = None,
    ) -> Sequence[Candidate]:
        text = lucene_query(dict(query))
        if not text:
            return []
        size = limit or self._config.search_limit
        if scope is EntityKind.RELEASE:
            return await self._search_releases(text, size)
        if scope is EntityKind.TRACK:
            found = await self._client.search_recordings(query=text, limit=size)
            return [
                candidate
                for recording in found.recordings
                for candidate in translate_recording(recording)
            ]
        found_artists = await self._client.search_artists(query=text, limit=size)
        return [
            artist
            for artist in (translate_artist(item) for item in found_artists.artists)
            if artist is not None
        ]

    async def lookup_release(self, mbid: UUID) -> CandidateRelease | None:
        payload = await self._client.fetch_release(mbid=str(mbid))
        if payload is None:
            log.info("MusicBrainz has no release %s", mbid)
            return None
        return translate_release(payload)

    async def artist_urls(self, mbid: UUID) -> list[ArtistUrl]:
        payload = await self._client.fetch_artist_relations(mbid=str(mbid))
        if payload is None:
            return []
        return translate_artist_urls(payload)

    async def artist_description(self, mbid: UUID) -> str | None:
        document = await self._client.fetch_wikipedia_extract(mbid=str(mbid))
        if document is None:
            log.debug("MusicBrainz provides no description for artist %s", mbid)
            return None
        return translate_wikipedia_extract(document)

    async def _search_releases(self, text: str, limit: int) -> list[CandidateRelease]:
        found = await self._client.search_releases(query=text, limit=limit)
        candidates: list[CandidateRelease] = []
        for summary in found.releases:
            payload = await self._client.fetch_release(mbid=summary.id)
            if payload is None:
                continue
            candidate = translate_release(payload)
            if candidate is not None:
                candidates.append(candidate)
        return candidates


if TYPE_CHECKING:
    from typing import cast

    from cantus.domain.ports.fetching import ArtistInfoSource, MetadataSource

    _config_stub = cast("MusicBrainzConfig", object())
    _metadata_check: MetadataSource = MusicBrainzSource(config=_config_stub)
    _artist_info_check: ArtistInfoSource = MusicBrainzSource(config=_config_stub)
