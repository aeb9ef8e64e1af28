"""Entity resolution: turn matched (or unmatched) local data into catalog writes.

Every resolution of one local release runs in a single unit of work while holding the
keyed lock of the target release, so concurrent writers of the same release serialize
and a failed resolution leaves no partial state behind. Content fingerprints make
re-running a resolution with unchanged input a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from cantus.domain.credits import build_credits
from cantus.domain.errors import PersistenceConflict
from cantus.domain.model import (
    TRACK_CREDIT_ROLES,
    Artist,
    CreditRole,
    EnrichmentKind,
    EntityKind,
    Release,
    Track,
    TrackStatus,
    UnmatchedReason,
    local_track_id,
)

from .fingerprint import content_fingerprint, tags_fingerprint
from .locks import KeyedLocks

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from uuid import UUID

    from cantus.domain.matching import Match
    from cantus.domain.model import (
        ArtistImage,
        ArtistUrl,
        CandidateArtist,
        CandidateRelease,
        CandidateTrack,
        LocalRelease,
        ReleaseImage,
        TagBundle,
    )
    from cantus.domain.ports.unit_of_work import (
        CatalogRepositories,
        CatalogUnitOfWork,
        CatalogUnitOfWorkFactory,
    )

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def merge_unique(*sources: Iterable[str]) -> list[str]:
    """Concatenate ``sources`` dropping blanks and case-insensitive duplicates."""

    seen: set[str] = set()
    merged: list[str] = []
    for source in sources:
        for raw in source:
            value = raw.strip()
            key = value.casefold()
            if not value or key in seen:
                continue
            seen.add(key)
            merged.append(value)
    return merged


def merge_genres(local: Iterable[str], *candidate: Iterable[str]) -> list[str]:
    """Local genre tags first, then candidate genres not already present."""

    return merge_unique(local, *candidate)


@dataclass(slots=True)
class ResolutionResult:
    subject: str
    release: UUID | None = None
    written: int = 0
    skipped: int = 0
    unmatched: int = 0
    removed: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.written or self.removed)


@dataclass(slots=True)
class OrphanCleanup:
    releases: int = 0
    artists: int = 0


def _release_facts(candidate: CandidateRelease) -> dict[str, object]:
    return {
        "mbid": candidate.mbid,
        "title": candidate.title,
        "release_group_mbid": candidate.release_group_mbid,
        "asin": candidate.asin,
        "discs": candidate.discs,
        "media": candidate.media,
        "track_count": candidate.track_count,
        "country": candidate.country,
        "label": candidate.label,
        "catalog_no": candidate.catalog_no,
        "status": candidate.status,
        "release_type": candidate.release_type,
        "date": candidate.date,
        "original_date": candidate.original_date,
        "script": candidate.script,
        "artist_credit": candidate.artist_credit,
    }


class EntityResolver:
    def __init__(
        self,
        *,
        unit_of_work_factory: CatalogUnitOfWorkFactory,
        persist_attempts: int = 3,
        locks: KeyedLocks | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._attempts = max(1, persist_attempts)
        self._locks = locks or KeyedLocks()
        self._clock = clock

    # Resolution --------------------------------------------------------------

    def resolve_release(
        self,
        local: LocalRelease,
        match: Match[CandidateRelease],
    ) -> ResolutionResult:
        """Persist a confirmed release match and every local file paired with it."""

        release_mbid = match.candidate.mbid
        return self._run(
            local.key,
            f"release:{release_mbid}",
            lambda uow: self._write_release(uow.repositories, local, match),
        )

    def resolve_unmatched(
        self,
        local: LocalRelease,
        *,
        reason: UnmatchedReason,
        score: float | None = None,
    ) -> ResolutionResult:
        """Persist the files of ``local`` as unmatched tracks."""

        def work(uow: CatalogUnitOfWork) -> ResolutionResult:
            result = ResolutionResult(subject=local.key)
            for bundle in local.bundles:
                self._write_unmatched_track(uow.repositories, bundle, reason, score, result)
            return result

        return self._run(local.key, f"local:{local.key}", work)

    def remove_missing(self, paths: Iterable[str]) -> int:
        """Delete the tracks backed by ``paths``; credits and relation rows cascade."""

        by_release: dict[UUID | None, list[str]] = {}
        with self._uow_factory() as uow:
            for path in paths:
                track = uow.repositories.tracks.get_by_path(path)
                if track is not None:
                    by_release.setdefault(track.release_mbid, []).append(path)

        removed = 0
        for release_mbid, release_paths in by_release.items():
            lock_key = f"release:{release_mbid}" if release_mbid else "local:removed"

            def work(uow: CatalogUnitOfWork, release_paths: list[str] = release_paths) -> int:
                count = 0
                for path in release_paths:
                    track = uow.repositories.tracks.get_by_path(path)
                    if track is not None:
                        uow.repositories.tracks.delete(track)
                        count += 1
                return count

            removed += self._run(f"missing files of {release_mbid}", lock_key, work)
        if removed:
            log.info("Removed %d track(s) whose files disappeared", removed)
        return removed

    def cleanup_orphans(self) -> OrphanCleanup:
        """Remove releases without tracks and artists without any credit."""

        def work(uow: CatalogUnitOfWork) -> OrphanCleanup:
            repos = uow.repositories
            outcome = OrphanCleanup()
            purged: list[UUID] = []
            for mbid in repos.releases.orphaned():
                release = repos.releases.get(mbid)
                if release is not None:
                    repos.releases.delete(release)
                    purged.append(mbid)
                    outcome.releases += 1
            for mbid in repos.artists.orphaned():
                artist = repos.artists.get(mbid)
                if artist is not None:
                    repos.artists.delete(artist)
                    purged.append(mbid)
                    outcome.artists += 1
            repos.fingerprints.purge(purged)
            return outcome

        outcome = self._run("orphan cleanup", "catalog:cleanup", work)
        log.info(
            "Orphan cleanup removed %d release(s) and %d artist(s)",
            outcome.releases,
            outcome.artists,
        )
        return outcome

    # Enrichment updates --------------------------------------------------------

    def apply_artist_description(self, artist: UUID, description: str | None) -> bool:
        def write(repos: CatalogRepositories) -> bool:
            entity = repos.artists.get(artist)
            if entity is None:
                return False
            entity.description = description
            return True

        return self._apply_enrichment(
            artist, EnrichmentKind.ARTIST_DESCRIPTION, content_fingerprint(description), write
        )

    def apply_artist_urls(self, artist: UUID, urls: Sequence[ArtistUrl]) -> bool:
        ordered = sorted(set(urls), key=lambda item: (item.kind, item.url))

        def write(repos: CatalogRepositories) -> bool:
            if repos.artists.get(artist) is None:
                return False
            repos.artist_urls.replace(artist, ordered)
            return True

        return self._apply_enrichment(
            artist, EnrichmentKind.ARTIST_URLS, content_fingerprint(ordered), write
        )

    def apply_artist_images(self, artist: UUID, images: Sequence[ArtistImage]) -> bool:
        """Replace the gallery of ``artist``; gallery order is kept, repeated urls dropped."""

        seen: set[str] = set()
        ordered: list[ArtistImage] = []
        for image in images:
            if image.url not in seen:
                seen.add(image.url)
                ordered.append(image)

        def write(repos: CatalogRepositories) -> bool:
            if repos.artists.get(artist) is None:
                return False
            repos.artist_images.replace(artist, ordered)
            return True

        return self._apply_enrichment(
            artist, EnrichmentKind.ARTIST_IMAGES, content_fingerprint(ordered), write
        )

    def apply_release_images(self, release: UUID, images: Sequence[ReleaseImage]) -> bool:
        ordered = sorted(set(images), key=lambda item: (item.kind, item.url))

        def write(repos: CatalogRepositories) -> bool:
            if repos.releases.get(release) is None:
                return False
            repos.release_images.replace(release, ordered)
            return True

        return self._apply_enrichment(
            release, EnrichmentKind.RELEASE_COVER, content_fingerprint(ordered), write
        )

    def _apply_enrichment(
        self,
        subject: UUID,
        kind: EnrichmentKind,
        value: str,
        write: Callable[[CatalogRepositories], bool],
    ) -> bool:
        def work(uow: CatalogUnitOfWork) -> bool:
            repos = uow.repositories
            record = repos.fingerprints.get(subject, kind)
            now = self._clock()
            if record is not None and record.value == value:
                repos.fingerprints.put(subject, kind, value, at=now)
                return False
            if not write(repos):
                return False
            repos.fingerprints.put(subject, kind, value, at=now)
            return True

        return self._run(f"{kind} of {subject}", f"{kind}:{subject}", work)

    # Internals -----------------------------------------------------------------

    def _run[T](self, subject: str, lock_key: str, work: Callable[[CatalogUnitOfWork], T]) -> T:
        last_error: PersistenceConflict | None = None
        for attempt in range(1, self._attempts + 1):
            try:
                with self._locks.hold(lock_key), self._uow_factory() as uow:
                    outcome = work(uow)
                    uow.commit()
                    return outcome
            except PersistenceConflict as exc:
                last_error = exc
                log.warning(
                    "Persistence conflict for %s (attempt %d/%d): %s",
                    subject,
                    attempt,
                    self._attempts,
                    exc,
                )
        raise PersistenceConflict(
            subject, attempts=self._attempts, detail=str(last_error)
        ) from last_error

    def _upsert_artists(
        self,
        repos: CatalogRepositories,
        artists: Iterable[CandidateArtist],
    ) -> int:
        written = 0
        for candidate in artists:
            artist = repos.artists.get(candidate.mbid)
            if artist is None:
                repos.artists.add(
                    Artist(
                        mbid=candidate.mbid,
                        name=candidate.name,
                        sort_name=candidate.sort_name,
                        instruments=merge_unique(candidate.instruments),
                    )
                )
                written += 1
                continue
            instruments = merge_unique(artist.instruments, candidate.instruments)
            sort_name = candidate.sort_name or artist.sort_name
            if (artist.name, artist.sort_name, artist.instruments) != (
                candidate.name,
                sort_name,
                instruments,
            ):
                artist.name = candidate.name
                artist.sort_name = sort_name
                artist.instruments = instruments
                written += 1
        return written

    def _write_release(
        self,
        repos: CatalogRepositories,
        local: LocalRelease,
        match: Match[CandidateRelease],
    ) -> ResolutionResult:
        candidate = match.candidate
        result = ResolutionResult(subject=local.key, release=candidate.mbid)
        result.written += self._upsert_artists(repos, candidate.artists().values())

        fingerprint = content_fingerprint(_release_facts(candidate))
        release = repos.releases.get(candidate.mbid)
        if release is None or release.fingerprint != fingerprint:
            if release is None:
                release = Release(mbid=candidate.mbid, title=candidate.title)
                repos.releases.add(release)
            release.title = candidate.title
            release.release_group_mbid = candidate.release_group_mbid
            release.asin = candidate.asin
            release.discs = candidate.discs
            release.media = candidate.media
            release.track_count = candidate.track_count
            release.country = candidate.country
            release.label = candidate.label
            release.catalog_no = candidate.catalog_no
            release.status = candidate.status
            release.release_type = candidate.release_type
            release.date = candidate.date
            release.original_date = candidate.original_date
            release.script = candidate.script
            release.fingerprint = fingerprint
            repos.credits.replace(
                EntityKind.RELEASE,
                candidate.mbid,
                CreditRole.PRIMARY,
                build_credits(candidate.artist_credit),
            )
            result.written += 1

        for index, bundle in enumerate(local.bundles):
            column = match.columns[index] if index < len(match.columns) else None
            if column is None:
                self._write_unmatched_track(
                    repos, bundle, UnmatchedReason.NO_CANDIDATE, None, result
                )
                continue
            self._write_track(
                repos, bundle, candidate, candidate.tracks[column], match.score, result
            )
        return result

    def _claim_path(
        self,
        repos: CatalogRepositories,
        path: str,
        mbid: UUID,
        result: ResolutionResult,
    ) -> None:
        stale = repos.tracks.get_by_path(path)
        if stale is not None and stale.mbid != mbid:
            repos.tracks.delete(stale)
            result.removed += 1

    def _write_track(
        self,
        repos: CatalogRepositories,
        bundle: TagBundle,
        release: CandidateRelease,
        candidate: CandidateTrack,
        confidence: float,
        result: ResolutionResult,
    ) -> None:
        fingerprint = content_fingerprint(
            bundle.canonical(), candidate, release.mbid, release.genres, round(confidence, 6)
        )
        self._claim_path(repos, bundle.path, candidate.mbid, result)
        track = repos.tracks.get(candidate.mbid)
        if track is not None and track.fingerprint == fingerprint and track.path == bundle.path:
            result.skipped += 1
            return
        if track is None:
            track = Track(
                mbid=candidate.mbid,
                title=candidate.title,
                path=bundle.path,
                format=bundle.format,
            )
            repos.tracks.add(track)
        elif track.path != bundle.path:
            log.warning(
                "Track %s is claimed by %s and %s; keeping the latest",
                candidate.mbid,
                track.path,
                bundle.path,
            )
        track.title = candidate.title
        track.path = bundle.path
        track.format = bundle.format
        track.length = candidate.length if candidate.length is not None else bundle.duration_ms
        track.disc = candidate.disc
        track.disc_mbid = candidate.disc_mbid
        track.number = candidate.number
        track.genres = merge_genres(bundle.genres, candidate.genres, release.genres)
        track.release_mbid = release.mbid
        track.status = TrackStatus.RESOLVED
        track.unmatched_reason = None
        track.confidence = confidence
        track.fingerprint = fingerprint
        track.tags_fingerprint = tags_fingerprint(bundle)
        for role in TRACK_CREDIT_ROLES:
            repos.credits.replace(
                EntityKind.TRACK,
                candidate.mbid,
                role,
                build_credits(candidate.credits.get(role, ())),
            )
        result.written += 1

    def _write_unmatched_track(
        self,
        repos: CatalogRepositories,
        bundle: TagBundle,
        reason: UnmatchedReason,
        score: float | None,
        result: ResolutionResult,
    ) -> None:
        mbid = local_track_id(bundle.path)
        rounded = round(score, 6) if score is not None else None
        fingerprint = content_fingerprint(bundle.canonical(), reason, rounded)
        self._claim_path(repos, bundle.path, mbid, result)
        result.unmatched += 1
        track = repos.tracks.get(mbid)
        if track is not None and track.fingerprint == fingerprint:
            result.skipped += 1
            return
        if track is None:
            track = Track(mbid=mbid, title=bundle.title, path=bundle.path, format=bundle.format)
            repos.tracks.add(track)
        track.title = bundle.title
        track.format = bundle.format
        track.length = bundle.duration_ms
        track.disc = bundle.disc_number
        track.number = bundle.track_number
        track.genres = merge_genres(bundle.genres)
        track.release_mbid = None
        track.status = TrackStatus.UNMATCHED
        track.unmatched_reason = reason
        track.confidence = rounded
        track.fingerprint = fingerprint
        track.tags_fingerprint = tags_fingerprint(bundle)
        result.written += 1
