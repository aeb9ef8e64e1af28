"""Library scan and import pipeline.

Each file moves through ``scanned -> tag_extracted -> matched | unmatched -> resolved``;
files whose tags cannot be read end as ``failed`` and resolved files whose tags did not
change since the last import end as ``skipped``; unmatched files are matched again.
Files are grouped into local releases and each group is matched and resolved as one
unit by a bounded pool of asyncio workers.
Network calls happen on the event loop; catalog writes run in worker threads.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from cantus.domain.errors import (
    CantusError,
    ExternalSourceUnavailable,
    InvalidExternalPayload,
    NoCandidateMatch,
    PersistenceConflict,
    TagExtractionFailure,
)
from cantus.domain.model import (
    CandidateRelease,
    CandidateTrack,
    EntityKind,
    LocalRelease,
    TagKey,
    TrackStatus,
    release_group_key,
)
from cantus.domain.resolution import tags_fingerprint

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from cantus.domain.matching import CandidateMatcher, Match
    from cantus.domain.model import TagBundle
    from cantus.domain.ports.fetching import MetadataSource, TagExtractor
    from cantus.domain.ports.unit_of_work import CatalogUnitOfWorkFactory
    from cantus.domain.resolution import EntityResolver, OrphanCleanup

log = getLogger(__name__)


class FileState(StrEnum):
    SCANNED = "scanned"
    TAG_EXTRACTED = "tag_extracted"
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    RESOLVED = "resolved"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True)
class ImportReport:
    scanned: int = 0
    removed: int = 0
    states: dict[str, FileState] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    orphans: OrphanCleanup | None = None

    def mark(self, paths: Iterable[str], state: FileState) -> None:
        for path in paths:
            self.states[path] = state

    def fail(self, paths: Iterable[str], error: BaseException) -> None:
        for path in paths:
            self.states[path] = FileState.FAILED
            self.errors[path] = str(error)

    def count(self, state: FileState) -> int:
        return sum(1 for value in self.states.values() if value is state)

    def summary(self) -> dict[str, int]:
        counts = Counter(str(state) for state in self.states.values())
        return {str(state): counts.get(str(state), 0) for state in FileState}


def scan_paths(root: Path, extensions: Iterable[str]) -> list[str]:
    """Audio files below ``root`` (or ``root`` itself), sorted for stable processing."""

    suffixes = {extension.lower() for extension in extensions}
    if root.is_file():
        return [str(root)] if root.suffix.lower() in suffixes else []
    return sorted(
        str(path)
        for path in root.rglob("*")
        if path.is_file() and path.suffix.lower() in suffixes
    )


def group_bundles(bundles: Iterable[TagBundle]) -> list[LocalRelease]:
    grouped: dict[str, list[TagBundle]] = {}
    for bundle in bundles:
        grouped.setdefault(release_group_key(bundle), []).append(bundle)
    return [LocalRelease.from_bundles(key, members) for key, members in sorted(grouped.items())]


def release_query(local: LocalRelease) -> dict[str, str]:
    query = {"release": local.title or "", "artist": local.artist_text or ""}
    if local.track_count:
        query["tracks"] = str(local.track_count)
    return query


def track_query(bundle: TagBundle) -> dict[str, str]:
    query = {"recording": bundle.title, "artist": bundle.artist_text or ""}
    album = bundle.first(TagKey.ALBUM)
    if album:
        query["release"] = album
    return query


class LibraryImporter:
    def __init__(
        self,
        *,
        extractor: TagExtractor,
        source: MetadataSource,
        matcher: CandidateMatcher,
        resolver: EntityResolver,
        unit_of_work_factory: CatalogUnitOfWorkFactory,
        extensions: Sequence[str],
        workers: int = 4,
        search_limit: int = 5,
    ) -> None:
        self._extractor = extractor
        self._source = source
        self._matcher = matcher
        self._resolver = resolver
        self._uow_factory = unit_of_work_factory
        self._extensions = tuple(extensions)
        self._workers = max(1, workers)
        self._search_limit = search_limit

    async def import_library(self, root: Path, *, cleanup: bool = False) -> ImportReport:
        """Scan ``root``, import new and changed files and drop tracks whose file vanished."""

        report = ImportReport()
        paths = await asyncio.to_thread(scan_paths, root, self._extensions)
        report.scanned = len(paths)
        report.mark(paths, FileState.SCANNED)
        log.info("Scanned %d audio file(s) below %s", len(paths), root)

        known, resolved = await asyncio.to_thread(self._known_tags, root)
        missing = sorted(set(known).difference(paths))
        if missing:
            report.removed = await asyncio.to_thread(self._resolver.remove_missing, missing)

        semaphore = asyncio.Semaphore(self._workers)
        extracted = await asyncio.gather(
            *(self._extract(path, semaphore, report) for path in paths)
        )
        bundles = [bundle for bundle in extracted if bundle is not None]

        pending: list[LocalRelease] = []
        for local in group_bundles(bundles):
            if all(resolved.get(b.path) == tags_fingerprint(b) for b in local.bundles):
                report.mark(local.paths, FileState.SKIPPED)
                continue
            pending.append(local)

        await asyncio.gather(*(self._import_group(local, semaphore, report) for local in pending))

        if cleanup:
            report.orphans = await asyncio.to_thread(self._resolver.cleanup_orphans)
        log.info("Import of %s finished: %s", root, report.summary())
        return report

    async def import_release(
        self,
        local: LocalRelease,
        report: ImportReport | None = None,
    ) -> FileState:
        """Match and resolve one local release, returning the final state of its files."""

        try:
            if local.is_loose:
                match = await self._match_loose(local)
            else:
                match = await self._match_release(local)
        except NoCandidateMatch as exc:
            log.info("No match for %s: %s", local.key, exc)
            await asyncio.to_thread(
                self._resolver.resolve_unmatched,
                local,
                reason=exc.reason,
                score=exc.best_score,
            )
            return FileState.UNMATCHED

        log.debug("Matched %s to %s (%.3f)", local.key, match.candidate_id, match.score)
        if report is not None:
            report.mark(local.paths, FileState.MATCHED)
        await asyncio.to_thread(self._resolver.resolve_release, local, match)
        return FileState.RESOLVED

    async def _extract(
        self,
        path: str,
        semaphore: asyncio.Semaphore,
        report: ImportReport,
    ) -> TagBundle | None:
        async with semaphore:
            try:
                bundle = await asyncio.to_thread(self._extractor, Path(path))
            except TagExtractionFailure as exc:
                log.warning("Skipping %s: %s", path, exc)
                report.fail([path], exc)
                return None
        report.mark([path], FileState.TAG_EXTRACTED)
        return bundle

    async def _import_group(
        self,
        local: LocalRelease,
        semaphore: asyncio.Semaphore,
        report: ImportReport,
    ) -> None:
        async with semaphore:
            try:
                state = await self.import_release(local, report)
            except (ExternalSourceUnavailable, InvalidExternalPayload, PersistenceConflict) as exc:
                log.warning("Import of %s failed: %s", local.key, exc)
                report.fail(local.paths, exc)
                return
            except CantusError as exc:
                log.exception("Unexpected error importing %s", local.key)
                report.fail(local.paths, exc)
                return
        report.mark(local.paths, state)

    async def _match_release(self, local: LocalRelease) -> Match[CandidateRelease]:
        tagged = local.release_mbid
        candidates: list[CandidateRelease] = []
        if tagged is not None:
            found = await self._source.lookup_release(tagged)
            if found is not None:
                candidates.append(found)
        if not candidates:
            results = await self._source.search(
                EntityKind.RELEASE, release_query(local), limit=self._search_limit
            )
            candidates = [item for item in results if isinstance(item, CandidateRelease)]
        return self._matcher.match_release(local, candidates)

    async def _match_loose(self, local: LocalRelease) -> Match[CandidateRelease]:
        bundle = local.bundles[0]
        results = await self._source.search(
            EntityKind.TRACK, track_query(bundle), limit=self._search_limit
        )
        tracks = [item for item in results if isinstance(item, CandidateTrack)]
        track = self._matcher.match_track(bundle, tracks)
        release_mbid = track.candidate.release_mbid
        release = await self._source.lookup_release(release_mbid) if release_mbid else None
        if release is None:
            raise NoCandidateMatch(local.key, best_score=track.score)
        return self._matcher.pin_track(local, release, track)

    def _known_tags(self, root: Path) -> tuple[dict[str, str | None], dict[str, str | None]]:
        """Tag fingerprints of catalog tracks below ``root``: every track, and resolved ones.

        Only resolved tracks may be skipped on rescan; unmatched ones are matched again.
        """

        with self._uow_factory() as uow:
            tracks = uow.repositories.tracks
            known = _below(root, tracks.tags_fingerprints())
            resolved = _below(root, tracks.tags_fingerprints(status=TrackStatus.RESOLVED))
        return known, resolved


def _below(root: Path, fingerprints: dict[str, str | None]) -> dict[str, str | None]:
    return {
        path: value
        for path, value in fingerprints.items()
        if Path(path) == root or Path(path).is_relative_to(root)
    }
