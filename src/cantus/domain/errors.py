"""Domain error taxonomy.

Each error corresponds to one recovery strategy:

* ``TagExtractionFailure``: skip the file and keep scanning.
* ``NoCandidateMatch`` / ``AmbiguousMatch``: persist the tracks as unmatched.
* ``PersistenceConflict``: retry the resolution a bounded number of times, then surface.
* ``IndexSyncFailure``: re-queue the affected keys for the next sync cycle.
* ``ExternalSourceUnavailable``: back off and retry, then wait for the next schedule.
* ``InvalidExternalPayload``: fail the affected subject only and keep going.
* ``JobDeferred``: reschedule without consuming a retry attempt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cantus.domain.model import UnmatchedReason

if TYPE_CHECKING:
    from collections.abc import Sequence


class CantusError(Exception):
    """Base class for every domain error."""


class TagExtractionFailure(CantusError):
    """Tags of a file could not be read (unreadable, corrupt or unsupported)."""

    def __init__(self, path: str, kind: str, detail: str | None = None) -> None:
        message = f"Cannot extract tags from {path}: {kind}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.path = path
        self.kind = kind


class NoCandidateMatch(CantusError):
    """No candidate reached the acceptance threshold."""

    reason: UnmatchedReason = UnmatchedReason.NO_CANDIDATE

    def __init__(self, subject: str, *, best_score: float | None = None) -> None:
        if best_score is None:
            message = f"No candidate for {subject}"
        else:
            message = f"Best candidate for {subject} scored {best_score:.3f}"
            self.reason = UnmatchedReason.BELOW_THRESHOLD
        super().__init__(message)
        self.subject = subject
        self.best_score = best_score


class AmbiguousMatch(NoCandidateMatch):
    """Two or more distinct candidates are too close to call."""

    def __init__(
        self,
        subject: str,
        *,
        best_score: float,
        contenders: Sequence[str],
    ) -> None:
        super().__init__(subject, best_score=best_score)
        self.reason = UnmatchedReason.AMBIGUOUS
        self.contenders = tuple(contenders)
        self.args = (f"Ambiguous match for {subject}: {', '.join(self.contenders)}",)


class PersistenceConflict(CantusError):
    """A catalog write collided with a concurrent writer or a schema constraint."""

    def __init__(self, subject: str, *, attempts: int = 1, detail: str | None = None) -> None:
        message = f"Persistence conflict for {subject} after {attempts} attempt(s)"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.subject = subject
        self.attempts = attempts


class IndexSyncFailure(CantusError):
    """Applying catalog changes to the search index failed."""

    def __init__(self, keys: Sequence[str], detail: str | None = None) -> None:
        super().__init__(f"Index sync failed for {len(keys)} key(s): {detail or 'unknown error'}")
        self.keys = tuple(keys)


class ExternalSourceUnavailable(CantusError):
    """An external metadata or image source could not be reached."""

    def __init__(self, source: str, detail: str | None = None) -> None:
        super().__init__(f"{source} unavailable: {detail or 'unknown error'}")
        self.source = source


class InvalidExternalPayload(CantusError):
    """An external source answered with a payload that cannot be interpreted."""


class JobDeferred(CantusError):
    """A job found its source quota exhausted and must run later."""

    def __init__(self, source: str, *, delay: float) -> None:
        super().__init__(f"Quota for {source} exhausted, deferring {delay:.1f}s")
        self.source = source
        self.delay = delay


class CatalogUnavailable(CantusError):
    """The catalog store could not be opened or migrated."""
