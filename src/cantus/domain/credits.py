"""Rendering and parsing of ordered artist credits ("A & B feat. C")."""

from __future__ import annotations

import re
from functools import cache
from typing import TYPE_CHECKING, Final

from cantus.domain.model import Credit

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from cantus.domain.model import CandidateCredit

DEFAULT_CREDIT_SEPARATORS: Final[tuple[str, ...]] = (
    "feat.",
    "ft.",
    "featuring",
    "vs.",
    "&",
    ",",
    ";",
)

_WHITESPACE = re.compile(r"\s+")
_TIGHT_PUNCTUATION = frozenset(",;")


def normalize_join_phrase(phrase: str | None) -> str:
    if not phrase:
        return ""
    return _WHITESPACE.sub(" ", phrase).strip()


def render_credit(entries: Sequence[tuple[str, str]]) -> str:
    """Render ``(name, join_phrase)`` pairs as display text.

    Join phrases are stored as supplied; rendering normalizes their spacing: ``"&"`` becomes
    ``" & "`` while ``","`` becomes ``", "``. Two names without a join phrase are
    separated by ``", "``.
    """

    parts: list[str] = []
    last = len(entries) - 1
    for index, (name, join_phrase) in enumerate(entries):
        parts.append(name)
        phrase = normalize_join_phrase(join_phrase)
        if not phrase:
            if index < last:
                parts.append(", ")
            continue
        leading = "" if phrase[0] in _TIGHT_PUNCTUATION else " "
        trailing = " " if index < last else ""
        parts.append(f"{leading}{phrase}{trailing}")
    return "".join(parts)


def render_candidate_credit(credits: Iterable[CandidateCredit]) -> str:
    return render_credit([(credit.display_name, credit.join_phrase) for credit in credits])


@cache
def _separator_pattern(separators: tuple[str, ...]) -> re.Pattern[str]:
    alternatives: list[str] = []
    # longest first so "featuring" wins over "feat."
    for separator in sorted({s.strip() for s in separators if s.strip()}, key=len, reverse=True):
        escaped = re.escape(separator)
        if separator[0].isalnum():
            alternatives.append(rf"\s+{escaped}\s+")
        else:
            alternatives.append(rf"\s*{escaped}\s*")
    return re.compile("(" + "|".join(alternatives) + ")", re.IGNORECASE)


def parse_credit(
    text: str,
    separators: Sequence[str] = DEFAULT_CREDIT_SEPARATORS,
) -> list[tuple[str, str]]:
    """Split display text into ``(name, join_phrase)`` pairs; inverse of :func:`render_credit`."""

    pieces = _separator_pattern(tuple(separators)).split(text)
    names = pieces[0::2]
    phrases = pieces[1::2]
    entries: list[tuple[str, str]] = []
    for index, raw_name in enumerate(names):
        name = raw_name.strip()
        phrase = normalize_join_phrase(phrases[index]) if index < len(phrases) else ""
        if not name:
            if entries and phrase:
                previous_name, previous_phrase = entries[-1]
                entries[-1] = (previous_name, f"{previous_phrase} {phrase}".strip())
            continue
        entries.append((name, phrase))
    if entries:
        # a separator trailing the final name is not a join phrase
        final_name, final_phrase = entries[-1]
        if final_phrase and not names[-1].strip():
            entries[-1] = (final_name, "")
    return entries


def credit_names(
    text: str | None,
    separators: Sequence[str] = DEFAULT_CREDIT_SEPARATORS,
) -> tuple[str, ...]:
    if not text:
        return ()
    return tuple(name for name, _ in parse_credit(text, separators))


def build_credits(credits: Iterable[CandidateCredit]) -> list[Credit]:
    """Credit rows in source order; a repeated artist keeps its first position.

    Join phrases are kept exactly as the source supplies them.
    """

    seen: set[UUID] = set()
    built: list[Credit] = []
    for credit in credits:
        if credit.artist.mbid in seen:
            continue
        seen.add(credit.artist.mbid)
        built.append(Credit(artist=credit.artist.mbid, join_phrase=credit.join_phrase or ""))
    return built
