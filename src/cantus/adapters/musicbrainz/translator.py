"""Translate MusicBrainz payloads into match candidates and enrichment values."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final
from urllib.parse import urlparse

from cantus.domain.model import (
    ArtistUrl,
    CandidateArtist,
    CandidateCredit,
    CandidateRelease,
    CandidateTrack,
    CreditRole,
    UrlKind,
)
from cantus.domain.model.tags import normalize_date, parse_int, parse_uuid

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from .schema import (
        MusicBrainzArtist,
        MusicBrainzArtistCredit,
        MusicBrainzArtistRelations,
        MusicBrainzGenre,
        MusicBrainzMedium,
        MusicBrainzRecording,
        MusicBrainzRelation,
        MusicBrainzRelease,
        MusicBrainzTrack,
        MusicBrainzWikipediaDocument,
    )

log = getLogger(__name__)

MAX_RELEASES_PER_RECORDING: Final = 5

# Relation types contributing to each track credit role. Mixers only come from the
# recording itself; every other role also reads the relations of performed works.
_ROLE_RELATIONS: Final[dict[CreditRole, frozenset[str]]] = {
    CreditRole.PERFORMER: frozenset({"instrument", "performer", "vocal"}),
    CreditRole.ENGINEER: frozenset({"engineer"}),
    CreditRole.MIXER: frozenset({"mix"}),
    CreditRole.PRODUCER: frozenset({"producer"}),
    CreditRole.LYRICIST: frozenset({"lyricist"}),
    CreditRole.WRITER: frozenset({"writer"}),
    CreditRole.COMPOSER: frozenset({"composer"}),
}
_RECORDING_ONLY_ROLES: Final = frozenset({CreditRole.MIXER})

_URL_RELATIONS: Final[dict[str, UrlKind]] = {
    "biography": UrlKind.BIOGRAPHY,
    "discogs": UrlKind.DISCOGS,
    "last.fm": UrlKind.LASTFM,
    "allmusic": UrlKind.ALLMUSIC,
    "youtube": UrlKind.YOUTUBE,
    "official homepage": UrlKind.HOMEPAGE,
    "wikidata": UrlKind.WIKIDATA,
    "songkick": UrlKind.SONGKICK,
    "soundcloud": UrlKind.SOUNDCLOUD,
    "bandcamp": UrlKind.BANDCAMP,
}
_URL_DOMAINS: Final[dict[str, dict[str, UrlKind]]] = {
    "free streaming": {
        "spotify.com": UrlKind.SPOTIFY,
        "open.spotify.com": UrlKind.SPOTIFY,
        "deezer.com": UrlKind.DEEZER,
        "www.deezer.com": UrlKind.DEEZER,
    },
    "streaming": {
        "tidal.com": UrlKind.TIDAL,
        "listen.tidal.com": UrlKind.TIDAL,
        "music.apple.com": UrlKind.APPLE_MUSIC,
        "itunes.apple.com": UrlKind.APPLE_MUSIC,
    },
    "social network": {
        "twitter.com": UrlKind.TWITTER,
        "www.twitter.com": UrlKind.TWITTER,
        "x.com": UrlKind.TWITTER,
        "facebook.com": UrlKind.FACEBOOK,
        "www.facebook.com": UrlKind.FACEBOOK,
        "instagram.com": UrlKind.INSTAGRAM,
        "www.instagram.com": UrlKind.INSTAGRAM,
    },
}


def _artist(
    payload: MusicBrainzArtist,
    instruments: Sequence[str] = (),
) -> CandidateArtist | None:
    mbid = parse_uuid(payload.id)
    if mbid is None:
        log.warning("Skipping MusicBrainz artist with invalid id %r", payload.id)
        return None
    return CandidateArtist(
        mbid=mbid,
        name=payload.name,
        sort_name=payload.sort_name,
        instruments=tuple(instruments),
    )


def translate_artist_credit(
    credits: Iterable[MusicBrainzArtistCredit],
) -> tuple[CandidateCredit, ...]:
    translated: list[CandidateCredit] = []
    for credit in credits:
        artist = _artist(credit.artist)
        if artist is None:
            continue
        credited_as = credit.name if credit.name and credit.name != artist.name else None
        translated.append(
            CandidateCredit(
                artist=artist,
                join_phrase=credit.join_phrase or "",
                credited_as=credited_as,
            )
        )
    return tuple(translated)


def _genre_names(*groups: Iterable[MusicBrainzGenre]) -> tuple[str, ...]:
    """Genre names by descending vote count, first group first on ties."""

    ranked: dict[str, tuple[int, int, str]] = {}
    order = 0
    for group in groups:
        for genre in group:
            key = genre.name.casefold()
            if key not in ranked:
                ranked[key] = (-genre.count, order, genre.name)
                order += 1
    return tuple(name for _, _, name in sorted(ranked.values()))


def _related_artists(
    relations: Iterable[MusicBrainzRelation],
    types: frozenset[str],
) -> tuple[CandidateCredit, ...]:
    credits: list[CandidateCredit] = []
    seen: set[UUID] = set()
    for relation in relations:
        if relation.type not in types or relation.artist is None:
            continue
        artist = _artist(relation.artist, relation.attributes)
        if artist is None or artist.mbid in seen:
            continue
        seen.add(artist.mbid)
        credits.append(CandidateCredit(artist=artist))
    return tuple(credits)


def _recording_credits(
    recording: MusicBrainzRecording | None,
    primary: tuple[CandidateCredit, ...],
) -> dict[CreditRole, tuple[CandidateCredit, ...]]:
    credits: dict[CreditRole, tuple[CandidateCredit, ...]] = {}
    if primary:
        credits[CreditRole.PRIMARY] = primary
    if recording is None:
        return credits
    own = list(recording.relations)
    via_works = [
        work_relation
        for relation in own
        if relation.type == "performance" and relation.work is not None
        for work_relation in relation.work.relations
    ]
    for role, types in _ROLE_RELATIONS.items():
        relations = own if role in _RECORDING_ONLY_ROLES else [*own, *via_works]
        found = _related_artists(relations, types)
        if found:
            credits[role] = found
    return credits


def _track_number(track: MusicBrainzTrack, medium: MusicBrainzMedium, index: int) -> int | None:
    if track.position is not None:
        return track.position
    number = parse_int(track.number)
    if number is not None:
        return number
    if medium.track_offset is not None:
        return medium.track_offset + index + 1
    return None


def _translate_track(
    track: MusicBrainzTrack,
    medium: MusicBrainzMedium,
    index: int,
    *,
    release_mbid: UUID,
    release_credit: tuple[CandidateCredit, ...],
) -> CandidateTrack | None:
    mbid = parse_uuid(track.id)
    if mbid is None:
        return None
    recording = track.recording
    primary = translate_artist_credit(track.artist_credit)
    if not primary and recording is not None:
        primary = translate_artist_credit(recording.artist_credit)
    length = track.length
    if length is None and recording is not None:
        length = recording.length
    return CandidateTrack(
        mbid=mbid,
        title=track.title,
        length=length,
        disc=medium.position,
        disc_mbid=parse_uuid(medium.id),
        number=_track_number(track, medium, index),
        credits=_recording_credits(recording, primary or release_credit),
        genres=_genre_names(recording.genres) if recording is not None else (),
        release_mbid=release_mbid,
    )


def translate_release(release: MusicBrainzRelease) -> CandidateRelease | None:
    """Full release lookup payload to a candidate with every medium's tracks."""

    mbid = parse_uuid(release.id)
    if mbid is None:
        log.warning("Skipping MusicBrainz release with invalid id %r", release.id)
        return None
    release_credit = translate_artist_credit(release.artist_credit)
    tracks: list[CandidateTrack] = []
    for medium in release.media:
        for index, track in enumerate(medium.tracks):
            translated = _translate_track(
                track,
                medium,
                index,
                release_mbid=mbid,
                release_credit=release_credit,
            )
            if translated is not None:
                tracks.append(translated)

    group = release.release_group
    label_info = release.label_info[0] if release.label_info else None
    return CandidateRelease(
        mbid=mbid,
        title=release.title,
        release_group_mbid=parse_uuid(group.id) if group else None,
        asin=release.asin,
        discs=len(release.media) or None,
        media=release.media[0].format if release.media else None,
        country=release.country,
        label=label_info.label.name if label_info and label_info.label else None,
        catalog_no=label_info.catalog_number if label_info else None,
        status=release.status,
        release_type=group.primary_type if group else None,
        date=normalize_date(release.date),
        original_date=normalize_date(group.first_release_date) if group else None,
        script=release.text_representation.script if release.text_representation else None,
        artist_credit=release_credit,
        tracks=tuple(tracks),
        genres=_genre_names(release.genres, group.genres if group else ()),
    )


def translate_recording(recording: MusicBrainzRecording) -> list[CandidateTrack]:
    """Recording search hit to one candidate per (release, track) it appears on."""

    primary = translate_artist_credit(recording.artist_credit)
    candidates: list[CandidateTrack] = []
    for release in recording.releases[:MAX_RELEASES_PER_RECORDING]:
        release_mbid = parse_uuid(release.id)
        if release_mbid is None:
            continue
        for medium in release.media:
            for index, track in enumerate(medium.matched_tracks or medium.tracks):
                mbid = parse_uuid(track.id)
                if mbid is None:
                    continue
                candidates.append(
                    CandidateTrack(
                        mbid=mbid,
                        title=track.title or recording.title or "",
                        length=track.length if track.length is not None else recording.length,
                        disc=medium.position,
                        disc_mbid=parse_uuid(medium.id),
                        number=_track_number(track, medium, index),
                        credits={CreditRole.PRIMARY: primary} if primary else {},
                        genres=_genre_names(recording.genres),
                        release_mbid=release_mbid,
                    )
                )
    return candidates


def translate_artist(artist: MusicBrainzArtist) -> CandidateArtist | None:
    return _artist(artist)


def _url_kind(relation_type: str, url: str) -> UrlKind | None:
    kind = _URL_RELATIONS.get(relation_type)
    if kind is not None:
        return kind
    domains = _URL_DOMAINS.get(relation_type)
    if domains is None:
        log.debug("Ignoring MusicBrainz url relation of type %r", relation_type)
        return None
    domain = (urlparse(url).hostname or "").lower()
    kind = domains.get(domain)
    if kind is None:
        log.debug("Ignoring %s relation to %s", relation_type, domain)
    return kind


def translate_artist_urls(payload: MusicBrainzArtistRelations) -> list[ArtistUrl]:
    urls: list[ArtistUrl] = []
    seen: set[str] = set()
    for relation in payload.relations:
        if relation.url is None or relation.ended:
            continue
        resource = relation.url.resource
        kind = _url_kind(relation.type, resource)
        if kind is None or resource in seen:
            continue
        seen.add(resource)
        urls.append(ArtistUrl(url=resource, kind=kind))
    return urls


def translate_wikipedia_extract(document: MusicBrainzWikipediaDocument) -> str | None:
    extract = document.wikipedia_extract
    if extract is None or not extract.content:
        return None
    return extract.content.strip() or None
