"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    ARTIST = "artist"
    RELEASE = "release"
    TRACK = "track"


class CreditRole(StrEnum):
    """Role of an artist credited on a release or track.

    ``PRIMARY`` is the displayed artist credit (``release_artists`` / ``track_artists``);
    every other role applies to tracks only.
    """

    PRIMARY = "primary"
    PERFORMER = "performer"
    ENGINEER = "engineer"
    MIXER = "mixer"
    PRODUCER = "producer"
    LYRICIST = "lyricist"
    WRITER = "writer"
    COMPOSER = "composer"


RELEASE_CREDIT_ROLES: tuple[CreditRole, ...] = (CreditRole.PRIMARY,)
TRACK_CREDIT_ROLES: tuple[CreditRole, ...] = tuple(CreditRole)


class TrackStatus(StrEnum):
    RESOLVED = "resolved"
    UNMATCHED = "unmatched"


class UnmatchedReason(StrEnum):
    NO_CANDIDATE = "no_candidate"
    BELOW_THRESHOLD = "below_threshold"
    AMBIGUOUS = "ambiguous"


class ChangeKind(StrEnum):
    UPSERT = "upsert"
    DELETE = "delete"


class EnrichmentKind(StrEnum):
    ARTIST_URLS = "artist_urls"
    ARTIST_DESCRIPTION = "artist_description"
    ARTIST_IMAGES = "artist_images"
    RELEASE_COVER = "release_cover"
    INDEX_SEARCH = "index_search"


class UrlKind(StrEnum):
    BIOGRAPHY = "biography"
    DISCOGS = "discogs"
    LASTFM = "lastfm"
    ALLMUSIC = "allmusic"
    YOUTUBE = "youtube"
    HOMEPAGE = "homepage"
    WIKIDATA = "wikidata"
    SONGKICK = "songkick"
    SOUNDCLOUD = "soundcloud"
    BANDCAMP = "bandcamp"
    SPOTIFY = "spotify"
    DEEZER = "deezer"
    TIDAL = "tidal"
    APPLE_MUSIC = "apple_music"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    OTHER = "other"


class ImageKind(StrEnum):
    FRONT = "front"
    BACK = "back"
    OTHER = "other"
