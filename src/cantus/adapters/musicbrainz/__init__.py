"""MusicBrainz metadata adapter."""

from __future__ import annotations

from .client import MusicBrainzAPIError, MusicBrainzClient, lucene_query
from .fetcher import MusicBrainzSource
from .translator import (
    translate_artist_credit,
    translate_artist_urls,
    translate_recording,
    translate_release,
    translate_wikipedia_extract,
)

__all__ = [
    "MusicBrainzAPIError",
    "MusicBrainzClient",
    "MusicBrainzSource",
    "lucene_query",
    "translate_artist_credit",
    "translate_artist_urls",
    "translate_recording",
    "translate_release",
    "translate_wikipedia_extract",
]
