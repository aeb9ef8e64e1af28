from __future__ import annotations

import logging

import pytest

from cantus.adapters.musicbrainz.schema import (
    MusicBrainzArtistRelations,
    MusicBrainzRecordingSearch,
    MusicBrainzRelease,
    MusicBrainzWikipediaDocument,
)
from tests.helpers.musicbrainz import (
    GROUP_ID,
    RELEASE_ID,
    artist_relations_payload,
    recording_search_payload,
    release_payload,
    wikipedia_payload,
)


def test_release_payload_reads_hyphenated_aliases() -> None:
    release = MusicBrainzRelease.model_validate(release_payload())

    assert release.id == RELEASE_ID
    assert release.release_group is not None
    assert release.release_group.id == GROUP_ID
    assert release.release_group.primary_type == "Album"
    assert release.label_info[0].catalog_number == "828 553-2"
    assert release.text_representation is not None
    assert release.text_representation.script == "Latn"
    medium = release.media[0]
    assert medium.track_count == 3
    assert [track.title for track in medium.tracks] == ["Mysterons", "Sour Times", "Broken"]
    recording = medium.tracks[0].recording
    assert recording is not None
    work = recording.relations[-1].work
    assert work is not None
    assert [relation.type for relation in work.relations] == ["composer", "lyricist", "mix"]
    assert medium.tracks[1].artist_credit[0].join_phrase == " feat. "


def test_search_media_list_matched_tracks_under_track() -> None:
    search = MusicBrainzRecordingSearch.model_validate(recording_search_payload())

    medium = search.recordings[0].releases[0].media[0]
    assert medium.tracks == []
    assert [track.number for track in medium.matched_tracks] == ["2"]
    assert medium.track_offset == 1


def test_artist_relations_and_wikipedia_documents() -> None:
    relations = MusicBrainzArtistRelations.model_validate(artist_relations_payload())
    document = MusicBrainzWikipediaDocument.model_validate(wikipedia_payload("Bristol band."))

    assert relations.relations[4].ended is True
    assert relations.relations[-1].url is None
    assert document.wikipedia_extract is not None
    assert document.wikipedia_extract.content == "Bristol band."


def test_unmodeled_keys_are_logged_once(caplog: pytest.LogCaptureFixture) -> None:
    payload = {**release_payload(), "cantus-unknown-key": 1}
    caplog.set_level(logging.DEBUG, logger="cantus.adapters.musicbrainz.schema")

    MusicBrainzRelease.model_validate(payload)
    MusicBrainzRelease.model_validate(payload)

    logged = [record for record in caplog.records if "cantus-unknown-key" in record.getMessage()]
    assert len(logged) == 1


def test_missing_required_fields_fail_validation() -> None:
    payload = release_payload()
    del payload["title"]

    with pytest.raises(ValueError, match="title"):
        MusicBrainzRelease.model_validate(payload)
