"""MusicBrainz API payloads shaped like real responses, trimmed to what the adapter reads."""

from __future__ import annotations

from typing import Any

from tests.helpers.catalog import mbid

type Payload = dict[str, Any]

RELEASE_ID = str(mbid("mb:release:dummy"))
GROUP_ID = str(mbid("mb:group:dummy"))
MEDIUM_ID = str(mbid("mb:medium:dummy"))
MISSING_RELEASE_ID = str(mbid("mb:release:gone"))
TRACK_IDS = (str(mbid("mb:track:1")), str(mbid("mb:track:2")))
RECORDING_IDS = (str(mbid("mb:recording:1")), str(mbid("mb:recording:2")))
WORK_ID = str(mbid("mb:work:mysterons"))

PORTISHEAD = {
    "id": str(mbid("mb:artist:portishead")),
    "name": "Portishead",
    "sort-name": "Portishead",
}
GEOFF = {"id": str(mbid("mb:artist:geoff")), "name": "Geoff Barrow", "sort-name": "Barrow, Geoff"}
BETH = {"id": str(mbid("mb:artist:beth")), "name": "Beth Gibbons", "sort-name": "Gibbons, Beth"}
ADRIAN = {"id": str(mbid("mb:artist:adrian")), "name": "Adrian Utley", "sort-name": "Utley, Adrian"}
ENGINEER = {"id": str(mbid("mb:artist:dave")), "name": "Dave McDonald"}


def release_payload() -> Payload:
    return {
        "id": RELEASE_ID,
        "title": "Dummy",
        "status": "Official",
        "country": "GB",
        "date": "1994-08-22",
        "asin": "B000001FI7",
        "barcode": "042282855329",
        "packaging": "Jewel Case",
        "text-representation": {"language": "eng", "script": "Latn"},
        "artist-credit": [{"name": "Portishead", "joinphrase": "", "artist": PORTISHEAD}],
        "release-group": {
            "id": GROUP_ID,
            "title": "Dummy",
            "primary-type": "Album",
            "first-release-date": "1994-08-22",
            "genres": [{"name": "trip hop", "count": 9}, {"name": "electronic", "count": 3}],
        },
        "label-info": [{"catalog-number": "828 553-2", "label": {"name": "Go! Beat"}}],
        "genres": [{"name": "Trip Hop", "count": 4}, {"name": "downtempo", "count": 6}],
        "media": [
            {
                "id": MEDIUM_ID,
                "position": 1,
                "format": "CD",
                "track-count": 3,
                "tracks": [
                    {
                        "id": TRACK_IDS[0],
                        "title": "Mysterons",
                        "number": "1",
                        "position": 1,
                        "length": 306000,
                        "recording": {
                            "id": RECORDING_IDS[0],
                            "title": "Mysterons",
                            "length": 306213,
                            "relations": [
                                {"type": "producer", "target-type": "artist", "artist": GEOFF},
                                {"type": "mix", "target-type": "artist", "artist": ADRIAN},
                                {"type": "engineer", "target-type": "artist", "artist": ENGINEER},
                                {
                                    "type": "instrument",
                                    "target-type": "artist",
                                    "artist": ADRIAN,
                                    "attributes": ["guitar"],
                                },
                                {
                                    "type": "performance",
                                    "target-type": "work",
                                    "work": {
                                        "id": WORK_ID,
                                        "title": "Mysterons",
                                        "relations": [
                                            {"type": "composer", "artist": GEOFF},
                                            {"type": "lyricist", "artist": BETH},
                                            {"type": "mix", "artist": ENGINEER},
                                        ],
                                    },
                                },
                            ],
                        },
                    },
                    {
                        "id": TRACK_IDS[1],
                        "title": "Sour Times",
                        "number": "2",
                        "length": None,
                        "artist-credit": [
                            {"name": "Portishead", "joinphrase": " feat. ", "artist": PORTISHEAD},
                            {"name": "Beth", "joinphrase": "", "artist": BETH},
                        ],
                        "recording": {
                            "id": RECORDING_IDS[1],
                            "title": "Sour Times",
                            "length": 254000,
                            "genres": [{"name": "trip hop", "count": 2}],
                        },
                    },
                    {"id": "not-a-uuid", "title": "Broken", "position": 3},
                ],
            }
        ],
    }


def release_search_payload() -> Payload:
    return {
        "created": "2026-01-01T00:00:00.000Z",
        "count": 2,
        "offset": 0,
        "releases": [
            {"id": RELEASE_ID, "title": "Dummy", "score": 100},
            {"id": MISSING_RELEASE_ID, "title": "Dummy (Gone)", "score": 80},
        ],
    }


def recording_search_payload(*, releases: int = 1) -> Payload:
    appearances: list[Payload] = [
        {
            "id": RELEASE_ID if index == 0 else str(mbid(f"mb:release:compilation:{index}")),
            "title": "Dummy",
            "media": [
                {
                    "position": 1,
                    "format": "CD",
                    "track-offset": 1,
                    "track": [
                        {
                            "id": TRACK_IDS[1] if index == 0 else str(mbid(f"mb:track:c{index}")),
                            "number": "2",
                            "title": "Sour Times",
                            "length": 253000,
                        }
                    ],
                }
            ],
        }
        for index in range(releases)
    ]
    return {
        "count": 1,
        "offset": 0,
        "recordings": [
            {
                "id": RECORDING_IDS[1],
                "title": "Sour Times",
                "length": 254000,
                "score": 100,
                "artist-credit": [{"name": "Portishead", "artist": PORTISHEAD}],
                "releases": [*appearances, {"id": "bogus", "title": "Bootleg"}],
            }
        ],
    }


def artist_search_payload() -> Payload:
    return {
        "count": 2,
        "offset": 0,
        "artists": [{**PORTISHEAD, "score": 100}, {"id": "bogus", "name": "Portishead Tribute"}],
    }


def artist_relations_payload() -> Payload:
    def url(relation_type: str, resource: str, **extra: object) -> Payload:
        return {"type": relation_type, "target-type": "url", "url": {"resource": resource}, **extra}

    return {
        **PORTISHEAD,
        "relations": [
            url("official homepage", "https://portishead.co.uk/"),
            url("discogs", "https://www.discogs.com/artist/3840"),
            url("free streaming", "https://open.spotify.com/artist/6liAMWkVf5LH7YR9yfFy1Y"),
            url("streaming", "https://streaming.example.com/portishead"),
            url("social network", "https://twitter.com/portishead", ended=True),
            url("purchase for download", "https://shop.example.com/portishead"),
            url("discogs", "https://www.discogs.com/artist/3840"),
            {"type": "member of band", "target-type": "artist", "artist": BETH},
        ],
    }


def wikipedia_payload(content: str | None) -> Payload:
    return {"wikipediaExtract": {"content": content, "language": "en", "title": "Portishead"}}
