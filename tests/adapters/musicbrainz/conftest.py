from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from cantus.adapters.http_resilience import ResilientClient
from cantus.adapters.musicbrainz import MusicBrainzClient, MusicBrainzSource
from cantus.config.http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from cantus.config.musicbrainz import MusicBrainzConfig

if TYPE_CHECKING:
    from collections.abc import Callable

type Handler = Callable[[httpx.Request], httpx.Response]
type SourceFactory = Callable[..., MusicBrainzSource]


def make_config(*, ratelimit: RateLimit | None = None) -> MusicBrainzConfig:
    resilience = ResilienceConfig(
        name="musicbrainz-test",
        base_url="https://mb.test/ws/2",
        retry=RetryPolicy(total=0),
        cache=None,
        ratelimit=ratelimit,
        default_headers={"User-Agent": "cantus-tests (tests@example.invalid)"},
    )
    return MusicBrainzConfig(resilience=resilience, web_url="https://mb.test", search_limit=3)


@pytest.fixture
def make_source() -> SourceFactory:
    def factory(handler: Handler, *, ratelimit: RateLimit | None = None) -> MusicBrainzSource:
        config = make_config(ratelimit=ratelimit)
        transport = httpx.MockTransport(handler)
        client = MusicBrainzClient(
            config=config,
            client_factory=lambda resilience: ResilientClient(resilience, transport=transport),
        )
        return MusicBrainzSource(config=config, client=client)

    return factory
