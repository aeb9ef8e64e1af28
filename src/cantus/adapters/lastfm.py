"""Artist image galleries read from Last.fm artist pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import httpx
from bs4 import BeautifulSoup

from cantus.adapters.http_resilience import ResilientClient, shared_limiter
from cantus.config.lastfm import LastFmConfig, get_lastfm_config
from cantus.domain.errors import ExternalSourceUnavailable, InvalidExternalPayload
from cantus.domain.model import ArtistImage, UrlKind

if TYPE_CHECKING:
    from collections.abc import Callable

    from cantus.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

GALLERY_ITEM_SELECTOR = "ul.image-list li.image-list-item-wrapper a.image-list-item"


class LastFmPageError(InvalidExternalPayload):
    """Raised when a Last.fm url does not lead to an artist gallery."""


def gallery_path(page: str) -> str:
    """Gallery path below an artist page, e.g. ``/music/Portishead/+images``."""

    path = urlsplit(page).path.rstrip("/")
    if not path.startswith("/music/"):
        raise LastFmPageError(f"Not a Last.fm artist page: {page}")
    return f"{path}/+images"


def parse_gallery(html: str) -> list[tuple[str, str | None]]:
    """Image ids of a gallery page in page order, each with its alt text."""

    soup = BeautifulSoup(html, "html.parser")
    found: list[tuple[str, str | None]] = []
    seen: set[str] = set()
    for anchor in soup.select(GALLERY_ITEM_SELECTOR):
        href = anchor.get("href")
        if not isinstance(href, str):
            continue
        image_id = href.rstrip("/").rsplit("/", 1)[-1]
        if not image_id or image_id.startswith("+") or image_id in seen:
            continue
        seen.add(image_id)
        image = anchor.select_one("img")
        alt = image.get("alt") if image is not None else None
        description = alt.strip() if isinstance(alt, str) and alt.strip() else None
        found.append((image_id, description))
    return found


@dataclass(slots=True)
class LastFmImageSource:
    config: LastFmConfig = field(default_factory=get_lastfm_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=ResilientClient
    )

    @property
    def source_name(self) -> str:
        return self.config.resilience.name

    @property
    def url_kind(self) -> UrlKind:
        return UrlKind.LASTFM

    def has_capacity(self) -> bool:
        ratelimit = self.config.resilience.ratelimit
        if ratelimit is None:
            return True
        return shared_limiter(self.source_name, ratelimit).has_capacity()

    def image_url(self, image_id: str) -> str:
        return f"{self.config.image_base_url}/{self.config.image_size}x0/{image_id}.jpg"

    async def artist_images(self, page: str) -> list[ArtistImage]:
        path = gallery_path(page)
        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.get(path)
                if response.status_code == httpx.codes.NOT_FOUND:
                    log.debug("Last.fm has no gallery at %s", path)
                    return []
                response.raise_for_status()
                html = response.text
        except httpx.HTTPError as exc:
            log.warning("Last.fm request %s failed: %s", path, exc)
            raise ExternalSourceUnavailable(self.source_name, str(exc)) from exc

        gallery = parse_gallery(html)[: self.config.max_images]
        log.debug("Last.fm gallery %s lists %d image(s)", path, len(gallery))
        return [
            ArtistImage(url=self.image_url(image_id), source=self.source_name, description=alt)
            for image_id, alt in gallery
        ]


if TYPE_CHECKING:
    from cantus.domain.ports.fetching import ArtistImageSource

    _images_check: ArtistImageSource = LastFmImageSource()
