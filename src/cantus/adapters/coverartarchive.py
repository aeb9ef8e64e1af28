"""Cover Art Archive image lookups."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cantus.adapters.http_resilience import ResilientClient, shared_limiter
from cantus.config.coverartarchive import CoverArtArchiveConfig, get_coverartarchive_config
from cantus.domain.errors import ExternalSourceUnavailable, InvalidExternalPayload
from cantus.domain.model import ImageKind, ReleaseImage

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from cantus.config.http_resilience import ResilienceConfig

log = getLogger(__name__)


class CoverArtImage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    image: str
    front: bool = False
    back: bool = False
    approved: bool = True
    types: list[str] = Field(default_factory=list)


class CoverArtListing(BaseModel):
    model_config = ConfigDict(extra="ignore")

    release: str | None = None
    images: list[CoverArtImage] = Field(default_factory=list["CoverArtImage"])


class CoverArtArchiveAPIError(InvalidExternalPayload):
    """Raised when the Cover Art Archive returns an unexpected response."""


def _image_kind(image: CoverArtImage) -> ImageKind:
    if image.front:
        return ImageKind.FRONT
    if image.back:
        return ImageKind.BACK
    return ImageKind.OTHER


def translate_listing(listing: CoverArtListing, *, source: str) -> list[ReleaseImage]:
    """Approved images of a release, front cover first."""

    images: list[ReleaseImage] = []
    seen: set[str] = set()
    for image in listing.images:
        if not image.approved or image.image in seen:
            continue
        seen.add(image.image)
        images.append(ReleaseImage(url=image.image, kind=_image_kind(image), source=source))
    images.sort(key=lambda item: item.kind is not ImageKind.FRONT)
    return images


@dataclass(slots=True)
class CoverArtArchiveSource:
    config: CoverArtArchiveConfig = field(default_factory=get_coverartarchive_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=ResilientClient
    )

    @property
    def source_name(self) -> str:
        return self.config.resilience.name

    def has_capacity(self) -> bool:
        ratelimit = self.config.resilience.ratelimit
        if ratelimit is None:
            return True
        return shared_limiter(self.source_name, ratelimit).has_capacity()

    async def release_images(self, mbid: UUID) -> list[ReleaseImage]:
        path = f"release/{mbid}"
        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.get(path)
                if response.status_code == httpx.codes.NOT_FOUND:
                    log.debug("Cover Art Archive has no images for release %s", mbid)
                    return []
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            log.warning("Cover Art Archive request %s failed: %s", path, exc)
            raise ExternalSourceUnavailable(self.source_name, str(exc)) from exc
        except ValueError as exc:
            raise CoverArtArchiveAPIError(f"Malformed response for {path}") from exc

        try:
            listing = CoverArtListing.model_validate(payload)
        except ValidationError as exc:
            raise CoverArtArchiveAPIError(f"Invalid cover art listing: {exc}") from exc
        return translate_listing(listing, source=self.source_name)


if TYPE_CHECKING:
    from cantus.domain.ports.fetching import ArtworkSource

    _artwork_check: ArtworkSource = CoverArtArchiveSource()
