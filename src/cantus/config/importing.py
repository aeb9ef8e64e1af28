"""Library scan and import settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .env import env_int, env_list

DEFAULT_AUDIO_EXTENSIONS: Final[tuple[str, ...]] = (
    ".mp3",
    ".flac",
    ".ogg",
    ".oga",
    ".opus",
    ".m4a",
    ".mp4",
    ".aac",
    ".wav",
    ".aif",
    ".aiff",
    ".wma",
    ".ape",
    ".wv",
)

# ID3 frames carry multiple values NUL-separated; free-form containers often use ';'
DEFAULT_TAG_SEPARATORS: Final[tuple[str, ...]] = ("\x00", ";")


@dataclass(frozen=True, slots=True)
class ImportConfig:
    workers: int = 4
    persist_attempts: int = 3
    extensions: tuple[str, ...] = DEFAULT_AUDIO_EXTENSIONS
    tag_separators: tuple[str, ...] = field(default_factory=lambda: DEFAULT_TAG_SEPARATORS)


def get_import_config() -> ImportConfig:
    extensions = env_list("CANTUS_AUDIO_EXTENSIONS", DEFAULT_AUDIO_EXTENSIONS)
    return ImportConfig(
        workers=env_int("CANTUS_IMPORT_WORKERS", 4, minimum=1),
        persist_attempts=env_int("CANTUS_PERSIST_ATTEMPTS", 3, minimum=1),
        extensions=tuple(ext if ext.startswith(".") else f".{ext}" for ext in extensions),
    )
