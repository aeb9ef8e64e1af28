"""Content fingerprints used to skip writes when nothing changed."""

from __future__ import annotations

import dataclasses
import hashlib
import json
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from cantus.domain.model import TagBundle


def _canonical(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: _canonical(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, Mapping):
        return {str(_canonical(key)): _canonical(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(str(_canonical(item)) for item in value)
    return value


def content_fingerprint(*parts: object) -> str:
    """SHA-256 over the canonical JSON form of ``parts``.

    Dataclasses, mappings, enums and UUIDs are canonicalized so logically equal inputs
    produce the same digest regardless of mapping insertion order.
    """

    payload = json.dumps(
        [_canonical(part) for part in parts],
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def tags_fingerprint(bundle: TagBundle) -> str:
    return content_fingerprint(bundle.canonical())
