from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from cantus.config import (
    InvalidConfigurationValueError,
    MissingConfigurationError,
    configure_logging,
    get_coverartarchive_config,
    get_enrichment_config,
    get_import_config,
    get_lastfm_config,
    get_matching_config,
    get_musicbrainz_config,
    require_env_vars,
)
from cantus.config.enrichment import DEFAULT_SCHEDULES
from cantus.config.env import env_float, env_int, env_list, env_str
from cantus.config.importing import DEFAULT_AUDIO_EXTENSIONS

if TYPE_CHECKING:
    from pathlib import Path


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_typed_env_helpers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CANTUS_SAMPLE_INT", " 7 ")
    monkeypatch.setenv("CANTUS_SAMPLE_FLOAT", "0.25")
    monkeypatch.setenv("CANTUS_SAMPLE_LIST", "a, b,, c ")
    monkeypatch.setenv("CANTUS_SAMPLE_STR", "  ")
    monkeypatch.delenv("CANTUS_SAMPLE_UNSET", raising=False)

    assert env_int("CANTUS_SAMPLE_INT", 1) == 7
    assert env_float("CANTUS_SAMPLE_FLOAT", 1.0, maximum=1.0) == 0.25
    assert env_list("CANTUS_SAMPLE_LIST", ()) == ("a", "b", "c")
    assert env_str("CANTUS_SAMPLE_STR", "fallback") == "fallback"
    assert env_int("CANTUS_SAMPLE_UNSET", 3) == 3
    assert env_list("CANTUS_SAMPLE_UNSET", ["x"]) == ("x",)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("seven", "an integer"), ("0", "an integer >= 1")],
)
def test_env_int_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch,
    value: str,
    expected: str,
) -> None:
    monkeypatch.setenv("CANTUS_SAMPLE_INT", value)

    with pytest.raises(InvalidConfigurationValueError) as exc:
        env_int("CANTUS_SAMPLE_INT", 1, minimum=1)

    assert exc.value.name == "CANTUS_SAMPLE_INT"
    assert exc.value.value == value
    assert exc.value.expected == expected


def test_env_float_enforces_bounds(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CANTUS_MATCH_THRESHOLD", "1.5")

    with pytest.raises(InvalidConfigurationValueError, match="CANTUS_MATCH_THRESHOLD"):
        get_matching_config()


def test_matching_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CANTUS_MATCH_THRESHOLD", "0.8")
    monkeypatch.setenv("CANTUS_AMBIGUITY_MARGIN", "0")

    config = get_matching_config()

    assert config.threshold == 0.8
    assert config.ambiguity_margin == 0.0
    assert sum(config.track_weights.values()) == pytest.approx(1.0)
    assert sum(config.release_weights.values()) == pytest.approx(1.0)


def test_musicbrainz_config_requires_contact(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MUSICBRAINZ_CONTACT", raising=False)

    with pytest.raises(MissingConfigurationError, match="MUSICBRAINZ_CONTACT"):
        get_musicbrainz_config()


def test_musicbrainz_config_identifies_the_application(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("MUSICBRAINZ_APP_NAME", "cantus-tests")
    monkeypatch.setenv("MUSICBRAINZ_CONTACT", "ops@example.invalid")
    monkeypatch.setenv("CANTUS_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("CANTUS_SEARCH_LIMIT", "8")

    config = get_musicbrainz_config()

    resilience = config.resilience
    assert resilience.default_headers is not None
    assert resilience.default_headers["User-Agent"] == "cantus-tests (ops@example.invalid)"
    assert resilience.ratelimit is not None
    assert (resilience.ratelimit.max_calls, resilience.ratelimit.per_seconds) == (1, 1.0)
    assert resilience.cache is not None
    assert resilience.cache.sqlite_path is not None
    assert resilience.cache.sqlite_path.startswith(str(tmp_path.resolve()))
    assert config.search_limit == 8


def test_coverartarchive_config_has_its_own_bucket() -> None:
    config = get_coverartarchive_config()

    assert config.resilience.name == "coverartarchive"
    assert config.resilience.ratelimit is not None


def test_lastfm_config_defaults_and_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CANTUS_LASTFM_URL", "CANTUS_LASTFM_IMAGE_SIZE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CANTUS_LASTFM_MAX_IMAGES", "5")

    config = get_lastfm_config()

    assert config.resilience.name == "lastfm"
    assert config.resilience.base_url == "https://www.last.fm"
    assert config.resilience.ratelimit is not None
    assert (config.image_size, config.max_images) == (4096, 5)

    monkeypatch.setenv("CANTUS_LASTFM_IMAGE_SIZE", "12")
    with pytest.raises(InvalidConfigurationValueError):
        get_lastfm_config()


def test_enrichment_config_defaults_and_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CANTUS_CRON_ARTIST_URLS", "CANTUS_REFRESH_DAYS", "CANTUS_TASK_WORKERS"):
        monkeypatch.delenv(name, raising=False)
    defaults = get_enrichment_config()

    monkeypatch.setenv("CANTUS_CRON_ARTIST_URLS", "*/5 * * * *")
    monkeypatch.setenv("CANTUS_REFRESH_DAYS", "7")
    monkeypatch.setenv("CANTUS_TASK_WORKERS", "6")
    monkeypatch.setenv("CANTUS_TASK_DEFERRAL", "0.5")
    custom = get_enrichment_config()

    assert dict(defaults.schedules) == DEFAULT_SCHEDULES
    assert defaults.refresh_after == timedelta(days=30)
    assert custom.schedules["artist_urls"] == "*/5 * * * *"
    assert custom.schedules["index_search"] == DEFAULT_SCHEDULES["index_search"]
    assert custom.refresh_after == timedelta(days=7)
    assert custom.queue.workers == 6
    assert custom.queue.deferral_seconds == 0.5


def test_import_config_normalizes_extensions(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CANTUS_AUDIO_EXTENSIONS", raising=False)
    assert get_import_config().extensions == DEFAULT_AUDIO_EXTENSIONS

    monkeypatch.setenv("CANTUS_AUDIO_EXTENSIONS", "flac, .mp3")
    monkeypatch.setenv("CANTUS_IMPORT_WORKERS", "2")

    config = get_import_config()

    assert config.extensions == (".flac", ".mp3")
    assert config.workers == 2


def test_configure_logging_quiets_http_loggers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CANTUS_LOG_LEVEL", "debug")
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level

    try:
        configure_logging(force=True)

        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
