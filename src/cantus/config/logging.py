"""Shared logging helpers for cantus."""

from __future__ import annotations

import logging

from .env import env_str

NOISY_LOGGERS = ("httpx", "httpcore", "hishel", "apscheduler.executors.default")


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: the level
    defaults to ``CANTUS_LOG_LEVEL`` (INFO when unset) and a terse format suitable for
    CLI output. Pass ``force=True`` to reconfigure during tests.
    """

    if level is None:
        level = logging.getLevelNamesMapping().get(
            env_str("CANTUS_LOG_LEVEL", "INFO").upper(), logging.INFO
        )
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
