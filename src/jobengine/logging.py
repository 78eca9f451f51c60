"""
Logging for the distribution engine.

Adds a DEEP level (5) below DEBUG for per-worker score rows and every
priority write, a :class:`JobLogger` with a ``deep()`` shortcut, and the
level wiring for the ``logging`` config section: one level for the
``jobengine`` tree and optional overrides per distribution pass.

Log Levels
----------
- WARNING (30): Quota shortfalls, rejected writes, dirty-set backlog
- INFO (20): Recompute summaries (default)
- DEBUG (10): Per-pass decisions
- DEEP_DEBUG (5): Score rows, single priority writes

Examples
--------
>>> from jobengine import logging
>>> logger = logging.getLogger(logging.pass_logger_name("secondary_fill"))
>>> logger.deep("Score row: %s", row)

>>> logging.configure(
...     {"default_level": "INFO", "passes": {"auto_primaries": "DEBUG"}}
... )
"""

import logging
from collections.abc import Mapping
from typing import Any

ERROR, WARNING, INFO, DEBUG = (
    logging.ERROR,
    logging.WARNING,
    logging.INFO,
    logging.DEBUG,
)
DEEP_DEBUG = 5
logging.addLevelName(DEEP_DEBUG, "DEEP")

ROOT = "jobengine"

#: Level names accepted by the ``logging`` config section (upper-cased).
LEVELS: dict[str, int] = {
    "DEEP_DEBUG": DEEP_DEBUG,
    "DEBUG": DEBUG,
    "INFO": INFO,
    "WARNING": WARNING,
    "ERROR": ERROR,
    "CRITICAL": logging.CRITICAL,
}


class JobLogger(logging.Logger):
    """Logger with a ``deep()`` method for the DEEP_DEBUG level."""

    def deep(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(DEEP_DEBUG):
            self._log(DEEP_DEBUG, msg, args, **kwargs)


logging.setLoggerClass(JobLogger)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)


def getLogger(name: str | None = None) -> JobLogger:
    """Return the :class:`JobLogger` called ``name``."""
    return logging.getLogger(name)  # type: ignore[return-value]


def pass_logger_name(pass_name: str) -> str:
    """Logger name used by the distribution pass ``pass_name``."""
    return f"{ROOT}.passes.{pass_name}"


def level_of(name: str) -> int:
    """
    Resolve a config level name to its numeric level.

    Parameters
    ----------
    name : str
        Case-insensitive level name, one of :data:`LEVELS`.

    Raises
    ------
    KeyError
        If the name is not a known level.
    """
    return LEVELS[name.upper()]


def configure(log_config: Mapping[str, Any]) -> None:
    """
    Apply a ``logging`` config section.

    Parameters
    ----------
    log_config : Mapping
        ``default_level`` sets the ``jobengine`` logger (INFO when
        missing); ``passes`` maps pass names to their own levels.
    """
    getLogger(ROOT).setLevel(level_of(str(log_config.get("default_level", "INFO"))))
    for pass_name, level in (log_config.get("passes") or {}).items():
        getLogger(pass_logger_name(pass_name)).setLevel(level_of(level))
