"""Logging setup for the ``socrates`` command line tools.

Handlers are attached to the ``socrates`` package logger, never the root
logger, so an editor embedding the engine keeps control of its own logging.
Warnings from the HTTP client libraries are routed to the same file.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path

__all__ = ["LoggingPolicy", "get_log_path", "reset_logging", "setup_logging"]

PACKAGE_LOGGER = "socrates"
LOG_FILE_NAME = "socrates.log"
_DEFAULT_LOG_DIR = Path.home() / ".socrates" / "logs"
_CLIENT_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai")
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_OWNED_ATTR = "_socrates_owned"


@dataclass(slots=True, frozen=True)
class LoggingPolicy:
    """How verbose the tools are and where the rotating log file lives.

    ``debug`` comes from ``--debug``, ``SOCRATES_DEBUG`` or the persisted
    ``debug_logging`` setting; without it only warnings are recorded.
    """

    debug: bool = False
    console: bool = True
    log_dir: Path | None = None
    max_bytes: int = 1_000_000
    backup_count: int = 3

    @property
    def level(self) -> int:
        return logging.DEBUG if self.debug else logging.WARNING

    @classmethod
    def resolve(cls, *, cli_debug: bool = False, settings_debug: bool = False, console: bool = True) -> LoggingPolicy:
        env_debug = os.environ.get("SOCRATES_DEBUG", "").strip().lower() in _TRUE_VALUES
        return cls(debug=bool(cli_debug or settings_debug or env_debug), console=console)

    def log_path(self) -> Path:
        base = self.log_dir or os.environ.get("SOCRATES_LOG_DIR") or _DEFAULT_LOG_DIR
        return Path(base).expanduser() / LOG_FILE_NAME


_ACTIVE: tuple[LoggingPolicy, Path] | None = None


def setup_logging(policy: LoggingPolicy | None = None, *, force: bool = False) -> Path:
    """Install file (and optional stderr) handlers on the ``socrates`` logger.

    Calling again with an equal policy is a no-op unless ``force`` is set;
    a different policy replaces the handlers installed earlier.
    """

    global _ACTIVE
    policy = policy or LoggingPolicy()
    if _ACTIVE is not None and _ACTIVE[0] == policy and not force:
        return _ACTIVE[1]

    reset_logging()
    log_path = policy.log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=policy.max_bytes,
            backupCount=policy.backup_count,
            encoding="utf-8",
        )
    ]
    if policy.console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _OWNED_ATTR, True)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(policy.level)
    package_logger.propagate = False
    for handler in handlers:
        package_logger.addHandler(handler)

    for name in _CLIENT_LOGGERS:
        client_logger = logging.getLogger(name)
        client_logger.setLevel(logging.WARNING)
        client_logger.addHandler(handlers[0])

    _ACTIVE = (policy, log_path)
    package_logger.debug("Logging to %s (level=%s)", log_path, logging.getLevelName(policy.level))
    return log_path


def reset_logging() -> None:
    """Remove and close every handler installed by :func:`setup_logging`."""

    global _ACTIVE
    closed: set[int] = set()
    for name in (PACKAGE_LOGGER, *_CLIENT_LOGGERS):
        target = logging.getLogger(name)
        for handler in [item for item in target.handlers if getattr(item, _OWNED_ATTR, False)]:
            target.removeHandler(handler)
            if id(handler) not in closed:
                closed.add(id(handler))
                handler.close()
        if name == PACKAGE_LOGGER:
            target.propagate = True
            target.setLevel(logging.NOTSET)
    _ACTIVE = None


def get_log_path() -> Path | None:
    """Return the log file currently written to, if logging is set up."""

    return _ACTIVE[1] if _ACTIVE is not None else None
