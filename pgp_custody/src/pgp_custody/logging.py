"""Structured logging setup for the key custody layer.

Every record is a single JSON line carrying ``ts``, ``level``, ``component`` and
``msg`` plus whatever context the caller bound. Values under secret-looking keys
are masked before rendering so a stray ``passphrase=`` never reaches a log sink.
"""
from __future__ import annotations

import logging
import sys
from typing import IO, TYPE_CHECKING, Dict, FrozenSet, MutableMapping, Optional

import structlog

if TYPE_CHECKING:
    from .config import AppConfig

LEVELS: Dict[str, int] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

DEFAULT_LEVEL = "INFO"
_DEFAULT_COMPONENT = "pgp_custody"
_MASK = "***"
_SECRET_FIELDS: FrozenSet[str] = frozenset({"passphrase", "secret", "secret_blob", "key_data"})

EventDict = MutableMapping[str, object]


def configure_logging(level: Optional[str] = None, *, stream: Optional[IO[str]] = None) -> None:
    """Install the JSON renderer at ``level`` (case-insensitive, unknown names fall back to INFO)."""
    numeric_level = LEVELS.get((level or DEFAULT_LEVEL).upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        handlers=[logging.StreamHandler(stream or sys.stdout)],
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.stdlib.add_log_level,
            _mask_secrets,
            _add_component,
            _event_to_msg,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def configure_from_config(config: "AppConfig") -> None:
    configure_logging(config.logging.normalized_level())


def _mask_secrets(_logger: object, _name: str, event_dict: EventDict) -> EventDict:
    for key in _SECRET_FIELDS.intersection(event_dict):
        event_dict[key] = _MASK
    return event_dict


def _add_component(logger: object, _name: str, event_dict: EventDict) -> EventDict:
    if event_dict.get("component") is None:
        event_dict["component"] = getattr(logger, "name", None) or _DEFAULT_COMPONENT
    return event_dict


def _event_to_msg(_logger: object, _name: str, event_dict: EventDict) -> EventDict:
    if "msg" not in event_dict:
        event_dict["msg"] = event_dict.pop("event", "")
    return event_dict


__all__ = ["DEFAULT_LEVEL", "LEVELS", "configure_from_config", "configure_logging"]
