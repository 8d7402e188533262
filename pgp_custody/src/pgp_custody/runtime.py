"""Process start-up: load configuration, configure logging, open the key store."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog

from .config import AppConfig, load_config
from .engine import PGPEngine
from .logging import configure_from_config
from .services import KeyManager

logger = structlog.get_logger(__name__)


def bootstrap(config_path: Optional[Path] = None) -> AppConfig:
    """Load the first configuration found and apply its logging level."""
    config = load_config(config_path)
    configure_from_config(config)
    logger.debug("runtime.configured", level=config.logging.normalized_level())
    return config


def open_key_manager(
    config_path: Optional[Path] = None,
    *,
    engine: Optional[PGPEngine] = None,
) -> KeyManager:
    config = bootstrap(config_path)
    return KeyManager(engine=engine, config=config)


__all__ = ["bootstrap", "open_key_manager"]
