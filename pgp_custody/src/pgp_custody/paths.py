"""Shared filesystem path helpers."""
from __future__ import annotations

import os
import sys
from pathlib import Path

from platformdirs import PlatformDirs

_APP_NAME = "PGP Custody"
_LINUX_APP_NAME = "pgp-custody"
_STORE_ENV = "PGPC_STORE_DIR"


def _dirs() -> PlatformDirs:
    if sys.platform in ("win32", "darwin"):
        return PlatformDirs(appname=_APP_NAME, appauthor=None, roaming=True)
    return PlatformDirs(appname=_LINUX_APP_NAME, appauthor=None, roaming=False)


def runtime_config_dir() -> Path:
    """Return the per-user configuration directory."""
    return Path(_dirs().user_config_path)


def default_store_dir() -> Path:
    """Return the key storage directory, honouring ``PGPC_STORE_DIR``."""
    value = os.getenv(_STORE_ENV)
    if value:
        return Path(value).expanduser()
    return Path(_dirs().user_data_path)


def default_settings_path() -> Path:
    return runtime_config_dir() / "settings.yaml"


__all__ = ["default_settings_path", "default_store_dir", "runtime_config_dir"]
