"""Local PGP key custody: key records, persistence and engine-dispatched crypto."""
from __future__ import annotations

from .config import AppConfig, load_config
from .exceptions import (
    DecryptionFailed,
    EncryptionFailed,
    InvalidInput,
    InvalidKeyFormat,
    InvalidOutput,
    NoKeysFound,
    PGPError,
    PrivateKeyRequired,
    SigningFailed,
    VerificationFailed,
)
from .logging import configure_logging
from .models import KeyRecord, KeyStatus
from .runtime import bootstrap, open_key_manager
from .services import AsyncKeyManager, KeyManager
from .settings import Settings, SettingsStore, resolve_default_recipient
from .version import __version__

__all__ = [
    "AppConfig",
    "AsyncKeyManager",
    "DecryptionFailed",
    "EncryptionFailed",
    "InvalidInput",
    "InvalidKeyFormat",
    "InvalidOutput",
    "KeyManager",
    "KeyRecord",
    "KeyStatus",
    "NoKeysFound",
    "PGPError",
    "PrivateKeyRequired",
    "Settings",
    "SettingsStore",
    "SigningFailed",
    "VerificationFailed",
    "__version__",
    "bootstrap",
    "configure_logging",
    "load_config",
    "open_key_manager",
    "resolve_default_recipient",
]
