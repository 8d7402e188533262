"""Configuration loading utilities."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .logging import DEFAULT_LEVEL, LEVELS
from .paths import default_store_dir, runtime_config_dir

SUPPORTED_KEY_SIZES: Tuple[int, ...] = (2048, 3072, 4096)


class StorageConfig(BaseModel):
    store_dir: Path = Field(default_factory=default_store_dir, description="Directory holding the key snapshot")
    snapshot_name: str = Field(default="keys.json")
    secrets_dirname: str = Field(default="secrets")
    backup_corrupt_snapshot: bool = Field(
        default=True,
        description="Copy an unreadable snapshot aside before it can be overwritten",
    )

    @field_validator("store_dir")
    @classmethod
    def _expand_store_dir(cls, value: Path) -> Path:
        return Path(value).expanduser()

    @field_validator("snapshot_name", "secrets_dirname")
    @classmethod
    def _plain_name(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError(f"Expected a plain file name, got {value!r}")
        return value


class LoggingConfig(BaseModel):
    level: str = Field(default=DEFAULT_LEVEL, description="Logging verbosity level")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        if value.upper() not in LEVELS:
            raise ValueError(f"Unknown log level {value!r}; expected one of {sorted(LEVELS)}")
        return value

    def normalized_level(self) -> str:
        return self.level.upper()


class KeyDefaults(BaseModel):
    key_size: int = Field(default=4096, description="Bit length for generated keys")

    @field_validator("key_size")
    @classmethod
    def _supported_size(cls, value: int) -> int:
        if value not in SUPPORTED_KEY_SIZES:
            raise ValueError(f"Unsupported key size {value}; expected one of {SUPPORTED_KEY_SIZES}")
        return value


class AppConfig(BaseModel):
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    keys: KeyDefaults = Field(default_factory=KeyDefaults)


def config_search_paths(explicit: Optional[Path] = None) -> Iterable[Path]:
    if explicit:
        yield explicit
    yield Path.cwd() / ".pgp-custody" / "config.yaml"
    yield runtime_config_dir() / "config.yaml"


def load_config(path: Optional[Path] = None) -> AppConfig:
    for candidate in config_search_paths(path):
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
            try:
                return AppConfig.model_validate(data)
            except ValidationError as exc:
                raise ValueError(f"Invalid configuration in {candidate}: {exc}") from exc
    return AppConfig()


def dump_default_config(target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(AppConfig().model_dump(mode="json"), handle, sort_keys=False)


__all__ = [
    "AppConfig",
    "KeyDefaults",
    "LoggingConfig",
    "StorageConfig",
    "SUPPORTED_KEY_SIZES",
    "config_search_paths",
    "dump_default_config",
    "load_config",
]
