"""User settings persisted independently of the key snapshot."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models import KeyRecord
from .paths import default_settings_path

logger = structlog.get_logger(__name__)


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    default_recipient_id: str = Field(default="", description="Record id used when no recipient is chosen")
    encrypt_hotkey_enabled: bool = Field(default=True)
    decrypt_hotkey_enabled: bool = Field(default=True)


class SettingsStore:
    """Get/set-by-key store backed by a YAML file.

    Unknown keys and values of the wrong type are rejected with ``ValueError``.
    A settings file that cannot be read is logged and replaced by defaults.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path else default_settings_path()
        self._settings = self._load()

    def keys(self) -> Iterable[str]:
        return tuple(Settings.model_fields)

    def get(self, key: str, default: Any = None) -> Any:
        if key not in Settings.model_fields:
            if default is not None:
                return default
            raise KeyError(key)
        return getattr(self._settings, key)

    def set(self, key: str, value: Any) -> None:
        if key not in Settings.model_fields:
            raise ValueError(f"Unknown setting: {key}")
        data = self._settings.model_dump()
        data[key] = value
        try:
            updated = Settings.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid value for {key}: {exc}") from exc
        self._settings = updated
        self._save()
        logger.info("settings.updated", key=key)

    def as_settings(self) -> Settings:
        return self._settings.model_copy()

    def _load(self) -> Settings:
        if not self.path.is_file():
            return Settings()
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
            return Settings.model_validate(data)
        except (OSError, yaml.YAMLError, ValidationError):
            logger.exception("settings.load.failed", path=str(self.path))
            return Settings()

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            yaml.safe_dump(self._settings.model_dump(mode="json"), handle, sort_keys=True)
        os.replace(tmp_name, self.path)


def resolve_default_recipient(store: SettingsStore, records: Iterable[KeyRecord]) -> Optional[KeyRecord]:
    """Return the valid record named by ``default_recipient_id``, if any."""
    wanted = store.get("default_recipient_id")
    if not wanted:
        return None
    for record in records:
        if record.id == wanted and record.is_valid:
            return record
    return None


__all__ = ["Settings", "SettingsStore", "resolve_default_recipient"]
