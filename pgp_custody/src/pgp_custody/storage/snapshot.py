"""Single-file JSON snapshot of the key collection."""
from __future__ import annotations

import contextlib
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

import structlog

from ..models import KeyRecord

logger = structlog.get_logger(__name__)

CORRUPT_SUFFIX = ".corrupt"


class SnapshotError(Exception):
    """Raised when a snapshot file exists but cannot be decoded"""


class SnapshotFile:
    """Durable mirror of the in-memory record sequence.

    The file holds a JSON array of record objects with sorted keys. Writes go to
    a temporary file in the same directory which then replaces the snapshot, so
    a reader never sees a half-written file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + CORRUPT_SUFFIX)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> List[KeyRecord]:
        if not self.exists():
            return []
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(payload, list):
                raise ValueError("Snapshot root must be a JSON array")
            records = [KeyRecord.from_dict(entry) for entry in payload]
            if len({record.id for record in records}) != len(records):
                raise ValueError("Snapshot contains duplicate record ids")
            return records
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise SnapshotError(f"Unreadable snapshot {self.path}: {exc}") from exc

    def save(self, records: Sequence[KeyRecord]) -> None:
        data = json.dumps(
            [record.to_dict() for record in records],
            indent=2,
            sort_keys=True,
            ensure_ascii=False,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

    def backup(self) -> Optional[Path]:
        """Copy the current snapshot aside; returns the copy or ``None`` if absent."""
        if not self.exists():
            return None
        target = self.backup_path
        shutil.copy2(self.path, target)
        logger.warning("keystore.snapshot.backed_up", path=str(target))
        return target


__all__ = ["CORRUPT_SUFFIX", "SnapshotError", "SnapshotFile"]
