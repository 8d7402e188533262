from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Iterable

from ..exceptions import PrivateKeyRequired


class SecretKeyring:
    """Filesystem-backed store of engine-exported secret keys with strict permissions.

    Each blob is the engine's own passphrase-protected secret export, stored as
    ``<FINGERPRINT>.key`` with mode ``0o600``. Records never carry these bytes.
    """

    def __init__(self, base_path: Path) -> None:
        self._base_path = base_path

    @property
    def base_path(self) -> Path:
        return self._base_path

    def store(self, fingerprint: str, secret_blob: bytes) -> Path:
        key_path = self._resolve_key_path(fingerprint)
        key_path.parent.mkdir(parents=True, exist_ok=True)
        os.chmod(key_path.parent, 0o700)
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as handle:
            handle.write(secret_blob)
        os.chmod(key_path, 0o600)
        return key_path

    def load(self, fingerprint: str) -> bytes:
        key_path = self._resolve_key_path(fingerprint)
        if not key_path.exists():
            raise PrivateKeyRequired(f"No secret key stored for {fingerprint}")
        self._assert_permissions(key_path)
        return key_path.read_bytes()

    def contains(self, fingerprint: str) -> bool:
        return self._resolve_key_path(fingerprint).is_file()

    def remove(self, fingerprint: str) -> bool:
        key_path = self._resolve_key_path(fingerprint)
        try:
            key_path.unlink()
        except FileNotFoundError:
            return False
        return True

    def fingerprints(self) -> Iterable[str]:
        if not self._base_path.exists():
            return []
        return [path.stem for path in self._base_path.glob("*.key") if path.is_file()]

    def _resolve_key_path(self, fingerprint: str) -> Path:
        cleaned = fingerprint.replace(" ", "").upper()
        if not cleaned or not all(ch in "0123456789ABCDEF" for ch in cleaned):
            raise ValueError(f"Not a hex fingerprint: {fingerprint!r}")
        return self._base_path / f"{cleaned}.key"

    def _assert_permissions(self, key_path: Path) -> None:
        if os.name != "posix":
            return
        mode = stat.S_IMODE(key_path.stat().st_mode)
        if mode & 0o077:
            raise PermissionError(f"Insecure permissions on {key_path}: expected 0o600, found {oct(mode)}")


__all__ = ["SecretKeyring"]
