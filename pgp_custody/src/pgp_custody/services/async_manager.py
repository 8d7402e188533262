"""Async facade dispatching key manager work off the event loop."""
from __future__ import annotations

import asyncio
import functools
from pathlib import Path
from typing import Any, Callable, List, Tuple, TypeVar

from ..models import KeyRecord
from .key_manager import KeyManager

T = TypeVar("T")


class AsyncKeyManager:
    """Serialized, thread-offloaded access to one :class:`KeyManager`.

    Every call runs in a worker thread while holding a single lock, so key
    generation at large bit sizes never blocks the loop and two operations
    never touch the manager at the same time. Calls run to completion; there
    is no mid-operation cancellation.
    """

    def __init__(self, manager: KeyManager) -> None:
        self._manager = manager
        self._lock = asyncio.Lock()

    @property
    def manager(self) -> KeyManager:
        return self._manager

    @property
    def key_pairs(self) -> Tuple[KeyRecord, ...]:
        return self._manager.key_pairs

    @property
    def encryption_keys(self) -> List[KeyRecord]:
        return self._manager.encryption_keys

    @property
    def signing_keys(self) -> List[KeyRecord]:
        return self._manager.signing_keys

    async def _run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        async with self._lock:
            return await asyncio.to_thread(functools.partial(func, *args, **kwargs))

    async def import_armored_key(self, text: str, nickname: str | None = None) -> KeyRecord:
        return await self._run(self._manager.import_armored_key, text, nickname)

    async def import_key_from_file(self, path: Path | str, nickname: str | None = None) -> KeyRecord:
        return await self._run(self._manager.import_key_from_file, path, nickname)

    async def generate_key_pair(
        self,
        name: str,
        email: str,
        passphrase: str,
        key_size: int | None = None,
    ) -> KeyRecord:
        return await self._run(self._manager.generate_key_pair, name, email, passphrase, key_size)

    async def delete_key(self, record: KeyRecord) -> None:
        await self._run(self._manager.delete_key, record)

    async def update_nickname(self, record: KeyRecord, nickname: str) -> None:
        await self._run(self._manager.update_nickname, record, nickname)

    async def encrypt(self, text: str, recipient: KeyRecord) -> str:
        return await self._run(self._manager.encrypt, text, recipient)

    async def decrypt(self, armored_message: str, record: KeyRecord, passphrase: str) -> str:
        return await self._run(self._manager.decrypt, armored_message, record, passphrase)

    async def sign(self, text: str, record: KeyRecord, passphrase: str) -> str:
        return await self._run(self._manager.sign, text, record, passphrase)

    async def verify(self, signed_message: str, record: KeyRecord) -> bool:
        return await self._run(self._manager.verify, signed_message, record)

    async def encrypt_file(self, source: Path | str, recipient: KeyRecord, destination: Path | str) -> None:
        await self._run(self._manager.encrypt_file, source, recipient, destination)

    async def decrypt_file(
        self,
        source: Path | str,
        record: KeyRecord,
        passphrase: str,
        destination: Path | str,
    ) -> None:
        await self._run(self._manager.decrypt_file, source, record, passphrase, destination)


__all__ = ["AsyncKeyManager"]
