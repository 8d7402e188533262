"""
PGP engine protocol definition.

The key manager never touches OpenPGP packets itself. Everything that parses,
generates or transforms key material goes through an object satisfying
:class:`PGPEngine`, so the backing library can be swapped (PGPy, a gpg binary
wrapper, an in-memory fake for tests) without changing the manager.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence, runtime_checkable


class ArmorKind(str, Enum):
    PUBLIC_KEY = "PUBLIC KEY BLOCK"
    SECRET_KEY = "PRIVATE KEY BLOCK"
    MESSAGE = "MESSAGE"
    SIGNATURE = "SIGNATURE"


ARMOR_HEADER_PREFIX = "-----BEGIN PGP"


@runtime_checkable
class EngineKey(Protocol):
    """A key object owned by the engine."""

    @property
    def is_secret(self) -> bool:
        """True when the object carries secret key material."""
        ...

    @property
    def fingerprint(self) -> str:
        """Full hex fingerprint of the primary key."""
        ...

    @property
    def expiration_date(self) -> Optional[datetime]:
        """Expiry of the primary key, or ``None`` if it never expires."""
        ...

    @property
    def primary_user_id(self) -> Optional[str]:
        """The primary identity string, usually ``"Name <email>"``."""
        ...

    @property
    def user_ids(self) -> List[str]:
        """Every identity string bound to the key, in key order."""
        ...

    def export(self, *, secret: bool = False) -> bytes:
        """
        Export binary key material.

        Args:
            secret: Export the secret key packets instead of the public ones.

        Raises:
            Exception: If the requested portion is unavailable.
        """
        ...


PassphraseProvider = Callable[[EngineKey], str]


@runtime_checkable
class PGPEngine(Protocol):
    """
    Abstract interface for OpenPGP operations.

    Implementations raise whatever their library raises; translating those
    failures into :mod:`pgp_custody.exceptions` is the caller's job.
    """

    def read_keys(self, data: bytes) -> List[EngineKey]:
        """Parse armored or binary key material into zero or more keys."""
        ...

    def generate(self, identity: str, passphrase: str, bits: int) -> EngineKey:
        """Create a new secret key for ``identity`` protected by ``passphrase``."""
        ...

    def encrypt(
        self,
        data: bytes,
        keys: Sequence[EngineKey],
        passphrase_provider: Optional[PassphraseProvider] = None,
    ) -> bytes:
        """Encrypt ``data`` to every key in ``keys``; returns binary packets."""
        ...

    def decrypt(
        self,
        data: bytes,
        keys: Sequence[EngineKey],
        passphrase_provider: Optional[PassphraseProvider] = None,
    ) -> bytes:
        """Decrypt an armored or binary message; returns the literal payload."""
        ...

    def sign(
        self,
        data: bytes,
        keys: Sequence[EngineKey],
        passphrase_provider: Optional[PassphraseProvider] = None,
    ) -> bytes:
        """Produce an inline signed message; returns binary packets."""
        ...

    def verify(
        self,
        data: bytes,
        keys: Sequence[EngineKey],
        passphrase_provider: Optional[PassphraseProvider] = None,
    ) -> bytes:
        """Verify a signed message; returns its payload or raises."""
        ...

    def armor(self, data: bytes, kind: ArmorKind) -> str:
        """Wrap binary packets in ASCII armor of the given kind."""
        ...


__all__ = ["ARMOR_HEADER_PREFIX", "ArmorKind", "EngineKey", "PGPEngine", "PassphraseProvider"]
