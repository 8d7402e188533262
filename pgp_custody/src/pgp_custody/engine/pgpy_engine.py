"""PGPy-backed implementation of :class:`~pgp_custody.engine.protocol.PGPEngine`."""
from __future__ import annotations

import contextlib
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Sequence

import pgpy
from pgpy.constants import (
    CompressionAlgorithm,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)
from pgpy.errors import PGPError as EngineError

from ..utils.text import split_identity
from .protocol import ARMOR_HEADER_PREFIX, ArmorKind, PassphraseProvider

_PREFERRED_HASHES = [HashAlgorithm.SHA256, HashAlgorithm.SHA384, HashAlgorithm.SHA512]
_PREFERRED_CIPHERS = [SymmetricKeyAlgorithm.AES256, SymmetricKeyAlgorithm.AES192, SymmetricKeyAlgorithm.AES128]
_PREFERRED_COMPRESSION = [CompressionAlgorithm.ZLIB, CompressionAlgorithm.ZIP, CompressionAlgorithm.Uncompressed]


def _as_blob(data: bytes) -> bytes | str:
    # PGPy dearmors str input and parses bytes input as binary packets
    if data.lstrip().startswith(ARMOR_HEADER_PREFIX.encode("ascii")):
        return data.decode("utf-8")
    return bytes(data)


def _format_uid(uid: pgpy.PGPUID) -> str:
    text = uid.name or ""
    if uid.comment:
        text = f"{text} ({uid.comment})"
    if uid.email:
        text = f"{text} <{uid.email}>" if text else f"<{uid.email}>"
    return text


def _public(key: pgpy.PGPKey) -> pgpy.PGPKey:
    return key if key.is_public else key.pubkey


def _payload(message: pgpy.PGPMessage) -> bytes:
    content = message.message
    if isinstance(content, str):
        return content.encode("utf-8")
    return bytes(content)


class PGPyKey:
    """Adapter exposing a ``pgpy.PGPKey`` through the engine key protocol."""

    __slots__ = ("_key",)

    def __init__(self, key: pgpy.PGPKey) -> None:
        self._key = key

    @property
    def native(self) -> pgpy.PGPKey:
        return self._key

    @property
    def is_secret(self) -> bool:
        return not self._key.is_public

    @property
    def fingerprint(self) -> str:
        return str(self._key.fingerprint).replace(" ", "")

    @property
    def expiration_date(self) -> Optional[datetime]:
        expires = self._key.expires_at
        if expires is not None and expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return expires

    @property
    def user_ids(self) -> List[str]:
        return [_format_uid(uid) for uid in self._key.userids if uid.is_uid]

    @property
    def primary_user_id(self) -> Optional[str]:
        uids = [uid for uid in self._key.userids if uid.is_uid]
        if not uids:
            return None
        primary = next((uid for uid in uids if uid.is_primary), uids[0])
        return _format_uid(primary)

    def export(self, *, secret: bool = False) -> bytes:
        if secret:
            if self._key.is_public:
                raise EngineError("Key carries no secret material")
            return bytes(self._key)
        return bytes(_public(self._key))


@contextlib.contextmanager
def _unlocked(key: PGPyKey, provider: Optional[PassphraseProvider]) -> Iterator[pgpy.PGPKey]:
    native = key.native
    if not native.is_protected:
        yield native
        return
    if provider is None:
        raise EngineError(f"Passphrase required for {key.fingerprint}")
    with native.unlock(provider(key)):
        yield native


class PGPyEngine:
    """OpenPGP operations delegated to the PGPy library."""

    def read_keys(self, data: bytes) -> List[PGPyKey]:
        if not data.strip():
            return []
        key, others = pgpy.PGPKey.from_blob(_as_blob(data))
        keys = [PGPyKey(key)]
        for extra in others.values():
            if extra.is_primary and extra.fingerprint != key.fingerprint:
                keys.append(PGPyKey(extra))
        return keys

    def generate(self, identity: str, passphrase: str, bits: int) -> PGPyKey:
        name, email = split_identity(identity)
        key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, bits)
        uid = pgpy.PGPUID.new(name, email=email or "")
        key.add_uid(
            uid,
            usage={KeyFlags.Sign, KeyFlags.Certify},
            hashes=_PREFERRED_HASHES,
            ciphers=_PREFERRED_CIPHERS,
            compression=_PREFERRED_COMPRESSION,
        )
        subkey = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, bits)
        key.add_subkey(subkey, usage={KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage})
        if passphrase:
            key.protect(passphrase, SymmetricKeyAlgorithm.AES256, HashAlgorithm.SHA256)
        return PGPyKey(key)

    def encrypt(
        self,
        data: bytes,
        keys: Sequence[PGPyKey],
        passphrase_provider: Optional[PassphraseProvider] = None,
    ) -> bytes:
        if not keys:
            raise EngineError("At least one recipient key is required")
        message = pgpy.PGPMessage.new(bytes(data), format="b")
        if len(keys) == 1:
            return bytes(_public(keys[0].native).encrypt(message))

        cipher = SymmetricKeyAlgorithm.AES256
        session_key = cipher.gen_key()
        for key in keys:
            message = _public(key.native).encrypt(message, cipher=cipher, sessionkey=session_key)
        del session_key
        return bytes(message)

    def decrypt(
        self,
        data: bytes,
        keys: Sequence[PGPyKey],
        passphrase_provider: Optional[PassphraseProvider] = None,
    ) -> bytes:
        message = pgpy.PGPMessage.from_blob(_as_blob(data))
        if not message.is_encrypted:
            raise EngineError("Message is not encrypted")
        last_error: Exception | None = None
        for key in keys:
            try:
                with _unlocked(key, passphrase_provider) as native:
                    return _payload(native.decrypt(message))
            except (EngineError, ValueError) as exc:
                last_error = exc
        raise EngineError("No supplied key could decrypt the message") from last_error

    def sign(
        self,
        data: bytes,
        keys: Sequence[PGPyKey],
        passphrase_provider: Optional[PassphraseProvider] = None,
    ) -> bytes:
        if not keys:
            raise EngineError("At least one signing key is required")
        message = pgpy.PGPMessage.new(bytes(data), format="b")
        for key in keys:
            with _unlocked(key, passphrase_provider) as native:
                message |= native.sign(message)
        return bytes(message)

    def verify(
        self,
        data: bytes,
        keys: Sequence[PGPyKey],
        passphrase_provider: Optional[PassphraseProvider] = None,
    ) -> bytes:
        message = pgpy.PGPMessage.from_blob(_as_blob(data))
        if not message.signatures:
            raise EngineError("Message carries no signatures")
        for key in keys:
            if not _public(key.native).verify(message):
                raise EngineError(f"Signature did not verify for {key.fingerprint}")
        return _payload(message)

    def armor(self, data: bytes, kind: ArmorKind) -> str:
        if kind in (ArmorKind.PUBLIC_KEY, ArmorKind.SECRET_KEY):
            key, _ = pgpy.PGPKey.from_blob(bytes(data))
            return str(key)
        if kind is ArmorKind.SIGNATURE:
            return str(pgpy.PGPSignature.from_blob(bytes(data)))
        return str(pgpy.PGPMessage.from_blob(bytes(data)))


__all__ = ["PGPyEngine", "PGPyKey"]
