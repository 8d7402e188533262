# Own the key collection, persist it, and dispatch crypto requests to the engine.
from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

import structlog

from ..config import SUPPORTED_KEY_SIZES, AppConfig
from ..engine import ArmorKind, EngineKey, PGPEngine, default_engine
from ..exceptions import (
    DecryptionFailed,
    EncryptionFailed,
    InvalidInput,
    InvalidKeyFormat,
    InvalidOutput,
    NoKeysFound,
    PrivateKeyRequired,
    SigningFailed,
)
from ..models import KeyRecord
from ..storage import SecretKeyring, SnapshotError, SnapshotFile
from ..utils import encode_text, format_identity, looks_armored
from .events import ChangeFeed, KeysChanged

logger = structlog.get_logger(__name__)


class KeyManager:
    """Owns the ordered key collection and mediates every mutation.

    The in-memory sequence is the source of truth for a session; the snapshot
    file is rewritten after each successful mutation. Secret key material goes
    to the secret keyring, never into a record or the snapshot.

    Instances are not thread safe. Confine one manager to one owner, or go
    through :class:`~pgp_custody.services.async_manager.AsyncKeyManager`.
    """

    def __init__(
        self,
        storage_dir: Path | str | None = None,
        *,
        engine: PGPEngine | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self._config = config or AppConfig()
        storage = self._config.storage
        self._storage_dir = Path(storage_dir).expanduser() if storage_dir else storage.store_dir
        self._engine = engine or default_engine()
        self._snapshot = SnapshotFile(self._storage_dir / storage.snapshot_name)
        self._secrets = SecretKeyring(self._storage_dir / storage.secrets_dirname)
        self._changes = ChangeFeed()
        self._records: List[KeyRecord] = []
        self._ensure_storage_dir()
        self._load()

    # ----- Collection views -----
    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    @property
    def snapshot_path(self) -> Path:
        return self._snapshot.path

    @property
    def engine(self) -> PGPEngine:
        return self._engine

    @property
    def key_pairs(self) -> Tuple[KeyRecord, ...]:
        return tuple(self._records)

    @property
    def encryption_keys(self) -> List[KeyRecord]:
        return [record for record in self._records if record.is_valid]

    @property
    def signing_keys(self) -> List[KeyRecord]:
        return [record for record in self._records if record.has_private_key and record.is_valid]

    def get(self, record_id: str) -> Optional[KeyRecord]:
        return next((record for record in self._records if record.id == record_id), None)

    def find_by_fingerprint(self, fingerprint: str) -> List[KeyRecord]:
        wanted = fingerprint.replace(" ", "").upper()
        return [
            record
            for record in self._records
            if record.fingerprint.replace(" ", "").upper() == wanted
        ]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[KeyRecord]:
        return iter(tuple(self._records))

    def __contains__(self, record: object) -> bool:
        return isinstance(record, KeyRecord) and self.get(record.id) is not None

    def subscribe(self, callback: KeysChanged) -> Callable[[], None]:
        """Call ``callback`` with the full record tuple after every mutation."""
        return self._changes.subscribe(callback)

    # ----- Mutations -----
    def import_armored_key(self, text: str, nickname: str | None = None) -> KeyRecord:
        try:
            data = encode_text(text)
        except (UnicodeEncodeError, AttributeError) as exc:
            raise InvalidKeyFormat() from exc
        return self._import_bytes(data, nickname)

    def import_key_from_file(self, path: Path | str, nickname: str | None = None) -> KeyRecord:
        data = Path(path).read_bytes()
        if looks_armored(data):
            return self.import_armored_key(data.decode("utf-8"), nickname)
        return self._import_bytes(data, nickname)

    def generate_key_pair(
        self,
        name: str,
        email: str,
        passphrase: str,
        key_size: int | None = None,
    ) -> KeyRecord:
        """Generate a fresh key pair and add it to the collection.

        Passphrase policy (length, confirmation) is the caller's responsibility.
        Engine failures propagate unchanged.
        """
        bits = key_size or self._config.keys.key_size
        if bits not in SUPPORTED_KEY_SIZES:
            raise ValueError(f"Unsupported key size {bits}; expected one of {SUPPORTED_KEY_SIZES}")
        logger.info("keys.generate.start", bits=bits)
        key = self._engine.generate(format_identity(name, email), passphrase, bits)
        record = self._add_key(key, name)
        logger.info("keys.generated", key_id=record.id, fingerprint=record.fingerprint, bits=bits)
        return record

    def delete_key(self, record: KeyRecord) -> None:
        removed = self.get(record.id)
        if removed is None:
            logger.debug("keys.delete.missing", key_id=record.id)
            return
        self._persist([entry for entry in self._records if entry.id != record.id])
        if removed.has_private_key and not any(
            entry.has_private_key and entry.fingerprint == removed.fingerprint for entry in self._records
        ):
            self._secrets.remove(removed.fingerprint)
        logger.info("keys.deleted", key_id=removed.id, fingerprint=removed.fingerprint)

    def update_nickname(self, record: KeyRecord, nickname: str) -> None:
        stored = self.get(record.id)
        if stored is None:
            logger.debug("keys.rename.missing", key_id=record.id)
            return
        previous = stored.nickname
        stored.nickname = nickname
        try:
            self._persist(self._records)
        except Exception:
            stored.nickname = previous
            raise
        logger.info("keys.renamed", key_id=stored.id)

    # ----- Crypto operations -----
    def encrypt(self, text: str, recipient: KeyRecord) -> str:
        data = self._encode_input(text)
        key = recipient.get_key(self._engine)
        try:
            encrypted = self._engine.encrypt(data, [key])
            return self._engine.armor(encrypted, ArmorKind.MESSAGE)
        except Exception as exc:
            raise EncryptionFailed() from exc

    def decrypt(self, armored_message: str, record: KeyRecord, passphrase: str) -> str:
        self._require_private(record)
        data = self._encode_input(armored_message)
        key = self._secret_key(record)
        try:
            plaintext = self._engine.decrypt(data, [key], lambda _key: passphrase)
        except Exception as exc:
            raise DecryptionFailed() from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidOutput() from exc

    def sign(self, text: str, record: KeyRecord, passphrase: str) -> str:
        self._require_private(record)
        data = self._encode_input(text)
        key = self._secret_key(record)
        try:
            signed = self._engine.sign(data, [key], lambda _key: passphrase)
            return self._engine.armor(signed, ArmorKind.MESSAGE)
        except Exception as exc:
            raise SigningFailed() from exc

    def verify(self, signed_message: str, record: KeyRecord) -> bool:
        """Return ``True`` only when the message verifies against ``record``."""
        try:
            data = encode_text(signed_message)
            key = record.get_key(self._engine)
            self._engine.verify(data, [key])
        except Exception as exc:
            logger.info("keys.verify.rejected", key_id=record.id, reason=type(exc).__name__)
            return False
        return True

    def encrypt_file(self, source: Path | str, recipient: KeyRecord, destination: Path | str) -> None:
        data = Path(source).read_bytes()
        key = recipient.get_key(self._engine)
        try:
            encrypted = self._engine.encrypt(data, [key])
        except Exception as exc:
            raise EncryptionFailed() from exc
        Path(destination).write_bytes(encrypted)

    def decrypt_file(
        self,
        source: Path | str,
        record: KeyRecord,
        passphrase: str,
        destination: Path | str,
    ) -> None:
        self._require_private(record)
        data = Path(source).read_bytes()
        key = self._secret_key(record)
        try:
            plaintext = self._engine.decrypt(data, [key], lambda _key: passphrase)
        except Exception as exc:
            raise DecryptionFailed() from exc
        Path(destination).write_bytes(plaintext)

    # ----- Internals -----
    def _import_bytes(self, data: bytes, nickname: str | None) -> KeyRecord:
        try:
            keys = self._engine.read_keys(data)
        except Exception as exc:
            raise NoKeysFound() from exc
        if not keys:
            raise NoKeysFound()
        record = self._add_key(keys[0], nickname)
        logger.info(
            "keys.imported",
            key_id=record.id,
            fingerprint=record.fingerprint,
            private=record.has_private_key,
        )
        return record

    def _add_key(self, key: EngineKey, nickname: str | None) -> KeyRecord:
        record = KeyRecord.from_engine_key(key, nickname)
        if record.has_private_key:
            try:
                secret_blob = key.export(secret=True)
            except Exception as exc:
                raise InvalidKeyFormat() from exc
            self._secrets.store(record.fingerprint, secret_blob)
        try:
            self._persist([*self._records, record])
        except Exception:
            if record.has_private_key and not self.find_by_fingerprint(record.fingerprint):
                self._secrets.remove(record.fingerprint)
            raise
        return record

    def _secret_key(self, record: KeyRecord) -> EngineKey:
        try:
            blob = self._secrets.load(record.fingerprint)
        except (OSError, ValueError) as exc:
            raise PrivateKeyRequired(f"Secret key for {record.fingerprint} is unusable") from exc
        try:
            keys = self._engine.read_keys(blob)
        except Exception as exc:
            raise NoKeysFound() from exc
        if not keys:
            raise NoKeysFound()
        return keys[0]

    @staticmethod
    def _require_private(record: KeyRecord) -> None:
        if not record.has_private_key:
            raise PrivateKeyRequired()

    @staticmethod
    def _encode_input(text: str) -> bytes:
        try:
            return encode_text(text)
        except (UnicodeEncodeError, AttributeError) as exc:
            raise InvalidInput() from exc

    def _persist(self, records: List[KeyRecord]) -> None:
        # The in-memory sequence only changes once the snapshot write succeeded
        self._snapshot.save(records)
        self._records = list(records)
        self._changes.publish(self.key_pairs)

    def _ensure_storage_dir(self) -> None:
        try:
            self._storage_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("keystore.dir.unavailable", path=str(self._storage_dir), error=str(exc))

    def _load(self) -> None:
        try:
            self._records = self._snapshot.load()
        except SnapshotError:
            logger.exception("keystore.load.failed", path=str(self._snapshot.path))
            self._records = []
            if self._config.storage.backup_corrupt_snapshot:
                try:
                    self._snapshot.backup()
                except OSError:
                    logger.exception("keystore.backup.failed", path=str(self._snapshot.path))
            return
        logger.info("keystore.loaded", path=str(self._snapshot.path), count=len(self._records))


__all__ = ["KeyManager"]
