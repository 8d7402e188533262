"""Key record model shared across the key custody layer."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog

from .engine.protocol import ArmorKind, EngineKey, PGPEngine
from .exceptions import InvalidKeyFormat, NoKeysFound
from .utils import b64d, b64e, extract_email

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require(payload: Mapping[str, Any], name: str, kind: type) -> Any:
    value = payload[name]
    if not isinstance(value, kind):
        raise ValueError(f"Field {name!r} must be {kind.__name__}, got {type(value).__name__}")
    return value


def _parse_date(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO-8601 string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_date(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


class KeyStatus(str, Enum):
    EXPIRED = "expired"
    HAS_PRIVATE = "has_private"
    PUBLIC_ONLY = "public_only"


_STATUS_EMOJI = {
    KeyStatus.EXPIRED: "⏰",
    KeyStatus.HAS_PRIVATE: "\U0001f510",
    KeyStatus.PUBLIC_ONLY: "\U0001f513",
}


@dataclass(slots=True, eq=False)
class KeyRecord:
    """Public metadata and exported public material for one known key.

    Every field except ``nickname`` is fixed once the record exists. Identity is
    the ``id`` alone: two records describing the same fingerprint are still
    distinct records.
    """

    id: str
    key_data: bytes = field(repr=False)
    nickname: str
    email: str
    created_date: datetime
    expiration_date: Optional[datetime]
    has_private_key: bool
    fingerprint: str
    user_ids: Tuple[str, ...] = ()

    @classmethod
    def from_engine_key(cls, key: EngineKey, nickname: Optional[str] = None) -> "KeyRecord":
        try:
            key_data = key.export(secret=False)
        except Exception as exc:
            raise InvalidKeyFormat() from exc

        email = extract_email(key.primary_user_id)
        return cls(
            id=str(uuid.uuid4()),
            key_data=key_data,
            nickname=nickname if nickname is not None else email,
            email=email,
            created_date=_utcnow(),
            expiration_date=key.expiration_date,
            has_private_key=bool(key.is_secret),
            fingerprint=key.fingerprint or "",
            user_ids=tuple(key.user_ids),
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "KeyRecord":
        """Rebuild a record from :meth:`to_dict` output; wrong field types raise ``ValueError``."""
        user_ids = payload.get("user_ids", [])
        if not isinstance(user_ids, list) or not all(isinstance(uid, str) for uid in user_ids):
            raise ValueError("Field 'user_ids' must be a list of strings")
        created_date = _parse_date(_require(payload, "created_date", str))
        return cls(
            id=_require(payload, "id", str),
            key_data=b64d(_require(payload, "key_data", str)),
            nickname=_require(payload, "nickname", str),
            email=_require(payload, "email", str),
            created_date=created_date,
            expiration_date=_parse_date(payload.get("expiration_date")),
            has_private_key=_require(payload, "has_private_key", bool),
            fingerprint=_require(payload, "fingerprint", str),
            user_ids=tuple(user_ids),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "key_data": b64e(self.key_data),
            "nickname": self.nickname,
            "email": self.email,
            "created_date": _format_date(self.created_date),
            "expiration_date": _format_date(self.expiration_date),
            "has_private_key": self.has_private_key,
            "fingerprint": self.fingerprint,
            "user_ids": list(self.user_ids),
        }

    def get_key(self, engine: PGPEngine) -> EngineKey:
        if not self.key_data:
            raise NoKeysFound()
        try:
            keys = engine.read_keys(self.key_data)
        except Exception as exc:
            raise NoKeysFound() from exc
        if not keys:
            raise NoKeysFound()
        return keys[0]

    def export_armored(self, engine: PGPEngine, include_private: bool = False) -> str:
        """Return the public key as ASCII armor.

        ``include_private`` is accepted for callers that ask for it, but the
        secret portion is never exported from a record.
        """
        if include_private:
            logger.debug("keys.export.public_only", fingerprint=self.fingerprint)
        try:
            keys = engine.read_keys(self.key_data)
        except Exception as exc:
            raise InvalidKeyFormat() from exc
        if not keys:
            raise NoKeysFound()
        try:
            public = keys[0].export(secret=False)
            return engine.armor(public, ArmorKind.PUBLIC_KEY)
        except Exception as exc:
            raise InvalidKeyFormat() from exc

    @property
    def is_expired(self) -> bool:
        if self.expiration_date is None:
            return False
        return self.expiration_date < _utcnow()

    @property
    def is_valid(self) -> bool:
        return not self.is_expired

    @property
    def short_fingerprint(self) -> str:
        cleaned = self.fingerprint.replace(" ", "")
        return cleaned[-16:]

    @property
    def key_type_description(self) -> str:
        return "Private Key" if self.has_private_key else "Public Key"

    @property
    def status(self) -> KeyStatus:
        if self.is_expired:
            return KeyStatus.EXPIRED
        if self.has_private_key:
            return KeyStatus.HAS_PRIVATE
        return KeyStatus.PUBLIC_ONLY

    @property
    def status_emoji(self) -> str:
        return _STATUS_EMOJI[self.status]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyRecord):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


__all__ = ["KeyRecord", "KeyStatus"]
