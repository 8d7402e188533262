from __future__ import annotations

import base64
import hashlib
import itertools
import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

from pgp_custody.engine import ArmorKind
from pgp_custody.services import KeyManager

_KEY_MAGIC = b"FAKEPGP-KEYS:"
_MSG_MAGIC = b"FAKEPGP-MSG:"
_SIGNED_MAGIC = b"FAKEPGP-SIGNED:"


def _unarmor(data: bytes) -> bytes:
    if not data.lstrip().startswith(b"-----BEGIN PGP"):
        return bytes(data)
    lines = [line.strip() for line in data.decode("utf-8").strip().splitlines()]
    body = "".join(line for line in lines[1:-1] if line)
    return base64.b64decode(body)


@dataclass
class FakeKey:
    """Engine key stand-in; serializes itself as JSON behind a magic prefix."""

    fingerprint: str
    user_ids: List[str] = field(default_factory=list)
    secret: bool = False
    passphrase: str = ""
    expiration_date: Optional[datetime] = None

    @property
    def is_secret(self) -> bool:
        return self.secret

    @property
    def primary_user_id(self) -> Optional[str]:
        return self.user_ids[0] if self.user_ids else None

    def _as_dict(self, secret: bool) -> dict:
        return {
            "fingerprint": self.fingerprint,
            "user_ids": self.user_ids,
            "secret": secret,
            "passphrase": self.passphrase if secret else "",
            "expires": self.expiration_date.isoformat() if self.expiration_date else None,
        }

    def export(self, *, secret: bool = False) -> bytes:
        if secret and not self.secret:
            raise ValueError("public key has no secret part")
        return _KEY_MAGIC + json.dumps([self._as_dict(secret)]).encode("utf-8")


class FakeEngine:
    """Deterministic in-memory engine with the same contract as the PGPy adapter."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self._counter = itertools.count(1)

    def make_key(
        self,
        identity: Optional[str] = "Alice Example <alice@example.com>",
        *,
        secret: bool = False,
        passphrase: str = "",
        expiration_date: Optional[datetime] = None,
    ) -> FakeKey:
        seed = f"{identity}:{next(self._counter)}".encode("utf-8")
        return FakeKey(
            fingerprint=hashlib.sha1(seed).hexdigest().upper(),
            user_ids=[identity] if identity else [],
            secret=secret,
            passphrase=passphrase,
            expiration_date=expiration_date,
        )

    def read_keys(self, data: bytes) -> List[FakeKey]:
        self.calls.append("read_keys")
        raw = _unarmor(data)
        if not raw.startswith(_KEY_MAGIC):
            raise ValueError("not key material")
        keys = []
        for entry in json.loads(raw[len(_KEY_MAGIC):]):
            expires = entry.get("expires")
            keys.append(
                FakeKey(
                    fingerprint=entry["fingerprint"],
                    user_ids=list(entry["user_ids"]),
                    secret=entry["secret"],
                    passphrase=entry["passphrase"],
                    expiration_date=datetime.fromisoformat(expires) if expires else None,
                )
            )
        return keys

    def generate(self, identity: str, passphrase: str, bits: int) -> FakeKey:
        self.calls.append("generate")
        return self.make_key(identity, secret=True, passphrase=passphrase)

    def encrypt(self, data: bytes, keys: Sequence[FakeKey], passphrase_provider=None) -> bytes:
        self.calls.append("encrypt")
        payload = {"to": [key.fingerprint for key in keys], "payload": base64.b64encode(data).decode("ascii")}
        return _MSG_MAGIC + json.dumps(payload).encode("utf-8")

    def decrypt(self, data: bytes, keys: Sequence[FakeKey], passphrase_provider=None) -> bytes:
        self.calls.append("decrypt")
        raw = _unarmor(data)
        if not raw.startswith(_MSG_MAGIC):
            raise ValueError("not an encrypted message")
        message = json.loads(raw[len(_MSG_MAGIC):])
        for key in keys:
            if key.fingerprint in message["to"] and key.secret and passphrase_provider(key) == key.passphrase:
                return base64.b64decode(message["payload"])
        raise ValueError("no key could decrypt the message")

    def sign(self, data: bytes, keys: Sequence[FakeKey], passphrase_provider=None) -> bytes:
        self.calls.append("sign")
        key = keys[0]
        if not key.secret or passphrase_provider(key) != key.passphrase:
            raise ValueError("cannot unlock signing key")
        payload = base64.b64encode(data).decode("ascii")
        digest = hashlib.sha256(f"{key.fingerprint}:{payload}".encode("utf-8")).hexdigest()
        body = {"by": key.fingerprint, "payload": payload, "digest": digest}
        return _SIGNED_MAGIC + json.dumps(body).encode("utf-8")

    def verify(self, data: bytes, keys: Sequence[FakeKey], passphrase_provider=None) -> bytes:
        self.calls.append("verify")
        raw = _unarmor(data)
        if not raw.startswith(_SIGNED_MAGIC):
            raise ValueError("not a signed message")
        body = json.loads(raw[len(_SIGNED_MAGIC):])
        expected = hashlib.sha256(f"{body['by']}:{body['payload']}".encode("utf-8")).hexdigest()
        if body["digest"] != expected:
            raise ValueError("bad signature")
        if body["by"] not in {key.fingerprint for key in keys}:
            raise ValueError("signed by an unknown key")
        return base64.b64decode(body["payload"])

    def armor(self, data: bytes, kind: ArmorKind) -> str:
        self.calls.append("armor")
        encoded = base64.b64encode(data).decode("ascii")
        lines = [encoded[i : i + 64] for i in range(0, len(encoded), 64)]
        return "\n".join([f"-----BEGIN PGP {kind.value}-----", "", *lines, f"-----END PGP {kind.value}-----", ""])


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def manager(store_dir: Path, engine: FakeEngine) -> KeyManager:
    return KeyManager(store_dir, engine=engine)


@pytest.fixture
def armored_public_key(engine: FakeEngine) -> str:
    key = engine.make_key("Bob Builder <bob@example.com>")
    return engine.armor(key.export(), ArmorKind.PUBLIC_KEY)


@pytest.fixture
def armored_secret_key(engine: FakeEngine) -> str:
    key = engine.make_key("Carol <carol@example.com>", secret=True, passphrase="carol-pass")
    return engine.armor(key.export(secret=True), ArmorKind.SECRET_KEY)
