from datetime import datetime, timedelta, timezone

import pytest

from pgp_custody.engine import ArmorKind
from pgp_custody.exceptions import InvalidKeyFormat, NoKeysFound
from pgp_custody.models import KeyRecord, KeyStatus


class _UnexportableKey:
    is_secret = False
    fingerprint = "ABCD"
    expiration_date = None
    primary_user_id = "Nobody <nobody@example.com>"
    user_ids = ["Nobody <nobody@example.com>"]

    def export(self, *, secret: bool = False) -> bytes:
        raise RuntimeError("engine refused export")


def _record(**overrides) -> KeyRecord:
    fields = dict(
        id="rec-1",
        key_data=b"material",
        nickname="nick",
        email="a@example.com",
        created_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        expiration_date=None,
        has_private_key=False,
        fingerprint="0123 4567 89AB CDEF 0123 4567 89AB CDEF 0123 4567",
        user_ids=("A <a@example.com>",),
    )
    fields.update(overrides)
    return KeyRecord(**fields)


def test_from_engine_key_extracts_email_and_defaults_nickname(engine):
    key = engine.make_key("Alice Example <alice@example.com>")
    record = KeyRecord.from_engine_key(key)
    assert record.email == "alice@example.com"
    assert record.nickname == "alice@example.com"
    assert record.fingerprint == key.fingerprint
    assert record.user_ids == ("Alice Example <alice@example.com>",)
    assert record.has_private_key is False
    assert record.created_date.tzinfo is not None


def test_from_engine_key_uses_whole_identity_without_brackets(engine):
    record = KeyRecord.from_engine_key(engine.make_key("just-a-handle"), nickname="handle")
    assert record.email == "just-a-handle"
    assert record.nickname == "handle"


def test_from_engine_key_without_identity_is_unknown(engine):
    record = KeyRecord.from_engine_key(engine.make_key(None))
    assert record.email == "unknown"
    assert record.user_ids == ()


def test_from_engine_key_stores_public_material_only(engine):
    key = engine.make_key(secret=True, passphrase="hunter22")
    record = KeyRecord.from_engine_key(key)
    assert record.has_private_key is True
    assert b"hunter22" not in record.key_data
    assert engine.read_keys(record.key_data)[0].is_secret is False


def test_from_engine_key_export_failure_is_invalid_key_format():
    with pytest.raises(InvalidKeyFormat):
        KeyRecord.from_engine_key(_UnexportableKey())


def test_fresh_records_get_distinct_ids(engine):
    key = engine.make_key()
    first = KeyRecord.from_engine_key(key)
    second = KeyRecord.from_engine_key(key)
    assert first.id != second.id
    assert first != second


def test_equality_and_hash_follow_id_only():
    left = _record(nickname="left")
    right = _record(nickname="right", fingerprint="FFFF")
    assert left == right
    assert len({left, right}) == 1
    assert left != _record(id="rec-2")


def test_short_fingerprint_strips_spaces_and_keeps_last_16():
    record = _record()
    assert record.short_fingerprint == "89ABCDEF01234567"


def test_short_fingerprint_of_short_value_is_whole_value():
    assert _record(fingerprint="AB CD").short_fingerprint == "ABCD"


def test_expiry_semantics():
    now = datetime.now(timezone.utc)
    assert _record().is_expired is False
    assert _record(expiration_date=now + timedelta(days=1)).is_expired is False
    expired = _record(expiration_date=now - timedelta(seconds=1))
    assert expired.is_expired is True
    assert expired.is_valid is False


def test_status_prefers_expired_over_private():
    past = datetime.now(timezone.utc) - timedelta(days=3)
    assert _record(has_private_key=True, expiration_date=past).status is KeyStatus.EXPIRED
    assert _record(has_private_key=True).status is KeyStatus.HAS_PRIVATE
    assert _record().status is KeyStatus.PUBLIC_ONLY
    assert _record(has_private_key=True, expiration_date=past).status_emoji == "⏰"


def test_key_type_description():
    assert _record(has_private_key=True).key_type_description == "Private Key"
    assert _record().key_type_description == "Public Key"


def test_dict_round_trip_preserves_fields():
    original = _record(expiration_date=datetime(2030, 5, 1, 12, 0, tzinfo=timezone.utc), has_private_key=True)
    payload = original.to_dict()
    assert payload["created_date"] == "2024-01-01T00:00:00+00:00"
    restored = KeyRecord.from_dict(payload)
    assert restored.to_dict() == payload
    assert restored.key_data == b"material"


def test_get_key_rejects_empty_material(engine):
    with pytest.raises(NoKeysFound):
        _record(key_data=b"").get_key(engine)


def test_get_key_rejects_unparseable_material(engine):
    with pytest.raises(NoKeysFound):
        _record(key_data=b"garbage").get_key(engine)


def test_export_armored_is_public_even_when_private_requested(engine):
    key = engine.make_key(secret=True, passphrase="pw")
    record = KeyRecord.from_engine_key(key)
    armored = record.export_armored(engine, include_private=True)
    assert armored.startswith(f"-----BEGIN PGP {ArmorKind.PUBLIC_KEY.value}-----")
    exported = engine.read_keys(armored.encode("utf-8"))
    assert exported[0].fingerprint == key.fingerprint
    assert exported[0].is_secret is False


def test_export_armored_of_garbage_is_invalid_key_format(engine):
    with pytest.raises(InvalidKeyFormat):
        _record(key_data=b"garbage").export_armored(engine)


def test_export_armored_with_no_keys_is_no_keys_found(engine):
    with pytest.raises(NoKeysFound):
        _record(key_data=b"FAKEPGP-KEYS:[]").export_armored(engine)


def test_from_dict_requires_real_boolean_for_private_flag():
    payload = _record().to_dict()
    payload["has_private_key"] = "false"
    with pytest.raises(ValueError):
        KeyRecord.from_dict(payload)
    payload["has_private_key"] = False
    assert KeyRecord.from_dict(payload).has_private_key is False
