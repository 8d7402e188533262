"""Text helpers shared across modules."""
from __future__ import annotations

from typing import Optional, Tuple

import regex

from ..engine.protocol import ARMOR_HEADER_PREFIX

# Everything between the first "<" and the last ">" of a user id
_EMAIL_IN_BRACKETS = regex.compile(r"<(.+)>")


def extract_email(user_id: Optional[str]) -> str:
    """Return the address of ``"Name <email>"``, the whole id without brackets, or ``"unknown"``."""
    if user_id is None:
        return "unknown"
    match = _EMAIL_IN_BRACKETS.search(user_id)
    if match:
        return match.group(1)
    return user_id


def split_identity(identity: str) -> Tuple[str, Optional[str]]:
    match = _EMAIL_IN_BRACKETS.search(identity)
    if not match:
        return identity.strip(), None
    name = identity[: match.start()].strip()
    return name, match.group(1).strip()


def format_identity(name: str, email: str) -> str:
    return f"{name} <{email}>"


def looks_armored(data: bytes) -> bool:
    """True when ``data`` decodes as UTF-8 and contains a PGP armor header."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return ARMOR_HEADER_PREFIX in text


def encode_text(text: str) -> bytes:
    return text.encode("utf-8")


__all__ = ["encode_text", "extract_email", "format_identity", "looks_armored", "split_identity"]
