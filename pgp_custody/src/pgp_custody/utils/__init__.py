from __future__ import annotations

import base64

from .text import encode_text, extract_email, format_identity, looks_armored, split_identity


def b64e(b: bytes) -> str:
    """Standard base64 encoding with padding."""
    return base64.b64encode(b).decode("ascii")


def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"), validate=True)


__all__ = [
    "b64d",
    "b64e",
    "encode_text",
    "extract_email",
    "format_identity",
    "looks_armored",
    "split_identity",
]
