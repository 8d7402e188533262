"""PGP engine collaborators."""
from __future__ import annotations

from .protocol import ARMOR_HEADER_PREFIX, ArmorKind, EngineKey, PassphraseProvider, PGPEngine


def default_engine() -> PGPEngine:
    """Return the PGPy-backed engine, importing PGPy on first use."""
    from .pgpy_engine import PGPyEngine

    return PGPyEngine()


__all__ = [
    "ARMOR_HEADER_PREFIX",
    "ArmorKind",
    "EngineKey",
    "PGPEngine",
    "PassphraseProvider",
    "default_engine",
]
