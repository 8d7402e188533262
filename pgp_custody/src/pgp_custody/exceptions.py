"""Central exception hierarchy"""
from __future__ import annotations


class PGPError(Exception):
    """Base exception for all key custody failures"""

    kind = "pgp_error"
    description = "PGP operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.description)


class InvalidKeyFormat(PGPError):
    """Raised when key material cannot be decoded or exported"""

    kind = "invalid_key_format"
    description = "Invalid key format"


class NoKeysFound(PGPError):
    """Raised when key material yields no usable keys"""

    kind = "no_keys_found"
    description = "No keys found"


class PrivateKeyRequired(PGPError):
    """Raised when an operation needs secret material the record does not have"""

    kind = "private_key_required"
    description = "Private key required"


class InvalidInput(PGPError):
    """Raised when caller supplied text cannot be encoded"""

    kind = "invalid_input"
    description = "Invalid input"


class InvalidOutput(PGPError):
    """Raised when engine output cannot be decoded as text"""

    kind = "invalid_output"
    description = "Invalid output"


class EncryptionFailed(PGPError):
    kind = "encryption_failed"
    description = "Encryption failed"


class DecryptionFailed(PGPError):
    kind = "decryption_failed"
    description = "Decryption failed"


class SigningFailed(PGPError):
    kind = "signing_failed"
    description = "Signing failed"


class VerificationFailed(PGPError):
    kind = "verification_failed"
    description = "Verification failed"


__all__ = [
    "PGPError",
    "InvalidKeyFormat",
    "NoKeysFound",
    "PrivateKeyRequired",
    "InvalidInput",
    "InvalidOutput",
    "EncryptionFailed",
    "DecryptionFailed",
    "SigningFailed",
    "VerificationFailed",
]
