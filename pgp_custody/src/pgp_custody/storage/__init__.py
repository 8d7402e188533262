from .secret_keyring import SecretKeyring
from .snapshot import CORRUPT_SUFFIX, SnapshotError, SnapshotFile

__all__ = ["CORRUPT_SUFFIX", "SecretKeyring", "SnapshotError", "SnapshotFile"]
