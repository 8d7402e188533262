from .async_manager import AsyncKeyManager
from .events import ChangeFeed, KeysChanged
from .key_manager import KeyManager

__all__ = ["AsyncKeyManager", "ChangeFeed", "KeyManager", "KeysChanged"]
