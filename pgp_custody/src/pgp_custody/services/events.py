"""Change notification for the key collection."""
from __future__ import annotations

from typing import Callable, Dict, Tuple

import structlog

from ..models import KeyRecord

logger = structlog.get_logger(__name__)

KeysChanged = Callable[[Tuple[KeyRecord, ...]], None]


class ChangeFeed:
    """Fan-out publisher of post-mutation record sequences."""

    def __init__(self) -> None:
        self._subscribers: Dict[int, KeysChanged] = {}
        self._next_token = 0

    def subscribe(self, callback: KeysChanged) -> Callable[[], None]:
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    def publish(self, records: Tuple[KeyRecord, ...]) -> None:
        for token, callback in list(self._subscribers.items()):
            try:
                callback(records)
            except Exception:
                logger.exception("keys.subscriber.failed", subscriber=token)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


__all__ = ["ChangeFeed", "KeysChanged"]
