"""Key records and the resolver interface consumed by the validator."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Key:
    """A signing secret that may be looked up by id, expire, or be revoked.

    ``expires`` of ``None`` means the key never expires by time.
    """

    id: str
    expires: datetime | None
    value: str = field(repr=False)
    revoked: bool = False

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires is None:
            return False
        if now is None:
            now = time.time()
        return now >= self.expires.timestamp()

    def is_revoked(self) -> bool:
        return self.revoked


class KeyResolver(ABC):
    @abstractmethod
    def get_key_by_id(self, key_id: str) -> Key:
        """Return the key with ``key_id``.

        Raises:
            KeyNotFoundError: if no such key exists.
        """
        ...
