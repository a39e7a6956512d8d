from __future__ import annotations
from typing import Iterable, Tuple
import threading

from ..config import ConfigError


class KeyPool:
    """
    Round-robin dispenser over API keys, safe to share between worker threads.

    Keys come out as keys[0], keys[1], ..., keys[n-1], keys[0], ... in call
    order; which thread receives which key is up to the scheduler.
    """

    def __init__(self, keys: Iterable[str]):
        cleaned = tuple(k.strip() for k in keys if k and k.strip())
        if not cleaned:
            raise ConfigError("no valid API keys supplied")
        self._keys: Tuple[str, ...] = cleaned
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_delimited(cls, raw: str, delimiter: str = ";") -> "KeyPool":
        return cls((raw or "").split(delimiter))

    def next(self) -> str:
        with self._lock:
            key = self._keys[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._keys)
            return key

    def __len__(self) -> int:
        return len(self._keys)
