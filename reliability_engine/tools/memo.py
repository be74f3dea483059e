"""Content-addressed memoization for pure engine calls."""

from collections import OrderedDict
from typing import Any, Callable, Optional
import hashlib
import json
import threading


def content_hash(namespace: str, payload: Any) -> str:
    """SHA-256 over the canonical JSON form of ``payload``."""
    canonical = json.dumps(
        {"namespace": namespace, "payload": payload},
        sort_keys=True,
        default=str,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class FitCache:
    """Bounded LRU cache of immutable results keyed by input content.

    Two calls share an entry only when their inputs serialise identically, so
    a hit can never return a result computed from different inputs.
    """

    def __init__(self, max_size: int = 128):
        self.max_size = max_size
        self._entries: "OrderedDict[str, Any]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_or_compute(self, namespace: str, payload: Any, compute: Callable[[], Any]) -> Any:
        if self.max_size <= 0:
            return compute()

        key = content_hash(namespace, payload)
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                self.hits += 1
                return self._entries[key]
            self.misses += 1

        # Computed outside the lock; a racing duplicate computes the same value.
        value = compute()
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
        return value

    def get(self, namespace: str, payload: Any) -> Optional[Any]:
        key = content_hash(namespace, payload)
        with self._lock:
            return self._entries.get(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)
