import time
from typing import Any, Callable, Dict, Optional, Tuple

class TTLCache:
    """Process-local key -> value store with a per-key expiry."""

    def __init__(self, default_ttl: float = 1800, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._store: Dict[str, Tuple[float, Any]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        item = self._store.get(key)
        if item is None:
            self.misses += 1
            return None
        expires_at, value = item
        if self._clock() >= expires_at:
            del self._store[key]
            self.misses += 1
            return None
        self.hits += 1
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        now = self._clock()
        self.purge_expired(now)
        self._store[key] = (now + (ttl or self.default_ttl), value)

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Drop every expired entry; returns how many were dropped."""
        now = self._clock() if now is None else now
        expired = [k for k, (exp, _) in self._store.items() if exp <= now]
        for k in expired:
            del self._store[k]
        return len(expired)

    def clear(self):
        self._store.clear()

    def keys(self):
        now = self._clock()
        return [k for k, (exp, _) in self._store.items() if exp > now]

    def stats(self) -> Dict[str, int]:
        return {"keys": len(self.keys()), "hits": self.hits, "misses": self.misses}
