import time
import threading
from collections import OrderedDict
from functools import wraps
from typing import Any, Callable, List, Optional


class SimpleTTLCache:
    """Bounded TTL store.

    Entries expire `ttl` seconds after they were set. Every `set` sweeps the
    expired entries and, once `max_entries` is reached, evicts the oldest one.
    Safe to share between the preload worker threads.
    """

    def __init__(self, ttl: int = 300, max_entries: Optional[int] = 256):
        if max_entries is not None and max_entries < 1:
            raise ValueError('max_entries must be at least 1')
        self.ttl = ttl
        self.max_entries = max_entries
        # key -> (value, expires_at), oldest first
        self.store: 'OrderedDict[str, tuple]' = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str):
        with self._lock:
            entry = self.store.get(key)
            if not entry:
                return None
            val, expires = entry
            if time.time() > expires:
                del self.store[key]
                return None
            return val

    def set(self, key: str, value: Any):
        with self._lock:
            now = time.time()
            self._sweep(now)
            self.store.pop(key, None)
            if self.max_entries is not None:
                while len(self.store) >= self.max_entries:
                    self.store.popitem(last=False)
            self.store[key] = (value, now + self.ttl)

    def _sweep(self, now: float):
        expired = [k for k, (_, expires) in self.store.items() if now > expires]
        for k in expired:
            del self.store[k]

    def keys(self) -> List[str]:
        with self._lock:
            self._sweep(time.time())
            return list(self.store)

    def clear(self):
        with self._lock:
            self.store.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self.keys())


def ttl_cache(ttl: int = 300, max_entries: Optional[int] = 256):
    """Memoise a function's non-None results in a bounded `SimpleTTLCache`."""
    cache = SimpleTTLCache(ttl=ttl, max_entries=max_entries)

    def decorator(func: Callable):
        @wraps(func)
        def wrapped(*args, **kwargs):
            key = func.__name__ + '|' + '|'.join(map(repr, args)) + '|' + repr(sorted(kwargs.items()))
            val = cache.get(key)
            if val is not None:
                return val
            result = func(*args, **kwargs)
            cache.set(key, result)
            return result

        wrapped.cache = cache
        return wrapped

    return decorator
