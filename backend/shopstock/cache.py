# Overview: In-process read cache keyed by logical tags, plus the invalidation signal.

"""
Tag cache

Read views (listings, reports) are memoized under one or more logical tags
("transactions", "products", "reports"). Writers call invalidate_tags() after
they commit; that bumps each tag's version, drops every entry cached under
those tags, and sends the `tags_invalidated` blinker signal for anything else
that keeps derived state.

Freshness only: nothing here is needed for correctness of posted data.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from functools import wraps
from typing import Any, Callable

from blinker import Namespace
from flask import current_app, has_app_context

_signals = Namespace()

tags_invalidated = _signals.signal("tags-invalidated")

DEFAULT_TTL_SECONDS = 60


class TagCache:
    def __init__(self):
        self._lock = threading.Lock()
        self._versions: dict[str, int] = defaultdict(int)
        # key -> (tags, stamp, stored_at, value)
        self._entries: dict[Any, tuple[tuple[str, ...], tuple, float, Any]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _stamp(self, tags: tuple[str, ...]) -> tuple:
        return tuple(self._versions[t] for t in tags)

    def get_or_compute(self, key, tags: tuple[str, ...], compute: Callable[[], Any], ttl: float):
        now = time.monotonic()
        with self._lock:
            stamp = self._stamp(tags)
            hit = self._entries.get(key)
            if hit is not None:
                if hit[1] == stamp and now - hit[2] < ttl:
                    return hit[3]
                del self._entries[key]

        value = compute()

        with self._lock:
            self._drop_expired(now, ttl)
            # Skip the store if a writer invalidated while we computed
            if self._stamp(tags) == stamp:
                self._entries[key] = (tags, stamp, now, value)
        return value

    def _drop_expired(self, now: float, ttl: float) -> None:
        for key in [k for k, entry in self._entries.items() if now - entry[2] >= ttl]:
            del self._entries[key]

    def invalidate(self, *tags: str) -> None:
        with self._lock:
            for tag in tags:
                self._versions[tag] += 1
            dropped = set(tags)
            for key in [k for k, entry in self._entries.items() if dropped.intersection(entry[0])]:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._versions.clear()


cache = TagCache()


def invalidate_tags(*tags: str, sender: Any = None) -> None:
    """Mark every view cached under any of `tags` stale and notify listeners."""
    cache.invalidate(*tags)
    tags_invalidated.send(sender, tags=tags)


def _ttl() -> float:
    if has_app_context():
        return current_app.config.get("REPORT_CACHE_TTL_SECONDS", DEFAULT_TTL_SECONDS)
    return DEFAULT_TTL_SECONDS


def cached(*tags: str):
    """
    Memoize a read function under `tags`.

    Arguments must be hashable; they form part of the key together with the
    function's qualified name.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            key = (func.__module__, func.__qualname__, args, tuple(sorted(kwargs.items())))
            return cache.get_or_compute(key, tags, lambda: func(*args, **kwargs), _ttl())

        wrapper.uncached = func
        return wrapper
    return decorator
