from __future__ import annotations

import threading
from typing import List, Optional, Tuple

from .bins import Bin, BinRouter
from .errors import AlreadyExists
from .logs import log_event

REGISTRY_BIN = ""
SIGNUP_PREFIX = "signup_"
SIGNUP_SENTINEL = "T"
CACHE_KEY = "cache"
MIN_LIST_USER = 20


class UserRegistry:
    def __init__(self, router: BinRouter, cache_size: int = MIN_LIST_USER) -> None:
        self.router = router
        self.cache_size = cache_size
        self._memo_lock = threading.Lock()
        # A full cache never changes again (users are never deleted), so it
        # is safe to keep in-process once seen.
        self._memo: Optional[Tuple[str, ...]] = None

    def _bin(self) -> Bin:
        return self.router.resolve(REGISTRY_BIN)

    def exists(self, user: str) -> bool:
        return self._bin().get(SIGNUP_PREFIX + user) is not None

    def sign_up(self, user: str) -> None:
        registry = self._bin()
        key = SIGNUP_PREFIX + user
        if registry.get(key) is not None:
            raise AlreadyExists(user)
        registry.set(key, SIGNUP_SENTINEL)

        cached = registry.list_get(CACHE_KEY)
        if len(cached) < self.cache_size and user not in cached:
            registry.list_append(CACHE_KEY, user)
            self._trim_cache(registry)
        elif self._overfull(cached):
            self._trim_cache(registry)
        log_event("user_signed_up", user=user)

    def list_users(self) -> List[str]:
        with self._memo_lock:
            memo = self._memo
        if memo is not None:
            return list(memo)

        registry = self._bin()
        cached = registry.list_get(CACHE_KEY)
        if len(cached) == self.cache_size and len(set(cached)) == self.cache_size:
            snapshot = tuple(sorted(cached))
            with self._memo_lock:
                self._memo = snapshot
            return list(snapshot)

        users = sorted(k[len(SIGNUP_PREFIX):] for k in registry.keys(SIGNUP_PREFIX))
        self._rebuild_cache(registry, cached, users)
        return users

    def _rebuild_cache(self, registry: Bin, cached: List[str], users: List[str]) -> None:
        missing = [u for u in users if u not in cached]
        room = self.cache_size - len(cached)
        if room <= 0 or not missing:
            if self._overfull(cached):
                self._trim_cache(registry)
            return
        for user in missing[:room]:
            registry.list_append(CACHE_KEY, user)
        self._trim_cache(registry)
        log_event("user_cache_rebuilt", added=min(room, len(missing)))

    def _overfull(self, cached: List[str]) -> bool:
        return len(cached) > self.cache_size or len(set(cached)) < len(cached)

    def _trim_cache(self, registry: Bin) -> None:
        # Racing appends can push the list past capacity or repeat a name.
        # Every writer trims the same excess; removing an absent value is a
        # no-op, and a cache that ends up short is topped up by the next scan.
        seen = set()
        for user in registry.list_get(CACHE_KEY):
            if user in seen:
                registry.list_remove(CACHE_KEY, user)
                continue
            seen.add(user)
            if len(seen) > self.cache_size:
                registry.list_remove(CACHE_KEY, user)
