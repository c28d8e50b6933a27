from __future__ import annotations

import hashlib
from typing import List, Optional, Sequence

from .storage import Storage

SEPARATOR = "::"


def escape(s: str) -> str:
    # "|" first so the "|;" produced for ":" is not escaped again.
    return s.replace("|", "||").replace(":", "|;")


def unescape(s: str) -> str:
    out: List[str] = []
    i = 0
    while i < len(s):
        ch = s[i]
        if ch == "|" and i + 1 < len(s):
            nxt = s[i + 1]
            out.append("|" if nxt == "|" else ":" if nxt == ";" else ch + nxt)
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def stable_hash(name: str) -> int:
    return int(hashlib.md5(name.encode("utf-8")).hexdigest(), 16)


class Bin:
    """One named bin on its backend. Callers never see other bins' keys."""

    def __init__(self, name: str, backend: Storage, index: int = 0) -> None:
        self.name = name
        self.backend = backend
        self.index = index
        self._prefix = escape(name) + SEPARATOR

    def _key(self, key: str) -> str:
        return self._prefix + escape(key)

    def get(self, key: str) -> Optional[str]:
        return self.backend.get(self._key(key))

    def set(self, key: str, value: str) -> bool:
        return self.backend.set(self._key(key), value)

    def keys(self, prefix: str = "") -> List[str]:
        full = self._prefix + escape(prefix)
        cut = len(self._prefix)
        return [unescape(k[cut:]) for k in self.backend.keys(full) if k.startswith(full)]

    def list_get(self, key: str) -> List[str]:
        return self.backend.list_get(self._key(key))

    def list_append(self, key: str, value: str) -> bool:
        return self.backend.list_append(self._key(key), value)

    def list_remove(self, key: str, value: str) -> int:
        return self.backend.list_remove(self._key(key), value)

    def __repr__(self) -> str:
        return f"Bin(name={self.name!r}, backend={self.index})"


class BinRouter:
    """Maps a bin name onto one of a fixed, ordered list of backends."""

    def __init__(self, backends: Sequence[Storage]) -> None:
        if not backends:
            raise ValueError("at least one backend is required")
        self.backends = list(backends)

    def index_of(self, name: str) -> int:
        return stable_hash(name) % len(self.backends)

    def resolve(self, name: str) -> Bin:
        idx = self.index_of(name)
        return Bin(name, self.backends[idx], idx)

    bin = resolve
