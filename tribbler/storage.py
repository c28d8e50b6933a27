from __future__ import annotations

import threading
from typing import Dict, List, Optional, Protocol


class Storage(Protocol):
    """Primitive surface every key-value backend offers.

    Each call is atomic on its own; list appends to one key are totally
    ordered. Nothing else is promised.
    """

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> bool:
        ...

    def keys(self, prefix: str = "") -> List[str]:
        ...

    def list_get(self, key: str) -> List[str]:
        ...

    def list_append(self, key: str, value: str) -> bool:
        ...

    def list_remove(self, key: str, value: str) -> int:
        ...


class MemoryStorage:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._kv: Dict[str, str] = {}
        self._lists: Dict[str, List[str]] = {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._kv.get(key)

    def set(self, key: str, value: str) -> bool:
        with self._lock:
            if value == "":
                self._kv.pop(key, None)
            else:
                self._kv[key] = value
            return True

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return sorted(k for k in self._kv if k.startswith(prefix))

    def list_get(self, key: str) -> List[str]:
        with self._lock:
            return list(self._lists.get(key, []))

    def list_append(self, key: str, value: str) -> bool:
        with self._lock:
            self._lists.setdefault(key, []).append(value)
            return True

    def list_remove(self, key: str, value: str) -> int:
        with self._lock:
            items = self._lists.get(key)
            if not items or value not in items:
                return 0
            items.remove(value)
            if not items:
                self._lists.pop(key, None)
            return 1


_named_memory: Dict[str, MemoryStorage] = {}
_named_memory_lock = threading.Lock()


def memory_storage(name: str = "") -> MemoryStorage:
    # Same name, same instance, so a config can point several slots at one store.
    with _named_memory_lock:
        store = _named_memory.get(name)
        if store is None:
            store = MemoryStorage()
            _named_memory[name] = store
        return store


def open_storage(spec: str, timeout: float = 2.0, mongo_db: str = "tribbler") -> Storage:
    spec = spec.strip()
    if spec == "memory" or spec.startswith("memory:"):
        return memory_storage(spec.partition(":")[2])
    if spec.startswith("mongodb://") or spec.startswith("mongodb+srv://"):
        from .mongo import MongoStorage

        return MongoStorage(spec, db_name=mongo_db)
    from .remote import RemoteStorage

    return RemoteStorage(spec, timeout=timeout)
