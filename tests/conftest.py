from typing import List, Optional

import pytest

from tribbler.bins import BinRouter
from tribbler.clock import LogicalClock
from tribbler.errors import BackendUnavailable
from tribbler.front import FrontServer
from tribbler.storage import MemoryStorage


class DownStorage:
    """Backend whose every call fails like an unreachable server."""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise BackendUnavailable("backend down")

    def get(self, key: str) -> Optional[str]:
        return self._fail()

    def set(self, key: str, value: str) -> bool:
        return self._fail()

    def keys(self, prefix: str = "") -> List[str]:
        return self._fail()

    def list_get(self, key: str) -> List[str]:
        return self._fail()

    def list_append(self, key: str, value: str) -> bool:
        return self._fail()

    def list_remove(self, key: str, value: str) -> int:
        return self._fail()


@pytest.fixture
def backends():
    return [MemoryStorage() for _ in range(3)]


@pytest.fixture
def router(backends):
    return BinRouter(backends)


@pytest.fixture
def clock():
    return LogicalClock()


@pytest.fixture
def front(router, clock):
    return FrontServer(router, clock)


@pytest.fixture
def down():
    return DownStorage()
