from __future__ import annotations

import json
from typing import Any, List, Optional
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from .errors import BackendUnavailable


class RemoteStorage:
    """Client for one backend server (see ``tribbler.back``)."""

    def __init__(self, addr: str, timeout: float = 2.0) -> None:
        addr = addr.strip().rstrip("/")
        if not addr.startswith("http://") and not addr.startswith("https://"):
            addr = "http://" + addr
        self.addr = addr
        self.timeout = timeout

    def _call(self, op: str, **body: object) -> Any:
        url = f"{self.addr}/{op}"
        data = json.dumps(body, separators=(",", ":"), ensure_ascii=True).encode("utf-8")
        req = Request(url, data=data, method="POST", headers={"Content-Type": "application/json"})
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except HTTPError as ex:
            raise BackendUnavailable(f"{url} answered {ex.code}") from ex
        except OSError as ex:
            # URLError and socket timeouts are both OSError.
            raise BackendUnavailable(f"{url} unreachable: {ex}") from ex
        try:
            return json.loads(raw.decode("utf-8"))["value"]
        except (ValueError, KeyError, TypeError) as ex:
            raise BackendUnavailable(f"{url} sent a malformed reply") from ex

    def get(self, key: str) -> Optional[str]:
        return self._call("get", key=key)

    def set(self, key: str, value: str) -> bool:
        return bool(self._call("set", key=key, value=value))

    def keys(self, prefix: str = "") -> List[str]:
        return list(self._call("keys", prefix=prefix))

    def list_get(self, key: str) -> List[str]:
        return list(self._call("list-get", key=key))

    def list_append(self, key: str, value: str) -> bool:
        return bool(self._call("list-append", key=key, value=value))

    def list_remove(self, key: str, value: str) -> int:
        return int(self._call("list-remove", key=key, value=value))
