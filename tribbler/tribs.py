from __future__ import annotations

import time
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from .bins import BinRouter
from .clock import LogicalClock
from .logs import log_event

TRIBS_KEY = "tribs"
MAX_TRIB_FETCH = 100
MAX_TRIB_LEN = 140


class Trib(BaseModel):
    user: str
    message: str
    clock: int = Field(ge=0)
    # Wall-clock seconds; orders tribs that share a clock value.
    time: int = Field(default=0, ge=0)

    def sort_key(self) -> Tuple[int, int, str, str]:
        return (self.clock, self.time, self.user, self.message)


class TribStore:
    def __init__(self, router: BinRouter, clock: LogicalClock, retain: int = MAX_TRIB_FETCH) -> None:
        self.router = router
        self.clock = clock
        self.retain = retain

    def post(self, user: str, message: str, clock: Optional[int] = None) -> Trib:
        trib = Trib(
            user=user,
            message=message,
            clock=self.clock.advance(clock),
            time=int(time.time()),
        )
        self.router.resolve(user).list_append(TRIBS_KEY, trib.model_dump_json())
        return trib

    def tribs(self, user: str) -> List[Trib]:
        user_bin = self.router.resolve(user)
        decoded: List[Tuple[Trib, str]] = []
        for raw in user_bin.list_get(TRIBS_KEY):
            try:
                decoded.append((Trib.model_validate_json(raw), raw))
            except ValidationError as ex:
                log_event("trib_decode_failed", user=user, error=str(ex))
        decoded.sort(key=lambda pair: pair[0].sort_key())

        # Readers, not writers, trim history back to the retention bound.
        excess = len(decoded) - self.retain
        if excess > 0:
            for _, raw in decoded[:excess]:
                user_bin.list_remove(TRIBS_KEY, raw)
            decoded = decoded[excess:]
            log_event("tribs_trimmed", user=user, removed=excess)

        result = [trib for trib, _ in decoded]
        if result:
            self.clock.witness(result[-1].clock)
        return result
