"""Follow/unfollow on top of an append-only list.

Each user's bin holds a ``log`` list of follow and unfollow intents. Nobody
stores the following set; every reader rebuilds it by replaying the log from
the start, in the order the backend committed the appends. A mutating call
appends its own intent, replays the log, and reads its outcome off the
replay at the point where its own entry sits. Two racing callers therefore
agree on who won without any lock: whoever the backend appended first.
"""
from __future__ import annotations

import uuid
from typing import Iterable, List, Literal, Optional, Set, Tuple

from pydantic import BaseModel, ValidationError

from .bins import Bin, BinRouter
from .clock import LogicalClock
from .errors import (
    AlreadyFollowing,
    BackendUnavailable,
    FolloweeLimitExceeded,
    InvalidFollow,
    NotFollowing,
)
from .logs import log_event

LOG_KEY = "log"
MAX_FOLLOWING = 2000

Kind = Literal["follow", "unfollow"]
Outcome = Literal["admitted", "already_following", "at_capacity", "removed", "not_following"]


class FollowLogEntry(BaseModel):
    clock: int
    kind: Kind
    whom: str
    # Clock values can repeat across front-end processes; rid cannot.
    rid: str


class FollowLog:
    def __init__(self, router: BinRouter, clock: LogicalClock, limit: int = MAX_FOLLOWING) -> None:
        self.router = router
        self.clock = clock
        self.limit = limit

    def follow(self, user: str, whom: str) -> None:
        outcome = self._append_and_locate(user, "follow", whom)
        if outcome == "already_following":
            raise AlreadyFollowing(user, whom)
        if outcome == "at_capacity":
            raise FolloweeLimitExceeded(user, self.limit)

    def unfollow(self, user: str, whom: str) -> None:
        outcome = self._append_and_locate(user, "unfollow", whom)
        if outcome == "not_following":
            raise NotFollowing(user, whom)

    def following(self, user: str) -> List[str]:
        followees, _ = self._replay(self._read(self.router.resolve(user), user))
        return sorted(followees)

    def is_following(self, user: str, whom: str) -> bool:
        return whom in self.following(user)

    def _append_and_locate(self, user: str, kind: Kind, whom: str) -> Outcome:
        if user == whom:
            raise InvalidFollow(user)
        entry = FollowLogEntry(clock=self.clock.advance(), kind=kind, whom=whom, rid=uuid.uuid4().hex)
        user_bin = self.router.resolve(user)
        user_bin.list_append(LOG_KEY, entry.model_dump_json())

        _, outcome = self._replay(self._read(user_bin, user), target_rid=entry.rid)
        if outcome is None:
            # The append was acknowledged but is not in the log we read back.
            raise BackendUnavailable(f"{kind} entry {entry.rid} missing from {user!r} log")
        log_event("follow_log_applied", user=user, kind=kind, whom=whom, clock=entry.clock, outcome=outcome)
        return outcome

    def _read(self, user_bin: Bin, user: str) -> List[FollowLogEntry]:
        entries: List[FollowLogEntry] = []
        for raw in user_bin.list_get(LOG_KEY):
            try:
                entries.append(FollowLogEntry.model_validate_json(raw))
            except ValidationError as ex:
                # Every replayer skips the same bad entry, so outcomes still agree.
                log_event("follow_log_decode_failed", user=user, error=str(ex))
        if entries:
            self.clock.witness(max(e.clock for e in entries))
        return entries

    def _replay(
        self, entries: Iterable[FollowLogEntry], target_rid: Optional[str] = None
    ) -> Tuple[Set[str], Optional[Outcome]]:
        # Log order is authoritative; the clock value plays no part here.
        followees: Set[str] = set()
        outcome: Optional[Outcome] = None
        for e in entries:
            if e.kind == "follow":
                if e.whom in followees:
                    result: Outcome = "already_following"
                elif len(followees) >= self.limit:
                    result = "at_capacity"
                else:
                    followees.add(e.whom)
                    result = "admitted"
            else:
                if e.whom in followees:
                    followees.discard(e.whom)
                    result = "removed"
                else:
                    result = "not_following"
            if target_rid is not None and e.rid == target_rid:
                outcome = result
                break
        return followees, outcome
