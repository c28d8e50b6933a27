from __future__ import annotations

from typing import List

from .social import FollowLog
from .tribs import MAX_TRIB_FETCH, Trib, TribStore


class Timeline:
    def __init__(self, tribs: TribStore, graph: FollowLog, limit: int = MAX_TRIB_FETCH) -> None:
        self.tribs = tribs
        self.graph = graph
        self.limit = limit

    def home(self, user: str) -> List[Trib]:
        members = set(self.graph.following(user))
        members.add(user)
        merged: List[Trib] = []
        # Each tribs() call also trims that member's stored history.
        for member in sorted(members):
            merged.extend(self.tribs.tribs(member))
        merged.sort(key=Trib.sort_key)
        return merged[-self.limit:] if len(merged) > self.limit else merged
