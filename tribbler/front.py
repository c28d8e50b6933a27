from __future__ import annotations

import re
from typing import List, Optional, Sequence, Union

from .bins import BinRouter
from .clock import LogicalClock
from .errors import InvalidFollow, InvalidUsername, TribTooLong, UserNotFound
from .logs import log_event
from .registry import UserRegistry
from .social import FollowLog
from .storage import Storage, open_storage
from .timeline import Timeline
from .tribs import MAX_TRIB_LEN, Trib, TribStore

MAX_USERNAME_LEN = 15
_USERNAME_RE = re.compile(r"^[a-z][a-z0-9]*$")


def is_valid_username(user: str) -> bool:
    return 0 < len(user) <= MAX_USERNAME_LEN and _USERNAME_RE.match(user) is not None


class FrontServer:
    """The operations clients call. Holds no state beyond the clock and the
    registry memo; everything else lives on the backends."""

    def __init__(self, router: BinRouter, clock: Optional[LogicalClock] = None) -> None:
        self.router = router
        self.clock = clock if clock is not None else LogicalClock()
        self.registry = UserRegistry(router)
        self.store = TribStore(router, self.clock)
        self.graph = FollowLog(router, self.clock)
        self.timeline = Timeline(self.store, self.graph)

    def _check_user(self, user: str) -> None:
        if not is_valid_username(user):
            raise InvalidUsername(user)
        if not self.registry.exists(user):
            raise UserNotFound(user)

    def _check_pair(self, who: str, whom: str) -> None:
        self._check_user(who)
        self._check_user(whom)
        if who == whom:
            raise InvalidFollow(who)

    def sign_up(self, user: str) -> None:
        if not is_valid_username(user):
            raise InvalidUsername(user)
        self.registry.sign_up(user)

    def list_users(self) -> List[str]:
        return self.registry.list_users()

    def post(self, who: str, message: str, clock: int = 0) -> Trib:
        if len(message) > MAX_TRIB_LEN:
            raise TribTooLong(len(message), MAX_TRIB_LEN)
        self._check_user(who)
        trib = self.store.post(who, message, clock)
        log_event("trib_posted", user=who, clock=trib.clock)
        return trib

    def tribs(self, user: str) -> List[Trib]:
        self._check_user(user)
        return self.store.tribs(user)

    def follow(self, who: str, whom: str) -> None:
        self._check_pair(who, whom)
        self.graph.follow(who, whom)

    def unfollow(self, who: str, whom: str) -> None:
        self._check_pair(who, whom)
        self.graph.unfollow(who, whom)

    def is_following(self, who: str, whom: str) -> bool:
        self._check_pair(who, whom)
        return self.graph.is_following(who, whom)

    def following(self, who: str) -> List[str]:
        self._check_user(who)
        return self.graph.following(who)

    def home(self, user: str) -> List[Trib]:
        self._check_user(user)
        return self.timeline.home(user)


def new_front(
    backs: Sequence[Union[str, Storage]],
    timeout: float = 2.0,
    mongo_db: str = "tribbler",
    clock: Optional[LogicalClock] = None,
) -> FrontServer:
    """Build a front-end over backends given as specs or storage objects."""
    backends: List[Storage] = [
        open_storage(b, timeout=timeout, mongo_db=mongo_db) if isinstance(b, str) else b for b in backs
    ]
    log_event("front_created", backends=len(backends))
    return FrontServer(BinRouter(backends), clock)


def parse_backs(raw: str) -> List[str]:
    return [b.strip() for b in raw.split(",") if b.strip()]
