from .bins import Bin, BinRouter
from .clock import LogicalClock
from .errors import (
    AlreadyExists,
    AlreadyFollowing,
    BackendUnavailable,
    FolloweeLimitExceeded,
    InvalidFollow,
    InvalidUsername,
    NotFollowing,
    TribblerError,
    TribTooLong,
    UserNotFound,
)
from .front import FrontServer, is_valid_username, new_front
from .storage import MemoryStorage, Storage, open_storage
from .tribs import Trib

__all__ = [
    "AlreadyExists",
    "AlreadyFollowing",
    "BackendUnavailable",
    "Bin",
    "BinRouter",
    "FolloweeLimitExceeded",
    "FrontServer",
    "InvalidFollow",
    "InvalidUsername",
    "LogicalClock",
    "MemoryStorage",
    "NotFollowing",
    "Storage",
    "Trib",
    "TribTooLong",
    "TribblerError",
    "UserNotFound",
    "is_valid_username",
    "new_front",
    "open_storage",
]
