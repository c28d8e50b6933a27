from __future__ import annotations

from typing import Dict


class TribblerError(Exception):
    code = "unknown"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_detail(self) -> Dict[str, str]:
        return {"code": self.code, "message": self.message}


class InvalidUsername(TribblerError):
    code = "invalid_username"
    status_code = 400

    def __init__(self, user: str) -> None:
        super().__init__(f"invalid username {user!r}")
        self.user = user


class AlreadyExists(TribblerError):
    code = "already_exists"
    status_code = 409

    def __init__(self, user: str) -> None:
        super().__init__(f"username {user!r} is already taken")
        self.user = user


class UserNotFound(TribblerError):
    code = "user_not_found"
    status_code = 404

    def __init__(self, user: str) -> None:
        super().__init__(f"user {user!r} does not exist")
        self.user = user


class TribTooLong(TribblerError):
    code = "trib_too_long"
    status_code = 400

    def __init__(self, length: int, limit: int) -> None:
        super().__init__(f"trib is {length} characters, limit is {limit}")
        self.length = length
        self.limit = limit


class InvalidFollow(TribblerError):
    code = "invalid_follow"
    status_code = 400

    def __init__(self, user: str) -> None:
        super().__init__(f"{user!r} cannot follow or unfollow themselves")
        self.user = user


class AlreadyFollowing(TribblerError):
    code = "already_following"
    status_code = 409

    def __init__(self, who: str, whom: str) -> None:
        super().__init__(f"{who!r} is already following {whom!r}")
        self.who = who
        self.whom = whom


class NotFollowing(TribblerError):
    code = "not_following"
    status_code = 409

    def __init__(self, who: str, whom: str) -> None:
        super().__init__(f"{who!r} is not following {whom!r}")
        self.who = who
        self.whom = whom


class FolloweeLimitExceeded(TribblerError):
    code = "followee_limit_exceeded"
    status_code = 409

    def __init__(self, who: str, limit: int) -> None:
        super().__init__(f"{who!r} already follows the maximum of {limit} users")
        self.who = who
        self.limit = limit


class BackendUnavailable(TribblerError):
    """Any transport or backend fault. Never retried by the front-end."""

    code = "backend_unavailable"
    status_code = 503
