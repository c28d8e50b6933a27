import pytest

from tribbler.errors import (
    AlreadyExists,
    AlreadyFollowing,
    BackendUnavailable,
    InvalidFollow,
    InvalidUsername,
    NotFollowing,
    TribTooLong,
    UserNotFound,
)
from tribbler.front import is_valid_username, new_front, parse_backs
from tribbler.storage import MemoryStorage


@pytest.mark.parametrize("name", ["a", "bob", "h8liu", "a" * 15, "x123"])
def test_valid_usernames(name):
    assert is_valid_username(name)


@pytest.mark.parametrize("name", ["", "Bob", "1abc", "a b", "a_b", "a" * 16, "al:ce"])
def test_invalid_usernames(name):
    assert not is_valid_username(name)


def test_sign_up_validates_and_rejects_duplicates(front):
    with pytest.raises(InvalidUsername):
        front.sign_up("")
    front.sign_up("bob")
    assert front.list_users() == ["bob"]
    with pytest.raises(AlreadyExists):
        front.sign_up("bob")
    front.sign_up("alice")
    assert front.list_users() == ["alice", "bob"]


def test_operations_on_unknown_users(front):
    front.sign_up("alice")
    with pytest.raises(UserNotFound):
        front.post("ghost", "boo")
    with pytest.raises(UserNotFound):
        front.tribs("ghost")
    with pytest.raises(UserNotFound):
        front.follow("alice", "ghost")
    with pytest.raises(UserNotFound):
        front.unfollow("ghost", "alice")
    with pytest.raises(UserNotFound):
        front.is_following("alice", "ghost")
    with pytest.raises(UserNotFound):
        front.following("ghost")
    with pytest.raises(UserNotFound):
        front.home("ghost")
    with pytest.raises(InvalidUsername):
        front.tribs("Not Valid")


def test_post_length_limit(front):
    front.sign_up("alice")
    front.post("alice", "x" * 140)
    with pytest.raises(TribTooLong):
        front.post("alice", "x" * 141)
    assert len(front.tribs("alice")) == 1


def test_self_relations_are_invalid(front):
    front.sign_up("alice")
    for op in (front.follow, front.unfollow, front.is_following):
        with pytest.raises(InvalidFollow):
            op("alice", "alice")


def test_social_flow_across_backends(front):
    for name in ["alice", "bob", "carol"]:
        front.sign_up(name)
    front.follow("alice", "bob")
    with pytest.raises(AlreadyFollowing):
        front.follow("alice", "bob")
    front.follow("alice", "carol")
    assert front.following("alice") == ["bob", "carol"]
    assert front.is_following("alice", "bob")
    assert not front.is_following("bob", "alice")

    front.post("bob", "hello from bob")
    front.post("carol", "hello from carol")
    front.post("alice", "hello from alice")
    home = front.home("alice")
    assert [t.user for t in home] == ["bob", "carol", "alice"]

    front.unfollow("alice", "bob")
    with pytest.raises(NotFollowing):
        front.unfollow("alice", "bob")
    assert [t.user for t in front.home("alice")] == ["carol", "alice"]


def test_new_front_from_specs():
    server = new_front(["memory:front-a", "memory:front-b"])
    server.sign_up("alice")
    # Named memory stores are shared, so a second front sees the same data.
    other = new_front(["memory:front-a", "memory:front-b"])
    assert other.list_users() == ["alice"]
    with pytest.raises(AlreadyExists):
        other.sign_up("alice")


def test_new_front_accepts_storage_objects():
    server = new_front([MemoryStorage(), MemoryStorage()])
    server.sign_up("alice")
    assert server.list_users() == ["alice"]


def test_parse_backs():
    assert parse_backs("localhost:1, localhost:2,,") == ["localhost:1", "localhost:2"]
    assert parse_backs("") == []


def test_backend_outage_reaches_the_caller(down):
    server = new_front([down])
    with pytest.raises(BackendUnavailable):
        server.sign_up("alice")
    with pytest.raises(BackendUnavailable):
        server.list_users()
