"""Unit tests for auth/store.py -- UserStore persistence and uniqueness.

Covers:
- create() assigns id, uuid, created_at; lookups by email / federated id
- email lookups are case-sensitive
- UNIQUE(email) and UNIQUE(federated_id) surface as Conflict, no extra row
- many users may have no federated id
- link_federated_id(): links once, idempotent for the same id, refuses a
  second id and an id held by another user
- concurrent creates of the same email: exactly one success
"""

import threading

import pytest
from sqlalchemy import func, select

from auth.errors import Conflict
from auth.models import NewUser
from auth.store import UserStore, _users


def _count(store: UserStore) -> int:
    with store.engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(_users)).scalar()


class TestCreate:
    def test_assigns_identifiers(self, store: UserStore) -> None:
        user = store.create(NewUser(email="jane@test.com", password_hash="$2b$04$hash"))
        assert user.id is not None
        assert len(user.uuid) == 36
        assert user.created_at
        assert user.federated_id is None

    def test_uuids_are_unique(self, store: UserStore) -> None:
        a = store.create(NewUser(email="a@test.com", password_hash="h"))
        b = store.create(NewUser(email="b@test.com", password_hash="h"))
        assert a.uuid != b.uuid

    def test_round_trip_by_email_and_federated_id(self, store: UserStore) -> None:
        created = store.create(NewUser(email="fb@test.com", federated_id="456"))
        assert store.find_by_email("fb@test.com") == created
        assert store.find_by_federated_id("456") == created
        assert store.find_by_email("FB@test.com") is None

    def test_missing_lookups_return_none(self, store: UserStore) -> None:
        assert store.find_by_email("nobody@test.com") is None
        assert store.find_by_federated_id("999") is None
        assert store.get_by_id(12345) is None

    def test_duplicate_email_conflict(self, store: UserStore) -> None:
        original = store.create(NewUser(email="dup@test.com", password_hash="h1"))
        with pytest.raises(Conflict) as exc_info:
            store.create(NewUser(email="dup@test.com", password_hash="h2"))
        assert exc_info.value.message == "Email already taken"
        assert exc_info.value.field == "email"
        assert _count(store) == 1
        assert store.find_by_email("dup@test.com") == original

    def test_duplicate_federated_id_conflict(self, store: UserStore) -> None:
        store.create(NewUser(email="one@test.com", federated_id="123"))
        with pytest.raises(Conflict) as exc_info:
            store.create(NewUser(email="two@test.com", federated_id="123"))
        assert exc_info.value.field == "federated_id"
        assert _count(store) == 1

    def test_many_users_without_federated_id(self, store: UserStore) -> None:
        for i in range(3):
            store.create(NewUser(email=f"local{i}@test.com", password_hash="h"))
        assert _count(store) == 3

    def test_user_needs_a_login_method(self, store: UserStore) -> None:
        with pytest.raises(ValueError):
            store.create(NewUser(email="nothing@test.com"))


class TestLinkFederatedId:
    def test_links_and_preserves_uuid(self, store: UserStore) -> None:
        user = store.create(NewUser(email="local@test.com", password_hash="h"))
        linked = store.link_federated_id(user, "123")
        assert linked.federated_id == "123"
        assert linked.uuid == user.uuid
        assert linked.password_hash == "h"
        assert store.find_by_federated_id("123") == linked

    def test_relinking_same_id_is_noop(self, store: UserStore) -> None:
        user = store.create(NewUser(email="local@test.com", password_hash="h"))
        store.link_federated_id(user, "123")
        assert store.link_federated_id(user, "123").federated_id == "123"

    def test_second_id_refused(self, store: UserStore) -> None:
        user = store.create(NewUser(email="local@test.com", password_hash="h"))
        store.link_federated_id(user, "123")
        with pytest.raises(Conflict):
            store.link_federated_id(user, "789")
        assert store.get_by_id(user.id).federated_id == "123"

    def test_id_held_by_another_user_refused(self, store: UserStore) -> None:
        store.create(NewUser(email="fb@test.com", federated_id="123"))
        user = store.create(NewUser(email="local@test.com", password_hash="h"))
        with pytest.raises(Conflict):
            store.link_federated_id(user, "123")
        assert store.get_by_id(user.id).federated_id is None


def test_ping(store: UserStore) -> None:
    assert store.ping() is True


def test_concurrent_creates_same_email_single_winner(tmp_path) -> None:
    """Two racing signups for one email: one row, one Conflict.

    Uses a file database so each thread gets its own pooled connection and
    the race is decided by SQLite's UNIQUE constraint, not by Python.
    """
    file_store = UserStore(f"sqlite:///{tmp_path / 'race.db'}")
    barrier = threading.Barrier(2)
    results: list[str] = []
    lock = threading.Lock()

    def attempt(n: int) -> None:
        barrier.wait()
        try:
            file_store.create(NewUser(email="race@test.com", password_hash=f"h{n}"))
            outcome = "created"
        except Conflict:
            outcome = "conflict"
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=attempt, args=(n,)) for n in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    try:
        assert sorted(results) == ["conflict", "created"]
        assert _count(file_store) == 1
    finally:
        file_store.close()
