"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper.
CredentialStore is the repository contract the authentication core depends
on; UserStore is the SQL implementation and _row_to_user is the mapper.
Service and route code never touches SQL directly.

Uniqueness:
  email and federated_id are UNIQUE columns. create() and link_federated_id()
  rely on the constraint itself -- an IntegrityError around the write -- rather
  than a prior SELECT, so two concurrent signups for the same email produce
  one row and one Conflict, never two rows.

  federated_id is nullable. SQL UNIQUE treats NULLs as distinct, which is
  exactly the rule wanted here: any number of unlinked users, but no two users
  sharing a Facebook id.

  link_federated_id() is a single conditional UPDATE
  (WHERE id = :id AND federated_id IS NULL), so a user can never be linked to
  two federated ids even if two first logins race.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import uuid as uuid_lib
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import Conflict
from auth.models import NewUser, User

logger = logging.getLogger("summit.auth.store")

EMAIL_TAKEN = "Email already taken"
FEDERATED_ID_TAKEN = "Federated identity already linked"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("uuid", String(36), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text),  # NULL for federated-only users
    Column("federated_id", String(255), unique=True),  # Facebook user id, NULL until linked
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Repository contract
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    """What the authentication core needs from persistence. No deletes."""

    def find_by_email(self, email: str) -> User | None: ...

    def find_by_federated_id(self, federated_id: str) -> User | None: ...

    def create(self, new_user: NewUser) -> User: ...

    def link_federated_id(self, user: User, federated_id: str) -> User: ...


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind a writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQL implementation of CredentialStore.

    Usage:
        store = UserStore("sqlite:///summit_auth.db")
        user = store.create(NewUser(email="a@b.com", password_hash=hasher.hash("secret123")))
        store.find_by_email("a@b.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # Route handlers run in FastAPI's thread pool and share this engine.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_users).where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_federated_id(self, federated_id: str) -> User | None:
        """Look up a user by linked Facebook id. Returns None if no user holds it."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_users).where(_users.c.federated_id == federated_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_users).where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, new_user: NewUser) -> User:
        """Insert a new user, assigning id, uuid and created_at.

        Raises Conflict if the email or federated id is already taken. The
        check is the UNIQUE constraint on the INSERT itself, so a concurrent
        signup that passed an earlier existence check still fails here.
        """
        if new_user.password_hash is None and new_user.federated_id is None:
            raise ValueError("A user needs a password hash or a federated id")

        values = {
            "uuid": str(uuid_lib.uuid4()),
            "email": new_user.email,
            "password_hash": new_user.password_hash,
            "federated_id": new_user.federated_id,
            "created_at": _now_iso(),
        }
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_users.insert().values(**values))
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise self._conflict_for(new_user) from exc

        return User(id=user_id, **values)

    def link_federated_id(self, user: User, federated_id: str) -> User:
        """Attach a Facebook id to a user that has none, and return the fresh record.

        Raises Conflict when another user already holds federated_id, or when
        this user was linked to a different id in the meantime. Linking the
        same id twice is a no-op.
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _users.update()
                    .where((_users.c.id == user.id) & (_users.c.federated_id.is_(None)))
                    .values(federated_id=federated_id)
                )
                updated = result.rowcount
        except IntegrityError as exc:
            raise Conflict(FEDERATED_ID_TAKEN, field="federated_id") from exc

        current = self.get_by_id(user.id)
        if current is None:
            raise LookupError(f"user {user.id} vanished during link")
        if not updated and current.federated_id != federated_id:
            raise Conflict(FEDERATED_ID_TAKEN, field="federated_id")
        return current

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Database health check failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()

    def _conflict_for(self, new_user: NewUser) -> Conflict:
        # The INSERT failed on a UNIQUE column; report the one the caller can act on.
        if self.find_by_email(new_user.email) is not None:
            return Conflict(EMAIL_TAKEN, field="email")
        return Conflict(FEDERATED_ID_TAKEN, field="federated_id")


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        uuid=row.uuid,
        email=row.email,
        password_hash=row.password_hash,
        federated_id=row.federated_id,
        created_at=row.created_at,
    )
