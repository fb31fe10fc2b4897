"""
auth/store.py -- Credential store: the single source of truth for user identity.

Pattern: Repository. CredentialStore is the capability route handlers depend
on; InMemoryCredentialStore and SqlCredentialStore are interchangeable
implementations. Route code never touches the mapping or SQL directly.

Concurrency:
  Both backends hold an exclusive lock across the whole
  check-username / hash / insert sequence of create_user(). Two concurrent
  registrations for the same name are therefore serialized: exactly one sees
  "does not exist" and succeeds, the other sees "exists" and fails with
  DuplicateUser.

  The in-memory backend serves lookups under a shared read lock, so logins run
  concurrently with each other but never observe a half-finished write.

  The SQL backend additionally relies on UNIQUE(username) for the
  multi-process case -- a second process holding its own lock can still race,
  and the constraint turns that race into IntegrityError -> DuplicateUser.

Backends:
  store_url = ""               -> InMemoryCredentialStore (lost on restart)
  store_url = "sqlite:///x.db" -> SqlCredentialStore (any SQLAlchemy URL)

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from sqlalchemy import Column, Integer, MetaData, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from auth.errors import DuplicateUser, UserNotFound
from auth.locks import ReadWriteLock
from auth.models import UserRecord
from auth.passwords import hash_password

logger = logging.getLogger("credsvc.store")


# ---------------------------------------------------------------------------
# Capability
# ---------------------------------------------------------------------------


@runtime_checkable
class CredentialStore(Protocol):
    """What the request handlers need from a store -- nothing more."""

    def create_user(self, username: str, password: str) -> UserRecord:
        """Hash password and register username. Raises DuplicateUser or HashingFailure."""
        ...

    def get_user_by_username(self, username: str) -> UserRecord:
        """Return the record for username. Raises UserNotFound."""
        ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryCredentialStore:
    """Dictionary-backed store guarded by a reader/writer lock.

    Usage:
        store = InMemoryCredentialStore()
        user = store.create_user("alice", "secret123")
        same = store.get_user_by_username("alice")
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._users: dict[str, UserRecord] = {}
        self._next_id = 1

    def create_user(self, username: str, password: str) -> UserRecord:
        with self._lock.write():
            if username in self._users:
                raise DuplicateUser(username)
            # Hashing happens under the write lock: nothing is inserted and the
            # counter does not move if it raises HashingFailure.
            password_hash = hash_password(password)
            user = UserRecord(id=self._next_id, username=username, password_hash=password_hash)
            self._users[username] = user
            self._next_id += 1
        logger.debug("Stored user id=%d", user.id)
        return user

    def get_user_by_username(self, username: str) -> UserRecord:
        with self._lock.read():
            user = self._users.get(username)
        if user is None:
            raise UserNotFound(username)
        return user

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._users)

    def close(self) -> None:
        with self._lock.write():
            self._users.clear()


# ---------------------------------------------------------------------------
# SQL backend (SQLAlchemy Core)
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", Text, nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    # AUTOINCREMENT makes SQLite refuse to hand out an id twice, even after
    # the highest row is gone.
    sqlite_autoincrement=True,
)

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by an in-flight write.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


class SqlCredentialStore:
    """Persistent store on any SQLAlchemy-supported database.

    Usage:
        store = SqlCredentialStore("sqlite:///credentials.db")
        store.create_user("alice", "secret123")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        engine_args: dict = {}
        if db_url.startswith("sqlite"):
            engine_args["connect_args"] = {"check_same_thread": False}
            if db_url in _MEMORY_URLS:
                # A plain :memory: DB is per-connection; pin one connection so
                # every worker thread sees the same schema and rows.
                engine_args["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, **engine_args)
        if db_url.startswith("sqlite") and db_url not in _MEMORY_URLS:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)
        self._write_lock = threading.Lock()

    def create_user(self, username: str, password: str) -> UserRecord:
        with self._write_lock:
            if self._fetch(username) is not None:
                raise DuplicateUser(username)
            password_hash = hash_password(password)
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(_users.insert().values(username=username, password_hash=password_hash))
                    conn.commit()
            except IntegrityError as exc:
                # Another process registered the same name between our check
                # and our insert.
                raise DuplicateUser(username) from exc
        user = UserRecord(id=result.inserted_primary_key[0], username=username, password_hash=password_hash)
        logger.debug("Stored user id=%d", user.id)
        return user

    def get_user_by_username(self, username: str) -> UserRecord:
        user = self._fetch(username)
        if user is None:
            raise UserNotFound(username)
        return user

    def __len__(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_users)).scalar() or 0

    def close(self) -> None:
        self.engine.dispose()

    def _fetch(self, username: str) -> UserRecord | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None


def _row_to_user(row) -> UserRecord:
    return UserRecord(id=row.id, username=row.username, password_hash=row.password_hash)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_store(store_url: str = "") -> CredentialStore:
    """Return the backend selected by store_url ("" means in-memory)."""
    if not store_url:
        return InMemoryCredentialStore()
    return SqlCredentialStore(store_url)
