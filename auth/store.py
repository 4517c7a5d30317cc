"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper (same as tracker/store.py).
AuthStore is the repository; _row_to_user / _row_to_session are the mappers.
Route, service and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is enforced by the database. Two concurrent signups with the
  same email race on the INSERT itself, and exactly one of them gets an
  IntegrityError -- there is no check-then-insert window in code.

  Session rows are keyed by token (primary key). Inserts and deletes are
  single-row statements, so operations on different tokens never interfere.

DB path: auth/buildtrack_auth.db by default (see core.config).

Layer rule: no imports from api/ or tracker/.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import Session, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),  # exact match, case-sensitive
    Column("name", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),  # hex
    Column("password_salt", String(128), nullable=False),  # hex
    Column("created_at", String(32), nullable=False),
)

_sessions = Table(
    "sessions",
    _metadata,
    Column("token", String(128), primary_key=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("expires_at", Float, nullable=False),  # UNIX seconds, absolute
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

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


class AuthStore:
    """Repository for User and Session records.

    One instance is constructed at startup and handed to the services that
    need it; there is no module-level store.

    Usage:
        store = AuthStore("sqlite:///:memory:")
        user_id = store.create_user(User(email="a@b.com", name="A", password_hash=h, password_salt=s))
        store.insert_session(Session(token=t, user_id=user_id, expires_at=exp))
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        The failed INSERT leaves no row behind.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=user.email,
                    name=user.name,
                    password_hash=user.password_hash,
                    password_salt=user.password_salt,
                    created_at=user.created_at or _now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def count_users(self, email: str | None = None) -> int:
        """Return the number of users, optionally only those with this email."""
        query = select(func.count()).select_from(_users)
        if email is not None:
            query = query.where(_users.c.email == email)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def insert_session(self, session: Session) -> None:
        """Store a session keyed by its token.

        A token collision raises IntegrityError. With 256-bit random tokens
        this does not happen in practice.
        """
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    token=session.token,
                    user_id=session.user_id,
                    expires_at=session.expires_at,
                )
            )
            conn.commit()

    def get_session(self, token: str) -> Session | None:
        """Look up a session by token. Returns None if not found. Expiry is not checked here."""
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.token == token)).fetchone()
        return _row_to_session(row) if row is not None else None

    def delete_session(self, token: str) -> bool:
        """Delete a session. Returns True if a row was removed, False if it was already gone."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.token == token))
            conn.commit()
        return result.rowcount > 0

    def delete_expired_sessions(self, now: float) -> int:
        """Delete every session with expires_at <= now. Returns the number removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= now))
            conn.commit()
        return result.rowcount

    def count_sessions(self, user_id: int | None = None) -> int:
        query = select(func.count()).select_from(_sessions)
        if user_id is not None:
            query = query.where(_sessions.c.user_id == user_id)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    # ------------------------------------------------------------------
    # Test isolation
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Delete every user and session. Schema is kept."""
        with self.engine.connect() as conn:
            conn.execute(_sessions.delete())
            conn.execute(_users.delete())
            conn.commit()

    def seed(self, users: Iterable[User]) -> list[int]:
        """Insert pre-built users and return their IDs in order.

        Users must already carry a password hash and salt (see
        CredentialManager.hash_new_password). Raises IntegrityError on a
        duplicate email, like create_user().
        """
        return [self.create_user(user) for user in users]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        password_hash=row.password_hash,
        password_salt=row.password_salt,
        created_at=row.created_at,
    )


def _row_to_session(row) -> Session:
    return Session(
        token=row.token,
        user_id=row.user_id,
        expires_at=row.expires_at,
    )
