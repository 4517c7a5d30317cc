"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in tracker/models.py -- dataclasses own domain shape; stores and services
do the work.

Layer rule: no imports from api/ or tracker/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass
class User:
    """A registered BuildTrack account.

    email is the login key. It is matched exactly (case-sensitive) and is
    unique across the store -- enforced by a UNIQUE constraint, not by a
    check-then-insert in code.

    password_hash and password_salt are hex strings. The plaintext password
    is never stored on this object.
    """

    email: str
    name: str
    password_hash: str
    password_salt: str
    id: int | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert


@dataclass(frozen=True)
class Session:
    """An active login, keyed by its opaque bearer token.

    expires_at is an absolute UNIX timestamp (seconds). A session whose
    expires_at is at or before "now" is expired and is deleted the first
    time a lookup sees it.
    """

    token: str
    user_id: int
    expires_at: float


@dataclass(frozen=True)
class Authenticated:
    """Successful resolution of a bearer token."""

    user_id: int
    token: str


class Unauthenticated:
    """Sentinel outcome for a missing, malformed, unknown, or expired token.

    Resolution is returned, never raised, so callers must branch on it
    explicitly. Use the module-level UNAUTHENTICATED instance.
    """

    _instance: Unauthenticated | None = None

    def __new__(cls) -> Unauthenticated:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNAUTHENTICATED"


UNAUTHENTICATED = Unauthenticated()

Resolution = Union[Authenticated, Unauthenticated]
