"""
auth/sessions.py -- Bearer session issue, resolution, and revocation.

Security design decisions:
  Tokens: secrets.token_hex(32) gives 256 bits of entropy as 64 hex chars.
       The token is opaque -- it carries no user id, expiry, or signature an
       attacker could parse. All meaning lives in the session row.

  Expiry: absolute, fixed TTL from issuance (7 days by default). A session is
       valid while now < expires_at. The first lookup that sees
       now >= expires_at deletes the row, so a second lookup of the same token
       is a plain "not found" rather than briefly valid again. The background
       purge in api/main.py only bounds growth for tokens nobody presents.

  Failure signalling: resolve() returns UNAUTHENTICATED for every ordinary
       failure (absent, malformed, unknown, expired). It never raises for
       them; the dependency layer turns the sentinel into a 401.

  Header shape: the Authorization value may arrive absent, as one string, or
       as several values. normalize_authorization_header() collapses that to
       str | None once, before any parsing. Several values -> first wins.

State machine:
  Active  --(now >= expires_at, seen on lookup)-->  Expired  --(lazy delete)-->  Deleted
  Active  --(revoke)-->  Deleted
  Deleted is terminal.

Layer rule: no imports from api/ or tracker/.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable, Sequence

from auth.models import UNAUTHENTICATED, Authenticated, Resolution, Session
from auth.store import AuthStore

logger = logging.getLogger("buildtrack.auth")

BEARER_SCHEME = "Bearer"

# ---------------------------------------------------------------------------
# Header extraction
# ---------------------------------------------------------------------------


def normalize_authorization_header(raw: str | Sequence[str] | None) -> str | None:
    """Collapse an Authorization header value to a single string or None.

    Multi-valued headers take the first value. Rejecting them outright would
    be stricter; first-wins is kept for client compatibility.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw or None
    if not raw:
        return None
    return raw[0] or None


def extract_bearer_token(header: str | None) -> str | None:
    """Return the token from "Bearer <token>", or None for any other shape.

    Splits on the first space only. The scheme comparison is exact and
    case-sensitive ("bearer" is rejected).
    """
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme != BEARER_SCHEME or not token:
        return None
    return token


def generate_session_token() -> str:
    """Return a new opaque session token (64 hex chars, 256 bits of entropy)."""
    return secrets.token_hex(32)


# ---------------------------------------------------------------------------
# Session Authority
# ---------------------------------------------------------------------------


class SessionAuthority:
    """Mints, resolves, and revokes bearer sessions.

    The only writer of session rows. clock returns UNIX seconds and exists so
    tests can move time without sleeping.
    """

    def __init__(
        self,
        store: AuthStore,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def create_session(self, user_id: int) -> Session:
        session = Session(
            token=generate_session_token(),
            user_id=user_id,
            expires_at=self._clock() + self.ttl_seconds,
        )
        self.store.insert_session(session)
        return session

    def resolve(self, token: str | None) -> Resolution:
        """Resolve a token to Authenticated(user_id) or UNAUTHENTICATED.

        Expired sessions are deleted as a side effect of being looked up.
        """
        if not token:
            return UNAUTHENTICATED
        session = self.store.get_session(token)
        if session is None:
            return UNAUTHENTICATED
        if session.expires_at <= self._clock():
            self.store.delete_session(token)
            logger.info("Evicted expired session for user_id=%s", session.user_id)
            return UNAUTHENTICATED
        return Authenticated(user_id=session.user_id, token=token)

    def authenticate_header(self, raw: str | Sequence[str] | None) -> Resolution:
        """Resolve a raw Authorization header value (absent, str, or list of str)."""
        return self.resolve(extract_bearer_token(normalize_authorization_header(raw)))

    def revoke(self, token: str | None) -> bool:
        """Delete the session if present. Returns True if one was removed.

        Revoking an unknown or already-revoked token is not an error.
        """
        if not token:
            return False
        return self.store.delete_session(token)

    def purge_expired(self) -> int:
        """Delete every expired session. Returns the number removed."""
        return self.store.delete_expired_sessions(self._clock())
