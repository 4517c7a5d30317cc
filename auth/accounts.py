"""
auth/accounts.py -- Signup and login glue between the store and the KDF.

register_user() and authenticate_user() are the only places that combine an
AuthStore lookup with CredentialManager work. Route handlers call these and
never inline get_by_email() + verify() -- that would reintroduce the timing
leak authenticate_user() closes [C1].

Layer rule: no imports from api/ or tracker/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.credentials import CredentialManager
from auth.models import User
from auth.store import AuthStore

logger = logging.getLogger("buildtrack.auth")


class EmailTakenError(Exception):
    """Raised by register_user() when the email already belongs to an account."""

    def __init__(self, email: str) -> None:
        super().__init__(f"Email already in use: {email}")
        self.email = email


def register_user(
    store: AuthStore,
    credentials: CredentialManager,
    name: str,
    email: str,
    password: str,
) -> User:
    """Create an account and return the stored User.

    The UNIQUE(email) constraint decides conflicts, so two concurrent signups
    with one email cannot both succeed. On conflict nothing is written.
    """
    salt_hex, hash_hex = credentials.hash_new_password(password)
    try:
        user_id = store.create_user(
            User(email=email, name=name, password_hash=hash_hex, password_salt=salt_hex)
        )
    except IntegrityError as exc:
        raise EmailTakenError(email) from exc

    user = store.get_by_id(user_id)
    if user is None:
        raise RuntimeError(f"User {user_id} not found after insert")
    return user


def authenticate_user(
    store: AuthStore,
    credentials: CredentialManager,
    email: str,
    password: str,
) -> User | None:
    """Authenticate an email/password login with timing equalization [C1].

    Always runs the KDF whether or not the email exists:
    - Unknown email: verify_dummy() spends the same work as a real check
    - Wrong password: verify() against the real salt and hash

    Returns the User on success, None on any failure. Callers cannot tell the
    two failure cases apart.
    """
    user = store.get_by_email(email)
    if user is None:
        # Equalize timing -- do NOT return before running the KDF [C1]
        credentials.verify_dummy(password)
        return None
    ok = credentials.verify(
        password,
        bytes.fromhex(user.password_salt),
        bytes.fromhex(user.password_hash),
    )
    return user if ok else None
