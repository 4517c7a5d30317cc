"""
auth/credentials.py -- Password key derivation and verification.

Security design decisions:
  KDF: bcrypt-pbkdf via bcrypt.kdf(). It takes an explicit per-user salt and
       a linear round count, so derive(password, salt) is deterministic and
       login can re-derive and compare. Each round runs the bcrypt block
       function, which keeps brute force and precomputed tables expensive.
       Rounds, output length and salt length come from Settings and are not
       visible on the wire.

  Comparison: hmac.compare_digest() on the raw hash bytes. Plain == would
       return on the first differing byte and leak how much of the prefix
       matched.

  Salts: secrets.token_bytes(), at least 16 bytes, generated per user.

  Dummy hash: computed once at construction so verify_dummy() can spend the
       same KDF work for unknown emails that a real verify() spends for known
       ones [C1]. The first login after startup is then not measurably slower
       than later ones either.

The plaintext password is never stored, logged, or returned by this module.
The Credential Manager does not touch any store.

Layer rule: no imports from api/ or tracker/.
"""

from __future__ import annotations

import hmac
import secrets

import bcrypt

from core.config import Settings


class CredentialManager:
    """Derives and verifies salted password hashes.

    Usage:
        credentials = CredentialManager.from_settings(get_settings())
        salt_hex, hash_hex = credentials.hash_new_password("securepass1")
        credentials.verify("securepass1", bytes.fromhex(salt_hex), bytes.fromhex(hash_hex))
    """

    def __init__(self, rounds: int, key_bytes: int = 64, salt_bytes: int = 16) -> None:
        if salt_bytes < 16:
            raise ValueError("salt_bytes must be at least 16")
        self.rounds = rounds
        self.key_bytes = key_bytes
        self.salt_bytes = salt_bytes
        # Timing equalization material [C1].
        self._dummy_salt = self.new_salt()
        self._dummy_hash = self.derive(secrets.token_hex(16), self._dummy_salt)

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialManager:
        return cls(
            rounds=settings.kdf_rounds,
            key_bytes=settings.kdf_key_bytes,
            salt_bytes=settings.salt_bytes,
        )

    def new_salt(self) -> bytes:
        """Return a fresh cryptographically random salt."""
        return secrets.token_bytes(self.salt_bytes)

    def derive(self, password: str, salt: bytes) -> bytes:
        """Return the fixed-length hash of password under salt.

        Same inputs always give the same output. Minimum password length is
        the caller's concern; only the empty password is refused here.
        Settings already rejects low round counts outside debug mode, so the
        bcrypt low-rounds warning is suppressed.
        """
        if not password:
            raise ValueError("password must not be empty")
        return bcrypt.kdf(
            password=password.encode("utf-8"),
            salt=salt,
            desired_key_bytes=self.key_bytes,
            rounds=self.rounds,
            ignore_few_rounds=True,
        )

    def verify(self, password: str, salt: bytes, expected_hash: bytes) -> bool:
        """Return True if password derives to expected_hash under salt."""
        candidate = self.derive(password, salt)
        return hmac.compare_digest(candidate, expected_hash)

    def verify_dummy(self, password: str) -> bool:
        """Spend one full verify() worth of KDF work and return False.

        Called when the account does not exist, so "unknown email" and
        "wrong password" cost the same time [C1].
        """
        self.verify(password or "-", self._dummy_salt, self._dummy_hash)
        return False

    def hash_new_password(self, password: str) -> tuple[str, str]:
        """Return (salt_hex, hash_hex) for a new account's password."""
        salt = self.new_salt()
        return salt.hex(), self.derive(password, salt).hex()
