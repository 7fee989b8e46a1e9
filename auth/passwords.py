"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler and actively
maintained.

The cost factor is tunable (BCRYPT_ROUNDS). Each +1 doubles the work per
hash; tests run with the minimum of 4.
"""

from __future__ import annotations

import bcrypt

# bcrypt only reads the first 72 bytes of a password. Recent bcrypt releases
# raise instead of truncating, so the cut happens here, identically for hash
# and verify.
_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted one-way hashing plus verification.

    A dummy hash is computed once at construction. verify_dummy() runs the
    same bcrypt work against it so that a login for an unknown email costs
    as much as a login with a wrong password [C1].
    """

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        self._dummy_hash = self.hash("blackpot_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password."""
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext matches the hash. Never raises."""
        try:
            return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            # Malformed or placeholder digest, e.g. "$2b$10$example".
            return False

    def verify_dummy(self, plain: str) -> None:
        self.verify(plain, self._dummy_hash)
