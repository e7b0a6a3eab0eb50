"""
Credential verifier.

Passwords are stored as salted bcrypt digests. bcrypt only looks at the
first 72 bytes of its input, so the plaintext is first reduced to a
fixed-length SHA-256 digest (base64, 44 bytes) that keeps every byte of a
long password significant.
"""

import base64
import hashlib

import bcrypt

from globalauth.errors import InvalidInput


def _prehash(plaintext: str) -> bytes:
    digest = hashlib.sha256(plaintext.encode("utf-8")).digest()
    return base64.b64encode(digest)


class CredentialVerifier:
    """One-way password hashing and constant-time verification. Stateless."""

    def __init__(self, rounds: int = 12):
        """
        Initialize verifier.

        Args:
            rounds: bcrypt cost factor (4-31); each increment doubles the work
        """
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        """
        Hash a password with a fresh salt.

        Raises:
            InvalidInput: Empty password
        """
        if not plaintext:
            raise InvalidInput("Password must not be empty")

        hashed = bcrypt.hashpw(_prehash(plaintext), bcrypt.gensalt(rounds=self.rounds))
        return hashed.decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Check plaintext against a stored digest; malformed digests never match."""
        if not plaintext or not digest:
            return False

        try:
            return bcrypt.checkpw(_prehash(plaintext), digest.encode("utf-8"))
        except ValueError:
            # Not a bcrypt digest
            return False
