"""
Credentials Module - Black Box Interface

Purpose: Verify a secret without storing it in recoverable form
Interface: hash(), verify()
Hidden: Hash primitive, salting, cost factor

Stateless and side-effect free; can be swapped for any salted, iterated scheme.
"""

from .verifier import CredentialVerifier

__all__ = ["CredentialVerifier"]
