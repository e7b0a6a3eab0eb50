"""
Profile Module - Black Box Interface

Purpose: Account-owned key/value document, separate from credentials
Interface: merge(), prune()
Hidden: Merge semantics (shallow, last write wins)
"""

from .store import ProfileStore

__all__ = ["ProfileStore"]
