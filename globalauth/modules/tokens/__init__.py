"""
Tokens Module - Black Box Interface

Purpose: Issue, validate and revoke opaque bearer tokens
Interface: issue(), validate(), revoke()
Hidden: Token format, entropy source

Works on an in-memory Account; persistence is the orchestrator's job.
"""

from .registry import TokenRegistry, token_hint

__all__ = ["TokenRegistry", "token_hint"]
