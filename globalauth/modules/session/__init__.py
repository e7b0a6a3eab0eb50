"""
Session Module - Black Box Interface

Purpose: Sequence store, credentials, tokens, devices and profile per operation
Interface: signup(), login(), issue_token(), revoke_token(), validate_token(),
           list_devices(), remove_device(), update_profile(), prune_profile(),
           get_own_profile(), get_public_profile()
Hidden: Per-username critical sections, commit retries, deadlines, audit

Transport-agnostic: returns tagged OperationResults, never HTTP objects.
"""

from .audit import AuditTrail
from .factory import SessionFactory
from .locks import KeyedLock
from .orchestrator import Deadline, SessionOrchestrator

__all__ = ["SessionOrchestrator", "SessionFactory", "AuditTrail", "KeyedLock", "Deadline"]
