"""
Devices Module - Black Box Interface

Purpose: Track which client each login-issued token went to
Interface: register(), list(), remove_by_token()
Hidden: Entry ordering and matching rules
"""

from .ledger import UNKNOWN_DEVICE, DeviceLedger

__all__ = ["DeviceLedger", "UNKNOWN_DEVICE"]
