"""
API Module - Black Box Interface

Purpose: Shared models and HTTP routing
Interface: request/response models, create_users_router()
Hidden: Request parsing, method selection, status mapping

The API module only maps HTTP onto orchestrator operations - it contains
no business logic. Routes live in globalauth.modules.api.routes.
"""

from .models import (
    Account,
    CredentialsRequest,
    Device,
    OperationResult,
    Outcome,
    ProfileRequest,
    TokenAuthRequest,
    TokensRequest,
    validate_username,
)

__all__ = [
    "Account",
    "Device",
    "Outcome",
    "OperationResult",
    "CredentialsRequest",
    "TokenAuthRequest",
    "TokensRequest",
    "ProfileRequest",
    "validate_username",
]
