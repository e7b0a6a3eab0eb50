"""
GlobalAuth shared data models.

These models define the structure of all data passed between
components in the GlobalAuth system.
"""

import re
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Enums


class Outcome(str, Enum):
    """Outcome tag of an orchestrator operation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Internal Models (Used between modules)


class Device(BaseModel):
    """A device entry paired with the token issued alongside it."""

    name: str = Field(..., description="Client supplied label, usually a User-Agent")
    token: str = Field(..., description="Token issued when this device was registered")


class Account(BaseModel):
    """
    Durable account record.

    The whole record is persisted as one document; tokens and devices are
    sub-collections owned by it.
    """

    username: str
    password_hash: str
    account_id: str
    tokens: List[str] = Field(default_factory=list)
    devices: List[Device] = Field(default_factory=list)
    profile: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: int = Field(default=0, description="Incremented on every commit", ge=0)

    def public_view(self) -> Dict[str, Any]:
        """Fields safe to show to anyone; never credentials."""
        return {"accountId": self.account_id, "profileData": dict(self.profile)}


# Request Models (API Input)
#
# Fields are optional on purpose: missing fields are reported by the
# orchestrator as InvalidInput with the standard envelope.


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CredentialsRequest(_RequestModel):
    """Body of signup and login."""

    username: Optional[str] = None
    password: Optional[str] = None


class TokenAuthRequest(_RequestModel):
    """Body of any operation authorized by an active token."""

    username: Optional[str] = None
    active_token: Optional[str] = Field(None, alias="activeToken")


class TokensRequest(TokenAuthRequest):
    """Body of the tokens endpoint."""

    token_to_delete: Optional[str] = Field(None, alias="tokenToDelete")
    token_to_validate: Optional[str] = Field(None, alias="tokenToValidate")


class ProfileRequest(TokenAuthRequest):
    """Body of the profile update endpoint; data is a mapping (PUT) or key list (DELETE)."""

    data: Optional[Any] = None


# Response Models (API Output)


class OperationResult(BaseModel):
    """Tagged result of an orchestrator operation plus recommended HTTP status."""

    outcome: Outcome
    data: Dict[str, Any] = Field(default_factory=dict)
    status: int = 200

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCEEDED

    @classmethod
    def success(cls, **data: Any) -> "OperationResult":
        return cls(outcome=Outcome.SUCCEEDED, data=data, status=200)

    @classmethod
    def failure(cls, message: str, error: str, status: int) -> "OperationResult":
        return cls(
            outcome=Outcome.FAILED,
            data={"message": message, "error": error},
            status=status,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Envelope sent over the wire (status travels separately)."""
        return {"outcome": self.outcome.value, "data": self.data}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Health status", pattern="^(healthy|unhealthy)$")
    storage: str = Field(..., description="Account store status")
    version: str = Field(default="1.0.0", description="API version")


# Validation Helpers

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")


def validate_username(username: str) -> str:
    """
    Validate username format.

    Rules:
    - Case-sensitive, used verbatim as the storage key
    - ASCII letters, digits, '_', '.', '-'
    - Must start with a letter or digit
    - Max 64 characters
    """
    if not USERNAME_PATTERN.match(username):
        raise ValueError(
            "Username must be 1-64 characters of letters, digits, '_', '.' or '-', "
            "starting with a letter or digit"
        )
    return username


# Export all models
__all__ = [
    # Enums
    "Outcome",
    # Internal models
    "Account",
    "Device",
    # Request models
    "CredentialsRequest",
    "TokenAuthRequest",
    "TokensRequest",
    "ProfileRequest",
    # Response models
    "OperationResult",
    "HealthResponse",
    # Validators
    "validate_username",
    "USERNAME_PATTERN",
]
