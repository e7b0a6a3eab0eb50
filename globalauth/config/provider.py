"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from typing import List, Optional, Protocol


STORAGE_BACKENDS = ("memory", "file", "redis")


@dataclass
class APIConfig:
    """API configuration."""
    cors_origins: List[str]
    server_name: str


@dataclass
class StorageConfig:
    """Account store configuration."""
    backend: str
    data_dir: str
    redis_host: str
    redis_port: int
    redis_db: int
    redis_password: Optional[str]


@dataclass
class SecurityConfig:
    """Credential and session engine configuration."""
    bcrypt_rounds: int
    token_bytes: int
    commit_retries: int
    operation_timeout: Optional[float]
    audit_max_events: int


@dataclass
class AdmissionConfig:
    """Global request admission gate configuration."""
    limit: int
    window_seconds: float

    @property
    def enabled(self) -> bool:
        """A zero limit disables the gate."""
        return self.limit > 0


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...

    def get_storage_config(self) -> StorageConfig:
        """Get storage configuration."""
        ...

    def get_security_config(self) -> SecurityConfig:
        """Get security configuration."""
        ...

    def get_admission_config(self) -> AdmissionConfig:
        """Get admission gate configuration."""
        ...


def _parse_port(value: str) -> int:
    # Might be in tcp://host:port format from K8s service links
    if value.startswith("tcp://"):
        return int(value.split(":")[-1])
    return int(value)


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            cors_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
            server_name=os.getenv("SERVER_NAME", "GlobalAuth"),
        )

    def get_storage_config(self) -> StorageConfig:
        """Get storage configuration from environment variables."""
        backend = os.getenv("STORAGE_BACKEND", "file").lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got '{backend}'"
            )

        return StorageConfig(
            backend=backend,
            data_dir=os.getenv("DATA_DIR", "data/users"),
            redis_host=os.getenv("REDIS_HOST", "localhost"),
            redis_port=_parse_port(os.getenv("REDIS_PORT", "6379")),
            redis_db=int(os.getenv("REDIS_DB", "0")),
            redis_password=os.getenv("REDIS_PASSWORD"),  # Optional: for authenticated Redis
        )

    def get_security_config(self) -> SecurityConfig:
        """Get security configuration from environment variables."""
        bcrypt_rounds = int(os.getenv("BCRYPT_ROUNDS", "12"))
        if not 4 <= bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")

        token_bytes = int(os.getenv("TOKEN_BYTES", "24"))
        if token_bytes < 12:
            raise ValueError("TOKEN_BYTES must be at least 12")

        commit_retries = int(os.getenv("COMMIT_RETRIES", "5"))
        if commit_retries < 0:
            raise ValueError("COMMIT_RETRIES must not be negative")

        timeout = float(os.getenv("OPERATION_TIMEOUT", "10"))

        return SecurityConfig(
            bcrypt_rounds=bcrypt_rounds,
            token_bytes=token_bytes,
            commit_retries=commit_retries,
            operation_timeout=timeout if timeout > 0 else None,
            audit_max_events=int(os.getenv("AUDIT_MAX_EVENTS", "10000")),
        )

    def get_admission_config(self) -> AdmissionConfig:
        """Get admission gate configuration from environment variables."""
        limit = int(os.getenv("RATE_LIMIT_REQUESTS", "600"))
        window = float(os.getenv("RATE_LIMIT_WINDOW", "60"))
        if limit < 0 or window <= 0:
            raise ValueError("RATE_LIMIT_REQUESTS must be >= 0 and RATE_LIMIT_WINDOW > 0")

        return AdmissionConfig(limit=limit, window_seconds=window)
