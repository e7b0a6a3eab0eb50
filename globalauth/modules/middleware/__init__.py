"""
Middleware Module - Black Box Interface

Purpose: Reusable request/response middleware for FastAPI applications
Interface: AdmissionMiddleware, DefaultHeadersMiddleware, factory functions
Hidden: Admission bookkeeping, header policy, error formatting

Can be used by any FastAPI app; completely independent and replaceable.
"""

import logging
import math
import secrets
from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from globalauth.modules.admission import AdmissionGate

logger = logging.getLogger(__name__)


def failed_envelope(message: str, error: str) -> Dict:
    """Standard failed response body."""
    return {"outcome": "failed", "data": {"message": message, "error": error}}


class AdmissionMiddleware:
    """
    Sheds load before any account store access.

    Wraps an AdmissionGate; rejected requests get 429 with the standard
    failed envelope and a Retry-After header.
    """

    def __init__(
        self,
        gate: AdmissionGate,
        skip_paths: Optional[Dict[str, list]] = None,
        log_attempts: bool = True,
    ):
        """
        Initialize admission middleware.

        Args:
            gate: Admission gate owned by the application
            skip_paths: Dict of {path: [methods]} exempt from admission
            log_attempts: Whether to log rejected requests
        """
        self.gate = gate
        self.skip_paths = skip_paths or {}
        self.log_attempts = log_attempts

    def should_skip(self, request: Request) -> bool:
        """Check if admission should be skipped for this request."""
        if request.method.upper() == "OPTIONS":
            return True

        path = str(request.url.path)
        method = request.method.upper()
        if path in self.skip_paths:
            allowed_methods = self.skip_paths[path]
            if "*" in allowed_methods or method in allowed_methods:
                return True

        return False

    async def __call__(self, request: Request, call_next):
        """Admit or reject the request."""
        if self.should_skip(request) or self.gate.try_admit():
            return await call_next(request)

        retry_after = math.ceil(self.gate.retry_after())
        if self.log_attempts:
            logger.warning(f"Admission rejected {request.method} {request.url.path} (retry in {retry_after}s)")

        return JSONResponse(
            status_code=429,
            content=failed_envelope("Too many requests, please slow down.", "rate_limited"),
            headers={"Retry-After": str(retry_after)},
        )


class DefaultHeadersMiddleware:
    """Adds the service's default headers to every response."""

    def __init__(self, server_name: str = "GlobalAuth"):
        self.headers = {
            "Server": server_name,
            "Cache-Control": "no-store",
            "Strict-Transport-Security": "max-age=63072000",
            "X-Frame-Options": "SAMEORIGIN",
            "Content-Security-Policy": "default-src 'self' *;",
        }

    async def __call__(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        # Per-response record id for correlating client reports with logs
        response.headers["X-Request-Record"] = secrets.token_hex(12)
        return response


def create_admission_middleware(
    gate: AdmissionGate,
    skip_paths: Optional[Dict[str, list]] = None,
) -> AdmissionMiddleware:
    """
    Factory function to create admission middleware.

    Health probes are always exempt.

    Args:
        gate: Admission gate owned by the application
        skip_paths: Additional paths to exempt {"/path": ["GET"]}

    Returns:
        Configured AdmissionMiddleware instance
    """
    paths = {"/healthz": ["GET"], "/health": ["GET"]}
    paths.update(skip_paths or {})
    return AdmissionMiddleware(gate=gate, skip_paths=paths)


# Module interface - what this module provides
__all__ = [
    "AdmissionMiddleware",
    "DefaultHeadersMiddleware",
    "create_admission_middleware",
    "failed_envelope",
]
