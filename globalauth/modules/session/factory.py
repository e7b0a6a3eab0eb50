"""
Session Factory following Black Box Design principles.

This factory:
- Constructs the credential and session stack based on configuration
- Wires dependencies together
- Returns only the orchestrator facade (hiding implementation)
"""

import logging
from typing import Any, Optional

from globalauth.modules.credentials import CredentialVerifier
from globalauth.modules.devices import DeviceLedger
from globalauth.modules.profile import ProfileStore
from globalauth.modules.storage import AccountStore
from globalauth.modules.tokens import TokenRegistry

from .audit import AuditTrail
from .orchestrator import SessionOrchestrator
from ...config.provider import ConfigProvider

logger = logging.getLogger(__name__)


class SessionFactory:
    """
    Factory for building the session orchestrator.

    This is the composition root that:
    - Creates all credential/session components
    - Wires them together via dependency injection
    - Returns only the public interface
    """

    @staticmethod
    def build(
        config_provider: ConfigProvider,
        store: AccountStore,
        redis_client: Optional[Any] = None,
    ) -> SessionOrchestrator:
        """
        Build the complete session stack.

        Args:
            config_provider: Configuration provider
            store: Account store the orchestrator commits through
            redis_client: Optional Redis client for the audit trail

        Returns:
            SessionOrchestrator facade
        """
        security = config_provider.get_security_config()

        orchestrator = SessionOrchestrator(
            store=store,
            verifier=CredentialVerifier(rounds=security.bcrypt_rounds),
            tokens=TokenRegistry(token_bytes=security.token_bytes),
            devices=DeviceLedger(),
            profiles=ProfileStore(),
            audit=AuditTrail(redis_client, max_events=security.audit_max_events),
            max_retries=security.commit_retries,
            default_timeout=security.operation_timeout,
        )
        logger.info(
            f"Session orchestrator built (bcrypt rounds={security.bcrypt_rounds}, "
            f"retries={security.commit_retries}, timeout={security.operation_timeout})"
        )
        return orchestrator
