"""
GlobalAuth - Credential Issuance and Session Service

Registers accounts, verifies passwords, issues and revokes bearer tokens,
tracks the devices a token was issued to and stores a free-form profile
per account.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- storage: Account record persistence (memory, file, redis)
- credentials: Password hashing and verification
- tokens: Bearer token issuance, validation, revocation
- devices: Device ledger tied to issuance events
- profile: Per-account profile document
- session: Orchestrator sequencing the above per operation
- admission: Per-process request admission control
- middleware: FastAPI middleware (admission, default headers)
- api: Shared models and HTTP routes
"""

__version__ = "1.0.0"
