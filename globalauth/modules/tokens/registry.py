import secrets

from globalauth.modules.api.models import Account

MIN_TOKEN_BYTES = 12


class TokenRegistry:
    """
    Per-account set of valid bearer tokens.

    Operates on an Account already loaded by the orchestrator; nothing here
    persists. Tokens never expire - they stay valid until revoked.
    """

    def __init__(self, token_bytes: int = 24):
        """
        Initialize token registry.

        Args:
            token_bytes: Random bytes per token (hex encoded, so twice as many characters)
        """
        if token_bytes < MIN_TOKEN_BYTES:
            raise ValueError(f"Tokens need at least {MIN_TOKEN_BYTES} random bytes")
        self.token_bytes = token_bytes

    def issue(self, account: Account) -> str:
        """
        Generate a new token and append it to the account.

        Returns:
            The new token
        """
        # Cryptographically secure; regenerate on the (practically impossible) collision
        token = secrets.token_hex(self.token_bytes)
        while token in account.tokens:
            token = secrets.token_hex(self.token_bytes)

        account.tokens.append(token)
        return token

    def validate(self, account: Account, token: str) -> bool:
        """Exact membership test."""
        if not token:
            return False
        return token in account.tokens

    def revoke(self, account: Account, token: str) -> bool:
        """
        Remove a token.

        Returns:
            True if the token was removed, False if it was not in the set
        """
        if token not in account.tokens:
            return False

        account.tokens.remove(token)
        return True


def token_hint(token: str) -> str:
    """Loggable prefix of a token; full tokens are never logged."""
    return f"{token[:8]}..." if token else "<none>"
