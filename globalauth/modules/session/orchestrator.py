"""
Session orchestrator.

The façade that sequences the account store, credential verifier, token
registry, device ledger and profile store for every logical operation.

Every mutating operation is one load -> authorize -> mutate -> commit cycle
run as the username's critical section:
- an in-process lock table serializes cycles per username
- the store version-checks each commit; a conflict (another process won)
  retries the whole cycle a bounded number of times

Read-only operations load the latest committed snapshot without the lock.
All taxonomy errors are recovered here and returned as failed
OperationResults; nothing escapes as an exception.
"""

import asyncio
import logging
import random
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from globalauth.errors import (
    Conflict,
    DeadlineExceeded,
    GlobalAuthError,
    InvalidInput,
    NotFound,
    StorageError,
    Unauthorized,
)
from globalauth.modules.api.models import Account, OperationResult, validate_username
from globalauth.modules.credentials import CredentialVerifier
from globalauth.modules.devices import DeviceLedger
from globalauth.modules.profile import ProfileStore
from globalauth.modules.storage import AccountStore
from globalauth.modules.tokens import TokenRegistry, token_hint

from .audit import AuditTrail
from .locks import KeyedLock

logger = logging.getLogger(__name__)

MISSING_FIELDS = "Missing required body fields."
INVALID_TOKEN = "Initial token is invalid."

# (response data, whether the account must be committed)
Mutation = Callable[[Account], Awaitable[Tuple[Dict[str, Any], bool]]]


class Deadline:
    """Caller-supplied time budget for one operation."""

    def __init__(self, timeout: Optional[float]):
        self._loop = asyncio.get_running_loop()
        self._at = None if timeout is None else self._loop.time() + timeout

    def remaining(self) -> Optional[float]:
        if self._at is None:
            return None
        return max(self._at - self._loop.time(), 0.0)

    def check(self) -> None:
        """Raise if the budget is spent; called right before committing."""
        if self._at is not None and self._loop.time() >= self._at:
            raise DeadlineExceeded("Operation deadline expired before commit")

    async def run(self, awaitable: Awaitable):
        """Await within the remaining budget."""
        remaining = self.remaining()
        if remaining is None:
            return await awaitable

        if remaining <= 0:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise DeadlineExceeded("Operation deadline expired")

        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError:
            raise DeadlineExceeded("Operation deadline expired")


class SessionOrchestrator:
    """
    Credential and session lifecycle engine.

    Authentication is stateless per request: every privileged operation
    re-validates the supplied active token against the current token set.
    """

    def __init__(
        self,
        store: AccountStore,
        verifier: CredentialVerifier,
        tokens: Optional[TokenRegistry] = None,
        devices: Optional[DeviceLedger] = None,
        profiles: Optional[ProfileStore] = None,
        audit: Optional[AuditTrail] = None,
        max_retries: int = 5,
        default_timeout: Optional[float] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            store: Account store
            verifier: Password hashing/verification
            tokens: Token registry
            devices: Device ledger
            profiles: Profile store
            audit: Audit trail for security events
            max_retries: Commit retries after a version conflict
            default_timeout: Deadline in seconds when the caller supplies none
        """
        self.store = store
        self.verifier = verifier
        self.tokens = tokens or TokenRegistry()
        self.devices = devices or DeviceLedger()
        self.profiles = profiles or ProfileStore()
        self.audit = audit or AuditTrail()
        self.max_retries = max_retries
        self.default_timeout = default_timeout
        self._locks = KeyedLock()

    # Boundary

    async def _execute(
        self,
        operation: str,
        username: Optional[str],
        op: Callable[[Deadline], Awaitable[Dict[str, Any]]],
        timeout: Optional[float],
    ) -> OperationResult:
        """Run op under a deadline and turn taxonomy errors into a failed result."""
        deadline = Deadline(self.default_timeout if timeout is None else timeout)

        try:
            data = await op(deadline)
        except asyncio.TimeoutError:
            # Lock wait ran out of budget
            error = DeadlineExceeded("Operation deadline expired")
            logger.warning(f"{operation} abandoned for {username}: {error.message}")
            return OperationResult.failure(error.message, error.code, error.status)
        except StorageError as e:
            logger.error(f"{operation} failed for {username}: {e.message}", exc_info=True)
            return OperationResult.failure(e.message, e.code, e.status)
        except GlobalAuthError as e:
            logger.warning(f"{operation} rejected for {username}: {e.message}")
            return OperationResult.failure(e.message, e.code, e.status)

        return OperationResult.success(**data)

    async def _transact(self, username: str, deadline: Deadline, mutate: Mutation) -> Dict[str, Any]:
        """
        Run load -> mutate -> commit as username's critical section.

        The whole cycle is retried when the commit loses a version race.
        """
        attempts = self.max_retries + 1

        for attempt in range(1, attempts + 1):
            async with self._locks.hold(username, deadline.remaining()):
                account = await self._load_authorizable(username, deadline)
                data, dirty = await mutate(account)
                if not dirty:
                    return data

                deadline.check()
                try:
                    await self.store.commit(account)
                    return data
                except Conflict as e:
                    if attempt == attempts:
                        raise Conflict("Account is busy, please retry") from e
                    logger.debug(f"Commit conflict for {username} (attempt {attempt}/{attempts})")

            # Jittered backoff outside the lock
            await deadline.run(asyncio.sleep(random.uniform(0, 0.005 * attempt)))

        raise Conflict("Account is busy, please retry")

    # Helpers

    @staticmethod
    def _require(*values: Any) -> None:
        for value in values:
            if value is None or value == "":
                raise InvalidInput(MISSING_FIELDS)

    @staticmethod
    def _check_username(username: Optional[str]) -> str:
        if not username:
            raise InvalidInput(MISSING_FIELDS)
        try:
            return validate_username(username)
        except ValueError as e:
            raise InvalidInput(str(e)) from e

    async def _load_authorizable(self, username: str, deadline: Deadline) -> Account:
        # Unknown accounts and bad tokens are indistinguishable to token holders
        try:
            return await deadline.run(self.store.load(username))
        except NotFound:
            raise Unauthorized(INVALID_TOKEN)

    def _authorize(self, account: Account, active_token: str) -> None:
        if not self.tokens.validate(account, active_token):
            raise Unauthorized(INVALID_TOKEN)

    async def _read(self, username: str, active_token: str, deadline: Deadline) -> Account:
        """Load a committed snapshot and authorize the active token."""
        account = await self._load_authorizable(username, deadline)
        self._authorize(account, active_token)
        return account

    # Operations

    async def signup(
        self,
        username: Optional[str],
        password: Optional[str],
        device_name: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        Register an account with one token and one device.

        Returns:
            Success data: {username, accountId, token}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)
            self._require(password)

            async with self._locks.hold(username, deadline.remaining()):
                # Skip the expensive hash when the name is obviously taken
                if await deadline.run(self.store.exists(username)):
                    raise Conflict("Username is taken! Please try another.")

                password_hash = await deadline.run(
                    asyncio.to_thread(self.verifier.hash, password)
                )
                account = Account(
                    username=username,
                    password_hash=password_hash,
                    account_id=str(uuid.uuid4()),
                )
                token = self.tokens.issue(account)
                device = self.devices.register(account, device_name, token)

                deadline.check()
                try:
                    await self.store.create(account)
                except Conflict:
                    raise Conflict("Username is taken! Please try another.")

            logger.info(f"New user created! Username: {username}")
            await self.audit.record("account_created", username, device=device.name)
            return {"username": username, "accountId": account.account_id, "token": token}

        return await self._execute("signup", username, op, timeout)

    async def login(
        self,
        username: Optional[str],
        password: Optional[str],
        device_name: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        Verify the password and issue a new token paired with a device entry.

        Returns:
            Success data: {username, token}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)
            self._require(password)

            async def mutate(account: Account) -> Tuple[Dict[str, Any], bool]:
                valid = await deadline.run(
                    asyncio.to_thread(self.verifier.verify, password, account.password_hash)
                )
                if not valid:
                    await self.audit.record("login_failed", username)
                    raise Unauthorized("Password is invalid.")

                token = self.tokens.issue(account)
                self.devices.register(account, device_name, token)
                return {"username": username, "token": token}, True

            try:
                await deadline.run(self.store.load(username))
            except NotFound:
                raise NotFound("User does not exist!")

            data = await self._transact(username, deadline, mutate)
            logger.info(f"User login! Username: {username}")
            await self.audit.record("login", username, device=device_name, token=token_hint(data["token"]))
            return data

        return await self._execute("login", username, op, timeout)

    async def issue_token(
        self,
        username: Optional[str],
        active_token: Optional[str],
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        Issue an extra token without a device entry.

        Returns:
            Success data: {token}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)
            self._require(active_token)

            async def mutate(account: Account) -> Tuple[Dict[str, Any], bool]:
                self._authorize(account, active_token)
                return {"token": self.tokens.issue(account)}, True

            data = await self._transact(username, deadline, mutate)
            await self.audit.record("token_issued", username, token=token_hint(data["token"]))
            return data

        return await self._execute("issue_token", username, op, timeout)

    async def revoke_token(
        self,
        username: Optional[str],
        active_token: Optional[str],
        token_to_delete: Optional[str],
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        Revoke a token. Device entries are left untouched.

        Returns:
            Success data: {message}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)
            self._require(active_token, token_to_delete)

            async def mutate(account: Account) -> Tuple[Dict[str, Any], bool]:
                self._authorize(account, active_token)
                if not self.tokens.revoke(account, token_to_delete):
                    raise InvalidInput("Token does not exist.")
                return {"message": "Token revoked."}, True

            data = await self._transact(username, deadline, mutate)
            logger.info(f"User revoked token! Username: {username}, Token: {token_hint(token_to_delete)}")
            await self.audit.record("token_revoked", username, token=token_hint(token_to_delete))
            return data

        return await self._execute("revoke_token", username, op, timeout)

    async def validate_token(
        self,
        username: Optional[str],
        active_token: Optional[str],
        token_to_check: Optional[str],
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        Check whether another token is currently valid.

        Returns:
            Success data: {valid}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)
            self._require(active_token, token_to_check)

            account = await self._read(username, active_token, deadline)
            return {"valid": self.tokens.validate(account, token_to_check)}

        return await self._execute("validate_token", username, op, timeout)

    async def list_devices(
        self,
        username: Optional[str],
        active_token: Optional[str],
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        List device entries.

        Returns:
            Success data: {devices}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)
            self._require(active_token)

            account = await self._read(username, active_token, deadline)
            return {"devices": [d.model_dump() for d in self.devices.list(account)]}

        return await self._execute("list_devices", username, op, timeout)

    async def remove_device(
        self,
        username: Optional[str],
        active_token: Optional[str],
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        Remove the caller's own device entry and revoke its token.

        The entry is the first one issued with active_token, so this ends
        the caller's session on that device.

        Returns:
            Success data: {devices, removed}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)
            self._require(active_token)

            async def mutate(account: Account) -> Tuple[Dict[str, Any], bool]:
                self._authorize(account, active_token)
                removed = self.devices.remove_by_token(account, active_token)
                if removed is None:
                    raise NotFound("Device does not exist.")

                self.tokens.revoke(account, active_token)
                return {
                    "devices": [d.model_dump() for d in account.devices],
                    "removed": removed.model_dump(),
                }, True

            data = await self._transact(username, deadline, mutate)
            logger.info(f"Deleted user device from storage! Username: {username}")
            await self.audit.record("device_removed", username, device=data["removed"]["name"])
            return data

        return await self._execute("remove_device", username, op, timeout)

    async def update_profile(
        self,
        username: Optional[str],
        active_token: Optional[str],
        patch: Any,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        Shallow-merge patch into the profile (last write wins per key).

        Returns:
            Success data: {profileData}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)
            self._require(active_token, patch)

            async def mutate(account: Account) -> Tuple[Dict[str, Any], bool]:
                self._authorize(account, active_token)
                changed = self.profiles.merge(account, patch)
                return {"profileData": dict(account.profile)}, changed

            data = await self._transact(username, deadline, mutate)
            logger.info(f"Updated user profile! Username: {username}, Entries: {len(patch)} added")
            await self.audit.record("profile_updated", username, merged=len(patch))
            return data

        return await self._execute("update_profile", username, op, timeout)

    async def prune_profile(
        self,
        username: Optional[str],
        active_token: Optional[str],
        keys: Any,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        Delete the listed keys from the profile; unknown keys are ignored.

        Returns:
            Success data: {profileData}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)
            self._require(active_token, keys)

            async def mutate(account: Account) -> Tuple[Dict[str, Any], bool]:
                self._authorize(account, active_token)
                changed = self.profiles.prune(account, keys)
                return {"profileData": dict(account.profile)}, changed

            data = await self._transact(username, deadline, mutate)
            logger.info(f"Updated user profile! Username: {username}, Removed: {len(keys)} entries")
            await self.audit.record("profile_updated", username, removed=len(keys))
            return data

        return await self._execute("prune_profile", username, op, timeout)

    async def get_own_profile(
        self,
        username: Optional[str],
        active_token: Optional[str],
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        Return the caller's profile.

        Returns:
            Success data: {profileData}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)
            self._require(active_token)

            account = await self._read(username, active_token, deadline)
            return {"profileData": dict(account.profile)}

        return await self._execute("get_own_profile", username, op, timeout)

    async def get_public_profile(
        self,
        username: Optional[str],
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """
        Return the public view of an account; never credentials or tokens.

        Returns:
            Success data: {accountId, profileData}
        """

        async def op(deadline: Deadline) -> Dict[str, Any]:
            self._check_username(username)

            try:
                account = await deadline.run(self.store.load(username))
            except NotFound:
                raise NotFound("User does not exist!")
            return account.public_view()

        return await self._execute("get_public_profile", username, op, timeout)

    async def health(self) -> bool:
        """Check the account store."""
        try:
            return await self.store.ping()
        except GlobalAuthError:
            return False
