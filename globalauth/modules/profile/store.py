import json
from collections.abc import Mapping
from typing import Any

from globalauth.errors import InvalidInput
from globalauth.modules.api.models import Account


def _encode(value: Any) -> str:
    # Type-exact: 1, 1.0 and true encode differently although they compare equal
    return json.dumps(value, sort_keys=True)


class ProfileStore:
    """Per-account open document, changed only by shallow merge or key deletion."""

    def merge(self, account: Account, patch: Any) -> bool:
        """
        Overwrite or insert every key of patch; values replace wholesale.

        Returns:
            True if the profile changed

        Raises:
            InvalidInput: patch is not a JSON object
        """
        if not isinstance(patch, Mapping):
            raise InvalidInput("Profile update expects an object for data")

        try:
            encoded = {key: _encode(value) for key, value in patch.items()}
        except (TypeError, ValueError) as e:
            raise InvalidInput("Profile update data must be JSON") from e

        changed = False
        for key, value in patch.items():
            if key not in account.profile or _encode(account.profile[key]) != encoded[key]:
                account.profile[key] = value
                changed = True
        return changed

    def prune(self, account: Account, keys: Any) -> bool:
        """
        Delete every listed key present in the profile; absent keys are ignored.

        Returns:
            True if the profile changed

        Raises:
            InvalidInput: keys is not a list of strings
        """
        if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
            raise InvalidInput("Profile removal expects an array of keys for data")

        changed = False
        for key in keys:
            if key in account.profile:
                del account.profile[key]
                changed = True
        return changed
