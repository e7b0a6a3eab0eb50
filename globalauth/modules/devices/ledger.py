from typing import List, Optional

from globalauth.modules.api.models import Account, Device

UNKNOWN_DEVICE = "unknown"


class DeviceLedger:
    """
    Per-account list of devices tied to token issuance events.

    Entries are kept independently of the token set: revoking a token
    leaves its device row in place, and tokens issued outside a login
    have no device row at all.
    """

    def register(self, account: Account, name: Optional[str], token: str) -> Device:
        """Append a device entry for a freshly issued token."""
        device = Device(name=name or UNKNOWN_DEVICE, token=token)
        account.devices.append(device)
        return device

    def list(self, account: Account) -> List[Device]:
        """Snapshot of the device entries."""
        return [device.model_copy() for device in account.devices]

    def remove_by_token(self, account: Account, token: str) -> Optional[Device]:
        """
        Remove the first device entry issued with token.

        Returns:
            The removed entry, or None if no entry carries that token
        """
        for index, device in enumerate(account.devices):
            if device.token == token:
                return account.devices.pop(index)
        return None
