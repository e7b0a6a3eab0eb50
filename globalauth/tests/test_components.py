"""
Unit tests for the account components: credential verifier, token
registry, device ledger and profile store.
"""

import pytest

from globalauth.errors import InvalidInput
from globalauth.modules.api.models import Account
from globalauth.modules.credentials import CredentialVerifier
from globalauth.modules.devices import UNKNOWN_DEVICE, DeviceLedger
from globalauth.modules.profile import ProfileStore
from globalauth.modules.tokens import TokenRegistry, token_hint


@pytest.fixture
def account():
    return Account(username="alice", password_hash="h", account_id="id-1")


class TestCredentialVerifier:
    """Test password hashing."""

    @pytest.fixture
    def verifier(self):
        return CredentialVerifier(rounds=4)

    def test_hash_and_verify(self, verifier):
        digest = verifier.hash("correct horse")

        assert digest.startswith("$2")
        assert "correct horse" not in digest
        assert verifier.verify("correct horse", digest)
        assert not verifier.verify("wrong horse", digest)

    def test_salted(self, verifier):
        """Test the same password hashes differently each time."""
        assert verifier.hash("pw") != verifier.hash("pw")

    def test_long_passwords_stay_significant(self, verifier):
        """Test bytes past 72 still matter."""
        base = "x" * 100
        digest = verifier.hash(base + "a")
        assert not verifier.verify(base + "b", digest)

    def test_unicode_password(self, verifier):
        digest = verifier.hash("pässwörd")
        assert verifier.verify("pässwörd", digest)

    def test_empty_password_rejected(self, verifier):
        with pytest.raises(InvalidInput):
            verifier.hash("")

    @pytest.mark.parametrize("plaintext,digest", [("", "$2b$04$abc"), ("pw", ""), ("pw", "not-a-bcrypt-digest")])
    def test_verify_never_matches_malformed_input(self, verifier, plaintext, digest):
        assert verifier.verify(plaintext, digest) is False

    @pytest.mark.parametrize("rounds", [3, 32])
    def test_rounds_bounds(self, rounds):
        with pytest.raises(ValueError):
            CredentialVerifier(rounds=rounds)


class TestTokenRegistry:
    """Test the per-account token set."""

    def test_issue_appends_unique_tokens(self, account):
        registry = TokenRegistry(token_bytes=16)

        tokens = [registry.issue(account) for _ in range(50)]

        assert account.tokens == tokens
        assert len(set(tokens)) == 50
        assert all(len(t) == 32 for t in tokens)
        int(tokens[0], 16)

    def test_validate(self, account):
        registry = TokenRegistry()
        token = registry.issue(account)

        assert registry.validate(account, token)
        assert not registry.validate(account, token.upper() + "0")
        assert not registry.validate(account, "")
        assert not registry.validate(account, None)

    def test_revoke(self, account):
        registry = TokenRegistry()
        keep = registry.issue(account)
        drop = registry.issue(account)

        assert registry.revoke(account, drop) is True
        assert registry.revoke(account, drop) is False
        assert account.tokens == [keep]

    def test_minimum_entropy(self):
        with pytest.raises(ValueError):
            TokenRegistry(token_bytes=8)

    def test_token_hint(self):
        assert token_hint("0123456789abcdef") == "01234567..."
        assert token_hint("") == "<none>"


class TestDeviceLedger:
    """Test the per-account device list."""

    def test_register_and_list(self, account):
        ledger = DeviceLedger()
        ledger.register(account, "Mozilla/5.0", "t1")
        ledger.register(account, None, "t2")

        devices = ledger.list(account)

        assert [(d.name, d.token) for d in devices] == [("Mozilla/5.0", "t1"), (UNKNOWN_DEVICE, "t2")]

    def test_list_returns_copies(self, account):
        ledger = DeviceLedger()
        ledger.register(account, "phone", "t1")

        ledger.list(account)[0].name = "changed"

        assert account.devices[0].name == "phone"

    def test_remove_by_token_takes_first_match(self, account):
        ledger = DeviceLedger()
        ledger.register(account, "first", "t1")
        ledger.register(account, "second", "t1")

        removed = ledger.remove_by_token(account, "t1")

        assert removed.name == "first"
        assert [d.name for d in account.devices] == ["second"]

    def test_remove_missing(self, account):
        assert DeviceLedger().remove_by_token(account, "nope") is None


class TestProfileStore:
    """Test shallow merge and key deletion."""

    def test_merge_replaces_values_wholesale(self, account):
        profiles = ProfileStore()
        account.profile = {"a": 1, "nested": {"x": 1, "y": 2}}

        changed = profiles.merge(account, {"nested": {"z": 3}, "b": None})

        assert changed
        assert account.profile == {"a": 1, "nested": {"z": 3}, "b": None}

    def test_merge_unchanged(self, account):
        profiles = ProfileStore()
        account.profile = {"a": 1}

        assert profiles.merge(account, {"a": 1}) is False
        assert profiles.merge(account, {}) is False

    @pytest.mark.parametrize(
        "old,new",
        [(1, True), (0, False), (1, 1.0), ({"x": 1}, {"x": True}), ([1], [1.0])],
    )
    def test_merge_replaces_equal_values_of_another_type(self, account, old, new):
        """Test values that compare equal but differ in JSON type still replace."""
        profiles = ProfileStore()
        account.profile = {"a": old}

        assert profiles.merge(account, {"a": new}) is True
        assert account.profile["a"] == new
        assert repr(account.profile["a"]) == repr(new)

    def test_merge_rejects_non_json_values(self, account):
        with pytest.raises(InvalidInput):
            ProfileStore().merge(account, {"a": object()})

    def test_merge_rejects_non_mapping(self, account):
        with pytest.raises(InvalidInput):
            ProfileStore().merge(account, [("a", 1)])

    def test_prune(self, account):
        profiles = ProfileStore()
        account.profile = {"a": 1, "b": 0}

        assert profiles.prune(account, ["a", "b", "missing"]) is True
        assert account.profile == {}
        assert profiles.prune(account, ["a"]) is False

    @pytest.mark.parametrize("keys", ["a", {"a": 1}, [1], None])
    def test_prune_rejects_non_key_lists(self, account, keys):
        with pytest.raises(InvalidInput):
            ProfileStore().prune(account, keys)
