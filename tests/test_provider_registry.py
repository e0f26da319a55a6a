"""Tests for wallet provider discovery."""

from unittest.mock import MagicMock

from olibox.wallet.provider import (
    CAP_DID_LIST,
    CAP_SIGN_DID_CREATION,
    CAP_START_SESSION,
    ProviderRegistry,
    WalletProvider,
    WalletSession,
    has_capability,
    session_payload,
)

from .helpers import BareSession, FakeProvider, FakeSession, SessionOnlyProvider


class TestCapabilities:
    """Tests for capability detection."""

    def test_full_provider(self):
        provider = FakeProvider()
        assert isinstance(provider, WalletProvider)
        for cap in (CAP_START_SESSION, CAP_SIGN_DID_CREATION, CAP_DID_LIST):
            assert has_capability(provider, cap)

    def test_session_only_provider(self):
        provider = SessionOnlyProvider()
        assert has_capability(provider, CAP_START_SESSION)
        assert not has_capability(provider, CAP_SIGN_DID_CREATION)

    def test_session_protocol(self):
        assert isinstance(FakeSession(), WalletSession)
        assert isinstance(BareSession(), WalletSession)
        assert not isinstance(object(), WalletSession)

    def test_payload_prefers_to_json(self):
        session = FakeSession(payload_version=1)
        assert session_payload(session) == session.to_json()

    def test_payload_from_model_dump(self):
        session = MagicMock(spec=["send", "listen", "model_dump"])
        session.model_dump.return_value = {"encryptionKeyUri": "did:kilt:4x#enc"}
        assert session_payload(session) == {"encryptionKeyUri": "did:kilt:4x#enc"}

    def test_payload_from_attributes(self):
        assert session_payload(BareSession()) == {
            "encryptionKeyUri": "did:kilt:4operator#encryption",
            "encryptedChallenge": "0xencrypted",
            "nonce": "0xnonce",
        }


class TestProviderRegistry:
    """Tests for ProviderRegistry."""

    def test_announce_notifies_new_only(self):
        registry = ProviderRegistry()
        listener = MagicMock()
        registry.subscribe(listener)
        sporran = FakeProvider()

        assert registry.announce("sporran", sporran) is True
        assert registry.announce("sporran", sporran) is False
        listener.assert_called_once_with("sporran", sporran)
        assert "sporran" in registry
        assert len(registry) == 1

    def test_refresh_picks_up_late_injection(self):
        injected = {}
        registry = ProviderRegistry(source=lambda: injected)
        assert registry.refresh() == []

        injected["sporran"] = FakeProvider()
        assert registry.refresh() == ["sporran"]
        assert registry.refresh() == []

    def test_refresh_without_source(self):
        assert ProviderRegistry().refresh() == []

    def test_unsubscribe(self):
        registry = ProviderRegistry()
        listener = MagicMock()
        unsubscribe = registry.subscribe(listener)
        unsubscribe()
        unsubscribe()
        registry.announce("sporran", FakeProvider())
        listener.assert_not_called()

    def test_find_by_name_or_key(self):
        registry = ProviderRegistry()
        sporran = FakeProvider(name="Sporran")
        legacy = SessionOnlyProvider()
        registry.announce("sporran", sporran)
        registry.announce("legacy", legacy)

        assert registry.find() is sporran
        assert registry.find("Legacy") is legacy
        assert registry.find("legacy") is legacy
        assert registry.find("Other") is None

    def test_with_capability(self):
        registry = ProviderRegistry()
        registry.announce("sporran", FakeProvider())
        registry.announce("legacy", SessionOnlyProvider())
        assert list(registry.with_capability(CAP_SIGN_DID_CREATION)) == ["sporran"]
        assert set(registry.with_capability(CAP_START_SESSION)) == {"sporran", "legacy"}

    def test_providers_is_a_copy(self):
        registry = ProviderRegistry()
        registry.announce("sporran", FakeProvider())
        registry.providers().clear()
        assert registry.get("sporran") is not None
