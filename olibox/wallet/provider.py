"""
Wallet extension capabilities and provider discovery.

Wallet extensions (e.g. Sporran) inject themselves into a process-wide
registry some time after start-up. Instead of reading that ambient state,
the console works with an injected ProviderRegistry that can be refreshed
from a source and notifies subscribers when a provider appears.

Two wire versions of the session object exist in the field. Nothing here
depends on either: a session is anything that can send and listen.
session_payload() renders whatever handshake payload the session carries.
"""

import logging
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    runtime_checkable,
)

from olibox.core.config import WALLET_NAME

log = logging.getLogger(__name__)

MessageHandler = Callable[[Any], Awaitable[None]]

# Optional provider capabilities
CAP_START_SESSION = "start_session"
CAP_SIGN_DID_CREATION = "get_signed_did_creation_extrinsic"
CAP_DID_LIST = "get_did_list"


@runtime_checkable
class WalletSession(Protocol):
    """Encrypted channel to one wallet extension instance.

    send() and listen() are the only portable operations. The handshake
    payload posted back to the box comes from session_payload().
    """

    async def send(self, message: Any) -> None:
        ...

    async def listen(self, handler: MessageHandler) -> None:
        ...


@runtime_checkable
class WalletProvider(Protocol):
    """Wallet extension as injected into the page."""

    name: str

    async def start_session(self, dapp_name: str, dapp_encryption_key_uri: str, challenge: Any) -> WalletSession:
        ...

    async def get_signed_did_creation_extrinsic(self, submitter: str) -> Dict[str, Any]:
        ...

    async def get_did_list(self) -> List[Dict[str, Any]]:
        ...


def has_capability(provider: Any, capability: str) -> bool:
    """Whether a provider implements an optional capability."""
    return callable(getattr(provider, capability, None))


def session_payload(session: Any) -> Dict[str, Any]:
    """Handshake payload of a session, as posted to POST /challenge.

    Uses the session's own to_json() or model_dump() when it has one,
    otherwise its public data attributes.
    """
    for renderer in ("to_json", "model_dump"):
        if has_capability(session, renderer):
            return dict(getattr(session, renderer)())
    return {
        key: value
        for key, value in vars(session).items()
        if not key.startswith("_") and not callable(value)
    }


ProviderSource = Callable[[], Mapping[str, Any]]
ProviderListener = Callable[[str, Any], None]


class ProviderRegistry:
    """Queryable set of wallet providers keyed by injection key.

    Usage:
        registry = ProviderRegistry(source=lambda: window_kilt)
        registry.subscribe(on_new_provider)
        registry.refresh()               # pick up late-injected extensions
        sporran = registry.find("Sporran")
    """

    def __init__(self, source: Optional[ProviderSource] = None):
        self._source = source
        self._providers: Dict[str, Any] = {}
        self._listeners: List[ProviderListener] = []

    def announce(self, key: str, provider: Any) -> bool:
        """Register a provider pushed by an extension.

        Returns:
            True if the key was not known before.
        """
        is_new = key not in self._providers
        self._providers[key] = provider
        if is_new:
            log.info(f"Wallet provider appeared: {key} ({getattr(provider, 'name', key)})")
            for listener in list(self._listeners):
                listener(key, provider)
        return is_new

    def refresh(self) -> List[str]:
        """Re-enumerate providers from the source.

        Returns:
            Keys of providers that appeared since the last enumeration.
        """
        if self._source is None:
            return []
        appeared = []
        for key, provider in self._source().items():
            if self.announce(key, provider):
                appeared.append(key)
        return appeared

    def subscribe(self, listener: ProviderListener) -> Callable[[], None]:
        """Call ``listener(key, provider)`` whenever a provider appears.

        Returns:
            Function that removes the subscription.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def providers(self) -> Dict[str, Any]:
        return dict(self._providers)

    def get(self, key: str) -> Optional[Any]:
        return self._providers.get(key)

    def find(self, name: str = WALLET_NAME) -> Optional[Any]:
        """First provider whose display name or key equals ``name``."""
        for key, provider in self._providers.items():
            if getattr(provider, "name", None) == name or key == name:
                return provider
        return None

    def with_capability(self, capability: str) -> Dict[str, Any]:
        """Providers implementing ``capability`` (e.g. DID creation signing)."""
        return {k: p for k, p in self._providers.items() if has_capability(p, capability)}

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, key: str) -> bool:
        return key in self._providers
