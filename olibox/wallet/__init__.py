"""Wallet extension integration.

Components:
- provider: capability protocols and the provider registry
- session: challenge/response handshake and single-reply channel
"""

from .provider import (
    CAP_DID_LIST,
    CAP_SIGN_DID_CREATION,
    CAP_START_SESSION,
    ProviderRegistry,
    WalletProvider,
    WalletSession,
    has_capability,
    session_payload,
)
from .session import SessionNegotiator, SessionState, WalletChannel, get_session

__all__ = [
    "CAP_DID_LIST",
    "CAP_SIGN_DID_CREATION",
    "CAP_START_SESSION",
    "ProviderRegistry",
    "WalletProvider",
    "WalletSession",
    "has_capability",
    "session_payload",
    "SessionNegotiator",
    "SessionState",
    "WalletChannel",
    "get_session",
]
