"""
Wallet session negotiation.

Handshake with a wallet extension, strictly in order:
1. GET /challenge                      -> {dAppName, dAppEncryptionKeyUri, challenge}
2. provider.start_session(...)         -> session bound to the challenge
3. POST /challenge with the session    -> box verifies the challenge response

The wallet proves possession of the operator's decryption key by answering
the challenge; the console only forwards it and checks the box's verdict.
Any failing step aborts the handshake. There is no partial retry; callers
start a new handshake.

States:
    IDLE -> CHALLENGE_REQUESTED -> CHALLENGE_RECEIVED -> SESSION_STARTED -> VERIFIED
    any step                                                             -> FAILED
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from olibox.api.client import BoxApiClient
from olibox.api.models import ChallengeData
from olibox.core.exceptions import BoxApiError, SessionError
from olibox.wallet.provider import MessageHandler, WalletSession, session_payload

log = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Handshake state."""
    IDLE = "idle"
    CHALLENGE_REQUESTED = "challenge_requested"
    CHALLENGE_RECEIVED = "challenge_received"
    SESSION_STARTED = "session_started"
    VERIFIED = "verified"
    FAILED = "failed"


class WalletChannel:
    """Verified wallet session scoped to a single request/reply exchange.

    The channel is closed once the exchange's reply arrived or the exchange
    failed; a new exchange needs a new handshake.
    """

    def __init__(self, session: WalletSession, challenge: ChallengeData):
        self.session = session
        self.challenge = challenge
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def _call(self, operation: str, *args: Any) -> None:
        try:
            await getattr(self.session, operation)(*args)
        except Exception as e:
            log.error(f"Wallet {operation} failed: {type(e).__name__}: {e}")
            raise SessionError.channel_failed(operation, f"{type(e).__name__}: {e}") from e

    async def send(self, message: Any) -> None:
        if self._closed:
            raise SessionError.closed()
        await self._call("send", message)

    async def listen(self, handler: MessageHandler) -> None:
        if self._closed:
            raise SessionError.closed()
        await self._call("listen", handler)

    async def request(self, message: Any, timeout: Optional[float] = None) -> Any:
        """Send ``message`` and wait for the first reply.

        The wait has no timeout unless one is given; cancelling the awaiting
        task abandons it. No cancellation message is sent to the wallet.

        Returns:
            The first message the wallet sends back; later ones are ignored.

        Raises:
            SessionError: Channel already used, or the wallet failed to
                listen or send (SESSION_CHANNEL_FAILED).
            asyncio.TimeoutError: No reply within ``timeout``.
        """
        if self._closed:
            raise SessionError.closed()

        reply: asyncio.Future = asyncio.get_running_loop().create_future()

        async def on_message(msg: Any) -> None:
            if not reply.done():
                reply.set_result(msg)

        try:
            # Listen before sending so an immediate reply is not lost
            await self._call("listen", on_message)
            await self._call("send", message)
            if timeout is None:
                return await reply
            return await asyncio.wait_for(reply, timeout)
        finally:
            self._closed = True
            if not reply.done():
                reply.cancel()


class SessionNegotiator:
    """Runs one challenge/response handshake with a wallet provider."""

    def __init__(self, api: BoxApiClient):
        self.api = api
        self.state = SessionState.IDLE
        self.error: Optional[SessionError] = None

    def _transition(self, state: SessionState) -> None:
        log.info(
            f"Session handshake: {self.state.value} -> {state.value}",
            extra={"state": state.value},
        )
        self.state = state

    async def negotiate(self, provider: Any) -> WalletChannel:
        """Negotiate a verified session.

        Raises:
            SessionError: Any step failed; state is FAILED.
        """
        if self.state != SessionState.IDLE:
            raise SessionError.already_negotiated()

        try:
            if provider is None:
                raise SessionError.no_provider()

            self._transition(SessionState.CHALLENGE_REQUESTED)
            try:
                challenge = await self.api.get_challenge()
            except BoxApiError as e:
                raise SessionError.no_valid_challenge(e.message) from e
            self._transition(SessionState.CHALLENGE_RECEIVED)

            try:
                session = await provider.start_session(
                    challenge.dapp_name,
                    challenge.dapp_encryption_key_uri,
                    challenge.challenge,
                )
            except Exception as e:
                raise SessionError.start_failed(f"{type(e).__name__}: {e}") from e
            self._transition(SessionState.SESSION_STARTED)

            try:
                payload = session_payload(session)
            except Exception as e:
                raise SessionError.no_valid_session(f"unreadable session payload, {type(e).__name__}: {e}") from e
            try:
                await self.api.verify_session(payload)
            except BoxApiError as e:
                raise SessionError.no_valid_session(e.message) from e
            self._transition(SessionState.VERIFIED)

            return WalletChannel(session, challenge)

        except SessionError as e:
            log.error(f"Session handshake failed: {e.message}")
            self.error = e
            self._transition(SessionState.FAILED)
            raise


async def get_session(api: BoxApiClient, provider: Any) -> WalletChannel:
    """Negotiate a fresh verified session with ``provider``."""
    return await SessionNegotiator(api).negotiate(provider)
