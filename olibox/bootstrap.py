"""
Identity bootstrap.

Two independent state machines gate claim construction:

Device:
    NO_DID -> CREATING -> READY
    CREATING falls back to NO_DID on failure; there is no automatic retry.

Operator (wallet-controlled DID, funded by the box's payment address):
    NO_ADDRESS -> ADDRESS_KNOWN -> SIGNING -> AWAITING_LEDGER -> READY
                                   any step                    -> FAILED
                                   cancelled                   -> ADDRESS_KNOWN
    A FAILED or cancelled operator flow can be started again by the user.

Neither machine waits for the other. Both expose a pending flag and a
progress counter so a caller can disable conflicting actions while a
ledger-bound call is outstanding.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from olibox.api.client import BoxApiClient
from olibox.api.models import OwnerDid, SignedExtrinsic
from olibox.core.config import (
    DEVICE_PROGRESS_MAX,
    OPERATOR_PROGRESS_MAX,
    PROGRESS_INTERVAL_SECONDS,
)
from olibox.core.exceptions import BootstrapError, BoxApiError

log = logging.getLogger(__name__)


class DeviceDidState(str, Enum):
    NO_DID = "no_did"
    CREATING = "creating"
    READY = "ready"


class OperatorDidState(str, Enum):
    NO_ADDRESS = "no_address"
    ADDRESS_KNOWN = "address_known"
    SIGNING = "signing"
    AWAITING_LEDGER = "awaiting_ledger"
    READY = "ready"
    FAILED = "failed"


class ProgressCounter:
    """Counter that increments on a fixed interval while a call is pending.

    It reflects elapsed time only, never actual ledger progress.

    Usage:
        async with coordinator.device_progress:
            await api.create_did()
    """

    def __init__(self, maximum: int, interval: float = PROGRESS_INTERVAL_SECONDS):
        self.maximum = maximum
        self.interval = interval
        self.value = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.value += 1

    def start(self) -> None:
        self.stop()
        self.value = 0
        self._task = asyncio.create_task(self._tick())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def __aenter__(self) -> "ProgressCounter":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()


class IdentityBootstrapCoordinator:
    """Sequences device and operator DID creation."""

    def __init__(self, api: BoxApiClient, progress_interval: float = PROGRESS_INTERVAL_SECONDS):
        self.api = api
        self.device_state = DeviceDidState.NO_DID
        self.operator_state = OperatorDidState.NO_ADDRESS
        self.device_did: Optional[str] = None
        self.payment_address: Optional[str] = None
        self.operator_error: Optional[BootstrapError] = None
        self.device_progress = ProgressCounter(DEVICE_PROGRESS_MAX, progress_interval)
        self.operator_progress = ProgressCounter(OPERATOR_PROGRESS_MAX, progress_interval)

    @property
    def device_pending(self) -> bool:
        return self.device_state == DeviceDidState.CREATING

    @property
    def operator_pending(self) -> bool:
        return self.operator_state in (OperatorDidState.SIGNING, OperatorDidState.AWAITING_LEDGER)

    def _device_transition(self, state: DeviceDidState) -> None:
        log.info(
            f"Device DID: {self.device_state.value} -> {state.value}",
            extra={"state": state.value, "did": self.device_did},
        )
        self.device_state = state

    def _operator_transition(self, state: OperatorDidState) -> None:
        log.info(
            f"Operator DID: {self.operator_state.value} -> {state.value}",
            extra={"state": state.value},
        )
        self.operator_state = state

    async def initialize(self) -> None:
        """Fetch device DID and payment address concurrently."""
        did, address = await asyncio.gather(
            self.api.get_did(),
            self.api.get_payment_address(),
        )
        self.device_did = did
        if did is not None:
            self._device_transition(DeviceDidState.READY)
        self.payment_address = address
        if address is not None and self.operator_state == OperatorDidState.NO_ADDRESS:
            self._operator_transition(OperatorDidState.ADDRESS_KNOWN)

    # -------------------------------------------------------------------------
    # Device
    # -------------------------------------------------------------------------

    async def create_device_did(self) -> str:
        """Create the device DID with a single POST /did.

        Raises:
            BootstrapError: DID already exists, creation already running, or
                the box failed to create it (state is back to NO_DID).
        """
        if self.device_state == DeviceDidState.READY:
            raise BootstrapError.already_created(self.device_did)
        if self.device_state == DeviceDidState.CREATING:
            raise BootstrapError.in_progress("device DID creation")

        self._device_transition(DeviceDidState.CREATING)
        try:
            async with self.device_progress:
                did = await self.api.create_did()
        except BoxApiError as e:
            log.error(f"Device DID creation failed: {e.message}")
            self._device_transition(DeviceDidState.NO_DID)
            raise BootstrapError.did_creation_failed(e.message) from e
        except BaseException:
            # Cancelled by the caller
            self._device_transition(DeviceDidState.NO_DID)
            raise

        self.device_did = did
        self._device_transition(DeviceDidState.READY)
        return did

    def require_device_did(self) -> str:
        """Device DID for claim construction; raises if there is none yet."""
        if self.device_state != DeviceDidState.READY or not self.device_did:
            raise BootstrapError.device_did_missing()
        return self.device_did

    async def reset(self) -> bool:
        """Administrative reset of the device identity (DELETE /did).

        Claims and credentials bound to the DID are removed by the box.

        Returns:
            False when there was no identity to reset.
        """
        if self.device_pending:
            raise BootstrapError.in_progress("device DID creation")
        removed = await self.api.reset_did()
        log.warning("Device identity reset", extra={"did": self.device_did})
        self.device_did = None
        self._device_transition(DeviceDidState.NO_DID)
        return removed

    # -------------------------------------------------------------------------
    # Operator
    # -------------------------------------------------------------------------

    async def create_operator_did(self, provider: Any) -> None:
        """Create the operator DID through the wallet, funded by the box.

        Steps run strictly in order: the wallet signs a DID creation
        transaction with the payment address as submitter, then the box
        submits it and blocks until the ledger confirms.

        Raises:
            BootstrapError: No payment address, flow already running, the
                wallet refused to sign, or the ledger rejected the
                transaction (state is FAILED).

        Cancelling the awaiting task returns the flow to ADDRESS_KNOWN.
        """
        if self.operator_pending:
            raise BootstrapError.in_progress("operator DID creation")
        if not self.payment_address:
            raise BootstrapError.no_payment_address()

        self.operator_error = None
        self._operator_transition(OperatorDidState.SIGNING)
        try:
            try:
                signed = await provider.get_signed_did_creation_extrinsic(self.payment_address)
                extrinsic = SignedExtrinsic.model_validate(signed).signed_extrinsic
            except Exception as e:
                raise BootstrapError.signing_failed(f"{type(e).__name__}: {e}") from e

            self._operator_transition(OperatorDidState.AWAITING_LEDGER)
            try:
                async with self.operator_progress:
                    await self.api.submit_payment(extrinsic)
            except BoxApiError as e:
                raise BootstrapError.ledger_submission_failed(e.message) from e

        except BootstrapError as e:
            log.error(f"Operator DID creation failed: {e.message}")
            self.operator_error = e
            self._operator_transition(OperatorDidState.FAILED)
            raise
        except BaseException:
            # Cancelled by the caller; the flow can be started again
            log.warning("Operator DID creation cancelled", extra={"state": self.operator_state.value})
            self._operator_transition(OperatorDidState.ADDRESS_KNOWN)
            raise

        self._operator_transition(OperatorDidState.READY)

    async def fetch_owner_dids(self, provider: Any) -> List[OwnerDid]:
        """DIDs the wallet controls, in the wallet's order."""
        return [OwnerDid.model_validate(d) for d in await provider.get_did_list()]

    def snapshot(self) -> Dict[str, Any]:
        return {
            "device": {
                "state": self.device_state.value,
                "did": self.device_did,
                "pending": self.device_pending,
                "progress": self.device_progress.value,
                "progress_max": self.device_progress.maximum,
            },
            "operator": {
                "state": self.operator_state.value,
                "payment_address": self.payment_address,
                "pending": self.operator_pending,
                "progress": self.operator_progress.value,
                "progress_max": self.operator_progress.maximum,
                "error": self.operator_error.message if self.operator_error else None,
            },
        }
