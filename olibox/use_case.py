"""
Use case registration.

A device participates in at most one external use case at a time. The box
enforces this with a conflict token (a DID service endpoint): a regular
registration replaces the token before notifying the new use case, which
amounts to leaving the previous one. Registering without the token update
only demonstrates the conflict check and is expected to be rejected by the
use case.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from olibox.api.client import BoxApiClient
from olibox.api.models import UseCaseConfig
from olibox.core.config import DEREGISTRATION_DID_URL
from olibox.core.exceptions import UseCaseError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class UseCase:
    name: str
    did: str
    url: str


KNOWN_USE_CASES: List[UseCase] = [
    UseCase("Energy Web Green Proofs", "did:web:dive-greenproofs.energywebx.com", "http://localhost:8000"),
    UseCase("Track & Trace (via Energy Web)", "did:web:dive-ett-proxy.energywebx.com", "http://localhost:8000"),
    UseCase("Energy Web Flex", "did:web:dive-flex.energywebx.com", "http://localhost:8000"),
    UseCase(
        "ReBeam: Lieferantenwechsel für BEV",
        "did:web:dive-ev-supplier-switch.energywebx.com",
        "http://localhost:8000",
    ),
    UseCase("Example", "did:web:example.com", "http://localhost:8000"),
]


class UseCaseService:
    """Registers the device with known use cases."""

    def __init__(self, api: BoxApiClient, known: Optional[Iterable[UseCase]] = None):
        self.api = api
        self._known = {u.did: u for u in (KNOWN_USE_CASES if known is None else known)}

    def known(self) -> List[UseCase]:
        return list(self._known.values())

    def lookup(self, did: str) -> UseCase:
        use_case = self._known.get(did)
        if use_case is None:
            raise UseCaseError.unknown_use_case(did)
        return use_case

    def add_known(self, did: str, name: Optional[str] = None, url: str = "") -> UseCase:
        """Add a use case to the catalogue; an existing entry is replaced."""
        use_case = UseCase(name=name or did, did=did, url=url)
        self._known[did] = use_case
        log.info(f"Use case added: {use_case.name}", extra={"did": did})
        return use_case

    async def active(self) -> Optional[str]:
        """DID URL of the active use case, None when none is active."""
        return await self.api.get_use_case()

    async def register(self, did: str, update_conflict_token: bool = True) -> Any:
        """Register the device with a known use case.

        Args:
            did: DID of a known use case.
            update_conflict_token: False registers without leaving the
                previous use case (demonstration only).

        Raises:
            UseCaseError: ``did`` is not a known use case.
            BoxApiError: The box rejected the registration.
        """
        use_case = self.lookup(did)
        config = UseCaseConfig(
            use_case_did_url=use_case.did,
            use_case_url=use_case.url,
            update_service_endpoint=update_conflict_token,
            notify_use_case=True,
        )
        result = await self.api.post_use_case(config)
        log.info(
            f"Registered for use case {use_case.name} (conflict token updated: {update_conflict_token})",
            extra={"did": use_case.did},
        )
        return result

    async def deregister(self) -> Any:
        """Clear the active use case without notifying anyone."""
        config = UseCaseConfig(
            use_case_did_url=DEREGISTRATION_DID_URL,
            use_case_url="",
            update_service_endpoint=True,
            notify_use_case=False,
        )
        result = await self.api.post_use_case(config)
        log.info("Deregistered from use case")
        return result
