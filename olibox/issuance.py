"""
Credential issuance.

Two submission paths:

Device-attested (installation certificate):
    build credential owned by the device DID -> POST /claim
    The box returns the stored, still unapproved claim. Approval happens
    out-of-band and is only observed through the attestation tracker.

Self-issued via the wallet (self-declaration):
    POST /credential/terms {claim}           -> terms (encrypted for the wallet)
    channel.request(terms)                   -> wallet's credential request
    POST /credential {wallet reply}          -> attester takes over
    Each step only starts once the previous one succeeded.
"""

import logging
from typing import Any, Mapping, Optional

from olibox.api.client import BoxApiClient
from olibox.api.models import ClaimMode, OwnerDid
from olibox.core.exceptions import BoxApiError, IssuanceError, SessionError
from olibox.kilt.claim import Claim, Credential, build, build_claim
from olibox.kilt.ctype import SELF_ISSUED_CTYPE, CTypeRegistry, get_ctype_registry
from olibox.wallet.session import WalletChannel, get_session

log = logging.getLogger(__name__)


class IssuanceClient:
    """Drives both claim submission paths against the box API."""

    def __init__(self, api: BoxApiClient, registry: Optional[CTypeRegistry] = None):
        self.api = api
        self.registry = registry or get_ctype_registry()

    # -------------------------------------------------------------------------
    # Device-attested path
    # -------------------------------------------------------------------------

    async def submit_device_claim(
        self,
        credential: Credential,
        mode: Optional[ClaimMode] = None,
    ) -> Claim:
        """Register a device credential; returns the stored unapproved claim."""
        stored = await self.api.post_claim(credential, mode)
        log.info(
            f"Device claim registered, awaiting attestation ({credential.root_hash[:18]}...)",
            extra={"schema_id": credential.claim.schema_id},
        )
        return stored

    async def request_device_attestation(
        self,
        ctype_id: str,
        raw_fields: Mapping[str, Any],
        device_did: str,
        mode: Optional[ClaimMode] = None,
    ) -> Claim:
        """Build a device credential from raw fields and submit it.

        Raises:
            UnknownCTypeError: ctype_id is not registered.
            ClaimValidationError: Fields violate the CType; nothing is sent.
            BoxApiError: The box rejected the claim.
        """
        ctype = self.registry.lookup(ctype_id)
        credential = build(ctype, raw_fields, device_did)
        return await self.submit_device_claim(credential, mode)

    # -------------------------------------------------------------------------
    # Wallet-mediated path
    # -------------------------------------------------------------------------

    async def request_credential(self, channel: WalletChannel, claim: Claim) -> Any:
        """Run terms -> wallet round-trip -> submission for ``claim``.

        Returns:
            Body of the final submission response.

        Raises:
            IssuanceError: A step failed; later steps were not started.
        """
        try:
            terms = await self.api.request_terms(claim)
        except BoxApiError as e:
            log.error(f"Terms request failed: {e.message}", extra={"schema_id": claim.schema_id})
            raise IssuanceError.terms_failed(e.message) from e

        try:
            reply = await channel.request(terms)
        except SessionError as e:
            raise IssuanceError.delivery_failed(e.message) from e
        log.info("Wallet answered with a credential request", extra={"schema_id": claim.schema_id})

        try:
            result = await self.api.submit_credential_request(reply)
        except BoxApiError as e:
            log.error(f"Credential request submission failed: {e.message}", extra={"schema_id": claim.schema_id})
            raise IssuanceError.submission_failed(e.message) from e
        log.info("Credential request submitted to attester", extra={"schema_id": claim.schema_id})
        return result

    async def issue_self_declaration(
        self,
        provider: Any,
        raw_fields: Mapping[str, Any],
        ctype_id: str = SELF_ISSUED_CTYPE.id,
    ) -> Claim:
        """Self-declaration owned by the operator's first wallet DID.

        Negotiates a fresh session for the exchange.

        Returns:
            The claim that was submitted.
        """
        ctype = self.registry.lookup(ctype_id)
        dids = [OwnerDid.model_validate(d) for d in await provider.get_did_list()]
        if not dids:
            raise IssuanceError.no_owner_did()
        claim = build_claim(ctype, raw_fields, dids[0].did)

        channel = await get_session(self.api, provider)
        await self.request_credential(channel, claim)
        return claim
