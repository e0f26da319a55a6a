"""API models for the box API.

Pydantic models for request and response bodies. Field names follow the
wire format: camelCase for the box's own payloads, snake_case for
attestation records relayed from the attester.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from olibox.kilt.claim import Claim, Credential


class ClaimMode(str, Enum):
    """Which stored device claim to address."""
    production = "production"
    presentation = "presentation"


# =============================================================================
# Identity / payment
# =============================================================================


class DidResponse(BaseModel):
    """Response of GET/POST /did."""

    did: str = Field(..., description="Device DID")


class PaymentAddressResponse(BaseModel):
    """Response of GET /payment."""

    address: str = Field(..., description="Ledger address funding transactions")


class OwnerDid(BaseModel):
    """DID entry from the wallet's DID list."""

    did: str
    name: Optional[str] = None


class SignedExtrinsic(BaseModel):
    """Wallet-signed DID creation transaction."""
    model_config = ConfigDict(populate_by_name=True)

    signed_extrinsic: str = Field(..., alias="signedExtrinsic")


# =============================================================================
# Session handshake
# =============================================================================


class ChallengeData(BaseModel):
    """Response of GET /challenge, handed verbatim to the wallet."""
    model_config = ConfigDict(populate_by_name=True)

    dapp_name: str = Field(..., alias="dAppName")
    dapp_encryption_key_uri: str = Field(..., alias="dAppEncryptionKeyUri")
    challenge: Any = Field(..., description="Opaque challenge (string or byte list)")


# =============================================================================
# Claims and attestations
# =============================================================================


class StoredClaimResponse(BaseModel):
    """Response of GET/POST /claim: the stored credential or claim wrapper."""
    model_config = ConfigDict(extra="allow")

    claim: Claim


class AttestationRecord(BaseModel):
    """Attestation request as tracked by the attester.

    Owned and mutated by the attester only; read here.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    approved: bool = False
    revoked: bool = False
    marked_approve: bool = False
    created_at: Optional[str] = None
    deleted_at: Optional[str] = None
    approved_at: Optional[str] = None
    revoked_at: Optional[str] = None
    ctype_hash: Optional[str] = None
    credential: Credential
    claimer: Optional[str] = None
    tx_state: Optional[int] = None

    @property
    def schema_id(self) -> str:
        """CType id taken from the credential's claim."""
        return f"kilt:ctype:{self.credential.claim.ctype_hash}"


# =============================================================================
# Use case
# =============================================================================


class UseCaseConfig(BaseModel):
    """Body of POST /use-case."""
    model_config = ConfigDict(populate_by_name=True)

    use_case_did_url: str = Field(..., alias="useCaseDidUrl")
    use_case_url: str = Field("", alias="useCaseUrl")
    update_service_endpoint: bool = Field(True, alias="updateServiceEndpoint")
    notify_use_case: bool = Field(True, alias="notifyUseCase")


class UseCaseResponse(BaseModel):
    """Response of GET /use-case."""
    model_config = ConfigDict(populate_by_name=True)

    use_case: str = Field(..., alias="useCase")
