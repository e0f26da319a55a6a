"""Box API client and wire models."""

from .client import BoxApiClient, get_api_client, reset_api_client
from .models import (
    AttestationRecord,
    ChallengeData,
    ClaimMode,
    OwnerDid,
    SignedExtrinsic,
    UseCaseConfig,
)

__all__ = [
    "BoxApiClient",
    "get_api_client",
    "reset_api_client",
    "AttestationRecord",
    "ChallengeData",
    "ClaimMode",
    "OwnerDid",
    "SignedExtrinsic",
    "UseCaseConfig",
]
