"""
OLI Box console configuration constants.

Constants are organized into:
- PROTOCOL: Fixed by the box API / KILT wire formats, do not change
- CONFIGURABLE: Defaults that may be overridden per deployment
- OPERATIONAL: Deployment-specific settings (env vars)
"""

import os

# =============================================================================
# PROTOCOL CONSTANTS
# =============================================================================

# Prefix of a CType identifier; the remainder is the 0x-prefixed schema hash
CTYPE_PREFIX: str = "kilt:ctype:"

# useCaseDidUrl value that clears the active use case registration
DEREGISTRATION_DID_URL: str = "deregistration"

# Supported shapes of the POST /payment body
PAYMENT_BODY_FORMATS: frozenset[str] = frozenset({"raw", "json", "object"})

# Supported tie-break rules when several approved attestations match a CType
ATTESTATION_TIE_BREAKS: frozenset[str] = frozenset({"first", "last", "latest_approved"})


# =============================================================================
# CONFIGURABLE DEFAULTS
# =============================================================================

# Timeout for ordinary request/response calls.
# Calls that wait for ledger confirmation (POST /did, POST /payment,
# POST /credential, GET /credential) never use a timeout.
HTTP_TIMEOUT_SECONDS: float = float(os.getenv("OLI_HTTP_TIMEOUT", "10.0"))

# Interval between attestation polls
POLL_INTERVAL_SECONDS: float = float(os.getenv("OLI_POLL_INTERVAL", "5.0"))

# Progress counter tick while a ledger-bound call is pending
PROGRESS_INTERVAL_SECONDS: float = float(os.getenv("OLI_PROGRESS_INTERVAL", "1.0"))

# Display scale of the progress counters (the counter itself is unbounded)
DEVICE_PROGRESS_MAX: int = 60
OPERATOR_PROGRESS_MAX: int = 40


def _parse_tie_break() -> str:
    """Read the attestation tie-break rule from the environment.

    Unknown values fall back to "first", the attester's historical behaviour.
    """
    value = os.getenv("OLI_ATTESTATION_TIE_BREAK", "first").strip().lower()
    if value not in ATTESTATION_TIE_BREAKS:
        return "first"
    return value


# Which approved record wins when several match the same CType
ATTESTATION_TIE_BREAK: str = _parse_tie_break()


def _parse_payment_body_format() -> str:
    value = os.getenv("OLI_PAYMENT_BODY_FORMAT", "raw").strip().lower()
    if value not in PAYMENT_BODY_FORMATS:
        return "raw"
    return value


# raw: extrinsic hex as text body; json: JSON string; object: {"signedExtrinsic": ...}
PAYMENT_BODY_FORMAT: str = _parse_payment_body_format()


# =============================================================================
# OPERATIONAL SETTINGS (deployment-specific, via environment variables)
# =============================================================================

# Base URL of the box API, all API paths are relative to it
API_BASE_URL: str = os.getenv("OLI_API_URL", "http://localhost:3333/api/v1").rstrip("/")

# Display name of the preferred wallet extension
WALLET_NAME: str = os.getenv("OLI_WALLET_NAME", "Sporran")
