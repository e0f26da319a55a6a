"""KILT claim, credential and CType handling.

Components:
- hashing: Blake2b statement hashing and root hash
- ctype: CType model and registry
- claim: Claim/Credential models, builder and integrity checks
"""

from .ctype import (
    CType,
    CTypeProperty,
    CTypeRegistry,
    INSTALLATION_CERTIFICATE_CTYPE,
    SELF_ISSUED_CTYPE,
    compute_ctype_hash,
    ctype_hash_of,
    ctype_id_of,
    get_ctype_registry,
    reset_ctype_registry,
)
from .claim import (
    Claim,
    Credential,
    build,
    build_claim,
    credential_from_claim,
    normalize_contents,
    verify_credential,
)

__all__ = [
    "CType",
    "CTypeProperty",
    "CTypeRegistry",
    "INSTALLATION_CERTIFICATE_CTYPE",
    "SELF_ISSUED_CTYPE",
    "compute_ctype_hash",
    "ctype_hash_of",
    "ctype_id_of",
    "get_ctype_registry",
    "reset_ctype_registry",
    "Claim",
    "Credential",
    "build",
    "build_claim",
    "credential_from_claim",
    "normalize_contents",
    "verify_credential",
]
