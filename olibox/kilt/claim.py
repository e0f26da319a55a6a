"""Claim and credential construction.

A Claim binds field values to a CType and an owner DID. A Credential is the
hashed, selectively-disclosable commitment to a claim that is sent for
attestation. Building a claim is idempotent; building a credential is not,
every construction draws fresh nonces.

Raw field input (form values, CLI arguments) goes through a boundary pass
before it becomes claim contents:
1. empty strings are dropped
2. fields typed "number" are parsed; unparsable or NaN values are dropped
3. the result is validated against the CType's JSON schema
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Union

from jsonschema import Draft7Validator
from pydantic import BaseModel, ConfigDict, Field, field_validator

from olibox.core.exceptions import ClaimValidationError, CredentialIntegrityError
from olibox.kilt.ctype import CType, ctype_id_of
from olibox.kilt.hashing import (
    calculate_root_hash,
    hash_statements,
    make_statements,
    nonce_map_of,
)

log = logging.getLogger(__name__)


class Claim(BaseModel):
    """Schema-bound field values owned by a DID."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ctype_hash: str = Field(..., alias="cTypeHash")
    contents: Dict[str, Any] = Field(default_factory=dict)
    owner: str

    @property
    def schema_id(self) -> str:
        """Full CType id of the claim."""
        return ctype_id_of(self.ctype_hash)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Credential(BaseModel):
    """Hashed commitment to a claim (KILT ICredential)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    claim: Claim
    root_hash: str = Field(..., alias="rootHash")
    claim_hashes: List[str] = Field(..., alias="claimHashes")
    claim_nonce_map: Dict[str, str] = Field(..., alias="claimNonceMap")
    legitimations: List["Credential"] = Field(default_factory=list)
    delegation_id: Optional[str] = Field(None, alias="delegationId")

    @field_validator("legitimations", mode="before")
    @classmethod
    def _null_legitimations(cls, value):
        return [] if value is None else value

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


Credential.model_rebuild()


# =============================================================================
# Boundary pass
# =============================================================================

def _parse_number(value: Any) -> Optional[Union[int, float]]:
    """Parse a numeric field; None when the value is not a finite number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip().replace(",", "."))
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    if number.is_integer():
        return int(number)
    return number


def normalize_contents(ctype: CType, raw_fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop empty values and coerce number fields.

    Never raises; dropping is the outcome for anything unparsable. Key order
    of the input is kept since it determines statement order.
    """
    number_fields = set(ctype.number_fields())
    contents: Dict[str, Any] = {}
    for key, value in raw_fields.items():
        if value is None or value == "":
            continue
        if key in number_fields:
            number = _parse_number(value)
            if number is None:
                log.debug(f"Dropping non-numeric value for number field '{key}'")
                continue
            contents[key] = number
        else:
            contents[key] = value
    return contents


def validate_contents(ctype: CType, contents: Mapping[str, Any], max_errors: int = 10) -> List[str]:
    """Validate contents against the CType's JSON schema.

    Returns:
        List of validation errors (empty if valid)
    """
    schema = {k: v for k, v in ctype.to_schema().items() if k not in ("$id", "$schema")}
    validator = Draft7Validator(schema, format_checker=Draft7Validator.FORMAT_CHECKER)

    errors: List[str] = []
    for error in validator.iter_errors(dict(contents)):
        if len(errors) >= max_errors:
            errors.append(f"... and more errors (stopped at {max_errors})")
            break
        path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "(root)"
        errors.append(f"{path}: {error.message}")
    return errors


# =============================================================================
# Builder
# =============================================================================

def build_claim(ctype: CType, raw_fields: Mapping[str, Any], owner: str) -> Claim:
    """Build a Claim from raw field input.

    Raises:
        ClaimValidationError: Contents violate the CType after coercion.
    """
    contents = normalize_contents(ctype, raw_fields)
    errors = validate_contents(ctype, contents)
    if errors:
        log.warning(f"Claim for {ctype.id} rejected: {errors}", extra={"schema_id": ctype.id})
        raise ClaimValidationError(errors)
    return Claim(cTypeHash=ctype.hash, contents=contents, owner=owner)


def credential_from_claim(
    claim: Claim,
    legitimations: Optional[List[Credential]] = None,
    delegation_id: Optional[str] = None,
) -> Credential:
    """Hash a claim into a new Credential with fresh nonces."""
    legitimations = legitimations or []
    hashed = hash_statements(make_statements(claim.ctype_hash, claim.contents, claim.owner))
    claim_hashes = sorted(h.salted_hash for h in hashed)
    root_hash = calculate_root_hash(
        claim_hashes,
        [leg.root_hash for leg in legitimations],
        delegation_id,
    )
    return Credential(
        claim=claim,
        rootHash=root_hash,
        claimHashes=claim_hashes,
        claimNonceMap=nonce_map_of(hashed),
        legitimations=legitimations,
        delegationId=delegation_id,
    )


def build(ctype: CType, raw_fields: Mapping[str, Any], owner: str) -> Credential:
    """Build a credential for raw field input owned by ``owner``."""
    claim = build_claim(ctype, raw_fields, owner)
    credential = credential_from_claim(claim)
    log.info(
        f"Built credential {credential.root_hash[:18]}... with {len(claim.contents)} field(s)",
        extra={"schema_id": ctype.id},
    )
    return credential


# =============================================================================
# Integrity
# =============================================================================

def verify_claim_hashes(credential: Credential) -> None:
    """Recompute claim hashes from contents and the nonce map.

    Raises:
        CredentialIntegrityError: A nonce is missing or the hashes differ.
    """
    claim = credential.claim
    statements = make_statements(claim.ctype_hash, claim.contents, claim.owner)
    hashed = hash_statements(statements, nonces=credential.claim_nonce_map)
    for h in hashed:
        if not h.nonce:
            raise CredentialIntegrityError(f"no nonce for statement {h.statement}")
    recomputed = sorted(h.salted_hash for h in hashed)
    if recomputed != sorted(credential.claim_hashes):
        raise CredentialIntegrityError("claim hashes do not match claim contents")


def verify_root_hash(credential: Credential) -> None:
    """Recompute the root hash from the claim hashes alone."""
    expected = calculate_root_hash(
        credential.claim_hashes,
        [leg.root_hash for leg in credential.legitimations],
        credential.delegation_id,
    )
    if expected != credential.root_hash:
        raise CredentialIntegrityError(f"root hash {credential.root_hash} != {expected}")


def verify_credential(credential: Credential) -> None:
    """Full data integrity check of a credential."""
    verify_claim_hashes(credential)
    verify_root_hash(credential)
