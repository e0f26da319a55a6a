"""
KILT claim hashing primitives.

Credentials are commitments to a claim that allow selective disclosure:
every claim statement is hashed, salted with a random nonce, and the salted
hashes are folded into a single root hash. The attester recomputes all of
this, so the encoding here must match KILT's byte for byte:

- hash:       0x-prefixed hex of Blake2b-256 over the UTF-8 input
- statement:  compact JSON object with exactly one key
- digest:     hash(statement)
- saltedHash: hash(nonce + digest)   (string concatenation)
- rootHash:   hash(concat(bytes(claimHashes), bytes(legitimation roots), bytes(delegationId)))
"""

import hashlib
import json
import math
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

HASH_DIGEST_SIZE = 32


@dataclass(frozen=True)
class HashedStatement:
    """One hashed claim statement."""
    statement: str
    digest: str        # unsalted hash, key of the nonce map
    nonce: str
    salted_hash: str   # entry of claimHashes


def hash_bytes(data: bytes) -> bytes:
    """Blake2b-256 digest."""
    return hashlib.blake2b(data, digest_size=HASH_DIGEST_SIZE).digest()


def hash_str(value: Union[str, bytes]) -> str:
    """Blake2b-256 of a string (UTF-8) or bytes, as 0x-prefixed hex."""
    if isinstance(value, str):
        value = value.encode("utf-8")
    return "0x" + hash_bytes(value).hex()


def hex_to_bytes(value: str) -> bytes:
    """Decode a 0x-prefixed (or bare) hex string."""
    if value.startswith("0x") or value.startswith("0X"):
        value = value[2:]
    return bytes.fromhex(value)


def js_number(value: Union[int, float]) -> str:
    """Render a number exactly as JavaScript's Number#toString (and JSON.stringify) would.

    Digits are the shortest round-trip form, as Python's repr; the decimal
    point placement and exponent style follow ECMAScript: plain notation for
    1e-6 <= |x| < 1e21, otherwise ``1.5e-7`` / ``1e+21``.
    """
    if isinstance(value, int) and abs(value) < 2 ** 53:
        return str(value)
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return "null"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    mantissa, _, exponent = repr(abs(value)).partition("e")
    int_part, _, frac_part = mantissa.partition(".")
    raw = int_part + frac_part
    digits = raw.lstrip("0")
    # n: position of the decimal point relative to the first significant digit
    n = len(int_part) + int(exponent or 0) - (len(raw) - len(digits))
    digits = digits.rstrip("0")
    k = len(digits)

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        e = n - 1
        text = digits[0] + ("." + digits[1:] if k > 1 else "") + "e" + ("+" if e >= 0 else "-") + str(abs(e))
    return sign + text


def _statement(key: str, value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return "{" + to_json(key) + ":" + js_number(value) + "}"
    return to_json({key: value})


def to_json(value: Any) -> str:
    """Compact JSON matching JSON.stringify for plain objects."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def to_sorted_json(value: Any) -> str:
    """Compact JSON with recursively sorted object keys."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, sort_keys=True)


def make_statements(ctype_hash: str, contents: Mapping[str, Any], owner: Optional[str]) -> List[str]:
    """Build the JSON-LD style statements of a claim.

    The owner statement comes first, followed by one statement per content
    field in insertion order; field names are expanded with the CType vocabulary.
    """
    vocabulary = f"kilt:ctype:{ctype_hash}#"
    statements = []
    if owner:
        statements.append(to_json({"@id": owner}))
    for key, value in contents.items():
        statements.append(_statement(vocabulary + key, value))
    return statements


def new_nonce() -> str:
    """Fresh random nonce (UUIDv4 text)."""
    return str(uuid.uuid4())


def hash_statements(
    statements: Iterable[str],
    nonces: Optional[Mapping[str, str]] = None,
    nonce_generator: Callable[[], str] = new_nonce,
) -> List[HashedStatement]:
    """Digest and salt each statement.

    Args:
        statements: Statement strings from make_statements().
        nonces: Existing nonce map (digest -> nonce) to recompute a credential.
            When omitted a fresh nonce is generated per statement.
        nonce_generator: Source of fresh nonces.

    Returns:
        One HashedStatement per input, in input order. When a nonce map is
        given but lacks a digest, the nonce is empty and the caller decides.
    """
    result = []
    for statement in statements:
        digest = hash_str(statement)
        if nonces is not None:
            nonce = nonces.get(digest, "")
        else:
            nonce = nonce_generator()
        result.append(HashedStatement(
            statement=statement,
            digest=digest,
            nonce=nonce,
            salted_hash=hash_str(nonce + digest),
        ))
    return result


def calculate_root_hash(
    claim_hashes: Iterable[str],
    legitimation_root_hashes: Iterable[str] = (),
    delegation_id: Optional[str] = None,
) -> str:
    """Root hash over the claim hashes, legitimations and delegation."""
    leaves = [hex_to_bytes(h) for h in claim_hashes]
    leaves.extend(hex_to_bytes(h) for h in legitimation_root_hashes)
    if delegation_id:
        leaves.append(hex_to_bytes(delegation_id))
    return hash_str(b"".join(leaves))


def nonce_map_of(hashed: Iterable[HashedStatement]) -> Dict[str, str]:
    """Nonce map keyed by unsalted digest."""
    return {h.digest: h.nonce for h in hashed}
