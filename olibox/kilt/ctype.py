"""CType (claim schema) registry.

A CType is a JSON schema published on the KILT chain and identified by the
hash of its own content: ``kilt:ctype:<0x blake2b-256>``. The box only ever
works with a small, static set of CTypes; they are registered once at
start-up and looked up by id when claims are built.

Built-in CTypes:
- DIVE Anlagezertifikat: installation certificate, attested for the device
- Selbstauskunfts Zertifikat: operator self-declaration, issued via the wallet
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from olibox.core.config import CTYPE_PREFIX
from olibox.core.exceptions import UnknownCTypeError
from olibox.kilt.hashing import hash_str, to_sorted_json

log = logging.getLogger(__name__)

KILT_SCHEMA_URI = "ipfs://bafybeiah66wbkhqbqn7idkostj2iqyan2tstc4tpqt65udlhimd7hcxjyq/"


class CTypeProperty(BaseModel):
    """A single schema property."""
    model_config = ConfigDict(frozen=True, extra="allow")

    type: str
    format: Optional[str] = None


class CType(BaseModel):
    """Claim schema ("SchemaDescriptor").

    Serialized with its JSON-schema keys ($id, $schema, additionalProperties).
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., alias="$id")
    schema_uri: str = Field(KILT_SCHEMA_URI, alias="$schema")
    title: str
    properties: Dict[str, CTypeProperty]
    additional_properties: bool = Field(False, alias="additionalProperties")
    type: str = "object"

    @property
    def hash(self) -> str:
        """0x-prefixed schema hash, the claim's cTypeHash."""
        return ctype_hash_of(self.id)

    def number_fields(self) -> List[str]:
        return [name for name, prop in self.properties.items() if prop.type == "number"]

    def to_schema(self) -> Dict[str, Any]:
        """JSON schema document as published (with $id)."""
        return self.model_dump(by_alias=True, exclude_none=True)


def ctype_hash_of(ctype_id: str) -> str:
    """Strip the kilt:ctype: prefix from an id."""
    if ctype_id.startswith(CTYPE_PREFIX):
        return ctype_id[len(CTYPE_PREFIX):]
    return ctype_id


def ctype_id_of(ctype_hash: str) -> str:
    """Full CType id for a 0x schema hash."""
    if ctype_hash.startswith(CTYPE_PREFIX):
        return ctype_hash
    return f"{CTYPE_PREFIX}{ctype_hash}"


def compute_ctype_hash(schema: Union[CType, Dict[str, Any]]) -> str:
    """Content hash of a CType: sorted compact JSON of the schema without $id."""
    if isinstance(schema, CType):
        schema = schema.to_schema()
    without_id = {k: v for k, v in schema.items() if k != "$id"}
    return hash_str(to_sorted_json(without_id))


def verify_ctype_id(ctype: CType) -> bool:
    """Check that the declared $id matches the schema content."""
    return ctype_id_of(compute_ctype_hash(ctype)) == ctype.id


# =============================================================================
# Built-in CTypes
# =============================================================================

INSTALLATION_CERTIFICATE_CTYPE = CType.model_validate({
    "$id": "kilt:ctype:0x2a63756ff4934eb51d5c405476ea92dfa9413388a8a33c37755442e2111304b5",
    "$schema": KILT_SCHEMA_URI,
    "additionalProperties": False,
    "properties": {
        "Anschlussnetzbetreiber": {"type": "string"},
        "Art der Anlage": {"type": "string"},
        "Betreiber": {"type": "string"},
        "Betreiberstatus": {"type": "string"},
        "Bruttoleistung": {"type": "number"},
        "EEG Inbetriebnahmedatum": {"format": "date", "type": "string"},
        "EEG Registrierungsdatum": {"format": "date", "type": "string"},
        "Errichtungsort (Lage)": {"type": "string"},
        "Inbetriebnahmedatum": {"format": "date", "type": "string"},
        "Installierte Leistung": {"type": "number"},
        "Marktlokations-ID": {"type": "string"},
        "Messlokations-ID": {"type": "string"},
        "Meter ID": {"type": "string"},
        "Name der Einheit": {"type": "string"},
        "Registrierungsdatum im aktuellen Betriebsstatus": {"format": "date", "type": "string"},
        "SMGW ID": {"type": "string"},
        "Standort": {"type": "string"},
        "Wechselrichterleistung": {"type": "number"},
    },
    "title": "DIVE Anlagezertifikat",
    "type": "object",
})

SELF_ISSUED_CTYPE = CType.model_validate({
    "$id": "kilt:ctype:0x707806fa456431dc285a57dbb06258709ee9dad517cbd98a856bb83a57f19a28",
    "$schema": KILT_SCHEMA_URI,
    "additionalProperties": False,
    "properties": {
        "address": {"type": "string"},
        "name": {"type": "string"},
    },
    "title": "Selbstauskunfts Zertifikat",
    "type": "object",
})

BUILTIN_CTYPES = (INSTALLATION_CERTIFICATE_CTYPE, SELF_ISSUED_CTYPE)


# =============================================================================
# Registry
# =============================================================================

class CTypeRegistry:
    """Read-mostly registry of CTypes keyed by id.

    Lookups accept either the full ``kilt:ctype:0x..`` id or the bare hash.
    """

    def __init__(self, ctypes=BUILTIN_CTYPES):
        self._ctypes: Dict[str, CType] = {}
        for ctype in ctypes:
            self.register(ctype)

    def register(self, ctype: Union[CType, Dict[str, Any]]) -> CType:
        """Add a CType; a dict is parsed as a JSON schema document."""
        if not isinstance(ctype, CType):
            ctype = CType.model_validate(ctype)
        if ctype.id in self._ctypes:
            log.debug(f"Replacing registered CType {ctype.id}")
        self._ctypes[ctype.id] = ctype
        return ctype

    def load_file(self, path: Union[str, Path]) -> List[CType]:
        """Register CTypes from a JSON file holding one schema or a list."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = [data]
        loaded = [self.register(item) for item in data]
        log.info(f"Loaded {len(loaded)} CType(s) from {path}")
        return loaded

    def lookup(self, ctype_id: str) -> CType:
        """Get a CType by id or hash.

        Raises:
            UnknownCTypeError: The id is not registered.
        """
        ctype = self._ctypes.get(ctype_id_of(ctype_id))
        if ctype is None:
            raise UnknownCTypeError(ctype_id)
        return ctype

    def get(self, ctype_id: str) -> Optional[CType]:
        return self._ctypes.get(ctype_id_of(ctype_id))

    def __contains__(self, ctype_id: str) -> bool:
        return ctype_id_of(ctype_id) in self._ctypes

    def __iter__(self):
        return iter(self._ctypes.values())

    def __len__(self) -> int:
        return len(self._ctypes)

    @property
    def ids(self) -> List[str]:
        return list(self._ctypes)


# Singleton instance
_registry: Optional[CTypeRegistry] = None


def get_ctype_registry() -> CTypeRegistry:
    """Get or create the CType registry singleton."""
    global _registry
    if _registry is None:
        _registry = CTypeRegistry()
    return _registry


def reset_ctype_registry() -> None:
    """Reset the singleton (for testing)."""
    global _registry
    _registry = None
