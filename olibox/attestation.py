"""
Attestation tracking.

The attester owns attestation records; the console only polls them and
classifies the state of one CType at a time:

    no approved record for the CType          -> PENDING  ("in Bearbeitung")
    selected approved record, not revoked     -> ATTESTED ("Beglaubigt")
    selected approved record, revoked         -> REVOKED  ("Widerrufen")

A record matches when ``kilt:ctype:<credential.claim.cTypeHash>`` equals the
target id. When several approved records match, the configured tie-break
picks one (default: first in response order) and the duplicate count is
reported. Classification is recomputed from scratch on every poll.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, Iterable, List, Optional, Sequence

from olibox.api.client import BoxApiClient
from olibox.api.models import AttestationRecord
from olibox.core.config import ATTESTATION_TIE_BREAK, POLL_INTERVAL_SECONDS
from olibox.kilt.ctype import ctype_id_of

log = logging.getLogger(__name__)


class AttestationStatus(str, Enum):
    """Three-valued attestation status."""
    PENDING = "pending"
    ATTESTED = "attested"
    REVOKED = "revoked"


STATUS_LABELS: Dict[AttestationStatus, str] = {
    AttestationStatus.PENDING: "in Bearbeitung",
    AttestationStatus.ATTESTED: "Beglaubigt",
    AttestationStatus.REVOKED: "Widerrufen",
}


class TieBreak(str, Enum):
    """Which approved record wins when several match."""
    FIRST = "first"
    LAST = "last"
    LATEST_APPROVED = "latest_approved"


@dataclass(frozen=True)
class AttestationResult:
    """Classification of one CType for one poll."""
    schema_id: str
    status: AttestationStatus
    record: Optional[AttestationRecord] = None
    duplicates: int = 0  # number of approved records matching the CType

    @property
    def label(self) -> str:
        return STATUS_LABELS[self.status]

    @property
    def root_hash(self) -> Optional[str]:
        return self.record.credential.root_hash if self.record else None

    @property
    def ctype_hash(self) -> Optional[str]:
        return self.record.credential.claim.ctype_hash if self.record else None

    def to_dict(self) -> dict:
        return {
            "schema_id": self.schema_id,
            "status": self.status.value,
            "label": self.label,
            "record_id": self.record.id if self.record else None,
            "root_hash": self.root_hash,
            "ctype_hash": self.ctype_hash,
            "duplicates": self.duplicates,
        }


def _select(matches: List[AttestationRecord], tie_break: TieBreak) -> AttestationRecord:
    if tie_break == TieBreak.LAST:
        return matches[-1]
    if tie_break == TieBreak.LATEST_APPROVED:
        # Stable: records without approved_at keep response order behind dated ones
        dated = [m for m in matches if m.approved_at]
        if dated:
            return max(dated, key=lambda m: m.approved_at)
        return matches[0]
    return matches[0]


def classify(
    records: Sequence[AttestationRecord],
    schema_id: str,
    tie_break: TieBreak = TieBreak.FIRST,
) -> AttestationResult:
    """Classify the attestation state of ``schema_id``. Pure; never raises."""
    schema_id = ctype_id_of(schema_id)
    matches = [r for r in records if r.schema_id == schema_id and r.approved]
    if not matches:
        return AttestationResult(schema_id=schema_id, status=AttestationStatus.PENDING)

    if len(matches) > 1:
        log.warning(
            f"{len(matches)} approved attestations for one CType, using tie-break '{tie_break.value}'",
            extra={"schema_id": schema_id},
        )
    record = _select(matches, tie_break)
    status = AttestationStatus.REVOKED if record.revoked else AttestationStatus.ATTESTED
    return AttestationResult(
        schema_id=schema_id,
        status=status,
        record=record,
        duplicates=len(matches),
    )


class AttestationTracker:
    """Polls the box for attestation records.

    Holds nothing but the last poll's classification.
    """

    def __init__(
        self,
        api: BoxApiClient,
        tie_break: TieBreak = TieBreak(ATTESTATION_TIE_BREAK),
        interval: float = POLL_INTERVAL_SECONDS,
    ):
        self.api = api
        self.tie_break = tie_break
        self.interval = interval
        self.last_results: Dict[str, AttestationResult] = {}

    async def poll(self, schema_ids: Iterable[str]) -> Dict[str, AttestationResult]:
        """One poll, classifying every requested CType."""
        records = await self.api.get_attestations()
        results = {}
        for schema_id in schema_ids:
            result = classify(records, schema_id, self.tie_break)
            results[result.schema_id] = result
        self.last_results = results
        return results

    async def status(self, schema_id: str) -> AttestationResult:
        results = await self.poll([schema_id])
        return results[ctype_id_of(schema_id)]

    async def watch(
        self,
        schema_id: str,
        interval: Optional[float] = None,
    ) -> AsyncIterator[AttestationResult]:
        """Yield the status of ``schema_id`` after every poll, forever.

        There is no bound on the number of polls; the caller stops iterating
        (or cancels) when done. A revoked state can follow an attested one,
        so no status ends the iteration.
        """
        interval = self.interval if interval is None else interval
        while True:
            yield await self.status(schema_id)
            await asyncio.sleep(interval)

    async def wait_until_decided(
        self,
        schema_id: str,
        interval: Optional[float] = None,
    ) -> AttestationResult:
        """Poll until the CType is no longer pending."""
        async for result in self.watch(schema_id, interval):
            if result.status != AttestationStatus.PENDING:
                log.info(
                    f"Attestation decided: {result.status.value}",
                    extra={"schema_id": result.schema_id},
                )
                return result
            log.debug("Attestation still pending", extra={"schema_id": result.schema_id})
