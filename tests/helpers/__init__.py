# Test helpers
from .fake_box import BASE_URL, CHALLENGE, FakeBox, attestation_record
from .wallet import (
    BareSession,
    BrokenSession,
    FakeProvider,
    FakeSession,
    SessionOnlyProvider,
    SilentSession,
)

__all__ = [
    "BASE_URL",
    "CHALLENGE",
    "FakeBox",
    "attestation_record",
    "BareSession",
    "BrokenSession",
    "FakeProvider",
    "FakeSession",
    "SessionOnlyProvider",
    "SilentSession",
]
