"""Tests for the issuance client."""

from unittest.mock import AsyncMock

import pytest

from olibox.api.models import ClaimMode
from olibox.core.exceptions import (
    ClaimValidationError,
    ErrorCode,
    IssuanceError,
    SessionError,
    UnknownCTypeError,
)
from olibox.issuance import IssuanceClient
from olibox.kilt.claim import build, build_claim
from olibox.wallet.session import get_session

from .helpers import BrokenSession, FakeProvider, FakeSession

DEVICE_DID = "did:kilt:4device"


@pytest.fixture
def issuance(api):
    return IssuanceClient(api)


class TestDeviceClaim:
    """Tests for the device-attested path."""

    @pytest.mark.asyncio
    async def test_submit_device_claim(self, issuance, box, installation_ctype, installation_fields):
        credential = build(installation_ctype, installation_fields, DEVICE_DID)
        stored = await issuance.submit_device_claim(credential)
        assert stored == credential.claim
        assert box.claims[""]["owner"] == DEVICE_DID

    @pytest.mark.asyncio
    async def test_request_device_attestation(self, issuance, box, installation_ctype, installation_fields):
        claim = await issuance.request_device_attestation(
            installation_ctype.id, installation_fields, DEVICE_DID, ClaimMode.production
        )
        assert claim.contents["Bruttoleistung"] == 9.8
        assert "production" in box.claims

    @pytest.mark.asyncio
    async def test_invalid_fields_not_sent(self, issuance, box, self_issued_ctype):
        with pytest.raises(ClaimValidationError):
            await issuance.request_device_attestation(
                self_issued_ctype.id, {"phone": "123"}, DEVICE_DID
            )
        assert box.called("POST", "/claim") == 0

    @pytest.mark.asyncio
    async def test_unknown_ctype(self, issuance, box):
        with pytest.raises(UnknownCTypeError):
            await issuance.request_device_attestation("kilt:ctype:0xnope", {}, DEVICE_DID)
        assert box.requests == []


class TestRequestCredential:
    """Tests for terms -> wallet -> submission."""

    @pytest.mark.asyncio
    async def test_full_exchange(self, api, box, issuance, self_issued_ctype):
        session = FakeSession(reply={"credentialRequest": "req"})
        channel = await get_session(api, FakeProvider(session=session))
        claim = build_claim(self_issued_ctype, {"name": "Erika"}, "did:kilt:4operator")

        result = await issuance.request_credential(channel, claim)

        assert session.sent == [box.terms]
        assert box.credential_requests == [{"credentialRequest": "req", "seq": 0}]
        assert result == {"status": "submitted"}
        assert channel.closed

    @pytest.mark.asyncio
    async def test_terms_failure_stops_before_delivery(self, api, box, issuance, self_issued_ctype):
        session = FakeSession()
        channel = await get_session(api, FakeProvider(session=session))
        box.fail("POST", "/credential/terms", 400)
        claim = build_claim(self_issued_ctype, {"name": "Erika"}, "did:kilt:4operator")

        with pytest.raises(IssuanceError) as exc_info:
            await issuance.request_credential(channel, claim)

        assert exc_info.value.code == ErrorCode.ISSUANCE_TERMS_FAILED
        assert session.sent == []
        assert box.called("POST", "/credential") == 0

    @pytest.mark.asyncio
    async def test_delivery_failure(self, issuance, box, self_issued_ctype):
        channel = AsyncMock()
        channel.request.side_effect = SessionError.closed()
        claim = build_claim(self_issued_ctype, {"name": "Erika"}, "did:kilt:4operator")

        with pytest.raises(IssuanceError) as exc_info:
            await issuance.request_credential(channel, claim)

        assert exc_info.value.code == ErrorCode.ISSUANCE_DELIVERY_FAILED
        assert box.called("POST", "/credential") == 0

    @pytest.mark.asyncio
    async def test_wallet_send_failure_is_delivery_failure(self, api, box, issuance, self_issued_ctype):
        channel = await get_session(api, FakeProvider(session=BrokenSession()))
        claim = build_claim(self_issued_ctype, {"name": "Erika"}, "did:kilt:4operator")

        with pytest.raises(IssuanceError) as exc_info:
            await issuance.request_credential(channel, claim)

        assert exc_info.value.code == ErrorCode.ISSUANCE_DELIVERY_FAILED
        assert "extension port closed" in exc_info.value.message
        assert box.called("POST", "/credential") == 0

    @pytest.mark.asyncio
    async def test_submission_failure_surfaced(self, api, box, issuance, self_issued_ctype):
        channel = await get_session(api, FakeProvider())
        box.fail("POST", "/credential", 500, {"error": "attester down"})
        claim = build_claim(self_issued_ctype, {"name": "Erika"}, "did:kilt:4operator")

        with pytest.raises(IssuanceError) as exc_info:
            await issuance.request_credential(channel, claim)

        assert exc_info.value.code == ErrorCode.ISSUANCE_SUBMISSION_FAILED
        assert "attester down" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, Exception)


class TestSelfDeclaration:
    """Tests for the wallet-mediated self-declaration."""

    @pytest.mark.asyncio
    async def test_owner_is_first_wallet_did(self, issuance, box):
        provider = FakeProvider(dids=[{"did": "did:kilt:4first"}, {"did": "did:kilt:4second", "name": "B"}])
        claim = await issuance.issue_self_declaration(provider, {"name": "Erika", "address": ""})

        assert claim.owner == "did:kilt:4first"
        assert claim.contents == {"name": "Erika"}
        assert box.called("GET", "/challenge") == 1
        assert box.called("POST", "/credential/terms") == 1
        assert len(box.credential_requests) == 1

    @pytest.mark.asyncio
    async def test_no_owner_did(self, issuance, box):
        provider = FakeProvider(dids=[])
        with pytest.raises(IssuanceError) as exc_info:
            await issuance.issue_self_declaration(provider, {"name": "Erika"})
        assert exc_info.value.code == ErrorCode.ISSUANCE_NO_OWNER_DID
        assert box.requests == []

    @pytest.mark.asyncio
    async def test_session_failure_propagates(self, issuance, box):
        box.fail("POST", "/challenge", 403)
        with pytest.raises(SessionError):
            await issuance.issue_self_declaration(FakeProvider(), {"name": "Erika"})
        assert box.called("POST", "/credential/terms") == 0
