"""
Async HTTP client for the box API.

Wraps every endpoint the console consumes. Status handling follows one rule
set for the whole API:
- 404 on did/claim/credential/use-case means "nothing there yet" and
  resolves to None or [] instead of raising
- any other unexpected status raises BoxApiError.protocol with the body
- network failures and configured timeouts raise BoxApiError.transport

Ledger-bound calls (POST /did, POST /payment, POST /credential and the
attester relay GET /credential) are issued without a timeout since ledger
confirmation can legitimately take minutes.
"""

import logging
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError

from olibox.api.models import (
    AttestationRecord,
    ChallengeData,
    ClaimMode,
    DidResponse,
    PaymentAddressResponse,
    StoredClaimResponse,
    UseCaseConfig,
    UseCaseResponse,
)
from olibox.core.config import API_BASE_URL, HTTP_TIMEOUT_SECONDS, PAYMENT_BODY_FORMAT
from olibox.core.exceptions import BoxApiError
from olibox.kilt.claim import Claim, Credential

log = logging.getLogger(__name__)


class BoxApiClient:
    """
    Client for the box API.

    Endpoints (relative to the base URL):
    - /payment      payment address, DID creation funding
    - /did          device DID lookup, creation and reset
    - /claim        device claim registration
    - /credential   attestation records and self-issued credential flow
    - /challenge    wallet session handshake
    - /use-case     use case registration
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        payment_body_format: str = PAYMENT_BODY_FORMAT,
    ):
        """Initialize the client.

        Args:
            base_url: API base, e.g. http://localhost:3333/api/v1
            timeout: Timeout for ordinary calls.
            transport: Optional transport override (tests use ASGITransport).
            payment_body_format: "raw", "json" or "object" for POST /payment.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.payment_body_format = payment_body_format

    def _get_client(self, timeout: Optional[float]) -> httpx.AsyncClient:
        """Create a new HTTP client for each request.

        This avoids event loop binding issues when used across different
        async contexts.
        """
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        no_timeout: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        timeout = None if no_timeout else self.timeout
        try:
            async with self._get_client(timeout) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log.error(f"{method} {path} transport error: {type(e).__name__}: {e}", extra={"path": path})
            raise BoxApiError.transport(method, path, f"{type(e).__name__}: {e}") from e
        log.info(
            f"{method} {path} -> {response.status_code}",
            extra={"path": path, "status_code": response.status_code},
        )
        return response

    @staticmethod
    def _body(response: httpx.Response) -> Any:
        """Decoded JSON body, raw text if not JSON, None if empty."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _ensure_success(self, method: str, path: str, response: httpx.Response) -> None:
        if not response.is_success:
            body = self._body(response)
            log.warning(
                f"{method} {path} rejected: {response.status_code} {body}",
                extra={"path": path, "status_code": response.status_code},
            )
            raise BoxApiError.protocol(method, path, response.status_code, body)

    def _parse(self, model, method: str, path: str, response: httpx.Response):
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise BoxApiError.protocol(
                method, path, response.status_code, f"unexpected body: {e}"
            ) from e

    # -------------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------------

    async def get_payment_address(self) -> Optional[str]:
        """Payment address of the box, None when none is available."""
        response = await self._request("GET", "/payment")
        if response.status_code != 200:
            return None
        return self._parse(PaymentAddressResponse, "GET", "/payment", response).address

    async def submit_payment(self, signed_extrinsic: str) -> None:
        """Submit the wallet-signed DID creation transaction.

        Blocks until the ledger confirms or rejects it.
        """
        if self.payment_body_format == "object":
            kwargs: Dict[str, Any] = {"json": {"signedExtrinsic": signed_extrinsic}}
        elif self.payment_body_format == "json":
            kwargs = {"json": signed_extrinsic}
        else:
            kwargs = {"content": signed_extrinsic, "headers": {"Content-Type": "text/plain"}}
        response = await self._request("POST", "/payment", no_timeout=True, **kwargs)
        self._ensure_success("POST", "/payment", response)

    # -------------------------------------------------------------------------
    # Device DID
    # -------------------------------------------------------------------------

    async def get_did(self) -> Optional[str]:
        """Device DID, None when the device has none yet."""
        response = await self._request("GET", "/did")
        if response.status_code == 404:
            return None
        self._ensure_success("GET", "/did", response)
        return self._parse(DidResponse, "GET", "/did", response).did

    async def create_did(self) -> str:
        """Create the device DID; blocks until the ledger confirms it."""
        response = await self._request("POST", "/did", no_timeout=True)
        self._ensure_success("POST", "/did", response)
        return self._parse(DidResponse, "POST", "/did", response).did

    async def reset_did(self) -> bool:
        """Administrative reset of the device identity.

        Returns:
            False when there was nothing to reset (404).
        """
        response = await self._request("DELETE", "/did")
        if response.status_code == 404:
            return False
        self._ensure_success("DELETE", "/did", response)
        return True

    # -------------------------------------------------------------------------
    # Device claim
    # -------------------------------------------------------------------------

    @staticmethod
    def _claim_path(mode: Optional[ClaimMode]) -> str:
        if mode is None:
            return "/claim"
        return f"/claim/{ClaimMode(mode).value}"

    async def get_claim(self, mode: Optional[ClaimMode] = None) -> Optional[Dict[str, Any]]:
        """Contents of the stored device claim, None when none is stored."""
        path = self._claim_path(mode)
        response = await self._request("GET", path)
        if response.status_code == 404:
            return None
        self._ensure_success("GET", path, response)
        body = self._body(response)
        if body is None:
            return None
        try:
            return dict(body["claim"]["contents"])
        except (KeyError, TypeError) as e:
            raise BoxApiError.protocol("GET", path, response.status_code, f"unexpected body: {body}") from e

    async def post_claim(self, credential: Credential, mode: Optional[ClaimMode] = None) -> Claim:
        """Register a device credential with the attester.

        Returns:
            The stored, still unapproved claim.
        """
        path = self._claim_path(mode)
        response = await self._request("POST", path, json=credential.to_json())
        self._ensure_success("POST", path, response)
        return self._parse(StoredClaimResponse, "POST", path, response).claim

    # -------------------------------------------------------------------------
    # Credentials / attestations
    # -------------------------------------------------------------------------

    async def get_attestations(self) -> List[AttestationRecord]:
        """All attestation records of the box, in attester order.

        404 and an empty body both mean no attestations yet.
        """
        response = await self._request("GET", "/credential", no_timeout=True)
        if response.status_code == 404:
            return []
        self._ensure_success("GET", "/credential", response)
        body = self._body(response)
        if not body:
            return []
        if not isinstance(body, list):
            raise BoxApiError.protocol("GET", "/credential", response.status_code, f"expected a list: {body}")
        try:
            return [AttestationRecord.model_validate(item) for item in body]
        except ValidationError as e:
            raise BoxApiError.protocol("GET", "/credential", response.status_code, f"unexpected record: {e}") from e

    async def request_terms(self, claim: Claim) -> Any:
        """Get issuance terms for a self-issued claim (encrypted for the wallet)."""
        response = await self._request("POST", "/credential/terms", json=claim.to_json())
        self._ensure_success("POST", "/credential/terms", response)
        return self._body(response)

    async def submit_credential_request(self, reply: Any) -> Any:
        """Forward the wallet's credential request to finalize issuance."""
        response = await self._request("POST", "/credential", json=reply, no_timeout=True)
        self._ensure_success("POST", "/credential", response)
        return self._body(response)

    # -------------------------------------------------------------------------
    # Session handshake
    # -------------------------------------------------------------------------

    async def get_challenge(self) -> ChallengeData:
        response = await self._request("GET", "/challenge")
        self._ensure_success("GET", "/challenge", response)
        return self._parse(ChallengeData, "GET", "/challenge", response)

    async def verify_session(self, session_payload: Any) -> None:
        """Post the wallet's challenge response for server-side verification."""
        response = await self._request("POST", "/challenge", json=session_payload)
        self._ensure_success("POST", "/challenge", response)

    # -------------------------------------------------------------------------
    # Use case
    # -------------------------------------------------------------------------

    async def get_use_case(self) -> Optional[str]:
        """DID URL of the active use case, None when none is active."""
        response = await self._request("GET", "/use-case")
        if response.status_code == 404:
            return None
        self._ensure_success("GET", "/use-case", response)
        return self._parse(UseCaseResponse, "GET", "/use-case", response).use_case

    async def post_use_case(self, config: UseCaseConfig) -> Union[str, Any]:
        """Register (or deregister) the device for a use case.

        Returns:
            Identifier of the now-active use case as reported by the box.
        """
        response = await self._request(
            "POST", "/use-case", json=config.model_dump(by_alias=True)
        )
        self._ensure_success("POST", "/use-case", response)
        return self._body(response)


# Singleton instance
_api_client: Optional[BoxApiClient] = None


def get_api_client() -> BoxApiClient:
    """Get or create the API client singleton."""
    global _api_client
    if _api_client is None:
        _api_client = BoxApiClient()
    return _api_client


def reset_api_client() -> None:
    """Reset the singleton (for testing)."""
    global _api_client
    _api_client = None
