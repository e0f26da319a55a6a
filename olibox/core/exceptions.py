"""OLI Box console exceptions.

Every fatal path raises a subclass of OliBoxError carrying an error code,
a human-readable message and whether a user-initiated retry makes sense.
Nothing in this package retries on its own.

Absent state (404 on did/claim/credential/use-case) is never an error and
resolves to None or an empty list at the API client.
"""

from typing import Any, Optional


class ErrorCode:
    """Error code registry."""
    # Transport / protocol layer
    API_PROTOCOL_VIOLATION = "API_PROTOCOL_VIOLATION"
    API_TRANSPORT_FAILED = "API_TRANSPORT_FAILED"

    # Session layer
    SESSION_NO_PROVIDER = "SESSION_NO_PROVIDER"
    SESSION_NO_VALID_CHALLENGE = "SESSION_NO_VALID_CHALLENGE"
    SESSION_START_FAILED = "SESSION_START_FAILED"
    SESSION_NO_VALID_SESSION = "SESSION_NO_VALID_SESSION"
    SESSION_CLOSED = "SESSION_CLOSED"
    SESSION_ALREADY_NEGOTIATED = "SESSION_ALREADY_NEGOTIATED"
    SESSION_CHANNEL_FAILED = "SESSION_CHANNEL_FAILED"

    # Issuance layer
    ISSUANCE_TERMS_FAILED = "ISSUANCE_TERMS_FAILED"
    ISSUANCE_DELIVERY_FAILED = "ISSUANCE_DELIVERY_FAILED"
    ISSUANCE_SUBMISSION_FAILED = "ISSUANCE_SUBMISSION_FAILED"
    ISSUANCE_NO_OWNER_DID = "ISSUANCE_NO_OWNER_DID"

    # Identity bootstrap
    DID_ALREADY_CREATED = "DID_ALREADY_CREATED"
    DID_CREATION_IN_PROGRESS = "DID_CREATION_IN_PROGRESS"
    DID_CREATION_FAILED = "DID_CREATION_FAILED"
    DID_MISSING = "DID_MISSING"
    PAYMENT_ADDRESS_MISSING = "PAYMENT_ADDRESS_MISSING"
    OPERATOR_SIGNING_FAILED = "OPERATOR_SIGNING_FAILED"
    LEDGER_SUBMISSION_FAILED = "LEDGER_SUBMISSION_FAILED"

    # Local validation / configuration
    CLAIM_INVALID = "CLAIM_INVALID"
    CTYPE_UNKNOWN = "CTYPE_UNKNOWN"
    CREDENTIAL_INTEGRITY = "CREDENTIAL_INTEGRITY"
    USE_CASE_UNKNOWN = "USE_CASE_UNKNOWN"


class OliBoxError(Exception):
    """Base exception for all OLI Box console errors."""

    retryable_default = False

    def __init__(self, code: str, message: str, retryable: Optional[bool] = None):
        self.code = code
        self.message = message
        self.retryable = self.retryable_default if retryable is None else retryable
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "retryable": self.retryable}


# =============================================================================
# Transport / protocol
# =============================================================================

class BoxApiError(OliBoxError):
    """Non-success response or transport failure talking to the box API.

    The response body is kept as context for the caller.
    """

    retryable_default = True

    def __init__(
        self,
        code: str,
        message: str,
        method: str,
        path: str,
        status_code: Optional[int] = None,
        body: Any = None,
    ):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body
        super().__init__(code, message)

    @classmethod
    def protocol(cls, method: str, path: str, status_code: int, body: Any) -> "BoxApiError":
        """Factory for an unexpected HTTP status."""
        return cls(
            code=ErrorCode.API_PROTOCOL_VIOLATION,
            message=f"{method} {path} failed with status {status_code}: {body}",
            method=method,
            path=path,
            status_code=status_code,
            body=body,
        )

    @classmethod
    def transport(cls, method: str, path: str, reason: str) -> "BoxApiError":
        """Factory for network errors and configured timeouts."""
        return cls(
            code=ErrorCode.API_TRANSPORT_FAILED,
            message=f"{method} {path} could not be completed: {reason}",
            method=method,
            path=path,
        )


# =============================================================================
# Session
# =============================================================================

class SessionError(OliBoxError):
    """Wallet session handshake or channel failure.

    Any handshake failure aborts the whole handshake; retry by starting a new one.
    """

    retryable_default = True

    @classmethod
    def no_provider(cls) -> "SessionError":
        return cls(ErrorCode.SESSION_NO_PROVIDER, "No wallet provider available", retryable=False)

    @classmethod
    def no_valid_challenge(cls, reason: str) -> "SessionError":
        return cls(ErrorCode.SESSION_NO_VALID_CHALLENGE, f"No valid challenge received: {reason}")

    @classmethod
    def start_failed(cls, reason: str) -> "SessionError":
        return cls(ErrorCode.SESSION_START_FAILED, f"Wallet could not start a session: {reason}")

    @classmethod
    def no_valid_session(cls, reason: str) -> "SessionError":
        return cls(ErrorCode.SESSION_NO_VALID_SESSION, f"Invalid session, verification rejected: {reason}")

    @classmethod
    def closed(cls) -> "SessionError":
        return cls(
            ErrorCode.SESSION_CLOSED,
            "Session already used for an exchange, negotiate a new one",
        )

    @classmethod
    def channel_failed(cls, operation: str, reason: str) -> "SessionError":
        return cls(ErrorCode.SESSION_CHANNEL_FAILED, f"Wallet channel {operation} failed: {reason}")

    @classmethod
    def already_negotiated(cls) -> "SessionError":
        return cls(
            ErrorCode.SESSION_ALREADY_NEGOTIATED,
            "Negotiator already ran a handshake, create a new negotiator",
            retryable=False,
        )


# =============================================================================
# Issuance
# =============================================================================

class IssuanceError(OliBoxError):
    """Credential issuance failure."""

    retryable_default = True

    @classmethod
    def terms_failed(cls, reason: str) -> "IssuanceError":
        return cls(ErrorCode.ISSUANCE_TERMS_FAILED, f"Failed to get terms: {reason}")

    @classmethod
    def delivery_failed(cls, reason: str) -> "IssuanceError":
        return cls(ErrorCode.ISSUANCE_DELIVERY_FAILED, f"Failed to deliver terms to wallet: {reason}")

    @classmethod
    def submission_failed(cls, reason: str) -> "IssuanceError":
        return cls(ErrorCode.ISSUANCE_SUBMISSION_FAILED, f"Failed to submit credential request: {reason}")

    @classmethod
    def no_owner_did(cls) -> "IssuanceError":
        return cls(
            ErrorCode.ISSUANCE_NO_OWNER_DID,
            "Wallet does not hold any DID to own the claim",
            retryable=False,
        )


# =============================================================================
# Identity bootstrap
# =============================================================================

class BootstrapError(OliBoxError):
    """Device or operator DID bootstrap failure."""

    retryable_default = True

    @classmethod
    def already_created(cls, did: str) -> "BootstrapError":
        return cls(ErrorCode.DID_ALREADY_CREATED, f"Device DID already exists: {did}", retryable=False)

    @classmethod
    def in_progress(cls, what: str) -> "BootstrapError":
        return cls(ErrorCode.DID_CREATION_IN_PROGRESS, f"{what} is already in progress", retryable=False)

    @classmethod
    def did_creation_failed(cls, reason: str) -> "BootstrapError":
        return cls(ErrorCode.DID_CREATION_FAILED, f"Device DID creation failed: {reason}")

    @classmethod
    def device_did_missing(cls) -> "BootstrapError":
        return cls(ErrorCode.DID_MISSING, "Device has no DID yet, create one first", retryable=False)

    @classmethod
    def no_payment_address(cls) -> "BootstrapError":
        return cls(ErrorCode.PAYMENT_ADDRESS_MISSING, "No payment address available to fund the DID")

    @classmethod
    def signing_failed(cls, reason: str) -> "BootstrapError":
        return cls(ErrorCode.OPERATOR_SIGNING_FAILED, f"Wallet did not sign the DID creation: {reason}")

    @classmethod
    def ledger_submission_failed(cls, reason: str) -> "BootstrapError":
        return cls(ErrorCode.LEDGER_SUBMISSION_FAILED, f"DID creation transaction failed: {reason}")


# =============================================================================
# Local validation / configuration
# =============================================================================

class ClaimValidationError(OliBoxError):
    """Claim contents violate the CType. Never sent over the wire."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(ErrorCode.CLAIM_INVALID, "Claim is invalid: " + "; ".join(self.errors))


class UnknownCTypeError(OliBoxError):
    """CType id is not registered (misconfiguration)."""

    def __init__(self, ctype_id: str):
        self.ctype_id = ctype_id
        super().__init__(ErrorCode.CTYPE_UNKNOWN, f"Unknown CType: {ctype_id}")


class CredentialIntegrityError(OliBoxError):
    """Claim hashes or root hash do not recompute from the credential."""

    def __init__(self, reason: str):
        super().__init__(ErrorCode.CREDENTIAL_INTEGRITY, f"Credential integrity check failed: {reason}")


class UseCaseError(OliBoxError):
    """Use case registration misuse."""

    @classmethod
    def unknown_use_case(cls, did: str) -> "UseCaseError":
        return cls(ErrorCode.USE_CASE_UNKNOWN, f"Selected use case does not exist: {did}")
