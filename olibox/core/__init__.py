# OLI Box core - configuration, exceptions, and logging

from olibox.core.exceptions import (
    OliBoxError,
    ErrorCode,
    BoxApiError,
    SessionError,
    IssuanceError,
    BootstrapError,
    ClaimValidationError,
    UnknownCTypeError,
    CredentialIntegrityError,
    UseCaseError,
)
from olibox.core.logging import configure_logging, JsonFormatter

__all__ = [
    "OliBoxError",
    "ErrorCode",
    "BoxApiError",
    "SessionError",
    "IssuanceError",
    "BootstrapError",
    "ClaimValidationError",
    "UnknownCTypeError",
    "CredentialIntegrityError",
    "UseCaseError",
    "configure_logging",
    "JsonFormatter",
]
