"""OLI Box console.

Client-side protocol logic for the OLI box: device and operator identity
bootstrap, KILT claim/credential construction, wallet-extension sessions,
credential issuance and attestation tracking against the box API.
"""

__version__ = "0.3.0"
