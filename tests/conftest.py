"""Pytest fixtures for OLI Box console tests."""

import logging

import pytest

from olibox.api.client import reset_api_client
from olibox.kilt.ctype import (
    INSTALLATION_CERTIFICATE_CTYPE,
    SELF_ISSUED_CTYPE,
    reset_ctype_registry,
)

from .helpers import FakeBox, FakeProvider


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset singletons before each test."""
    reset_api_client()
    reset_ctype_registry()
    yield
    reset_api_client()
    reset_ctype_registry()


@pytest.fixture
def box() -> FakeBox:
    """Fresh in-memory box API."""
    return FakeBox()


@pytest.fixture
def api(box):
    """BoxApiClient wired to the fake box."""
    return box.client()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def installation_ctype():
    return INSTALLATION_CERTIFICATE_CTYPE


@pytest.fixture
def self_issued_ctype():
    return SELF_ISSUED_CTYPE


@pytest.fixture
def installation_fields() -> dict:
    """Form input for an installation certificate."""
    return {
        "Art der Anlage": "PV",
        "Bruttoleistung": "9,8",
        "Installierte Leistung": "10",
        "Wechselrichterleistung": "abc",
        "Standort": "",
    }


@pytest.fixture(autouse=True)
def restore_root_logging():
    """configure_logging() replaces root handlers; undo it after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
