"""Tests for KILT hashing primitives."""

import hashlib

import pytest

from olibox.kilt.hashing import (
    calculate_root_hash,
    hash_statements,
    hash_str,
    hex_to_bytes,
    js_number,
    make_statements,
    new_nonce,
    nonce_map_of,
    to_json,
    to_sorted_json,
)

CTYPE_HASH = "0x707806fa456431dc285a57dbb06258709ee9dad517cbd98a856bb83a57f19a28"


class TestHashStr:
    """Tests for hash_str."""

    def test_empty_string_vector(self):
        """Blake2b-256 of the empty input."""
        assert hash_str("") == "0x0e5751c026e543b2e8ab2eb06099daa1d1e5df47778f7787faab45cdf12fe3a8"

    def test_matches_blake2b_256(self):
        expected = hashlib.blake2b("Grüße".encode("utf-8"), digest_size=32).hexdigest()
        assert hash_str("Grüße") == "0x" + expected

    def test_str_and_bytes_agree(self):
        assert hash_str("abc") == hash_str(b"abc")

    def test_hex_to_bytes_accepts_prefix(self):
        assert hex_to_bytes("0x0aff") == b"\x0a\xff"
        assert hex_to_bytes("0aff") == b"\x0a\xff"


class TestStatements:
    """Tests for statement construction."""

    def test_owner_statement_first(self):
        statements = make_statements(CTYPE_HASH, {"name": "Erika"}, "did:kilt:4owner")
        assert statements[0] == '{"@id":"did:kilt:4owner"}'
        assert statements[1] == '{"kilt:ctype:' + CTYPE_HASH + '#name":"Erika"}'

    def test_field_order_kept(self):
        statements = make_statements(CTYPE_HASH, {"b": "1", "a": "2"}, None)
        assert [s.split("#")[1][:1] for s in statements] == ["b", "a"]

    def test_integral_float_rendered_as_int(self):
        statements = make_statements(CTYPE_HASH, {"power": 10.0, "ratio": 9.8}, None)
        assert statements[0].endswith('#power":10}')
        assert statements[1].endswith('#ratio":9.8}')

    def test_exponent_form_matches_javascript(self):
        statements = make_statements(CTYPE_HASH, {"tiny": 1.5e-07, "huge": 1e21, "flag": True}, None)
        assert statements[0].endswith('#tiny":1.5e-7}')
        assert statements[1].endswith('#huge":1e+21}')
        assert statements[2].endswith('#flag":true}')

    @pytest.mark.parametrize("value,expected", [
        (0, "0"),
        (-0.0, "0"),
        (10.0, "10"),
        (-9.8, "-9.8"),
        (0.5, "0.5"),
        (1e-6, "0.000001"),
        (1e-7, "1e-7"),
        (1.5e-7, "1.5e-7"),
        (123.456, "123.456"),
        (1.5e16, "15000000000000000"),
        (1e20, "100000000000000000000"),
        (1e21, "1e+21"),
        (1.2345e22, "1.2345e+22"),
        (2 ** 60, "1152921504606847000"),
        (float("nan"), "null"),
    ])
    def test_js_number(self, value, expected):
        assert js_number(value) == expected

    def test_non_ascii_kept_verbatim(self):
        assert to_json({"k": "für"}) == '{"k":"für"}'

    def test_sorted_json(self):
        assert to_sorted_json({"b": 1, "a": {"d": 2, "c": 3}}) == '{"a":{"c":3,"d":2},"b":1}'


class TestHashStatements:
    """Tests for salting and nonce maps."""

    def test_fresh_nonce_per_statement(self):
        hashed = hash_statements(["x", "y"])
        assert hashed[0].nonce != hashed[1].nonce
        for h in hashed:
            assert h.digest == hash_str(h.statement)
            assert h.salted_hash == hash_str(h.nonce + h.digest)

    def test_recompute_with_nonce_map(self):
        hashed = hash_statements(["x", "y"])
        again = hash_statements(["x", "y"], nonces=nonce_map_of(hashed))
        assert [h.salted_hash for h in again] == [h.salted_hash for h in hashed]

    def test_missing_nonce_is_empty(self):
        hashed = hash_statements(["x"], nonces={})
        assert hashed[0].nonce == ""

    def test_custom_nonce_generator(self):
        hashed = hash_statements(["x"], nonce_generator=lambda: "fixed")
        assert hashed[0].nonce == "fixed"
        assert hashed[0].salted_hash == hash_str("fixed" + hash_str("x"))

    def test_new_nonce_is_uuid4(self):
        nonce = new_nonce()
        assert len(nonce) == 36
        assert nonce[14] == "4"


class TestRootHash:
    """Tests for calculate_root_hash."""

    def test_concatenates_claim_hash_bytes(self):
        h1, h2 = hash_str("a"), hash_str("b")
        expected = hash_str(hex_to_bytes(h1) + hex_to_bytes(h2))
        assert calculate_root_hash([h1, h2]) == expected

    def test_order_matters(self):
        h1, h2 = hash_str("a"), hash_str("b")
        assert calculate_root_hash([h1, h2]) != calculate_root_hash([h2, h1])

    @pytest.mark.parametrize("delegation_id", [None, ""])
    def test_no_delegation(self, delegation_id):
        h1 = hash_str("a")
        assert calculate_root_hash([h1], [], delegation_id) == hash_str(hex_to_bytes(h1))

    def test_legitimations_and_delegation_included(self):
        h1, leg, deleg = hash_str("a"), hash_str("leg"), hash_str("deleg")
        expected = hash_str(hex_to_bytes(h1) + hex_to_bytes(leg) + hex_to_bytes(deleg))
        assert calculate_root_hash([h1], [leg], deleg) == expected
