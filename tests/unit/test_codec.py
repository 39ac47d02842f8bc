"""Unit tests for SD-JWT serialization and lifecycle operations."""

import pytest

from sd_jose import (
    IntegrityViolation,
    MalformedInput,
    ResourceExhausted,
    assemble_sd_payload,
    create_presentation,
    create_sd_jwt,
    decode_sd_jwt,
    form_sd_jwt,
    generate_es256_jwk,
    ES256Verifier,
    select_disclosures,
    split_sd_jwt,
    verify_sd_jwt,
    create_object_property_disclosure,
    hash_disclosure,
)
from sd_jose.json_utils import b64url_encode, b64url_encode_json


class TestFormAndSplit:
    """Test joining and splitting the compact serialization."""

    @pytest.mark.unit
    def test_form_with_disclosures(self):
        """Test the trailing separator without a KB-JWT."""
        assert form_sd_jwt("a.b.c", ["d1", "d2"]) == "a.b.c~d1~d2~"

    @pytest.mark.unit
    def test_form_without_disclosures(self):
        """Test that zero disclosures yield a single separator."""
        assert form_sd_jwt("a.b.c", []) == "a.b.c~"

    @pytest.mark.unit
    def test_form_with_kb_jwt(self):
        """Test that the KB-JWT is the final segment."""
        assert form_sd_jwt("a.b.c", ["d1"], "k.b.j") == "a.b.c~d1~k.b.j"

    @pytest.mark.unit
    def test_form_rejects_bad_segments(self):
        """Test that empty segments or embedded separators are refused."""
        with pytest.raises(MalformedInput):
            form_sd_jwt("", ["d1"])
        with pytest.raises(MalformedInput):
            form_sd_jwt("a.b.c", ["d~1"])
        with pytest.raises(MalformedInput):
            form_sd_jwt("a.b.c", [""])

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "jwt,disclosures,kb_jwt",
        [("a.b.c", [], None), ("a.b.c", ["d1", "d2"], None), ("a.b.c", ["d1"], "k.b.j")],
    )
    def test_split_inverts_form(self, jwt, disclosures, kb_jwt):
        """Test that split recovers what form joined."""
        split = split_sd_jwt(form_sd_jwt(jwt, disclosures, kb_jwt))

        assert split.jwt == jwt
        assert split.disclosures == disclosures
        assert split.kb_jwt == kb_jwt

    @pytest.mark.unit
    @pytest.mark.parametrize("wire", ["a.b.c", "~d1~", "a.b.c~~", "a.b.c~d1~~"])
    def test_split_rejects_malformed(self, wire):
        """Test that missing separators and empty segments are refused."""
        with pytest.raises(MalformedInput):
            split_sd_jwt(wire)

    @pytest.mark.unit
    def test_split_keeps_presented_order(self):
        """Test that disclosures are returned in presented order."""
        assert split_sd_jwt("j~c~a~b~").disclosures == ["c", "a", "b"]


@pytest.fixture
def issued(issuer_signer, clear_claims, selective_disclosure_claims, fixed_now):
    """An SD-JWT issued with every selective disclosure claim."""
    result = assemble_sd_payload(clear_claims, selective_disclosure_claims)
    sd_jwt = create_sd_jwt(
        result.payload,
        issuer_signer,
        result.disclosure_list,
        header={"kid": "issuer-key-1"},
        now=fixed_now,
    )
    return sd_jwt, result


class TestLifecycle:
    """Test create, decode and verify."""

    @pytest.mark.unit
    def test_decode(self, issued, clear_claims, selective_disclosure_claims, fixed_now):
        """Test decoding without signature verification."""
        sd_jwt, result = issued
        decoded = decode_sd_jwt(sd_jwt)

        assert decoded.header["alg"] == "ES256"
        assert decoded.header["kid"] == "issuer-key-1"
        assert decoded.payload == {**clear_claims, **selective_disclosure_claims, "iat": fixed_now}
        assert decoded.disclosures == result.disclosure_list
        assert decoded.kb_jwt is None

    @pytest.mark.unit
    def test_verify(self, issued, issuer_verifier, clear_claims, selective_disclosure_claims, fixed_now):
        """Test verification with the issuer key."""
        sd_jwt, _ = issued
        is_valid, payload = verify_sd_jwt(sd_jwt, issuer_verifier, now=fixed_now)

        assert is_valid
        assert payload == {**clear_claims, **selective_disclosure_claims, "iat": fixed_now}

    @pytest.mark.unit
    def test_verify_wrong_key(self, issued, fixed_now):
        """Test that another key does not verify."""
        sd_jwt, _ = issued
        other = ES256Verifier(generate_es256_jwk())

        assert verify_sd_jwt(sd_jwt, other, now=fixed_now) == (False, None)

    @pytest.mark.unit
    def test_verify_expired(self, issued, issuer_verifier, fixed_now):
        """Test that an expired credential does not verify."""
        sd_jwt, _ = issued
        assert verify_sd_jwt(sd_jwt, issuer_verifier, now=fixed_now + 7200) == (False, None)

    @pytest.mark.unit
    def test_verify_propagates_integrity_errors(self, issuer_signer, issuer_verifier, fixed_now):
        """Test that a conflicting disclosure is raised, not reported."""
        disclosure = create_object_property_disclosure("sub", "mallory")
        payload = {"_sd": [hash_disclosure(disclosure)], "sub": "alice"}
        sd_jwt = create_sd_jwt(payload, issuer_signer, [disclosure], now=fixed_now)

        with pytest.raises(IntegrityViolation):
            verify_sd_jwt(sd_jwt, issuer_verifier, now=fixed_now)

    @pytest.mark.unit
    def test_decode_rejects_unsupported_sd_alg(self, issuer_signer, fixed_now):
        """Test that the payload's _sd_alg is honoured."""
        sd_jwt = create_sd_jwt({"_sd_alg": "md5"}, issuer_signer, [], now=fixed_now)

        with pytest.raises(ValueError, match="md5"):
            decode_sd_jwt(sd_jwt)

    @pytest.mark.unit
    def test_decode_rejects_deep_nesting(self):
        """Test that JSON nested beyond the parser's limits is a resource error."""
        depth = 200000
        payload = b'{"a":' + b"[" * depth + b"]" * depth + b"}"
        wire = f"{b64url_encode_json({'alg': 'ES256'})}.{b64url_encode(payload)}.c2ln~"

        with pytest.raises(ResourceExhausted):
            decode_sd_jwt(wire)


class TestHolderOperations:
    """Test disclosure selection and presentation."""

    @pytest.mark.unit
    def test_select_and_present(self, issued, issuer_verifier, clear_claims, fixed_now):
        """Test presenting a subset of claims."""
        sd_jwt, _ = issued
        selected = select_disclosures(sd_jwt, ["given_name", "email"])
        presentation = create_presentation(sd_jwt, selected)

        assert len(selected) == 2
        assert presentation.endswith("~")

        is_valid, payload = verify_sd_jwt(presentation, issuer_verifier, now=fixed_now)
        assert is_valid
        assert payload == {
            **clear_claims,
            "iat": fixed_now,
            "given_name": "John",
            "email": "john.doe@example.com",
        }

    @pytest.mark.unit
    def test_select_array_elements(self, issuer_signer, fixed_now):
        """Test that array element disclosures are selected by value."""
        result = assemble_sd_payload({}, {"nationalities": ["US", "DE"]}, array_claims=["nationalities"])
        sd_jwt = create_sd_jwt(result.payload, issuer_signer, result.disclosure_list, now=fixed_now)

        selected = select_disclosures(sd_jwt, ["DE"])

        assert decode_sd_jwt(create_presentation(sd_jwt, selected)).payload["nationalities"] == ["DE"]

    @pytest.mark.unit
    def test_present_nothing(self, issued, clear_claims, fixed_now):
        """Test a presentation that reveals no selectively disclosable claims."""
        sd_jwt, _ = issued
        presentation = create_presentation(sd_jwt, [])

        assert presentation.count("~") == 1
        assert decode_sd_jwt(presentation).payload == {**clear_claims, "iat": fixed_now}

    @pytest.mark.unit
    def test_present_foreign_disclosure(self, issued):
        """Test that disclosures not issued with the token are refused."""
        sd_jwt, _ = issued
        foreign = create_object_property_disclosure("given_name", "Eve")

        with pytest.raises(MalformedInput):
            create_presentation(sd_jwt, [foreign])
