"""Unit tests for compact JWS/JWT signing and verification."""

import pytest

from sd_jose import (
    ES256Signer,
    ES256Verifier,
    MalformedInput,
    create_jwt,
    decode_jwt,
    generate_es256_jwk,
    verify_jwt,
)
from sd_jose.json_utils import b64url_encode, b64url_encode_json


class TestCreateJwt:
    """Test JWT creation."""

    @pytest.mark.unit
    def test_header_and_timestamps(self, issuer_signer, fixed_now):
        """Test the default header and the iat/exp/iss claims."""
        token = create_jwt(
            {"sub": "alice"}, issuer_signer, issuer="https://issuer", expires_in=600, now=fixed_now
        )
        decoded = decode_jwt(token)

        assert decoded.header == {"typ": "JWT", "alg": "ES256"}
        assert decoded.payload == {
            "iat": fixed_now,
            "sub": "alice",
            "exp": fixed_now + 600,
            "iss": "https://issuer",
        }

    @pytest.mark.unit
    def test_expiry_counts_from_nbf(self, issuer_signer, fixed_now):
        """Test that exp is computed from nbf when present."""
        token = create_jwt({"nbf": fixed_now + 100}, issuer_signer, expires_in=10, now=fixed_now)
        assert decode_jwt(token).payload["exp"] == fixed_now + 110

    @pytest.mark.unit
    def test_payload_iat_wins(self, issuer_signer, fixed_now):
        """Test that an explicit iat is preserved."""
        token = create_jwt({"iat": 5}, issuer_signer, now=fixed_now)
        assert decode_jwt(token).payload["iat"] == 5

    @pytest.mark.unit
    def test_extra_header(self, issuer_signer):
        """Test that extra header parameters are merged."""
        token = create_jwt({}, issuer_signer, {"kid": "k1", "typ": "kb+jwt"})
        assert decode_jwt(token).header == {"typ": "kb+jwt", "alg": "ES256", "kid": "k1"}

    @pytest.mark.unit
    def test_canonicalize(self, issuer_signer, fixed_now):
        """Test that canonical output sorts members."""
        token = create_jwt({"b": 1, "a": 2}, issuer_signer, canonicalize=True, now=fixed_now)
        expected = b64url_encode(f'{{"a":2,"b":1,"iat":{fixed_now}}}'.encode())

        assert token.split(".")[1] == expected


class TestVerifyJwt:
    """Test JWT verification."""

    @pytest.mark.unit
    def test_valid_signature(self, issuer_signer, issuer_verifier, fixed_now):
        """Test a straightforward successful verification."""
        token = create_jwt({"sub": "alice"}, issuer_signer, now=fixed_now)
        assert verify_jwt(token, issuer_verifier, now=fixed_now) == (
            True,
            {"iat": fixed_now, "sub": "alice"},
        )

    @pytest.mark.unit
    def test_tampered_payload(self, issuer_signer, issuer_verifier, fixed_now):
        """Test that a modified payload fails verification."""
        header, _, signature = create_jwt({"sub": "alice"}, issuer_signer, now=fixed_now).split(".")
        forged = b64url_encode_json({"iat": fixed_now, "sub": "mallory"})

        assert verify_jwt(f"{header}.{forged}.{signature}", issuer_verifier, now=fixed_now) == (
            False,
            None,
        )

    @pytest.mark.unit
    def test_malformed_token(self, issuer_verifier):
        """Test that malformed tokens are reported, not raised."""
        assert verify_jwt("not-a-jwt", issuer_verifier) == (False, None)
        assert verify_jwt("a.b.c", issuer_verifier) == (False, None)

    @pytest.mark.unit
    def test_not_yet_valid(self, issuer_signer, issuer_verifier, fixed_now):
        """Test nbf handling with clock skew."""
        token = create_jwt({"nbf": fixed_now + 200}, issuer_signer, now=fixed_now)

        assert verify_jwt(token, issuer_verifier, now=fixed_now)[0]
        assert not verify_jwt(token, issuer_verifier, now=fixed_now, skew=0)[0]

    @pytest.mark.unit
    def test_expired(self, issuer_signer, issuer_verifier, fixed_now):
        """Test exp handling with clock skew."""
        token = create_jwt({}, issuer_signer, expires_in=60, now=fixed_now)

        assert verify_jwt(token, issuer_verifier, now=fixed_now + 61)[0]
        assert not verify_jwt(token, issuer_verifier, now=fixed_now + 61, skew=0)[0]
        assert not verify_jwt(token, issuer_verifier, now=fixed_now + 1000)[0]

    @pytest.mark.unit
    def test_audience(self, issuer_signer, issuer_verifier, fixed_now):
        """Test the audience check."""
        token = create_jwt({"aud": ["https://a", "https://b"]}, issuer_signer, now=fixed_now)

        assert verify_jwt(token, issuer_verifier, audience="https://b", now=fixed_now)[0]
        assert not verify_jwt(token, issuer_verifier, audience="https://c", now=fixed_now)[0]
        assert not verify_jwt(token, issuer_verifier, now=fixed_now)[0]


class TestDecodeJwt:
    """Test decoding without verification."""

    @pytest.mark.unit
    def test_parts(self, issuer_signer, fixed_now):
        """Test that the signing input and signature are exposed."""
        token = create_jwt({}, issuer_signer, now=fixed_now)
        decoded = decode_jwt(token)

        assert f"{decoded.data}.{decoded.signature}" == token

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "token",
        [
            "a.b",
            "a.b.c.d",
            f"{b64url_encode_json([1])}.{b64url_encode_json({})}.sig",
            f"{b64url_encode_json({})}.{b64url_encode_json('text')}.sig",
        ],
    )
    def test_malformed(self, token):
        """Test that structurally invalid tokens raise MalformedInput."""
        with pytest.raises(MalformedInput):
            decode_jwt(token)


class TestES256:
    """Test the ES256 signer and verifier."""

    @pytest.mark.unit
    def test_sign_and_verify(self):
        """Test that raw r||s signatures verify."""
        jwk = generate_es256_jwk()
        signature = ES256Signer(jwk).sign(b"message")

        assert len(signature) == 64
        assert ES256Verifier(jwk).verify(b"message", signature)
        assert not ES256Verifier(jwk).verify(b"other", signature)

    @pytest.mark.unit
    def test_rejects_wrong_signature_length(self, issuer_verifier):
        """Test that non-64-byte signatures are rejected."""
        assert not issuer_verifier.verify(b"message", b"\x00" * 63)

    @pytest.mark.unit
    def test_signer_requires_private_key(self):
        """Test that a public JWK cannot be used for signing."""
        jwk = generate_es256_jwk()
        del jwk["d"]
        with pytest.raises(ValueError):
            ES256Signer(jwk)
