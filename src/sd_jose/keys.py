"""JWK generation and management for ES256 (P-256) keys."""

import hashlib
from typing import Any, Optional

from cryptography.hazmat.primitives.asymmetric import ec

from . import json_utils

JWK_ALG_ES256 = "ES256"
JWK_KTY_EC = "EC"
JWK_CRV_P256 = "P-256"

# RFC 7638 required members per key type
_THUMBPRINT_MEMBERS = {
    "EC": ("crv", "kty", "x", "y"),
    "OKP": ("crv", "kty", "x"),
    "oct": ("k", "kty"),
}

_THUMBPRINT_HASHES = {
    "sha-256": hashlib.sha256,
    "sha-384": hashlib.sha384,
    "sha-512": hashlib.sha512,
}


def generate_es256_jwk(kid: Optional[str] = None) -> dict[str, str]:
    """Generate an ES256/P-256 key pair as a private JWK.

    Args:
        kid: Optional key identifier

    Returns:
        JWK dictionary containing both private and public key material
    """
    private_key = ec.generate_private_key(ec.SECP256R1())
    return private_key_to_jwk(private_key, kid=kid)


def private_key_to_jwk(
    private_key: ec.EllipticCurvePrivateKey, kid: Optional[str] = None
) -> dict[str, str]:
    """Convert a P-256 private key into a private JWK."""
    d = private_key.private_numbers().private_value.to_bytes(32, byteorder="big")
    jwk = public_key_to_jwk(private_key.public_key(), kid=kid)
    jwk["d"] = json_utils.b64url_encode(d)
    return jwk


def public_key_to_jwk(
    public_key: ec.EllipticCurvePublicKey, kid: Optional[str] = None
) -> dict[str, str]:
    """Convert a P-256 public key into a public JWK."""
    public_numbers = public_key.public_numbers()
    jwk = {
        "kty": JWK_KTY_EC,
        "crv": JWK_CRV_P256,
        "alg": JWK_ALG_ES256,
        "x": json_utils.b64url_encode(public_numbers.x.to_bytes(32, byteorder="big")),
        "y": json_utils.b64url_encode(public_numbers.y.to_bytes(32, byteorder="big")),
    }
    if kid is not None:
        jwk["kid"] = kid
    return jwk


def jwk_get_public(jwk: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a JWK with private key material removed.

    Args:
        jwk: Private or public JWK

    Returns:
        JWK containing only public key material
    """
    return {name: value for name, value in jwk.items() if name not in ("d", "p", "q", "dp", "dq", "qi", "k")}


def jwk_to_public_key(jwk: dict[str, Any]) -> ec.EllipticCurvePublicKey:
    """Load a P-256 public key from a JWK.

    Raises:
        ValueError: If the JWK is not an EC P-256 key or its point is invalid
    """
    if not isinstance(jwk, dict):
        raise ValueError("JWK must be a JSON object")
    if jwk.get("kty") != JWK_KTY_EC or jwk.get("crv") != JWK_CRV_P256:
        raise ValueError("Only EC P-256 keys are supported")
    encoded_x, encoded_y = jwk.get("x"), jwk.get("y")
    if encoded_x is None or encoded_y is None:
        raise ValueError("EC JWK must contain x and y")
    x = int.from_bytes(json_utils.b64url_decode(encoded_x), byteorder="big")
    y = int.from_bytes(json_utils.b64url_decode(encoded_y), byteorder="big")
    return ec.EllipticCurvePublicNumbers(x, y, ec.SECP256R1()).public_key()


def jwk_to_private_key(jwk: dict[str, Any]) -> ec.EllipticCurvePrivateKey:
    """Load a P-256 private key from a JWK.

    Raises:
        ValueError: If the JWK is not an EC P-256 private key
    """
    if "d" not in jwk:
        raise ValueError("JWK does not contain private key material")
    jwk_to_public_key(jwk)
    private_value = int.from_bytes(json_utils.b64url_decode(jwk["d"]), byteorder="big")
    return ec.derive_private_key(private_value, ec.SECP256R1())


def jwk_thumbprint(jwk: dict[str, Any], hash_algorithm: str = "sha-256") -> str:
    """Calculate the RFC 7638 thumbprint of a JWK.

    Args:
        jwk: JWK (private members are ignored)
        hash_algorithm: Hash algorithm to use (default: "sha-256")

    Returns:
        Base64url-encoded thumbprint
    """
    members = _THUMBPRINT_MEMBERS.get(jwk.get("kty"))
    if members is None:
        raise ValueError(f"Unsupported key type: {jwk.get('kty')}")

    hash_function = _THUMBPRINT_HASHES.get(hash_algorithm)
    if hash_function is None:
        raise ValueError(f"Unsupported hash algorithm: {hash_algorithm}")

    try:
        canonical = {name: jwk[name] for name in members}
    except KeyError as e:
        raise ValueError(f"JWK is missing required member: {e.args[0]}") from e

    # Lexicographic member order, no whitespace
    canonical_json = json_utils.encode(canonical, canonical=True)
    return json_utils.b64url_encode(hash_function(canonical_json.encode("utf-8")).digest())
