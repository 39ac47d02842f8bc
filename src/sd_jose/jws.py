"""Compact JWS/JWT signing and verification with pluggable signers and verifiers.

This module provides generic JWT creation and verification functions that
accept signer and verifier objects, allowing keys to be managed externally.
"""

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, utils

from . import json_utils
from .errors import MalformedInput
from .keys import jwk_to_private_key, jwk_to_public_key

logger = logging.getLogger(__name__)

DEFAULT_SKEW = 300


class Signer(Protocol):
    """Protocol for JWS signers."""

    def sign(self, message: bytes) -> bytes:
        """Sign a message and return the signature.

        Args:
            message: The JWS signing input

        Returns:
            The signature bytes
        """

    @property
    def algorithm(self) -> str:
        """Get the JWS algorithm identifier.

        Returns:
            JWS alg value (e.g., "ES256")
        """


class Verifier(Protocol):
    """Protocol for JWS verifiers."""

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Verify a signature on a message.

        Args:
            message: The JWS signing input
            signature: The signature to verify

        Returns:
            True if signature is valid, False otherwise
        """


@dataclass
class DecodedJwt:
    """A compact JWS split into its parts.

    ``data`` is the signing input (``header.payload`` as transmitted) and
    ``signature`` is the base64url signature segment.
    """

    header: dict[str, Any]
    payload: dict[str, Any]
    signature: str
    data: str


def _current_time() -> int:
    return int(time.time())


def create_jwt(
    payload: Mapping[str, Any],
    signer: Signer,
    header: Optional[Mapping[str, Any]] = None,
    *,
    issuer: Optional[str] = None,
    expires_in: Optional[int] = None,
    canonicalize: bool = False,
    now: Optional[int] = None,
) -> str:
    """Create a compact signed JWT.

    An ``iat`` claim is added unless the payload carries one.

    Args:
        payload: JWT claims
        signer: A signer object that implements the sign method
        header: Additional header parameters (typ and alg are set by default)
        issuer: Optional iss claim
        expires_in: Optional lifetime in seconds, counted from nbf or iat
        canonicalize: Whether to sort header and payload members
        now: Optional issuance time (defaults to the current time)

    Returns:
        Compact JWS string
    """
    full_header: dict[str, Any] = {"typ": "JWT", "alg": signer.algorithm}
    if header:
        full_header.update(header)

    issued_at = _current_time() if now is None else now
    full_payload: dict[str, Any] = {"iat": issued_at}
    full_payload.update(payload)
    if expires_in is not None:
        full_payload["exp"] = full_payload.get("nbf", full_payload["iat"]) + int(expires_in)
    if issuer is not None:
        full_payload["iss"] = issuer

    encoded_header = json_utils.b64url_encode(
        json_utils.encode(full_header, canonical=canonicalize).encode("utf-8")
    )
    encoded_payload = json_utils.b64url_encode(
        json_utils.encode(full_payload, canonical=canonicalize).encode("utf-8")
    )
    signing_input = f"{encoded_header}.{encoded_payload}"
    signature = signer.sign(signing_input.encode("ascii"))
    return f"{signing_input}.{json_utils.b64url_encode(signature)}"


def decode_jwt(token: str) -> DecodedJwt:
    """Decode a compact JWT without verifying its signature.

    Raises:
        MalformedInput: If the token does not have three segments or its
            header or payload is not a base64url-encoded JSON object
    """
    if not isinstance(token, str):
        raise MalformedInput("JWT must be a string")
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedInput(f"JWT must have 3 segments, got {len(parts)}")

    encoded_header, encoded_payload, signature = parts
    header = json_utils.b64url_decode_json(encoded_header)
    payload = json_utils.b64url_decode_json(encoded_payload)
    if not json_utils.is_object(header):
        raise MalformedInput("JWT header must be a JSON object")
    if not json_utils.is_object(payload):
        raise MalformedInput("JWT payload must be a JSON object")

    return DecodedJwt(
        header=header,
        payload=payload,
        signature=signature,
        data=f"{encoded_header}.{encoded_payload}",
    )


def _audience_matches(claimed: Any, audience: str) -> bool:
    if isinstance(claimed, list):
        return audience in claimed
    return claimed == audience


def _check_claims(
    payload: dict[str, Any], audience: Optional[str], now: int, skew: int
) -> Optional[str]:
    """Return the reason the time or audience claims are unacceptable, if any."""
    nbf = payload.get("nbf")
    iat = payload.get("iat")
    exp = payload.get("exp")
    if nbf is not None:
        if not isinstance(nbf, (int, float)) or nbf > now + skew:
            return "token is not yet valid (nbf)"
    elif iat is not None:
        if not isinstance(iat, (int, float)) or iat > now + skew:
            return "token is not yet valid (iat)"
    if exp is not None:
        if not isinstance(exp, (int, float)) or exp <= now - skew:
            return "token has expired"

    if "aud" in payload:
        if audience is None:
            return "token has an audience but none was expected"
        if not _audience_matches(payload["aud"], audience):
            return "audience does not match"
    return None


def verify_jwt(
    token: str,
    verifier: Verifier,
    *,
    audience: Optional[str] = None,
    now: Optional[int] = None,
    skew: int = DEFAULT_SKEW,
) -> tuple[bool, Optional[dict[str, Any]]]:
    """Verify a compact JWT.

    Args:
        token: Compact JWS string
        verifier: A verifier object that implements the verify method
        audience: Expected audience; required when the token has an aud claim
        now: Verification time (defaults to the current time)
        skew: Allowed clock skew in seconds for nbf/iat/exp

    Returns:
        Tuple of (verification_result, payload if verified successfully)
    """
    try:
        decoded = decode_jwt(token)
        signature = json_utils.b64url_decode(decoded.signature)
    except MalformedInput as e:
        logger.debug("Rejecting malformed JWT: %s", e)
        return False, None

    if not verifier.verify(decoded.data.encode("ascii"), signature):
        logger.debug("Rejecting JWT with invalid signature")
        return False, None

    reason = _check_claims(decoded.payload, audience, _current_time() if now is None else now, skew)
    if reason is not None:
        logger.debug("Rejecting JWT: %s", reason)
        return False, None

    return True, decoded.payload


class ES256Signer:
    """ECDSA P-256 SHA-256 signer implementation."""

    def __init__(self, private_key: Union[dict[str, Any], ec.EllipticCurvePrivateKey]):
        """Initialize ES256 signer with a private key.

        Args:
            private_key: Private JWK or a cryptography P-256 private key
        """
        if isinstance(private_key, dict):
            private_key = jwk_to_private_key(private_key)
        self.private_key = private_key

    def sign(self, message: bytes) -> bytes:
        """Sign a message with ES256."""
        signature_der = self.private_key.sign(message, ec.ECDSA(hashes.SHA256()))

        # Convert DER to raw (r||s) format for JWS
        r, s = utils.decode_dss_signature(signature_der)
        return r.to_bytes(32, byteorder="big") + s.to_bytes(32, byteorder="big")

    @property
    def algorithm(self) -> str:
        """Get JWS algorithm identifier for ES256."""
        return "ES256"


class ES256Verifier:
    """ECDSA P-256 SHA-256 verifier implementation."""

    def __init__(self, public_key: Union[dict[str, Any], ec.EllipticCurvePublicKey]):
        """Initialize ES256 verifier with a public key.

        Args:
            public_key: Public JWK or a cryptography P-256 public key

        Raises:
            ValueError: If the key is not a usable P-256 public key
        """
        if isinstance(public_key, dict):
            public_key = jwk_to_public_key(public_key)
        elif not isinstance(public_key, ec.EllipticCurvePublicKey):
            raise ValueError(f"Unsupported public key type: {type(public_key).__name__}")
        self.public_key = public_key

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Verify a signature with ES256."""
        if len(signature) != 64:
            return False

        r = int.from_bytes(signature[:32], byteorder="big")
        s = int.from_bytes(signature[32:], byteorder="big")
        signature_der = utils.encode_dss_signature(r, s)

        try:
            self.public_key.verify(signature_der, message, ec.ECDSA(hashes.SHA256()))
        except InvalidSignature:
            return False
        return True
