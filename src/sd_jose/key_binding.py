"""SD-JWT key binding.

This module implements holder binding: the issuer places the holder's key
in the ``cnf`` claim, and at presentation time the holder appends a
Key Binding JWT (KB-JWT) that signs the verifier's audience and nonce plus
an ``sd_hash`` over the exact presentation it accompanies.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from .digests import DEFAULT_SD_ALG, hash_disclosure
from .errors import MalformedInput
from .expansion import SD_ALG_KEY
from .jws import Signer, Verifier, create_jwt, decode_jwt, verify_jwt
from .keys import jwk_get_public, jwk_thumbprint
from .sd_jwt import create_presentation, form_sd_jwt, split_sd_jwt

logger = logging.getLogger(__name__)

KB_JWT_TYPE = "kb+jwt"


def create_cnf_claim(holder_jwk: dict[str, Any], use_thumbprint: bool = False) -> dict[str, Any]:
    """Create a confirmation (cnf) claim for holder binding.

    Args:
        holder_jwk: Holder JWK (private members are never included)
        use_thumbprint: If True, use the JWK thumbprint (jkt) to reduce size

    Returns:
        ``{"jwk": public_jwk}`` or ``{"jkt": thumbprint}``
    """
    if use_thumbprint:
        return {"jkt": jwk_thumbprint(holder_jwk)}
    return {"jwk": jwk_get_public(holder_jwk)}


def extract_holder_key_from_cnf(cnf_claim: Mapping[str, Any]) -> Optional[dict[str, Any]]:
    """Extract the holder JWK from a cnf claim.

    Returns:
        The embedded JWK, or None for thumbprint-only claims
    """
    jwk = cnf_claim.get("jwk")
    if isinstance(jwk, dict):
        return jwk
    return None


def validate_cnf(payload: Mapping[str, Any]) -> bool:
    """Check that a payload carries a usable cnf claim."""
    cnf_claim = payload.get("cnf")
    if not isinstance(cnf_claim, dict):
        return False
    return isinstance(cnf_claim.get("jwk"), dict) or isinstance(cnf_claim.get("jkt"), str)


def compute_sd_hash(presentation: str, sd_alg: str = DEFAULT_SD_ALG) -> str:
    """Hash an SD-JWT presentation (without KB-JWT) for the sd_hash claim.

    Args:
        presentation: ``<JWT>~<Disclosure>~...~`` exactly as transmitted
        sd_alg: Hash algorithm named by the credential's _sd_alg

    Returns:
        Base64url-encoded digest
    """
    return hash_disclosure(presentation, sd_alg)


def create_kb_jwt(
    presentation: str,
    holder_signer: Signer,
    audience: str,
    nonce: str,
    issued_at: Optional[int] = None,
) -> str:
    """Create a Key Binding JWT for a presentation.

    Args:
        presentation: SD-JWT presentation without a KB-JWT (ends with "~")
        holder_signer: Signer using the holder's private key
        audience: Verifier identifier (aud claim)
        nonce: Verifier-provided nonce
        issued_at: Optional issuance time (iat claim)

    Returns:
        Compact KB-JWT

    Raises:
        MalformedInput: If the presentation already carries a KB-JWT
    """
    split = split_sd_jwt(presentation)
    if split.kb_jwt is not None:
        raise MalformedInput("Presentation already carries a KB-JWT")

    sd_alg = decode_jwt(split.jwt).payload.get(SD_ALG_KEY, DEFAULT_SD_ALG)
    payload = {
        "aud": audience,
        "nonce": nonce,
        "sd_hash": compute_sd_hash(presentation, sd_alg),
    }
    return create_jwt(payload, holder_signer, {"typ": KB_JWT_TYPE}, now=issued_at)


def create_key_bound_presentation(
    sd_jwt: str,
    selected: Iterable[str],
    holder_signer: Signer,
    audience: str,
    nonce: str,
    issued_at: Optional[int] = None,
) -> str:
    """Present a subset of disclosures and bind it to the holder's key."""
    presentation = create_presentation(sd_jwt, selected)
    kb_jwt = create_kb_jwt(presentation, holder_signer, audience, nonce, issued_at)
    return presentation + kb_jwt


def verify_kb_jwt(
    sd_jwt: str,
    holder_verifier: Verifier,
    audience: str,
    nonce: str,
    now: Optional[int] = None,
) -> tuple[bool, Optional[dict[str, Any]]]:
    """Verify the KB-JWT attached to a presentation.

    Checks the holder signature, the ``typ`` header, audience, nonce, the
    presence of ``iat`` and that ``sd_hash`` covers the presented prefix.

    Args:
        sd_jwt: Presentation including its KB-JWT
        holder_verifier: Verifier for the holder key from the cnf claim
        audience: Expected audience
        nonce: Expected nonce
        now: Verification time

    Returns:
        Tuple of (is_valid, KB-JWT payload if valid)
    """
    split = split_sd_jwt(sd_jwt)
    if split.kb_jwt is None:
        logger.warning("Rejecting presentation without KB-JWT")
        return False, None

    is_valid, kb_payload = verify_jwt(split.kb_jwt, holder_verifier, audience=audience, now=now)
    if not is_valid or kb_payload is None:
        logger.warning("Rejecting presentation: KB-JWT verification failed")
        return False, None

    if decode_jwt(split.kb_jwt).header.get("typ") != KB_JWT_TYPE:
        logger.warning("Rejecting presentation: KB-JWT has wrong typ")
        return False, None
    if kb_payload.get("nonce") != nonce:
        logger.warning("Rejecting presentation: nonce mismatch")
        return False, None
    if "iat" not in kb_payload:
        logger.warning("Rejecting presentation: KB-JWT has no iat")
        return False, None

    sd_alg = decode_jwt(split.jwt).payload.get(SD_ALG_KEY, DEFAULT_SD_ALG)
    expected = compute_sd_hash(form_sd_jwt(split.jwt, split.disclosures), sd_alg)
    if kb_payload.get("sd_hash") != expected:
        logger.warning("Rejecting presentation: sd_hash mismatch")
        return False, None

    return True, kb_payload
