"""SD-JWT compact serialization and lifecycle operations.

Wire format::

    <JWT>~<Disclosure 1>~<Disclosure 2>~...~<Disclosure N>~<optional KB-JWT>

The separator before the key binding segment is always present, so a token
without a KB-JWT ends in ``~``. The same format is used from issuer to holder
and from holder to verifier; the holder simply presents fewer disclosures.
"""

import logging
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from .digests import DEFAULT_SD_ALG, build_digest_index
from .disclosure import ObjectPropertyDisclosure, decode_disclosure
from .errors import MalformedInput, UnsupportedAlgorithm
from .expansion import DEFAULT_MAX_DEPTH, SD_ALG_KEY, expand_disclosures
from .jws import Signer, Verifier, create_jwt, decode_jwt, verify_jwt

logger = logging.getLogger(__name__)

SD_JWT_SEPARATOR = "~"


@dataclass
class SplitSdJwt:
    """The segments of an SD-JWT."""

    jwt: str
    disclosures: list[str] = field(default_factory=list)
    kb_jwt: Optional[str] = None


@dataclass
class DecodedSdJwt:
    """A decoded SD-JWT with its disclosures already expanded into the payload."""

    header: dict[str, Any]
    payload: dict[str, Any]
    signature: str
    data: str
    disclosures: list[str] = field(default_factory=list)
    kb_jwt: Optional[str] = None


def form_sd_jwt(jwt: str, disclosures: Iterable[str], kb_jwt: Optional[str] = None) -> str:
    """Join a signed JWT, disclosures and an optional KB-JWT into an SD-JWT.

    Raises:
        MalformedInput: If the JWT or a disclosure is empty or contains the separator
    """
    segments = [jwt, *disclosures]
    for segment in segments:
        if not segment or SD_JWT_SEPARATOR in segment:
            raise MalformedInput("SD-JWT segments must be non-empty and must not contain '~'")
    if kb_jwt and SD_JWT_SEPARATOR in kb_jwt:
        raise MalformedInput("KB-JWT must not contain '~'")
    segments.append(kb_jwt or "")
    return SD_JWT_SEPARATOR.join(segments)


def split_sd_jwt(sd_jwt: str) -> SplitSdJwt:
    """Split an SD-JWT into its JWT, disclosures and optional KB-JWT.

    Raises:
        MalformedInput: If there is no separator, the JWT segment is empty or
            a disclosure segment is empty
    """
    if not isinstance(sd_jwt, str) or SD_JWT_SEPARATOR not in sd_jwt:
        raise MalformedInput("SD-JWT must contain at least one '~' separator")

    jwt, *disclosures, kb_jwt = sd_jwt.split(SD_JWT_SEPARATOR)
    if not jwt:
        raise MalformedInput("SD-JWT has an empty JWT segment")
    if any(not disclosure for disclosure in disclosures):
        raise MalformedInput("SD-JWT has an empty disclosure segment")

    return SplitSdJwt(jwt=jwt, disclosures=disclosures, kb_jwt=kb_jwt or None)


def create_sd_jwt(
    payload: Mapping[str, Any],
    signer: Signer,
    disclosures: Iterable[str],
    kb_jwt: Optional[str] = None,
    header: Optional[Mapping[str, Any]] = None,
    issuer: Optional[str] = None,
    expires_in: Optional[int] = None,
    canonicalize: bool = False,
    now: Optional[int] = None,
) -> str:
    """Sign an SD-JWT payload and attach its disclosures.

    Args:
        payload: Payload with _sd / _sd_alg members, see assemble_sd_payload()
        signer: Issuer signer
        disclosures: Disclosures to attach
        kb_jwt: Optional key binding JWT
        header: Additional JWT header parameters
        issuer: Optional iss claim
        expires_in: Optional lifetime in seconds
        canonicalize: Whether to sort header and payload members
        now: Optional issuance time

    Returns:
        SD-JWT in compact serialization
    """
    jwt = create_jwt(
        payload,
        signer,
        header,
        issuer=issuer,
        expires_in=expires_in,
        canonicalize=canonicalize,
        now=now,
    )
    return form_sd_jwt(jwt, disclosures, kb_jwt)


def _sd_alg_of(payload: Mapping[str, Any]) -> str:
    sd_alg = payload.get(SD_ALG_KEY, DEFAULT_SD_ALG)
    if not isinstance(sd_alg, str):
        raise UnsupportedAlgorithm(f"{SD_ALG_KEY} must be a string")
    return sd_alg


def _expand(
    payload: Mapping[str, Any],
    disclosures: list[str],
    recurse: bool,
    max_depth: int,
    reject_digest_reuse: bool,
) -> dict[str, Any]:
    index = build_digest_index(disclosures, _sd_alg_of(payload))
    return expand_disclosures(
        payload,
        index,
        recurse=recurse,
        max_depth=max_depth,
        reject_digest_reuse=reject_digest_reuse,
    )


def decode_sd_jwt(
    sd_jwt: str,
    recurse: bool = True,
    max_depth: int = DEFAULT_MAX_DEPTH,
    reject_digest_reuse: bool = True,
) -> DecodedSdJwt:
    """Decode an SD-JWT and expand the presented disclosures, without verifying it.

    Checks performed:
    - _sd_alg names a supported hash algorithm
    - disclosures are well formed for the position they are referenced from
    - nbf, iat and exp are never sourced from a disclosure
    - a disclosed claim never overwrites a claim at the same level
    - no digest is referenced more than once (unless reject_digest_reuse=False)

    Args:
        sd_jwt: SD-JWT in compact serialization
        recurse: Whether to expand nested objects and disclosed values
        max_depth: Maximum payload nesting depth
        reject_digest_reuse: Whether a repeated digest is an error

    Returns:
        DecodedSdJwt with an expanded payload free of _sd and _sd_alg

    Raises:
        MalformedInput: If the token or a disclosure cannot be decoded
        UnsupportedAlgorithm: If _sd_alg is not supported
        IntegrityViolation: If the disclosures conflict with the payload
        ResourceExhausted: If the payload is nested too deeply
    """
    split = split_sd_jwt(sd_jwt)
    decoded = decode_jwt(split.jwt)
    payload = _expand(decoded.payload, split.disclosures, recurse, max_depth, reject_digest_reuse)
    return DecodedSdJwt(
        header=decoded.header,
        payload=payload,
        signature=decoded.signature,
        data=decoded.data,
        disclosures=split.disclosures,
        kb_jwt=split.kb_jwt,
    )


def verify_sd_jwt(
    sd_jwt: str,
    verifier: Verifier,
    audience: Optional[str] = None,
    now: Optional[int] = None,
    *,
    recurse: bool = True,
    max_depth: int = DEFAULT_MAX_DEPTH,
    reject_digest_reuse: bool = True,
) -> tuple[bool, Optional[dict[str, Any]]]:
    """Verify the issuer signature of an SD-JWT and expand its disclosures.

    A bad signature or unacceptable time/audience claims yield ``(False, None)``;
    problems with the disclosures themselves are raised.

    Args:
        sd_jwt: SD-JWT in compact serialization
        verifier: Issuer verifier
        audience: Expected audience, if the token carries one
        now: Verification time
        recurse: Whether to expand nested objects and disclosed values
        max_depth: Maximum payload nesting depth
        reject_digest_reuse: Whether a repeated digest is an error

    Returns:
        Tuple of (is_valid, expanded payload if valid)
    """
    split = split_sd_jwt(sd_jwt)
    is_valid, payload = verify_jwt(split.jwt, verifier, audience=audience, now=now)
    if not is_valid or payload is None:
        return False, None
    return True, _expand(payload, split.disclosures, recurse, max_depth, reject_digest_reuse)


def select_disclosures(sd_jwt: str, claim_names: Collection[Any]) -> list[str]:
    """Pick the disclosures a holder wants to present.

    Object property disclosures are kept when their key is listed and array
    element disclosures when their value is listed.

    Args:
        sd_jwt: SD-JWT as received from the issuer
        claim_names: Claim names (and array element values) to reveal

    Returns:
        Selected disclosures in their original order
    """
    wanted = list(claim_names)
    selected = []
    for encoded in split_sd_jwt(sd_jwt).disclosures:
        disclosure = decode_disclosure(encoded)
        if isinstance(disclosure, ObjectPropertyDisclosure):
            if disclosure.key in wanted:
                selected.append(encoded)
        elif disclosure.value in wanted:
            selected.append(encoded)
    return selected


def create_presentation(
    sd_jwt: str, selected: Iterable[str], kb_jwt: Optional[str] = None
) -> str:
    """Re-emit an SD-JWT with only a subset of its disclosures.

    Raises:
        MalformedInput: If a selected disclosure was not issued with the SD-JWT
    """
    split = split_sd_jwt(sd_jwt)
    issued = set(split.disclosures)
    chosen = list(selected)
    for disclosure in chosen:
        if disclosure not in issued:
            raise MalformedInput("Selected disclosure is not part of the SD-JWT")
    logger.debug("Presenting %d of %d disclosures", len(chosen), len(split.disclosures))
    return form_sd_jwt(split.jwt, chosen, kb_jwt)
