"""Issuer-side construction of SD-JWT payloads.

Clear claims are copied into the payload as-is. Each claim to be redacted
becomes a disclosure whose digest goes into ``_sd``; claims listed as array
claims get one disclosure per element and an array of ``{"...": digest}``
placeholders instead.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from .digests import DEFAULT_SD_ALG, hash_disclosure
from .disclosure import (
    RenderMode,
    SaltGenerator,
    create_array_element_disclosure,
    create_object_property_disclosure,
)
from .errors import IntegrityViolation
from .expansion import (
    ARRAY_DIGEST_KEY,
    SD_ALG_KEY,
    SD_DIGESTS_KEY,
    STRUCTURAL_CLAIMS,
    VALIDITY_CLAIMS,
)


@dataclass
class SdPayloadResult:
    """An SD-JWT payload and every disclosure the issuer created for it."""

    payload: dict[str, Any]
    disclosures: dict[str, str] = field(default_factory=dict)

    @property
    def disclosure_list(self) -> list[str]:
        """Disclosures in creation order, ready for form_sd_jwt()."""
        return list(self.disclosures.values())


def _check_redactable(key: str) -> None:
    if key in VALIDITY_CLAIMS:
        raise IntegrityViolation(f"Claim must be disclosed in clear text: {key}")
    if key in STRUCTURAL_CLAIMS:
        raise IntegrityViolation(f"Reserved claim name cannot be redacted: {key}")


def assemble_sd_payload(
    clear_claims: Mapping[str, Any],
    redact_claims: Mapping[str, Any],
    sd_alg: str = DEFAULT_SD_ALG,
    *,
    array_claims: Iterable[str] = (),
    render_mode: RenderMode = RenderMode.COMPACT,
    salt_generator: Optional[SaltGenerator] = None,
    include_sd_alg: bool = True,
) -> SdPayloadResult:
    """Build a payload with redaction markers and the matching disclosures.

    Args:
        clear_claims: Claims that stay visible in the signed payload
        redact_claims: Claims the holder may choose to reveal
        sd_alg: Digest algorithm for the disclosures
        array_claims: Keys of redact_claims whose array value is redacted per element
        render_mode: JSON rendering for the disclosures
        salt_generator: Optional custom salt generator
        include_sd_alg: Whether to emit _sd_alg (disable for nested payloads)

    Returns:
        SdPayloadResult with the payload and the digest to disclosure map

    Raises:
        IntegrityViolation: If a validity or reserved claim is redacted, or a
            key appears in both clear_claims and redact_claims, or clear_claims
            uses a reserved claim name
        UnsupportedAlgorithm: If sd_alg is not supported
    """
    per_element = set(array_claims)
    overlap = set(clear_claims) & set(redact_claims)
    if overlap:
        raise IntegrityViolation(f"Claims both clear and redacted: {', '.join(sorted(overlap))}")
    reserved = STRUCTURAL_CLAIMS.intersection(clear_claims)
    if reserved:
        raise IntegrityViolation(f"Reserved claim name in clear claims: {', '.join(sorted(reserved))}")

    disclosures: dict[str, str] = {}
    sd_digests: list[str] = []
    wrapped_arrays: dict[str, list[dict[str, str]]] = {}

    for key, value in redact_claims.items():
        _check_redactable(key)

        if key in per_element and isinstance(value, list):
            wrappers = []
            for element in value:
                disclosure = create_array_element_disclosure(
                    element, render_mode=render_mode, salt_generator=salt_generator
                )
                digest = hash_disclosure(disclosure, sd_alg)
                disclosures[digest] = disclosure
                wrappers.append({ARRAY_DIGEST_KEY: digest})
            wrapped_arrays[key] = wrappers
        else:
            disclosure = create_object_property_disclosure(
                key, value, render_mode=render_mode, salt_generator=salt_generator
            )
            digest = hash_disclosure(disclosure, sd_alg)
            disclosures[digest] = disclosure
            sd_digests.append(digest)

    payload: dict[str, Any] = {}
    if include_sd_alg:
        payload[SD_ALG_KEY] = sd_alg
    if sd_digests:
        # Sorted so the digest order does not reveal the original claim order
        payload[SD_DIGESTS_KEY] = sorted(sd_digests)
    payload.update(wrapped_arrays)
    payload.update(clear_claims)

    return SdPayloadResult(payload=payload, disclosures=disclosures)


def make_selectively_disclosable(
    claims: Mapping[str, Any],
    sd_alg: str = DEFAULT_SD_ALG,
    salt_generator: Optional[SaltGenerator] = None,
) -> dict[str, str]:
    """Turn every claim of a flat claim set into an object property disclosure.

    Args:
        claims: Claims to make selectively disclosable
        sd_alg: Digest algorithm
        salt_generator: Optional custom salt generator

    Returns:
        Mapping of digest to disclosure
    """
    result = assemble_sd_payload({}, claims, sd_alg, salt_generator=salt_generator)
    return result.disclosures
