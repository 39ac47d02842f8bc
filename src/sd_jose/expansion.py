"""Reconstruction of selectively disclosed claims.

The expander walks a signed SD-JWT payload, replaces every digest for which
a disclosure was presented by the disclosed claim, drops the digests the
holder withheld and strips the ``_sd`` / ``_sd_alg`` bookkeeping members.
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any, Optional

from .disclosure import (
    ArrayElementDisclosure,
    ObjectPropertyDisclosure,
    parse_array_element_disclosure,
    parse_object_property_disclosure,
)
from .errors import IntegrityViolation, MalformedInput, ResourceExhausted

logger = logging.getLogger(__name__)

SD_DIGESTS_KEY = "_sd"
SD_ALG_KEY = "_sd_alg"
ARRAY_DIGEST_KEY = "..."

DEFAULT_MAX_DEPTH = 64

# Claims that govern token validity MUST be clear text
VALIDITY_CLAIMS = frozenset({"nbf", "iat", "exp"})
STRUCTURAL_CLAIMS = frozenset({SD_DIGESTS_KEY, SD_ALG_KEY, ARRAY_DIGEST_KEY})
RESERVED_DISCLOSURE_KEYS = VALIDITY_CLAIMS | STRUCTURAL_CLAIMS


def is_valid_disclosure_key(key: str) -> bool:
    """Check that a disclosed claim name is allowed to come from a disclosure."""
    return key not in RESERVED_DISCLOSURE_KEYS


class DisclosureExpander:
    """Expands one payload against one digest index.

    An instance tracks the digests it has consumed, so it must not be reused
    across payloads; use expand_disclosures() for one-shot expansion.
    """

    def __init__(
        self,
        disclosure_map: Mapping[str, str],
        recurse: bool = True,
        max_depth: int = DEFAULT_MAX_DEPTH,
        reject_digest_reuse: bool = True,
    ):
        """Initialize the expander.

        Args:
            disclosure_map: Digest to disclosure mapping for the presented disclosures
            recurse: Whether to descend into nested objects and disclosed values
            max_depth: Maximum nesting depth before ResourceExhausted is raised
            reject_digest_reuse: Raise IntegrityViolation if a digest appears twice
        """
        self.disclosure_map = disclosure_map
        self.recurse = recurse
        self.max_depth = max_depth
        self.reject_digest_reuse = reject_digest_reuse
        self._consumed: set[str] = set()

    def expand(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Expand a payload object; the input is never modified."""
        if not isinstance(payload, Mapping):
            raise MalformedInput(f"Payload must be a JSON object, got {type(payload).__name__}")
        try:
            working_copy = copy.deepcopy(dict(payload))
        except RecursionError as e:
            raise ResourceExhausted("Payload nesting is too deep to copy") from e
        return self._expand_object(working_copy, 0)

    def _check_depth(self, depth: int) -> None:
        if depth > self.max_depth:
            raise ResourceExhausted(f"Payload nesting exceeds maximum depth of {self.max_depth}")

    def _consume(self, digest: Any) -> Optional[str]:
        """Return the disclosure for a digest, or None if the holder withheld it."""
        if not isinstance(digest, str):
            raise MalformedInput(f"Digest must be a string, got {type(digest).__name__}")
        if self.reject_digest_reuse:
            if digest in self._consumed:
                raise IntegrityViolation(f"Digest appears more than once: {digest}")
            self._consumed.add(digest)
        disclosure = self.disclosure_map.get(digest)
        if disclosure is None:
            logger.debug("Digest not disclosed: %s", digest)
        return disclosure

    def _expand_value(self, value: Any, depth: int) -> Any:
        if isinstance(value, dict):
            return self._expand_object(value, depth) if self.recurse else value
        if isinstance(value, list):
            return self._expand_array(value, depth)
        return value

    def _expand_nested(self, value: Any, depth: int) -> Any:
        if self.recurse:
            return self._expand_value(value, depth)
        return value

    def _expand_object(self, node: dict[str, Any], depth: int) -> dict[str, Any]:
        self._check_depth(depth)

        for key, value in list(node.items()):
            if key == SD_DIGESTS_KEY:
                continue
            node[key] = self._expand_value(value, depth + 1)

        digests = node.pop(SD_DIGESTS_KEY, [])
        node.pop(SD_ALG_KEY, None)
        if not isinstance(digests, list):
            raise MalformedInput(f"{SD_DIGESTS_KEY} must be an array of digests")

        for digest in digests:
            encoded = self._consume(digest)
            if encoded is None:
                continue
            disclosure = parse_object_property_disclosure(encoded)
            self._apply_object_disclosure(node, disclosure, depth)

        return node

    def _apply_object_disclosure(
        self, node: dict[str, Any], disclosure: ObjectPropertyDisclosure, depth: int
    ) -> None:
        if not is_valid_disclosure_key(disclosure.key):
            raise IntegrityViolation(f"Claim may not be selectively disclosed: {disclosure.key}")
        if disclosure.key in node:
            raise IntegrityViolation(f"Disclosed claim duplicates existing claim: {disclosure.key}")
        node[disclosure.key] = self._expand_nested(disclosure.value, depth + 1)

    def _expand_array(self, elements: list[Any], depth: int) -> list[Any]:
        self._check_depth(depth)

        expanded = []
        for element in elements:
            if isinstance(element, dict) and ARRAY_DIGEST_KEY in element:
                encoded = self._consume(element[ARRAY_DIGEST_KEY])
                if encoded is None:
                    continue
                disclosure = parse_array_element_disclosure(encoded)
                self._apply_array_disclosure(expanded, disclosure, depth)
            elif isinstance(element, (dict, list)):
                expanded.append(self._expand_nested(element, depth + 1))
            else:
                expanded.append(element)
        return expanded

    def _apply_array_disclosure(
        self, expanded: list[Any], disclosure: ArrayElementDisclosure, depth: int
    ) -> None:
        expanded.append(self._expand_nested(disclosure.value, depth + 1))


def expand_disclosures(
    payload: Mapping[str, Any],
    disclosure_map: Mapping[str, str],
    recurse: bool = True,
    max_depth: int = DEFAULT_MAX_DEPTH,
    reject_digest_reuse: bool = True,
) -> dict[str, Any]:
    """Replace disclosure digests in a payload with the disclosed claims.

    Digests without a presented disclosure are dropped silently; that is how
    a holder withholds a claim.

    Args:
        payload: Decoded SD-JWT payload (not modified)
        disclosure_map: Digest to disclosure mapping, see build_digest_index()
        recurse: Whether to descend into nested objects and disclosed values
        max_depth: Maximum nesting depth
        reject_digest_reuse: Raise IntegrityViolation if a digest appears twice

    Returns:
        New payload with disclosed claims in place and no _sd/_sd_alg members

    Raises:
        MalformedInput: If a disclosure or digest list cannot be decoded
        IntegrityViolation: On reserved or duplicate claim names, or digest reuse
        ResourceExhausted: If nesting exceeds max_depth
    """
    expander = DisclosureExpander(
        disclosure_map,
        recurse=recurse,
        max_depth=max_depth,
        reject_digest_reuse=reject_digest_reuse,
    )
    return expander.expand(payload)
