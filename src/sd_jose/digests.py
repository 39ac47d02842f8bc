"""Disclosure digests and the digest to disclosure index."""

import hashlib
import logging
from collections.abc import Iterable, Iterator, Mapping

from . import json_utils
from .errors import IntegrityViolation, MalformedInput, UnsupportedAlgorithm

logger = logging.getLogger(__name__)

DEFAULT_SD_ALG = "sha-256"

# IANA "Named Information Hash Algorithm" names accepted in _sd_alg
_HASH_FUNCTIONS = {
    "sha-256": hashlib.sha256,
    "sha-384": hashlib.sha384,
    "sha-512": hashlib.sha512,
}

SUPPORTED_SD_ALGS = frozenset(_HASH_FUNCTIONS)


def hash_disclosure(disclosure: str, sd_alg: str = DEFAULT_SD_ALG) -> str:
    """Hash a disclosure transport string.

    The digest is computed over the ASCII bytes of the base64url string, not
    over the decoded claim.

    Args:
        disclosure: Base64url-encoded disclosure
        sd_alg: Hash algorithm name

    Returns:
        Base64url-encoded digest

    Raises:
        UnsupportedAlgorithm: If sd_alg is not a supported hash algorithm
    """
    hash_function = _HASH_FUNCTIONS.get(sd_alg)
    if hash_function is None:
        raise UnsupportedAlgorithm(f"Unsupported sd_alg: {sd_alg}")
    try:
        data = disclosure.encode("ascii")
    except (AttributeError, UnicodeEncodeError) as e:
        raise MalformedInput("Disclosure must be base64url text") from e
    return json_utils.b64url_encode(hash_function(data).digest())


class DigestIndex(Mapping[str, str]):
    """Read-only mapping from digest to the disclosure that produced it."""

    def __init__(self, entries: Mapping[str, str], sd_alg: str):
        self._entries = dict(entries)
        self.sd_alg = sd_alg

    def __getitem__(self, digest: str) -> str:
        return self._entries[digest]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"DigestIndex(sd_alg={self.sd_alg!r}, size={len(self)})"


def build_digest_index(disclosures: Iterable[str], sd_alg: str = DEFAULT_SD_ALG) -> DigestIndex:
    """Compute disclosure digests so they can be looked up from the payload.

    Args:
        disclosures: Base64url-encoded disclosures as presented
        sd_alg: Hash algorithm named by the payload's _sd_alg

    Returns:
        DigestIndex mapping each digest to its disclosure

    Raises:
        UnsupportedAlgorithm: If sd_alg is not supported
        IntegrityViolation: If two different disclosures share a digest
    """
    if sd_alg not in _HASH_FUNCTIONS:
        raise UnsupportedAlgorithm(f"Unsupported sd_alg: {sd_alg}")

    entries: dict[str, str] = {}
    for disclosure in disclosures:
        digest = hash_disclosure(disclosure, sd_alg)
        existing = entries.get(digest)
        if existing is not None and existing != disclosure:
            raise IntegrityViolation(f"Digest collision between distinct disclosures: {digest}")
        entries[digest] = disclosure

    logger.debug("Built digest index with %d entries using %s", len(entries), sd_alg)
    return DigestIndex(entries, sd_alg)
