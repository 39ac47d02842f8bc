"""JWE-style encryption envelope with pluggable encrypters and decrypters.

Two modes are supported:

- direct (``alg: "dir"``): one pre-shared content key, no recipient list
- multi-recipient: one content encryption key (cek) generated by the first
  encrypter and wrapped separately for every recipient

In both modes the envelope carries exactly one ciphertext and one tag.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from . import json_utils
from .errors import (
    DecryptionFailure,
    MalformedInput,
    ProtocolViolation,
    UnsupportedAlgorithm,
)

logger = logging.getLogger(__name__)

DIRECT_ALG = "dir"

_REQUIRED_MEMBERS = ("protected", "iv", "ciphertext", "tag")


@dataclass
class EphemeralKeyPair:
    """Ephemeral key agreement key; the public half travels as ``epk``."""

    public_key_jwk: dict[str, Any]
    private_key: Any


@dataclass
class EncryptionResult:
    """Output of an encrypter.

    ``protected_header`` is the base64url-encoded protected header exactly as
    it was used in the AAD.
    """

    ciphertext: bytes
    tag: bytes
    iv: bytes
    protected_header: str
    recipient: Optional[dict[str, Any]] = None
    cek: Optional[bytes] = None


class Encrypter(Protocol):
    """Protocol for content encrypters.

    Key wrapping encrypters additionally provide
    ``wrap_key(cek, ephemeral_key_pair=None) -> recipient dict`` and may provide
    ``generate_ephemeral_key_pair() -> EphemeralKeyPair``.
    """

    alg: str
    enc: str

    def encrypt(
        self,
        cleartext: bytes,
        protected_header: Mapping[str, Any],
        aad: Optional[bytes] = None,
        ephemeral_key_pair: Optional[EphemeralKeyPair] = None,
    ) -> EncryptionResult:
        """Encrypt cleartext under a fresh or pre-shared content key."""


class Decrypter(Protocol):
    """Protocol for content decrypters."""

    alg: str
    enc: str

    def decrypt(
        self,
        sealed: bytes,
        iv: bytes,
        aad: bytes,
        recipient: Optional[Mapping[str, Any]] = None,
    ) -> Optional[bytes]:
        """Decrypt ciphertext||tag.

        Returns:
            The cleartext, or None if this decrypter cannot open the envelope
            for the given recipient
        """


def compute_aad(protected: str, aad: Optional[str] = None) -> bytes:
    """Build the AEAD additional data from the encoded protected header and aad."""
    if aad:
        return f"{protected}.{aad}".encode("ascii")
    return protected.encode("ascii")


def encode_protected_header(header: Mapping[str, Any]) -> str:
    """Base64url-encode a protected header."""
    return json_utils.b64url_encode_json(dict(header))


def validate_jwe(jwe: Mapping[str, Any]) -> None:
    """Check that an envelope has every required member.

    Raises:
        ProtocolViolation: If protected, iv, ciphertext or tag is missing, or a
            recipient lacks header or encrypted_key
        MalformedInput: If aad is present but not base64url text
    """
    if not isinstance(jwe, Mapping):
        raise ProtocolViolation("JWE must be a JSON object")
    # An empty cleartext seals to an empty ciphertext
    missing = [
        name
        for name in _REQUIRED_MEMBERS
        if not isinstance(jwe.get(name), str) or (name != "ciphertext" and not jwe[name])
    ]
    if missing:
        raise ProtocolViolation(f"JWE is missing properties: {', '.join(missing)}")

    aad = jwe.get("aad")
    if aad is not None:
        json_utils.b64url_decode(aad)

    recipients = jwe.get("recipients")
    if recipients is None:
        return
    if not isinstance(recipients, list):
        raise ProtocolViolation("JWE recipients must be an array")
    for recipient in recipients:
        if (
            not isinstance(recipient, Mapping)
            or not isinstance(recipient.get("header"), Mapping)
            or not isinstance(recipient.get("encrypted_key"), str)
            or not recipient["encrypted_key"]
        ):
            raise ProtocolViolation("JWE has a malformed recipient")


def encode_jwe(result: EncryptionResult, aad: Optional[bytes] = None) -> dict[str, Any]:
    """Build the envelope for a single encryption result."""
    jwe: dict[str, Any] = {
        "protected": result.protected_header,
        "iv": json_utils.b64url_encode(result.iv or b""),
        "ciphertext": json_utils.b64url_encode(result.ciphertext),
        "tag": json_utils.b64url_encode(result.tag or b""),
    }
    if aad:
        jwe["aad"] = json_utils.b64url_encode(aad)
    if result.recipient:
        jwe["recipients"] = [result.recipient]
    return jwe


def create_jwe(
    cleartext: bytes,
    encrypters: Sequence[Encrypter],
    protected_header: Optional[Mapping[str, Any]] = None,
    aad: Optional[bytes] = None,
    use_single_ephemeral_key: bool = False,
) -> dict[str, Any]:
    """Encrypt cleartext for one or more recipients.

    Args:
        cleartext: Data to encrypt
        encrypters: One direct encrypter, or one or more key wrapping encrypters
            sharing the same content encryption algorithm
        protected_header: Additional protected header parameters
        aad: Optional additional authenticated data
        use_single_ephemeral_key: Generate one ephemeral key with the first
            encrypter and reuse it for every recipient

    Returns:
        Envelope dictionary

    Raises:
        ProtocolViolation: On an empty encrypter list, more than one direct
            encrypter, mixed content encryption algorithms, or a subsequent
            encrypter that cannot wrap the content key
    """
    if not encrypters:
        raise ProtocolViolation("At least one encrypter is required")
    header: dict[str, Any] = dict(protected_header or {})

    first = encrypters[0]
    if first.alg == DIRECT_ALG:
        if len(encrypters) > 1:
            raise ProtocolViolation('Can only do "dir" encryption to one key')
        return encode_jwe(first.encrypt(cleartext, header, aad), aad)

    if any(encrypter.enc != first.enc for encrypter in encrypters):
        raise ProtocolViolation("Incompatible encrypters passed")

    ephemeral_key_pair = None
    if use_single_ephemeral_key:
        generate = getattr(first, "generate_ephemeral_key_pair", None)
        if generate is None:
            raise ProtocolViolation(f"Encrypter {first.alg} cannot generate an ephemeral key")
        ephemeral_key_pair = generate()
        header = {**header, "alg": first.alg, "epk": ephemeral_key_pair.public_key_jwk}

    result = first.encrypt(cleartext, header, aad, ephemeral_key_pair)
    if result.cek is None:
        raise ProtocolViolation(f"Encrypter {first.alg} did not return a content key")
    jwe = encode_jwe(result, aad)
    recipients = jwe.setdefault("recipients", [])

    for encrypter in encrypters[1:]:
        wrap_key = getattr(encrypter, "wrap_key", None)
        if wrap_key is None:
            raise ProtocolViolation(f"Encrypter {encrypter.alg} cannot wrap a content key")
        recipients.append(wrap_key(result.cek, ephemeral_key_pair))

    logger.debug("Created JWE for %d recipient(s) using %s", len(recipients), first.enc)
    return jwe


def _decode_protected(jwe: Mapping[str, Any]) -> dict[str, Any]:
    header = json_utils.b64url_decode_json(jwe["protected"])
    if not json_utils.is_object(header):
        raise MalformedInput("JWE protected header must be a JSON object")
    return header


def decrypt_jwe(jwe: Mapping[str, Any], decrypter: Decrypter) -> bytes:
    """Decrypt an envelope with a single decrypter.

    Args:
        jwe: Envelope dictionary
        decrypter: Decrypter holding the recipient's key material

    Returns:
        The cleartext

    Raises:
        ProtocolViolation: If the envelope is incomplete or has no recipients
            for a non-direct decrypter
        MalformedInput: If the protected header or a binary member is not valid
        UnsupportedAlgorithm: If the envelope's enc differs from the decrypter's
        DecryptionFailure: If no recipient could be decrypted
    """
    validate_jwe(jwe)
    protected = _decode_protected(jwe)
    if protected.get("enc") != decrypter.enc:
        raise UnsupportedAlgorithm(f"Decrypter does not support: {protected.get('enc')!r}")

    sealed = json_utils.b64url_decode(jwe["ciphertext"]) + json_utils.b64url_decode(jwe["tag"])
    iv = json_utils.b64url_decode(jwe["iv"])
    aad = compute_aad(jwe["protected"], jwe.get("aad"))

    cleartext = None
    if protected.get("alg") == DIRECT_ALG and decrypter.alg == DIRECT_ALG:
        cleartext = decrypter.decrypt(sealed, iv, aad)
    else:
        recipients = jwe.get("recipients")
        if not recipients:
            raise ProtocolViolation("JWE is missing recipients")
        for index, recipient in enumerate(recipients):
            # Protected values take precedence over per-recipient values
            merged = {
                "header": {**recipient["header"], **protected},
                "encrypted_key": recipient["encrypted_key"],
            }
            if merged["header"].get("alg") != decrypter.alg:
                logger.debug("Skipping recipient %d with alg %s", index, merged["header"].get("alg"))
                continue
            cleartext = decrypter.decrypt(sealed, iv, aad, merged)
            if cleartext is not None:
                logger.debug("Decrypted JWE as recipient %d", index)
                break

    if cleartext is None:
        raise DecryptionFailure("Failed to decrypt")
    return cleartext
