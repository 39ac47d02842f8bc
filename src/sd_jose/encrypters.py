"""Encrypters and decrypters for the encryption envelope.

All of them use A256GCM for content encryption. Key management:

- ``dir``: the content key is pre-shared
- ``A256KW``: the content key is wrapped with a pre-shared key encryption key
- ``ECDH-ES+A256KW``: the key encryption key is agreed with X25519 and derived
  with the Concat KDF of RFC 7518 section 4.6
"""

import logging
import os
import struct
from collections.abc import Mapping
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.concatkdf import ConcatKDFHash
from cryptography.hazmat.primitives.keywrap import InvalidUnwrap, aes_key_unwrap, aes_key_wrap

from . import json_utils
from .encryption import (
    DIRECT_ALG,
    EncryptionResult,
    EphemeralKeyPair,
    compute_aad,
    encode_protected_header,
)
from .errors import MalformedInput

logger = logging.getLogger(__name__)

CONTENT_ENC = "A256GCM"
KEY_WRAP_ALG = "A256KW"
ECDH_ES_KEY_WRAP_ALG = "ECDH-ES+A256KW"

AES_256_KEY_SIZE = 32
GCM_IV_SIZE = 12
GCM_TAG_SIZE = 16


def _check_key(key: bytes, name: str) -> bytes:
    if not isinstance(key, bytes) or len(key) != AES_256_KEY_SIZE:
        raise ValueError(f"{name} must be {AES_256_KEY_SIZE} bytes")
    return key


def seal_content(
    cek: bytes,
    cleartext: bytes,
    protected_header: Mapping[str, Any],
    aad: Optional[bytes] = None,
) -> EncryptionResult:
    """Encrypt cleartext with A256GCM under a content key.

    The encoded protected header (and aad, if any) is authenticated.
    """
    protected = encode_protected_header(protected_header)
    additional_data = compute_aad(protected, json_utils.b64url_encode(aad) if aad else None)
    iv = os.urandom(GCM_IV_SIZE)
    sealed = AESGCM(cek).encrypt(iv, cleartext, additional_data)
    return EncryptionResult(
        ciphertext=sealed[:-GCM_TAG_SIZE],
        tag=sealed[-GCM_TAG_SIZE:],
        iv=iv,
        protected_header=protected,
    )


def open_content(cek: bytes, sealed: bytes, iv: bytes, aad: bytes) -> Optional[bytes]:
    """Decrypt ciphertext||tag with A256GCM, returning None on authentication failure."""
    if len(iv) != GCM_IV_SIZE:
        raise MalformedInput(f"A256GCM requires a {GCM_IV_SIZE}-byte IV, got {len(iv)}")
    try:
        return AESGCM(cek).decrypt(iv, sealed, aad)
    except InvalidTag:
        logger.debug("Content decryption failed authentication")
        return None


def _kid_matches(recipient: Mapping[str, Any], kid: Optional[str]) -> bool:
    if kid is None:
        return True
    recipient_kid = recipient.get("header", {}).get("kid")
    return recipient_kid is None or recipient_kid == kid


def _unwrap(kek: bytes, recipient: Mapping[str, Any]) -> Optional[bytes]:
    encrypted_key = json_utils.b64url_decode(recipient["encrypted_key"])
    try:
        return aes_key_unwrap(kek, encrypted_key)
    except InvalidUnwrap:
        logger.debug("Key unwrap failed for recipient")
        return None


class DirectEncrypter:
    """Encrypts directly with a pre-shared 256-bit content key."""

    alg = DIRECT_ALG
    enc = CONTENT_ENC

    def __init__(self, key: bytes):
        self.key = _check_key(key, "Content key")

    def encrypt(
        self,
        cleartext: bytes,
        protected_header: Mapping[str, Any],
        aad: Optional[bytes] = None,
        ephemeral_key_pair: Optional[EphemeralKeyPair] = None,
    ) -> EncryptionResult:
        header = {**protected_header, "alg": self.alg, "enc": self.enc}
        return seal_content(self.key, cleartext, header, aad)


class DirectDecrypter:
    """Decrypts with a pre-shared 256-bit content key."""

    alg = DIRECT_ALG
    enc = CONTENT_ENC

    def __init__(self, key: bytes):
        self.key = _check_key(key, "Content key")

    def decrypt(
        self,
        sealed: bytes,
        iv: bytes,
        aad: bytes,
        recipient: Optional[Mapping[str, Any]] = None,
    ) -> Optional[bytes]:
        return open_content(self.key, sealed, iv, aad)


class _KeyWrappingEncrypter:
    """Shared content encryption for encrypters that wrap a fresh content key."""

    alg: str
    enc = CONTENT_ENC

    def encrypt(
        self,
        cleartext: bytes,
        protected_header: Mapping[str, Any],
        aad: Optional[bytes] = None,
        ephemeral_key_pair: Optional[EphemeralKeyPair] = None,
    ) -> EncryptionResult:
        cek = AESGCM.generate_key(bit_length=256)
        result = seal_content(cek, cleartext, {**protected_header, "enc": self.enc}, aad)
        result.recipient = self.wrap_key(cek, ephemeral_key_pair)
        result.cek = cek
        return result

    def wrap_key(
        self, cek: bytes, ephemeral_key_pair: Optional[EphemeralKeyPair] = None
    ) -> dict[str, Any]:
        raise NotImplementedError


class A256KWEncrypter(_KeyWrappingEncrypter):
    """Wraps the content key with a pre-shared AES-256 key encryption key."""

    alg = KEY_WRAP_ALG

    def __init__(self, kek: bytes, kid: Optional[str] = None):
        self.kek = _check_key(kek, "Key encryption key")
        self.kid = kid

    def wrap_key(
        self, cek: bytes, ephemeral_key_pair: Optional[EphemeralKeyPair] = None
    ) -> dict[str, Any]:
        header: dict[str, Any] = {"alg": self.alg}
        if self.kid is not None:
            header["kid"] = self.kid
        return {
            "header": header,
            "encrypted_key": json_utils.b64url_encode(aes_key_wrap(self.kek, cek)),
        }


class A256KWDecrypter:
    """Unwraps the content key with a pre-shared AES-256 key encryption key."""

    alg = KEY_WRAP_ALG
    enc = CONTENT_ENC

    def __init__(self, kek: bytes, kid: Optional[str] = None):
        self.kek = _check_key(kek, "Key encryption key")
        self.kid = kid

    def decrypt(
        self,
        sealed: bytes,
        iv: bytes,
        aad: bytes,
        recipient: Optional[Mapping[str, Any]] = None,
    ) -> Optional[bytes]:
        if recipient is None or not _kid_matches(recipient, self.kid):
            return None
        cek = _unwrap(self.kek, recipient)
        if cek is None:
            return None
        return open_content(cek, sealed, iv, aad)


def _length_prefixed(data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + data


def derive_key_encryption_key(
    shared_secret: bytes,
    alg: str = ECDH_ES_KEY_WRAP_ALG,
    apu: bytes = b"",
    apv: bytes = b"",
) -> bytes:
    """Derive a 256-bit key encryption key with the JWA Concat KDF.

    Args:
        shared_secret: X25519 shared secret
        alg: Algorithm identifier bound into the derivation
        apu: Agreement PartyUInfo
        apv: Agreement PartyVInfo

    Returns:
        32-byte key encryption key
    """
    other_info = (
        _length_prefixed(alg.encode("ascii"))
        + _length_prefixed(apu)
        + _length_prefixed(apv)
        + struct.pack(">I", AES_256_KEY_SIZE * 8)
    )
    kdf = ConcatKDFHash(algorithm=hashes.SHA256(), length=AES_256_KEY_SIZE, otherinfo=other_info)
    return kdf.derive(shared_secret)


def x25519_public_jwk(public_key: X25519PublicKey, kid: Optional[str] = None) -> dict[str, str]:
    """Express an X25519 public key as an OKP JWK."""
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
    )
    jwk = {"kty": "OKP", "crv": "X25519", "x": json_utils.b64url_encode(raw)}
    if kid is not None:
        jwk["kid"] = kid
    return jwk


def x25519_public_key_from_jwk(jwk: Any) -> X25519PublicKey:
    """Load an X25519 public key from an OKP JWK.

    Raises:
        MalformedInput: If the JWK is not a well-formed X25519 key
    """
    if not isinstance(jwk, Mapping) or jwk.get("kty") != "OKP" or jwk.get("crv") != "X25519":
        raise MalformedInput("Ephemeral key must be an X25519 OKP JWK")
    try:
        return X25519PublicKey.from_public_bytes(json_utils.b64url_decode(jwk.get("x")))
    except ValueError as e:
        raise MalformedInput(f"Invalid X25519 public key: {e}") from e


class X25519Encrypter(_KeyWrappingEncrypter):
    """ECDH-ES+A256KW encrypter for one X25519 recipient."""

    alg = ECDH_ES_KEY_WRAP_ALG

    def __init__(self, recipient_public_key: X25519PublicKey, kid: Optional[str] = None):
        self.recipient_public_key = recipient_public_key
        self.kid = kid

    def generate_ephemeral_key_pair(self) -> EphemeralKeyPair:
        private_key = X25519PrivateKey.generate()
        return EphemeralKeyPair(
            public_key_jwk=x25519_public_jwk(private_key.public_key()),
            private_key=private_key,
        )

    def wrap_key(
        self, cek: bytes, ephemeral_key_pair: Optional[EphemeralKeyPair] = None
    ) -> dict[str, Any]:
        if ephemeral_key_pair is None:
            ephemeral_key_pair = self.generate_ephemeral_key_pair()
        shared_secret = ephemeral_key_pair.private_key.exchange(self.recipient_public_key)
        kek = derive_key_encryption_key(shared_secret, self.alg)

        header: dict[str, Any] = {"alg": self.alg, "epk": ephemeral_key_pair.public_key_jwk}
        if self.kid is not None:
            header["kid"] = self.kid
        return {
            "header": header,
            "encrypted_key": json_utils.b64url_encode(aes_key_wrap(kek, cek)),
        }


class X25519Decrypter:
    """ECDH-ES+A256KW decrypter holding an X25519 private key."""

    alg = ECDH_ES_KEY_WRAP_ALG
    enc = CONTENT_ENC

    def __init__(self, private_key: X25519PrivateKey, kid: Optional[str] = None):
        self.private_key = private_key
        self.kid = kid

    def decrypt(
        self,
        sealed: bytes,
        iv: bytes,
        aad: bytes,
        recipient: Optional[Mapping[str, Any]] = None,
    ) -> Optional[bytes]:
        if recipient is None or not _kid_matches(recipient, self.kid):
            return None
        ephemeral_public_key = x25519_public_key_from_jwk(recipient["header"].get("epk"))
        shared_secret = self.private_key.exchange(ephemeral_public_key)
        kek = derive_key_encryption_key(shared_secret, self.alg)
        cek = _unwrap(kek, recipient)
        if cek is None:
            return None
        return open_content(cek, sealed, iv, aad)
