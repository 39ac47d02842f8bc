"""Disclosure creation, encoding and parsing for SD-JWT.

A disclosure is the salted claim an issuer can later reveal. Object
properties are disclosed as ``[salt, key, value]`` and array elements as
``[salt, value]``; both travel as base64url-encoded JSON text.
"""

import enum
import random
import secrets
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

from . import json_utils
from .errors import MalformedInput

MINIMUM_SALT_LENGTH = 16


class RenderMode(enum.Enum):
    """How a disclosure array is rendered before base64url encoding.

    COMPACT is the default. REFERENCE stringifies each element on its own and
    joins them with ", ", which byte-matches the published SD-JWT examples.
    """

    COMPACT = "compact"
    REFERENCE = "reference"


@dataclass(frozen=True)
class ObjectPropertyDisclosure:
    """Disclosure of a single object member."""

    salt: str
    key: str
    value: Any

    def to_array(self) -> list[Any]:
        return [self.salt, self.key, self.value]


@dataclass(frozen=True)
class ArrayElementDisclosure:
    """Disclosure of a single array element."""

    salt: str
    value: Any

    def to_array(self) -> list[Any]:
        return [self.salt, self.value]


Disclosure = Union[ObjectPropertyDisclosure, ArrayElementDisclosure]


class SaltGenerator(Protocol):
    """Protocol for generating salts for disclosures."""

    def generate_salt(self, length: int = MINIMUM_SALT_LENGTH) -> bytes:
        """Generate a salt.

        Args:
            length: Salt length in bytes (default 16 for 128 bits)

        Returns:
            Random salt bytes
        """


class SecureSaltGenerator:
    """Cryptographically secure salt generator using secrets module."""

    def generate_salt(self, length: int = MINIMUM_SALT_LENGTH) -> bytes:
        return secrets.token_bytes(length)


class SeededSaltGenerator:
    """Deterministic salt generator for testing purposes.

    WARNING: This generator is NOT cryptographically secure and should
    only be used for testing and reproducible examples.
    """

    def __init__(self, seed: int = 42):
        self._random = random.Random(seed)

    def generate_salt(self, length: int = MINIMUM_SALT_LENGTH) -> bytes:
        return bytes(self._random.getrandbits(8) for _ in range(length))


_default_salt_generator = SecureSaltGenerator()


def create_salt(
    length: int = MINIMUM_SALT_LENGTH, salt_generator: Optional[SaltGenerator] = None
) -> str:
    """Generate a base64url-encoded salt.

    Args:
        length: Number of random bytes, at least 16
        salt_generator: Optional custom salt generator (uses secure default if None)

    Returns:
        Base64url text of the random bytes

    Raises:
        ValueError: If length is below the 128-bit minimum
    """
    if length < MINIMUM_SALT_LENGTH:
        raise ValueError(f"Salt must be at least {MINIMUM_SALT_LENGTH} bytes, got {length}")
    if salt_generator is None:
        salt_generator = _default_salt_generator
    return json_utils.b64url_encode(salt_generator.generate_salt(length))


def render_disclosure(disclosure: Disclosure, render_mode: RenderMode = RenderMode.COMPACT) -> str:
    """Render a disclosure array as JSON text in the requested mode."""
    elements = disclosure.to_array()
    if render_mode is RenderMode.REFERENCE:
        return "[" + ", ".join(json_utils.encode_spaced(element) for element in elements) + "]"
    return json_utils.encode(elements)


def encode_disclosure(disclosure: Disclosure, render_mode: RenderMode = RenderMode.COMPACT) -> str:
    """Encode a disclosure into its base64url transport string.

    The rendering chosen here is what gets digested, so a disclosure must be
    encoded exactly once and the resulting string carried around unchanged.
    """
    rendered = render_disclosure(disclosure, render_mode)
    return json_utils.b64url_encode(rendered.encode("utf-8"))


def create_object_property_disclosure(
    key: str,
    value: Any,
    salt: Optional[str] = None,
    render_mode: RenderMode = RenderMode.COMPACT,
    salt_generator: Optional[SaltGenerator] = None,
) -> str:
    """Create and encode an object property disclosure.

    Passing a salt is only meant for reproducing published test vectors.

    Args:
        key: Claim name
        value: Claim value (any JSON value)
        salt: Optional explicit salt
        render_mode: JSON rendering used for the transport string
        salt_generator: Optional custom salt generator

    Returns:
        Base64url-encoded disclosure
    """
    if salt is None:
        salt = create_salt(salt_generator=salt_generator)
    return encode_disclosure(ObjectPropertyDisclosure(salt=salt, key=key, value=value), render_mode)


def create_array_element_disclosure(
    value: Any,
    salt: Optional[str] = None,
    render_mode: RenderMode = RenderMode.COMPACT,
    salt_generator: Optional[SaltGenerator] = None,
) -> str:
    """Create and encode an array element disclosure.

    Args:
        value: Array element (any JSON value)
        salt: Optional explicit salt
        render_mode: JSON rendering used for the transport string
        salt_generator: Optional custom salt generator

    Returns:
        Base64url-encoded disclosure
    """
    if salt is None:
        salt = create_salt(salt_generator=salt_generator)
    return encode_disclosure(ArrayElementDisclosure(salt=salt, value=value), render_mode)


def _decode_array(encoded: str) -> list[Any]:
    decoded = json_utils.b64url_decode_json(encoded)
    if not json_utils.is_array(decoded):
        raise MalformedInput(f"Disclosure must be a JSON array, got {type(decoded).__name__}")
    if not decoded or not isinstance(decoded[0], str):
        raise MalformedInput("Disclosure salt must be a string")
    return decoded


def parse_object_property_disclosure(encoded: str) -> ObjectPropertyDisclosure:
    """Decode a transport string that must hold an object property disclosure.

    Raises:
        MalformedInput: If the content is not a 3-element array with string salt and key
    """
    decoded = _decode_array(encoded)
    if len(decoded) != 3:
        raise MalformedInput(
            f"Object property disclosure must have exactly 3 elements, got {len(decoded)}"
        )
    salt, key, value = decoded
    if not isinstance(key, str):
        raise MalformedInput("Object property disclosure key must be a string")
    return ObjectPropertyDisclosure(salt=salt, key=key, value=value)


def parse_array_element_disclosure(encoded: str) -> ArrayElementDisclosure:
    """Decode a transport string that must hold an array element disclosure.

    Raises:
        MalformedInput: If the content is not a 2-element array with a string salt
    """
    decoded = _decode_array(encoded)
    if len(decoded) != 2:
        raise MalformedInput(
            f"Array element disclosure must have exactly 2 elements, got {len(decoded)}"
        )
    salt, value = decoded
    return ArrayElementDisclosure(salt=salt, value=value)


def decode_disclosure(encoded: str) -> Disclosure:
    """Decode a transport string of either kind, telling them apart by arity.

    Raises:
        MalformedInput: If the content is not a 2- or 3-element disclosure array
    """
    decoded = _decode_array(encoded)
    if len(decoded) == 3:
        return parse_object_property_disclosure(encoded)
    if len(decoded) == 2:
        return parse_array_element_disclosure(encoded)
    raise MalformedInput(f"Disclosure must have 2 or 3 elements, got {len(decoded)}")
