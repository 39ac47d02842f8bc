"""JSON and base64url utilities module.

This module provides a unified interface for the serialization operations
used across the package, so that rendering choices (which are part of every
disclosure digest) live in exactly one place.
"""

import base64
import binascii
import json
from typing import Any, Union

from .errors import MalformedInput, ResourceExhausted

JSONDecodeError = json.JSONDecodeError


def encode(obj: Any, canonical: bool = False) -> str:
    """Encode an object to compact JSON text.

    Args:
        obj: The object to encode
        canonical: Whether to sort object members (deterministic output)

    Returns:
        JSON text with no insignificant whitespace and raw UTF-8 characters
    """
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, sort_keys=canonical)


def encode_spaced(obj: Any) -> str:
    """Encode an object using ", " and ": " separators.

    This is the rendering used by the published SD-JWT examples.
    """
    return json.dumps(obj, ensure_ascii=False)


def decode(data: Union[str, bytes]) -> Any:
    """Decode JSON text to an object.

    Args:
        data: JSON text or UTF-8 bytes

    Returns:
        The decoded object

    Raises:
        MalformedInput: If the data is not valid JSON
        ResourceExhausted: If the data is nested too deeply to parse
    """
    try:
        return json.loads(data)
    except (JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedInput(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise ResourceExhausted("JSON nesting is too deep to parse") from e


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url text."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Decode unpadded (or padded) base64url text.

    Raises:
        MalformedInput: If the text is not valid base64url
    """
    if not isinstance(data, str):
        raise MalformedInput(f"Expected base64url text, got {type(data).__name__}")
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedInput(f"Invalid base64url: {e}") from e


def b64url_encode_json(obj: Any) -> str:
    """Serialize an object compactly and base64url-encode the UTF-8 bytes."""
    return b64url_encode(encode(obj).encode("utf-8"))


def b64url_decode_json(data: str) -> Any:
    """Base64url-decode text and parse the result as JSON."""
    return decode(b64url_decode(data))


def is_object(obj: Any) -> bool:
    """Check if a decoded JSON value is an object."""
    return isinstance(obj, dict)


def is_array(obj: Any) -> bool:
    """Check if a decoded JSON value is an array."""
    return isinstance(obj, list)
