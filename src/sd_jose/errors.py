"""Exceptions raised by sd-jose.

Every error derives from ValueError so that callers which only guard
against ValueError keep working.
"""


class SdJoseError(ValueError):
    """Base exception for sd-jose."""


class MalformedInput(SdJoseError):
    """Undecodable base64url or JSON, or a disclosure of the wrong shape."""


class UnsupportedAlgorithm(SdJoseError):
    """Unknown digest or encryption algorithm."""


class IntegrityViolation(SdJoseError):
    """Duplicate claim key, reserved-claim disclosure, or digest reuse."""


class ProtocolViolation(SdJoseError):
    """Envelope or encrypter set does not follow the protocol."""


class DecryptionFailure(SdJoseError):
    """No matching recipient, or authenticated decryption failed."""


class ResourceExhausted(SdJoseError):
    """Input nesting exceeds the configured depth limit."""
