"""Structural validation utilities for SD-JWT tokens, disclosures and envelopes.

Validators report problems in a result dictionary instead of raising, which
makes them convenient for diagnostics and tooling.
"""

from collections.abc import Mapping
from typing import Any

from . import json_utils
from .digests import SUPPORTED_SD_ALGS
from .disclosure import decode_disclosure
from .encryption import validate_jwe
from .errors import SdJoseError
from .expansion import SD_ALG_KEY, SD_DIGESTS_KEY
from .jws import decode_jwt
from .sd_jwt import split_sd_jwt


class SdJwtValidator:
    """High-level validator for SD-JWT tokens."""

    def validate_token(self, sd_jwt: str) -> dict[str, Any]:
        """Validate the structure of an SD-JWT in compact serialization.

        Args:
            sd_jwt: SD-JWT string

        Returns:
            Validation results dictionary
        """
        results: dict[str, Any] = {
            "valid": False,
            "format_valid": False,
            "disclosure_count": 0,
            "has_kb_jwt": False,
            "has_redacted_claims": False,
            "sd_alg": None,
            "errors": [],
        }

        try:
            split = split_sd_jwt(sd_jwt)
            decoded = decode_jwt(split.jwt)
        except SdJoseError as e:
            results["errors"].append(f"Failed to parse token: {e}")
            return results

        results["format_valid"] = True
        results["disclosure_count"] = len(split.disclosures)
        results["has_kb_jwt"] = split.kb_jwt is not None

        payload = decoded.payload
        if SD_DIGESTS_KEY in payload:
            results["has_redacted_claims"] = True
            digests = payload[SD_DIGESTS_KEY]
            if not isinstance(digests, list) or not all(isinstance(d, str) for d in digests):
                results["errors"].append(f"{SD_DIGESTS_KEY} must be an array of strings")

        if SD_ALG_KEY in payload:
            results["sd_alg"] = payload[SD_ALG_KEY]
            if payload[SD_ALG_KEY] not in SUPPORTED_SD_ALGS:
                results["errors"].append(f"Unsupported {SD_ALG_KEY}: {payload[SD_ALG_KEY]}")

        for position, disclosure in enumerate(split.disclosures):
            disclosure_result = self.validate_disclosure(disclosure)
            for error in disclosure_result["errors"]:
                results["errors"].append(f"Disclosure {position}: {error}")

        results["valid"] = len(results["errors"]) == 0
        return results

    def validate_disclosure(self, disclosure: str) -> dict[str, Any]:
        """Validate a single disclosure.

        Args:
            disclosure: Base64url-encoded disclosure

        Returns:
            Validation results dictionary; ``kind`` is "object_property" or
            "array_element" when the format is valid
        """
        results: dict[str, Any] = {
            "valid": False,
            "kind": None,
            "errors": [],
        }

        try:
            decoded = decode_disclosure(disclosure)
        except SdJoseError as e:
            results["errors"].append(f"Failed to parse disclosure: {e}")
            return results

        results["kind"] = "object_property" if hasattr(decoded, "key") else "array_element"
        results["valid"] = True
        return results

    def validate_envelope(self, jwe: Mapping[str, Any]) -> dict[str, Any]:
        """Validate the structure of an encryption envelope.

        Args:
            jwe: Envelope dictionary

        Returns:
            Validation results dictionary
        """
        results: dict[str, Any] = {
            "valid": False,
            "mode": None,
            "recipient_count": 0,
            "errors": [],
        }

        try:
            validate_jwe(jwe)
            protected = json_utils.b64url_decode_json(jwe["protected"])
        except SdJoseError as e:
            results["errors"].append(str(e))
            return results

        if not json_utils.is_object(protected):
            results["errors"].append("Protected header must be a JSON object")
            return results
        if "enc" not in protected:
            results["errors"].append("Protected header is missing enc")

        recipients = jwe.get("recipients") or []
        results["recipient_count"] = len(recipients)
        if protected.get("alg") == "dir":
            results["mode"] = "direct"
            if recipients:
                results["errors"].append("Direct encryption must not have recipients")
        else:
            results["mode"] = "multi_recipient"
            if not recipients:
                results["errors"].append("Missing recipients")

        results["valid"] = len(results["errors"]) == 0
        return results
