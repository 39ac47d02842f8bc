"""Verifiers for SD-JWT credentials and presentations.

This module provides safe verifier classes for SD-JWT verification:
- CredentialVerifier: Verifies SD-JWT credentials using the issuer's key
- PresentationVerifier: Additionally verifies the KB-JWT using the holder's key
"""

import logging
from typing import Any, Optional

from .errors import MalformedInput
from .jws import ES256Verifier, decode_jwt
from .key_binding import extract_holder_key_from_cnf, verify_kb_jwt
from .keys import jwk_thumbprint
from .resolvers import Resolver
from .sd_jwt import split_sd_jwt, verify_sd_jwt

logger = logging.getLogger(__name__)


class CredentialVerifier:
    """Verifies SD-JWT credentials using a public key resolver."""

    def __init__(self, public_key_resolver: Resolver):
        """Initialize credential verifier with a public key resolver.

        Args:
            public_key_resolver: Function that takes a key identifier and returns
                               the corresponding public JWK
        """
        self.public_key_resolver = public_key_resolver

    def verify(
        self,
        sd_jwt: str,
        audience: Optional[str] = None,
        now: Optional[int] = None,
    ) -> tuple[bool, Optional[dict[str, Any]]]:
        """Verify an SD-JWT credential and expand its disclosures.

        The issuer key is chosen by the ``kid`` header parameter.

        Args:
            sd_jwt: SD-JWT in compact serialization
            audience: Expected audience, if the credential carries one
            now: Verification time

        Returns:
            Tuple of (is_valid, expanded payload)

        Raises:
            IntegrityViolation: If the disclosures conflict with the signed payload
        """
        try:
            header = decode_jwt(split_sd_jwt(sd_jwt).jwt).header
        except MalformedInput as e:
            logger.warning("Rejecting credential: %s", e)
            return False, None

        kid = header.get("kid")
        if not kid:
            logger.warning("Rejecting credential without kid")
            return False, None

        try:
            issuer_key = self.public_key_resolver(kid)
        except ValueError:
            logger.warning("Rejecting credential: unknown issuer key")
            return False, None

        try:
            verifier = ES256Verifier(issuer_key)
        except ValueError as e:
            logger.warning("Rejecting credential: unusable issuer key: %s", e)
            return False, None

        is_valid, payload = verify_sd_jwt(sd_jwt, verifier, audience, now)
        if not is_valid:
            logger.warning("Rejecting credential: signature or claims check failed")
        return is_valid, payload


class PresentationVerifier:
    """Verifies key-bound presentations against the cnf claim of the credential."""

    def __init__(
        self,
        credential_verifier: CredentialVerifier,
        holder_key_resolver: Optional[Resolver] = None,
    ):
        """Initialize presentation verifier.

        Args:
            credential_verifier: Verifier for the issuer signature
            holder_key_resolver: Optional function to resolve holder keys by
                               thumbprint. Required only for jkt-based cnf claims.
        """
        self.credential_verifier = credential_verifier
        self.holder_key_resolver = holder_key_resolver

    def _holder_key(self, cnf_claim: Any) -> Optional[dict[str, Any]]:
        if not isinstance(cnf_claim, dict):
            return None

        holder_key = extract_holder_key_from_cnf(cnf_claim)
        if holder_key is not None:
            return holder_key

        jkt = cnf_claim.get("jkt")
        if jkt is None:
            return None
        if self.holder_key_resolver is None:
            raise ValueError("holder_key_resolver is required for thumbprint-based cnf claims")
        try:
            holder_key = self.holder_key_resolver(jkt)
        except ValueError:
            return None
        try:
            if jwk_thumbprint(holder_key) != jkt:
                return None
        except ValueError:
            return None
        return holder_key

    def verify(
        self,
        presentation: str,
        audience: str,
        nonce: str,
        now: Optional[int] = None,
    ) -> tuple[bool, Optional[dict[str, Any]]]:
        """Verify a presentation with its KB-JWT.

        Args:
            presentation: SD-JWT presentation ending in a KB-JWT
            audience: Expected KB-JWT audience (this verifier)
            nonce: Expected KB-JWT nonce
            now: Verification time

        Returns:
            Tuple of (is_valid, expanded credential payload)

        Raises:
            ValueError: If the credential uses a jkt cnf claim and no holder
                key resolver was configured
        """
        is_valid, payload = self.credential_verifier.verify(presentation, now=now)
        if not is_valid or payload is None:
            return False, None

        holder_key = self._holder_key(payload.get("cnf"))
        if holder_key is None:
            logger.warning("Rejecting presentation: no usable holder key in cnf")
            return False, None

        try:
            verifier = ES256Verifier(holder_key)
        except ValueError as e:
            logger.warning("Rejecting presentation: unusable holder key: %s", e)
            return False, None

        kb_valid, _ = verify_kb_jwt(presentation, verifier, audience, nonce, now)
        if not kb_valid:
            return False, None
        return True, payload
