"""Resolvers for JWKs by key identifier or thumbprint.

A resolver is a callable taking a ``kid`` (or ``jkt``) string and returning
the matching public JWK; unknown identifiers raise ValueError.
"""

from collections.abc import Iterable
from typing import Any, Callable

from .keys import jwk_get_public, jwk_thumbprint

Resolver = Callable[[str], dict[str, Any]]


def jwk_thumbprint_resolver(jwks: Iterable[dict[str, Any]]) -> Resolver:
    """Create a resolver for JWKs keyed by their RFC 7638 SHA-256 thumbprint.

    Args:
        jwks: JWKs to resolve (private members are stripped)

    Returns:
        Resolver function that takes a thumbprint and returns the public JWK
    """
    return jwk_kid_resolver([(jwk_thumbprint(jwk), jwk) for jwk in jwks])


def jwk_kid_resolver(kid_key_pairs: Iterable[tuple[str, dict[str, Any]]]) -> Resolver:
    """Create a resolver for JWKs based on key identifiers (kid).

    Args:
        kid_key_pairs: Pairs of (kid, JWK)

    Returns:
        Resolver function that takes a kid and returns the public JWK

    Raises:
        ValueError: If resolver is called with a kid that doesn't match any key
    """
    kid_to_key = {kid: jwk_get_public(jwk) for kid, jwk in kid_key_pairs}

    def resolve_public_key(requested_kid: str) -> dict[str, Any]:
        """Resolve a public JWK by kid.

        Raises:
            ValueError: If kid is not found in the lookup table
        """
        if requested_kid not in kid_to_key:
            available_kids = [kid[:16] + "..." for kid in kid_to_key]
            raise ValueError(
                f"Kid not found: {str(requested_kid)[:16]}... "
                f"Available kids: {', '.join(available_kids)}"
            )
        return dict(kid_to_key[requested_kid])

    return resolve_public_key
