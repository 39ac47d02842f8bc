"""Pytest configuration and shared fixtures for SD-JOSE tests."""

import os
from typing import Any, Dict

import pytest
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from sd_jose import ES256Signer, ES256Verifier, SeededSaltGenerator, generate_es256_jwk

# Fixed verification time used across tests (2023-05-02T04:00:00Z)
FIXED_NOW = 1683000000


@pytest.fixture
def fixed_now() -> int:
    """Provide a fixed issuance/verification time."""
    return FIXED_NOW


@pytest.fixture
def sample_claims() -> Dict[str, Any]:
    """Provide sample JWT claims for testing."""
    return {
        "iss": "https://issuer.example.com",
        "sub": "user123",
        "iat": FIXED_NOW,
        "exp": FIXED_NOW + 3600,
        "given_name": "John",
        "family_name": "Doe",
        "email": "john.doe@example.com",
        "phone_number": "+1234567890",
        "address": {
            "street_address": "123 Main St",
            "locality": "Anytown",
            "region": "Anystate",
            "country": "US",
        },
        "birthdate": "1990-01-01",
        "nationalities": ["US", "DE"],
    }


@pytest.fixture
def clear_claims() -> Dict[str, Any]:
    """Claims that always stay visible."""
    return {
        "iss": "https://issuer.example.com",
        "sub": "user123",
        "exp": FIXED_NOW + 3600,
    }


@pytest.fixture
def selective_disclosure_claims() -> Dict[str, Any]:
    """Claims marked for selective disclosure."""
    return {
        "given_name": "John",
        "family_name": "Doe",
        "email": "john.doe@example.com",
        "phone_number": "+1234567890",
        "birthdate": "1990-01-01",
    }


@pytest.fixture
def seeded_salt_generator() -> SeededSaltGenerator:
    """Deterministic salts for reproducible disclosures."""
    return SeededSaltGenerator(seed=42)


@pytest.fixture(scope="session")
def issuer_jwk() -> Dict[str, str]:
    """Issuer ES256 private JWK."""
    return generate_es256_jwk(kid="issuer-key-1")


@pytest.fixture(scope="session")
def holder_jwk() -> Dict[str, str]:
    """Holder ES256 private JWK."""
    return generate_es256_jwk()


@pytest.fixture
def issuer_signer(issuer_jwk: Dict[str, str]) -> ES256Signer:
    return ES256Signer(issuer_jwk)


@pytest.fixture
def issuer_verifier(issuer_jwk: Dict[str, str]) -> ES256Verifier:
    return ES256Verifier(issuer_jwk)


@pytest.fixture
def holder_signer(holder_jwk: Dict[str, str]) -> ES256Signer:
    return ES256Signer(holder_jwk)


@pytest.fixture
def holder_verifier(holder_jwk: Dict[str, str]) -> ES256Verifier:
    return ES256Verifier(holder_jwk)


@pytest.fixture
def content_key() -> bytes:
    """A 256-bit pre-shared content key."""
    return os.urandom(32)


@pytest.fixture
def x25519_recipient() -> X25519PrivateKey:
    """An X25519 recipient private key."""
    return X25519PrivateKey.generate()
