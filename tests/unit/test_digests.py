"""Unit tests for disclosure digests and the digest index."""

import hashlib

import pytest

from sd_jose import (
    DigestIndex,
    IntegrityViolation,
    UnsupportedAlgorithm,
    build_digest_index,
    create_object_property_disclosure,
    hash_disclosure,
)
from sd_jose import digests as digests_module
from sd_jose.json_utils import b64url_encode

GIVEN_NAME_REFERENCE = "WyIyR0xDNDJzS1F2ZUNmR2ZyeU5STjl3IiwgImdpdmVuX25hbWUiLCAiSm9obiJd"
GIVEN_NAME_DIGEST = "jsu9yVulwQQlhFlM_3JlzMaSFzglhQG0DpfayQwLUK4"


class TestHashDisclosure:
    """Test hashing of disclosure transport strings."""

    @pytest.mark.unit
    def test_sha256_reference_digest(self):
        """Test the published digest of the given_name disclosure."""
        assert hash_disclosure(GIVEN_NAME_REFERENCE) == GIVEN_NAME_DIGEST

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "sd_alg,hash_function",
        [("sha-256", hashlib.sha256), ("sha-384", hashlib.sha384), ("sha-512", hashlib.sha512)],
    )
    def test_supported_algorithms(self, sd_alg, hash_function):
        """Test that every supported algorithm hashes the ASCII transport string."""
        expected = b64url_encode(hash_function(GIVEN_NAME_REFERENCE.encode("ascii")).digest())
        assert hash_disclosure(GIVEN_NAME_REFERENCE, sd_alg) == expected

    @pytest.mark.unit
    def test_rendering_changes_digest(self):
        """Test that the digest depends on the rendering, not the logical value."""
        compact = create_object_property_disclosure(
            "given_name", "John", salt="2GLC42sKQveCfGfryNRN9w"
        )
        assert hash_disclosure(compact) != GIVEN_NAME_DIGEST

    @pytest.mark.unit
    @pytest.mark.parametrize("sd_alg", ["md5", "SHA-256", "sha3-256", ""])
    def test_unsupported_algorithm(self, sd_alg):
        """Test that unknown algorithm names are rejected."""
        with pytest.raises(UnsupportedAlgorithm):
            hash_disclosure(GIVEN_NAME_REFERENCE, sd_alg)


class TestDigestIndex:
    """Test building the digest to disclosure index."""

    @pytest.mark.unit
    def test_build_index(self):
        """Test that every disclosure is indexed under its digest."""
        disclosures = [create_object_property_disclosure(f"claim{i}", i) for i in range(5)]
        index = build_digest_index(disclosures)

        assert isinstance(index, DigestIndex)
        assert len(index) == 5
        for disclosure in disclosures:
            assert index[hash_disclosure(disclosure)] == disclosure
        assert index.sd_alg == "sha-256"

    @pytest.mark.unit
    def test_duplicate_disclosure_is_harmless(self):
        """Test that presenting the same disclosure twice maps to itself."""
        index = build_digest_index([GIVEN_NAME_REFERENCE, GIVEN_NAME_REFERENCE])

        assert len(index) == 1
        assert index[GIVEN_NAME_DIGEST] == GIVEN_NAME_REFERENCE

    @pytest.mark.unit
    def test_collision_between_distinct_disclosures(self, monkeypatch):
        """Test that two different disclosures with one digest are rejected."""
        monkeypatch.setattr(digests_module, "hash_disclosure", lambda disclosure, sd_alg: "same")

        with pytest.raises(IntegrityViolation, match="collision"):
            build_digest_index(["first", "second"])

    @pytest.mark.unit
    def test_unsupported_algorithm(self):
        """Test that the index rejects unknown algorithms."""
        with pytest.raises(UnsupportedAlgorithm):
            build_digest_index([GIVEN_NAME_REFERENCE], "sha-1")

    @pytest.mark.unit
    def test_index_is_read_only(self):
        """Test that the index cannot be modified."""
        index = build_digest_index([GIVEN_NAME_REFERENCE])
        with pytest.raises(TypeError):
            index["x"] = "y"  # type: ignore[index]
