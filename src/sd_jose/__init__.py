"""SD-JOSE: SD-JWT selective disclosure and JWE-style encryption envelopes."""

# Hide module imports
from . import (
    digests,
    disclosure,
    encrypters,
    encryption,
    errors,
    expansion,
    jws,
    key_binding,
    keys,
    redaction,
    resolvers,
    sd_jwt,
    verifiers,
)
from .digests import DEFAULT_SD_ALG, DigestIndex, build_digest_index, hash_disclosure
from .disclosure import (
    ArrayElementDisclosure,
    ObjectPropertyDisclosure,
    RenderMode,
    SaltGenerator,
    SecureSaltGenerator,
    SeededSaltGenerator,
    create_array_element_disclosure,
    create_object_property_disclosure,
    create_salt,
    decode_disclosure,
    encode_disclosure,
    parse_array_element_disclosure,
    parse_object_property_disclosure,
)
from .encrypters import (
    A256KWDecrypter,
    A256KWEncrypter,
    DirectDecrypter,
    DirectEncrypter,
    X25519Decrypter,
    X25519Encrypter,
)
from .encryption import (
    Decrypter,
    Encrypter,
    EncryptionResult,
    EphemeralKeyPair,
    create_jwe,
    decrypt_jwe,
)
from .errors import (
    DecryptionFailure,
    IntegrityViolation,
    MalformedInput,
    ProtocolViolation,
    ResourceExhausted,
    SdJoseError,
    UnsupportedAlgorithm,
)
from .expansion import DisclosureExpander, expand_disclosures
from .jws import (
    DecodedJwt,
    ES256Signer,
    ES256Verifier,
    Signer,
    Verifier,
    create_jwt,
    decode_jwt,
    verify_jwt,
)
from .key_binding import (
    create_cnf_claim,
    create_kb_jwt,
    create_key_bound_presentation,
    verify_kb_jwt,
)
from .keys import generate_es256_jwk, jwk_get_public, jwk_thumbprint
from .redaction import SdPayloadResult, assemble_sd_payload, make_selectively_disclosable
from .resolvers import jwk_kid_resolver, jwk_thumbprint_resolver
from .sd_jwt import (
    DecodedSdJwt,
    SplitSdJwt,
    create_presentation,
    create_sd_jwt,
    decode_sd_jwt,
    form_sd_jwt,
    select_disclosures,
    split_sd_jwt,
    verify_sd_jwt,
)
from .verifiers import CredentialVerifier, PresentationVerifier

del (
    digests,
    disclosure,
    encrypters,
    encryption,
    errors,
    expansion,
    jws,
    key_binding,
    keys,
    redaction,
    resolvers,
    sd_jwt,
    verifiers,
)

__version__ = "0.1.0"


__all__ = [
    "__version__",
    # Disclosures
    "ObjectPropertyDisclosure",
    "ArrayElementDisclosure",
    "RenderMode",
    "create_salt",
    "create_object_property_disclosure",
    "create_array_element_disclosure",
    "encode_disclosure",
    "decode_disclosure",
    "parse_object_property_disclosure",
    "parse_array_element_disclosure",
    # Salt generators for deterministic testing
    "SaltGenerator",
    "SecureSaltGenerator",
    "SeededSaltGenerator",
    # Digests and expansion
    "DEFAULT_SD_ALG",
    "DigestIndex",
    "build_digest_index",
    "hash_disclosure",
    "DisclosureExpander",
    "expand_disclosures",
    # Issuance
    "SdPayloadResult",
    "assemble_sd_payload",
    "make_selectively_disclosable",
    # SD-JWT serialization and lifecycle
    "SplitSdJwt",
    "DecodedSdJwt",
    "form_sd_jwt",
    "split_sd_jwt",
    "create_sd_jwt",
    "decode_sd_jwt",
    "verify_sd_jwt",
    "select_disclosures",
    "create_presentation",
    # JWS - Core functions
    "DecodedJwt",
    "create_jwt",
    "decode_jwt",
    "verify_jwt",
    # Protocols for custom implementations
    "Signer",
    "Verifier",
    "Encrypter",
    "Decrypter",
    "ES256Signer",
    "ES256Verifier",
    # Keys
    "generate_es256_jwk",
    "jwk_get_public",
    "jwk_thumbprint",
    # Key binding
    "create_cnf_claim",
    "create_kb_jwt",
    "create_key_bound_presentation",
    "verify_kb_jwt",
    # Verifiers for safe credential and presentation verification
    "CredentialVerifier",
    "PresentationVerifier",
    # Resolvers for dynamic key resolution
    "jwk_kid_resolver",
    "jwk_thumbprint_resolver",
    # Encryption envelope
    "EncryptionResult",
    "EphemeralKeyPair",
    "create_jwe",
    "decrypt_jwe",
    "DirectEncrypter",
    "DirectDecrypter",
    "A256KWEncrypter",
    "A256KWDecrypter",
    "X25519Encrypter",
    "X25519Decrypter",
    # Errors
    "SdJoseError",
    "MalformedInput",
    "UnsupportedAlgorithm",
    "IntegrityViolation",
    "ProtocolViolation",
    "DecryptionFailure",
    "ResourceExhausted",
]
