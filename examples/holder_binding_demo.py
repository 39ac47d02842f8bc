#!/usr/bin/env python3
"""Issue an SD-JWT bound to a holder key, present it and verify the presentation."""

import sd_jose
from sd_jose.json_utils import b64url_decode


def main():
    """Walk through issuance, presentation and verification."""
    print("SD-JWT Holder Binding Example")
    print("=" * 40)

    # 1. Keys for issuer and holder
    print("\n1. Generating keys...")
    issuer_jwk = sd_jose.generate_es256_jwk(kid="https://issuer.example.com/keys/1")
    holder_jwk = sd_jose.generate_es256_jwk()
    print(f"   Issuer kid: {issuer_jwk['kid']}")
    print(f"   Holder thumbprint: {sd_jose.jwk_thumbprint(holder_jwk)}")

    # 2. Issuer redacts personal claims
    print("\n2. Issuing credential...")
    result = sd_jose.assemble_sd_payload(
        {
            "iss": "https://issuer.example.com",
            "sub": "user_42",
            "cnf": sd_jose.create_cnf_claim(holder_jwk),
        },
        {
            "given_name": "John",
            "family_name": "Doe",
            "email": "johndoe@example.com",
            "birthdate": "1940-01-01",
            "nationalities": ["US", "DE"],
        },
        array_claims=["nationalities"],
    )
    credential = sd_jose.create_sd_jwt(
        result.payload,
        sd_jose.ES256Signer(issuer_jwk),
        result.disclosure_list,
        header={"kid": issuer_jwk["kid"]},
        expires_in=3600,
    )
    print(f"   Redacted claims: {len(result.payload['_sd'])}")
    print(f"   Disclosures: {len(result.disclosure_list)}")
    for disclosure in result.disclosure_list:
        print(f"     {b64url_decode(disclosure).decode('utf-8')}")

    # 3. Holder reveals only what the verifier needs
    print("\n3. Creating presentation...")
    audience = "https://verifier.example.com"
    nonce = "1234567890"
    selected = sd_jose.select_disclosures(credential, ["given_name", "US"])
    presentation = sd_jose.create_key_bound_presentation(
        credential, selected, sd_jose.ES256Signer(holder_jwk), audience, nonce
    )
    print(f"   Selected disclosures: {len(selected)}")
    print(f"   Presentation: {len(presentation)} characters")

    # 4. Verifier checks issuer signature, disclosures and key binding
    print("\n4. Verifying presentation...")
    verifier = sd_jose.PresentationVerifier(
        sd_jose.CredentialVerifier(sd_jose.jwk_kid_resolver([(issuer_jwk["kid"], issuer_jwk)]))
    )
    is_valid, payload = verifier.verify(presentation, audience, nonce)
    print(f"   Valid: {is_valid}")
    if payload:
        for name in ("given_name", "family_name", "nationalities"):
            print(f"   {name}: {payload.get(name, '<withheld>')}")

    # 5. A replayed presentation fails
    print("\n5. Replaying with another nonce...")
    is_valid, _ = verifier.verify(presentation, audience, "another-nonce")
    print(f"   Valid: {is_valid}")


if __name__ == "__main__":
    main()
