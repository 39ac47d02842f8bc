#!/usr/bin/env python3
"""Encrypt a payload for several recipients and decrypt it as each of them."""

import json
import os

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

import sd_jose
from sd_jose.json_utils import b64url_decode_json


def main():
    """Demonstrate direct and multi-recipient encryption."""
    print("Encryption Envelope Example")
    print("=" * 40)

    cleartext = b"Hello, selective disclosure!"

    # 1. Direct encryption with a shared content key
    print("\n1. Direct encryption...")
    content_key = os.urandom(32)
    jwe = sd_jose.create_jwe(cleartext, [sd_jose.DirectEncrypter(content_key)])
    print(f"   Protected header: {b64url_decode_json(jwe['protected'])}")
    recovered = sd_jose.decrypt_jwe(jwe, sd_jose.DirectDecrypter(content_key))
    print(f"   Decrypted: {recovered.decode()}")

    # 2. One ciphertext, three recipients
    print("\n2. Multi-recipient encryption...")
    alice = X25519PrivateKey.generate()
    bob = X25519PrivateKey.generate()
    escrow_kek = os.urandom(32)
    jwe = sd_jose.create_jwe(
        cleartext,
        [
            sd_jose.X25519Encrypter(alice.public_key(), kid="alice"),
            sd_jose.X25519Encrypter(bob.public_key(), kid="bob"),
            sd_jose.A256KWEncrypter(escrow_kek, kid="escrow"),
        ],
        aad=b"demo",
    )
    print(f"   Recipients: {[r['header']['kid'] for r in jwe['recipients']]}")
    print(f"   Envelope: {len(json.dumps(jwe))} bytes of JSON")

    decrypters = {
        "alice": sd_jose.X25519Decrypter(alice, kid="alice"),
        "bob": sd_jose.X25519Decrypter(bob, kid="bob"),
        "escrow": sd_jose.A256KWDecrypter(escrow_kek, kid="escrow"),
    }
    for name, decrypter in decrypters.items():
        print(f"   {name}: {sd_jose.decrypt_jwe(jwe, decrypter).decode()}")

    # 3. Someone else cannot decrypt
    print("\n3. Decrypting with an unrelated key...")
    try:
        sd_jose.decrypt_jwe(jwe, sd_jose.X25519Decrypter(X25519PrivateKey.generate()))
    except sd_jose.DecryptionFailure as e:
        print(f"   Rejected: {e}")


if __name__ == "__main__":
    main()
