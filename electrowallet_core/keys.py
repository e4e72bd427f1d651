"""
Seed and key derivation for ElectroWallet.

    phrase --PBKDF2-HMAC-SHA512(2048)--> seed --SHA-256(seed || path)--> private key
    private key --SHA-256--> public key

This is NOT BIP-32 and NOT secp256k1.  A derivation path is hashed as a
literal string, so different paths give unrelated flat keys, and the
"public key" is a fingerprint of the private key that cannot verify an
elliptic-curve signature.  Addresses produced from these keys are not
compatible with standard wallets and must never hold real value.
"""

from __future__ import annotations

import hashlib

from electrowallet_core.errors import KeyDerivationFailure

SEED_ROUNDS = 2048
SEED_LENGTH = 64
KEY_LENGTH = 32

# BIP-84 testnet account 0, first receive address.  Only the literal string
# matters here; it is not parsed.
DEFAULT_DERIVATION_PATH = "m/84'/1'/0'/0/0"


def derive_seed(phrase: str, passphrase: str = "") -> bytes:
    """Stretch *phrase* into a 64-byte seed (salt ``"mnemonic" + passphrase``)."""
    salt = ("mnemonic" + passphrase).encode("utf-8")
    try:
        return hashlib.pbkdf2_hmac(
            "sha512", phrase.encode("utf-8"), salt, SEED_ROUNDS, dklen=SEED_LENGTH,
        )
    except (ValueError, OverflowError) as exc:
        raise KeyDerivationFailure() from exc


def derive_private_key(seed: bytes, path: str = DEFAULT_DERIVATION_PATH) -> bytes:
    return hashlib.sha256(seed + path.encode("utf-8")).digest()


def derive_public_key(private_key: bytes) -> bytes:
    if len(private_key) != KEY_LENGTH:
        raise KeyDerivationFailure(
            f"Private key must be {KEY_LENGTH} bytes, got {len(private_key)}"
        )
    return hashlib.sha256(private_key).digest()


def sign_payload(data: bytes, private_key: bytes) -> bytes:
    """SHA-256(data || private_key).

    A keyed fingerprint only: nothing holding just the public key can check
    it.  Exported for callers; the ledger backends do not sign entries, they
    accept the private key and ignore it.
    """
    return hashlib.sha256(data + private_key).digest()
