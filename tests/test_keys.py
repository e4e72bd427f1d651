"""
Test suite for electrowallet_core.keys — seed and flat key derivation.

Keys are hash-based (not BIP-32, not secp256k1); these tests pin that
derivation so existing addresses stay stable.
"""

import hashlib
import unittest
from unittest.mock import patch

from electrowallet_core.errors import KeyDerivationFailure
from electrowallet_core.keys import (
    DEFAULT_DERIVATION_PATH,
    derive_private_key,
    derive_public_key,
    derive_seed,
    sign_payload,
)

ABANDON = " ".join(["abandon"] * 11 + ["about"])


class TestDeriveSeed(unittest.TestCase):

    def test_length(self):
        self.assertEqual(len(derive_seed(ABANDON)), 64)

    def test_deterministic(self):
        self.assertEqual(derive_seed(ABANDON, "x"), derive_seed(ABANDON, "x"))

    def test_bip39_vector_with_passphrase(self):
        seed = derive_seed(ABANDON, "TREZOR")
        self.assertEqual(
            seed.hex(),
            "c55257c360c07c72029aebc1b53c05ed0362ada38ead3e3e9efa3708e5349553"
            "1f09a6987599d18264c1e1c92f2cf141630c7a3c4ab7c81b2f001698e7463b04",
        )

    def test_matches_pbkdf2_definition(self):
        expected = hashlib.pbkdf2_hmac("sha512", ABANDON.encode(), b"mnemonicpw", 2048, 64)
        self.assertEqual(derive_seed(ABANDON, "pw"), expected)

    def test_passphrase_changes_seed(self):
        self.assertNotEqual(derive_seed(ABANDON), derive_seed(ABANDON, "other"))

    def test_primitive_error_is_key_derivation_failure(self):
        with patch("electrowallet_core.keys.hashlib.pbkdf2_hmac", side_effect=ValueError("boom")):
            with self.assertRaises(KeyDerivationFailure):
                derive_seed(ABANDON)


class TestDeriveKeys(unittest.TestCase):

    def setUp(self):
        self.seed = derive_seed(ABANDON)

    def test_private_key_is_sha256_of_seed_and_path(self):
        expected = hashlib.sha256(self.seed + DEFAULT_DERIVATION_PATH.encode()).digest()
        self.assertEqual(derive_private_key(self.seed), expected)

    def test_private_key_deterministic(self):
        self.assertEqual(
            derive_private_key(self.seed, "m/0"), derive_private_key(self.seed, "m/0"),
        )

    def test_different_paths_different_keys(self):
        keys = {derive_private_key(self.seed, f"m/84'/1'/0'/0/{i}") for i in range(20)}
        self.assertEqual(len(keys), 20)

    def test_public_key_is_hash_of_private(self):
        priv = derive_private_key(self.seed)
        pub = derive_public_key(priv)
        self.assertEqual(len(pub), 32)
        self.assertEqual(pub, hashlib.sha256(priv).digest())
        self.assertNotEqual(pub, priv)

    def test_public_key_rejects_wrong_length(self):
        with self.assertRaises(KeyDerivationFailure):
            derive_public_key(b"\x01" * 31)


class TestSignPayload(unittest.TestCase):

    def test_fingerprint_depends_on_key_and_data(self):
        k1, k2 = b"\x01" * 32, b"\x02" * 32
        self.assertEqual(sign_payload(b"tx", k1), sign_payload(b"tx", k1))
        self.assertNotEqual(sign_payload(b"tx", k1), sign_payload(b"tx", k2))
        self.assertNotEqual(sign_payload(b"tx", k1), sign_payload(b"ty", k1))
        self.assertEqual(sign_payload(b"tx", k1), hashlib.sha256(b"tx" + k1).digest())
