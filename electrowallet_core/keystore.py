"""
Secret storage for ElectroWallet.

Maps a wallet address to its private key bytes and mnemonic phrase.  The
coordinator is the only writer; each put is a single whole-record write.

Two implementations:
  - :class:`MemorySecretStore`         dict-backed, nothing touches disk
  - :class:`EncryptedFileSecretStore`  JSON file, every secret sealed with
                                       AES-256-GCM under a PBKDF2 key
"""

from __future__ import annotations

import abc
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from Crypto.Cipher import AES

from electrowallet_core.errors import KeystoreLocked

logger = logging.getLogger("electrowallet_keystore")

KDF_ITERATIONS = 600_000
FILE_VERSION = 1


class SecretStore(abc.ABC):
    """Address-keyed store for private keys and mnemonics."""

    @abc.abstractmethod
    def _put(self, address: str, kind: str, value: bytes) -> None:
        ...

    @abc.abstractmethod
    def _get(self, address: str, kind: str) -> bytes | None:
        ...

    @abc.abstractmethod
    def _delete(self, address: str, kind: str) -> None:
        ...

    def save_private_key(self, private_key: bytes, address: str) -> None:
        self._put(address, "private_key", private_key)

    def get_private_key(self, address: str) -> bytes | None:
        return self._get(address, "private_key")

    def delete_private_key(self, address: str) -> None:
        self._delete(address, "private_key")

    def save_mnemonic(self, mnemonic: str, address: str) -> None:
        self._put(address, "mnemonic", mnemonic.encode("utf-8"))

    def get_mnemonic(self, address: str) -> str | None:
        raw = self._get(address, "mnemonic")
        return raw.decode("utf-8") if raw is not None else None

    def delete_mnemonic(self, address: str) -> None:
        self._delete(address, "mnemonic")


class MemorySecretStore(SecretStore):

    def __init__(self):
        self._data: dict[tuple[str, str], bytes] = {}

    def _put(self, address: str, kind: str, value: bytes) -> None:
        self._data[(address, kind)] = bytes(value)

    def _get(self, address: str, kind: str) -> bytes | None:
        return self._data.get((address, kind))

    def _delete(self, address: str, kind: str) -> None:
        self._data.pop((address, kind), None)


class EncryptedFileSecretStore(SecretStore):
    """
    Secrets sealed in a JSON file.

    One PBKDF2-HMAC-SHA256 key per file (random 16-byte salt stored in the
    file), a fresh 96-bit nonce per sealed value.  Reading with the wrong
    passphrase raises :class:`KeystoreLocked`.
    """

    def __init__(self, path: str, passphrase: str, *, iterations: int = KDF_ITERATIONS):
        self.path = Path(path)
        doc = self._read()
        if doc is None:
            salt = os.urandom(16)
            doc = {
                "version": FILE_VERSION,
                "kdf": "pbkdf2-hmac-sha256",
                "kdf_iterations": iterations,
                "salt": salt.hex(),
                "entries": {},
            }
        self._doc = doc
        self._key = hashlib.pbkdf2_hmac(
            "sha256",
            passphrase.encode("utf-8"),
            bytes.fromhex(doc["salt"]),
            int(doc["kdf_iterations"]),
        )

    # ── file I/O ─────────────────────────────────────────────────

    def _read(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._doc, f, indent=2)
        os.replace(tmp, self.path)

    # ── AES-256-GCM ──────────────────────────────────────────────

    def _seal(self, data: bytes) -> dict[str, str]:
        nonce = os.urandom(12)
        cipher = AES.new(self._key, AES.MODE_GCM, nonce=nonce)
        ciphertext, tag = cipher.encrypt_and_digest(data)
        return {"ciphertext": ciphertext.hex(), "nonce": nonce.hex(), "tag": tag.hex()}

    def _open(self, sealed: dict[str, str]) -> bytes:
        try:
            cipher = AES.new(self._key, AES.MODE_GCM, nonce=bytes.fromhex(sealed["nonce"]))
            return cipher.decrypt_and_verify(
                bytes.fromhex(sealed["ciphertext"]), bytes.fromhex(sealed["tag"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            # GCM tag mismatch surfaces as ValueError("MAC check failed").
            raise KeystoreLocked() from exc

    # ── SecretStore ──────────────────────────────────────────────

    def _put(self, address: str, kind: str, value: bytes) -> None:
        self._doc["entries"].setdefault(address, {})[kind] = self._seal(value)
        self._write()
        logger.debug(f"Stored {kind} for {address}")

    def _get(self, address: str, kind: str) -> bytes | None:
        sealed = self._doc["entries"].get(address, {}).get(kind)
        if sealed is None:
            return None
        return self._open(sealed)

    def _delete(self, address: str, kind: str) -> None:
        record = self._doc["entries"].get(address)
        if record is None or kind not in record:
            return
        del record[kind]
        if not record:
            del self._doc["entries"][address]
        self._write()
        logger.debug(f"Deleted {kind} for {address}")
