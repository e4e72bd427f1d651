"""
Base58Check addresses for ElectroWallet.

    digest   = SHA-256(public_key)[:20]          (simplified, not HASH-160)
    payload  = version || digest                 (0x6F testnet, 0x00 mainnet)
    checksum = SHA-256(SHA-256(payload))[:4]
    address  = Base58(payload || checksum)
"""

from __future__ import annotations

import enum
import hashlib

import base58

DIGEST_LENGTH = 20
CHECKSUM_LENGTH = 4


class Network(enum.Enum):
    TESTNET = 0x6F
    MAINNET = 0x00

    @property
    def version(self) -> int:
        return self.value

    @classmethod
    def from_testnet_flag(cls, testnet: bool) -> Network:
        return cls.TESTNET if testnet else cls.MAINNET


def _checksum(payload: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(payload).digest()).digest()[:CHECKSUM_LENGTH]


def encode_address(public_key: bytes, network: Network = Network.TESTNET) -> str:
    digest = hashlib.sha256(public_key).digest()[:DIGEST_LENGTH]
    payload = bytes([network.version]) + digest
    return base58.b58encode(payload + _checksum(payload)).decode("ascii")


def decode_address(address: str) -> tuple[Network, bytes]:
    """
    Decode *address* into ``(network, digest)``.

    Raises ``ValueError`` on bad Base58, wrong length, unknown version byte
    or checksum mismatch.
    """
    raw = base58.b58decode(address)
    if len(raw) != 1 + DIGEST_LENGTH + CHECKSUM_LENGTH:
        raise ValueError(f"Address decodes to {len(raw)} bytes")
    payload, checksum = raw[:-CHECKSUM_LENGTH], raw[-CHECKSUM_LENGTH:]
    if _checksum(payload) != checksum:
        raise ValueError("Address checksum mismatch")
    try:
        network = Network(payload[0])
    except ValueError:
        raise ValueError(f"Unknown address version 0x{payload[0]:02x}") from None
    return network, payload[1:]


def is_valid_address(address: str, network: Network | None = None) -> bool:
    try:
        decoded_network, _ = decode_address(address)
    except ValueError:
        return False
    return network is None or decoded_network is network
