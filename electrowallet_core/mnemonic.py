"""
BIP-39 style mnemonic generation for ElectroWallet.

Entropy is drawn from the operating system, suffixed with the leading
``len(entropy) * 8 // 32`` bits of its SHA-256 digest and packed into 11-bit
groups, each indexing the standard 2048-word English list shipped with the
``mnemonic`` package.

Only the forward direction (entropy -> words) is implemented.  Restoring a
wallet re-derives keys from the phrase's seed, never from recovered entropy.
"""

from __future__ import annotations

import hashlib
import logging
import os
from typing import Callable

from mnemonic import Mnemonic

from electrowallet_core.errors import RandomSourceFailure

logger = logging.getLogger("electrowallet_mnemonic")

VALID_STRENGTHS = (128, 256)
VALID_WORD_COUNTS = (12, 24)
WORD_BITS = 11


class EntropySource:
    """Cryptographically secure random bytes.

    ``reader`` defaults to :func:`os.urandom`; any ``OSError`` raised by it
    is re-raised as :class:`RandomSourceFailure`.
    """

    def __init__(self, reader: Callable[[int], bytes] | None = None):
        self._reader = reader or os.urandom

    def read(self, length: int) -> bytes:
        try:
            data = self._reader(length)
        except (OSError, NotImplementedError) as exc:
            raise RandomSourceFailure() from exc
        if len(data) != length:
            raise RandomSourceFailure(
                f"Random source returned {len(data)} bytes, expected {length}"
            )
        return bytes(data)


_WORDLIST: list[str] | None = None


def get_wordlist() -> list[str]:
    global _WORDLIST
    if _WORDLIST is None:
        _WORDLIST = list(Mnemonic("english").wordlist)
    return _WORDLIST


class MnemonicCodec:
    """Encode entropy into a checksummed word phrase."""

    def __init__(
        self,
        entropy_source: EntropySource | None = None,
        wordlist: list[str] | None = None,
    ):
        self.entropy_source = entropy_source or EntropySource()
        self.wordlist = wordlist if wordlist is not None else get_wordlist()

    def generate(self, strength: int = 128) -> str:
        """Generate a new 12-word (128-bit) or 24-word (256-bit) phrase."""
        if strength not in VALID_STRENGTHS:
            raise ValueError("Strength must be 128 or 256")
        entropy = self.entropy_source.read(strength // 8)
        phrase = self.entropy_to_mnemonic(entropy)
        logger.debug(f"Generated {strength}-bit mnemonic")
        return phrase

    def entropy_to_mnemonic(self, entropy: bytes) -> str:
        """Convert 16 or 32 entropy bytes to a phrase."""
        if len(entropy) * 8 not in VALID_STRENGTHS:
            raise ValueError("Entropy must be 16 or 32 bytes")

        ent_bits = len(entropy) * 8
        cs_bits = ent_bits // 32
        digest = hashlib.sha256(entropy).digest()
        checksum = digest[0] >> (8 - cs_bits)
        packed = (int.from_bytes(entropy, "big") << cs_bits) | checksum

        total_bits = ent_bits + cs_bits
        words = []
        for shift in range(total_bits - WORD_BITS, -1, -WORD_BITS):
            idx = (packed >> shift) & 0x7FF
            if idx >= len(self.wordlist):
                # Unreachable with correct packing and a 2048-word list.
                raise RuntimeError(
                    f"Word index {idx} outside dictionary of {len(self.wordlist)}"
                )
            words.append(self.wordlist[idx])
        return " ".join(words)

    @staticmethod
    def validate(phrase: str) -> bool:
        """Word-count check only: no checksum or dictionary verification."""
        return len(phrase.split()) in VALID_WORD_COUNTS
