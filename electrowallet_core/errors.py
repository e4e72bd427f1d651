"""
Error taxonomy for ElectroWallet.

Every failure a caller can act on is a subclass of :class:`WalletError`.
Cryptographic and derivation failures are surfaced verbatim and never
retried; remote read failures are absorbed by the backends themselves and
only write-path failures reach the caller as :class:`RemoteUnavailable`.
"""

from __future__ import annotations


class WalletError(Exception):
    """Base class for all wallet-core failures."""

    default_message = "Wallet operation failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class RandomSourceFailure(WalletError):
    default_message = "Failed to generate random bytes"


class KeyDerivationFailure(WalletError):
    default_message = "Failed to derive key"


class InvalidMnemonic(WalletError):
    default_message = "Invalid mnemonic phrase"


class InsufficientFunds(WalletError):
    default_message = "Insufficient funds"


class NoWallet(WalletError):
    default_message = "No wallet found"


class PrivateKeyNotFound(WalletError):
    default_message = "Private key not found in secret storage"


class UnsupportedOperation(WalletError):
    default_message = "Operation not supported by this ledger backend"


class RemoteUnavailable(WalletError):
    default_message = "Remote ledger unavailable"


class KeystoreLocked(WalletError):
    default_message = "Cannot open secret storage: wrong passphrase or corrupt entry"
