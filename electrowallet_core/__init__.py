"""
ElectroWallet - deterministic wallet keys over pluggable ledgers.

Key features:
- BIP-39 style mnemonic generation and PBKDF2 seed stretching
- Simplified flat key derivation and Base58Check addresses
  (NOT compatible with standard wallets; never use for real value)
- Interchangeable ledger backends: local log, remote ledger service,
  read-only public chain index
- Wallet coordinator with encrypted secret storage
"""

__version__ = "0.3.0"
__all__ = [
    "errors",
    "mnemonic",
    "keys",
    "address",
    "models",
    "ledger",
    "remote",
    "chain_index",
    "storage",
    "keystore",
    "coordinator",
    "ledger_server",
    "config",
    "logging_config",
    "backends",
]
