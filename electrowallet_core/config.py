"""
TOML-based configuration for ElectroWallet.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from electrowallet_core.config import load_config
    cfg = load_config("electrowallet.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import,no-redef]

from electrowallet_core.keys import DEFAULT_DERIVATION_PATH

LEDGER_MODES = ("local", "remote", "index")
KEYSTORE_BACKENDS = ("file", "memory")


@dataclass
class NetworkConfig:
    """Address network and key derivation settings."""
    testnet: bool = True
    derivation_path: str = DEFAULT_DERIVATION_PATH
    mnemonic_strength: int = 128


@dataclass
class LedgerConfig:
    """
    Which ledger backend to use.

    ``mode`` is one of ``local`` (on-device log), ``remote`` (shared ledger
    service at ``remote_url``) or ``index`` (read-only chain index at
    ``index_url``; empty means the Blockstream API for the network).
    """
    mode: str = "local"
    remote_url: str = "http://127.0.0.1:3000"
    index_url: str = ""
    latency_seconds: float = 0.2
    timeout_seconds: float = 15.0
    api_key: str = ""               # sent as X-API-Key to the remote ledger


@dataclass
class StorageConfig:
    """Wallet record and local entry log."""
    path: str = "data/electrowallet.db"


@dataclass
class KeystoreConfig:
    """Secret storage for private keys and mnemonics."""
    backend: str = "file"           # "file" or "memory"
    path: str = "data/keystore.json"
    passphrase: str = ""


@dataclass
class ServerConfig:
    """Shared ledger service (``serve-ledger``)."""
    host: str = "127.0.0.1"
    port: int = 3000
    api_key: str = ""               # require this key on POST endpoints (empty = no auth)
    max_body_bytes: int = 65_536


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class ElectroWalletConfig:
    """Top-level configuration container."""
    network: NetworkConfig = field(default_factory=NetworkConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    keystore: KeystoreConfig = field(default_factory=KeystoreConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(path: str | None = None) -> ElectroWalletConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Raises ``ValueError`` for an unknown ledger mode or keystore backend, or a
    non-numeric port.

    Env-var mapping:
        ELECTROWALLET_LEDGER_MODE         -> ledger.mode
        ELECTROWALLET_REMOTE_URL          -> ledger.remote_url
        ELECTROWALLET_INDEX_URL           -> ledger.index_url
        ELECTROWALLET_API_KEY             -> ledger.api_key and server.api_key
        ELECTROWALLET_MAINNET             -> network.testnet (inverted)
        ELECTROWALLET_DB_PATH             -> storage.path
        ELECTROWALLET_KEYSTORE_PATH       -> keystore.path
        ELECTROWALLET_KEYSTORE_PASSPHRASE -> keystore.passphrase
        ELECTROWALLET_SERVER_PORT / PORT  -> server.port
        ELECTROWALLET_LOG_LEVEL           -> logging.level
        ELECTROWALLET_LOG_FMT             -> logging.format
    """
    cfg = ElectroWalletConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            for section_name, section_dc in [
                ("network", cfg.network),
                ("ledger", cfg.ledger),
                ("storage", cfg.storage),
                ("keystore", cfg.keystore),
                ("server", cfg.server),
                ("logging", cfg.logging),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("ELECTROWALLET_LEDGER_MODE"):
        cfg.ledger.mode = v.strip().lower()
    if v := os.environ.get("ELECTROWALLET_REMOTE_URL"):
        cfg.ledger.remote_url = v
    if v := os.environ.get("ELECTROWALLET_INDEX_URL"):
        cfg.ledger.index_url = v
    if v := os.environ.get("ELECTROWALLET_API_KEY"):
        cfg.ledger.api_key = v
        cfg.server.api_key = v
    if v := os.environ.get("ELECTROWALLET_MAINNET"):
        cfg.network.testnet = not _truthy(v)
    if v := os.environ.get("ELECTROWALLET_DB_PATH"):
        cfg.storage.path = v
    if v := os.environ.get("ELECTROWALLET_KEYSTORE_PATH"):
        cfg.keystore.path = v
    if v := os.environ.get("ELECTROWALLET_KEYSTORE_PASSPHRASE"):
        cfg.keystore.passphrase = v
    if v := os.environ.get("ELECTROWALLET_SERVER_PORT") or os.environ.get("PORT"):
        cfg.server.port = int(v)
    if v := os.environ.get("ELECTROWALLET_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("ELECTROWALLET_LOG_FMT"):
        cfg.logging.format = v

    if cfg.ledger.mode not in LEDGER_MODES:
        raise ValueError(
            f"Unknown ledger mode {cfg.ledger.mode!r}; expected one of {', '.join(LEDGER_MODES)}"
        )
    if cfg.keystore.backend not in KEYSTORE_BACKENDS:
        raise ValueError(f"Unknown keystore backend {cfg.keystore.backend!r}")

    return cfg
