"""
Composition helpers: build the configured backend and stores.
"""

from __future__ import annotations

from electrowallet_core.address import Network
from electrowallet_core.chain_index import ChainIndexLedger
from electrowallet_core.config import LEDGER_MODES, ElectroWalletConfig
from electrowallet_core.coordinator import WalletCoordinator
from electrowallet_core.keystore import EncryptedFileSecretStore, MemorySecretStore, SecretStore
from electrowallet_core.ledger import LedgerBackend, LocalLedger
from electrowallet_core.remote import RemoteLedger
from electrowallet_core.storage import WalletStore


def network_from_config(cfg: ElectroWalletConfig) -> Network:
    return Network.from_testnet_flag(cfg.network.testnet)


def create_backend(cfg: ElectroWalletConfig, store: WalletStore) -> LedgerBackend:
    """Instantiate the backend named by ``cfg.ledger.mode``."""
    mode = cfg.ledger.mode
    if mode == "local":
        return LocalLedger(store, latency=cfg.ledger.latency_seconds)
    if mode == "remote":
        return RemoteLedger(
            cfg.ledger.remote_url,
            timeout=cfg.ledger.timeout_seconds,
            latency=cfg.ledger.latency_seconds,
            api_key=cfg.ledger.api_key,
        )
    if mode == "index":
        return ChainIndexLedger(
            cfg.ledger.index_url or None,
            network=network_from_config(cfg),
            timeout=cfg.ledger.timeout_seconds,
        )
    raise ValueError(f"Unknown ledger mode {mode!r}; expected one of {', '.join(LEDGER_MODES)}")


def create_secret_store(cfg: ElectroWalletConfig) -> SecretStore:
    if cfg.keystore.backend == "memory":
        return MemorySecretStore()
    if cfg.keystore.backend == "file":
        return EncryptedFileSecretStore(cfg.keystore.path, cfg.keystore.passphrase)
    raise ValueError(f"Unknown keystore backend {cfg.keystore.backend!r}")


def create_coordinator(cfg: ElectroWalletConfig, store: WalletStore | None = None) -> WalletCoordinator:
    owns_store = store is None
    store = store if store is not None else WalletStore(cfg.storage.path)
    try:
        backend = create_backend(cfg, store)
        secrets = create_secret_store(cfg)
    except ValueError:
        if owns_store:
            store.close()
        raise
    return WalletCoordinator(
        backend,
        secrets,
        store,
        network=network_from_config(cfg),
        derivation_path=cfg.network.derivation_path,
        mnemonic_strength=cfg.network.mnemonic_strength,
    )
