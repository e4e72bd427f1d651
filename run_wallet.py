#!/usr/bin/env python3
"""
ElectroWallet command-line runner.

Wallet commands operate on the single persisted wallet using the ledger
backend selected in the config (or ``--mode``).  ``serve-ledger`` runs the
shared ledger service the ``remote`` backend talks to.

Usage:
    python run_wallet.py create
    python run_wallet.py fund 100000
    python run_wallet.py send mzBc4XEFSdzCDcTxAgf6EZXgsZWpztRhef 30000
    python run_wallet.py --mode remote --remote-url http://127.0.0.1:3000 history
    python run_wallet.py serve-ledger --port 3000

Environment variables (alternative to flags):
    ELECTROWALLET_LEDGER_MODE, ELECTROWALLET_REMOTE_URL, ELECTROWALLET_DB_PATH,
    ELECTROWALLET_KEYSTORE_PATH, ELECTROWALLET_KEYSTORE_PASSPHRASE, PORT
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from electrowallet_core.address import is_valid_address  # noqa: E402
from electrowallet_core.backends import create_coordinator  # noqa: E402
from electrowallet_core.config import ElectroWalletConfig, load_config  # noqa: E402
from electrowallet_core.coordinator import WalletCoordinator  # noqa: E402
from electrowallet_core.errors import NoWallet, WalletError  # noqa: E402
from electrowallet_core.ledger_server import LedgerServer  # noqa: E402
from electrowallet_core.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger("electrowallet_cli")


def _emit(data) -> None:
    print(json.dumps(data, indent=2, default=str))


# ===================================================================
#  Wallet commands
# ===================================================================

async def _cmd_create(coord: WalletCoordinator, args) -> dict:
    if args.words == 24:
        coord.mnemonic_strength = 256
    wallet = await coord.create_wallet(label=args.label)
    return {
        "wallet": wallet.to_dict(),
        "mnemonic": coord.reveal_mnemonic(),
        "warning": "Write the mnemonic down. It is the only way to restore this wallet.",
    }


async def _cmd_restore(coord: WalletCoordinator, args) -> dict:
    wallet = await coord.restore_wallet(" ".join(args.phrase), passphrase=args.passphrase)
    await coord.refresh()
    return {"wallet": wallet.to_dict()}


async def _cmd_show(coord: WalletCoordinator, _args) -> dict:
    await coord.refresh()
    return coord.snapshot()


async def _cmd_balance(coord: WalletCoordinator, _args) -> dict:
    wallet = await coord.refresh()
    if wallet is None:
        raise NoWallet()
    return {"address": wallet.address, "balance": wallet.balance, "btc": wallet.balance_in_btc}


async def _cmd_history(coord: WalletCoordinator, _args) -> list:
    await coord.refresh()
    return [t.to_dict() for t in coord.transactions]


async def _cmd_fund(coord: WalletCoordinator, args) -> dict:
    tx_id = await coord.add_funds(args.amount)
    return {"tx_id": tx_id, "balance": coord.wallet.balance}


async def _cmd_send(coord: WalletCoordinator, args) -> dict:
    if not args.force and not is_valid_address(args.address, coord.network):
        raise WalletError(f"{args.address} is not a valid {coord.network.name.lower()} address")
    tx_id = await coord.send(args.address, args.amount)
    return {"tx_id": tx_id, "balance": coord.wallet.balance}


async def _cmd_mnemonic(coord: WalletCoordinator, _args) -> dict:
    return {"mnemonic": coord.reveal_mnemonic()}


async def _cmd_delete(coord: WalletCoordinator, _args) -> dict:
    address = coord.wallet.address if coord.wallet else None
    await coord.delete_wallet()
    return {"deleted": address}


WALLET_COMMANDS = {
    "create": _cmd_create,
    "restore": _cmd_restore,
    "show": _cmd_show,
    "balance": _cmd_balance,
    "history": _cmd_history,
    "fund": _cmd_fund,
    "send": _cmd_send,
    "mnemonic": _cmd_mnemonic,
    "delete": _cmd_delete,
}


async def run_wallet_command(cfg: ElectroWalletConfig, args) -> int:
    try:
        coord = create_coordinator(cfg)
    except ValueError as exc:
        logger.error(f"Configuration error: {exc}")
        return 2
    try:
        coord.load()
        result = await WALLET_COMMANDS[args.command](coord, args)
    except WalletError as exc:
        logger.error(str(exc))
        return 1
    finally:
        await coord.backend.close()
        coord.store.close()
    _emit(result)
    return 0


# ===================================================================
#  Ledger service
# ===================================================================

async def serve_ledger(cfg: ElectroWalletConfig) -> int:
    server = LedgerServer(cfg.server.host, cfg.server.port, server_config=cfg.server)
    await server.start()
    try:
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        pass
    finally:
        await server.stop()
    return 0


# ===================================================================
#  Entry point
# ===================================================================

def parse_args(argv: list[str] | None = None):
    p = argparse.ArgumentParser(description="ElectroWallet")
    p.add_argument("--config", default=None, help="Path to electrowallet.toml config file")
    p.add_argument("--mode", choices=["local", "remote", "index"], default=None,
                   help="Ledger backend (overrides config)")
    p.add_argument("--remote-url", default=None, help="Remote ledger base URL")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")

    sub = p.add_subparsers(dest="command", required=True)

    c = sub.add_parser("create", help="Create a new wallet")
    c.add_argument("--words", type=int, choices=[12, 24], default=12)
    c.add_argument("--label", default="My Wallet")

    r = sub.add_parser("restore", help="Restore a wallet from its mnemonic")
    r.add_argument("phrase", nargs="+")
    r.add_argument("--passphrase", default="")

    sub.add_parser("show", help="Wallet record and history")
    sub.add_parser("balance", help="Refresh and print the balance")
    sub.add_parser("history", help="Refresh and print transactions")

    f = sub.add_parser("fund", help="Faucet credit to the wallet (local/remote only)")
    f.add_argument("amount", type=int)

    s = sub.add_parser("send", help="Send to an address")
    s.add_argument("address")
    s.add_argument("amount", type=int)
    s.add_argument("--force", action="store_true", help="Skip recipient address validation")

    sub.add_parser("mnemonic", help="Print the recovery phrase")
    sub.add_parser("delete", help="Delete the wallet and its keys")

    sl = sub.add_parser("serve-ledger", help="Run the shared ledger service")
    sl.add_argument("--host", default=None)
    sl.add_argument("--port", type=int, default=None)

    return p.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        cfg = load_config(args.config)
    except ValueError as exc:
        setup_logging(level=args.log_level or "INFO")
        logger.error(f"Configuration error: {exc}")
        return 2
    if args.mode:
        cfg.ledger.mode = args.mode
    if args.remote_url:
        cfg.ledger.remote_url = args.remote_url
    if args.log_level:
        cfg.logging.level = args.log_level.upper()
    setup_logging(level=cfg.logging.level, fmt=cfg.logging.format, log_file=cfg.logging.file)

    if args.command == "serve-ledger":
        if args.host:
            cfg.server.host = args.host
        if args.port:
            cfg.server.port = args.port
        return await serve_ledger(cfg)

    if cfg.keystore.backend == "file" and not cfg.keystore.passphrase:
        logger.warning(
            "Keystore passphrase is empty. Set ELECTROWALLET_KEYSTORE_PASSPHRASE "
            "or [keystore] passphrase to protect key material at rest."
        )
    return await run_wallet_command(cfg, args)


def main_sync():
    """Synchronous entry point for console_scripts."""
    with contextlib.suppress(KeyboardInterrupt):
        raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    main_sync()
