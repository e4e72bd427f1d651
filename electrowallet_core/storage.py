"""
SQLite-based persistence for ElectroWallet local state.

Stores the single active wallet record and the append-only ledger entry
log used by the local backend, so a restarted process sees the same
balance and history.

Usage:
    store = WalletStore("data/electrowallet.db")
    store.save_wallet(wallet)
    store.append_entry(entry)
    ...
    entries = store.load_entries()

``":memory:"`` gives a process-local store that vanishes with the process.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from electrowallet_core.models import LedgerEntry, Wallet

logger = logging.getLogger("electrowallet_storage")

MEMORY = ":memory:"
WALLET_KEY = "currentWallet"
LEDGER_KEY = "ledger_v1"


class WalletStore:
    """Thin SQLite wrapper for the wallet record and ledger entry log."""

    def __init__(self, db_path: str = "data/electrowallet.db"):
        self.db_path = db_path
        if db_path != MEMORY:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA busy_timeout = 5000")
        if db_path != MEMORY:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
        self._create_tables()
        self._ensure_schema_version()
        logger.info(f"Storage opened: {db_path}")

    # ── schema ───────────────────────────────────────────────────

    def _create_tables(self) -> None:
        c = self._conn
        c.execute("""
            CREATE TABLE IF NOT EXISTS wallet (
                key        TEXT PRIMARY KEY,
                id         TEXT NOT NULL,
                address    TEXT NOT NULL,
                public_key TEXT NOT NULL,
                created_at REAL NOT NULL,
                balance    INTEGER NOT NULL DEFAULT 0,
                label      TEXT NOT NULL DEFAULT 'My Wallet'
            )
        """)
        c.execute("""
            CREATE TABLE IF NOT EXISTS ledger_entries (
                log_key   TEXT NOT NULL,
                tx_id     TEXT NOT NULL,
                sender    TEXT NOT NULL,
                recipient TEXT NOT NULL,
                amount    INTEGER NOT NULL,
                fee       INTEGER NOT NULL,
                timestamp REAL NOT NULL,
                confirmed INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (log_key, tx_id)
            )
        """)
        c.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                id      INTEGER PRIMARY KEY CHECK (id = 1),
                version INTEGER NOT NULL
            )
        """)
        c.commit()

    CURRENT_SCHEMA_VERSION = 1

    def _ensure_schema_version(self) -> None:
        row = self._conn.execute(
            "SELECT version FROM schema_version WHERE id = 1"
        ).fetchone()
        if row is None:
            self._conn.execute(
                "INSERT INTO schema_version (id, version) VALUES (1, ?)",
                (self.CURRENT_SCHEMA_VERSION,),
            )
            self._conn.commit()
        elif row["version"] > self.CURRENT_SCHEMA_VERSION:
            raise RuntimeError(
                f"Database schema v{row['version']} is newer than this software "
                f"(v{self.CURRENT_SCHEMA_VERSION}).  Upgrade ElectroWallet."
            )

    # ── wallet record ────────────────────────────────────────────

    def save_wallet(self, wallet: Wallet) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO wallet
               (key, id, address, public_key, created_at, balance, label)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (WALLET_KEY, wallet.id, wallet.address, wallet.public_key,
             wallet.created_at, wallet.balance, wallet.label),
        )
        self._conn.commit()

    def load_wallet(self) -> Wallet | None:
        row = self._conn.execute(
            "SELECT * FROM wallet WHERE key = ?", (WALLET_KEY,)
        ).fetchone()
        return Wallet.from_dict(dict(row)) if row else None

    def delete_wallet(self) -> None:
        self._conn.execute("DELETE FROM wallet WHERE key = ?", (WALLET_KEY,))
        self._conn.commit()

    # ── ledger entry log ─────────────────────────────────────────

    def append_entry(self, entry: LedgerEntry) -> None:
        """Append *entry*.  A duplicate id raises ``sqlite3.IntegrityError``."""
        self._conn.execute(
            """INSERT INTO ledger_entries
               (log_key, tx_id, sender, recipient, amount, fee, timestamp, confirmed)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (LEDGER_KEY, entry.id, entry.sender, entry.recipient,
             entry.amount, entry.fee, entry.timestamp, int(entry.confirmed)),
        )
        self._conn.commit()

    def load_entries(self) -> list[LedgerEntry]:
        rows = self._conn.execute(
            "SELECT * FROM ledger_entries WHERE log_key = ? ORDER BY rowid",
            (LEDGER_KEY,),
        ).fetchall()
        return [
            LedgerEntry(
                id=r["tx_id"],
                sender=r["sender"],
                recipient=r["recipient"],
                amount=r["amount"],
                fee=r["fee"],
                timestamp=r["timestamp"],
                confirmed=bool(r["confirmed"]),
            )
            for r in rows
        ]

    def set_confirmed(self, tx_id: str, confirmed: bool = True) -> bool:
        """Toggle ``confirmed``; returns False when *tx_id* is unknown."""
        cur = self._conn.execute(
            "UPDATE ledger_entries SET confirmed = ? WHERE log_key = ? AND tx_id = ?",
            (int(confirmed), LEDGER_KEY, tx_id),
        )
        self._conn.commit()
        return cur.rowcount > 0

    def clear_entries(self) -> None:
        self._conn.execute("DELETE FROM ledger_entries WHERE log_key = ?", (LEDGER_KEY,))
        self._conn.commit()

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
