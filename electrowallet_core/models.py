"""
Domain records for ElectroWallet.

``LedgerEntry`` is the wire/storage shape shared by the local log and the
remote ledger service.  ``Transaction`` is a per-address view derived from
an entry (or from a chain-index response) and is never stored on its own.
``Wallet`` caches the balance; the ledger remains the source of truth.
"""

from __future__ import annotations

import enum
import math
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

UNITS_PER_COIN = 100_000_000


def parse_units(value: Any, name: str = "amount") -> int:
    """
    A non-negative whole number of smallest units from a JSON value.

    Integral floats (``12.0``) are accepted.  Raises ``TypeError`` for
    non-numbers and ``ValueError`` for negative, fractional or non-finite
    values (``1e400`` parses to ``inf``).
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number")
    if isinstance(value, float) and not (math.isfinite(value) and value.is_integer()):
        raise ValueError(f"{name} must be a finite whole number")
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return int(value)


class Direction(str, enum.Enum):
    SENT = "sent"
    RECEIVED = "received"


class TxStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class Wallet:
    address: str
    public_key: str                 # hex
    label: str = "My Wallet"
    balance: int = 0                # smallest unit
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.time)

    @property
    def balance_in_btc(self) -> float:
        return self.balance / UNITS_PER_COIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "address": self.address,
            "public_key": self.public_key,
            "created_at": self.created_at,
            "balance": self.balance,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Wallet:
        return cls(
            id=str(data["id"]),
            address=str(data["address"]),
            public_key=str(data["public_key"]),
            created_at=float(data["created_at"]),
            balance=int(data.get("balance", 0)),
            label=str(data.get("label", "My Wallet")),
        )


@dataclass(frozen=True)
class LedgerEntry:
    """One value transfer.  Append-only; only ``confirmed`` may change."""
    id: str
    sender: str
    recipient: str
    amount: int
    fee: int
    timestamp: float
    confirmed: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from": self.sender,
            "to": self.recipient,
            "amount": self.amount,
            "fee": self.fee,
            "timestamp": self.timestamp,
            "confirmed": self.confirmed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerEntry:
        """Parse the wire shape.  Raises ``KeyError``/``TypeError``/``ValueError``."""
        amount = parse_units(data["amount"], "amount")
        fee = parse_units(data["fee"], "fee")
        timestamp = float(data.get("timestamp") or 0.0)
        if not math.isfinite(timestamp):
            raise ValueError("timestamp must be finite")
        return cls(
            id=str(data["id"]),
            sender=str(data["from"]),
            recipient=str(data["to"]),
            amount=amount,
            fee=fee,
            timestamp=timestamp,
            confirmed=bool(data.get("confirmed", False)),
        )


@dataclass(frozen=True)
class Transaction:
    id: str
    amount: int
    fee: int
    timestamp: float
    confirmations: int
    direction: Direction
    counterparty: str
    status: TxStatus

    @property
    def amount_in_btc(self) -> float:
        return self.amount / UNITS_PER_COIN

    @property
    def fee_in_btc(self) -> float:
        return self.fee / UNITS_PER_COIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": self.amount,
            "fee": self.fee,
            "timestamp": self.timestamp,
            "confirmations": self.confirmations,
            "direction": self.direction.value,
            "counterparty": self.counterparty,
            "status": self.status.value,
        }
