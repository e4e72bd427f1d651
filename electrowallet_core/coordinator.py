"""
Wallet coordinator for ElectroWallet.

Owns the single active wallet and drives it through two states:

    NO_WALLET --create_wallet / restore_wallet--> ACTIVE
    ACTIVE    --delete_wallet-->                  NO_WALLET

All collaborators are injected: a ledger backend, a secret store for key
material, a :class:`WalletStore` for the wallet record and a mnemonic codec.

``refresh()`` recomputes the balance and history from the backend and
overwrites the cached copies.  Two overlapping refreshes are not ordered:
whichever finishes last wins.
"""

from __future__ import annotations

import enum
import logging

from electrowallet_core.address import Network, encode_address
from electrowallet_core.errors import (
    InvalidMnemonic,
    NoWallet,
    PrivateKeyNotFound,
    WalletError,
)
from electrowallet_core.keys import (
    DEFAULT_DERIVATION_PATH,
    derive_private_key,
    derive_public_key,
    derive_seed,
)
from electrowallet_core.keystore import SecretStore
from electrowallet_core.ledger import LedgerBackend
from electrowallet_core.mnemonic import MnemonicCodec
from electrowallet_core.models import Transaction, Wallet
from electrowallet_core.storage import WalletStore

logger = logging.getLogger("electrowallet_coordinator")


class WalletState(str, enum.Enum):
    NO_WALLET = "no_wallet"
    ACTIVE = "active"


class WalletCoordinator:

    def __init__(
        self,
        backend: LedgerBackend,
        secrets: SecretStore,
        store: WalletStore,
        *,
        codec: MnemonicCodec | None = None,
        network: Network = Network.TESTNET,
        derivation_path: str = DEFAULT_DERIVATION_PATH,
        mnemonic_strength: int = 128,
    ):
        self.backend = backend
        self.secrets = secrets
        self.store = store
        self.codec = codec or MnemonicCodec()
        self.network = network
        self.derivation_path = derivation_path
        self.mnemonic_strength = mnemonic_strength
        self.wallet: Wallet | None = None
        self.transactions: list[Transaction] = []
        self.last_error: str | None = None

    @property
    def state(self) -> WalletState:
        return WalletState.ACTIVE if self.wallet is not None else WalletState.NO_WALLET

    @property
    def has_wallet(self) -> bool:
        return self.wallet is not None

    def _require_wallet(self) -> Wallet:
        if self.wallet is None:
            raise NoWallet()
        return self.wallet

    # ── lifecycle ────────────────────────────────────────────────

    def load(self) -> Wallet | None:
        """Adopt the persisted wallet record, if any."""
        self.wallet = self.store.load_wallet()
        self.transactions = []
        return self.wallet

    async def initialize(self) -> Wallet | None:
        """Load the persisted wallet and refresh it from the backend."""
        if self.load() is not None:
            await self.refresh()
        return self.wallet

    async def create_wallet(
        self,
        mnemonic: str | None = None,
        *,
        passphrase: str = "",
        label: str = "My Wallet",
    ) -> Wallet:
        """
        Create (or, with *mnemonic*, restore) the active wallet.

        A supplied phrase is used as given; use :meth:`restore_wallet` to
        have its word count checked first.  Any existing active wallet is
        replaced.
        """
        phrase = mnemonic if mnemonic is not None else self.codec.generate(self.mnemonic_strength)

        seed = derive_seed(phrase, passphrase)
        private_key = derive_private_key(seed, self.derivation_path)
        public_key = derive_public_key(private_key)
        address = encode_address(public_key, self.network)

        self.secrets.save_private_key(private_key, address)
        self.secrets.save_mnemonic(phrase, address)

        wallet = Wallet(address=address, public_key=public_key.hex(), label=label)
        self.store.save_wallet(wallet)
        self.wallet = wallet
        self.transactions = []
        self.last_error = None
        logger.info(f"Wallet {address} active ({self.network.name.lower()}, backend={self.backend.name})")
        return wallet

    async def restore_wallet(self, mnemonic: str, *, passphrase: str = "") -> Wallet:
        if not self.codec.validate(mnemonic):
            raise InvalidMnemonic("Mnemonic must have 12 or 24 words")
        return await self.create_wallet(" ".join(mnemonic.split()), passphrase=passphrase)

    async def delete_wallet(self) -> None:
        if self.wallet is None:
            return
        address = self.wallet.address
        self.secrets.delete_private_key(address)
        self.secrets.delete_mnemonic(address)
        self.store.delete_wallet()
        self.wallet = None
        self.transactions = []
        logger.info(f"Wallet {address} deleted")

    def reveal_mnemonic(self) -> str | None:
        wallet = self._require_wallet()
        return self.secrets.get_mnemonic(wallet.address)

    # ── ledger reconciliation ────────────────────────────────────

    async def refresh(self) -> Wallet | None:
        """Re-read balance and history; the previous snapshot is discarded."""
        wallet = self.wallet
        if wallet is None:
            return None
        try:
            balance = await self.backend.get_balance(wallet.address)
            transactions = await self.backend.get_transactions(wallet.address)
        except WalletError as exc:
            self.last_error = str(exc)
            logger.warning(f"Refresh of {wallet.address} failed: {exc}")
            return wallet

        wallet.balance = balance
        self.store.save_wallet(wallet)
        self.transactions = transactions
        self.last_error = None
        return wallet

    async def send(self, recipient: str, amount: int) -> str:
        wallet = self._require_wallet()
        private_key = self.secrets.get_private_key(wallet.address)
        if private_key is None:
            raise PrivateKeyNotFound()
        tx_id = await self.backend.send_transaction(wallet.address, recipient, amount, private_key)
        await self.refresh()
        return tx_id

    async def add_funds(self, amount: int) -> str:
        """Faucet credit to the active wallet, then refresh."""
        wallet = self._require_wallet()
        tx_id = await self.backend.credit_funds(wallet.address, amount)
        await self.refresh()
        return tx_id

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "wallet": self.wallet.to_dict() if self.wallet else None,
            "transactions": [t.to_dict() for t in self.transactions],
        }
