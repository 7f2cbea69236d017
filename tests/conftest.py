"""
Shared fixtures: a controllable clock and an in-memory chain provider.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest

from usdc_pay.payments.chains.base import ChainProvider
from usdc_pay.payments.client import PaymentClient
from usdc_pay.payments.exceptions import NoWalletConfiguredError
from usdc_pay.payments.models import (
    CHAIN_BASE,
    CHAIN_SOLANA,
    BalanceResult,
    TransactionStatus,
    TransferObservation,
    TransferResult,
)
from usdc_pay.payments.store import PaymentStore
from usdc_pay.tools import PaymentTools

BASE_WALLET = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"
SOLANA_WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeProvider(ChainProvider):
    def __init__(self, chain: str, wallet: Optional[str]):
        self.chain = chain
        self._wallet = wallet
        self.transfers: List[TransferObservation] = []
        self.scans: List[tuple] = []
        self.sent: List[tuple] = []
        self.on_scan: Optional[Callable[[], None]] = None

    def wallet_address(self) -> Optional[str]:
        return self._wallet

    def get_balance(self, address: str) -> BalanceResult:
        return BalanceResult(address=address, chain=self.chain, balance="12.5", raw_balance="12500000")

    def send_transfer(self, to: str, amount: str) -> TransferResult:
        if not self._wallet:
            raise NoWalletConfiguredError("no key")
        self.sent.append((to, amount))
        return TransferResult(
            tx_hash=f"tx-{len(self.sent)}",
            chain=self.chain,
            from_address=self._wallet,
            to=to,
            amount=amount,
            explorer_url=self.explorer_url(f"tx-{len(self.sent)}"),
        )

    def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        return TransactionStatus(
            tx_hash=tx_hash,
            chain=self.chain,
            confirmed=False,
            explorer_url=self.explorer_url(tx_hash),
        )

    def get_recent_inbound_transfers(self, address: str, since_timestamp: int) -> List[TransferObservation]:
        self.scans.append((address, since_timestamp))
        if self.on_scan:
            self.on_scan()
        return [item for item in self.transfers if item.timestamp >= since_timestamp]

    def explorer_url(self, tx_hash: str) -> str:
        return f"https://explorer.test/{self.chain}/tx/{tx_hash}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> PaymentStore:
    return PaymentStore(clock=clock)


@pytest.fixture
def providers():
    return {
        CHAIN_BASE: FakeProvider(CHAIN_BASE, BASE_WALLET),
        CHAIN_SOLANA: FakeProvider(CHAIN_SOLANA, SOLANA_WALLET),
    }


@pytest.fixture
def client(providers, store) -> PaymentClient:
    return PaymentClient(providers, default_chain=CHAIN_BASE, store=store)


@pytest.fixture
def tools(client) -> PaymentTools:
    return PaymentTools(client)
