"""
Contract shared by every ledger family.

The store and the reconciliation client only talk to ``ChainProvider``;
adding a ledger means adding a subclass here and registering it in
``build_providers``.
"""

import abc
from typing import List, Optional

from ..models import BalanceResult, TransactionStatus, TransferObservation, TransferResult


class ChainProvider(abc.ABC):
    chain: str = ""

    @abc.abstractmethod
    def wallet_address(self) -> Optional[str]:
        """Address of the configured key, or None when running read-only."""

    @abc.abstractmethod
    def get_balance(self, address: str) -> BalanceResult:
        """
        USDC holdings of ``address``; zero when it has no token account.

        Zero renders per chain: Solana reports ``"0"`` for an account that
        was never provisioned, Base formats its ``balanceOf`` result as
        ``"0.0"``. ``raw_balance`` is ``"0"`` on both.
        """

    @abc.abstractmethod
    def send_transfer(self, to: str, amount: str) -> TransferResult:
        """Submit a USDC transfer from the configured wallet. Never retried."""

    @abc.abstractmethod
    def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        """Best-effort lookup; unknown transactions report ``confirmed=False``."""

    @abc.abstractmethod
    def get_recent_inbound_transfers(
        self, address: str, since_timestamp: int
    ) -> List[TransferObservation]:
        """
        Recent transfers into ``address`` at or after ``since_timestamp``.

        Read-only. A failed scan is logged and returns an empty list.
        """

    @abc.abstractmethod
    def explorer_url(self, tx_hash: str) -> str:
        """Block explorer link for ``tx_hash``."""
