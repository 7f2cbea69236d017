import logging
import math
from typing import Dict, List, Mapping, Optional

from .amounts import meets_tolerance, parse_amount, validate_amount
from .chains.base import ChainProvider
from .exceptions import (
    InvalidAmountError,
    InvalidRequestError,
    NoWalletConfiguredError,
    NotFoundError,
)
from .models import (
    STATUS_EXPIRED,
    BalanceResult,
    PaymentCheck,
    PaymentRequest,
    TransactionStatus,
    TransferObservation,
    TransferResult,
)
from .store import PaymentStore

logger = logging.getLogger(__name__)


class PaymentClient:
    """
    Reconciles payment requests against the chains they were issued on.

    The client never touches a ledger directly; it resolves the provider for
    a request's chain and asks it for recent inbound transfers.
    """

    def __init__(
        self,
        providers: Mapping[str, ChainProvider],
        default_chain: str,
        store: Optional[PaymentStore] = None,
    ):
        if default_chain not in providers:
            raise NotFoundError(f'Default chain "{default_chain}" is not available.')
        self._providers: Dict[str, ChainProvider] = dict(providers)
        self._default_chain = default_chain
        self._store = store if store is not None else PaymentStore()

    @property
    def default_chain(self) -> str:
        return self._default_chain

    @property
    def chains(self) -> List[str]:
        return list(self._providers)

    @property
    def store(self) -> PaymentStore:
        return self._store

    def provider(self, chain: Optional[str] = None) -> ChainProvider:
        name = chain or self._default_chain
        provider = self._providers.get(name)
        if provider is None:
            raise NotFoundError(f'Chain "{name}" is not configured.')
        return provider

    def wallet_addresses(self) -> Dict[str, Optional[str]]:
        return {chain: provider.wallet_address() for chain, provider in self._providers.items()}

    def get_balance(self, address: Optional[str] = None, chain: Optional[str] = None) -> BalanceResult:
        provider = self.provider(chain)
        address = address or provider.wallet_address()
        if not address:
            raise NoWalletConfiguredError(
                "No address provided and no wallet configured for this chain."
            )
        return provider.get_balance(address)

    def create_payment_request(
        self,
        amount: str,
        chain: Optional[str] = None,
        memo: Optional[str] = None,
        expires_in_minutes: Optional[int] = None,
    ) -> PaymentRequest:
        validate_amount(amount)
        provider = self.provider(chain)
        recipient = provider.wallet_address()
        if not recipient:
            raise NoWalletConfiguredError(
                "No wallet configured for this chain. Set the private key to create payment requests."
            )
        return self._store.create(
            chain=provider.chain,
            recipient_address=recipient,
            amount=amount,
            memo=memo,
            expires_in_minutes=expires_in_minutes,
        )

    def check_payment_status(self, payment_id: str) -> PaymentCheck:
        request = self._store.get(payment_id)
        if request.is_terminal:
            return PaymentCheck(request=request)

        provider = self.provider(request.chain)
        since_timestamp = math.floor(request.created_at.timestamp())
        transfers = provider.get_recent_inbound_transfers(
            request.recipient_address, since_timestamp
        )

        match = self._find_match(request, transfers)
        if match is None:
            logger.debug(
                "No matching transfer for payment id=%s checked=%s expected=%s",
                request.payment_id,
                len(transfers),
                request.amount,
            )
            return PaymentCheck(request=request, transfers_checked=len(transfers))

        confirmed = self._store.confirm(request.payment_id, match.tx_hash)
        if confirmed.status == STATUS_EXPIRED:
            # the window closed while the scan was running
            return PaymentCheck(request=confirmed, transfers_checked=len(transfers))
        logger.info(
            "Verified payment id=%s tx=%s from=%s received=%s expected=%s",
            request.payment_id,
            match.tx_hash,
            match.from_address,
            match.amount,
            request.amount,
        )
        return PaymentCheck(
            request=confirmed,
            matched=match,
            transfers_checked=len(transfers),
        )

    def send_usdc(self, to: str, amount: str, chain: Optional[str] = None) -> TransferResult:
        validate_amount(amount)
        to = (to or "").strip()
        if not to:
            raise InvalidRequestError("Recipient address is required.")
        return self.provider(chain).send_transfer(to, amount)

    def get_transaction_status(self, tx_hash: str, chain: Optional[str] = None) -> TransactionStatus:
        if not tx_hash:
            raise InvalidRequestError("Transaction hash is required.")
        return self.provider(chain).get_transaction_status(tx_hash)

    def list_payment_requests(
        self, status: Optional[str] = None, chain: Optional[str] = None
    ) -> List[PaymentRequest]:
        return self._store.list(status=status, chain=chain)

    @staticmethod
    def _find_match(
        request: PaymentRequest, transfers: List[TransferObservation]
    ) -> Optional[TransferObservation]:
        expected = parse_amount(request.amount)
        for transfer in transfers:
            try:
                received = parse_amount(transfer.amount)
            except InvalidAmountError:
                logger.debug("Skipping transfer tx=%s with unreadable amount %r", transfer.tx_hash, transfer.amount)
                continue
            if meets_tolerance(received, expected):
                return transfer
        return None
