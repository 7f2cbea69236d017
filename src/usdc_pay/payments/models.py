import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

CHAIN_BASE = "base"
CHAIN_SOLANA = "solana"
SUPPORTED_CHAINS = (CHAIN_BASE, CHAIN_SOLANA)

NETWORK_MAINNET = "mainnet"
NETWORK_TESTNET = "testnet"
SUPPORTED_NETWORKS = (NETWORK_MAINNET, NETWORK_TESTNET)

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_EXPIRED = "expired"
PAYMENT_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_EXPIRED)

DEFAULT_EXPIRY_MINUTES = 30


def new_payment_id() -> str:
    return secrets.token_hex(8)


@dataclass
class PaymentRequest:
    chain: str
    recipient_address: str
    amount: str
    created_at: datetime
    expires_at: datetime
    payment_id: str = field(default_factory=new_payment_id)
    memo: str = ""
    status: str = STATUS_PENDING
    confirmed_tx_hash: Optional[str] = None
    confirmed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.memo:
            self.memo = f"pay-{self.payment_id}"

    @property
    def is_terminal(self) -> bool:
        return self.status in (STATUS_CONFIRMED, STATUS_EXPIRED)

    def is_expired_at(self, now: datetime) -> bool:
        return now >= self.expires_at

    @classmethod
    def create(
        cls,
        chain: str,
        recipient_address: str,
        amount: str,
        now: datetime,
        expires_in_minutes: int = DEFAULT_EXPIRY_MINUTES,
        memo: Optional[str] = None,
    ) -> "PaymentRequest":
        return cls(
            chain=chain,
            recipient_address=recipient_address,
            amount=amount,
            created_at=now,
            expires_at=now + timedelta(minutes=expires_in_minutes),
            memo=memo or "",
        )


@dataclass(frozen=True)
class TransferObservation:
    """An inbound USDC transfer seen by a chain scan."""

    tx_hash: str
    from_address: str
    amount: str
    timestamp: int


@dataclass(frozen=True)
class BalanceResult:
    address: str
    chain: str
    balance: str
    raw_balance: str


@dataclass(frozen=True)
class TransferResult:
    tx_hash: str
    chain: str
    from_address: str
    to: str
    amount: str
    explorer_url: str


@dataclass(frozen=True)
class TransactionStatus:
    tx_hash: str
    chain: str
    confirmed: bool
    explorer_url: str
    block_number: Optional[int] = None
    timestamp: Optional[int] = None
    from_address: Optional[str] = None
    to: Optional[str] = None
    amount: Optional[str] = None


@dataclass(frozen=True)
class PaymentCheck:
    """Outcome of one reconciliation pass over a payment request."""

    request: PaymentRequest
    matched: Optional[TransferObservation] = None
    transfers_checked: Optional[int] = None

    @property
    def status(self) -> str:
        return self.request.status
