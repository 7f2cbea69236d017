"""
USDC payment requests and reconciliation across EVM and Solana ledgers.
"""

from .amounts import format_amount, parse_amount  # noqa: F401
from .client import PaymentClient  # noqa: F401
from .exceptions import (  # noqa: F401
    InvalidAddressError,
    InvalidAmountError,
    InvalidRequestError,
    NoWalletConfiguredError,
    NotFoundError,
    PaymentError,
    PaymentSubmissionError,
    TransientLedgerError,
)
from .models import PaymentCheck, PaymentRequest, TransferObservation  # noqa: F401
from .store import PaymentStore  # noqa: F401
