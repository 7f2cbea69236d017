class PaymentError(Exception):
    """Base class for payment errors."""


class InvalidAmountError(PaymentError):
    """Raised when an amount is malformed or outside the allowed range."""


class InvalidAddressError(PaymentError):
    """Raised when an address is not valid for the target chain."""


class InvalidRequestError(PaymentError):
    """Raised when an operation receives unusable arguments."""


class NoWalletConfiguredError(PaymentError):
    """Raised when an operation needs a signing key that is not configured."""


class NotFoundError(PaymentError):
    """Raised for unknown payment requests, tools, or unconfigured chains."""


class TransientLedgerError(PaymentError):
    """Raised when a ledger RPC call fails in a way that may succeed later."""


class PaymentSubmissionError(PaymentError):
    """Raised when submitting a transfer to a ledger fails."""
