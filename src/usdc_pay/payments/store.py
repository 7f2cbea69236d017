import dataclasses
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .amounts import validate_amount
from .exceptions import InvalidRequestError, NotFoundError
from .models import (
    DEFAULT_EXPIRY_MINUTES,
    PAYMENT_STATUSES,
    STATUS_CONFIRMED,
    STATUS_EXPIRED,
    STATUS_PENDING,
    SUPPORTED_CHAINS,
    PaymentRequest,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PaymentStore:
    """
    Process-local table of payment requests.

    Expiry is evaluated lazily on every read, so a request may read as
    pending and then as expired without any write in between. Every method
    returns a copy of the stored request.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._requests: Dict[str, PaymentRequest] = {}
        self._lock = threading.Lock()

    def create(
        self,
        chain: str,
        recipient_address: str,
        amount: str,
        memo: Optional[str] = None,
        expires_in_minutes: Optional[int] = None,
    ) -> PaymentRequest:
        if chain not in SUPPORTED_CHAINS:
            raise NotFoundError(f'Chain "{chain}" is not supported.')
        validate_amount(amount)
        if not recipient_address:
            raise InvalidRequestError("Recipient address is required.")

        window = DEFAULT_EXPIRY_MINUTES if expires_in_minutes is None else expires_in_minutes
        if isinstance(window, bool) or not isinstance(window, (int, float)) or window < 0:
            raise InvalidRequestError("expires_in_minutes must be a non-negative number.")

        with self._lock:
            request = PaymentRequest.create(
                chain=chain,
                recipient_address=recipient_address,
                amount=amount,
                now=self._clock(),
                expires_in_minutes=window,
                memo=memo,
            )
            self._requests[request.payment_id] = request

        logger.info(
            "Created payment request id=%s chain=%s amount=%s recipient=%s expires_at=%s",
            request.payment_id,
            chain,
            amount,
            recipient_address,
            request.expires_at.isoformat(),
        )
        return dataclasses.replace(request)

    def get(self, payment_id: str) -> PaymentRequest:
        with self._lock:
            request = self._lookup(payment_id)
            self._expire_if_due(request, self._clock())
            return dataclasses.replace(request)

    def confirm(self, payment_id: str, tx_hash: str) -> PaymentRequest:
        """
        Mark a request confirmed by ``tx_hash``.

        Calling this again overwrites the recorded hash and timestamp; callers
        are expected to confirm once per genuine match. A request that has
        expired by now is left expired and returned unchanged.
        """
        with self._lock:
            request = self._lookup(payment_id)
            now = self._clock()
            self._expire_if_due(request, now)
            if request.status == STATUS_EXPIRED:
                logger.warning(
                    "Not confirming expired payment request id=%s tx=%s", payment_id, tx_hash
                )
                return dataclasses.replace(request)
            request.status = STATUS_CONFIRMED
            request.confirmed_tx_hash = tx_hash
            request.confirmed_at = now
            snapshot = dataclasses.replace(request)

        logger.info("Confirmed payment request id=%s tx=%s", payment_id, tx_hash)
        return snapshot

    def list(self, status: Optional[str] = None, chain: Optional[str] = None) -> List[PaymentRequest]:
        if status is not None and status not in PAYMENT_STATUSES:
            raise InvalidRequestError(f"Unknown payment status: {status}")

        with self._lock:
            now = self._clock()
            results = []
            for request in self._requests.values():
                self._expire_if_due(request, now)
                if status and request.status != status:
                    continue
                if chain and request.chain != chain:
                    continue
                results.append(dataclasses.replace(request))

        results.sort(key=lambda item: item.created_at, reverse=True)
        return results

    def __len__(self) -> int:
        return len(self._requests)

    # Internal helpers -----------------------------------------------------

    def _lookup(self, payment_id: str) -> PaymentRequest:
        request = self._requests.get(payment_id)
        if request is None:
            raise NotFoundError(f'Payment request "{payment_id}" not found.')
        return request

    @staticmethod
    def _expire_if_due(request: PaymentRequest, now: datetime) -> None:
        if request.status == STATUS_PENDING and request.is_expired_at(now):
            request.status = STATUS_EXPIRED
            logger.debug("Payment request id=%s expired at %s", request.payment_id, request.expires_at)
