"""
Tool surface for agents: the payment operations as JSON-ready dictionaries.

Each tool raises a ``PaymentError`` subclass on failure; the hosting server
turns those into error responses and keeps serving.
"""

import inspect
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .payments import PaymentClient
from .payments.exceptions import InvalidRequestError, NotFoundError
from .payments.models import (
    STATUS_CONFIRMED,
    STATUS_EXPIRED,
    BalanceResult,
    PaymentCheck,
    PaymentRequest,
    TransactionStatus,
)

logger = logging.getLogger(__name__)

TOOL_DESCRIPTIONS = {
    "get_wallet_address": "Get the configured wallet address for receiving or sending USDC.",
    "get_usdc_balance": "Check the USDC balance for any wallet address on Base or Solana.",
    "create_payment_request": "Create a payment request for receiving USDC.",
    "check_payment_status": "Check whether a payment request has been fulfilled on-chain.",
    "send_usdc": "Send USDC to a target address from the configured wallet.",
    "get_transaction_status": "Look up a transaction by hash and return its confirmation status.",
    "list_payment_requests": "List tracked payment requests, optionally filtered by status or chain.",
}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _balance_snapshot(balance: BalanceResult) -> Dict[str, Any]:
    return {
        "address": balance.address,
        "chain": balance.chain,
        "balance": balance.balance,
        "raw_balance": balance.raw_balance,
    }


def _transaction_snapshot(status: TransactionStatus) -> Dict[str, Any]:
    return {
        "tx_hash": status.tx_hash,
        "chain": status.chain,
        "confirmed": status.confirmed,
        "block_number": status.block_number,
        "timestamp": status.timestamp,
        "from": status.from_address,
        "to": status.to,
        "amount": status.amount,
        "explorer_url": status.explorer_url,
    }


def _request_summary(request: PaymentRequest) -> Dict[str, Any]:
    return {
        "id": request.payment_id,
        "status": request.status,
        "chain": request.chain,
        "amount": request.amount,
        "memo": request.memo,
        "created_at": _iso(request.created_at),
        "expires_at": _iso(request.expires_at),
        "confirmed_tx": request.confirmed_tx_hash,
    }


def _check_snapshot(check: PaymentCheck) -> Dict[str, Any]:
    request = check.request
    if request.status == STATUS_CONFIRMED:
        payload = {
            "payment_id": request.payment_id,
            "status": STATUS_CONFIRMED,
            "confirmed_tx": request.confirmed_tx_hash,
            "confirmed_at": _iso(request.confirmed_at),
        }
        if check.matched:
            payload["from"] = check.matched.from_address
            payload["amount_received"] = check.matched.amount
        return payload

    if request.status == STATUS_EXPIRED:
        return {
            "payment_id": request.payment_id,
            "status": STATUS_EXPIRED,
            "expired_at": _iso(request.expires_at),
        }

    return {
        "payment_id": request.payment_id,
        "status": request.status,
        "amount_expected": request.amount,
        "chain": request.chain,
        "recipient_address": request.recipient_address,
        "expires_at": _iso(request.expires_at),
        "recent_transfers_checked": check.transfers_checked or 0,
    }


class PaymentTools:
    def __init__(self, client: PaymentClient):
        self._client = client
        self._tools: Dict[str, Callable[..., Dict[str, Any]]] = {
            name: getattr(self, name) for name in TOOL_DESCRIPTIONS
        }

    @property
    def client(self) -> PaymentClient:
        return self._client

    def available_tools(self) -> List[Dict[str, Any]]:
        entries = []
        for name, handler in self._tools.items():
            params = [
                {"name": param.name, "required": param.default is inspect.Parameter.empty}
                for param in inspect.signature(handler).parameters.values()
            ]
            entries.append(
                {"name": name, "description": TOOL_DESCRIPTIONS[name], "parameters": params}
            )
        return entries

    def invoke(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        handler = self._tools.get(name)
        if handler is None:
            raise NotFoundError(f"Unknown tool: {name}")
        arguments = arguments or {}
        if not isinstance(arguments, dict):
            raise InvalidRequestError("Tool arguments must be a JSON object.")

        signature = inspect.signature(handler)
        try:
            bound = signature.bind(**arguments)
        except TypeError as exc:
            raise InvalidRequestError(f"Invalid arguments for {name}: {exc}") from exc

        logger.debug("Invoking tool %s with %s", name, sorted(arguments))
        return handler(*bound.args, **bound.kwargs)

    # Tools ----------------------------------------------------------------

    def get_wallet_address(self, chain: Optional[str] = None) -> Dict[str, Any]:
        if chain:
            address = self._client.provider(chain).wallet_address()
            return {
                "chain": chain,
                "address": address or "Not configured (no private key set)",
            }
        return {
            name: address or "Not configured"
            for name, address in self._client.wallet_addresses().items()
        }

    def get_usdc_balance(
        self, address: Optional[str] = None, chain: Optional[str] = None
    ) -> Dict[str, Any]:
        return _balance_snapshot(self._client.get_balance(address=address, chain=chain))

    def create_payment_request(
        self,
        amount: str,
        chain: Optional[str] = None,
        memo: Optional[str] = None,
        expires_in_minutes: Optional[int] = None,
    ) -> Dict[str, Any]:
        request = self._client.create_payment_request(
            amount=amount,
            chain=chain,
            memo=memo,
            expires_in_minutes=expires_in_minutes,
        )
        return {
            "payment_id": request.payment_id,
            "status": request.status,
            "chain": request.chain,
            "recipient_address": request.recipient_address,
            "amount_usdc": request.amount,
            "memo": request.memo,
            "expires_at": _iso(request.expires_at),
            "instructions": (
                f"Send {request.amount} USDC to {request.recipient_address} "
                f"on {request.chain}. Include memo: {request.memo}"
            ),
        }

    def check_payment_status(self, payment_id: str) -> Dict[str, Any]:
        return _check_snapshot(self._client.check_payment_status(payment_id))

    def send_usdc(self, to: str, amount: str, chain: Optional[str] = None) -> Dict[str, Any]:
        result = self._client.send_usdc(to=to, amount=amount, chain=chain)
        return {
            "success": True,
            "tx_hash": result.tx_hash,
            "chain": result.chain,
            "from": result.from_address,
            "to": result.to,
            "amount_usdc": result.amount,
            "explorer_url": result.explorer_url,
        }

    def get_transaction_status(self, tx_hash: str, chain: Optional[str] = None) -> Dict[str, Any]:
        return _transaction_snapshot(self._client.get_transaction_status(tx_hash, chain=chain))

    def list_payment_requests(
        self, status: Optional[str] = None, chain: Optional[str] = None
    ) -> Dict[str, Any]:
        summary = [
            _request_summary(request)
            for request in self._client.list_payment_requests(status=status, chain=chain)
        ]
        return {"total": len(summary), "requests": summary}
