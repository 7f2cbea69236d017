import logging
import math
import time
from typing import Any, Dict, List, Optional

from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import TransactionNotFound

from ..amounts import format_amount, validate_amount
from ..exceptions import (
    InvalidAddressError,
    NoWalletConfiguredError,
    PaymentSubmissionError,
    TransientLedgerError,
)
from ..key_manager import KeyManager
from ..models import (
    CHAIN_BASE,
    NETWORK_MAINNET,
    NETWORK_TESTNET,
    BalanceResult,
    TransactionStatus,
    TransferObservation,
    TransferResult,
)
from .base import ChainProvider

logger = logging.getLogger(__name__)

USDC_ADDRESSES = {
    NETWORK_MAINNET: "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    NETWORK_TESTNET: "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
}

EXPLORER_URLS = {
    NETWORK_MAINNET: "https://basescan.org",
    NETWORK_TESTNET: "https://sepolia.basescan.org",
}

DEFAULT_RPC = {
    NETWORK_MAINNET: "https://mainnet.base.org",
    NETWORK_TESTNET: "https://sepolia.base.org",
}

BLOCK_TIME_SECONDS = 2
MIN_SCAN_WINDOW_SECONDS = 60

TRANSFER_TOPIC = HexBytes(Web3.keccak(text="Transfer(address,address,uint256)"))

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
]


def _topic_address(topic: Any) -> str:
    """Checksummed address from a 32-byte indexed topic."""
    return Web3.to_checksum_address("0x" + HexBytes(topic).hex()[-40:])


def _address_topic(address: str) -> str:
    return "0x" + "0" * 24 + address[2:].lower()


class EvmChainProvider(ChainProvider):
    """USDC on Base, read through ERC-20 calls and ``Transfer`` event logs."""

    chain = CHAIN_BASE

    def __init__(
        self,
        network: str = NETWORK_MAINNET,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
        web3: Optional[Web3] = None,
        clock=time.time,
    ):
        self._network = network
        self._rpc_url = rpc_url or DEFAULT_RPC[network]
        self._w3 = web3 or Web3(Web3.HTTPProvider(self._rpc_url, request_kwargs={"timeout": 10}))
        self._usdc_address = Web3.to_checksum_address(USDC_ADDRESSES[network])
        self._explorer = EXPLORER_URLS[network]
        self._contract = self._w3.eth.contract(address=self._usdc_address, abi=ERC20_ABI)
        self._clock = clock
        self._account: Optional[LocalAccount] = None
        if private_key:
            self._account = KeyManager().load_evm_key(private_key).account

    @property
    def usdc_address(self) -> str:
        return self._usdc_address

    def wallet_address(self) -> Optional[str]:
        if self._account:
            return self._account.address
        return None

    def explorer_url(self, tx_hash: str) -> str:
        return f"{self._explorer}/tx/{tx_hash}"

    def get_balance(self, address: str) -> BalanceResult:
        owner = self._checksum(address)
        try:
            raw = self._contract.functions.balanceOf(owner).call()
        except Exception as exc:  # pylint: disable=broad-except
            raise TransientLedgerError(f"Balance lookup failed on Base: {exc}") from exc
        return BalanceResult(
            address=address,
            chain=self.chain,
            balance=format_amount(raw),
            raw_balance=str(raw),
        )

    def send_transfer(self, to: str, amount: str) -> TransferResult:
        if self._account is None:
            raise NoWalletConfiguredError(
                "No private key configured for Base chain. "
                "Set PAYMENT_PRIVATE_KEY_BASE to send USDC."
            )
        raw_amount = validate_amount(amount)
        recipient = self._checksum(to)
        sender = self._account.address

        try:
            tx = self._contract.functions.transfer(recipient, raw_amount).build_transaction(
                {
                    "from": sender,
                    "nonce": self._w3.eth.get_transaction_count(sender, "pending"),
                    "chainId": self._w3.eth.chain_id,
                }
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = Web3.to_hex(self._w3.eth.send_raw_transaction(signed.raw_transaction))
        except Exception as exc:  # pylint: disable=broad-except
            raise PaymentSubmissionError(f"Failed to submit USDC transfer on Base: {exc}") from exc

        logger.info(
            "Sent USDC on base tx=%s destination=%s amount=%s",
            tx_hash,
            recipient,
            amount,
        )
        return TransferResult(
            tx_hash=tx_hash,
            chain=self.chain,
            from_address=sender,
            to=recipient,
            amount=amount,
            explorer_url=self.explorer_url(tx_hash),
        )

    def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        try:
            receipt = self._w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            receipt = None
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Receipt lookup failed for tx=%s: %s", tx_hash, exc)
            receipt = None

        if receipt is None:
            return TransactionStatus(
                tx_hash=tx_hash,
                chain=self.chain,
                confirmed=False,
                explorer_url=self.explorer_url(tx_hash),
            )

        transfer: Dict[str, str] = {}
        for log in receipt["logs"]:
            decoded = self._decode_transfer_log(log)
            if decoded:
                transfer = decoded

        timestamp = None
        try:
            timestamp = int(self._w3.eth.get_block(receipt["blockNumber"])["timestamp"])
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Block lookup failed for tx=%s: %s", tx_hash, exc)

        return TransactionStatus(
            tx_hash=tx_hash,
            chain=self.chain,
            confirmed=receipt["status"] == 1,
            explorer_url=self.explorer_url(tx_hash),
            block_number=int(receipt["blockNumber"]),
            timestamp=timestamp,
            from_address=transfer.get("from"),
            to=transfer.get("to"),
            amount=transfer.get("amount"),
        )

    def get_recent_inbound_transfers(
        self, address: str, since_timestamp: int
    ) -> List[TransferObservation]:
        try:
            recipient = self._checksum(address)
            current_block = self._w3.eth.block_number
            seconds_ago = max(int(self._clock()) - since_timestamp, MIN_SCAN_WINDOW_SECONDS)
            blocks_back = math.ceil(seconds_ago / BLOCK_TIME_SECONDS)
            from_block = max(current_block - blocks_back, 0)

            logs = self._w3.eth.get_logs(
                {
                    "address": self._usdc_address,
                    "fromBlock": from_block,
                    "toBlock": "latest",
                    "topics": [Web3.to_hex(TRANSFER_TOPIC), None, _address_topic(recipient)],
                }
            )
            logger.debug(
                "Scanned blocks %s..latest for receiver=%s logs=%s",
                from_block,
                recipient,
                len(logs),
            )

            block_times: Dict[int, int] = {}
            observations: List[TransferObservation] = []
            for log in logs:
                decoded = self._decode_transfer_log(log)
                if not decoded or decoded["to"].lower() != recipient.lower():
                    continue
                block_number = int(log["blockNumber"])
                if block_number not in block_times:
                    block_times[block_number] = int(
                        self._w3.eth.get_block(block_number)["timestamp"]
                    )
                observations.append(
                    TransferObservation(
                        tx_hash=Web3.to_hex(HexBytes(log["transactionHash"])),
                        from_address=decoded["from"],
                        amount=decoded["amount"],
                        timestamp=block_times[block_number],
                    )
                )
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Inbound transfer scan failed for receiver=%s: %s", address, exc)
            return []

        return [item for item in observations if item.timestamp >= since_timestamp]

    # Internal helpers -----------------------------------------------------

    def _checksum(self, address: str) -> str:
        if not Web3.is_address(address):
            raise InvalidAddressError(f"Invalid EVM address: {address}")
        return Web3.to_checksum_address(address)

    def _decode_transfer_log(self, log: Any) -> Optional[Dict[str, str]]:
        topics = log["topics"]
        if Web3.to_checksum_address(log["address"]) != self._usdc_address:
            return None
        if len(topics) < 3 or HexBytes(topics[0]) != TRANSFER_TOPIC:
            return None
        value = int.from_bytes(bytes(HexBytes(log["data"])), "big")
        return {
            "from": _topic_address(topics[1]),
            "to": _topic_address(topics[2]),
            "amount": format_amount(value),
        }
