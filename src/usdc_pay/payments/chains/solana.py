import logging
from typing import Any, Dict, List, Optional

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from ..amounts import format_amount, validate_amount
from ..exceptions import (
    InvalidAddressError,
    NoWalletConfiguredError,
    TransientLedgerError,
)
from ..key_manager import KeyManager, KeyMaterial
from ..models import (
    CHAIN_SOLANA,
    NETWORK_MAINNET,
    NETWORK_TESTNET,
    BalanceResult,
    TransactionStatus,
    TransferObservation,
    TransferResult,
)
from ..solana_rpc import SolanaRpcClient
from ..transaction_sender import SolanaTransactionSender
from .base import ChainProvider

logger = logging.getLogger(__name__)

USDC_MINTS = {
    NETWORK_MAINNET: "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    NETWORK_TESTNET: "4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU",
}

DEFAULT_RPC = {
    NETWORK_MAINNET: "https://api.mainnet-beta.solana.com",
    NETWORK_TESTNET: "https://api.devnet.solana.com",
}

EXPLORER_URL = "https://solscan.io"


class SolanaChainProvider(ChainProvider):
    chain = CHAIN_SOLANA

    def __init__(
        self,
        network: str = NETWORK_MAINNET,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
        rpc_client: Optional[SolanaRpcClient] = None,
        sender: Optional[SolanaTransactionSender] = None,
        signature_fetch_limit: int = 20,
    ):
        self._network = network
        self._rpc_url = rpc_url or DEFAULT_RPC[network]
        self._rpc = rpc_client or SolanaRpcClient(endpoint=self._rpc_url)
        self._sender = sender
        self._usdc_mint = USDC_MINTS[network]
        self._signature_fetch_limit = signature_fetch_limit
        self._key_material: Optional[KeyMaterial] = None
        if private_key:
            self._key_material = KeyManager().load_solana_key(private_key)

    @property
    def usdc_mint(self) -> str:
        return self._usdc_mint

    def wallet_address(self) -> Optional[str]:
        if self._key_material:
            return self._key_material.public_key_b58
        return None

    def explorer_url(self, tx_hash: str) -> str:
        cluster = "?cluster=devnet" if self._network == NETWORK_TESTNET else ""
        return f"{EXPLORER_URL}/tx/{tx_hash}{cluster}"

    def associated_token_address(self, owner: str) -> str:
        try:
            owner_key = Pubkey.from_string(owner)
        except ValueError as exc:
            raise InvalidAddressError(f"Invalid Solana address: {owner}") from exc
        mint = Pubkey.from_string(self._usdc_mint)
        return str(get_associated_token_address(owner_key, mint))

    def get_balance(self, address: str) -> BalanceResult:
        token_account = self.associated_token_address(address)
        response = self._rpc.get_token_account_balance(token_account)
        value = (response.get("result") or {}).get("value")
        if "error" in response or not value:
            # No token account yet: the owner has simply never held USDC.
            logger.debug(
                "No USDC token account for owner=%s ata=%s error=%s",
                address,
                token_account,
                response.get("error"),
            )
            return BalanceResult(address=address, chain=self.chain, balance="0", raw_balance="0")

        raw = str(value.get("amount") or "0")
        return BalanceResult(
            address=address,
            chain=self.chain,
            balance=format_amount(raw),
            raw_balance=raw,
        )

    def send_transfer(self, to: str, amount: str) -> TransferResult:
        if self._key_material is None:
            raise NoWalletConfiguredError(
                "No wallet configured for Solana chain. "
                "Set PAYMENT_PRIVATE_KEY_SOLANA to send USDC."
            )
        raw_amount = validate_amount(amount)
        self.associated_token_address(to)

        if self._sender is None:
            self._sender = SolanaTransactionSender(self._rpc_url)
        signature = self._sender.transfer_token(
            keypair_secret=self._key_material.secret_key_64,
            mint=self._usdc_mint,
            destination_owner=to,
            amount=raw_amount,
        )
        logger.info(
            "Sent USDC on solana signature=%s destination=%s amount=%s",
            signature,
            to,
            amount,
        )
        return TransferResult(
            tx_hash=signature,
            chain=self.chain,
            from_address=self._key_material.public_key_b58,
            to=to,
            amount=amount,
            explorer_url=self.explorer_url(signature),
        )

    def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        try:
            result = self._rpc.get_transaction(tx_hash).get("result")
        except TransientLedgerError as exc:
            logger.warning("Transaction lookup failed for signature=%s: %s", tx_hash, exc)
            result = None

        if not result:
            return TransactionStatus(
                tx_hash=tx_hash,
                chain=self.chain,
                confirmed=False,
                explorer_url=self.explorer_url(tx_hash),
            )

        meta = result.get("meta") or {}
        transfer = self._extract_transfer_info(result) or {}
        return TransactionStatus(
            tx_hash=tx_hash,
            chain=self.chain,
            confirmed=meta.get("err") is None,
            explorer_url=self.explorer_url(tx_hash),
            block_number=result.get("slot"),
            timestamp=result.get("blockTime"),
            from_address=transfer.get("from"),
            to=transfer.get("to"),
            amount=transfer.get("amount"),
        )

    def get_recent_inbound_transfers(
        self, address: str, since_timestamp: int
    ) -> List[TransferObservation]:
        try:
            token_account = self.associated_token_address(address)
            signatures = self._rpc.get_signatures_for_address(
                token_account, limit=self._signature_fetch_limit
            )
            observations: List[TransferObservation] = []
            # Signatures arrive newest first.
            for signature_info in signatures.get("result") or []:
                block_time = signature_info.get("blockTime")
                if block_time and block_time < since_timestamp:
                    break
                signature = signature_info.get("signature")
                if not signature or signature_info.get("err") is not None:
                    continue

                logger.debug("Inspecting signature=%s receiver=%s", signature, address)
                result = self._rpc.get_transaction(signature).get("result")
                if not result:
                    continue
                if (result.get("meta") or {}).get("err") is not None:
                    continue

                info = self._extract_transfer_info(result)
                if not info or info.get("to") != address:
                    continue
                observations.append(
                    TransferObservation(
                        tx_hash=signature,
                        from_address=info.get("from") or "unknown",
                        amount=info.get("amount") or "0.0",
                        timestamp=block_time or result.get("blockTime") or 0,
                    )
                )
        except (TransientLedgerError, InvalidAddressError) as exc:
            logger.warning("Inbound transfer scan failed for receiver=%s: %s", address, exc)
            return []

        return [item for item in observations if item.timestamp >= since_timestamp]

    def _extract_transfer_info(self, transaction: Dict[str, Any]) -> Optional[Dict[str, str]]:
        """
        Attribute the USDC movement in ``transaction`` from its token balances.

        A positive delta names the recipient owner and the amount; a negative
        delta names the sender owner.
        """
        meta = transaction.get("meta") or {}
        pre_balances = meta.get("preTokenBalances")
        post_balances = meta.get("postTokenBalances")
        if pre_balances is None or post_balances is None:
            return None

        pre_by_index = {
            entry.get("accountIndex"): entry
            for entry in pre_balances
            if entry.get("mint") == self._usdc_mint
        }

        info: Dict[str, str] = {}
        for entry in post_balances:
            if entry.get("mint") != self._usdc_mint:
                continue
            previous = pre_by_index.get(entry.get("accountIndex")) or {}
            before = int((previous.get("uiTokenAmount") or {}).get("amount") or 0)
            after = int((entry.get("uiTokenAmount") or {}).get("amount") or 0)
            delta = after - before
            owner = entry.get("owner")
            if delta > 0:
                if owner:
                    info["to"] = owner
                info["amount"] = format_amount(delta)
            elif delta < 0 and owner:
                info["from"] = owner
        return info
