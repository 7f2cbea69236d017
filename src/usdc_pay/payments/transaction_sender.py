import logging

from solana.rpc.api import Client as SolanaClient
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction as SoldersTransaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    create_idempotent_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)

from .amounts import USDC_DECIMALS
from .exceptions import PaymentSubmissionError

logger = logging.getLogger(__name__)


class SolanaTransactionSender:
    """Signs and submits SPL token transfers with solana-py."""

    def __init__(self, rpc_endpoint: str) -> None:
        self._client = SolanaClient(rpc_endpoint)

    def transfer_token(
        self,
        keypair_secret: bytes,
        mint: str,
        destination_owner: str,
        amount: int,
        decimals: int = USDC_DECIMALS,
        commitment: str = "confirmed",
    ) -> str:
        """
        Move ``amount`` base units of ``mint`` to ``destination_owner``.

        The recipient's associated token account is created in the same
        transaction when missing. Returns the transaction signature.
        """
        if amount <= 0:
            raise PaymentSubmissionError("Transfer amount must be positive.")

        try:
            keypair = Keypair.from_bytes(keypair_secret)
        except Exception as exc:  # pragma: no cover - library exception
            raise PaymentSubmissionError("Failed to load keypair for payment submission.") from exc

        try:
            mint_pubkey = Pubkey.from_string(mint)
            destination_pubkey = Pubkey.from_string(destination_owner)
        except Exception as exc:  # pragma: no cover
            raise PaymentSubmissionError("Invalid public key for transfer.") from exc

        owner = keypair.pubkey()
        source_ata = get_associated_token_address(owner, mint_pubkey)
        destination_ata = get_associated_token_address(destination_pubkey, mint_pubkey)

        instructions = [
            create_idempotent_associated_token_account(
                payer=owner,
                owner=destination_pubkey,
                mint=mint_pubkey,
            ),
            transfer_checked(
                TransferCheckedParams(
                    program_id=TOKEN_PROGRAM_ID,
                    source=source_ata,
                    mint=mint_pubkey,
                    dest=destination_ata,
                    owner=owner,
                    amount=amount,
                    decimals=decimals,
                )
            ),
        ]
        message = Message(instructions, owner)

        try:
            blockhash_resp = self._client.get_latest_blockhash(commitment=commitment)
            recent_blockhash = blockhash_resp.value.blockhash
        except Exception as exc:  # pylint: disable=broad-except
            raise PaymentSubmissionError("Failed to fetch recent blockhash.") from exc

        if not isinstance(recent_blockhash, Hash):
            try:
                recent_blockhash = Hash.from_string(str(recent_blockhash))
            except Exception as exc:  # pragma: no cover
                raise PaymentSubmissionError("Invalid blockhash value from RPC.") from exc

        transaction = SoldersTransaction([keypair], message, recent_blockhash)

        try:
            response = self._client.send_transaction(
                transaction,
                opts=TxOpts(
                    skip_confirmation=False,
                    preflight_commitment=commitment,
                ),
            )
        except Exception as exc:  # pylint: disable=broad-except
            raise PaymentSubmissionError(
                f"Failed to submit transaction to Solana RPC: {exc}"
            ) from exc

        signature = str(response.value)
        logger.info(
            "Submitted token transfer signature=%s destination=%s amount=%s mint=%s",
            signature,
            destination_owner,
            amount,
            mint,
        )
        return signature
