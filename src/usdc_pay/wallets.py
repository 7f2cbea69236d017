"""
Throwaway wallet generation for testnet setups.
"""

from dataclasses import dataclass
from typing import List

import base58
from eth_account import Account
from nacl.signing import SigningKey

from .payments.models import CHAIN_BASE, NETWORK_TESTNET


@dataclass(frozen=True)
class GeneratedWallets:
    base_address: str
    base_private_key: str
    solana_address: str
    solana_private_key: str


def generate_wallets() -> GeneratedWallets:
    account = Account.create()
    base_key = account.key.hex()
    if not base_key.startswith("0x"):
        base_key = "0x" + base_key

    signing_key = SigningKey.generate()
    verify_key = bytes(signing_key.verify_key)
    # 64-byte keypair, the layout Solana wallets export
    solana_secret = bytes(signing_key) + verify_key

    return GeneratedWallets(
        base_address=account.address,
        base_private_key=base_key,
        solana_address=base58.b58encode(verify_key).decode("ascii"),
        solana_private_key=base58.b58encode(solana_secret).decode("ascii"),
    )


def env_lines(wallets: GeneratedWallets, network: str = NETWORK_TESTNET) -> List[str]:
    return [
        f"PAYMENT_NETWORK={network}",
        f"PAYMENT_DEFAULT_CHAIN={CHAIN_BASE}",
        f"PAYMENT_PRIVATE_KEY_BASE={wallets.base_private_key}",
        f"PAYMENT_PRIVATE_KEY_SOLANA={wallets.solana_private_key}",
    ]
