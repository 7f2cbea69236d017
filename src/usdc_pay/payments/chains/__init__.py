"""
Chain providers, one per supported ledger family.
"""

import logging
from typing import Dict

from ..models import CHAIN_BASE, CHAIN_SOLANA
from .base import ChainProvider
from .evm import EvmChainProvider
from .solana import SolanaChainProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES = {
    CHAIN_BASE: EvmChainProvider,
    CHAIN_SOLANA: SolanaChainProvider,
}


def build_providers(config) -> Dict[str, ChainProvider]:
    """Build every provider; chains without a key run read-only."""
    providers: Dict[str, ChainProvider] = {}
    for chain, provider_cls in PROVIDER_CLASSES.items():
        settings = config.chain_settings(chain)
        provider = provider_cls(
            network=config.network,
            rpc_url=settings.rpc_url,
            private_key=settings.private_key,
        )
        providers[chain] = provider
        logger.info(
            "Initialised %s provider network=%s wallet=%s",
            chain,
            config.network,
            provider.wallet_address() or "read-only",
        )
    return providers
