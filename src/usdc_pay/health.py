import logging
from typing import Dict, List, Optional

from .tools import PaymentTools

_LOGGER = logging.getLogger(__name__)


def _wallet_entry(chain: str, address: Optional[str], is_default: bool) -> Dict[str, object]:
    return {
        "chain": chain,
        "walletAddress": address,
        "mode": "read-write" if address else "read-only",
        "default": is_default,
    }


def _wallets(tools: PaymentTools) -> List[Dict[str, object]]:
    client = tools.client
    return [
        _wallet_entry(chain, address, chain == client.default_chain)
        for chain, address in client.wallet_addresses().items()
    ]


def get_health_status(tools: PaymentTools, network: Optional[str] = None) -> Dict[str, object]:
    wallets = _wallets(tools)
    if not any(entry["walletAddress"] for entry in wallets):
        _LOGGER.debug("No wallet keys configured; every chain is read-only")

    return {
        "status": "ready",
        "message": "Ready for commands",
        "network": network,
        "chains": wallets,
        "availableMethods": tools.available_tools(),
        "trackedPayments": len(tools.client.store),
    }
