import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .payments.models import (
    CHAIN_BASE,
    CHAIN_SOLANA,
    NETWORK_MAINNET,
    SUPPORTED_CHAINS,
    SUPPORTED_NETWORKS,
)

ENV_PREFIX = "PAYMENT_"


@dataclass
class ChainSettings:
    rpc_url: Optional[str] = None
    private_key: Optional[str] = None

    def __repr__(self) -> str:
        key_state = "set" if self.private_key else "unset"
        return f"ChainSettings(rpc_url={self.rpc_url!r}, private_key=<{key_state}>)"


@dataclass
class PayConfig:
    network: str = NETWORK_MAINNET
    default_chain: str = CHAIN_BASE
    listen_host: str = "127.0.0.1"
    listen_port: int = 18402
    chains: Dict[str, ChainSettings] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.network not in SUPPORTED_NETWORKS:
            raise ValueError(
                f"Unsupported network {self.network!r}; expected one of {', '.join(SUPPORTED_NETWORKS)}"
            )
        if self.default_chain not in SUPPORTED_CHAINS:
            raise ValueError(
                f"Unsupported default chain {self.default_chain!r}; "
                f"expected one of {', '.join(SUPPORTED_CHAINS)}"
            )
        for chain in SUPPORTED_CHAINS:
            self.chains.setdefault(chain, ChainSettings())

    def chain_settings(self, chain: str) -> ChainSettings:
        return self.chains.get(chain) or ChainSettings()


def _load_json(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as config_fh:
        return json.load(config_fh)


def load_config(path: str) -> PayConfig:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Configuration file does not exist: {path}")

    raw = _load_json(path)
    chains: Dict[str, ChainSettings] = {}
    for chain, chain_raw in (raw.get("chains") or {}).items():
        if chain not in SUPPORTED_CHAINS:
            raise ValueError(f"Unsupported chain in configuration: {chain}")
        chain_raw = chain_raw or {}
        chains[chain] = ChainSettings(
            rpc_url=chain_raw.get("rpc_url") or None,
            private_key=chain_raw.get("private_key") or None,
        )

    return PayConfig(
        network=raw.get("network", NETWORK_MAINNET),
        default_chain=raw.get("default_chain", CHAIN_BASE),
        listen_host=raw.get("listen_host", "127.0.0.1"),
        listen_port=int(raw.get("listen_port", 18402)),
        chains=chains,
    )


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> PayConfig:
    """
    Build the configuration from ``PAYMENT_*`` variables.

    ``PAYMENT_CONFIG`` names a JSON file that replaces the variables entirely.
    """
    env = os.environ if environ is None else environ

    override_path = env.get(ENV_PREFIX + "CONFIG")
    if override_path:
        return load_config(override_path)

    def _get(key: str) -> Optional[str]:
        value = env.get(ENV_PREFIX + key)
        return value.strip() if value and value.strip() else None

    return PayConfig(
        network=_get("NETWORK") or NETWORK_MAINNET,
        default_chain=_get("DEFAULT_CHAIN") or CHAIN_BASE,
        listen_host=_get("LISTEN_HOST") or "127.0.0.1",
        listen_port=int(_get("LISTEN_PORT") or 18402),
        chains={
            CHAIN_BASE: ChainSettings(
                rpc_url=_get("RPC_URL_BASE"),
                private_key=_get("PRIVATE_KEY_BASE"),
            ),
            CHAIN_SOLANA: ChainSettings(
                rpc_url=_get("RPC_URL_SOLANA"),
                private_key=_get("PRIVATE_KEY_SOLANA"),
            ),
        },
    )
