# fundbridge/core/chains.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from web3 import Web3

from fundbridge.core.config import Settings
from fundbridge.core.errors import ConfigurationError
from fundbridge.models.enums import Currency


@dataclass(frozen=True)
class ChainSpec:
    chain_id: int
    name: str
    explorer_base_url: str
    # Settings attribute names, highest priority first
    rpc_settings: Tuple[str, ...]
    public_rpc_urls: Tuple[str, ...] = ()
    ankr_slug: Optional[str] = None
    token_settings: Dict[Currency, Tuple[str, ...]] = field(default_factory=dict)


SUPPORTED_CHAINS: Dict[int, ChainSpec] = {
    1: ChainSpec(
        chain_id=1,
        name="Ethereum Mainnet",
        explorer_base_url="https://etherscan.io",
        rpc_settings=("ethereum_rpc_url",),
        token_settings={
            Currency.JPYC: ("jpyc_address_ethereum",),
            Currency.USDC: ("usdc_address_ethereum",),
        },
    ),
    137: ChainSpec(
        chain_id=137,
        name="Polygon Mainnet",
        explorer_base_url="https://polygonscan.com",
        rpc_settings=("polygon_rpc_url",),
        public_rpc_urls=(
            "https://polygon-rpc.com",
            "https://polygon-bor-rpc.publicnode.com",
        ),
        ankr_slug="polygon",
        token_settings={
            Currency.JPYC: ("jpyc_address_polygon", "jpyc_address"),
            Currency.USDC: ("usdc_address_polygon",),
        },
    ),
    80002: ChainSpec(
        chain_id=80002,
        name="Polygon Amoy",
        explorer_base_url="https://amoy.polygonscan.com",
        rpc_settings=("polygon_amoy_rpc_url",),
        public_rpc_urls=(
            "https://rpc-amoy.polygon.technology",
            "https://polygon-amoy-bor-rpc.publicnode.com",
        ),
        token_settings={
            Currency.JPYC: ("jpyc_address_amoy", "jpyc_address"),
            Currency.USDC: ("usdc_address_amoy",),
        },
    ),
    43114: ChainSpec(
        chain_id=43114,
        name="Avalanche C-Chain",
        explorer_base_url="https://snowtrace.io",
        rpc_settings=("avalanche_rpc_url",),
        public_rpc_urls=("https://api.avax.network/ext/bc/C/rpc",),
        ankr_slug="avalanche",
        token_settings={
            Currency.JPYC: ("jpyc_address_avax",),
            Currency.USDC: ("usdc_address_avax",),
        },
    ),
    43113: ChainSpec(
        chain_id=43113,
        name="Avalanche Fuji",
        explorer_base_url="https://testnet.snowtrace.io",
        rpc_settings=("avalanche_fuji_rpc_url",),
        public_rpc_urls=("https://api.avax-test.network/ext/bc/C/rpc",),
        token_settings={
            Currency.JPYC: ("jpyc_address_fuji",),
            Currency.USDC: ("usdc_address_fuji",),
        },
    ),
}


def _setting(settings: Settings, name: str) -> Optional[str]:
    v = getattr(settings, name, None)
    if not v or not str(v).strip():
        return None
    return str(v).strip()


def get_chain_spec(chain_id: int) -> ChainSpec:
    chain = SUPPORTED_CHAINS.get(chain_id)
    if chain is None:
        raise ConfigurationError("UNSUPPORTED_CHAIN", f"Chain {chain_id} is not supported.")
    return chain


def resolve_rpc_endpoints(chain_id: int, settings: Settings) -> List[str]:
    """
    Ordered, de-duplicated endpoint list: configured URLs first,
    then (optionally) public fallbacks.
    """
    chain = get_chain_spec(chain_id)
    urls: List[str] = []

    def add(url: Optional[str]) -> None:
        if url and url not in urls:
            urls.append(url)

    for name in chain.rpc_settings:
        add(_setting(settings, name))

    if settings.rpc_use_public_fallbacks:
        ankr_key = _setting(settings, "ankr_api_key")
        if chain.ankr_slug and ankr_key:
            add(f"https://rpc.ankr.com/{chain.ankr_slug}/{ankr_key}")
        for url in chain.public_rpc_urls:
            add(url)

    if not urls:
        raise ConfigurationError("RPC_URL_NOT_SET", f"No RPC endpoint configured for chain {chain_id}.")
    return urls


def resolve_token_address(
    chain_id: int, currency: Currency, settings: Settings
) -> Optional[str]:
    """Checksummed token contract address, or None when not configured."""
    chain = SUPPORTED_CHAINS.get(chain_id)
    if chain is None:
        return None
    for name in chain.token_settings.get(Currency(currency), ()):
        raw = _setting(settings, name)
        if raw and Web3.is_address(raw):
            return Web3.to_checksum_address(raw)
    return None
