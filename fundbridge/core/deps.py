# fundbridge/core/deps.py
from functools import lru_cache

from fastapi import Depends

from fundbridge.core.config import Settings, get_settings
from fundbridge.services.bridge_service import BridgeService
from fundbridge.services.chain_client import ChainClient
from fundbridge.services.contribution_service import ContributionService
from fundbridge.services.transfer_matcher import TransferMatcher


@lru_cache(maxsize=1)
def _chain_client() -> ChainClient:
    # one per process so the decimals cache and web3 providers are shared
    return ChainClient(get_settings())


def get_chain_client() -> ChainClient:
    """Overridden in tests with an in-process fake."""
    return _chain_client()


def get_contribution_service(chain=Depends(get_chain_client)) -> ContributionService:
    return ContributionService(TransferMatcher(chain))


def get_bridge_service(
    chain=Depends(get_chain_client),
    settings: Settings = Depends(get_settings),
) -> BridgeService:
    return BridgeService(chain, settings)
