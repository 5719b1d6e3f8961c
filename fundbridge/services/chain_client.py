# fundbridge/services/chain_client.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import requests
from web3 import Web3
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractLogicError,
    TimeExhausted,
    TransactionNotFound,
    Web3Exception,
)

from fundbridge.core.cache import TTLCache
from fundbridge.core.chains import resolve_rpc_endpoints, resolve_token_address
from fundbridge.core.config import Settings
from fundbridge.core.errors import (
    AppError,
    ConfigurationError,
    RpcError,
    RpcTimeout,
    RpcUnavailable,
)
from fundbridge.core.retry import retry_on_rate_limit
from fundbridge.models.enums import Currency

logger = logging.getLogger(__name__)

# Minimal ERC-20 surface used for reads.
ERC20_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

# Errors that describe the chain state, not the endpoint. Never failed over.
_PASS_THROUGH = (TransactionNotFound, ContractLogicError, BadFunctionCallOutput, AppError)


def _is_timeout(exc: BaseException) -> bool:
    return isinstance(exc, (requests.Timeout, TimeExhausted, TimeoutError))


class ChainClient:
    """
    Read-only EVM access, one instance per process.

    Every read goes through `_read`: endpoints are tried in order, each
    attempt wrapped by the rate-limit retry policy; transport failures move
    on to the next endpoint.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        sleep: Optional[Callable[[float], None]] = None,
        decimals_cache: Optional[TTLCache] = None,
        web3_factory: Optional[Callable[[str], Web3]] = None,
    ):
        self.settings = settings
        self._sleep = sleep
        self._decimals_cache = decimals_cache or TTLCache(settings.decimals_cache_ttl_seconds)
        self._web3_factory = web3_factory or self._make_web3
        self._web3_by_url: Dict[str, Web3] = {}

    def _make_web3(self, url: str) -> Web3:
        return Web3(
            Web3.HTTPProvider(url, request_kwargs={"timeout": self.settings.rpc_timeout_seconds})
        )

    def _w3(self, url: str) -> Web3:
        w3 = self._web3_by_url.get(url)
        if w3 is None:
            w3 = self._web3_factory(url)
            self._web3_by_url[url] = w3
        return w3

    def _read(self, chain_id: int, op: Callable[[Web3], Any]) -> Any:
        endpoints = resolve_rpc_endpoints(chain_id, self.settings)

        retry = retry_on_rate_limit(
            attempts=self.settings.rpc_max_attempts,
            base_delay=self.settings.rpc_retry_base_delay,
            step=self.settings.rpc_retry_step,
            jitter=self.settings.rpc_retry_jitter,
            sleep=self._sleep,
        )

        failures: List[BaseException] = []
        for url in endpoints:
            attempt = retry(lambda: op(self._w3(url)))
            try:
                return attempt()
            except _PASS_THROUGH:
                raise
            except (requests.RequestException, TimeExhausted, TimeoutError, ConnectionError) as exc:
                failures.append(exc)
                logger.warning("[chain] endpoint failed chain_id=%s url=%s: %s", chain_id, url, exc)
            except Web3Exception as exc:
                raise RpcError("RPC_READ_FAILED", str(exc)) from exc

        if any(_is_timeout(e) for e in failures):
            raise RpcTimeout("RPC_TIMEOUT")
        raise RpcUnavailable("RPC_UNAVAILABLE", f"All {len(endpoints)} endpoint(s) failed for chain {chain_id}.")

    # ---------------------------------------------------------------
    # configuration
    # ---------------------------------------------------------------
    def resolve_token_address(self, chain_id: int, currency: Currency) -> str:
        addr = resolve_token_address(chain_id, currency, self.settings)
        if not addr:
            raise ConfigurationError(
                "TOKEN_NOT_CONFIGURED_ON_CHAIN",
                f"{Currency(currency).value} has no token address on chain {chain_id}.",
            )
        return addr

    # ---------------------------------------------------------------
    # reads
    # ---------------------------------------------------------------
    def get_transaction(self, chain_id: int, tx_hash: str) -> Any:
        return self._read(chain_id, lambda w3: w3.eth.get_transaction(tx_hash))

    def get_receipt(self, chain_id: int, tx_hash: str) -> Any:
        return self._read(chain_id, lambda w3: w3.eth.get_transaction_receipt(tx_hash))

    def token_decimals(self, chain_id: int, token_address: str) -> int:
        key = (chain_id, token_address.lower())
        cached = self._decimals_cache.get(key)
        if cached is not None:
            return cached

        checksum = Web3.to_checksum_address(token_address)
        value = int(
            self._read(
                chain_id,
                lambda w3: w3.eth.contract(address=checksum, abi=ERC20_ABI).functions.decimals().call(),
            )
        )
        self._decimals_cache.set(key, value)
        return value

    def balance_of(self, chain_id: int, token_address: str, owner: str) -> int:
        token = Web3.to_checksum_address(token_address)
        holder = Web3.to_checksum_address(owner)
        return int(
            self._read(
                chain_id,
                lambda w3: w3.eth.contract(address=token, abi=ERC20_ABI).functions.balanceOf(holder).call(),
            )
        )
