from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Fundbridge Contribution & Bridge Service"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── RPC ENDPOINTS ───────────
    ethereum_rpc_url: Optional[str] = None
    polygon_rpc_url: Optional[str] = None
    polygon_amoy_rpc_url: Optional[str] = None
    avalanche_rpc_url: Optional[str] = None
    avalanche_fuji_rpc_url: Optional[str] = None
    ankr_api_key: Optional[str] = None
    rpc_use_public_fallbacks: bool = True

    # ─────────── RPC POLICY ───────────
    rpc_timeout_seconds: float = 10.0
    rpc_max_attempts: int = 4
    rpc_retry_base_delay: float = 0.5
    rpc_retry_step: float = 0.5
    rpc_retry_jitter: float = 0.25
    decimals_cache_ttl_seconds: float = 3600.0

    # ─────────── TOKEN ADDRESSES ───────────
    jpyc_address: Optional[str] = None  # chain-agnostic fallback
    jpyc_address_ethereum: Optional[str] = None
    jpyc_address_polygon: Optional[str] = None
    jpyc_address_amoy: Optional[str] = None
    jpyc_address_avax: Optional[str] = None
    jpyc_address_fuji: Optional[str] = None

    usdc_address_ethereum: Optional[str] = None
    usdc_address_polygon: Optional[str] = None
    usdc_address_amoy: Optional[str] = None
    usdc_address_avax: Optional[str] = None
    usdc_address_fuji: Optional[str] = None

    # ─────────── BRIDGE ───────────
    default_funding_chain_id: int = 137
    default_settlement_chain_id: int = 43114
    bridge_strict_amount_check: bool = False

    # ─────────── RATE LIMIT ───────────
    submission_rate_capacity: int = 30
    submission_rate_refill_per_sec: float = 30.0 / 60.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
