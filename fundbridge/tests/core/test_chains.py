import pytest

from fundbridge.core.chains import resolve_rpc_endpoints, resolve_token_address
from fundbridge.core.config import Settings
from fundbridge.core.errors import ConfigurationError
from fundbridge.models.enums import Currency


def _settings(**kw):
    return Settings(database_url="sqlite://", **kw)


def test_configured_endpoint_comes_first_then_public_fallbacks():
    urls = resolve_rpc_endpoints(137, _settings(polygon_rpc_url="https://my-node.example"))
    assert urls[0] == "https://my-node.example"
    assert "https://polygon-rpc.com" in urls
    assert len(urls) == len(set(urls))


def test_ankr_endpoint_added_when_key_present():
    urls = resolve_rpc_endpoints(43114, _settings(ankr_api_key="k"))
    assert urls[0] == "https://rpc.ankr.com/avalanche/k"


def test_missing_rpc_is_configuration_error():
    with pytest.raises(ConfigurationError) as ei:
        resolve_rpc_endpoints(1, _settings(rpc_use_public_fallbacks=False))
    assert ei.value.code == "RPC_URL_NOT_SET"


def test_unsupported_chain():
    with pytest.raises(ConfigurationError) as ei:
        resolve_rpc_endpoints(999, _settings())
    assert ei.value.code == "UNSUPPORTED_CHAIN"


def test_token_address_per_chain_with_generic_jpyc_fallback():
    s = _settings(jpyc_address="0x2222222222222222222222222222222222222222")
    assert resolve_token_address(137, Currency.JPYC, s) == "0x2222222222222222222222222222222222222222"
    # generic JPYC address is not applied to Avalanche
    assert resolve_token_address(43114, Currency.JPYC, s) is None


def test_invalid_token_address_is_ignored():
    s = _settings(usdc_address_polygon="not-an-address")
    assert resolve_token_address(137, Currency.USDC, s) is None
