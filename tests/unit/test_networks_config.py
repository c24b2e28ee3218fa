import pytest

from balance_diff.config import Settings
from balance_diff.core.errors import UnknownNetworkError
from balance_diff.core.models import ChainFamily
from balance_diff.core.networks import (
    NETWORKS,
    get_network,
    networks_by_family,
)
from balance_diff.providers import ADAPTERS, create_adapter


def test_lookup_is_case_insensitive():
    assert get_network("MainNet", Settings()).key == "mainnet"
    assert get_network(" base ", Settings()).chain_id == 8453


def test_unknown_network_raises():
    with pytest.raises(UnknownNetworkError) as excinfo:
        get_network("dogechain", Settings())
    assert excinfo.value.code == "unknown_network"


def test_every_family_has_networks_and_an_adapter():
    for family in ChainFamily:
        assert networks_by_family(family)
        assert family in ADAPTERS


def test_registry_shape():
    assert "helium" in NETWORKS
    for network in NETWORKS.values():
        assert "{address}" in network.explorer_url
        if network.chain_family is ChainFamily.EVM:
            assert network.native_decimals == 18
            assert network.chain_id is not None
        else:
            assert network.native_decimals == 9
            assert network.chain_id is None


def test_rpc_override_from_environment(monkeypatch):
    monkeypatch.setenv("RPC_URL_BASE", "https://base.example.org/rpc")
    network = get_network("base", Settings())
    assert network.rpc_url == "https://base.example.org/rpc"
    # registry entry itself is untouched
    assert NETWORKS["base"].rpc_url == "https://mainnet.base.org"


def test_blank_override_is_ignored(monkeypatch):
    monkeypatch.setenv("RPC_URL_TON", "   ")
    assert get_network("ton", Settings()).rpc_url == NETWORKS["ton"].rpc_url


def test_settings_defaults(monkeypatch):
    for name in ("LOG_LEVEL", "DEFAULT_NETWORK", "DEFAULT_BLOCKS", "REQUEST_TIMEOUT_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.log_level == "WARNING"
    assert settings.default_network == "mainnet"
    assert settings.default_blocks == 50
    assert settings.request_timeout_seconds == 30.0


def test_factory_builds_adapter_per_family():
    assert create_adapter(NETWORKS["mainnet"]).chain_family is ChainFamily.EVM
    assert create_adapter(NETWORKS["solana"]).chain_family is ChainFamily.SOLANA
    assert create_adapter(NETWORKS["ton"]).chain_family is ChainFamily.TON


@pytest.mark.asyncio
async def test_adapter_requires_connect():
    adapter = create_adapter(NETWORKS["mainnet"])
    with pytest.raises(RuntimeError):
        await adapter.current_height()
