"""Static network registry.

Each descriptor carries what an adapter needs to talk to the chain: family,
native currency precision, RPC endpoint and the tokens worth checking. RPC
endpoints can be overridden through ``RPC_URL_*`` settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from ..config import Settings, settings as default_settings
from .errors import UnknownNetworkError
from .models import ChainFamily


@dataclass(frozen=True)
class TokenDescriptor:
    symbol: str
    identifier: str
    decimals: int


@dataclass(frozen=True)
class NetworkDescriptor:
    key: str
    name: str
    chain_family: ChainFamily
    chain_id: Optional[int]
    native_symbol: str
    native_decimals: int
    rpc_url: str
    explorer_url: str
    tokens: Tuple[TokenDescriptor, ...] = field(default_factory=tuple)
    rpc_env: Optional[str] = None


def _evm(key, name, chain_id, symbol, rpc_url, explorer, rpc_env, tokens) -> NetworkDescriptor:
    return NetworkDescriptor(
        key=key,
        name=name,
        chain_family=ChainFamily.EVM,
        chain_id=chain_id,
        native_symbol=symbol,
        native_decimals=18,
        rpc_url=rpc_url,
        explorer_url=f"{explorer}/address/{{address}}",
        tokens=tuple(TokenDescriptor(*token) for token in tokens),
        rpc_env=rpc_env,
    )


def _non_evm(key, name, family, symbol, rpc_url, explorer, rpc_env, tokens=()) -> NetworkDescriptor:
    return NetworkDescriptor(
        key=key,
        name=name,
        chain_family=family,
        chain_id=None,
        native_symbol=symbol,
        native_decimals=9,
        rpc_url=rpc_url,
        explorer_url=f"{explorer}/address/{{address}}",
        tokens=tuple(TokenDescriptor(*token) for token in tokens),
        rpc_env=rpc_env,
    )


_NETWORKS: Tuple[NetworkDescriptor, ...] = (
    # EVM
    _evm("mainnet", "Ethereum Mainnet", 1, "ETH", "https://eth.llamarpc.com", "https://etherscan.io", "RPC_URL_ETH", [
        ("USDC", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6),
        ("USDT", "0xdAC17F958D2ee523a2206206994597C13D831ec7", 6),
        ("UNI", "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984", 18),
        ("LINK", "0x514910771AF9Ca656af840dff83E8264EcF986CA", 18),
        ("stETH", "0xae7ab96520DE3A18E5e111B5EaAb095312D7fE84", 18),
    ]),
    _evm("polygon", "Polygon Mainnet", 137, "MATIC", "https://polygon.llamarpc.com", "https://polygonscan.com", "RPC_URL_POLYGON", [
        ("USDC", "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359", 6),
        ("USDT", "0xc2132D05D31c914a87C6611C10748AEb04B58e8F", 6),
        ("WETH", "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619", 18),
        ("LINK", "0x53E0bca35eC356BD5ddDFebbD1Fc0fD03FaBad39", 18),
    ]),
    _evm("sepolia", "Sepolia Testnet", 11155111, "ETH", "https://rpc.sepolia.org", "https://sepolia.etherscan.io", "RPC_URL_SEPOLIA", [
        ("LINK", "0x779877A7B0D9E8603169DdbD7836e478b4624789", 18),
    ]),
    _evm("base", "Base", 8453, "ETH", "https://mainnet.base.org", "https://basescan.org", "RPC_URL_BASE", [
        ("USDC", "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", 6),
        ("USDbC", "0xd9aAEc86B65D86f6A7B5B1b0c42FFA531710b6CA", 6),
        ("cbETH", "0x2Ae3F1Ec7F1F5012CFEab0185bfc7aa3cf0DEc22", 18),
        ("DAI", "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb", 18),
    ]),
    _evm("arbitrum", "Arbitrum One", 42161, "ETH", "https://arb1.arbitrum.io/rpc", "https://arbiscan.io", "RPC_URL_ARBITRUM", [
        ("USDC", "0xaf88d065e77c8cC2239327C5EDb3A432268e5831", 6),
        ("USDT", "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9", 6),
        ("ARB", "0x912CE59144191C1204E64559FE8253a0e49E6548", 18),
        ("GMX", "0xfc5A1A6EB076a2C7aD06eD22C90d7E710E35ad0a", 18),
        ("WETH", "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", 18),
    ]),
    _evm("optimism", "Optimism", 10, "ETH", "https://mainnet.optimism.io", "https://optimistic.etherscan.io", "RPC_URL_OPTIMISM", [
        ("USDC", "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85", 6),
        ("USDT", "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58", 6),
        ("OP", "0x4200000000000000000000000000000000000042", 18),
        ("SNX", "0x8700dAec35aF8Ff88c16BdF0418774CB3D7599B4", 18),
        ("WETH", "0x4200000000000000000000000000000000000006", 18),
    ]),
    _evm("bnb", "BNB Chain", 56, "BNB", "https://bsc-dataseed.binance.org", "https://bscscan.com", "RPC_URL_BNB", [
        ("USDT", "0x55d398326f99059fF775485246999027B3197955", 18),
        ("USDC", "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", 18),
        ("BUSD", "0xe9e7CEA3DedcA5984780Bafc599bD69ADd087D56", 18),
        ("WBNB", "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c", 18),
    ]),
    _evm("avalanche", "Avalanche C-Chain", 43114, "AVAX", "https://api.avax.network/ext/bc/C/rpc", "https://snowtrace.io", "RPC_URL_AVAX", [
        ("USDC", "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E", 6),
        ("USDT", "0x9702230A8Ea53601f5cD2dc00fDBc13d4dF4A8c7", 6),
        ("WAVAX", "0xB31f66AA3C1e785363F0875A1B74E27b85FD66c7", 18),
    ]),
    _evm("fantom", "Fantom Opera", 250, "FTM", "https://rpc.ftm.tools", "https://ftmscan.com", "RPC_URL_FTM", [
        ("USDC", "0x04068DA6C83AFCFA0e13ba15A6696662335D5B75", 6),
        ("USDT", "0x049d68029688eAbF473097a2fC38ef61633A3C7A", 6),
        ("DAI", "0x8D11eC38a3EB5E956B052f67Da8Bdc9bef8Abf3E", 18),
    ]),
    _evm("zksync", "zkSync Era", 324, "ETH", "https://mainnet.era.zksync.io", "https://explorer.zksync.io", "RPC_URL_ZKSYNC", [
        ("USDC", "0x3355df6D4c9C3035724Fd0e3914dE96A5a83aaf4", 6),
        ("USDT", "0x493257fD37EDB34451f62EDf8D2a0C418852bA4C", 6),
    ]),
    # Solana
    _non_evm("solana", "Solana Mainnet", ChainFamily.SOLANA, "SOL", "https://api.mainnet-beta.solana.com", "https://explorer.solana.com", "RPC_URL_SOLANA", [
        ("USDC", "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", 6),
        ("BONK", "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", 5),
        ("JUP", "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", 6),
    ]),
    # Helium moved onto Solana; native currency is still SOL, HNT/MOBILE/IOT are SPL tokens.
    _non_evm("helium", "Helium (Solana)", ChainFamily.SOLANA, "SOL", "https://api.mainnet-beta.solana.com", "https://explorer.solana.com", "RPC_URL_SOLANA", [
        ("HNT", "hntyVP6YFm1Hg25TN9WGLqM12b8TQmcknKrdu1oxWux", 8),
        ("MOBILE", "mb1eu7TzEc71KxDpsmsKoucSSuuoGLv1drys1oP2jh6", 6),
        ("IOT", "iotEVVZLEywoTn1QdwNPddxPWszn3zFhEot3MfL9fns", 6),
        ("DC", "dcuc8Amr83Wz27ZkQ2K9NS6r8zRpf1J6cvArEBDZDmm", 0),
    ]),
    _non_evm("solana-devnet", "Solana Devnet", ChainFamily.SOLANA, "SOL", "https://api.devnet.solana.com", "https://explorer.solana.com", "RPC_URL_SOLANA_DEVNET"),
    # TON (jettons not tracked yet)
    _non_evm("ton", "TON Mainnet", ChainFamily.TON, "TON", "https://toncenter.com/api/v2/jsonRPC", "https://tonscan.org", "RPC_URL_TON"),
    _non_evm("ton-testnet", "TON Testnet", ChainFamily.TON, "TON", "https://testnet.toncenter.com/api/v2/jsonRPC", "https://testnet.tonscan.org", "RPC_URL_TON_TESTNET"),
)

NETWORKS: Dict[str, NetworkDescriptor] = {network.key: network for network in _NETWORKS}


def _with_override(network: NetworkDescriptor, source: Settings) -> NetworkDescriptor:
    override = source.rpc_override(network.rpc_env)
    if override and override != network.rpc_url:
        return replace(network, rpc_url=override)
    return network


def get_network(key: str, source: Optional[Settings] = None) -> NetworkDescriptor:
    """Look up a network by key (case-insensitive) with RPC overrides applied."""

    network = NETWORKS.get((key or "").strip().lower())
    if network is None:
        raise UnknownNetworkError(key)
    return _with_override(network, source or default_settings)


def networks_by_family(family: ChainFamily) -> List[NetworkDescriptor]:
    return [network for network in _NETWORKS if network.chain_family is family]


__all__ = [
    "TokenDescriptor",
    "NetworkDescriptor",
    "NETWORKS",
    "get_network",
    "networks_by_family",
]
