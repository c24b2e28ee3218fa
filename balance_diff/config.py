from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # CLI defaults
    log_level: str = Field(default="WARNING", description="Logging level (logs go to stderr)")
    default_network: str = Field(default="mainnet", description="Network used when --network is omitted")
    default_blocks: int = Field(default=50, ge=1, description="Default lookback in blocks/slots")
    request_timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request RPC timeout")
    watch_interval_seconds: float = Field(default=30.0, gt=0, description="Default watch-mode poll interval")
    webhook_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout for alert webhook POSTs")

    # EVM RPC overrides
    rpc_url_eth: Optional[str] = Field(default=None, description="Ethereum mainnet RPC URL")
    rpc_url_polygon: Optional[str] = Field(default=None, description="Polygon RPC URL")
    rpc_url_sepolia: Optional[str] = Field(default=None, description="Sepolia RPC URL")
    rpc_url_base: Optional[str] = Field(default=None, description="Base RPC URL")
    rpc_url_arbitrum: Optional[str] = Field(default=None, description="Arbitrum One RPC URL")
    rpc_url_optimism: Optional[str] = Field(default=None, description="Optimism RPC URL")
    rpc_url_bnb: Optional[str] = Field(default=None, description="BNB Chain RPC URL")
    rpc_url_avax: Optional[str] = Field(default=None, description="Avalanche C-Chain RPC URL")
    rpc_url_ftm: Optional[str] = Field(default=None, description="Fantom Opera RPC URL")
    rpc_url_zksync: Optional[str] = Field(default=None, description="zkSync Era RPC URL")

    # Solana / TON RPC overrides
    rpc_url_solana: Optional[str] = Field(default=None, description="Solana mainnet RPC URL")
    rpc_url_solana_devnet: Optional[str] = Field(default=None, description="Solana devnet RPC URL")
    rpc_url_ton: Optional[str] = Field(default=None, description="TON mainnet toncenter JSON-RPC URL")
    rpc_url_ton_testnet: Optional[str] = Field(default=None, description="TON testnet toncenter JSON-RPC URL")

    def rpc_override(self, env_name: Optional[str]) -> Optional[str]:
        """Return the configured override for an ``RPC_URL_*`` variable, if any."""

        if not env_name:
            return None
        value = getattr(self, env_name.lower(), None)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None


# Global settings instance
settings = Settings()
