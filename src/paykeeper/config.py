"""
Centralized configuration management using pydantic-settings.
All components should import Settings from this module.
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PriceFeedSettings(BaseSettings):
    """External price source settings."""
    base_url: str = Field(default="https://api.coingecko.com/api/v3", description="Price API base URL")
    asset_id: str = Field(default="ethereum", description="Asset identifier on the price API")
    fiat_currency: str = Field(default="usd", description="Fiat currency to quote in")
    timeout_seconds: float = Field(default=5.0, le=5.0, gt=0, description="Request timeout, no retries")

    # Optional API key (pro/demo plans)
    api_key: Optional[str] = Field(default=None, description="Price API key")
    api_key_header: str = Field(default="x-cg-demo-api-key", description="Header carrying the API key")

    model_config = SettingsConfigDict(env_prefix="PRICE_FEED_")


class ChainSettings(BaseSettings):
    """Chain access settings."""
    rpc_url: str = Field(default="http://localhost:8545", description="JSON-RPC endpoint URL")
    rpc_timeout_seconds: float = Field(default=10.0, description="JSON-RPC request timeout")
    unit_decimals: int = Field(default=18, ge=0, description="Decimals of the funding asset")
    block_tag: str = Field(default="latest", description="Block tag for view calls")

    model_config = SettingsConfigDict(env_prefix="CHAIN_")


class PolicySettings(BaseSettings):
    """Funding policy inputs. Kept raw, parsed into a FundingPolicy per check."""
    payroll_contract_address: Optional[str] = Field(default=None, description="Payroll contract address")
    top_up_amount_fiat: Optional[str] = Field(default=None, description="Top-up amount in fiat units")
    threshold_fiat: Optional[str] = Field(default=None, description="Minimum balance in fiat units")

    model_config = SettingsConfigDict(env_prefix="POLICY_")


class KeeperSettings(BaseSettings):
    """Keeper service settings."""
    service_port: int = Field(default=8010, description="HTTP port")
    check_interval_seconds: int = Field(default=300, gt=0, description="Seconds between balance checks")
    run_on_start: bool = Field(default=True, description="Run a check immediately on start")
    publish_instructions: bool = Field(default=True, description="Publish execute decisions to Kafka")

    model_config = SettingsConfigDict(env_prefix="KEEPER_")


class KafkaSettings(BaseSettings):
    """Kafka-specific settings."""
    bootstrap_servers: str = Field(default="localhost:9092", description="Kafka bootstrap servers")
    producer_timeout_ms: int = Field(default=10000, description="Producer timeout in milliseconds")

    # Topic names
    topic_funding_instructions: str = Field(default="funding_instructions", description="Funding instruction topic")

    model_config = SettingsConfigDict(env_prefix="KAFKA_")


class MonitoringSettings(BaseSettings):
    """Monitoring and observability settings."""
    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format (json or text)")
    log_file: Optional[str] = Field(default=None, description="Log file path")

    # Health checks
    stale_after_intervals: int = Field(default=3, description="Missed intervals before the loop is unhealthy")

    model_config = SettingsConfigDict(env_prefix="MONITORING_")


class Settings(BaseSettings):
    """Main settings class combining all component settings."""
    service_name: str = Field(default="paykeeper", description="Service name")

    # Sub-settings
    price_feed: PriceFeedSettings = Field(default_factory=PriceFeedSettings)
    chain: ChainSettings = Field(default_factory=ChainSettings)
    policy: PolicySettings = Field(default_factory=PolicySettings)
    keeper: KeeperSettings = Field(default_factory=KeeperSettings)
    kafka: KafkaSettings = Field(default_factory=KafkaSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
