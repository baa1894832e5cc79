"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic import BaseModel, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

_DAY_MS = 24 * 60 * 60 * 1000


class BusSettings(BaseSettings):
    """Kafka-compatible message bus (Redpanda) connection and topic layout."""

    model_config = SettingsConfigDict(env_prefix="BUS_")

    brokers: list[str] = ["localhost:9092"]
    client_id: str = "cryptodp"

    market_data_topic: str = "crypto.market.data"
    signals_topic: str = "crypto.signals"
    analysis_topic: str = "crypto.analysis"

    market_data_partitions: int = 3  # symbol-hash routed
    signals_partitions: int = 2
    analysis_partitions: int = 2
    replication_factor: int = 1

    market_data_retention_ms: int = 7 * _DAY_MS
    signals_retention_ms: int = 30 * _DAY_MS
    analysis_retention_ms: int = 90 * _DAY_MS


class DataSourceSettings(BaseSettings):
    """Market data provider settings (streaming push + REST pull)."""

    model_config = SettingsConfigDict(env_prefix="DATASOURCE_")

    symbols: list[str] = ["BTC", "ETH", "ADA", "DOT", "SOL"]
    quote: str = "USD"

    api_key: SecretStr = SecretStr("")  # CryptoCompare
    rest_url: str = "https://min-api.cryptocompare.com/data"
    ws_url: str = "wss://streamer.cryptocompare.com/v2"

    rest_enabled: bool = True
    ws_enabled: bool = True
    rest_provider: Literal["cryptocompare", "ccxt"] = "cryptocompare"
    poll_interval: float = 60.0  # seconds between OHLCV pulls

    # Only used when rest_provider == "ccxt"
    ccxt_exchange: str = "binance"
    ccxt_quote: str = "USDT"
    ccxt_timeframe: str = "1m"

    request_timeout: float = 10.0


class StreamerSettings(BaseSettings):
    """WebSocket reconnect behaviour.

    "fixed" retries every ``base_delay`` seconds forever (legacy behaviour).
    "exponential" doubles the delay per failed attempt up to ``max_delay``
    and applies +/- ``jitter`` proportional randomisation.
    """

    model_config = SettingsConfigDict(env_prefix="STREAMER_")

    reconnect_strategy: Literal["fixed", "exponential"] = "exponential"
    reconnect_base_delay: float = 5.0
    reconnect_max_delay: float = 60.0
    reconnect_multiplier: float = 2.0
    reconnect_jitter: float = 0.1


class AnalysisSettings(BaseSettings):
    """Market monitoring analysis parameters."""

    model_config = SettingsConfigDict(env_prefix="ANALYSIS_")

    window_size: int = 100
    min_analysis_points: int = 10
    tick_move_threshold: float = 0.01  # 1% move vs last close triggers analysis
    min_signal_strength: float = 0.6
    narrative_max_chars: int = 500


class LLMSettings(BaseSettings):
    """Text generation service used for market commentary."""

    model_config = SettingsConfigDict(env_prefix="LLM_")

    provider: Literal["ollama", "openai"] = "ollama"
    model: str = "qwen3:0.6b"
    base_url: str = "http://localhost:11434"
    api_key: SecretStr = SecretStr("")
    temperature: float = 0.1
    max_tokens: int = 400
    timeout: float = 60.0


class RowStoreSettings(BaseSettings):
    """Row/time-series sink (point lookups, time windows)."""

    model_config = SettingsConfigDict(env_prefix="ROWSTORE_")

    db_path: str = "data/cryptodb.sqlite"


class AnalyticsStoreSettings(BaseSettings):
    """Columnar analytics sink (ClickHouse over its HTTP interface)."""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    enabled: bool = True
    url: str = "http://localhost:8123"
    database: str = "crypto_analytics"
    username: str = "default"
    password: SecretStr = SecretStr("")
    timeout: float = 10.0


class HealthSettings(BaseSettings):
    """HTTP health/stats endpoint."""

    model_config = SettingsConfigDict(env_prefix="HEALTH_")

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8080


class AgentSettings(BaseModel):
    """A single agent instance."""

    id: str
    type: Literal["market_monitor", "technical_analysis", "risk_management", "execution"]
    enabled: bool = True
    update_interval: float = 5.0  # seconds between periodic analysis cycles


def _default_agents() -> list[AgentSettings]:
    return [
        AgentSettings(id="market-monitor-1", type="market_monitor", update_interval=5.0),
        AgentSettings(id="technical-analysis-1", type="technical_analysis", update_interval=30.0),
    ]


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    environment: Literal["development", "staging", "production"] = "development"
    bus: BusSettings = BusSettings()
    datasource: DataSourceSettings = DataSourceSettings()
    streamer: StreamerSettings = StreamerSettings()
    analysis: AnalysisSettings = AnalysisSettings()
    llm: LLMSettings = LLMSettings()
    rowstore: RowStoreSettings = RowStoreSettings()
    analytics: AnalyticsStoreSettings = AnalyticsStoreSettings()
    health: HealthSettings = HealthSettings()
    agents: list[AgentSettings] = _default_agents()


def validate_settings(settings: AppSettings) -> list[str]:
    """Return a list of configuration errors. Empty list means valid.

    A missing CryptoCompare API key is only an error while a CryptoCompare
    source (WebSocket, or REST with the cryptocompare provider) is enabled.
    """
    errors: list[str] = []

    if not settings.agents:
        errors.append("At least one agent must be configured")

    ds = settings.datasource
    if not (ds.rest_enabled or ds.ws_enabled):
        errors.append("At least one data source must be enabled")
    if not ds.symbols:
        errors.append("At least one symbol must be tracked")

    uses_cryptocompare = ds.ws_enabled or (
        ds.rest_enabled and ds.rest_provider == "cryptocompare"
    )
    if uses_cryptocompare and not ds.api_key.get_secret_value():
        errors.append(
            "CryptoCompare API key is required when a CryptoCompare data source is enabled"
        )

    bus = settings.bus
    for name in ("market_data_partitions", "signals_partitions", "analysis_partitions"):
        if getattr(bus, name) < 1:
            errors.append(f"bus.{name} must be >= 1")

    if settings.analysis.window_size < 1:
        errors.append("analysis.window_size must be >= 1")

    return errors
