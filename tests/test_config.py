"""Tests for settings composition and startup validation."""

from pydantic import SecretStr

from cryptodp.config import AppSettings, DataSourceSettings, validate_settings


class TestValidateSettings:
    def test_valid_settings(self, mock_settings: AppSettings) -> None:
        assert validate_settings(mock_settings) == []

    def test_missing_api_key(self, mock_settings: AppSettings) -> None:
        mock_settings.datasource.api_key = SecretStr("")

        errors = validate_settings(mock_settings)

        assert len(errors) == 1
        assert "API key" in errors[0]

    def test_api_key_not_needed_for_ccxt_only(self, mock_settings: AppSettings) -> None:
        mock_settings.datasource = DataSourceSettings(
            symbols=["BTC"], ws_enabled=False, rest_provider="ccxt"
        )

        assert validate_settings(mock_settings) == []

    def test_no_agents(self, mock_settings: AppSettings) -> None:
        mock_settings.agents = []

        assert "At least one agent must be configured" in validate_settings(mock_settings)

    def test_no_data_source(self, mock_settings: AppSettings) -> None:
        mock_settings.datasource.ws_enabled = False
        mock_settings.datasource.rest_enabled = False

        assert "At least one data source must be enabled" in validate_settings(mock_settings)

    def test_no_symbols(self, mock_settings: AppSettings) -> None:
        mock_settings.datasource.symbols = []

        assert "At least one symbol must be tracked" in validate_settings(mock_settings)

    def test_partition_counts(self, mock_settings: AppSettings) -> None:
        mock_settings.bus.market_data_partitions = 0

        assert "bus.market_data_partitions must be >= 1" in validate_settings(mock_settings)


class TestDefaults:
    def test_default_agents(self) -> None:
        settings = AppSettings(datasource=DataSourceSettings(api_key="k"))  # type: ignore[arg-type]

        assert [(a.id, a.type) for a in settings.agents] == [
            ("market-monitor-1", "market_monitor"),
            ("technical-analysis-1", "technical_analysis"),
        ]
        assert settings.bus.market_data_topic == "crypto.market.data"
        assert settings.bus.market_data_partitions == 3
        assert settings.analysis.window_size == 100
