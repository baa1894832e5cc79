"""Persistence sinks -- SQLite row store, ClickHouse analytics store, dual writer."""

from cryptodp.config import AppSettings
from cryptodp.storage.analytics_store import AnalyticsStore
from cryptodp.storage.manager import DatabaseManager
from cryptodp.storage.row_store import RowStore
from cryptodp.storage.sink import RecordSink


def create_database_manager(settings: AppSettings) -> DatabaseManager:
    """Row store always; analytics store only when enabled."""
    sinks: list[RecordSink] = [RowStore(settings.rowstore.db_path)]
    if settings.analytics.enabled:
        sinks.append(AnalyticsStore(settings.analytics))
    return DatabaseManager(sinks)


__all__ = [
    "AnalyticsStore",
    "DatabaseManager",
    "RecordSink",
    "RowStore",
    "create_database_manager",
]
