"""Data providers feeding the metrics engine"""
from opsmetrics.connectors.base import DataProvider
from opsmetrics.connectors.memory_provider import InMemoryDataProvider
from opsmetrics.connectors.sql_provider import SqlDataProvider

__all__ = ["DataProvider", "InMemoryDataProvider", "SqlDataProvider"]
