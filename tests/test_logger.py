"""
Log sink tests: fetch failures go to their own file, tagged with the stage.
"""
import asyncio

import pytest

from opsmetrics.config import Settings
from opsmetrics.connectors.memory_provider import InMemoryDataProvider
from opsmetrics.metrics.errors import MetricsFetchError
from opsmetrics.services.metrics_service import MetricsService
from opsmetrics.utils.logger import log, setup_logger


async def _broken_fetch():
    raise ConnectionError("database unreachable")


@pytest.fixture
def log_dir(tmp_path):
    setup_logger(Settings(log_to_file=True, log_dir=str(tmp_path)))
    yield tmp_path
    # Back to console only, closes the file sinks
    setup_logger(Settings(log_to_file=False))


def test_fetch_failure_written_with_stage(log_dir):
    service = MetricsService(InMemoryDataProvider(), Settings())
    with pytest.raises(MetricsFetchError):
        asyncio.run(service.fetch_batch("stage2", {"invoices": _broken_fetch()}))
    log.error("Snapshot refresh failed for b1")
    setup_logger(Settings(log_to_file=False))

    (fetch_log,) = log_dir.glob("fetch_failures_*.log")
    lines = fetch_log.read_text().splitlines()
    assert len(lines) == 1
    assert "| stage2 | Metrics fetch stage2 failed: database unreachable" in lines[0]

    (error_log,) = log_dir.glob("errors_*.log")
    errors = error_log.read_text()
    assert "stage2 failed" in errors
    assert "Snapshot refresh failed for b1" in errors


def test_console_only_by_default(tmp_path):
    setup_logger(Settings(log_to_file=False, log_dir=str(tmp_path)))
    log.error("console only")
    assert list(tmp_path.iterdir()) == []
