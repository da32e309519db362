"""
Metrics engine exceptions
"""


class MetricsEngineError(Exception):
    """Base class for metrics engine failures"""


class MetricsFetchError(MetricsEngineError):
    """A fetch batch failed or timed out; no partial result is emitted"""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"{stage}: {message}")


class InvalidSelectionError(MetricsEngineError):
    """The business selection or date range cannot be computed"""
