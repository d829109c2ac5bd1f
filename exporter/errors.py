"""
Error types raised by the exporter.
"""

from typing import Optional


class ExporterError(Exception):
    """Base class for exporter failures."""


class ConfigError(ExporterError):
    """Environment configuration is missing or malformed."""


class DataSourceError(ExporterError):
    """The order database could not be reached or the query failed."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed{detail}")


class PublishError(ExporterError):
    """A metric point could not be written to Cloud Monitoring."""

    def __init__(self, metric_type: str, cause: Optional[BaseException] = None):
        self.metric_type = metric_type
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"publishing {metric_type} failed{detail}")
