"""
Order metrics exporter.

Publishes order backlog and processed counts from PostgreSQL to Cloud
Monitoring as custom GAUGE metrics, once per interval.
"""

from exporter.config import ExporterConfig
from exporter.db_reader import OrderCountReader
from exporter.errors import ConfigError, DataSourceError, ExporterError, PublishError
from exporter.publisher import MetricPublisher, PublishResult
from exporter.scheduler import CycleReport, ExportCycle, ExportScheduler

__all__ = [
    "ExporterConfig",
    "OrderCountReader",
    "MetricPublisher",
    "PublishResult",
    "ExportCycle",
    "ExportScheduler",
    "CycleReport",
    "ExporterError",
    "ConfigError",
    "DataSourceError",
    "PublishError",
]
