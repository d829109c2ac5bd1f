"""
Order Metrics Exporter Contracts Package

Provides shared constants and validation for count snapshots and metric points.
"""

from contracts.constants import *
from contracts.validation import (
    CountSnapshot,
    MetricPoint,
    validate_count_snapshot,
    validate_metric_point,
)

__all__ = [
    # Constants
    "ORDER_STATUS_PENDING",
    "ORDER_STATUS_PROCESSED",
    "ORDERS_TABLE",
    "METRIC_TYPE_BACKLOG_COUNT",
    "METRIC_TYPE_PROCESSED_COUNT",
    "RESOURCE_TYPE_GLOBAL",
    "METRIC_KIND_GAUGE",
    "VALUE_TYPE_INT64",
    # Models
    "CountSnapshot",
    "MetricPoint",
    # Validators
    "validate_count_snapshot",
    "validate_metric_point",
]
