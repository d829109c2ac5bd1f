"""
Shared constants for the order metrics exporter.

This module provides a single source of truth for:
- Order status values read from the database
- Cloud Monitoring metric types
- Monitored resource and point kinds

The exporter and the alerting setup should import from this module to ensure
consistency.
"""

# Order status values (orders.status column)
ORDER_STATUS_PENDING = "PENDING"
ORDER_STATUS_PROCESSED = "PROCESSED"

# Table read by the exporter
ORDERS_TABLE = "orders"

# Cloud Monitoring metric types
METRIC_DOMAIN_CUSTOM = "custom.googleapis.com"
METRIC_DOMAIN_WORKLOAD = "workload.googleapis.com"
METRIC_TYPE_BACKLOG_COUNT = f"{METRIC_DOMAIN_CUSTOM}/orders/backlog_count"
METRIC_TYPE_PROCESSED_COUNT = f"{METRIC_DOMAIN_CUSTOM}/orders/processed_count"

# Monitored resource
RESOURCE_TYPE_GLOBAL = "global"
RESOURCE_LABEL_PROJECT_ID = "project_id"

# Point kinds
METRIC_KIND_GAUGE = "GAUGE"
VALUE_TYPE_INT64 = "INT64"

# Cycle outcomes
CYCLE_STATUS_OK = "ok"
CYCLE_STATUS_PARTIAL = "partial"
CYCLE_STATUS_FAILED = "failed"
CYCLE_STATUS_ABORTED = "aborted"

# Driver states
STATE_IDLE = "idle"
STATE_RUNNING = "running"

# Defaults
DEFAULT_DB_HOST = "127.0.0.1"
DEFAULT_DB_PORT = 5432
DEFAULT_EXPORT_INTERVAL_SECONDS = 60
# Cloud Monitoring accepts at most one point per series every 5 seconds
MIN_EXPORT_INTERVAL_SECONDS = 5
