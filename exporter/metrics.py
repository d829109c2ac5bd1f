"""
Prometheus metrics for the exporter process itself.
"""

from prometheus_client import Counter, Gauge, Histogram

CYCLES_TOTAL = Counter(
    'exporter_cycles_total',
    'Export cycles completed',
    ['status']  # ok, partial, failed, aborted
)

CYCLES_SKIPPED = Counter(
    'exporter_cycles_skipped_total',
    'Ticks skipped because the previous cycle was still running'
)

CYCLE_DURATION = Histogram(
    'exporter_cycle_duration_seconds',
    'Wall time of one fetch-and-publish cycle',
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

DB_QUERY_LATENCY = Histogram(
    'exporter_db_query_latency_seconds',
    'Order count query latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

DB_QUERY_ERRORS = Counter(
    'exporter_db_query_errors_total',
    'Order count queries that failed'
)

PUBLISH_TOTAL = Counter(
    'exporter_publish_total',
    'Metric points submitted to Cloud Monitoring',
    ['metric_type', 'status']  # success, error
)

LAST_ORDER_COUNT = Gauge(
    'exporter_last_order_count',
    'Most recently fetched order count',
    ['status']  # PENDING, PROCESSED
)
