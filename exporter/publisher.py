"""
Cloud Monitoring publisher for order count gauges.

Each call writes exactly one point to one time series. Failures are logged
and returned to the caller instead of raised, so one metric never blocks the
other.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from google.api import metric_pb2
from google.cloud import monitoring_v3

from contracts.constants import RESOURCE_LABEL_PROJECT_ID, RESOURCE_TYPE_GLOBAL
from contracts.validation import MetricPoint
from exporter.errors import PublishError
from exporter.metrics import PUBLISH_TOTAL

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MICROSECOND = timedelta(microseconds=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def project_name(project_id: str) -> str:
    """Resource name expected by ``create_time_series``."""
    return f"projects/{project_id}"


def _to_timestamp(ts: datetime) -> dict:
    delta = ts - _EPOCH
    return {
        "seconds": delta.days * 86400 + delta.seconds,
        "nanos": delta.microseconds * 1000,
    }


def build_time_series(point: MetricPoint) -> monitoring_v3.TimeSeries:
    """Convert a MetricPoint into a single-point GAUGE TimeSeries."""
    series = monitoring_v3.TimeSeries()
    series.metric.type = point.metric_type
    series.resource.type = RESOURCE_TYPE_GLOBAL
    series.resource.labels[RESOURCE_LABEL_PROJECT_ID] = point.project_id
    series.metric_kind = metric_pb2.MetricDescriptor.MetricKind.GAUGE
    series.value_type = metric_pb2.MetricDescriptor.ValueType.INT64

    # GAUGE: start and end of the interval are the same instant.
    stamp = _to_timestamp(point.timestamp)
    interval = monitoring_v3.TimeInterval({"end_time": stamp, "start_time": stamp})
    series.points = [
        monitoring_v3.Point({"interval": interval, "value": {"int64_value": point.value}})
    ]
    return series


@dataclass
class PublishResult:
    metric_type: str
    value: int
    point: Optional[MetricPoint] = None
    error: Optional[PublishError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MetricPublisher:
    """Writes order count gauges through a shared MetricServiceAsyncClient."""

    def __init__(
        self,
        client,
        project_id: str,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            client: ``monitoring_v3.MetricServiceAsyncClient`` or anything with
                an awaitable ``create_time_series(name=..., time_series=[...])``
            project_id: GCP project that owns the metrics
            clock: returns the current tz-aware time
        """
        self.client = client
        self.project_id = project_id
        self.clock = clock
        self._last_timestamps: Dict[str, datetime] = {}

    def _next_timestamp(self, metric_type: str) -> datetime:
        """Current time, nudged forward so each series only ever moves ahead."""
        ts = self.clock()
        last = self._last_timestamps.get(metric_type)
        if last is not None and ts <= last:
            ts = last + _ONE_MICROSECOND
        self._last_timestamps[metric_type] = ts
        return ts

    async def publish(self, value: int, metric_type: str) -> PublishResult:
        """
        Publish one GAUGE point for ``metric_type``.

        Never raises; a failure is logged and carried in the result.
        """
        logger.info(f"Publishing metric value {value} to {metric_type}")
        point = None
        try:
            point = MetricPoint(
                metric_type=metric_type,
                value=value,
                timestamp=self._next_timestamp(metric_type),
                project_id=self.project_id,
            )
            await self.client.create_time_series(
                name=project_name(self.project_id),
                time_series=[build_time_series(point)],
            )
        except Exception as e:
            error = PublishError(metric_type, e)
            PUBLISH_TOTAL.labels(metric_type=metric_type, status="error").inc()
            logger.error(f"Error publishing metric: {error}")
            return PublishResult(metric_type, value, point, error)

        PUBLISH_TOTAL.labels(metric_type=metric_type, status="success").inc()
        logger.info(f"Successfully published {metric_type}")
        return PublishResult(metric_type, value, point)

    async def close(self):
        transport = getattr(self.client, "transport", None)
        if transport is not None:
            await transport.close()
