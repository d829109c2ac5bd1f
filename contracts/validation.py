"""
Validation library for the order metrics exporter.

Provides Pydantic models for the values that cross component boundaries:
count snapshots coming out of the database and metric points going to
Cloud Monitoring.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contracts.constants import METRIC_DOMAIN_CUSTOM, METRIC_DOMAIN_WORKLOAD


def _parse_datetime(v):
    """Parse ISO 8601 datetime string and pin naive values to UTC."""
    if isinstance(v, str):
        v = datetime.fromisoformat(v.replace("Z", "+00:00"))
    if isinstance(v, datetime) and v.tzinfo is None:
        v = v.replace(tzinfo=timezone.utc)
    return v


# ============================================================================
# Count Snapshot
# ============================================================================

class CountSnapshot(BaseModel):
    """Backlog and processed counts read together in a single query."""
    model_config = ConfigDict(frozen=True)

    backlog_count: int = Field(ge=0, description="Orders with status PENDING")
    processed_count: int = Field(ge=0, description="Orders with status PROCESSED")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("observed_at", mode="before")
    @classmethod
    def parse_observed_at(cls, v):
        return _parse_datetime(v)


# ============================================================================
# Metric Point
# ============================================================================

class MetricPoint(BaseModel):
    """A single GAUGE observation for one metric type."""
    model_config = ConfigDict(frozen=True)

    metric_type: str = Field(min_length=1)
    value: int
    timestamp: datetime
    project_id: str = Field(min_length=1)

    @field_validator("metric_type")
    @classmethod
    def validate_metric_type(cls, v: str) -> str:
        """Only user-defined metric domains accept writes."""
        domain, _, path = v.partition("/")
        if domain not in (METRIC_DOMAIN_CUSTOM, METRIC_DOMAIN_WORKLOAD) or not path:
            raise ValueError(
                f"metric type must look like {METRIC_DOMAIN_CUSTOM}/<path>, got {v!r}"
            )
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v):
        """Parse ISO 8601 datetime string."""
        return _parse_datetime(v)


# ============================================================================
# Validation Functions
# ============================================================================

def validate_count_snapshot(data: dict) -> tuple[bool, Optional[CountSnapshot], Optional[str]]:
    """
    Validate CountSnapshot.

    Returns:
        (is_valid, snapshot_or_none, error_message_or_none)
    """
    try:
        snapshot = CountSnapshot(**data)
        return True, snapshot, None
    except Exception as e:
        return False, None, str(e)


def validate_metric_point(data: dict) -> tuple[bool, Optional[MetricPoint], Optional[str]]:
    """
    Validate MetricPoint.

    Returns:
        (is_valid, point_or_none, error_message_or_none)
    """
    try:
        point = MetricPoint(**data)
        return True, point, None
    except Exception as e:
        return False, None, str(e)
