"""
Shared test doubles for the exporter.

The fakes stand in for the psycopg pool, the Cloud Monitoring client and the
count reader so cycles can run without a database or network.
"""

import sys
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from google.api_core import exceptions as core_exceptions

from contracts.validation import CountSnapshot
from exporter.errors import DataSourceError


class FakeCursor:
    def __init__(self, pool):
        self.pool = pool

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, query, params=None):
        self.pool.executed.append((query, params))
        if self.pool.query_error is not None:
            raise self.pool.query_error

    async def fetchone(self):
        return self.pool.row


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool

    def cursor(self, row_factory=None):
        self.pool.row_factories.append(row_factory)
        return FakeCursor(self.pool)


class FakePool:
    """Minimal stand-in for psycopg_pool.AsyncConnectionPool."""

    def __init__(self, row=None, query_error=None, connect_error=None):
        self.name = "fake"
        self.row = row
        self.query_error = query_error
        self.connect_error = connect_error
        self.executed = []
        self.row_factories = []
        self.checkouts = 0
        self.opened = False
        self.closed = False

    async def open(self):
        self.opened = True

    async def close(self):
        self.closed = True

    @asynccontextmanager
    async def connection(self):
        if self.connect_error is not None:
            raise self.connect_error
        self.checkouts += 1
        yield FakeConnection(self)


class FakeMonitoringClient:
    """Records create_time_series calls; fails for selected metric types."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.calls = []

    async def create_time_series(self, name, time_series):
        metric_type = time_series[0].metric.type
        if metric_type in self.fail_for:
            raise core_exceptions.ServiceUnavailable("simulated network error")
        self.calls.append((name, list(time_series)))

    def series_for(self, metric_type):
        return [
            series
            for _, batch in self.calls
            for series in batch
            if series.metric.type == metric_type
        ]


class FakeReader:
    """OrderCountReader stand-in returning fixed counts or raising."""

    def __init__(self, backlog=0, processed=0, error=None):
        self.backlog = backlog
        self.processed = processed
        self.error = error
        self.calls = 0

    async def fetch_counts(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return CountSnapshot(backlog_count=self.backlog, processed_count=self.processed)


class SteppingClock:
    """Returns start, start + step, start + 2*step, ..."""

    def __init__(self, start=None, step=timedelta(seconds=60)):
        self.current = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        now = self.current
        self.current = self.current + self.step
        return now


@pytest.fixture
def fake_pool():
    return FakePool


@pytest.fixture
def monitoring_client():
    return FakeMonitoringClient()


@pytest.fixture
def failing_client():
    return FakeMonitoringClient


@pytest.fixture
def fake_reader():
    return FakeReader


@pytest.fixture
def broken_reader():
    return FakeReader(error=DataSourceError("fetch_counts", ConnectionRefusedError("db down")))


@pytest.fixture
def stepping_clock():
    return SteppingClock
