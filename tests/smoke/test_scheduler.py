"""
Smoke test: recurring schedule registration and skipped ticks.
"""

import asyncio
import logging
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from prometheus_client import REGISTRY

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from contracts.constants import (
    METRIC_TYPE_BACKLOG_COUNT,
    METRIC_TYPE_PROCESSED_COUNT,
    STATE_IDLE,
    STATE_RUNNING,
)
from exporter.publisher import MetricPublisher
from exporter.scheduler import ExportCycle, ExportScheduler


class SlowReader:
    """Reader that blocks until released, to observe the running state."""

    def __init__(self, inner):
        self.inner = inner
        self.release = asyncio.Event()

    async def fetch_counts(self):
        await self.release.wait()
        return await self.inner.fetch_counts()


class OverlapTrackingReader:
    """Reader that takes ``delay`` seconds and records how many fetches overlap."""

    def __init__(self, inner, delay):
        self.inner = inner
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.calls = 0

    async def fetch_counts(self):
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            return await self.inner.fetch_counts()
        finally:
            self.active -= 1


async def wait_until(predicate, timeout=1.0, step=0.01):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate() and asyncio.get_running_loop().time() < deadline:
        await asyncio.sleep(step)


def make_cycle(reader, client):
    return ExportCycle(
        reader,
        MetricPublisher(client, "orders-prod"),
        backlog_metric_type=METRIC_TYPE_BACKLOG_COUNT,
        processed_metric_type=METRIC_TYPE_PROCESSED_COUNT,
    )


class TestExportScheduler:

    @pytest.mark.asyncio
    async def test_registers_single_instance_job(self, fake_reader, monitoring_client, caplog):
        caplog.set_level(logging.INFO, logger="exporter.scheduler")
        scheduler = ExportScheduler(make_cycle(fake_reader(1, 1), monitoring_client), interval_seconds=60)

        scheduler.start(paused=True)
        try:
            job = scheduler.scheduler.get_job(ExportScheduler.JOB_ID)
            assert job is not None
            assert job.max_instances == 1
            assert job.coalesce is True
            assert job.trigger.interval.total_seconds() == 60
        finally:
            scheduler.shutdown()

        # Newer APScheduler releases finish stopping on a later loop turn
        await wait_until(lambda: not scheduler.scheduler.running)
        assert not scheduler.scheduler.running
        assert "Export scheduler stopped" in caplog.text

    @pytest.mark.asyncio
    async def test_slow_cycle_skips_overlapping_ticks(self, fake_reader, monitoring_client):
        reader = OverlapTrackingReader(fake_reader(1, 1), delay=2.5)
        scheduler = ExportScheduler(make_cycle(reader, monitoring_client), interval_seconds=1)
        before = REGISTRY.get_sample_value("exporter_cycles_skipped_total") or 0.0

        scheduler.start()
        try:
            await asyncio.sleep(3.2)
        finally:
            scheduler.shutdown()
        await wait_until(lambda: reader.active == 0, timeout=3.0)

        assert reader.calls >= 1
        assert reader.max_active == 1
        assert REGISTRY.get_sample_value("exporter_cycles_skipped_total") >= before + 1

    @pytest.mark.asyncio
    async def test_state_tracks_cycle(self, fake_reader, monitoring_client):
        reader = SlowReader(fake_reader(1, 2))
        scheduler = ExportScheduler(make_cycle(reader, monitoring_client), interval_seconds=60)
        assert scheduler.state == STATE_IDLE

        task = asyncio.create_task(scheduler.cycle.run_once())
        await asyncio.sleep(0)
        assert scheduler.state == STATE_RUNNING

        reader.release.set()
        await task
        assert scheduler.state == STATE_IDLE

    def test_skipped_tick_is_counted_and_logged(self, fake_reader, monitoring_client, caplog):
        scheduler = ExportScheduler(make_cycle(fake_reader(), monitoring_client), interval_seconds=60)
        before = REGISTRY.get_sample_value("exporter_cycles_skipped_total") or 0.0

        scheduler._on_max_instances(SimpleNamespace(job_id=ExportScheduler.JOB_ID))
        scheduler._on_max_instances(SimpleNamespace(job_id="someone_else"))

        assert REGISTRY.get_sample_value("exporter_cycles_skipped_total") == before + 1
        assert "Skipping export tick" in caplog.text

    def test_shutdown_before_start_is_safe(self, fake_reader, monitoring_client):
        scheduler = ExportScheduler(make_cycle(fake_reader(), monitoring_client), interval_seconds=60)
        scheduler.shutdown()
