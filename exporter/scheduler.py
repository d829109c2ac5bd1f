"""
Fetch-and-publish cycle and the timer that drives it.

One cycle:
1. Fetch backlog and processed counts in a single query
2. Publish both gauges concurrently and wait for both
3. Log the outcome

A data-source failure ends the cycle before anything is published. A publish
failure only affects its own metric. Cycles never overlap: a tick that fires
while the previous cycle is still running is skipped.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import timezone
from typing import Dict, Optional

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, EVENT_SCHEDULER_SHUTDOWN
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from contracts.constants import (
    CYCLE_STATUS_ABORTED,
    CYCLE_STATUS_FAILED,
    CYCLE_STATUS_OK,
    CYCLE_STATUS_PARTIAL,
    STATE_IDLE,
    STATE_RUNNING,
)
from contracts.validation import CountSnapshot
from exporter.db_reader import OrderCountReader
from exporter.errors import DataSourceError, PublishError
from exporter.metrics import CYCLE_DURATION, CYCLES_SKIPPED, CYCLES_TOTAL
from exporter.publisher import MetricPublisher, PublishResult

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """What happened during one cycle."""
    snapshot: Optional[CountSnapshot] = None
    results: Dict[str, PublishResult] = field(default_factory=dict)
    error: Optional[Exception] = None

    @property
    def status(self) -> str:
        if isinstance(self.error, DataSourceError):
            return CYCLE_STATUS_ABORTED
        if self.error is not None:
            return CYCLE_STATUS_FAILED
        published = sum(1 for r in self.results.values() if r.ok)
        if published == len(self.results):
            return CYCLE_STATUS_OK
        if published:
            return CYCLE_STATUS_PARTIAL
        return CYCLE_STATUS_FAILED


class ExportCycle:
    """Sequences one fetch and two publishes."""

    def __init__(
        self,
        reader: OrderCountReader,
        publisher: MetricPublisher,
        backlog_metric_type: str,
        processed_metric_type: str,
    ):
        self.reader = reader
        self.publisher = publisher
        self.backlog_metric_type = backlog_metric_type
        self.processed_metric_type = processed_metric_type
        self.state = STATE_IDLE

    async def run_once(self) -> CycleReport:
        """Run a full cycle. Never raises for data-source or publish failures."""
        self.state = STATE_RUNNING
        start_time = time.time()
        logger.info("Export cycle started: fetching and publishing metrics...")
        try:
            report = await self._run()
        except Exception as e:
            logger.error(f"Unexpected error during export cycle: {e}", exc_info=True)
            report = CycleReport(error=e)
        finally:
            self.state = STATE_IDLE
            CYCLE_DURATION.observe(time.time() - start_time)

        CYCLES_TOTAL.labels(status=report.status).inc()
        return report

    async def _run(self) -> CycleReport:
        try:
            snapshot = await self.reader.fetch_counts()
        except DataSourceError as e:
            logger.error(f"Export cycle aborted, nothing published: {e}")
            return CycleReport(error=e)

        values = {
            self.backlog_metric_type: snapshot.backlog_count,
            self.processed_metric_type: snapshot.processed_count,
        }
        tasks = {
            metric_type: asyncio.create_task(self.publisher.publish(value, metric_type))
            for metric_type, value in values.items()
        }
        await asyncio.wait(tasks.values())

        results = {}
        for metric_type, task in tasks.items():
            if task.cancelled():
                error = PublishError(metric_type, asyncio.CancelledError())
                logger.error(f"Error publishing metric: {error}")
                results[metric_type] = PublishResult(metric_type, values[metric_type], error=error)
            elif task.exception() is not None:
                error = PublishError(metric_type, task.exception())
                logger.error(f"Error publishing metric: {error}")
                results[metric_type] = PublishResult(metric_type, values[metric_type], error=error)
            else:
                results[metric_type] = task.result()

        report = CycleReport(snapshot=snapshot, results=results)
        if report.status == CYCLE_STATUS_OK:
            logger.info("Export cycle finished successfully.")
        else:
            failed = sorted(t for t, r in results.items() if not r.ok)
            logger.warning(
                f"Export cycle finished with {len(failed)} of {len(results)} "
                f"metrics unpublished: {', '.join(failed)}"
            )
        return report


class ExportScheduler:
    """Fires an ExportCycle on a fixed interval for the life of the process."""

    JOB_ID = "order_metrics_export"

    def __init__(
        self,
        cycle: ExportCycle,
        interval_seconds: int,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)

    @property
    def state(self) -> str:
        return self.cycle.state

    def start(self, paused: bool = False):
        """Register the recurring job and start the timer."""
        self.scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)
        self.scheduler.add_listener(self._on_shutdown, EVENT_SCHEDULER_SHUTDOWN)
        self.scheduler.add_job(
            self.cycle.run_once,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start(paused=paused)
        logger.info(
            f"Metric export scheduled every {self.interval_seconds}s. "
            "The process will keep running."
        )

    def shutdown(self):
        """Ask the scheduler to stop. It may finish stopping on the next loop turn."""
        if self.scheduler.running:
            logger.info("Export scheduler stopping")
            self.scheduler.shutdown(wait=False)

    def _on_shutdown(self, event):
        logger.info("Export scheduler stopped")

    def _on_max_instances(self, event):
        if event.job_id != self.JOB_ID:
            return
        CYCLES_SKIPPED.inc()
        logger.warning(
            f"Skipping export tick: previous cycle still {self.state} "
            f"after {self.interval_seconds}s"
        )
