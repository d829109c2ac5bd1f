#!/usr/bin/env python3
"""
Entry point for the order metrics exporter.

Builds the connection pool, the Cloud Monitoring client and the scheduler
once, then blocks until SIGINT/SIGTERM.
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

from google.cloud import monitoring_v3
from prometheus_client import start_http_server

from exporter.config import ExporterConfig
from exporter.db_reader import OrderCountReader, create_pool
from exporter.errors import ConfigError
from exporter.publisher import MetricPublisher
from exporter.scheduler import ExportCycle, ExportScheduler

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def start_metrics_server(port: int):
    """Start the Prometheus scrape endpoint. Port 0 disables it."""
    if not port:
        logger.info("Prometheus metrics server disabled")
        return
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except OSError as e:
        logger.error(f"Failed to start metrics server: {e}")


async def serve(config: ExporterConfig, stop_event: Optional[asyncio.Event] = None):
    """Run the exporter until ``stop_event`` is set."""
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    handled = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            handled.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not the main thread or no signal support; rely on stop_event
            pass

    reader = OrderCountReader(create_pool(config))
    publisher = MetricPublisher(monitoring_v3.MetricServiceAsyncClient(), config.project_id)
    cycle = ExportCycle(
        reader,
        publisher,
        backlog_metric_type=config.backlog_metric_type,
        processed_metric_type=config.processed_metric_type,
    )
    scheduler = ExportScheduler(cycle, config.interval_seconds)

    await reader.open()
    try:
        scheduler.start()
        logger.info("Exporter ready")
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        scheduler.shutdown()
        await reader.close()
        await publisher.close()
        for sig in handled:
            loop.remove_signal_handler(sig)


def main() -> int:
    try:
        config = ExporterConfig.from_env()
    except ConfigError as e:
        configure_logging()
        logger.error(str(e))
        return 1

    configure_logging(config.log_level)
    logger.info("=" * 50)
    logger.info("Order Metrics Exporter - Starting")
    logger.info(f"Project: {config.project_id}")
    logger.info(f"Database: {config.db_user}@{config.db_host}:{config.db_port}/{config.db_name}")
    logger.info(f"Metric types: {', '.join(config.metric_types)}")
    logger.info(f"Interval: {config.interval_seconds}s")
    logger.info("=" * 50)

    start_metrics_server(config.metrics_port)

    try:
        asyncio.run(serve(config))
    except Exception as e:
        logger.critical(f"Exporter failed: {e}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
