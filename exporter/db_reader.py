"""
PostgreSQL reader for order status counts.

Both counts come from one conditional-aggregation query so the backlog and
processed figures always describe the same instant.
"""

import logging
from typing import Any, Optional

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from contracts.constants import ORDER_STATUS_PENDING, ORDER_STATUS_PROCESSED, ORDERS_TABLE
from contracts.validation import CountSnapshot
from exporter.config import ExporterConfig
from exporter.errors import DataSourceError
from exporter.metrics import DB_QUERY_ERRORS, DB_QUERY_LATENCY, LAST_ORDER_COUNT

logger = logging.getLogger(__name__)

ORDER_COUNTS_QUERY = sql.SQL("""
    SELECT
        COUNT(*) FILTER (WHERE status = %(pending)s) AS backlog_count,
        COUNT(*) FILTER (WHERE status = %(processed)s) AS processed_count
    FROM {table}
""").format(table=sql.Identifier(ORDERS_TABLE))

QUERY_PARAMS = {"pending": ORDER_STATUS_PENDING, "processed": ORDER_STATUS_PROCESSED}


def create_pool(config: ExporterConfig) -> AsyncConnectionPool:
    """Build the shared connection pool. Call ``open()`` before first use."""
    return AsyncConnectionPool(
        config.conninfo,
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
        timeout=config.pool_timeout,
        name="order-counts",
        open=False,
    )


def coerce_count(value: Any) -> int:
    """Turn an aggregate column into a non-negative int; anything unusable is 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(count, 0)


class OrderCountReader:
    """Runs the order count query against a long-lived connection pool."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def open(self):
        """Start the pool. Connections are filled in the background."""
        await self.pool.open()
        logger.info(f"Connection pool '{self.pool.name}' opened")

    async def close(self):
        await self.pool.close()
        logger.info(f"Connection pool '{self.pool.name}' closed")

    async def fetch_counts(self) -> CountSnapshot:
        """
        Fetch backlog (PENDING) and processed (PROCESSED) counts.

        Raises:
            DataSourceError: if no connection can be obtained or the query fails.
        """
        logger.info("Fetching order counts from database...")
        try:
            with DB_QUERY_LATENCY.time():
                row = await self._query()
        except psycopg.Error as e:
            DB_QUERY_ERRORS.inc()
            logger.error(f"Error fetching order counts: {e}")
            raise DataSourceError("fetch_counts", e) from e

        row = row or {}
        snapshot = CountSnapshot(
            backlog_count=coerce_count(row.get("backlog_count")),
            processed_count=coerce_count(row.get("processed_count")),
        )
        LAST_ORDER_COUNT.labels(status=ORDER_STATUS_PENDING).set(snapshot.backlog_count)
        LAST_ORDER_COUNT.labels(status=ORDER_STATUS_PROCESSED).set(snapshot.processed_count)
        logger.info(f"Current backlog count: {snapshot.backlog_count}")
        logger.info(f"Current processed count: {snapshot.processed_count}")
        return snapshot

    async def _query(self) -> Optional[dict]:
        async with self.pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(ORDER_COUNTS_QUERY, QUERY_PARAMS)
                return await cur.fetchone()
