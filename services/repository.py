"""
TraceRepository: typed async access to the trace store.

Every operation runs the blocking store call in a worker thread so the UI
event loop stays responsive. Store failures are translated into the
RepositoryError / NotFound taxonomy.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from models import (
    DailyStat,
    FilterState,
    NotFound,
    RepositoryError,
    Trace,
    TraceStatus,
    ValidationError,
    parse_enum,
)
from utils.performance import monitor_performance
from utils.validation import validate_output_text, validate_window_days

from .statistics import DailyStatisticsAggregator, stats_from_counts, window_start
from .trace_store import TraceStore, utc_now

logger = logging.getLogger(__name__)

STATS_SOURCES = ("server", "client")


class TraceRepository:
    """
    Async repository over a TraceStore.

    Attributes:
        store: Backing relational store
        stats_source: "server" runs the SQL aggregation, "client" aggregates
            fetched rows with DailyStatisticsAggregator
    """

    def __init__(
        self,
        store: TraceStore,
        stats_source: str = "server",
        clock: Callable[[], datetime] = None,
    ):
        """
        Initialize TraceRepository.

        Args:
            store: Backing store
            stats_source: "server" or "client"
            clock: Returns the current UTC time; used for the stats window

        Raises:
            ValueError: If stats_source is unknown
        """
        if stats_source not in STATS_SOURCES:
            raise ValueError(f"Invalid stats_source: {stats_source}. Must be one of {STATS_SOURCES}")
        self.store = store
        self.stats_source = stats_source
        self._clock = clock or utc_now
        self._aggregator = DailyStatisticsAggregator()

    async def _run(self, operation: str, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except NotFound:
            raise
        except SQLAlchemyError as e:
            logger.error("Store error during %s: %s", operation, e)
            raise RepositoryError(f"{operation} failed: {e}") from e

    @monitor_performance("list_summaries")
    async def list_summaries(self, filter_state: Optional[FilterState] = None) -> List[Trace]:
        """
        List matching traces (summary projection), oldest first.

        Returns:
            Traces with index set to their list position

        Raises:
            RepositoryError: If the store fails
        """
        summaries = await self._run("list_summaries", self.store.list_summaries, filter_state or FilterState())
        for position, trace in enumerate(summaries):
            trace.index = position
        return summaries

    @monitor_performance("get_detail")
    async def get_detail(self, trace_id: str) -> Trace:
        """
        Fetch one trace with its function calls.

        Raises:
            NotFound: If no trace has that id
            RepositoryError: If the store fails
        """
        return await self._run("get_detail", self.store.get_detail, trace_id)

    @monitor_performance("set_status")
    async def set_status(self, trace_id: str, status, reject_reason: Optional[str] = None) -> None:
        """
        Set a trace's status; Pending and Accepted clear the reject reason.

        The repository does not enforce transition rules.
        """
        status = parse_enum(TraceStatus, status)
        if status is None:
            raise ValidationError("A status is required")
        if status != TraceStatus.REJECTED:
            reject_reason = None
        await self._run("set_status", self.store.update_status, trace_id, status, reject_reason)
        logger.info("Trace %s set to %s", trace_id, status.value)

    @monitor_performance("set_editable_output")
    async def set_editable_output(self, trace_id: str, text: str) -> None:
        """Overwrite a trace's editable output."""
        is_valid, error_msg = validate_output_text(text)
        if not is_valid:
            raise ValidationError(error_msg)
        await self._run("set_editable_output", self.store.update_editable_output, trace_id, text)

    @monitor_performance("reset_record")
    async def reset_record(self, trace_id: str) -> None:
        """
        Restore the original output and set Pending, clearing any reject
        reason. Both changes are committed together or not at all.
        """
        await self._run("reset_record", self.store.reset_trace, trace_id)
        logger.info("Trace %s reset to Pending", trace_id)

    @monitor_performance("daily_stats")
    async def daily_stats(self, window_days: int, filter_state: Optional[FilterState] = None) -> List[DailyStat]:
        """
        Daily agreement and acceptance rates over a trailing day window.

        Args:
            window_days: Number of UTC calendar days, today included
            filter_state: Tool/scenario/data source filter; status is ignored

        Returns:
            DailyStat rows ascending by date; days without records are omitted
        """
        is_valid, error_msg = validate_window_days(window_days)
        if not is_valid:
            raise ValidationError(error_msg)

        since = window_start(window_days, self._clock())
        stats_filter = (filter_state or FilterState()).for_statistics()

        if self.stats_source == "server":
            counts = await self._run("daily_stats", self.store.daily_counts_procedure, since, stats_filter)
            return stats_from_counts(counts)

        rows = await self._run("daily_stats", self.store.evaluation_rows, since, stats_filter)
        return self._aggregator.aggregate(rows)
