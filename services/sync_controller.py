"""
RecordSyncController: keeps the displayed trace consistent with the store.

Holds the summary list for the active filter, the selected record and a
keyed detail cache. Navigation loads the selected detail and prefetches the
next one; writes go through the repository and then invalidate every cached
copy they affect before the record is shown again.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Set

from models import (
    DailyStat,
    FilterState,
    PermissionDenied,
    ReviewerCapability,
    Trace,
    TraceReviewError,
    TraceStatus,
    ValidationError,
    merge_detail,
)
from utils.validation import validate_index_bounds, validate_output_text

from .query_cache import QueryCache, daily_stats_key, detail_key, summaries_key
from .transitions import check_transition

logger = logging.getLogger(__name__)


class RecordSyncController:
    """
    Two-tier (summary list + detail) view over a TraceRepository.

    selected_id and current_index are only ever changed together by _select,
    so callers never observe them disagreeing.

    Attributes:
        repository: Async TraceRepository (or anything with the same methods)
        capability: ReviewerCapability gating writes
        cache: QueryCache for summaries, details and statistics
        filter: Active FilterState
        summaries: Last summary list fetched for the active filter
        selected_id: Id of the displayed record, None when the list is empty
        current_index: Position of selected_id in summaries
        last_error: Latest read or write error, cleared by the next operation
        stale_ids: Ids whose optimistic output write failed
    """

    def __init__(
        self,
        repository,
        capability: ReviewerCapability,
        cache: Optional[QueryCache] = None,
        prefetch_enabled: bool = True,
    ):
        self.repository = repository
        self.capability = capability
        self.cache = cache if cache is not None else QueryCache()
        self.prefetch_enabled = prefetch_enabled

        self.filter = FilterState()
        self.summaries: List[Trace] = []
        self.selected_id: Optional[str] = None
        self.current_index: Optional[int] = None
        self.last_error: Optional[TraceReviewError] = None
        self.stale_ids: Set[str] = set()

        self._list_epoch = 0
        self._inflight: Dict[str, asyncio.Task] = {}
        self._prefetch_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read-side properties
    # ------------------------------------------------------------------

    @property
    def current_record(self) -> Optional[Trace]:
        """
        Selected summary merged with its cached detail, if any.

        A cached detail whose status disagrees with the summary is not
        merged; the summary alone is shown until the detail is fetched again.
        """
        if self.current_index is None:
            return None
        summary = self.summaries[self.current_index]
        detail = self.cache.data(detail_key(summary.id))
        if detail is None or detail.status != summary.status:
            return summary
        return merge_detail(summary, detail)

    @property
    def has_full_detail(self) -> bool:
        record = self.current_record
        return record is not None and record.is_detail

    @property
    def total(self) -> int:
        return len(self.summaries)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _select(self, index: Optional[int]) -> None:
        if index is None:
            self.selected_id = None
            self.current_index = None
        else:
            self.selected_id = self.summaries[index].id
            self.current_index = index

    def _apply_summaries(self, summaries: List[Trace], keep_selection: bool) -> None:
        previous_index = self.current_index or 0
        self.summaries = summaries
        if not summaries:
            self._select(None)
            return

        if keep_selection and self.selected_id is not None:
            for position, summary in enumerate(summaries):
                if summary.id == self.selected_id:
                    self._select(position)
                    return
            self._select(min(previous_index, len(summaries) - 1))
            return

        self._select(0)

    async def on_filter_changed(self, new_filter: FilterState) -> bool:
        """
        Switch to a new filter and select its first record.

        On a failed fetch the previous list and selection stay displayed and
        last_error is set; refresh() retries the new filter.

        Returns:
            True if the list was replaced
        """
        logger.info("Filter changed to %s", new_filter.key())
        self.filter = new_filter
        self.last_error = None
        return await self._reload_summaries(keep_selection=False)

    async def refresh(self) -> bool:
        """
        Re-run the summary query for the active filter, keeping the selection.

        The selected detail is fetched again so changes made by other
        reviewers show up in the viewer as well as in the list.
        """
        self.last_error = None
        if self.selected_id is not None:
            self._invalidate_detail(self.selected_id)
        return await self._reload_summaries(keep_selection=True)

    async def navigate(self, new_index: int) -> bool:
        """
        Select the record at new_index.

        Out-of-range indices are ignored.

        Returns:
            False if new_index was out of range
        """
        is_valid, error_msg = validate_index_bounds(new_index, len(self.summaries))
        if not is_valid:
            logger.debug("Navigation ignored: %s", error_msg)
            return False

        self.last_error = None
        self._select(new_index)
        await self._show_current()
        return True

    async def next_record(self) -> bool:
        if self.current_index is None:
            return False
        return await self.navigate(self.current_index + 1)

    async def previous_record(self) -> bool:
        if self.current_index is None:
            return False
        return await self.navigate(self.current_index - 1)

    async def _reload_summaries(self, keep_selection: bool) -> bool:
        self._list_epoch += 1
        epoch = self._list_epoch
        filter_state = self.filter
        ticket = self.cache.begin(summaries_key(filter_state))

        try:
            summaries = await self.repository.list_summaries(filter_state)
        except TraceReviewError as e:
            self.cache.fail(ticket, e)
            if epoch == self._list_epoch:
                self.last_error = e
            logger.error("Failed to load traces for %s: %s", filter_state.key(), e)
            return False

        if epoch != self._list_epoch or not self.cache.commit(ticket, summaries):
            logger.debug("Discarded superseded trace list for %s", filter_state.key())
            return False

        self._drop_outdated_details(summaries)
        self._apply_summaries(summaries, keep_selection)
        logger.info("Loaded %d traces", len(summaries))
        await self._show_current()
        return True

    def _drop_outdated_details(self, summaries: List[Trace]) -> None:
        """Invalidate cached details whose status no longer matches the list."""
        for summary in summaries:
            detail = self.cache.data(detail_key(summary.id))
            if detail is not None and detail.status != summary.status:
                logger.debug("Cached detail of %s is outdated", summary.id)
                self._invalidate_detail(summary.id)

    async def _show_current(self) -> None:
        if self.selected_id is None:
            return
        self._start_prefetch(self.current_index + 1)
        await self._load_detail(self.selected_id)

    # ------------------------------------------------------------------
    # Detail loading
    # ------------------------------------------------------------------

    def _detail_task(self, trace_id: str) -> asyncio.Task:
        task = self._inflight.get(trace_id)
        if task is None:
            task = asyncio.create_task(self._fetch_detail(trace_id))
            self._inflight[trace_id] = task
        return task

    async def _fetch_detail(self, trace_id: str) -> Trace:
        key = detail_key(trace_id)
        ticket = self.cache.begin(key)
        try:
            detail = await self.repository.get_detail(trace_id)
        except TraceReviewError as e:
            self.cache.fail(ticket, e)
            raise
        finally:
            if self._inflight.get(trace_id) is asyncio.current_task():
                del self._inflight[trace_id]

        if self.cache.commit(ticket, detail):
            self.stale_ids.discard(trace_id)
        else:
            logger.debug("Discarded detail for %s fetched before a write", trace_id)
        return detail

    async def _load_detail(self, trace_id: str) -> bool:
        if self.cache.is_fresh(detail_key(trace_id)):
            return True
        try:
            await asyncio.shield(self._detail_task(trace_id))
        except TraceReviewError as e:
            logger.error("Failed to load trace %s: %s", trace_id, e)
            # The old selection's failure is not this selection's error
            if trace_id == self.selected_id:
                self.last_error = e
            return False
        return True

    def _start_prefetch(self, index: int) -> None:
        if not self.prefetch_enabled or index >= len(self.summaries):
            return
        trace_id = self.summaries[index].id
        if self.cache.is_fresh(detail_key(trace_id)) or trace_id in self._inflight:
            return
        task = asyncio.create_task(self._prefetch(trace_id))
        self._prefetch_tasks.add(task)
        task.add_done_callback(self._prefetch_tasks.discard)

    async def _prefetch(self, trace_id: str) -> None:
        try:
            await asyncio.shield(self._detail_task(trace_id))
        except Exception as e:
            logger.warning("Prefetch of trace %s failed: %s", trace_id, e)

    async def wait_for_prefetch(self) -> None:
        """Wait until every outstanding prefetch has finished."""
        while self._prefetch_tasks:
            await asyncio.gather(*list(self._prefetch_tasks))

    def _invalidate_detail(self, trace_id: str) -> None:
        self.cache.invalidate(detail_key(trace_id))
        self._inflight.pop(trace_id, None)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _require_capability(self, action: str) -> None:
        if not self.capability.can_update_records:
            raise PermissionDenied(f"You do not have permission to {action}")

    def _require_detail(self) -> Trace:
        record = self.current_record
        if record is None:
            raise ValidationError("No record selected")
        if not record.is_detail:
            raise ValidationError(f"Record {record.id} is still loading")
        return record

    async def update_output(self, text: str) -> None:
        """
        Save the reviewer's working copy of the selected record.

        The cached detail is updated before the write. If the write fails the
        previous detail is restored, the id is flagged stale and the error is
        raised.

        Raises:
            PermissionDenied: If the reviewer cannot update records
            ValidationError: If no detail is loaded or text is not a string
            RepositoryError: If the write fails
        """
        self._require_capability("edit the output")
        record = self._require_detail()
        is_valid, error_msg = validate_output_text(text)
        if not is_valid:
            raise ValidationError(error_msg)

        key = detail_key(record.id)
        snapshot = self.cache.data(key)
        self.cache.set(key, replace(snapshot, editable_output=text))
        self.last_error = None

        try:
            await self.repository.set_editable_output(record.id, text)
        except TraceReviewError as e:
            self.cache.set(key, snapshot)
            self.cache.invalidate(key)
            self.stale_ids.add(record.id)
            self.last_error = e
            logger.error("Failed to save output of %s, restored previous copy: %s", record.id, e)
            raise

        logger.info("Saved output of %s", record.id)
        self._invalidate_detail(record.id)
        await self._load_detail(record.id)

    async def transition(self, status, reject_reason: Optional[str] = None) -> None:
        """
        Accept or reject the selected record; Pending delegates to reset_output.

        Raises:
            PermissionDenied: If the reviewer cannot update records
            ValidationError: If the transition is not allowed
            RepositoryError: If the write fails
        """
        self._require_capability("change the status")
        target = check_transition(self.current_record, status, reject_reason)
        if target == TraceStatus.PENDING:
            await self.reset_output()
            return

        trace_id = self.selected_id
        reason = reject_reason.strip() if target == TraceStatus.REJECTED else None
        await self._write(trace_id, self.repository.set_status(trace_id, target, reason))
        logger.info("Trace %s marked %s", trace_id, target.value)
        await self._after_status_write(trace_id)

    async def reset_output(self) -> None:
        """
        Restore the original output and move the selected record to Pending.

        Raises:
            PermissionDenied: If the reviewer cannot update records
            ValidationError: If no detail is loaded
            RepositoryError: If a write fails
        """
        self._require_capability("reset the record")
        record = self.current_record
        check_transition(record, TraceStatus.PENDING)

        await self._write(record.id, self.repository.reset_record(record.id))
        logger.info("Trace %s reset to Pending", record.id)
        await self._after_status_write(record.id)

    async def _write(self, trace_id: str, call) -> None:
        self.last_error = None
        try:
            await call
        except TraceReviewError as e:
            self.last_error = e
            self._invalidate_detail(trace_id)
            logger.error("Write to trace %s failed: %s", trace_id, e)
            raise

    async def _after_status_write(self, trace_id: str) -> None:
        self.cache.invalidate_prefix("summaries")
        self.cache.invalidate_prefix("daily_stats")
        self._invalidate_detail(trace_id)
        await self._reload_summaries(keep_selection=True)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def load_daily_stats(self, window_days: int, refresh: bool = False) -> List[DailyStat]:
        """
        Daily rates for the active filter (status ignored).

        A cached result is reused unless refresh is set. A failed fetch
        returns the last good result and sets last_error.

        Raises:
            ValidationError: If window_days is not a positive integer
        """
        stats_filter = self.filter.for_statistics()
        key = daily_stats_key(window_days, stats_filter)
        if refresh:
            self.cache.invalidate(key)
        if self.cache.is_fresh(key):
            return self.cache.data(key)

        ticket = self.cache.begin(key)
        try:
            stats = await self.repository.daily_stats(window_days, stats_filter)
        except ValidationError:
            raise
        except TraceReviewError as e:
            self.cache.fail(ticket, e)
            self.last_error = e
            logger.error("Failed to load daily statistics: %s", e)
            return self.cache.data(key, [])

        self.cache.commit(ticket, stats)
        return stats
