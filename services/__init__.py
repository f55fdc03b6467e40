"""Data access, synchronization and rendering services for the trace review dashboard."""

from .trace_store import TraceStore
from .repository import TraceRepository
from .query_cache import QueryCache
from .statistics import DailyStatisticsAggregator, stats_to_frame
from .transitions import check_transition, available_actions
from .sync_controller import RecordSyncController
from .diff_engine import DiffEngine
from .render_engine import RenderEngine

__all__ = [
    "TraceStore",
    "TraceRepository",
    "QueryCache",
    "DailyStatisticsAggregator",
    "stats_to_frame",
    "check_transition",
    "available_actions",
    "RecordSyncController",
    "DiffEngine",
    "RenderEngine",
]
