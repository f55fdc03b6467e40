"""Data models for the trace review dashboard."""

from .enums import (
    SCHEMA_VERSION,
    ALL_OPTION,
    TraceStatus,
    LLMScore,
    Tool,
    Scenario,
    DataSource,
    UserRole,
    parse_enum,
    filter_choices,
)
from .errors import (
    TraceReviewError,
    NotFound,
    RepositoryError,
    ValidationError,
    PermissionDenied,
)
from .trace import FunctionCall, Trace, DailyStat, merge_detail
from .filter_state import FilterState
from .capability import ReviewerCapability

__all__ = [
    "SCHEMA_VERSION",
    "ALL_OPTION",
    "TraceStatus",
    "LLMScore",
    "Tool",
    "Scenario",
    "DataSource",
    "UserRole",
    "parse_enum",
    "filter_choices",
    "TraceReviewError",
    "NotFound",
    "RepositoryError",
    "ValidationError",
    "PermissionDenied",
    "FunctionCall",
    "Trace",
    "DailyStat",
    "merge_detail",
    "FilterState",
    "ReviewerCapability",
]
