"""
Trace data model for the review dashboard.

Represents one recorded user/assistant interaction, the function calls made
while producing the answer, and the derived daily statistics row.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .enums import DataSource, LLMScore, Scenario, Tool, TraceStatus


@dataclass
class FunctionCall:
    """
    A tool invocation recorded while the assistant produced its answer.

    Attributes:
        id: Unique identifier
        trace_id: Id of the owning trace
        function_name: Name of the invoked function
        arguments: Structured call arguments
        response: Structured call result, None if nothing was observed
        created_at: Creation timestamp (UTC)
    """

    id: str
    trace_id: str
    function_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    response: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


@dataclass
class Trace:
    """
    A reviewable user/assistant interaction.

    The list view carries the summary projection, where assistant_response,
    editable_output and function_calls are None. The detail view fills them.

    Attributes:
        id: Opaque unique identifier
        user_message: The originating request
        status: Reviewer disposition (Pending/Accepted/Rejected)
        llm_score: Automated Pass/Fail judgment, immutable
        created_at: Creation timestamp (UTC), used for ordering and day buckets
        tool: Classification tag
        scenario: Classification tag
        data_source: Classification tag
        assistant_response: Original generated answer (detail only)
        editable_output: Reviewer working copy (detail only)
        reject_reason: Reason given when rejected
        function_calls: Ordered function calls (detail only)
        index: Position in the current summary list (list display only)
    """

    id: str
    user_message: str
    status: TraceStatus = TraceStatus.PENDING
    llm_score: LLMScore = LLMScore.PASS
    created_at: Optional[datetime] = None
    tool: Optional[Tool] = None
    scenario: Optional[Scenario] = None
    data_source: Optional[DataSource] = None
    assistant_response: Optional[str] = None
    editable_output: Optional[str] = None
    reject_reason: Optional[str] = None
    function_calls: Optional[List[FunctionCall]] = None
    index: Optional[int] = None

    def __post_init__(self):
        """Start the working copy from the original answer."""
        if self.editable_output is None and self.assistant_response is not None:
            self.editable_output = self.assistant_response

    @property
    def is_detail(self) -> bool:
        """True when this is the full projection."""
        return self.assistant_response is not None and self.function_calls is not None

    @property
    def is_edited(self) -> bool:
        return self.is_detail and self.editable_output != self.assistant_response

    def summary(self) -> "Trace":
        """Return the summary projection of this trace."""
        return replace(
            self,
            assistant_response=None,
            editable_output=None,
            function_calls=None,
        )


def merge_detail(summary: Optional[Trace], detail: Trace) -> Trace:
    """
    Merge a fetched detail into the summary held for the same id.

    Detail fields win; list-only fields of the summary (index) are kept.
    """
    if summary is None:
        return detail
    if summary.id != detail.id:
        raise ValueError(f"Cannot merge detail {detail.id} into summary {summary.id}")
    return replace(detail, index=summary.index)


@dataclass(frozen=True)
class DailyStat:
    """
    Derived per-day review statistics.

    Attributes:
        date: Calendar day (UTC)
        agreement_rate: Percentage of evaluated records where human and LLM agree
        acceptance_rate: Percentage of evaluated records marked Accepted
    """

    date: date
    agreement_rate: float
    acceptance_rate: float
