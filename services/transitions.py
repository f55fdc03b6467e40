"""
Status transitions for a trace under review.

Pending -> Accepted and Pending -> Rejected are reviewer decisions; reset
returns any record to Pending and restores the original output. There is no
direct Accepted <-> Rejected move.
"""

from typing import Dict, Optional

from models import Trace, TraceStatus, ValidationError, parse_enum
from utils.validation import validate_reject_reason


def check_transition(record: Optional[Trace], target, reject_reason: Optional[str] = None) -> TraceStatus:
    """
    Refuse an illegal transition.

    Args:
        record: Currently displayed trace (summary or detail)
        target: Requested status; Pending means reset
        reject_reason: Reason text, required for Rejected

    Returns:
        The parsed target status

    Raises:
        ValidationError: If the transition is not allowed
    """
    target = parse_enum(TraceStatus, target)
    if target is None:
        raise ValidationError("A target status is required")
    if record is None:
        raise ValidationError("No record selected")
    if not record.is_detail:
        raise ValidationError(f"Record {record.id} is still loading")

    if target == TraceStatus.PENDING:
        return target

    if record.status != TraceStatus.PENDING:
        raise ValidationError(
            f"Record {record.id} is already {record.status.value}; reset it before changing the decision"
        )

    if target == TraceStatus.REJECTED:
        is_valid, error_msg = validate_reject_reason(reject_reason)
        if not is_valid:
            raise ValidationError(error_msg)

    return target


def available_actions(record: Optional[Trace]) -> Dict[str, bool]:
    """Which review buttons are enabled for record."""
    loaded = record is not None and record.is_detail
    pending = loaded and record.status == TraceStatus.PENDING
    return {
        "accept": pending,
        "reject": pending,
        "reset": loaded and (not pending or record.is_edited),
    }
