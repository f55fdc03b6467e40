"""
Validation utilities for reviewer input.

Every validator returns a (is_valid, error_message) tuple; callers decide
whether to warn or raise.
"""

from typing import Tuple


def validate_reject_reason(reason) -> Tuple[bool, str]:
    """
    Validate that a rejection carries a non-blank reason.

    Args:
        reason: Reason text supplied by the reviewer

    Returns:
        Tuple of (is_valid, error_message)
    """
    if reason is None or not str(reason).strip():
        return False, "A reason is required to reject a record"

    return True, ""


def validate_window_days(window_days) -> Tuple[bool, str]:
    """
    Validate the statistics day window.

    Args:
        window_days: Number of trailing days

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(window_days, bool) or not isinstance(window_days, int):
        return False, f"Day window must be an integer, got {window_days!r}"

    if window_days < 1:
        return False, "Day window must be a positive number of days"

    return True, ""


def validate_index_bounds(index: int, total: int) -> Tuple[bool, str]:
    """
    Validate that index is within bounds.

    Args:
        index: Index to validate
        total: Total number of items

    Returns:
        Tuple of (is_valid, error_message)
    """
    if index < 0:
        return False, "Index cannot be negative"

    if index >= total:
        return False, f"Index {index} out of range (total: {total})"

    return True, ""


def validate_output_text(text) -> Tuple[bool, str]:
    """
    Validate an editable output write.

    Empty text is allowed; the reviewer may clear the output.
    """
    if not isinstance(text, str):
        return False, f"Output must be text, got {type(text).__name__}"

    return True, ""
