"""
Event handlers for UI components.

Handlers receive the per-session app_state dict, drive the
RecordSyncController held in it, and return the refreshed view. Failures are
shown as toasts while the last good view stays on screen.
"""

import html
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import gradio as gr

from models import (
    DailyStat,
    FilterState,
    TraceReviewError,
    TraceStatus,
    ValidationError,
)
from services import DiffEngine, RenderEngine, available_actions, stats_to_frame
from services.render_engine import STATUS_STYLES

logger = logging.getLogger(__name__)

render_engine = RenderEngine()
diff_engine = DiffEngine()

# Output components of build_review_view, in order
REVIEW_VIEW_KEYS = [
    'status_display',
    'counts_display',
    'record_list',
    'chat_display',
    'functions_display',
    'metadata_display',
    'output_editor',
    'diff_display',
    'accept_btn',
    'reject_btn',
    'reset_btn',
]

PREVIEW_LENGTH = 60


def generate_status_html(controller) -> str:
    """
    Status line: position in the list and the latest error.

    Args:
        controller: RecordSyncController or None while the app loads
    """
    if controller is None:
        return '<div class="load-status">Loading traces...</div>'

    if controller.current_index is None:
        line1 = "📭 No traces match the current filters"
    else:
        line1 = f"📊 Trace {controller.current_index + 1} of {controller.total}"

    if controller.last_error is not None:
        line2 = f'<span style="color: #d32f2f;">⚠️ {html.escape(str(controller.last_error))} (press Refresh to retry)</span>'
    elif controller.current_index is not None and not controller.has_full_detail:
        line2 = "Loading details..."
    else:
        line2 = "Filters: " + html.escape(describe_filter(controller.filter))

    return f'<div class="load-status">{line1}<br>{line2}</div>'


def describe_filter(filter_state: FilterState) -> str:
    parts = [
        f"{name}={value.value}"
        for name, value in (
            ("tool", filter_state.tool),
            ("scenario", filter_state.scenario),
            ("status", filter_state.status),
            ("data_source", filter_state.data_source),
        )
        if value is not None
    ]
    return ", ".join(parts) if parts else "none"


def generate_counts_html(summaries: list) -> str:
    """Pending / Accepted / Rejected counts of the listed traces."""
    counts = {status: 0 for status in TraceStatus}
    for summary in summaries:
        counts[summary.status] += 1

    parts = []
    for status in TraceStatus:
        marker, color = STATUS_STYLES[status]
        parts.append(f'{status.value} <span style="color: {color};">{counts[status]}</span>')

    return (
        '<div style="padding: 8px; margin: 5px 0; background: #f5f5f5; border: 1px solid #1976d2; '
        'border-radius: 5px; font-size: 14px; text-align: center;">📊 ' + " | ".join(parts) + '</div>'
    )


def generate_record_list_html(summaries: list, current_index: Optional[int]) -> str:
    """
    Generate HTML for the record list with status markers.

    Args:
        summaries: Summary projections in list order
        current_index: Selected position, highlighted

    Returns:
        HTML string for the record list
    """
    if not summaries:
        return '<div class="record-list-container" style="padding: 15px;">No traces</div>'

    html_parts = ['<div class="record-list-container">']

    for i, summary in enumerate(summaries):
        marker, color = STATUS_STYLES[summary.status]
        selected = i == current_index

        bg_color = "#E3F2FD" if selected else "#ffffff"
        font_weight = "bold" if selected else "normal"

        preview = summary.user_message
        if len(preview) > PREVIEW_LENGTH:
            preview = preview[:PREVIEW_LENGTH] + "..."
        tool = summary.tool.value if summary.tool else "-"

        html_parts.append(f'''
        <div style="padding: 8px; margin: 4px 0; background: {bg_color};
                    border-left: 4px solid {color}; border-radius: 0 5px 5px 0;
                    font-weight: {font_weight};"
             data-record-index="{i}">
            <div style="display: flex; justify-content: space-between; align-items: center;">
                <span style="color: {color};">{marker} #{i + 1}</span>
                <span style="font-size: 12px; color: #666;">{html.escape(tool)} · {summary.llm_score.value}</span>
            </div>
            <div style="margin-top: 4px; font-size: 13px; color: #333; line-height: 1.4;">
                {html.escape(preview)}
            </div>
        </div>
        ''')

    html_parts.append("</div>")
    return "".join(html_parts)


def generate_diff_html(record, text: Optional[str] = None) -> str:
    """Diff between the record's original response and text (default: its saved output)."""
    if record is None or not record.is_detail:
        return ''
    modified = record.editable_output if text is None else text
    if not diff_engine.has_changes(record.assistant_response, modified):
        return render_engine.render_diff([])

    segments = diff_engine.compute_diff(record.assistant_response, modified)
    counts = diff_engine.change_summary(segments)
    return (
        f'<div class="textbox-label">+{counts["added"]} / -{counts["removed"]} words</div>'
        + render_engine.render_diff(segments)
    )


def build_review_view(controller) -> Tuple:
    """
    Render every review-page component from the controller state.

    Returns:
        Values for the components named in REVIEW_VIEW_KEYS
    """
    record = controller.current_record if controller is not None else None
    loaded = record is not None and record.is_detail
    can_update = controller is not None and controller.capability.can_update_records
    actions = available_actions(record)

    summaries = controller.summaries if controller is not None else []
    current_index = controller.current_index if controller is not None else None

    return (
        generate_status_html(controller),
        generate_counts_html(summaries),
        generate_record_list_html(summaries, current_index),
        render_engine.render_chat(record),
        render_engine.render_function_calls(record.function_calls if record is not None else []),
        render_engine.render_metadata(record),
        gr.update(value=record.editable_output if loaded else "", interactive=can_update and loaded),
        generate_diff_html(record),
        gr.update(interactive=can_update and actions["accept"]),
        gr.update(interactive=can_update and actions["reject"]),
        gr.update(interactive=can_update and actions["reset"]),
    )


def _warn_on_read_error(controller) -> None:
    if controller is not None and controller.last_error is not None:
        gr.Warning(f"Could not load traces: {controller.last_error}")


def _get_controller(app_state: Dict[str, Any]):
    controller = app_state.get('controller')
    if controller is None:
        gr.Warning("The dashboard is still loading")
    return controller


async def handle_app_load(app_state: Dict[str, Any], controller_factory: Callable) -> Tuple:
    """
    Create this session's controller and load the unfiltered list.

    Args:
        app_state: Session state
        controller_factory: Zero-argument callable returning a RecordSyncController

    Returns:
        Tuple of (app_state, *review view)
    """
    controller = app_state.get('controller')
    if controller is None:
        controller = controller_factory()
        app_state['controller'] = controller

    await controller.on_filter_changed(controller.filter)
    _warn_on_read_error(controller)
    return (app_state, *build_review_view(controller))


async def handle_filter_change(
    tool: str, scenario: str, status: str, data_source: str, app_state: Dict[str, Any]
) -> Tuple:
    """
    Apply the four filter dropdowns.

    Returns:
        Tuple of (app_state, *review view)
    """
    controller = _get_controller(app_state)
    if controller is None:
        return (app_state, *build_review_view(None))

    try:
        new_filter = FilterState.from_values(tool, scenario, status, data_source)
    except ValidationError as e:
        gr.Warning(str(e))
        return (app_state, *build_review_view(controller))

    await controller.on_filter_changed(new_filter)
    _warn_on_read_error(controller)
    return (app_state, *build_review_view(controller))


async def handle_navigation(direction: str, app_state: Dict[str, Any]) -> Tuple:
    """
    Handle previous/next navigation.

    Args:
        direction: "prev" or "next"
        app_state: Session state

    Returns:
        Tuple of (app_state, *review view)
    """
    controller = _get_controller(app_state)
    if controller is None:
        return (app_state, *build_review_view(None))

    if direction not in ("prev", "next"):
        gr.Warning(f"Invalid navigation direction: {direction}")
        return (app_state, *build_review_view(controller))

    if direction == "prev":
        moved = await controller.previous_record()
        if not moved and controller.total:
            gr.Info("Already at the first trace")
    else:
        moved = await controller.next_record()
        if not moved and controller.total:
            gr.Info("Already at the last trace")

    _warn_on_read_error(controller)
    return (app_state, *build_review_view(controller))


async def handle_jump(position, app_state: Dict[str, Any]) -> Tuple:
    """
    Jump to a 1-based position in the list.

    Returns:
        Tuple of (app_state, *review view)
    """
    controller = _get_controller(app_state)
    if controller is None:
        return (app_state, *build_review_view(None))

    if position is None or not await controller.navigate(int(position) - 1):
        gr.Warning(f"No trace at position {position} (1 - {controller.total})")

    _warn_on_read_error(controller)
    return (app_state, *build_review_view(controller))


async def handle_refresh(app_state: Dict[str, Any]) -> Tuple:
    """Re-run the list query for the active filters."""
    controller = _get_controller(app_state)
    if controller is None:
        return (app_state, *build_review_view(None))

    if await controller.refresh():
        gr.Info("Traces refreshed")
    _warn_on_read_error(controller)
    return (app_state, *build_review_view(controller))


def handle_preview_diff(text: str, app_state: Dict[str, Any]) -> str:
    """Diff of the unsaved editor text against the original response."""
    controller = app_state.get('controller')
    record = controller.current_record if controller is not None else None
    return generate_diff_html(record, text)


async def _run_write(app_state: Dict[str, Any], action: Callable, success_message: str) -> Tuple:
    controller = _get_controller(app_state)
    if controller is None:
        return (app_state, *build_review_view(None))

    try:
        await action(controller)
    except ValidationError as e:
        gr.Warning(str(e))
    except TraceReviewError as e:
        logger.error("Write failed: %s", e)
        gr.Warning(f"Save failed: {e}")
    else:
        gr.Info(success_message)

    return (app_state, *build_review_view(controller))


async def handle_save_output(text: str, app_state: Dict[str, Any]) -> Tuple:
    """Save the editor text as the selected trace's output."""
    return await _run_write(
        app_state, lambda controller: controller.update_output(text), "Output saved"
    )


async def handle_accept(app_state: Dict[str, Any]) -> Tuple:
    """Accept the selected trace."""
    return await _run_write(
        app_state, lambda controller: controller.transition(TraceStatus.ACCEPTED), "Trace accepted"
    )


async def handle_reject(reason: str, app_state: Dict[str, Any]) -> Tuple:
    """
    Reject the selected trace with a reason.

    Returns:
        Tuple of (app_state, *review view, reject reason box value)
    """
    result = await _run_write(
        app_state,
        lambda controller: controller.transition(TraceStatus.REJECTED, reason),
        "Trace rejected",
    )
    controller = app_state.get('controller')
    rejected = (
        controller is not None
        and controller.current_record is not None
        and controller.current_record.status == TraceStatus.REJECTED
    )
    return (*result, "" if rejected else reason)


async def handle_reset(app_state: Dict[str, Any]) -> Tuple:
    """Restore the original output and return the trace to Pending."""
    return await _run_write(
        app_state, lambda controller: controller.reset_output(), "Trace reset to Pending"
    )


def generate_stats_summary_html(stats: List[DailyStat], window_days: int) -> str:
    """One-line summary above the charts."""
    if not stats:
        return f'<div class="load-status">No traces in the last {window_days} days</div>'

    avg_agreement = sum(s.agreement_rate for s in stats) / len(stats)
    avg_acceptance = sum(s.acceptance_rate for s in stats) / len(stats)
    return (
        f'<div class="load-status">{len(stats)} days with traces in the last {window_days} days · '
        f'mean agreement {avg_agreement:.1f}% · mean acceptance {avg_acceptance:.1f}%</div>'
    )


async def handle_load_statistics(window_days, app_state: Dict[str, Any]) -> Tuple:
    """
    Load the daily rate charts for the selected time range.

    Every call queries the repository again; the cached result is only
    shown when that query fails.

    Returns:
        Tuple of (summary_html, agreement_frame, acceptance_frame)
    """
    controller = _get_controller(app_state)
    if controller is None:
        empty = stats_to_frame([])
        return '', empty, empty

    previous_error = controller.last_error
    try:
        window_days = int(window_days)
        stats = await controller.load_daily_stats(window_days, refresh=True)
    except (TypeError, ValueError, ValidationError) as e:
        gr.Warning(f"Invalid time range: {e}")
        stats = []

    if controller.last_error is not None and controller.last_error is not previous_error:
        gr.Warning(f"Could not load statistics: {controller.last_error}")

    frame = stats_to_frame(stats)
    return generate_stats_summary_html(stats, window_days), frame, frame
