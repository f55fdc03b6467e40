"""
UI layout components for the trace review dashboard.

Defines the review page (filters, navigation, viewer, editor, review
actions) and the statistics page.
"""

import gradio as gr
from typing import Dict, Any

from models import DataSource, Scenario, Tool, TraceStatus, filter_choices

TIME_RANGE_CHOICES = [("Last 7 days", 7), ("Last 30 days", 30), ("Last 90 days", 90)]


GLOBAL_CSS = """
.gradio-container {
    font-size: 16px !important;
}

/* Record list */
.record-list-container {
    max-height: 640px;
    overflow-y: auto;
    border: 1px solid #1976d2;
    border-radius: 8px;
    padding: 8px;
}

/* Column titles */
.column-title {
    background: #e3f2fd;
    padding: 8px 12px;
    border-radius: 6px;
    border-left: 4px solid #1976d2;
    font-weight: bold;
    margin-bottom: 8px;
}

.textbox-label {
    font-size: 15px !important;
    font-weight: bold;
    color: #333;
    margin: 6px 0 3px 0;
}

.load-status {
    padding: 8px 12px !important;
    border-radius: 6px !important;
    font-weight: bold !important;
    background: #fafafa !important;
    border: 2px solid #90caf9 !important;
}

.reference-content {
    line-height: 1.7 !important;
    padding: 10px;
    background: #fafafa;
    border-radius: 6px;
}

.chat-message {
    border: 1px solid #e0e0e0;
    border-radius: 6px;
    padding: 8px;
}

.function-call {
    border: 1px solid #90caf9;
    border-radius: 6px;
    padding: 6px 10px;
    margin: 6px 0;
}

.diff-editable-box {
    padding: 10px;
    background: #fafafa;
    border: 2px solid #90caf9;
    border-radius: 6px;
    line-height: 1.7 !important;
    max-height: 320px;
    overflow-y: auto;
}

.nav-btn {
    background: #e3f2fd !important;
    border: 1px solid #1976d2 !important;
    color: #1976d2 !important;
}

.success-btn {
    background: #4CAF50 !important;
    color: white !important;
}

.danger-btn {
    background: #f44336 !important;
    color: white !important;
}

.warning-btn {
    background: #ff9800 !important;
    color: white !important;
}

.compact-row {
    margin: 3px 0 !important;
}
"""


def get_global_css() -> str:
    """Return the dashboard stylesheet."""
    return GLOBAL_CSS


def create_header(components: Dict[str, Any]) -> None:
    """Title row with usage notes and the status line."""
    with gr.Row():
        with gr.Column(scale=2):
            gr.Markdown("# 🔎 LLM Trace Review")
        with gr.Column(scale=5):
            with gr.Accordion("📖 How to review", open=False):
                gr.Markdown("""
**1. Filter:** narrow the list by tool, scenario, status or data source.
**2. Inspect:** read the chat, the function calls and the metadata of the selected trace.
**3. Edit:** correct the output and press "Save output"; the diff shows your changes against the original response.
**4. Decide:** Accept, or Reject with a reason. Decided traces must be Reset before they can be decided again.
                """)
        with gr.Column(scale=3):
            components['status_display'] = gr.HTML(
                '<div class="load-status">Loading traces...</div>'
            )


def create_filter_row(components: Dict[str, Any]) -> None:
    """Four filter dropdowns and a refresh button."""
    with gr.Row(elem_classes=["compact-row"]):
        components['tool_filter'] = gr.Dropdown(
            choices=filter_choices(Tool), value="All", label="Tool"
        )
        components['scenario_filter'] = gr.Dropdown(
            choices=filter_choices(Scenario), value="All", label="Scenario"
        )
        components['status_filter'] = gr.Dropdown(
            choices=filter_choices(TraceStatus), value="All", label="Status"
        )
        components['data_source_filter'] = gr.Dropdown(
            choices=filter_choices(DataSource), value="All", label="Data Source"
        )
        components['refresh_btn'] = gr.Button("🔄 Refresh", size="sm", elem_classes=["nav-btn"])


def create_left_column(components: Dict[str, Any]) -> None:
    """Navigation buttons, review counts and the record list."""
    gr.HTML('<div class="column-title">📋 Traces</div>')

    with gr.Row(elem_classes=["compact-row"]):
        components['prev_btn'] = gr.Button("⬅️ Previous", size="sm", elem_classes=["nav-btn"])
        components['next_btn'] = gr.Button("Next ➡️", size="sm", elem_classes=["nav-btn"])

    with gr.Row(elem_classes=["compact-row"]):
        components['jump_index'] = gr.Number(
            value=1, minimum=1, precision=0, label="Go to #", scale=2
        )
        components['jump_btn'] = gr.Button("Go", size="sm", elem_classes=["nav-btn"], scale=1)

    components['counts_display'] = gr.HTML('')
    components['record_list'] = gr.HTML(
        '<div class="record-list-container">No traces loaded</div>'
    )


def create_center_column(components: Dict[str, Any]) -> None:
    """Viewer tabs, output editor and review actions."""
    gr.HTML('<div class="column-title">📝 Trace</div>')

    with gr.Tabs():
        with gr.Tab("Chat"):
            components['chat_display'] = gr.HTML('')
        with gr.Tab("Functions"):
            components['functions_display'] = gr.HTML('')
        with gr.Tab("Metadata"):
            components['metadata_display'] = gr.HTML('')

    gr.HTML('<div class="textbox-label">✏️ Output (editable)</div>')
    components['output_editor'] = gr.Textbox(
        label="",
        lines=8,
        max_lines=20,
        show_label=False,
        placeholder="Select a trace to edit its output...",
        interactive=True,
    )
    with gr.Row(elem_classes=["compact-row"]):
        components['preview_diff_btn'] = gr.Button("🔍 Preview changes", size="sm", elem_classes=["nav-btn"])
        components['save_output_btn'] = gr.Button("💾 Save output", size="sm", variant="primary")

    gr.HTML('<div class="textbox-label">Changes vs original (red: removed, green: added)</div>')
    components['diff_display'] = gr.HTML('')


def create_review_column(components: Dict[str, Any]) -> None:
    """Accept / Reject / Reset controls."""
    gr.HTML('<div class="column-title">⚖️ Review</div>')

    components['accept_btn'] = gr.Button(
        "✅ Accept", size="lg", elem_classes=["success-btn"], interactive=False
    )
    components['reject_reason'] = gr.Textbox(
        label="Reject reason",
        lines=3,
        placeholder="Required to reject...",
    )
    components['reject_btn'] = gr.Button(
        "❌ Reject", size="lg", elem_classes=["danger-btn"], interactive=False
    )
    components['reset_btn'] = gr.Button(
        "♻️ Reset to original", size="lg", elem_classes=["warning-btn"], interactive=False
    )


def create_review_page(components: Dict[str, Any]) -> None:
    create_filter_row(components)

    with gr.Row():
        with gr.Column(scale=2):
            create_left_column(components)
        with gr.Column(scale=6):
            create_center_column(components)
        with gr.Column(scale=2):
            create_review_column(components)


def create_statistics_page(components: Dict[str, Any], default_window_days: int = 30) -> None:
    """Time range selector and the two daily rate charts."""
    if default_window_days not in [value for _, value in TIME_RANGE_CHOICES]:
        default_window_days = 30

    with gr.Row(elem_classes=["compact-row"]):
        components['time_range'] = gr.Radio(
            choices=TIME_RANGE_CHOICES,
            value=default_window_days,
            label="Time range",
        )
        components['stats_refresh_btn'] = gr.Button("🔄 Refresh statistics", size="sm", elem_classes=["nav-btn"])

    components['stats_summary'] = gr.HTML('')

    with gr.Row():
        components['agreement_plot'] = gr.LinePlot(
            x="date",
            y="agreement_rate",
            title="Daily agreement rate (%)",
            y_lim=[0, 100],
        )
        components['acceptance_plot'] = gr.LinePlot(
            x="date",
            y="acceptance_rate",
            title="Daily acceptance rate (%)",
            y_lim=[0, 100],
        )


def create_dashboard_layout(default_window_days: int = 30) -> Dict[str, Any]:
    """
    Create the complete dashboard layout.

    Args:
        default_window_days: Initially selected statistics time range

    Returns:
        Dictionary of all UI components, keyed by name
    """
    components = {}

    create_header(components)

    with gr.Tabs():
        with gr.Tab("Review"):
            create_review_page(components)
        with gr.Tab("Statistics"):
            create_statistics_page(components, default_window_days)

    return components
