"""UI components for the trace review dashboard."""

from .layout import (
    create_dashboard_layout,
    get_global_css,
    TIME_RANGE_CHOICES,
)
from .event_handlers import (
    REVIEW_VIEW_KEYS,
    build_review_view,
    generate_record_list_html,
    handle_app_load,
    handle_filter_change,
    handle_navigation,
    handle_jump,
    handle_refresh,
    handle_preview_diff,
    handle_save_output,
    handle_accept,
    handle_reject,
    handle_reset,
    handle_load_statistics,
)

__all__ = [
    "create_dashboard_layout",
    "get_global_css",
    "TIME_RANGE_CHOICES",
    "REVIEW_VIEW_KEYS",
    "build_review_view",
    "generate_record_list_html",
    "handle_app_load",
    "handle_filter_change",
    "handle_navigation",
    "handle_jump",
    "handle_refresh",
    "handle_preview_diff",
    "handle_save_output",
    "handle_accept",
    "handle_reject",
    "handle_reset",
    "handle_load_statistics",
]
