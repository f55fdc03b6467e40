"""
LLM Trace Review Dashboard

Main entry point for the Gradio application.
"""

import logging
from typing import Optional

import gradio as gr

from models import ReviewerCapability
from services import QueryCache, RecordSyncController, TraceRepository, TraceStore
from ui.layout import create_dashboard_layout, get_global_css
from ui.event_handlers import (
    REVIEW_VIEW_KEYS,
    handle_accept,
    handle_app_load,
    handle_filter_change,
    handle_jump,
    handle_load_statistics,
    handle_navigation,
    handle_preview_diff,
    handle_refresh,
    handle_reject,
    handle_reset,
    handle_save_output,
)
from utils.config import Settings, get_settings
from utils.performance import configure_logging, get_monitor, set_slow_operation_threshold

logger = logging.getLogger(__name__)


def create_app(
    repository: TraceRepository,
    capability: ReviewerCapability,
    settings: Optional[Settings] = None,
) -> gr.Blocks:
    """
    Build the dashboard.

    Each browser session gets its own RecordSyncController and QueryCache;
    the repository is shared.

    Args:
        repository: Trace repository
        capability: Reviewer capability applied to every session
        settings: Application settings

    Returns:
        The Gradio Blocks app
    """
    settings = settings or get_settings()

    def controller_factory() -> RecordSyncController:
        return RecordSyncController(
            repository,
            capability,
            cache=QueryCache(),
            prefetch_enabled=settings.prefetch_enabled,
        )

    with gr.Blocks(
        title="LLM Trace Review",
        theme=gr.themes.Soft(),
        css=get_global_css(),
    ) as app:

        # Session state; the controller is created on page load
        app_state = gr.State({"controller": None})

        components = create_dashboard_layout(settings.default_window_days)

        review_outputs = [app_state] + [components[key] for key in REVIEW_VIEW_KEYS]
        stats_inputs = [components['time_range'], app_state]
        stats_outputs = [
            components['stats_summary'],
            components['agreement_plot'],
            components['acceptance_plot'],
        ]
        filter_inputs = [
            components['tool_filter'],
            components['scenario_filter'],
            components['status_filter'],
            components['data_source_filter'],
        ]

        # ========== Event Handlers ==========

        async def on_load(state):
            return await handle_app_load(state, controller_factory)

        app.load(
            fn=on_load, inputs=[app_state], outputs=review_outputs
        ).then(
            fn=handle_load_statistics, inputs=stats_inputs, outputs=stats_outputs
        )

        # Filters drive both the list and the statistics
        for dropdown in filter_inputs:
            dropdown.change(
                fn=handle_filter_change,
                inputs=filter_inputs + [app_state],
                outputs=review_outputs,
            ).then(
                fn=handle_load_statistics, inputs=stats_inputs, outputs=stats_outputs
            )

        components['refresh_btn'].click(
            fn=handle_refresh, inputs=[app_state], outputs=review_outputs
        )

        # Navigation
        async def on_prev(state):
            return await handle_navigation("prev", state)

        async def on_next(state):
            return await handle_navigation("next", state)

        components['prev_btn'].click(fn=on_prev, inputs=[app_state], outputs=review_outputs)
        components['next_btn'].click(fn=on_next, inputs=[app_state], outputs=review_outputs)
        components['jump_btn'].click(
            fn=handle_jump,
            inputs=[components['jump_index'], app_state],
            outputs=review_outputs,
        )

        # Editing
        components['preview_diff_btn'].click(
            fn=handle_preview_diff,
            inputs=[components['output_editor'], app_state],
            outputs=[components['diff_display']],
        )
        components['save_output_btn'].click(
            fn=handle_save_output,
            inputs=[components['output_editor'], app_state],
            outputs=review_outputs,
        )

        # Review decisions refresh the list and the statistics
        components['accept_btn'].click(
            fn=handle_accept, inputs=[app_state], outputs=review_outputs
        ).then(
            fn=handle_load_statistics, inputs=stats_inputs, outputs=stats_outputs
        )
        components['reject_btn'].click(
            fn=handle_reject,
            inputs=[components['reject_reason'], app_state],
            outputs=review_outputs + [components['reject_reason']],
        ).then(
            fn=handle_load_statistics, inputs=stats_inputs, outputs=stats_outputs
        )
        components['reset_btn'].click(
            fn=handle_reset, inputs=[app_state], outputs=review_outputs
        ).then(
            fn=handle_load_statistics, inputs=stats_inputs, outputs=stats_outputs
        )

        # Statistics
        components['time_range'].change(
            fn=handle_load_statistics, inputs=stats_inputs, outputs=stats_outputs
        )
        components['stats_refresh_btn'].click(
            fn=handle_load_statistics, inputs=stats_inputs, outputs=stats_outputs
        )

    return app


def main():
    """Main application entry point."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    set_slow_operation_threshold(settings.slow_operation_threshold)

    store = TraceStore(settings.database_url)
    repository = TraceRepository(store, stats_source=settings.stats_source)
    capability = ReviewerCapability.for_role(settings.reviewer_role, signed_in=settings.signed_in)
    logger.info(
        "Starting trace review dashboard (store=%s, stats=%s, can_update=%s)",
        settings.database_url, settings.stats_source, capability.can_update_records,
    )

    app = create_app(repository, capability, settings)
    try:
        app.queue().launch(
            server_name=settings.server_name,
            server_port=settings.server_port,
            show_error=True,
        )
    finally:
        get_monitor().log_stats()
        store.dispose()


if __name__ == "__main__":
    main()
