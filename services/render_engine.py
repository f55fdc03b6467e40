"""
RenderEngine for the trace viewer.

Turns trace fields into HTML fragments for Gradio HTML components:
Markdown answers, function-call payloads, record metadata and diff spans.
"""

import html
import json
import logging
from typing import Iterable, List, Optional

import markdown

from models import FunctionCall, Trace, TraceStatus

from .diff_engine import DELETE, INSERT, DiffSegment

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    TraceStatus.PENDING: ("⭕", "#9E9E9E"),
    TraceStatus.ACCEPTED: ("✅", "#4CAF50"),
    TraceStatus.REJECTED: ("❌", "#F44336"),
}

DELETE_STYLE = "color: #d32f2f; text-decoration: line-through; background: #ffebee; padding: 2px 4px; border-radius: 3px;"
INSERT_STYLE = "color: #388e3c; background: #e8f5e9; padding: 2px 4px; border-radius: 3px;"


class RenderEngine:
    """
    Rendering engine for trace content.

    Provides methods to:
    - Render Markdown assistant responses to HTML
    - Render function calls with pretty-printed JSON payloads
    - Render record metadata
    - Style diff segments
    """

    def __init__(self):
        """Initialize RenderEngine with Markdown processor."""
        self.md = markdown.Markdown(extensions=["extra", "nl2br", "sane_lists"])

    def render_markdown(self, text: Optional[str]) -> str:
        """
        Render Markdown to HTML.

        Falls back to escaped preformatted text if the Markdown processor
        fails on the input.
        """
        if not text:
            return ""

        try:
            html_content = self.md.convert(text)
        except Exception as e:
            logger.warning("Markdown rendering failed, showing raw text: %s", e)
            return f'<div class="reference-content"><pre style="white-space: pre-wrap; word-wrap: break-word;">{html.escape(text)}</pre></div>'
        finally:
            self.md.reset()

        return f'<div class="reference-content">{html_content}</div>'

    def render_plain(self, text: Optional[str]) -> str:
        """Escaped text with line breaks preserved."""
        return f'<div style="white-space: pre-wrap; word-wrap: break-word;">{html.escape(text or "")}</div>'

    def render_json(self, payload) -> str:
        """Pretty-printed, escaped JSON block."""
        text = json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True, default=str)
        return f'<pre class="json-block" style="background: #f5f5f5; padding: 8px; border-radius: 5px; overflow-x: auto;">{html.escape(text)}</pre>'

    def render_chat(self, record: Optional[Trace]) -> str:
        """User message followed by the assistant's original response."""
        if record is None:
            return '<div class="reference-content">No record selected</div>'

        if record.assistant_response is None:
            assistant_html = '<div style="color: #999;">Loading response...</div>'
        else:
            assistant_html = self.render_markdown(record.assistant_response) or '<div style="color: #999;">(empty response)</div>'

        return (
            '<div class="chat-view">'
            '<div class="textbox-label">👤 User</div>'
            f'<div class="chat-message user-message">{self.render_plain(record.user_message)}</div>'
            '<div class="textbox-label" style="margin-top: 12px;">🤖 Assistant</div>'
            f'<div class="chat-message assistant-message">{assistant_html}</div>'
            '</div>'
        )

    def render_function_calls(self, calls: Optional[Iterable[FunctionCall]]) -> str:
        """
        Render function calls in the order they were made.

        Args:
            calls: Function calls from the detail projection; None while loading

        Returns:
            HTML string
        """
        if calls is None:
            return '<div style="color: #999;">Loading function calls...</div>'

        calls = list(calls)
        if not calls:
            return '<div style="color: #999;">No function calls</div>'

        parts = []
        for position, call in enumerate(calls, start=1):
            if call.response is None:
                response_html = '<div style="color: #999;">No response recorded</div>'
            else:
                response_html = self.render_json(call.response)
            created = call.created_at.strftime("%Y-%m-%d %H:%M:%S") if call.created_at else "-"
            parts.append(
                '<details class="function-call" open>'
                f'<summary><b>{position}. {html.escape(call.function_name)}</b>'
                f' <span style="color: #666; font-size: 13px;">{created}</span></summary>'
                '<div class="textbox-label">Arguments</div>'
                f'{self.render_json(call.arguments)}'
                '<div class="textbox-label">Response</div>'
                f'{response_html}'
                '</details>'
            )
        return "".join(parts)

    def render_metadata(self, record: Optional[Trace]) -> str:
        """Key/value table of a record's classification and review fields."""
        if record is None:
            return ""

        def label(value):
            return value.value if value is not None else "-"

        rows = [
            ("ID", record.id),
            ("Status", self.render_status_badge(record.status)),
            ("LLM Score", label(record.llm_score)),
            ("Tool", label(record.tool)),
            ("Scenario", label(record.scenario)),
            ("Data Source", label(record.data_source)),
            ("Created", record.created_at.strftime("%Y-%m-%d %H:%M:%S UTC") if record.created_at else "-"),
        ]
        if record.status == TraceStatus.REJECTED:
            rows.append(("Reject Reason", html.escape(record.reject_reason or "-")))
        if record.function_calls is not None:
            rows.append(("Function Calls", str(len(record.function_calls))))

        body = "".join(
            f'<tr><th style="text-align: left; padding: 4px 12px 4px 0;">{name}</th><td>{value}</td></tr>'
            for name, value in rows
        )
        return f'<table class="metadata-table">{body}</table>'

    def render_status_badge(self, status: TraceStatus) -> str:
        marker, color = STATUS_STYLES[status]
        return f'<span style="color: {color}; font-weight: bold;">{marker} {status.value}</span>'

    def render_diff(self, segments: List[DiffSegment]) -> str:
        """
        Convert diff segments to styled HTML.

        Applies visual styling:
        - removed text → red with strikethrough
        - added text → green
        """
        if not segments:
            return '<div class="diff-editable-box" style="color: #999;">No changes from the original response</div>'

        parts = []
        for segment in segments:
            text = html.escape(segment.text)
            if segment.op == DELETE:
                parts.append(f'<span style="{DELETE_STYLE}">{text}</span>')
            elif segment.op == INSERT:
                parts.append(f'<span style="{INSERT_STYLE}">{text}</span>')
            else:
                parts.append(text)
        return f'<div class="diff-editable-box" style="white-space: pre-wrap;">{"".join(parts)}</div>'
