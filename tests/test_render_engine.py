"""
Unit tests for RenderEngine.

Tests Markdown rendering, function call and metadata fragments, and diff
styling.
"""

from datetime import datetime, timezone

import pytest
from models import FunctionCall, Tool, Trace, TraceStatus
from services import RenderEngine
from services.diff_engine import DELETE, EQUAL, INSERT, DiffSegment
from services.render_engine import DELETE_STYLE, INSERT_STYLE


def make_detail(**overrides):
    fields = dict(
        id="t1",
        user_message="How do I <b>bold</b>?",
        assistant_response="Use **double asterisks**.",
        status=TraceStatus.PENDING,
        tool=Tool.CLAUDE,
        created_at=datetime(2024, 3, 11, 9, 30, tzinfo=timezone.utc),
        function_calls=[],
    )
    fields.update(overrides)
    return Trace(**fields)


class TestMarkdownRendering:
    """Test Markdown to HTML conversion."""

    def test_bold_rendering(self):
        """Test bold text rendering."""
        result = RenderEngine().render_markdown("This is **bold** text")

        assert '<strong>bold</strong>' in result

    def test_italic_rendering(self):
        """Test italic text rendering."""
        result = RenderEngine().render_markdown("This is *italic* text")

        assert '<em>italic</em>' in result

    def test_list_rendering(self):
        """Test list rendering."""
        result = RenderEngine().render_markdown("- Item 1\n- Item 2")

        assert result.count('<li>') == 2

    def test_fenced_code(self):
        result = RenderEngine().render_markdown("```\nprint(1)\n```")

        assert '<code>' in result
        assert 'print(1)' in result

    def test_table(self):
        result = RenderEngine().render_markdown("| a | b |\n|---|---|\n| 1 | 2 |")

        assert '<table>' in result

    def test_empty_text(self):
        """Test rendering empty text."""
        engine = RenderEngine()

        assert engine.render_markdown("") == ""
        assert engine.render_markdown(None) == ""

    def test_converter_reset_between_calls(self):
        """Footnotes from one document do not leak into the next."""
        engine = RenderEngine()
        engine.render_markdown("Text[^1]\n\n[^1]: A footnote")

        result = engine.render_markdown("Plain text")

        assert 'footnote' not in result


class TestPlainAndJson:

    def test_plain_is_escaped(self):
        result = RenderEngine().render_plain("<script>x</script>")

        assert '&lt;script&gt;' in result
        assert '<script>' not in result

    def test_json_sorted_and_escaped(self):
        result = RenderEngine().render_json({"b": "<tag>", "a": 1})

        assert result.index('&quot;a&quot;') < result.index('&quot;b&quot;')
        assert '&lt;tag&gt;' in result


class TestChatRendering:

    def test_no_record(self):
        assert "No record selected" in RenderEngine().render_chat(None)

    def test_user_message_escaped_response_rendered(self):
        result = RenderEngine().render_chat(make_detail())

        assert "&lt;b&gt;bold&lt;/b&gt;" in result
        assert "<strong>double asterisks</strong>" in result

    def test_summary_shows_loading(self):
        summary = make_detail().summary()

        result = RenderEngine().render_chat(summary)

        assert "Loading response" in result


class TestFunctionCalls:

    def test_loading_and_empty(self):
        engine = RenderEngine()

        assert "Loading function calls" in engine.render_function_calls(None)
        assert "No function calls" in engine.render_function_calls([])

    def test_calls_rendered_in_order(self):
        calls = [
            FunctionCall(id="c1", trace_id="t1", function_name="search", arguments={"q": "x"},
                         response={"hits": 2}),
            FunctionCall(id="c2", trace_id="t1", function_name="fetch<url>", arguments={}),
        ]

        result = RenderEngine().render_function_calls(calls)

        assert result.index("1. search") < result.index("2. fetch&lt;url&gt;")
        assert "No response recorded" in result
        assert "&quot;hits&quot;: 2" in result


class TestMetadata:

    def test_pending_record(self):
        result = RenderEngine().render_metadata(make_detail())

        assert "Claude" in result
        assert "2024-03-11 09:30:00 UTC" in result
        assert "Reject Reason" not in result
        assert "<th style=\"text-align: left; padding: 4px 12px 4px 0;\">Function Calls</th><td>0</td>" in result

    def test_rejected_record_shows_escaped_reason(self):
        record = make_detail(status=TraceStatus.REJECTED, reject_reason="<wrong>")

        result = RenderEngine().render_metadata(record)

        assert "Reject Reason" in result
        assert "&lt;wrong&gt;" in result

    def test_no_record(self):
        assert RenderEngine().render_metadata(None) == ""

    @pytest.mark.parametrize("status,marker", [
        (TraceStatus.PENDING, "⭕"),
        (TraceStatus.ACCEPTED, "✅"),
        (TraceStatus.REJECTED, "❌"),
    ])
    def test_status_badge(self, status, marker):
        result = RenderEngine().render_status_badge(status)

        assert marker in result
        assert status.value in result


class TestDiffRendering:
    """Test diff segment styling."""

    def test_segments_styled(self):
        segments = [
            DiffSegment(EQUAL, "Hello "),
            DiffSegment(DELETE, "world"),
            DiffSegment(INSERT, "there"),
        ]

        result = RenderEngine().render_diff(segments)

        assert f'<span style="{DELETE_STYLE}">world</span>' in result
        assert f'<span style="{INSERT_STYLE}">there</span>' in result
        assert 'Hello ' in result

    def test_segment_text_escaped(self):
        result = RenderEngine().render_diff([DiffSegment(INSERT, "<b>&</b>")])

        assert "&lt;b&gt;&amp;&lt;/b&gt;" in result

    def test_no_segments(self):
        assert "No changes" in RenderEngine().render_diff([])
