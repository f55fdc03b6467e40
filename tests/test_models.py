"""
Unit tests for the data models: enumerations, Trace, FilterState and
ReviewerCapability.
"""

from datetime import datetime, timezone

import pytest
from hypothesis import given, settings, strategies as st

from models import (
    ALL_OPTION,
    SCHEMA_VERSION,
    DataSource,
    FilterState,
    FunctionCall,
    NotFound,
    PermissionDenied,
    ReviewerCapability,
    Scenario,
    Tool,
    Trace,
    TraceReviewError,
    TraceStatus,
    UserRole,
    ValidationError,
    filter_choices,
    merge_detail,
    parse_enum,
)


def make_detail(trace_id="a", **overrides):
    """Helper to create a full-projection trace."""
    fields = dict(
        id=trace_id,
        user_message="What is 2 + 2?",
        assistant_response="4",
        function_calls=[],
        created_at=datetime(2024, 3, 11, 9, 0, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return Trace(**fields)


class TestEnums:
    def test_schema_version_is_positive(self):
        assert SCHEMA_VERSION >= 1

    @pytest.mark.parametrize("value", [None, "", "  ", ALL_OPTION])
    def test_unset_values_parse_to_none(self, value):
        assert parse_enum(Tool, value) is None

    def test_parse_by_value_and_member(self):
        assert parse_enum(Scenario, "Code Generation") == Scenario.CODE_GENERATION
        assert parse_enum(TraceStatus, TraceStatus.REJECTED) is TraceStatus.REJECTED

    def test_unknown_value_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_enum(DataSource, "Carrier pigeon")
        assert "DataSource" in str(exc_info.value)

    def test_filter_choices_start_with_all(self):
        choices = filter_choices(TraceStatus)
        assert choices == ["All", "Pending", "Accepted", "Rejected"]

    def test_str_enum_compares_with_raw_value(self):
        assert TraceStatus.ACCEPTED == "Accepted"


class TestTrace:
    def test_editable_output_starts_as_response(self):
        trace = make_detail()
        assert trace.editable_output == "4"
        assert not trace.is_edited

    def test_summary_drops_detail_fields(self):
        trace = make_detail(editable_output="four")
        summary = trace.summary()

        assert summary.assistant_response is None
        assert summary.editable_output is None
        assert summary.function_calls is None
        assert not summary.is_detail
        assert summary.status == trace.status

    def test_is_detail_requires_function_calls(self):
        assert make_detail().is_detail
        assert not make_detail(function_calls=None).is_detail

    def test_is_edited(self):
        assert make_detail(editable_output="four").is_edited

    def test_merge_detail_keeps_summary_index(self):
        summary = make_detail().summary()
        summary.index = 7
        detail = make_detail(status=TraceStatus.ACCEPTED, function_calls=[
            FunctionCall(id="c1", trace_id="a", function_name="add", arguments={"x": 2, "y": 2}),
        ])

        merged = merge_detail(summary, detail)

        assert merged.index == 7
        assert merged.status == TraceStatus.ACCEPTED
        assert merged.function_calls[0].function_name == "add"
        assert detail.index is None

    def test_merge_detail_without_summary(self):
        detail = make_detail()
        assert merge_detail(None, detail) is detail

    def test_merge_detail_rejects_other_id(self):
        with pytest.raises(ValueError):
            merge_detail(make_detail("a").summary(), make_detail("b"))


class TestFilterState:
    def test_default_is_empty(self):
        state = FilterState()
        assert state.is_empty()
        assert state.key() == (None, None, None, None)

    def test_from_dropdown_values(self):
        state = FilterState.from_values(tool="Claude", scenario="All", status="Pending", data_source=None)

        assert state.tool == Tool.CLAUDE
        assert state.scenario is None
        assert state.status == TraceStatus.PENDING
        assert state.data_source is None

    def test_with_field_keeps_other_fields(self):
        state = FilterState(tool=Tool.GEMINI, status=TraceStatus.ACCEPTED)

        changed = state.with_field("scenario", "Data Analysis")

        assert changed.tool == Tool.GEMINI
        assert changed.status == TraceStatus.ACCEPTED
        assert changed.scenario == Scenario.DATA_ANALYSIS
        assert state.scenario is None

    def test_with_field_unknown_name(self):
        with pytest.raises(ValidationError):
            FilterState().with_field("llm_score", "Pass")

    def test_for_statistics_drops_status_only(self):
        state = FilterState(tool=Tool.CLAUDE, status=TraceStatus.REJECTED)
        stats_state = state.for_statistics()

        assert stats_state.status is None
        assert stats_state.tool == Tool.CLAUDE

    def test_filter_is_hashable(self):
        assert len({FilterState(), FilterState(), FilterState(tool=Tool.OTHER)}) == 2


@given(
    st.sampled_from(list(Tool)),
    st.sampled_from(list(Scenario)),
    st.sampled_from(list(TraceStatus)),
    st.sampled_from(list(DataSource)),
    st.sets(st.sampled_from(["tool", "scenario", "status", "data_source"])),
)
@settings(max_examples=100)
def test_filter_matches_own_fields(tool, scenario, status, data_source, fields_to_set):
    """A filter built from a trace's own tags always matches that trace."""
    trace = make_detail(tool=tool, scenario=scenario, status=status, data_source=data_source)
    values = {"tool": tool, "scenario": scenario, "status": status, "data_source": data_source}
    state = FilterState(**{name: values[name] for name in fields_to_set})

    assert state.matches(trace)


class TestCapability:
    @pytest.mark.parametrize("role,expected", [
        (UserRole.REVIEWER, True),
        (UserRole.ADMIN, True),
        (UserRole.INSPECTOR, False),
        (None, False),
    ])
    def test_can_update_records(self, role, expected):
        assert ReviewerCapability(signed_in=True, role=role).can_update_records is expected

    def test_signed_out_cannot_update(self):
        assert not ReviewerCapability.for_role("Admin", signed_in=False).can_update_records

    def test_for_role_parses_name(self):
        capability = ReviewerCapability.for_role("Inspector")

        assert capability.role == UserRole.INSPECTOR
        assert not capability.can_update_records


class TestErrors:
    def test_not_found_carries_id(self):
        error = NotFound("abc")
        assert error.trace_id == "abc"
        assert "abc" in str(error)
        assert isinstance(error, TraceReviewError)

    def test_permission_denied_is_validation_error(self):
        assert issubclass(PermissionDenied, ValidationError)
