"""
Shared fixtures: a SQLite trace store under tmp_path seeded with a small,
fixed set of traces, and a repository whose clock is pinned.
"""

from datetime import datetime, timedelta, timezone

import pytest

from services import TraceRepository, TraceStore

# Tuesday; "Mon" below is 2024-03-11
NOW = datetime(2024, 3, 12, 18, 0, tzinfo=timezone.utc)
MONDAY = datetime(2024, 3, 11, tzinfo=timezone.utc)
TUESDAY = datetime(2024, 3, 12, tzinfo=timezone.utc)


def make_row(trace_id, created_at, status="Pending", llm_score="Pass", tool="ChatGPT",
             scenario="Code Generation", data_source="API", **extra):
    """Helper to build an add_traces row."""
    row = {
        "id": trace_id,
        "user_message": f"Question {trace_id}",
        "assistant_response": f"Answer **{trace_id}**",
        "llm_score": llm_score,
        "status": status,
        "tool": tool,
        "scenario": scenario,
        "data_source": data_source,
        "created_at": created_at,
    }
    row.update(extra)
    return row


def seed_rows():
    """
    Four traces:
    - old: January, Accepted/Pass (only inside a 90-day window)
    - t1: Monday, Accepted/Pass, three function calls
    - t2: Monday, Rejected/Fail with a reason
    - t3: Tuesday, Pending/Pass
    """
    t1_time = MONDAY + timedelta(hours=9)
    return [
        make_row("old", datetime(2024, 1, 2, 8, 0, tzinfo=timezone.utc), status="Accepted"),
        make_row(
            "t1", t1_time, status="Accepted",
            function_calls=[
                {"id": "c1", "function_name": "search_docs", "arguments": {"query": "sqlite"},
                 "response": {"hits": 3}, "created_at": t1_time + timedelta(seconds=1)},
                {"id": "c2", "function_name": "run_code", "arguments": {"code": "print(1)"},
                 "response": None, "created_at": t1_time + timedelta(seconds=1)},
                {"id": "c0", "function_name": "plan", "arguments": {},
                 "response": {"steps": ["search", "run"]}, "created_at": t1_time},
            ],
        ),
        make_row(
            "t2", MONDAY + timedelta(hours=10), status="Rejected", llm_score="Fail",
            tool="Claude", scenario="Text Generation", data_source="Upload",
            reject_reason="Wrong answer",
        ),
        make_row(
            "t3", TUESDAY + timedelta(hours=8), tool="Gemini",
            scenario="Data Analysis", data_source="Manual",
        ),
    ]


@pytest.fixture
def store(tmp_path):
    """Empty store backed by a SQLite file."""
    trace_store = TraceStore(f"sqlite:///{tmp_path / 'traces.db'}")
    yield trace_store
    trace_store.dispose()


@pytest.fixture
def seeded_store(store):
    store.add_traces(seed_rows())
    return store


@pytest.fixture
def repository(seeded_store):
    return TraceRepository(seeded_store, clock=lambda: NOW)


@pytest.fixture
def client_repository(seeded_store):
    return TraceRepository(seeded_store, stats_source="client", clock=lambda: NOW)
