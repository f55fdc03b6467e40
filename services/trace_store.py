"""
TraceStore: relational storage for traces and their function calls.

Wraps a SQLAlchemy engine. Every call is synchronous; the async repository
runs them in worker threads. Access is serialized through one lock so an
in-memory SQLite database can be shared between threads.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    and_,
    case,
    create_engine,
    event,
    func,
    or_,
    select,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from models import (
    DataSource,
    FilterState,
    FunctionCall,
    LLMScore,
    NotFound,
    Scenario,
    Tool,
    Trace,
    TraceStatus,
    parse_enum,
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class TraceRow(Base):
    __tablename__ = "llm_traces"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_message: Mapped[str] = mapped_column(Text, nullable=False)
    assistant_response: Mapped[str] = mapped_column(Text, nullable=False, default="")
    editable_output: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=TraceStatus.PENDING.value, index=True)
    llm_score: Mapped[str] = mapped_column(String(8), nullable=False)
    reject_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tool: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    scenario: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    data_source: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    function_calls: Mapped[List["FunctionCallRow"]] = relationship(
        back_populates="trace",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: (FunctionCallRow.created_at, FunctionCallRow.seq),
    )


class FunctionCallRow(Base):
    __tablename__ = "llm_function_calls"

    # seq keeps insertion order for calls that share a timestamp
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    trace_id: Mapped[str] = mapped_column(
        ForeignKey("llm_traces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    function_name: Mapped[str] = mapped_column(String(128), nullable=False)
    function_arguments: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    function_response: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    trace: Mapped[TraceRow] = relationship(back_populates="function_calls")


# Columns of the summary projection
_SUMMARY_COLUMNS = (
    TraceRow.id,
    TraceRow.user_message,
    TraceRow.status,
    TraceRow.llm_score,
    TraceRow.created_at,
    TraceRow.tool,
    TraceRow.scenario,
    TraceRow.data_source,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_db_time(value: Optional[datetime]) -> datetime:
    """Store timestamps as naive UTC."""
    if value is None:
        value = utc_now()
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


def _as_day(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _enum_value(enum_cls, value) -> Optional[str]:
    member = parse_enum(enum_cls, value)
    return member.value if member is not None else None


def _apply_filter(stmt, filter_state: Optional[FilterState]):
    if filter_state is None:
        return stmt
    if filter_state.tool is not None:
        stmt = stmt.where(TraceRow.tool == filter_state.tool.value)
    if filter_state.scenario is not None:
        stmt = stmt.where(TraceRow.scenario == filter_state.scenario.value)
    if filter_state.status is not None:
        stmt = stmt.where(TraceRow.status == filter_state.status.value)
    if filter_state.data_source is not None:
        stmt = stmt.where(TraceRow.data_source == filter_state.data_source.value)
    return stmt


def _summary_from_row(row) -> Trace:
    return Trace(
        id=row.id,
        user_message=row.user_message,
        status=TraceStatus(row.status),
        llm_score=LLMScore(row.llm_score),
        created_at=_from_db_time(row.created_at),
        tool=parse_enum(Tool, row.tool),
        scenario=parse_enum(Scenario, row.scenario),
        data_source=parse_enum(DataSource, row.data_source),
    )


def _detail_from_row(row: TraceRow) -> Trace:
    return Trace(
        id=row.id,
        user_message=row.user_message,
        status=TraceStatus(row.status),
        llm_score=LLMScore(row.llm_score),
        created_at=_from_db_time(row.created_at),
        tool=parse_enum(Tool, row.tool),
        scenario=parse_enum(Scenario, row.scenario),
        data_source=parse_enum(DataSource, row.data_source),
        assistant_response=row.assistant_response,
        editable_output=row.editable_output,
        reject_reason=row.reject_reason,
        function_calls=[
            FunctionCall(
                id=call.id,
                trace_id=call.trace_id,
                function_name=call.function_name,
                arguments=dict(call.function_arguments or {}),
                response=call.function_response,
                created_at=_from_db_time(call.created_at),
            )
            for call in row.function_calls
        ],
    )


class TraceStore:
    """
    Relational store holding traces and function calls.

    Attributes:
        database_url: SQLAlchemy database URL
        engine: SQLAlchemy engine
    """

    def __init__(self, database_url: str = "sqlite:///:memory:", echo: bool = False):
        """
        Initialize the store and create the schema if missing.

        Args:
            database_url: SQLAlchemy database URL
            echo: Log emitted SQL
        """
        self.database_url = database_url
        engine_kwargs: Dict[str, Any] = {"echo": echo, "future": True}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True

        self.engine = create_engine(database_url, **engine_kwargs)
        if database_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        Base.metadata.create_all(self.engine)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._lock = threading.RLock()

    @contextmanager
    def session_scope(self):
        """Transactional session; commits on success, rolls back on error."""
        with self._lock:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def dispose(self):
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_trace(
        self,
        user_message: str,
        assistant_response: str,
        llm_score,
        tool=None,
        scenario=None,
        data_source=None,
        status=TraceStatus.PENDING,
        reject_reason: Optional[str] = None,
        editable_output: Optional[str] = None,
        created_at: Optional[datetime] = None,
        function_calls: Optional[Iterable[Dict[str, Any]]] = None,
        trace_id: Optional[str] = None,
    ) -> str:
        """
        Insert one trace with its function calls.

        Returns:
            Id of the new trace
        """
        return self.add_traces([{
            "user_message": user_message,
            "assistant_response": assistant_response,
            "llm_score": llm_score,
            "tool": tool,
            "scenario": scenario,
            "data_source": data_source,
            "status": status,
            "reject_reason": reject_reason,
            "editable_output": editable_output,
            "created_at": created_at,
            "function_calls": function_calls,
            "id": trace_id,
        }])[0]

    def add_traces(self, rows: Iterable[Dict[str, Any]]) -> List[str]:
        """
        Bulk insert traces, e.g. historical rows from a seeding job.

        Each row is a dict with the add_trace keyword names ("id" for the
        trace id). Missing editable_output starts as assistant_response.

        Returns:
            Ids of the inserted traces, in input order
        """
        ids = []
        with self.session_scope() as session:
            for row in rows:
                created_at = _to_db_time(row.get("created_at"))
                assistant_response = row.get("assistant_response") or ""
                editable_output = row.get("editable_output")
                trace = TraceRow(
                    id=row.get("id") or str(uuid.uuid4()),
                    user_message=row["user_message"],
                    assistant_response=assistant_response,
                    editable_output=assistant_response if editable_output is None else editable_output,
                    status=_enum_value(TraceStatus, row.get("status")) or TraceStatus.PENDING.value,
                    llm_score=_enum_value(LLMScore, row["llm_score"]),
                    reject_reason=row.get("reject_reason"),
                    tool=_enum_value(Tool, row.get("tool")),
                    scenario=_enum_value(Scenario, row.get("scenario")),
                    data_source=_enum_value(DataSource, row.get("data_source")),
                    created_at=created_at,
                    updated_at=created_at,
                )
                for call in row.get("function_calls") or []:
                    trace.function_calls.append(FunctionCallRow(
                        id=call.get("id") or str(uuid.uuid4()),
                        function_name=call["function_name"],
                        function_arguments=call.get("arguments") or {},
                        function_response=call.get("response"),
                        created_at=_to_db_time(call.get("created_at") or created_at),
                    ))
                session.add(trace)
                ids.append(trace.id)
        logger.info("Inserted %d traces", len(ids))
        return ids

    def update_status(self, trace_id: str, status, reject_reason: Optional[str] = None) -> None:
        """
        Set a trace's status.

        A Rejected status stores the reason when one is supplied; Pending and
        Accepted always clear any stored reason.

        Raises:
            NotFound: If no trace has that id
        """
        status = parse_enum(TraceStatus, status)
        with self.session_scope() as session:
            row = session.get(TraceRow, trace_id)
            if row is None:
                raise NotFound(trace_id)
            row.status = status.value
            if status == TraceStatus.REJECTED:
                if reject_reason:
                    row.reject_reason = reject_reason
            else:
                row.reject_reason = None
            row.updated_at = _to_db_time(None)

    def update_editable_output(self, trace_id: str, text: str) -> None:
        """
        Overwrite a trace's editable output.

        Raises:
            NotFound: If no trace has that id
        """
        with self.session_scope() as session:
            row = session.get(TraceRow, trace_id)
            if row is None:
                raise NotFound(trace_id)
            row.editable_output = text
            row.updated_at = _to_db_time(None)

    def reset_trace(self, trace_id: str) -> None:
        """
        Restore the original output and set Pending in one transaction.

        Raises:
            NotFound: If no trace has that id
        """
        with self.session_scope() as session:
            row = session.get(TraceRow, trace_id)
            if row is None:
                raise NotFound(trace_id)
            row.editable_output = row.assistant_response
            row.status = TraceStatus.PENDING.value
            row.reject_reason = None
            row.updated_at = _to_db_time(None)

    def delete_trace(self, trace_id: str) -> None:
        """Delete a trace together with its function calls."""
        with self.session_scope() as session:
            row = session.get(TraceRow, trace_id)
            if row is None:
                raise NotFound(trace_id)
            session.delete(row)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_summaries(self, filter_state: Optional[FilterState] = None) -> List[Trace]:
        """Summary projection of matching traces, oldest first."""
        stmt = select(*_SUMMARY_COLUMNS).order_by(TraceRow.created_at, TraceRow.id)
        stmt = _apply_filter(stmt, filter_state)
        with self.session_scope() as session:
            rows = session.execute(stmt).all()
        return [_summary_from_row(row) for row in rows]

    def get_detail(self, trace_id: str) -> Trace:
        """
        Full projection of one trace including its function calls.

        Raises:
            NotFound: If no trace has that id
        """
        with self.session_scope() as session:
            row = session.get(TraceRow, trace_id)
            if row is None:
                raise NotFound(trace_id)
            return _detail_from_row(row)

    def count_function_calls(self, trace_id: Optional[str] = None) -> int:
        stmt = select(func.count(FunctionCallRow.seq))
        if trace_id is not None:
            stmt = stmt.where(FunctionCallRow.trace_id == trace_id)
        with self.session_scope() as session:
            return int(session.execute(stmt).scalar_one())

    def evaluation_rows(
        self, since: datetime, filter_state: Optional[FilterState] = None
    ) -> List[Tuple[TraceStatus, LLMScore, datetime]]:
        """(status, llm_score, created_at) of traces created at or after since."""
        stmt = select(TraceRow.status, TraceRow.llm_score, TraceRow.created_at).where(
            TraceRow.created_at >= _to_db_time(since)
        )
        stmt = _apply_filter(stmt, filter_state)
        with self.session_scope() as session:
            rows = session.execute(stmt).all()
        return [
            (TraceStatus(row.status), LLMScore(row.llm_score), _from_db_time(row.created_at))
            for row in rows
        ]

    def daily_counts_procedure(
        self, since: datetime, filter_state: Optional[FilterState] = None
    ) -> List[Tuple[date, int, int, int]]:
        """
        Stored aggregation: per UTC day, (day, evaluated, accepted, agreed).

        Only days holding at least one trace are returned, ascending.
        """
        day = func.date(TraceRow.created_at).label("day")
        is_evaluated = TraceRow.status != TraceStatus.PENDING.value
        is_accepted = TraceRow.status == TraceStatus.ACCEPTED.value
        is_agreed = or_(
            and_(TraceRow.status == TraceStatus.ACCEPTED.value, TraceRow.llm_score == LLMScore.PASS.value),
            and_(TraceRow.status == TraceStatus.REJECTED.value, TraceRow.llm_score == LLMScore.FAIL.value),
        )
        stmt = (
            select(
                day,
                func.sum(case((is_evaluated, 1), else_=0)).label("evaluated"),
                func.sum(case((is_accepted, 1), else_=0)).label("accepted"),
                func.sum(case((is_agreed, 1), else_=0)).label("agreed"),
            )
            .where(TraceRow.created_at >= _to_db_time(since))
            .group_by(day)
            .order_by(day)
        )
        stmt = _apply_filter(stmt, filter_state)
        with self.session_scope() as session:
            rows = session.execute(stmt).all()
        return [
            (_as_day(row.day), int(row.evaluated or 0), int(row.accepted or 0), int(row.agreed or 0))
            for row in rows
        ]


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
