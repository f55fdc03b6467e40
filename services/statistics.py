"""
Daily statistics aggregation.

Groups evaluated traces by UTC calendar day and computes the agreement and
acceptance rates shown on the statistics panel.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from models import DailyStat, LLMScore, Trace, TraceStatus
from utils.performance import measure_time

logger = logging.getLogger(__name__)

# Rates are reported with one decimal place
RATE_DECIMALS = 1


def percentage(part: int, whole: int) -> float:
    """100 * part / whole, or 0.0 when whole is zero."""
    if whole <= 0:
        return 0.0
    return round(100.0 * part / whole, RATE_DECIMALS)


def window_start(window_days: int, now: Optional[datetime] = None) -> datetime:
    """
    First instant of a trailing window of window_days UTC calendar days.

    The window includes today, so a 7-day window starting on a Monday
    covers the previous Tuesday through Monday.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    today = now.astimezone(timezone.utc).date()
    first_day = today - timedelta(days=window_days - 1)
    return datetime.combine(first_day, time.min, tzinfo=timezone.utc)


def stats_from_counts(rows: Iterable[Tuple[date, int, int, int]]) -> List[DailyStat]:
    """Turn (day, evaluated, accepted, agreed) counts into DailyStat rows."""
    return [
        DailyStat(
            date=day,
            agreement_rate=percentage(agreed, evaluated),
            acceptance_rate=percentage(accepted, evaluated),
        )
        for day, evaluated, accepted, agreed in sorted(rows, key=lambda r: r[0])
    ]


class DailyStatisticsAggregator:
    """
    Client-side daily aggregation.

    Days without any record are omitted. Days whose records are all Pending
    are emitted with 0% for both rates so charts stay continuous over the
    days that do have data.
    """

    def to_frame(self, records: Iterable) -> pd.DataFrame:
        """
        Build a frame with status, llm_score and day columns.

        Args:
            records: Trace objects or (status, llm_score, created_at) tuples
        """
        rows = []
        for record in records:
            if isinstance(record, Trace):
                status, score, created_at = record.status, record.llm_score, record.created_at
            else:
                status, score, created_at = record
            if created_at is None:
                logger.warning("Skipping record without created_at in daily statistics: %r", record)
                continue
            rows.append({
                "status": TraceStatus(status).value,
                "llm_score": LLMScore(score).value,
                "created_at": created_at,
            })

        frame = pd.DataFrame(rows, columns=["status", "llm_score", "created_at"])
        frame["day"] = pd.to_datetime(frame["created_at"], utc=True).dt.date
        return frame

    def daily_counts(self, frame: pd.DataFrame) -> List[Tuple[date, int, int, int]]:
        """Per-day (day, evaluated, accepted, agreed) counts."""
        if frame.empty:
            return []

        accepted = frame["status"] == TraceStatus.ACCEPTED.value
        rejected = frame["status"] == TraceStatus.REJECTED.value
        passed = frame["llm_score"] == LLMScore.PASS.value
        counts = pd.DataFrame({
            "day": frame["day"],
            "evaluated": (frame["status"] != TraceStatus.PENDING.value).astype(int),
            "accepted": accepted.astype(int),
            "agreed": ((accepted & passed) | (rejected & ~passed)).astype(int),
        })
        grouped = counts.groupby("day", sort=True)[["evaluated", "accepted", "agreed"]].sum()
        return [
            (day, int(row.evaluated), int(row.accepted), int(row.agreed))
            for day, row in grouped.iterrows()
        ]

    def aggregate(self, records: Iterable) -> List[DailyStat]:
        """
        Compute daily stats for the given records.

        Returns:
            DailyStat rows ascending by day
        """
        with measure_time("aggregate_daily_stats"):
            return stats_from_counts(self.daily_counts(self.to_frame(records)))


def stats_to_frame(stats: Sequence[DailyStat]) -> pd.DataFrame:
    """Frame with date, agreement_rate and acceptance_rate columns for charts."""
    return pd.DataFrame(
        [
            {
                "date": pd.Timestamp(stat.date),
                "agreement_rate": stat.agreement_rate,
                "acceptance_rate": stat.acceptance_rate,
            }
            for stat in stats
        ],
        columns=["date", "agreement_rate", "acceptance_rate"],
    )
