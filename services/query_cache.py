"""
QueryCache: explicit keyed cache for list, detail and statistics queries.

Each key carries a generation counter. A fetch takes a ticket with begin()
and may only commit while the generation is unchanged, so a response that
was in flight across an invalidation is dropped instead of overwriting
newer state.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterator, Optional, Tuple

FRESH = "fresh"
STALE = "stale"
ERROR = "error"


@dataclass
class CacheEntry:
    """
    Attributes:
        data: Last good value, None if never loaded
        timestamp: Time of the last successful commit (time.time())
        status: fresh, stale or error
        error: Last fetch error, if status is error
    """

    data: Any = None
    timestamp: float = 0.0
    status: str = STALE
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class Ticket:
    key: Hashable
    generation: int


class QueryCache:
    """
    Keyed cache with explicit invalidation.

    Keys are tuples whose first element names the query kind
    ("summaries", "detail", "daily_stats").
    """

    def __init__(self, clock=time.time):
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._generations: Dict[Hashable, int] = {}
        self._clock = clock

    def get(self, key: Hashable) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def data(self, key: Hashable, default=None):
        """Last good value for key, fresh or not."""
        entry = self._entries.get(key)
        if entry is None or entry.data is None:
            return default
        return entry.data

    def is_fresh(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.status == FRESH

    def begin(self, key: Hashable) -> Ticket:
        """Start a fetch for key."""
        return Ticket(key, self._generations.setdefault(key, 0))

    def is_current(self, ticket: Ticket) -> bool:
        return self._generations.get(ticket.key, 0) == ticket.generation

    def commit(self, ticket: Ticket, data: Any) -> bool:
        """
        Store a fetch result.

        Returns:
            False if the key was invalidated after the ticket was taken
        """
        if not self.is_current(ticket):
            return False
        self._entries[ticket.key] = CacheEntry(data=data, timestamp=self._clock(), status=FRESH)
        return True

    def fail(self, ticket: Ticket, error: BaseException) -> bool:
        """Record a failed fetch; the last good data is kept."""
        if not self.is_current(ticket):
            return False
        entry = self._entries.setdefault(ticket.key, CacheEntry())
        entry.status = ERROR
        entry.error = error
        return True

    def set(self, key: Hashable, data: Any, status: str = FRESH) -> None:
        """Local write (optimistic update or rollback)."""
        entry = self._entries.setdefault(key, CacheEntry())
        entry.data = data
        entry.status = status
        entry.error = None
        entry.timestamp = self._clock()

    def invalidate(self, key: Hashable) -> None:
        """Mark key stale and drop any fetch already in flight for it."""
        self._generations[key] = self._generations.get(key, 0) + 1
        entry = self._entries.get(key)
        if entry is not None:
            entry.status = STALE

    def invalidate_prefix(self, kind: str) -> None:
        """Invalidate every key of one query kind."""
        for key in list(self._keys_of(kind)):
            self.invalidate(key)

    def _keys_of(self, kind: str) -> Iterator[Tuple]:
        seen = set(self._entries) | set(self._generations)
        for key in seen:
            if isinstance(key, tuple) and key and key[0] == kind:
                yield key

    def clear(self) -> None:
        for key in list(self._entries):
            self.invalidate(key)
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def summaries_key(filter_state) -> Tuple:
    return ("summaries", filter_state.key())


def detail_key(trace_id: str) -> Tuple:
    return ("detail", trace_id)


def daily_stats_key(window_days: int, filter_state) -> Tuple:
    return ("daily_stats", window_days, filter_state.key())
