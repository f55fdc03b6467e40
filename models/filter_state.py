"""
Filter state for the trace review dashboard.

The same object drives the summary listing query and the statistics query.
"""

from dataclasses import dataclass, fields, replace
from typing import Optional, Tuple

from .enums import DataSource, Scenario, Tool, TraceStatus, parse_enum
from .errors import ValidationError


_FIELD_TYPES = {
    "tool": Tool,
    "scenario": Scenario,
    "status": TraceStatus,
    "data_source": DataSource,
}


@dataclass(frozen=True)
class FilterState:
    """
    Current selection over tool, scenario, status and data source.

    Each field is either a concrete value or None, meaning "no filter".

    Attributes:
        tool: Tool filter
        scenario: Scenario filter
        status: Status filter (ignored by statistics)
        data_source: Data source filter
    """

    tool: Optional[Tool] = None
    scenario: Optional[Scenario] = None
    status: Optional[TraceStatus] = None
    data_source: Optional[DataSource] = None

    @classmethod
    def from_values(cls, tool=None, scenario=None, status=None, data_source=None) -> "FilterState":
        """Build a filter from raw dropdown values ("All" means unset)."""
        return cls(
            tool=parse_enum(Tool, tool),
            scenario=parse_enum(Scenario, scenario),
            status=parse_enum(TraceStatus, status),
            data_source=parse_enum(DataSource, data_source),
        )

    def with_field(self, name: str, value) -> "FilterState":
        """Return a copy with one field changed; the others are kept."""
        if name not in _FIELD_TYPES:
            raise ValidationError(f"Unknown filter field: {name}")
        return replace(self, **{name: parse_enum(_FIELD_TYPES[name], value)})

    def for_statistics(self) -> "FilterState":
        """Statistics rates are computed over every status."""
        return replace(self, status=None)

    def matches(self, trace) -> bool:
        """True when every set field equals the trace's value."""
        for f in fields(self):
            wanted = getattr(self, f.name)
            if wanted is not None and getattr(trace, f.name) != wanted:
                return False
        return True

    def key(self) -> Tuple[Optional[str], ...]:
        """Hashable cache key."""
        return tuple(
            getattr(self, f.name).value if getattr(self, f.name) is not None else None
            for f in fields(self)
        )

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))
