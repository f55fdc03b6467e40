"""
Enumerations shared by every layer of the dashboard.

The value sets below are the only place tool, scenario, status and data
source names are spelled out. Filters, the store schema and the UI dropdowns
all derive from these classes.
"""

from enum import Enum
from typing import List, Optional, Type, TypeVar

from .errors import ValidationError

# Bump when a value set changes.
SCHEMA_VERSION = 2

ALL_OPTION = "All"


class TraceStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class LLMScore(str, Enum):
    PASS = "Pass"
    FAIL = "Fail"


class Tool(str, Enum):
    CHATGPT = "ChatGPT"
    CLAUDE = "Claude"
    GEMINI = "Gemini"
    OTHER = "Other"


class Scenario(str, Enum):
    CODE_GENERATION = "Code Generation"
    TEXT_GENERATION = "Text Generation"
    DATA_ANALYSIS = "Data Analysis"
    CREATIVE_WRITING = "Creative Writing"
    OTHER = "Other"


class DataSource(str, Enum):
    API = "API"
    UPLOAD = "Upload"
    MANUAL = "Manual"
    OTHER = "Other"


class UserRole(str, Enum):
    INSPECTOR = "Inspector"
    REVIEWER = "Reviewer"
    ADMIN = "Admin"


E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: Type[E], value) -> Optional[E]:
    """
    Coerce a raw value into a member of enum_cls.

    Args:
        enum_cls: Target enumeration class
        value: Enum member, raw string value, or None/""/"All"

    Returns:
        Enum member, or None when the value means "no filter"

    Raises:
        ValidationError: If the value is not part of the enumeration
    """
    if value is None or isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    if not text or text == ALL_OPTION:
        return None
    try:
        return enum_cls(text)
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ValidationError(
            f"Invalid {enum_cls.__name__} value: {value!r}. Must be one of {allowed}"
        )


def filter_choices(enum_cls: Type[Enum]) -> List[str]:
    """Dropdown choices for a filter: "All" followed by every value."""
    return [ALL_OPTION] + [member.value for member in enum_cls]
