"""
Core data models for Kalender

Events are immutable pydantic models. Edits never mutate an event in place;
the store swaps in a new instance that keeps the same id, which makes every
snapshot safe to read while the store keeps changing.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from kalender.core.errors import ErrorCode, ValidationError

DEFAULT_CATEGORY = "Work"
DEFAULT_PRIORITY = 5
MIN_PRIORITY = 1
MAX_PRIORITY = 10

STANDARD_CATEGORIES = ("Work", "Personal", "Family", "Other")

# Light red, green, blue, yellow, purple
CATEGORY_PALETTE: Tuple[Tuple[int, int, int], ...] = (
    (255, 200, 200),
    (200, 255, 200),
    (200, 200, 255),
    (255, 255, 200),
    (255, 200, 255),
)

STATE_VERSION = 1

_FIELD_ERROR_CODES = {
    "title": ErrorCode.EMPTY_TITLE,
    "priority": ErrorCode.PRIORITY_OUT_OF_RANGE,
    "timestamp": ErrorCode.INVALID_TIMESTAMP,
}


class PriorityLevel(Enum):
    """Display bands for the 1-10 priority scale"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def priority_level(priority: int) -> PriorityLevel:
    """Map a priority to its display band"""
    if priority >= 8:
        return PriorityLevel.HIGH
    if priority >= 4:
        return PriorityLevel.MEDIUM
    return PriorityLevel.LOW


def java_string_hash(text: str) -> int:
    """32-bit signed string hash over UTF-16 code units (s[0]*31^(n-1) + ...)"""
    data = text.encode("utf-16-le")
    value = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        value = (31 * value + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def category_color_index(category: str, palette_size: int = len(CATEGORY_PALETTE)) -> int:
    """Stable palette slot for a category name"""
    return abs(java_string_hash(category)) % palette_size


def category_color(category: str) -> Tuple[int, int, int]:
    return CATEGORY_PALETTE[category_color_index(category)]


def month_start(value: Union[date, datetime]) -> date:
    """First day of the month containing ``value``"""
    if isinstance(value, datetime):
        value = value.date()
    return value.replace(day=1)


class EventFields(BaseModel):
    """User-editable fields of a calendar event"""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    timestamp: datetime
    location: str = ""
    category: str = DEFAULT_CATEGORY
    priority: int = Field(default=DEFAULT_PRIORITY, ge=MIN_PRIORITY, le=MAX_PRIORITY)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value

    @field_validator("description", "location", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("timestamp")
    @classmethod
    def _naive_timestamp(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            raise ValueError("timestamp must not carry a timezone")
        return value

    @property
    def event_date(self) -> date:
        return self.timestamp.date()

    @property
    def priority_level(self) -> PriorityLevel:
        return priority_level(self.priority)

    @property
    def color_index(self) -> int:
        return category_color_index(self.category)

    @classmethod
    def parse(cls, data: Union["EventFields", Dict[str, Any]]) -> "EventFields":
        """Validate raw field data, raising kalender's ValidationError"""
        if isinstance(data, EventFields):
            return EventFields(**data.field_values())
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise _convert_validation_error(e) from e

    def field_values(self) -> Dict[str, Any]:
        """Editable field values only, without identity or reminder state"""
        return {name: getattr(self, name) for name in EventFields.model_fields}


class CalendarEvent(EventFields):
    """A stored event: editable fields plus identity and reminder state"""

    id: str
    notified: bool = False

    def fields(self) -> EventFields:
        return EventFields(**self.field_values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary"""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalendarEvent":
        return cls.model_validate(data)

    def __str__(self) -> str:
        return f"{self.title} ({self.timestamp.strftime('%Y-%m-%d %H:%M')})"


class FilterCriteria(BaseModel):
    """What the event list should show"""

    model_config = ConfigDict(frozen=True)

    search_text: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    show_past_events: bool = True
    category: Optional[str] = None

    @field_validator("search_text", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def is_empty(self) -> bool:
        return (
            not self.search_text
            and self.start_date is None
            and self.end_date is None
            and self.show_past_events
            and self.category is None
        )


class StoreState(BaseModel):
    """Everything that is persisted for a store"""

    version: int = STATE_VERSION
    display_month: date = Field(default_factory=lambda: month_start(date.today()))
    events: List[CalendarEvent] = Field(default_factory=list)

    @field_validator("display_month")
    @classmethod
    def _first_of_month(cls, value: date) -> date:
        return month_start(value)

    @model_validator(mode="after")
    def _unique_ids(self) -> "StoreState":
        seen = set()
        for event in self.events:
            if event.id in seen:
                raise ValueError(f"duplicate event id {event.id}")
            seen.add(event.id)
        return self


def _convert_validation_error(error: PydanticValidationError) -> ValidationError:
    problems = []
    code = ErrorCode.VALIDATION_FAILED
    for detail in error.errors():
        field = ".".join(str(part) for part in detail["loc"]) or "event"
        problems.append(f"{field}: {detail['msg']}")
        if code is ErrorCode.VALIDATION_FAILED and field in _FIELD_ERROR_CODES:
            code = _FIELD_ERROR_CODES[field]
    return ValidationError(
        "; ".join(problems),
        code=code,
        data={"fields": [str(d["loc"][0]) for d in error.errors() if d["loc"]]},
        cause=error,
    )
