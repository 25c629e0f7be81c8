"""Data models for the calendar grid."""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional


ADJACENT_MONTH = 'adjacent-month'
SELECTED = 'selected'
TODAY = 'today'
PLAIN_DAY = 'plain-day'


class CalendarConfigError(ValueError):
    """Raised when the grid is configured with invalid values."""


@dataclass
class EventRecord:
    """Event record as seen by the grid: an id, a start and the raw payload."""
    id: str
    start_timestamp: Optional[datetime]
    subject: Optional[str] = None
    created_date: Optional[datetime] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def start_date(self) -> Optional[date]:
        """UTC civil date of the start timestamp, or None when unknown."""
        if self.start_timestamp is None:
            return None
        if self.start_timestamp.tzinfo is None:
            return self.start_timestamp.date()
        return self.start_timestamp.astimezone(timezone.utc).date()


@dataclass
class Day:
    """One cell of the calendar grid."""
    date: date
    is_current_month: bool
    is_today: bool
    events: List[EventRecord] = field(default_factory=list)
    style_class: str = PLAIN_DAY

    @property
    def day_of_month(self) -> int:
        return self.date.day

    @property
    def label(self) -> int:
        return self.date.day

    @property
    def has_events(self) -> bool:
        return len(self.events) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date.isoformat(),
            'day': self.day_of_month,
            'label': self.label,
            'isCurrentMonth': self.is_current_month,
            'isToday': self.is_today,
            'css': self.style_class,
            'events': [event.payload or {'Id': event.id} for event in self.events]
        }


@dataclass
class Week:
    """Seven contiguous days of the grid."""
    week_number: int
    days: List[Day] = field(default_factory=list)

    @property
    def start_date(self) -> date:
        return self.days[0].date

    @property
    def end_date(self) -> date:
        return self.days[-1].date

    def contains(self, day_date: date) -> bool:
        """Check whether a civil date falls within this week's range."""
        return self.start_date <= day_date <= self.end_date

    def to_dict(self) -> Dict[str, Any]:
        return {
            'weekNumber': self.week_number,
            'days': [day.to_dict() for day in self.days]
        }
