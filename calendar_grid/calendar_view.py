"""Stateful calendar view holding the current month, events and grid."""
import logging
from datetime import date
from typing import Any, Callable, Iterable, List, Optional

from calendar_grid.grid_builder import (
    CalendarGridBuilder,
    advance_month,
    find_date_for_event,
    find_events_for_date,
)
from calendar_grid.models import EventRecord, Week

logger = logging.getLogger(__name__)


class CalendarView:
    """
    Calendar shown to a single caller.

    Holds the reference date, the last known event set and the current
    grid. Every change replaces the grid with a newly built one.
    """

    def __init__(
        self,
        reference_date: Any = None,
        week_start_day: int = 0,
        events: Iterable[EventRecord] = (),
        clock: Optional[Callable[[], date]] = None
    ):
        self.builder = CalendarGridBuilder(week_start_day=week_start_day, clock=clock)
        self.reference_date = self.builder.resolve_reference_date(reference_date)
        self.events: List[EventRecord] = list(events)
        self.weeks: List[Week] = self.builder.build_grid(self.reference_date, self.events)

    @property
    def week_start_day(self) -> int:
        return self.builder.week_start_day

    def load_events(self, records: Iterable[EventRecord]) -> List[Week]:
        """Replace the event set and rebuild the grid from scratch."""
        self.events = list(records)
        self.weeks = self.builder.build_grid(self.reference_date, self.events)
        return self.weeks

    def append_events(self, records: Iterable[EventRecord]) -> List[Week]:
        """Append a newly fetched batch to the held events and the grid."""
        batch = list(records)
        self.events.extend(batch)
        self.builder.append_events(self.weeks, batch)
        return self.weeks

    def refresh(self, fetch: Callable[[], Iterable[EventRecord]]) -> List[Week]:
        """
        Rebuild from the latest data.

        Args:
            fetch: Callable returning the full current record list

        Returns:
            The rebuilt grid
        """
        logger.info("Refreshing calendar events")
        return self.load_events(fetch())

    def go_to(self, reference_date: Any) -> List[Week]:
        """Show the month of another reference date, keeping placed events."""
        self.reference_date = self.builder.resolve_reference_date(reference_date)
        self.weeks = self.builder.rebuild(self.reference_date, self.weeks, self.events)
        return self.weeks

    def advance_month(self, direction: int) -> List[Week]:
        """
        Move one month forward (+1) or back (-1) and rebuild.

        Raises:
            CalendarConfigError: If direction is not +1 or -1
        """
        new_reference = advance_month(self.reference_date, direction)
        logger.debug(f"Navigating from {self.reference_date} to {new_reference}")
        return self.go_to(new_reference)

    def next_month(self) -> List[Week]:
        return self.advance_month(1)

    def previous_month(self) -> List[Week]:
        return self.advance_month(-1)

    def find_date_for_event(self, event_id: str) -> Optional[date]:
        return find_date_for_event(self.weeks, event_id)

    def find_events_for_date(self, day_date: Any) -> List[EventRecord]:
        return find_events_for_date(self.weeks, day_date)

    def to_dict(self) -> dict:
        return {
            'referenceDate': self.reference_date.isoformat(),
            'weekStartDay': self.week_start_day,
            'weeks': [week.to_dict() for week in self.weeks]
        }
