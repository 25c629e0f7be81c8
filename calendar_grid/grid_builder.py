"""Month grid construction and event placement for the record calendar."""
import calendar
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from calendar_grid.event_normalizer import parse_timestamp
from calendar_grid.models import (
    ADJACENT_MONTH,
    PLAIN_DAY,
    SELECTED,
    TODAY,
    CalendarConfigError,
    Day,
    EventRecord,
    Week,
)

logger = logging.getLogger(__name__)


DAYS_PER_WEEK = 7


def utc_today() -> date:
    """Return the current civil date in UTC."""
    return datetime.now(timezone.utc).date()


def validate_week_start_day(week_start_day: Any) -> int:
    """
    Check a week start day value.

    Args:
        week_start_day: 0 (Sunday) through 6 (Saturday)

    Returns:
        The validated week start day

    Raises:
        CalendarConfigError: If the value is not an int in 0-6
    """
    if (
        isinstance(week_start_day, bool)
        or not isinstance(week_start_day, int)
        or not 0 <= week_start_day <= 6
    ):
        raise CalendarConfigError(
            f"week_start_day must be an integer from 0 (Sunday) to 6 "
            f"(Saturday), got {week_start_day!r}"
        )
    return week_start_day


def to_civil_date(value: Any) -> Optional[date]:
    """Reduce a date, datetime or timestamp string to its UTC civil date."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.date()


def sunday_based_weekday(day_date: date) -> int:
    """Weekday number with 0 for Sunday through 6 for Saturday."""
    return (day_date.weekday() + 1) % DAYS_PER_WEEK


def style_class_for(day: Day) -> str:
    """Derive the presentation tag for a day from its flags and events."""
    if not day.is_current_month:
        return ADJACENT_MONTH

    classes = []
    if day.has_events:
        classes.append(SELECTED)
    if day.is_today:
        classes.append(TODAY)

    return ' '.join(classes) if classes else PLAIN_DAY


def advance_month(reference_date: Any, direction: int) -> date:
    """
    Move a reference date one calendar month forward or back.

    The day of month is clamped to the length of the target month, so
    January 31 becomes February 28 (or 29).

    Args:
        reference_date: Date, datetime or timestamp string; datetimes
            are read as their UTC civil date
        direction: +1 for next month, -1 for previous month

    Returns:
        New reference date (the input is left untouched)

    Raises:
        CalendarConfigError: If direction is not +1 or -1, or the
            reference date cannot be read
    """
    if isinstance(direction, bool) or direction not in (1, -1):
        raise CalendarConfigError(
            f"direction must be +1 or -1, got {direction!r}"
        )

    current = to_civil_date(reference_date)
    if current is None:
        raise CalendarConfigError(
            f"Invalid reference date: {reference_date!r}"
        )

    month_index = current.year * 12 + (current.month - 1) + direction
    year, month = divmod(month_index, 12)
    month += 1
    day = min(current.day, calendar.monthrange(year, month)[1])

    return current.replace(year=year, month=month, day=day)


def group_by_date(events: Iterable[EventRecord]) -> Dict[date, List[EventRecord]]:
    """Bucket events by their UTC start date, keeping input order."""
    buckets: Dict[date, List[EventRecord]] = {}
    for event in events:
        start_date = event.start_date
        if start_date is None:
            continue
        buckets.setdefault(start_date, []).append(event)
    return buckets


class CalendarGridBuilder:
    """Builds month-aligned week grids and places events on their days."""

    def __init__(
        self,
        week_start_day: int = 0,
        clock: Optional[Callable[[], date]] = None
    ):
        """
        Initialize the grid builder.

        Args:
            week_start_day: First day of each week, 0 (Sunday) to 6 (Saturday)
            clock: Callable returning the current civil date; defaults to
                the real UTC date

        Raises:
            CalendarConfigError: If week_start_day is out of range
        """
        self.week_start_day = validate_week_start_day(week_start_day)
        self.clock = clock or utc_today

    def resolve_reference_date(self, reference_date: Any = None) -> date:
        """
        Turn the caller's reference date into a civil date.

        Args:
            reference_date: Date, datetime, timestamp string or None for now

        Returns:
            Civil reference date

        Raises:
            CalendarConfigError: If the value cannot be read as a date
        """
        if reference_date is None:
            return self.clock()

        resolved = to_civil_date(reference_date)
        if resolved is None:
            raise CalendarConfigError(f"Invalid reference date: {reference_date!r}")
        return resolved

    def grid_bounds(self, reference_date: Any = None) -> tuple[date, date]:
        """
        Compute the first and last dates shown for the reference month.

        Args:
            reference_date: Any date within the month to display

        Returns:
            Tuple of (grid start date, grid end date), both inclusive
        """
        reference = self.resolve_reference_date(reference_date)
        first_of_month = reference.replace(day=1)
        last_of_month = reference.replace(
            day=calendar.monthrange(reference.year, reference.month)[1]
        )

        lead = (sunday_based_weekday(first_of_month) - self.week_start_day) % DAYS_PER_WEEK
        start_date = first_of_month - timedelta(days=lead)

        trail = 6 - (
            (sunday_based_weekday(last_of_month) - self.week_start_day) % DAYS_PER_WEEK
        )
        end_date = last_of_month + timedelta(days=trail)

        return start_date, end_date

    def build_grid(
        self,
        reference_date: Any = None,
        events: Iterable[EventRecord] = ()
    ) -> List[Week]:
        """
        Build the grid for the reference month with events bucketed by day.

        Calling this twice with the same inputs gives equal grids.

        Args:
            reference_date: Any date within the month to display (default now)
            events: Full set of event records

        Returns:
            Ordered list of Week objects
        """
        buckets = group_by_date(events)
        weeks = self._build_weeks(reference_date, lambda day_date: list(
            buckets.get(day_date, [])
        ))

        logger.info(
            f"Built grid with {len(weeks)} weeks, "
            f"{sum(len(v) for v in buckets.values())} events placed"
        )
        return weeks

    def rebuild(
        self,
        reference_date: Any,
        previous_weeks: Iterable[Week],
        events: Optional[Iterable[EventRecord]] = None
    ) -> List[Week]:
        """
        Regenerate the grid, keeping events already placed on shared days.

        Days whose date also appears in the previous grid reuse that day's
        event list as-is. Other days are filled from events when given and
        start empty otherwise.

        Args:
            reference_date: Any date within the month to display
            previous_weeks: Grid returned by an earlier build
            events: Optional event set for days not in the previous grid

        Returns:
            Ordered list of Week objects
        """
        previous_days = {
            day.date: day for week in previous_weeks for day in week.days
        }
        buckets = group_by_date(events) if events is not None else {}

        def events_for(day_date: date) -> List[EventRecord]:
            previous_day = previous_days.get(day_date)
            if previous_day is not None:
                return previous_day.events
            return list(buckets.get(day_date, []))

        weeks = self._build_weeks(reference_date, events_for)

        preserved = sum(
            1 for week in weeks for day in week.days if day.date in previous_days
        )
        logger.info(
            f"Rebuilt grid with {len(weeks)} weeks, "
            f"{preserved} days carried over from previous grid"
        )
        return weeks

    def append_events(
        self, weeks: List[Week], records: Iterable[EventRecord]
    ) -> List[Week]:
        """
        Append a batch of records onto the days of an existing grid.

        Records are not deduplicated: delivering the same batch twice
        places every record twice. Records outside the grid or without a
        start timestamp are skipped.

        Args:
            weeks: Grid to update in place
            records: Newly fetched records

        Returns:
            The same list of weeks
        """
        appended = 0
        skipped = 0

        for record in records:
            start_date = record.start_date
            day = find_day(weeks, start_date) if start_date else None
            if day is None:
                logger.debug(f"Event '{record.id}' is outside the grid, skipping")
                skipped += 1
                continue

            day.events.append(record)
            day.style_class = style_class_for(day)
            appended += 1

        logger.info(f"Appended {appended} events to grid, skipped {skipped}")
        return weeks

    def _build_weeks(
        self,
        reference_date: Any,
        events_for: Callable[[date], List[EventRecord]]
    ) -> List[Week]:
        reference = self.resolve_reference_date(reference_date)
        start_date, end_date = self.grid_bounds(reference)
        today = self.clock()

        weeks: List[Week] = []
        current_week = Week(week_number=1)
        current_date = start_date

        while current_date <= end_date:
            day = Day(
                date=current_date,
                is_current_month=(
                    current_date.year == reference.year
                    and current_date.month == reference.month
                ),
                is_today=current_date == today,
                events=events_for(current_date)
            )
            day.style_class = style_class_for(day)
            current_week.days.append(day)

            if len(current_week.days) == DAYS_PER_WEEK:
                weeks.append(current_week)
                current_week = Week(week_number=current_week.week_number + 1)

            current_date += timedelta(days=1)

        return weeks


def build_grid(
    reference_date: Any = None,
    week_start_day: int = 0,
    events: Iterable[EventRecord] = (),
    today: Optional[date] = None
) -> List[Week]:
    """
    Build a grid in one call.

    Args:
        reference_date: Any date within the month to display (default now)
        week_start_day: 0 (Sunday) to 6 (Saturday)
        events: Full set of event records
        today: Date to flag as today (default the real UTC date)

    Returns:
        Ordered list of Week objects
    """
    clock = (lambda: today) if today is not None else None
    builder = CalendarGridBuilder(week_start_day=week_start_day, clock=clock)
    return builder.build_grid(reference_date, events)


def find_week(weeks: Iterable[Week], day_date: date) -> Optional[Week]:
    """Return the week whose date range contains day_date."""
    for week in weeks:
        if week.contains(day_date):
            return week
    return None


def find_day(weeks: Iterable[Week], day_date: Any) -> Optional[Day]:
    """Return the grid day for a civil date, or None outside the grid."""
    target = to_civil_date(day_date)
    if target is None:
        return None

    week = find_week(weeks, target)
    if week is None:
        return None

    for day in week.days:
        if day.date == target:
            return day
    return None


def find_date_for_event(weeks: Iterable[Week], event_id: str) -> Optional[date]:
    """
    Find the grid day holding an event.

    Args:
        weeks: Grid to scan, week by week then day by day
        event_id: Id of the event to look for

    Returns:
        Date of the first day holding the event, or None if absent
    """
    for week in weeks:
        for day in week.days:
            if any(event.id == event_id for event in day.events):
                return day.date
    return None


def find_events_for_date(weeks: Iterable[Week], day_date: Any) -> List[EventRecord]:
    """
    List the events placed on a date.

    The grid is not extended: dates outside it give an empty list.

    Args:
        weeks: Grid to search
        day_date: Date, datetime or timestamp string

    Returns:
        The day's event list, or an empty list
    """
    day = find_day(weeks, day_date)
    if day is None:
        return []
    return day.events


def find_date_for_event_in_records(
    records: Iterable[EventRecord], event_id: str
) -> Optional[date]:
    """Look an event up directly in the record list and return its start date."""
    for record in records:
        if record.id == event_id:
            return record.start_date
    return None


def find_events_for_date_in_records(
    records: Iterable[EventRecord], day_date: Any
) -> List[EventRecord]:
    """Filter the record list directly by UTC start date."""
    target = to_civil_date(day_date)
    if target is None:
        return []
    return [record for record in records if record.start_date == target]
