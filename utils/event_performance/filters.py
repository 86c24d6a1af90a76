# utils/event_performance/filters.py
"""
Event Filters for Event Performance

Pure filtering helpers shared by every view:
- FilterSpec + filter_events(): equality / achievement / text filters
- filter_period_range(): inclusive "YYYY-MM" range with optional bounds
- latest_periods(): explicit "most recent N periods" window
- PanelRange: per-panel date range with inherited vs manual state
- sort_events() and option lists for selectors

Streamlit widgets live in fragments.py; nothing here touches the UI.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from .constants import ALL, ACHIEVEMENT_FILTERS
from .models import EventRecord, StaffPerformance

logger = logging.getLogger(__name__)

T = TypeVar('T')

_INVALID = object()


# =============================================================================
# FILTER SPEC
# =============================================================================

@dataclass(frozen=True)
class FilterSpec:
    """
    Filter settings for an event collection.

    Each of year / month / week / venue / agency is either a value or 'all'.
    achievement is 'all', 'achieved' or 'not_achieved'.
    search_text is a case-insensitive substring over venue, agency and
    period display.
    """
    year: Any = ALL
    month: Any = ALL
    week: Any = ALL
    venue: Any = ALL
    agency: Any = ALL
    achievement: str = ALL
    search_text: str = ''

    def __post_init__(self):
        # frozen dataclass: store the stripped text directly
        text = self.search_text.strip() if isinstance(self.search_text, str) else ''
        object.__setattr__(self, 'search_text', text)

    @property
    def is_empty(self) -> bool:
        return self == FilterSpec()

    def signature(self) -> tuple:
        """Hashable identity used to detect filter changes."""
        return (
            str(self.year), str(self.month), str(self.week),
            str(self.venue), str(self.agency),
            str(self.achievement), self.search_text,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'year': self.year,
            'month': self.month,
            'week': self.week,
            'venue': self.venue,
            'agency': self.agency,
            'achievement': self.achievement,
            'search_text': self.search_text,
        }

    def with_changes(self, **changes) -> 'FilterSpec':
        return replace(self, **changes)


def _is_unset(value: Any) -> bool:
    return value is None or value == ALL or (isinstance(value, str) and value == '')


def _int_filter(value: Any) -> Any:
    """Normalize a numeric filter value; _INVALID when it cannot compare."""
    if isinstance(value, bool):
        return _INVALID
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    return _INVALID


# =============================================================================
# EVENT FILTERING
# =============================================================================

def matches_achievement(event: EventRecord, achievement: str) -> bool:
    if achievement == 'achieved':
        return event.has_target and event.actual_hs_total >= event.target_hs_total
    if achievement == 'not_achieved':
        return event.has_target and event.actual_hs_total < event.target_hs_total
    return True


def matches_search(event: EventRecord, search_text: str) -> bool:
    needle = search_text.lower()
    return (
        needle in event.venue.lower()
        or needle in event.agency_name.lower()
        or needle in event.period_display.lower()
    )


def filter_events(events: Sequence[EventRecord], spec: Optional[FilterSpec] = None) -> List[EventRecord]:
    """
    Return the events matching every set field of `spec`.

    Invalid filter values (non-numeric year, unknown achievement mode) match
    nothing instead of raising. An all-'all' spec returns the input as-is.
    """
    events = list(events)
    if spec is None or spec.is_empty:
        return events

    numeric = {}
    for name in ('year', 'month', 'week'):
        raw = getattr(spec, name)
        if _is_unset(raw):
            continue
        value = _int_filter(raw)
        if value is _INVALID:
            logger.warning(f"Invalid {name} filter {raw!r}: no events match")
            return []
        numeric[name] = value

    achievement = spec.achievement if not _is_unset(spec.achievement) else ALL
    if achievement not in ACHIEVEMENT_FILTERS:
        logger.warning(f"Invalid achievement filter {achievement!r}: no events match")
        return []

    venue = None if _is_unset(spec.venue) else str(spec.venue)
    agency = None if _is_unset(spec.agency) else str(spec.agency)

    result = []
    for event in events:
        if 'year' in numeric and event.year != numeric['year']:
            continue
        if 'month' in numeric and event.month != numeric['month']:
            continue
        if 'week' in numeric and event.week_number != numeric['week']:
            continue
        if venue is not None and event.venue != venue:
            continue
        if agency is not None and event.agency_name != agency:
            continue
        if not matches_achievement(event, achievement):
            continue
        if spec.search_text and not matches_search(event, spec.search_text):
            continue
        result.append(event)

    return result


def filter_staff(
    staff: Sequence[StaffPerformance],
    year: Any = ALL,
    month: Any = ALL,
    staff_names: Optional[Iterable[str]] = None
) -> List[StaffPerformance]:
    """Filter staff rows by parent-event year / month and an optional name set."""
    names = set(staff_names) if staff_names else None
    year_value = None if _is_unset(year) else _int_filter(year)
    month_value = None if _is_unset(month) else _int_filter(month)
    if year_value is _INVALID or month_value is _INVALID:
        return []

    return [
        s for s in staff
        if (year_value is None or s.year == year_value)
        and (month_value is None or s.month == month_value)
        and (names is None or s.staff_name in names)
    ]


# =============================================================================
# PERIOD RANGE
# =============================================================================

def filter_period_range(
    items: Iterable[T],
    start: Optional[str] = None,
    end: Optional[str] = None,
    period_fn: Callable[[T], str] = None
) -> List[T]:
    """
    Keep items whose "YYYY-MM" period falls within [start, end].

    Either bound may be omitted. With neither bound nothing is dropped;
    callers wanting a default window use latest_periods() explicitly.
    Zero-padded "YYYY-MM" strings sort chronologically, so plain string
    comparison is enough.
    """
    if period_fn is None:
        period_fn = _default_period
    start = start or None
    end = end or None

    result = []
    for item in items:
        period = period_fn(item)
        if start is not None and period < start:
            continue
        if end is not None and period > end:
            continue
        result.append(item)
    return result


def _default_period(item: Any) -> str:
    if hasattr(item, 'year_month'):
        return item.year_month
    return item.period


def latest_periods(items: Sequence[T], n: int) -> List[T]:
    """Last `n` items of a chronologically sorted sequence."""
    if n <= 0:
        return []
    return list(items)[-n:]


class RangeSource(Enum):
    INHERITED = 'inherited'
    MANUALLY_SET = 'manually_set'


@dataclass(frozen=True)
class PanelRange:
    """
    Date range of a single analytics panel.

    Page-level changes cascade only into INHERITED panels; a manually set
    range wins until reset() hands control back to the page.
    """
    start: Optional[str] = None
    end: Optional[str] = None
    source: RangeSource = RangeSource.INHERITED

    def inherit(self, start: Optional[str], end: Optional[str]) -> 'PanelRange':
        if self.source is RangeSource.MANUALLY_SET:
            return self
        return PanelRange(start or None, end or None, RangeSource.INHERITED)

    def set_manual(self, start: Optional[str], end: Optional[str]) -> 'PanelRange':
        return PanelRange(start or None, end or None, RangeSource.MANUALLY_SET)

    def reset(self, start: Optional[str] = None, end: Optional[str] = None) -> 'PanelRange':
        return PanelRange(start or None, end or None, RangeSource.INHERITED)

    @property
    def is_bounded(self) -> bool:
        return bool(self.start or self.end)

    def apply(
        self,
        items: Sequence[T],
        period_fn: Callable[[T], str] = None,
        default_window: Optional[int] = None
    ) -> List[T]:
        """
        Apply the range; when unbounded, optionally fall back to the latest
        `default_window` items (items must already be sorted by period).
        """
        if self.is_bounded:
            return filter_period_range(items, self.start, self.end, period_fn)
        if default_window:
            return latest_periods(items, default_window)
        return list(items)


def year_month_range(year: Any, month: Any) -> tuple:
    """
    Translate page-level year / month selectors into a "YYYY-MM" range.

    Used to cascade the page filter into inherited panels.
    """
    year_value = None if _is_unset(year) else _int_filter(year)
    month_value = None if _is_unset(month) else _int_filter(month)
    if year_value in (None, _INVALID):
        return None, None
    if month_value in (None, _INVALID):
        return f"{year_value}-01", f"{year_value}-12"
    ym = f"{year_value}-{month_value:02d}"
    return ym, ym


def previous_year_month(year: int, month: int) -> tuple:
    """(year, month) of the month before; January rolls back a year."""
    if month <= 1:
        return year - 1, 12
    return year, month - 1


# =============================================================================
# SORTING & OPTIONS
# =============================================================================

def sort_events(events: Sequence[EventRecord], sort_by: str = 'date') -> List[EventRecord]:
    """
    Sort for the event list.

    'date' = newest created first (falls back to start date),
    'actual_hs_total' = highest first, 'venue' = A to Z. Stable.
    """
    if sort_by == 'actual_hs_total':
        return sorted(events, key=lambda e: e.actual_hs_total, reverse=True)
    if sort_by == 'venue':
        return sorted(events, key=lambda e: e.venue)
    if sort_by == 'date':
        return sorted(
            events,
            key=lambda e: (e.created_at.timestamp() if e.created_at else 0, e.start_date.toordinal()),
            reverse=True,
        )
    return list(events)


def get_filter_options(
    events: Sequence[EventRecord],
    staff: Sequence[StaffPerformance] = ()
) -> Dict[str, List]:
    """Distinct selector values: years newest first, the rest ascending."""
    return {
        'years': sorted({e.year for e in events}, reverse=True),
        'months': sorted({e.month for e in events}),
        'weeks': sorted({e.week_number for e in events}),
        'venues': sorted({e.venue for e in events if e.venue}),
        'agencies': sorted({e.agency_name for e in events if e.agency_name}),
        'staff_names': sorted({s.staff_name for s in staff if s.staff_name}),
    }
