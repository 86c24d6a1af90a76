# utils/event_performance/models.py
"""
Record Types for Event Performance

Strict schema for the rows the dashboard works with:
- EventRecord: one sales event (venue, date range, targets, actuals)
- DailyPerformance: one staff member on one event day, split by channel
- StaffPerformance: one staff member's totals for one event
- IdWeights: per-channel ID points for one calculation period

Every numeric field is coerced to a non-negative int here, at the
data-loading boundary, so aggregation code never null-checks.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from .constants import (
    ACTUAL_FIELDS,
    CHANNEL_COLUMN_PREFIX,
    CHANNEL_METRICS,
    CHANNELS,
    ID_WEIGHT_COLUMN_PREFIX,
    LTV_FIELDS,
    MAX_WEEK,
    MIN_WEEK,
    TARGET_FIELDS,
)

logger = logging.getLogger(__name__)


# =============================================================================
# COERCION HELPERS
# =============================================================================

def to_count(value: Any) -> int:
    """
    Coerce a raw value to a non-negative integer count.

    None, blanks, NaN, non-numeric strings and negatives all become 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Non-numeric count {value!r} coerced to 0")
        return 0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0
    return int(number)


def to_date(value: Any) -> Optional[date]:
    """Parse a date from a date, datetime, pandas Timestamp or ISO string."""
    if value is None or value != value:  # NaT / NaN
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if hasattr(value, 'to_pydatetime'):
        return value.to_pydatetime().date()
    text = str(value).strip()
    if not text or text.lower() in ('nat', 'none', 'nan'):
        return None
    return date.fromisoformat(text[:10])


def to_datetime(value: Any) -> Optional[datetime]:
    if value is None or value != value:
        return None
    if isinstance(value, datetime):
        return value
    if hasattr(value, 'to_pydatetime'):
        return value.to_pydatetime()
    text = str(value).strip()
    if not text or text.lower() in ('nat', 'none', 'nan'):
        return None
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        logger.warning(f"Unparseable timestamp {value!r} ignored")
        return None


def to_text(value: Any) -> str:
    """Opaque string key; no trimming or case folding."""
    if value is None:
        return ''
    if isinstance(value, float) and math.isnan(value):
        return ''
    return str(value)


def to_flag(value: Any) -> bool:
    if value is None or value != value:
        return False
    if isinstance(value, str):
        return value.strip().lower() in ('true', 't', '1', 'yes')
    return bool(value)


def week_of_month(d: date) -> int:
    """
    Week-of-month for a Sunday-start calendar, capped to 1..5.

    The first week runs from the 1st to the first Saturday.
    """
    first_weekday = (d.replace(day=1).weekday() + 1) % 7  # Sunday = 0
    week = math.ceil((d.day + first_weekday) / 7)
    return max(MIN_WEEK, min(MAX_WEEK, week))


def format_year_month(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


# =============================================================================
# EVENT RECORD
# =============================================================================

@dataclass
class EventRecord:
    """
    One sales event at a venue over a date range.

    year / month / week_number are derived from start_date only when not
    supplied; stored values are kept as-is even if dates change later.
    actual_hs_total is the authoritative total and may differ from the sum
    of its components.
    """
    id: str
    venue: str
    agency_name: str
    start_date: date
    end_date: date
    year: Optional[int] = None
    month: Optional[int] = None
    week_number: Optional[int] = None

    target_hs_total: int = 0
    target_au_mnp: int = 0
    target_uq_mnp: int = 0
    target_au_new: int = 0
    target_uq_new: int = 0

    actual_hs_total: int = 0
    actual_au_mnp: int = 0
    actual_uq_mnp: int = 0
    actual_au_new: int = 0
    actual_uq_new: int = 0
    actual_cellup: int = 0

    include_cellup_in_hs_total: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.id = to_text(self.id)
        self.venue = to_text(self.venue)
        self.agency_name = to_text(self.agency_name)
        self.start_date = to_date(self.start_date)
        self.end_date = to_date(self.end_date)

        if self.start_date is None or self.end_date is None:
            raise ValueError(f"Event {self.id!r} requires start_date and end_date")
        if self.end_date < self.start_date:
            raise ValueError(
                f"Event {self.id!r}: end_date {self.end_date} is before start_date {self.start_date}"
            )

        if not self.year:
            self.year = self.start_date.year
        if not self.month:
            self.month = self.start_date.month
        if not self.week_number:
            self.week_number = week_of_month(self.start_date)
        self.year = int(self.year)
        self.month = int(self.month)
        self.week_number = int(self.week_number)

        for name in TARGET_FIELDS + ACTUAL_FIELDS:
            setattr(self, name, to_count(getattr(self, name)))

        self.include_cellup_in_hs_total = to_flag(self.include_cellup_in_hs_total)
        self.created_at = to_datetime(self.created_at)

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def event_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def period_display(self) -> str:
        return f"{self.year}年{self.month}月第{self.week_number}週"

    @property
    def year_month(self) -> str:
        return format_year_month(self.year, self.month)

    @property
    def year_month_week(self) -> str:
        return f"{self.year_month}-{self.week_number:02d}"

    @property
    def mnp_total(self) -> int:
        return self.actual_au_mnp + self.actual_uq_mnp

    @property
    def new_total(self) -> int:
        return self.actual_au_new + self.actual_uq_new

    @property
    def has_target(self) -> bool:
        return self.target_hs_total > 0

    @property
    def is_achieved(self) -> bool:
        return self.has_target and self.actual_hs_total >= self.target_hs_total

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'EventRecord':
        """Build from an `event_summary` row (dict or pandas Series)."""
        kwargs = {
            'id': row.get('id'),
            'venue': row.get('venue'),
            'agency_name': row.get('agency_name'),
            'start_date': row.get('start_date'),
            'end_date': row.get('end_date'),
            'year': to_count(row.get('year')) or None,
            'month': to_count(row.get('month')) or None,
            'week_number': to_count(row.get('week_number')) or None,
            'include_cellup_in_hs_total': to_flag(row.get('include_cellup_in_hs_total')),
            'created_at': row.get('created_at'),
        }
        for name in TARGET_FIELDS + ACTUAL_FIELDS:
            kwargs[name] = row.get(name)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'venue': self.venue,
            'agency_name': self.agency_name,
            'start_date': self.start_date,
            'end_date': self.end_date,
            'year': self.year,
            'month': self.month,
            'week_number': self.week_number,
            'period_display': self.period_display,
            'event_days': self.event_days,
            'include_cellup_in_hs_total': self.include_cellup_in_hs_total,
            'created_at': self.created_at,
        }
        for name in TARGET_FIELDS + ACTUAL_FIELDS:
            data[name] = getattr(self, name)
        return data


# =============================================================================
# STAFF PERFORMANCE
# =============================================================================

@dataclass
class DailyPerformance:
    """One staff member on one event day; metrics split by sp1/sp2/sim."""
    day_number: int
    channels: Dict[str, Dict[str, int]] = field(default_factory=dict)
    ltv: Dict[str, int] = field(default_factory=dict)
    network_count: int = 0

    def __post_init__(self):
        self.day_number = max(1, to_count(self.day_number))
        self.channels = {
            metric: {
                channel: to_count((self.channels.get(metric) or {}).get(channel))
                for channel in CHANNELS
            }
            for metric in CHANNEL_METRICS
        }
        self.ltv = {name: to_count(self.ltv.get(name)) for name in LTV_FIELDS}
        self.network_count = to_count(self.network_count)

    def metric_total(self, metric: str) -> int:
        return sum(self.channels[metric].values())

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'DailyPerformance':
        """Build from a `staff_performances` row with *_sp1/_sp2/_sim columns."""
        channels = {
            metric: {
                channel: row.get(f"{CHANNEL_COLUMN_PREFIX[metric]}_{channel}")
                for channel in CHANNELS
            }
            for metric in CHANNEL_METRICS
        }
        return cls(
            day_number=row.get('day_number') or 1,
            channels=channels,
            ltv={name: row.get(name) for name in LTV_FIELDS},
            network_count=row.get('network_count'),
        )


@dataclass
class StaffPerformance:
    """
    One staff member's contribution to one event.

    Carries the parent event's period so staff rows can be grouped by
    year / month / week without a join.
    """
    staff_name: str
    event_id: str
    year: int
    month: int
    week_number: int = 1
    venue: str = ''
    agency_name: str = ''
    start_date: Optional[date] = None

    au_mnp: int = 0
    uq_mnp: int = 0
    au_new: int = 0
    uq_new: int = 0
    cellup: int = 0

    credit_card: int = 0
    gold_card: int = 0
    ji_bank_account: int = 0
    warranty: int = 0
    ott: int = 0
    electricity: int = 0
    gas: int = 0

    daily: List[DailyPerformance] = field(default_factory=list)

    def __post_init__(self):
        self.staff_name = to_text(self.staff_name)
        self.event_id = to_text(self.event_id)
        self.venue = to_text(self.venue)
        self.agency_name = to_text(self.agency_name)
        self.start_date = to_date(self.start_date)
        self.year = to_count(self.year)
        self.month = to_count(self.month)
        self.week_number = to_count(self.week_number) or 1
        for name in CHANNEL_METRICS + LTV_FIELDS:
            setattr(self, name, to_count(getattr(self, name)))

    @property
    def year_month(self) -> str:
        return format_year_month(self.year, self.month)

    @property
    def year_month_week(self) -> str:
        return f"{self.year_month}-{self.week_number:02d}"

    @property
    def mnp_total(self) -> int:
        return self.au_mnp + self.uq_mnp

    @property
    def new_total(self) -> int:
        # staff-level "new" counts cellup alongside au/uq signups
        return self.au_new + self.uq_new + self.cellup

    @property
    def ltv_total(self) -> int:
        return sum(getattr(self, name) for name in LTV_FIELDS)

    def channel_totals(self) -> Dict[str, Dict[str, int]]:
        """
        Per metric, per channel counts summed over the daily rows.

        Records built from totals alone (no daily rows) report each
        metric total under sp1.
        """
        if not self.daily:
            return {
                metric: {channel: getattr(self, metric) if channel == CHANNELS[0] else 0
                         for channel in CHANNELS}
                for metric in CHANNEL_METRICS
            }
        return {
            metric: {channel: sum(d.channels[metric][channel] for d in self.daily)
                     for channel in CHANNELS}
            for metric in CHANNEL_METRICS
        }

    @classmethod
    def from_daily(
        cls,
        staff_name: str,
        event: Mapping[str, Any],
        daily: List[DailyPerformance]
    ) -> 'StaffPerformance':
        """Roll daily channel rows up into staff-level totals."""
        totals = {metric: sum(d.metric_total(metric) for d in daily) for metric in CHANNEL_METRICS}
        totals.update({name: sum(d.ltv[name] for d in daily) for name in LTV_FIELDS})
        return cls(
            staff_name=staff_name,
            event_id=event.get('id'),
            year=event.get('year'),
            month=event.get('month'),
            week_number=event.get('week_number'),
            venue=event.get('venue'),
            agency_name=event.get('agency_name'),
            start_date=event.get('start_date'),
            daily=sorted(daily, key=lambda d: d.day_number),
            **totals,
        )


def build_staff_performances(rows: List[Mapping[str, Any]]) -> List[StaffPerformance]:
    """
    Group `staff_performances` daily rows into StaffPerformance records.

    Each row carries an embedded parent `event` mapping. Rows without a
    staff name or parent event are skipped.
    """
    grouped: Dict[tuple, Dict[str, Any]] = {}

    for row in rows:
        staff_name = to_text(row.get('staff_name'))
        event = row.get('event')
        if not staff_name or not event:
            continue

        key = (to_text(event.get('id') or row.get('event_id')), staff_name)
        if key not in grouped:
            grouped[key] = {'event': dict(event, id=key[0]), 'daily': []}
        grouped[key]['daily'].append(DailyPerformance.from_row(row))

    return [
        StaffPerformance.from_daily(staff_name, entry['event'], entry['daily'])
        for (_, staff_name), entry in grouped.items()
    ]


def summarize_event_actuals(
    staff: List[StaffPerformance],
    include_cellup_in_hs_total: bool = False
) -> Dict[str, int]:
    """
    Event-level actuals rolled up from staff rows, as stored on save.

    actual_hs_total counts MNP + new, and cellup only when the event flag
    says so.
    """
    au_mnp = sum(s.au_mnp for s in staff)
    uq_mnp = sum(s.uq_mnp for s in staff)
    au_new = sum(s.au_new for s in staff)
    uq_new = sum(s.uq_new for s in staff)
    cellup = sum(s.cellup for s in staff)

    hs_total = au_mnp + uq_mnp + au_new + uq_new
    if include_cellup_in_hs_total:
        hs_total += cellup

    return {
        'actual_hs_total': hs_total,
        'actual_au_mnp': au_mnp,
        'actual_uq_mnp': uq_mnp,
        'actual_au_new': au_new,
        'actual_uq_new': uq_new,
        'actual_cellup': cellup,
    }


# =============================================================================
# ID CALCULATION PERIODS
# =============================================================================

@dataclass
class IdWeights:
    """
    Points awarded per signup during one calculation period.

    weights[metric][channel] covers the five channel metrics across
    sp1 / sp2 / sim. period_end may be open for the current period.
    """
    id: str
    period_start: date
    period_end: Optional[date] = None
    weights: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def __post_init__(self):
        self.id = to_text(self.id)
        self.period_start = to_date(self.period_start)
        self.period_end = to_date(self.period_end)

        if self.period_start is None:
            raise ValueError(f"ID period {self.id!r} requires a start date")
        if self.period_end is not None and self.period_end < self.period_start:
            raise ValueError(
                f"ID period {self.id!r}: end {self.period_end} is before start {self.period_start}"
            )

        self.weights = {
            metric: {
                channel: to_count((self.weights.get(metric) or {}).get(channel))
                for channel in CHANNELS
            }
            for metric in CHANNEL_METRICS
        }

    def covers(self, on_date: date) -> bool:
        if on_date < self.period_start:
            return False
        return self.period_end is None or on_date <= self.period_end

    def weight(self, metric: str, channel: str) -> int:
        return self.weights[metric][channel]

    @property
    def label(self) -> str:
        start = f"{self.period_start.year}年{self.period_start.month}月"
        if self.period_end is None:
            return f"{start} 〜"
        return f"{start} 〜 {self.period_end.year}年{self.period_end.month}月"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'IdWeights':
        """Build from an `id_calculation_data` row."""
        weights = {
            metric: {
                channel: row.get(f"{ID_WEIGHT_COLUMN_PREFIX[metric]}_{channel}")
                for channel in CHANNELS
            }
            for metric in CHANNEL_METRICS
        }
        return cls(
            id=row.get('id'),
            period_start=row.get('calculation_period_start'),
            period_end=row.get('calculation_period_end'),
            weights=weights,
        )
