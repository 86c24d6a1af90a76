# utils/event_performance/aggregation.py
"""
Grouping & Aggregation for Event Performance

One engine behind every summary view:
- group_by(): single-pass grouping with a pluggable key and metric function
- Key functions: year-month, year-month-week, venue, agency, staff
- Convenience groupings used by the dashboard panels
- Pivot-style trends (venue × month, week × venue)
- Side-by-side comparison of two period ranges
- DataFrame conversion for charts and export

All functions are pure: they never mutate their input and always return
new lists.
"""

import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import pandas as pd

from .constants import ORDER_BY_INSERTION, ORDER_BY_KEY, ORDER_BY_TOTAL
from .filters import PanelRange, filter_period_range
from .metrics import compute_achievement_rate, compute_ratio, round_half_up
from .models import EventRecord, StaffPerformance

logger = logging.getLogger(__name__)


# =============================================================================
# GROUP SUMMARY
# =============================================================================

@dataclass
class GroupSummary:
    """
    Aggregated metrics for one group key.

    total = mnp_total + new_total (the figure venue / agency rankings use);
    hs_total is the sum of each event's authoritative actual_hs_total.
    """
    key: str
    label: str = ''
    period: str = ''
    count: int = 0
    mnp_total: int = 0
    new_total: int = 0
    hs_total: int = 0
    cellup_total: int = 0
    ltv_total: int = 0
    target_total: int = 0
    total_events: int = 0
    achieved_events: int = 0
    members: Set[str] = field(default_factory=set)

    @property
    def total(self) -> int:
        return self.mnp_total + self.new_total

    @property
    def achievement_rate(self) -> int:
        return compute_achievement_rate(self.achieved_events, self.total_events)

    @property
    def mnp_ratio(self) -> int:
        return compute_ratio(self.mnp_total, self.mnp_total + self.new_total)

    @property
    def average_hs(self) -> int:
        if self.count <= 0:
            return 0
        return round_half_up(self.hs_total, self.count)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop('members')
        data.update({
            'total': self.total,
            'achievement_rate': self.achievement_rate,
            'mnp_ratio': self.mnp_ratio,
            'average_hs': self.average_hs,
        })
        return data


# =============================================================================
# KEY FUNCTIONS
# =============================================================================

def by_year_month(record) -> str:
    return record.year_month


def by_year_month_week(record) -> str:
    return record.year_month_week


def by_venue(record) -> str:
    return record.venue


def by_agency(record) -> str:
    return record.agency_name


def by_staff(record: StaffPerformance) -> str:
    return record.staff_name


def week_label(record) -> str:
    return f"第{record.week_number}週"


# =============================================================================
# METRIC FUNCTIONS
# =============================================================================

def accumulate_event(summary: GroupSummary, event: EventRecord) -> None:
    """Fold one event into its group's running totals."""
    summary.count += 1
    summary.mnp_total += event.mnp_total
    summary.new_total += event.new_total
    summary.hs_total += event.actual_hs_total
    summary.cellup_total += event.actual_cellup
    if event.has_target:
        summary.total_events += 1
        summary.target_total += event.target_hs_total
        if event.actual_hs_total >= event.target_hs_total:
            summary.achieved_events += 1


def accumulate_staff(summary: GroupSummary, staff: StaffPerformance) -> None:
    """
    Fold one staff row into its group. Staff "new" includes cellup;
    count is the number of distinct events the group saw.
    """
    summary.mnp_total += staff.mnp_total
    summary.new_total += staff.new_total
    summary.hs_total += staff.mnp_total + staff.new_total
    summary.cellup_total += staff.cellup
    summary.ltv_total += staff.ltv_total
    if staff.event_id not in summary.members:
        summary.members.add(staff.event_id)
        summary.count += 1


# =============================================================================
# CORE GROUPING
# =============================================================================

def group_by(
    records: Iterable,
    key_fn: Callable[[Any], str],
    metric_fn: Callable[[GroupSummary, Any], None] = accumulate_event,
    order: str = ORDER_BY_KEY,
    label_fn: Optional[Callable[[Any], str]] = None,
    period_fn: Optional[Callable[[Any], str]] = None
) -> List[GroupSummary]:
    """
    Partition records by `key_fn` and reduce each group with `metric_fn`.

    Single pass; a group's accumulator is created on first encounter.

    Args:
        records: EventRecord or StaffPerformance items
        key_fn: Returns the opaque group key for a record
        metric_fn: Folds a record into a GroupSummary in place
        order: 'key' (ascending key), 'insertion' (first seen), or
               'total' (descending total, ties keep first-seen order)
        label_fn: Display label for a group, taken from its first record
        period_fn: "YYYY-MM" period for a group, taken from its first record

    Returns:
        List of GroupSummary
    """
    groups: Dict[str, GroupSummary] = OrderedDict()

    for record in records:
        key = key_fn(record)
        summary = groups.get(key)
        if summary is None:
            summary = GroupSummary(
                key=key,
                label=label_fn(record) if label_fn else key,
                period=period_fn(record) if period_fn else '',
            )
            groups[key] = summary
        metric_fn(summary, record)

    result = list(groups.values())

    if order == ORDER_BY_KEY:
        result.sort(key=lambda g: g.key)
    elif order == ORDER_BY_TOTAL:
        result.sort(key=lambda g: g.total, reverse=True)
    elif order != ORDER_BY_INSERTION:
        raise ValueError(f"Unknown group order: {order!r}")

    return result


# =============================================================================
# DASHBOARD GROUPINGS
# =============================================================================

def group_by_month(events: Sequence[EventRecord]) -> List[GroupSummary]:
    """Monthly trend / achievement groups, chronological."""
    return group_by(events, by_year_month, period_fn=by_year_month)


def group_by_week(events: Sequence[EventRecord]) -> List[GroupSummary]:
    """Week-of-month groups labelled 第N週, chronological."""
    return group_by(
        events,
        by_year_month_week,
        label_fn=week_label,
        period_fn=by_year_month,
    )


def group_by_venue(events: Sequence[EventRecord], order: str = ORDER_BY_TOTAL) -> List[GroupSummary]:
    return group_by(events, by_venue, order=order)


def group_by_agency(events: Sequence[EventRecord], order: str = ORDER_BY_TOTAL) -> List[GroupSummary]:
    return group_by(events, by_agency, order=order)


def group_by_staff(staff: Sequence[StaffPerformance], order: str = ORDER_BY_TOTAL) -> List[GroupSummary]:
    """Per-staff totals across all their events; blank names are skipped."""
    return group_by(
        (s for s in staff if s.staff_name),
        by_staff,
        metric_fn=accumulate_staff,
        order=order,
    )


def staff_weekly_stats(staff: Sequence[StaffPerformance]) -> List[Dict[str, Any]]:
    """
    Per week, MNP and new counts for every staff member.

    Returns rows sorted by year-month-week:
        {'key', 'week', 'period', 'staff': {name: {'mnp', 'new'}}}
    """
    weeks: Dict[str, Dict[str, Any]] = OrderedDict()

    for perf in staff:
        if not perf.staff_name:
            continue
        key = perf.year_month_week
        if key not in weeks:
            weeks[key] = {
                'key': key,
                'week': week_label(perf),
                'period': perf.year_month,
                'staff': OrderedDict(),
            }
        entry = weeks[key]['staff'].setdefault(perf.staff_name, {'mnp': 0, 'new': 0})
        entry['mnp'] += perf.mnp_total
        entry['new'] += perf.new_total

    return [weeks[k] for k in sorted(weeks)]


def venue_monthly_trend(events: Sequence[EventRecord], months: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
    """
    Month × venue matrix of MNP / new / total.

    Every venue appears in every month row (zero-filled). `months`
    restricts the rows, e.g. after a period range filter.
    """
    cells: Dict[str, Dict[str, Dict[str, int]]] = OrderedDict()
    for event in events:
        venue_cells = cells.setdefault(event.venue, {})
        cell = venue_cells.setdefault(event.year_month, {'mnp': 0, 'new': 0, 'total': 0})
        cell['mnp'] += event.mnp_total
        cell['new'] += event.new_total
        cell['total'] += event.mnp_total + event.new_total

    all_months = sorted({e.year_month for e in events})
    if months is not None:
        wanted = set(months)
        all_months = [m for m in all_months if m in wanted]

    rows = []
    for month in all_months:
        row = {'month': month, 'venues': OrderedDict()}
        for venue, venue_cells in cells.items():
            row['venues'][venue] = dict(venue_cells.get(month, {'mnp': 0, 'new': 0, 'total': 0}))
        rows.append(row)
    return rows


def event_weekly_breakdown(
    events: Sequence[EventRecord],
    year: int,
    month: int,
    agencies: Optional[Iterable[str]] = None
) -> List[Dict[str, Any]]:
    """
    For one year-month, per week and per venue MNP / new sums.

    Returns rows ascending by week number:
        {'week', 'week_number', 'venues': [{'venue', 'mnp', 'new'}],
         'total_mnp', 'total_new', 'total'}
    """
    agency_set = set(agencies) if agencies else None
    weeks: Dict[int, Dict[str, Any]] = {}

    for event in events:
        if event.year != year or event.month != month:
            continue
        if agency_set is not None and event.agency_name not in agency_set:
            continue

        week = weeks.setdefault(event.week_number, {
            'week': week_label(event),
            'week_number': event.week_number,
            'venues': OrderedDict(),
        })
        venue = week['venues'].setdefault(event.venue, {'venue': event.venue, 'mnp': 0, 'new': 0})
        venue['mnp'] += event.mnp_total
        venue['new'] += event.new_total

    result = []
    for week_number in sorted(weeks):
        week = weeks[week_number]
        venues = list(week['venues'].values())
        total_mnp = sum(v['mnp'] for v in venues)
        total_new = sum(v['new'] for v in venues)
        result.append({
            'week': week['week'],
            'week_number': week_number,
            'venues': venues,
            'total_mnp': total_mnp,
            'total_new': total_new,
            'total': total_mnp + total_new,
        })
    return result


def weekly_breakdown_by_month(
    events: Sequence[EventRecord],
    start: Optional[str] = None,
    end: Optional[str] = None,
    agencies: Optional[Iterable[str]] = None
) -> List[Tuple[str, List[Dict[str, Any]]]]:
    """
    event_weekly_breakdown() for every year-month within [start, end].

    Returns (year_month, rows) pairs in chronological order; months the
    agency filter leaves empty are dropped.
    """
    agencies = list(agencies) if agencies else None
    ranged = filter_period_range(events, start, end)

    result = []
    for year_month in sorted({e.year_month for e in ranged}):
        year, month = (int(part) for part in year_month.split('-'))
        rows = event_weekly_breakdown(ranged, year, month, agencies)
        if rows:
            result.append((year_month, rows))
    return result


# =============================================================================
# RANGE COMPARISON
# =============================================================================

COMPARISON_GROUPINGS: Dict[str, Callable[[Sequence[Any]], List[GroupSummary]]] = {
    'month': group_by_month,
    'week': group_by_week,
    'venue': group_by_venue,
    'agency': group_by_agency,
    'staff': group_by_staff,
}

# Time keys never match across two ranges; these pair by position
POSITIONAL_GROUPINGS = {'month', 'week'}


@dataclass
class ComparisonRow:
    key: str
    left: Optional[GroupSummary] = None
    right: Optional[GroupSummary] = None

    def value(self, side: str, metric: str = 'total') -> int:
        summary = self.left if side == 'left' else self.right
        return getattr(summary, metric) if summary is not None else 0

    def diff(self, metric: str = 'total') -> int:
        return self.value('right', metric) - self.value('left', metric)


@dataclass
class RangeComparison:
    """One grouping computed over two period ranges, paired row by row."""
    grouping: str
    left_range: PanelRange
    right_range: PanelRange
    left: List[GroupSummary]
    right: List[GroupSummary]
    rows: List[ComparisonRow]

    def totals(self, metric: str = 'total') -> Tuple[int, int]:
        return (
            sum(getattr(g, metric) for g in self.left),
            sum(getattr(g, metric) for g in self.right),
        )


def compare_ranges(
    records: Sequence[Any],
    left: PanelRange,
    right: PanelRange,
    grouping: str = 'venue',
    period_fn: Optional[Callable[[Any], str]] = None
) -> RangeComparison:
    """
    Run the same grouping over two period ranges.

    Category groupings (venue, agency, staff) pair rows by key: left
    order first, then keys seen only on the right. Month and week
    groupings pair by position, so the first month of each range lines up.
    An unbounded side covers every record.
    """
    group_fn = COMPARISON_GROUPINGS.get(grouping)
    if group_fn is None:
        raise ValueError(f"Unknown comparison grouping: {grouping!r}")

    left_groups = group_fn(left.apply(records, period_fn))
    right_groups = group_fn(right.apply(records, period_fn))

    if grouping in POSITIONAL_GROUPINGS:
        rows = [
            ComparisonRow(
                key=str(i + 1),
                left=left_groups[i] if i < len(left_groups) else None,
                right=right_groups[i] if i < len(right_groups) else None,
            )
            for i in range(max(len(left_groups), len(right_groups)))
        ]
    else:
        right_by_key = {g.key: g for g in right_groups}
        rows = [ComparisonRow(g.key, g, right_by_key.get(g.key)) for g in left_groups]
        left_keys = {g.key for g in left_groups}
        rows.extend(ComparisonRow(g.key, None, g) for g in right_groups if g.key not in left_keys)

    return RangeComparison(grouping, left, right, left_groups, right_groups, rows)


# =============================================================================
# DATAFRAME CONVERSION
# =============================================================================

SUMMARY_COLUMNS = [
    'key', 'label', 'period', 'count', 'mnp_total', 'new_total', 'total',
    'hs_total', 'cellup_total', 'ltv_total', 'target_total',
    'total_events', 'achieved_events', 'achievement_rate', 'mnp_ratio', 'average_hs',
]


def summaries_to_df(groups: Sequence[GroupSummary]) -> pd.DataFrame:
    """GroupSummary list → DataFrame in group order (empty frame keeps columns)."""
    if not groups:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    return pd.DataFrame([g.to_dict() for g in groups])[SUMMARY_COLUMNS]


def events_to_df(events: Sequence[EventRecord]) -> pd.DataFrame:
    if not events:
        return pd.DataFrame()
    df = pd.DataFrame([e.to_dict() for e in events])
    df['achievement_percent'] = [
        round_half_up(e.actual_hs_total * 100, e.target_hs_total) if e.has_target else 0
        for e in events
    ]
    return df


def venue_trend_to_df(rows: Sequence[Dict[str, Any]]) -> pd.DataFrame:
    """Long format (month, venue, mnp, new, total) for line charts."""
    records = [
        {'month': row['month'], 'venue': venue, **cell}
        for row in rows
        for venue, cell in row['venues'].items()
    ]
    return pd.DataFrame(records, columns=['month', 'venue', 'mnp', 'new', 'total'])


def staff_weekly_to_df(rows: Sequence[Dict[str, Any]]) -> pd.DataFrame:
    records = [
        {'key': row['key'], 'week': row['week'], 'period': row['period'],
         'staff_name': name, 'mnp': values['mnp'], 'new': values['new']}
        for row in rows
        for name, values in row['staff'].items()
    ]
    return pd.DataFrame(records, columns=['key', 'week', 'period', 'staff_name', 'mnp', 'new'])


def comparison_to_df(comparison: RangeComparison, metric: str = 'total') -> pd.DataFrame:
    """One row per pair: group on each side, metric on each side and the change."""
    records = [
        {
            'left_group': _group_name(row.left),
            'left': row.value('left', metric),
            'right_group': _group_name(row.right),
            'right': row.value('right', metric),
            'diff': row.diff(metric),
        }
        for row in comparison.rows
    ]
    return pd.DataFrame(records, columns=['left_group', 'left', 'right_group', 'right', 'diff'])


def _group_name(summary: Optional[GroupSummary]) -> str:
    if summary is None:
        return ''
    if summary.period and summary.period != summary.label:
        return f"{summary.period} {summary.label}"
    return summary.label
