# utils/event_performance/metrics.py
"""
KPI Calculations for Event Performance

Handles all ratio and ranking calculations:
- Achievement rate and MNP ratio (round half up, zero-safe)
- Per-event achievement percentage and progress width
- Performance level bucketing
- Achievement status tally
- Top-N ranking and the event leaderboard
- Weighted ID points per calculation period
- Monthly overview and period comparison

Every ratio guards its denominator and returns 0 instead of raising or
producing NaN / inf.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .constants import CHANNEL_METRICS, CHANNELS, LEADERBOARD_SIZE, PERFORMANCE_LEVELS, RANKABLE_METRICS
from .filters import filter_period_range
from .models import DailyPerformance, EventRecord, IdWeights, StaffPerformance

logger = logging.getLogger(__name__)


# =============================================================================
# RATIOS
# =============================================================================

def round_half_up(numerator: int, denominator: int) -> int:
    """
    numerator / denominator rounded half up, in exact integer arithmetic.

    Both arguments are non-negative; a zero denominator returns 0.
    """
    if denominator <= 0:
        return 0
    return (2 * numerator + denominator) // (2 * denominator)


def compute_ratio(numerator: int, denominator: int) -> int:
    """Percentage 0-100 of numerator over denominator; 0 when denominator is 0."""
    numerator = max(0, int(numerator or 0))
    denominator = int(denominator or 0)
    if denominator <= 0:
        return 0
    return min(100, round_half_up(numerator * 100, denominator))


def compute_achievement_rate(achieved: int, total: int) -> int:
    """Share of targeted events that hit target, as an int percentage."""
    achieved = max(0, int(achieved or 0))
    total = int(total or 0)
    if total <= 0:
        return 0
    return compute_ratio(min(achieved, total), total)


def compute_mnp_ratio(total_mnp: int, total_new: int) -> int:
    return compute_ratio(total_mnp, total_mnp + total_new)


def event_achievement_percent(event: EventRecord) -> int:
    """Raw achievement % (may exceed 100); 0 when the event has no target."""
    if event.target_hs_total <= 0:
        return 0
    return round_half_up(event.actual_hs_total * 100, event.target_hs_total)


def progress_width(percent: int) -> int:
    """Clamp a percentage to [0, 100] for progress-bar width only."""
    return max(0, min(100, percent))


# =============================================================================
# PERFORMANCE LEVELS
# =============================================================================

@dataclass
class LevelCount:
    name: str
    label: str
    count: int = 0


def classify_performance_level(actual_hs_total: int) -> str:
    """Band name for an event's HS total."""
    for name, _label, low, high in PERFORMANCE_LEVELS:
        if actual_hs_total >= low and (high is None or actual_hs_total <= high):
            return name
    return PERFORMANCE_LEVELS[0][0]


def performance_levels(events: Sequence[EventRecord]) -> List[LevelCount]:
    """Tally of events per band; every band is present, even at zero."""
    tally = {name: LevelCount(name, label) for name, label, _low, _high in PERFORMANCE_LEVELS}
    for event in events:
        tally[classify_performance_level(event.actual_hs_total)].count += 1
    return list(tally.values())


def chart_levels(levels: Sequence[LevelCount]) -> List[LevelCount]:
    """Chart-ready bands: empty bands dropped."""
    return [level for level in levels if level.count > 0]


# =============================================================================
# ACHIEVEMENT STATUS
# =============================================================================

def achievement_status(events: Sequence[EventRecord]) -> Dict[str, int]:
    """Counts of achieved / not achieved / no-target events."""
    stats = {'achieved': 0, 'not_achieved': 0, 'no_target': 0}
    for event in events:
        if not event.has_target:
            stats['no_target'] += 1
        elif event.actual_hs_total >= event.target_hs_total:
            stats['achieved'] += 1
        else:
            stats['not_achieved'] += 1
    return stats


def levels_in_range(
    events: Sequence[EventRecord],
    start: Optional[str] = None,
    end: Optional[str] = None
) -> Tuple[List[LevelCount], Dict[str, int]]:
    """Performance bands and achievement tally over events within [start, end]."""
    ranged = filter_period_range(events, start, end)
    return performance_levels(ranged), achievement_status(ranged)


# =============================================================================
# RANKING
# =============================================================================

def rank_top_n(
    groups: Sequence[Any],
    metric: str = 'total',
    n: int = LEADERBOARD_SIZE,
    include_ties: bool = False
) -> List[Any]:
    """
    Sort descending by `metric` and keep the top `n`.

    The sort is stable, so equal values keep their incoming order.
    With include_ties, every entry equal to the n-th value is kept too.
    """
    if metric not in RANKABLE_METRICS and not all(hasattr(g, metric) for g in groups):
        raise ValueError(f"Unknown ranking metric: {metric!r}")
    if n <= 0:
        return []

    ranked = sorted(groups, key=lambda g: getattr(g, metric), reverse=True)
    if not include_ties or len(ranked) <= n:
        return ranked[:n]

    cutoff = getattr(ranked[n - 1], metric)
    return [g for g in ranked if getattr(g, metric) >= cutoff]


@dataclass
class RankedEvent:
    id: str
    event_name: str
    venue: str
    start_date: Any
    total_ids: int
    au_mnp: int
    uq_mnp: int
    au_new: int
    uq_new: int
    staff_count: int = 0


def rank_events(
    events: Sequence[EventRecord],
    n: int = LEADERBOARD_SIZE,
    staff_counts: Optional[Dict[str, int]] = None
) -> List[RankedEvent]:
    """
    Event leaderboard: events with HS > 0, highest first, top `n` plus
    everything tied with the n-th place.
    """
    staff_counts = staff_counts or {}
    candidates = [
        RankedEvent(
            id=e.id,
            event_name=f"{e.venue} ({e.start_date.year}/{e.start_date.month:02d})",
            venue=e.venue,
            start_date=e.start_date,
            total_ids=e.actual_hs_total,
            au_mnp=e.actual_au_mnp,
            uq_mnp=e.actual_uq_mnp,
            au_new=e.actual_au_new,
            uq_new=e.actual_uq_new,
            staff_count=staff_counts.get(e.id, 0),
        )
        for e in events
        if e.actual_hs_total > 0
    ]
    return rank_top_n(candidates, metric='total_ids', n=n, include_ties=True)


# =============================================================================
# ID POINTS
# =============================================================================

def select_id_weights(periods: Sequence[IdWeights], on_date: Optional[date]) -> Optional[IdWeights]:
    """Calculation period covering `on_date`; the latest start wins on overlap."""
    if on_date is None:
        return None
    covering = [p for p in periods if p.covers(on_date)]
    if not covering:
        return None
    return max(covering, key=lambda p: p.period_start)


def calculate_id_points(
    performance: Union[StaffPerformance, DailyPerformance],
    weights: Union[IdWeights, Sequence[IdWeights]],
    on_date: Optional[date] = None
) -> int:
    """
    Weighted ID total: sum of count × weight over every metric and channel.

    Args:
        performance: A staff record (channels summed over its daily rows)
            or a single daily row
        weights: One calculation period, or all of them; the period is
            then picked by `on_date`, defaulting to the staff record's
            event start date
        on_date: Date used to pick the period

    Returns:
        Points as an int; 0 when no period covers the date
    """
    if isinstance(weights, IdWeights):
        period = weights
    else:
        if on_date is None:
            on_date = getattr(performance, 'start_date', None)
        period = select_id_weights(weights, on_date)
    if period is None:
        return 0

    if isinstance(performance, StaffPerformance):
        channels = performance.channel_totals()
    else:
        channels = performance.channels

    return sum(
        channels[metric][channel] * period.weight(metric, channel)
        for metric in CHANNEL_METRICS
        for channel in CHANNELS
    )


def id_points_by_staff(staff: Sequence[StaffPerformance], periods: Sequence[IdWeights]) -> Dict[str, int]:
    """Total ID points per staff name, each record weighted by its event date."""
    totals: Dict[str, int] = {}
    for perf in staff:
        if not perf.staff_name:
            continue
        totals[perf.staff_name] = totals.get(perf.staff_name, 0) + calculate_id_points(perf, periods)
    return totals


# =============================================================================
# OVERVIEW
# =============================================================================

class EventMetrics:
    """
    Overview KPIs for a collection of events.

    Usage:
        metrics = EventMetrics(events)

        overview = metrics.calculate_overview_metrics(2024, 3)
        comparison = EventMetrics.calculate_period_comparison(current, previous)
    """

    def __init__(self, events: Sequence[EventRecord]):
        self.events = list(events)

    def calculate_overview_metrics(self, year: Optional[int] = None, month: Optional[int] = None) -> Dict:
        """
        Achievement status for one year-month (or the whole collection).

        Target / actual totals only count events that have a target;
        MNP / new totals count every event in the period.
        """
        events = [
            e for e in self.events
            if (year is None or e.year == year) and (month is None or e.month == month)
        ]
        if not events:
            return self._get_empty_metrics()

        targeted = [e for e in events if e.has_target]
        achieved = [e for e in targeted if e.actual_hs_total >= e.target_hs_total]

        total_mnp = sum(e.mnp_total for e in events)
        total_new = sum(e.new_total for e in events)

        return {
            'event_count': len(events),
            'total_events': len(targeted),
            'achieved_events': len(achieved),
            'achievement_rate': compute_achievement_rate(len(achieved), len(targeted)),
            'total_target': sum(e.target_hs_total for e in targeted),
            'total_actual': sum(e.actual_hs_total for e in targeted),
            'total_mnp': total_mnp,
            'total_new': total_new,
            'mnp_ratio': compute_mnp_ratio(total_mnp, total_new),
        }

    @staticmethod
    def _get_empty_metrics() -> Dict:
        return {
            'event_count': 0,
            'total_events': 0,
            'achieved_events': 0,
            'achievement_rate': 0,
            'total_target': 0,
            'total_actual': 0,
            'total_mnp': 0,
            'total_new': 0,
            'mnp_ratio': 0,
        }

    @staticmethod
    def calculate_period_comparison(current: Dict, previous: Dict) -> Dict:
        """
        Growth between two overview snapshots.

        `{key}_diff` is the absolute change; `{key}_growth` the % change
        (None when the previous value is 0).
        """
        comparison = {}
        for key in ('total_events', 'achieved_events', 'achievement_rate',
                    'total_actual', 'total_mnp', 'total_new', 'mnp_ratio'):
            now = current.get(key, 0) or 0
            before = previous.get(key, 0) or 0
            comparison[f'{key}_diff'] = now - before
            if before > 0:
                comparison[f'{key}_growth'] = round((now - before) / before * 100, 1)
            else:
                comparison[f'{key}_growth'] = None
        return comparison
