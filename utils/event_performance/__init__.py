# utils/event_performance/__init__.py
"""
Event Performance Module

Utilities for the event performance dashboard page.
All components are self-contained within this module.

Components:
- models: EventRecord / StaffPerformance with input coercion
- queries: SQL queries and data loading with caching
- filters: FilterSpec, period ranges and per-panel range state
- aggregation: Grouping engine, trend matrices and range comparison
- metrics: Ratios, performance levels, ranking, ID points and overview KPIs
- pagination: Page slicing and page state
- charts: Altair visualizations
- export: Formatted Excel report generation

Usage:
    from utils.event_performance import (
        EventQueries,
        FilterSpec,
        filter_events,
        group_by_month,
        EventMetrics,
        EventCharts,
        EventPerformanceExport,
    )
"""

from .models import EventRecord, StaffPerformance, DailyPerformance, IdWeights
from .queries import EventQueries, staff_counts_by_event
from .filters import (
    FilterSpec,
    PanelRange,
    RangeSource,
    filter_events,
    filter_period_range,
    filter_staff,
    get_filter_options,
    latest_periods,
    sort_events,
    year_month_range,
)
from .aggregation import (
    GroupSummary,
    group_by,
    group_by_month,
    group_by_week,
    group_by_venue,
    group_by_agency,
    group_by_staff,
    compare_ranges,
)
from .metrics import (
    EventMetrics,
    calculate_id_points,
    compute_ratio,
    compute_achievement_rate,
    performance_levels,
    rank_top_n,
    rank_events,
)
from .pagination import Page, PaginationState, paginate
from .charts import EventCharts
from .export import EventPerformanceExport

# Constants
from .constants import (
    ALL,
    COLORS,
    PERFORMANCE_LEVELS,
    DEFAULT_PAGE_SIZE,
    LEADERBOARD_SIZE,
    CHART_WIDTH,
    CHART_HEIGHT,
)

__all__ = [
    # Records
    'EventRecord',
    'StaffPerformance',
    'DailyPerformance',
    'IdWeights',

    # Classes
    'EventQueries',
    'EventMetrics',
    'EventCharts',
    'EventPerformanceExport',

    # Engine
    'FilterSpec',
    'PanelRange',
    'RangeSource',
    'filter_events',
    'filter_period_range',
    'filter_staff',
    'get_filter_options',
    'latest_periods',
    'sort_events',
    'year_month_range',
    'GroupSummary',
    'group_by',
    'group_by_month',
    'group_by_week',
    'group_by_venue',
    'group_by_agency',
    'group_by_staff',
    'compare_ranges',
    'calculate_id_points',
    'compute_ratio',
    'compute_achievement_rate',
    'performance_levels',
    'rank_top_n',
    'rank_events',
    'Page',
    'PaginationState',
    'paginate',
    'staff_counts_by_event',

    # Constants
    'ALL',
    'COLORS',
    'PERFORMANCE_LEVELS',
    'DEFAULT_PAGE_SIZE',
    'LEADERBOARD_SIZE',
    'CHART_WIDTH',
    'CHART_HEIGHT',
]

__version__ = '1.0.0'
