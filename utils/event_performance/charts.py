# utils/event_performance/charts.py
"""
Altair Chart Builders for Event Performance

All visualization components using Altair:
- Monthly HS trend (bar + average line)
- Monthly achievement rate trend
- Weekly MNP / new stacked bars
- Performance level donut
- Venue / agency ranking bars
- Venue monthly trend lines
- Staff weekly stacked bars

Builders only take engine output (GroupSummary lists, DataFrames) and
never aggregate on their own.
"""

import logging
from typing import List, Sequence

import altair as alt
import pandas as pd

from .aggregation import GroupSummary, summaries_to_df
from .constants import (
    CHART_HEIGHT,
    CHART_WIDTH,
    COLORS,
    LEVEL_COLORS,
    PIE_CHART_HEIGHT,
    PIE_CHART_WIDTH,
    TOP_CATEGORY_BARS,
)
from .metrics import LevelCount, chart_levels

logger = logging.getLogger(__name__)


class EventCharts:
    """
    Chart builders for the event performance dashboard.

    All methods are static - can be called without instantiation.

    Usage:
        chart = EventCharts.build_monthly_trend_chart(group_by_month(events))
        st.altair_chart(chart, use_container_width=True)
    """

    @staticmethod
    def _empty_chart(message: str = "No data") -> alt.Chart:
        return alt.Chart(pd.DataFrame({'text': [message]})).mark_text(
            size=14, color=COLORS['text_dark']
        ).encode(text='text:N').properties(width=CHART_WIDTH, height=80)

    # =========================================================================
    # MONTHLY
    # =========================================================================

    @staticmethod
    def build_monthly_trend_chart(groups: Sequence[GroupSummary]) -> alt.Chart:
        """HS total per month with the per-event average as a line."""
        if not groups:
            return EventCharts._empty_chart()

        df = summaries_to_df(groups)

        bars = alt.Chart(df).mark_bar(color=COLORS['total']).encode(
            x=alt.X('key:N', title='Month', sort=None),
            y=alt.Y('hs_total:Q', title='HS total'),
            tooltip=[
                alt.Tooltip('key:N', title='Month'),
                alt.Tooltip('hs_total:Q', title='HS total', format=','),
                alt.Tooltip('count:Q', title='Events'),
                alt.Tooltip('average_hs:Q', title='Avg / event'),
            ],
        )

        line = alt.Chart(df).mark_line(point=True, color=COLORS['target']).encode(
            x=alt.X('key:N', sort=None),
            y=alt.Y('average_hs:Q', title='Avg / event'),
        )

        return alt.layer(bars, line).resolve_scale(y='independent').properties(
            width=CHART_WIDTH, height=CHART_HEIGHT, title='Monthly HS trend'
        )

    @staticmethod
    def build_achievement_trend_chart(groups: Sequence[GroupSummary]) -> alt.Chart:
        """Monthly achievement rate (%) of targeted events."""
        if not groups:
            return EventCharts._empty_chart()

        df = summaries_to_df(groups)

        return alt.Chart(df).mark_line(point=True, color=COLORS['achievement_good']).encode(
            x=alt.X('key:N', title='Month', sort=None),
            y=alt.Y('achievement_rate:Q', title='Achievement rate (%)',
                    scale=alt.Scale(domain=[0, 100])),
            tooltip=[
                alt.Tooltip('key:N', title='Month'),
                alt.Tooltip('achieved_events:Q', title='Achieved'),
                alt.Tooltip('total_events:Q', title='With target'),
                alt.Tooltip('achievement_rate:Q', title='Rate (%)'),
            ],
        ).properties(width=CHART_WIDTH, height=CHART_HEIGHT, title='Monthly achievement rate')

    # =========================================================================
    # WEEKLY
    # =========================================================================

    @staticmethod
    def build_weekly_chart(groups: Sequence[GroupSummary]) -> alt.Chart:
        """Stacked MNP / new bars per week."""
        if not groups:
            return EventCharts._empty_chart()

        df = summaries_to_df(groups)
        long_df = _stack_mnp_new(df, id_vars=['key', 'label', 'period'])

        return alt.Chart(long_df).mark_bar().encode(
            x=alt.X('key:N', title='Week', sort=None,
                    axis=alt.Axis(labelExpr="split(datum.value, '-')[1] + '/' + split(datum.value, '-')[2]")),
            y=alt.Y('value:Q', title='Count', stack='zero'),
            color=alt.Color('metric:N', title='',
                            scale=alt.Scale(domain=['MNP', 'New'], range=[COLORS['mnp'], COLORS['new']])),
            tooltip=['period:N', 'label:N', 'metric:N', 'value:Q'],
        ).properties(width=CHART_WIDTH, height=CHART_HEIGHT, title='Weekly results')

    # =========================================================================
    # LEVELS & CATEGORIES
    # =========================================================================

    @staticmethod
    def build_performance_level_chart(levels: Sequence[LevelCount]) -> alt.Chart:
        """Donut of events per performance band; empty bands omitted."""
        shown = chart_levels(levels)
        if not shown:
            return EventCharts._empty_chart()

        df = pd.DataFrame([{'level': level.label, 'count': level.count} for level in shown])
        domain = [level.label for level in levels]

        return alt.Chart(df).mark_arc(innerRadius=60).encode(
            theta=alt.Theta('count:Q'),
            color=alt.Color('level:N', title='Level',
                            scale=alt.Scale(domain=domain, range=LEVEL_COLORS[:len(domain)])),
            tooltip=['level:N', 'count:Q'],
        ).properties(width=PIE_CHART_WIDTH, height=PIE_CHART_HEIGHT, title='Performance levels')

    @staticmethod
    def build_category_chart(groups: Sequence[GroupSummary], title: str) -> alt.Chart:
        """Top venues / agencies as stacked MNP / new bars."""
        if not groups:
            return EventCharts._empty_chart()

        df = summaries_to_df(list(groups)[:TOP_CATEGORY_BARS])
        order: List[str] = list(df['key'])
        long_df = _stack_mnp_new(df, id_vars=['key', 'count', 'total'])

        return alt.Chart(long_df).mark_bar().encode(
            x=alt.X('key:N', title='', sort=order),
            y=alt.Y('value:Q', title='Count', stack='zero'),
            color=alt.Color('metric:N', title='',
                            scale=alt.Scale(domain=['MNP', 'New'], range=[COLORS['mnp'], COLORS['new']])),
            tooltip=['key:N', 'metric:N', 'value:Q', 'total:Q', 'count:Q'],
        ).properties(width=CHART_WIDTH, height=CHART_HEIGHT, title=title)

    @staticmethod
    def build_venue_trend_chart(trend_df: pd.DataFrame) -> alt.Chart:
        """One line per venue over months (MNP + new)."""
        if trend_df.empty:
            return EventCharts._empty_chart()

        return alt.Chart(trend_df).mark_line(point=True).encode(
            x=alt.X('month:N', title='Month', sort=None),
            y=alt.Y('total:Q', title='MNP + new'),
            color=alt.Color('venue:N', title='Venue'),
            tooltip=['month:N', 'venue:N', 'mnp:Q', 'new:Q', 'total:Q'],
        ).properties(width=CHART_WIDTH, height=CHART_HEIGHT, title='Venue monthly trend')

    @staticmethod
    def build_staff_weekly_chart(staff_df: pd.DataFrame) -> alt.Chart:
        """Per-staff MNP + new bars grouped by week."""
        if staff_df.empty:
            return EventCharts._empty_chart()

        long_df = staff_df.melt(
            id_vars=['key', 'week', 'period', 'staff_name'],
            value_vars=['mnp', 'new'],
            var_name='metric',
            value_name='value',
        )
        long_df['metric'] = long_df['metric'].map({'mnp': 'MNP', 'new': 'New'})

        return alt.Chart(long_df).mark_bar().encode(
            x=alt.X('staff_name:N', title=''),
            y=alt.Y('value:Q', title='Count', stack='zero'),
            color=alt.Color('metric:N', title='',
                            scale=alt.Scale(domain=['MNP', 'New'], range=[COLORS['mnp'], COLORS['new']])),
            column=alt.Column('key:N', title='Week', sort=None),
            tooltip=['period:N', 'week:N', 'staff_name:N', 'metric:N', 'value:Q'],
        ).properties(height=CHART_HEIGHT // 2)


def _stack_mnp_new(df: pd.DataFrame, id_vars: List[str]) -> pd.DataFrame:
    long_df = df.melt(
        id_vars=id_vars,
        value_vars=['mnp_total', 'new_total'],
        var_name='metric',
        value_name='value',
    )
    long_df['metric'] = long_df['metric'].map({'mnp_total': 'MNP', 'new_total': 'New'})
    return long_df
