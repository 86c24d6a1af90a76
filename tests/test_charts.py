"""Smoke tests for chart builders."""
import altair as alt

from utils.event_performance.aggregation import (
    group_by_month,
    group_by_venue,
    group_by_week,
    staff_weekly_stats,
    staff_weekly_to_df,
    venue_monthly_trend,
    venue_trend_to_df,
)
from utils.event_performance.charts import EventCharts
from utils.event_performance.metrics import performance_levels


def test_builders_accept_engine_output(multi_month_events, staff_factory):
    staff = [staff_factory("Sato", multi_month_events[0], au_mnp=1)]
    charts = [
        EventCharts.build_monthly_trend_chart(group_by_month(multi_month_events)),
        EventCharts.build_achievement_trend_chart(group_by_month(multi_month_events)),
        EventCharts.build_weekly_chart(group_by_week(multi_month_events)),
        EventCharts.build_performance_level_chart(performance_levels(multi_month_events)),
        EventCharts.build_category_chart(group_by_venue(multi_month_events), "Top venues"),
        EventCharts.build_venue_trend_chart(venue_trend_to_df(venue_monthly_trend(multi_month_events))),
        EventCharts.build_staff_weekly_chart(staff_weekly_to_df(staff_weekly_stats(staff))),
    ]
    for chart in charts:
        assert chart.to_dict()


def test_empty_inputs_render_placeholder():
    assert isinstance(EventCharts.build_monthly_trend_chart([]), alt.Chart)
    assert isinstance(EventCharts.build_performance_level_chart(performance_levels([])), alt.Chart)
    assert isinstance(EventCharts.build_venue_trend_chart(venue_trend_to_df([])), alt.Chart)
