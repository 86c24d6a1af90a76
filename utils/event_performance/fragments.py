# utils/event_performance/fragments.py
"""
Streamlit Fragments for Event Performance

Uses @st.fragment so each panel reruns on its own widgets only.

Sections:
- Sidebar filters → FilterSpec
- Overview cards with previous-month comparison
- Event list with sort + pagination
- Analytics panels (monthly, weekly, levels, venue, agency, staff), each
  with its own PanelRange that inherits the page period until set manually
- Side-by-side comparison of two period ranges
- Leaderboard and Excel export

All numbers come from the pure engine modules; fragments only render.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import streamlit as st

from .aggregation import (
    compare_ranges,
    comparison_to_df,
    group_by_agency,
    group_by_month,
    group_by_staff,
    group_by_venue,
    group_by_week,
    staff_weekly_stats,
    staff_weekly_to_df,
    summaries_to_df,
    venue_monthly_trend,
    venue_trend_to_df,
    weekly_breakdown_by_month,
)
from .charts import EventCharts
from .constants import ALL, DEFAULT_PAGE_SIZE, DEFAULT_PERIOD_WINDOW, LEADERBOARD_SIZE, SORT_OPTIONS
from .export import EventPerformanceExport
from .filters import (
    FilterSpec,
    PanelRange,
    RangeSource,
    filter_period_range,
    filter_staff,
    previous_year_month,
    sort_events,
)
from .metrics import (
    EventMetrics,
    event_achievement_percent,
    id_points_by_staff,
    levels_in_range,
    progress_width,
    rank_events,
)
from .models import EventRecord, IdWeights, StaffPerformance, format_year_month
from .pagination import PaginationState, paginate

logger = logging.getLogger(__name__)

ACHIEVEMENT_LABELS = {
    'all': 'All',
    'achieved': 'Achieved',
    'not_achieved': 'Not achieved',
}

PANEL_KEYS = ['monthly', 'weekly', 'levels', 'venue', 'agency', 'staff']

COMPARISON_LABELS = {
    'venue': 'Venue',
    'agency': 'Agency',
    'staff': 'Staff',
    'month': 'Month',
    'week': 'Week',
}


# =============================================================================
# SIDEBAR FILTERS
# =============================================================================

def render_sidebar_filters(options: Dict[str, List]) -> FilterSpec:
    """
    Sidebar filter form. Values are only applied on "Apply Filters" so
    the page does not rerun per keystroke.
    """
    applied = st.session_state.get('_applied_filter_spec') or FilterSpec()

    with st.sidebar:
        st.header("🔍 Filters")
        with st.form("event_filter_form"):
            year = st.selectbox(
                "Year",
                [ALL] + options.get('years', []),
                index=_index_of([ALL] + options.get('years', []), applied.year),
                format_func=_all_label,
            )
            month = st.selectbox(
                "Month",
                [ALL] + list(range(1, 13)),
                index=_index_of([ALL] + list(range(1, 13)), applied.month),
                format_func=lambda m: "All" if m == ALL else f"{m}月",
            )
            week = st.selectbox(
                "Week",
                [ALL] + list(range(1, 6)),
                index=_index_of([ALL] + list(range(1, 6)), applied.week),
                format_func=lambda w: "All" if w == ALL else f"第{w}週",
            )
            venue = st.selectbox(
                "Venue",
                [ALL] + options.get('venues', []),
                index=_index_of([ALL] + options.get('venues', []), applied.venue),
                format_func=_all_label,
            )
            agency = st.selectbox(
                "Agency",
                [ALL] + options.get('agencies', []),
                index=_index_of([ALL] + options.get('agencies', []), applied.agency),
                format_func=_all_label,
            )
            achievement = st.radio(
                "Achievement",
                list(ACHIEVEMENT_LABELS),
                index=_index_of(list(ACHIEVEMENT_LABELS), applied.achievement),
                format_func=ACHIEVEMENT_LABELS.get,
            )
            search_text = st.text_input(
                "Search",
                value=applied.search_text,
                placeholder="Venue, agency, period...",
            )

            submitted = st.form_submit_button("Apply Filters", type="primary", use_container_width=True)

    if submitted:
        applied = FilterSpec(
            year=year,
            month=month,
            week=week,
            venue=venue,
            agency=agency,
            achievement=achievement,
            search_text=search_text.strip(),
        )
        st.session_state['_applied_filter_spec'] = applied
        logger.info(f"Filters applied: {applied.to_dict()}")

    return applied


def _index_of(options: Sequence, value) -> int:
    try:
        return list(options).index(value)
    except ValueError:
        return 0


def _all_label(value) -> str:
    return "All" if value == ALL else str(value)


# =============================================================================
# OVERVIEW
# =============================================================================

def overview_section(all_events: Sequence[EventRecord], year: int, month: int):
    """Achievement status cards for one year-month vs the month before."""
    calc = EventMetrics(all_events)
    current = calc.calculate_overview_metrics(year, month)
    prev_year, prev_month = previous_year_month(year, month)
    previous = calc.calculate_overview_metrics(prev_year, prev_month)
    comparison = EventMetrics.calculate_period_comparison(current, previous)

    st.subheader(f"📊 {year}年{month}月 Achievement Status")

    col1, col2, col3, col4, col5 = st.columns(5)
    with col1:
        st.metric(
            "🎯 Achievement rate",
            f"{current['achievement_rate']}%",
            delta=f"{comparison['achievement_rate_diff']:+d} pt",
            help="Achieved events ÷ events with a target",
        )
    with col2:
        st.metric(
            "✅ Achieved",
            f"{current['achieved_events']} / {current['total_events']}",
            delta=f"{comparison['achieved_events_diff']:+d}",
        )
    with col3:
        st.metric(
            "📦 Actual / Target",
            f"{current['total_actual']:,} / {current['total_target']:,}",
            help="HS totals of events with a target",
        )
    with col4:
        st.metric(
            "🔁 MNP",
            f"{current['total_mnp']:,}",
            delta=_growth_label(comparison['total_mnp_growth']),
        )
    with col5:
        st.metric(
            "🆕 New",
            f"{current['total_new']:,}",
            delta=_growth_label(comparison['total_new_growth']),
            help=f"MNP ratio {current['mnp_ratio']}%",
        )

    if current['event_count'] == 0:
        st.info(f"No events in {year}年{month}月")


def _growth_label(growth: Optional[float]) -> Optional[str]:
    return None if growth is None else f"{growth:+.1f}%"


# =============================================================================
# EVENT LIST
# =============================================================================

@st.fragment
def event_list_fragment(
    events: Sequence[EventRecord],
    spec: FilterSpec,
    staff_counts: Optional[Dict[str, int]] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    fragment_key: str = "event_list"
):
    """Sorted, paginated event cards with achievement progress."""
    staff_counts = staff_counts or {}

    col_title, col_sort = st.columns([3, 1])
    with col_title:
        st.subheader(f"📋 Events ({len(events):,})")
    with col_sort:
        sort_by = st.selectbox(
            "Sort",
            list(SORT_OPTIONS),
            format_func=SORT_OPTIONS.get,
            key=f"{fragment_key}_sort",
            label_visibility="collapsed",
        )

    state_key = f"{fragment_key}_pagination"
    state: PaginationState = st.session_state.setdefault(state_key, PaginationState())
    state.sync(spec.signature() + (sort_by,))

    page = paginate(sort_events(events, sort_by), page_size=page_size, page=state.page)
    state.page = page.page

    if page.total_count == 0:
        st.info("No events match the current filters")
        return

    for event in page.items:
        _render_event_card(event, staff_counts.get(event.id, 0))

    col_prev, col_info, col_next = st.columns([1, 2, 1])
    with col_prev:
        if st.button("◀ Previous", key=f"{fragment_key}_prev", disabled=not page.has_previous):
            state.previous(page.total_pages)
            st.rerun(scope="fragment")
    with col_info:
        st.caption(
            f"Page {page.page} / {page.total_pages} · "
            f"{page.start_index}-{page.end_index} of {page.total_count}"
        )
    with col_next:
        if st.button("Next ▶", key=f"{fragment_key}_next", disabled=not page.has_next):
            state.next(page.total_pages)
            st.rerun(scope="fragment")


def _render_event_card(event: EventRecord, staff_count: int):
    percent = event_achievement_percent(event)

    with st.container(border=True):
        col_info, col_stats = st.columns([2, 3])
        with col_info:
            st.markdown(f"**{event.venue}**")
            st.caption(
                f"{event.period_display} · {event.agency_name or '-'} · "
                f"{event.start_date:%Y/%m/%d} - {event.end_date:%m/%d} ({event.event_days}日間)"
            )
            if staff_count:
                st.caption(f"👥 {staff_count} staff")
        with col_stats:
            c1, c2, c3 = st.columns(3)
            c1.metric("HS total", f"{event.actual_hs_total:,}")
            c2.metric("MNP", f"{event.mnp_total:,}")
            c3.metric("New", f"{event.new_total:,}")
            if event.has_target:
                st.progress(
                    progress_width(percent) / 100,
                    text=f"{percent}% of target {event.target_hs_total:,}",
                )
            else:
                st.caption("No target set")


# =============================================================================
# PANEL DATE RANGES
# =============================================================================

def _range_key(panel: str) -> str:
    return f"_panel_range_{panel}"


def get_panel_range(panel: str) -> PanelRange:
    return st.session_state.get(_range_key(panel)) or PanelRange()


def cascade_page_range(start: Optional[str], end: Optional[str], panels: Sequence[str] = PANEL_KEYS):
    """Push the page-level period into every panel that still inherits it."""
    for panel in panels:
        current = get_panel_range(panel)
        updated = current.inherit(start, end)
        st.session_state[_range_key(panel)] = updated
        if updated.source is RangeSource.INHERITED:
            st.session_state[f"{panel}_range_start"] = updated.start or ''
            st.session_state[f"{panel}_range_end"] = updated.end or ''


def panel_range_controls(panel: str, periods: Sequence[str]) -> PanelRange:
    """Start / end selectors; touching either pins the panel to a manual range."""
    options = [''] + list(periods)
    for suffix in ('start', 'end'):
        widget_key = f"{panel}_range_{suffix}"
        if st.session_state.get(widget_key) not in options:
            st.session_state[widget_key] = ''

    def _on_change():
        st.session_state[_range_key(panel)] = get_panel_range(panel).set_manual(
            st.session_state.get(f"{panel}_range_start"),
            st.session_state.get(f"{panel}_range_end"),
        )

    col_start, col_end, col_reset = st.columns([2, 2, 1])
    with col_start:
        st.selectbox("From", options, key=f"{panel}_range_start",
                     format_func=lambda p: p or "Earliest", on_change=_on_change)
    with col_end:
        st.selectbox("To", options, key=f"{panel}_range_end",
                     format_func=lambda p: p or "Latest", on_change=_on_change)

    # Widget values may only be rewritten from a callback once rendered
    def _on_reset():
        page_start, page_end = st.session_state.get('_page_period', (None, None))
        st.session_state[_range_key(panel)] = get_panel_range(panel).reset(page_start, page_end)
        st.session_state[f"{panel}_range_start"] = page_start or ''
        st.session_state[f"{panel}_range_end"] = page_end or ''

    panel_range = get_panel_range(panel)
    with col_reset:
        if panel_range.source is RangeSource.MANUALLY_SET:
            st.button("↺ Reset", key=f"{panel}_range_reset",
                      help="Follow the page period again", on_click=_on_reset)
        else:
            st.caption("Page period")

    return panel_range


# =============================================================================
# ANALYTICS PANELS
# =============================================================================

@st.fragment
def monthly_trend_fragment(events: Sequence[EventRecord], default_window: int = DEFAULT_PERIOD_WINDOW):
    st.subheader("📈 Monthly Trend")

    monthly = group_by_month(events)
    panel_range = panel_range_controls('monthly', [g.key for g in monthly])
    shown = panel_range.apply(monthly, period_fn=lambda g: g.key, default_window=default_window)

    col1, col2 = st.columns(2)
    with col1:
        st.altair_chart(EventCharts.build_monthly_trend_chart(shown), use_container_width=True)
    with col2:
        st.altair_chart(EventCharts.build_achievement_trend_chart(shown), use_container_width=True)

    if shown:
        st.dataframe(
            summaries_to_df(shown)[['key', 'count', 'hs_total', 'average_hs', 'mnp_total',
                                    'new_total', 'achievement_rate', 'mnp_ratio']],
            hide_index=True,
            use_container_width=True,
        )


@st.fragment
def weekly_breakdown_fragment(events: Sequence[EventRecord], year: int, month: int):
    """
    Week × venue MNP / new per month in the panel range.

    With no range set the panel shows the overview month.
    """
    st.subheader("🗓️ Weekly Breakdown")

    periods = sorted({e.year_month for e in events})
    panel_range = panel_range_controls('weekly', periods)
    start, end = panel_range.start, panel_range.end
    if not panel_range.is_bounded:
        start = end = format_year_month(year, month)

    agencies = sorted({e.agency_name for e in events if e.agency_name})
    selected = st.multiselect("Agencies", agencies, key="weekly_agencies", placeholder="All agencies...")

    ranged = [
        e for e in filter_period_range(events, start, end)
        if not selected or e.agency_name in selected
    ]
    st.altair_chart(EventCharts.build_weekly_chart(group_by_week(ranged)), use_container_width=True)

    months = weekly_breakdown_by_month(events, start, end, agencies=selected or None)
    if not months:
        st.info("No events in this period")
        return

    for year_month, rows in months:
        st.markdown(f"**{year_month}**")
        for row in rows:
            with st.expander(f"{row['week']} · MNP {row['total_mnp']} / New {row['total_new']} (計 {row['total']})"):
                for venue in row['venues']:
                    st.markdown(f"- **{venue['venue']}**: MNP {venue['mnp']} / New {venue['new']}")


@st.fragment
def performance_levels_fragment(events: Sequence[EventRecord]):
    st.subheader("🏅 Performance Levels")

    periods = sorted({e.year_month for e in events})
    panel_range = panel_range_controls('levels', periods)
    levels, status = levels_in_range(events, panel_range.start, panel_range.end)

    col1, col2 = st.columns([2, 1])
    with col1:
        st.altair_chart(EventCharts.build_performance_level_chart(levels), use_container_width=True)
    with col2:
        st.metric("Achieved", status['achieved'])
        st.metric("Not achieved", status['not_achieved'])
        st.metric("No target", status['no_target'])


@st.fragment
def category_fragment(events: Sequence[EventRecord], dimension: str = 'venue'):
    """Venue or agency ranking bars; venues also get the monthly trend."""
    label = "Venue" if dimension == 'venue' else "Agency"
    st.subheader(f"🏢 By {label}")

    periods = sorted({e.year_month for e in events})
    panel_range = panel_range_controls(dimension, periods)
    ranged = filter_period_range(events, panel_range.start, panel_range.end)

    groups = group_by_venue(ranged) if dimension == 'venue' else group_by_agency(ranged)
    st.altair_chart(EventCharts.build_category_chart(groups, f"Top {label.lower()}s"),
                    use_container_width=True)

    if dimension == 'venue':
        months = sorted({e.year_month for e in ranged})
        trend = venue_trend_to_df(venue_monthly_trend(ranged, months))
        st.altair_chart(EventCharts.build_venue_trend_chart(trend), use_container_width=True)


@st.fragment
def staff_fragment(staff: Sequence[StaffPerformance], id_weights: Sequence[IdWeights] = ()):
    """Per-staff totals with LTV, ID points and week-by-week MNP / new."""
    st.subheader("👥 Staff Performance")

    periods = sorted({s.year_month for s in staff})
    panel_range = panel_range_controls('staff', periods)
    ranged = filter_period_range(staff, panel_range.start, panel_range.end)

    names = sorted({s.staff_name for s in ranged if s.staff_name})
    selected = st.multiselect("Staff", names, key="staff_names", placeholder="All staff...")
    ranged = filter_staff(ranged, staff_names=selected or None)

    if not ranged:
        st.info("No staff results in this period")
        return

    weekly = staff_weekly_to_df(staff_weekly_stats(ranged))
    st.altair_chart(EventCharts.build_staff_weekly_chart(weekly), use_container_width=False)

    df = summaries_to_df(group_by_staff(ranged))
    columns = ['key', 'count', 'mnp_total', 'new_total', 'cellup_total', 'ltv_total', 'mnp_ratio']
    if id_weights:
        points = id_points_by_staff(ranged, id_weights)
        df['id_points'] = df['key'].map(points).fillna(0).astype(int)
        columns.append('id_points')
    st.dataframe(
        df[columns].rename(
            columns={'key': 'staff', 'count': 'events', 'new_total': 'new (incl. cellup)', 'id_points': 'ID points'}
        ),
        hide_index=True,
        use_container_width=True,
    )
    if id_weights:
        st.caption("ID points use the calculation period covering each event's start date")


# =============================================================================
# RANGE COMPARISON
# =============================================================================

@st.fragment
def comparison_fragment(events: Sequence[EventRecord], staff: Sequence[StaffPerformance] = ()):
    """Same grouping over two user-chosen ranges, side by side."""
    st.subheader("⚖️ Compare Periods")

    grouping = st.selectbox(
        "Group by",
        list(COMPARISON_LABELS),
        format_func=COMPARISON_LABELS.get,
        key="compare_grouping",
    )
    records = staff if grouping == 'staff' else events
    periods = sorted({r.year_month for r in records})

    col_left, col_right = st.columns(2)
    with col_left:
        st.markdown("**Period A**")
        left = panel_range_controls('compare_left', periods)
    with col_right:
        st.markdown("**Period B**")
        right = panel_range_controls('compare_right', periods)

    comparison = compare_ranges(records, left, right, grouping=grouping)
    if not comparison.rows:
        st.info("No data in either period")
        return

    left_total, right_total = comparison.totals()
    col1, col2, col3 = st.columns(3)
    col1.metric("A · MNP + New", f"{left_total:,}")
    col2.metric("B · MNP + New", f"{right_total:,}", delta=f"{right_total - left_total:+,}")
    if grouping != 'staff':
        left_rate = EventMetrics(left.apply(events)).calculate_overview_metrics()['achievement_rate']
        right_rate = EventMetrics(right.apply(events)).calculate_overview_metrics()['achievement_rate']
        col3.metric("Achievement rate A → B", f"{left_rate}% → {right_rate}%",
                    delta=f"{right_rate - left_rate:+d} pt")

    st.dataframe(
        comparison_to_df(comparison).rename(columns={
            'left_group': 'A', 'left': 'A total', 'right_group': 'B', 'right': 'B total', 'diff': 'B - A',
        }),
        hide_index=True,
        use_container_width=True,
    )


# =============================================================================
# LEADERBOARD
# =============================================================================

def leaderboard_section(
    events: Sequence[EventRecord],
    staff_counts: Optional[Dict[str, int]] = None,
    size: int = LEADERBOARD_SIZE
):
    st.subheader("🏆 Event Ranking")

    ranked = rank_events(events, n=size, staff_counts=staff_counts)
    if not ranked:
        st.info("No events with results yet")
        return

    rank = 0
    previous_total = None
    for position, entry in enumerate(ranked, 1):
        if entry.total_ids != previous_total:
            rank = position
            previous_total = entry.total_ids
        medal = {1: "🥇", 2: "🥈", 3: "🥉"}.get(rank, f"{rank}.")
        st.markdown(
            f"{medal} **{entry.event_name}** · {entry.total_ids} "
            f"(au MNP {entry.au_mnp} / UQ MNP {entry.uq_mnp} / au new {entry.au_new} / UQ new {entry.uq_new})"
            + (f" · 👥 {entry.staff_count}" if entry.staff_count else "")
        )


# =============================================================================
# EXPORT
# =============================================================================

@st.fragment
def export_report_fragment(
    events: Sequence[EventRecord],
    staff: Sequence[StaffPerformance],
    spec: FilterSpec
):
    """Build the workbook on demand so regular reruns stay cheap."""
    st.subheader("📥 Export")

    if not events:
        st.info("Nothing to export")
        return

    if st.button("📊 Generate Excel Report", key="export_generate"):
        with st.spinner("Building report..."):
            overview = EventMetrics(events).calculate_overview_metrics()
            excel_bytes = EventPerformanceExport().create_report(
                overview=overview,
                filters=spec.to_dict(),
                sheets={
                    'Monthly': group_by_month(events),
                    'Weekly': group_by_week(events),
                    'Venues': group_by_venue(events),
                    'Agencies': group_by_agency(events),
                },
                staff_groups=group_by_staff(staff),
                events=sort_events(events, 'date'),
            )
        st.session_state['_export_bytes'] = excel_bytes.getvalue()

    if st.session_state.get('_export_bytes'):
        st.download_button(
            label="⬇️ Download",
            data=st.session_state['_export_bytes'],
            file_name=f"event_performance_{datetime.now().strftime('%Y%m%d_%H%M')}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )


__all__ = [
    'render_sidebar_filters',
    'overview_section',
    'event_list_fragment',
    'get_panel_range',
    'cascade_page_range',
    'panel_range_controls',
    'monthly_trend_fragment',
    'weekly_breakdown_fragment',
    'performance_levels_fragment',
    'category_fragment',
    'staff_fragment',
    'comparison_fragment',
    'leaderboard_section',
    'export_report_fragment',
]
