# utils/event_performance/queries.py
"""
SQL Queries and Data Loading for Event Performance

Handles all database interactions:
- Event summaries from the event_summary view
- Staff daily performance rows joined to their parent event
- ID calculation periods (per-channel point weights)

Rows are converted to EventRecord / StaffPerformance / IdWeights here, so every
numeric field is validated once at the loading boundary.
Uses @st.cache_data with the CACHE_TTL_SECONDS setting.
"""

import logging
from typing import Any, Dict, List, Tuple

import pandas as pd
import streamlit as st

from utils.config import config
from utils.db import execute_query_df
from .constants import (
    ACTUAL_FIELDS,
    CHANNEL_COLUMN_PREFIX,
    CHANNEL_METRICS,
    CHANNELS,
    ID_WEIGHT_COLUMNS,
    LTV_FIELDS,
    TARGET_FIELDS,
)
from .models import EventRecord, IdWeights, StaffPerformance, build_staff_performances

logger = logging.getLogger(__name__)

CACHE_TTL = config.settings.cache_ttl_seconds


EVENT_SUMMARY_QUERY = f"""
    SELECT
        id,
        venue,
        agency_name,
        start_date,
        end_date,
        year,
        month,
        week_number,
        include_cellup_in_hs_total,
        {', '.join(TARGET_FIELDS)},
        {', '.join(ACTUAL_FIELDS)},
        created_at
    FROM event_summary
    ORDER BY created_at DESC
"""

_STAFF_COLUMNS = [
    f"sp.{CHANNEL_COLUMN_PREFIX[metric]}_{channel}"
    for metric in CHANNEL_METRICS
    for channel in CHANNELS
] + [f"sp.{name}" for name in LTV_FIELDS] + ["sp.network_count"]

STAFF_PERFORMANCE_QUERY = f"""
    SELECT
        sp.event_id,
        sp.staff_name,
        sp.day_number,
        {', '.join(_STAFF_COLUMNS)},
        e.year AS event_year,
        e.month AS event_month,
        e.week_number AS event_week_number,
        e.venue AS event_venue,
        e.agency_name AS event_agency_name,
        e.start_date AS event_start_date
    FROM staff_performances sp
    JOIN events e ON e.id = sp.event_id
    ORDER BY sp.created_at DESC
"""

ID_WEIGHTS_QUERY = f"""
    SELECT
        id,
        calculation_period_start,
        calculation_period_end,
        {', '.join(ID_WEIGHT_COLUMNS)}
    FROM id_calculation_data
    ORDER BY calculation_period_start DESC
"""


class EventQueries:
    """
    Data loading class for event performance.

    Usage:
        queries = EventQueries()

        events = queries.get_events()
        staff = queries.get_staff_performances()
        periods = queries.get_id_weights()
    """

    # =========================================================================
    # EVENTS
    # =========================================================================

    def get_events(self) -> List[EventRecord]:
        """
        Load every event summary.

        Returns an empty list when the query fails; callers show an
        empty state rather than aggregating partial data.
        """
        df = _get_event_summary_cached()
        return rows_to_events(df)

    def get_staff_performances(self) -> List[StaffPerformance]:
        """Load staff daily rows rolled up per (event, staff)."""
        df = _get_staff_performances_cached()
        return rows_to_staff(df)

    def get_id_weights(self) -> List[IdWeights]:
        """ID calculation periods, newest first."""
        df = _get_id_weights_cached()
        return rows_to_id_weights(df)

    @staticmethod
    def clear_cache():
        """Drop cached query results (after a save / delete)."""
        _get_event_summary_cached.clear()
        _get_staff_performances_cached.clear()
        _get_id_weights_cached.clear()
        logger.info("🔄 Event query cache cleared")


# =============================================================================
# ROW CONVERSION
# =============================================================================

def rows_to_events(df: pd.DataFrame) -> List[EventRecord]:
    """DataFrame rows → EventRecord, skipping rows that fail validation."""
    if df is None or df.empty:
        return []

    events = []
    for row in df.to_dict('records'):
        try:
            events.append(EventRecord.from_row(row))
        except ValueError as e:
            logger.warning(f"Skipping invalid event row {row.get('id')!r}: {e}")
    return events


def rows_to_staff(df: pd.DataFrame) -> List[StaffPerformance]:
    """Joined staff rows → StaffPerformance with embedded parent event."""
    if df is None or df.empty:
        return []

    rows: List[Dict[str, Any]] = []
    for row in df.to_dict('records'):
        row['event'] = {
            'id': row.get('event_id'),
            'year': row.get('event_year'),
            'month': row.get('event_month'),
            'week_number': row.get('event_week_number'),
            'venue': row.get('event_venue'),
            'agency_name': row.get('event_agency_name'),
            'start_date': row.get('event_start_date'),
        }
        rows.append(row)
    return build_staff_performances(rows)


def rows_to_id_weights(df: pd.DataFrame) -> List[IdWeights]:
    """id_calculation_data rows → IdWeights, skipping periods without valid dates."""
    if df is None or df.empty:
        return []

    periods = []
    for row in df.to_dict('records'):
        try:
            periods.append(IdWeights.from_row(row))
        except ValueError as e:
            logger.warning(f"Skipping invalid ID period {row.get('id')!r}: {e}")
    return periods


def staff_counts_by_event(staff: List[StaffPerformance]) -> Dict[str, int]:
    """Number of distinct staff per event id."""
    counts: Dict[str, int] = {}
    seen: set = set()
    for perf in staff:
        key: Tuple[str, str] = (perf.event_id, perf.staff_name)
        if key in seen:
            continue
        seen.add(key)
        counts[perf.event_id] = counts.get(perf.event_id, 0) + 1
    return counts


# =============================================================================
# CACHED QUERY FUNCTIONS (Module-level for st.cache_data)
# =============================================================================

@st.cache_data(ttl=CACHE_TTL)
def _get_event_summary_cached() -> pd.DataFrame:
    try:
        return execute_query_df(EVENT_SUMMARY_QUERY)
    except Exception as e:
        logger.error(f"Error loading event summaries: {e}")
        return pd.DataFrame()


@st.cache_data(ttl=CACHE_TTL)
def _get_staff_performances_cached() -> pd.DataFrame:
    try:
        return execute_query_df(STAFF_PERFORMANCE_QUERY)
    except Exception as e:
        logger.error(f"Error loading staff performances: {e}")
        return pd.DataFrame()


@st.cache_data(ttl=CACHE_TTL)
def _get_id_weights_cached() -> pd.DataFrame:
    try:
        return execute_query_df(ID_WEIGHTS_QUERY)
    except Exception as e:
        logger.error(f"Error loading ID calculation periods: {e}")
        return pd.DataFrame()
