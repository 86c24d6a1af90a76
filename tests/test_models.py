"""Tests for record types and input coercion."""
from datetime import date, datetime

import pytest

from utils.event_performance.models import (
    DailyPerformance,
    EventRecord,
    IdWeights,
    StaffPerformance,
    build_staff_performances,
    summarize_event_actuals,
    to_count,
    to_date,
    week_of_month,
)


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


class TestToCount:
    @pytest.mark.parametrize("raw, expected", [
        (None, 0),
        ("", 0),
        ("  ", 0),
        (float("nan"), 0),
        (float("inf"), 0),
        (-3, 0),
        ("abc", 0),
        (True, 0),
        ("12", 12),
        (7.0, 7),
        (4, 4),
    ])
    def test_coerces_to_non_negative_int(self, raw, expected):
        assert to_count(raw) == expected

    def test_date_parsing(self):
        assert to_date("2024-03-05") == date(2024, 3, 5)
        assert to_date(datetime(2024, 3, 5, 10, 30)) == date(2024, 3, 5)
        assert to_date(None) is None


class TestWeekOfMonth:
    @pytest.mark.parametrize("d, expected", [
        (date(2024, 3, 1), 1),   # Friday; first week ends Saturday the 2nd
        (date(2024, 3, 2), 1),
        (date(2024, 3, 3), 2),
        (date(2024, 3, 31), 5),  # would be week 6, capped
        (date(2024, 9, 1), 1),   # month starting on Sunday
        (date(2024, 9, 8), 2),
    ])
    def test_sunday_start_weeks(self, d, expected):
        assert week_of_month(d) == expected


# ---------------------------------------------------------------------------
# EventRecord
# ---------------------------------------------------------------------------


class TestEventRecord:
    def test_derives_period_from_start_date(self):
        event = EventRecord(id="e1", venue="Osaka Hall", agency_name="Alpha",
                            start_date="2024-03-10", end_date="2024-03-12")
        assert (event.year, event.month, event.week_number) == (2024, 3, 3)
        assert event.event_days == 3
        assert event.year_month == "2024-03"
        assert event.year_month_week == "2024-03-03"
        assert event.period_display == "2024年3月第3週"

    def test_stored_period_is_kept(self):
        event = EventRecord(id="e1", venue="V", agency_name="A",
                            start_date=date(2024, 3, 10), end_date=date(2024, 3, 10),
                            year=2024, month=2, week_number=4)
        assert (event.month, event.week_number) == (2, 4)

    def test_counts_coerced(self):
        event = EventRecord(id="e1", venue="V", agency_name="A",
                            start_date=date(2024, 3, 1), end_date=date(2024, 3, 1),
                            actual_hs_total=None, actual_au_mnp="", target_hs_total=-4)
        assert event.actual_hs_total == 0
        assert event.actual_au_mnp == 0
        assert event.target_hs_total == 0
        assert not event.has_target

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            EventRecord(id="e1", venue="V", agency_name="A",
                        start_date=date(2024, 3, 5), end_date=date(2024, 3, 4))

    def test_missing_dates_rejected(self):
        with pytest.raises(ValueError):
            EventRecord(id="e1", venue="V", agency_name="A", start_date=None, end_date=date(2024, 3, 4))

    def test_hs_total_is_not_recomputed(self, event_factory):
        event = event_factory(hs=50, au_mnp=1, au_new=1)
        assert event.actual_hs_total == 50
        assert event.mnp_total + event.new_total == 2

    def test_keys_are_not_normalized(self):
        event = EventRecord(id="e1", venue=" Osaka Hall ", agency_name="alpha",
                            start_date=date(2024, 3, 1), end_date=date(2024, 3, 1))
        assert event.venue == " Osaka Hall "
        assert event.agency_name == "alpha"

    def test_from_row(self):
        row = {
            'id': 42, 'venue': 'Tokyo Dome', 'agency_name': 'Beta',
            'start_date': '2024-04-01', 'end_date': '2024-04-02',
            'year': None, 'month': None, 'week_number': None,
            'target_hs_total': '10', 'actual_hs_total': 11.0, 'actual_cellup': float('nan'),
            'include_cellup_in_hs_total': 't', 'created_at': '2024-04-03T09:00:00Z',
        }
        event = EventRecord.from_row(row)
        assert event.id == "42"
        assert event.month == 4
        assert event.target_hs_total == 10
        assert event.actual_hs_total == 11
        assert event.actual_cellup == 0
        assert event.include_cellup_in_hs_total is True
        assert event.created_at.year == 2024


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------


class TestStaffPerformance:
    def test_new_total_includes_cellup(self, staff_factory):
        staff = staff_factory(au_new=2, uq_new=1, cellup=3, au_mnp=4)
        assert staff.new_total == 6
        assert staff.mnp_total == 4

    def test_ltv_total(self, staff_factory):
        staff = staff_factory(credit_card=1, gold_card=2, gas=3)
        assert staff.ltv_total == 6

    def test_daily_channels_sum_to_totals(self):
        rows = [
            {'staff_name': 'Sato', 'event_id': 'e1', 'day_number': 2,
             'au_mnp_sp1': 1, 'au_mnp_sim': 2, 'au_hs_sp2': 3, 'cell_up_sp1': 1, 'gas': 1,
             'event': {'id': 'e1', 'year': 2024, 'month': 3, 'week_number': 2,
                       'venue': 'Osaka Hall', 'agency_name': 'Alpha'}},
            {'staff_name': 'Sato', 'event_id': 'e1', 'day_number': 1,
             'au_mnp_sp1': 4, 'uq_hs_sim': 1,
             'event': {'id': 'e1', 'year': 2024, 'month': 3, 'week_number': 2,
                       'venue': 'Osaka Hall', 'agency_name': 'Alpha'}},
            {'staff_name': '', 'event_id': 'e1', 'day_number': 1, 'au_mnp_sp1': 9,
             'event': {'id': 'e1'}},
        ]
        staff = build_staff_performances(rows)
        assert len(staff) == 1
        perf = staff[0]
        assert perf.au_mnp == 7
        assert perf.au_new == 3
        assert perf.uq_new == 1
        assert perf.cellup == 1
        assert perf.gas == 1
        assert perf.year_month_week == "2024-03-02"
        assert [d.day_number for d in perf.daily] == [1, 2]
        assert perf.channel_totals()['au_mnp'] == {'sp1': 5, 'sp2': 0, 'sim': 2}

    def test_channel_totals_without_daily_rows_use_sp1(self, staff_factory):
        totals = staff_factory(au_mnp=3, cellup=2).channel_totals()
        assert totals['au_mnp'] == {'sp1': 3, 'sp2': 0, 'sim': 0}
        assert totals['cellup'] == {'sp1': 2, 'sp2': 0, 'sim': 0}

    def test_start_date_carried_from_parent_event(self, staff_factory, event_factory):
        event = event_factory(month=4, day=12)
        assert staff_factory("Sato", event).start_date == date(2024, 4, 12)

    def test_daily_metric_total(self):
        daily = DailyPerformance(day_number=1, channels={'au_mnp': {'sp1': 1, 'sp2': '2', 'sim': None}})
        assert daily.metric_total('au_mnp') == 3
        assert daily.metric_total('cellup') == 0


class TestSummarizeEventActuals:
    def test_cellup_only_counted_when_flagged(self):
        staff = [
            StaffPerformance(staff_name="A", event_id="e1", year=2024, month=3,
                             au_mnp=2, uq_new=1, cellup=4),
            StaffPerformance(staff_name="B", event_id="e1", year=2024, month=3,
                             uq_mnp=1, au_new=2),
        ]
        assert summarize_event_actuals(staff)['actual_hs_total'] == 6
        flagged = summarize_event_actuals(staff, include_cellup_in_hs_total=True)
        assert flagged['actual_hs_total'] == 10
        assert flagged['actual_cellup'] == 4


# ---------------------------------------------------------------------------
# ID calculation periods
# ---------------------------------------------------------------------------


class TestIdWeights:
    def test_from_row_maps_all_fifteen_columns(self):
        row = {
            'id': 'p1',
            'calculation_period_start': '2024-04-01',
            'calculation_period_end': '2024-09-30',
            'au_mnp_sp1': 3, 'au_mnp_sp2': 2, 'au_mnp_sim': 1,
            'uq_mnp_sp1': 2.0, 'uq_hs_sim': '4', 'cellup_sp2': None, 'au_hs_sp1': -1,
        }
        weights = IdWeights.from_row(row)
        assert weights.weight('au_mnp', 'sp2') == 2
        assert weights.weight('uq_mnp', 'sp1') == 2
        assert weights.weight('uq_new', 'sim') == 4
        assert weights.weight('cellup', 'sp2') == 0
        assert weights.weight('au_new', 'sp1') == 0
        assert sum(len(channels) for channels in weights.weights.values()) == 15

    def test_covers_inclusive_and_open_ended(self):
        closed = IdWeights(id='a', period_start=date(2024, 4, 1), period_end=date(2024, 4, 30))
        assert closed.covers(date(2024, 4, 1))
        assert closed.covers(date(2024, 4, 30))
        assert not closed.covers(date(2024, 5, 1))
        assert not closed.covers(date(2024, 3, 31))

        open_ended = IdWeights(id='b', period_start=date(2024, 4, 1))
        assert open_ended.covers(date(2030, 1, 1))
        assert open_ended.label == "2024年4月 〜"
        assert closed.label == "2024年4月 〜 2024年4月"

    @pytest.mark.parametrize("start, end", [(None, None), ("2024-05-01", "2024-04-01")])
    def test_invalid_period_rejected(self, start, end):
        with pytest.raises(ValueError):
            IdWeights(id='x', period_start=start, period_end=end)
