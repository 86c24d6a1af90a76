"""Tests for the grouping engine and trend matrices."""
import pytest

from utils.event_performance.aggregation import (
    accumulate_staff,
    by_venue,
    compare_ranges,
    comparison_to_df,
    event_weekly_breakdown,
    group_by,
    group_by_agency,
    group_by_month,
    group_by_staff,
    group_by_venue,
    group_by_week,
    staff_weekly_stats,
    summaries_to_df,
    venue_monthly_trend,
    venue_trend_to_df,
    weekly_breakdown_by_month,
)
from utils.event_performance.filters import PanelRange


# ---------------------------------------------------------------------------
# group_by
# ---------------------------------------------------------------------------


class TestGroupBy:
    def test_empty_input(self):
        assert group_by([], by_venue) == []
        assert group_by_month([]) == []

    def test_monthly_achievement(self, march_events):
        (march,) = group_by_month(march_events)
        assert march.key == "2024-03"
        assert march.count == 3
        assert march.total_events == 2
        assert march.achieved_events == 1
        assert march.achievement_rate == 50

    def test_sums(self, march_events):
        (march,) = group_by_month(march_events)
        assert march.mnp_total == 5 + 1 + 3
        assert march.new_total == 7 + 2 + 4
        assert march.hs_total == 12 + 3 + 7
        assert march.target_total == 15
        assert march.average_hs == 7  # 22 / 3 rounds half up

    def test_time_keys_are_chronological(self, multi_month_events):
        keys = [g.key for g in group_by_month(list(reversed(multi_month_events)))]
        assert keys == sorted(keys)
        assert keys[0] == "2023-11"

    def test_week_groups(self, event_factory):
        events = [event_factory(day=10), event_factory(day=1), event_factory(day=11)]
        groups = group_by_week(events)
        assert [(g.key, g.label, g.count) for g in groups] == [
            ("2024-03-01", "第1週", 1),
            ("2024-03-03", "第3週", 2),
        ]
        assert groups[0].period == "2024-03"

    def test_categorical_order_by_total_is_stable(self, event_factory):
        events = [
            event_factory(venue="A", au_mnp=2),
            event_factory(venue="B", au_mnp=5),
            event_factory(venue="C", au_new=2),
        ]
        assert [g.key for g in group_by_venue(events)] == ["B", "A", "C"]
        assert [g.key for g in group_by_venue(events, order='insertion')] == ["A", "B", "C"]

    def test_agency_groups(self, march_events):
        groups = group_by_agency(march_events)
        assert [(g.key, g.count) for g in groups] == [("Alpha", 2), ("Beta", 1)]

    def test_achieved_never_exceeds_total(self, march_events, multi_month_events):
        for group in group_by_venue(march_events + multi_month_events):
            assert group.achieved_events <= group.total_events
            assert 0 <= group.achievement_rate <= 100

    def test_unknown_order_rejected(self, march_events):
        with pytest.raises(ValueError):
            group_by(march_events, by_venue, order='random')

    def test_input_not_mutated(self, march_events):
        before = [e.to_dict() for e in march_events]
        group_by_month(march_events)
        assert [e.to_dict() for e in march_events] == before

    def test_summaries_to_df(self, march_events):
        df = summaries_to_df(group_by_venue(march_events))
        assert list(df['key']) == ["Osaka Hall", "Nagoya Mall", "Tokyo Dome"]
        assert summaries_to_df([]).empty
        assert 'achievement_rate' in summaries_to_df([]).columns


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------


class TestStaffGrouping:
    def test_group_by_staff(self, staff_factory, event_factory):
        first = event_factory()
        second = event_factory()
        staff = [
            staff_factory("Sato", first, au_mnp=2, cellup=1, gas=1),
            staff_factory("Sato", second, uq_new=3),
            staff_factory("Suzuki", first, au_mnp=1),
            staff_factory("", first, au_mnp=9),
        ]
        groups = group_by_staff(staff)
        assert [g.key for g in groups] == ["Sato", "Suzuki"]
        sato = groups[0]
        assert sato.count == 2
        assert sato.mnp_total == 2
        assert sato.new_total == 4
        assert sato.cellup_total == 1
        assert sato.ltv_total == 1

    def test_same_event_counted_once(self, staff_factory, event_factory):
        event = event_factory()
        groups = group_by(
            [staff_factory("Sato", event), staff_factory("Sato", event)],
            lambda s: s.staff_name,
            metric_fn=accumulate_staff,
        )
        assert groups[0].count == 1

    def test_weekly_stats_keep_months_apart(self, staff_factory, event_factory):
        march = event_factory(month=3, day=1)
        april = event_factory(month=4, day=1)
        rows = staff_weekly_stats([
            staff_factory("Sato", april, au_mnp=1),
            staff_factory("Sato", march, au_mnp=2, cellup=1),
            staff_factory("Suzuki", march, au_new=1),
        ])
        assert [r['key'] for r in rows] == ["2024-03-01", "2024-04-01"]
        assert rows[0]['staff'] == {"Sato": {'mnp': 2, 'new': 1}, "Suzuki": {'mnp': 0, 'new': 1}}
        assert rows[1]['week'] == "第1週"


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


class TestTrends:
    def test_venue_monthly_trend_zero_fills(self, multi_month_events):
        rows = venue_monthly_trend(multi_month_events)
        assert len(rows) == 6
        first = rows[0]
        assert first['month'] == "2023-11"
        assert first['venues']["Tokyo Dome"] == {'mnp': 0, 'new': 0, 'total': 0}
        assert first['venues']["Osaka Hall"] == {'mnp': 0, 'new': 2, 'total': 2}

    def test_venue_monthly_trend_months_subset(self, multi_month_events):
        rows = venue_monthly_trend(multi_month_events, months=["2024-01", "2024-02"])
        assert [r['month'] for r in rows] == ["2024-01", "2024-02"]
        df = venue_trend_to_df(rows)
        assert len(df) == 4

    def test_weekly_breakdown(self, event_factory):
        events = [
            event_factory(day=10, venue="Osaka Hall", agency="Alpha", au_mnp=2, au_new=1),
            event_factory(day=11, venue="Osaka Hall", agency="Alpha", uq_mnp=1),
            event_factory(day=1, venue="Tokyo Dome", agency="Beta", uq_new=4),
            event_factory(month=4, day=1, venue="Tokyo Dome", agency="Beta", uq_new=9),
        ]
        rows = event_weekly_breakdown(events, 2024, 3)
        assert [r['week_number'] for r in rows] == [1, 3]
        assert rows[1]['venues'] == [{'venue': "Osaka Hall", 'mnp': 3, 'new': 1}]
        assert rows[1]['total'] == 4
        assert rows[0]['total_new'] == 4

        only_alpha = event_weekly_breakdown(events, 2024, 3, agencies=["Alpha"])
        assert [r['week_number'] for r in only_alpha] == [3]

    def test_weekly_breakdown_empty_month(self, march_events):
        assert event_weekly_breakdown(march_events, 2020, 1) == []

    def test_weekly_breakdown_by_month_follows_range(self, event_factory):
        events = [
            event_factory(day=10, venue="Osaka Hall", agency="Alpha", au_mnp=2),
            event_factory(month=4, day=1, venue="Tokyo Dome", agency="Beta", uq_new=9),
            event_factory(month=5, day=1, venue="Tokyo Dome", agency="Beta", uq_new=1),
        ]
        both = weekly_breakdown_by_month(events, "2024-03", "2024-04")
        assert [month for month, _ in both] == ["2024-03", "2024-04"]
        assert both[1][1][0]['total'] == 9

        assert [m for m, _ in weekly_breakdown_by_month(events, start="2024-04")] == ["2024-04", "2024-05"]
        assert [m for m, _ in weekly_breakdown_by_month(events, agencies=["Alpha"])] == ["2024-03"]
        assert weekly_breakdown_by_month(events, "2023-01", "2023-12") == []


# ---------------------------------------------------------------------------
# Range comparison
# ---------------------------------------------------------------------------


class TestCompareRanges:
    # multi_month_events totals (mnp + new) run 2..7 from 2023-11 to 2024-04
    LEFT = PanelRange().set_manual("2023-11", "2024-01")
    RIGHT = PanelRange().set_manual("2024-02", "2024-04")

    def test_venues_pair_by_key(self, multi_month_events):
        comparison = compare_ranges(multi_month_events, self.LEFT, self.RIGHT, grouping='venue')
        assert [g.key for g in comparison.left] == ["Osaka Hall", "Tokyo Dome"]
        assert [g.key for g in comparison.right] == ["Tokyo Dome", "Osaka Hall"]
        assert [(r.key, r.value('left'), r.value('right'), r.diff()) for r in comparison.rows] == [
            ("Osaka Hall", 6, 6, 0),
            ("Tokyo Dome", 3, 12, 9),
        ]
        assert comparison.totals() == (9, 18)

    def test_keys_on_one_side_only(self, multi_month_events):
        comparison = compare_ranges(multi_month_events, self.LEFT, self.RIGHT, grouping='agency')
        assert [(r.key, r.left is None, r.right is None) for r in comparison.rows] == [
            ("Alpha", False, True),
            ("Beta", True, False),
        ]
        assert [r.diff() for r in comparison.rows] == [-9, 18]

    def test_months_pair_by_position(self, multi_month_events):
        right = PanelRange().set_manual("2024-03", "2024-04")
        comparison = compare_ranges(multi_month_events, self.LEFT, right, grouping='month')
        assert len(comparison.rows) == 3
        first, _, last = comparison.rows
        assert (first.left.key, first.right.key) == ("2023-11", "2024-03")
        assert last.right is None
        assert last.diff() == -4

        df = comparison_to_df(comparison)
        assert list(df.columns) == ['left_group', 'left', 'right_group', 'right', 'diff']
        assert df.iloc[0].to_dict() == {
            'left_group': "2023-11", 'left': 2, 'right_group': "2024-03", 'right': 6, 'diff': 4,
        }

    def test_unbounded_side_covers_everything(self, multi_month_events):
        comparison = compare_ranges(multi_month_events, PanelRange(), self.RIGHT, grouping='venue')
        assert comparison.totals() == (27, 18)

    def test_staff_grouping(self, staff_factory, event_factory):
        march, april = event_factory(month=3), event_factory(month=4)
        staff = [
            staff_factory("Sato", march, au_mnp=2),
            staff_factory("Sato", april, au_mnp=5),
            staff_factory("Suzuki", april, uq_new=1),
        ]
        comparison = compare_ranges(
            staff,
            PanelRange().set_manual("2024-03", "2024-03"),
            PanelRange().set_manual("2024-04", "2024-04"),
            grouping='staff',
        )
        assert [(r.key, r.diff('mnp_total')) for r in comparison.rows] == [("Sato", 3), ("Suzuki", 0)]

    def test_unknown_grouping(self, multi_month_events):
        with pytest.raises(ValueError):
            compare_ranges(multi_month_events, self.LEFT, self.RIGHT, grouping='region')
