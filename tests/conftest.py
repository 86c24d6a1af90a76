"""Shared fixtures for all tests."""
import itertools
from datetime import date, timedelta

import pytest

from utils.event_performance.models import EventRecord, StaffPerformance

_ids = itertools.count(1)


def make_event(
    year=2024,
    month=3,
    day=5,
    days=2,
    venue="Osaka Hall",
    agency="Alpha",
    target=0,
    hs=0,
    au_mnp=0,
    uq_mnp=0,
    au_new=0,
    uq_new=0,
    cellup=0,
    **extra
):
    start = date(year, month, day)
    return EventRecord(
        id=extra.pop('id', f"ev-{next(_ids)}"),
        venue=venue,
        agency_name=agency,
        start_date=start,
        end_date=start + timedelta(days=days - 1),
        target_hs_total=target,
        actual_hs_total=hs,
        actual_au_mnp=au_mnp,
        actual_uq_mnp=uq_mnp,
        actual_au_new=au_new,
        actual_uq_new=uq_new,
        actual_cellup=cellup,
        **extra
    )


def make_staff(name="Sato", event=None, **counts):
    event = event or make_event()
    return StaffPerformance(
        staff_name=name,
        event_id=event.id,
        year=event.year,
        month=event.month,
        week_number=event.week_number,
        venue=event.venue,
        agency_name=event.agency_name,
        start_date=event.start_date,
        **counts
    )


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def staff_factory():
    return make_staff


@pytest.fixture
def march_events():
    """Achieved, missed and untargeted events in 2024-03."""
    return [
        make_event(target=10, hs=12, au_mnp=5, au_new=7, venue="Osaka Hall", agency="Alpha"),
        make_event(target=5, hs=3, uq_mnp=1, uq_new=2, venue="Tokyo Dome", agency="Beta"),
        make_event(target=0, hs=7, au_mnp=3, uq_new=4, venue="Nagoya Mall", agency="Alpha"),
    ]


@pytest.fixture
def multi_month_events():
    """One event per month from 2023-11 to 2024-04, venues alternating."""
    periods = [(2023, 11), (2023, 12), (2024, 1), (2024, 2), (2024, 3), (2024, 4)]
    return [
        make_event(
            year=y, month=m, day=10,
            venue="Osaka Hall" if i % 2 == 0 else "Tokyo Dome",
            agency="Alpha" if i < 3 else "Beta",
            target=10, hs=8 + i, au_mnp=i, au_new=2,
        )
        for i, (y, m) in enumerate(periods)
    ]
