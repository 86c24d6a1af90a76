"""Tests for the Excel report."""
from openpyxl import load_workbook

from utils.event_performance.aggregation import group_by_month, group_by_staff, group_by_venue
from utils.event_performance.export import EventPerformanceExport
from utils.event_performance.filters import FilterSpec
from utils.event_performance.metrics import EventMetrics


def test_report_sheets(march_events, staff_factory):
    staff = [staff_factory("Sato", march_events[0], au_mnp=2, gas=1)]
    output = EventPerformanceExport().create_report(
        overview=EventMetrics(march_events).calculate_overview_metrics(),
        filters=FilterSpec(year=2024).to_dict(),
        sheets={'Monthly': group_by_month(march_events), 'Venues': group_by_venue(march_events)},
        staff_groups=group_by_staff(staff),
        events=march_events,
    )

    wb = load_workbook(output)
    assert wb.sheetnames == ["Summary", "Monthly", "Venues", "Staff", "Events"]

    monthly = wb["Monthly"]
    assert monthly["A1"].value == "Group"
    assert monthly["A2"].value == "2024-03"
    assert monthly.max_row == 2

    venues = wb["Venues"]
    assert [venues.cell(row=r, column=1).value for r in range(2, 5)] == [
        "Osaka Hall", "Nagoya Mall", "Tokyo Dome",
    ]

    events = wb["Events"]
    headers = [c.value for c in events[1]]
    assert "Achievement %" in headers
    percent_col = headers.index("Achievement %") + 1
    assert events.cell(row=2, column=percent_col).value == 120


def test_report_without_data():
    output = EventPerformanceExport().create_report(
        overview=EventMetrics([]).calculate_overview_metrics(),
        filters=FilterSpec().to_dict(),
    )
    wb = load_workbook(output)
    assert wb.sheetnames == ["Summary"]
    assert wb["Summary"]["A1"].value == "Event Performance Report"
