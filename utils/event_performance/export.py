# utils/event_performance/export.py
"""
Formatted Excel Export for Event Performance

Creates an Excel report with:
- Summary sheet with overview KPIs and active filters
- Monthly / weekly / venue / agency / staff summary sheets
- Event list with achievement percentages

Uses openpyxl for formatting capabilities.
"""

import logging
from datetime import datetime
from io import BytesIO
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
from openpyxl import Workbook
from openpyxl.formatting.rule import CellIsRule
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .aggregation import GroupSummary, events_to_df, summaries_to_df
from .constants import EXCEL_STYLES
from .models import EventRecord

logger = logging.getLogger(__name__)

# (column, header, width)
SUMMARY_SHEET_COLUMNS = [
    ('key', 'Group', 22),
    ('count', 'Events', 10),
    ('mnp_total', 'MNP', 10),
    ('new_total', 'New', 10),
    ('total', 'MNP + New', 12),
    ('hs_total', 'HS total', 12),
    ('total_events', 'With target', 12),
    ('achieved_events', 'Achieved', 10),
    ('achievement_rate', 'Achievement %', 14),
    ('mnp_ratio', 'MNP ratio %', 12),
]

STAFF_SHEET_COLUMNS = [
    ('key', 'Staff', 22),
    ('count', 'Events', 10),
    ('mnp_total', 'MNP', 10),
    ('new_total', 'New (incl. cellup)', 18),
    ('cellup_total', 'Cellup', 10),
    ('ltv_total', 'LTV', 10),
    ('mnp_ratio', 'MNP ratio %', 12),
]

EVENT_SHEET_COLUMNS = [
    ('period_display', 'Period', 18),
    ('venue', 'Venue', 24),
    ('agency_name', 'Agency', 22),
    ('start_date', 'Start', 12),
    ('end_date', 'End', 12),
    ('event_days', 'Days', 8),
    ('target_hs_total', 'Target', 10),
    ('actual_hs_total', 'HS total', 10),
    ('achievement_percent', 'Achievement %', 14),
    ('actual_au_mnp', 'au MNP', 10),
    ('actual_uq_mnp', 'UQ MNP', 10),
    ('actual_au_new', 'au new', 10),
    ('actual_uq_new', 'UQ new', 10),
    ('actual_cellup', 'Cellup', 10),
]

PERCENT_COLUMNS = {'achievement_rate', 'mnp_ratio', 'achievement_percent'}


class EventPerformanceExport:
    """
    Excel report generator for event performance.

    Usage:
        exporter = EventPerformanceExport()
        excel_bytes = exporter.create_report(
            overview=overview,
            filters=spec.to_dict(),
            sheets={'Monthly': monthly_groups, 'Venues': venue_groups},
            events=filtered_events,
        )

        st.download_button(
            label="Download Report",
            data=excel_bytes,
            file_name="event_performance.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
    """

    def __init__(self):
        self.wb = None
        self._init_styles()

    def _init_styles(self):
        self.header_fill = PatternFill(
            start_color=EXCEL_STYLES['header_fill_color'],
            end_color=EXCEL_STYLES['header_fill_color'],
            fill_type='solid'
        )
        self.header_font = Font(bold=True, color=EXCEL_STYLES['header_font_color'], size=11)
        self.title_font = Font(bold=True, size=16)
        self.subtitle_font = Font(bold=True, size=12)

        thin = Side(style='thin', color='000000')
        self.cell_border = Border(left=thin, right=thin, top=thin, bottom=thin)

        self.center_align = Alignment(horizontal='center', vertical='center')
        self.right_align = Alignment(horizontal='right', vertical='center')

    # =========================================================================
    # MAIN EXPORT METHOD
    # =========================================================================

    def create_report(
        self,
        overview: Dict,
        filters: Dict,
        sheets: Optional[Dict[str, Sequence[GroupSummary]]] = None,
        staff_groups: Optional[Sequence[GroupSummary]] = None,
        events: Optional[Sequence[EventRecord]] = None
    ) -> BytesIO:
        """
        Build the workbook.

        Args:
            overview: EventMetrics.calculate_overview_metrics() result
            filters: Active filter settings (FilterSpec.to_dict())
            sheets: Sheet title → group summaries (monthly, weekly, venue ...)
            staff_groups: Optional per-staff summaries
            events: Optional filtered event list

        Returns:
            BytesIO containing the .xlsx file
        """
        self.wb = Workbook()

        self._create_cover_sheet(overview, filters)

        for title, groups in (sheets or {}).items():
            self._write_table(title, summaries_to_df(groups), SUMMARY_SHEET_COLUMNS)

        if staff_groups:
            self._write_table('Staff', summaries_to_df(staff_groups), STAFF_SHEET_COLUMNS)

        if events:
            self._write_table('Events', events_to_df(events), EVENT_SHEET_COLUMNS)

        output = BytesIO()
        self.wb.save(output)
        output.seek(0)

        logger.info(f"Excel report created ({len(self.wb.sheetnames)} sheets)")
        return output

    # =========================================================================
    # SHEETS
    # =========================================================================

    def _create_cover_sheet(self, overview: Dict, filters: Dict):
        ws = self.wb.active
        ws.title = "Summary"

        row = 1
        ws.cell(row=row, column=1, value="Event Performance Report").font = self.title_font
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=3)
        row += 2

        ws.cell(row=row, column=1, value="Generated:")
        ws.cell(row=row, column=2, value=datetime.now().strftime('%Y-%m-%d %H:%M'))
        row += 2

        ws.cell(row=row, column=1, value="Filters").font = self.subtitle_font
        row += 1
        for key, value in filters.items():
            ws.cell(row=row, column=1, value=key)
            ws.cell(row=row, column=2, value=str(value) if value not in (None, '') else '-')
            row += 1
        row += 1

        ws.cell(row=row, column=1, value="Key Performance Indicators").font = self.subtitle_font
        row += 1

        kpi_rows: List[Tuple[str, str]] = [
            ("Events", f"{overview.get('event_count', 0):,}"),
            ("Events with target", f"{overview.get('total_events', 0):,}"),
            ("Achieved events", f"{overview.get('achieved_events', 0):,}"),
            ("Achievement rate", f"{overview.get('achievement_rate', 0)}%"),
            ("Target total", f"{overview.get('total_target', 0):,}"),
            ("Actual total", f"{overview.get('total_actual', 0):,}"),
            ("MNP", f"{overview.get('total_mnp', 0):,}"),
            ("New", f"{overview.get('total_new', 0):,}"),
            ("MNP ratio", f"{overview.get('mnp_ratio', 0)}%"),
        ]
        for label, value in kpi_rows:
            ws.cell(row=row, column=1, value=label)
            ws.cell(row=row, column=2, value=value).alignment = self.right_align
            row += 1

        ws.column_dimensions['A'].width = 25
        ws.column_dimensions['B'].width = 20

    def _write_table(self, title: str, df: pd.DataFrame, columns: List[Tuple[str, str, int]]):
        """Header row + one row per record; missing columns are skipped."""
        ws = self.wb.create_sheet(title[:31])
        columns = [c for c in columns if c[0] in df.columns]

        for col_idx, (_, header, width) in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = self.center_align
            cell.border = self.cell_border
            ws.column_dimensions[get_column_letter(col_idx)].width = width

        for row_idx, record in enumerate(df.to_dict('records'), 2):
            for col_idx, (col_name, _, _) in enumerate(columns, 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=record.get(col_name))
                cell.border = self.cell_border
                if col_name in PERCENT_COLUMNS:
                    cell.number_format = EXCEL_STYLES['percent_format']
                    cell.alignment = self.right_align
                elif col_name in ('start_date', 'end_date'):
                    cell.number_format = EXCEL_STYLES['date_format']
                elif isinstance(cell.value, int):
                    cell.number_format = EXCEL_STYLES['count_format']

        last_row = len(df) + 1
        for col_idx, (col_name, _, _) in enumerate(columns, 1):
            if col_name in ('achievement_rate', 'achievement_percent') and last_row > 1:
                letter = get_column_letter(col_idx)
                ws.conditional_formatting.add(
                    f"{letter}2:{letter}{last_row}",
                    CellIsRule(operator='greaterThanOrEqual', formula=['100'],
                               fill=PatternFill(start_color='C6EFCE', end_color='C6EFCE', fill_type='solid'))
                )

        ws.freeze_panes = 'A2'
