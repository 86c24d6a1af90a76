# utils/event_performance/constants.py
"""
Constants for Event Performance Module

Centralized configuration for:
- Filter sentinels
- Performance level bands
- Ranking / pagination defaults
- Color schemes
- Chart settings
"""

# =====================================================================
# FILTER SENTINELS
# =====================================================================

ALL = 'all'

ACHIEVEMENT_FILTERS = ['all', 'achieved', 'not_achieved']

# List sort orders
SORT_OPTIONS = {
    "date": "Newest first",
    "actual_hs_total": "HS total (high → low)",
    "venue": "Venue (A → Z)",
}

# Group ordering modes
ORDER_BY_KEY = 'key'
ORDER_BY_INSERTION = 'insertion'
ORDER_BY_TOTAL = 'total'

# =====================================================================
# PERFORMANCE LEVELS
# =====================================================================

# (name, display label, lower bound, upper bound inclusive; None = open)
PERFORMANCE_LEVELS = [
    ("low", "Low (0-5)", 0, 5),
    ("standard", "Standard (6-15)", 6, 15),
    ("good", "Good (16-25)", 16, 25),
    ("excellent", "Excellent (26-35)", 26, 35),
    ("outstanding", "Outstanding (36+)", 36, None),
]

# =====================================================================
# METRIC FIELDS
# =====================================================================

TARGET_FIELDS = [
    'target_hs_total',
    'target_au_mnp',
    'target_uq_mnp',
    'target_au_new',
    'target_uq_new',
]

ACTUAL_FIELDS = [
    'actual_hs_total',
    'actual_au_mnp',
    'actual_uq_mnp',
    'actual_au_new',
    'actual_uq_new',
    'actual_cellup',
]

# Staff metrics split across sub-channels
CHANNEL_METRICS = ['au_mnp', 'uq_mnp', 'au_new', 'uq_new', 'cellup']
CHANNELS = ['sp1', 'sp2', 'sim']

# Storage column prefix per metric (new signups are stored as "hs")
CHANNEL_COLUMN_PREFIX = {
    'au_mnp': 'au_mnp',
    'uq_mnp': 'uq_mnp',
    'au_new': 'au_hs',
    'uq_new': 'uq_hs',
    'cellup': 'cell_up',
}

# id_calculation_data column prefix per metric (cellup has no underscore here)
ID_WEIGHT_COLUMN_PREFIX = {
    'au_mnp': 'au_mnp',
    'uq_mnp': 'uq_mnp',
    'au_new': 'au_hs',
    'uq_new': 'uq_hs',
    'cellup': 'cellup',
}

ID_WEIGHT_COLUMNS = [
    f"{ID_WEIGHT_COLUMN_PREFIX[metric]}_{channel}"
    for metric in CHANNEL_METRICS
    for channel in CHANNELS
]

LTV_FIELDS = [
    'credit_card',
    'gold_card',
    'ji_bank_account',
    'warranty',
    'ott',
    'electricity',
    'gas',
]

# Metrics accepted by rank_top_n
RANKABLE_METRICS = ['total', 'hs_total', 'mnp_total', 'new_total', 'count', 'ltv_total']

# =====================================================================
# WINDOWS & LIMITS
# =====================================================================

DEFAULT_PAGE_SIZE = 10

LEADERBOARD_SIZE = 5

# Latest periods shown when a panel has no explicit range
DEFAULT_PERIOD_WINDOW = 8

# Bars shown in venue / agency charts
TOP_CATEGORY_BARS = 10

# Week-of-month range stored on events
MIN_WEEK = 1
MAX_WEEK = 5

# =====================================================================
# COLOR SCHEME
# =====================================================================

COLORS = {
    "mnp": "#4abf79",
    "new": "#ffd942",
    "total": "#3dae6c",
    "target": "#d62728",
    "achievement_good": "#28a745",
    "achievement_bad": "#dc3545",
    "no_target": "#9E9E9E",
    "text_dark": "#22211A",
    "grid": "#e0e0e0",
}

LEVEL_COLORS = ["#9E9E9E", "#ffd942", "#a6e09e", "#4abf79", "#2c9b5e"]

# =====================================================================
# CHART DIMENSIONS
# =====================================================================

CHART_WIDTH = 800
CHART_HEIGHT = 360

PIE_CHART_WIDTH = 360
PIE_CHART_HEIGHT = 300

# =====================================================================
# EXPORT SETTINGS
# =====================================================================

EXCEL_STYLES = {
    "header_fill_color": "4abf79",
    "header_font_color": "FFFFFF",
    "count_format": '#,##0',
    "percent_format": '0"%"',
    "date_format": 'YYYY-MM-DD',
}
