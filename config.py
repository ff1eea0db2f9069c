# --- START OF FILE config.py ---

# --- Template Resource Configuration ---
# Directory holding the pre-authored template workbooks (see template_builder.py)
TEMPLATE_DIR = "templates"
# Bump when a template layout changes; field_placement.py keys its coordinate maps on it
TEMPLATE_REVISION = "2025.1"

# Template id -> file name inside TEMPLATE_DIR
TEMPLATE_FILES = {
    "title": "title_template.xlsx",
    "daily": "daily_template.xlsx",
    "weekly": "weekly_template.xlsx",
    "monthly": "monthly_report_template.xlsx",
}

# Template id -> (first row, last row) of the reusable fragment, 1-based and inclusive
FRAGMENT_ROWS = {
    "title": (1, 4),
    "daily": (1, 16),
    "weekly": (1, 15),
    "monthly": (1, 36),
}

# Templates are authored on columns A..X
TEMPLATE_MAX_COLUMN = 24
# Specify sheet name, or None to use the active sheet
TEMPLATE_SHEET_NAME = None

# --- Pagination Configuration ---
# A printed page holds the title block plus two record blocks
BLOCKS_PER_PAGE = 3
# Blank rows left between two consecutive blocks
BLOCK_SEPARATOR_ROWS = 1

# --- Page Setup Configuration ---
PAPER_SIZE = 9  # A4
PAGE_ORIENTATION = "portrait"
FIT_TO_WIDTH = 1
FIT_TO_HEIGHT = 0  # 0 = unconstrained
DEFAULT_COL_WIDTH = 8.43
DEFAULT_ROW_HEIGHT = 15.0
OUTPUT_SHEET_TITLE = "支援記録"

# --- Merge Discovery Configuration ---
# Rows scanned below a fragment when walking a merge outward from its master cell
MERGE_SCAN_LOOKAHEAD_ROWS = 2
# Never walk a merge further right than this column
MERGE_SCAN_MAX_COLUMNS = 30

# --- Field Placement Configuration ---
# Locate the date / recorder rows by their label text instead of the static map.
# Switch off once every deployed template matches TEMPLATE_REVISION row for row.
LEGACY_LABEL_SCAN = True
# Columns searched for label text during the scan
LABEL_SCAN_MAX_COLUMN = 24
CHECK_MARK = "✓"

# --- Export Configuration ---
REPORT_KIND = "在宅就労支援記録"
MONTHLY_REPORT_KIND = "在宅支援達成度評価"
OUTPUT_EXTENSION = "xlsx"
OUTPUT_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
UNSET_NAME = "未設定"

# --- END OF FILE config.py ---
