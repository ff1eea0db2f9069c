"""
Generates the pre-authored template workbooks used by the report engine.

Every template is laid out on columns A..X. The Field Placement Map
(field_placement.py) addresses these layouts cell for cell: a change here
must come with a TEMPLATE_REVISION bump and a matching coordinate map.

  title    rows 1-4   report heading, subject, period, creation date
  daily    rows 1-16  one daily support record
  weekly   rows 1-15  one weekly evaluation
  monthly  rows 1-36  single-record monthly achievement evaluation
"""

import logging
import os
from typing import Dict, List, Optional, Tuple

from openpyxl import Workbook
from openpyxl.comments import Comment
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.cell import range_boundaries
from openpyxl.worksheet.properties import PageSetupProperties

import config as cfg

# --- Style Constants ---
FONT_FAMILY = "游ゴシック"
_LABEL_BG = "F2F2F2"
_HEADING_BG = "D9E1F2"

FILL_LABEL = PatternFill(fill_type="solid", fgColor=_LABEL_BG)
FILL_HEADING = PatternFill(fill_type="solid", fgColor=_HEADING_BG)

_THIN = Side(style="thin", color="000000")
BORDER_THIN = Border(top=_THIN, bottom=_THIN, left=_THIN, right=_THIN)

FONT_TITLE = Font(name=FONT_FAMILY, size=14, bold=True)
FONT_HEADING = Font(name=FONT_FAMILY, size=11, bold=True)
FONT_LABEL = Font(name=FONT_FAMILY, size=9, bold=True)
FONT_VALUE = Font(name=FONT_FAMILY, size=10)

COLUMN_WIDTH = 3.75

# (kind, range, text); kinds: title, heading, label, value, plain
Box = Tuple[str, str, Optional[str]]

TITLE_LAYOUT: List[Box] = [
    ("title", "A1:X1", "在宅における就労支援記録・評価"),
    ("label", "A2:C2", "対象者名"), ("value", "D2:L2", None),
    ("label", "M2:P2", "受給者証番号"), ("value", "Q2:X2", None),
    ("label", "A3:C3", "対象期間"), ("value", "D3:X3", None),
    ("label", "A4:C4", "作成日"), ("value", "D4:L4", None),
    ("label", "M4:P4", "事業所確認"), ("value", "Q4:X4", None),
]
TITLE_ROW_HEIGHTS = {1: 30, 2: 22, 3: 22, 4: 22}

DAILY_LAYOUT: List[Box] = [
    ("heading", "A1:X1", "日次支援記録"),
    ("label", "A2:C2", "実施日"), ("value", "D2:K2", None),
    ("label", "L2:N2", "実施時間"), ("value", "O2:X2", None),
    ("label", "A3:C3", "休憩時間"), ("value", "D3:K3", None),
    ("label", "L3:N3", "支援方法"), ("value", "O3:X3", None),
    ("label", "A4:C6", "作業内容"), ("value", "D4:X6", None),
    ("label", "A7:C11", "支援内容"), ("value", "D7:X11", None),
    ("label", "A12:C15", "助言・体調"), ("value", "D12:X15", None),
    ("label", "A16:C16", "記録者"), ("value", "D16:K16", None),
    ("label", "L16:N16", "確認印"), ("value", "O16:X16", None),
]
DAILY_ROW_HEIGHTS = {1: 20, 2: 20, 3: 20, 16: 22}
DAILY_NOTES = {"L3": "訪問・電話・その他から選択"}

WEEKLY_LAYOUT: List[Box] = [
    ("heading", "A1:X1", "週次評価"),
    ("label", "A2:C2", "実施日"), ("value", "D2:K2", None),
    ("label", "L2:N2", "評価方法"), ("value", "O2:X2", None),
    ("label", "A3:C3", "対象期間"), ("value", "D3:X3", None),
    ("label", "A4:C12", "評価内容"), ("value", "D4:X12", None),
    ("label", "A13:C13", "前回評価日"), ("value", "D13:X13", None),
    ("label", "A14:C14", "記録者"), ("value", "D14:K14", None),
    ("label", "L14:N14", "確認者"), ("value", "O14:X14", None),
    ("label", "A15:C15", "備考"), ("value", "D15:X15", None),
]
WEEKLY_ROW_HEIGHTS = {1: 20, 2: 20, 3: 20, 14: 22}

MONTHLY_LAYOUT: List[Box] = [
    ("title", "A1:P1", "在宅支援達成度評価"),
    ("value", "S1:U1", None), ("value", "V1", None), ("plain", "W1", "年"), ("value", "X1", None),
    ("label", "A4:C4", "対象者名"), ("value", "D4:L4", None),
    ("label", "M4:P4", "受給者証番号"), ("value", "Q4:X4", None),
    ("label", "A6:C6", "実施日"), ("value", "D6:G6", None), ("plain", "H6", "年"),
    ("value", "I6:J6", None), ("plain", "K6", "月"), ("value", "L6:M6", None), ("plain", "N6", "日"),
    ("label", "O6:P6", "時間"), ("value", "Q6:T6", None), ("plain", "U6", "〜"), ("value", "V6:X6", None),
    ("label", "A7:C7", "実施方法"), ("value", "D7", None), ("plain", "E7", "通所"),
    ("value", "F7", None), ("plain", "G7", "訪問"), ("value", "H7", None),
    ("plain", "I7:J7", "その他（"), ("value", "K7:W7", None), ("plain", "X7", "）"),
    ("heading", "A8:X8", "評価内容"),
    ("label", "A9:C11", "訓練目標"), ("value", "D9:X11", None),
    ("label", "A12:C14", "取組内容"), ("value", "D12:X14", None),
    ("label", "A15:C18", "訓練目標に対する達成度"), ("value", "D15:X18", None),
    ("label", "A19:C21", "課題"), ("value", "D19:X21", None),
    ("label", "A22:C24", "今後における課題の改善方針"), ("value", "D22:X24", None),
    ("label", "A25:C27", "健康・体調面での留意事項"), ("value", "D25:X27", None),
    ("label", "A28:C30", "その他特記事項"), ("value", "D28:X30", None),
    ("label", "A31:C33", "在宅就労継続の妥当性"), ("value", "D31:X33", None),
    ("label", "A34:C34", "評価実施者"), ("value", "D34:L34", None),
    ("label", "M34:R34", "前回の達成度評価日"), ("value", "S34:T34", None), ("plain", "U34", "年"),
    ("value", "V34", None), ("plain", "W34", "月"), ("value", "X34", None),
    ("label", "M36:P36", "対象者署名"), ("value", "Q36:X36", None),
]
MONTHLY_ROW_HEIGHTS = {1: 30, 4: 22, 6: 22, 7: 22, 8: 20, 34: 22, 36: 26}
MONTHLY_NUMBER_FORMATS = {"X1": '0"月分"', "X34": '0"日"'}

TEMPLATE_LAYOUTS: Dict[str, Tuple[List[Box], Dict[int, float]]] = {
    "title": (TITLE_LAYOUT, TITLE_ROW_HEIGHTS),
    "daily": (DAILY_LAYOUT, DAILY_ROW_HEIGHTS),
    "weekly": (WEEKLY_LAYOUT, WEEKLY_ROW_HEIGHTS),
    "monthly": (MONTHLY_LAYOUT, MONTHLY_ROW_HEIGHTS),
}


def _box(ws, kind: str, cell_range: str, text: Optional[str]) -> None:
    """Styles every cell of cell_range, writes text into its top-left cell and merges it."""
    min_col, min_row, max_col, max_row = range_boundaries(cell_range)
    is_merge = (min_col, min_row) != (max_col, max_row)

    if kind == "title":
        font, fill, border = FONT_TITLE, None, None
        alignment = Alignment(horizontal="center", vertical="center", wrap_text=is_merge)
    elif kind == "heading":
        font, fill, border = FONT_HEADING, FILL_HEADING, BORDER_THIN
        alignment = Alignment(horizontal="left", vertical="center", wrap_text=is_merge)
    elif kind == "label":
        font, fill, border = FONT_LABEL, FILL_LABEL, BORDER_THIN
        alignment = Alignment(horizontal="center", vertical="center", wrap_text=is_merge)
    elif kind == "plain":
        font, fill, border = FONT_VALUE, None, BORDER_THIN
        alignment = Alignment(horizontal="center", vertical="center", wrap_text=is_merge)
    else:
        font, fill, border = FONT_VALUE, None, BORDER_THIN
        vertical = "top" if max_row > min_row else "center"
        alignment = Alignment(horizontal="left", vertical=vertical, wrap_text=is_merge)

    for row in range(min_row, max_row + 1):
        for col in range(min_col, max_col + 1):
            c = ws.cell(row=row, column=col)
            c.font = font
            c.alignment = alignment
            if fill is not None:
                c.fill = fill
            if border is not None:
                c.border = border

    if text is not None:
        ws.cell(row=min_row, column=min_col).value = text
    if is_merge:
        ws.merge_cells(cell_range)


def _apply_print(ws) -> None:
    ws.page_setup.paperSize = cfg.PAPER_SIZE
    ws.page_setup.orientation = cfg.PAGE_ORIENTATION
    ws.page_setup.fitToWidth = cfg.FIT_TO_WIDTH
    ws.page_setup.fitToHeight = cfg.FIT_TO_HEIGHT
    if ws.sheet_properties.pageSetUpPr is None:
        ws.sheet_properties.pageSetUpPr = PageSetupProperties()
    ws.sheet_properties.pageSetUpPr.fitToPage = True


def build_template(template_id: str) -> Workbook:
    """Returns a new workbook holding the layout of template_id."""
    if template_id not in TEMPLATE_LAYOUTS:
        raise KeyError(f"No layout defined for template '{template_id}'")
    layout, row_heights = TEMPLATE_LAYOUTS[template_id]

    wb = Workbook()
    ws = wb.active
    ws.title = template_id

    for col_idx in range(1, cfg.TEMPLATE_MAX_COLUMN + 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = COLUMN_WIDTH

    for kind, cell_range, text in layout:
        _box(ws, kind, cell_range, text)

    for row, height in row_heights.items():
        ws.row_dimensions[row].height = height

    if template_id == "daily":
        for coord, note in DAILY_NOTES.items():
            ws[coord].comment = Comment(note, "template")
    if template_id == "monthly":
        for coord, number_format in MONTHLY_NUMBER_FORMATS.items():
            ws[coord].number_format = number_format

    # Make sure the sheet reaches the last fragment row even if it is blank
    _, last_row = cfg.FRAGMENT_ROWS[template_id]
    if ws.max_row < last_row:
        ws.row_dimensions[last_row].height = cfg.DEFAULT_ROW_HEIGHT
        ws.cell(row=last_row, column=1)

    _apply_print(ws)
    return wb


def build_templates(output_dir: str) -> Dict[str, str]:
    """
    Writes every template workbook into output_dir.

    Returns:
        Template id -> written file path.
    """
    os.makedirs(output_dir, exist_ok=True)
    written: Dict[str, str] = {}
    for template_id, file_name in cfg.TEMPLATE_FILES.items():
        path = os.path.join(output_dir, file_name)
        wb = build_template(template_id)
        try:
            wb.save(path)
        finally:
            wb.close()
        written[template_id] = path
        logging.info(f"[template_builder.build_templates] Wrote '{template_id}' template to '{path}'.")
    return written
