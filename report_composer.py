# --- START OF FILE report_composer.py ---

import datetime
import logging
from copy import copy
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from openpyxl import Workbook
from openpyxl.cell import MergedCell
from openpyxl.styles import Border, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.pagebreak import Break
from openpyxl.worksheet.properties import PageSetupProperties
from openpyxl.worksheet.worksheet import Worksheet

import config as cfg
from errors import CellWriteWarning, record_cell_warning
from field_placement import apply_fields, daily_values, monthly_values, title_values, weekly_values
from merge_reconstructor import copy_merged_regions
from records import DailyRecord, MonthlyRecord, Record, Subject, WeeklyRecord, merge_and_sort
from region import RegionWriter
from region_copier import copy_region
from template_store import Fragment, TemplateStore


class ComposerState(Enum):
    IDLE = "idle"
    PLACING_TITLE = "placing_title"
    PLACING_RECORD = "placing_record"
    PAGE_BREAK = "page_break"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass
class CompositionCursor:
    """Next free output row and number of blocks placed since the last page break."""
    current_row: int = 1
    blocks_on_page: int = 0

    def advance(self, block_height: int) -> None:
        self.current_row += block_height + cfg.BLOCK_SEPARATOR_ROWS
        self.blocks_on_page += 1

    def reset_page(self) -> None:
        self.blocks_on_page = 0


@dataclass(frozen=True)
class PlacedBlock:
    kind: str
    top: int
    bottom: int


# --- Shared Block Helpers ---

def place_block(
    worksheet: Worksheet,
    fragment: Fragment,
    top: int,
    values: Dict,
    warnings: List[CellWriteWarning],
    label_scan: Optional[bool] = None,
) -> PlacedBlock:
    """Copies fragment to row top, rebuilds its merges and writes values into it."""
    bottom = top + fragment.height - 1
    writer = RegionWriter(worksheet, top, bottom)
    source_rows = (fragment.row_start, fragment.row_end)

    copy_region(fragment, source_rows, writer, top, warnings)
    copy_merged_regions(fragment, source_rows, writer, top, warnings)
    apply_fields(writer, fragment.template_id, values, label_scan=label_scan, warnings=warnings)

    logging.debug(f"[report_composer.place_block] '{fragment.template_id}' placed at rows {top}..{bottom}.")
    return PlacedBlock(fragment.template_id, top, bottom)


def apply_column_widths(worksheet: Worksheet, fragment: Fragment) -> None:
    for letter, width in fragment.column_widths().items():
        worksheet.column_dimensions[letter].width = width


def apply_page_setup(worksheet: Worksheet) -> None:
    worksheet.page_setup.paperSize = cfg.PAPER_SIZE
    worksheet.page_setup.orientation = cfg.PAGE_ORIENTATION
    worksheet.page_setup.fitToWidth = cfg.FIT_TO_WIDTH
    worksheet.page_setup.fitToHeight = cfg.FIT_TO_HEIGHT
    if worksheet.sheet_properties.pageSetUpPr is None:
        worksheet.sheet_properties.pageSetUpPr = PageSetupProperties()
    worksheet.sheet_properties.pageSetUpPr.fitToPage = True


def finalize_sheet(worksheet: Worksheet, blocks: List[PlacedBlock], default_width: float,
                   warnings: Optional[List[CellWriteWarning]] = None) -> None:
    """
    Page setup, column widths up to the rightmost used column, wrap only on
    merged cells, and a right border along the rightmost column of every block.
    """
    prefix = "[report_composer.finalize_sheet]"
    apply_page_setup(worksheet)

    max_col = worksheet.max_column
    for col_idx in range(1, max_col + 1):
        letter = get_column_letter(col_idx)
        if letter not in worksheet.column_dimensions:
            worksheet.column_dimensions[letter].width = default_width

    # --- Text wrapping: merged masters wrap, everything else does not ---
    masters = set()
    for merged_range in worksheet.merged_cells.ranges:
        masters.add((merged_range.min_row, merged_range.min_col))
        master = worksheet.cell(row=merged_range.min_row, column=merged_range.min_col)
        if not master.alignment.wrap_text:
            alignment = copy(master.alignment)
            alignment.wrap_text = True
            master.alignment = alignment

    for row in worksheet.iter_rows():
        for cell in row:
            if isinstance(cell, MergedCell) or (cell.row, cell.column) in masters:
                continue
            if cell.alignment.wrap_text:
                alignment = copy(cell.alignment)
                alignment.wrap_text = False
                cell.alignment = alignment

    # --- Right edge ---
    thin = Side(style="thin", color="000000")
    for block in blocks:
        for row_idx in range(block.top, block.bottom + 1):
            cell = worksheet.cell(row=row_idx, column=max_col)
            try:
                current = cell.border
                cell.border = Border(left=current.left, right=thin, top=current.top, bottom=current.bottom)
            except Exception as e:
                record_cell_warning(f"{prefix} Right border failed at {cell.coordinate}: {e}", warnings)

    logging.info(f"{prefix} Sheet '{worksheet.title}' finalized: {max_col} column(s), {len(worksheet.merged_cells.ranges)} merge(s).")


class ReportComposer:
    """
    Builds the range report: a title block followed by daily and weekly
    blocks in date order, paginated at cfg.BLOCKS_PER_PAGE blocks per page
    (the title counts as one and is repeated at the top of every page).

    One instance composes exactly one workbook.
    """

    def __init__(
        self,
        store: TemplateStore,
        subject: Subject,
        period_start: Optional[datetime.date],
        period_end: Optional[datetime.date],
        created_on: Optional[datetime.date] = None,
        label_scan: Optional[bool] = None,
    ):
        self.store = store
        self.subject = subject
        self.period_start = period_start
        self.period_end = period_end
        self.created_on = created_on
        self.label_scan = label_scan

        self.state = ComposerState.IDLE
        self.cursor = CompositionCursor()
        self.blocks: List[PlacedBlock] = []
        self.page_breaks: List[int] = []
        self.warnings: List[CellWriteWarning] = []
        self.workbook: Optional[Workbook] = None
        self._ws: Optional[Worksheet] = None

    def compose(self, daily_records: Iterable[DailyRecord], weekly_records: Iterable[WeeklyRecord]) -> Workbook:
        """
        Composes the workbook for the given records.

        Raises:
            RuntimeError: compose was already called on this instance.
            TemplateLoadError: a fragment could not be loaded.
        """
        prefix = "[ReportComposer.compose]"
        if self.state is not ComposerState.IDLE:
            raise RuntimeError(f"{prefix} A composer builds one report only (state: {self.state.value}).")

        records = merge_and_sort(daily_records, weekly_records)
        logging.info(f"{prefix} Composing {len(records)} record(s) for '{self.subject.name}'.")

        title = self.store.load_fragment("title")
        self.workbook = Workbook()
        self._ws = self.workbook.active
        self._ws.title = cfg.OUTPUT_SHEET_TITLE
        apply_column_widths(self._ws, title)

        self._place_title(title)
        for record in records:
            if self.cursor.blocks_on_page == 0:
                self._place_title(title)
            self._place_record(record)
            if self.cursor.blocks_on_page >= cfg.BLOCKS_PER_PAGE:
                self._page_break()

        self.state = ComposerState.FINALIZING
        finalize_sheet(self._ws, self.blocks, title.default_column_width(), self.warnings)
        self.state = ComposerState.DONE
        logging.info(f"{prefix} Done: {len(self.blocks)} block(s), {len(self.page_breaks)} page break(s), {len(self.warnings)} warning(s).")
        return self.workbook

    @property
    def record_blocks(self) -> List[PlacedBlock]:
        return [block for block in self.blocks if block.kind != "title"]

    @property
    def title_blocks(self) -> List[PlacedBlock]:
        return [block for block in self.blocks if block.kind == "title"]

    def _place(self, fragment: Fragment, values: Dict) -> PlacedBlock:
        block = place_block(self._ws, fragment, self.cursor.current_row, values, self.warnings, self.label_scan)
        self.blocks.append(block)
        self.cursor.advance(fragment.height)
        return block

    def _place_title(self, title: Fragment) -> None:
        self.state = ComposerState.PLACING_TITLE
        self._place(title, title_values(self.subject, self.period_start, self.period_end, self.created_on))

    def _place_record(self, record: Record) -> None:
        self.state = ComposerState.PLACING_RECORD
        if isinstance(record, DailyRecord):
            values = daily_values(record)
        elif isinstance(record, WeeklyRecord):
            values = weekly_values(record)
        else:
            raise TypeError(f"Unsupported record type: {type(record).__name__}")
        self._place(self.store.load_fragment(record.kind), values)

    def _page_break(self) -> None:
        self.state = ComposerState.PAGE_BREAK
        last_row = self.blocks[-1].bottom
        self._ws.row_breaks.append(Break(id=last_row))
        self.page_breaks.append(last_row)
        self.cursor.reset_page()
        logging.debug(f"[ReportComposer._page_break] Page break after row {last_row}; next block at row {self.cursor.current_row}.")


class MonthlyReportFiller:
    """Fills the single-record monthly evaluation sheet. One instance fills one workbook."""

    def __init__(self, store: TemplateStore, subject: Subject, year: int, month: int):
        self.store = store
        self.subject = subject
        self.year = year
        self.month = month
        self.state = ComposerState.IDLE
        self.warnings: List[CellWriteWarning] = []
        self.workbook: Optional[Workbook] = None

    def fill(self, record: MonthlyRecord) -> Workbook:
        prefix = f"[MonthlyReportFiller.fill({self.year}-{self.month:02d})]"
        if self.state is not ComposerState.IDLE:
            raise RuntimeError(f"{prefix} A filler builds one report only (state: {self.state.value}).")

        fragment = self.store.load_fragment("monthly")
        self.workbook = Workbook()
        ws = self.workbook.active
        ws.title = cfg.MONTHLY_REPORT_KIND
        apply_column_widths(ws, fragment)

        self.state = ComposerState.PLACING_RECORD
        values = monthly_values(record, self.subject, self.year, self.month)
        block = place_block(ws, fragment, 1, values, self.warnings, label_scan=False)

        self.state = ComposerState.FINALIZING
        finalize_sheet(ws, [block], fragment.default_column_width(), self.warnings)
        self.state = ComposerState.DONE
        logging.info(f"{prefix} Monthly sheet filled for '{self.subject.name}' with {len(self.warnings)} warning(s).")
        return self.workbook

# --- END OF FILE report_composer.py ---
