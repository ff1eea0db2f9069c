# --- START OF FILE template_store.py ---

import asyncio
import io
import logging
import os
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import openpyxl
from openpyxl.cell import Cell, MergedCell
from openpyxl.utils import column_index_from_string, get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

import config as cfg
from errors import TemplateLoadError
from region import Region, merged_regions

# A loader turns a template id into the raw bytes of its workbook
ResourceLoader = Callable[[str], bytes]


def directory_loader(template_dir: str) -> ResourceLoader:
    """Returns a loader reading cfg.TEMPLATE_FILES from template_dir."""
    def _load(template_id: str) -> bytes:
        file_name = cfg.TEMPLATE_FILES.get(template_id)
        if file_name is None:
            raise KeyError(f"No template file configured for '{template_id}'")
        file_path = os.path.join(template_dir, file_name)
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"The file '{file_path}' was not found.")
        with open(file_path, "rb") as f:
            return f.read()
    return _load


def existing_cell(worksheet: Worksheet, row: int, column: int):
    """The stored cell at (row, column), or None. Never creates a cell."""
    # ws.cell and ws.iter_rows both create missing cells, so read the store directly
    return worksheet._cells.get((row, column))


class Fragment:
    """
    Read-only view of a template's fixed row range.

    Fragments are only ever copied from: no method here writes to the
    underlying worksheet.
    """

    def __init__(self, template_id: str, worksheet: Worksheet, row_start: int, row_end: int,
                 declared_merges: Optional[Iterable] = None):
        self.template_id = template_id
        self._ws = worksheet
        self.row_start = row_start
        self.row_end = row_end
        self._declared = list(declared_merges) if declared_merges is not None else list(worksheet.merged_cells.ranges)
        self._merge_master: Optional[Dict[Tuple[int, int], Tuple[int, int]]] = None

    def __repr__(self) -> str:
        return f"Fragment('{self.template_id}', rows={self.row_start}..{self.row_end})"

    @property
    def height(self) -> int:
        return self.row_end - self.row_start + 1

    @property
    def source_region(self) -> Region:
        return Region(self.row_start, 1, self.row_end, self.max_column)

    @property
    def max_column(self) -> int:
        return max(self._ws.max_column, 1)

    @property
    def sheet_title(self) -> str:
        return self._ws.title

    def cell(self, row: int, column: int):
        existing = existing_cell(self._ws, row, column)
        if existing is not None:
            return existing
        return Cell(self._ws, row=row, column=column)

    def row_height(self, row: int) -> Optional[float]:
        dimension = self._ws.row_dimensions.get(row)
        return dimension.height if dimension is not None else None

    def column_widths(self) -> Dict[str, float]:
        """Column letter -> width for every column with an explicit width."""
        widths: Dict[str, float] = {}
        for letter, dimension in self._ws.column_dimensions.items():
            if not dimension.width:
                continue
            # A saved <col min max> span is loaded under its first letter only
            first = dimension.min or column_index_from_string(letter)
            last = dimension.max or first
            for col_idx in range(first, last + 1):
                widths[get_column_letter(col_idx)] = dimension.width
        return widths

    def default_column_width(self) -> float:
        sheet_format = self._ws.sheet_format
        if sheet_format is not None and sheet_format.defaultColWidth:
            return sheet_format.defaultColWidth
        return cfg.DEFAULT_COL_WIDTH

    def declared_merges(self) -> list:
        """The template's own merge list, entries in whatever form they were declared."""
        return list(self._declared)

    def is_merged(self, row: int, column: int) -> bool:
        return isinstance(existing_cell(self._ws, row, column), MergedCell) or (row, column) in self._master_map()

    def merge_master(self, row: int, column: int) -> Optional[Tuple[int, int]]:
        """(row, column) of the top-left cell owning (row, column), None when not merged."""
        return self._master_map().get((row, column))

    def _master_map(self) -> Dict[Tuple[int, int], Tuple[int, int]]:
        if self._merge_master is None:
            merge_map: Dict[Tuple[int, int], Tuple[int, int]] = {}
            for region in merged_regions(self._ws):
                for r in range(region.top, region.bottom + 1):
                    for c in range(region.left, region.right + 1):
                        merge_map[(r, c)] = (region.top, region.left)
            self._merge_master = merge_map
        return self._merge_master


class TemplateStore:
    """
    Loads template workbooks and hands out their fragments.

    One store per export: the cache lives on the instance, never at module
    level, so a changed template is picked up by the next export.
    """

    def __init__(self, template_dir: Optional[str] = None, loader: Optional[ResourceLoader] = None):
        self.template_dir = template_dir or cfg.TEMPLATE_DIR
        self._loader = loader or directory_loader(self.template_dir)
        self._cache: Dict[str, Fragment] = {}
        logging.info(f"[TemplateStore] Initialized for template source: {self.template_dir if loader is None else loader!r}")

    def is_loaded(self, template_id: str) -> bool:
        return template_id in self._cache

    def load_fragment(self, template_id: str) -> Fragment:
        """
        Returns the fragment for template_id, fetching and parsing the workbook on first use.

        Raises:
            TemplateLoadError: the resource is missing, unreadable, not a workbook,
                or shorter than its configured fragment rows.
        """
        prefix = f"[TemplateStore.load_fragment(id='{template_id}')]"
        cached = self._cache.get(template_id)
        if cached is not None:
            return cached

        if template_id not in cfg.FRAGMENT_ROWS:
            logging.error(f"{prefix} Unknown template id.")
            raise TemplateLoadError(template_id, "unknown template id")

        try:
            raw = self._loader(template_id)
        except Exception as e:
            logging.error(f"{prefix} Failed to fetch template resource: {e}")
            raise TemplateLoadError(template_id, f"resource could not be fetched ({e})") from e

        worksheet = self._parse(template_id, raw)
        row_start, row_end = cfg.FRAGMENT_ROWS[template_id]
        if worksheet.max_row < row_end:
            logging.error(f"{prefix} Sheet '{worksheet.title}' has {worksheet.max_row} rows; fragment needs rows {row_start}..{row_end}.")
            raise TemplateLoadError(template_id, f"sheet ends at row {worksheet.max_row}, fragment needs {row_end}")

        fragment = Fragment(template_id, worksheet, row_start, row_end)
        self._cache[template_id] = fragment
        logging.info(f"{prefix} Loaded {fragment!r} from sheet '{worksheet.title}'.")
        return fragment

    def _parse(self, template_id: str, raw: bytes) -> Worksheet:
        prefix = f"[TemplateStore._parse(id='{template_id}')]"
        try:
            # data_only=False keeps template formulas as formula text
            workbook = openpyxl.load_workbook(io.BytesIO(raw), data_only=False, rich_text=True)
        except Exception as e:
            logging.error(f"{prefix} Failed to parse workbook: {e}", exc_info=True)
            raise TemplateLoadError(template_id, f"workbook could not be parsed ({e})") from e

        sheet_name = cfg.TEMPLATE_SHEET_NAME
        if sheet_name:
            if sheet_name in workbook.sheetnames:
                return workbook[sheet_name]
            logging.warning(f"{prefix} Sheet '{sheet_name}' not found. Loading active sheet.")
        return workbook.active

    async def load_fragments(self, template_ids: Iterable[str]) -> List[Fragment]:
        """Fetches all missing templates concurrently; parsing happens off the event loop."""
        ids = list(dict.fromkeys(template_ids))
        missing = [template_id for template_id in ids if template_id not in self._cache]
        if missing:
            logging.info(f"[TemplateStore.load_fragments] Fetching {len(missing)} template(s): {missing}")
            await asyncio.gather(*(asyncio.to_thread(self.load_fragment, template_id) for template_id in missing))
        return [self._cache[template_id] for template_id in ids]

    def close(self) -> None:
        """Drops every cached fragment."""
        count = len(self._cache)
        self._cache = {}
        logging.info(f"[TemplateStore.close] Released {count} template(s).")

# --- END OF FILE template_store.py ---
