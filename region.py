import logging
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple, Union

from openpyxl.cell import MergedCell
from openpyxl.utils import get_column_letter, column_index_from_string
from openpyxl.utils.cell import range_boundaries
from openpyxl.worksheet.cell_range import CellRange
from openpyxl.worksheet.worksheet import Worksheet

Column = Union[int, str]


def column_index(column: Column) -> int:
    """Accepts a 1-based index or a column letter ('D')."""
    if isinstance(column, int):
        return column
    return column_index_from_string(str(column).strip().upper())


@dataclass(frozen=True)
class Region:
    """Rectangle in 1-based row/column coordinates, bounds inclusive."""
    top: int
    left: int
    bottom: int
    right: int

    def __post_init__(self):
        if self.top < 1 or self.left < 1 or self.bottom < self.top or self.right < self.left:
            raise ValueError(f"Invalid region {self.top},{self.left},{self.bottom},{self.right}")

    @property
    def key(self) -> Tuple[int, int, int, int]:
        return (self.top, self.left, self.bottom, self.right)

    @property
    def coord(self) -> str:
        return f"{get_column_letter(self.left)}{self.top}:{get_column_letter(self.right)}{self.bottom}"

    @property
    def is_single_cell(self) -> bool:
        return self.top == self.bottom and self.left == self.right

    def shifted(self, row_delta: int) -> "Region":
        return Region(self.top + row_delta, self.left, self.bottom + row_delta, self.right)

    def contains(self, other: "Region") -> bool:
        return (self.top <= other.top and self.left <= other.left
                and other.bottom <= self.bottom and other.right <= self.right)

    def overlaps(self, other: "Region") -> bool:
        return not (other.bottom < self.top or other.top > self.bottom
                    or other.right < self.left or other.left > self.right)


def _zero_based_point(point: Any) -> Tuple[int, int]:
    return int(point["r"]) + 1, int(point["c"]) + 1


def normalize_merge(entry: Any) -> Region:
    """
    Normalises one merge-list entry to a Region.

    Accepted forms:
        - Region
        - "A1:B2" range string (or openpyxl CellRange / MergedCellRange)
        - offset pairs ((top, left), (bottom, right)), 1-based
        - (top, left, bottom, right), 1-based
        - zero-based start/end mapping {"s": {"r": 0, "c": 0}, "e": {"r": 1, "c": 1}}
          ("start"/"end" keys are accepted too)
        - mapping with top/left/bottom/right keys, 1-based

    Raises:
        ValueError: entry is in none of the forms above.
    """
    if isinstance(entry, Region):
        return entry
    if isinstance(entry, CellRange):
        min_col, min_row, max_col, max_row = entry.bounds
        return Region(min_row, min_col, max_row, max_col)
    if isinstance(entry, str):
        min_col, min_row, max_col, max_row = range_boundaries(entry.strip().upper())
        if min_row is None or min_col is None:
            raise ValueError(f"Merge range '{entry}' is not a bounded cell range")
        return Region(min_row, min_col, max_row, max_col)
    if isinstance(entry, dict):
        if {"top", "left", "bottom", "right"} <= entry.keys():
            return Region(int(entry["top"]), int(entry["left"]), int(entry["bottom"]), int(entry["right"]))
        start = entry.get("s", entry.get("start"))
        end = entry.get("e", entry.get("end"))
        if isinstance(start, dict) and isinstance(end, dict):
            top, left = _zero_based_point(start)
            bottom, right = _zero_based_point(end)
            return Region(top, left, bottom, right)
        raise ValueError(f"Unrecognised merge mapping: {entry!r}")
    if isinstance(entry, (tuple, list)):
        if len(entry) == 2 and all(isinstance(p, (tuple, list)) and len(p) == 2 for p in entry):
            (top, left), (bottom, right) = entry
            return Region(int(top), int(left), int(bottom), int(right))
        if len(entry) == 4:
            top, left, bottom, right = entry
            return Region(int(top), int(left), int(bottom), int(right))
    raise ValueError(f"Unrecognised merge entry: {entry!r}")


def merged_regions(worksheet: Worksheet) -> List[Region]:
    return [normalize_merge(mcr) for mcr in worksheet.merged_cells.ranges]


class RegionWriter:
    """
    Write handle restricted to the rows [top, bottom] of one worksheet.

    Region copying, merge reconstruction and field placement receive this
    handle instead of the worksheet, so none of them can touch rows that
    belong to another block.
    """

    def __init__(self, worksheet: Worksheet, top: int, bottom: int):
        if top < 1 or bottom < top:
            raise ValueError(f"Invalid writer rows {top}..{bottom}")
        self._ws = worksheet
        self.top = top
        self.bottom = bottom

    def __repr__(self) -> str:
        return f"RegionWriter(sheet='{self._ws.title}', rows={self.top}..{self.bottom})"

    @property
    def height(self) -> int:
        return self.bottom - self.top + 1

    @property
    def sheet_title(self) -> str:
        return self._ws.title

    def _check_row(self, row: int) -> int:
        if not (self.top <= row <= self.bottom):
            raise ValueError(f"Row {row} is outside writer rows {self.top}..{self.bottom}")
        return row

    def row_for_offset(self, offset: int) -> int:
        return self._check_row(self.top + offset)

    def cell(self, row: int, column: Column):
        """Cell at an absolute row inside the writer's rows."""
        return self._ws.cell(row=self._check_row(row), column=column_index(column))

    def cell_at(self, offset: int, column: Column):
        """Cell at a row offset relative to the writer's first row."""
        return self.cell(self.top + offset, column)

    def set_row_height(self, row: int, height: Optional[float]) -> None:
        self._ws.row_dimensions[self._check_row(row)].height = height

    def is_empty(self, offset: int, column: Column) -> bool:
        value = self.cell_at(offset, column).value
        return value is None or (isinstance(value, str) and value.strip() == "")

    def write_if_empty(self, offset: int, column: Column, value: Any) -> bool:
        """
        Writes value unless the target already holds content or is a non-master merged cell.

        Returns:
            True when the value was written.
        """
        target = self.cell_at(offset, column)
        if isinstance(target, MergedCell):
            logging.debug(f"[RegionWriter.write_if_empty] {target.coordinate} is inside a merge; not the master cell.")
            return False
        if not self.is_empty(offset, column):
            logging.debug(f"[RegionWriter.write_if_empty] {target.coordinate} already holds '{target.value}'; left unchanged.")
            return False
        target.value = value
        return True

    def existing_merges(self) -> List[Region]:
        return [region for region in merged_regions(self._ws)
                if region.bottom >= self.top and region.top <= self.bottom]

    def merge(self, region: Region) -> None:
        self._check_row(region.top)
        self._check_row(region.bottom)
        self._ws.merge_cells(start_row=region.top, start_column=region.left,
                             end_row=region.bottom, end_column=region.right)

    def iter_row_texts(self, max_column: int) -> Iterator[Tuple[int, List[str]]]:
        """Yields (offset, [cell text per column]) for every row of the writer."""
        for row in range(self.top, self.bottom + 1):
            texts = []
            for col in range(1, max_column + 1):
                value = self._ws.cell(row=row, column=col).value
                texts.append("" if value is None else str(value))
            yield row - self.top, texts
