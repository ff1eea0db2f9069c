# --- START OF FILE region_copier.py ---

import logging
from copy import copy
from typing import List, Optional, Tuple

from openpyxl.cell import MergedCell

from errors import CellWriteWarning, record_cell_warning
from region import RegionWriter
from template_store import Fragment

# Style attributes copied one by one when the combined copy fails
STYLE_FIELDS = ("font", "border", "fill", "number_format", "alignment", "protection")


def _copy_style_field(source_cell, dest_cell, field: str) -> None:
    value = getattr(source_cell, field)
    # number_format is a plain string, the rest are style proxies
    setattr(dest_cell, field, value if isinstance(value, str) else copy(value))


def copy_cell_style(source_cell, dest_cell, warnings: Optional[List[CellWriteWarning]] = None) -> bool:
    """
    Copies font, border, fill, number format, alignment and protection.

    Returns:
        True when the style was copied whole, False when the field-by-field
        fallback had to be used.
    """
    try:
        if source_cell.has_style:
            for field in STYLE_FIELDS:
                _copy_style_field(source_cell, dest_cell, field)
        return True
    except Exception as e:
        logging.debug(f"[region_copier.copy_cell_style] Whole-style copy failed for {dest_cell.coordinate}: {e}")

    failed = []
    for field in STYLE_FIELDS:
        try:
            _copy_style_field(source_cell, dest_cell, field)
        except Exception as field_error:
            failed.append(f"{field} ({field_error})")
    if failed:
        record_cell_warning(
            f"[region_copier.copy_cell_style] {dest_cell.parent.title}!{dest_cell.coordinate}: "
            f"skipped style field(s) {', '.join(failed)}", warnings)
    return False


def copy_region(
    fragment: Fragment,
    source_rows: Tuple[int, int],
    writer: RegionWriter,
    dest_row_start: int,
    warnings: Optional[List[CellWriteWarning]] = None,
) -> int:
    """
    Copies rows source_rows of fragment into the writer's sheet starting at dest_row_start.

    Every column up to the fragment's max column is copied, empty cells
    included, so borders survive. Values are copied verbatim: rich text stays
    rich text and formulas keep their text without re-targeting. Row heights
    and notes are copied too.

    Args:
        fragment: Template fragment to read from.
        source_rows: (first, last) source row, inclusive, inside the fragment.
        writer: Handle on the destination rows.
        dest_row_start: Destination row receiving source_rows[0].
        warnings: Optional list collecting recovered cell failures.

    Returns:
        Number of cells copied.
    """
    src_top, src_bottom = source_rows
    prefix = f"[region_copier.copy_region({fragment.template_id} {src_top}..{src_bottom} -> {dest_row_start})]"
    if src_top < fragment.row_start or src_bottom > fragment.row_end or src_bottom < src_top:
        raise ValueError(f"{prefix} Source rows outside fragment {fragment.row_start}..{fragment.row_end}")

    max_col = fragment.max_column
    copied = 0
    for src_row in range(src_top, src_bottom + 1):
        dest_row = dest_row_start + (src_row - src_top)

        height = fragment.row_height(src_row)
        if height is not None:
            writer.set_row_height(dest_row, height)

        for col_idx in range(1, max_col + 1):
            source_cell = fragment.cell(src_row, col_idx)
            dest_cell = writer.cell(dest_row, col_idx)

            if isinstance(dest_cell, MergedCell):
                record_cell_warning(
                    f"{prefix} {dest_cell.coordinate} is already inside a merge; cell skipped.", warnings)
                continue

            try:
                dest_cell.value = source_cell.value
            except Exception as e:
                record_cell_warning(f"{prefix} Value copy failed for {dest_cell.coordinate}: {e}", warnings)

            copy_cell_style(source_cell, dest_cell, warnings)

            if source_cell.comment is not None:
                try:
                    dest_cell.comment = copy(source_cell.comment)
                except Exception as e:
                    record_cell_warning(f"{prefix} Note copy failed for {dest_cell.coordinate}: {e}", warnings)
            copied += 1

    logging.debug(f"{prefix} Copied {copied} cell(s) over {src_bottom - src_top + 1} row(s).")
    return copied

# --- END OF FILE region_copier.py ---
