# --- START OF FILE merge_reconstructor.py ---
"""
Re-creates a fragment's merged regions in the output sheet.

Merges come from two sources that are unioned:
  1. the fragment's declared merge list (any form normalize_merge accepts);
  2. a scan of the source rows that walks every merged cell out to the full
     rectangle of its master cell.
Both are limited to rectangles whose top row lies inside the source rows.
The scan is bounded by MERGE_SCAN_LOOKAHEAD_ROWS below the range and by
MERGE_SCAN_MAX_COLUMNS; a fragment with taller or wider merges needs a
declared merge list.
"""

import logging
from typing import Dict, List, Optional, Tuple

import config as cfg
from errors import CellWriteWarning, record_cell_warning
from region import Region, RegionWriter, normalize_merge
from template_store import Fragment


def declared_regions(fragment: Fragment, source_rows: Tuple[int, int],
                     warnings: Optional[List[CellWriteWarning]] = None) -> List[Region]:
    src_top, src_bottom = source_rows
    regions: List[Region] = []
    for entry in fragment.declared_merges():
        try:
            region = normalize_merge(entry)
        except ValueError as e:
            record_cell_warning(f"[merge_reconstructor.declared_regions] Ignoring merge entry of '{fragment.template_id}': {e}", warnings)
            continue
        if src_top <= region.top <= src_bottom:
            regions.append(region)
    return regions


def _walk_from_master(fragment: Fragment, master: Tuple[int, int], row_limit: int, col_limit: int) -> Region:
    master_row, master_col = master
    right = master_col
    while right + 1 <= col_limit and fragment.merge_master(master_row, right + 1) == master:
        right += 1
    bottom = master_row
    while bottom + 1 <= row_limit and fragment.merge_master(bottom + 1, master_col) == master:
        bottom += 1
    return Region(master_row, master_col, bottom, right)


def discover_regions(fragment: Fragment, source_rows: Tuple[int, int]) -> List[Region]:
    """Scans source_rows cell by cell for merged cells and returns the rectangles they belong to."""
    src_top, src_bottom = source_rows
    row_limit = src_bottom + cfg.MERGE_SCAN_LOOKAHEAD_ROWS
    col_limit = min(fragment.max_column, cfg.MERGE_SCAN_MAX_COLUMNS)

    found: Dict[Tuple[int, int, int, int], Region] = {}
    visited_masters = set()
    for row in range(src_top, src_bottom + 1):
        for col in range(1, col_limit + 1):
            if not fragment.is_merged(row, col):
                continue
            master = fragment.merge_master(row, col)
            if master is None:
                logging.debug(f"[merge_reconstructor.discover_regions] Merged cell ({row}, {col}) has no master; skipped.")
                continue
            if master in visited_masters:
                continue
            visited_masters.add(master)
            if not (src_top <= master[0] <= src_bottom):
                continue
            region = _walk_from_master(fragment, master, row_limit, col_limit)
            found.setdefault(region.key, region)
    return list(found.values())


def collect_source_merges(fragment: Fragment, source_rows: Tuple[int, int],
                          warnings: Optional[List[CellWriteWarning]] = None) -> List[Region]:
    """Union of declared and discovered merges, deduplicated by (top, left, bottom, right)."""
    merged: Dict[Tuple[int, int, int, int], Region] = {}
    for region in declared_regions(fragment, source_rows, warnings) + discover_regions(fragment, source_rows):
        merged.setdefault(region.key, region)
    return sorted(merged.values(), key=lambda r: r.key)


def copy_merged_regions(
    fragment: Fragment,
    source_rows: Tuple[int, int],
    writer: RegionWriter,
    dest_row_start: int,
    warnings: Optional[List[CellWriteWarning]] = None,
) -> int:
    """
    Merges, in the writer's sheet, every source merge shifted by dest_row_start - source_rows[0].

    A target already covered by an identical or larger merge is skipped
    quietly, so running this twice for the same block changes nothing. A
    target that partially overlaps an existing merge, or any other merge
    failure, is logged as a CellWriteWarning and skipped.

    Returns:
        Number of merges created.
    """
    prefix = f"[merge_reconstructor.copy_merged_regions({fragment.template_id} -> {dest_row_start})]"
    row_delta = dest_row_start - source_rows[0]
    existing = writer.existing_merges()
    created = 0

    for source_region in collect_source_merges(fragment, source_rows, warnings):
        if source_region.is_single_cell:
            continue
        target = source_region.shifted(row_delta)

        if any(region.contains(target) for region in existing):
            logging.debug(f"{prefix} {target.coord} is already merged; skipped.")
            continue
        clash = next((region for region in existing if region.overlaps(target)), None)
        if clash is not None:
            record_cell_warning(f"{prefix} {target.coord} overlaps existing merge {clash.coord}; skipped.", warnings)
            continue

        try:
            writer.merge(target)
        except Exception as e:
            record_cell_warning(f"{prefix} Could not merge {target.coord}: {e}", warnings)
            continue
        existing.append(target)
        created += 1

    logging.debug(f"{prefix} Created {created} merge(s).")
    return created

# --- END OF FILE merge_reconstructor.py ---
