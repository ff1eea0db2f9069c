# --- START OF FILE field_placement.py ---
"""
Field Placement Map: where each logical field of a block is written.

Coordinates are (row offset from the block's first row, column) and are
versioned by template revision, so a template layout change ships with its
own map instead of silently corrupting output.

A few legacy fields (the date row and the recorder / confirmer row) can
instead be located by scanning the copied rows for a label. The scan is a
compatibility shim for older template variants whose rows do not line up
with the current revision; it is controlled by cfg.LEGACY_LABEL_SCAN and
falls back to the static coordinate when the label is missing.
"""

import datetime
import logging
from typing import Any, Dict, List, Optional, Tuple

from openpyxl.cell import MergedCell

import config as cfg
from era_converter import era_from_date, format_era_date, format_era_period, to_era
from errors import CellWriteWarning, record_cell_warning
from records import DailyRecord, EvaluationMethod, MonthlyRecord, Subject, SupportMethod, WeeklyRecord
from region import Column, RegionWriter

FieldRef = Tuple[int, Column]

# (fragment type, template revision) -> field -> (row offset, column)
PLACEMENT_MAPS: Dict[Tuple[str, str], Dict[str, FieldRef]] = {
    ("title", "2025.1"): {
        "subject_name": (1, "D"),
        "recipient_number": (1, "Q"),
        "period": (2, "D"),
        "created_on": (3, "D"),
    },
    ("daily", "2025.1"): {
        "date": (1, "D"),
        "time_range": (1, "O"),
        "break_range": (2, "D"),
        "support_method": (2, "O"),
        "task_content": (3, "D"),
        "support_content": (6, "D"),
        "advice": (11, "D"),
        "recorder_name": (15, "D"),
    },
    ("weekly", "2025.1"): {
        "date": (1, "D"),
        "evaluation_method": (1, "O"),
        "period": (2, "D"),
        "evaluation_content": (3, "D"),
        "previous_evaluation_date": (12, "D"),
        "recorder_name": (13, "D"),
        "confirmer_name": (13, "O"),
    },
    ("monthly", "2025.1"): {
        "era_name": (0, "S"),
        "era_year": (0, "V"),
        "month": (0, "X"),
        "subject_name": (3, "D"),
        "recipient_number": (3, "Q"),
        "evaluation_year": (5, "D"),
        "evaluation_month": (5, "I"),
        "evaluation_day": (5, "L"),
        "start_time": (5, "Q"),
        "end_time": (5, "V"),
        "method_attendance": (6, "D"),
        "method_visit": (6, "F"),
        "method_other": (6, "H"),
        "method_note": (6, "K"),
        "training_goal": (8, "D"),
        "work_content": (11, "D"),
        "achievement": (14, "D"),
        "issues": (18, "D"),
        "improvement_plan": (21, "D"),
        "health_notes": (24, "D"),
        "other_notes": (27, "D"),
        "continuity_validity": (30, "D"),
        "evaluator": (33, "D"),
        "previous_year": (33, "S"),
        "previous_month": (33, "V"),
        "previous_day": (33, "X"),
        "subject_signature": (35, "Q"),
    },
}

# fragment type -> field -> (label substring, column written on the matching row)
LEGACY_LABEL_FIELDS: Dict[str, Dict[str, Tuple[str, Column]]] = {
    "daily": {
        "date": ("実施", "D"),
        "recorder_name": ("記録者", "D"),
    },
    "weekly": {
        "date": ("実施", "D"),
        "recorder_name": ("記録者", "D"),
        "confirmer_name": ("記録者", "O"),
    },
}


def placement_map(fragment_type: str, revision: Optional[str] = None) -> Dict[str, FieldRef]:
    revision = revision or cfg.TEMPLATE_REVISION
    try:
        return PLACEMENT_MAPS[(fragment_type, revision)]
    except KeyError:
        raise KeyError(f"No field placement map for fragment '{fragment_type}' at revision '{revision}'") from None


def locate_label_row(writer: RegionWriter, label: str, max_column: Optional[int] = None) -> Optional[int]:
    """Row offset of the first row whose text contains label, or None."""
    max_column = max_column or cfg.LABEL_SCAN_MAX_COLUMN
    for offset, texts in writer.iter_row_texts(max_column):
        if any(label in text for text in texts):
            return offset
    return None


def resolve_coordinates(
    writer: RegionWriter,
    fragment_type: str,
    revision: Optional[str] = None,
    label_scan: Optional[bool] = None,
) -> Dict[str, FieldRef]:
    """
    Final (row offset, column) per field for one placed block.

    Must run before any value is written: the label scan reads the copied
    template text, and field content could otherwise contain a label.
    """
    coordinates = dict(placement_map(fragment_type, revision))
    if label_scan is None:
        label_scan = cfg.LEGACY_LABEL_SCAN
    if not label_scan:
        return coordinates

    found_rows: Dict[str, Optional[int]] = {}
    for field, (label, column) in LEGACY_LABEL_FIELDS.get(fragment_type, {}).items():
        if label not in found_rows:
            found_rows[label] = locate_label_row(writer, label)
        row_offset = found_rows[label]
        if row_offset is None:
            logging.debug(f"[field_placement.resolve_coordinates] Label '{label}' not found in {writer!r}; static coordinate kept for '{field}'.")
            continue
        coordinates[field] = (row_offset, column)
    return coordinates


def apply_fields(
    writer: RegionWriter,
    fragment_type: str,
    values: Dict[str, Any],
    revision: Optional[str] = None,
    label_scan: Optional[bool] = None,
    warnings: Optional[List[CellWriteWarning]] = None,
) -> List[str]:
    """
    Writes values into a freshly copied block.

    Empty values (None or '') are skipped. A target that already holds
    content is left alone, so template labels are never overwritten.

    Returns:
        Names of the fields actually written.

    Raises:
        KeyError: a value names a field the map does not know.
    """
    prefix = f"[field_placement.apply_fields({fragment_type})]"
    coordinates = resolve_coordinates(writer, fragment_type, revision, label_scan)
    unknown = sorted(set(values) - set(coordinates))
    if unknown:
        raise KeyError(f"{prefix} Unknown field(s): {unknown}")

    written: List[str] = []
    for field, value in values.items():
        if value is None or value == "":
            continue
        row_offset, column = coordinates[field]
        target = writer.cell_at(row_offset, column)
        if isinstance(target, MergedCell):
            record_cell_warning(f"{prefix} '{field}' targets {target.coordinate}, which is not a merge master; skipped.", warnings)
            continue
        if writer.write_if_empty(row_offset, column, value):
            written.append(field)
        else:
            logging.debug(f"{prefix} '{field}' not written: {target.coordinate} is occupied.")
    return written


# --- Value Builders ---

def method_text(enum_cls, selected, note: str = "") -> str:
    """Checkbox rendering of a method choice, e.g. '☑訪問 □電話 □その他'."""
    parts = []
    for member in enum_cls:
        mark = "☑" if member is selected else "□"
        text = f"{mark}{member.value}"
        if member is enum_cls.OTHER and member is selected and note:
            text += f"（{note}）"
        parts.append(text)
    return " ".join(parts)


def time_range_text(start: str, end: str) -> str:
    if not start and not end:
        return ""
    return f"{start} 〜 {end}".strip()


def title_values(subject: Subject, period_start: Any, period_end: Any,
                 created_on: Optional[datetime.date] = None) -> Dict[str, Any]:
    return {
        "subject_name": subject.name,
        "recipient_number": subject.recipient_number,
        "period": format_era_period(period_start, period_end),
        "created_on": format_era_date(created_on) if created_on else "",
    }


def daily_values(record: DailyRecord) -> Dict[str, Any]:
    return {
        "date": format_era_date(record.date),
        "time_range": time_range_text(record.start_time, record.end_time),
        "break_range": time_range_text(record.break_start, record.break_end),
        "support_method": method_text(SupportMethod, record.support_method, record.support_method_note),
        "task_content": record.task_content,
        "support_content": record.support_content,
        "advice": record.advice,
        "recorder_name": record.recorder_name,
    }


def weekly_values(record: WeeklyRecord) -> Dict[str, Any]:
    return {
        "date": format_era_date(record.evaluation_date),
        "evaluation_method": method_text(EvaluationMethod, record.evaluation_method, record.evaluation_method_note),
        "period": format_era_period(record.period_start, record.period_end),
        "evaluation_content": record.evaluation_content,
        "previous_evaluation_date": format_era_date(record.previous_evaluation_date),
        "recorder_name": record.recorder_name,
        "confirmer_name": record.confirmer_name,
    }


def monthly_values(record: MonthlyRecord, subject: Subject, year: int, month: int) -> Dict[str, Any]:
    """Values for the monthly sheet; era parts are numbers so the template number formats apply."""
    period = to_era(year, month, 1)
    evaluated = era_from_date(record.date)
    previous = era_from_date(record.previous_evaluation_date)

    def _check(member: EvaluationMethod) -> str:
        return cfg.CHECK_MARK if record.method is member else ""

    return {
        "era_name": "" if period.is_unset else period.era,
        "era_year": period.era_year,
        "month": period.month,
        "subject_name": subject.name,
        "recipient_number": subject.recipient_number,
        "evaluation_year": evaluated.era_year,
        "evaluation_month": evaluated.month,
        "evaluation_day": evaluated.day,
        "start_time": record.start_time,
        "end_time": record.end_time,
        "method_attendance": _check(EvaluationMethod.ATTENDANCE),
        "method_visit": _check(EvaluationMethod.VISIT),
        "method_other": _check(EvaluationMethod.OTHER),
        "method_note": record.method_note if record.method is EvaluationMethod.OTHER else "",
        "training_goal": record.training_goal,
        "work_content": record.work_content,
        "achievement": record.achievement,
        "issues": record.issues,
        "improvement_plan": record.improvement_plan,
        "health_notes": record.health_notes,
        "other_notes": record.other_notes,
        "continuity_validity": record.continuity_validity,
        "evaluator": record.evaluator,
        "previous_year": previous.era_year,
        "previous_month": previous.month,
        "previous_day": previous.day,
        "subject_signature": record.subject_signature,
    }

# --- END OF FILE field_placement.py ---
