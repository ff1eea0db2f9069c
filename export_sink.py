# --- START OF FILE export_sink.py ---

import asyncio
import datetime
import io
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from openpyxl import Workbook

import config as cfg
from era_converter import parse_date
from errors import CellWriteWarning, InputValidationError
from records import DailyRecord, MonthlyRecord, Subject, WeeklyRecord, coerce_records
from report_composer import MonthlyReportFiller, ReportComposer
from template_store import ResourceLoader, TemplateStore

# Characters that cannot appear in a file name on common platforms
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\r\n\t]+')


@dataclass
class ExportResult:
    filename: str
    content: bytes
    media_type: str = cfg.OUTPUT_MEDIA_TYPE
    warnings: List[CellWriteWarning] = field(default_factory=list)

    def write_to(self, output_dir: str) -> str:
        """Writes content to output_dir/filename and returns the path."""
        os.makedirs(output_dir, exist_ok=True)
        path = os.path.join(output_dir, self.filename)
        with open(path, "wb") as f:
            f.write(self.content)
        logging.info(f"[ExportResult.write_to] Wrote {len(self.content)} bytes to '{path}'.")
        return path


def serialize(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _filename_part(value: Any) -> str:
    text = "" if value is None else str(value).strip()
    text = _UNSAFE_FILENAME_CHARS.sub("_", text).strip("._ ")
    return text or cfg.UNSET_NAME


def _date_part(value: Any) -> str:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else cfg.UNSET_NAME


def suggest_filename(subject_name: Optional[str], range_start: Any, range_end: Any) -> str:
    """'在宅就労支援記録_<name>_<start>_<end>.xlsx' with ISO dates."""
    return (f"{cfg.REPORT_KIND}_{_filename_part(subject_name)}_"
            f"{_date_part(range_start)}_{_date_part(range_end)}.{cfg.OUTPUT_EXTENSION}")


def suggest_monthly_filename(subject_name: Optional[str], year: int, month: int) -> str:
    """'在宅支援達成度評価_<name>_<year>年<month>月.xlsx'."""
    return f"{cfg.MONTHLY_REPORT_KIND}_{_filename_part(subject_name)}_{year}年{month}月.{cfg.OUTPUT_EXTENSION}"


# --- Input Validation ---

def _coerce_subject(subject: Union[Subject, dict, None]) -> Subject:
    if isinstance(subject, dict):
        subject = Subject.from_dict(subject)
    if not isinstance(subject, Subject) or not subject.name:
        logging.error("[export_sink] Export rejected: subject is missing or has no name.")
        raise InputValidationError("A subject with a name is required.")
    return subject


def validate_request(subject, daily_records, weekly_records, period_start, period_end):
    """
    Checks an export request before any template is touched.

    Returns:
        (Subject, daily list, weekly list, start date, end date)

    Raises:
        InputValidationError: missing subject, no records, a record list holding
            something other than records, or a missing or inverted period.
    """
    subject = _coerce_subject(subject)
    daily = coerce_records(daily_records, DailyRecord, "daily")
    weekly = coerce_records(weekly_records, WeeklyRecord, "weekly")
    if not daily and not weekly:
        logging.error(f"[export_sink] Export rejected for '{subject.name}': no records.")
        raise InputValidationError("At least one daily or weekly record is required.")

    start, end = parse_date(period_start), parse_date(period_end)
    if start is None or end is None:
        raise InputValidationError("The report period needs both a start and an end date.")
    if end < start:
        raise InputValidationError(f"The report period ends ({end}) before it starts ({start}).")
    return subject, daily, weekly, start, end


# --- Export Entry Points ---

async def export_report_async(
    subject: Union[Subject, dict],
    daily_records: List[Union[DailyRecord, dict]],
    weekly_records: List[Union[WeeklyRecord, dict]],
    period_start: Any,
    period_end: Any,
    template_dir: Optional[str] = None,
    loader: Optional[ResourceLoader] = None,
    created_on: Optional[datetime.date] = None,
) -> ExportResult:
    """
    Validates, loads the templates concurrently, composes and serializes one range report.

    Nothing is shared between calls: each call builds its own store and composer.

    Raises:
        InputValidationError: before any template is fetched.
        TemplateLoadError: a template is missing or unreadable; no output is produced.
    """
    subject, daily, weekly, start, end = validate_request(subject, daily_records, weekly_records, period_start, period_end)

    store = TemplateStore(template_dir, loader)
    try:
        needed = ["title"] + (["daily"] if daily else []) + (["weekly"] if weekly else [])
        await store.load_fragments(needed)

        composer = ReportComposer(store, subject, start, end, created_on=created_on)
        workbook = composer.compose(daily, weekly)
        content = serialize(workbook)
    finally:
        store.close()

    result = ExportResult(suggest_filename(subject.name, start, end), content, warnings=list(composer.warnings))
    logging.info(f"[export_sink.export_report_async] Report '{result.filename}' ready ({len(content)} bytes).")
    return result


def export_report(
    subject: Union[Subject, dict],
    daily_records: List[Union[DailyRecord, dict]],
    weekly_records: List[Union[WeeklyRecord, dict]],
    period_start: Any,
    period_end: Any,
    template_dir: Optional[str] = None,
    loader: Optional[ResourceLoader] = None,
    created_on: Optional[datetime.date] = None,
) -> ExportResult:
    """Blocking wrapper around export_report_async. Not for use inside a running event loop."""
    return asyncio.run(export_report_async(
        subject, daily_records, weekly_records, period_start, period_end,
        template_dir=template_dir, loader=loader, created_on=created_on,
    ))


def export_monthly_report(
    subject: Union[Subject, dict],
    record: Union[MonthlyRecord, dict, None],
    year: int,
    month: int,
    template_dir: Optional[str] = None,
    loader: Optional[ResourceLoader] = None,
) -> ExportResult:
    """
    Fills the single-record monthly evaluation sheet.

    Raises:
        InputValidationError: missing subject or record, or an invalid year/month.
        TemplateLoadError: the monthly template is missing or unreadable.
    """
    subject = _coerce_subject(subject)
    if isinstance(record, dict):
        record = MonthlyRecord.from_dict(record)
    if not isinstance(record, MonthlyRecord):
        raise InputValidationError("A monthly evaluation record is required.")
    try:
        year, month = int(year), int(month)
    except (TypeError, ValueError):
        raise InputValidationError(f"Invalid report month: {year!r}-{month!r}") from None
    if not 1 <= month <= 12 or year < 1:
        raise InputValidationError(f"Invalid report month: {year}-{month}")

    store = TemplateStore(template_dir, loader)
    try:
        filler = MonthlyReportFiller(store, subject, year, month)
        content = serialize(filler.fill(record))
    finally:
        store.close()

    result = ExportResult(suggest_monthly_filename(subject.name, year, month), content, warnings=list(filler.warnings))
    logging.info(f"[export_sink.export_monthly_report] Report '{result.filename}' ready ({len(content)} bytes).")
    return result

# --- END OF FILE export_sink.py ---
