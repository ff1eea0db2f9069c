import asyncio
import datetime
import io
import os

import pytest
from openpyxl import load_workbook

import config as cfg
from conftest import make_daily, make_weekly
from errors import InputValidationError, TemplateLoadError
from export_sink import (
    ExportResult,
    export_monthly_report,
    export_report,
    export_report_async,
    serialize,
    suggest_filename,
    suggest_monthly_filename,
)
from records import MonthlyRecord, EvaluationMethod
from template_store import directory_loader


def _never_called(template_id):
    raise AssertionError(f"template '{template_id}' must not be fetched")


def test_suggest_filename():
    name = suggest_filename("山田太郎", datetime.date(2025, 4, 1), "2025-04-30")
    assert name == "在宅就労支援記録_山田太郎_2025-04-01_2025-04-30.xlsx"


def test_suggest_filename_sanitises_and_fills_missing_parts():
    assert suggest_filename("山田/太郎:", None, "2025-04-30") == "在宅就労支援記録_山田_太郎_未設定_2025-04-30.xlsx"
    assert suggest_filename(None, "2025-04-01", "2025-04-30").startswith("在宅就労支援記録_未設定_")


def test_suggest_monthly_filename():
    assert suggest_monthly_filename("山田太郎", 2025, 4) == "在宅支援達成度評価_山田太郎_2025年4月.xlsx"


def test_missing_subject_rejected_before_templates():
    with pytest.raises(InputValidationError):
        export_report(None, [make_daily(1)], [], "2025-04-01", "2025-04-30", loader=_never_called)
    with pytest.raises(InputValidationError):
        export_report({"name": ""}, [make_daily(1)], [], "2025-04-01", "2025-04-30", loader=_never_called)


def test_empty_records_rejected(subject):
    with pytest.raises(InputValidationError):
        export_report(subject, [], [], "2025-04-01", "2025-04-30", loader=_never_called)


@pytest.mark.parametrize("daily, weekly", [
    (["bad"], []),
    ([make_daily(1), object()], []),
    ({"date": "2025-04-01"}, []),
    ([], [make_daily(2)]),
])
def test_malformed_records_rejected_before_templates(subject, daily, weekly):
    """Anything other than a list of dicts or records of the right kind is rejected up front."""
    with pytest.raises(InputValidationError):
        export_report(subject, daily, weekly, "2025-04-01", "2025-04-30", loader=_never_called)


@pytest.mark.parametrize("start, end", [(None, "2025-04-30"), ("2025-04-30", "2025-04-01"), ("garbage", "2025-04-30")])
def test_bad_period_rejected(subject, start, end):
    with pytest.raises(InputValidationError):
        export_report(subject, [make_daily(1)], [], start, end, loader=_never_called)


def test_export_report(template_dir, subject):
    result = export_report(
        subject,
        [make_daily(1, task_content="書類整理")],
        [make_weekly(datetime.date(2025, 3, 25), datetime.date(2025, 3, 31))],
        "2025-04-01", "2025-04-30",
        template_dir=template_dir,
    )
    assert result.filename == "在宅就労支援記録_山田太郎_2025-04-01_2025-04-30.xlsx"
    assert result.media_type == cfg.OUTPUT_MEDIA_TYPE
    assert result.warnings == []

    ws = load_workbook(io.BytesIO(result.content)).active
    assert ws.title == cfg.OUTPUT_SHEET_TITLE
    assert ws["D2"].value == "山田太郎"
    assert ws.page_setup.paperSize == 9


def test_export_accepts_plain_dicts(template_dir):
    result = export_report(
        {"name": "山田太郎", "recipientNumber": "12345"},
        [{"date": "2025-04-01", "taskContent": "書類整理"}],
        [],
        "2025-04-01", "2025-04-30",
        loader=directory_loader(template_dir),
    )
    ws = load_workbook(io.BytesIO(result.content)).active
    assert ws["Q2"].value == "12345"


def test_export_async(template_dir, subject):
    result = asyncio.run(export_report_async(
        subject, [make_daily(1)], [], "2025-04-01", "2025-04-30", template_dir=template_dir))
    assert result.content[:2] == b"PK"


def test_exports_are_independent(template_dir, subject):
    first = export_report(subject, [make_daily(1)], [], "2025-04-01", "2025-04-30", template_dir=template_dir)
    second = export_report(subject, [make_daily(1)], [], "2025-04-01", "2025-04-30", template_dir=template_dir)
    first_ws = load_workbook(io.BytesIO(first.content)).active
    second_ws = load_workbook(io.BytesIO(second.content)).active
    assert first_ws.max_row == second_ws.max_row
    assert len(first_ws.merged_cells.ranges) == len(second_ws.merged_cells.ranges)


def test_missing_templates_fail_the_export(tmp_path, subject):
    with pytest.raises(TemplateLoadError):
        export_report(subject, [make_daily(1)], [], "2025-04-01", "2025-04-30", template_dir=str(tmp_path))


def test_result_write_to(tmp_path):
    result = ExportResult("report.xlsx", b"data")
    path = result.write_to(str(tmp_path / "out"))
    assert os.path.basename(path) == "report.xlsx"
    with open(path, "rb") as f:
        assert f.read() == b"data"


def test_serialize_round_trips_cells():
    from openpyxl import Workbook
    wb = Workbook()
    wb.active["B2"] = "値"
    assert load_workbook(io.BytesIO(serialize(wb))).active["B2"].value == "値"


def test_export_monthly_report(template_dir, subject):
    record = MonthlyRecord(
        date=datetime.date(2025, 4, 15),
        start_time="10:00",
        end_time="15:00",
        method=EvaluationMethod.VISIT,
        training_goal="PC操作の習得",
        evaluator="佐藤",
        subject_signature="山田太郎",
        previous_evaluation_date=datetime.date(2025, 3, 14),
    )
    result = export_monthly_report(subject, record, 2025, 4, template_dir=template_dir)

    assert result.filename == "在宅支援達成度評価_山田太郎_2025年4月.xlsx"
    ws = load_workbook(io.BytesIO(result.content)).active
    assert ws["S1"].value == "令和"
    assert ws["V1"].value == 7
    assert ws["X1"].value == 4
    assert ws["D4"].value == "山田太郎"
    assert ws["Q4"].value == "12345"
    assert (ws["D6"].value, ws["I6"].value, ws["L6"].value) == (7, 4, 15)
    assert (ws["Q6"].value, ws["V6"].value) == ("10:00", "15:00")
    assert ws["F7"].value == "✓"
    assert ws["D7"].value is None
    assert ws["D9"].value == "PC操作の習得"
    assert ws["D34"].value == "佐藤"
    assert (ws["S34"].value, ws["V34"].value, ws["X34"].value) == (7, 3, 14)
    assert ws["Q36"].value == "山田太郎"
    assert "D9:X11" in {str(r) for r in ws.merged_cells.ranges}


def test_export_monthly_from_dict(template_dir, subject):
    result = export_monthly_report(subject, {"evalDate": "2025-04-15", "method": "その他", "methodOther": "電話"},
                                   "2025", "4", template_dir=template_dir)
    ws = load_workbook(io.BytesIO(result.content)).active
    assert ws["H7"].value == "✓"
    assert ws["K7"].value == "電話"


@pytest.mark.parametrize("record, year, month", [
    (None, 2025, 4),
    (MonthlyRecord(date=None), 2025, 13),
    (MonthlyRecord(date=None), "x", 4),
])
def test_export_monthly_validation(subject, record, year, month):
    with pytest.raises(InputValidationError):
        export_monthly_report(subject, record, year, month, loader=_never_called)
