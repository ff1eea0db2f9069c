import datetime

import pytest
from openpyxl import Workbook

from conftest import make_daily, make_weekly
from field_placement import (
    apply_fields,
    daily_values,
    method_text,
    monthly_values,
    placement_map,
    resolve_coordinates,
    title_values,
    weekly_values,
)
from records import EvaluationMethod, MonthlyRecord, SupportMethod
from region import RegionWriter
from region_copier import copy_region


def _placed(store, template_id, top):
    fragment = store.load_fragment(template_id)
    ws = Workbook().active
    writer = RegionWriter(ws, top, top + fragment.height - 1)
    copy_region(fragment, (fragment.row_start, fragment.row_end), writer, top)
    return ws, writer


def test_daily_fields_land_on_their_cells(store):
    ws, writer = _placed(store, "daily", 5)
    record = make_daily(1, task_content="書類整理", advice="体調良好", support_content="手順を確認")

    written = apply_fields(writer, "daily", daily_values(record))

    assert ws["D6"].value == "令和7年4月1日"
    assert ws["O6"].value == "10:00 〜 16:00"
    assert ws["O7"].value == "☑訪問 □電話 □その他"
    assert ws["D8"].value == "書類整理"
    assert ws["D11"].value == "手順を確認"
    assert ws["D16"].value == "体調良好"
    assert ws["D20"].value == "佐藤"
    assert "break_range" not in written


def test_weekly_fields_land_on_their_cells(store):
    ws, writer = _placed(store, "weekly", 1)
    record = make_weekly(datetime.date(2025, 3, 25), datetime.date(2025, 3, 31),
                         evaluation_method=EvaluationMethod.ATTENDANCE,
                         previous_evaluation_date=datetime.date(2025, 3, 24))

    apply_fields(writer, "weekly", weekly_values(record))

    assert ws["D2"].value == "令和7年3月31日"
    assert ws["O2"].value == "☑通所 □訪問 □その他"
    assert ws["D3"].value == "令和7年3月25日 〜 令和7年3月31日"
    assert ws["D4"].value == "進捗良好"
    assert ws["D13"].value == "令和7年3月24日"
    assert ws["D14"].value == "佐藤"
    assert ws["O14"].value == "鈴木"


def test_title_fields(store, subject):
    ws, writer = _placed(store, "title", 1)
    apply_fields(writer, "title", title_values(subject, "2025-04-01", "2025-04-30", datetime.date(2025, 5, 1)))
    assert ws["D2"].value == "山田太郎"
    assert ws["Q2"].value == "12345"
    assert ws["D3"].value == "令和7年4月1日 〜 令和7年4月30日"
    assert ws["D4"].value == "令和7年5月1日"


def test_second_pass_does_not_overwrite(store):
    ws, writer = _placed(store, "daily", 1)
    apply_fields(writer, "daily", daily_values(make_daily(1, task_content="最初")))
    written = apply_fields(writer, "daily", daily_values(make_daily(2, task_content="二回目")))
    assert written == []
    assert ws["D4"].value == "最初"
    assert ws["A2"].value == "実施日"


def test_unknown_field_raises(store):
    _, writer = _placed(store, "daily", 1)
    with pytest.raises(KeyError):
        apply_fields(writer, "daily", {"no_such_field": "x"})


def test_unknown_revision_raises():
    with pytest.raises(KeyError):
        placement_map("daily", "1999.1")


def _legacy_daily_sheet(recorder_row):
    """A daily layout variant whose recorder row sits higher than the current revision."""
    ws = Workbook().active
    ws["A1"] = "日次支援記録"
    ws["A2"] = "実施日"
    if recorder_row:
        ws.cell(row=recorder_row, column=1, value="記録者")
    return ws, RegionWriter(ws, 1, 16)


def test_label_scan_locates_shifted_rows():
    ws, writer = _legacy_daily_sheet(recorder_row=10)
    apply_fields(writer, "daily", {"date": "令和7年4月1日", "recorder_name": "佐藤"}, label_scan=True)
    assert ws["D2"].value == "令和7年4月1日"
    assert ws["D10"].value == "佐藤"
    assert ws["D16"].value is None


def test_label_scan_disabled_uses_static_map():
    ws, writer = _legacy_daily_sheet(recorder_row=10)
    apply_fields(writer, "daily", {"recorder_name": "佐藤"}, label_scan=False)
    assert ws["D16"].value == "佐藤"
    assert ws["D10"].value is None


def test_label_missing_falls_back_to_static_map():
    ws, writer = _legacy_daily_sheet(recorder_row=None)
    coordinates = resolve_coordinates(writer, "daily", label_scan=True)
    assert coordinates["recorder_name"] == (15, "D")
    assert coordinates["date"] == (1, "D")


def test_label_scan_ignores_content_written_later(store):
    ws, writer = _placed(store, "daily", 1)
    record = make_daily(1, support_content="記録者へ連絡")
    apply_fields(writer, "daily", daily_values(record), label_scan=True)
    assert ws["D7"].value == "記録者へ連絡"
    assert ws["D16"].value == "佐藤"


def test_merged_target_is_skipped_with_warning():
    ws = Workbook().active
    ws.merge_cells("C2:E2")
    writer = RegionWriter(ws, 1, 16)
    warnings = []
    written = apply_fields(writer, "daily", {"date": "令和7年4月1日"}, label_scan=False, warnings=warnings)
    assert written == []
    assert len(warnings) == 1


def test_method_text():
    assert method_text(SupportMethod, SupportMethod.VISIT) == "☑訪問 □電話 □その他"
    assert method_text(SupportMethod, SupportMethod.OTHER, "オンライン") == "□訪問 □電話 ☑その他（オンライン）"
    assert method_text(SupportMethod, None) == "□訪問 □電話 □その他"


def test_monthly_values(subject):
    record = MonthlyRecord(
        date=datetime.date(2025, 4, 15),
        method=EvaluationMethod.VISIT,
        method_note="ignored unless other",
        previous_evaluation_date=datetime.date(2025, 3, 14),
    )
    values = monthly_values(record, subject, 2025, 4)
    assert (values["era_name"], values["era_year"], values["month"]) == ("令和", 7, 4)
    assert (values["evaluation_year"], values["evaluation_month"], values["evaluation_day"]) == (7, 4, 15)
    assert values["method_visit"] == "✓"
    assert values["method_attendance"] == ""
    assert values["method_note"] == ""
    assert (values["previous_year"], values["previous_month"], values["previous_day"]) == (7, 3, 14)


def test_monthly_values_without_dates(subject):
    values = monthly_values(MonthlyRecord(date=None), subject, 2025, 4)
    assert values["evaluation_year"] == ""
    assert values["previous_day"] == ""
