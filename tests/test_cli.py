import json
import os

import pytest

import config as cfg
from main import main


def _write_json(path, data):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
    return str(path)


def test_build_templates_command(tmp_path):
    out = tmp_path / "templates"
    assert main(["build-templates", "--output-dir", str(out)]) == 0
    assert sorted(os.listdir(out)) == sorted(cfg.TEMPLATE_FILES.values())


def test_export_command(tmp_path, template_dir):
    payload = _write_json(tmp_path / "records.json", {
        "subject": {"name": "山田太郎", "recipientNumber": "12345"},
        "period": {"start": "2025-04-01", "end": "2025-04-30"},
        "daily": [{"date": "2025-04-01", "taskContent": "書類整理"}],
        "weekly": [{"periodStart": "2025-03-25", "periodEnd": "2025-03-31", "evaluationContent": "進捗良好"}],
    })
    out = tmp_path / "out"
    code = main(["export", "--input", payload, "--templates", template_dir, "--output-dir", str(out)])
    assert code == 0
    assert os.listdir(out) == ["在宅就労支援記録_山田太郎_2025-04-01_2025-04-30.xlsx"]


def test_export_command_rejects_missing_subject(tmp_path, template_dir, capsys):
    payload = _write_json(tmp_path / "records.json", {
        "period": {"start": "2025-04-01", "end": "2025-04-30"},
        "daily": [{"date": "2025-04-01"}],
    })
    out = tmp_path / "out"
    code = main(["export", "--input", payload, "--templates", template_dir, "--output-dir", str(out)])
    assert code == 1
    assert not out.exists()
    assert "Error:" in capsys.readouterr().err


@pytest.mark.parametrize("daily", [["bad"], {"date": "2025-04-01"}])
def test_export_command_rejects_malformed_records(tmp_path, template_dir, capsys, daily):
    payload = _write_json(tmp_path / "records.json", {
        "subject": {"name": "山田太郎"},
        "period": {"start": "2025-04-01", "end": "2025-04-30"},
        "daily": daily,
    })
    out = tmp_path / "out"
    code = main(["export", "--input", payload, "--templates", template_dir, "--output-dir", str(out)])
    assert code == 1
    assert not out.exists()
    assert "Error:" in capsys.readouterr().err


def test_export_command_with_missing_templates(tmp_path):
    payload = _write_json(tmp_path / "records.json", {
        "subject": {"name": "山田太郎"},
        "period": {"start": "2025-04-01", "end": "2025-04-30"},
        "daily": [{"date": "2025-04-01"}],
    })
    code = main(["export", "--input", payload, "--templates", str(tmp_path / "none"),
                 "--output-dir", str(tmp_path / "out")])
    assert code == 1


def test_export_monthly_command(tmp_path, template_dir):
    payload = _write_json(tmp_path / "monthly.json", {
        "subject": {"name": "山田太郎"},
        "year": 2025,
        "month": 4,
        "record": {"evalDate": "2025-04-15", "method": "通所"},
    })
    out = tmp_path / "out"
    code = main(["--log-level", "DEBUG", "export-monthly", "--input", payload,
                 "--templates", template_dir, "--output-dir", str(out)])
    assert code == 0
    assert os.listdir(out) == ["在宅支援達成度評価_山田太郎_2025年4月.xlsx"]


def test_unreadable_input(tmp_path):
    assert main(["export", "--input", str(tmp_path / "missing.json")]) == 1
