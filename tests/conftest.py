import datetime

import pytest

from records import DailyRecord, Subject, SupportMethod, WeeklyRecord
from template_builder import build_templates
from template_store import TemplateStore


@pytest.fixture(scope="session")
def template_dir(tmp_path_factory):
    """Template workbooks generated once per test session."""
    path = tmp_path_factory.mktemp("templates")
    build_templates(str(path))
    return str(path)


@pytest.fixture
def store(template_dir):
    template_store = TemplateStore(template_dir)
    yield template_store
    template_store.close()


@pytest.fixture
def subject():
    return Subject(name="山田太郎", recipient_number="12345")


def make_daily(day, **overrides):
    values = dict(
        date=datetime.date(2025, 4, day),
        recorder_name="佐藤",
        start_time="10:00",
        end_time="16:00",
        support_method=SupportMethod.VISIT,
        task_content=f"作業{day}",
    )
    values.update(overrides)
    return DailyRecord(**values)


def make_weekly(start, end, **overrides):
    values = dict(
        period_start=start,
        period_end=end,
        recorder_name="佐藤",
        evaluation_content="進捗良好",
        confirmer_name="鈴木",
    )
    values.update(overrides)
    return WeeklyRecord(**values)
