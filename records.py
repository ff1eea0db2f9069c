"""
Support records handed over by the persistence layer, normalised into typed objects.

Input dictionaries may use the camelCase keys of the web API or snake_case keys.
"""

import datetime
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from era_converter import parse_date
from errors import InputValidationError


class SupportMethod(Enum):
    VISIT = "訪問"
    PHONE = "電話"
    OTHER = "その他"


class EvaluationMethod(Enum):
    ATTENDANCE = "通所"
    VISIT = "訪問"
    OTHER = "その他"


# Sort rank on equal dates: daily before weekly
DAILY_RANK = 0
WEEKLY_RANK = 1


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Returns the first non-None value among keys."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _time_text(value: Any) -> str:
    """Normalises a time mark to 'HH:MM'. Accepts time/datetime objects or strings."""
    if value is None:
        return ""
    if isinstance(value, (datetime.time, datetime.datetime)):
        return value.strftime("%H:%M")
    text = str(value).strip()
    # ISO timestamps ('2025-04-01T10:00:00') keep only the clock part
    if "T" in text:
        text = text.split("T", 1)[1]
    return text[:5] if len(text) >= 5 and text[2:3] == ":" else text


def _parse_method(enum_cls, value: Any):
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for member in enum_cls:
        if text == member.value or text.upper() == member.name:
            return member
    logging.debug(f"[records._parse_method] '{text}' is not a {enum_cls.__name__}; treating as OTHER.")
    return enum_cls.OTHER


def _method_and_note(enum_cls, method: Any, note: str):
    """Free text outside the enum becomes OTHER, with the text kept as its note."""
    parsed = _parse_method(enum_cls, method)
    if parsed is enum_cls.OTHER and not note and isinstance(method, str):
        text = method.strip()
        if text not in (enum_cls.OTHER.value, enum_cls.OTHER.name):
            note = text
    return parsed, note


@dataclass(frozen=True)
class Subject:
    """The person the report is about."""
    name: str
    recipient_number: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subject":
        return cls(
            name=_text(_pick(data, "name", "studentName", "student_name")),
            recipient_number=_text(_pick(data, "recipientNumber", "recipient_number", "certificateNumber")),
        )


@dataclass(frozen=True)
class DailyRecord:
    date: Optional[datetime.date]
    recorder_name: str = ""
    start_time: str = ""
    end_time: str = ""
    break_start: str = ""
    break_end: str = ""
    support_method: Optional[SupportMethod] = None
    support_method_note: str = ""
    task_content: str = ""
    support_content: str = ""
    advice: str = ""

    kind = "daily"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyRecord":
        method = _pick(data, "supportMethod", "support_method")
        note = _text(_pick(data, "supportMethodOther", "support_method_note", "supportMethodNote"))
        parsed_method, note = _method_and_note(SupportMethod, method, note)
        return cls(
            date=parse_date(_pick(data, "date", "recordDate", "record_date")),
            recorder_name=_text(_pick(data, "recorderName", "recorder_name", "responder", "instructor")),
            start_time=_time_text(_pick(data, "startTime", "start_time", "markStart")),
            end_time=_time_text(_pick(data, "endTime", "end_time", "markEnd")),
            break_start=_time_text(_pick(data, "breakStart", "break_start", "breakStartTime")),
            break_end=_time_text(_pick(data, "breakEnd", "break_end", "breakEndTime")),
            support_method=parsed_method,
            support_method_note=note,
            task_content=_text(_pick(data, "taskContent", "task_content", "workContent")),
            support_content=_text(_pick(data, "supportContent", "support_content")),
            advice=_text(_pick(data, "advice", "healthStatus", "health_status", "adviceNote")),
        )

    def sort_key(self) -> Tuple[datetime.date, int]:
        return (self.date or datetime.date.min, DAILY_RANK)


@dataclass(frozen=True)
class WeeklyRecord:
    period_start: Optional[datetime.date]
    period_end: Optional[datetime.date]
    date: Optional[datetime.date] = None
    recorder_name: str = ""
    evaluation_method: Optional[EvaluationMethod] = None
    evaluation_method_note: str = ""
    evaluation_content: str = ""
    confirmer_name: str = ""
    previous_evaluation_date: Optional[datetime.date] = None

    kind = "weekly"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeeklyRecord":
        period = data.get("period") if isinstance(data.get("period"), dict) else {}
        method = _pick(data, "evaluationMethod", "evaluation_method", "method")
        note = _text(_pick(data, "evaluationMethodOther", "evaluation_method_note", "methodOther"))
        parsed_method, note = _method_and_note(EvaluationMethod, method, note)
        return cls(
            period_start=parse_date(_pick(data, "periodStart", "period_start", default=period.get("start"))),
            period_end=parse_date(_pick(data, "periodEnd", "period_end", default=period.get("end"))),
            date=parse_date(_pick(data, "date", "evalDate", "eval_date")),
            recorder_name=_text(_pick(data, "recorderName", "recorder_name", "instructor")),
            evaluation_method=parsed_method,
            evaluation_method_note=note,
            evaluation_content=_text(_pick(data, "evaluationContent", "evaluation_content", "content")),
            confirmer_name=_text(_pick(data, "confirmerName", "confirmer_name", "confirmer")),
            previous_evaluation_date=parse_date(_pick(data, "prevEvalDate", "previousEvaluationDate", "previous_evaluation_date")),
        )

    @property
    def sort_date(self) -> Optional[datetime.date]:
        return self.period_end or self.date

    @property
    def evaluation_date(self) -> Optional[datetime.date]:
        return self.date or self.period_end

    def sort_key(self) -> Tuple[datetime.date, int]:
        return (self.sort_date or datetime.date.min, WEEKLY_RANK)


@dataclass(frozen=True)
class MonthlyRecord:
    """Single-record monthly achievement evaluation."""
    date: Optional[datetime.date]
    start_time: str = ""
    end_time: str = ""
    method: Optional[EvaluationMethod] = None
    method_note: str = ""
    training_goal: str = ""
    work_content: str = ""
    achievement: str = ""
    issues: str = ""
    improvement_plan: str = ""
    health_notes: str = ""
    other_notes: str = ""
    continuity_validity: str = ""
    evaluator: str = ""
    subject_signature: str = ""
    previous_evaluation_date: Optional[datetime.date] = None

    kind = "monthly"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonthlyRecord":
        return cls(
            date=parse_date(_pick(data, "date", "evalDate", "evaluationDate", "evaluation_date")),
            start_time=_time_text(_pick(data, "startTime", "start_time")),
            end_time=_time_text(_pick(data, "endTime", "end_time")),
            method=_parse_method(EvaluationMethod, _pick(data, "method", "evaluationMethod")),
            method_note=_text(_pick(data, "methodOther", "method_note", "evaluationMethodOther")),
            training_goal=_text(_pick(data, "trainingGoal", "training_goal")),
            work_content=_text(_pick(data, "workContent", "work_content")),
            achievement=_text(_pick(data, "achievement")),
            issues=_text(_pick(data, "issues")),
            improvement_plan=_text(_pick(data, "improvementPlan", "improvement_plan")),
            health_notes=_text(_pick(data, "healthNotes", "health_notes")),
            other_notes=_text(_pick(data, "otherNotes", "other_notes")),
            continuity_validity=_text(_pick(data, "continuityValidity", "continuity_validity")),
            evaluator=_text(_pick(data, "evaluator")),
            subject_signature=_text(_pick(data, "studentSignature", "subjectSignature", "subject_signature")),
            previous_evaluation_date=parse_date(_pick(data, "previousEvaluationDate", "prevEvalDate", "previous_evaluation_date")),
        )


Record = Union[DailyRecord, WeeklyRecord]


def merge_and_sort(daily_records: Iterable[DailyRecord], weekly_records: Iterable[WeeklyRecord]) -> List[Record]:
    """
    Merges both collections into one list ordered by date.

    Daily records use `date`, weekly records use `period_end` (falling back to `date`).
    On equal dates the daily record comes first; remaining ties keep input order.
    """
    merged: List[Record] = list(daily_records) + list(weekly_records)
    return sorted(merged, key=lambda record: record.sort_key())


def coerce_records(items: Any, record_cls, name: str = "records") -> List:
    """
    Turns a list of dicts and/or record_cls instances into record_cls instances.

    Raises:
        InputValidationError: items is not a list, or holds something else.
    """
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        logging.error(f"[records.coerce_records] '{name}' is a {type(items).__name__}, not a list.")
        raise InputValidationError(f"'{name}' must be a list of records, got {type(items).__name__}.")
    coerced = []
    for index, item in enumerate(items):
        if isinstance(item, dict):
            coerced.append(record_cls.from_dict(item))
        elif isinstance(item, record_cls):
            coerced.append(item)
        else:
            logging.error(f"[records.coerce_records] '{name}'[{index}] is a {type(item).__name__}.")
            raise InputValidationError(f"'{name}'[{index}] must be a {record_cls.__name__} or a JSON object, got {type(item).__name__}.")
    return coerced


def load_records(payload: Dict[str, Any]) -> Tuple[Optional[Subject], List[DailyRecord], List[WeeklyRecord]]:
    """Builds the typed inputs from an export payload ({'subject', 'daily', 'weekly'})."""
    subject_data = payload.get("subject") or payload.get("user")
    subject = Subject.from_dict(subject_data) if isinstance(subject_data, dict) else None
    daily = coerce_records(payload.get("daily"), DailyRecord, "daily")
    weekly = coerce_records(payload.get("weekly"), WeeklyRecord, "weekly")
    logging.info(f"[records.load_records] Loaded {len(daily)} daily and {len(weekly)} weekly record(s).")
    return subject, daily, weekly
