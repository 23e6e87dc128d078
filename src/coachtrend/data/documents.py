from __future__ import annotations

import math
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from coachtrend.domain.models import Event, EventKind, WeekKey, coerce_timestamp
from coachtrend.exceptions import InvalidInput

SELF_ASSESSMENT_CATEGORY = "self_assessment"


class CollectionKind(str, Enum):
    """Per-user document collections events are read from."""
    EXERCISE_RECORDS = "exercise_records"
    TRAINING_RECORDS = "training_records"
    TASK_HISTORY = "task_history"
    TRAININGSPLAN_HISTORY = "trainingsplan_history"

    @property
    def order_field(self) -> str:
        return _ORDER_FIELDS[self]


_ORDER_FIELDS = {
    CollectionKind.EXERCISE_RECORDS: "timestamp",
    CollectionKind.TRAINING_RECORDS: "date",
    CollectionKind.TASK_HISTORY: "weekKey",
    CollectionKind.TRAININGSPLAN_HISTORY: "weekStartDate",
}


def _score(value: Any, doc_id: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"Document {doc_id}: score must be numeric, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidInput(f"Document {doc_id}: score must be finite, got {value!r}")
    return float(value)


def _items(data: Mapping[str, Any], key: str, doc_id: str) -> list:
    items = data.get(key)
    if items is None:
        return []
    if not isinstance(items, list):
        raise InvalidInput(f"Document {doc_id}: '{key}' must be a list")
    return items


def _event(doc_id: str, **fields: Any) -> Event:
    try:
        return Event.from_raw(**fields)
    except InvalidInput as exc:
        raise InvalidInput(f"Document {doc_id}: {exc}") from exc


def _week_start(value: Any, doc_id: str):
    # task_history stores either an ISO week key or a date-like week start.
    if isinstance(value, str) and "-W" in value:
        return WeekKey.parse(value).monday()
    if value is None:
        raise InvalidInput(f"Document {doc_id}: missing week")
    return coerce_timestamp(value)


def exercise_record_events(
    doc_id: str,
    data: Mapping[str, Any],
    subject_id: str,
    exercise_names: Optional[Mapping[str, str]] = None,
) -> list[Event]:
    exercise_id = data.get("exerciseId")
    names = exercise_names or {}
    return [
        _event(
            doc_id,
            id=doc_id,
            subject_id=subject_id,
            timestamp=data.get("timestamp"),
            kind=EventKind.EXERCISE,
            category_id=str(exercise_id) if exercise_id else None,
            score=_score(data.get("score"), doc_id),
            label=names.get(exercise_id) if exercise_id else None,
        )
    ]


def training_record_events(doc_id: str, data: Mapping[str, Any], subject_id: str) -> list[Event]:
    """One self-assessment event per numeric item score."""
    events = []
    for index, item in enumerate(_items(data, "items", doc_id)):
        score = item.get("score") if isinstance(item, Mapping) else None
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            continue
        if isinstance(score, float) and not math.isfinite(score):
            raise InvalidInput(f"Document {doc_id}: item {index} score must be finite, got {score!r}")
        events.append(
            _event(
                doc_id,
                id=f"{doc_id}:{index}",
                subject_id=subject_id,
                timestamp=data.get("date"),
                kind=EventKind.SELF_ASSESSMENT,
                category_id=SELF_ASSESSMENT_CATEGORY,
                score=float(score),
                label=item.get("title"),
            )
        )
    return events


def task_history_events(doc_id: str, data: Mapping[str, Any], subject_id: str) -> list[Event]:
    week_value = data.get("weekKey") if data.get("weekKey") is not None else data.get("timestamp")
    start = _week_start(week_value, doc_id)
    events = []
    for index, task in enumerate(_items(data, "taskCompletions", doc_id)):
        if not isinstance(task, Mapping):
            raise InvalidInput(f"Document {doc_id}: task entry {index} is not an object")
        exercise_id = task.get("exerciseId")
        events.append(
            _event(
                doc_id,
                id=f"{doc_id}:{index}",
                subject_id=subject_id,
                timestamp=start,
                kind=EventKind.TASK,
                category_id=str(exercise_id) if exercise_id else None,
                completed=bool(task.get("completed")),
                label=task.get("title") or task.get("name"),
            )
        )
    return events


def plan_events(doc_id: str, data: Mapping[str, Any], subject_id: str) -> list[Event]:
    week_start = data.get("weekStartDate")
    if week_start is None:
        raise InvalidInput(f"Document {doc_id}: missing weekStartDate")
    events = []
    for index, item in enumerate(_items(data, "items", doc_id)):
        if not isinstance(item, Mapping):
            raise InvalidInput(f"Document {doc_id}: plan item {index} is not an object")
        events.append(
            _event(
                doc_id,
                id=f"{doc_id}:{index}",
                subject_id=subject_id,
                timestamp=week_start,
                kind=EventKind.PLAN_ITEM,
                label=item.get("activity") or "",
            )
        )
    return events


def events_from_documents(
    kind: CollectionKind,
    documents: Iterable[tuple[str, Mapping[str, Any]]],
    subject_id: str,
    exercise_names: Optional[Mapping[str, str]] = None,
) -> list[Event]:
    """
    Converts raw (doc_id, data) pairs of one collection into events.

    Raises:
        InvalidInput: a document is malformed; the message names the document.
    """
    events: list[Event] = []
    for doc_id, data in documents:
        if kind == CollectionKind.EXERCISE_RECORDS:
            events.extend(exercise_record_events(doc_id, data, subject_id, exercise_names))
        elif kind == CollectionKind.TRAINING_RECORDS:
            events.extend(training_record_events(doc_id, data, subject_id))
        elif kind == CollectionKind.TASK_HISTORY:
            events.extend(task_history_events(doc_id, data, subject_id))
        elif kind == CollectionKind.TRAININGSPLAN_HISTORY:
            events.extend(plan_events(doc_id, data, subject_id))
        else:
            raise ValueError(f"Unhandled collection kind: {kind!r}")
    return events
