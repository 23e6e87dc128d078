from datetime import UTC, datetime

import pytest

from coachtrend.data.source import InMemoryEventSource
from coachtrend.domain.models import Event, EventKind


def make_event(
    event_id,
    ts,
    *,
    subject="athlete-1",
    kind=EventKind.EXERCISE,
    category=None,
    score=None,
    completed=None,
    label=None,
):
    if isinstance(ts, str):
        ts = datetime.fromisoformat(ts).replace(tzinfo=UTC)
    return Event(
        id=event_id,
        subject_id=subject,
        timestamp=ts,
        kind=kind,
        category_id=category,
        score=score,
        completed=completed,
        label=label,
    )


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def exercise_events():
    """
    Three weeks of "break-building" scores (2, 4, 6) plus one "safety" score.
    Baseline for break-building: mean 4, sample std dev 2.
    """
    return [
        make_event("e1", "2024-01-02T10:00:00", category="break", score=2, label="Break Building"),
        make_event("e2", "2024-01-09T10:00:00", category="break", score=4, label="Break Building"),
        make_event("e3", "2024-01-16T10:00:00", category="break", score=6, label="Break Building"),
        make_event("e4", "2024-01-16T12:00:00", category="safety", score=3, label="Safety Drill"),
    ]


@pytest.fixture
def source(exercise_events):
    src = InMemoryEventSource(
        exercise_events,
        exercise_names={"athlete-1": {"break": "Break Building", "safety": "Safety Drill"}},
    )
    src.add(make_event("p1", "2024-01-15T00:00:00", kind=EventKind.PLAN_ITEM, label="Break Building"))
    src.add(make_event("p2", "2024-01-15T00:00:00", kind=EventKind.PLAN_ITEM, label="Long Potting"))
    src.add(make_event("t1", "2024-01-08T00:00:00", kind=EventKind.TASK, completed=True, category="break"))
    src.add(make_event("t2", "2024-01-08T00:00:00", kind=EventKind.TASK, completed=False))
    src.add(make_event("s1", "2024-01-03T20:00:00", kind=EventKind.SELF_ASSESSMENT, category="self_assessment", score=7))
    src.add(make_event("s2", "2024-01-04T20:00:00", kind=EventKind.SELF_ASSESSMENT, category="self_assessment", score=9))
    return src
