import pytest

from coachtrend.domain.models import BaselineStats, EventKind, ReducerKind, WeekKey
from coachtrend.logic.aggregation import (
    AdherenceRate,
    AverageScore,
    AverageZScore,
    CompletionRate,
    SeriesAggregator,
    reducer_for,
)


@pytest.fixture
def aggregator():
    return SeriesAggregator()


def test_average_score_scenario(aggregator, event_factory):
    events = [
        event_factory("a", "2024-01-01T09:00:00", score=8),
        event_factory("b", "2024-01-03T09:00:00", score=6),
        event_factory("c", "2024-01-08T09:00:00", score=10),
        event_factory("d", "2024-01-09T09:00:00"),  # no score, out of scope
    ]
    series = aggregator.aggregate(events, AverageScore())
    assert series.labels == ["2024-W01", "2024-W02"]
    assert series.values == [7.0, 10.0]
    assert series.sample_counts == [2, 1]


def test_output_is_sorted_and_unique(aggregator, event_factory):
    events = [
        event_factory("c", "2024-02-20T09:00:00", score=1),
        event_factory("a", "2023-12-30T09:00:00", score=1),
        event_factory("b", "2024-01-10T09:00:00", score=1),
        event_factory("d", "2024-01-11T09:00:00", score=1),
    ]
    series = aggregator.aggregate(events, AverageScore())
    keys = [p.week_key for p in series]
    assert all(keys[i] < keys[i + 1] for i in range(len(keys) - 1))
    assert len(keys) == 3


def test_average_z_score_skips_undefined(aggregator, event_factory):
    baselines = {
        "break": BaselineStats(mean=4, sample_std_dev=2, n=3),
        "flat": BaselineStats(mean=5, sample_std_dev=0, n=2),
    }
    events = [
        event_factory("a", "2024-01-02T10:00:00", category="break", score=6),  # z = 1
        event_factory("b", "2024-01-02T11:00:00", category="flat", score=5),   # z = 0
        event_factory("c", "2024-01-02T12:00:00", category="flat", score=7),   # undefined, skipped
        event_factory("d", "2024-01-02T13:00:00", category="unknown", score=7),
        event_factory("e", "2024-01-09T10:00:00", category="flat", score=9),   # only undefined -> week omitted
    ]
    series = aggregator.aggregate(events, AverageZScore(baselines))
    assert series.labels == ["2024-W01"]
    assert series.values == [pytest.approx(0.5)]
    assert series.sample_counts == [2]


def test_completion_rate_omits_weeks_without_scope(aggregator, event_factory):
    events = [
        event_factory("a", "2024-01-01T00:00:00", kind=EventKind.TASK, completed=True),
        event_factory("b", "2024-01-01T00:00:00", kind=EventKind.TASK, completed=False),
        event_factory("c", "2024-01-02T00:00:00", kind=EventKind.TASK, completed=True),
        event_factory("d", "2024-01-08T00:00:00", kind=EventKind.TASK),  # no flag
    ]
    series = aggregator.aggregate(events, CompletionRate())
    assert series.labels == ["2024-W01"]
    assert series.values[0] == pytest.approx(200 / 3)
    assert series.sample_counts == [3]
    assert WeekKey(2024, 2) not in [p.week_key for p in series]


def test_adherence_half_of_plan_done(aggregator, event_factory):
    events = [
        event_factory("p1", "2024-01-01T00:00:00", kind=EventKind.PLAN_ITEM, label="A"),
        event_factory("p2", "2024-01-01T00:00:00", kind=EventKind.PLAN_ITEM, label="B"),
        event_factory("p3", "2024-01-01T00:00:00", kind=EventKind.PLAN_ITEM, label=" a "),
        event_factory("x1", "2024-01-04T18:00:00", label="  a"),
        event_factory("x2", "2024-01-05T18:00:00", label="a"),
        event_factory("x3", "2024-01-05T19:00:00", label="C"),
    ]
    series = aggregator.aggregate(events, AdherenceRate())
    assert series.labels == ["2024-W01"]
    assert series.values == [50.0]
    assert series.sample_counts == [3]


def test_adherence_ignores_explicitly_incomplete_and_other_weeks(aggregator, event_factory):
    events = [
        event_factory("p1", "2024-01-01T00:00:00", kind=EventKind.PLAN_ITEM, label="A"),
        event_factory("t1", "2024-01-02T00:00:00", kind=EventKind.TASK, label="A", completed=False),
        event_factory("x1", "2024-01-09T00:00:00", label="A"),  # next week, no plan there
    ]
    series = aggregator.aggregate(events, AdherenceRate())
    assert series.labels == ["2024-W01"]
    assert series.values == [0.0]


def test_reducer_for_every_kind():
    assert isinstance(reducer_for(ReducerKind.AVERAGE_SCORE), AverageScore)
    assert isinstance(reducer_for(ReducerKind.AVERAGE_Z_SCORE, {}), AverageZScore)
    assert isinstance(reducer_for(ReducerKind.COMPLETION_RATE), CompletionRate)
    assert isinstance(reducer_for(ReducerKind.ADHERENCE_RATE), AdherenceRate)
