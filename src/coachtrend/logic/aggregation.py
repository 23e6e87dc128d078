from __future__ import annotations

import statistics
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

from coachtrend.domain.models import (
    BaselineStats,
    Event,
    EventKind,
    ReducerKind,
    Series,
    SeriesPoint,
    WeekKey,
)
from coachtrend.logic.bucketing import week_key_of
from coachtrend.logic.statistics import z_score


def normalize_label(label: Optional[str]) -> str:
    return (label or "").strip().lower()


class BucketReducer(Protocol):
    """Reduces one week's events to a point, or None to omit the week."""

    def reduce(self, week: WeekKey, events: Sequence[Event]) -> Optional[SeriesPoint]:
        ...


class AverageScore:
    def reduce(self, week: WeekKey, events: Sequence[Event]) -> Optional[SeriesPoint]:
        scores = [e.score for e in events if e.score is not None]
        if not scores:
            return None
        return SeriesPoint(week_key=week, value=statistics.fmean(scores), sample_count=len(scores))


class AverageZScore:
    """
    Mean of per-event Z-scores, each against its own category baseline.
    Events without a usable Z-score are left out rather than counted as 0.
    """

    def __init__(self, baselines: Mapping[str, BaselineStats]):
        self.baselines = dict(baselines)

    def reduce(self, week: WeekKey, events: Sequence[Event]) -> Optional[SeriesPoint]:
        zs = []
        for event in events:
            if event.score is None or event.category_id is None:
                continue
            baseline = self.baselines.get(event.category_id)
            if baseline is None:
                continue
            z = z_score(event.score, baseline)
            if z is not None:
                zs.append(z)
        if not zs:
            return None
        return SeriesPoint(week_key=week, value=statistics.fmean(zs), sample_count=len(zs))


class CompletionRate:
    def reduce(self, week: WeekKey, events: Sequence[Event]) -> Optional[SeriesPoint]:
        in_scope = [e for e in events if e.completed is not None]
        if not in_scope:
            return None
        done = sum(1 for e in in_scope if e.completed)
        return SeriesPoint(week_key=week, value=done / len(in_scope) * 100.0, sample_count=len(in_scope))


class AdherenceRate:
    """
    Share of distinct planned activities matched by a completed event in the same week.

    Matching is exact equality of lower-cased, trimmed labels. Plan items carry no
    reference to an exercise definition, so a renamed exercise stops matching.
    """

    def reduce(self, week: WeekKey, events: Sequence[Event]) -> Optional[SeriesPoint]:
        plan_items = [e for e in events if e.kind == EventKind.PLAN_ITEM]
        planned = {normalize_label(e.label) for e in plan_items} - {""}
        if not planned:
            return None
        done = {
            normalize_label(e.label)
            for e in events
            if e.kind != EventKind.PLAN_ITEM and e.completed is not False
        }
        matched = planned & done
        return SeriesPoint(
            week_key=week,
            value=len(matched) / len(planned) * 100.0,
            sample_count=len(plan_items),
        )


def reducer_for(kind: ReducerKind, baselines: Optional[Mapping[str, BaselineStats]] = None) -> BucketReducer:
    if kind == ReducerKind.AVERAGE_SCORE:
        return AverageScore()
    if kind == ReducerKind.AVERAGE_Z_SCORE:
        return AverageZScore(baselines or {})
    if kind == ReducerKind.COMPLETION_RATE:
        return CompletionRate()
    if kind == ReducerKind.ADHERENCE_RATE:
        return AdherenceRate()
    raise ValueError(f"Unhandled reducer kind: {kind!r}")


class SeriesAggregator:
    """
    Groups events by ISO week and reduces each bucket to one series point.
    """

    def group_by_week(self, events: Sequence[Event]) -> Dict[WeekKey, List[Event]]:
        buckets: Dict[WeekKey, List[Event]] = defaultdict(list)
        for event in events:
            buckets[week_key_of(event.timestamp)].append(event)
        return buckets

    def aggregate(self, events: Sequence[Event], reducer: BucketReducer) -> Series:
        buckets = self.group_by_week(events)
        points = []
        for week in sorted(buckets):
            point = reducer.reduce(week, buckets[week])
            if point is not None:
                points.append(point)
        return Series(points=tuple(points))
