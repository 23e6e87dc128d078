from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from coachtrend.config import settings
from coachtrend.data.documents import CollectionKind
from coachtrend.data.source import EventSource
from coachtrend.domain.models import DateRange, EffectivePermissions, Event, ReducerKind, TrendOptions
from coachtrend.exceptions import DataSourceError, NoData, NoDataStage, PermissionDenied
from coachtrend.logic.trends import TrendSeriesBuilder

logger = logging.getLogger("coachtrend.services.trends")


class ChartKind(str, Enum):
    PERFORMANCE = "performance"
    SELF_ASSESSMENT = "self_assessment"
    COMPLETION = "completion"
    ADHERENCE = "adherence"


_CHART_COLLECTIONS = {
    ChartKind.PERFORMANCE: (CollectionKind.EXERCISE_RECORDS,),
    ChartKind.SELF_ASSESSMENT: (CollectionKind.TRAINING_RECORDS,),
    ChartKind.COMPLETION: (CollectionKind.TASK_HISTORY,),
    ChartKind.ADHERENCE: (CollectionKind.TRAININGSPLAN_HISTORY, CollectionKind.EXERCISE_RECORDS),
}

_CHART_TITLES = {
    ChartKind.PERFORMANCE: "Performance Trend (Weekly Z-Scores)",
    ChartKind.SELF_ASSESSMENT: "Self-Assessment Score Trends",
    ChartKind.COMPLETION: "Weekly Task Completion Rate",
    ChartKind.ADHERENCE: "Weekly Training Plan Adherence",
}

EMPTY_STATE_MESSAGES = {
    NoDataStage.NO_EVENTS: "No records found for this athlete.",
    NoDataStage.NO_EVENTS_IN_RANGE: "No records in the selected date range.",
    NoDataStage.NO_BUCKETS: "No data in this period to show a trend.",
}


def is_chart_permitted(chart: ChartKind, permissions: EffectivePermissions) -> bool:
    if chart == ChartKind.SELF_ASSESSMENT:
        return permissions.view_mental_data
    if chart in (ChartKind.PERFORMANCE, ChartKind.COMPLETION, ChartKind.ADHERENCE):
        return permissions.view_exercise_data
    raise ValueError(f"Unhandled chart kind: {chart!r}")


@dataclass
class ChartPayload:
    """Series plus the labels the dashboard draws it with."""
    chart: str
    title: str
    dataset_label: str
    reducer: str
    labels: List[str]
    values: List[float]
    sample_counts: List[int]
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TrendService:
    """
    Serves the trainer dashboard charts for one athlete.
    Fetches through the injected EventSource, then hands the events to the builder.
    """

    def __init__(self, source: EventSource, builder: Optional[TrendSeriesBuilder] = None):
        self.source = source
        self.builder = builder or TrendSeriesBuilder()

    def reducer_kind(self, chart: ChartKind) -> ReducerKind:
        return ReducerKind(settings.trends.default_reducers[chart.value])

    def load_events(self, athlete_id: str, chart: ChartKind) -> List[Event]:
        events: List[Event] = []
        for collection in _CHART_COLLECTIONS[chart]:
            try:
                events.extend(self.source.fetch_events(athlete_id, collection))
            except DataSourceError:
                raise
            except Exception as exc:
                logger.exception("Event source failed for %s/%s", athlete_id, collection.value)
                raise DataSourceError(f"Failed to load {collection.value}: {exc}") from exc
        return events

    def chart(
        self,
        athlete_id: str,
        chart: ChartKind,
        permissions: EffectivePermissions,
        date_range: Optional[DateRange] = None,
        category: Optional[str] = None,
        zero_fill: Optional[bool] = None,
    ) -> ChartPayload:
        """
        Builds one chart.

        Raises:
            PermissionDenied: the permissions do not cover this chart.
            NoData: nothing to draw; `stage` picks the empty-state message.
            DataSourceError: the event source failed.
        """
        if not is_chart_permitted(chart, permissions):
            raise PermissionDenied(f"No access to {chart.value} data for this athlete")

        # Adherence matches plan items to exercises by name, a category filter would drop the plan.
        if chart == ChartKind.ADHERENCE:
            category = None

        options = TrendOptions(
            reducer_kind=self.reducer_kind(chart),
            date_range=date_range,
            category_filter=category,
            zero_fill=settings.trends.zero_fill if zero_fill is None else zero_fill,
        )
        events = self.load_events(athlete_id, chart)
        try:
            series = self.builder.build(events, options)
        except NoData as exc:
            logger.info("No %s data for %s: %s", chart.value, athlete_id, exc.stage.value)
            raise

        return ChartPayload(
            chart=chart.value,
            title=_CHART_TITLES[chart],
            dataset_label=self.dataset_label(athlete_id, chart, category),
            reducer=options.reducer_kind.value,
            labels=series.labels,
            values=series.values,
            sample_counts=series.sample_counts,
            meta={"events": len(events), "weeks": len(series)},
        )

    def dataset_label(self, athlete_id: str, chart: ChartKind, category: Optional[str]) -> str:
        name = None
        if category and chart in (ChartKind.PERFORMANCE, ChartKind.COMPLETION):
            name = self.source.fetch_exercise_names(athlete_id).get(category)

        if chart == ChartKind.PERFORMANCE:
            return f"Weekly Z-Score for {name}" if name else "Weekly Average Z-Score (All Permitted Exercises)"
        if chart == ChartKind.COMPLETION:
            return f"Weekly Task Completion Rate (%) for {name}" if name else "Weekly Task Completion Rate (%) (All Tasks)"
        if chart == ChartKind.SELF_ASSESSMENT:
            return "Average Self-Assessment Score"
        if chart == ChartKind.ADHERENCE:
            return "Weekly Training Plan Adherence (%)"
        raise ValueError(f"Unhandled chart kind: {chart!r}")
