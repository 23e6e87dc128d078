import logging
from typing import Dict, List, Optional, Sequence

from coachtrend.domain.models import (
    BaselineStats,
    Event,
    ReducerKind,
    Series,
    SeriesPoint,
    TrendOptions,
)
from coachtrend.exceptions import NoData, NoDataStage
from coachtrend.logic.aggregation import SeriesAggregator, reducer_for
from coachtrend.logic.bucketing import week_range
from coachtrend.logic.statistics import baselines_by_category

logger = logging.getLogger("coachtrend.logic.trends")

# A rate over an empty week is undefined, not 0%.
_ZERO_FILLABLE = frozenset({ReducerKind.AVERAGE_SCORE, ReducerKind.AVERAGE_Z_SCORE})


class TrendSeriesBuilder:
    """
    Turns an athlete's raw events into a weekly series ready for charting.
    Stateless: every call depends only on its arguments.
    """

    def __init__(self, aggregator: Optional[SeriesAggregator] = None):
        self.aggregator = aggregator or SeriesAggregator()

    def build(self, events: Sequence[Event], options: TrendOptions) -> Series:
        """
        Baseline -> filter -> aggregate.

        Z-score baselines are taken over every event passed in, before the date
        window or category filter apply, so views over different windows stay
        comparable.

        Raises:
            NoData: with the stage that came up empty.
            InvalidInput: an event timestamp cannot be bucketed.
        """
        if not events:
            raise NoData(NoDataStage.NO_EVENTS)

        baselines: Dict[str, BaselineStats] = {}
        if options.reducer_kind == ReducerKind.AVERAGE_Z_SCORE:
            baselines = baselines_by_category(events)

        scoped = self.filter_events(events, options)
        if not scoped:
            raise NoData(NoDataStage.NO_EVENTS_IN_RANGE)

        series = self.aggregator.aggregate(scoped, reducer_for(options.reducer_kind, baselines))
        if not series.points:
            raise NoData(NoDataStage.NO_BUCKETS)

        logger.debug(
            "Built %s series: %d events in scope, %d weeks",
            options.reducer_kind.value,
            len(scoped),
            len(series),
        )
        if options.zero_fill:
            if options.reducer_kind in _ZERO_FILLABLE:
                return self.zero_fill(series)
            logger.debug("Zero-fill skipped for %s", options.reducer_kind.value)
        return series

    @staticmethod
    def filter_events(events: Sequence[Event], options: TrendOptions) -> List[Event]:
        window = options.date_range
        scoped = []
        for event in events:
            if window is not None and not window.contains(event.timestamp):
                continue
            if options.category_filter is not None and event.category_id != options.category_filter:
                continue
            scoped.append(event)
        return scoped

    @staticmethod
    def zero_fill(series: Series) -> Series:
        """
        Inserts 0-valued points for the empty weeks between the first and last point.
        Filler points carry sample_count 0.
        """
        if not series.points:
            return series
        by_week = {p.week_key: p for p in series.points}
        weeks = week_range(series.points[0].week_key, series.points[-1].week_key)
        return Series(
            points=tuple(
                by_week.get(week) or SeriesPoint(week_key=week, value=0.0, sample_count=0)
                for week in weeks
            )
        )
