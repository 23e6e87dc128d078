from enum import Enum


class CoachTrendError(Exception):
    """Base exception for Coachtrend errors."""
    pass

class ConfigError(CoachTrendError):
    """Configuration loading specific errors."""
    pass

class DataSourceError(CoachTrendError):
    """Event source (document store) specific errors."""
    pass

class InvalidInput(CoachTrendError, ValueError):
    """Malformed timestamp or unparseable event/document field."""
    pass

class PermissionDenied(CoachTrendError):
    """The resolved permissions do not cover the requested chart."""
    pass


class NoDataStage(str, Enum):
    NO_EVENTS = "no_events"
    NO_EVENTS_IN_RANGE = "no_events_in_range"
    NO_BUCKETS = "no_buckets"


_NO_DATA_MESSAGES = {
    NoDataStage.NO_EVENTS: "no events",
    NoDataStage.NO_EVENTS_IN_RANGE: "no events in range",
    NoDataStage.NO_BUCKETS: "no non-degenerate buckets",
}


class NoData(CoachTrendError):
    """
    Valid input produced an empty result.
    `stage` tells which aggregation step ran dry so the UI can word the empty state.
    """

    def __init__(self, stage: NoDataStage):
        self.stage = stage
        super().__init__(_NO_DATA_MESSAGES[stage])
