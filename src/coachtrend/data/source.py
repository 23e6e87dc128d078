from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Mapping, Optional, Protocol

from coachtrend.data.documents import CollectionKind
from coachtrend.domain.models import Event, EventKind

_KIND_COLLECTIONS = {
    EventKind.EXERCISE: CollectionKind.EXERCISE_RECORDS,
    EventKind.SELF_ASSESSMENT: CollectionKind.TRAINING_RECORDS,
    EventKind.TASK: CollectionKind.TASK_HISTORY,
    EventKind.PLAN_ITEM: CollectionKind.TRAININGSPLAN_HISTORY,
}


class EventSource(Protocol):
    """
    Read access to a subject's events, one collection at a time.
    An empty list is a valid answer; backend failures surface as DataSourceError.
    """

    def fetch_events(self, subject_id: str, collection_kind: CollectionKind) -> list[Event]:
        ...

    def fetch_exercise_names(self, subject_id: str) -> dict[str, str]:
        ...


class InMemoryEventSource:
    """
    EventSource over events already held in memory (tests, CLI input files).
    Mirrors the ordering of the document store: ascending by timestamp.
    """

    def __init__(
        self,
        events: Optional[Iterable[Event]] = None,
        exercise_names: Optional[Mapping[str, Mapping[str, str]]] = None,
    ):
        self._events: dict[tuple[str, CollectionKind], list[Event]] = defaultdict(list)
        self._exercise_names = {k: dict(v) for k, v in (exercise_names or {}).items()}
        for event in events or []:
            self.add(event)

    def add(self, event: Event) -> None:
        self._events[(event.subject_id, _KIND_COLLECTIONS[event.kind])].append(event)

    def set_exercise_names(self, subject_id: str, names: Mapping[str, str]) -> None:
        self._exercise_names[subject_id] = dict(names)

    def fetch_events(self, subject_id: str, collection_kind: CollectionKind) -> list[Event]:
        events = self._events.get((subject_id, collection_kind), [])
        return sorted(events, key=lambda e: (e.timestamp, e.id))

    def fetch_exercise_names(self, subject_id: str) -> dict[str, str]:
        return dict(self._exercise_names.get(subject_id, {}))
