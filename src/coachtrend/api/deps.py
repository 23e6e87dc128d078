from __future__ import annotations

import json
from typing import Optional

from fastapi import Header, HTTPException, Query

from coachtrend.config import settings
from coachtrend.data.source import EventSource, InMemoryEventSource
from coachtrend.domain.models import EffectivePermissions
from coachtrend.exceptions import InvalidInput
from coachtrend.logic.permissions import resolve_effective_permissions
from coachtrend.services.trends import TrendService

# Composition root: the event source is built once and injected everywhere.
_event_source: Optional[EventSource] = None
_event_source_backend: Optional[str] = None


def get_event_source() -> EventSource:
    global _event_source, _event_source_backend
    backend = (settings.storage.backend or "memory").strip().lower()
    if _event_source is None or _event_source_backend != backend:
        if backend == "firestore":
            from coachtrend.data.store_firestore import FirestoreEventSource

            _event_source = FirestoreEventSource(
                project_id=settings.storage.firestore_project_id,
                database=settings.storage.firestore_database,
                collection_prefix=settings.storage.collection_prefix,
                owner_field=settings.storage.owner_field,
            )
        else:
            _event_source = InMemoryEventSource()
        _event_source_backend = backend
    return _event_source


def set_event_source(source: Optional[EventSource]) -> None:
    """Replaces the shared source (tests, embedding applications)."""
    global _event_source, _event_source_backend
    _event_source = source
    _event_source_backend = (settings.storage.backend or "memory").strip().lower() if source else None


def get_trend_service() -> TrendService:
    return TrendService(source=get_event_source())


def get_permissions(
    x_connection: Optional[str] = Header(None, alias="X-Connection"),
    view_exercise_data: bool = Query(False),
    view_mental_data: bool = Query(False),
) -> EffectivePermissions:
    """
    The hosting application forwards the trainer connection document it already
    loaded; it is resolved once here. Without it, explicit query flags apply.
    """
    if x_connection:
        try:
            connection = json.loads(x_connection)
        except ValueError:
            raise HTTPException(status_code=400, detail="X-Connection must be a JSON object")
        if not isinstance(connection, dict):
            raise HTTPException(status_code=400, detail="X-Connection must be a JSON object")
        try:
            return resolve_effective_permissions(connection)
        except InvalidInput as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    return EffectivePermissions(view_exercise_data=view_exercise_data, view_mental_data=view_mental_data)
