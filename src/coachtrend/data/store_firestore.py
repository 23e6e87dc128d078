from __future__ import annotations

import logging
from typing import Any, Optional

from coachtrend.data.documents import CollectionKind, events_from_documents
from coachtrend.domain.models import Event
from coachtrend.exceptions import DataSourceError

logger = logging.getLogger("coachtrend.data.firestore")

EXERCISE_DEFINITIONS_COLLECTION = "user_exercise_definitions"


class FirestoreEventSource:
    """
    Firestore-backed EventSource.
    Each read is one owner-filtered query ordered by the collection's time field.
    """

    def __init__(
        self,
        *,
        project_id: Optional[str] = None,
        database: str = "(default)",
        collection_prefix: str = "",
        owner_field: str = "userId",
        client: Any = None,
    ):
        if client is None:
            try:
                from google.cloud import firestore
            except Exception as exc:  # pragma: no cover - depends on optional runtime deps
                raise RuntimeError(
                    "Firestore backend requested but google-cloud-firestore is not installed"
                ) from exc

            client_kwargs: dict[str, Any] = {}
            if project_id:
                client_kwargs["project"] = project_id
            if database and database != "(default)":
                client_kwargs["database"] = database
            client = firestore.Client(**client_kwargs)

        self._client = client
        self._prefix = str(collection_prefix or "").strip()
        self._owner_field = owner_field

    def _collection(self, name: str):
        full_name = f"{self._prefix}_{name}" if self._prefix else name
        return self._client.collection(full_name)

    def _stream(self, name: str, subject_id: str, order_field: Optional[str] = None) -> list[tuple[str, dict]]:
        query = self._collection(name).where(field_path=self._owner_field, op_string="==", value=subject_id)
        if order_field:
            query = query.order_by(order_field)
        try:
            return [(doc.id, doc.to_dict() or {}) for doc in query.stream()]
        except Exception as exc:
            logger.error("Firestore read failed for %s/%s: %s", name, subject_id, exc)
            raise DataSourceError(f"Failed to read {name} for {subject_id}") from exc

    def fetch_exercise_names(self, subject_id: str) -> dict[str, str]:
        docs = self._stream(EXERCISE_DEFINITIONS_COLLECTION, subject_id)
        return {doc_id: str(data.get("name") or "") for doc_id, data in docs}

    def fetch_events(self, subject_id: str, collection_kind: CollectionKind) -> list[Event]:
        docs = self._stream(collection_kind.value, subject_id, collection_kind.order_field)
        names = None
        if collection_kind == CollectionKind.EXERCISE_RECORDS:
            names = self.fetch_exercise_names(subject_id)
        events = events_from_documents(collection_kind, docs, subject_id, exercise_names=names)
        logger.debug("Fetched %d events from %s for %s", len(events), collection_kind.value, subject_id)
        return events
