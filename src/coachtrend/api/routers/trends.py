from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from coachtrend.api.deps import get_permissions, get_trend_service
from coachtrend.domain.models import DateRange, EffectivePermissions, Event, ReducerKind, TrendOptions
from coachtrend.logic.trends import TrendSeriesBuilder
from coachtrend.services.trends import ChartKind, TrendService

router = APIRouter(prefix="/v1", tags=["trends"])


class BuildRequest(BaseModel):
    events: list[Event] = Field(default_factory=list)
    reducer_kind: ReducerKind
    start: Optional[date] = None
    end: Optional[date] = None
    category: Optional[str] = None
    zero_fill: bool = False


def _series_rows(series) -> list[dict]:
    return [
        {"week": str(p.week_key), "value": p.value, "sample_count": p.sample_count}
        for p in series
    ]


@router.get("/athletes/{athlete_id}/trends/{chart}")
def athlete_trend(
    athlete_id: str,
    chart: ChartKind,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    category: Optional[str] = Query(None),
    zero_fill: Optional[bool] = Query(None),
    permissions: EffectivePermissions = Depends(get_permissions),
    svc: TrendService = Depends(get_trend_service),
):
    date_range = DateRange(start=start, end=end) if (start or end) else None
    payload = svc.chart(
        athlete_id,
        chart,
        permissions,
        date_range=date_range,
        category=category,
        zero_fill=zero_fill,
    )
    return payload.to_dict()


@router.post("/trends/build")
def build_trend(body: BuildRequest):
    date_range = DateRange(start=body.start, end=body.end) if (body.start or body.end) else None
    options = TrendOptions(
        reducer_kind=body.reducer_kind,
        date_range=date_range,
        category_filter=body.category,
        zero_fill=body.zero_fill,
    )
    series = TrendSeriesBuilder().build(body.events, options)
    return {"reducer": body.reducer_kind.value, "rows": _series_rows(series)}
