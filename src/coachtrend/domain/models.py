from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from enum import Enum
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from coachtrend.exceptions import InvalidInput

_WEEK_KEY_RE = re.compile(r"^(\d{4})-W(\d{2})$")


def coerce_timestamp(value: Any) -> datetime:
    """
    Normalizes a timestamp-like value to an aware UTC datetime.
    Accepts datetimes (Firestore timestamps are datetime subclasses), dates,
    ISO-8601 strings and epoch milliseconds. Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidInput(f"Timestamp out of range: {value!r}") from exc
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise InvalidInput(f"Unparseable timestamp: {value!r}") from exc
        return parsed.replace(tzinfo=UTC) if parsed.tzinfo is None else parsed.astimezone(UTC)
    raise InvalidInput(f"Unparseable timestamp: {value!r}")


class EventKind(str, Enum):
    EXERCISE = "exercise"
    SELF_ASSESSMENT = "self_assessment"
    TASK = "task"
    PLAN_ITEM = "plan_item"


class ReducerKind(str, Enum):
    AVERAGE_SCORE = "average_score"
    AVERAGE_Z_SCORE = "average_z_score"
    COMPLETION_RATE = "completion_rate"
    ADHERENCE_RATE = "adherence_rate"


class Role(str, Enum):
    PLAYER = "PLAYER"
    TRAINER = "TRAINER"
    MENTAL_TRAINER = "MENTAL_TRAINER"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            raise InvalidInput(f"Unknown role: {value!r}") from exc


class ConnectionStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"
    TERMINATED = "TERMINATED"

    @classmethod
    def parse(cls, value: Any) -> "ConnectionStatus":
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            raise InvalidInput(f"Unknown connection status: {value!r}") from exc


class Event(BaseModel):
    """
    One timestamped observation belonging to a subject.

    The constructor raises pydantic's ValidationError on bad fields (a malformed
    timestamp included). Use `from_raw` where callers expect InvalidInput.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str
    subject_id: str
    timestamp: datetime
    kind: EventKind = EventKind.EXERCISE
    category_id: Optional[str] = None
    score: Optional[float] = None
    completed: Optional[bool] = None
    label: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> datetime:
        return coerce_timestamp(value)

    @classmethod
    def from_raw(cls, **fields: Any) -> "Event":
        try:
            return cls(**fields)
        except ValidationError as exc:
            error = exc.errors()[0]
            where = ".".join(str(part) for part in error.get("loc", ())) or "event"
            raise InvalidInput(f"{where}: {error.get('msg', 'invalid field')}") from exc


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def _coerce_bound(cls, value: Any) -> Optional[datetime]:
        if value is None:
            return None
        return coerce_timestamp(value)

    @property
    def inclusive_end(self) -> Optional[datetime]:
        # The end bound covers the whole day it names.
        if self.end is None:
            return None
        return self.end + timedelta(milliseconds=86_399_999)

    def contains(self, ts: datetime) -> bool:
        if self.start is not None and ts < self.start:
            return False
        end = self.inclusive_end
        if end is not None and ts > end:
            return False
        return True


class TrendOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    reducer_kind: ReducerKind
    date_range: Optional[DateRange] = None
    category_filter: Optional[str] = None
    zero_fill: bool = False


@dataclass(frozen=True, order=True)
class WeekKey:
    """ISO-8601 calendar week, ordered by (iso_year, iso_week)."""
    iso_year: int
    iso_week: int

    def __str__(self) -> str:
        return f"{self.iso_year:04d}-W{self.iso_week:02d}"

    @classmethod
    def parse(cls, text: str) -> "WeekKey":
        match = _WEEK_KEY_RE.match(str(text).strip())
        if not match:
            raise InvalidInput(f"Invalid week key: {text!r}")
        year, week = int(match.group(1)), int(match.group(2))
        try:
            date.fromisocalendar(year, week, 1)
        except ValueError as exc:
            raise InvalidInput(f"Invalid week key: {text!r}") from exc
        return cls(year, week)

    def monday(self) -> date:
        return date.fromisocalendar(self.iso_year, self.iso_week, 1)

    def next(self) -> "WeekKey":
        year, week, _ = (self.monday() + timedelta(days=7)).isocalendar()
        return WeekKey(year, week)


@dataclass(frozen=True)
class BaselineStats:
    mean: float
    sample_std_dev: float
    n: int


@dataclass(frozen=True)
class SeriesPoint:
    week_key: WeekKey
    value: float
    sample_count: int


@dataclass(frozen=True)
class Series:
    """Chronologically sorted weekly points, at most one per week."""
    points: tuple[SeriesPoint, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[SeriesPoint]:
        return iter(self.points)

    def __getitem__(self, index: int) -> SeriesPoint:
        return self.points[index]

    @property
    def labels(self) -> list[str]:
        return [str(p.week_key) for p in self.points]

    @property
    def values(self) -> list[float]:
        return [p.value for p in self.points]

    @property
    def sample_counts(self) -> list[int]:
        return [p.sample_count for p in self.points]


@dataclass(frozen=True)
class EffectivePermissions:
    """Resolved view rights a trainer holds on one athlete."""
    view_exercise_data: bool = False
    view_mental_data: bool = False
