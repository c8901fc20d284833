"""Activity and sensor-stream records consumed by the analytics engine."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into a datetime."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class ActivityForLoad:
    """
    The subset of an activity needed to estimate its training load.

    ``date`` is the calendar day the activity counts towards and
    ``duration`` its moving time in seconds.
    """

    date: date
    duration: float
    average_heart_rate: Optional[float] = None
    suffer_score: Optional[float] = None
    average_power: Optional[float] = None
    normalized_power: Optional[float] = None

    @property
    def duration_minutes(self) -> float:
        return max(self.duration or 0, 0) / 60

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "duration": self.duration,
            "average_heart_rate": self.average_heart_rate,
            "suffer_score": self.suffer_score,
            "average_power": self.average_power,
            "normalized_power": self.normalized_power,
        }


@dataclass
class Activity:
    """A recorded activity as handed over by the activity store."""

    id: int
    name: str
    type: str
    start_date: datetime
    sport_type: Optional[str] = None
    start_date_local: Optional[datetime] = None

    # Durations in seconds
    moving_time: Optional[int] = None
    elapsed_time: Optional[int] = None

    # Heart rate
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None

    # Power
    average_watts: Optional[float] = None
    weighted_average_watts: Optional[float] = None
    max_watts: Optional[float] = None

    # Vendor effort score
    suffer_score: Optional[float] = None

    @property
    def activity_date(self) -> date:
        """Calendar day of the activity, preferring the local start time."""
        start = self.start_date_local or self.start_date
        return start.date()

    @property
    def best_power(self) -> Optional[float]:
        """Normalized power when recorded, otherwise plain average power."""
        return self.weighted_average_watts or self.average_watts or None

    def to_load_input(self) -> ActivityForLoad:
        """Project onto the fields used by the daily load aggregator."""
        return ActivityForLoad(
            date=self.activity_date,
            duration=self.moving_time or 0,
            average_heart_rate=self.average_heartrate,
            suffer_score=self.suffer_score,
            average_power=self.average_watts,
            normalized_power=self.weighted_average_watts,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "sport_type": self.sport_type,
            "start_date": self.start_date.isoformat(),
            "start_date_local": self.start_date_local.isoformat() if self.start_date_local else None,
            "moving_time": self.moving_time,
            "elapsed_time": self.elapsed_time,
            "average_heartrate": self.average_heartrate,
            "max_heartrate": self.max_heartrate,
            "average_watts": self.average_watts,
            "weighted_average_watts": self.weighted_average_watts,
            "max_watts": self.max_watts,
            "suffer_score": self.suffer_score,
        }

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "Activity":
        """Parse an activity row as returned by the activity store."""
        local = data.get("start_date_local")
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            type=data.get("type") or "",
            sport_type=data.get("sport_type"),
            start_date=parse_timestamp(data["start_date"]),
            start_date_local=parse_timestamp(local) if local else None,
            moving_time=data.get("moving_time"),
            elapsed_time=data.get("elapsed_time"),
            average_heartrate=data.get("average_heartrate"),
            max_heartrate=data.get("max_heartrate"),
            average_watts=data.get("average_watts"),
            weighted_average_watts=data.get("weighted_average_watts"),
            max_watts=data.get("max_watts"),
            suffer_score=data.get("suffer_score"),
        )


@dataclass(frozen=True)
class PowerStreamData:
    """
    Paired time/power samples for one activity.

    ``time_data`` holds ascending offsets in seconds; ``power_data`` holds
    the watts recorded at the same index and may contain ``None`` gaps.
    """

    activity_id: int
    time_data: Sequence[float]
    power_data: Sequence[Optional[float]]

    @property
    def total_duration(self) -> float:
        if len(self.time_data) < 2:
            return 0.0
        return self.time_data[-1] - self.time_data[0]

    def is_well_formed(self) -> bool:
        """True when both series are aligned, time never goes backwards and
        there are at least two samples."""
        times = self.time_data
        if len(times) < 2 or len(times) != len(self.power_data):
            return False
        if any(isinstance(t, bool) or not isinstance(t, (int, float)) for t in times):
            return False
        return all(a <= b for a, b in zip(times, times[1:]))


@dataclass
class ActivityStreamRecord:
    """One stored stream (a single kind of samples) of an activity."""

    activity_id: int
    stream_type: str
    data: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActivityStreamRecord":
        return cls(
            activity_id=data["activity_id"],
            stream_type=data["stream_type"],
            data=list(data.get("data") or []),
        )
