"""Training load calculations (TSS, TRIMP) and daily load aggregation."""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from ..config import Settings, get_settings
from ..models.activity import Activity, ActivityForLoad
from .rounding import round_half_up

logger = logging.getLogger(__name__)

# Load per minute assumed when an activity carries no sensor data at all
DURATION_ONLY_LOAD_PER_MINUTE = 0.5


class LoadSource(str, Enum):
    """Estimation tier that produced an activity's load."""

    POWER = "power"
    HEART_RATE = "heart_rate"
    SUFFER_SCORE = "suffer_score"
    DURATION = "duration"


@dataclass(frozen=True)
class LoadOptions:
    """Athlete parameters used to turn sensor summaries into load."""

    resting_heart_rate: float = 60
    max_heart_rate: float = 190
    ftp: float = 200
    gender: str = "male"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LoadOptions":
        settings = settings or get_settings()
        return cls(
            resting_heart_rate=settings.resting_heart_rate,
            max_heart_rate=settings.max_heart_rate,
            ftp=settings.ftp,
            gender=settings.gender,
        )


@dataclass(frozen=True)
class ActivityLoad:
    """Load of a single activity and the tier it was estimated with."""

    load: float
    source: LoadSource


@dataclass(frozen=True)
class DailyTrainingLoad:
    """Summed training load of every activity on one calendar day."""

    date: date
    load: float

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "load": self.load}


def calculate_tss(
    duration_sec: float,
    normalized_power: float,
    ftp: float,
) -> float:
    """
    Training Stress Score from power.

    TSS = (duration_sec * NP * IF) / (FTP * 3600) * 100, with IF = NP / FTP.
    One hour at FTP scores 100.

    Args:
        duration_sec: Moving time in seconds
        normalized_power: Normalized power (or average power) in watts
        ftp: Functional Threshold Power in watts

    Returns:
        TSS rounded to a whole number, 0 for a non-positive FTP or duration
    """
    if ftp <= 0 or duration_sec <= 0:
        return 0

    intensity_factor = normalized_power / ftp
    tss = (duration_sec * normalized_power * intensity_factor) / (ftp * 3600) * 100
    return round_half_up(tss)


def calculate_trimp(
    duration_min: float,
    avg_hr: float,
    rest_hr: float,
    max_hr: float,
    gender: str = "male",
) -> float:
    """
    Training Impulse using Banister's exponential formula.

    TRIMP = duration * HRR * 0.64 * e^(y * HRR) where HRR is the fraction of
    heart rate reserve used and y is 1.92 for men and 1.67 for women.

    Args:
        duration_min: Duration of activity in minutes
        avg_hr: Average heart rate during activity
        rest_hr: Resting heart rate
        max_hr: Maximum heart rate
        gender: 'male' or 'female'

    Returns:
        TRIMP rounded to a whole number
    """
    if max_hr <= rest_hr or avg_hr < rest_hr:
        return 0

    hrr = (avg_hr - rest_hr) / (max_hr - rest_hr)
    hrr = max(0.0, min(1.0, hrr))

    y = 1.67 if gender.lower() == "female" else 1.92

    trimp = duration_min * hrr * 0.64 * math.exp(y * hrr)
    return round_half_up(trimp)


def estimate_load_from_suffer_score(
    suffer_score: Optional[float],
    duration_min: float,
) -> float:
    """
    Use a vendor effort score as load, or fall back to duration alone.

    The vendor score is on a scale comparable to TRIMP. Without one, a
    moderate intensity of half a load point per minute is assumed.
    """
    if suffer_score and suffer_score > 0:
        return suffer_score
    return round_half_up(duration_min * DURATION_ONLY_LOAD_PER_MINUTE)


def calculate_activity_load(
    activity: ActivityForLoad,
    options: Optional[LoadOptions] = None,
) -> ActivityLoad:
    """Estimate one activity's load with the best tier its data allows."""
    options = options or LoadOptions()
    duration_sec = activity.duration or 0
    duration_min = activity.duration_minutes

    power = activity.normalized_power or activity.average_power
    if power:
        return ActivityLoad(
            load=calculate_tss(duration_sec, power, options.ftp),
            source=LoadSource.POWER,
        )

    if activity.average_heart_rate:
        return ActivityLoad(
            load=calculate_trimp(
                duration_min,
                activity.average_heart_rate,
                options.resting_heart_rate,
                options.max_heart_rate,
                options.gender,
            ),
            source=LoadSource.HEART_RATE,
        )

    if activity.suffer_score and activity.suffer_score > 0:
        return ActivityLoad(load=activity.suffer_score, source=LoadSource.SUFFER_SCORE)

    return ActivityLoad(
        load=estimate_load_from_suffer_score(None, duration_min),
        source=LoadSource.DURATION,
    )


def activities_to_daily_loads(
    activities: Iterable[Union[ActivityForLoad, Activity]],
    options: Optional[LoadOptions] = None,
) -> List[DailyTrainingLoad]:
    """
    Sum activity loads per calendar day.

    Args:
        activities: Activities in any order; full ``Activity`` records are
            projected with ``to_load_input``
        options: Athlete parameters, defaults when omitted

    Returns:
        One DailyTrainingLoad per day with at least one activity, ascending
    """
    options = options or LoadOptions()
    totals: Dict[date, float] = defaultdict(float)
    sources: Dict[LoadSource, int] = defaultdict(int)

    for activity in activities:
        if isinstance(activity, Activity):
            activity = activity.to_load_input()
        result = calculate_activity_load(activity, options)
        totals[activity.date] += result.load
        sources[result.source] += 1

    if sources:
        logger.debug(
            "Aggregated %d activities into %d days (%s)",
            sum(sources.values()),
            len(totals),
            ", ".join(f"{source.value}={count}" for source, count in sources.items()),
        )

    return [DailyTrainingLoad(date=day, load=totals[day]) for day in sorted(totals)]
