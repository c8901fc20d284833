"""
Power-duration curve (best mean power per duration) and FTP estimation.

Best efforts come from two sources:
- Time/power streams, searched with a sliding window (authoritative)
- Activity summaries (average, normalized and max power), used to
  estimate best efforts for activities without a stream
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence

from ..config import Settings, get_settings
from ..integrations.streams import StreamSource
from ..models.activity import Activity, PowerStreamData
from .rounding import round_half_up

logger = logging.getLogger(__name__)


class CurveInterval(NamedTuple):
    seconds: int
    label: str


# Standard power curve intervals
POWER_CURVE_INTERVALS: List[CurveInterval] = [
    CurveInterval(5, "5s"),
    CurveInterval(15, "15s"),
    CurveInterval(30, "30s"),
    CurveInterval(60, "1m"),
    CurveInterval(120, "2m"),
    CurveInterval(180, "3m"),
    CurveInterval(300, "5m"),
    CurveInterval(480, "8m"),
    CurveInterval(600, "10m"),
    CurveInterval(900, "15m"),
    CurveInterval(1200, "20m"),
    CurveInterval(1800, "30m"),
    CurveInterval(2700, "45m"),
    CurveInterval(3600, "1hr"),
    CurveInterval(7200, "2hr"),
]

CYCLING_SPORT_TYPES = (
    "Ride",
    "VirtualRide",
    "GravelRide",
    "MountainBikeRide",
    "EBikeRide",
)

DEFAULT_PERIOD_LABEL = "All Time"

# A window may be up to 10% shorter than the target to tolerate sample gaps
WINDOW_TOLERANCE = 0.9

FTP_FROM_20MIN_FACTOR = 0.95


@dataclass(frozen=True)
class EstimationConstants:
    """
    Heuristics for estimating best efforts from activity summaries.

    Short efforts (up to ``short_duration_limit`` seconds) interpolate
    between max and average power with factor
    ``(duration / activity_duration) ** short_duration_exponent``.
    Efforts shorter than ``partial_duration_fraction`` of the activity scale
    average power by ``1 + partial_duration_boost * (1 - duration / activity_duration)``,
    capped at ``partial_duration_cap``.
    """

    short_duration_limit: int = 60
    short_duration_exponent: float = 0.1
    partial_duration_fraction: float = 0.5
    partial_duration_boost: float = 0.1
    partial_duration_cap: float = 1.15

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "EstimationConstants":
        settings = settings or get_settings()
        return cls(
            short_duration_exponent=settings.short_duration_exponent,
            partial_duration_boost=settings.partial_duration_boost,
            partial_duration_cap=settings.partial_duration_cap,
        )


@dataclass(frozen=True)
class PowerCurvePoint:
    """Best mean power for one duration and the activity that produced it."""

    duration: int
    duration_label: str
    power: int
    activity_id: int
    activity_name: str
    activity_date: datetime
    from_stream: bool

    def to_dict(self) -> dict:
        return {
            "duration": self.duration,
            "duration_label": self.duration_label,
            "power": self.power,
            "activity_id": self.activity_id,
            "activity_name": self.activity_name,
            "activity_date": self.activity_date.isoformat(),
            "from_stream": self.from_stream,
        }


@dataclass(frozen=True)
class PowerCurve:
    """Power curve points, ascending by duration, for a labelled period."""

    points: List[PowerCurvePoint] = field(default_factory=list)
    period: str = DEFAULT_PERIOD_LABEL

    def get_point(self, duration: int) -> Optional[PowerCurvePoint]:
        """Point for an exact duration in seconds, if present."""
        for point in self.points:
            if point.duration == duration:
                return point
        return None

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "points": [p.to_dict() for p in self.points],
        }


def _is_valid_power(value: Optional[float]) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value >= 0


def calculate_best_power_for_duration(
    time_data: Sequence[float],
    power_data: Sequence[Optional[float]],
    target_duration: float,
) -> Optional[int]:
    """
    Best mean power sustained over ``target_duration`` seconds of a stream.

    A window end pointer walks every sample while the start pointer follows
    it, keeping the window span at or below the target. Windows spanning at
    least 90% of the target count, which tolerates irregular sampling. The
    mean only includes valid (non-null, non-negative) samples; running sums
    keep the search linear in the number of samples.

    Args:
        time_data: Ascending sample offsets in seconds
        power_data: Watts per sample, None for gaps
        target_duration: Window length in seconds

    Returns:
        Best mean power rounded to a whole watt, or None if the stream is
        shorter than the target or no window qualified
    """
    n = min(len(time_data), len(power_data))
    if n < 2:
        return None

    if time_data[n - 1] - time_data[0] < target_duration:
        return None

    min_span = target_duration * WINDOW_TOLERANCE
    best = 0.0
    start = 0
    window_sum = 0.0
    window_count = 0

    for end in range(n):
        if _is_valid_power(power_data[end]):
            window_sum += power_data[end]
            window_count += 1

        end_time = time_data[end]
        target_start = end_time - target_duration
        while start < end and time_data[start] < target_start:
            if _is_valid_power(power_data[start]):
                window_sum -= power_data[start]
                window_count -= 1
            start += 1

        if end_time - time_data[start] >= min_span and window_count > 0:
            best = max(best, window_sum / window_count)

    return round_half_up(best) if best > 0 else None


def estimate_best_power_for_duration(
    activity: Activity,
    duration: float,
    constants: Optional[EstimationConstants] = None,
) -> Optional[int]:
    """
    Estimate an activity's best power for a duration from its summary.

    Args:
        activity: Activity with average/normalized and optionally max power
        duration: Effort duration in seconds
        constants: Estimation heuristics, defaults when omitted

    Returns:
        Estimated power in watts, or None without power data or when the
        activity is shorter than the duration
    """
    constants = constants or EstimationConstants()
    activity_duration = activity.moving_time or 0
    avg_power = activity.best_power

    if not avg_power:
        return None
    if activity_duration <= 0 or activity_duration < duration:
        return None

    if duration <= constants.short_duration_limit and activity.max_watts:
        factor = (duration / activity_duration) ** constants.short_duration_exponent
        estimate = activity.max_watts * (1 - factor) + avg_power * factor
    elif duration < activity_duration * constants.partial_duration_fraction:
        factor = 1 + constants.partial_duration_boost * (1 - duration / activity_duration)
        estimate = avg_power * min(factor, constants.partial_duration_cap)
    else:
        estimate = avg_power

    power = round_half_up(estimate)
    return power if power > 0 else None


def is_cycling_activity(activity: Activity) -> bool:
    return activity.type == "Ride" or (
        activity.sport_type is not None and activity.sport_type in CYCLING_SPORT_TYPES
    )


def has_power_data(activity: Activity) -> bool:
    return bool(activity.average_watts or activity.weighted_average_watts)


def select_power_candidates(activities: Iterable[Activity]) -> List[Activity]:
    """Cycling activities carrying some power reading, in input order."""
    return [a for a in activities if is_cycling_activity(a) and has_power_data(a)]


def compute_power_curve(
    activities: Iterable[Activity],
    streams: Optional[Mapping[int, PowerStreamData]] = None,
    period_label: str = DEFAULT_PERIOD_LABEL,
    constants: Optional[EstimationConstants] = None,
) -> PowerCurve:
    """
    Score every candidate activity for every standard duration.

    Activities with a stream are scored from the stream only; the rest are
    estimated from their summaries. Per duration the highest power wins,
    and the point is marked ``from_stream`` only when a stream produced it.
    A stream value is kept on a tie.

    Args:
        activities: Activities in any order; non-cycling and power-less ones
            are ignored
        streams: Power streams keyed by activity id, empty or None for the
            estimation-only curve
        period_label: Label carried on the resulting curve
        constants: Estimation heuristics, defaults when omitted

    Returns:
        PowerCurve with at most one point per standard duration
    """
    candidates = select_power_candidates(activities)
    streams = streams or {}
    constants = constants or EstimationConstants()

    with_stream = [a for a in candidates if a.id in streams]
    without_stream = [a for a in candidates if a.id not in streams]

    points = []
    for interval in POWER_CURVE_INTERVALS:
        best_power = 0
        best_activity: Optional[Activity] = None
        from_stream = False

        for activity in with_stream:
            stream = streams[activity.id]
            power = calculate_best_power_for_duration(
                stream.time_data, stream.power_data, interval.seconds
            )
            if power and power > best_power:
                best_power = power
                best_activity = activity
                from_stream = True

        for activity in without_stream:
            power = estimate_best_power_for_duration(activity, interval.seconds, constants)
            if power and power > best_power:
                best_power = power
                best_activity = activity
                from_stream = False

        if best_activity is not None and best_power > 0:
            points.append(
                PowerCurvePoint(
                    duration=interval.seconds,
                    duration_label=interval.label,
                    power=best_power,
                    activity_id=best_activity.id,
                    activity_name=best_activity.name,
                    activity_date=best_activity.start_date,
                    from_stream=from_stream,
                )
            )

    return PowerCurve(points=points, period=period_label)


def calculate_power_curve_sync(
    activities: Iterable[Activity],
    period_label: str = DEFAULT_PERIOD_LABEL,
    constants: Optional[EstimationConstants] = None,
) -> PowerCurve:
    """Estimation-only power curve, for immediate display."""
    return compute_power_curve(activities, None, period_label, constants)


def merge_power_curves(estimated: PowerCurve, refined: PowerCurve) -> PowerCurve:
    """
    Combine two curves of the same activities, keeping the higher power
    per duration. The refined point wins ties.
    """
    points = []
    for interval in POWER_CURVE_INTERVALS:
        base = estimated.get_point(interval.seconds)
        better = refined.get_point(interval.seconds)

        if better is None or (base is not None and base.power > better.power):
            if base is not None and better is not None:
                logger.debug(
                    "Keeping estimated %s power %dW over stream value %dW",
                    interval.label,
                    base.power,
                    better.power,
                )
            better = base

        if better is not None:
            points.append(better)

    return PowerCurve(points=points, period=refined.period)


async def calculate_power_curve(
    activities: Iterable[Activity],
    stream_source: Optional[StreamSource],
    period_label: str = DEFAULT_PERIOD_LABEL,
    constants: Optional[EstimationConstants] = None,
) -> PowerCurve:
    """
    Power curve refined with time/power streams.

    Streams for all candidate activities are fetched in one batch. If the
    fetch fails the estimation-only curve is returned. The result is never
    below the estimation-only curve for any duration.

    Args:
        activities: Activities in any order
        stream_source: Stream store, or None to skip fetching
        period_label: Label carried on the resulting curve
        constants: Estimation heuristics, defaults when omitted

    Returns:
        Fully recomputed PowerCurve
    """
    candidates = select_power_candidates(activities)
    estimated = compute_power_curve(candidates, None, period_label, constants)
    if not candidates or stream_source is None:
        return estimated

    try:
        fetched = await stream_source.fetch_power_streams([a.id for a in candidates])
    except Exception as e:
        logger.warning(
            "Failed to fetch power streams for %d activities, falling back to estimation: %s",
            len(candidates),
            e,
        )
        return estimated

    streams: Dict[int, PowerStreamData] = {}
    for stream in fetched or []:
        if isinstance(stream, PowerStreamData) and stream.is_well_formed():
            streams[stream.activity_id] = stream

    logger.debug(
        "Computing power curve for %d activities with %d streams",
        len(candidates),
        len(streams),
    )

    refined = compute_power_curve(candidates, streams, period_label, constants)
    return merge_power_curves(estimated, refined)


def estimate_ftp(curve: PowerCurve) -> Optional[int]:
    """
    Estimate FTP from a power curve.

    95% of 20-minute power when available, otherwise the 1-hour power.
    """
    point_20min = curve.get_point(1200)
    if point_20min is not None:
        return round_half_up(point_20min.power * FTP_FROM_20MIN_FACTOR)

    point_60min = curve.get_point(3600)
    if point_60min is not None:
        return point_60min.power

    return None


def _shift_months(day: date, months: int) -> date:
    """Move a date by whole months, clamping to the end of short months."""
    month_index = day.year * 12 + day.month - 1 + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def filter_activities_by_period(
    activities: Iterable[Activity],
    period: str,
    today: Optional[date] = None,
) -> List[Activity]:
    """
    Keep activities within a trailing period.

    Args:
        activities: Activities to filter
        period: One of 'all', '1y', '6m', '3m', '90d', '30d'; anything
            else keeps everything
        today: Reference day, the current date when omitted

    Returns:
        Activities whose UTC start day is on or after the period's cutoff
        day (the local calendar day is not used here)
    """
    activities = list(activities)
    today = today or date.today()

    if period == "1y":
        cutoff = _shift_months(today, -12)
    elif period == "6m":
        cutoff = _shift_months(today, -6)
    elif period == "3m":
        cutoff = _shift_months(today, -3)
    elif period == "90d":
        cutoff = today - timedelta(days=90)
    elif period == "30d":
        cutoff = today - timedelta(days=30)
    else:
        return activities

    return [a for a in activities if a.start_date.date() >= cutoff]


def filter_activities_by_year(activities: Iterable[Activity], year: int) -> List[Activity]:
    """Keep activities whose UTC start falls in ``year``."""
    return [a for a in activities if a.start_date.year == year]
