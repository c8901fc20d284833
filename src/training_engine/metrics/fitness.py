"""Fitness-Fatigue model calculations (CTL, ATL, TSB)."""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..config import Settings, get_settings
from .load import DailyTrainingLoad
from .rounding import round_half_up


@dataclass(frozen=True)
class FitnessModelConfig:
    """Time constants and starting state of the impulse-response model."""

    ctl_time_constant: float = 42
    atl_time_constant: float = 7
    initial_ctl: float = 0.0
    initial_atl: float = 0.0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FitnessModelConfig":
        settings = settings or get_settings()
        return cls(
            ctl_time_constant=settings.ctl_time_constant,
            atl_time_constant=settings.atl_time_constant,
            initial_ctl=settings.initial_ctl,
            initial_atl=settings.initial_atl,
        )


@dataclass(frozen=True)
class FitnessMetrics:
    """Daily fitness metrics from the Fitness-Fatigue model."""

    date: date
    ctl: float  # Chronic Training Load (fitness)
    atl: float  # Acute Training Load (fatigue)
    tsb: float  # Training Stress Balance (form) = CTL - ATL
    load: float  # Raw training load of the day, 0 for rest days

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "date": self.date.isoformat(),
            "ctl": self.ctl,
            "atl": self.atl,
            "tsb": self.tsb,
            "load": self.load,
        }


def decay_factor(time_constant: float) -> float:
    """
    Daily retention of an exponential average: e^(-1/time_constant).

    A non-positive time constant retains nothing (the limit as it tends
    to 0), so the average follows the latest load.
    """
    if time_constant <= 0:
        return 0.0
    return math.exp(-1 / time_constant)


def calculate_ewma(
    current_value: float,
    previous_ewma: float,
    time_constant: float,
) -> float:
    """
    Exponentially Weighted Moving Average.

    Uses the formula: EWMA_n = EWMA_{n-1} * decay + value * (1 - decay)
    where decay = e^(-1/time_constant)

    Args:
        current_value: Today's training load
        previous_ewma: Yesterday's EWMA value
        time_constant: Time constant in days (42 for CTL, 7 for ATL)

    Returns:
        New EWMA value
    """
    decay = decay_factor(time_constant)
    return previous_ewma * decay + current_value * (1 - decay)


def iter_daily_loads(
    daily_loads: Iterable[DailyTrainingLoad],
) -> Iterator[Tuple[date, float]]:
    """
    Yield (day, load) for every calendar day between the first and last load.

    Days without an entry yield a load of 0. When a day appears more than
    once the last entry wins.
    """
    loads: Dict[date, float] = {}
    for entry in sorted(daily_loads, key=lambda x: x.date):
        loads[entry.date] = entry.load

    if not loads:
        return

    day = min(loads)
    last_day = max(loads)
    while day <= last_day:
        yield day, loads.get(day, 0.0)
        day += timedelta(days=1)


class FitnessModel(ABC):
    """A model turning daily training load into fitness/fatigue/form."""

    @abstractmethod
    def calculate(self, daily_loads: Iterable[DailyTrainingLoad]) -> List[FitnessMetrics]:
        """Return one FitnessMetrics per calendar day, ascending by date."""


class BanisterModel(FitnessModel):
    """
    Banister impulse-response model.

    CTL and ATL are exponential averages of daily load with long (42 day)
    and short (7 day) time constants. Every calendar day is stepped through
    in order, rest days included, so the decay compounds daily.
    """

    def __init__(self, config: Optional[FitnessModelConfig] = None):
        self.config = config or FitnessModelConfig()

    def calculate(self, daily_loads: Iterable[DailyTrainingLoad]) -> List[FitnessMetrics]:
        cfg = self.config
        ctl_decay = decay_factor(cfg.ctl_time_constant)
        atl_decay = decay_factor(cfg.atl_time_constant)

        ctl = cfg.initial_ctl
        atl = cfg.initial_atl
        results = []

        for day, load in iter_daily_loads(daily_loads):
            ctl = ctl * ctl_decay + load * (1 - ctl_decay)
            atl = atl * atl_decay + load * (1 - atl_decay)
            tsb = ctl - atl

            results.append(
                FitnessMetrics(
                    date=day,
                    ctl=round_half_up(ctl, 1),
                    atl=round_half_up(atl, 1),
                    tsb=round_half_up(tsb, 1),
                    load=load,
                )
            )

        return results


def calculate_fitness_metrics(
    daily_loads: Iterable[DailyTrainingLoad],
    config: Optional[FitnessModelConfig] = None,
    model: Optional[FitnessModel] = None,
) -> List[FitnessMetrics]:
    """
    Calculate CTL, ATL and TSB for a series of daily loads.

    Args:
        daily_loads: Daily loads, need not be consecutive or sorted
        config: Model configuration, defaults when omitted
        model: Alternative model; takes precedence over ``config``

    Returns:
        One FitnessMetrics per day from the first to the last load date,
        or an empty list for empty input
    """
    if model is None:
        model = BanisterModel(config)
    return model.calculate(daily_loads)


def get_current_fitness(metrics: Sequence[FitnessMetrics]) -> float:
    """Most recent CTL, 0 when there is no history."""
    return metrics[-1].ctl if metrics else 0


def get_current_form(metrics: Sequence[FitnessMetrics]) -> float:
    """Most recent TSB, 0 when there is no history."""
    return metrics[-1].tsb if metrics else 0


def get_fitness_trend(metrics: Sequence[FitnessMetrics], days: int = 7) -> float:
    """
    Change in CTL over the last ``days`` entries.

    The comparison point is clamped to the first entry when the history is
    shorter than ``days``.
    """
    if len(metrics) < 2:
        return 0

    recent = metrics[-1]
    past = metrics[max(0, len(metrics) - 1 - max(0, days))]
    return round_half_up(recent.ctl - past.ctl, 1)
