"""Training metrics calculations."""

from .load import (
    ActivityLoad,
    DailyTrainingLoad,
    LoadOptions,
    LoadSource,
    activities_to_daily_loads,
    calculate_activity_load,
    calculate_trimp,
    calculate_tss,
    estimate_load_from_suffer_score,
)
from .fitness import (
    BanisterModel,
    FitnessMetrics,
    FitnessModel,
    FitnessModelConfig,
    calculate_ewma,
    calculate_fitness_metrics,
    decay_factor,
    get_current_fitness,
    get_current_form,
    get_fitness_trend,
    iter_daily_loads,
)
from .power_curve import (
    POWER_CURVE_INTERVALS,
    EstimationConstants,
    PowerCurve,
    PowerCurvePoint,
    calculate_best_power_for_duration,
    calculate_power_curve,
    calculate_power_curve_sync,
    compute_power_curve,
    estimate_best_power_for_duration,
    estimate_ftp,
    filter_activities_by_period,
    filter_activities_by_year,
    has_power_data,
    is_cycling_activity,
    merge_power_curves,
    select_power_candidates,
)
from .rounding import round_half_up

__all__ = [
    # Daily load
    "ActivityLoad",
    "DailyTrainingLoad",
    "LoadOptions",
    "LoadSource",
    "activities_to_daily_loads",
    "calculate_activity_load",
    "calculate_trimp",
    "calculate_tss",
    "estimate_load_from_suffer_score",
    # Fitness model
    "BanisterModel",
    "FitnessMetrics",
    "FitnessModel",
    "FitnessModelConfig",
    "calculate_ewma",
    "calculate_fitness_metrics",
    "decay_factor",
    "get_current_fitness",
    "get_current_form",
    "get_fitness_trend",
    "iter_daily_loads",
    # Power curve
    "POWER_CURVE_INTERVALS",
    "EstimationConstants",
    "PowerCurve",
    "PowerCurvePoint",
    "calculate_best_power_for_duration",
    "calculate_power_curve",
    "calculate_power_curve_sync",
    "compute_power_curve",
    "estimate_best_power_for_duration",
    "estimate_ftp",
    "filter_activities_by_period",
    "filter_activities_by_year",
    "has_power_data",
    "is_cycling_activity",
    "merge_power_curves",
    "select_power_candidates",
    # Rounding
    "round_half_up",
]
