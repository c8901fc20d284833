"""Training-load analytics: daily load, fitness/fatigue/form and power curves."""

__version__ = "0.1.0"
