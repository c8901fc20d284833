"""Domain records consumed by the analytics engine."""

from .activity import (
    Activity,
    ActivityForLoad,
    ActivityStreamRecord,
    PowerStreamData,
    parse_timestamp,
)

__all__ = [
    "Activity",
    "ActivityForLoad",
    "ActivityStreamRecord",
    "PowerStreamData",
    "parse_timestamp",
]
