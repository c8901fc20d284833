"""External collaborators of the analytics engine."""

from .streams import (
    POWER_STREAM_TYPES,
    HttpStreamStore,
    StreamSource,
    build_power_streams,
)

__all__ = [
    "POWER_STREAM_TYPES",
    "HttpStreamStore",
    "StreamSource",
    "build_power_streams",
]
