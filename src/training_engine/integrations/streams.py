"""
Stream store access for power-curve refinement.

The stream store keeps per-second sensor samples of each activity, one row
per (activity, stream kind). The engine only ever needs the ``time`` and
``watts`` kinds, and asks for them in a single batched request.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..config import Settings, get_settings
from ..exceptions import ConfigurationError, ErrorCode, StreamFetchError
from ..models.activity import ActivityStreamRecord, PowerStreamData

logger = logging.getLogger(__name__)

POWER_STREAM_TYPES = ("time", "watts")


class StreamRow(BaseModel):
    """A stream row as returned by the stream store API."""

    activity_id: int
    stream_type: str
    data: List[Any] = []


_stream_rows = TypeAdapter(List[StreamRow])


def _coerce_sample(value: Any) -> Optional[float]:
    """Return a usable non-negative sample, or None for gaps and junk."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value or value < 0:  # NaN or negative
        return None
    return float(value)


def build_power_streams(
    records: Iterable[Union[ActivityStreamRecord, Dict[str, Any]]],
) -> List[PowerStreamData]:
    """
    Pair the ``time`` and ``watts`` rows of each activity.

    Activities missing either kind, with misaligned series, or with fewer
    than two samples are dropped. Non-numeric power samples become None.

    Args:
        records: Stream rows, as records or plain dictionaries

    Returns:
        One PowerStreamData per activity with a usable stream, ordered by
        activity id
    """
    by_activity: Dict[int, Dict[str, List[Any]]] = defaultdict(dict)
    for record in records:
        if isinstance(record, dict):
            record = ActivityStreamRecord.from_dict(record)
        if record.stream_type in POWER_STREAM_TYPES:
            by_activity[record.activity_id][record.stream_type] = record.data

    streams = []
    dropped = 0
    for activity_id in sorted(by_activity):
        kinds = by_activity[activity_id]
        if "time" not in kinds or "watts" not in kinds:
            dropped += 1
            continue

        times = [_coerce_sample(t) for t in kinds["time"]]
        if any(t is None for t in times):
            dropped += 1
            continue

        stream = PowerStreamData(
            activity_id=activity_id,
            time_data=times,
            power_data=[_coerce_sample(p) for p in kinds["watts"]],
        )
        if not stream.is_well_formed():
            dropped += 1
            continue
        streams.append(stream)

    if dropped:
        logger.debug("Dropped %d incomplete power streams", dropped)
    return streams


class StreamSource(ABC):
    """Anything that can deliver power streams for a batch of activities."""

    @abstractmethod
    async def fetch_power_streams(self, activity_ids: Sequence[int]) -> List[PowerStreamData]:
        """
        Fetch time/power streams for the given activities in one request.

        Activities without a stored stream are simply absent from the result.

        Raises:
            StreamFetchError: If the store cannot be reached or answers badly
        """


class HttpStreamStore(StreamSource):
    """
    Stream store client over HTTP.

    Usage:
        async with HttpStreamStore("https://streams.example.com") as store:
            streams = await store.fetch_power_streams([101, 102])
    """

    endpoint = "/activity_streams"

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._http_client = client

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "HttpStreamStore":
        """Build a client from the ``TRAINING_ENGINE_STREAM_STORE_*`` settings."""
        settings = settings or get_settings()
        if not settings.stream_store_url:
            raise ConfigurationError("Stream store URL is not configured", "stream_store_url")
        return cls(
            base_url=settings.stream_store_url,
            token=settings.stream_store_token,
            timeout=settings.stream_fetch_timeout,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "HttpStreamStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def fetch_power_streams(self, activity_ids: Sequence[int]) -> List[PowerStreamData]:
        if not activity_ids:
            return []

        params = {
            "activity_ids": ",".join(str(i) for i in activity_ids),
            "stream_types": ",".join(POWER_STREAM_TYPES),
        }
        client = await self._get_client()

        try:
            response = await client.get(
                f"{self.base_url}{self.endpoint}",
                params=params,
                headers=self._headers(),
            )
        except httpx.TimeoutException as e:
            raise StreamFetchError(
                f"Stream store timed out: {e}",
                code=ErrorCode.STREAM_TIMEOUT,
                activity_count=len(activity_ids),
            ) from e
        except httpx.HTTPError as e:
            raise StreamFetchError(
                f"Stream store unreachable: {e}",
                activity_count=len(activity_ids),
            ) from e

        if response.status_code != 200:
            raise StreamFetchError(
                f"Stream store returned HTTP {response.status_code}",
                status_code=response.status_code,
                activity_count=len(activity_ids),
            )

        try:
            rows = _stream_rows.validate_json(response.content)
        except ValidationError as e:
            raise StreamFetchError(
                f"Stream store payload invalid: {e.error_count()} errors",
                code=ErrorCode.STREAM_PAYLOAD_INVALID,
                activity_count=len(activity_ids),
            ) from e

        wanted = set(activity_ids)
        return build_power_streams(
            ActivityStreamRecord(activity_id=row.activity_id, stream_type=row.stream_type, data=row.data)
            for row in rows
            if row.activity_id in wanted
        )
