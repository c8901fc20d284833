"""Tests for the stream store integration."""

import json
import pytest
from datetime import datetime

import httpx

from training_engine.config import Settings
from training_engine.exceptions import (
    ConfigurationError,
    ErrorCode,
    StreamFetchError,
)
from training_engine.integrations.streams import (
    HttpStreamStore,
    build_power_streams,
)
from training_engine.metrics.power_curve import (
    calculate_power_curve,
    calculate_power_curve_sync,
)
from training_engine.models.activity import Activity, ActivityStreamRecord, PowerStreamData


def _rows(activity_id, seconds, watts):
    return [
        {"activity_id": activity_id, "stream_type": "time", "data": list(range(seconds + 1))},
        {"activity_id": activity_id, "stream_type": "watts", "data": [watts] * (seconds + 1)},
    ]


def _store(handler, token=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpStreamStore("https://streams.test/api/", token=token, client=client)


class TestBuildPowerStreams:
    """Tests for pairing time and watts rows."""

    def test_pairs_rows_per_activity(self):
        records = _rows(2, 10, 200) + _rows(1, 5, 150)
        records.append({"activity_id": 1, "stream_type": "heartrate", "data": [120] * 6})

        streams = build_power_streams(records)

        assert [s.activity_id for s in streams] == [1, 2]
        assert streams[0].time_data == [float(t) for t in range(6)]
        assert streams[0].power_data == [150.0] * 6

    def test_accepts_records(self):
        records = [
            ActivityStreamRecord(activity_id=3, stream_type="time", data=[0, 1, 2]),
            ActivityStreamRecord(activity_id=3, stream_type="watts", data=[100, None, 300]),
        ]
        streams = build_power_streams(records)

        assert streams == [
            PowerStreamData(activity_id=3, time_data=[0.0, 1.0, 2.0], power_data=[100.0, None, 300.0])
        ]

    def test_junk_power_samples_become_none(self):
        records = [
            {"activity_id": 1, "stream_type": "time", "data": [0, 1, 2, 3]},
            {"activity_id": 1, "stream_type": "watts", "data": [100, "x", -4, True]},
        ]
        streams = build_power_streams(records)

        assert streams[0].power_data == [100.0, None, None, None]

    def test_drops_incomplete_streams(self):
        records = [
            {"activity_id": 1, "stream_type": "time", "data": [0, 1, 2]},
            {"activity_id": 2, "stream_type": "time", "data": [0, 1, 2]},
            {"activity_id": 2, "stream_type": "watts", "data": [100, 100]},
            {"activity_id": 3, "stream_type": "time", "data": [0, None, 2]},
            {"activity_id": 3, "stream_type": "watts", "data": [100, 100, 100]},
            {"activity_id": 4, "stream_type": "time", "data": [0, 5, 2]},
            {"activity_id": 4, "stream_type": "watts", "data": [100, 100, 100]},
        ]
        assert build_power_streams(records) == []


class TestHttpStreamStore:
    """Tests for the HTTP stream store client."""

    @pytest.mark.asyncio
    async def test_single_batched_request(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_rows(1, 60, 210) + _rows(2, 30, 180) + _rows(9, 30, 999))

        async with _store(handler, token="secret") as store:
            streams = await store.fetch_power_streams([1, 2])

        assert len(seen) == 1
        request = seen[0]
        assert request.url.path == "/api/activity_streams"
        assert request.url.params["activity_ids"] == "1,2"
        assert request.url.params["stream_types"] == "time,watts"
        assert request.headers["Authorization"] == "Bearer secret"
        assert [s.activity_id for s in streams] == [1, 2]

    @pytest.mark.asyncio
    async def test_no_ids_no_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        store = _store(handler)
        assert await store.fetch_power_streams([]) == []
        await store.close()

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        store = _store(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(StreamFetchError) as exc_info:
            await store.fetch_power_streams([1])

        assert exc_info.value.status_code == 503
        assert exc_info.value.code == ErrorCode.STREAM_FETCH_FAILED
        await store.close()

    @pytest.mark.asyncio
    async def test_invalid_payload(self):
        store = _store(lambda request: httpx.Response(200, json={"unexpected": True}))

        with pytest.raises(StreamFetchError) as exc_info:
            await store.fetch_power_streams([1])

        assert exc_info.value.code == ErrorCode.STREAM_PAYLOAD_INVALID
        await store.close()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        store = _store(handler)
        with pytest.raises(StreamFetchError) as exc_info:
            await store.fetch_power_streams([1, 2, 3])

        assert exc_info.value.details["activity_count"] == 3
        await store.close()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        store = _store(handler)
        with pytest.raises(StreamFetchError) as exc_info:
            await store.fetch_power_streams([1])

        assert exc_info.value.code == ErrorCode.STREAM_TIMEOUT
        await store.close()

    def test_from_settings(self):
        store = HttpStreamStore.from_settings(
            Settings(stream_store_url="https://streams.test", stream_fetch_timeout=5.0)
        )
        assert store.base_url == "https://streams.test"
        assert store.timeout == 5.0

    def test_from_settings_requires_url(self):
        with pytest.raises(ConfigurationError) as exc_info:
            HttpStreamStore.from_settings(Settings(stream_store_url=None))

        assert exc_info.value.to_dict()["error"]["details"] == {"setting": "stream_store_url"}


class TestPowerCurveWithHttpStore:
    """End-to-end power curve over the HTTP client."""

    def _activities(self):
        return [
            Activity(
                id=1,
                name="Hill repeats",
                type="Ride",
                start_date=datetime(2024, 5, 4, 9, 0),
                moving_time=3600,
                average_watts=220,
            ),
            Activity(
                id=2,
                name="Commute",
                type="Ride",
                start_date=datetime(2024, 5, 5, 7, 30),
                moving_time=1800,
                average_watts=160,
            ),
        ]

    @pytest.mark.asyncio
    async def test_streams_refine_curve(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=json.dumps(_rows(1, 3600, 260)))

        async with _store(handler) as store:
            curve = await calculate_power_curve(self._activities(), store, "May")

        assert curve.period == "May"
        assert curve.get_point(1200).power == 260
        assert curve.get_point(1200).from_stream
        assert curve.get_point(1200).activity_name == "Hill repeats"

    @pytest.mark.asyncio
    async def test_store_down_uses_estimates(self):
        async with _store(lambda request: httpx.Response(500)) as store:
            curve = await calculate_power_curve(self._activities(), store)

        assert curve == calculate_power_curve_sync(self._activities())
