"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest

from training_engine.models.activity import Activity, PowerStreamData


@pytest.fixture
def make_activity():
    """Factory for cycling activities with power data."""

    def _make(activity_id: int = 1, **overrides) -> Activity:
        fields = {
            "id": activity_id,
            "name": f"Ride {activity_id}",
            "type": "Ride",
            "sport_type": "Ride",
            "start_date": datetime(2024, 1, activity_id % 28 + 1, 8, 0),
            "moving_time": 3600,
            "average_watts": 200.0,
        }
        fields.update(overrides)
        return Activity(**fields)

    return _make


@pytest.fixture
def constant_stream():
    """Factory for 1Hz streams holding a constant power."""

    def _make(activity_id: int, seconds: int, watts: float) -> PowerStreamData:
        return PowerStreamData(
            activity_id=activity_id,
            time_data=list(range(seconds + 1)),
            power_data=[watts] * (seconds + 1),
        )

    return _make
