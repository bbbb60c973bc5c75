"""Shared test fixtures for the vessel processing core."""
from datetime import datetime, timedelta, timezone

import pytest

from flotilla.modules.history_store import HistoryStore
from flotilla.modules.normalize import VesselNormalizer
from flotilla.modules.pipeline import ProcessingPipeline

RUN_TIME = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)
UTC_PLUS_8 = timezone(timedelta(hours=8))


def raw_row(**overrides):
    """Return a valid scraped vessel row with optional field overrides."""
    row = {
        "name": "ALMA",
        "status": "Sailing",
        "latitude": 33.0,
        "longitude": 30.0,
        "speed": 6.0,
        "course": 110.0,
        "last_update": "2025-10-01T10:00:00Z",
    }
    row.update(overrides)
    return row


@pytest.fixture
def normalizer():
    return VesselNormalizer(display_tz=UTC_PLUS_8)


@pytest.fixture
def store(tmp_path):
    return HistoryStore(tmp_path / "vessels.json", tmp_path / "vessels_history.json")


@pytest.fixture
def pipeline(normalizer, store):
    return ProcessingPipeline(normalizer, store, clock=lambda: RUN_TIME)
