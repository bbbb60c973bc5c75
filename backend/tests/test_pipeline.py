"""End-to-end pipeline tests: raw rows → normalize → sort → stats → persist."""
import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from conftest import RUN_TIME, raw_row
from flotilla.errors import PersistenceUnavailable
from flotilla.modules.pipeline import ProcessingPipeline, compute_stats, sort_by_distance
from flotilla.schemas.vessel import NormalizedVessel, VesselStatus


def _vessel(name: str, distance, status=VesselStatus.SAILING, last_update=None) -> NormalizedVessel:
    return NormalizedVessel(
        id=name.lower(), name=name, status=status,
        distance_nm=distance, last_update_utc=last_update,
    )


class TestSortByDistance:
    def test_nulls_last_stable(self):
        vessels = [
            _vessel("A", 50.0), _vessel("B", None), _vessel("C", 10.0),
            _vessel("D", None), _vessel("E", 30.0),
        ]
        result = sort_by_distance(vessels)
        assert [v.distance_nm for v in result] == [10.0, 30.0, 50.0, None, None]
        assert [v.name for v in result[3:]] == ["B", "D"]

    def test_zero_distance_first(self):
        result = sort_by_distance([_vessel("A", None), _vessel("B", 0.0)])
        assert [v.name for v in result] == ["B", "A"]

    def test_empty(self):
        assert sort_by_distance([]) == []


class TestComputeStats:
    def test_counts(self):
        t1 = datetime(2025, 10, 1, 8, tzinfo=timezone.utc)
        t2 = datetime(2025, 10, 1, 11, tzinfo=timezone.utc)
        vessels = [
            _vessel("A", 10.0, last_update=t1),
            _vessel("B", 20.0, VesselStatus.INTERCEPTED, last_update=t2),
            _vessel("C", 30.0, VesselStatus.DOCKED),
            _vessel("D", None, VesselStatus.OTHER),
            _vessel("E", 40.0),
        ]
        stats = compute_stats(vessels, skipped=2, failed=1)
        assert stats.total == 5
        assert stats.sailing == 2
        assert stats.intercepted == 1
        assert stats.other == 2
        assert stats.by_status == {
            "SAILING": 2, "INTERCEPTED": 1, "DOCKED": 1, "ANCHORED": 0, "OTHER": 1,
        }
        assert stats.latest_update == t2
        assert stats.skipped == 2
        assert stats.failed == 1

    def test_empty(self):
        stats = compute_stats([])
        assert stats.total == 0
        assert stats.latest_update is None
        assert set(stats.by_status.values()) == {0}


class TestPipelineRun:
    def test_none_rejected(self, pipeline):
        with pytest.raises(ValueError):
            pipeline.run(None)

    def test_empty_input_persists_empty_snapshot(self, pipeline, store):
        result = pipeline.run([])
        assert result.vessels == []
        assert result.stats.total == 0
        assert result.generated_at == RUN_TIME
        snapshot = store.load_snapshot()
        assert snapshot is not None
        assert snapshot.vessels == []
        assert len(store.load_history()) == 1

    def test_sorted_and_counted(self, pipeline):
        rows = [
            raw_row(name="FAR", latitude=35.0, longitude=20.0),
            raw_row(name="NO FIX", latitude=None, longitude=None, speed=5.0),
            raw_row(name="NEAR", latitude=32.0, longitude=33.5),
            raw_row(name="SIRIUS", status="ASSUMED INTERCEPTED", latitude=32.5, longitude=33.0),
        ]
        result = pipeline.run(rows)
        assert [v.name for v in result.vessels] == ["NEAR", "SIRIUS", "FAR", "NO FIX"]
        assert result.stats.sailing == 3
        assert result.stats.intercepted == 1
        sirius = result.vessels[1]
        assert sirius.eta_hours is None
        assert sirius.eta_display == "Intercepted"

    def test_incidents_skipped_and_counted(self, pipeline):
        rows = [
            raw_row(name="ALMA"),
            {"name": "FLOTILLA INTERCEPTED", "status": "Alert"},
            {"name": "DRONE ATTACK NEAR CRETE", "status": ""},
        ]
        result = pipeline.run(rows)
        assert [v.name for v in result.vessels] == ["ALMA"]
        assert result.stats.skipped == 2
        assert result.stats.failed == 0
        assert result.stats.total == 1

    def test_bad_rows_dropped_run_continues(self, pipeline, caplog):
        rows = [
            raw_row(name="ALMA"),
            raw_row(name="BAD LAT", latitude=123.0),
            raw_row(name="BAD SPEED", speed=-4.0),
            {"status": "Sailing"},  # no name
            raw_row(name="BAD TS", last_update="next tuesday"),
            raw_row(name="FAMILY", latitude=32.0, longitude=33.0),
        ]
        with caplog.at_level("WARNING"):
            result = pipeline.run(rows)
        assert [v.name for v in result.vessels] == ["FAMILY", "ALMA"]
        assert result.stats.failed == 4
        assert "BAD LAT" in caplog.text

    @pytest.mark.parametrize("last_update", [
        "9999-12-31T20:00:00Z",       # local display past year 9999
        "9999-12-31T10:00:00Z",       # eta_timestamp past year 9999
        "0001-01-01T00:00:00+05:00",  # UTC conversion before year 1
    ])
    def test_out_of_range_timestamp_drops_only_that_row(self, pipeline, last_update):
        rows = [raw_row(name="ALMA"), raw_row(name="EDGE", last_update=last_update)]
        result = pipeline.run(rows)
        assert [v.name for v in result.vessels] == ["ALMA"]
        assert result.stats.failed == 1

    def test_accepts_raw_models(self, pipeline):
        from flotilla.schemas.vessel import RawVesselRecord
        result = pipeline.run([RawVesselRecord.model_validate(raw_row())])
        assert result.stats.total == 1

    def test_history_appends_every_run(self, pipeline, store):
        rows = [raw_row()]
        for _ in range(3):
            pipeline.run(rows)
        history = store.load_history()
        assert len(history) == 3
        assert history[0].vessels[0].id == "alma"

    def test_history_capped(self, normalizer, tmp_path):
        from flotilla.modules.history_store import HistoryStore
        store = HistoryStore(tmp_path / "s.json", tmp_path / "h.json", cap=2)
        pipeline = ProcessingPipeline(normalizer, store, clock=lambda: RUN_TIME)
        for _ in range(5):
            pipeline.run([raw_row()])
        assert len(store.load_history()) == 2

    def test_corrupt_history_does_not_fail_run(self, pipeline, store):
        store.history_path.write_text("garbage", encoding="utf-8")
        pipeline.run([raw_row()])
        assert len(store.load_history()) == 1

    def test_snapshot_document_shape(self, pipeline, store):
        pipeline.run([raw_row()])
        data = json.loads(store.snapshot_path.read_text(encoding="utf-8"))
        assert set(data) == {"generated_at", "stats", "vessels"}
        vessel = data["vessels"][0]
        assert vessel["id"] == "alma"
        assert vessel["status"] == "SAILING"
        assert vessel["last_update_utc"].startswith("2025-10-01T10:00:00")

    def test_persistence_failure_carries_result(self, pipeline):
        with patch.object(pipeline.store, "commit", side_effect=PersistenceUnavailable("disk full")):
            with pytest.raises(PersistenceUnavailable) as exc_info:
                pipeline.run([raw_row()])
        assert exc_info.value.result is not None
        assert exc_info.value.result.stats.total == 1

    def test_without_store_nothing_written(self, normalizer, tmp_path):
        pipeline = ProcessingPipeline(normalizer, None, clock=lambda: RUN_TIME)
        result = pipeline.run([raw_row()])
        assert result.stats.total == 1
        assert list(tmp_path.iterdir()) == []

    def test_from_settings(self, tmp_path):
        from flotilla.config import Settings
        settings = Settings(_env_file=None, DATA_DIR=str(tmp_path))
        pipeline = ProcessingPipeline.from_settings(settings)
        pipeline.run([raw_row()])
        assert (tmp_path / "vessels.json").exists()
        assert ProcessingPipeline.from_settings(settings, persist=False).store is None


class TestSampleData:
    def test_sample_rows_process(self, pipeline):
        from scripts.generate_sample_data import generate_sample_rows
        rows = generate_sample_rows(now=RUN_TIME)
        result = pipeline.run(rows)
        by_name = {v.name: v for v in result.vessels}
        assert "DRONE ATTACK NEAR CRETE" not in by_name
        assert result.stats.skipped == 1
        assert result.stats.failed == 0
        assert by_name["SIRIUS"].status is VesselStatus.INTERCEPTED
        assert by_name["CONSCIENCE"].eta_display == "Not moving"
        assert by_name["HANDALA"].eta_display == "Docked"
        assert by_name["MADLEEN"].eta_display == "Unknown"
        assert by_name["OHWAYLA"].status is VesselStatus.OTHER
        assert by_name["ADARA"].speed_kn == pytest.approx(6.1)
        assert result.vessels[-1].name == "MADLEEN"
