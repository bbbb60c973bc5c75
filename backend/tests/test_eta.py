"""Tests for time-to-arrival estimation (modules/eta.py)."""
import math

import pytest

from flotilla.errors import InvalidSpeed
from flotilla.modules.eta import (
    DEFAULT_TERMINAL_STATUSES,
    estimate_eta,
    format_eta_hours,
    parse_terminal_statuses,
)
from flotilla.schemas.vessel import VesselStatus


class TestTerminalStatus:
    @pytest.mark.parametrize("status,phrase", [
        (VesselStatus.INTERCEPTED, "Intercepted"),
        (VesselStatus.DOCKED, "Docked"),
        (VesselStatus.ANCHORED, "Anchored"),
    ])
    def test_no_eta_regardless_of_speed(self, status, phrase):
        eta = estimate_eta(120.0, 8.0, status)
        assert eta.hours is None
        assert eta.display == phrase

    def test_terminal_beats_missing_distance(self):
        eta = estimate_eta(None, None, VesselStatus.INTERCEPTED)
        assert eta.display == "Intercepted"

    def test_terminal_beats_low_speed(self):
        """A docked vessel reporting 0 kn shows "Docked", not "Not moving"."""
        eta = estimate_eta(500.0, 0.0, VesselStatus.DOCKED)
        assert eta.display == "Docked"

    def test_custom_terminal_set(self):
        """With ANCHORED removed from the terminal set, an anchored vessel gets an ETA."""
        eta = estimate_eta(100.0, 10.0, VesselStatus.ANCHORED,
                           terminal_statuses={VesselStatus.INTERCEPTED})
        assert eta.hours == pytest.approx(10.0)


class TestUnknownAndNotMoving:
    def test_no_distance_unknown(self):
        eta = estimate_eta(None, 7.0, VesselStatus.SAILING)
        assert eta == (None, "Unknown")

    @pytest.mark.parametrize("speed", [None, 0.0, 0.1, 0.49])
    def test_below_threshold_not_moving(self, speed):
        eta = estimate_eta(300.0, speed, VesselStatus.SAILING)
        assert eta.hours is None
        assert eta.display == "Not moving"

    def test_threshold_is_inclusive_lower_bound(self):
        """Exactly 0.5 kn counts as moving."""
        eta = estimate_eta(5.0, 0.5, VesselStatus.SAILING)
        assert eta.hours == pytest.approx(10.0)

    def test_custom_threshold(self):
        eta = estimate_eta(300.0, 1.5, VesselStatus.SAILING, min_speed_kn=2.0)
        assert eta.display == "Not moving"


class TestProjection:
    def test_240nm_at_10kn_is_one_day(self):
        eta = estimate_eta(240.0, 10.0, VesselStatus.SAILING)
        assert eta.hours == pytest.approx(24.0)
        assert eta.display == "1d 0h"

    def test_multi_day(self):
        eta = estimate_eta(455.0, 6.5, VesselStatus.SAILING)  # 70 h
        assert eta.display == "2d 22h"

    def test_under_a_day(self):
        eta = estimate_eta(126.0, 7.0, VesselStatus.SAILING)
        assert eta.hours == pytest.approx(18.0)
        assert eta.display == "18 hours"

    def test_other_status_gets_eta(self):
        eta = estimate_eta(60.0, 6.0, VesselStatus.OTHER)
        assert eta.hours == pytest.approx(10.0)


class TestInvalidSpeed:
    def test_negative_speed(self):
        with pytest.raises(InvalidSpeed):
            estimate_eta(100.0, -1.0, VesselStatus.SAILING)

    def test_nan_speed(self):
        with pytest.raises(InvalidSpeed):
            estimate_eta(100.0, math.nan, VesselStatus.SAILING)

    def test_negative_speed_rejected_even_when_terminal(self):
        with pytest.raises(InvalidSpeed):
            estimate_eta(100.0, -3.0, VesselStatus.INTERCEPTED)


class TestFormatEtaHours:
    @pytest.mark.parametrize("hours,expected", [
        (24.0, "1d 0h"),
        (70.0, "2d 22h"),
        (47.6, "2d 0h"),
        (18.0, "18 hours"),
        (5.54, "5.5 hours"),
        (1.0, "1 hour"),
        (0.3, "0.3 hours"),
    ])
    def test_formats(self, hours, expected):
        assert format_eta_hours(hours) == expected


class TestParseTerminalStatuses:
    def test_default_labels(self):
        assert parse_terminal_statuses(["INTERCEPTED", "DOCKED", "ANCHORED"]) == DEFAULT_TERMINAL_STATUSES

    def test_case_insensitive(self):
        assert parse_terminal_statuses([" intercepted "]) == {VesselStatus.INTERCEPTED}

    def test_unknown_label_rejected(self):
        with pytest.raises(ValueError, match="Unknown terminal status"):
            parse_terminal_statuses(["SUNK"])
