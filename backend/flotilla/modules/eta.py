"""Time-to-arrival estimation.

Constant-speed projection: hours = distance / speed. Route curvature and
speed changes are not modelled. Policy, first match wins:

  1. terminal status (intercepted / docked / anchored) → no ETA, status phrase
  2. no distance (no position)                        → "Unknown"
  3. no speed, or speed below the moving threshold    → "Not moving"
  4. otherwise                                        → distance / speed
"""
from __future__ import annotations

import math
from typing import Iterable, NamedTuple, Optional

from flotilla.errors import InvalidSpeed
from flotilla.schemas.vessel import VesselStatus

DEFAULT_MIN_SPEED_KN: float = 0.5

DEFAULT_TERMINAL_STATUSES: frozenset[VesselStatus] = frozenset({
    VesselStatus.INTERCEPTED,
    VesselStatus.DOCKED,
    VesselStatus.ANCHORED,
})

_TERMINAL_PHRASES: dict[VesselStatus, str] = {
    VesselStatus.INTERCEPTED: "Intercepted",
    VesselStatus.DOCKED: "Docked",
    VesselStatus.ANCHORED: "Anchored",
}

UNKNOWN_DISPLAY = "Unknown"
NOT_MOVING_DISPLAY = "Not moving"


class EtaEstimate(NamedTuple):
    hours: Optional[float]
    display: str


def parse_terminal_statuses(labels: Iterable[str]) -> frozenset[VesselStatus]:
    """Map configured labels (e.g. from TERMINAL_STATUSES) to VesselStatus members."""
    statuses = set()
    for label in labels:
        try:
            statuses.add(VesselStatus(label.strip().upper()))
        except ValueError:
            raise ValueError(f"Unknown terminal status: {label!r}") from None
    return frozenset(statuses)


def format_eta_hours(hours: float) -> str:
    """Render hours as "2d 22h" from one day upward, else "18 hours" / "5.5 hours"."""
    if hours >= 24:
        days, rem = divmod(int(round(hours)), 24)
        return f"{days}d {rem}h"
    value = round(hours, 1)
    if value == int(value):
        value = int(value)
    return f"{value} hour" if value == 1 else f"{value} hours"


def estimate_eta(
    distance_nm: Optional[float],
    speed_kn: Optional[float],
    status: VesselStatus,
    *,
    min_speed_kn: float = DEFAULT_MIN_SPEED_KN,
    terminal_statuses: Iterable[VesselStatus] = DEFAULT_TERMINAL_STATUSES,
) -> EtaEstimate:
    """Estimate time to arrival for one vessel.

    Raises InvalidSpeed for negative or NaN speed, regardless of status.
    """
    if speed_kn is not None and (math.isnan(speed_kn) or speed_kn < 0):
        raise InvalidSpeed(f"Invalid speed: {speed_kn}")

    if status in terminal_statuses:
        return EtaEstimate(None, _TERMINAL_PHRASES.get(status, status.value.title()))

    if distance_nm is None:
        return EtaEstimate(None, UNKNOWN_DISPLAY)

    if speed_kn is None or speed_kn < min_speed_kn:
        return EtaEstimate(None, NOT_MOVING_DISPLAY)

    hours = distance_nm / speed_kn
    return EtaEstimate(hours, format_eta_hours(hours))
