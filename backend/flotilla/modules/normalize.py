"""Scraped vessel row normalization.

Turns one RawVesselRecord into a NormalizedVessel: status mapping, incident
filtering, distance/bearing to the destination, ETA, and local-time display.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Iterable

from unidecode import unidecode

from flotilla.errors import SkipRecord
from flotilla.modules.eta import (
    DEFAULT_MIN_SPEED_KN,
    DEFAULT_TERMINAL_STATUSES,
    estimate_eta,
    parse_terminal_statuses,
)
from flotilla.schemas.vessel import NormalizedVessel, RawVesselRecord, VesselStatus
from flotilla.utils.geo import DEFAULT_TARGET, haversine_nm, initial_bearing_deg

logger = logging.getLogger(__name__)


# --- Shared helpers ---

_COMMON_TIMESTAMP_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%b %d, %Y %H:%M UTC",
    "%d %b %Y %H:%M UTC",
]

# Rows the scraper picked up from incident feeds rather than vessel tables,
# e.g. "DRONE ATTACK NEAR CRETE" or "FLOTILLA INTERCEPTED".
DEFAULT_INCIDENT_PATTERN = re.compile(
    r"\b(?:INCIDENT|ATTACK(?:ED)?|DRONE|EXPLOSIONS?|ALERT)\b|\bINTERCEPTED\s*$",
    re.IGNORECASE,
)

_STATUS_SYNONYMS: dict[str, VesselStatus] = {
    "sailing": VesselStatus.SAILING,
    "underway": VesselStatus.SAILING,
    "under way": VesselStatus.SAILING,
    "under way using engine": VesselStatus.SAILING,
    "en route": VesselStatus.SAILING,
    "enroute": VesselStatus.SAILING,
    "moving": VesselStatus.SAILING,
    "active": VesselStatus.SAILING,
    "intercepted": VesselStatus.INTERCEPTED,
    "assumed intercepted": VesselStatus.INTERCEPTED,
    "seized": VesselStatus.INTERCEPTED,
    "boarded": VesselStatus.INTERCEPTED,
    "detained": VesselStatus.INTERCEPTED,
    "docked": VesselStatus.DOCKED,
    "in port": VesselStatus.DOCKED,
    "moored": VesselStatus.DOCKED,
    "berthed": VesselStatus.DOCKED,
    "anchored": VesselStatus.ANCHORED,
    "at anchor": VesselStatus.ANCHORED,
}


def parse_timestamp_flexible(ts: Any) -> datetime | None:
    """Parse a timestamp from various formats.

    Returns a datetime object or None if parsing fails.
    Supports: ISO 8601, Unix epoch (seconds or milliseconds), and common
    strftime formats. Formats without an offset are read as UTC.
    """
    if isinstance(ts, datetime):
        return ts

    if isinstance(ts, (int, float)) and not isinstance(ts, bool) and ts > 1_000_000_000:
        if ts > 1_000_000_000_000:
            ts = ts / 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OSError, ValueError, OverflowError):
            return None

    if isinstance(ts, str):
        ts_str = ts.strip()
        if not ts_str:
            return None

        if ts_str.isdigit():
            return parse_timestamp_flexible(int(ts_str))

        try:
            return datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
        except ValueError:
            pass

        for fmt in _COMMON_TIMESTAMP_FORMATS:
            try:
                return datetime.strptime(ts_str, fmt).replace(tzinfo=timezone.utc)
            except ValueError:
                continue

    return None


def normalize_status(text: str | None) -> VesselStatus:
    """Map free-text scraper status onto VesselStatus; unknown text → OTHER."""
    key = re.sub(r"[^a-z]+", " ", (text or "").casefold()).strip()
    status = _STATUS_SYNONYMS.get(key)
    if status is None:
        if key:
            logger.warning("Unrecognised vessel status %r, reported as OTHER", text)
        return VesselStatus.OTHER
    return status


def vessel_id_from_name(name: str) -> str:
    """Stable slug: "Alaa Al-Najjar" → "alaa-al-najjar"."""
    slug = re.sub(r"[^a-z0-9]+", "-", unidecode(name).lower()).strip("-")
    return slug or "vessel"


def format_local(dt: datetime, tz: tzinfo) -> tuple[datetime, str]:
    """Convert a UTC instant for display; returns (local datetime, display string).

    Raises ValueError when the local time falls outside the datetime range.
    """
    try:
        local = dt.astimezone(tz)
    except OverflowError as exc:
        raise ValueError(f"{dt.isoformat()} cannot be shown in {tz}") from exc
    label = local.tzname() or str(tz)
    return local, f"{local.strftime('%Y-%m-%d %H:%M')} {label}"


class VesselNormalizer:
    """Map scraped rows onto NormalizedVessel using injected configuration."""

    def __init__(
        self,
        target: tuple[float, float] = DEFAULT_TARGET,
        display_tz: tzinfo = timezone(timedelta(hours=8)),
        min_speed_kn: float = DEFAULT_MIN_SPEED_KN,
        terminal_statuses: Iterable[VesselStatus] = DEFAULT_TERMINAL_STATUSES,
        incident_pattern: re.Pattern[str] = DEFAULT_INCIDENT_PATTERN,
    ):
        self.target = target
        self.display_tz = display_tz
        self.min_speed_kn = min_speed_kn
        self.terminal_statuses = frozenset(terminal_statuses)
        self.incident_pattern = incident_pattern

    @classmethod
    def from_settings(cls, settings) -> "VesselNormalizer":
        return cls(
            target=settings.target,
            display_tz=settings.display_tz,
            min_speed_kn=settings.MIN_MOVING_SPEED_KN,
            terminal_statuses=parse_terminal_statuses(settings.terminal_status_labels),
        )

    def check_incident(self, raw: RawVesselRecord) -> None:
        """Raise SkipRecord if the row is an incident report rather than a vessel."""
        if self.incident_pattern.search(raw.name):
            raise SkipRecord(f"Incident row: {raw.name!r}", name=raw.name)
        if not raw.has_position and raw.speed is None and raw.course is None:
            raise SkipRecord(f"No position, speed or course: {raw.name!r}", name=raw.name)

    def normalize(
        self,
        raw: RawVesselRecord,
        reference_time: datetime,
    ) -> NormalizedVessel:
        """Build the canonical vessel for one scraped row.

        ``reference_time`` anchors eta_timestamp for rows without a
        last-update time (normally the run's generation time).

        Raises SkipRecord, InvalidCoordinate, InvalidSpeed, or ValueError
        when the ETA lands outside the datetime range.
        """
        self.check_incident(raw)
        status = normalize_status(raw.status)

        distance_nm = bearing = None
        if raw.has_position:
            distance_nm = haversine_nm(raw.latitude, raw.longitude, *self.target)
            bearing = initial_bearing_deg(raw.latitude, raw.longitude, *self.target)

        course = raw.course
        # AIS sentinel: COG >= 360 means "not available"
        if course is not None and not (0 <= course < 360):
            logger.debug("Course %s out of range for %s, dropped", course, raw.name)
            course = None

        eta = estimate_eta(
            distance_nm,
            raw.speed,
            status,
            min_speed_kn=self.min_speed_kn,
            terminal_statuses=self.terminal_statuses,
        )

        last_local = last_display = None
        if raw.last_update is not None:
            last_local, last_display = format_local(raw.last_update, self.display_tz)

        eta_days = eta_timestamp = None
        if eta.hours is not None:
            anchor = raw.last_update or reference_time
            eta_days = round(eta.hours / 24.0, 2)
            try:
                eta_timestamp = anchor + timedelta(hours=eta.hours)
            except OverflowError as exc:
                raise ValueError(f"ETA out of range for {raw.name!r}") from exc

        return NormalizedVessel(
            id=vessel_id_from_name(raw.name),
            name=raw.name,
            status=status,
            status_raw=raw.status,
            last_update_utc=raw.last_update,
            last_update_local=last_local,
            last_update_display=last_display,
            speed_kn=raw.speed,
            latitude=raw.latitude,
            longitude=raw.longitude,
            course=course,
            distance_nm=distance_nm,
            bearing_deg=bearing,
            eta_hours=eta.hours,
            eta_days=eta_days,
            eta_display=eta.display,
            eta_timestamp=eta_timestamp,
        )
