"""Pydantic schemas for raw scraped rows and normalized vessels."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

_NUMBER_RE = re.compile(r"^([-+]?\d+(?:[.,]\d+)?)\s*°?\s*([A-Za-z]*)$")
_HEMISPHERE_SIGN = {
    "latitude": {"N": 1.0, "S": -1.0},
    "longitude": {"E": 1.0, "W": -1.0},
}
_UNIT_SUFFIXES = {
    "speed": {"kn", "kt", "kts", "knot", "knots"},
    "course": {"deg"},
}


class VesselStatus(str, Enum):
    SAILING = "SAILING"
    INTERCEPTED = "INTERCEPTED"
    DOCKED = "DOCKED"
    ANCHORED = "ANCHORED"
    OTHER = "OTHER"


def _coerce_float(v: Any, field: str) -> Any:
    """Scraped numbers arrive as floats, ints, or text like "7.4 kn" / "31.5 S" / "N/A".

    A hemisphere letter sets the sign of a coordinate. Unit words are accepted
    only where they fit the field. Grouped thousands ("1,234") are rejected
    rather than read as decimals; a lone decimal comma ("7,4") is accepted.
    """
    if v is None or isinstance(v, (int, float)):
        return v
    if not isinstance(v, str):
        return v
    text = v.strip()
    if not text or text.lower() in ("n/a", "na", "-", "--", "unknown", "null"):
        return None
    m = _NUMBER_RE.match(text)
    if m is None:
        raise ValueError(f"not a number: {v!r}")
    number, suffix = m.groups()
    if "," in number:
        if len(number.rsplit(",", 1)[1]) == 3:
            raise ValueError(f"ambiguous thousands separator: {v!r}")
        number = number.replace(",", ".")
    value = float(number)
    if not suffix:
        return value

    signs = _HEMISPHERE_SIGN.get(field, {})
    if suffix.upper() in signs:
        if number.startswith(("-", "+")):
            raise ValueError(f"both a sign and a hemisphere: {v!r}")
        return value * signs[suffix.upper()]
    if suffix.lower() in _UNIT_SUFFIXES.get(field, ()):
        return value
    raise ValueError(f"unexpected suffix {suffix!r} in {v!r}")


class RawVesselRecord(BaseModel):
    """One row as delivered by the scraper. Discarded after normalization."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(validation_alias=AliasChoices("name", "vessel_name", "vessel", "NAME"))
    status: str = Field("", validation_alias=AliasChoices("status", "nav_status", "STATUS"))
    latitude: Optional[float] = Field(None, validation_alias=AliasChoices("latitude", "lat", "LAT"))
    longitude: Optional[float] = Field(
        None, validation_alias=AliasChoices("longitude", "lon", "lng", "LON")
    )
    speed: Optional[float] = Field(
        None, validation_alias=AliasChoices("speed", "sog", "speed_knots", "SPEED")
    )
    course: Optional[float] = Field(
        None, validation_alias=AliasChoices("course", "cog", "heading", "COURSE")
    )
    last_update: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("last_update", "timestamp", "last_seen", "updated_at", "TIMESTAMP"),
    )

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        v = " ".join(v.split())
        if not v:
            raise ValueError("vessel name must not be blank")
        return v

    @field_validator("status", mode="before")
    @classmethod
    def status_none_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("latitude", "longitude", "speed", "course", mode="before")
    @classmethod
    def coerce_numeric_text(cls, v: Any, info: ValidationInfo) -> Any:
        return _coerce_float(v, info.field_name)

    @field_validator("last_update", mode="before")
    @classmethod
    def parse_last_update(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        from flotilla.modules.normalize import parse_timestamp_flexible

        parsed = parse_timestamp_flexible(v)
        if parsed is None:
            raise ValueError(f"unparseable timestamp {v!r}")
        return parsed

    @field_validator("last_update")
    @classmethod
    def last_update_as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return None
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        try:
            return v.astimezone(timezone.utc)
        except OverflowError as exc:
            raise ValueError(f"timestamp out of range: {v.isoformat()}") from exc

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class NormalizedVessel(BaseModel):
    """Canonical vessel entity, one per vessel per run."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: VesselStatus
    status_raw: str = ""
    last_update_utc: Optional[datetime] = None
    last_update_local: Optional[datetime] = None
    last_update_display: Optional[str] = None
    speed_kn: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    course: Optional[float] = None
    distance_nm: Optional[float] = None
    bearing_deg: Optional[float] = None
    eta_hours: Optional[float] = None
    eta_days: Optional[float] = None
    eta_display: str = "Unknown"
    eta_timestamp: Optional[datetime] = None

    @model_validator(mode="after")
    def eta_fields_populated_together(self) -> "NormalizedVessel":
        populated = [f is not None for f in (self.eta_hours, self.eta_days, self.eta_timestamp)]
        if any(populated) and not all(populated):
            raise ValueError("eta_hours, eta_days and eta_timestamp must be set together")
        return self

    @property
    def position(self) -> Optional[tuple[float, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return self.latitude, self.longitude

    @property
    def status_label(self) -> str:
        """Display label; unrecognised statuses show their original text."""
        if self.status is VesselStatus.OTHER and self.status_raw:
            return self.status_raw
        return self.status.value


class VesselSummary(BaseModel):
    """Compact per-vessel record kept in each history entry."""

    id: str
    name: str
    status: VesselStatus
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    speed_kn: Optional[float] = None
    distance_nm: Optional[float] = None
    eta_hours: Optional[float] = None

    @classmethod
    def from_vessel(cls, vessel: NormalizedVessel) -> "VesselSummary":
        return cls(
            id=vessel.id,
            name=vessel.name,
            status=vessel.status,
            latitude=vessel.latitude,
            longitude=vessel.longitude,
            speed_kn=vessel.speed_kn,
            distance_nm=vessel.distance_nm,
            eta_hours=vessel.eta_hours,
        )
