"""Pydantic schemas for run output: aggregate stats, snapshot and history entries."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from flotilla.schemas.vessel import NormalizedVessel, VesselSummary


class VesselStats(BaseModel):
    total: int = 0
    sailing: int = 0
    intercepted: int = 0
    other: int = 0  # everything not sailing or intercepted
    by_status: dict[str, int] = Field(default_factory=dict)
    latest_update: Optional[datetime] = None
    skipped: int = 0  # incident rows, not vessels
    failed: int = 0   # rows dropped on malformed input


class Snapshot(BaseModel):
    generated_at: datetime
    stats: VesselStats
    vessels: list[NormalizedVessel] = Field(default_factory=list)


class HistoryEntry(BaseModel):
    timestamp: datetime
    vessels: list[VesselSummary] = Field(default_factory=list)


class ProcessingResult(BaseModel):
    """What a run hands to the email renderer."""

    generated_at: datetime
    vessels: list[NormalizedVessel] = Field(default_factory=list)
    stats: VesselStats

    def to_snapshot(self) -> Snapshot:
        return Snapshot(generated_at=self.generated_at, stats=self.stats, vessels=self.vessels)

    def to_history_entry(self) -> HistoryEntry:
        return HistoryEntry(
            timestamp=self.generated_at,
            vessels=[VesselSummary.from_vessel(v) for v in self.vessels],
        )
