"""Processing pipeline: raw scraped rows to a sorted, aggregated, persisted report.

  1. validate input (None is an error, [] is an empty report)
  2. normalize each row; incidents are skipped, malformed rows dropped
  3. sort by distance to the destination, unknown distances last
  4. compute aggregate counts
  5. persist snapshot (replace) + history (append, bounded)
  6. return the report for the email renderer
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from pydantic import ValidationError

from flotilla.errors import PersistenceUnavailable, SkipRecord
from flotilla.modules.history_store import HistoryStore
from flotilla.modules.normalize import VesselNormalizer
from flotilla.schemas.report import ProcessingResult, VesselStats
from flotilla.schemas.vessel import NormalizedVessel, RawVesselRecord, VesselStatus

logger = logging.getLogger(__name__)


def sort_by_distance(vessels: Iterable[NormalizedVessel]) -> list[NormalizedVessel]:
    """Ascending distance_nm; vessels without a distance keep input order at the end."""
    return sorted(
        vessels,
        key=lambda v: (v.distance_nm is None, v.distance_nm if v.distance_nm is not None else 0.0),
    )


def compute_stats(
    vessels: Sequence[NormalizedVessel],
    skipped: int = 0,
    failed: int = 0,
) -> VesselStats:
    counts = Counter(v.status for v in vessels)
    by_status = {status.value: counts.get(status, 0) for status in VesselStatus}
    sailing = counts.get(VesselStatus.SAILING, 0)
    intercepted = counts.get(VesselStatus.INTERCEPTED, 0)
    updates = [v.last_update_utc for v in vessels if v.last_update_utc is not None]
    return VesselStats(
        total=len(vessels),
        sailing=sailing,
        intercepted=intercepted,
        other=len(vessels) - sailing - intercepted,
        by_status=by_status,
        latest_update=max(updates) if updates else None,
        skipped=skipped,
        failed=failed,
    )


class ProcessingPipeline:
    def __init__(
        self,
        normalizer: VesselNormalizer,
        store: Optional[HistoryStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.normalizer = normalizer
        self.store = store
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(cls, settings, persist: bool = True) -> "ProcessingPipeline":
        store = HistoryStore.from_settings(settings) if persist else None
        return cls(VesselNormalizer.from_settings(settings), store)

    def normalize_all(
        self,
        raw_records: Sequence[Any],
        reference_time: datetime,
    ) -> tuple[list[NormalizedVessel], int, int]:
        """Normalize every row; returns (vessels, skipped, failed).

        One bad row never aborts the run.
        """
        vessels: list[NormalizedVessel] = []
        skipped = failed = 0
        for index, item in enumerate(raw_records):
            try:
                raw = item if isinstance(item, RawVesselRecord) else RawVesselRecord.model_validate(item)
                vessels.append(self.normalizer.normalize(raw, reference_time=reference_time))
            except SkipRecord as exc:
                skipped += 1
                logger.debug("Skipped row %d: %s", index, exc.reason)
            except (ValidationError, ValueError, TypeError, OverflowError) as exc:
                failed += 1
                logger.warning("Dropped row %d (%s): %s", index, _row_name(item), exc)
        return vessels, skipped, failed

    def run(self, raw_records: Optional[Sequence[Any]]) -> ProcessingResult:
        """Process one scrape. Raises PersistenceUnavailable if state cannot be written."""
        if raw_records is None:
            raise ValueError("raw_records must not be None (pass [] for an empty scrape)")

        generated_at = self.clock()
        vessels, skipped, failed = self.normalize_all(raw_records, generated_at)
        vessels = sort_by_distance(vessels)
        stats = compute_stats(vessels, skipped=skipped, failed=failed)
        result = ProcessingResult(generated_at=generated_at, vessels=vessels, stats=stats)

        logger.info(
            "Processed %d rows: %d vessels (%d sailing, %d intercepted), %d skipped, %d failed",
            len(raw_records), stats.total, stats.sailing, stats.intercepted, skipped, failed,
        )

        if self.store is not None:
            history = self.store.load_history()
            history = self.store.append_and_trim(history, result.to_history_entry(), self.store.cap)
            try:
                self.store.commit(result.to_snapshot(), history)
            except PersistenceUnavailable as exc:
                exc.result = result
                raise

        return result


def _row_name(item: Any) -> str:
    if isinstance(item, RawVesselRecord):
        return item.name
    if isinstance(item, dict):
        return str(item.get("name") or item.get("vessel_name") or "?")
    return "?"
