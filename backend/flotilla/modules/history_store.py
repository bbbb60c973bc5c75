"""Snapshot and rolling-history persistence.

Two JSON documents under DATA_DIR:
  vessels.json          — latest Snapshot, fully replaced every run
  vessels_history.json  — array of HistoryEntry, oldest first, capped (720)

Files are written to a temp path first, then atomically renamed. Exclusive
access during a run is assumed; overlapping runs would race on append-and-trim.
"""
from __future__ import annotations

import json
import logging
import os
from collections import deque
from pathlib import Path
from typing import Iterable, Iterator, Optional

from pydantic import TypeAdapter, ValidationError

from flotilla.errors import PersistenceUnavailable
from flotilla.schemas.report import HistoryEntry, Snapshot

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_CAP = 720

_history_adapter = TypeAdapter(list[HistoryEntry])


class BoundedHistory:
    """Fixed-capacity, oldest-first history with FIFO eviction."""

    def __init__(self, entries: Iterable[HistoryEntry] = (), cap: int = DEFAULT_HISTORY_CAP):
        if cap < 1:
            raise ValueError(f"History cap must be positive, got {cap}")
        self.cap = cap
        self._entries: deque[HistoryEntry] = deque(entries, maxlen=cap)

    def append(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    def to_list(self) -> list[HistoryEntry]:
        return list(self._entries)


def append_and_trim(
    history: Iterable[HistoryEntry],
    new_entry: HistoryEntry,
    cap: int = DEFAULT_HISTORY_CAP,
) -> list[HistoryEntry]:
    """Return ``history + [new_entry]`` with the oldest entries dropped to fit ``cap``.

    Inputs are not modified. No deduplication: identical runs still append.
    """
    bounded = BoundedHistory(history, cap=cap)
    bounded.append(new_entry)
    return bounded.to_list()


def _tmp_path(path: Path) -> Path:
    return path.with_suffix(path.suffix + ".tmp")


def _cleanup_tmp(tmp_path: Path) -> None:
    try:
        tmp_path.unlink(missing_ok=True)
    except OSError:
        pass


class HistoryStore:
    def __init__(
        self,
        snapshot_path: Path | str,
        history_path: Path | str,
        cap: int = DEFAULT_HISTORY_CAP,
    ):
        if cap < 1:
            raise ValueError(f"History cap must be positive, got {cap}")
        self.snapshot_path = Path(snapshot_path)
        self.history_path = Path(history_path)
        self.cap = cap

    @classmethod
    def from_settings(cls, settings) -> "HistoryStore":
        return cls(settings.snapshot_path, settings.history_path, cap=settings.HISTORY_CAP)

    # ── Reads ───────────────────────────────────────────────────────────────

    def load_history(self) -> list[HistoryEntry]:
        """Load past entries; a missing or unreadable file yields an empty history."""
        if not self.history_path.exists():
            logger.info("No history at %s, starting fresh", self.history_path)
            return []
        try:
            raw = self.history_path.read_text(encoding="utf-8")
            return _history_adapter.validate_json(raw)
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning("History at %s unreadable (%s), starting fresh", self.history_path, exc)
            return []

    def load_snapshot(self) -> Optional[Snapshot]:
        if not self.snapshot_path.exists():
            return None
        try:
            return Snapshot.model_validate_json(self.snapshot_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning("Snapshot at %s unreadable: %s", self.snapshot_path, exc)
            return None

    append_and_trim = staticmethod(append_and_trim)

    # ── Writes ──────────────────────────────────────────────────────────────

    def write_snapshot(self, snapshot: Snapshot) -> None:
        """Replace the latest snapshot unconditionally."""
        self._write_all([(self.snapshot_path, snapshot.model_dump_json(indent=2))])

    def write_history(self, history: list[HistoryEntry]) -> None:
        self._write_all([(self.history_path, _dump_history(history))])

    def commit(self, snapshot: Snapshot, history: list[HistoryEntry]) -> None:
        """Persist snapshot and history together.

        Both temp files are written before either rename. If the second
        rename fails, the first file is put back, so a failed commit leaves
        the previous snapshot and history in place.
        """
        self._write_all([
            (self.history_path, _dump_history(history)),
            (self.snapshot_path, snapshot.model_dump_json(indent=2)),
        ])
        logger.info(
            "Persisted snapshot (%d vessels) and history (%d entries)",
            len(snapshot.vessels), len(history),
        )

    def _write_all(self, documents: list[tuple[Path, str]]) -> None:
        written: list[tuple[Path, Path]] = []
        previous: dict[Path, Optional[bytes]] = {}
        replaced: list[Path] = []
        try:
            for path, content in documents:
                path.parent.mkdir(parents=True, exist_ok=True)
                previous[path] = path.read_bytes() if path.exists() else None
                tmp = _tmp_path(path)
                tmp.write_text(content, encoding="utf-8")
                written.append((tmp, path))
            for tmp, path in written:
                os.replace(tmp, path)
                replaced.append(path)
        except OSError as exc:
            for tmp, _ in written:
                _cleanup_tmp(tmp)
            for path in reversed(replaced):
                _restore(path, previous[path])
            raise PersistenceUnavailable(f"Could not write {documents[0][0].parent}: {exc}") from exc


def _restore(path: Path, content: Optional[bytes]) -> None:
    """Put back a file replaced earlier in a failed multi-file write."""
    try:
        if content is None:
            path.unlink(missing_ok=True)
            return
        tmp = _tmp_path(path)
        tmp.write_bytes(content)
        os.replace(tmp, path)
    except OSError as exc:
        logger.error("Could not restore %s after failed write: %s", path, exc)


def _dump_history(history: list[HistoryEntry]) -> str:
    return json.dumps(_history_adapter.dump_python(history, mode="json"), indent=2)
