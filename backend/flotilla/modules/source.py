"""Raw vessel rows from the scraper.

The scraper publishes its rows as JSON (either a bare array of row objects
or ``{"vessels": [...]}``) to a local file or an HTTP endpoint. Rows are
returned as dicts; validation happens in the pipeline so one bad row only
drops that row.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx

from flotilla.utils.http_retry import RetryPolicy, fetch_with_retry

logger = logging.getLogger(__name__)


def _extract_rows(data: Any, origin: str) -> list[dict]:
    if isinstance(data, dict):
        data = data.get("vessels")
    if not isinstance(data, list):
        raise ValueError(f"{origin}: expected a JSON array of vessel rows")
    rows = [row for row in data if isinstance(row, dict)]
    if len(rows) != len(data):
        logger.warning("%s: ignored %d non-object entries", origin, len(data) - len(rows))
    return rows


def load_raw_records(path: Path | str) -> list[dict]:
    """Read scraper output from a JSON file. Raises ValueError if malformed."""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{p}: invalid JSON ({exc})") from exc
    rows = _extract_rows(data, str(p))
    logger.info("Loaded %d rows from %s", len(rows), p)
    return rows


def fetch_raw_records(
    url: str,
    *,
    timeout: float = 30.0,
    attempts: int = 3,
    base_delay: float = 2.0,
) -> list[dict]:
    """Fetch scraper output over HTTP, retrying transient failures with backoff."""
    with httpx.Client(timeout=timeout, follow_redirects=True) as client:
        resp = fetch_with_retry(
            client,
            url,
            RetryPolicy(attempts, base_delay),
            headers={"Accept": "application/json"},
        )
    try:
        data = resp.json()
    except ValueError as exc:
        raise ValueError(f"{url}: response is not JSON ({exc})") from exc
    rows = _extract_rows(data, url)
    logger.info("Fetched %d rows from %s", len(rows), url)
    return rows
