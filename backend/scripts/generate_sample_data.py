"""Generate synthetic scraper output for end-to-end demo.

Rows and scenarios:
  ALMA        sailing, ~300 nm out at 6.5 kn           → ETA ~2d
  FAMILY      sailing, close in at 7 kn                 → ETA in hours
  SIRIUS      "Assumed Intercepted" with position       → INTERCEPTED, no ETA
  CONSCIENCE  sailing but drifting at 0.3 kn            → "Not moving"
  HANDALA     docked in Catania                          → DOCKED, no ETA
  MADLEEN     status only, speed known, no position      → "Unknown"
  OHWAYLA     unrecognised status "Repairs"              → OTHER
  DRONE ATTACK NEAR CRETE  incident row                  → skipped
  ADARA       speed given as text, epoch timestamp       → parsed

Usage:
    python scripts/generate_sample_data.py
    # Outputs: backend/scripts/sample_vessels.json
"""
from __future__ import annotations

import json
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path

OUTPUT_PATH = Path(__file__).parent / "sample_vessels.json"


def ts(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def generate_sample_rows(now: datetime | None = None, seed: int = 42) -> list[dict]:
    """Return scraper-shaped rows, timestamps within the last few hours of ``now``."""
    rng = random.Random(seed)
    now = now or datetime.now(timezone.utc).replace(second=0, microsecond=0)

    def ago(minutes: int) -> datetime:
        return now - timedelta(minutes=minutes + rng.randint(0, 20))

    return [
        {"name": "ALMA", "status": "Sailing", "lat": 33.9, "lon": 28.6,
         "speed": 6.5, "course": 112.0, "timestamp": ts(ago(40))},
        {"name": "FAMILY", "status": "sailing", "lat": 32.1, "lon": 33.2,
         "speed": 7.0, "course": 118.0, "timestamp": ts(ago(15))},
        {"name": "SIRIUS", "status": "ASSUMED INTERCEPTED", "lat": 32.4, "lon": 33.6,
         "speed": 9.0, "course": 95.0, "timestamp": ts(ago(120))},
        {"name": "CONSCIENCE", "status": "Sailing", "lat": 35.2, "lon": 24.9,
         "speed": 0.3, "course": 87.0, "timestamp": ts(ago(60))},
        {"name": "HANDALA", "status": "Docked", "lat": 37.5, "lon": 15.1,
         "speed": 0.0, "course": None, "timestamp": ts(ago(300))},
        {"name": "MADLEEN", "status": "En route", "speed": 5.5},
        {"name": "OHWAYLA", "status": "Repairs", "lat": 36.8, "lon": 22.1,
         "speed": 1.2, "course": 140.0, "timestamp": ts(ago(90))},
        {"name": "DRONE ATTACK NEAR CRETE", "status": "Alert"},
        {"name": "ADARA", "status": "Underway", "latitude": 34.7, "longitude": 26.3,
         "sog": "6.1 kn", "cog": "101", "last_seen": int(ago(30).timestamp())},
    ]


if __name__ == "__main__":
    rows = generate_sample_rows()
    OUTPUT_PATH.write_text(json.dumps(rows, indent=2), encoding="utf-8")
    print(f"Wrote {len(rows)} rows to {OUTPUT_PATH}")
