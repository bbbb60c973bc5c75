"""Error taxonomy for the vessel processing core.

Per-record errors (InvalidCoordinate, InvalidSpeed, SkipRecord) are recovered
inside the pipeline; PersistenceUnavailable on write propagates to the caller.
"""
from __future__ import annotations

from typing import Any


class FlotillaError(Exception):
    """Base class for all tracker errors."""


class InvalidCoordinate(FlotillaError, ValueError):
    """Latitude/longitude missing, non-finite, or out of range."""


class InvalidSpeed(FlotillaError, ValueError):
    """Speed is negative or not a number."""


class SkipRecord(FlotillaError):
    """Raw record describes an incident, not a vessel."""

    def __init__(self, reason: str, name: str | None = None):
        super().__init__(reason)
        self.reason = reason
        self.name = name


class PersistenceUnavailable(FlotillaError):
    """Snapshot or history storage could not be read or written.

    When raised from a pipeline run, ``result`` holds the in-memory report so
    the caller can still hand it to the email renderer.
    """

    def __init__(self, message: str, result: Any = None):
        super().__init__(message)
        self.result = result
