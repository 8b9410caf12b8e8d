"""Most-recent exertion rating (RPE 0-10), shared between input and processing.

A single slot with last-writer-wins semantics: the UI/input side calls
:meth:`ExertionRating.update`, the orchestrator reads :meth:`snapshot` when it
assembles a feature vector. Value and timestamp are replaced together.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

MIN_RATING = 0
MAX_RATING = 10


@dataclass(frozen=True)
class RatingSnapshot:
    """Value of the slot at one instant."""

    value: int | None  # None = unset
    updated_at: int  # ms, 0 when never set


class ExertionRating:
    """Single-slot holder for the latest exertion rating."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = RatingSnapshot(value=None, updated_at=0)

    def update(self, value: int, at: int | None = None) -> RatingSnapshot:
        """Store a new rating; the newest call wins.

        Raises:
            ValueError: If *value* is outside 0-10.
        """
        if not MIN_RATING <= value <= MAX_RATING:
            raise ValueError(f"exertion rating must be in {MIN_RATING}-{MAX_RATING}, got {value}")
        snap = RatingSnapshot(value=int(value), updated_at=at if at is not None else int(time.time() * 1000))
        with self._lock:
            self._snapshot = snap
        return snap

    def reset(self) -> None:
        """Clear the rating (e.g. at the end of a workout)."""
        with self._lock:
            self._snapshot = RatingSnapshot(value=None, updated_at=int(time.time() * 1000))

    def snapshot(self) -> RatingSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def value(self) -> int | None:
        return self.snapshot().value
