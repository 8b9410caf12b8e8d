"""Per-sequence batch accumulator.

Samples for a sequence arrive in batches on any producer thread, one call
per channel, followed by a ``mark_batch_received`` for the batch. Once the
set of received batch numbers reaches the declared total, the sequence's
samples are sorted by timestamp per channel, handed to ``on_sequence_ready``
exactly once, and the sequence is forgotten.

Each sequence has its own lock, so unrelated sequences never contend; the
map lock is only held to insert-or-get a sequence entry and to retire it.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Iterable

from vitalseq import config
from vitalseq.decoders.samples import AccelSample, Channel, PulseSample, SkinTempSample
from vitalseq.exceptions import InvalidBatchError

logger = config.get_logger()

# How many completed sequence ids are remembered to reject redelivery
RECENT_CAPACITY = 256


@dataclass(frozen=True)
class CompletedSequence:
    """All samples of one sequence, sorted by timestamp per channel."""

    sequence_id: str
    total_batches: int
    pulse: tuple[PulseSample, ...] = ()
    accel: tuple[AccelSample, ...] = ()
    skin_temp: tuple[SkinTempSample, ...] = ()
    activity_type: str = ""

    def __repr__(self) -> str:
        return (
            f"CompletedSequence({self.sequence_id}: batches={self.total_batches}, "
            f"ppg={len(self.pulse)}, accel={len(self.accel)}, temp={len(self.skin_temp)})"
        )


@dataclass
class _SequenceState:
    total_batches: int
    lock: threading.Lock = field(default_factory=threading.Lock)
    received: set[int] = field(default_factory=set)
    pulse: list[PulseSample] = field(default_factory=list)
    accel: list[AccelSample] = field(default_factory=list)
    skin_temp: list[SkinTempSample] = field(default_factory=list)
    activity_type: str = ""
    done: bool = False

    def buffer(self, channel: Channel) -> list:
        if channel is Channel.PULSE:
            return self.pulse
        if channel is Channel.ACCEL:
            return self.accel
        return self.skin_temp


@dataclass(frozen=True)
class IncompleteSequence:
    """Snapshot of a sequence that never received all of its batches."""

    sequence_id: str
    received_batches: int
    total_batches: int
    pulse_samples: int


class SequenceBatchAccumulator:
    """Collect multi-channel batches and emit each completed sequence once.

    Args:
        on_sequence_ready: Called with a :class:`CompletedSequence` on the
            thread that delivered the final batch. Keep it short; heavy work
            belongs on a worker (see :class:`vitalseq.orchestrator.SequenceProcessor`).
        recent_capacity: Number of completed ids remembered for redelivery checks.
    """

    def __init__(
        self,
        on_sequence_ready: Callable[[CompletedSequence], None],
        recent_capacity: int = RECENT_CAPACITY,
    ) -> None:
        self._on_ready = on_sequence_ready
        self._states: dict[str, _SequenceState] = {}
        self._map_lock = threading.Lock()
        self._recent: deque[str] = deque(maxlen=recent_capacity)
        self._recent_set: set[str] = set()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def add_samples(
        self,
        sequence_id: str,
        channel: Channel,
        total_batches: int,
        samples: Iterable,
    ) -> bool:
        """Append samples of one channel to a sequence.

        Returns:
            False if the sequence already completed and the samples were ignored.
        """
        state = self._state_for(sequence_id, total_batches)
        if state is None:
            return False
        with state.lock:
            if state.done:
                return False
            state.buffer(Channel(channel)).extend(samples)
        return True

    def set_activity_type(self, sequence_id: str, activity_type: str) -> None:
        """Attach the activity label reported with the sequence's batches."""
        with self._map_lock:
            state = self._states.get(sequence_id)
        if state is None:
            return
        with state.lock:
            if not state.done:
                state.activity_type = activity_type

    def mark_batch_received(self, sequence_id: str, batch_number: int, total_batches: int) -> bool:
        """Record receipt of one batch (numbered from 1).

        Returns:
            True if this call completed the sequence and triggered the hand-off.

        Batches for a recently completed sequence are ignored, whatever
        their number.

        Raises:
            InvalidBatchError: If *total_batches* < 1 or *batch_number* is
                outside ``1..total_batches``.
        """
        if self._is_recent(sequence_id):
            logger.warning("Ignoring redelivered batch for completed sequence %s", sequence_id)
            return False
        if total_batches < 1:
            raise InvalidBatchError(f"{sequence_id}: total_batches must be >= 1, got {total_batches}")
        if not 1 <= batch_number <= total_batches:
            raise InvalidBatchError(
                f"{sequence_id}: batch {batch_number} outside 1..{total_batches}"
            )

        state = self._state_for(sequence_id, total_batches)
        if state is None:
            return False

        with state.lock:
            if state.done:
                return False
            state.received.add(batch_number)
            logger.debug(
                "Batch %d/%d received for %s (%d/%d complete, %d PPG samples)",
                batch_number, total_batches, sequence_id,
                len(state.received), state.total_batches, len(state.pulse),
            )
            if len(state.received) < state.total_batches:
                return False

            state.done = True
            completed = CompletedSequence(
                sequence_id=sequence_id,
                total_batches=state.total_batches,
                pulse=tuple(sorted(state.pulse, key=lambda s: s.timestamp)),
                accel=tuple(sorted(state.accel, key=lambda s: s.timestamp)),
                skin_temp=tuple(sorted(state.skin_temp, key=lambda s: s.timestamp)),
                activity_type=state.activity_type,
            )

        self._retire(sequence_id)
        logger.debug("All %d batches received for %s", completed.total_batches, sequence_id)
        self._on_ready(completed)
        return True

    # ------------------------------------------------------------------
    # Introspection / shutdown
    # ------------------------------------------------------------------

    def pending_ids(self) -> list[str]:
        with self._map_lock:
            return list(self._states)

    def __len__(self) -> int:
        with self._map_lock:
            return len(self._states)

    def drain(self) -> list[IncompleteSequence]:
        """Remove and report every sequence still waiting for batches."""
        with self._map_lock:
            states = list(self._states.items())
            self._states.clear()

        dropped = []
        for sequence_id, state in states:
            with state.lock:
                if state.done:
                    continue
                state.done = True
                dropped.append(IncompleteSequence(
                    sequence_id=sequence_id,
                    received_batches=len(state.received),
                    total_batches=state.total_batches,
                    pulse_samples=len(state.pulse),
                ))
        return dropped

    # ------------------------------------------------------------------

    def _is_recent(self, sequence_id: str) -> bool:
        with self._map_lock:
            return sequence_id in self._recent_set

    def _state_for(self, sequence_id: str, total_batches: int) -> _SequenceState | None:
        with self._map_lock:
            if sequence_id in self._recent_set:
                logger.warning("Ignoring redelivered batch for completed sequence %s", sequence_id)
                return None
            state = self._states.get(sequence_id)
            if state is None:
                state = _SequenceState(total_batches=total_batches)
                self._states[sequence_id] = state
            return state

    def _retire(self, sequence_id: str) -> None:
        with self._map_lock:
            self._states.pop(sequence_id, None)
            if self._recent and len(self._recent) == self._recent.maxlen:
                self._recent_set.discard(self._recent[0])
            self._recent.append(sequence_id)
            self._recent_set.add(sequence_id)
