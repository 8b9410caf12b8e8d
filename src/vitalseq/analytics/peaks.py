"""Rolling-mean region-of-interest peak detector.

Shared by the pulse and acceleration pipelines: a sample belongs to a
region of interest while it sits above the centred rolling mean, and each
contiguous region contributes the index of its largest sample.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

MIN_WINDOW = 3


def window_samples(window_sec: float, sample_rate_hz: float) -> int:
    """Rolling-mean window length in samples, never below ``MIN_WINDOW``."""
    return max(int(window_sec * sample_rate_hz), MIN_WINDOW)


def rolling_mean(data: Sequence[float], window: int) -> np.ndarray:
    """Centred moving average with the window clamped at both ends.

    Sample *i* averages ``data[i - window//2 : i + window//2]`` inclusive,
    trimmed to the array bounds.
    """
    arr = np.asarray(data, dtype=np.float64)
    n = len(arr)
    if n == 0:
        return np.empty(0, dtype=np.float64)

    half = window // 2
    csum = np.concatenate(([0.0], np.cumsum(arr)))
    idx = np.arange(n)
    start = np.maximum(idx - half, 0)
    end = np.minimum(idx + half, n - 1)
    return (csum[end + 1] - csum[start]) / (end - start + 1)


def _argmax_in(signal: np.ndarray, start: int, stop: int) -> int:
    # first index wins on ties
    return start + int(np.argmax(signal[start:stop]))


def detect_peaks(
    signal: Sequence[float],
    mean: Sequence[float],
    min_distance: int = 0,
    min_height: float | None = None,
) -> list[int]:
    """Find the maximum of every contiguous above-mean region.

    Args:
        signal: Filtered signal.
        mean: Rolling mean of *signal* (same length).
        min_distance: If > 0, a peak closer than this many samples to the
            previously kept peak is discarded.
        min_height: If set, peaks whose value is below it are discarded.

    Returns:
        Ascending list of peak indices; empty if nothing exceeds the mean.
        A region still open at the end of the signal is closed and reported.
    """
    sig = np.asarray(signal, dtype=np.float64)
    avg = np.asarray(mean, dtype=np.float64)
    if len(sig) != len(avg):
        raise ValueError("signal and mean must have the same length")

    candidates: list[int] = []
    in_roi = False
    roi_start = 0
    above = sig > avg
    for i in range(len(sig)):
        if above[i]:
            if not in_roi:
                in_roi = True
                roi_start = i
        elif in_roi:
            candidates.append(_argmax_in(sig, roi_start, i))
            in_roi = False
    if in_roi:
        candidates.append(_argmax_in(sig, roi_start, len(sig)))

    peaks: list[int] = []
    for idx in candidates:
        if min_height is not None and sig[idx] < min_height:
            continue
        if min_distance > 0 and peaks and idx - peaks[-1] < min_distance:
            continue
        peaks.append(idx)
    return peaks


def find_peaks(
    filtered: Sequence[float],
    sample_rate_hz: float,
    window_sec: float,
    min_distance_sec: float = 0.0,
    min_height: float | None = None,
) -> list[int]:
    """Rolling mean + ROI detection in one call."""
    window = window_samples(window_sec, sample_rate_hz)
    mean = rolling_mean(filtered, window)
    return detect_peaks(
        filtered,
        mean,
        min_distance=int(min_distance_sec * sample_rate_hz),
        min_height=min_height,
    )
