"""Kick-drum tempo estimation.

Pipeline over one analysis window:

1. pick the window with the most full-scale samples, scanning from one third
   into the track;
2. low-pass it by zeroing every FFT bin at or above the cutoff;
3. half-wave rectify and normalize;
4. pair threshold exceedances at least ``min_gap`` apart, relaxing the
   threshold multiplier (down to 0) until two pairs are found;
5. keep the pair spacing whose forward projection lands on the most
   consecutive impulses, convert it to BPM and fold it into the dance band.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass

import numpy as np

from .config import DEFAULT_CONFIG, TempoConfig
from .fourier import FORWARD, INVERSE, fft
from .samples import SampleBuffer

logger = logging.getLogger(__name__)


class TempoStatus(str, enum.Enum):
    DETECTED = "detected"
    INSUFFICIENT_DURATION = "insufficient_duration"
    UNDECIDABLE = "undecidable"


@dataclass(frozen=True)
class TempoResult:
    bpm: int | None
    status: TempoStatus
    period: int | None = None  # beat period in samples
    jumps: int = 0  # consecutive impulses confirming the period
    multiplier: int | None = None  # threshold multiplier that produced the matches

    @property
    def detected(self) -> bool:
        return self.status is TempoStatus.DETECTED


def fft_order(n_samples: int) -> int:
    """log2 of the largest power of two not exceeding ``n_samples``."""
    if n_samples < 1:
        raise ValueError("need at least one sample")
    return int(n_samples).bit_length() - 1


def loudest_window(
    signal: SampleBuffer,
    sample_rate: int,
    duration: float,
    window_seconds: int,
) -> int:
    """First sample of the window holding the most full-scale samples.

    Windows are counted over ``duration / 3`` and laid out starting one third
    into the signal, away from fade-in/out.
    """
    window = int(sample_rate * window_seconds)
    start = len(signal) // 3
    n_windows = max(1, int(duration // 3) // window_seconds)
    n_windows = min(n_windows, (len(signal) - start) // window) if window > 0 else 0
    if n_windows < 1:
        return start
    seg = np.abs(signal.data[start : start + n_windows * window].astype(np.float64))
    counts = (seg.reshape(n_windows, window) >= signal.full_scale).sum(axis=1)
    best = int(np.argmax(counts))
    logger.debug("full-scale peaks per window %s, anchor %d", counts.tolist(), best)
    return start + best * window


def low_pass(x: np.ndarray, sample_rate: float, cutoff_hz: float) -> np.ndarray:
    """Zero every bin ``k`` with ``k * sample_rate / N >= cutoff_hz`` and return the real part.

    ``x`` must have a power-of-two length. Bins are zeroed up to ``N - 1``, so
    mirrored negative frequencies are dropped as well and retained content
    comes back at half amplitude.
    """
    n = int(x.size)
    m = fft_order(n)
    if 1 << m != n:
        raise ValueError(f"length {n} is not a power of two")
    real = np.array(x, dtype=np.float64)
    imag = np.zeros(n, dtype=np.float64)
    fft(FORWARD, m, real, imag)
    first_cut = int(math.ceil(cutoff_hz * n / sample_rate))
    real[first_cut:] = 0.0
    imag[first_cut:] = 0.0
    fft(INVERSE, m, real, imag)
    return real


def rectify_normalize(x: np.ndarray, full_scale: float) -> np.ndarray:
    y = np.maximum(np.asarray(x, dtype=np.float64), 0.0)
    peak = float(y.max()) if y.size else 0.0
    if peak > 0.0:
        y *= full_scale / peak
    return y


def find_matches(signal: np.ndarray, threshold: float, min_gap: int) -> list[tuple[int, int]]:
    """Pair each impulse with the next one at least ``min_gap`` samples later.

    Returns ``(first_index, delta)`` pairs. After an impulse the scan resumes
    ``min_gap + 1`` samples later, skipping the rest of that impulse.
    """
    hits = np.flatnonzero(signal > threshold)
    matches: list[tuple[int, int]] = []
    i = 0
    while True:
        pos = int(np.searchsorted(hits, i))
        if pos >= hits.size:
            break
        first = int(hits[pos])
        nxt = int(np.searchsorted(hits, first + min_gap))
        if nxt < hits.size:
            matches.append((first, int(hits[nxt]) - first))
        i = first + min_gap + 1
    return matches


def count_jumps(signal: np.ndarray, threshold: float, first: int, delta: int) -> int:
    """Consecutive projections ``first + k*delta`` (k >= 1) that land above threshold."""
    if delta <= 0:
        return 0
    positions = np.arange(first + delta, signal.size, delta)
    above = signal[positions] > threshold
    if above.all():
        return int(above.size)
    return int(np.argmin(above))


def select_period(
    signal: np.ndarray,
    threshold: float,
    matches: list[tuple[int, int]],
) -> tuple[int | None, int]:
    """Delta with the most confirming jumps; the first one found wins ties."""
    best_delta: int | None = None
    best_jumps = 0
    for first, delta in matches:
        jumps = count_jumps(signal, threshold, first, delta)
        if jumps > best_jumps:
            best_delta, best_jumps = delta, jumps
    return best_delta, best_jumps


def period_to_bpm(period: int, sample_rate: float) -> int:
    return int(round(60.0 / (period / sample_rate)))


def fold_bpm(bpm: int, low: int = 100, high: int = 200) -> int:
    """Double or halve ``bpm`` into ``[low, high]``."""
    if bpm <= 0:
        raise ValueError("bpm must be positive")
    while bpm < low:
        bpm *= 2
    while bpm > high:
        bpm //= 2
    return bpm


def estimate_tempo(
    samples: SampleBuffer,
    sample_rate: int,
    channels: int = 1,
    duration: float | None = None,
    config: TempoConfig = DEFAULT_CONFIG,
) -> TempoResult:
    """Estimate the tempo of interleaved PCM ``samples``.

    Args:
        samples: decoded sample buffer (not modified).
        sample_rate: frames per second.
        channels: interleaved channel count.
        duration: track length in seconds; derived from the buffer if omitted.
        config: pipeline tunables.

    Returns:
        TempoResult; ``bpm`` is None unless ``status`` is DETECTED.
    """
    if sample_rate <= 0 or channels <= 0:
        return TempoResult(None, TempoStatus.INSUFFICIENT_DURATION)
    if duration is None:
        duration = len(samples) / channels / sample_rate
    if duration < config.min_duration_seconds:
        return TempoResult(None, TempoStatus.INSUFFICIENT_DURATION)

    mono = samples.mixdown(channels)
    mono.normalize()

    n = 1 << fft_order(int(sample_rate * config.window_seconds))
    if len(mono) < n:
        return TempoResult(None, TempoStatus.INSUFFICIENT_DURATION)
    lead = loudest_window(mono, sample_rate, duration, config.window_seconds)
    lead = min(lead, len(mono) - n)

    filtered = low_pass(mono.data[lead : lead + n], sample_rate, config.cutoff_hz)
    pulse = rectify_normalize(filtered, mono.full_scale)
    mean = float(pulse.mean())
    min_gap = max(1, int(sample_rate * config.min_gap_seconds))

    for multiplier in range(config.start_multiplier, -1, -1):
        threshold = mean * multiplier
        matches = find_matches(pulse, threshold, min_gap)
        if len(matches) >= 2:
            break
    else:
        logger.debug("no impulse pairs down to multiplier 0")
        return TempoResult(None, TempoStatus.UNDECIDABLE)

    period, jumps = select_period(pulse, threshold, matches)
    if period is None:
        logger.debug("%d matches at multiplier %d, none confirmed", len(matches), multiplier)
        return TempoResult(None, TempoStatus.UNDECIDABLE, multiplier=multiplier)

    bpm = fold_bpm(period_to_bpm(period, sample_rate), config.bpm_low, config.bpm_high)
    logger.debug(
        "lead=%d n=%d multiplier=%d period=%d jumps=%d bpm=%d",
        lead, n, multiplier, period, jumps, bpm,
    )
    return TempoResult(bpm, TempoStatus.DETECTED, period, jumps, multiplier)
