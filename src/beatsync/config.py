"""Tunables for tempo estimation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TempoConfig:
    window_seconds: int = 8        # analysis window (s)
    cutoff_hz: float = 250.0       # low-pass cutoff for kick isolation
    start_multiplier: int = 7      # initial threshold = mean * multiplier
    min_gap_seconds: float = 0.25  # minimum spacing between paired impulses
    bpm_low: int = 100             # octave-fold band
    bpm_high: int = 200

    @property
    def min_duration_seconds(self) -> float:
        return float(self.window_seconds * 3)


DEFAULT_CONFIG = TempoConfig()
