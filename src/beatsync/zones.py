"""Heart-rate training zones and tempo matching."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .store import BpmStore

MAX_HEART_RATE = 220
MIN_AGE = 16
MAX_AGE = 79
DEFAULT_AGE = 20
ZONE_LOW = 0.40
ZONE_HIGH = 0.85


@dataclass(frozen=True)
class BpmZone:
    low: int
    high: int

    def contains(self, bpm: float) -> bool:
        return self.low <= bpm <= self.high


def safe_bpm_range(age: int = DEFAULT_AGE) -> BpmZone:
    """Safe exercise heart-rate band, 40-85% of ``220 - age``.

    Ages are clamped to [MIN_AGE, MAX_AGE]; both bounds truncate.
    """
    age = min(max(int(age), MIN_AGE), MAX_AGE)
    reserve = MAX_HEART_RATE - age
    return BpmZone(low=int(reserve * ZONE_LOW), high=int(reserve * ZONE_HIGH))


def pick_song(
    store: BpmStore,
    heart_rate: float,
    current: Optional[str] = None,
    playlist: Optional[Iterable[str]] = None,
) -> str | None:
    """Next song whose tempo is closest to the heart rate.

    The song already playing is skipped so every update can change tracks,
    and only ``playlist`` entries are eligible when one is given.
    """
    return store.closest(heart_rate, exclude=current, among=playlist)
