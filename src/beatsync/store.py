"""Song → BPM store shared by the analyzer and the playback layer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Optional


class BpmStore:
    """Mapping of song path to integer BPM.

    Not synchronized: callers route all writes through one writer.
    """

    def __init__(self, entries: Optional[Mapping[str, int]] = None) -> None:
        self._bpms: dict[str, int] = {}
        for path, bpm in (entries or {}).items():
            self.add(path, bpm)

    def __len__(self) -> int:
        return len(self._bpms)

    def __contains__(self, path: object) -> bool:
        return str(path) in self._bpms

    def __iter__(self) -> Iterator[str]:
        return iter(self._bpms)

    def get(self, path: str) -> int | None:
        return self._bpms.get(str(path))

    def add(self, path: str, bpm: int) -> None:
        bpm = int(bpm)
        if bpm <= 0:
            raise ValueError(f"bpm must be positive, got {bpm}")
        self._bpms[str(path)] = bpm

    def remove(self, path: str) -> None:
        self._bpms.pop(str(path), None)

    def items(self) -> list[tuple[str, int]]:
        return list(self._bpms.items())

    def as_dict(self) -> dict[str, int]:
        return dict(self._bpms)

    def closest(
        self,
        bpm: float,
        exclude: Optional[str] = None,
        among: Optional[Iterable[str]] = None,
    ) -> str | None:
        """Path whose BPM is nearest ``bpm``; earliest added wins ties.

        ``exclude`` (the song already playing) is never returned, and when
        ``among`` is given only those paths are considered.
        """
        allowed = None if among is None else {str(p) for p in among}
        best: str | None = None
        best_diff = float("inf")
        for path, value in self._bpms.items():
            if path == exclude or (allowed is not None and path not in allowed):
                continue
            diff = abs(value - bpm)
            if diff < best_diff:
                best, best_diff = path, diff
        return best

    def within(self, low: int, high: int) -> list[str]:
        return [p for p, v in self._bpms.items() if low <= v <= high]

    def save(self, path: Path | str) -> None:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps({"songs": self._bpms}, ensure_ascii=False, indent=2))

    @classmethod
    def load(cls, path: Path | str) -> "BpmStore":
        meta = json.loads(Path(path).read_text())
        return cls(meta.get("songs", {}))
