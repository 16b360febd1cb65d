"""Batch tempo analysis of a music library.

Files are analyzed independently on a worker pool. Results flow through a
queue to a single writer thread, the only code that touches the store.
"""

from __future__ import annotations

import enum
import logging
import os
import threading
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from queue import Queue
from typing import Iterable, Optional

from .config import DEFAULT_CONFIG, TempoConfig
from .errors import NotWavError, WavError
from .store import BpmStore
from .tempo import TempoStatus
from .wav import WaveContainer, is_wav_file

logger = logging.getLogger(__name__)


class OutcomeStatus(str, enum.Enum):
    DETECTED = "detected"
    NOT_WAV = "not_wav"
    CORRUPT = "corrupt"
    TOO_SHORT = "too_short"
    UNDECIDABLE = "undecidable"


_FROM_TEMPO = {
    TempoStatus.DETECTED: OutcomeStatus.DETECTED,
    TempoStatus.INSUFFICIENT_DURATION: OutcomeStatus.TOO_SHORT,
    TempoStatus.UNDECIDABLE: OutcomeStatus.UNDECIDABLE,
}


@dataclass(frozen=True)
class AnalysisOutcome:
    path: str
    bpm: int | None
    status: OutcomeStatus
    detail: str = ""

    @property
    def skipped(self) -> bool:
        return self.bpm is None


def find_wav_files(root: Path | str) -> list[Path]:
    """All ``*.wav`` files below ``root`` (case-insensitive), sorted."""
    return sorted(p for p in Path(root).rglob("*") if p.is_file() and p.suffix.lower() == ".wav")


def analyze_bytes(data: bytes, path: str, config: TempoConfig = DEFAULT_CONFIG) -> AnalysisOutcome:
    container = WaveContainer(config=config)
    try:
        container.load_bytes(data, path=path)
    except NotWavError as exc:
        return AnalysisOutcome(path, None, OutcomeStatus.NOT_WAV, str(exc))
    except WavError as exc:
        return AnalysisOutcome(path, None, OutcomeStatus.CORRUPT, str(exc))
    result = container.tempo
    assert result is not None
    return AnalysisOutcome(path, result.bpm, _FROM_TEMPO[result.status])


def analyze_file(path: Path | str, config: TempoConfig = DEFAULT_CONFIG) -> AnalysisOutcome:
    """Load and analyze one file; failures come back as skip outcomes."""
    key = str(path)
    if not is_wav_file(path):
        return AnalysisOutcome(key, None, OutcomeStatus.NOT_WAV)
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        return AnalysisOutcome(key, None, OutcomeStatus.CORRUPT, str(exc))
    return analyze_bytes(data, key, config)


class LibraryAnalyzer:
    """Analyze files not yet in ``store`` and record detected tempos."""

    def __init__(
        self,
        store: BpmStore,
        config: TempoConfig = DEFAULT_CONFIG,
        max_workers: Optional[int] = None,
        use_processes: bool = True,
    ) -> None:
        self.store = store
        self.config = config
        self.max_workers = max_workers or os.cpu_count() or 1
        self.use_processes = use_processes

    def _executor(self) -> Executor:
        if self.use_processes:
            return ProcessPoolExecutor(max_workers=self.max_workers)
        return ThreadPoolExecutor(max_workers=self.max_workers)

    def run(self, paths: Iterable[Path | str]) -> list[AnalysisOutcome]:
        pending = [str(p) for p in paths if str(p) not in self.store]
        if not pending:
            return []
        results: "Queue[AnalysisOutcome | None]" = Queue()
        writer = threading.Thread(target=self._drain, args=(results,), daemon=True)
        writer.start()
        outcomes: list[AnalysisOutcome] = []
        try:
            with self._executor() as pool:
                futures = {pool.submit(analyze_file, p, self.config): p for p in pending}
                for fut in as_completed(futures):
                    try:
                        outcome = fut.result()
                    except Exception as exc:
                        logger.exception("analysis of %s failed", futures[fut])
                        outcome = AnalysisOutcome(
                            futures[fut], None, OutcomeStatus.CORRUPT, repr(exc)
                        )
                    outcomes.append(outcome)
                    results.put(outcome)
        finally:
            results.put(None)
            writer.join()
        return outcomes

    def run_directory(self, root: Path | str) -> list[AnalysisOutcome]:
        return self.run(find_wav_files(root))

    def _drain(self, results: "Queue[AnalysisOutcome | None]") -> None:
        while True:
            item = results.get()
            if item is None:
                break
            if item.bpm is not None:
                self.store.add(item.path, item.bpm)
            else:
                logger.warning("skipped %s: %s %s", item.path, item.status.value, item.detail)
