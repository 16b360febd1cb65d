from __future__ import annotations

import struct
from typing import Callable

import numpy as np
import pytest


def _click_track(
    bpm: float = 128.0,
    seconds: float = 30.0,
    fs: int = 44100,
    kick_hz: float = 55.0,
    decay: float = 0.03,
    bass_hz: float = 80.0,
    bass_level: float = 0.03,
    hat_level: float = 0.0,
) -> np.ndarray:
    """Decaying low sine kicks on every beat over a quiet bass tone, peak 0.9."""
    n = int(seconds * fs)
    t = np.arange(n) / fs
    x = bass_level * np.sin(2 * np.pi * bass_hz * t)
    if hat_level:
        x += hat_level * np.sin(2 * np.pi * 3000.0 * t)
    kick_len = int(0.2 * fs)
    tk = np.arange(kick_len) / fs
    kick = np.sin(2 * np.pi * kick_hz * tk) * np.exp(-tk / decay)
    period = 60.0 * fs / bpm
    i = 0
    while True:
        pos = int(round(i * period))
        if pos + kick_len > n:
            break
        x[pos : pos + kick_len] += kick
        i += 1
    return 0.9 * x / np.abs(x).max()


def _wav_bytes(
    samples: np.ndarray,
    fs: int = 44100,
    channels: int = 1,
    bit_depth: int = 16,
    between: bytes = b"",
) -> bytes:
    """Canonical RIFF/WAVE bytes; ``between`` is spliced between fmt and data."""
    if bit_depth == 16:
        payload = np.asarray(samples).astype("<i2").tobytes()
    else:
        payload = np.asarray(samples).astype("<f4").tobytes()
    block_align = channels * bit_depth // 8
    fmt = struct.pack(
        "<4sIHHIIHH", b"fmt ", 16, 1, channels, fs, fs * block_align, block_align, bit_depth
    )
    data = struct.pack("<4sI", b"data", len(payload)) + payload
    body = b"WAVE" + fmt + between + data
    return b"RIFF" + struct.pack("<I", len(body)) + body


@pytest.fixture
def click_track() -> Callable[..., np.ndarray]:
    return _click_track


@pytest.fixture
def wav_bytes() -> Callable[..., bytes]:
    return _wav_bytes


@pytest.fixture
def pcm16_track(click_track: Callable[..., np.ndarray]) -> Callable[..., np.ndarray]:
    def make(**kwargs: float) -> np.ndarray:
        return np.round(click_track(**kwargs) * 32767).astype(np.int16)

    return make
