from __future__ import annotations

import numpy as np
import pytest

from beatsync.config import TempoConfig
from beatsync.samples import Float32Samples, Int16Samples
from beatsync.tempo import (
    TempoStatus,
    count_jumps,
    estimate_tempo,
    fft_order,
    find_matches,
    fold_bpm,
    loudest_window,
    low_pass,
    period_to_bpm,
    rectify_normalize,
    select_period,
)
from beatsync.wav import WaveContainer


def _pulses(n: int, at: list[int], width: int = 1) -> np.ndarray:
    x = np.zeros(n)
    for i in at:
        x[i : i + width] = 1.0
    return x


def test_fft_order_truncates_to_power_of_two() -> None:
    assert fft_order(44100 * 8) == 18
    assert fft_order(1024) == 10
    assert fft_order(1023) == 9


def test_fold_bpm_into_dance_band() -> None:
    assert fold_bpm(64) == 128
    assert fold_bpm(50) == 100
    assert fold_bpm(99) == 198
    assert fold_bpm(250) == 125
    assert fold_bpm(401) == 200
    assert fold_bpm(150) == 150
    for raw in range(1, 1000):
        assert 100 <= fold_bpm(raw) <= 200


def test_period_to_bpm_rounds() -> None:
    assert period_to_bpm(20672, 44100) == 128
    assert period_to_bpm(22050, 44100) == 120


def test_low_pass_removes_high_frequency_energy() -> None:
    fs = 4096
    t = np.arange(4096) / fs
    low = np.sin(2 * np.pi * 60 * t)
    noise = 0.5 * np.sin(2 * np.pi * 1000 * t) + 0.3 * np.cos(2 * np.pi * 1700 * t)
    y = low_pass(low + noise, fs, 250.0)
    # one-sided spectrum: kept content returns at half amplitude
    assert np.allclose(y, 0.5 * low, atol=1e-9)
    spectrum = np.abs(np.fft.rfft(y))
    assert spectrum[1000] < 1e-6 and spectrum[1700] < 1e-6


def test_low_pass_requires_power_of_two() -> None:
    with pytest.raises(ValueError):
        low_pass(np.zeros(1000), 44100, 250.0)


def test_rectify_normalize() -> None:
    y = rectify_normalize(np.array([-2.0, 0.5, 1.0, -0.1]), 32767)
    assert y.tolist() == [0.0, 16383.5, 32767.0, 0.0]
    assert rectify_normalize(np.array([-1.0, -2.0]), 1.0).tolist() == [0.0, 0.0]


def test_find_matches_pairs_each_impulse_with_next() -> None:
    x = _pulses(400, [0, 100, 200, 300], width=3)
    assert find_matches(x, 0.5, 50) == [(0, 100), (100, 100), (200, 100)]


def test_find_matches_skips_impulses_inside_gap() -> None:
    x = _pulses(400, [0, 20, 100, 130, 200])
    # 20 and 130 fall within min_gap of the preceding impulse
    assert find_matches(x, 0.5, 50) == [(0, 100), (100, 100)]


def test_count_jumps_stops_at_first_miss() -> None:
    x = _pulses(1000, [0, 100, 200, 400, 500])
    assert count_jumps(x, 0.5, 0, 100) == 2
    assert count_jumps(x, 0.5, 400, 100) == 1
    assert count_jumps(x, 0.5, 0, 0) == 0


def test_select_period_first_wins_ties() -> None:
    x = _pulses(1000, [0, 100, 200, 300, 430, 560, 690, 820])
    period, jumps = select_period(x, 0.5, [(0, 100), (430, 130), (0, 50)])
    assert (period, jumps) == (100, 3)
    period, _ = select_period(x, 0.5, [(300, 130), (430, 130)])
    assert period == 130
    assert select_period(x, 0.5, [(0, 7)]) == (None, 0)


def test_loudest_window_picks_most_full_scale_samples() -> None:
    data = np.zeros(600, dtype=np.int16)
    data[260:263] = 32767
    data[300] = -32767
    data[301] = 32767
    data[150:160] = 32767  # before the scanned region
    sig = Int16Samples(data)
    # fs=10, 2 s windows -> 20 samples, 10 windows from sample 200
    assert loudest_window(sig, 10, 60.0, 2) == 260


def test_short_track_is_insufficient_regardless_of_content(pcm16_track) -> None:
    x = pcm16_track(seconds=20.0)
    result = estimate_tempo(Int16Samples(x), 44100)
    assert result.status is TempoStatus.INSUFFICIENT_DURATION
    assert result.bpm is None


def test_silence_is_undecidable() -> None:
    result = estimate_tempo(Int16Samples(np.zeros(44100 * 30, dtype=np.int16)), 44100)
    assert result.status is TempoStatus.UNDECIDABLE
    assert result.bpm is None


def test_detects_128_bpm_click_track(pcm16_track, wav_bytes) -> None:
    x = pcm16_track(bpm=128.0, seconds=30.0, hat_level=0.1)
    wav = WaveContainer().load_bytes(wav_bytes(x, fs=44100))
    assert wav.duration == 30.0
    result = wav.tempo
    assert result.status is TempoStatus.DETECTED
    assert abs(result.bpm - 128) <= 1
    assert result.jumps >= 3
    # memoized, and the stored samples are untouched by the pipeline
    assert wav.tempo is result
    assert np.array_equal(wav.samples.data, x)


def test_slow_tempo_folds_up(pcm16_track) -> None:
    x = pcm16_track(bpm=96.0, seconds=30.0)
    result = estimate_tempo(Int16Samples(x), 44100)
    assert result.status is TempoStatus.DETECTED
    assert abs(result.bpm - 192) <= 1


def test_stereo_float_track(click_track) -> None:
    mono = click_track(bpm=140.0, seconds=30.0).astype(np.float32)
    stereo = np.repeat(mono, 2)
    wav = WaveContainer.from_samples(stereo, sample_rate=44100, channels=2, bit_depth=32)
    assert isinstance(wav.samples, Float32Samples)
    assert abs(wav.bpm - 140) <= 1


def test_config_is_respected(pcm16_track) -> None:
    x = pcm16_track(seconds=30.0)
    cfg = TempoConfig(window_seconds=12)
    result = estimate_tempo(Int16Samples(x), 44100, config=cfg)
    assert result.status is TempoStatus.INSUFFICIENT_DURATION


def _pulses_after_low_pass(monkeypatch, pulse: np.ndarray) -> None:
    monkeypatch.setattr("beatsync.tempo.low_pass", lambda x, fs, cutoff: pulse.copy())


def test_threshold_relaxes_below_start_multiplier(monkeypatch) -> None:
    n = 1 << 18  # 8 s at 44.1 kHz
    pulse = np.zeros(n)
    pulse[0] = 1.0
    # 11 beats at 120 BPM, just below 7x the mean but above 6x
    pulse[22050::22050] = 2.5e-5
    _pulses_after_low_pass(monkeypatch, pulse)
    cfg = TempoConfig()
    result = estimate_tempo(Int16Samples(np.zeros(44100 * 30, np.int16)), 44100, config=cfg)
    assert result.status is TempoStatus.DETECTED
    assert result.multiplier == 6 < cfg.start_multiplier
    assert result.period == 22050
    assert result.bpm == 120
    assert result.jumps == 11


def test_threshold_zero_is_the_last_pass(monkeypatch) -> None:
    pulse = np.zeros(1 << 18)
    pulse[0] = 1.0
    pulse[[30000, 60000]] = 1e-9
    _pulses_after_low_pass(monkeypatch, pulse)
    result = estimate_tempo(Int16Samples(np.zeros(44100 * 30, np.int16)), 44100)
    assert result.status is TempoStatus.DETECTED
    assert result.multiplier == 0
    assert result.period == 30000
    assert result.jumps == 2
    assert result.bpm == 176  # 88 BPM doubled
