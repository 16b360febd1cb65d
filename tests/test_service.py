from __future__ import annotations

from pathlib import Path

import numpy as np
from fastapi.testclient import TestClient

from beatsync.service import make_app
from beatsync.store import BpmStore


def test_health_and_zone() -> None:
    client = TestClient(make_app())
    assert client.get("/health").json() == {"status": "ok"}
    body = client.get("/zone", params={"age": 40}).json()
    assert body == {"age": 40, "low": 72, "high": 153}


def test_config_update_is_validated() -> None:
    client = TestClient(make_app())
    assert client.get("/config").json()["window_seconds"] == 8
    ok = client.post("/config", json={"cutoff_hz": 150.0})
    assert ok.status_code == 200
    assert ok.json()["config"]["cutoff_hz"] == 150.0
    bad = client.post("/config", json={"window_seconds": 1})
    assert bad.status_code == 422


def test_analyze_upload_stores_detected_song(tmp_path: Path, wav_bytes, pcm16_track) -> None:
    store = BpmStore({"slow.wav": 100})
    saved = tmp_path / "songs.json"
    client = TestClient(make_app(store, store_path=saved))

    resp = client.post(
        "/analyze", params={"path": "club.wav"}, content=wav_bytes(pcm16_track(bpm=128.0))
    )
    body = resp.json()
    assert resp.status_code == 200
    assert body["status"] == "detected"
    assert abs(body["bpm"] - 128) <= 1
    assert saved.exists()

    songs = client.get("/songs").json()
    assert {s["path"] for s in songs} == {"slow.wav", "club.wav"}
    picked = client.get("/songs/pick", params={"bpm": 130}).json()
    assert picked["path"] == "club.wav"


def test_analyze_rejects_non_wav_without_storing() -> None:
    store = BpmStore()
    client = TestClient(make_app(store))
    resp = client.post("/analyze", content=b"hello world" * 10)
    assert resp.status_code == 200
    assert resp.json()["status"] == "not_wav"
    assert resp.json()["bpm"] is None
    assert len(store) == 0


def test_pick_without_songs_is_404() -> None:
    client = TestClient(make_app())
    assert client.get("/songs/pick", params={"bpm": 120}).status_code == 404


def test_short_upload_is_too_short(wav_bytes) -> None:
    client = TestClient(make_app())
    resp = client.post("/analyze", content=wav_bytes(np.zeros(8000, np.int16), fs=8000))
    assert resp.json()["status"] == "too_short"


def test_pick_skips_current_song_and_filters_playlist() -> None:
    store = BpmStore({"a.wav": 150, "b.wav": 156, "c.wav": 120})
    client = TestClient(make_app(store))
    assert client.get("/songs/pick", params={"bpm": 150}).json()["path"] == "a.wav"
    resp = client.get("/songs/pick", params={"bpm": 150, "current": "a.wav"})
    assert resp.json() == {"path": "b.wav", "bpm": 156}
    resp = client.get(
        "/songs/pick", params={"bpm": 150, "current": "a.wav", "playlist": ["a.wav", "c.wav"]}
    )
    assert resp.json()["path"] == "c.wav"
    resp = client.get("/songs/pick", params={"bpm": 150, "current": "a.wav", "playlist": ["a.wav"]})
    assert resp.status_code == 404


def test_analyze_applies_per_request_overrides(wav_bytes, pcm16_track) -> None:
    store = BpmStore()
    client = TestClient(make_app(store))
    raw = wav_bytes(pcm16_track(bpm=128.0))
    # a 12 s window needs 36 s of audio; the track is 30 s
    resp = client.post("/analyze", params={"path": "club.wav", "window_seconds": 12}, content=raw)
    assert resp.json()["status"] == "too_short"
    assert len(store) == 0
    # the override does not leak into the shared config
    assert client.get("/config").json()["window_seconds"] == 8
    bad = client.post("/analyze", params={"cutoff_hz": 10}, content=raw)
    assert bad.status_code == 422
