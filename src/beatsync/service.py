"""FastAPI service exposing tempo analysis and the song store.

Uploaded WAV bytes are analyzed off the event loop; store writes and the
optional JSON save are serialized behind one asyncio lock.
"""

from __future__ import annotations

import asyncio
import dataclasses
import os
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from pydantic import BaseModel, Field

from . import __version__
from .config import DEFAULT_CONFIG, TempoConfig
from .library import AnalysisOutcome, analyze_bytes
from .store import BpmStore
from .zones import pick_song, safe_bpm_range


class TempoParams(BaseModel):
    window_seconds: Optional[int] = Field(None, ge=2, le=30)
    cutoff_hz: Optional[float] = Field(None, ge=40.0, le=2000.0)
    start_multiplier: Optional[int] = Field(None, ge=1, le=20)
    min_gap_seconds: Optional[float] = Field(None, ge=0.05, le=2.0)


def tempo_overrides(
    window_seconds: Optional[int] = Query(None, ge=2, le=30),
    cutoff_hz: Optional[float] = Query(None, ge=40.0, le=2000.0),
    start_multiplier: Optional[int] = Query(None, ge=1, le=20),
    min_gap_seconds: Optional[float] = Query(None, ge=0.05, le=2.0),
) -> TempoParams:
    """Per-request tempo tunables taken from the query string."""
    return TempoParams(
        window_seconds=window_seconds,
        cutoff_hz=cutoff_hz,
        start_multiplier=start_multiplier,
        min_gap_seconds=min_gap_seconds,
    )


class OutcomeModel(BaseModel):
    path: str
    bpm: Optional[int]
    status: str
    detail: str = ""

    @classmethod
    def of(cls, outcome: AnalysisOutcome) -> "OutcomeModel":
        return cls(
            path=outcome.path,
            bpm=outcome.bpm,
            status=outcome.status.value,
            detail=outcome.detail,
        )


class SongModel(BaseModel):
    path: str
    bpm: int


class ZoneModel(BaseModel):
    age: int
    low: int
    high: int


def make_app(
    store: Optional[BpmStore] = None,
    config: TempoConfig = DEFAULT_CONFIG,
    store_path: Optional[Path] = None,
) -> FastAPI:
    app = FastAPI(title="BeatSync Service", version=__version__)
    songs = store if store is not None else BpmStore()
    current = {"config": config}
    lock = asyncio.Lock()

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/config")
    async def get_config() -> dict:
        return dataclasses.asdict(current["config"])

    @app.post("/config")
    async def post_config(params: TempoParams) -> dict:
        async with lock:
            updates = params.model_dump(exclude_none=True)
            current["config"] = dataclasses.replace(current["config"], **updates)
            return {"status": "ok", "config": dataclasses.asdict(current["config"])}

    @app.post("/analyze", response_model=OutcomeModel)
    async def analyze(
        request: Request,
        path: str = Query("upload.wav", min_length=1),
        overrides: TempoParams = Depends(tempo_overrides),
    ) -> OutcomeModel:
        body = await request.body()
        cfg = dataclasses.replace(current["config"], **overrides.model_dump(exclude_none=True))
        outcome = await asyncio.to_thread(analyze_bytes, body, path, cfg)
        if outcome.bpm is not None:
            async with lock:
                songs.add(outcome.path, outcome.bpm)
                if store_path is not None:
                    await asyncio.to_thread(songs.save, store_path)
        return OutcomeModel.of(outcome)

    @app.get("/songs", response_model=list[SongModel])
    async def list_songs() -> list[SongModel]:
        async with lock:
            return [SongModel(path=p, bpm=b) for p, b in songs.items()]

    @app.get("/songs/pick", response_model=SongModel)
    async def pick(
        bpm: float = Query(..., gt=0, le=400),
        current_song: Optional[str] = Query(None, alias="current"),
        playlist: Optional[list[str]] = Query(None),
    ) -> SongModel:
        async with lock:
            path = pick_song(songs, bpm, current=current_song, playlist=playlist)
            if path is None:
                raise HTTPException(status_code=404, detail="no matching song")
            return SongModel(path=path, bpm=songs.get(path))

    @app.get("/zone", response_model=ZoneModel)
    async def zone(age: int = Query(20, ge=0, le=120)) -> ZoneModel:
        z = safe_bpm_range(age)
        return ZoneModel(age=age, low=z.low, high=z.high)

    return app


def main() -> None:  # pragma: no cover - manual run helper
    import faulthandler
    import logging

    import uvicorn

    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=[
            logging.FileHandler(logs_dir / "service.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    faulthandler.enable()

    store_path = Path(os.environ.get("BEATSYNC_STORE", "songs.json"))
    store = BpmStore.load(store_path) if store_path.exists() else BpmStore()
    logging.info("loaded %d songs from %s", len(store), store_path)
    uvicorn.run(make_app(store, store_path=store_path), host="127.0.0.1", port=8000)


if __name__ == "__main__":  # pragma: no cover
    main()
