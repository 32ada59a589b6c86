from __future__ import annotations

from dataclasses import asdict
import os
from typing import Any, Dict, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from .config import ConfigError, load_config
from .service import GameService
from .simulation import ActionResult, GameSession


app = FastAPI(
    title="Clean Water Defense API",
    description="Command and state API for the Clean Water Defense simulation.",
    version="1.0.0",
)


def _load_service() -> GameService:
    config_path = os.environ.get("CLEANWATER_CONFIG", "").strip()
    seed_raw = os.environ.get("CLEANWATER_SEED", "").strip()
    seed = int(seed_raw) if seed_raw.lstrip("-").isdigit() else None
    if not config_path:
        return GameService(seed=seed)
    try:
        return GameService(rules=load_config(config_path), seed=seed)
    except ConfigError as exc:
        raise RuntimeError(f"Unable to load CLEANWATER_CONFIG: {exc}") from exc


service = _load_service()


class DifficultyRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Difficulty preset name.")


class TowerTypeRequest(BaseModel):
    tower_type: Literal["basic", "slow"]


class AdvanceRequest(BaseModel):
    ms: int = Field(..., ge=0, le=3_600_000, description="Milliseconds of game time to simulate.")


def _result_payload(result: ActionResult, session: GameSession) -> Dict[str, Any]:
    return {
        "ok": result.ok,
        "action": result.action,
        "rejection": result.rejection.value if result.rejection else None,
        "tower": asdict(result.tower) if result.tower else None,
        "hud": asdict(session.hud()),
    }


def _command(fn) -> Dict[str, Any]:
    return service.run(lambda session: _result_payload(fn(session), session))


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/difficulties")
def difficulties():
    rules = service.rules
    return {
        "default": rules.default_difficulty,
        "presets": [asdict(preset) for preset in rules.difficulties.values()],
    }


@app.get("/api/v1/session/state")
def session_state():
    return service.state()


@app.get("/api/v1/session/board", response_class=PlainTextResponse)
def session_board():
    return service.board()


@app.post("/api/v1/session/difficulty")
def select_difficulty(payload: DifficultyRequest):
    name = payload.name.strip().lower()
    if name not in service.rules.difficulties:
        raise HTTPException(status_code=400, detail=f"Unknown difficulty: {payload.name}")
    return {"selected_difficulty": service.run(lambda session: session.select_difficulty(name))}


@app.post("/api/v1/session/tower-type")
def select_tower_type(payload: TowerTypeRequest):
    return _command(lambda session: session.select_tower_type(payload.tower_type))


@app.post("/api/v1/session/start")
def start_game():
    return _command(lambda session: session.start_game())


@app.post("/api/v1/session/reset")
def reset_game():
    return _command(lambda session: session.reset_game())


@app.post("/api/v1/session/title")
def return_to_title():
    return _command(lambda session: session.return_to_title())


@app.post("/api/v1/session/cheer")
def cheer():
    return _command(lambda session: session.cheer())


@app.post("/api/v1/session/cells/{cell_index}")
def place_or_upgrade(cell_index: int):
    return _command(lambda session: session.place_or_upgrade_at(cell_index))


@app.post("/api/v1/session/drops/{drop_id}/dismiss")
def dismiss_drop(drop_id: int):
    return _command(lambda session: session.dismiss_drop(drop_id))


@app.post("/api/v1/session/auto-advance/toggle")
def toggle_auto_advance():
    return {"auto_advance": service.run(lambda session: session.toggle_auto_advance())}


@app.post("/api/v1/session/waves/next")
def start_next_wave():
    def _start(session: GameSession) -> Dict[str, Any]:
        started = session.start_next_wave_manual()
        return {"started": started, "wave": session.state.wave}

    return service.run(_start)


@app.post("/api/v1/session/checkpoint/continue")
def continue_after_checkpoint():
    return {"continued": service.run(lambda session: session.continue_after_checkpoint())}


@app.post("/api/v1/session/checkpoint/restart")
def restart_after_checkpoint():
    return _command(lambda session: session.restart_after_checkpoint())


@app.post("/api/v1/clock/advance")
def advance_clock(payload: AdvanceRequest):
    fired = service.advance(payload.ms)
    return {"fired": fired, "clock_ms": service.clock.now_ms}


@app.get("/api/v1/events")
def events(since: int = 0, limit: Optional[int] = None):
    items = service.events_since(max(0, since))
    if limit is not None and limit > 0:
        items = items[-limit:]
    return {"events": items, "last_seq": service.events.last_seq}
