from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from .simulation import GameSession, HudState


def health_level(health: int) -> str:
    if health <= 25:
        return "critical"
    if health <= 50:
        return "low"
    return "ok"


def format_hud(hud: HudState) -> str:
    return (
        f"Wave {hud.wave} | Score {hud.score} | Coins {hud.coins} | "
        f"Health {hud.health} ({health_level(hud.health)}) | "
        f"Timer {hud.timer_seconds}s | Polluted {hud.polluted_count}"
    )


def format_board(session: GameSession) -> str:
    """ASCII board: ``=`` path, ``B``/``S`` towers, ``o`` drop, ``.`` cleaned drop."""
    grid = session.grid
    symbols: Dict[int, str] = {cell: "=" for cell in session.path.cells}
    for tower in session.tower_views():
        symbols[tower.cell_index] = tower.tower_type[:1].upper()
    for drop in session.drop_views():
        if symbols.get(drop.cell_index) == "o":
            continue
        symbols[drop.cell_index] = "." if drop.cleaned else "o"

    lines: List[str] = []
    for row in range(grid.rows):
        lines.append(" ".join(symbols.get(grid.cell_index(row, col), "_") for col in range(grid.cols)))
    return "\n".join(lines)


def format_summary(session: GameSession) -> str:
    state = session.state
    lines = [
        f"Difficulty: {state.difficulty.name}",
        f"Status: {state.status.value}" + (f" ({state.outcome.value})" if state.outcome else ""),
        format_hud(state.hud()),
        f"Towers: {len(session.store.towers)}",
    ]
    for tower in session.tower_views():
        row, col = session.grid.row_col(tower.cell_index)
        lines.append(f"  - {tower.tower_type} @ {row},{col}: level {tower.level}, power {tower.power:.2f}")
    if session.at_checkpoint:
        lines.append(f"Checkpoint reached after wave {state.wave}.")
    return "\n".join(lines)


def session_to_dict(session: GameSession) -> Dict[str, Any]:
    state = session.state
    hud = asdict(state.hud())
    hud["health_level"] = health_level(state.health)
    return {
        "status": state.status.value,
        "outcome": state.outcome.value if state.outcome else None,
        "difficulty": asdict(state.difficulty),
        "selected_difficulty": session.selected_difficulty,
        "selected_tower_type": state.selected_tower_type.value if state.selected_tower_type else None,
        "hud": hud,
        "spawning": state.spawning,
        "auto_advance": state.auto_advance,
        "wave_phase": session.waves.phase.value,
        "at_checkpoint": session.at_checkpoint,
        "awaiting_manual_start": session.awaiting_manual_start,
        "milestones_reached": sorted(state.achieved_milestones),
        "clock_ms": session.clock.now_ms,
        "grid": {
            "rows": session.grid.rows,
            "cols": session.grid.cols,
            "path": list(session.path.cells),
        },
        "towers": [asdict(tower) for tower in session.tower_views()],
        "drops": [asdict(drop) for drop in session.drop_views()],
    }
