from __future__ import annotations

import argparse
import json
import random
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from loguru import logger

from .config import ConfigError, default_rules, load_config
from .formatting import format_board, format_summary, session_to_dict
from .models import GameRules, TowerType
from .simulation import GameSession, Rejection, SessionStatus


@dataclass(slots=True)
class TowerOrder:
    tower_type: TowerType
    row: int
    col: int
    status: str = "pending"


@dataclass(slots=True)
class ScriptedRun:
    session: GameSession
    orders: List[TowerOrder] = field(default_factory=list)
    elapsed_ms: int = 0


def parse_tower_order(raw: str) -> TowerOrder:
    """Parse ``TYPE@ROW,COL`` (for example ``basic@3,4``)."""
    try:
        type_part, position = raw.split("@", 1)
        row_part, col_part = position.split(",", 1)
        return TowerOrder(tower_type=TowerType(type_part.strip().lower()), row=int(row_part), col=int(col_part))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid tower '{raw}'. Use TYPE@ROW,COL, e.g. basic@3,4.") from exc


def _place_pending(session: GameSession, orders: Sequence[TowerOrder]) -> None:
    for order in orders:
        if order.status != "pending":
            continue
        session.select_tower_type(order.tower_type)
        result = session.place_or_upgrade_at(session.grid.cell_index(order.row, order.col))
        if result.ok:
            order.status = "placed"
        elif result.rejection is Rejection.NOT_ENOUGH_COINS:
            # Keep order: later orders wait until this one is affordable.
            return
        else:
            order.status = result.rejection.value if result.rejection else "rejected"


def run_scripted(
    rules: GameRules,
    difficulty: str,
    orders: Sequence[TowerOrder] = (),
    seed: Optional[int] = None,
    max_seconds: float = 600.0,
    manual_waves: bool = False,
    stop_at_checkpoint: bool = False,
) -> ScriptedRun:
    session = GameSession(rules=rules, rng=random.Random(seed), difficulty=difficulty)
    run = ScriptedRun(session=session, orders=list(orders))
    session.start_game()
    if manual_waves:
        session.toggle_auto_advance()

    budget_ms = int(max_seconds * 1000)
    while session.status is SessionStatus.RUNNING and run.elapsed_ms < budget_ms:
        _place_pending(session, run.orders)
        session.clock.advance(rules.tick_ms)
        run.elapsed_ms += rules.tick_ms
        if session.at_checkpoint:
            if stop_at_checkpoint:
                break
            session.continue_after_checkpoint()
        elif manual_waves and session.awaiting_manual_start:
            session.start_next_wave_manual()

    if session.status is SessionStatus.RUNNING and not session.at_checkpoint:
        logger.info(f"Time budget of {max_seconds:g}s exhausted at wave {session.state.wave}")
    return run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cleanwater-sim",
        description="Run a headless Clean Water Defense game with a scripted tower layout.",
    )
    parser.add_argument("--difficulty", default=None, help="Difficulty preset (easy, normal, hard).")
    parser.add_argument("--config", default=None, help="Optional JSON/YAML rules file.")
    parser.add_argument(
        "--tower",
        dest="towers",
        action="append",
        type=parse_tower_order,
        default=[],
        help="Tower to build as TYPE@ROW,COL; repeat for more. Built in order as coins allow.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for slowed-drop movement.")
    parser.add_argument("--max-seconds", type=float, default=600.0, help="Game-time budget in seconds.")
    parser.add_argument("--manual-waves", action="store_true", help="Disable auto-advance and start waves manually.")
    parser.add_argument(
        "--stop-at-checkpoint",
        action="store_true",
        help="Stop at the wave checkpoint instead of continuing.",
    )
    parser.add_argument("--format", choices=("table", "json"), default="table", help="Output format.")
    parser.add_argument("--board", action="store_true", help="Print the final board (table output only).")
    parser.add_argument("--log-level", default="WARNING", help="Log level for diagnostics on stderr.")
    return parser


def _print_table(run: ScriptedRun, show_board: bool) -> None:
    print(format_summary(run.session))
    print(f"Game time: {run.elapsed_ms / 1000:.1f}s")
    unplaced = [order for order in run.orders if order.status != "placed"]
    for order in unplaced:
        print(f"Tower {order.tower_type.value} @ {order.row},{order.col} not built: {order.status}")
    if show_board:
        print()
        print(format_board(run.session))


def _print_json(run: ScriptedRun) -> None:
    payload: Dict = session_to_dict(run.session)
    payload["game_time_ms"] = run.elapsed_ms
    payload["orders"] = [
        {"tower_type": order.tower_type.value, "row": order.row, "col": order.col, "status": order.status}
        for order in run.orders
    ]
    json.dump(payload, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    try:
        rules = load_config(Path(args.config)) if args.config else default_rules()
    except ConfigError as exc:
        parser.error(str(exc))

    difficulty = args.difficulty or rules.default_difficulty
    if difficulty.strip().lower() not in rules.difficulties:
        parser.error(f"Unknown difficulty '{difficulty}'. Choose from: {', '.join(rules.difficulties)}.")
    if args.max_seconds <= 0:
        parser.error("--max-seconds must be > 0.")

    run = run_scripted(
        rules,
        difficulty,
        orders=args.towers,
        seed=args.seed,
        max_seconds=args.max_seconds,
        manual_waves=args.manual_waves,
        stop_at_checkpoint=args.stop_at_checkpoint,
    )

    if args.format == "json":
        _print_json(run)
    else:
        _print_table(run, show_board=args.board)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
