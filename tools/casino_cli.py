#!/usr/bin/env python3
"""
CHIPCASINO - Operator CLI

Usage:
    python -m tools.casino_cli simulate slots --rounds 200000
    python -m tools.casino_cli simulate landmines --grid 5 --mines 3 --reveals 4
    python -m tools.casino_cli simulate crash --target 2.0
    python -m tools.casino_cli simulate all
    python -m tools.casino_cli ladder --grid 5 --mines 5
    python -m tools.casino_cli curve --crash 2.5
    python -m tools.casino_cli verify --server-seed <hex> --client-seed <seed> --hash <sha256>
    python -m tools.casino_cli tables
    python -m tools.casino_cli init-db
    python -m tools.casino_cli create-user alice --chips 10000 --admin
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.game_schema import CRASH_TABLE, MINES_TABLE, ROULETTE_TABLE, SLOTS_TABLE
from sim_engine.rmg import GAME_TYPES, get_game_engine
from sim_engine.rmg.crash import CrashEngine
from sim_engine.rmg.errors import GameError
from sim_engine.rmg.mines import MinesEngine

console = Console()


def _sim_config(engine, args) -> dict:
    if engine.game_type == "landmines":
        return engine.generate_config(grid_size=args.grid, mine_count=args.mines,
                                      reveals=args.reveals)
    if engine.game_type == "crash":
        return engine.generate_config(target=args.target)
    if engine.game_type == "roulette":
        return engine.generate_config(bet_type=args.bet_type)
    return engine.generate_config()


def cmd_simulate(args):
    games = GAME_TYPES if args.game == "all" else [args.game]
    table = Table(title=f"Monte Carlo ({args.rounds:,} rounds, seed {args.seed})")
    for col in ("Game", "Config", "Edge (theory)", "Edge (measured)", "95% CI", "Hit rate", "Max"):
        table.add_column(col)

    for game in games:
        engine = get_game_engine(game)
        config = _sim_config(engine, args)
        result = engine.simulate(config, rounds=args.rounds, seed=args.seed)
        shown = {k: v for k, v in config.items() if k != "game_type"}
        lo, hi = result.confidence_95
        table.add_row(
            engine.display_name,
            ", ".join(f"{k}={v}" for k, v in shown.items()) or "-",
            f"{result.house_edge_theoretical * 100:.2f}%",
            f"{result.house_edge_measured * 100:.2f}%",
            f"[{lo * 100:.2f}%, {hi * 100:.2f}%]",
            f"{result.hit_rate * 100:.1f}%",
            f"{result.max_multiplier_hit:.2f}x",
        )
    console.print(table)


def cmd_ladder(args):
    engine = MinesEngine()
    ladder = engine.multiplier_ladder(args.grid, args.mines)
    table = Table(title=f"Landmines {args.grid}x{args.grid}, {args.mines} mines")
    table.add_column("Safe reveals", justify="right")
    table.add_column("Multiplier", justify="right")
    table.add_column("P(survive)", justify="right")
    table.add_column("EV", justify="right")
    for k, mult in enumerate(ladder, start=1):
        p = engine.survival_probability(args.grid, args.mines, k)
        table.add_row(str(k), f"{mult:.2f}x", f"{p:.4f}", f"{p * mult:.4f}")
    console.print(table)


def cmd_curve(args):
    engine = CrashEngine()
    crash_at = engine.crash_time_seconds(args.crash)
    console.print(Panel(
        f"Crash point: [bold]{args.crash:.2f}x[/bold]\n"
        f"Reached after: {crash_at:.3f}s\n"
        f"Growth: ln({CRASH_TABLE.curve_target_multiplier:g})/{CRASH_TABLE.curve_target_seconds:g}s",
        title="Crash curve", border_style="cyan",
    ))
    table = Table()
    table.add_column("t (s)", justify="right")
    table.add_column("Multiplier", justify="right")
    t = 0.0
    while t <= crash_at + args.step:
        mult = engine.curve(t, args.crash)
        style = "red" if mult >= args.crash else ""
        table.add_row(f"{t:.2f}", f"[{style}]{mult:.2f}x[/{style}]" if style else f"{mult:.2f}x")
        t += args.step
    console.print(table)


def cmd_verify(args):
    point = CrashEngine().verify_crash_point(
        args.server_seed, args.client_seed, args.nonce, server_seed_hash=args.hash)
    checked = "hash matches" if args.hash else "hash not checked"
    console.print(Panel(
        f"Crash point: [bold]{point:.2f}x[/bold]\n"
        f"Nonce: {args.nonce} ({checked})",
        title="Crash round verification", border_style="green",
    ))


def cmd_tables(args):
    for name, tbl in (("Slots", SLOTS_TABLE), ("Roulette", ROULETTE_TABLE),
                      ("Landmines", MINES_TABLE), ("Crash", CRASH_TABLE)):
        console.print(Panel(tbl.model_dump_json(indent=2), title=name, border_style="cyan"))


def cmd_init_db(args):
    from config.database import SQLITE_PATH, USE_POSTGRES, init_db
    init_db()
    console.print(f"✅ Database ready ({'PostgreSQL' if USE_POSTGRES else SQLITE_PATH})")


def cmd_create_user(args):
    from config.database import get_standalone_db, init_db
    from tools.ledger import Ledger
    init_db()
    with get_standalone_db() as db:
        user = Ledger(db).create_account(args.username, email=args.email,
                                         chips=args.chips, is_admin=args.admin)
    console.print(f"✅ {user['username']} id={user['id']} chips={user['chip_balance']:,}"
                  f"{' [admin]' if user['is_admin'] else ''}")


def main():
    parser = argparse.ArgumentParser(description="CHIPCASINO operator tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("simulate", help="Monte Carlo house edge check")
    p.add_argument("game", choices=GAME_TYPES + ["mines", "all"])
    p.add_argument("--rounds", type=int, default=100_000)
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--grid", type=int, default=5)
    p.add_argument("--mines", type=int, default=5)
    p.add_argument("--reveals", type=int, default=3)
    p.add_argument("--target", type=float, default=None, help="Crash auto cash-out")
    p.add_argument("--bet-type", default="color",
                   choices=["straight", "color", "odd_even", "low_high"])
    p.set_defaults(func=cmd_simulate)

    p = sub.add_parser("ladder", help="Landmines multiplier per safe reveal")
    p.add_argument("--grid", type=int, default=5)
    p.add_argument("--mines", type=int, default=5)
    p.set_defaults(func=cmd_ladder)

    p = sub.add_parser("curve", help="Crash curve up to a crash point")
    p.add_argument("--crash", type=float, required=True)
    p.add_argument("--step", type=float, default=0.5)
    p.set_defaults(func=cmd_curve)

    p = sub.add_parser("verify", help="Recompute a crash point from revealed seeds")
    p.add_argument("--server-seed", required=True)
    p.add_argument("--client-seed", required=True)
    p.add_argument("--nonce", type=int, default=0)
    p.add_argument("--hash", default=None, help="Published server seed hash")
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser("tables", help="Dump payout tables")
    p.set_defaults(func=cmd_tables)

    p = sub.add_parser("init-db", help="Create tables and seed task config")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("create-user", help="Create a player account")
    p.add_argument("username")
    p.add_argument("--email", default=None)
    p.add_argument("--chips", type=int, default=None)
    p.add_argument("--admin", action="store_true")
    p.set_defaults(func=cmd_create_user)

    args = parser.parse_args()
    try:
        args.func(args)
    except GameError as e:
        console.print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
