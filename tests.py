#!/usr/bin/env python3
"""
CHIPCASINO - Engine Unit Test Suite

Run: python tests.py
     python tests.py -v            # verbose
     python tests.py TestCrash     # run specific class

Test categories:
  TestTables     - frozen payout tables, wheel colours, curve constants
  TestRNG        - source selection, seeding, scripted and commit-reveal draws
  TestSlots      - paytable, pair keying, floor settlement, exact edge
  TestRoulette   - per-bet payouts, zero rule, totals, edge per bet type
  TestMines      - multiplier curve, lifecycle, validation, clamps
  TestCrash      - crash point distribution, curve, cash-out resolution, seed replay
  TestRequests   - request model validation messages
  TestSimulation - Monte Carlo agrees with theory
"""

import hashlib
import json
import math
import random
import sys
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from config.game_schema import (
    CRASH_TABLE, ROULETTE_TABLE, SLOTS_TABLE, CrashCashoutRequest, MinesStartRequest,
    RouletteBetType, RouletteSpinRequest, SlotsSpinRequest, SlotSymbol, TaskStartRequest,
    first_error_message,
)
from sim_engine.rmg import GAME_TYPES, game_registry, get_game_engine
from sim_engine.rmg.crash import CASHED_OUT as CRASH_CASHED_OUT, CRASHED, CrashEngine, CrashRound
from sim_engine.rmg.errors import (
    GameFinishedError, InvalidGameParameters, InvalidMoveError, MalformedBetError,
    RoundStillRunningError,
)
from sim_engine.rmg.mines import CASHED_OUT, HIT_MINE, IN_PROGRESS, MinesEngine, MinesSession
from sim_engine.rmg.roulette import RouletteEngine
from sim_engine.rmg.slots import SlotsEngine
from tools.casino_rng import (
    CommittedRNG, ScriptedRNG, committed_uniform, get_rng, secure_rng, seeded_rng, uniform_rng,
)

D, S, B, C, L = (SlotSymbol.DIAMOND, SlotSymbol.SEVEN, SlotSymbol.BAR,
                 SlotSymbol.CHERRY, SlotSymbol.LEMON)
T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================
# Tables
# ============================================================

class TestTables(unittest.TestCase):

    def test_slot_pool_weights(self):
        pool = SLOTS_TABLE.reel_pool()
        self.assertEqual(len(pool), 11)
        self.assertEqual(pool.count(C), 4)
        self.assertEqual(pool.count(L), 3)
        self.assertEqual(pool.count(B), 2)
        self.assertEqual(pool.count(S), 1)
        self.assertEqual(pool.count(D), 1)

    def test_tables_are_frozen(self):
        with self.assertRaises(ValidationError):
            CRASH_TABLE.tail_scale = 1.0

    def test_payout_maps_are_read_only(self):
        with self.assertRaises(TypeError):
            SLOTS_TABLE.triple_payouts[D] = 1000.0
        with self.assertRaises(TypeError):
            SLOTS_TABLE.reel_weights[D] = 50
        with self.assertRaises(TypeError):
            ROULETTE_TABLE.payouts[RouletteBetType.STRAIGHT] = 36
        self.assertEqual(SlotsEngine().multiplier_for([D, D, D]), 20.0)

    def test_tables_dump_to_json(self):
        dumped = json.loads(SLOTS_TABLE.model_dump_json())
        self.assertEqual(dumped["triple_payouts"]["DIAMOND"], 20.0)
        self.assertEqual(json.loads(ROULETTE_TABLE.model_dump_json())["payouts"]["straight"], 35)

    def test_wheel_colours(self):
        self.assertEqual(len(ROULETTE_TABLE.red_numbers), 18)
        self.assertEqual(ROULETTE_TABLE.color_of(0).value, "green")
        self.assertEqual(ROULETTE_TABLE.color_of(1).value, "red")
        self.assertEqual(ROULETTE_TABLE.color_of(2).value, "black")
        self.assertEqual(ROULETTE_TABLE.color_of(17).value, "black")
        self.assertEqual(ROULETTE_TABLE.color_of(36).value, "red")

    def test_growth_rate_reaches_50_at_12s(self):
        self.assertAlmostEqual(math.exp(CRASH_TABLE.growth_rate * 12), 50.0, places=9)

    def test_registry_lists_every_game(self):
        ids = [g["id"] for g in game_registry()]
        self.assertEqual(ids, ["slots", "landmines", "roulette", "crash"])
        for entry in game_registry():
            for key in ("id", "name", "description", "route", "emoji", "status"):
                self.assertIn(key, entry)

    def test_get_game_engine(self):
        self.assertIsInstance(get_game_engine("mines"), MinesEngine)
        self.assertIsInstance(get_game_engine("CRASH"), CrashEngine)
        with self.assertRaises(ValueError):
            get_game_engine("plinko")
        self.assertEqual(set(GAME_TYPES), {"slots", "landmines", "roulette", "crash"})


# ============================================================
# RNG
# ============================================================

class TestRNG(unittest.TestCase):

    def test_landmines_uses_secure_source(self):
        self.assertIs(get_rng("landmines"), secure_rng())
        self.assertIsInstance(get_rng("landmines"), random.SystemRandom)

    def test_other_games_use_uniform_source(self):
        for game in ("slots", "roulette", "crash"):
            self.assertIs(get_rng(game), uniform_rng())

    def test_secure_games_override(self):
        self.assertIs(get_rng("slots", secure_games={"slots"}), secure_rng())
        self.assertIs(get_rng("landmines", secure_games=()), uniform_rng())

    def test_seeded_is_reproducible(self):
        a, b = seeded_rng(7), seeded_rng(7)
        self.assertEqual([a.random() for _ in range(5)], [b.random() for _ in range(5)])

    def test_scripted_values_then_fallback(self):
        rng = ScriptedRNG([0.25, 0.5])
        self.assertEqual(rng.random(), 0.25)
        self.assertEqual(rng.random(), 0.5)
        self.assertTrue(0.0 <= rng.random() < 1.0)

    def test_scripted_rejects_out_of_range(self):
        with self.assertRaises(ValueError):
            ScriptedRNG([1.0]).random()

    def test_committed_draws_replay_from_seeds(self):
        rng = CommittedRNG(client_seed="lucky", server_seed="ab" * 32)
        self.assertEqual(rng.server_seed_hash,
                         hashlib.sha256(("ab" * 32).encode()).hexdigest())
        first, second = rng.random(), rng.random()
        self.assertEqual(rng.nonce, 2)
        self.assertEqual(first, committed_uniform("ab" * 32, "lucky", 0))
        self.assertEqual(second, committed_uniform("ab" * 32, "lucky", 1))
        self.assertNotEqual(first, second)
        self.assertTrue(0.0 <= first < 1.0)

    def test_committed_seeds_are_fresh(self):
        a, b = CommittedRNG(), CommittedRNG()
        self.assertNotEqual(a.server_seed, b.server_seed)
        self.assertEqual(len(a.server_seed), 64)
        self.assertTrue(a.client_seed)


# ============================================================
# Slots
# ============================================================

class TestSlots(unittest.TestCase):

    def setUp(self):
        self.engine = SlotsEngine()

    def test_triples(self):
        expected = {D: 20.0, S: 10.0, B: 6.0, C: 4.0, L: 3.0}
        for sym, mult in expected.items():
            self.assertEqual(self.engine.multiplier_for((sym, sym, sym)), mult)

    def test_diamond_triple_settlement(self):
        out = self.engine.evaluate(100, [D, D, D])
        self.assertEqual(out.gross_winnings, 2000)
        self.assertEqual(out.net, 1900)
        self.assertEqual(out.result, "win")

    def test_pair_keying(self):
        # reels 1 and 2 match: keyed on reel 1
        self.assertEqual(self.engine.multiplier_for((B, B, C)), 2.0)
        # otherwise keyed on reel 3 (covers 2==3 and 1==3)
        self.assertEqual(self.engine.multiplier_for((C, S, S)), 3.0)
        self.assertEqual(self.engine.multiplier_for((L, B, L)), 1.5)
        self.assertEqual(self.engine.multiplier_for((D, C, D)), 3.0)

    def test_no_match_loses(self):
        out = self.engine.evaluate(100, [C, L, B])
        self.assertEqual(out.gross_winnings, 0)
        self.assertEqual(out.net, -100)
        self.assertEqual(out.result, "loss")

    def test_floor_and_tie(self):
        out = self.engine.evaluate(1, [C, C, L])   # 1 x 1.5 floors to 1
        self.assertEqual(out.gross_winnings, 1)
        self.assertEqual(out.net, 0)
        self.assertEqual(out.result, "tie")
        self.assertEqual(self.engine.evaluate(3, [C, C, L]).gross_winnings, 4)

    def test_net_matches_floor_formula(self):
        rng = seeded_rng(1)
        for bet in (1, 7, 33, 100, 999):
            out = self.engine.spin(bet, rng)
            self.assertEqual(out.net, math.floor(bet * out.multiplier) - bet)
            sign = "win" if out.net > 0 else "tie" if out.net == 0 else "loss"
            self.assertEqual(out.result, sign)

    def test_wrong_reel_count(self):
        with self.assertRaises(InvalidGameParameters):
            self.engine.evaluate(100, [C, C])

    def test_exact_house_edge(self):
        # triples 415 + pairs 1224 over 11^3 weighted combinations
        self.assertAlmostEqual(self.engine.compute_house_edge({}), 1 - 1639 / 1331, places=12)

    def test_to_dict_keys(self):
        data = self.engine.evaluate(10, [S, S, S]).to_dict()
        self.assertEqual(data["reels"], ["SEVEN", "SEVEN", "SEVEN"])
        self.assertEqual(data["grossWinnings"], 100)


# ============================================================
# Roulette
# ============================================================

class TestRoulette(unittest.TestCase):

    def setUp(self):
        self.engine = RouletteEngine()

    def test_straight_hit(self):
        s = self.engine.evaluate_bets([{"type": "straight", "value": 17, "amount": 100}], 17)
        self.assertEqual(s.total_payout, 3500)
        self.assertEqual(s.net, 3400)
        self.assertEqual(s.winning_color, "black")

    def test_zero_loses_even_money(self):
        bets = [
            {"type": "color", "value": "red", "amount": 10},
            {"type": "color", "value": "black", "amount": 10},
            {"type": "odd_even", "value": "even", "amount": 10},
            {"type": "odd_even", "value": "odd", "amount": 10},
            {"type": "low_high", "value": "low", "amount": 10},
            {"type": "low_high", "value": "high", "amount": 10},
        ]
        s = self.engine.evaluate_bets(bets, 0)
        self.assertEqual(s.total_payout, 0)
        self.assertEqual(s.winning_color, "green")

    def test_straight_zero_pays(self):
        s = self.engine.evaluate_bets([{"type": "straight", "value": 0, "amount": 2}], 0)
        self.assertEqual(s.total_payout, 70)

    def test_even_money_bets(self):
        cases = [
            ("color", "red", 1, 20), ("color", "black", 1, 0),
            ("odd_even", "odd", 7, 20), ("odd_even", "even", 7, 0),
            ("low_high", "low", 18, 20), ("low_high", "high", 18, 0),
            ("low_high", "high", 19, 20),
        ]
        for bet_type, value, pocket, payout in cases:
            s = self.engine.evaluate_bets([{"type": bet_type, "value": value, "amount": 10}], pocket)
            self.assertEqual(s.total_payout, payout, (bet_type, value, pocket))

    def test_totals_are_sums(self):
        rng = seeded_rng(3)
        bets = [
            {"type": "straight", "value": 5, "amount": 10},
            {"type": "color", "value": "red", "amount": 25},
            {"type": "low_high", "value": "high", "amount": 40},
        ]
        for _ in range(50):
            s = self.engine.spin(bets, rng)
            self.assertEqual(s.total_payout, sum(p for _, p in s.per_bet))
            self.assertEqual(s.total_stake, 75)
            self.assertEqual(s.net, s.total_payout - s.total_stake)
            self.assertTrue(0 <= s.winning_number <= 36)

    def test_wrong_value_kind_pays_zero(self):
        s = self.engine.evaluate_bets([{"type": "color", "value": 5, "amount": 10}], 5)
        self.assertEqual(s.total_payout, 0)
        s = self.engine.evaluate_bets([{"type": "straight", "value": "5", "amount": 10}], 5)
        self.assertEqual(s.total_payout, 0)

    def test_missing_fields_raise(self):
        with self.assertRaises(MalformedBetError):
            self.engine.evaluate_bets([{"value": "red", "amount": 10}], 1)
        with self.assertRaises(MalformedBetError):
            self.engine.evaluate_bets([{"type": "color", "amount": 10}], 1)
        with self.assertRaises(MalformedBetError):
            self.engine.evaluate_bets([{"type": "split", "value": 1, "amount": 10}], 1)

    def test_house_edge_per_bet_type(self):
        self.assertAlmostEqual(
            self.engine.compute_house_edge(self.engine.generate_config("color")), 1 / 37)
        self.assertAlmostEqual(
            self.engine.compute_house_edge(self.engine.generate_config("straight")), 2 / 37)


# ============================================================
# Landmines
# ============================================================

def _session(grid=5, mines=(0, 1, 2, 3, 4), bet=100):
    return MinesSession(id="s1", user_id="u1", bet_amount=bet, grid_size=grid,
                        mine_count=len(mines), mine_positions=list(mines))


class TestMines(unittest.TestCase):

    def setUp(self):
        self.engine = MinesEngine()

    def test_first_reveal_5x5_5_mines(self):
        # (1 / (1 - 5/25)) * 0.96
        self.assertEqual(self.engine.calculate_multiplier(5, 5, 1), 1.2)
        self.assertEqual(self.engine.calculate_multiplier(5, 5, 2), 1.46)

    def test_zero_reveals_is_one(self):
        self.assertEqual(self.engine.calculate_multiplier(5, 5, 0), 1.0)

    def test_monotonic_and_bounded(self):
        for grid in range(3, 9):
            for mines in range(1, grid * grid):
                prev = 1.0
                for k in range(0, grid * grid - mines + 1):
                    m = self.engine.calculate_multiplier(grid, mines, k)
                    self.assertGreaterEqual(m, prev, (grid, mines, k))
                    self.assertTrue(1.0 <= m <= 50.0)
                    prev = m

    def test_low_density_floors_at_one(self):
        # 8x8 with one mine: every step shaves more than it pays
        self.assertEqual(self.engine.calculate_multiplier(8, 1, 1), 1.0)

    def test_dense_grid_clamps_to_50(self):
        self.assertEqual(self.engine.calculate_multiplier(8, 63, 1), 50.0)
        self.assertEqual(self.engine.calculate_multiplier(3, 8, 1), round(9 * 0.96, 2))

    def test_start_layout(self):
        session = self.engine.start(100, 5, 5, seeded_rng(11), user_id="u1")
        self.assertEqual(len(session.mine_positions), 5)
        self.assertEqual(len(set(session.mine_positions)), 5)
        self.assertTrue(all(0 <= c < 25 for c in session.mine_positions))
        self.assertEqual(session.status, IN_PROGRESS)
        self.assertTrue(session.is_active)
        self.assertNotIn("minePositions", session.to_public_dict())

    def test_start_rejects_bad_parameters(self):
        rng = seeded_rng(0)
        for grid, mines in ((2, 1), (9, 5), (5, 0), (5, 25), (3, 9)):
            with self.assertRaises(InvalidGameParameters):
                self.engine.start(100, grid, mines, rng)
        with self.assertRaises(InvalidGameParameters):
            self.engine.start(0, 5, 5, rng)
        # the densest legal layout is accepted
        self.assertEqual(len(self.engine.start(100, 8, 63, rng).mine_positions), 63)

    def test_safe_reveal_then_cashout(self):
        session = _session()
        out = self.engine.reveal(session, 10)
        self.assertFalse(out.hit_mine)
        self.assertEqual(out.safe_revealed, 1)
        self.assertEqual(out.multiplier, 1.2)
        self.assertEqual(self.engine.cash_out(session), 120)
        self.assertEqual(session.status, CASHED_OUT)
        self.assertFalse(session.is_active)

    def test_hit_mine(self):
        session = _session()
        self.engine.reveal(session, 10)
        out = self.engine.reveal(session, 3)
        self.assertTrue(out.hit_mine)
        self.assertEqual(out.multiplier, 0.0)
        self.assertEqual(session.status, HIT_MINE)
        self.assertIn("minePositions", session.to_public_dict())

    def test_finished_session_rejects_moves(self):
        session = _session()
        self.engine.reveal(session, 0)
        with self.assertRaises(GameFinishedError):
            self.engine.reveal(session, 10)
        with self.assertRaises(GameFinishedError):
            self.engine.cash_out(session)

    def test_invalid_cells(self):
        session = _session()
        for cell in (-1, 25, "3", 2.5, True):
            with self.assertRaises(InvalidMoveError):
                self.engine.reveal(session, cell)
        self.engine.reveal(session, 12)
        with self.assertRaises(InvalidMoveError):
            self.engine.reveal(session, 12)
        self.assertEqual(session.safe_revealed, 1)

    def test_cashout_needs_a_reveal(self):
        with self.assertRaises(InvalidMoveError):
            self.engine.cash_out(_session())

    def test_ladder(self):
        ladder = self.engine.multiplier_ladder(5, 5)
        self.assertEqual(len(ladder), 20)
        self.assertEqual(ladder[0], 1.2)
        self.assertEqual(ladder, sorted(ladder))


# ============================================================
# Crash
# ============================================================

class TestCrash(unittest.TestCase):

    def setUp(self):
        self.engine = CrashEngine(client_tolerance_s=0.25)

    def _round(self, crash=2.5, bet=100):
        return CrashRound(id="r1", user_id="u1", bet_amount=bet,
                          crash_multiplier=crash, started_at=T0)

    def test_crash_point_bounds(self):
        self.assertEqual(self.engine.crash_point_from_uniform(0.0), 1.01)
        self.assertEqual(self.engine.crash_point_from_uniform(1 - 1e-15), 100.0)
        u = 1 - math.exp(-1.5 / 3.5)
        self.assertEqual(self.engine.crash_point_from_uniform(u), 2.5)

    def test_crash_point_from_rng(self):
        rng = seeded_rng(5)
        for _ in range(1000):
            m = self.engine.draw_crash_point(rng)
            self.assertTrue(1.01 <= m <= 100.0)
            self.assertEqual(m, round(m, 2))

    def test_start_commits_crash_point(self):
        u = 1 - math.exp(-1.5 / 3.5)
        rnd = self.engine.start(100, ScriptedRNG([u]), user_id="u1", now=T0)
        self.assertEqual(rnd.crash_multiplier, 2.5)
        self.assertEqual(rnd.started_at, T0)
        self.assertTrue(rnd.is_active)

    def test_committed_round_replays(self):
        rng = CommittedRNG(client_seed="player-1")
        rnd = self.engine.start(100, rng, user_id="u1", now=T0)
        self.assertEqual(rnd.nonce, 0)
        self.assertEqual(rnd.server_seed_hash, rng.server_seed_hash)
        self.assertNotIn("serverSeed", rnd.fairness())
        self.assertEqual(
            self.engine.verify_crash_point(rnd.server_seed, "player-1", 0,
                                           server_seed_hash=rnd.server_seed_hash),
            rnd.crash_multiplier)

        self.engine.resolve_cashout(rnd, client_elapsed=0, now=T0)
        self.assertEqual(rnd.fairness()["serverSeed"], rng.server_seed)

    def test_verify_rejects_wrong_seed(self):
        with self.assertRaises(InvalidGameParameters):
            self.engine.verify_crash_point("00" * 32, "x", 0, server_seed_hash="f" * 64)

    def test_curve(self):
        self.assertEqual(self.engine.curve(0, 100), 1.0)
        self.assertEqual(self.engine.curve(-3, 100), 1.0)
        self.assertEqual(self.engine.curve(12, 100), 50.0)
        self.assertEqual(self.engine.curve(30, 3.33), 3.33)
        prev = 1.0
        for i in range(0, 200):
            v = self.engine.curve(i * 0.1, 20.0)
            self.assertGreaterEqual(v, prev)
            self.assertLessEqual(v, 20.0)
            prev = v

    def test_curve_rate_independent_of_crash_point(self):
        self.assertEqual(self.engine.curve(2.0, 100), self.engine.curve(2.0, 50))

    def test_cashout_before_crash(self):
        rnd = self._round(crash=2.5)
        out = self.engine.resolve_cashout(rnd, now=T0 + timedelta(seconds=1))
        expected = self.engine.curve(1.0, 2.5)
        self.assertFalse(out.crashed)
        self.assertEqual(out.cashout_multiplier, expected)
        self.assertEqual(expected, 1.39)
        self.assertEqual(out.payout, 139)
        self.assertEqual(rnd.status, CRASH_CASHED_OUT)
        self.assertFalse(rnd.is_active)

    def test_cashout_at_crash_point_crashes(self):
        rnd = self._round(crash=2.5)
        t = self.engine.crash_time_seconds(2.5) + 0.01
        self.assertEqual(self.engine.curve(t, 2.5), 2.5)
        out = self.engine.resolve_cashout(rnd, now=T0 + timedelta(seconds=t))
        self.assertTrue(out.crashed)
        self.assertEqual(out.payout, 0)
        self.assertEqual(rnd.status, CRASHED)
        self.assertNotIn("payout", out.to_dict())

    def test_second_cashout_rejected(self):
        rnd = self._round()
        self.engine.resolve_cashout(rnd, now=T0 + timedelta(seconds=0.5))
        with self.assertRaises(GameFinishedError) as ctx:
            self.engine.resolve_cashout(rnd, now=T0 + timedelta(seconds=0.6))
        self.assertEqual(str(ctx.exception), "Round already finished")

    def test_client_elapsed_trusted_within_tolerance(self):
        self.assertEqual(self.engine.effective_elapsed(1.0, 0.8), 0.8)
        self.assertEqual(self.engine.effective_elapsed(1.0, 1.2), 1.2)

    def test_client_elapsed_rejected(self):
        for bad in (1.5, -0.1, float("nan"), float("inf"), None, "1.0", True):
            self.assertEqual(self.engine.effective_elapsed(1.0, bad), 1.0, bad)

    def test_late_client_cannot_rescue_crashed_round(self):
        # Server says the round is long gone; a small client time is honoured
        # (latency), but a client claiming the future is ignored.
        rnd = self._round(crash=2.5)
        out = self.engine.resolve_cashout(rnd, client_elapsed=100.0,
                                          now=T0 + timedelta(seconds=1))
        self.assertFalse(out.crashed)
        self.assertEqual(out.elapsed_seconds, 1.0)

    def test_resolve_expired(self):
        rnd = self._round(crash=2.5)
        with self.assertRaises(RoundStillRunningError):
            self.engine.resolve_expired(rnd, now=T0 + timedelta(seconds=1))
        self.assertTrue(rnd.is_active)
        out = self.engine.resolve_expired(rnd, now=T0 + timedelta(seconds=10))
        self.assertTrue(out.crashed)
        self.assertEqual(rnd.status, CRASHED)

    def test_win_probability(self):
        self.assertEqual(self.engine.win_probability(1.0), 1.0)
        self.assertEqual(self.engine.win_probability(100.0), 0.0)
        self.assertAlmostEqual(self.engine.win_probability(2.0), math.exp(-1.005 / 3.5))


# ============================================================
# Request models
# ============================================================

class TestRequests(unittest.TestCase):

    def _msg(self, model, data):
        with self.assertRaises(ValidationError) as ctx:
            model.model_validate(data)
        return first_error_message(ctx.exception)

    def test_stake_bounds(self):
        self.assertEqual(SlotsSpinRequest.model_validate({"betAmount": "250"}).bet_amount, 250)
        self.assertEqual(self._msg(SlotsSpinRequest, {"betAmount": 0}), "Bet amount too small")
        self.assertEqual(self._msg(SlotsSpinRequest, {"betAmount": 1_000_001}), "Bet amount too large")
        self.assertEqual(self._msg(SlotsSpinRequest, {"betAmount": "abc"}), "Invalid bet amount")
        self.assertEqual(self._msg(SlotsSpinRequest, {"betAmount": 10.5}), "Invalid bet amount")

    def test_mines_defaults(self):
        req = MinesStartRequest.model_validate({"betAmount": 10})
        self.assertEqual((req.grid_size, req.mine_count), (5, 5))

    def test_roulette_messages(self):
        self.assertEqual(self._msg(RouletteSpinRequest, {"bets": []}),
                         "At least one bet is required")
        many = [{"type": "color", "value": "red", "amount": 1}] * 33
        self.assertEqual(self._msg(RouletteSpinRequest, {"bets": many}),
                         "Too many bets for a single spin")
        cases = [
            ({"type": "split", "value": 1, "amount": 1}, "Unsupported bet type"),
            ({"type": "color", "amount": 1}, "Invalid bet format"),
            ({"type": "color", "value": "red", "amount": 0}, "Bet amount too small"),
            ({"type": "straight", "value": 37, "amount": 1}, "Invalid straight bet value"),
            ({"type": "color", "value": "green", "amount": 1}, "Invalid color bet value"),
            ({"type": "odd_even", "value": "odd?", "amount": 1}, "Invalid odd/even bet value"),
            ({"type": "low_high", "value": 3, "amount": 1}, "Invalid low/high bet value"),
        ]
        for bet, message in cases:
            self.assertEqual(self._msg(RouletteSpinRequest, {"bets": [bet]}), message, bet)

    def test_roulette_valid(self):
        req = RouletteSpinRequest.model_validate(
            {"bets": [{"type": "straight", "value": 0, "amount": 5}]})
        self.assertEqual(req.bets[0].value, 0)

    def test_crash_elapsed_is_lenient(self):
        self.assertIsNone(CrashCashoutRequest.model_validate(
            {"roundId": "r", "elapsedSeconds": "soon"}).elapsed_seconds)
        self.assertEqual(CrashCashoutRequest.model_validate(
            {"roundId": "r", "elapsedSeconds": 2}).elapsed_seconds, 2.0)

    def test_task_type(self):
        self.assertEqual(self._msg(TaskStartRequest, {"taskType": "chess"}), "Invalid task type")


# ============================================================
# Monte Carlo
# ============================================================

class TestSimulation(unittest.TestCase):

    def _check(self, engine, config, rounds=60_000, tolerance=0.03):
        result = engine.simulate(config, rounds=rounds, seed=123)
        self.assertAlmostEqual(result.house_edge_measured, result.house_edge_theoretical,
                               delta=tolerance)
        self.assertEqual(result.rounds, rounds)
        return result

    def test_slots(self):
        self._check(SlotsEngine(), {})

    def test_roulette_color(self):
        engine = RouletteEngine()
        self._check(engine, engine.generate_config("color"))

    def test_mines(self):
        engine = MinesEngine()
        self._check(engine, engine.generate_config(grid_size=5, mine_count=5, reveals=3))

    def test_crash_player_edge_at_2x(self):
        engine = CrashEngine()
        result = self._check(engine, engine.generate_config(target=2.0))
        self.assertLess(result.house_edge_theoretical, 0)

    def test_result_dict(self):
        data = SlotsEngine().simulate({}, rounds=1000).to_dict()
        self.assertIn("confidence_95", data)
        self.assertAlmostEqual(sum(data["distribution"].values()), 1.0, places=2)


if __name__ == "__main__":
    unittest.main()
