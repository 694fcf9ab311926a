"""
CHIPCASINO - Game Routes

POST /api/games/slots/spin
POST /api/games/roulette/spin
POST /api/games/landmines/{start,reveal,cashout}
POST /api/games/crash/{start,cashout,resolve}
GET  /api/games

Handlers only parse, call GameService and serialize. GameError and
pydantic ValidationError are turned into JSON errors by web_app.
"""

from flask import jsonify, request

from admin.decorators import current_user_id, login_required
from api import api_bp
from config.database import get_db
from config.game_schema import (
    CrashCashoutRequest, CrashResolveRequest, CrashStartRequest, MinesCashoutRequest,
    MinesRevealRequest, MinesStartRequest, RouletteSpinRequest, SlotsSpinRequest,
)
from sim_engine.rmg import game_registry
from tools.game_service import GameService


def _body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _service() -> GameService:
    return GameService(get_db())


@api_bp.route("/games", methods=["GET"])
def api_games():
    return jsonify({"games": game_registry()})


# ── Slots ──

@api_bp.route("/games/slots/spin", methods=["POST"])
@login_required
def api_slots_spin():
    req = SlotsSpinRequest.model_validate(_body())
    return jsonify(_service().spin_slots(current_user_id(), req.bet_amount))


# ── Roulette ──

@api_bp.route("/games/roulette/spin", methods=["POST"])
@login_required
def api_roulette_spin():
    req = RouletteSpinRequest.model_validate(_body())
    bets = [{"type": b.type.value, "value": b.value, "amount": b.amount} for b in req.bets]
    return jsonify(_service().spin_roulette(current_user_id(), bets))


# ── Landmines ──

@api_bp.route("/games/landmines/start", methods=["POST"])
@login_required
def api_landmines_start():
    req = MinesStartRequest.model_validate(_body())
    return jsonify(_service().start_mines(
        current_user_id(), req.bet_amount, req.grid_size, req.mine_count))


@api_bp.route("/games/landmines/reveal", methods=["POST"])
@login_required
def api_landmines_reveal():
    req = MinesRevealRequest.model_validate(_body())
    return jsonify(_service().reveal_mines(current_user_id(), req.session_id, req.cell_index))


@api_bp.route("/games/landmines/cashout", methods=["POST"])
@login_required
def api_landmines_cashout():
    req = MinesCashoutRequest.model_validate(_body())
    return jsonify(_service().cashout_mines(current_user_id(), req.session_id))


# ── Crash ──

@api_bp.route("/games/crash/start", methods=["POST"])
@login_required
def api_crash_start():
    req = CrashStartRequest.model_validate(_body())
    return jsonify(_service().start_crash(current_user_id(), req.bet_amount, req.client_seed))


@api_bp.route("/games/crash/cashout", methods=["POST"])
@login_required
def api_crash_cashout():
    req = CrashCashoutRequest.model_validate(_body())
    return jsonify(_service().cashout_crash(current_user_id(), req.round_id, req.elapsed_seconds))


@api_bp.route("/games/crash/resolve", methods=["POST"])
@login_required
def api_crash_resolve():
    req = CrashResolveRequest.model_validate(_body())
    return jsonify(_service().resolve_crash(current_user_id(), req.round_id))
