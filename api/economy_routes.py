"""
CHIPCASINO - Economy Routes

POST /api/rewards/daily
GET  /api/tasks/list
POST /api/tasks/start
POST /api/tasks/complete
GET  /api/tasks/status
GET  /api/me
GET  /api/achievements
POST /api/achievements    {achievementType, achievementData?}
"""

from flask import jsonify, request

from admin.decorators import current_user_id, login_required
from api import api_bp
from config.database import get_db
from config.game_schema import AchievementUnlockRequest, TaskCompleteRequest, TaskStartRequest
from tools.ledger import Ledger
from tools.rewards import Rewards
from tools.round_store import RoundStore


def _body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


@api_bp.route("/me", methods=["GET"])
@login_required
def api_me():
    db = get_db()
    user = Ledger(db).get_user(current_user_id())
    resumable = RoundStore(db).active_mines(user["id"])
    return jsonify({
        "id": user["id"],
        "username": user["username"],
        "chipBalance": user["chip_balance"],
        "isAdmin": user["is_admin"],
        "activeLandmines": [s.to_public_dict() for s in resumable],
    })


@api_bp.route("/rewards/daily", methods=["POST"])
@login_required
def api_daily_bonus():
    return jsonify(Rewards(get_db()).claim_daily(current_user_id()))


@api_bp.route("/tasks/list", methods=["GET"])
@login_required
def api_tasks_list():
    return jsonify(Rewards(get_db()).list_tasks(current_user_id()))


@api_bp.route("/tasks/start", methods=["POST"])
@login_required
def api_tasks_start():
    req = TaskStartRequest.model_validate(_body())
    return jsonify(Rewards(get_db()).start_task(current_user_id(), req.task_type))


@api_bp.route("/tasks/complete", methods=["POST"])
@login_required
def api_tasks_complete():
    req = TaskCompleteRequest.model_validate(_body())
    return jsonify(Rewards(get_db()).complete_task(
        current_user_id(), req.task_type, req.completion_data))


@api_bp.route("/tasks/status", methods=["GET"])
@login_required
def api_tasks_status():
    return jsonify(Rewards(get_db()).task_status(current_user_id()))


@api_bp.route("/achievements", methods=["GET"])
@login_required
def api_achievements():
    return jsonify(Rewards(get_db()).list_achievements(current_user_id()))


@api_bp.route("/achievements", methods=["POST"])
@login_required
def api_achievement_unlock():
    req = AchievementUnlockRequest.model_validate(_body())
    return jsonify(Rewards(get_db()).unlock_achievement(
        current_user_id(), req.achievement_type, req.achievement_data))
