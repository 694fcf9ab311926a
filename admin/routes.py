"""
CHIPCASINO - Admin Routes

POST /api/admin/add-chips      {userId, amount, reason?}
GET  /api/admin/tasks/config
PUT  /api/admin/tasks/config   {taskType, rewardAmount, cooldownSeconds}
GET  /api/admin/users/<id>     balance + recent transactions
"""

from flask import jsonify, request

from admin import admin_bp
from admin.decorators import admin_required, current_user_id
from config.database import get_db
from config.game_schema import AddChipsRequest, TaskConfigUpdate
from tools.ledger import Ledger
from tools.rewards import Rewards


def _body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _task_config_json(row: dict) -> dict:
    return {
        "taskType": row["task_type"],
        "rewardAmount": row["reward_amount"],
        "cooldownSeconds": row["cooldown_seconds"],
        "updatedAt": row.get("updated_at"),
    }


@admin_bp.route("/add-chips", methods=["POST"])
@admin_required
def admin_add_chips():
    req = AddChipsRequest.model_validate(_body())
    return jsonify(Rewards(get_db()).admin_add_chips(
        current_user_id(), req.user_id, req.amount, req.reason))


@admin_bp.route("/tasks/config", methods=["GET"])
@admin_required
def admin_task_config():
    rows = Rewards(get_db()).task_configs()
    return jsonify({"configs": [_task_config_json(r) for r in rows]})


@admin_bp.route("/tasks/config", methods=["PUT"])
@admin_required
def admin_task_config_update():
    req = TaskConfigUpdate.model_validate(_body())
    row = Rewards(get_db()).update_task_config(
        req.task_type, req.reward_amount, req.cooldown_seconds)
    return jsonify({"success": True, "config": _task_config_json(row)})


@admin_bp.route("/users/<user_id>", methods=["GET"])
@admin_required
def admin_user_detail(user_id):
    ledger = Ledger(get_db())
    user = ledger.get_user(user_id)
    return jsonify({
        "id": user["id"],
        "username": user["username"],
        "chipBalance": user["chip_balance"],
        "isAdmin": user["is_admin"],
        "transactions": ledger.transactions(user_id, limit=20),
        "history": ledger.history(user_id, limit=20),
    })
