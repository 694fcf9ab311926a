"""
CHIPCASINO - Access Decorators

login_required: any signed-in player (session["user"]["id"]).
admin_required: signed-in player whose users row has is_admin set.

Session creation (login, registration) happens elsewhere; these only read
the signed Flask session cookie and answer JSON errors.
"""

import logging
from functools import wraps

from flask import g, jsonify, session

from config.database import get_db
from sim_engine.rmg.errors import NotFoundError
from tools.ledger import Ledger

logger = logging.getLogger("chipcasino.admin")


def _current_user():
    return session.get("user", {})


def current_user_id():
    return g.get("user_id") or _current_user().get("id")


def login_required(f):
    """Require a session user. Sets g.user_id."""
    @wraps(f)
    def decorated(*args, **kwargs):
        user = _current_user()
        if not user or not user.get("id"):
            return jsonify({"error": "Unauthorized"}), 401
        g.user_id = user["id"]
        return f(*args, **kwargs)
    return decorated


def admin_required(f):
    """Require a session user flagged is_admin in the database."""
    @wraps(f)
    def decorated(*args, **kwargs):
        user = _current_user()
        if not user or not user.get("id"):
            return jsonify({"error": "Unauthorized"}), 401
        try:
            row = Ledger(get_db()).get_user(user["id"])
        except NotFoundError:
            return jsonify({"error": "Unauthorized"}), 401
        if not row["is_admin"]:
            logger.warning(f"Non-admin {user['id']} tried {f.__name__}")
            return jsonify({"error": "Forbidden"}), 403
        g.user_id = user["id"]
        return f(*args, **kwargs)
    return decorated
