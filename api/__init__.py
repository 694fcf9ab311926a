"""
CHIPCASINO - Player API

Flask blueprint: /api/*
Games (slots, roulette, landmines, crash), daily bonus and tedious tasks.
Identity comes from session["user"]; see admin.decorators.login_required.
"""

from flask import Blueprint

api_bp = Blueprint("api", __name__, url_prefix="/api")

from api import game_routes  # noqa: E402, F401
from api import economy_routes  # noqa: E402, F401
