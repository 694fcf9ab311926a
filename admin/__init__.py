"""
CHIPCASINO - Admin API

Flask blueprint: /api/admin/*
Chip grants and tedious-task tuning. Every route requires users.is_admin.
"""

from flask import Blueprint

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

from admin import routes  # noqa: E402, F401
