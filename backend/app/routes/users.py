"""
routes/users.py — user lookup.

Adding a registered member needs their user id; clients look it up by
username here.

Endpoints (url_prefix=/api/v1/users):
  GET /users/by-username/:username  → 200
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth
from backend.app.services import auth_service

users_bp = Blueprint("users", __name__)


@users_bp.route("/by-username/<string:username>", methods=["GET"])
@require_auth
def get_user_by_username(username: str):
    result = auth_service.find_user_by_username(username, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200
