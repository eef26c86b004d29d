"""
routes/balances.py — group summary handler.

Endpoints (url_prefix=/api/v1/groups):
  GET /groups/:id/summary  → 200  totals, per-member balances and status
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth
from backend.app.services import balance_service

balances_bp = Blueprint("balances", __name__)


@balances_bp.route("/<int:group_id>/summary", methods=["GET"])
@require_auth
def get_summary(group_id: int):
    """
    GET /groups/:id/summary

    Read-only; recomputed from the stored expenses on every call. Amounts are
    strings (see DecimalJSONProvider).
    """
    result = balance_service.get_group_summary(
        group_id=group_id,
        caller=g.caller,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
