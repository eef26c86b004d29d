"""
routes/expenses.py — expense route handlers.

Registered at url_prefix=/api/v1 because this blueprint owns both the
group-scoped paths (/groups/:id/expenses) and the expense-id paths
(/expenses/:id).

Parse, validate, call one service, commit, return the envelope.
_serialize_expense() only shapes data.

Endpoints:
  POST   /groups/:id/expenses   → 201  create expense
  GET    /groups/:id/expenses   → 200  list expenses
  GET    /expenses/:id          → 200  expense + splits
  PATCH  /expenses/:id          → 200  partial update (payer only)
  DELETE /expenses/:id          → 200  delete (payer only)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth
from backend.app.models.expense import Expense
from backend.app.schemas.expense_schema import CreateExpenseSchema, PatchExpenseSchema
from backend.app.services import expense_service

expenses_bp = Blueprint("expenses", __name__)


# ── Serialization helper ───────────────────────────────────────────────────

def _serialize_expense(expense: Expense) -> dict:
    """Amounts and percentages are sent as strings."""
    return {
        "id":               expense.id,
        "group_id":         expense.group_id,
        "paid_by_user_id":  expense.paid_by_user_id,
        "paid_by_username": expense.payer.username,
        "description":      expense.description,
        "amount":           str(expense.amount),
        "category":         expense.category.value,
        "split_policy":     expense.split_policy.value,
        "expense_date":     expense.expense_date.isoformat(),
        "created_at":       expense.created_at.isoformat() if expense.created_at else None,
        "updated_at":       expense.updated_at.isoformat() if expense.updated_at else None,
        "splits": [
            {
                "member_id":       s.member_id,
                "user_id":         s.user_id,
                "display_name":    s.display_name,
                "owed_amount":     str(s.owed_amount),
                "owed_percentage": (
                    str(s.owed_percentage) if s.owed_percentage is not None else None
                ),
            }
            for s in expense.splits
        ],
    }


# ── Group-scoped expense routes ────────────────────────────────────────────

@expenses_bp.route("/groups/<int:group_id>/expenses", methods=["POST"])
@require_auth
def create_expense(group_id: int):
    data = CreateExpenseSchema().load(request.get_json(force=True) or {})
    expense = expense_service.create_expense(
        group_id=group_id,
        caller=g.caller,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 201


@expenses_bp.route("/groups/<int:group_id>/expenses", methods=["GET"])
@require_auth
def list_expenses(group_id: int):
    """GET /groups/:id/expenses — newest first."""
    expenses = expense_service.list_expenses(
        group_id=group_id,
        caller=g.caller,
        session=db.session,
    )
    return jsonify({
        "data": [_serialize_expense(e) for e in expenses],
        "warnings": [],
    }), 200


# ── Expense-ID routes ──────────────────────────────────────────────────────

@expenses_bp.route("/expenses/<int:expense_id>", methods=["GET"])
@require_auth
def get_expense(expense_id: int):
    expense = expense_service.get_expense(
        expense_id=expense_id,
        caller=g.caller,
        session=db.session,
    )
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 200


@expenses_bp.route("/expenses/<int:expense_id>", methods=["PATCH"])
@require_auth
def update_expense(expense_id: int):
    """PATCH /expenses/:id — splits are recomputed when amount, policy or splits change."""
    data = PatchExpenseSchema().load(request.get_json(force=True) or {})
    expense = expense_service.update_expense(
        expense_id=expense_id,
        caller=g.caller,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_expense(expense), "warnings": []}), 200


@expenses_bp.route("/expenses/<int:expense_id>", methods=["DELETE"])
@require_auth
def delete_expense(expense_id: int):
    expense_service.delete_expense(
        expense_id=expense_id,
        caller=g.caller,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "expense_id": expense_id,
        },
        "warnings": [],
    }), 200
