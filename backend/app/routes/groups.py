"""
routes/groups.py — group and member route handlers.

Parse, validate, call one service, commit, return the envelope. No business
logic and no queries here.

Endpoints (url_prefix=/api/v1/groups):
  POST   /groups                           → 201  create group
  GET    /groups                           → 200  list caller's groups
  GET    /groups/:id                       → 200  group + members
  DELETE /groups/:id                       → 200  delete group (owner only)
  POST   /groups/:id/members               → 201  add registered or guest member
  DELETE /groups/:id/members/:member_id    → 200  remove member (owner or self)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth
from backend.app.schemas.group_schema import AddMemberSchema, CreateGroupSchema
from backend.app.services import group_service

groups_bp = Blueprint("groups", __name__)


@groups_bp.route("/", methods=["POST"])
@require_auth
def create_group():
    """POST /groups — Caller becomes owner and first member."""
    data = CreateGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.create_group(
        name=data["name"].strip(),
        caller=g.caller,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/", methods=["GET"])
@require_auth
def list_groups():
    result = group_service.list_groups(
        caller=g.caller,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["GET"])
@require_auth
def get_group(group_id: int):
    result = group_service.get_group(
        group_id=group_id,
        caller=g.caller,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["DELETE"])
@require_auth
def delete_group(group_id: int):
    """DELETE /groups/:id — Removes the group with its members and expenses."""
    group_service.delete_group(
        group_id=group_id,
        caller=g.caller,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "group_id": group_id,
        },
        "warnings": [],
    }), 200


@groups_bp.route("/<int:group_id>/members", methods=["POST"])
@require_auth
def add_member(group_id: int):
    """POST /groups/:id/members — {"user_id": ...} or {"display_name": ...}."""
    data = AddMemberSchema().load(request.get_json(force=True) or {})
    result = group_service.add_member(
        group_id=group_id,
        caller=g.caller,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<int:group_id>/members/<int:member_id>", methods=["DELETE"])
@require_auth
def remove_member(group_id: int, member_id: int):
    """DELETE /groups/:id/members/:member_id — Owner removes anyone; member removes self."""
    group_service.remove_member(
        group_id=group_id,
        caller=g.caller,
        member_id=member_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "removed": True,
            "group_id": group_id,
            "member_id": member_id,
        },
        "warnings": [],
    }), 200
