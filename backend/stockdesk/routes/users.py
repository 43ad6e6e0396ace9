# Overview: Flask API routes for user management; parses input and returns JSON responses.

# backend/stockdesk/routes/users.py
"""
User management routes.

Admins manage every account; regular users may read their own record,
change their own password and see their own sales activity.
"""

from flask import Blueprint, request, jsonify, g

from ..models import User
from ..services import auth_service, users_service, reporting_service
from ..services.auth_service import AuthenticationError
from ..services.users_service import UserPolicyError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_user,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_admin

USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "email", "role", "branch", "status"},
    ignored_fields={"id", "created_at", "password", "password_hash"},
)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _is_self_or_admin(user_id: int) -> bool:
    return g.identity.is_admin or user_id == g.user_id


@users_bp.get("")
@require_auth
@require_admin
def list_users():
    """Query params: search (username/email), status, role."""
    users = users_service.list_users(
        search=request.args.get("search"),
        status=request.args.get("status"),
        role=request.args.get("role"),
    )
    return jsonify({"success": True, "count": len(users), "users": users}), 200


@users_bp.get("/<int:user_id>")
@require_auth
def get_user(user_id: int):
    if not _is_self_or_admin(user_id):
        return jsonify({"success": False, "error": "You do not have permission to view this user"}), 403

    user = users_service.get_user(user_id)
    if user is None:
        return jsonify({"success": False, "error": "User not found"}), 404
    return jsonify({"success": True, "user": user.to_dict()}), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role"),
            branch=data.get("branch"),
        )
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    return jsonify({
        "success": True,
        "message": "User created successfully",
        "userId": user.id,
    }), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_admin
def update_user(user_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
        enforce_rules_user(patch)
        updated = users_service.update_user(user_id, patch)
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except UserPolicyError as e:
        return jsonify({"success": False, "error": str(e)}), 403

    if updated is None:
        return jsonify({"success": False, "error": "User not found"}), 404
    return jsonify({"success": True, "message": "User updated successfully", "user": updated}), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def delete_user(user_id: int):
    try:
        deleted = users_service.delete_user(user_id, acting_user_id=g.user_id)
    except UserPolicyError as e:
        return jsonify({"success": False, "error": str(e)}), 403

    if not deleted:
        return jsonify({"success": False, "error": "User not found"}), 404
    return jsonify({"success": True, "message": "User deleted successfully"}), 200


@users_bp.put("/<int:user_id>/password")
@require_auth
def change_user_password(user_id: int):
    """
    Change a password. Users change their own (currentPassword required);
    admins may reset anyone else's without it.
    """
    if not _is_self_or_admin(user_id):
        return jsonify({"success": False, "error": "You can only change your own password"}), 403

    data = request.get_json(silent=True) or {}
    new_password = data.get("newPassword")
    if not new_password:
        return jsonify({"success": False, "error": "New password is required"}), 400

    user = users_service.get_user(user_id)
    if user is None:
        return jsonify({"success": False, "error": "User not found"}), 404

    current_password = None
    if user_id == g.user_id:
        current_password = data.get("currentPassword")
        if not current_password:
            return jsonify({"success": False, "error": "Current password is required"}), 400

    try:
        auth_service.change_password(user, new_password, current_password=current_password)
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except AuthenticationError as e:
        return jsonify({"success": False, "error": str(e)}), 401

    return jsonify({"success": True, "message": "Password updated successfully"}), 200


@users_bp.put("/<int:user_id>/status")
@require_auth
@require_admin
def set_user_status(user_id: int):
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if status not in ("active", "inactive"):
        return jsonify({"success": False, "error": 'Status must be "active" or "inactive"'}), 400

    try:
        updated = users_service.set_status(user_id, status, acting_user_id=g.user_id)
    except UserPolicyError as e:
        return jsonify({"success": False, "error": str(e)}), 403

    if updated is None:
        return jsonify({"success": False, "error": "User not found"}), 404
    return jsonify({"success": True, "message": f"User status updated to {status}", "user": updated}), 200


@users_bp.get("/stats/overview")
@require_auth
@require_admin
def users_overview():
    return jsonify({"success": True, "stats": reporting_service.user_overview()}), 200


@users_bp.get("/<int:user_id>/activity")
@require_auth
def user_activity(user_id: int):
    if not _is_self_or_admin(user_id):
        return jsonify({
            "success": False,
            "error": "You do not have permission to view this user's activity",
        }), 403

    user = users_service.get_user(user_id)
    if user is None:
        return jsonify({"success": False, "error": "User not found"}), 404

    return jsonify({
        "success": True,
        "user": user.to_dict(),
        "activity": reporting_service.user_activity(user_id),
    }), 200
