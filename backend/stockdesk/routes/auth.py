# Overview: Flask API routes for authentication; parses input and returns JSON responses.

"""
Authentication routes

- POST /api/auth/register         create an account
- POST /api/auth/login            exchange email + password for a bearer token
- GET  /api/auth/me               current user's profile
- PUT  /api/auth/change-password  change own password
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import User
from ..services import auth_service
from ..services.auth_service import AuthenticationError, AccountInactiveError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register():
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
        "message": "User registered successfully",
        "userId": user.id,
    }), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"success": False, "error": "Email and password are required"}), 400

    try:
        user = auth_service.authenticate(email, password)
        token = auth_service.issue_token(user)
    except AccountInactiveError as e:
        return jsonify({"success": False, "error": str(e)}), 403
    except AuthenticationError as e:
        return jsonify({"success": False, "error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"success": False, "error": "Database error occurred"}), 500

    return jsonify({
        "success": True,
        "message": "Login successful",
        "token": token,
        "user": user.to_dict(),
    }), 200


@auth_bp.get("/me")
@require_auth
def me():
    user = db.session.get(User, g.user_id)
    if user is None:
        return jsonify({"success": False, "error": "User not found"}), 404
    return jsonify({"success": True, "user": user.to_dict()}), 200


@auth_bp.put("/change-password")
@require_auth
def change_password():
    data = request.get_json(silent=True) or {}
    current_password = data.get("currentPassword")
    new_password = data.get("newPassword")

    if not current_password or not new_password:
        return jsonify({
            "success": False,
            "error": "Current password and new password are required",
        }), 400

    user = db.session.get(User, g.user_id)
    if user is None:
        return jsonify({"success": False, "error": "User not found"}), 404

    try:
        auth_service.change_password(user, new_password, current_password=current_password)
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except AuthenticationError as e:
        return jsonify({"success": False, "error": str(e)}), 401

    return jsonify({"success": True, "message": "Password updated successfully"}), 200
