# Overview: Service-layer operations for user management.

from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..validation import ConflictError
from .auth_service import is_default_admin

USER_MUTABLE_FIELDS = {"username", "email", "role", "branch", "status"}


class UserPolicyError(Exception):
    """Operation refused for account-protection reasons (403)."""
    pass


def list_users(search: str | None = None, status: str | None = None, role: str | None = None) -> list[dict]:
    q = db.session.query(User)
    if search:
        term = f"%{search}%"
        q = q.filter(or_(User.username.ilike(term), User.email.ilike(term)))
    if status:
        q = q.filter(User.status == status)
    if role:
        q = q.filter(User.role == role)
    return [u.to_dict() for u in q.order_by(User.created_at.desc(), User.id.desc()).all()]


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def update_user(user_id: int, patch: dict) -> dict | None:
    """
    Apply a validated patch. The bootstrap admin cannot be demoted or
    deactivated.
    """
    user = db.session.get(User, user_id)
    if user is None:
        return None

    if is_default_admin(user) and (
        patch.get("role", "admin") != "admin" or patch.get("status", "active") != "active"
    ):
        raise UserPolicyError("Cannot modify the default admin account")

    for k, v in patch.items():
        if k in USER_MUTABLE_FIELDS:
            setattr(user, k, v)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Email or username already exists") from exc
    return user.to_dict()


def delete_user(user_id: int, *, acting_user_id: int) -> bool:
    """
    Delete an account. Its sales survive with user_id set to NULL.
    """
    user = db.session.get(User, user_id)
    if user is None:
        return False
    if is_default_admin(user):
        raise UserPolicyError("Cannot delete the default admin account")
    if user.id == acting_user_id:
        raise UserPolicyError("You cannot delete your own account")

    db.session.delete(user)
    db.session.commit()
    return True


def set_status(user_id: int, status: str, *, acting_user_id: int) -> dict | None:
    user = db.session.get(User, user_id)
    if user is None:
        return None
    if status != "active":
        if is_default_admin(user):
            raise UserPolicyError("Cannot deactivate the default admin account")
        if user.id == acting_user_id:
            raise UserPolicyError("You cannot deactivate your own account")

    user.status = status
    db.session.commit()
    return user.to_dict()
