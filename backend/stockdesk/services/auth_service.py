# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Identity is handed to the rest of the system as an opaque (user id, role)
pair carried in a signed bearer token; sales and reports never re-derive it.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 6 characters required
- Tokens are HS256 JWTs signed with JWT_SECRET, expiring after JWT_EXPIRES_HOURS
- Inactive accounts cannot log in
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError, enforce_rules_user, validate_password


class AuthenticationError(Exception):
    """Bad credentials or unusable token (401)."""
    pass


class AccountInactiveError(AuthenticationError):
    """Credentials are right but the account is deactivated (403)."""
    pass


@dataclass(frozen=True)
class Identity:
    """What an authenticated request knows about its caller."""
    user_id: int
    role: str
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for length before hashing.
    """
    validate_password(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including
    malformed hashes).
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    role: str | None = None,
    branch: str | None = None,
    status: str = "active",
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises ValidationError for bad input and ConflictError when the username
    or email is taken.
    """
    username = (username or "").strip()
    email = (email or "").strip()
    if not username or not email or not password:
        raise ValidationError("Username, email, and password are required")

    fields = {"email": email, "role": role or "user", "status": status}
    enforce_rules_user(fields)

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=fields["role"],
        branch=(branch or "").strip() or "Main",
        status=status,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Email or username already exists") from exc
    return user


def authenticate(email: str, password: str) -> User:
    """Return the user for valid credentials or raise AuthenticationError."""
    user = db.session.query(User).filter_by(email=(email or "").strip()).first()
    if user is None or not verify_password(password or "", user.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AccountInactiveError("Your account has been deactivated. Please contact admin.")
    return user


def issue_token(user: User) -> str:
    config = current_app.config
    now = utcnow().replace(tzinfo=timezone.utc)
    claims = {
        "id": user.id,
        "role": user.role,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(hours=config["JWT_EXPIRES_HOURS"]),
    }
    return jwt.encode(claims, config["JWT_SECRET"], algorithm=config["JWT_ALGORITHM"])


def decode_token(token: str) -> Identity:
    config = current_app.config
    try:
        claims = jwt.decode(token, config["JWT_SECRET"], algorithms=[config["JWT_ALGORITHM"]])
    except jwt.PyJWTError as exc:
        raise AuthenticationError("Invalid or expired token. Please login again.") from exc

    user_id = claims.get("id")
    role = claims.get("role")
    if not isinstance(user_id, int) or not role:
        raise AuthenticationError("Invalid or expired token. Please login again.")
    return Identity(user_id=user_id, role=role, email=claims.get("email"))


def resolve_identity(token: str) -> Identity:
    """
    Decode a bearer token and confirm its account still exists.

    Tokens outlive account deletion, so the user row is looked up on every
    request.
    """
    identity = decode_token(token)
    if db.session.get(User, identity.user_id) is None:
        raise AuthenticationError("User no longer exists. Please login again.")
    return identity


def change_password(user: User, new_password: str, current_password: str | None = None) -> None:
    """
    Replace a user's password.

    current_password is checked when given; admins resetting someone
    else's password pass None.
    """
    validate_password(new_password, field="New password")
    if current_password is not None and not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()


def ensure_default_admin() -> User | None:
    """
    Create the bootstrap admin account if its email is not registered yet.

    Returns the created user, or None when it already existed.
    """
    config = current_app.config
    email = config["DEFAULT_ADMIN_EMAIL"]
    if db.session.query(User.id).filter_by(email=email).first() is not None:
        return None

    user = create_user(
        username=config["DEFAULT_ADMIN_USERNAME"],
        email=email,
        password=config["DEFAULT_ADMIN_PASSWORD"],
        role="admin",
        branch="HQ",
    )
    current_app.logger.info("Default admin user created (%s)", email)
    return user


def is_default_admin(user: User) -> bool:
    return user.email == current_app.config["DEFAULT_ADMIN_EMAIL"]
