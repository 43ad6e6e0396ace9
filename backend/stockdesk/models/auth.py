from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

USER_ROLES = ("admin", "user")
USER_STATUSES = ("active", "inactive")


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Every sale records the user that rang it up; deleting a user keeps the
    sale and nulls the reference.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("role IN ('admin', 'user')", name="ck_users_role"),
        db.CheckConstraint("status IN ('active', 'inactive')", name="ck_users_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default="user")
    branch = db.Column(db.String(120), nullable=False, default="Main")
    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "branch": self.branch,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
