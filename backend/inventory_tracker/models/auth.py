from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Usernames are stored trimmed and lower-cased; uniqueness is enforced on the
    normalized form. Accounts are created by registration and never updated
    or deleted here.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(255), nullable=False, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    # User, Admin or SuperUser (see permissions.roles)
    role = db.Column(db.String(32), nullable=False, default="User")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer tokens issued at login.

    Only the SHA-256 hash of the token is stored. The role is captured at login
    and stays fixed for the session lifetime.
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    role = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
