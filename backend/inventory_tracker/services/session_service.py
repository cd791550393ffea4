# Overview: Session token management and the explicit session context.

"""
Session Token Management Service

WHY: The authenticated role must travel as an explicit value, not as ambient
process-wide state. Login yields a bearer token; validating it yields a
SessionContext that is handed to the list controller and the authorization
policy. Logout revokes the token.

SECURITY FEATURES:
- 256-bit random bearer tokens from the secrets module
- Only the SHA-256 digest of a token reaches the database
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS, default 24)
- Idle timeout (SESSION_IDLE_TIMEOUT_HOURS, default 2)
- Revocable on logout
- Role is captured at login and immutable for the session lifetime
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import timedelta

from jose import JWTError, jwt

from ..extensions import db
from ..models import SessionToken, User
from ..permissions import DEFAULT_ROLE, capabilities, normalize_role
from ..time_utils import utcnow
from .concurrency import serialized_write


DEFAULT_ABSOLUTE_TIMEOUT = timedelta(hours=24)
DEFAULT_IDLE_TIMEOUT = timedelta(hours=2)


@dataclass(frozen=True)
class SessionContext:
    """
    Who is acting and what they may do.

    Computed once per login (or per validated request) from the
    authenticated user's role. Not persisted.
    """
    user_id: int | None
    username: str
    role: str
    capabilities: frozenset = field(default_factory=frozenset)
    token: str | None = field(default=None, repr=False)

    @classmethod
    def for_role(cls, role, *, user_id=None, username="", token=None) -> "SessionContext":
        canonical = normalize_role(role)
        return cls(
            user_id=user_id,
            username=username,
            role=canonical,
            capabilities=capabilities(canonical),
            token=token,
        )

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "role": self.role,
            "capabilities": sorted(self.capabilities),
        }


def generate_token() -> str:
    """New bearer token as 64 hex chars. Handed to the client once, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Digest stored in session_tokens.token_hash.

    Tokens carry 256 random bits, so a plain SHA-256 is enough; bcrypt is for passwords.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def role_from_token(token: str | None) -> str:
    """
    Read the role claim from a JWT issued by the remote inventory API.

    The payload is decoded without signature verification: the API verifies
    its own tokens, and the role only decides which affordances are shown.
    Any decode failure yields the default role.
    """
    if not token:
        return DEFAULT_ROLE
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return DEFAULT_ROLE
    return normalize_role(claims.get("role"))


def create_session(
    user_id: int,
    *,
    absolute_timeout: timedelta = DEFAULT_ABSOLUTE_TIMEOUT,
) -> tuple[SessionContext, SessionToken]:
    """
    Create new session token for user.

    Returns (context, session_record). The plaintext token is only available
    on context.token; the database stores its hash.

    Raises ValueError if the user does not exist.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()
    role = normalize_role(user.role)

    with serialized_write():
        session = SessionToken(
            user_id=user.id,
            token_hash=hash_token(plaintext_token),
            role=role,
            created_at=now,
            last_used_at=now,
            expires_at=now + absolute_timeout,
            is_revoked=False,
        )
        db.session.add(session)
        db.session.commit()

    context = SessionContext.for_role(
        role, user_id=user.id, username=user.username, token=plaintext_token
    )
    return context, session


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(
    token: str,
    *,
    idle_timeout: timedelta = DEFAULT_IDLE_TIMEOUT,
) -> SessionContext | None:
    """
    Resolve a bearer token to its SessionContext, or None when it is unusable.

    Returns None if the token is unknown, expired, idle too long or revoked.
    A successful lookup bumps last_used_at, which drives the idle timeout.
    """
    if not token:
        return None

    now = utcnow()
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > idle_timeout:
        with serialized_write():
            _revoke(session, "Idle timeout")
            db.session.commit()
        return None

    user = session.user
    if user is None:
        return None

    with serialized_write():
        session.last_used_at = now
        db.session.commit()

    return SessionContext.for_role(
        session.role, user_id=user.id, username=user.username, token=token
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    True when a live session was revoked; False for unknown or already revoked tokens.
    """
    if not token:
        return False

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    with serialized_write():
        _revoke(session, reason)
        db.session.commit()
    return True
