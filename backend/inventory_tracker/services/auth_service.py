# Overview: Credential store; bcrypt hashing, registration and authentication.

"""
Authentication Service

WHY: Every inventory change must be attributable to a logged-in user.
Uses bcrypt for salted, slow password hashing.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Plaintext passwords are never stored or logged
- Usernames are normalized (trimmed, lower-cased) before every lookup
- Login failures are indistinguishable: unknown username and wrong password
  raise the same InvalidCredentialsError and cost the same bcrypt work
- Session tokens managed separately (see session_service.py)
"""

import logging

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..permissions import Role, normalize_role
from ..time_utils import utcnow
from ..validation import DuplicateUserError, InvalidCredentialsError, ValidationError
from .concurrency import serialized_write, read_guard

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72

# Hash checked against when the username does not exist, keyed by cost factor
_dummy_hashes: dict[int, bytes] = {}


def normalize_username(username) -> str:
    """Trim and lower-case a username. None becomes the empty string."""
    if username is None:
        return ""
    return str(username).strip().lower()


def password_too_long(password) -> bool:
    return len((password or "").encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """
    Hash password using bcrypt.

    WHY: bcrypt salts every hash and its cost factor slows down brute force.
    """
    if not password:
        raise ValidationError("Password is required")
    if password_too_long(password):
        raise ValidationError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including a
    malformed stored hash).

    WHY timing-safe: bcrypt.checkpw() compares in constant time.
    """
    if not password or not password_hash or password_too_long(password):
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash (e.g. legacy unsalted digest)
        return False


def _burn_dummy_check(password: str, rounds: int) -> None:
    """Spend the same bcrypt work as a real check so unknown users are not detectable by timing."""
    dummy = _dummy_hashes.get(rounds)
    if dummy is None:
        dummy = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=rounds))
        _dummy_hashes[rounds] = dummy
    bcrypt.checkpw((password or "").encode('utf-8'), dummy)


class CredentialStore:
    """
    Database-backed credential store.

    register() and authenticate() return plain user dicts
    ({id, username, role, ...}) so callers stay backend-agnostic.
    """

    def __init__(self, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.bcrypt_rounds = bcrypt_rounds

    def register(self, username: str, password: str, role: str = Role.USER) -> dict:
        """
        Create a new user with a bcrypt password hash.

        Self-registration always yields role User; the role argument exists
        for administrative creation (CLI).

        Raises:
            ValidationError: username or password empty
            DuplicateUserError: normalized username already registered
        """
        normalized = normalize_username(username)
        if not normalized:
            raise ValidationError("Username is required")
        if not password:
            raise ValidationError("Password is required")
        if password_too_long(password):
            raise ValidationError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")

        password_hash = hash_password(password, rounds=self.bcrypt_rounds)

        with serialized_write():
            existing = db.session.query(User).filter_by(username=normalized).first()
            if existing:
                raise DuplicateUserError("User already exists")

            user = User(
                username=normalized,
                password_hash=password_hash,
                role=normalize_role(role),
            )
            db.session.add(user)
            try:
                db.session.commit()
            except IntegrityError as exc:
                # Lost a race with another process on the unique index
                db.session.rollback()
                raise DuplicateUserError("User already exists") from exc

        logger.info("Registered user %s with role %s", user.username, user.role)
        return user.to_dict()

    def authenticate(self, username: str, password: str) -> dict:
        """
        Authenticate user with username and password.

        Returns the stored user dict (role included) and stamps last_login_at.

        Raises:
            InvalidCredentialsError: unknown username or wrong password
        """
        if password_too_long(password):
            logger.info("Failed login attempt")
            raise InvalidCredentialsError()

        normalized = normalize_username(username)
        user = read_guard(
            lambda: db.session.query(User).filter_by(username=normalized).first()
        ) if normalized else None

        if user is None:
            _burn_dummy_check(password, self.bcrypt_rounds)
            logger.info("Failed login attempt")
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            logger.info("Failed login attempt")
            raise InvalidCredentialsError()

        with serialized_write():
            user.last_login_at = utcnow()
            db.session.commit()

        return user.to_dict()

    def get_user(self, user_id: int) -> dict | None:
        user = read_guard(lambda: db.session.get(User, user_id))
        return user.to_dict() if user else None
