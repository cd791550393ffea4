"""
Credential store tests.

Verifies:
- Registration stores a bcrypt hash, never the plaintext
- Usernames are normalized before uniqueness checks
- Unknown user and wrong password fail identically
- Passwords past bcrypt's 72-byte limit are rejected, never crash
- Concurrent registrations of one username yield a single account
"""

import threading

import pytest

from inventory_tracker import create_app
from inventory_tracker.extensions import db
from inventory_tracker.models import User
from inventory_tracker.permissions import Role
from inventory_tracker.services.auth_service import (
    CredentialStore,
    MAX_PASSWORD_BYTES,
    hash_password,
    normalize_username,
    verify_password,
)
from inventory_tracker.validation import (
    DuplicateUserError,
    InvalidCredentialsError,
    ValidationError,
)


class TestPasswordHashing:

    def test_hash_is_bcrypt_and_salted(self):
        first = hash_password("s3cret", rounds=4)
        second = hash_password("s3cret", rounds=4)
        assert first.startswith("$2")
        assert first != second
        assert verify_password("s3cret", first)
        assert verify_password("s3cret", second)

    def test_wrong_password_does_not_verify(self):
        hashed = hash_password("s3cret", rounds=4)
        assert not verify_password("S3cret", hashed)

    def test_malformed_hash_does_not_verify(self):
        assert not verify_password("s3cret", "5f4dcc3b5aa765d61d8327deb882cf99")

    def test_empty_password_rejected(self):
        with pytest.raises(ValidationError):
            hash_password("", rounds=4)

    def test_normalize_username(self):
        assert normalize_username("  Alice@Example.COM ") == "alice@example.com"
        assert normalize_username(None) == ""


class TestRegister:

    def test_register_creates_user_with_role_user(self, credential_store):
        user = credential_store.register("Alice", "pw-alice")
        assert user["username"] == "alice"
        assert user["role"] == Role.USER

        stored = db.session.query(User).filter_by(username="alice").one()
        assert stored.password_hash != "pw-alice"
        assert verify_password("pw-alice", stored.password_hash)

    def test_register_with_explicit_role(self, credential_store):
        user = credential_store.register("boss", "pw", role="admin")
        assert user["role"] == Role.ADMIN

    def test_unknown_role_falls_back_to_user(self, credential_store):
        user = credential_store.register("someone", "pw", role="Janitor")
        assert user["role"] == Role.USER

    @pytest.mark.parametrize("username,password", [
        ("", "pw"),
        ("   ", "pw"),
        ("bob", ""),
        (None, "pw"),
    ])
    def test_empty_credentials_rejected(self, credential_store, username, password):
        with pytest.raises(ValidationError):
            credential_store.register(username, password)
        assert db.session.query(User).count() == 0

    def test_duplicate_normalized_username_rejected(self, credential_store):
        credential_store.register("carol", "pw1")
        with pytest.raises(DuplicateUserError):
            credential_store.register("  CAROL ", "pw2")

        assert db.session.query(User).filter_by(username="carol").count() == 1
        # The original password still works
        assert credential_store.authenticate("carol", "pw1")["username"] == "carol"


class TestAuthenticate:

    def test_correct_password_returns_user_with_role(self, credential_store):
        credential_store.register("dave", "pw-dave", role=Role.SUPERUSER)
        user = credential_store.authenticate("DAVE", "pw-dave")
        assert user["username"] == "dave"
        assert user["role"] == Role.SUPERUSER
        assert user["last_login_at"] is not None

    def test_wrong_password_fails(self, credential_store):
        credential_store.register("erin", "right")
        with pytest.raises(InvalidCredentialsError) as exc_info:
            credential_store.authenticate("erin", "wrong")
        assert str(exc_info.value) == "Invalid credentials"

    def test_unknown_user_fails_with_same_message(self, credential_store):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            credential_store.authenticate("nobody", "whatever")
        assert str(exc_info.value) == "Invalid credentials"

    def test_empty_username_fails(self, credential_store):
        with pytest.raises(InvalidCredentialsError):
            credential_store.authenticate("", "whatever")


class TestPasswordLength:

    def test_hash_rejects_password_over_72_bytes(self):
        with pytest.raises(ValidationError):
            hash_password("x" * (MAX_PASSWORD_BYTES + 1), rounds=4)

    def test_limit_counts_utf8_bytes(self):
        # 36 two-byte characters fit exactly; one more does not
        assert verify_password("é" * 36, hash_password("é" * 36, rounds=4))
        with pytest.raises(ValidationError):
            hash_password("é" * 37, rounds=4)

    def test_register_long_password_is_validation_error(self, credential_store):
        with pytest.raises(ValidationError):
            credential_store.register("alice", "x" * 100)
        assert db.session.query(User).count() == 0

    def test_long_password_fails_the_same_for_known_and_unknown_user(self, credential_store):
        credential_store.register("erin", "right")

        with pytest.raises(InvalidCredentialsError) as known:
            credential_store.authenticate("erin", "x" * 100)
        with pytest.raises(InvalidCredentialsError) as unknown:
            credential_store.authenticate("ghost", "x" * 100)
        assert str(known.value) == str(unknown.value) == "Invalid credentials"


def test_concurrent_registration_creates_one_user(tmp_path):
    """Parallel registrations of one username: one account, the rest DuplicateUserError."""
    file_app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'register.sqlite3'}",
        'BCRYPT_ROUNDS': 4,
    })
    with file_app.app_context():
        db.create_all()

    workers = 8
    barrier = threading.Barrier(workers)
    outcomes = []
    outcomes_lock = threading.Lock()

    def register():
        with file_app.app_context():
            barrier.wait()
            try:
                CredentialStore(bcrypt_rounds=4).register("bob", "pw-bob")
                outcome = "created"
            except DuplicateUserError:
                outcome = "duplicate"
            except Exception as exc:  # surfaced through the assertion below
                outcome = repr(exc)
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=register) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["created"] + ["duplicate"] * (workers - 1)

    with file_app.app_context():
        assert db.session.query(User).filter_by(username="bob").count() == 1
        db.session.remove()
        db.engine.dispose()
