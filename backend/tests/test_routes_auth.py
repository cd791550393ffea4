"""
Auth API tests: register, login, logout, me.
"""

from conftest import auth_headers, get_auth_token


class TestRegister:

    def test_register_returns_201_with_role_user(self, client, db_session):
        resp = client.post("/api/register", json={"email": "New@Example.com", "password": "pw"})
        assert resp.status_code == 201
        assert resp.json["user"]["username"] == "new@example.com"
        assert resp.json["user"]["role"] == "User"
        assert "password" not in resp.json["user"]
        assert "password_hash" not in resp.json["user"]

    def test_register_ignores_requested_role(self, client, db_session):
        resp = client.post("/api/register", json={"email": "x@example.com", "password": "pw", "role": "Admin"})
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "User"

    def test_duplicate_registration_409(self, client, db_session):
        client.post("/api/register", json={"username": "dup", "password": "pw"})
        resp = client.post("/api/register", json={"username": " DUP ", "password": "pw2"})
        assert resp.status_code == 409

    def test_missing_fields_400(self, client, db_session):
        assert client.post("/api/register", json={"email": "a@b.c"}).status_code == 400
        assert client.post("/api/register", json={}).status_code == 400
        assert client.post("/api/register", data="not json").status_code == 400

    def test_password_over_72_bytes_400(self, client, db_session):
        resp = client.post("/api/register", json={"email": "long@example.com", "password": "x" * 100})
        assert resp.status_code == 400


class TestLogin:

    def test_login_returns_token_role_and_capabilities(self, client, make_user):
        make_user("boss@example.com", role="Admin")
        resp = client.post("/api/login", json={"email": "boss@example.com", "password": "Password123!"})
        assert resp.status_code == 200
        assert resp.json["token"]
        assert resp.json["role"] == "Admin"
        assert resp.json["capabilities"] == ["Add", "Delete", "Edit", "View"]

    def test_wrong_password_and_unknown_user_look_the_same(self, client, make_user):
        make_user("erin@example.com")
        wrong = client.post("/api/login", json={"email": "erin@example.com", "password": "nope"})
        unknown = client.post("/api/login", json={"email": "ghost@example.com", "password": "nope"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json == unknown.json == {"error": "Invalid credentials"}

    def test_missing_fields_400(self, client, db_session):
        assert client.post("/api/login", json={"email": "a@b.c"}).status_code == 400

    def test_long_password_401_whether_or_not_user_exists(self, client, make_user):
        make_user("erin@example.com")
        known = client.post("/api/login", json={"email": "erin@example.com", "password": "x" * 100})
        unknown = client.post("/api/login", json={"email": "ghost@example.com", "password": "x" * 100})
        assert known.status_code == unknown.status_code == 401
        assert known.json == unknown.json == {"error": "Invalid credentials"}


class TestSession:

    def test_me_returns_session_context(self, client, superuser_headers):
        resp = client.get("/api/me", headers=superuser_headers)
        assert resp.status_code == 200
        assert resp.json["username"] == "super@example.com"
        assert resp.json["role"] == "SuperUser"
        assert resp.json["capabilities"] == ["Edit", "View"]

    def test_me_requires_token(self, client, db_session):
        assert client.get("/api/me").status_code == 401
        assert client.get("/api/me", headers=auth_headers("bogus")).status_code == 401

    def test_logout_revokes_token(self, client, make_user):
        make_user("out@example.com")
        token = get_auth_token(client, "out@example.com")
        headers = auth_headers(token)

        assert client.post("/api/logout", headers=headers).status_code == 200
        assert client.get("/api/me", headers=headers).status_code == 401
        assert client.get("/api/items", headers=headers).status_code == 401
