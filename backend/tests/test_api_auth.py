"""
Authentication API tests.

Verifies:
- Login returns a bearer token that works on protected routes
- Bad credentials are 401 with a distinguishable kind
- Logout revokes the token
- Only admins can create accounts
"""

from conftest import ADMIN_PASSWORD, auth_headers


def _login(client, username, password):
    return client.post('/api/auth/login', json={'username': username, 'password': password})


class TestLogin:

    def test_login_success(self, client, admin_user):
        resp = _login(client, "admin", ADMIN_PASSWORD)
        assert resp.status_code == 200

        data = resp.get_json()
        assert data["user"]["username"] == "admin"
        assert data["user"]["role"] == "admin"
        assert "password_hash" not in data["user"]
        assert len(data["token"]) == 64

    def test_token_grants_access(self, client, admin_user):
        token = _login(client, "admin", ADMIN_PASSWORD).get_json()["token"]
        resp = client.get('/api/auth/me', headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.get_json()["user"]["username"] == "admin"

    def test_wrong_password(self, client, admin_user):
        resp = _login(client, "admin", "nope-nope")
        assert resp.status_code == 401
        assert resp.get_json()["kind"] == "authentication_error"

    def test_unknown_user(self, client, db_session):
        resp = _login(client, "ghost", "whatever")
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        resp = client.post('/api/auth/login', json={'username': 'admin'})
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "validation_error"

    def test_inactive_user_cannot_login(self, client, admin_user, db_session):
        admin_user.is_active = False
        db_session.commit()
        assert _login(client, "admin", ADMIN_PASSWORD).status_code == 401


class TestSession:

    def test_missing_token(self, client, db_session):
        resp = client.get('/api/auth/me')
        assert resp.status_code == 401
        assert resp.get_json()["kind"] == "authentication_error"

    def test_garbage_token(self, client, db_session):
        resp = client.get('/api/auth/me', headers=auth_headers("not-a-token"))
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, admin_headers):
        assert client.post('/api/auth/logout', headers=admin_headers).status_code == 200
        assert client.get('/api/auth/me', headers=admin_headers).status_code == 401


class TestRegister:

    def test_admin_creates_cashier(self, client, admin_headers):
        resp = client.post('/api/auth/register', headers=admin_headers, json={
            'username': 'sana', 'password': 'attar-2026', 'display_name': 'Sana',
        })
        assert resp.status_code == 201
        assert resp.get_json()["user"]["role"] == "cashier"

        login = _login(client, "sana", "attar-2026")
        assert login.status_code == 200

    def test_duplicate_username(self, client, admin_headers):
        resp = client.post('/api/auth/register', headers=admin_headers, json={
            'username': 'admin', 'password': 'attar-2026', 'display_name': 'Again',
        })
        assert resp.status_code == 409

    def test_unknown_role(self, client, admin_headers):
        resp = client.post('/api/auth/register', headers=admin_headers, json={
            'username': 'x', 'password': 'attar-2026', 'display_name': 'X', 'role': 'owner',
        })
        assert resp.status_code == 400

    def test_short_password(self, client, admin_headers):
        resp = client.post('/api/auth/register', headers=admin_headers, json={
            'username': 'x', 'password': '123', 'display_name': 'X',
        })
        assert resp.status_code == 400

    def test_cashier_cannot_register(self, client, cashier_headers):
        resp = client.post('/api/auth/register', headers=cashier_headers, json={
            'username': 'x', 'password': 'attar-2026', 'display_name': 'X',
        })
        assert resp.status_code == 403
