"""
Tests for registration, login and the authentication gate.
"""

from datetime import timedelta

from bson import ObjectId

from campus_portal.core.security import create_access_token

PASSWORD = "password123"


def student_payload(**overrides):
    data = {
        "first_name": "Asha",
        "last_name": "Patil",
        "email": "Asha.Patil@College.edu",
        "password": PASSWORD,
        "role": "student",
        "student_id": "CE2021001",
        "department": "Computer Engineering",
        "year": 3,
    }
    data.update(overrides)
    return data


class TestRegister:

    def test_register_student(self, client):
        response = client.post("/api/auth/register", json=student_payload())
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["token"]
        user = body["data"]["user"]
        assert user["email"] == "asha.patil@college.edu"
        assert user["role"] == "student"
        assert user["is_active"] is True
        assert "password" not in user

    def test_register_faculty(self, client):
        response = client.post("/api/auth/register", json={
            "first_name": "Ravi",
            "last_name": "Kulkarni",
            "email": "ravi@college.edu",
            "password": PASSWORD,
            "role": "faculty",
            "department": "Mechanical Engineering",
        })
        assert response.status_code == 201
        assert response.json()["data"]["user"]["department"] == "Mechanical Engineering"

    def test_password_hash_cost_follows_app_settings(self, client, db, settings):
        settings.bcrypt_rounds = 5
        assert client.post("/api/auth/register", json=student_payload()).status_code == 201

        stored = db.users.find_one({"email": "asha.patil@college.edu"})
        assert stored["password"].startswith("$2b$05$")
        assert client.post(
            "/api/auth/login", json={"email": "asha.patil@college.edu", "password": PASSWORD}
        ).status_code == 200

    def test_duplicate_email_rejected(self, client):
        assert client.post("/api/auth/register", json=student_payload()).status_code == 201
        response = client.post(
            "/api/auth/register",
            json=student_payload(student_id="CE2021002", email="asha.patil@college.edu"),
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "already exists" in body["message"]

    def test_duplicate_student_id_rejected(self, client):
        assert client.post("/api/auth/register", json=student_payload()).status_code == 201
        response = client.post("/api/auth/register", json=student_payload(email="other@college.edu"))
        assert response.status_code == 400

    def test_student_without_student_id_rejected(self, client):
        payload = student_payload()
        del payload["student_id"]
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert any("student_id" in (e["field"] or "") for e in body["errors"])

    def test_faculty_without_department_rejected(self, client):
        response = client.post("/api/auth/register", json={
            "first_name": "Ravi",
            "last_name": "Kulkarni",
            "email": "ravi@college.edu",
            "password": PASSWORD,
            "role": "faculty",
        })
        assert response.status_code == 400

    def test_short_password_rejected_without_echo(self, client):
        response = client.post("/api/auth/register", json=student_payload(password="short"))
        assert response.status_code == 400
        assert "\"short\"" not in response.text

    def test_privileged_self_registration_refused(self, client):
        response = client.post("/api/auth/register", json={
            "first_name": "Root",
            "last_name": "Admin",
            "email": "root@college.edu",
            "password": PASSWORD,
            "role": "admin",
        })
        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_privileged_registration_when_enabled(self, client, settings):
        settings.allow_privileged_registration = True
        response = client.post("/api/auth/register", json={
            "first_name": "Placement",
            "last_name": "Cell",
            "email": "po@college.edu",
            "password": PASSWORD,
            "role": "placement_officer",
        })
        assert response.status_code == 201


class TestLogin:

    def test_login_success(self, client):
        client.post("/api/auth/register", json=student_payload())
        response = client.post("/api/auth/login", json={"email": "asha.patil@college.edu", "password": PASSWORD})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token"]
        assert data["user"]["last_login"] is not None

    def test_wrong_password(self, client):
        client.post("/api/auth/register", json=student_payload())
        response = client.post("/api/auth/login", json={"email": "asha.patil@college.edu", "password": "wrongpass1"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_unknown_email(self, client):
        response = client.post("/api/auth/login", json={"email": "nobody@college.edu", "password": PASSWORD})
        assert response.status_code == 401

    def test_deactivated_account_cannot_login(self, client, make_user):
        user, _ = make_user("student")
        _, admin_headers = make_user("admin")
        client.put(f"/api/users/{user['id']}/status", json={"is_active": False}, headers=admin_headers)

        response = client.post("/api/auth/login", json={"email": user["email"], "password": PASSWORD})
        assert response.status_code == 403


class TestAuthGate:

    def test_missing_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["message"] == "Access denied. No token provided."

    def test_garbage_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_expired_token(self, client, make_user, settings):
        user, _ = make_user("student")
        token = create_access_token({"sub": user["id"]}, settings, expires_delta=timedelta(minutes=-1))
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_token_for_deleted_user(self, client, settings):
        token = create_access_token({"sub": str(ObjectId())}, settings)
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["message"] == "Token is valid but user no longer exists"

    def test_token_signed_with_other_secret(self, client, make_user, settings):
        user, _ = make_user("student")
        forged = create_access_token({"sub": user["id"]}, settings.model_copy(update={"jwt_secret_key": "other"}))
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {forged}"})
        assert response.status_code == 401

    def test_me_returns_profile(self, client, make_user):
        user, headers = make_user("student")
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == user["id"]

    def test_deactivated_identity_blocked(self, client, make_user):
        user, headers = make_user("student")
        _, admin_headers = make_user("admin")
        client.put(f"/api/users/{user['id']}/status", json={"is_active": False}, headers=admin_headers)

        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Account deactivated"


class TestChangePassword:

    def test_change_password(self, client, make_user):
        user, headers = make_user("student")
        response = client.put(
            "/api/auth/password",
            json={"current_password": PASSWORD, "new_password": "newsecret99"},
            headers=headers,
        )
        assert response.status_code == 200

        login = client.post("/api/auth/login", json={"email": user["email"], "password": "newsecret99"})
        assert login.status_code == 200

    def test_wrong_current_password(self, client, make_user):
        _, headers = make_user("student")
        response = client.put(
            "/api/auth/password",
            json={"current_password": "not-my-pass", "new_password": "newsecret99"},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "current_password"
