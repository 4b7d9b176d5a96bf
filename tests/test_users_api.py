"""Authentication, user management and inactive-account housekeeping."""
from datetime import datetime, timedelta, timezone

from sqlmodel import select

from app.models import User, UserRole
from app.services.accounts import deactivate_inactive_users

API = "/api/v1"
TEST_PASSWORD = "testpassword123"


def days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


class TestLogin:
    def test_login_returns_token_and_stamps_last_login(self, client, session, planning_user):
        response = client.post(
            f"{API}/auth/login", data={"username": planning_user.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert "access_token" in response.headers["set-cookie"]
        session.refresh(planning_user)
        assert planning_user.last_login is not None

        me = client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["division"] == "PLANNING"

    def test_wrong_password(self, client, planning_user):
        response = client.post(f"{API}/auth/login", data={"username": planning_user.email, "password": "nope"})

        assert response.status_code == 401

    def test_inactive_user_is_refused(self, client, make_user):
        user = make_user("inactive@example.com", [UserRole.CONTROLLER], division="PLANNING", is_active=False)

        response = client.post(f"{API}/auth/login", data={"username": user.email, "password": TEST_PASSWORD})

        assert response.status_code == 403

    def test_inactive_user_token_is_refused(self, client, make_user, headers_for):
        user = make_user("inactive@example.com", [UserRole.OWNER], is_active=False)

        response = client.get(f"{API}/users/me", headers=headers_for(user))

        assert response.status_code == 403

    def test_invalid_token(self, client):
        response = client.get(f"{API}/users/me", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 403

    def test_logout_clears_cookie(self, client):
        response = client.get(f"{API}/auth/logout", follow_redirects=False)

        assert response.status_code == 307
        assert "access_token" in response.headers["set-cookie"]


class TestUserManagement:
    def test_admin_creates_user(self, client, session, admin_headers):
        payload = {
            "email": "new@example.com",
            "password": "secret123",
            "full_name": "New Controller",
            "roles": ["controller"],
            "division": "deployment",
            "position": "Engineer",
        }

        response = client.post(f"{API}/users", headers=admin_headers, json=payload)

        assert response.status_code == 200
        body = response.json()
        assert body["division"] == "DEPLOYMENT"
        assert body["roles"] == ["controller"]
        assert body["is_active"] is True
        assert "password" not in body
        user = session.exec(select(User).where(User.email == "new@example.com")).one()
        assert user.is_controller

    def test_unknown_division(self, client, admin_headers):
        payload = {"email": "new@example.com", "password": "secret123", "division": "SALES"}

        response = client.post(f"{API}/users", headers=admin_headers, json=payload)

        assert response.status_code == 422

    def test_duplicate_email(self, client, admin_headers, planning_user):
        payload = {"email": planning_user.email, "password": "secret123"}

        response = client.post(f"{API}/users", headers=admin_headers, json=payload)

        assert response.status_code == 400

    def test_non_admin_cannot_list(self, client, planning_headers):
        assert client.get(f"{API}/users", headers=planning_headers).status_code == 403

    def test_admin_deactivates_user(self, client, admin_headers, planning_user):
        response = client.put(f"{API}/users/{planning_user.id}", headers=admin_headers, json={"is_active": False})

        assert response.status_code == 200
        assert response.json()["is_active"] is False

    def test_update_me(self, client, planning_headers):
        response = client.put(f"{API}/users/me", headers=planning_headers, json={"full_name": "Planner Satu"})

        assert response.status_code == 200
        assert response.json()["full_name"] == "Planner Satu"

    def test_cannot_delete_self(self, client, admin_headers, admin_user):
        response = client.delete(f"{API}/users/{admin_user.id}", headers=admin_headers)

        assert response.status_code == 400


class TestInactiveUsers:
    def make_users(self, make_user):
        return {
            "stale": make_user("stale@example.com", [UserRole.CONTROLLER], last_login=days_ago(10)),
            "recent": make_user("recent@example.com", [UserRole.CONTROLLER], last_login=days_ago(1)),
            "never": make_user("never@example.com", [UserRole.OWNER]),
            "old_admin": make_user("oldadmin@example.com", [UserRole.ADMIN], last_login=days_ago(30)),
        }

    def test_only_stale_non_admins_are_deactivated(self, session, make_user):
        users = self.make_users(make_user)

        deactivated, threshold = deactivate_inactive_users(session, days=3)

        assert [user.email for user in deactivated] == ["stale@example.com"]
        assert threshold < days_ago(2)
        for key in ("recent", "never", "old_admin"):
            session.refresh(users[key])
            assert users[key].is_active
        session.refresh(users["stale"])
        assert not users["stale"].is_active

    def test_admin_endpoint(self, client, make_user, admin_headers):
        self.make_users(make_user)

        response = client.post(f"{API}/users/deactivate-inactive", headers=admin_headers, params={"days": 3})

        assert response.status_code == 200
        assert response.json()["deactivated_count"] == 1
        assert response.json()["emails"] == ["stale@example.com"]
