import pytest
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient
from fastapi import status
from jose import jwt

from app.crud import user as user_crud
from app.db.models import UserStatus

pytestmark = pytest.mark.asyncio


class TestRegistration:
    async def test_register_user(self, client: AsyncClient, test_user_data: dict):
        """Test user registration."""
        response = await client.post("/api/auth/register", json=test_user_data)
        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["success"] is True
        user = body["data"]["user"]
        assert user["email"] == test_user_data["email"]
        assert user["role"] == "lawyer"
        assert user["plan"] == "basic"
        assert user["planLimit"] == 5
        assert user["currentCases"] == 0
        assert "password" not in user
        assert "hashedPassword" not in user
        assert body["data"]["token"]

    async def test_register_ignores_requested_role(self, client: AsyncClient, test_user_data: dict):
        response = await client.post(
            "/api/auth/register", json={**test_user_data, "role": "admin", "plan": "enterprise"}
        )
        assert response.status_code == status.HTTP_201_CREATED
        user = response.json()["data"]["user"]
        assert user["role"] == "lawyer"
        assert user["plan"] == "basic"

    async def test_register_duplicate_email_case_insensitive(self, client: AsyncClient, test_user_data: dict):
        await client.post("/api/auth/register", json=test_user_data)
        response = await client.post(
            "/api/auth/register", json={**test_user_data, "email": test_user_data["email"].upper()}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False

    async def test_register_validation_errors(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/register",
            json={"name": "J", "email": "not-an-email", "password": "short", "lawFirm": "X"},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["message"] == "Validation failed"
        fields = {item["field"] for item in body["error"]}
        assert {"name", "email", "password", "lawFirm"} <= fields
        name_error = next(item for item in body["error"] if item["field"] == "name")
        assert name_error["value"] == "J"

    async def test_register_missing_fields(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={"email": "x@example.com"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        missing = {item["field"] for item in response.json()["error"]}
        assert {"name", "password", "lawFirm"} <= missing


class TestLogin:
    async def test_login_user(self, client: AsyncClient, test_user_data: dict):
        """Test user login."""
        await client.post("/api/auth/register", json=test_user_data)

        response = await client.post(
            "/api/auth/login",
            json={"email": test_user_data["email"], "password": test_user_data["password"]},
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["token"]
        assert data["user"]["lastLogin"] is not None

    async def test_login_wrong_password(self, client: AsyncClient, test_user_data: dict, db_session):
        """A failed login issues no token and leaves the last-login time alone."""
        await client.post("/api/auth/register", json=test_user_data)

        response = await client.post(
            "/api/auth/login",
            json={"email": test_user_data["email"], "password": "wrongpassword"},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        body = response.json()
        assert body["message"] == "Invalid email or password"
        assert "data" not in body

        user = await user_crud.get_user_by_email(db_session, test_user_data["email"])
        assert user.last_login is None

    async def test_login_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": "whatever123"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Invalid email or password"

    async def test_login_disabled_account(self, client: AsyncClient, test_user_data: dict, db_session):
        await client.post("/api/auth/register", json=test_user_data)
        user = await user_crud.get_user_by_email(db_session, test_user_data["email"])
        await user_crud.update_user(db_session, user, {"status": UserStatus.disabled})

        response = await client.post(
            "/api/auth/login",
            json={"email": test_user_data["email"], "password": test_user_data["password"]},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Account is not active"


class TestAccessGate:
    async def test_missing_token(self, client: AsyncClient):
        response = await client.get("/api/user/profile")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Access denied. No token provided."

    async def test_malformed_token(self, client: AsyncClient):
        response = await client.get("/api/user/profile", headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Invalid token."

    async def test_expired_token(self, client: AsyncClient, register_user, test_settings):
        _, user = await register_user()
        expired = jwt.encode(
            {
                "userId": user["id"],
                "email": user["email"],
                "role": "lawyer",
                "plan": "basic",
                "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
            },
            test_settings.JWT_SECRET,
            algorithm=test_settings.JWT_ALGORITHM,
        )
        response = await client.get("/api/user/profile", headers={"Authorization": f"Bearer {expired}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Token expired."

    async def test_token_for_deleted_user(self, client: AsyncClient, test_settings):
        token = jwt.encode(
            {
                "userId": "00000000-0000-0000-0000-000000000000",
                "email": "ghost@example.com",
                "role": "lawyer",
                "plan": "basic",
                "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            },
            test_settings.JWT_SECRET,
            algorithm=test_settings.JWT_ALGORITHM,
        )
        response = await client.get("/api/user/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Invalid token. User not found."

    async def test_suspended_user_rejected(self, client: AsyncClient, register_user, db_session):
        headers, user = await register_user()
        db_user = await user_crud.get_user(db_session, user["id"])
        await user_crud.update_user(db_session, db_user, {"status": UserStatus.suspended})

        response = await client.get("/api/user/profile", headers=headers)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Account is not active."

    async def test_token_payload(self, register_user, test_settings):
        headers, user = await register_user()
        token = headers["Authorization"].split(" ", 1)[1]
        payload = jwt.decode(token, test_settings.JWT_SECRET, algorithms=[test_settings.JWT_ALGORITHM])
        assert payload["userId"] == user["id"]
        assert payload["email"] == user["email"]
        assert payload["role"] == "lawyer"
        assert payload["plan"] == "basic"
        assert "exp" in payload


class TestSession:
    async def test_me_anonymous(self, client: AsyncClient):
        response = await client.get("/api/auth/me")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["authenticated"] is False

    async def test_me_authenticated(self, client: AsyncClient, register_user):
        headers, user = await register_user()
        response = await client.get("/api/auth/me", headers=headers)
        data = response.json()["data"]
        assert data["authenticated"] is True
        assert data["user"]["id"] == user["id"]

    async def test_refresh_token(self, client: AsyncClient, auth_headers: dict):
        response = await client.post("/api/auth/refresh", headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK
        token = response.json()["data"]["token"]

        profile = await client.get("/api/user/profile", headers={"Authorization": f"Bearer {token}"})
        assert profile.status_code == status.HTTP_200_OK

    async def test_logout(self, client: AsyncClient, auth_headers: dict):
        response = await client.post("/api/auth/logout", headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is True
