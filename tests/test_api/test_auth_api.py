from httpx import AsyncClient

from mentorlink.models import User


async def test_health(test_client: AsyncClient):
    response = await test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_register_login_and_me(test_client: AsyncClient):
    response = await test_client.post(
        "/auth/register",
        json={
            "email": "new.mentor@example.com",
            "password": "password123",
            "username": "newmentor",
            "role": "mentor",
        },
    )
    assert response.status_code == 201, response.text
    assert response.json()["role"] == "mentor"

    login = await test_client.post(
        "/auth/jwt/login",
        data={"username": "new.mentor@example.com", "password": "password123"},
    )
    assert login.status_code == 204
    assert "fastapiusersauth=" in login.headers["Set-Cookie"]
    access_token = login.headers["Set-Cookie"].split(";")[0].split("=", 1)[1]

    me = await test_client.get(
        "/users/me", headers={"Cookie": f"fastapiusersauth={access_token}"}
    )
    assert me.status_code == 200
    assert me.json()["username"] == "newmentor"


async def test_protected_routes_require_login(test_client: AsyncClient):
    response = await test_client.get("/conversations")
    assert response.status_code == 401


async def test_bad_password_is_rejected(test_client: AsyncClient, mentor: User):
    response = await test_client.post(
        "/auth/jwt/login", data={"username": mentor.email, "password": "wrong"}
    )
    assert response.status_code == 400
