import pytest

pytestmark = pytest.mark.anyio


def _cookies_by_name(response) -> dict:
    """Map cookie name to its raw Set-Cookie header."""
    cookies = {}
    for header in response.headers.get_list("set-cookie"):
        name = header.split("=", 1)[0]
        cookies[name] = header
    return cookies


def _cookie_value(header: str) -> str:
    return header.split(";", 1)[0].split("=", 1)[1]


@pytest.mark.anyio
async def test_login_sets_cookies_matching_returned_tokens(
    async_client, repository, registered_account
):
    response = await async_client.post(
        "/api/v1/users/login",
        json={"username": "ab1", "password": "pw123456"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["user"]["username"] == "ab1"
    assert "password" not in data["user"]
    assert "refreshToken" not in data["user"]

    cookies = _cookies_by_name(response)
    assert _cookie_value(cookies["accessToken"]) == data["accessToken"]
    assert _cookie_value(cookies["refreshToken"]) == data["refreshToken"]
    for header in cookies.values():
        assert "HttpOnly" in header
        assert "Secure" in header

    stored = repository.documents[registered_account["_id"]]
    assert stored["refresh_token"] == data["refreshToken"]


@pytest.mark.anyio
async def test_login_accepts_email_only(async_client, registered_account):
    response = await async_client.post(
        "/api/v1/users/login",
        json={"email": "A@B.com", "password": "pw123456"},
    )

    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == "a@b.com"


@pytest.mark.anyio
async def test_login_with_wrong_password_is_unauthorized(
    async_client, repository, registered_account
):
    response = await async_client.post(
        "/api/v1/users/login",
        json={"username": "ab1", "email": "a@b.com", "password": "wrong"},
    )

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Invalid user credentials"
    assert "set-cookie" not in response.headers
    assert "refresh_token" not in repository.documents[registered_account["_id"]]


@pytest.mark.anyio
async def test_failed_login_keeps_existing_refresh_token(
    async_client, repository, registered_account, logged_in
):
    response = await async_client.post(
        "/api/v1/users/login",
        json={"username": "ab1", "password": "wrong"},
    )

    assert response.status_code == 401
    stored = repository.documents[registered_account["_id"]]
    assert stored["refresh_token"] == logged_in["refreshToken"]


@pytest.mark.anyio
async def test_login_requires_an_identifier(async_client, registered_account):
    response = await async_client.post(
        "/api/v1/users/login", json={"password": "pw123456"}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "username or email is required"


@pytest.mark.anyio
async def test_login_requires_password(async_client, registered_account):
    response = await async_client.post("/api/v1/users/login", json={"username": "ab1"})

    assert response.status_code == 400
    assert response.json()["message"] == "Password is required"


@pytest.mark.anyio
async def test_login_unknown_account_is_not_found(async_client):
    response = await async_client.post(
        "/api/v1/users/login",
        json={"username": "nobody", "password": "pw123456"},
    )

    assert response.status_code == 404
    assert response.json()["message"] == "User does not exist"


@pytest.mark.anyio
async def test_login_with_malformed_body_is_bad_request(async_client):
    response = await async_client.post(
        "/api/v1/users/login",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"]


@pytest.mark.anyio
async def test_logout_clears_refresh_token_and_cookies(
    async_client, repository, registered_account, logged_in
):
    response = await async_client.post(
        "/api/v1/users/logout",
        headers={"Authorization": f"Bearer {logged_in['accessToken']}"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {}

    assert "refresh_token" not in repository.documents[registered_account["_id"]]

    cookies = _cookies_by_name(response)
    assert set(cookies) == {"accessToken", "refreshToken"}
    for header in cookies.values():
        assert "Max-Age=0" in header


@pytest.mark.anyio
async def test_logout_accepts_access_token_cookie(
    async_client, repository, registered_account, logged_in
):
    response = await async_client.post(
        "/api/v1/users/logout",
        headers={"Cookie": f"accessToken={logged_in['accessToken']}"},
    )

    assert response.status_code == 200
    assert "refresh_token" not in repository.documents[registered_account["_id"]]


@pytest.mark.anyio
async def test_logout_requires_authentication(async_client, registered_account):
    response = await async_client.post("/api/v1/users/logout")

    assert response.status_code == 401
    assert response.json()["message"] == "Unauthorized request"


@pytest.mark.anyio
async def test_logout_rejects_forged_access_token(async_client, registered_account):
    response = await async_client.post(
        "/api/v1/users/logout",
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid access token"
