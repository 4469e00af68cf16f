"""
Test cases for the account endpoints.
"""
import pytest
from httpx import ASGITransport, AsyncClient

from storefront.auth.service import INVALID_CREDENTIALS
from storefront.database.repositories import UserRepository
from storefront.tests.helpers import API, STRONG_PASSWORD, bearer, login, register


@pytest.mark.asyncio
async def test_register_user(client, app):
    """Registration returns the public user view and a verifiable token."""
    response = await register(client, "alice@example.com", name="Alice Martin")

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Registration successful"

    user = body["user"]
    assert user["email"] == "alice@example.com"
    assert user["name"] == "Alice Martin"
    assert user["role"] == "USER"
    assert "password" not in user
    assert "createdAt" in user

    claims = app.state.tokens.verify(body["token"])
    assert claims.id == user["id"]
    assert claims.email == user["email"]
    assert claims.role == "USER"


@pytest.mark.asyncio
async def test_register_duplicate_email(client, database):
    first = await register(client, "dup@example.com")
    second = await register(client, "dup@example.com")

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json() == {"error": "Conflict", "message": "A user with this email already exists"}

    user = await UserRepository(database).find_by_email("dup@example.com")
    assert user.id == first.json()["user"]["id"]


@pytest.mark.asyncio
async def test_register_ignores_unknown_fields(client):
    response = await register(client, "extra@example.com", isAdmin=True, credits=1000)

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "USER"


@pytest.mark.asyncio
async def test_admin_self_registration_refused(client):
    response = await register(client, "sneaky@example.com", role="ADMIN")

    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"


@pytest.mark.asyncio
async def test_admin_can_register_admin(client, admin_token):
    response = await register(client, "second-admin@example.com", role="ADMIN", headers=bearer(admin_token))

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "ADMIN"


@pytest.mark.asyncio
async def test_user_cannot_register_admin(client, user_token):
    response = await register(client, "escalate@example.com", role="ADMIN", headers=bearer(user_token))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_self_registration_when_enabled(make_app):
    app = make_app(allow_admin_self_registration=True)
    async with AsyncClient(base_url="http://test", transport=ASGITransport(app=app)) as ac:
        response = await register(ac, "open-admin@example.com", role="ADMIN")

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "ADMIN"


@pytest.mark.asyncio
async def test_login_returns_token_with_same_identity(client, app):
    registered = (await register(client, "bob@example.com")).json()["user"]

    response = await login(client, "bob@example.com", STRONG_PASSWORD)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["user"]["id"] == registered["id"]
    claims = app.state.tokens.verify(body["token"])
    assert (claims.id, claims.email, claims.role) == (registered["id"], "bob@example.com", "USER")


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(client):
    await register(client, "carol@example.com")

    wrong_password = await login(client, "carol@example.com", "Wrong123!")
    unknown_email = await login(client, "nobody@example.com", STRONG_PASSWORD)

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["message"] == INVALID_CREDENTIALS


@pytest.mark.asyncio
async def test_get_profile(client, user_token):
    response = await client.get(f"{API}/auth/profile", headers=bearer(user_token))

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["email"] == "shopper@example.com"
    assert "updatedAt" in user
    assert "password" not in user


@pytest.mark.asyncio
async def test_get_profile_served_from_database_when_not_cached(client, user_token, cache):
    await cache.client.flushall()

    response = await client.get(f"{API}/auth/profile", headers=bearer(user_token))

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "shopper@example.com"


@pytest.mark.asyncio
async def test_update_profile(client, user_token):
    response = await client.put(
        f"{API}/auth/profile", json={"name": "Renamed Shopper"}, headers=bearer(user_token)
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Profile updated successfully"
    assert response.json()["user"]["name"] == "Renamed Shopper"

    profile = await client.get(f"{API}/auth/profile", headers=bearer(user_token))
    assert profile.json()["user"]["name"] == "Renamed Shopper"


@pytest.mark.asyncio
async def test_update_profile_email_in_use(client, user_token):
    await register(client, "taken@example.com")

    response = await client.put(
        f"{API}/auth/profile", json={"email": "taken@example.com"}, headers=bearer(user_token)
    )

    assert response.status_code == 409
    assert response.json()["message"] == "This email is already in use"


@pytest.mark.asyncio
async def test_update_profile_requires_a_field(client, user_token):
    response = await client.put(f"{API}/auth/profile", json={}, headers=bearer(user_token))

    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"


@pytest.mark.asyncio
async def test_change_password(client, user_token):
    response = await client.put(
        f"{API}/auth/change-password",
        json={
            "currentPassword": STRONG_PASSWORD,
            "newPassword": "N3wPassword!",
            "confirmPassword": "N3wPassword!",
        },
        headers=bearer(user_token),
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Password changed successfully"}

    assert (await login(client, "shopper@example.com", STRONG_PASSWORD)).status_code == 401
    assert (await login(client, "shopper@example.com", "N3wPassword!")).status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(client, user_token):
    response = await client.put(
        f"{API}/auth/change-password",
        json={
            "currentPassword": "NotMine123!",
            "newPassword": "N3wPassword!",
            "confirmPassword": "N3wPassword!",
        },
        headers=bearer(user_token),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Current password is incorrect"


@pytest.mark.asyncio
async def test_change_password_confirmation_mismatch(client, user_token):
    response = await client.put(
        f"{API}/auth/change-password",
        json={
            "currentPassword": STRONG_PASSWORD,
            "newPassword": "N3wPassword!",
            "confirmPassword": "Different1!",
        },
        headers=bearer(user_token),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"


@pytest.mark.asyncio
async def test_logout_keeps_stateless_token_valid(client, user_token):
    """Without revocation the token stays usable until it expires."""
    response = await client.post(f"{API}/auth/logout", headers=bearer(user_token))

    assert response.status_code == 200
    assert response.json() == {"message": "Logout successful"}

    profile = await client.get(f"{API}/auth/profile", headers=bearer(user_token))
    assert profile.status_code == 200


@pytest.mark.asyncio
async def test_logout_revokes_token_when_enabled(make_app):
    app = make_app(token_revocation_enabled=True)
    async with AsyncClient(base_url="http://test", transport=ASGITransport(app=app)) as ac:
        token = (await register(ac, "revoked@example.com")).json()["token"]

        logout = await ac.post(f"{API}/auth/logout", headers=bearer(token))
        profile = await ac.get(f"{API}/auth/profile", headers=bearer(token))

    assert logout.status_code == 200
    assert profile.status_code == 401
    assert profile.json()["message"] == "Invalid authentication token"


@pytest.mark.asyncio
async def test_profile_requires_token(client):
    response = await client.get(f"{API}/auth/profile")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized", "message": "Missing authentication token"}
    assert response.headers["WWW-Authenticate"] == "Bearer"


LONG_PASSWORD = "Aa1!" + "x" * 80


@pytest.mark.asyncio
async def test_register_rejects_password_over_bcrypt_limit(client):
    response = await register(client, "long@example.com", password=LONG_PASSWORD)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert [detail["field"] for detail in body["details"]] == ["password"]


@pytest.mark.asyncio
async def test_login_with_over_long_password_matches_unknown_email(client):
    await register(client, "known@example.com")

    known = await login(client, "known@example.com", LONG_PASSWORD)
    unknown = await login(client, "unknown@example.com", LONG_PASSWORD)

    assert known.status_code == unknown.status_code == 401
    assert known.json() == unknown.json() == {"error": "Unauthorized", "message": INVALID_CREDENTIALS}


@pytest.mark.asyncio
async def test_change_password_with_over_long_passwords(client, user_token):
    wrong_current = await client.put(
        f"{API}/auth/change-password",
        json={"currentPassword": LONG_PASSWORD, "newPassword": "N3wPassword!", "confirmPassword": "N3wPassword!"},
        headers=bearer(user_token),
    )
    long_new = await client.put(
        f"{API}/auth/change-password",
        json={"currentPassword": STRONG_PASSWORD, "newPassword": LONG_PASSWORD, "confirmPassword": LONG_PASSWORD},
        headers=bearer(user_token),
    )

    assert wrong_current.status_code == 400
    assert wrong_current.json()["message"] == "Current password is incorrect"
    assert long_new.status_code == 400
    assert long_new.json()["error"] == "Validation Error"
