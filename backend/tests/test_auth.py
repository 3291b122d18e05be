from datetime import timedelta

import pytest
from jose import jwt

from cms.auth.service import (
    ADMIN_ROLES,
    SUPER_ADMIN_ROLES,
    Identity,
    InvalidToken,
    TokenAuthority,
    authenticate,
    require_role,
)
from cms.exceptions import Forbidden, Unauthenticated
from cms.users.models import UserRole


# =============================================================================
# TokenAuthority
# =============================================================================


class TestTokenAuthority:
    def test_issue_then_verify(self):
        authority = TokenAuthority("secret")
        identity = authority.verify(authority.issue(42, UserRole.SUPER_ADMIN))
        assert identity == Identity(user_id=42, role=UserRole.SUPER_ADMIN)

    def test_expired_token_is_invalid(self):
        authority = TokenAuthority("secret", expires_delta=timedelta(seconds=-5))
        token = authority.issue(1, UserRole.ADMIN)
        with pytest.raises(InvalidToken):
            authority.verify(token)

    def test_wrong_signature_is_invalid(self):
        token = TokenAuthority("secret").issue(1, UserRole.ADMIN)
        with pytest.raises(InvalidToken):
            TokenAuthority("other-secret").verify(token)

    def test_malformed_token_is_invalid(self):
        with pytest.raises(InvalidToken):
            TokenAuthority("secret").verify("not-a-jwt")

    def test_unknown_role_is_invalid(self):
        token = jwt.encode({"sub": "1", "role": "editor", "type": "access"}, "secret", algorithm="HS256")
        with pytest.raises(InvalidToken):
            TokenAuthority("secret").verify(token)

    def test_non_access_token_is_invalid(self):
        token = jwt.encode({"sub": "1", "role": "admin", "type": "refresh"}, "secret", algorithm="HS256")
        with pytest.raises(InvalidToken):
            TokenAuthority("secret").verify(token)


# =============================================================================
# AccessGuard
# =============================================================================


class TestAccessGuard:
    def test_missing_header(self):
        with pytest.raises(Unauthenticated):
            authenticate(None, TokenAuthority("secret"))

    def test_wrong_scheme(self):
        authority = TokenAuthority("secret")
        token = authority.issue(1, UserRole.ADMIN)
        with pytest.raises(Unauthenticated):
            authenticate(f"Basic {token}", authority)

    def test_invalid_token_is_unauthenticated(self):
        with pytest.raises(Unauthenticated) as exc:
            authenticate("Bearer garbage", TokenAuthority("secret"))
        assert exc.value.message == "Invalid or expired token"

    def test_bearer_header(self):
        authority = TokenAuthority("secret")
        identity = authenticate(f"Bearer {authority.issue(7, UserRole.ADMIN)}", authority)
        assert identity.user_id == 7
        assert identity.role is UserRole.ADMIN

    def test_admin_roles_accept_both(self):
        require_role(Identity(1, UserRole.ADMIN), ADMIN_ROLES)
        require_role(Identity(1, UserRole.SUPER_ADMIN), ADMIN_ROLES)

    def test_super_admin_roles_reject_admin(self):
        with pytest.raises(Forbidden):
            require_role(Identity(1, UserRole.ADMIN), SUPER_ADMIN_ROLES)


# =============================================================================
# Endpoints
# =============================================================================


async def test_register_returns_token_and_user(client, authority):
    res = await client.post(
        "/api/auth/register",
        json={"name": "Alice", "email": "Alice@Example.com", "password": "secret1"},
    )
    assert res.status_code == 201
    body = res.json()
    assert body["user"]["email"] == "alice@example.com"
    assert body["user"]["role"] == "admin"
    assert "password" not in body["user"]
    identity = authority.verify(body["token"])
    assert identity.user_id == body["user"]["id"]


async def test_register_duplicate_email_is_conflict(client):
    payload = {"name": "Alice", "email": "alice@example.com", "password": "secret1"}
    assert (await client.post("/api/auth/register", json=payload)).status_code == 201

    payload["email"] = "ALICE@example.com"
    res = await client.post("/api/auth/register", json=payload)
    assert res.status_code == 409
    assert res.json() == {"error": "Email already in use"}


async def test_register_validation_error_shape(client):
    res = await client.post("/api/auth/register", json={"name": "A", "email": "nope", "password": "1"})
    assert res.status_code == 400
    assert res.json()["error"].startswith("Validation failed")


async def test_login(client):
    await client.post("/api/auth/register", json={"name": "Bob", "email": "bob@example.com", "password": "secret1"})

    ok = await client.post("/api/auth/login", json={"email": "bob@example.com", "password": "secret1"})
    assert ok.status_code == 200
    assert ok.json()["user"]["name"] == "Bob"

    bad = await client.post("/api/auth/login", json={"email": "bob@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid email or password"}


async def test_protected_routes_require_token(client):
    res = await client.get("/api/authors")
    assert res.status_code == 401
    assert res.json() == {"error": "Not authorized (missing token)"}

    res = await client.get("/api/authors", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401


async def test_admin_token_forbidden_on_user_list_but_can_create_author(client, admin_headers):
    res = await client.get("/api/users", headers=admin_headers)
    assert res.status_code == 403
    assert res.json() == {"error": "Forbidden (super admin only)"}

    res = await client.post("/api/authors", json={"name": "Jane", "email": "jane@example.com"}, headers=admin_headers)
    assert res.status_code == 201


async def test_role_check_runs_before_body_validation(client, authority):
    # 역할 검사가 본문 검증보다 먼저 수행됩니다.
    headers = {"Authorization": f"Bearer {authority.issue(1, UserRole.ADMIN)}"}
    res = await client.patch("/api/users/1/role", json={"role": "nonsense"}, headers=headers)
    assert res.status_code == 403


async def test_unknown_route_uses_error_shape(client):
    res = await client.get("/api/nothing-here")
    assert res.status_code == 404
    assert "error" in res.json()


async def test_health(client):
    res = await client.get("/health")
    assert res.json() == {"status": "ok"}
