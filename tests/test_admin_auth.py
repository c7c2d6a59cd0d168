"""
Tests for admin authentication: login, logout, access protection.
"""
from __future__ import annotations

import pytest
import pytest_asyncio

from courier_bridge.admin.auth import authenticate, bootstrap_admin, hash_password, verify_password
from courier_bridge.models import AdminUser


@pytest_asyncio.fixture(scope="function")
async def admin_user(session_factory):
    async with session_factory() as session:
        session.add(AdminUser(
            username="admin",
            password_hash=hash_password("secret123"),
            is_active=True,
        ))
        session.add(AdminUser(
            username="retired",
            password_hash=hash_password("secret123"),
            is_active=False,
        ))
        await session.commit()


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


async def test_authenticate(db_session, admin_user):
    user = await authenticate(db_session, " admin ", "secret123")
    assert user is not None and user.username == "admin"
    assert await authenticate(db_session, "admin", "nope") is None
    assert await authenticate(db_session, "retired", "secret123") is None
    assert await authenticate(db_session, "nobody", "secret123") is None


async def test_bootstrap_only_when_empty(db_session):
    assert await bootstrap_admin(db_session, "root", "pw") is True
    assert await bootstrap_admin(db_session, "second", "pw") is False
    user = await authenticate(db_session, "root", "pw")
    assert user is not None


async def test_unauthenticated_redirect_to_login(client, admin_user):
    """GET /admin without session should redirect to /admin/login."""
    resp = await client.get("/admin", follow_redirects=False)
    assert resp.status_code == 303
    assert "/admin/login" in resp.headers["location"]


async def test_login_page_accessible(client):
    resp = await client.get("/admin/login")
    assert resp.status_code == 200
    assert b"Sign in" in resp.content


async def test_login_valid_credentials(client, admin_user):
    resp = await client.post(
        "/admin/login",
        data={"username": "admin", "password": "secret123"},
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin"

    dashboard = await client.get("/admin")
    assert dashboard.status_code == 200
    assert b"Log out admin" in dashboard.content


@pytest.mark.parametrize(
    "username, password",
    [("admin", "wrongpassword"), ("nobody", "anything"), ("retired", "secret123")],
)
async def test_login_rejected(client, admin_user, username, password):
    resp = await client.post(
        "/admin/login",
        data={"username": username, "password": password},
    )
    # Should redirect back to login with a flash message
    assert resp.status_code == 303
    assert "/admin/login" in resp.headers["location"]

    page = await client.get("/admin/login")
    assert b"Invalid username or password." in page.content


async def test_protected_routes_require_auth(client, admin_user):
    """All protected admin routes should redirect to login when unauthenticated."""
    protected = [
        "/admin",
        "/admin/configurations",
        "/admin/configurations/new",
        "/admin/audit",
        "/admin/shipments/FY1",
    ]
    for path in protected:
        resp = await client.get(path)
        assert resp.status_code == 303, f"{path} should redirect"
        assert "/admin/login" in resp.headers["location"]


async def test_logout_clears_session(client, admin_user):
    await client.post(
        "/admin/login",
        data={"username": "admin", "password": "secret123"},
    )
    resp = await client.post("/admin/logout")
    assert resp.status_code == 303

    # Should be back to login-redirect on protected route
    resp2 = await client.get("/admin")
    assert resp2.status_code == 303
    assert "/admin/login" in resp2.headers["location"]
