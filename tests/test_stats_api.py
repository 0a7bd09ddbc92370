import pytest
from httpx import AsyncClient

from app.core import models
from app.core.datasource import Datasource, get_datasource
from app.core.schemas import UserRole
from app.core.security import create_access_token, hash_password
from app.main import app


class BrokenDatasource(Datasource):
    async def full_size(self) -> int:
        raise OSError("disk is gone")


@pytest.mark.asyncio
async def test_stats_as_admin(
    client: AsyncClient, auth_headers_admin, test_admin, make_user, make_image
):
    uploader = await make_user("uploader")
    await make_image(uploader, "image/png", views=4)
    await make_image(uploader, "image/png", views=1)
    await make_image(test_admin, "application/json")

    response = await client.get("/api/stats", headers=auth_headers_admin)

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 3
    assert data["count_users"] == 2
    assert data["views_count"] == 5
    assert data["size_num"] == 0
    assert data["size"] == "0 B"
    assert data["count_by_user"] == [
        {"username": "uploader", "count": 2},
        {"username": test_admin.username, "count": 1},
    ]
    assert data["types_count"] == [
        {"mimetype": "image/png", "count": 2},
        {"mimetype": "application/json", "count": 1},
    ]


@pytest.mark.asyncio
async def test_stats_as_user_is_forbidden(client: AsyncClient, auth_headers_user):
    response = await client.get("/api/stats", headers=auth_headers_user)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_stats_without_token(client: AsyncClient):
    response = await client.get("/api/stats")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_stats_failure_is_500(client: AsyncClient, auth_headers_admin):
    app.dependency_overrides[get_datasource] = lambda: BrokenDatasource()

    response = await client.get("/api/stats", headers=auth_headers_admin)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to compute statistics"


@pytest.mark.asyncio
async def test_login_then_stats(client: AsyncClient, make_user):
    admin = await make_user("root", role=UserRole.ADMIN.value)

    login = await client.post(
        "/api/auth/login", json={"username": admin.username, "password": "password123"}
    )
    assert login.status_code == 200
    token = login.json()["access_token"]

    response = await client.get(
        "/api/stats", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 200
    assert response.json()["count_users"] == 1


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, test_user):
    response = await client.post(
        "/api/auth/login", json={"username": test_user.username, "password": "nope"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_new_users_are_not_admins(client: AsyncClient, db_session):
    # No role given, the column default applies
    user = models.User(username="newcomer", password=hash_password("pw"), token="t" * 32)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)

    assert user.role == UserRole.USER

    token = create_access_token(user.id, user.role)
    response = await client.get(
        "/api/stats", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 403
