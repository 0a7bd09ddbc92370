import pytest
from httpx import AsyncClient
from sqlalchemy import false, select

from app.core import models
from app.core.utils import INVISIBLE_CHARS


@pytest.mark.asyncio
async def test_shorten_without_authorization(client: AsyncClient):
    response = await client.post("/api/shorten", json={"url": "https://example.com"})
    assert response.status_code == 400
    assert response.json()["detail"] == "no authorization"


@pytest.mark.asyncio
async def test_shorten_with_unknown_token(client: AsyncClient):
    response = await client.post(
        "/api/shorten",
        json={"url": "https://example.com"},
        headers={"Authorization": "not-a-real-token"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_shorten_without_url(client: AsyncClient, test_user):
    response = await client.post(
        "/api/shorten", json={}, headers={"Authorization": test_user.token}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "no url"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "max_views, detail",
    [
        ("lots", "invalid max views (invalid number)"),
        ("-1", "invalid max views (max views < 0)"),
    ],
)
async def test_shorten_with_invalid_max_views(
    client: AsyncClient, test_user, max_views, detail
):
    response = await client.post(
        "/api/shorten",
        json={"url": "https://example.com"},
        headers={"Authorization": test_user.token, "Max-Views": max_views},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == detail


@pytest.mark.asyncio
async def test_shorten_and_follow(client: AsyncClient, test_user):
    """Shortened url redirects to its destination"""
    response = await client.post(
        "/api/shorten",
        json={"url": "https://example.com/some/page"},
        headers={"Authorization": test_user.token},
    )
    assert response.status_code == 200
    short = response.json()["url"]
    assert short.startswith("http://test/go/")

    key = short.rsplit("/", 1)[-1]
    follow = await client.get(f"/go/{key}")
    assert follow.status_code == 307
    assert follow.headers["location"] == "https://example.com/some/page"


@pytest.mark.asyncio
async def test_vanity_url(client: AsyncClient, test_user):
    payload = {"url": "https://example.com", "vanity": "docs"}
    headers = {"Authorization": test_user.token}

    response = await client.post("/api/shorten", json=payload, headers=headers)
    assert response.status_code == 200
    assert response.json()["url"] == "http://test/go/docs"

    duplicate = await client.post("/api/shorten", json=payload, headers=headers)
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "vanity already exists"

    follow = await client.get("/go/docs")
    assert follow.status_code == 307


@pytest.mark.asyncio
async def test_vanity_taken_between_check_and_insert(
    client: AsyncClient, db_session, test_user, monkeypatch
):
    headers = {"Authorization": test_user.token}
    first = await client.post(
        "/api/shorten", json={"url": "https://example.com/a", "vanity": "docs"}, headers=headers
    )
    assert first.status_code == 200

    # The vanity lookup runs before the other request commits and sees nothing
    real_execute = db_session.execute

    async def stale_execute(statement, *args, **kwargs):
        if "urls.vanity =" in str(statement):
            statement = select(models.Url).where(false())
        return await real_execute(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", stale_execute)

    second = await client.post(
        "/api/shorten", json={"url": "https://example.com/b", "vanity": "docs"}, headers=headers
    )

    assert second.status_code == 400
    assert second.json()["detail"] == "vanity already exists"

    monkeypatch.undo()
    follow = await client.get("/go/docs")
    assert follow.status_code == 307
    assert follow.headers["location"] == "https://example.com/a"


@pytest.mark.asyncio
async def test_max_views_deletes_url(client: AsyncClient, test_user):
    response = await client.post(
        "/api/shorten",
        json={"url": "https://example.com", "vanity": "once"},
        headers={"Authorization": test_user.token, "Max-Views": "1"},
    )
    assert response.status_code == 200

    first = await client.get("/go/once")
    assert first.status_code == 307

    second = await client.get("/go/once")
    assert second.status_code == 404

    # Gone for good
    third = await client.get("/go/once")
    assert third.status_code == 404


@pytest.mark.asyncio
async def test_invisible_url(client: AsyncClient, test_user):
    response = await client.post(
        "/api/shorten",
        json={"url": "https://example.com/hidden"},
        headers={"Authorization": test_user.token, "Zws": "true"},
    )
    assert response.status_code == 200

    key = response.json()["url"].rsplit("/", 1)[-1]
    assert key and set(key) <= set(INVISIBLE_CHARS)

    follow = await client.get(f"/go/{key}")
    assert follow.status_code == 307
    assert follow.headers["location"] == "https://example.com/hidden"


@pytest.mark.asyncio
async def test_follow_unknown_url(client: AsyncClient):
    response = await client.get("/go/nothing")
    assert response.status_code == 404
