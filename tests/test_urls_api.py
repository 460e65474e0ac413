"""URL management endpoint tests (/api/urls)."""

import datetime
import uuid

import pytest
from httpx import AsyncClient

from shortlinks.cache import id_key, short_path_key
from tests.fakes import InMemoryURLCache


@pytest.mark.asyncio
async def test_create_url(client: AsyncClient) -> None:
    response = await client.post(
        "/api/urls",
        json={"destination": "https://www.python.org", "title": "Python", "description": "Home"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["destination"] == "https://www.python.org"
    assert data["title"] == "Python"
    assert data["description"] == "Home"
    assert data["image_url"] is None
    assert data["expires_at"] is None
    assert len(data["short_path"]) == 6
    assert data["short_url"] == f"http://test/{data['short_path']}"
    uuid.UUID(data["id"])


@pytest.mark.asyncio
async def test_create_url_with_custom_short_path(client: AsyncClient) -> None:
    response = await client.post("/api/urls", json={"destination": "https://github.com", "short_path": "gh-home"})
    assert response.status_code == 201
    assert response.json()["short_path"] == "gh-home"


@pytest.mark.asyncio
async def test_create_url_populates_cache(client: AsyncClient, fake_cache: InMemoryURLCache) -> None:
    response = await client.post("/api/urls", json={"destination": "https://github.com"})
    data = response.json()
    assert short_path_key(data["short_path"]) in fake_cache.entries
    assert id_key(data["id"]) in fake_cache.entries


@pytest.mark.asyncio
async def test_create_url_duplicate_short_path(client: AsyncClient) -> None:
    await client.post("/api/urls", json={"destination": "https://github.com", "short_path": "taken1"})
    response = await client.post("/api/urls", json={"destination": "https://example.com", "short_path": "taken1"})
    assert response.status_code == 409
    assert response.json()["detail"] == "short path 'taken1' already exists"


@pytest.mark.asyncio
async def test_create_url_invalid_short_path(client: AsyncClient) -> None:
    response = await client.post("/api/urls", json={"destination": "https://github.com", "short_path": "my code!"})
    assert response.status_code == 400
    assert response.json()["detail"] == "invalid short path format"


@pytest.mark.asyncio
async def test_create_url_reserved_short_path(client: AsyncClient) -> None:
    response = await client.post("/api/urls", json={"destination": "https://github.com", "short_path": "API"})
    assert response.status_code == 400
    assert response.json()["detail"] == "short path is reserved and cannot be used"


@pytest.mark.asyncio
async def test_create_url_invalid_destination(client: AsyncClient) -> None:
    response = await client.post("/api/urls", json={"destination": "not-a-url"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_url_missing_destination(client: AsyncClient) -> None:
    response = await client.post("/api/urls", json={"title": "nothing to point at"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_url(client: AsyncClient) -> None:
    created = (await client.post("/api/urls", json={"destination": "https://example.com"})).json()

    response = await client.get(f"/api/urls/{created['id']}")
    assert response.status_code == 200
    assert response.json() == created


@pytest.mark.asyncio
async def test_get_url_from_store_after_cache_loss(client: AsyncClient, fake_cache: InMemoryURLCache) -> None:
    created = (await client.post("/api/urls", json={"destination": "https://example.com"})).json()
    fake_cache.entries.clear()

    response = await client.get(f"/api/urls/{created['id']}")
    assert response.status_code == 200
    assert response.json()["short_path"] == created["short_path"]
    assert id_key(created["id"]) in fake_cache.entries


@pytest.mark.asyncio
async def test_get_url_not_found(client: AsyncClient) -> None:
    response = await client.get(f"/api/urls/{uuid.uuid4()}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_url_malformed_id(client: AsyncClient) -> None:
    response = await client.get("/api/urls/not-a-uuid")
    assert response.status_code == 400
    assert response.json()["detail"] == "invalid URL ID"


@pytest.mark.asyncio
async def test_list_urls(client: AsyncClient) -> None:
    for i in range(3):
        await client.post("/api/urls", json={"destination": f"https://example.com/{i}"})

    response = await client.get("/api/urls", params={"page": 1, "limit": 2})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["page"] == 1
    assert data["limit"] == 2
    assert len(data["urls"]) == 2


@pytest.mark.asyncio
async def test_list_urls_clamps_paging(client: AsyncClient) -> None:
    response = await client.get("/api/urls", params={"page": 0, "limit": 500})
    assert response.status_code == 200
    data = response.json()
    assert data["page"] == 1
    assert data["limit"] == 10
    assert data["urls"] == []
    assert data["total"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["put", "patch"])
async def test_update_title_only(client: AsyncClient, method: str) -> None:
    expires = (datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(days=1)).isoformat()
    created = (
        await client.post(
            "/api/urls",
            json={"destination": "https://example.com", "short_path": f"upd-{method}", "expires_at": expires},
        )
    ).json()

    response = await client.request(method.upper(), f"/api/urls/{created['id']}", json={"title": "Renamed"})
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Renamed"
    assert data["destination"] == created["destination"]
    assert data["short_path"] == created["short_path"]
    assert data["expires_at"] == created["expires_at"]


@pytest.mark.asyncio
async def test_patch_null_clears_expiry(client: AsyncClient) -> None:
    expires = (datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(days=1)).isoformat()
    created = (await client.post("/api/urls", json={"destination": "https://example.com", "expires_at": expires})).json()
    assert created["expires_at"] is not None

    response = await client.patch(f"/api/urls/{created['id']}", json={"expires_at": None})
    assert response.status_code == 200
    assert response.json()["expires_at"] is None

    fetched = await client.get(f"/api/urls/{created['id']}")
    assert fetched.json()["expires_at"] is None


@pytest.mark.asyncio
async def test_patch_rejects_null_destination(client: AsyncClient) -> None:
    created = (await client.post("/api/urls", json={"destination": "https://example.com"})).json()

    response = await client.patch(f"/api/urls/{created['id']}", json={"destination": None})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_patch_short_path_conflict(client: AsyncClient) -> None:
    await client.post("/api/urls", json={"destination": "https://example.com", "short_path": "first"})
    second = (await client.post("/api/urls", json={"destination": "https://example.org"})).json()

    response = await client.patch(f"/api/urls/{second['id']}", json={"short_path": "first"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_patch_reserved_short_path(client: AsyncClient) -> None:
    created = (await client.post("/api/urls", json={"destination": "https://example.com"})).json()

    response = await client.patch(f"/api/urls/{created['id']}", json={"short_path": "docs"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_patch_missing_record(client: AsyncClient) -> None:
    response = await client.patch(f"/api/urls/{uuid.uuid4()}", json={"title": "x"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_url(client: AsyncClient, fake_cache: InMemoryURLCache) -> None:
    created = (await client.post("/api/urls", json={"destination": "https://example.com"})).json()

    response = await client.delete(f"/api/urls/{created['id']}")
    assert response.status_code == 204

    assert (await client.get(f"/api/urls/{created['id']}")).status_code == 404
    assert (await client.get(f"/{created['short_path']}", follow_redirects=False)).status_code == 404
    assert short_path_key(created["short_path"]) not in fake_cache.entries


@pytest.mark.asyncio
async def test_delete_url_not_found(client: AsyncClient) -> None:
    response = await client.delete(f"/api/urls/{uuid.uuid4()}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_store_outage_returns_503(outage_client: AsyncClient) -> None:
    created = await outage_client.post("/api/urls", json={"destination": "https://example.com", "short_path": "down1"})
    assert created.status_code == 503

    assert (await outage_client.get("/api/urls")).status_code == 503
    assert (await outage_client.get(f"/api/urls/{uuid.uuid4()}")).status_code == 503
    assert (await outage_client.patch(f"/api/urls/{uuid.uuid4()}", json={"title": "x"})).status_code == 503
    assert (await outage_client.delete(f"/api/urls/{uuid.uuid4()}")).status_code == 503
    assert (await outage_client.get("/down1", follow_redirects=False)).status_code == 503
