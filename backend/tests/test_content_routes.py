"""
ReadLater Backend — Content API Tests
======================================

What:  End-to-end tests of the HTTP surface through httpx + ASGITransport.
Why:   The article service relies on status codes to tell a wrong key (403)
       from a missing article (404), so the mapping is part of the contract.
"""

from pathlib import Path

import pytest
from httpx import AsyncClient, ASGITransport

from readlater.config import Settings

CONTENT_URL = "/api/users/u1/articles/{article_id}/content"


def _body(content="Hello world", summary=""):
    return {
        "title": "On Saving Things",
        "url": "https://example.com/articles/saving",
        "content": content,
        "summary": summary,
        "tags": ["reading"],
        "metadata": {"site_name": "Example"},
    }


async def _new_key(client):
    response = await client.post("/api/keys")
    assert response.status_code == 201
    return response.json()["key"]


class TestContentEndpoints:

    @pytest.mark.asyncio
    async def test_plaintext_save_and_read(self, test_client):
        response = await test_client.put(CONTENT_URL.format(article_id="a1"), json=_body())
        assert response.status_code == 201
        assert response.json()["is_encrypted"] is False

        response = await test_client.get(CONTENT_URL.format(article_id="a1"))
        assert response.status_code == 200
        data = response.json()
        assert data["content"] == "Hello world"
        assert data["is_encrypted"] is False
        assert data["id"] == "a1"
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_encrypted_save_and_read(self, test_client):
        key = await _new_key(test_client)
        url = CONTENT_URL.format(article_id="a2")

        response = await test_client.put(
            url, json=_body("Secret note", "short"), headers={"X-Master-Key": key}
        )
        assert response.status_code == 201
        assert response.json()["is_encrypted"] is True

        raw = (await test_client.get(url)).json()
        assert raw["is_encrypted"] is True
        assert raw["content"] != "Secret note"

        response = await test_client.get(url, headers={"X-Master-Key": key})
        assert response.status_code == 200
        assert response.json()["content"] == "Secret note"
        assert response.json()["summary"] == "short"
        assert response.headers["Cache-Control"] == "private, no-store"

    @pytest.mark.asyncio
    async def test_wrong_key_is_403(self, test_client):
        key = await _new_key(test_client)
        other = await _new_key(test_client)
        url = CONTENT_URL.format(article_id="a2")
        await test_client.put(url, json=_body("Secret note"), headers={"X-Master-Key": key})

        response = await test_client.get(url, headers={"X-Master-Key": other})
        assert response.status_code == 403
        assert response.json()["error"] == "decryption_failed"
        assert "Secret note" not in response.text

    @pytest.mark.asyncio
    async def test_malformed_key_is_400(self, test_client):
        response = await test_client.put(
            CONTENT_URL.format(article_id="a1"),
            json=_body(),
            headers={"X-Master-Key": "not a key!"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_key_material"

    @pytest.mark.asyncio
    async def test_missing_is_404(self, test_client):
        response = await test_client.get(CONTENT_URL.format(article_id="nonexistent"))
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_invalid_article_id_is_400(self, test_client):
        response = await test_client.get(CONTENT_URL.format(article_id="bad.id"))
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_delete(self, test_client):
        url = CONTENT_URL.format(article_id="a1")
        await test_client.put(url, json=_body())

        assert (await test_client.delete(url)).status_code == 204
        assert (await test_client.delete(url)).status_code == 404
        assert (await test_client.get(url)).status_code == 404


class TestListStatsRotate:

    @pytest.mark.asyncio
    async def test_list_and_stats(self, test_client):
        key = await _new_key(test_client)
        await test_client.put(CONTENT_URL.format(article_id="a1"), json=_body("Hello world"))
        await test_client.put(
            CONTENT_URL.format(article_id="a2"),
            json=_body("Secret note"),
            headers={"X-Master-Key": key},
        )

        response = await test_client.get("/api/users/u1/articles")
        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == ["a1", "a2"]
        assert response.headers["X-Total-Count"] == "2"

        stats = (await test_client.get("/api/users/u1/stats")).json()
        assert stats["total_records"] == 2
        assert stats["encrypted_records"] == 1
        assert stats["total_bytes"] > 0

    @pytest.mark.asyncio
    async def test_unknown_user_is_empty(self, test_client):
        assert (await test_client.get("/api/users/nobody/articles")).json() == []
        assert (await test_client.get("/api/users/nobody/stats")).json() == {
            "total_records": 0,
            "total_bytes": 0,
            "encrypted_records": 0,
        }

    @pytest.mark.asyncio
    async def test_rotate(self, test_client):
        old = await _new_key(test_client)
        new = await _new_key(test_client)
        url = CONTENT_URL.format(article_id="a1")
        await test_client.put(url, json=_body("Secret note"), headers={"X-Master-Key": old})

        response = await test_client.post(
            "/api/users/u1/keys/rotate", json={"old_key": new, "new_key": old}
        )
        assert response.status_code == 403

        response = await test_client.post(
            "/api/users/u1/keys/rotate", json={"old_key": old, "new_key": new}
        )
        assert response.status_code == 200
        assert response.json() == {"rotated": 1}

        response = await test_client.get(url, headers={"X-Master-Key": new})
        assert response.json()["content"] == "Secret note"


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["storage"] == "writable"

    @pytest.mark.asyncio
    async def test_health_does_not_create_storage_root(self, test_client, temp_storage):
        response = await test_client.get("/health")
        assert response.status_code == 200
        assert not Path(temp_storage).exists()

    @pytest.mark.asyncio
    async def test_health_unavailable_storage_is_503(self, tmp_path):
        from readlater.main import create_app

        blocker = tmp_path / "blocker"
        blocker.write_text("")
        app = create_app(
            Settings(
                storage_root=str(blocker / "storage"),
                key_derivation_iterations=1000,
                log_level="WARNING",
            )
        )
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["storage"] == "unavailable"
