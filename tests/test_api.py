"""
Noteful Backend — API Endpoint Tests
=====================================

What:  End-to-end HTTP tests through the full middleware and exception
       handler stack, one fresh SQLite database per test.

What we test:
    ✅ Signup, login, refresh and the 401 paths
    ✅ Status codes and Location headers for notes, folders and tags
    ✅ Cross-owner access is a 404 and leaves the owner's data alone
    ✅ Error bodies: shape, 422 details, generic 500 message
    ✅ Login throttling (429 + Retry-After) and request ids
    ✅ Writes are committed before the response starts
"""

import asyncio
import json
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from noteful.exceptions import InternalError
from noteful.services.note_service import note_service


class TestAuthEndpoints:
    @pytest.mark.asyncio
    async def test_signup_returns_location_and_no_password(self, test_client):
        response = await test_client.post(
            "/api/users",
            json={"username": "alice", "password": "correct-horse-battery", "fullname": "Alice"},
        )
        assert response.status_code == 201
        body = response.json()
        assert response.headers["location"] == f"/api/users/{body['id']}"
        assert body == {"id": body["id"], "username": "alice", "fullname": "Alice"}

    @pytest.mark.asyncio
    async def test_signup_errors(self, test_client, register):
        await register("alice")

        duplicate = await test_client.post(
            "/api/users", json={"username": "alice", "password": "correct-horse-battery"}
        )
        short = await test_client.post("/api/users", json={"username": "bob", "password": "short"})
        missing = await test_client.post("/api/users", json={"password": "correct-horse-battery"})

        assert duplicate.status_code == 409
        assert short.status_code == 400
        assert missing.status_code == 400
        assert missing.json()["message"] == "Missing `username` field"

    @pytest.mark.asyncio
    async def test_bad_login_is_401_with_challenge(self, test_client, register):
        await register("alice")
        response = await test_client.post(
            "/api/login", json={"username": "alice", "password": "wrong-password"}
        )
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["message"] == "Incorrect username or password"

    @pytest.mark.asyncio
    async def test_refresh(self, test_client, register):
        headers = await register("alice")
        response = await test_client.post("/api/refresh", headers=headers)
        assert response.status_code == 200
        fresh = response.json()["authToken"]
        assert f"Bearer {fresh}" != headers["Authorization"]

        notes = await test_client.get("/api/notes", headers={"Authorization": f"Bearer {fresh}"})
        assert notes.status_code == 200

    @pytest.mark.asyncio
    async def test_missing_or_bad_token(self, test_client):
        assert (await test_client.post("/api/refresh")).status_code == 401
        assert (await test_client.get("/api/notes")).status_code == 401
        bad = await test_client.get("/api/folders", headers={"Authorization": "Bearer nope"})
        assert bad.status_code == 401
        assert bad.json()["error"] == "unauthorized"


class TestNoteEndpoints:
    @pytest.mark.asyncio
    async def test_create_get_update_delete(self, test_client, register):
        headers = await register("alice")

        created = await test_client.post(
            "/api/notes", json={"title": "Plan", "content": "Ship it"}, headers=headers
        )
        assert created.status_code == 201
        note = created.json()
        assert created.headers["location"] == f"/api/notes/{note['id']}"
        assert set(note) == {"id", "title", "content", "folderId", "tags", "ownerId", "createdAt", "updatedAt"}

        fetched = await test_client.get(f"/api/notes/{note['id']}", headers=headers)
        assert fetched.json()["title"] == "Plan"

        updated = await test_client.put(
            f"/api/notes/{note['id']}", json={"content": "Shipped"}, headers=headers
        )
        assert updated.status_code == 200
        assert updated.json()["title"] == "Plan"
        assert updated.json()["content"] == "Shipped"

        deleted = await test_client.delete(f"/api/notes/{note['id']}", headers=headers)
        assert deleted.status_code == 204
        again = await test_client.delete(f"/api/notes/{note['id']}", headers=headers)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, test_client, register):
        headers = await register("alice")
        response = await test_client.get("/api/notes/not-a-uuid", headers=headers)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "invalid id"

    @pytest.mark.asyncio
    async def test_missing_title_is_400(self, test_client, register):
        headers = await register("alice")
        response = await test_client.post("/api/notes", json={"content": "x"}, headers=headers)
        assert response.status_code == 400
        assert response.json()["message"] == "missing title"

    @pytest.mark.asyncio
    async def test_wrong_field_type_is_400(self, test_client, register):
        headers = await register("alice")
        response = await test_client.post("/api/notes", json={"title": 42}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_cross_owner_access_is_404(self, test_client, register):
        alice = await register("alice")
        mallory = await register("mallory")
        note = (await test_client.post("/api/notes", json={"title": "secret"}, headers=alice)).json()
        url = f"/api/notes/{note['id']}"

        assert (await test_client.get(url, headers=mallory)).status_code == 404
        assert (await test_client.put(url, json={"title": "pwned"}, headers=mallory)).status_code == 404
        assert (await test_client.delete(url, headers=mallory)).status_code == 404
        assert (await test_client.get("/api/notes", headers=mallory)).json() == []

        still = (await test_client.get(url, headers=alice)).json()
        assert still["title"] == "secret"
        assert still["updatedAt"] == note["updatedAt"]

    @pytest.mark.asyncio
    async def test_acting_for_another_user_is_403(self, test_client, register):
        alice = await register("alice")
        await register("mallory")
        response = await test_client.post(
            "/api/notes", json={"title": "t", "ownerId": str(uuid4())}, headers=alice
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_foreign_folder_and_tags_are_422(self, test_client, register):
        alice = await register("alice")
        mallory = await register("mallory")
        folder = (await test_client.post("/api/folders", json={"name": "Theirs"}, headers=mallory)).json()
        tag = (await test_client.post("/api/tags", json={"name": "theirs"}, headers=mallory)).json()

        bad_folder = await test_client.post(
            "/api/notes", json={"title": "t", "folderId": folder["id"]}, headers=alice
        )
        bad_tags = await test_client.post(
            "/api/notes", json={"title": "t", "tags": [tag["id"]]}, headers=alice
        )

        assert bad_folder.status_code == 422
        assert bad_folder.json()["message"] == "folder not found"
        assert bad_tags.status_code == 422
        assert bad_tags.json()["details"]["missing_ids"] == [tag["id"]]

    @pytest.mark.asyncio
    async def test_search_and_filters(self, test_client, register):
        headers = await register("alice")
        folder = (await test_client.post("/api/folders", json={"name": "Music"}, headers=headers)).json()
        gaga = (
            await test_client.post(
                "/api/notes", json={"title": "Lady Gaga", "folderId": folder["id"]}, headers=headers
            )
        ).json()
        await test_client.post("/api/notes", json={"title": "Groceries"}, headers=headers)

        search = await test_client.get("/api/notes", params={"searchTerm": "gaga"}, headers=headers)
        in_folder = await test_client.get("/api/notes", params={"folderId": folder["id"]}, headers=headers)
        bad_filter = await test_client.get("/api/notes", params={"tagId": "nope"}, headers=headers)

        assert [n["id"] for n in search.json()] == [gaga["id"]]
        assert [n["id"] for n in in_folder.json()] == [gaga["id"]]
        assert bad_filter.status_code == 400


class TestCollectionEndpoints:
    @pytest.mark.asyncio
    async def test_folder_lifecycle_with_cascade(self, test_client, register):
        headers = await register("alice")

        created = await test_client.post("/api/folders", json={"name": "Work"}, headers=headers)
        assert created.status_code == 201
        folder = created.json()
        assert created.headers["location"] == f"/api/folders/{folder['id']}"

        duplicate = await test_client.post("/api/folders", json={"name": "Work"}, headers=headers)
        assert duplicate.status_code == 409

        note = (
            await test_client.post(
                "/api/notes", json={"title": "t", "folderId": folder["id"]}, headers=headers
            )
        ).json()

        deleted = await test_client.delete(f"/api/folders/{folder['id']}", headers=headers)
        assert deleted.status_code == 204

        survivor = (await test_client.get(f"/api/notes/{note['id']}", headers=headers)).json()
        assert survivor["folderId"] is None
        assert (await test_client.get(f"/api/folders/{folder['id']}", headers=headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_tag_rename_and_cascade(self, test_client, register):
        headers = await register("alice")
        doomed = (await test_client.post("/api/tags", json={"name": "old"}, headers=headers)).json()
        kept = (await test_client.post("/api/tags", json={"name": "keep"}, headers=headers)).json()

        renamed = await test_client.put(f"/api/tags/{kept['id']}", json={"name": "kept"}, headers=headers)
        assert renamed.status_code == 200
        assert renamed.json()["name"] == "kept"

        note = (
            await test_client.post(
                "/api/notes", json={"title": "t", "tags": [doomed["id"], kept["id"]]}, headers=headers
            )
        ).json()
        assert (await test_client.delete(f"/api/tags/{doomed['id']}", headers=headers)).status_code == 204

        survivor = (await test_client.get(f"/api/notes/{note['id']}", headers=headers)).json()
        assert survivor["tags"] == [kept["id"]]

        listed = (await test_client.get("/api/tags", headers=headers)).json()
        assert [t["name"] for t in listed] == ["kept"]

    @pytest.mark.asyncio
    async def test_foreign_collection_is_404(self, test_client, register):
        alice = await register("alice")
        mallory = await register("mallory")
        folder = (await test_client.post("/api/folders", json={"name": "Mine"}, headers=alice)).json()
        url = f"/api/folders/{folder['id']}"

        assert (await test_client.put(url, json={"name": "Stolen"}, headers=mallory)).status_code == 404
        assert (await test_client.delete(url, headers=mallory)).status_code == 404
        assert (await test_client.get(url, headers=alice)).json()["name"] == "Mine"


class TestErrorHandling:
    @pytest.mark.asyncio
    async def test_internal_error_is_generic(self, test_client, register, monkeypatch):
        headers = await register("alice")

        async def explode(*args, **kwargs):
            raise InternalError(message="connection reset by peer", context={"host": "db"})

        monkeypatch.setattr(note_service, "list_notes", explode)
        response = await test_client.get("/api/notes", headers=headers)

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Internal Server Error"
        assert "details" not in body
        assert "connection reset" not in response.text

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_generic(self, app, register, monkeypatch):
        headers = await register("alice")

        async def explode(*args, **kwargs):
            raise RuntimeError("stack trace material")

        monkeypatch.setattr(note_service, "list_notes", explode)
        # The server error middleware re-raises after responding
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/notes", headers=headers)

        assert response.status_code == 500
        assert response.json()["message"] == "Internal Server Error"
        assert "stack trace" not in response.text


class TestTransactions:
    @pytest.mark.asyncio
    async def test_write_is_committed_before_response_is_sent(self, app, register, monkeypatch):
        headers = await register("alice")
        events = []
        original_commit = AsyncSession.commit

        async def recording_commit(session):
            events.append("commit")
            await original_commit(session)

        monkeypatch.setattr(AsyncSession, "commit", recording_commit)

        body = json.dumps({"title": "durable"}).encode()
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "POST",
            "scheme": "http",
            "path": "/api/notes",
            "raw_path": b"/api/notes",
            "root_path": "",
            "query_string": b"",
            "headers": [
                (b"host", b"test"),
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode()),
                (b"authorization", headers["Authorization"].encode()),
            ],
            "client": ("127.0.0.1", 50000),
            "server": ("test", 80),
        }
        body_sent = False
        never = asyncio.Event()
        statuses = []

        async def receive():
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            await never.wait()

        async def send(message):
            if message["type"] == "http.response.start":
                events.append("response_sent")
                statuses.append(message["status"])

        await app(scope, receive, send)

        assert statuses == [201]
        assert events.count("commit") == 1
        assert events.index("commit") < events.index("response_sent")


class TestMiddleware:
    @pytest.mark.asyncio
    async def test_login_is_throttled(self, test_client, test_settings):
        for _ in range(test_settings.login_rate_limit_attempts):
            response = await test_client.post(
                "/api/login", json={"username": "ghost", "password": "whatever-it-is"}
            )
            assert response.status_code == 401

        throttled = await test_client.post(
            "/api/login", json={"username": "ghost", "password": "whatever-it-is"}
        )
        assert throttled.status_code == 429
        assert int(throttled.headers["retry-after"]) > 0
        assert throttled.json()["error"] == "rate_limit_exceeded"

        # Other routes are not throttled
        assert (await test_client.get("/health")).status_code == 200

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        generated = await test_client.get("/health")
        assert generated.headers["x-request-id"]

        supplied = await test_client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert supplied.headers["x-request-id"] == "trace-123"

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "connected"
