"""API tests for /api/v1/users with fake backends behind the real repository."""

from httpx import ASGITransport, AsyncClient

from src.main import app
from src.uc_user.api.router import MAX_PAGE, PG_BIGINT_MAX, get_user_repository


async def _create(client: AsyncClient, username: str = "alice", email: str = "a@x.com") -> dict:
    resp = await client.post("/api/v1/users", json={"username": username, "email": email})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestCreate:
    async def test_create_returns_record_envelope(self, client, cache):
        resp = await client.post(
            "/api/v1/users", json={"username": "alice", "email": "a@x.com"}
        )

        body = resp.json()
        assert resp.status_code == 201
        assert body["code"] == 0
        assert body["request_id"].startswith("req_")
        assert body["data"]["id"] == 1
        assert body["data"]["username"] == "alice"
        assert set(body["data"]) == {"id", "username", "email", "created_at", "updated_at"}
        assert await cache.get("stats:users_created") == b"1"

    async def test_duplicate_is_conflict(self, client):
        await _create(client)

        resp = await client.post("/api/v1/users", json={"username": "alice", "email": "z@x.com"})

        assert resp.status_code == 409
        assert resp.json()["code"] == 1001
        assert resp.json()["data"] is None

    async def test_invalid_email_rejected_before_repository(self, client, store):
        resp = await client.post("/api/v1/users", json={"username": "alice", "email": "nope"})

        assert resp.status_code == 422
        assert store.calls["create_user"] == 0


class TestGet:
    async def test_get_existing(self, client, store):
        created = await _create(client)

        first = await client.get(f"/api/v1/users/{created['id']}")
        second = await client.get(f"/api/v1/users/{created['id']}")

        assert first.status_code == 200
        assert first.json()["data"] == created
        assert second.json()["data"] == created
        assert store.calls["get_user"] == 1

    async def test_get_missing_is_404(self, client):
        resp = await client.get("/api/v1/users/999")

        assert resp.status_code == 404
        assert resp.json()["code"] == 1003

    async def test_non_positive_id_rejected(self, client):
        resp = await client.get("/api/v1/users/0")

        assert resp.status_code == 422


class TestUpdate:
    async def test_full_update(self, client):
        created = await _create(client)

        resp = await client.put(
            f"/api/v1/users/{created['id']}",
            json={"username": "alice2", "email": "a2@x.com"},
        )

        assert resp.status_code == 200
        assert resp.json()["data"]["username"] == "alice2"
        assert resp.json()["data"]["created_at"] == created["created_at"]

    async def test_partial_update_keeps_other_field(self, client):
        created = await _create(client)

        resp = await client.put(f"/api/v1/users/{created['id']}", json={"email": "new@x.com"})

        data = resp.json()["data"]
        assert data["username"] == "alice"
        assert data["email"] == "new@x.com"

    async def test_update_visible_on_next_read(self, client):
        created = await _create(client)
        await client.get(f"/api/v1/users/{created['id']}")  # warm cache

        await client.put(f"/api/v1/users/{created['id']}", json={"username": "renamed"})
        resp = await client.get(f"/api/v1/users/{created['id']}")

        assert resp.json()["data"]["username"] == "renamed"

    async def test_update_missing_is_404(self, client):
        resp = await client.put(
            "/api/v1/users/77", json={"username": "x", "email": "x@x.com"}
        )

        assert resp.status_code == 404


class TestDelete:
    async def test_delete_then_get_is_404(self, client):
        created = await _create(client)

        resp = await client.delete(f"/api/v1/users/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["data"] is None

        resp = await client.get(f"/api/v1/users/{created['id']}")
        assert resp.status_code == 404

    async def test_delete_missing_is_404(self, client):
        resp = await client.delete("/api/v1/users/5")

        assert resp.status_code == 404


class TestList:
    async def test_pagination(self, client):
        for i in range(5):
            await _create(client, f"user{i}", f"u{i}@x.com")

        resp = await client.get("/api/v1/users", params={"page": 2, "page_size": 2})

        data = resp.json()["data"]
        assert [u["username"] for u in data["items"]] == ["user2", "user3"]
        assert data["pagination"] == {
            "page": 2, "page_size": 2, "total_items": 5, "total_pages": 3,
        }

    async def test_page_past_end_is_empty(self, client):
        await _create(client)

        resp = await client.get("/api/v1/users", params={"page": 9, "page_size": 10})

        assert resp.status_code == 200
        assert resp.json()["data"]["items"] == []

    async def test_page_size_is_bounded(self, client):
        resp = await client.get("/api/v1/users", params={"page_size": 1000})

        assert resp.status_code == 422


class TestHealth:
    async def test_reports_backends_and_stats(self, client):
        resp = await client.get("/health")

        body = resp.json()
        assert resp.status_code == 200
        assert body["backends"] == {"store": "ok", "cache": "ok"}
        assert "cache_errors" in body["stats"]


class TestBounds:
    async def test_id_beyond_bigint_rejected_before_repository(self, client, store):
        resp = await client.get(f"/api/v1/users/{PG_BIGINT_MAX + 1}")

        assert resp.status_code == 422
        assert store.calls["get_user"] == 0

    async def test_page_whose_offset_overflows_is_rejected(self, client, store):
        resp = await client.get("/api/v1/users", params={"page": MAX_PAGE + 1})

        assert resp.status_code == 422
        assert store.calls["list_users"] == 0


class TestRequestId:
    async def test_envelope_matches_response_header(self, client):
        resp = await client.post("/api/v1/users", json={"username": "alice", "email": "a@x.com"})

        assert resp.json()["request_id"] == resp.headers["X-Request-ID"]

    async def test_caller_id_is_kept_on_errors(self, client):
        resp = await client.get("/api/v1/users/999", headers={"X-Request-ID": "req_trace01"})

        assert resp.headers["X-Request-ID"] == "req_trace01"
        assert resp.json()["request_id"] == "req_trace01"


class TestCors:
    async def test_preflight_is_answered(self, client):
        resp = await client.options(
            "/api/v1/users",
            headers={
                "Origin": "http://frontend.example",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"

    async def test_simple_request_carries_allow_origin(self, client):
        resp = await client.get("/api/v1/users", headers={"Origin": "http://frontend.example"})

        assert resp.headers["access-control-allow-origin"] == "*"


class TestUnhandledError:
    async def test_returns_internal_error_envelope(self):
        def broken_repository():
            raise RuntimeError("wiring bug")

        app.dependency_overrides[get_user_repository] = broken_repository
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        try:
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                resp = await ac.get("/api/v1/users/1", headers={"X-Request-ID": "req_boom"})
        finally:
            app.dependency_overrides.clear()

        body = resp.json()
        assert resp.status_code == 500
        assert body["code"] == 9002
        assert body["message"] == "Internal server error"
        assert body["data"] is None
        assert body["request_id"] == "req_boom"
