"""
API tests for the /bulk endpoints.
"""
import pytest
pytest.importorskip("pytest_asyncio")
pytest.importorskip("httpx")

ADMIN_EMAIL = "admin@skillconnect.test"

MISSING_ID = "0123456789abcdef01234567"


@pytest.mark.asyncio
async def test_import_upload_runs_in_background(async_client, admin_headers, bulk_engine, make_user):
    make_user("taken@example.com")
    content = b"firstName,lastName,email\nTa,Ken,taken@example.com\nNew,User,new@example.com\n"

    resp = await async_client.post(
        "/bulk/import",
        files={"file": ("people.csv", content, "text/csv")},
        headers=admin_headers,
    )
    assert resp.status_code == 202
    body = resp.json()
    assert body["status"] == "pending"
    assert body["operationId"].startswith("op_")

    await bulk_engine.wait(body["operationId"])

    resp = await async_client.get(f"/bulk/operations/{body['operationId']}", headers=admin_headers)
    assert resp.status_code == 200
    op = resp.json()
    assert op["type"] == "import"
    assert op["status"] == "completed"
    assert op["progress"] == {"total": 2, "processed": 2, "successful": 1, "failed": 1}
    assert op["results"]["failedItems"][0]["lineNumber"] == 2
    assert op["results"]["failedItems"][0]["error"] == "User already exists"
    assert op["parameters"]["fileName"] == "people.csv"
    assert op["startTime"] and op["endTime"]


@pytest.mark.asyncio
async def test_import_rejects_non_csv_upload(async_client, admin_headers):
    resp = await async_client.post(
        "/bulk/import",
        files={"file": ("photo.png", b"\x89PNG", "image/png")},
        headers=admin_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["errors"]


@pytest.mark.asyncio
async def test_import_reads_only_past_the_size_limit(async_client, admin_headers, bulk_engine, monkeypatch):
    from starlette.datastructures import UploadFile

    bulk_engine.config.max_upload_bytes = 64
    read_sizes = []
    real_read = UploadFile.read

    async def _recording_read(self, size=-1):
        read_sizes.append(size)
        return await real_read(self, size)

    monkeypatch.setattr(UploadFile, "read", _recording_read)
    content = b"firstName,lastName,email\n" + b"A,B,a@example.com\n" * 100

    resp = await async_client.post(
        "/bulk/import",
        files={"file": ("big.csv", content, "text/csv")},
        headers=admin_headers,
    )

    assert resp.status_code == 422
    assert resp.json()["detail"] == "Uploaded file is too large"
    assert read_sizes and all(size == 65 for size in read_sizes)
    assert bulk_engine.list_operations().total == 0


@pytest.mark.asyncio
async def test_bulk_update_invalid_payload_is_422(async_client, admin_headers, bulk_engine):
    resp = await async_client.put(
        "/bulk/update",
        json={"userIds": ["short"], "updates": {"status": "active"}},
        headers=admin_headers,
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["detail"] == "Invalid bulk_update request"
    assert any("userIds" in [str(p) for p in e["loc"]] for e in body["errors"])
    assert bulk_engine.list_operations().total == 0


@pytest.mark.asyncio
async def test_email_then_export_then_download(async_client, admin_headers, bulk_engine, make_user, sink):
    reader = make_user("reader@example.com", roles=["mentor"])

    resp = await async_client.post(
        "/bulk/email",
        json={"recipients": [reader.id, MISSING_ID], "subject": "News", "message": "Hello"},
        headers=admin_headers,
    )
    assert resp.status_code == 202
    email_op = resp.json()["operationId"]
    await bulk_engine.wait(email_op)
    assert len(sink.sent) == 1

    resp = await async_client.post(
        "/bulk/export",
        json={"filters": {"roles": "mentor"}, "fields": ["email", "roles"]},
        headers=admin_headers,
    )
    assert resp.status_code == 202
    export_op = resp.json()["operationId"]
    await bulk_engine.wait(export_op)

    resp = await async_client.get(f"/bulk/download/{export_op}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert f"users_export_{export_op}.csv" in resp.headers["content-disposition"]
    assert resp.text.splitlines() == ["email,roles", "reader@example.com,mentor"]

    resp = await async_client.get(f"/bulk/download/{email_op}", headers=admin_headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_bulk_delete_route(async_client, admin_headers, bulk_engine, make_user):
    victim = make_user("victim@example.com")
    resp = await async_client.post("/bulk/delete", json={"userIds": [victim.id]}, headers=admin_headers)
    assert resp.status_code == 202
    op_id = resp.json()["operationId"]
    await bulk_engine.wait(op_id)

    resp = await async_client.get(f"/bulk/operations/{op_id}", headers=admin_headers)
    assert resp.json()["results"]["successfulItems"] == [{"userId": victim.id, "email": "victim@example.com", "index": 0}]


@pytest.mark.asyncio
async def test_list_and_cancel_routes(async_client, admin_headers, bulk_engine):
    resp = await async_client.post("/bulk/export", json={}, headers=admin_headers)
    op_id = resp.json()["operationId"]
    await bulk_engine.wait(op_id)

    resp = await async_client.get("/bulk/operations", params={"limit": 5}, headers=admin_headers)
    assert resp.status_code == 200
    listing = resp.json()
    assert listing["total"] == 1
    assert listing["limit"] == 5
    assert listing["operations"][0]["operationId"] == op_id

    resp = await async_client.post(f"/bulk/operations/{op_id}/cancel", headers=admin_headers)
    assert resp.status_code == 409

    resp = await async_client.post("/bulk/operations/op_0_nothing/cancel", headers=admin_headers)
    assert resp.status_code == 404


def test_unknown_operation_is_404(client, admin_headers):
    resp = client.get("/bulk/operations/op_1_unknown", headers=admin_headers)
    assert resp.status_code == 404


def test_missing_identity_is_401(client):
    resp = client.get("/bulk/operations")
    assert resp.status_code == 401


def test_unknown_user_is_401(client, admin_user):
    resp = client.get("/bulk/operations", headers={"X-Auth-Request-Email": "stranger@example.com"})
    assert resp.status_code == 401


def test_non_admin_is_403(client, make_user):
    make_user("mentee@example.com", roles=["mentee"])
    resp = client.put(
        "/bulk/update",
        json={"userIds": [MISSING_ID], "updates": {"status": "active"}},
        headers={"X-Forwarded-Email": "mentee@example.com"},
    )
    assert resp.status_code == 403


def test_suspended_admin_is_403(client, make_user):
    make_user("banned@example.com", roles=["admin"], account_status="suspended")
    resp = client.get("/bulk/operations", headers={"X-Auth-Request-Email": "banned@example.com"})
    assert resp.status_code == 403


def test_admin_emails_are_provisioned(client, monkeypatch):
    monkeypatch.setenv("ADMIN_EMAILS", f"boss@example.com, {ADMIN_EMAIL}")
    resp = client.get("/users/me", headers={"X-Auth-Request-Email": "Boss@Example.com"})
    assert resp.status_code == 200
    me = resp.json()
    assert me["email"] == "boss@example.com"
    assert me["roles"] == ["admin"]
    assert me["account_status"] == "active"


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
