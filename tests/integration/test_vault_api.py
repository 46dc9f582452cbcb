"""
Vault API integration tests.

Verifies:
- Caller identification and membership checks
- Usage reporting with once-per-session quota alerts
- Folder CRUD and uploads
- Trash lifecycle and batch operations
- ZIP exports
"""
import asyncio
import zipfile
from io import BytesIO

import pytest
from fastapi.testclient import TestClient

from clubvault import config
from clubvault.config import GIB
from clubvault.dependencies import vault_sessions
from clubvault.infrastructure.database import connect, create_schema
from clubvault.infrastructure.repositories import AsyncObjectRepository, AsyncOrganizationRepository
from clubvault.infrastructure.storage import reset_storage
from clubvault.main import app

from tests.conftest import (
    CLUB_ADMIN_ID,
    CLUB_ID,
    OTHER_CLUB_ID,
    OTHER_TEAM_ID,
    OUTSIDER_ID,
    TEAM_A_ID,
    TEAM_A_MEMBER_ID,
    TEAM_B_MEMBER_ID,
    seed_club,
)


def as_user(user_id: int) -> dict:
    return {config.USER_ID_HEADER: str(user_id)}


def run_on_catalog(db_path, fn):
    """Run ``fn(conn)`` against the catalog outside the app."""
    async def _run():
        conn = await connect(db_path)
        try:
            await create_schema(conn)
            return await fn(conn)
        finally:
            await conn.close()
    return asyncio.run(_run())


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "vault.db"
    monkeypatch.setattr(config, "DATABASE_PATH", path)
    monkeypatch.setattr(config, "UPLOADS_DIR", tmp_path / "objects")
    reset_storage()
    vault_sessions.clear()
    run_on_catalog(path, seed_club)
    yield path
    reset_storage()


@pytest.fixture
def client(db_path):
    with TestClient(app) as test_client:
        yield test_client


def upload(client, user_id, name, content, **form):
    form.setdefault("organization_id", CLUB_ID)
    return client.post(
        "/api/vault/objects",
        files={"file": (name, content, "application/octet-stream")},
        data=form,
        headers=as_user(user_id),
    )


class TestCallerChecks:

    def test_missing_user_header(self, client):
        response = client.get(f"/api/vault/organizations/{CLUB_ID}/usage")

        assert response.status_code == 401

    def test_invalid_user_header(self, client):
        response = client.get(f"/api/vault/organizations/{CLUB_ID}/usage",
                              headers={config.USER_ID_HEADER: "abc"})

        assert response.status_code == 400

    def test_non_member_gets_403(self, client):
        response = client.get(f"/api/vault/organizations/{CLUB_ID}/usage",
                              headers=as_user(OUTSIDER_ID))

        assert response.status_code == 403
        assert response.json() == {"detail": "You are not a member of this club"}

    def test_unknown_object_gets_404(self, client):
        response = client.post("/api/vault/objects/nope/trash", headers=as_user(CLUB_ADMIN_ID))

        assert response.status_code == 404
        assert response.json() == {"detail": "Item not found"}


class TestUsage:

    def test_alert_shown_once_per_session(self, client, db_path):
        async def fill(conn):
            await AsyncObjectRepository(conn).create(
                kind="file", name="archive.mov", url="/storage/seed/archive.mov",
                organization_id=CLUB_ID, size_bytes=int(4.5 * GIB),
            )
        run_on_catalog(db_path, fill)
        url = f"/api/vault/organizations/{CLUB_ID}/usage"

        first = client.get(url, headers=as_user(TEAM_A_MEMBER_ID)).json()
        session = {config.SESSION_HEADER: first["session_id"], **as_user(TEAM_A_MEMBER_ID)}
        second = client.get(url, headers=session).json()
        fresh = client.get(url, headers=as_user(TEAM_A_MEMBER_ID)).json()

        assert [a["level"] for a in first["alerts"]] == ["warning"]
        assert first["alerts"][0]["percent"] == 90
        assert second["alerts"] == []
        assert fresh["session_id"] != first["session_id"]
        assert len(fresh["alerts"]) == 1

    def test_ending_session(self, client):
        url = f"/api/vault/organizations/{CLUB_ID}/usage"
        session_id = client.get(url, headers=as_user(CLUB_ADMIN_ID)).json()["session_id"]

        response = client.delete("/api/vault/session", headers={config.SESSION_HEADER: session_id})

        assert response.json()["discarded"] is True
        assert client.delete("/api/vault/session").json()["discarded"] is False

    def test_session_header_and_bounded_registry(self, client, monkeypatch):
        monkeypatch.setattr(vault_sessions, "max_sessions", 5)
        url = f"/api/vault/organizations/{CLUB_ID}/usage"

        responses = [client.get(url, headers=as_user(CLUB_ADMIN_ID)) for _ in range(20)]

        assert len(vault_sessions) <= 5
        last = responses[-1]
        assert last.headers[config.SESSION_HEADER] == last.json()["session_id"]
        echoed = client.get(url, headers={config.SESSION_HEADER: last.headers[config.SESSION_HEADER],
                                          **as_user(CLUB_ADMIN_ID)})
        assert echoed.json()["session_id"] == last.json()["session_id"]

    def test_usage_reflects_uploads(self, client):
        upload(client, CLUB_ADMIN_ID, "a.bin", b"x" * 100)
        upload(client, TEAM_A_MEMBER_ID, "b.bin", b"x" * 50, sub_organization_id=TEAM_A_ID)

        data = client.get(f"/api/vault/organizations/{CLUB_ID}/usage",
                          headers=as_user(CLUB_ADMIN_ID)).json()

        assert data["usage"]["total_bytes"] == 150
        assert data["limit"]["limit_bytes"] == config.BASE_STORAGE_LIMIT
        assert [g["name"] for g in data["usage"]["per_sub_organization"]] == ["Club-level", "U12 Girls"]

    def test_large_files_cleanup(self, client):
        big = upload(client, CLUB_ADMIN_ID, "big.bin", b"x" * 500).json()["object"]
        upload(client, CLUB_ADMIN_ID, "small.bin", b"x")
        base = f"/api/vault/organizations/{CLUB_ID}/large-files"

        listing = client.get(base, headers=as_user(CLUB_ADMIN_ID)).json()["items"]
        assert [i["id"] for i in listing][0] == big["id"]
        assert client.get(base, headers=as_user(TEAM_A_MEMBER_ID)).status_code == 403

        response = client.post(f"{base}/delete", json={"object_ids": [big["id"]]},
                               headers=as_user(CLUB_ADMIN_ID))

        assert response.json()["freed_bytes"] == 500
        assert response.json()["succeeded"] == 1


class TestFoldersAndUploads:

    def test_folder_crud(self, client):
        headers = as_user(CLUB_ADMIN_ID)
        created = client.post("/api/vault/folders", json={"name": "Season", "organization_id": CLUB_ID},
                              headers=headers).json()["folder"]
        child = client.post("/api/vault/folders",
                            json={"name": "Cup", "organization_id": CLUB_ID, "parent_id": created["id"]},
                            headers=headers).json()["folder"]

        client.put(f"/api/vault/folders/{child['id']}", json={"name": "League"}, headers=headers)
        path = client.get(f"/api/vault/folders/{child['id']}/path", headers=headers).json()["path"]
        assert [p["name"] for p in path] == ["Season", "League"]

        response = client.delete(f"/api/vault/folders/{created['id']}", headers=headers)
        assert response.status_code == 200
        roots = client.get("/api/vault/folders", params={"organization_id": CLUB_ID},
                           headers=headers).json()["folders"]
        assert [f["name"] for f in roots] == ["League"]

    def test_upload_and_list(self, client):
        headers = as_user(TEAM_A_MEMBER_ID)
        response = upload(client, TEAM_A_MEMBER_ID, "lineup.pdf", b"pdf", sub_organization_id=TEAM_A_ID)
        assert response.status_code == 200
        obj = response.json()["object"]

        listing = client.get("/api/vault/objects",
                             params={"organization_id": CLUB_ID, "sub_organization_id": TEAM_A_ID},
                             headers=headers).json()

        assert [f["id"] for f in listing["files"]] == [obj["id"]]
        assert listing["photos"] == []

    def test_member_cannot_view_other_team(self, client):
        response = client.get("/api/vault/objects",
                              params={"organization_id": CLUB_ID, "sub_organization_id": TEAM_A_ID},
                              headers=as_user(TEAM_B_MEMBER_ID))

        assert response.status_code == 403

    def test_folder_path_requires_view_access(self, client):
        folder = client.post("/api/vault/folders", json={"name": "Board", "organization_id": CLUB_ID},
                             headers=as_user(CLUB_ADMIN_ID)).json()["folder"]

        response = client.get(f"/api/vault/folders/{folder['id']}/path",
                              headers=as_user(TEAM_A_MEMBER_ID))

        assert response.status_code == 403

    def test_upload_into_team_of_another_club(self, client, db_path):
        async def other_club(conn):
            orgs = AsyncOrganizationRepository(conn)
            await orgs.create("Hillside United", is_premium=True, organization_id=OTHER_CLUB_ID)
            await orgs.create_sub_organization(OTHER_CLUB_ID, "Veterans", sub_organization_id=OTHER_TEAM_ID)
        run_on_catalog(db_path, other_club)

        response = upload(client, CLUB_ADMIN_ID, "a.pdf", b"x", sub_organization_id=OTHER_TEAM_ID)

        assert response.status_code == 404


class TestTrash:

    def test_trash_restore_purge(self, client):
        headers = as_user(CLUB_ADMIN_ID)
        obj = upload(client, CLUB_ADMIN_ID, "a.pdf", b"x").json()["object"]

        trashed = client.post(f"/api/vault/objects/{obj['id']}/trash", headers=headers).json()
        assert trashed["object"]["deleted_at"] is not None
        trash = client.get(f"/api/vault/organizations/{CLUB_ID}/trash", headers=headers).json()
        assert [(i["id"], i["location"]) for i in trash["items"]] == [(obj["id"], "Club root")]

        client.post(f"/api/vault/objects/{obj['id']}/restore", headers=headers)
        assert client.delete(f"/api/vault/objects/{obj['id']}", headers=headers).status_code == 409

        client.post(f"/api/vault/objects/{obj['id']}/trash", headers=headers)
        assert client.delete(f"/api/vault/objects/{obj['id']}", headers=headers).status_code == 200
        assert client.delete(f"/api/vault/objects/{obj['id']}", headers=headers).status_code == 404

    def test_batch_trash_reports_failures(self, client):
        ids = [upload(client, CLUB_ADMIN_ID, f"{i}.pdf", b"x").json()["object"]["id"] for i in range(3)]

        response = client.post("/api/vault/batch/trash", json={"file_ids": ids + ["nope"]},
                               headers=as_user(CLUB_ADMIN_ID))

        data = response.json()
        assert data["succeeded"] == 3
        assert data["failed"] == 1
        assert data["message"] == "Moved 3 items to trash, 1 failed"


class TestExport:

    def test_discover_and_archive(self, client):
        headers = as_user(CLUB_ADMIN_ID)
        folder = client.post("/api/vault/folders", json={"name": "Kit", "organization_id": CLUB_ID},
                             headers=headers).json()["folder"]
        upload(client, CLUB_ADMIN_ID, "sizes.pdf", b"pdf", folder_id=folder["id"])
        upload(client, CLUB_ADMIN_ID, "rules.txt", b"txt")

        preview = client.post("/api/vault/export/discover", json={"organization_id": CLUB_ID},
                              headers=headers).json()
        assert preview["total_items"] == 2
        assert preview["name"] == "Riverside FC"

        response = client.post("/api/vault/export/archive",
                               json={"organization_id": CLUB_ID, "excluded_paths": [""]},
                               headers=headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert 'filename="Riverside FC.zip"' in response.headers["content-disposition"]
        with zipfile.ZipFile(BytesIO(response.content)) as zf:
            assert zf.namelist() == ["Kit/sizes.pdf"]

    def test_selection_export(self, client):
        obj = upload(client, CLUB_ADMIN_ID, "rules.txt", b"txt").json()["object"]

        response = client.post("/api/vault/export/selection",
                               json={"file_ids": [obj["id"], "nope"]},
                               headers=as_user(CLUB_ADMIN_ID))

        assert response.headers["x-export-succeeded"] == "1"
        assert response.headers["x-export-failed"] == "1"
        with zipfile.ZipFile(BytesIO(response.content)) as zf:
            assert zf.read("rules.txt") == b"txt"

    def test_nothing_to_export(self, client):
        response = client.post("/api/vault/export/archive", json={"organization_id": CLUB_ID},
                               headers=as_user(CLUB_ADMIN_ID))

        assert response.status_code == 404
