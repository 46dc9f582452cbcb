"""Test configuration and fixtures for Club Vault.

This module provides isolated test environments:
- Temporary catalog database (aiosqlite) with the full schema
- Temporary local object store
- A seeded club with two teams and one user per role
"""
import uuid
from pathlib import Path

import pytest
import pytest_asyncio

from clubvault.application.models import FILE, PHOTO, OwnerScope, StoredObject
from clubvault.dependencies import build_services
from clubvault.infrastructure.database import connect, create_schema
from clubvault.infrastructure.repositories import (
    AsyncFolderRepository,
    AsyncObjectRepository,
    AsyncOrganizationRepository,
    AsyncRoleRepository,
)
from clubvault.infrastructure.repositories.role_repository import (
    APP_ADMIN, ORG_ADMIN, SUB_ORG_ADMIN, MEMBER
)
from clubvault.infrastructure.storage import LocalStorage, StorageConfig

CLUB_ID = "club-1"
TEAM_A_ID = "team-a"
TEAM_B_ID = "team-b"

APP_ADMIN_ID = 1
CLUB_ADMIN_ID = 2
TEAM_A_ADMIN_ID = 3
TEAM_A_MEMBER_ID = 4
TEAM_B_MEMBER_ID = 5
OUTSIDER_ID = 99

OTHER_CLUB_ID = "club-2"
OTHER_TEAM_ID = "team-x"
OTHER_MEMBER_ID = 77

CLUB_SCOPE = OwnerScope(CLUB_ID)
TEAM_A_SCOPE = OwnerScope(CLUB_ID, TEAM_A_ID)
TEAM_B_SCOPE = OwnerScope(CLUB_ID, TEAM_B_ID)
# Another club's team id paired with this club
MISMATCHED_SCOPE = OwnerScope(CLUB_ID, OTHER_TEAM_ID)


async def seed_club(conn) -> None:
    """Premium club with two teams and one user per role."""
    orgs = AsyncOrganizationRepository(conn)
    await orgs.create("Riverside FC", is_premium=True, organization_id=CLUB_ID)
    await orgs.create_sub_organization(CLUB_ID, "U12 Girls", sub_organization_id=TEAM_A_ID)
    await orgs.create_sub_organization(CLUB_ID, "Seniors", sub_organization_id=TEAM_B_ID)

    roles = AsyncRoleRepository(conn)
    await roles.grant(APP_ADMIN_ID, APP_ADMIN)
    await roles.grant(CLUB_ADMIN_ID, ORG_ADMIN, CLUB_ID)
    await roles.grant(TEAM_A_ADMIN_ID, SUB_ORG_ADMIN, CLUB_ID, TEAM_A_ID)
    await roles.grant(TEAM_A_MEMBER_ID, MEMBER, CLUB_ID, TEAM_A_ID)
    await roles.grant(TEAM_B_MEMBER_ID, MEMBER, CLUB_ID, TEAM_B_ID)


@pytest_asyncio.fixture
async def catalog(tmp_path: Path):
    """Fresh catalog database with schema, closed after the test."""
    conn = await connect(tmp_path / "vault.db")
    await create_schema(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def club(catalog):
    """Catalog seeded with the test club."""
    await seed_club(catalog)
    return catalog


@pytest_asyncio.fixture
async def other_club(club):
    """Second club whose team has its own member."""
    orgs = AsyncOrganizationRepository(club)
    await orgs.create("Hillside United", is_premium=True, organization_id=OTHER_CLUB_ID)
    await orgs.create_sub_organization(OTHER_CLUB_ID, "Veterans", sub_organization_id=OTHER_TEAM_ID)
    await AsyncRoleRepository(club).grant(OTHER_MEMBER_ID, MEMBER, OTHER_CLUB_ID, OTHER_TEAM_ID)
    return club


@pytest.fixture
def store(tmp_path: Path) -> LocalStorage:
    """Local object store under the test's temp directory."""
    config = StorageConfig(backend="local", base_path=tmp_path / "objects", public_url="/storage")
    return LocalStorage(config)


@pytest.fixture
def services(club, store):
    """All vault services wired over the seeded catalog."""
    return build_services(club, store)


@pytest.fixture
def folder_repo(club) -> AsyncFolderRepository:
    return AsyncFolderRepository(club)


@pytest.fixture
def object_repo(club) -> AsyncObjectRepository:
    return AsyncObjectRepository(club)


@pytest.fixture
def add_folder(folder_repo):
    """Create a folder; returns its id."""
    async def _add(name, scope=CLUB_SCOPE, parent_id=None, user_id=CLUB_ADMIN_ID):
        return await folder_repo.create(
            name, scope.organization_id, scope.sub_organization_id,
            user_id=user_id, parent_folder_id=parent_id
        )
    return _add


@pytest.fixture
def add_object(object_repo, store):
    """Create a stored object with real bytes in the store.

    ``size_bytes`` defaults to the content length; pass ``stored=False`` for
    an object whose bytes are missing from the store.
    """
    async def _add(name, scope=CLUB_SCOPE, folder_id=None, kind=FILE, content=b"data",
                   size_bytes=-1, uploader_id=None, stored=True):
        key = f"seed/{uuid.uuid4().hex}"
        if stored:
            url = await store.put(key, content)
        else:
            url = store.public_url(key)
        object_id = await object_repo.create(
            kind=kind,
            name=name,
            url=url,
            organization_id=scope.organization_id,
            sub_organization_id=scope.sub_organization_id,
            folder_id=folder_id,
            size_bytes=len(content) if size_bytes == -1 else size_bytes,
            uploader_id=uploader_id,
        )
        return StoredObject.from_row(await object_repo.get_by_id(object_id))
    return _add


@pytest.fixture
def add_photo(add_object):
    async def _add(name, **kwargs):
        return await add_object(name, kind=PHOTO, **kwargs)
    return _add
