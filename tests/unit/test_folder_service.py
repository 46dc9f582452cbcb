"""Tests for the folder tree."""
import pytest

from clubvault.application.errors import (
    IntegrityError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from clubvault.application.services.folder_service import DELETE_FOLDER_WARNING

from tests.conftest import (
    CLUB_ADMIN_ID,
    CLUB_SCOPE,
    MISMATCHED_SCOPE,
    OTHER_MEMBER_ID,
    TEAM_A_ADMIN_ID,
    TEAM_A_MEMBER_ID,
    TEAM_A_SCOPE,
    TEAM_B_MEMBER_ID,
    TEAM_B_SCOPE,
)


class TestListing:

    @pytest.mark.asyncio
    async def test_children_are_scoped(self, services, add_folder):
        await add_folder("Club docs")
        await add_folder("Team docs", scope=TEAM_A_SCOPE)

        club = await services.folders.list_children(CLUB_SCOPE)
        team = await services.folders.list_children(TEAM_A_SCOPE)

        assert [f["name"] for f in club] == ["Club docs"]
        assert [f["name"] for f in team] == ["Team docs"]

    @pytest.mark.asyncio
    async def test_objects_split_by_kind_and_exclude_trash(self, services, add_folder,
                                                           add_object, add_photo):
        folder_id = await add_folder("Match day")
        photo = await add_photo("kickoff.jpg", folder_id=folder_id)
        doc = await add_object("lineup.pdf", folder_id=folder_id)
        trashed = await add_object("old.pdf", folder_id=folder_id)
        await add_object("elsewhere.pdf")
        await services.trash.soft_delete(trashed.id, None)

        photos, files = await services.folders.list_objects(CLUB_SCOPE, folder_id)

        assert [p.id for p in photos] == [photo.id]
        assert [f.id for f in files] == [doc.id]

    @pytest.mark.asyncio
    async def test_member_cannot_view_club_level(self, services):
        with pytest.raises(PermissionDeniedError):
            await services.folders.list_children(CLUB_SCOPE, caller_id=TEAM_A_MEMBER_ID)

    @pytest.mark.asyncio
    async def test_member_cannot_view_other_team(self, services):
        await services.folders.list_children(TEAM_A_SCOPE, caller_id=TEAM_A_MEMBER_ID)

        with pytest.raises(PermissionDeniedError):
            await services.folders.list_children(TEAM_A_SCOPE, caller_id=TEAM_B_MEMBER_ID)

    @pytest.mark.asyncio
    async def test_club_admin_views_every_team(self, services):
        await services.folders.list_children(TEAM_B_SCOPE, caller_id=CLUB_ADMIN_ID)
        await services.folders.list_children(CLUB_SCOPE, caller_id=CLUB_ADMIN_ID)


class TestResolvePath:

    @pytest.mark.asyncio
    async def test_path_from_root(self, services, add_folder):
        season = await add_folder("2026")
        cup = await add_folder("Cup", parent_id=season)
        final = await add_folder("Final", parent_id=cup)

        path = await services.folders.resolve_path(final)

        assert [p["name"] for p in path] == ["2026", "Cup", "Final"]
        assert path[-1]["id"] == final

    @pytest.mark.asyncio
    async def test_missing_folder(self, services):
        with pytest.raises(NotFoundError):
            await services.folders.resolve_path("nope")

    @pytest.mark.asyncio
    async def test_cycle_is_reported(self, services, folder_repo, add_folder):
        a = await add_folder("A")
        b = await add_folder("B", parent_id=a)
        await folder_repo.move(a, b)

        with pytest.raises(IntegrityError):
            await services.folders.resolve_path(b)

    @pytest.mark.asyncio
    async def test_path_requires_view_access(self, services, add_folder):
        season = await add_folder("2026")
        secret = await add_folder("Board", parent_id=season)

        with pytest.raises(PermissionDeniedError):
            await services.folders.resolve_path(secret, TEAM_A_MEMBER_ID)
        path = await services.folders.resolve_path(secret, CLUB_ADMIN_ID)
        assert [p["name"] for p in path] == ["2026", "Board"]


class TestManagement:

    @pytest.mark.asyncio
    async def test_create_folder(self, services):
        folder = await services.folders.create_folder("  Trophies ", TEAM_A_SCOPE, TEAM_A_ADMIN_ID)

        assert folder["name"] == "Trophies"
        assert folder["sub_organization_id"] == TEAM_A_SCOPE.sub_organization_id
        assert folder["created_by"] == TEAM_A_ADMIN_ID

    @pytest.mark.asyncio
    async def test_create_requires_name(self, services):
        with pytest.raises(ValidationError):
            await services.folders.create_folder("   ", CLUB_SCOPE, CLUB_ADMIN_ID)

    @pytest.mark.asyncio
    async def test_parent_must_share_scope(self, services, add_folder):
        club_folder = await add_folder("Club")

        with pytest.raises(ValidationError):
            await services.folders.create_folder("Team", TEAM_A_SCOPE, CLUB_ADMIN_ID,
                                                 parent_folder_id=club_folder)

    @pytest.mark.asyncio
    async def test_member_cannot_create_folder(self, services):
        with pytest.raises(PermissionDeniedError):
            await services.folders.create_folder("Mine", TEAM_A_SCOPE, TEAM_A_MEMBER_ID)

    @pytest.mark.asyncio
    async def test_team_from_another_club_rejected(self, services, other_club):
        with pytest.raises(NotFoundError):
            await services.folders.create_folder("Kit", MISMATCHED_SCOPE, OTHER_MEMBER_ID)
        with pytest.raises(NotFoundError):
            await services.folders.create_folder("Kit", MISMATCHED_SCOPE, CLUB_ADMIN_ID)

        assert await services.folders.list_children(MISMATCHED_SCOPE) == []

    @pytest.mark.asyncio
    async def test_rename_own_folder(self, services, add_folder):
        folder_id = await add_folder("Draft", scope=TEAM_A_SCOPE, user_id=TEAM_A_MEMBER_ID)

        folder = await services.folders.rename_folder(folder_id, "Final", TEAM_A_MEMBER_ID)

        assert folder["name"] == "Final"

    @pytest.mark.asyncio
    async def test_rename_others_folder_denied(self, services, add_folder):
        folder_id = await add_folder("Admin", scope=TEAM_A_SCOPE, user_id=TEAM_A_ADMIN_ID)

        with pytest.raises(PermissionDeniedError):
            await services.folders.rename_folder(folder_id, "Mine", TEAM_A_MEMBER_ID)

    @pytest.mark.asyncio
    async def test_move_folder(self, services, folder_repo, add_folder):
        a = await add_folder("A")
        b = await add_folder("B")

        await services.folders.move_folder(b, a, CLUB_ADMIN_ID)

        assert (await folder_repo.get_by_id(b))["parent_folder_id"] == a

    @pytest.mark.asyncio
    async def test_move_into_own_subfolder_rejected(self, services, add_folder):
        a = await add_folder("A")
        b = await add_folder("B", parent_id=a)

        with pytest.raises(ValidationError):
            await services.folders.move_folder(a, b, CLUB_ADMIN_ID)

    @pytest.mark.asyncio
    async def test_move_across_scopes_rejected(self, services, add_folder):
        club_folder = await add_folder("Club")
        team_folder = await add_folder("Team", scope=TEAM_A_SCOPE)

        with pytest.raises(ValidationError):
            await services.folders.move_folder(team_folder, club_folder, CLUB_ADMIN_ID)


class TestDeleteFolder:

    @pytest.mark.asyncio
    async def test_contents_move_to_parent(self, services, folder_repo, object_repo,
                                           add_folder, add_object):
        parent = await add_folder("Season")
        doomed = await add_folder("Old", parent_id=parent)
        child = await add_folder("Keep", parent_id=doomed)
        doc = await add_object("doc.pdf", folder_id=doomed)

        warning = await services.folders.delete_folder(doomed, CLUB_ADMIN_ID)

        assert warning == DELETE_FOLDER_WARNING
        assert await folder_repo.get_by_id(doomed) is None
        assert (await folder_repo.get_by_id(child))["parent_folder_id"] == parent
        assert (await object_repo.get_by_id(doc.id))["folder_id"] == parent

    @pytest.mark.asyncio
    async def test_top_level_contents_move_to_root(self, services, object_repo,
                                                   add_folder, add_object):
        doomed = await add_folder("Old")
        doc = await add_object("doc.pdf", folder_id=doomed)

        await services.folders.delete_folder(doomed, CLUB_ADMIN_ID)

        assert (await object_repo.get_by_id(doc.id))["folder_id"] is None
        photos, files = await services.folders.list_objects(CLUB_SCOPE)
        assert [f.id for f in files] == [doc.id]

    @pytest.mark.asyncio
    async def test_missing_folder(self, services):
        with pytest.raises(NotFoundError):
            await services.folders.delete_folder("nope", CLUB_ADMIN_ID)
