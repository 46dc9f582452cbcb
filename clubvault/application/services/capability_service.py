"""Capability checks - "can the caller act on this folder or object".

Services only depend on the :class:`CapabilityChecker` protocol. The
role-based implementation below is the default collaborator wired by the
API and CLI.
"""
from typing import Protocol, Union

from ..errors import NotFoundError
from ..models import OwnerScope, StoredObject
from ...infrastructure.repositories import AsyncOrganizationRepository, AsyncRoleRepository
from ...infrastructure.repositories.role_repository import (
    APP_ADMIN, ORG_ADMIN, SUB_ORG_ADMIN
)

Target = Union[StoredObject, dict]


class CapabilityChecker(Protocol):
    """Authorization collaborator consulted per item."""

    async def can_act_on(self, caller_id: int, target: Target) -> bool: ...
    async def can_view_scope(self, caller_id: int, scope: OwnerScope) -> bool: ...
    async def can_manage_scope(self, caller_id: int, scope: OwnerScope) -> bool: ...
    async def is_privileged(self, caller_id: int) -> bool: ...
    async def is_member(self, caller_id: int, organization_id: str) -> bool: ...


async def require_scope(organization_repository: AsyncOrganizationRepository,
                        scope: OwnerScope) -> None:
    """Raise NotFoundError unless the scope's sub-organization belongs to its organization."""
    if scope.sub_organization_id is None:
        return
    team = await organization_repository.get_sub_organization(scope.sub_organization_id)
    if not team or team["organization_id"] != scope.organization_id:
        raise NotFoundError("Team not found in this club")


def _target_fields(target: Target) -> tuple[str, str | None, int | None]:
    """Extract (organization, sub-organization, owner) from an object or folder row."""
    if isinstance(target, StoredObject):
        return target.organization_id, target.sub_organization_id, target.uploader_id
    return (
        target["organization_id"],
        target.get("sub_organization_id"),
        target.get("created_by", target.get("uploader_id")),
    )


class RoleCapabilityService:
    """Role-based capability rules.

    - app admins act on everything and bypass quota (privileged callers)
    - uploaders and folder creators act on their own items
    - organization admins act on everything in their organization
    - sub-organization admins act on their sub-organization's items
    - organization-level content is only visible to organization admins;
      sub-organization content is visible to anyone holding a role there
    """

    def __init__(self, role_repository: AsyncRoleRepository):
        self.role_repo = role_repository

    async def _roles(self, caller_id: int) -> list[dict]:
        return await self.role_repo.list_for_user(caller_id)

    async def is_privileged(self, caller_id: int) -> bool:
        return any(r["role"] == APP_ADMIN for r in await self._roles(caller_id))

    async def is_member(self, caller_id: int, organization_id: str) -> bool:
        """Any role in the organization or one of its sub-organizations.

        Sub-organization roles are granted with their organization id set.
        """
        return any(
            r["role"] == APP_ADMIN or r["organization_id"] == organization_id
            for r in await self._roles(caller_id)
        )

    async def can_act_on(self, caller_id: int, target: Target) -> bool:
        organization_id, sub_organization_id, owner_id = _target_fields(target)
        if owner_id is not None and owner_id == caller_id:
            return True
        return self._manages(await self._roles(caller_id), organization_id, sub_organization_id)

    async def can_manage_scope(self, caller_id: int, scope: OwnerScope) -> bool:
        return self._manages(
            await self._roles(caller_id), scope.organization_id, scope.sub_organization_id
        )

    async def can_view_scope(self, caller_id: int, scope: OwnerScope) -> bool:
        roles = await self._roles(caller_id)
        if self._manages(roles, scope.organization_id, None):
            return True
        if scope.is_organization_level:
            return False
        return any(
            r["organization_id"] == scope.organization_id
            and r["sub_organization_id"] == scope.sub_organization_id
            for r in roles
        )

    @staticmethod
    def _manages(roles: list[dict], organization_id: str,
                 sub_organization_id: str | None) -> bool:
        for role in roles:
            if role["role"] == APP_ADMIN:
                return True
            if role["role"] == ORG_ADMIN and role["organization_id"] == organization_id:
                return True
            if (role["role"] == SUB_ORG_ADMIN
                    and sub_organization_id is not None
                    and role["organization_id"] == organization_id
                    and role["sub_organization_id"] == sub_organization_id):
                return True
        return False
