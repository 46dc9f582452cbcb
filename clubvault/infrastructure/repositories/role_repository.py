"""Role repository - user roles within organizations and sub-organizations."""
from .base import AsyncRepository

APP_ADMIN = "app_admin"
ORG_ADMIN = "org_admin"
SUB_ORG_ADMIN = "sub_org_admin"
MEMBER = "member"


class AsyncRoleRepository(AsyncRepository):
    """Async repository for ``user_roles`` rows."""

    async def grant(
        self,
        user_id: int,
        role: str,
        organization_id: str | None = None,
        sub_organization_id: str | None = None,
    ) -> None:
        """Grant a role (no-op if already granted)."""
        await self._execute(
            """INSERT OR IGNORE INTO user_roles
                   (user_id, role, organization_id, sub_organization_id)
               VALUES (?, ?, ?, ?)""",
            (user_id, role, organization_id, sub_organization_id)
        )
        await self._commit()

    async def list_for_user(self, user_id: int) -> list[dict]:
        return await self._fetchall(
            """SELECT role, organization_id, sub_organization_id
               FROM user_roles WHERE user_id = ?""",
            (user_id,)
        )
