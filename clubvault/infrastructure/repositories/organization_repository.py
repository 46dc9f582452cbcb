"""Organization repository - tenants, sub-organizations and storage subscriptions."""
import uuid
from datetime import datetime

from .base import AsyncRepository


class AsyncOrganizationRepository(AsyncRepository):
    """Async repository for organizations (clubs) and sub-organizations (teams)."""

    async def create(self, name: str, is_premium: bool = False,
                     organization_id: str | None = None) -> str:
        organization_id = organization_id or str(uuid.uuid4())
        await self._execute(
            "INSERT INTO organizations (id, name, is_premium) VALUES (?, ?, ?)",
            (organization_id, name.strip(), is_premium)
        )
        await self._commit()
        return organization_id

    async def get_by_id(self, organization_id: str) -> dict | None:
        return await self._fetchone(
            "SELECT * FROM organizations WHERE id = ?",
            (organization_id,)
        )

    async def set_premium(self, organization_id: str, is_premium: bool) -> bool:
        cursor = await self._execute(
            "UPDATE organizations SET is_premium = ? WHERE id = ?",
            (is_premium, organization_id)
        )
        await self._commit()
        return cursor.rowcount > 0

    # Sub-organizations

    async def create_sub_organization(
        self,
        organization_id: str,
        name: str,
        is_premium: bool = False,
        sub_organization_id: str | None = None,
    ) -> str:
        sub_organization_id = sub_organization_id or str(uuid.uuid4())
        await self._execute(
            """INSERT INTO sub_organizations (id, organization_id, name, is_premium)
               VALUES (?, ?, ?, ?)""",
            (sub_organization_id, organization_id, name.strip(), is_premium)
        )
        await self._commit()
        return sub_organization_id

    async def get_sub_organization(self, sub_organization_id: str) -> dict | None:
        return await self._fetchone(
            "SELECT * FROM sub_organizations WHERE id = ?",
            (sub_organization_id,)
        )

    async def list_sub_organizations(self, organization_id: str) -> list[dict]:
        return await self._fetchall(
            "SELECT * FROM sub_organizations WHERE organization_id = ? ORDER BY name",
            (organization_id,)
        )

    # Storage subscription

    async def get_subscription(self, organization_id: str) -> dict | None:
        """Get the storage add-on record for an organization.

        Returns:
            Dict with purchased_gb, scheduled_downgrade_gb, downgrade_at or None
        """
        return await self._fetchone(
            "SELECT * FROM storage_subscriptions WHERE organization_id = ?",
            (organization_id,)
        )

    async def set_subscription(
        self,
        organization_id: str,
        purchased_gb: int,
        scheduled_downgrade_gb: int | None = None,
        downgrade_at: datetime | None = None,
    ) -> None:
        await self._execute(
            """INSERT INTO storage_subscriptions
                   (organization_id, purchased_gb, scheduled_downgrade_gb, downgrade_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(organization_id) DO UPDATE SET
                   purchased_gb = excluded.purchased_gb,
                   scheduled_downgrade_gb = excluded.scheduled_downgrade_gb,
                   downgrade_at = excluded.downgrade_at""",
            (organization_id, purchased_gb, scheduled_downgrade_gb, downgrade_at)
        )
        await self._commit()
