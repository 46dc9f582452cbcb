"""Quota ledger - storage consumption and limits per organization.

Consumption is always derived by summing catalog rows on each call; no
running counter is stored. This avoids drift under concurrent uploads and
deletes at the cost of one scan per check.

Known race: :meth:`QuotaService.can_upload` followed by the upload is not
atomic. Two callers checking at the same time can both pass and push the
organization over its limit by at most the size of one in-flight upload.
The catalog offers no multi-row transaction or conditional increment to
close this window.
"""
import logging

from ..errors import NotFoundError, QuotaExceededError
from ..models import (
    ALERT_LIMIT_REACHED,
    ALERT_WARNING,
    PHOTO,
    OwnerScope,
    QuotaAlert,
    QuotaLimit,
    StorageUsage,
    StoredObject,
    SubOrganizationUsage,
)
from ... import config
from ...infrastructure.repositories import AsyncObjectRepository, AsyncOrganizationRepository

logger = logging.getLogger(__name__)

ORGANIZATION_LEVEL_NAME = "Club-level"
UNKNOWN_SUB_ORGANIZATION_NAME = "Unknown Team"


def format_size(size_bytes: int) -> str:
    """Format byte count the way the vault UI shows it."""
    if size_bytes >= 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"
    if size_bytes >= 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes} B"


class QuotaService:
    """Service computing and monitoring storage consumption.

    Responsibilities:
    - Usage breakdown (photos vs documents, per sub-organization)
    - Limit = base allowance + purchased add-on
    - Advisory upload check
    - One-time-per-session threshold alerts
    - Premium entitlement resolution
    """

    def __init__(
        self,
        object_repository: AsyncObjectRepository,
        organization_repository: AsyncOrganizationRepository,
        base_limit: int = config.BASE_STORAGE_LIMIT,
        default_photo_size: int = config.DEFAULT_PHOTO_SIZE,
        image_extensions: set[str] | None = None,
    ):
        self.object_repo = object_repository
        self.org_repo = organization_repository
        self.base_limit = base_limit
        self.default_photo_size = default_photo_size
        self.image_extensions = image_extensions or config.IMAGE_EXTENSIONS

    async def _require_organization(self, organization_id: str) -> dict:
        organization = await self.org_repo.get_by_id(organization_id)
        if not organization:
            raise NotFoundError("Organization not found")
        return organization

    def object_size(self, obj: StoredObject) -> int:
        """Bytes an object counts for; photos without a size use the estimate."""
        if obj.size_bytes is not None:
            return obj.size_bytes
        return self.default_photo_size if obj.kind == PHOTO else 0

    async def compute_usage(self, organization_id: str) -> StorageUsage:
        """Sum all non-trashed objects owned by the organization or its sub-organizations.

        Args:
            organization_id: Organization ID

        Returns:
            StorageUsage with a per-sub-organization breakdown (null key =
            organization level), zero rows dropped, largest first

        Raises:
            NotFoundError: If the organization doesn't exist
        """
        await self._require_organization(organization_id)

        rows = await self.object_repo.list_active_for_organization(organization_id)
        names = {
            s["id"]: s["name"]
            for s in await self.org_repo.list_sub_organizations(organization_id)
        }

        usage = StorageUsage(organization_id=organization_id)
        groups: dict[str | None, SubOrganizationUsage] = {}

        for row in rows:
            obj = StoredObject.from_row({**row, "url": "", "organization_id": organization_id})
            size = self.object_size(obj)
            key = obj.sub_organization_id
            group = groups.get(key)
            if group is None:
                if key is None:
                    name = ORGANIZATION_LEVEL_NAME
                else:
                    name = names.get(key, UNKNOWN_SUB_ORGANIZATION_NAME)
                group = groups[key] = SubOrganizationUsage(key, name)

            if obj.is_photo_like(self.image_extensions):
                usage.photos_bytes += size
                group.photos_bytes += size
            else:
                usage.document_bytes += size
                group.document_bytes += size

        usage.per_sub_organization = sorted(
            (g for g in groups.values() if g.bytes > 0),
            key=lambda g: g.bytes,
            reverse=True,
        )
        return usage

    async def get_limit(self, organization_id: str) -> QuotaLimit:
        """Read the limit from the organization's storage subscription.

        A scheduled downgrade is reported but not applied here.
        """
        subscription = await self.org_repo.get_subscription(organization_id) or {}
        return QuotaLimit(
            base_bytes=self.base_limit,
            purchased_gb=subscription.get("purchased_gb") or 0,
            scheduled_downgrade_gb=subscription.get("scheduled_downgrade_gb"),
            downgrade_at=subscription.get("downgrade_at"),
        )

    async def can_upload(
        self,
        organization_id: str,
        candidate_bytes: int,
        privileged: bool = False
    ) -> bool:
        """Advisory check: privileged, or usage + candidate <= limit.

        Not transactional; see the module docstring for the accepted race.
        """
        if privileged:
            return True
        usage = await self.compute_usage(organization_id)
        limit = await self.get_limit(organization_id)
        return usage.total_bytes + candidate_bytes <= limit.limit_bytes

    async def ensure_can_upload(
        self,
        organization_id: str,
        candidate_bytes: int,
        privileged: bool = False
    ) -> None:
        """Raise QuotaExceededError unless :meth:`can_upload` allows the upload."""
        if privileged:
            return
        usage = await self.compute_usage(organization_id)
        limit = await self.get_limit(organization_id)
        if usage.total_bytes + candidate_bytes > limit.limit_bytes:
            remaining = max(limit.limit_bytes - usage.total_bytes, 0)
            raise QuotaExceededError(
                f"Storage limit reached: {format_size(remaining)} remaining, "
                f"upload needs {format_size(candidate_bytes)}. "
                "Delete files or purchase more storage",
                used_bytes=usage.total_bytes,
                limit_bytes=limit.limit_bytes,
            )

    async def check_thresholds(
        self,
        organization_id: str,
        session,
        usage: StorageUsage | None = None,
        limit: QuotaLimit | None = None,
    ) -> list[QuotaAlert]:
        """Raise the 80% warning and the limit-reached alert once per session.

        Args:
            organization_id: Organization ID
            session: VaultSession owning the seen-set
            usage: Precomputed usage (computed when omitted)
            limit: Precomputed limit (read when omitted)

        Returns:
            Alerts newly raised by this call (empty if already shown)
        """
        usage = usage or await self.compute_usage(organization_id)
        limit = limit or await self.get_limit(organization_id)
        ratio = usage.total_bytes / limit.limit_bytes
        percent = round(ratio * 100)

        warning_key = f"{organization_id}-pro-limit"
        hard_key = f"{organization_id}-hard-limit"

        alerts = []
        if ratio >= 1:
            # The warning is implied once the limit is reached
            session.mark_shown(warning_key)
            if session.mark_shown(hard_key):
                alerts.append(QuotaAlert(
                    organization_id, ALERT_LIMIT_REACHED, percent,
                    "Storage limit reached. Delete files or purchase more storage"
                ))
        elif ratio >= config.STORAGE_WARNING_THRESHOLD:
            if session.mark_shown(warning_key):
                remaining = limit.limit_bytes - usage.total_bytes
                alerts.append(QuotaAlert(
                    organization_id, ALERT_WARNING, percent,
                    f"Club storage at {percent}% capacity, {format_size(remaining)} remaining"
                ))

        for alert in alerts:
            logger.info("Quota alert for %s: %s", organization_id, alert.message)
        return alerts

    async def has_premium_access(self, scope: OwnerScope) -> bool:
        """Premium organizations cover every sub-organization; otherwise the
        sub-organization may hold its own entitlement."""
        organization = await self._require_organization(scope.organization_id)
        if organization["is_premium"]:
            return True
        if scope.sub_organization_id is None:
            return False
        sub_organization = await self.org_repo.get_sub_organization(scope.sub_organization_id)
        return bool(sub_organization and sub_organization["is_premium"])

    async def find_large_objects(
        self,
        organization_id: str,
        limit: int = config.LARGE_FILES_LIMIT
    ) -> list[dict]:
        """Largest sized active objects across the organization, biggest first."""
        await self._require_organization(organization_id)
        rows = await self.object_repo.list_largest(organization_id, limit)
        results = []
        for row in rows:
            obj = StoredObject.from_row(row)
            entry = obj.to_dict()
            entry["name"] = obj.name or ("Photo" if obj.kind == PHOTO else "File")
            if obj.sub_organization_id is None:
                entry["sub_organization_name"] = ORGANIZATION_LEVEL_NAME
            else:
                entry["sub_organization_name"] = (
                    row.get("sub_organization_name") or UNKNOWN_SUB_ORGANIZATION_NAME
                )
            results.append(entry)
        return results
