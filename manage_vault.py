#!/usr/bin/env python3
"""
Vault administration CLI for Club Vault.
Commands run with full access; no capability checks apply.

Usage:
    python manage_vault.py add-org <name> [--premium]
    python manage_vault.py add-team <org_id> <name> [--premium]
    python manage_vault.py grant <user_id> <role> <org_id> [team_id]
    python manage_vault.py subscribe <org_id> <purchased_gb>
    python manage_vault.py usage <org_id>
    python manage_vault.py large <org_id> [limit]
    python manage_vault.py trash <org_id>
    python manage_vault.py purge <object_id>
    python manage_vault.py export <org_id> <out_dir> [--team ID] [--folder ID] [--flat] [--individual]
"""

import asyncio
import logging
import sys
from pathlib import Path

from clubvault import config
from clubvault.application.errors import ValidationError, VaultError
from clubvault.application.models import ExportItem, OwnerScope
from clubvault.application.services.quota_service import format_size
from clubvault.dependencies import build_services
from clubvault.infrastructure.database import connect, create_schema
from clubvault.infrastructure.repositories import AsyncOrganizationRepository, AsyncRoleRepository
from clubvault.infrastructure.repositories.role_repository import (
    APP_ADMIN, ORG_ADMIN, SUB_ORG_ADMIN, MEMBER
)

ROLES = (APP_ADMIN, ORG_ADMIN, SUB_ORG_ADMIN, MEMBER)


def print_usage():
    print(__doc__)


def _pop_flag(args, name):
    if name in args:
        args.remove(name)
        return True
    return False


def _pop_option(args, name):
    if name not in args:
        return None
    index = args.index(name)
    if index + 1 >= len(args):
        raise ValueError(f"{name} requires a value")
    value = args[index + 1]
    del args[index:index + 2]
    return value


async def cmd_add_org(conn, args):
    premium = _pop_flag(args, "--premium")
    if len(args) < 1:
        print("Error: add-org requires <name>")
        return 1
    org_id = await AsyncOrganizationRepository(conn).create(args[0], is_premium=premium)
    print(f"Club '{args[0]}' created (ID: {org_id})")
    return 0


async def cmd_add_team(conn, args):
    premium = _pop_flag(args, "--premium")
    if len(args) < 2:
        print("Error: add-team requires <org_id> <name>")
        return 1
    repo = AsyncOrganizationRepository(conn)
    if not await repo.get_by_id(args[0]):
        print(f"Error: Club '{args[0]}' not found")
        return 1
    team_id = await repo.create_sub_organization(args[0], args[1], is_premium=premium)
    print(f"Team '{args[1]}' created (ID: {team_id})")
    return 0


async def cmd_grant(conn, args):
    if len(args) < 3:
        print("Error: grant requires <user_id> <role> <org_id> [team_id]")
        return 1
    user_id, role, org_id = int(args[0]), args[1], args[2]
    if role not in ROLES:
        print(f"Error: role must be one of {', '.join(ROLES)}")
        return 1
    team_id = args[3] if len(args) > 3 else None
    await AsyncRoleRepository(conn).grant(user_id, role, org_id, team_id)
    print(f"Granted {role} to user {user_id}")
    return 0


async def cmd_subscribe(conn, args):
    if len(args) < 2:
        print("Error: subscribe requires <org_id> <purchased_gb>")
        return 1
    await AsyncOrganizationRepository(conn).set_subscription(args[0], int(args[1]))
    print(f"Club '{args[0]}' now has {args[1]} GB of extra storage")
    return 0


async def cmd_usage(conn, args):
    if len(args) < 1:
        print("Error: usage requires <org_id>")
        return 1
    services = build_services(conn)
    usage = await services.quota.compute_usage(args[0])
    limit = await services.quota.get_limit(args[0])

    percent = usage.total_bytes / limit.limit_bytes * 100
    print(f"Used {format_size(usage.total_bytes)} of {format_size(limit.limit_bytes)} ({percent:.0f}%)")
    print(f"  Photos:    {format_size(usage.photos_bytes)}")
    print(f"  Documents: {format_size(usage.document_bytes)}")
    for group in usage.per_sub_organization:
        print(f"  {group.name:<30} {format_size(group.bytes)}")
    if limit.scheduled_downgrade_gb is not None:
        print(f"Downgrade to {limit.scheduled_downgrade_gb} GB scheduled for {limit.downgrade_at}")
    return 0


async def cmd_large(conn, args):
    if len(args) < 1:
        print("Error: large requires <org_id> [limit]")
        return 1
    limit = int(args[1]) if len(args) > 1 else config.LARGE_FILES_LIMIT
    items = await build_services(conn).quota.find_large_objects(args[0], limit)

    print(f"{'ID':<38} {'Size':>10}  {'Team':<20} {'Name'}")
    print("-" * 90)
    for item in items:
        print(f"{item['id']:<38} {format_size(item['size_bytes']):>10}  "
              f"{item['sub_organization_name']:<20} {item['name']}")
    return 0


async def cmd_trash(conn, args):
    if len(args) < 1:
        print("Error: trash requires <org_id>")
        return 1
    entries = await build_services(conn).trash.list_trash(args[0])
    if not entries:
        print("Trash is empty")
        return 0

    print(f"{'ID':<38} {'Deleted':<28} {'Location':<30} {'Name'}")
    print("-" * 110)
    for entry in entries:
        print(f"{entry['id']:<38} {entry['deleted_at']:<28} {entry['location']:<30} {entry['name'] or ''}")
    return 0


async def cmd_purge(conn, args):
    if len(args) < 1:
        print("Error: purge requires <object_id>")
        return 1

    confirm = input(f"Delete '{args[0]}' forever? [y/N]: ")
    if confirm.lower() != 'y':
        print("Cancelled")
        return 0

    obj = await build_services(conn).trash.purge_forever(args[0], None)
    print(f"'{obj.filename}' deleted forever")
    return 0


async def cmd_export(conn, args):
    team_id = _pop_option(args, "--team")
    folder_id = _pop_option(args, "--folder")
    flat = _pop_flag(args, "--flat")
    individual = _pop_flag(args, "--individual")
    if len(args) < 2:
        print("Error: export requires <org_id> <out_dir>")
        return 1

    out_dir = Path(args[1])
    out_dir.mkdir(parents=True, exist_ok=True)
    services = build_services(conn)
    selection = await services.export.discover(
        OwnerScope(args[0], team_id), folder_id, recursive=not flat
    )
    for folder in selection.folders:
        print(f"  {folder.label:<40} {folder.item_count} items")

    def report(completed, total):
        print(f"\r{completed}/{total}", end="", flush=True)

    if individual:
        root = out_dir.resolve()

        async def save(item: ExportItem, data: bytes):
            target = (root / item.archive_path).resolve()
            if not target.is_relative_to(root):
                raise ValidationError(f"{item.archive_path} is outside {root}")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            print(f"  {item.archive_path}")

        result = await services.export.download_individually(selection.items, save)
        print(result.summary("Downloaded", ""))
        return 0 if result.succeeded else 1

    result = await services.export.build_archive(selection, progress=report)
    print()
    if result.archive is None:
        print(f"Error: {result.summary()}")
        return 1
    target = out_dir / result.filename
    target.write_bytes(result.archive)
    print(f"{result.summary()} -> {target}")
    return 0


async def run(command, args):
    conn = await connect(config.DATABASE_PATH)
    try:
        await create_schema(conn)
        return await COMMANDS[command](conn, args)
    finally:
        await conn.close()


COMMANDS = {
    'add-org': cmd_add_org,
    'add-team': cmd_add_team,
    'grant': cmd_grant,
    'subscribe': cmd_subscribe,
    'usage': cmd_usage,
    'large': cmd_large,
    'trash': cmd_trash,
    'purge': cmd_purge,
    'export': cmd_export,
}


def main():
    if len(sys.argv) < 2 or sys.argv[1].lower() == 'help':
        print_usage()
        return 0 if len(sys.argv) >= 2 else 1

    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    command = sys.argv[1].lower()
    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        print_usage()
        return 1

    try:
        return asyncio.run(run(command, sys.argv[2:]))
    except (VaultError, ValueError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
