# agency_api/scripts/create_admin.py
# python -m agency_api.scripts.create_admin admin@example.be --password ... --grant leads --grant customers

import argparse
import asyncio
import getpass

from sqlalchemy.future import select

from agency_api.models.admin import AdminUser, Capability, Role
from agency_api.services.permissions import permissions_payload
from agency_api.utils.database import AsyncSessionLocal, init_db
from agency_api.utils.log import Log
from agency_api.utils.security import hash_password, is_valid_email, normalize_email


async def upsert_admin(
    email: str,
    password: str,
    full_name: str | None = None,
    role: Role = Role.ADMIN,
    grants: list[Capability] | None = None,
):
    """
    Creates the account, or updates password, role and capabilities when it exists.
    Returns (account, created).
    """
    email = normalize_email(email)
    permissions = permissions_payload({cap: cap in (grants or []) for cap in Capability})

    await init_db()
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(AdminUser).where(AdminUser.email == email))
        account = result.scalar_one_or_none()
        created = account is None

        if created:
            account = AdminUser(email=email)
            session.add(account)
        account.password_hash = hash_password(password)
        account.role = role.value
        account.permissions = permissions
        if full_name:
            account.full_name = full_name

        await session.commit()
        await session.refresh(account)
        return account, created


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create or update an admin account")
    parser.add_argument("email")
    parser.add_argument("--password", help="prompted when omitted")
    parser.add_argument("--name", dest="full_name")
    parser.add_argument("--super-admin", action="store_true")
    parser.add_argument(
        "--grant", action="append", default=[], choices=[cap.value for cap in Capability],
        help="capability to grant, repeatable",
    )
    args = parser.parse_args(argv)

    if not is_valid_email(normalize_email(args.email)):
        parser.error("invalid e-mail address")
    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        parser.error("password needs at least 8 characters")

    log = Log()
    account, created = asyncio.run(upsert_admin(
        args.email,
        password,
        full_name=args.full_name,
        role=Role.SUPER_ADMIN if args.super_admin else Role.ADMIN,
        grants=[Capability(value) for value in args.grant],
    ))
    log.log_info_sync(
        "scripts",
        "Admin account created" if created else "Admin account updated",
        {"email": account.email, "role": account.role, "permissions": account.permissions},
        is_console=True,
    )


if __name__ == "__main__":
    main()
