# agency_api/services/user.py

from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, Request

from agency_api.models.admin import AdminUser, Capability, Role
from agency_api.schemas.user import UserCreate, UserUpdate, UserResponse, AssignableUser
from agency_api.services.permissions import (
    AdminContext, normalize_permissions, permissions_payload, resolve_permissions,
)
from agency_api.services.session import delete_sessions_for
from agency_api.utils.errors import raise_store_error
from agency_api.utils.security import hash_password

DUPLICATE_EMAIL = "Er bestaat al een gebruiker met dit e-mailadres."


def user_response(account: AdminUser) -> UserResponse:
    return UserResponse(
        id=account.id,
        email=account.email,
        full_name=account.full_name,
        phone=account.phone,
        role=account.role,
        is_super_admin=account.role == Role.SUPER_ADMIN.value,
        permissions=permissions_payload(resolve_permissions(account)),
        created_at=account.created_at,
    )


async def read_users_service(request: Request) -> list[AdminUser]:
    """
    All admin accounts, oldest first.
    """
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(select(AdminUser).order_by(AdminUser.created_at, AdminUser.id))
    accounts = result.scalars().all()

    await log.log_info("users", f"{len(accounts)} accounts loaded")
    return accounts


async def read_user_service(id: int, request: Request) -> AdminUser:
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(select(AdminUser).where(AdminUser.id == id))
    account = result.scalar_one_or_none()
    if account is None:
        await log.log_warning("users", "Account not found", {"id": id})
        raise HTTPException(status_code=404, detail="Gebruiker niet gevonden")
    return account


async def _email_taken(db, email: str, exclude_id: int | None = None) -> bool:
    query = select(AdminUser.id).where(AdminUser.email == email)
    if exclude_id is not None:
        query = query.where(AdminUser.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def create_user_service(user: UserCreate, admin: AdminContext, request: Request) -> AdminUser:
    """
    Creates an admin account. New accounts are always plain admins;
    capabilities not listed are stored as False.
    """
    db = request.state.db
    log = request.app.state.log

    if await _email_taken(db, user.email):
        raise HTTPException(status_code=409, detail=DUPLICATE_EMAIL)

    account = AdminUser(
        email=user.email,
        password_hash=hash_password(user.password),
        full_name=user.full_name,
        phone=user.phone,
        role=Role.ADMIN.value,
        permissions=permissions_payload(normalize_permissions(user.permissions)),
    )
    db.add(account)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(request, e, "users", "admin_users", duplicate_message=DUPLICATE_EMAIL)
    await db.refresh(account)

    await log.log_info("users", "Account created", {"id": account.id, "email": account.email, "by": admin.email})
    return account


async def _count_user_managers(db) -> int:
    result = await db.execute(select(AdminUser))
    return sum(1 for account in result.scalars().all() if resolve_permissions(account)[Capability.MANAGE_USERS])


async def update_user_service(id: int, update: UserUpdate, admin: AdminContext, request: Request) -> AdminUser:
    """
    Partial update of an account.

    - permissions are merged into the stored map; a super admin's permissions are fixed (403)
    - the last account able to manage users keeps that capability (400)
    - a new password or e-mail revokes the account's open sessions
    - sending the values already stored changes nothing
    """
    db = request.state.db
    log = request.app.state.log

    data = update.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="Geen wijzigingen opgegeven.")

    account = await read_user_service(id, request)
    is_super_admin = account.role == Role.SUPER_ADMIN.value

    changes = {}

    if "permissions" in data:
        if is_super_admin:
            await log.log_warning("users", "Refused permission change on super admin", {"id": id, "by": admin.email})
            raise HTTPException(
                status_code=403,
                detail="Rechten van de superbeheerder kunnen niet worden gewijzigd.",
            )
        current = normalize_permissions(account.permissions)
        merged = {**current, **(data.pop("permissions") or {})}

        if current[Capability.MANAGE_USERS] and not merged[Capability.MANAGE_USERS]:
            if await _count_user_managers(db) <= 1:
                raise HTTPException(
                    status_code=400,
                    detail="Er moet minstens één beheerder met rechten voor gebruikersbeheer overblijven.",
                )

        payload = permissions_payload(merged)
        if payload != permissions_payload(current):
            changes["permissions"] = payload

    if data.get("email") is not None and data["email"] != account.email:
        if await _email_taken(db, data["email"], exclude_id=account.id):
            raise HTTPException(status_code=409, detail=DUPLICATE_EMAIL)
        changes["email"] = data["email"]

    password = data.pop("password", None)
    if password:
        changes["password_hash"] = hash_password(password)

    for key in ("full_name", "phone"):
        if key in data and data[key] != getattr(account, key):
            changes[key] = data[key]

    if not changes:
        await log.log_info("users", "Account unchanged", {"id": id})
        return account

    previous_email = account.email
    for key, value in changes.items():
        setattr(account, key, value)

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(request, e, "users", "admin_users", duplicate_message=DUPLICATE_EMAIL)
    await db.refresh(account)

    if "password_hash" in changes or "email" in changes:
        await delete_sessions_for(db, previous_email)

    await log.log_info("users", "Account updated", {"id": id, "fields": sorted(changes), "by": admin.email})
    return account


async def read_assignable_users_service(request: Request) -> list[AssignableUser]:
    """Accounts that can be picked as "assigned to" on leads and customers."""
    db = request.state.db

    result = await db.execute(select(AdminUser).order_by(AdminUser.full_name, AdminUser.email))
    return [AssignableUser(email=a.email, full_name=a.full_name) for a in result.scalars().all()]
