# agency_api/routes/users.py

from typing import List

from fastapi import APIRouter, Depends, Request, status

from agency_api.models.admin import Capability
from agency_api.routes.auth import admin_rate_limit, require_permission
from agency_api.schemas.user import AssignableUser, UserCreate, UserResponse, UserUpdate
from agency_api.services.permissions import AdminContext
from agency_api.services.user import (
    create_user_service,
    read_assignable_users_service,
    read_user_service,
    read_users_service,
    update_user_service,
    user_response,
)

router = APIRouter()

can_manage_users = require_permission(Capability.MANAGE_USERS)


# ────────────── CRUD USERS ──────────────
@router.get(
    "/users",
    response_model=List[UserResponse],
    summary="List admin accounts",
    responses={
        200: {"description": "Accounts with their resolved capabilities"},
        401: {"description": "No valid session"},
        403: {"description": "Account lacks the manage_users capability"},
    }
)
async def read_users(request: Request, admin: AdminContext = Depends(can_manage_users)):
    return [user_response(account) for account in await read_users_service(request)]


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an admin account",
    responses={
        201: {"description": "Account created"},
        400: {"description": "Invalid e-mail, password shorter than 8 characters or unknown field"},
        409: {"description": "An account with this e-mail already exists"},
    }
)
async def create_user(
    user: UserCreate,
    request: Request,
    admin: AdminContext = Depends(can_manage_users),
    _quota=Depends(admin_rate_limit),
):
    """
    ## New admin account

    - Always created with the `admin` role; there is one super admin, bootstrapped from the settings.
    - Capabilities not listed are stored as `false`.
    - The password is hashed before it is stored.
    """
    return user_response(await create_user_service(user, admin, request))


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Admin account by ID",
    responses={404: {"description": "Account not found"}}
)
async def read_user(user_id: int, request: Request, admin: AdminContext = Depends(can_manage_users)):
    return user_response(await read_user_service(user_id, request))


@router.patch(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Update an admin account",
    responses={
        200: {"description": "Account updated (or already in the requested state)"},
        400: {"description": "Empty update, or the last user manager would lose manage_users"},
        403: {"description": "The super admin's capabilities cannot be changed"},
        404: {"description": "Account not found"},
        409: {"description": "E-mail used by another account"},
    }
)
async def update_user(
    user_id: int,
    update: UserUpdate,
    request: Request,
    admin: AdminContext = Depends(can_manage_users),
    _quota=Depends(admin_rate_limit),
):
    """
    ## Partial update

    - `permissions` is merged into the stored capabilities.
    - Sending the values already stored succeeds and changes nothing.
    - A new password or e-mail ends the account's open sessions.
    """
    return user_response(await update_user_service(user_id, update, admin, request))


@router.get(
    "/assignable-users",
    response_model=List[AssignableUser],
    summary="Accounts for the \"assigned to\" picker"
)
async def read_assignable_users(
    request: Request,
    admin: AdminContext = Depends(require_permission(Capability.LEADS, Capability.CUSTOMERS, any_of=True)),
):
    return await read_assignable_users_service(request)
