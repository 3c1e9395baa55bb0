# agency_api/routes/customers.py

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status

from agency_api.models.admin import Capability
from agency_api.routes.auth import admin_rate_limit, require_permission
from agency_api.schemas.customer import (
    Customer, CustomerPatch, CustomerUpdate, CustomerUpdateCreate, ProjectStatus,
)
from agency_api.schemas.attachment import CustomerAttachment
from agency_api.schemas.lead import Lead
from agency_api.services.customer import (
    create_customer_attachment_service,
    create_customer_update_service,
    delete_customer_attachment_service,
    delete_customer_service,
    read_customer_attachments_service,
    read_customer_lead_service,
    read_customer_service,
    read_customer_updates_service,
    read_customers_service,
    update_customer_service,
)
from agency_api.services.permissions import AdminContext

router = APIRouter()

can_customers = require_permission(Capability.CUSTOMERS)


@router.get(
    "/customers",
    response_model=List[Customer],
    summary="List customers (most recently converted first)",
    responses={401: {"description": "No valid session"}, 403: {"description": "Account lacks the customers capability"}}
)
async def read_customers(
    request: Request,
    project_status: Optional[ProjectStatus] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    admin: AdminContext = Depends(can_customers),
):
    return await read_customers_service(request, project_status=project_status, skip=skip, limit=limit)


@router.get(
    "/customers/{id}",
    response_model=Customer,
    summary="Customer by ID",
    responses={404: {"description": "Customer not found"}}
)
async def read_customer(id: int, request: Request, admin: AdminContext = Depends(can_customers)):
    return await read_customer_service(id, request)


@router.patch(
    "/customers/{id}",
    response_model=Customer,
    summary="Update a customer",
    responses={
        400: {"description": "Field outside the whitelist, invalid value or empty update"},
        404: {"description": "Customer not found"},
    }
)
async def update_customer(
    id: int,
    patch: CustomerPatch,
    request: Request,
    admin: AdminContext = Depends(can_customers),
    _quota=Depends(admin_rate_limit),
):
    """
    Editable: contact and company details, bank account, package, message,
    assignment, approved quote and its totals, project status.
    """
    return await update_customer_service(id, patch, admin, request)


@router.delete(
    "/customers/{id}",
    summary="Delete a customer",
    responses={
        200: {"description": "Customer and the lead it came from deleted"},
        404: {"description": "Customer not found"},
    }
)
async def delete_customer(
    id: int,
    request: Request,
    admin: AdminContext = Depends(can_customers),
    _quota=Depends(admin_rate_limit),
):
    lead_deleted = await delete_customer_service(id, admin, request)
    message = "Klant en bijbehorende lead succesvol verwijderd" if lead_deleted else "Klant succesvol verwijderd"
    return {"success": True, "lead_deleted": lead_deleted, "message": message}


@router.get(
    "/admin/customers/{id}/lead",
    response_model=Lead,
    summary="Lead a customer was converted from",
    responses={404: {"description": "Customer not found or not linked to a lead"}}
)
async def read_customer_lead(id: int, request: Request, admin: AdminContext = Depends(can_customers)):
    return await read_customer_lead_service(id, request)


# ────────────── Update log ──────────────
@router.get("/customers/{id}/updates", response_model=List[CustomerUpdate], summary="Project updates of a customer")
async def read_customer_updates(id: int, request: Request, admin: AdminContext = Depends(can_customers)):
    return await read_customer_updates_service(id, request)


@router.post(
    "/customers/{id}/updates",
    response_model=CustomerUpdate,
    status_code=status.HTTP_201_CREATED,
    summary="Add a project update",
    responses={400: {"description": "Missing title or description, progress outside 0..100"}}
)
async def create_customer_update(
    id: int,
    update: CustomerUpdateCreate,
    request: Request,
    admin: AdminContext = Depends(can_customers),
    _quota=Depends(admin_rate_limit),
):
    return await create_customer_update_service(id, update, admin, request)


# ────────────── Files ──────────────
@router.get("/customers/{id}/attachments", response_model=List[CustomerAttachment], summary="Files of a customer")
async def read_customer_attachments(id: int, request: Request, admin: AdminContext = Depends(can_customers)):
    return await read_customer_attachments_service(id, request)


@router.post(
    "/customers/{id}/upload",
    response_model=CustomerAttachment,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a project file (multipart)",
    responses={
        400: {"description": "No file or an empty file"},
        404: {"description": "Customer not found"},
        413: {"description": "File larger than MAX_UPLOAD_BYTES"},
    }
)
async def upload_customer_attachment(
    id: int,
    request: Request,
    file: UploadFile = File(...),
    description: Optional[str] = Form(None),
    admin: AdminContext = Depends(can_customers),
    _quota=Depends(admin_rate_limit),
):
    return await create_customer_attachment_service(id, file, description, admin, request)


@router.delete(
    "/customers/{id}/attachments/{attachment_id}",
    summary="Delete a customer file",
    responses={404: {"description": "File not found on this customer"}}
)
async def delete_customer_attachment(
    id: int,
    attachment_id: int,
    request: Request,
    admin: AdminContext = Depends(can_customers),
    _quota=Depends(admin_rate_limit),
):
    await delete_customer_attachment_service(id, attachment_id, request)
    return {"success": True}
