# agency_api/routes/leads.py

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status

from agency_api.config import settings
from agency_api.models.admin import Capability
from agency_api.routes.auth import admin_rate_limit, require_permission
from agency_api.schemas.activity import Activity, ActivityCreate
from agency_api.schemas.attachment import Attachment
from agency_api.schemas.customer import Customer
from agency_api.schemas.lead import AdminLeadCreate, Lead, LeadFormCreate, LeadIdResponse, LeadStatus, LeadUpdate
from agency_api.schemas.quote import Quote, QuoteEnvelope, QuoteSave, QuoteStatusUpdate
from agency_api.services.lead import (
    convert_lead_service,
    create_activity_service,
    create_admin_lead_service,
    create_attachment_service,
    create_public_lead_service,
    delete_attachment_service,
    delete_lead_service,
    read_activities_service,
    read_attachments_service,
    read_latest_quote_service,
    read_lead_service,
    read_leads_service,
    save_quote_service,
    update_lead_service,
    update_quote_status_service,
)
from agency_api.services.permissions import AdminContext
from agency_api.utils.rate_limit import rate_limit

router = APIRouter()

lead_form_rate_limit = rate_limit("lead_form", settings.LEAD_FORM_RATE_LIMIT, settings.LEAD_FORM_RATE_WINDOW_MS)
can_leads = require_permission(Capability.LEADS)


# ────────────── Public form ──────────────
@router.post(
    "/leads",
    response_model=LeadIdResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Lead from the public contact form",
    responses={
        201: {"description": "Lead stored", "content": {"application/json": {"example": {"success": True, "lead_id": 42}}}},
        400: {"description": "Missing name, invalid e-mail or no GDPR consent"},
        409: {"description": "E-mail already registered"},
        429: {"description": "Too many submissions from this address"},
    }
)
async def create_lead_from_form(
    lead: LeadFormCreate,
    request: Request,
    _quota=Depends(lead_form_rate_limit),
):
    """
    Public endpoint, no session. Text fields are stripped of markup
    before they are stored; the lead starts with status "new".
    """
    db_lead = await create_public_lead_service(lead, request)
    return LeadIdResponse(lead_id=db_lead.id)


# ────────────── Admin CRUD ──────────────
@router.post(
    "/admin/leads",
    response_model=Lead,
    status_code=status.HTTP_201_CREATED,
    summary="Lead entered by an admin",
    responses={
        400: {"description": "Invalid input"},
        401: {"description": "No valid session"},
        403: {"description": "Account lacks the leads capability"},
        409: {"description": "E-mail already registered"},
    }
)
async def create_admin_lead(
    lead: AdminLeadCreate,
    request: Request,
    admin: AdminContext = Depends(can_leads),
    _quota=Depends(admin_rate_limit),
):
    return await create_admin_lead_service(lead, admin, request)


@router.get(
    "/leads",
    response_model=List[Lead],
    summary="List leads (newest first)",
    responses={401: {"description": "No valid session"}, 403: {"description": "Account lacks the leads capability"}}
)
async def read_leads(
    request: Request,
    status: Optional[LeadStatus] = None,
    search: Optional[str] = Query(None, max_length=255),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    admin: AdminContext = Depends(can_leads),
):
    return await read_leads_service(request, status=status, search=search, skip=skip, limit=limit)


@router.get(
    "/leads/{id}",
    response_model=Lead,
    summary="Lead by ID",
    responses={404: {"description": "Lead not found"}}
)
async def read_lead(id: int, request: Request, admin: AdminContext = Depends(can_leads)):
    return await read_lead_service(id, request)


@router.patch(
    "/leads/{id}",
    response_model=Lead,
    summary="Update a lead",
    responses={
        400: {"description": "Invalid or empty update"},
        404: {"description": "Lead not found"},
        409: {"description": "E-mail used by another lead"},
    }
)
async def update_lead(
    id: int,
    lead: LeadUpdate,
    request: Request,
    admin: AdminContext = Depends(can_leads),
    _quota=Depends(admin_rate_limit),
):
    """
    Only the fields sent are changed. A new status adds a status_change activity.
    """
    return await update_lead_service(id, lead, admin, request)


@router.delete(
    "/leads/{id}",
    summary="Delete a lead",
    responses={
        200: {"description": "Lead, its history and its customer deleted"},
        404: {"description": "Lead not found"},
    }
)
async def delete_lead(
    id: int,
    request: Request,
    admin: AdminContext = Depends(can_leads),
    _quota=Depends(admin_rate_limit),
):
    customer_deleted = await delete_lead_service(id, request)
    message = "Lead en bijbehorende klant succesvol verwijderd" if customer_deleted else "Lead succesvol verwijderd"
    return {"success": True, "customer_deleted": customer_deleted, "message": message}


# ────────────── Activities ──────────────
@router.get("/leads/{id}/activities", response_model=List[Activity], summary="Activities of a lead")
async def read_activities(id: int, request: Request, admin: AdminContext = Depends(can_leads)):
    return await read_activities_service(id, request)


@router.post(
    "/leads/{id}/activities",
    response_model=Activity,
    status_code=status.HTTP_201_CREATED,
    summary="Log an activity",
    responses={400: {"description": "Unknown type, empty title or negative duration"}, 404: {"description": "Lead not found"}}
)
async def create_activity(
    id: int,
    activity: ActivityCreate,
    request: Request,
    admin: AdminContext = Depends(can_leads),
    _quota=Depends(admin_rate_limit),
):
    return await create_activity_service(id, activity, admin, request)


# ────────────── Attachments ──────────────
@router.get("/leads/{id}/attachments", response_model=List[Attachment], summary="Attachments of a lead")
async def read_attachments(id: int, request: Request, admin: AdminContext = Depends(can_leads)):
    return await read_attachments_service(id, request)


@router.post(
    "/leads/{id}/attachments",
    response_model=Attachment,
    status_code=status.HTTP_201_CREATED,
    summary="Upload an attachment (multipart)",
    responses={
        400: {"description": "Empty file or activity of another lead"},
        404: {"description": "Lead not found"},
        413: {"description": "File larger than MAX_UPLOAD_BYTES"},
    }
)
async def upload_attachment(
    id: int,
    request: Request,
    file: UploadFile = File(...),
    description: Optional[str] = Form(None),
    activity_id: Optional[int] = Form(None),
    admin: AdminContext = Depends(can_leads),
    _quota=Depends(admin_rate_limit),
):
    return await create_attachment_service(id, file, description, admin, request, activity_id=activity_id)


@router.delete(
    "/leads/{id}/attachments/{attachment_id}",
    summary="Delete an attachment",
    responses={404: {"description": "Attachment not found on this lead"}}
)
async def delete_attachment(
    id: int,
    attachment_id: int,
    request: Request,
    admin: AdminContext = Depends(can_leads),
    _quota=Depends(admin_rate_limit),
):
    await delete_attachment_service(id, attachment_id, request)
    return {"success": True}


# ────────────── Quotes ──────────────
@router.get(
    "/leads/{id}/quote",
    response_model=QuoteEnvelope,
    summary="Latest quote of a lead",
    responses={200: {"description": "{\"quote\": null} when the lead has no quote yet"}}
)
async def read_quote(id: int, request: Request, admin: AdminContext = Depends(can_leads)):
    return QuoteEnvelope(quote=await read_latest_quote_service(id, request))


@router.post(
    "/leads/{id}/quote",
    response_model=QuoteEnvelope,
    summary="Save the quote builder output",
    responses={400: {"description": "Missing quote_data or total_price not above 0"}}
)
async def save_quote(
    id: int,
    quote: QuoteSave,
    request: Request,
    admin: AdminContext = Depends(can_leads),
    _quota=Depends(admin_rate_limit),
):
    """
    Overwrites the latest draft of the lead, or inserts a new quote when there is no draft.
    """
    return QuoteEnvelope(quote=await save_quote_service(id, quote, admin, request))


@router.patch(
    "/leads/{id}/quote/{quote_id}",
    response_model=Quote,
    summary="Change the status of a quote",
    responses={404: {"description": "Quote not found on this lead"}}
)
async def update_quote_status(
    id: int,
    quote_id: int,
    update: QuoteStatusUpdate,
    request: Request,
    admin: AdminContext = Depends(can_leads),
    _quota=Depends(admin_rate_limit),
):
    return await update_quote_status_service(id, quote_id, update, request)


# ────────────── Convert ──────────────
@router.post(
    "/leads/{id}/convert",
    summary="Turn a converted lead into a customer",
    responses={
        200: {"description": "Customer created"},
        400: {"description": "Lead status is not \"converted\""},
        404: {"description": "Lead not found"},
        409: {"description": "Customer already exists for this lead"},
    }
)
async def convert_lead(
    id: int,
    request: Request,
    admin: AdminContext = Depends(require_permission(Capability.LEADS, Capability.CUSTOMERS)),
    _quota=Depends(admin_rate_limit),
):
    customer = await convert_lead_service(id, admin, request)
    return {
        "success": True,
        "customer": Customer.model_validate(customer),
        "message": "Lead succesvol geconverteerd naar klant",
    }
