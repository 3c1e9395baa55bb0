# agency_api/routes/lookup.py

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from agency_api.models.admin import Capability
from agency_api.routes.auth import require_permission
from agency_api.services.lookup import CompanyLookupResult, company_lookup_service, postcode_lookup_service
from agency_api.services.permissions import AdminContext

router = APIRouter()

can_edit_contacts = require_permission(Capability.LEADS, Capability.CUSTOMERS, any_of=True)


@router.get(
    "/postcode-lookup",
    summary="City of a Belgian postcode",
    responses={
        200: {"description": "City found", "content": {"application/json": {"example": {"city": "Gent"}}}},
        400: {"description": "Postcode is not 4 digits"},
        404: {"description": "Unknown postcode"},
    }
)
async def postcode_lookup(
    postcode: Optional[str] = Query(None, max_length=10),
    admin: AdminContext = Depends(can_edit_contacts),
):
    return {"city": postcode_lookup_service(postcode)}


@router.get(
    "/company-lookup",
    response_model=CompanyLookupResult,
    summary="Company details from the enterprise register",
    responses={
        400: {"description": "Missing or malformed Belgian VAT number"},
        404: {"description": "No company data for this number"},
        503: {"description": "Register lookup not configured or unreachable"},
    }
)
async def company_lookup(
    request: Request,
    vat: Optional[str] = Query(None, max_length=30),
    admin: AdminContext = Depends(can_edit_contacts),
):
    return await company_lookup_service(vat, request)
