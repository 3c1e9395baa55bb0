# agency_api/services/customer.py

from typing import Optional

from sqlalchemy import delete
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, Request, UploadFile

from agency_api.models.customer import (
    Customer as CustomerModel, CustomerAttachment, CustomerUpdate as CustomerUpdateModel,
)
from agency_api.models.lead import Lead as LeadModel, LeadActivity, LeadAttachment, LeadQuote
from agency_api.schemas.customer import CustomerPatch, CustomerUpdateCreate
from agency_api.services.permissions import AdminContext
from agency_api.utils.errors import raise_store_error
from agency_api.utils.security import is_valid_email
from agency_api.utils.storage import read_upload


async def read_customers_service(
    request: Request, project_status: Optional[str] = None, skip: int = 0, limit: int = 100
) -> list[CustomerModel]:
    """
    Customers, most recently converted first.
    """
    db = request.state.db
    log = request.app.state.log

    query = select(CustomerModel)
    if project_status:
        query = query.where(CustomerModel.project_status == project_status)

    result = await db.execute(
        query.order_by(CustomerModel.converted_at.desc(), CustomerModel.id.desc()).offset(skip).limit(limit)
    )
    customers = result.scalars().all()

    await log.log_info("customer", f"{len(customers)} customers loaded")
    return customers


async def read_customer_service(id: int, request: Request) -> CustomerModel:
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(select(CustomerModel).where(CustomerModel.id == id))
    customer = result.scalar_one_or_none()
    if customer is None:
        await log.log_warning("customer", "Customer not found", {"id": id})
        raise HTTPException(status_code=404, detail="Klant niet gevonden")
    return customer


async def update_customer_service(
    id: int, patch: CustomerPatch, admin: AdminContext, request: Request
) -> CustomerModel:
    """
    Updates the whitelisted customer fields that were sent.
    """
    db = request.state.db
    log = request.app.state.log

    data = patch.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="Geen geldige velden om bij te werken")

    if "email" in data:
        data["email"] = (data["email"] or "").strip().lower()
        if not is_valid_email(data["email"]):
            raise HTTPException(status_code=400, detail="Ongeldig e-mailadres formaat")

    customer = await read_customer_service(id, request)
    for key, value in data.items():
        setattr(customer, key, value)

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(request, e, "customer", "customers", default_message="Fout bij bijwerken klant")
    await db.refresh(customer)

    await log.log_info("customer", "Customer updated", {"id": id, "fields": sorted(data), "by": admin.email})
    return customer


async def delete_customer_service(id: int, admin: AdminContext, request: Request) -> bool:
    """
    Deletes a customer, its update log and files, and the lead it was converted from
    (with that lead's activities, attachments and quotes).
    Returns True when a lead was removed too.
    """
    db = request.state.db
    log = request.app.state.log
    storage = request.app.state.storage

    customer = await read_customer_service(id, request)
    lead_id = customer.lead_id
    files = await db.execute(select(CustomerAttachment.storage_key).where(CustomerAttachment.customer_id == id))
    storage_keys = [row[0] for row in files.all()]

    try:
        await db.execute(delete(CustomerUpdateModel).where(CustomerUpdateModel.customer_id == id))
        await db.execute(delete(CustomerAttachment).where(CustomerAttachment.customer_id == id))
        await db.delete(customer)
        if lead_id is not None:
            attachments = await db.execute(select(LeadAttachment.storage_key).where(LeadAttachment.lead_id == lead_id))
            storage_keys += [row[0] for row in attachments.all()]
            await db.execute(delete(LeadAttachment).where(LeadAttachment.lead_id == lead_id))
            await db.execute(delete(LeadActivity).where(LeadActivity.lead_id == lead_id))
            await db.execute(delete(LeadQuote).where(LeadQuote.lead_id == lead_id))
            await db.execute(delete(LeadModel).where(LeadModel.id == lead_id))
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(request, e, "customer", "customers", default_message="Fout bij verwijderen klant")

    for key in storage_keys:
        await storage.delete(key)

    await log.log_info("customer", "Customer deleted", {"id": id, "lead_id": lead_id, "by": admin.email})
    return lead_id is not None


async def read_customer_lead_service(id: int, request: Request) -> LeadModel:
    """The lead a customer was converted from."""
    db = request.state.db

    customer = await read_customer_service(id, request)
    if customer.lead_id is None:
        raise HTTPException(status_code=404, detail="Deze klant heeft geen gekoppelde lead")

    result = await db.execute(select(LeadModel).where(LeadModel.id == customer.lead_id))
    lead = result.scalar_one_or_none()
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead niet gevonden")
    return lead


# ────────────── Update log ──────────────
async def read_customer_updates_service(id: int, request: Request) -> list[CustomerUpdateModel]:
    db = request.state.db

    await read_customer_service(id, request)
    result = await db.execute(
        select(CustomerUpdateModel)
        .where(CustomerUpdateModel.customer_id == id)
        .order_by(CustomerUpdateModel.created_at.desc(), CustomerUpdateModel.id.desc())
    )
    return result.scalars().all()


async def create_customer_update_service(
    id: int, update: CustomerUpdateCreate, admin: AdminContext, request: Request
) -> CustomerUpdateModel:
    db = request.state.db
    log = request.app.state.log

    await read_customer_service(id, request)

    db_update = CustomerUpdateModel(customer_id=id, created_by=admin.email, **update.model_dump())
    db.add(db_update)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(request, e, "customer", "customer_updates", default_message="Fout bij opslaan update")
    await db.refresh(db_update)

    await log.log_info("customer", "Customer update added", {"customer_id": id, "type": db_update.update_type})
    return db_update


# ────────────── Files ──────────────
async def read_customer_attachments_service(id: int, request: Request) -> list[CustomerAttachment]:
    db = request.state.db

    await read_customer_service(id, request)
    result = await db.execute(
        select(CustomerAttachment)
        .where(CustomerAttachment.customer_id == id)
        .order_by(CustomerAttachment.created_at.desc(), CustomerAttachment.id.desc())
    )
    return result.scalars().all()


async def create_customer_attachment_service(
    id: int, file: UploadFile, description: Optional[str], admin: AdminContext, request: Request
) -> CustomerAttachment:
    """
    Stores a project file (contract, design, invoice) for the customer.
    Same limits as lead attachments.
    """
    db = request.state.db
    log = request.app.state.log
    storage = request.app.state.storage

    await read_customer_service(id, request)
    content = await read_upload(file)

    file_name = file.filename or "bestand"
    key = await storage.put(f"customers/{id}", file_name, content)

    db_attachment = CustomerAttachment(
        customer_id=id,
        file_name=file_name,
        file_url=storage.url_for(key),
        storage_key=key,
        file_type=file.content_type,
        file_size=len(content),
        description=(description or "").strip() or None,
        uploaded_by=admin.email,
    )
    db.add(db_attachment)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await storage.delete(key)
        await raise_store_error(
            request, e, "customer", "customer_attachments", default_message="Fout bij uploaden"
        )
    await db.refresh(db_attachment)

    await log.log_info("storage", "Customer file stored", {"customer_id": id, "key": key, "size": len(content)})
    return db_attachment


async def delete_customer_attachment_service(id: int, attachment_id: int, request: Request) -> None:
    db = request.state.db
    log = request.app.state.log
    storage = request.app.state.storage

    result = await db.execute(
        select(CustomerAttachment).where(CustomerAttachment.id == attachment_id, CustomerAttachment.customer_id == id)
    )
    db_attachment = result.scalar_one_or_none()
    if db_attachment is None:
        raise HTTPException(status_code=404, detail="Bijlage niet gevonden")

    if not await storage.delete(db_attachment.storage_key):
        await log.log_warning("storage", "Blob already gone", {"key": db_attachment.storage_key})

    await db.delete(db_attachment)
    await db.commit()
    await log.log_info("storage", "Customer file deleted", {"customer_id": id, "id": attachment_id})
