# agency_api/services/lead.py

from typing import Optional

from sqlalchemy import delete, or_
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, Request, UploadFile

from agency_api.models.lead import Lead as LeadModel, LeadActivity, LeadAttachment, LeadQuote
from agency_api.models.customer import (
    Customer as CustomerModel, CustomerAttachment, CustomerUpdate as CustomerUpdateModel,
)
from agency_api.schemas.lead import LeadFormCreate, AdminLeadCreate, LeadUpdate
from agency_api.schemas.activity import ActivityCreate
from agency_api.schemas.quote import QuoteSave, QuoteStatusUpdate
from agency_api.services.permissions import AdminContext
from agency_api.utils.dates import utcnow
from agency_api.utils.errors import raise_store_error
from agency_api.utils.storage import read_upload

DUPLICATE_LEAD = "Dit e-mailadres is al geregistreerd. Probeer een ander e-mailadres."

# fields copied from a lead onto the customer created from it
CONVERTED_FIELDS = (
    "name", "email", "phone", "company_name", "company_size", "vat_number",
    "company_address", "company_postal_code", "company_city", "company_website",
    "package_interest", "pain_points", "current_website_status", "message", "assigned_to",
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content", "referrer", "landing_path",
)


# ────────────── Leads ──────────────
async def read_leads_service(
    request: Request,
    status: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> list[LeadModel]:
    """
    Leads, newest first.
    search matches name, e-mail and company name (case-insensitive).
    """
    db = request.state.db
    log = request.app.state.log

    query = select(LeadModel)
    if status:
        query = query.where(LeadModel.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            LeadModel.name.ilike(pattern),
            LeadModel.email.ilike(pattern),
            LeadModel.company_name.ilike(pattern),
        ))

    result = await db.execute(
        query.order_by(LeadModel.created_at.desc(), LeadModel.id.desc()).offset(skip).limit(limit)
    )
    leads = result.scalars().all()

    await log.log_info("lead", f"{len(leads)} leads loaded", {"status": status, "search": search})
    return leads


async def _insert_lead(db_lead: LeadModel, request: Request) -> LeadModel:
    db = request.state.db

    existing = await db.execute(select(LeadModel.id).where(LeadModel.email == db_lead.email))
    if existing.first() is not None:
        await request.app.state.log.log_warning("lead", "Duplicate lead e-mail", {"email": db_lead.email})
        raise HTTPException(status_code=409, detail=DUPLICATE_LEAD)

    db.add(db_lead)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(
            request, e, "lead", "leads",
            duplicate_message=DUPLICATE_LEAD,
            default_message="Er is iets misgegaan bij het opslaan van uw aanvraag",
        )
    await db.refresh(db_lead)
    return db_lead


async def create_public_lead_service(lead: LeadFormCreate, request: Request) -> LeadModel:
    """
    Lead from the public contact form. Always starts as "new".
    """
    data = lead.model_dump(exclude={"gdpr_consent"})
    data["pain_points"] = data.get("pain_points") or []

    db_lead = await _insert_lead(LeadModel(**data, status="new"), request)

    await request.app.state.log.log_info(
        "lead", "Lead received from form", {"id": db_lead.id, "utm_source": db_lead.utm_source}
    )
    return db_lead


async def create_admin_lead_service(lead: AdminLeadCreate, admin: AdminContext, request: Request) -> LeadModel:
    """
    Lead entered by an admin (phone call, walk-in). created_by holds the admin e-mail.
    """
    db_lead = await _insert_lead(
        LeadModel(**lead.model_dump(), status="new", pain_points=[], created_by=admin.email),
        request,
    )

    await request.app.state.log.log_info("lead", "Lead created by admin", {"id": db_lead.id, "by": admin.email})
    return db_lead


async def read_lead_service(id: int, request: Request) -> LeadModel:
    """
    Lead by ID.
    """
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(select(LeadModel).where(LeadModel.id == id))
    db_lead = result.scalar_one_or_none()
    if db_lead is None:
        await log.log_warning("lead", "Lead not found", {"id": id})
        raise HTTPException(status_code=404, detail="Lead niet gevonden")

    return db_lead


async def update_lead_service(id: int, lead_update: LeadUpdate, admin: AdminContext, request: Request) -> LeadModel:
    """
    Partial update of a lead. A status change is recorded as a status_change activity.
    """
    db = request.state.db
    log = request.app.state.log

    data = lead_update.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="Geen wijzigingen opgegeven.")

    db_lead = await read_lead_service(id, request)
    previous_status = db_lead.status

    if data.get("email") and data["email"] != db_lead.email:
        existing = await db.execute(
            select(LeadModel.id).where(LeadModel.email == data["email"], LeadModel.id != id)
        )
        if existing.first() is not None:
            raise HTTPException(status_code=409, detail="Er bestaat al een lead met dit e-mailadres.")

    for key, value in data.items():
        setattr(db_lead, key, value)

    if "status" in data and data["status"] != previous_status:
        db.add(LeadActivity(
            lead_id=id,
            activity_type="status_change",
            title=f"Status gewijzigd van {previous_status} naar {data['status']}",
            created_by=admin.email,
        ))

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(request, e, "lead", "leads", duplicate_message="Er bestaat al een lead met dit e-mailadres.")
    await db.refresh(db_lead)

    await log.log_info("lead", "Lead updated", {"id": id, "fields": sorted(data), "by": admin.email})
    return db_lead


async def delete_lead_service(id: int, request: Request) -> bool:
    """
    Deletes a lead with its activities, attachments (blobs included), quotes
    and the customer created from it. Returns True when a customer was removed too.
    """
    db = request.state.db
    log = request.app.state.log
    storage = request.app.state.storage

    db_lead = await read_lead_service(id, request)

    attachments = (await db.execute(select(LeadAttachment).where(LeadAttachment.lead_id == id))).scalars().all()
    storage_keys = [a.storage_key for a in attachments]

    customer = (await db.execute(select(CustomerModel).where(CustomerModel.lead_id == id))).scalar_one_or_none()
    if customer is not None:
        customer_files = await db.execute(
            select(CustomerAttachment.storage_key).where(CustomerAttachment.customer_id == customer.id)
        )
        storage_keys += [row[0] for row in customer_files.all()]

    try:
        await db.execute(delete(LeadAttachment).where(LeadAttachment.lead_id == id))
        await db.execute(delete(LeadActivity).where(LeadActivity.lead_id == id))
        await db.execute(delete(LeadQuote).where(LeadQuote.lead_id == id))
        if customer is not None:
            await db.execute(delete(CustomerUpdateModel).where(CustomerUpdateModel.customer_id == customer.id))
            await db.execute(delete(CustomerAttachment).where(CustomerAttachment.customer_id == customer.id))
            await db.delete(customer)
        await db.delete(db_lead)
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(request, e, "lead", "leads", default_message="Fout bij verwijderen lead")

    for key in storage_keys:
        if not await storage.delete(key):
            await log.log_warning("storage", "Blob already gone", {"key": key})

    await log.log_info("lead", "Lead deleted", {"id": id, "customer_id": customer.id if customer else None})
    return customer is not None


# ────────────── Activities ──────────────
async def read_activities_service(lead_id: int, request: Request) -> list[LeadActivity]:
    db = request.state.db

    await read_lead_service(lead_id, request)
    result = await db.execute(
        select(LeadActivity)
        .where(LeadActivity.lead_id == lead_id)
        .order_by(LeadActivity.created_at.desc(), LeadActivity.id.desc())
    )
    return result.scalars().all()


async def create_activity_service(
    lead_id: int, activity: ActivityCreate, admin: AdminContext, request: Request
) -> LeadActivity:
    db = request.state.db
    log = request.app.state.log

    await read_lead_service(lead_id, request)

    db_activity = LeadActivity(lead_id=lead_id, created_by=admin.email, **activity.model_dump())
    db.add(db_activity)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(request, e, "lead", "lead_activities", default_message="Fout bij opslaan activiteit")
    await db.refresh(db_activity)

    await log.log_info("lead", "Activity added", {"lead_id": lead_id, "type": db_activity.activity_type})
    return db_activity


# ────────────── Attachments ──────────────
async def read_attachments_service(lead_id: int, request: Request) -> list[LeadAttachment]:
    db = request.state.db

    await read_lead_service(lead_id, request)
    result = await db.execute(
        select(LeadAttachment)
        .where(LeadAttachment.lead_id == lead_id)
        .order_by(LeadAttachment.created_at.desc(), LeadAttachment.id.desc())
    )
    return result.scalars().all()


async def create_attachment_service(
    lead_id: int,
    file: UploadFile,
    description: Optional[str],
    admin: AdminContext,
    request: Request,
    activity_id: Optional[int] = None,
) -> LeadAttachment:
    """
    Stores an uploaded file in blob storage and records it on the lead.
    Files above MAX_UPLOAD_BYTES and empty files are refused.
    """
    db = request.state.db
    log = request.app.state.log
    storage = request.app.state.storage

    await read_lead_service(lead_id, request)

    content = await read_upload(file)

    if activity_id is not None:
        found = await db.execute(
            select(LeadActivity.id).where(LeadActivity.id == activity_id, LeadActivity.lead_id == lead_id)
        )
        if found.first() is None:
            raise HTTPException(status_code=400, detail="Activiteit hoort niet bij deze lead.")

    file_name = file.filename or "bestand"
    key = await storage.put(f"leads/{lead_id}", file_name, content)

    db_attachment = LeadAttachment(
        lead_id=lead_id,
        activity_id=activity_id,
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
        await raise_store_error(request, e, "lead", "lead_attachments", default_message="Fout bij opslaan bijlage")
    await db.refresh(db_attachment)

    await log.log_info("storage", "Attachment stored", {"lead_id": lead_id, "key": key, "size": len(content)})
    return db_attachment


async def delete_attachment_service(lead_id: int, attachment_id: int, request: Request) -> None:
    """Removes the blob and the record."""
    db = request.state.db
    log = request.app.state.log
    storage = request.app.state.storage

    result = await db.execute(
        select(LeadAttachment).where(LeadAttachment.id == attachment_id, LeadAttachment.lead_id == lead_id)
    )
    db_attachment = result.scalar_one_or_none()
    if db_attachment is None:
        raise HTTPException(status_code=404, detail="Bijlage niet gevonden")

    if not await storage.delete(db_attachment.storage_key):
        await log.log_warning("storage", "Blob already gone", {"key": db_attachment.storage_key})

    await db.delete(db_attachment)
    await db.commit()
    await log.log_info("storage", "Attachment deleted", {"lead_id": lead_id, "id": attachment_id})


# ────────────── Quotes ──────────────
def _latest_first(query):
    return query.order_by(LeadQuote.created_at.desc(), LeadQuote.id.desc()).limit(1)


async def read_latest_quote_service(lead_id: int, request: Request) -> Optional[LeadQuote]:
    """Most recent quote of the lead, or None."""
    db = request.state.db

    await read_lead_service(lead_id, request)
    result = await db.execute(_latest_first(select(LeadQuote).where(LeadQuote.lead_id == lead_id)))
    return result.scalar_one_or_none()


async def save_quote_service(lead_id: int, quote: QuoteSave, admin: AdminContext, request: Request) -> LeadQuote:
    """
    Saves the quote builder output. The latest draft is overwritten when there is one,
    otherwise a new quote is inserted.
    """
    db = request.state.db
    log = request.app.state.log

    await read_lead_service(lead_id, request)

    result = await db.execute(
        _latest_first(select(LeadQuote).where(LeadQuote.lead_id == lead_id, LeadQuote.status == "draft"))
    )
    db_quote = result.scalar_one_or_none()

    if db_quote is None:
        db_quote = LeadQuote(lead_id=lead_id, created_by=admin.email, **quote.model_dump())
        db.add(db_quote)
    else:
        for key, value in quote.model_dump().items():
            setattr(db_quote, key, value)

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(request, e, "lead", "lead_quotes", default_message="Fout bij opslaan offerte")
    await db.refresh(db_quote)

    await log.log_info("lead", "Quote saved", {"lead_id": lead_id, "quote_id": db_quote.id, "status": db_quote.status})
    return db_quote


async def update_quote_status_service(
    lead_id: int, quote_id: int, update: QuoteStatusUpdate, request: Request
) -> LeadQuote:
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(select(LeadQuote).where(LeadQuote.id == quote_id, LeadQuote.lead_id == lead_id))
    db_quote = result.scalar_one_or_none()
    if db_quote is None:
        raise HTTPException(status_code=404, detail="Offerte niet gevonden")

    if db_quote.status != update.status:
        db_quote.status = update.status
        await db.commit()
        await db.refresh(db_quote)

    await log.log_info("lead", "Quote status set", {"quote_id": quote_id, "status": db_quote.status})
    return db_quote


async def pick_conversion_quote(lead_id: int, request: Request) -> Optional[LeadQuote]:
    """
    Quote that becomes the customer's approved quote:
    accepted, then sent, then the latest not rejected or expired, then the latest.
    """
    db = request.state.db
    base = select(LeadQuote).where(LeadQuote.lead_id == lead_id)

    for query in (
        base.where(LeadQuote.status == "accepted"),
        base.where(LeadQuote.status == "sent"),
        base.where(LeadQuote.status.notin_(("rejected", "expired"))),
        base,
    ):
        quote = (await db.execute(_latest_first(query))).scalar_one_or_none()
        if quote is not None:
            return quote
    return None


# ────────────── Convert ──────────────
async def convert_lead_service(id: int, admin: AdminContext, request: Request) -> CustomerModel:
    """
    Creates the customer of a converted lead.
    The lead keeps its activities and attachments; the customer links back through lead_id.
    """
    db = request.state.db
    log = request.app.state.log

    db_lead = await read_lead_service(id, request)
    if db_lead.status != "converted":
        raise HTTPException(status_code=400, detail='Lead moet eerst gemarkeerd worden als "converted"')

    existing = await db.execute(select(CustomerModel.id).where(CustomerModel.lead_id == id))
    if existing.first() is not None:
        raise HTTPException(status_code=409, detail="Er bestaat al een klant voor deze lead")

    quote = await pick_conversion_quote(id, request)

    customer = CustomerModel(
        lead_id=id,
        company_country=db_lead.company_country or "België",
        approved_quote=quote.quote_data if quote else None,
        quote_total=quote.total_price if quote else None,
        quote_status=quote.status if quote else "pending",
        project_status="new",
        converted_at=utcnow(),
        **{field: getattr(db_lead, field) for field in CONVERTED_FIELDS},
    )
    db.add(customer)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(
            request, e, "lead", "customers",
            duplicate_message="Er bestaat al een klant voor deze lead",
            default_message="Fout bij aanmaken klant",
        )
    await db.refresh(customer)

    await log.log_info(
        "lead", "Lead converted", {"lead_id": id, "customer_id": customer.id, "by": admin.email}
    )
    return customer
