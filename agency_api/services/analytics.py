# agency_api/services/analytics.py

"""
Lead and revenue analytics.

Rows of the requested range are fetched in one query and bucketed here, so the
same code runs on SQLite and PostgreSQL. A range covers whole days (UTC) from
``start`` to ``end`` inclusive; the trend compares it with the period of the same
length that ends right before ``start``.
"""

from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Iterable, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select
from fastapi import HTTPException, Request

from agency_api.models.admin import Capability
from agency_api.models.customer import Customer as CustomerModel, SalesTarget, PROJECT_STATUSES
from agency_api.models.lead import Lead as LeadModel, LeadQuote, LEAD_STATUSES
from agency_api.schemas.analytics import (
    DateRange, LeadBucket, LeadAnalytics, RevenueBucket, RevenueAnalytics, DashboardSummary,
    SalesAnalytics, SalesPeriod, SalesPersonStats, SalesStats, SalesTargetStatus, SalesTargetUpdate, SalesTotals,
)
from agency_api.services.permissions import AdminContext
from agency_api.utils.dates import as_utc, bucket_key, day_end, day_start, utcnow
from agency_api.utils.errors import UNDEFINED_TABLE, raise_store_error, store_error_code

DEFAULT_RANGE_DAYS = 30


def resolve_range(start: Optional[date], end: Optional[date]) -> Tuple[date, date]:
    """Fills in the defaults (the last 30 days) and rejects inverted ranges."""
    end = end or utcnow().date()
    start = start or end - timedelta(days=DEFAULT_RANGE_DAYS)
    if start > end:
        raise HTTPException(status_code=400, detail="startDate moet voor endDate liggen")
    return start, end


def previous_range(start: date, end: date) -> Tuple[date, date]:
    length = (end - start).days + 1
    return start - timedelta(days=length), start - timedelta(days=1)


def trend_percentage(current: float, previous: float) -> float:
    """
    Change versus the previous period in percent, one decimal.
    100 when there was nothing before and something now.
    """
    if previous > 0:
        return round((current - previous) / previous * 100, 1)
    return 100.0 if current > 0 else 0.0


# ────────────── Leads ──────────────
def summarize_leads(leads: Iterable, group_by: str) -> dict:
    """Timeline and breakdowns of the given lead rows."""
    buckets: dict = {}
    status_counts: Counter = Counter()
    source_counts: Counter = Counter()
    medium_counts: Counter = Counter()
    total = 0

    for lead in leads:
        total += 1
        key = bucket_key(lead.created_at, group_by)
        bucket = buckets.setdefault(key, LeadBucket(date=key))
        bucket.total += 1

        status = lead.status or "new"
        bucket.byStatus[status] = bucket.byStatus.get(status, 0) + 1
        if lead.utm_source:
            bucket.bySource[lead.utm_source] = bucket.bySource.get(lead.utm_source, 0) + 1
        if lead.utm_medium:
            bucket.byMedium[lead.utm_medium] = bucket.byMedium.get(lead.utm_medium, 0) + 1
        if lead.utm_campaign:
            bucket.byCampaign[lead.utm_campaign] = bucket.byCampaign.get(lead.utm_campaign, 0) + 1

        status_counts[status] += 1
        source_counts[lead.utm_source or "direct"] += 1
        medium_counts[lead.utm_medium or "none"] += 1

    return {
        "total": total,
        "timeline": [buckets[key] for key in sorted(buckets)],
        "statusBreakdown": dict(status_counts),
        "sourceBreakdown": dict(source_counts),
        "mediumBreakdown": dict(medium_counts),
    }


async def _count_leads(db, start: date, end: date) -> int:
    result = await db.execute(
        select(func.count(LeadModel.id))
        .where(LeadModel.created_at >= day_start(start), LeadModel.created_at <= day_end(end))
    )
    return result.scalar_one()


async def lead_analytics_service(
    request: Request, start: Optional[date] = None, end: Optional[date] = None, group_by: str = "day"
) -> LeadAnalytics:
    db = request.state.db
    log = request.app.state.log

    start, end = resolve_range(start, end)
    result = await db.execute(
        select(LeadModel)
        .where(LeadModel.created_at >= day_start(start), LeadModel.created_at <= day_end(end))
        .order_by(LeadModel.created_at)
    )
    summary = summarize_leads(result.scalars().all(), group_by)

    previous_total = await _count_leads(db, *previous_range(start, end))

    await log.log_info("analytics", "Lead analytics", {"start": start, "end": end, "total": summary["total"]})
    return LeadAnalytics(
        trend=trend_percentage(summary["total"], previous_total),
        dateRange=DateRange(start=start, end=end, groupBy=group_by),
        **summary,
    )


# ────────────── Revenue ──────────────
def summarize_revenue(customers: Iterable, group_by: str) -> dict:
    """Revenue timeline of customers that carry a quote total."""
    buckets: dict = {}
    by_status: dict = defaultdict(float)
    total = 0.0
    count = 0

    for customer in customers:
        if customer.quote_total is None:
            continue
        amount = float(customer.quote_total)
        total += amount
        count += 1

        key = bucket_key(customer.converted_at, group_by)
        bucket = buckets.setdefault(key, RevenueBucket(date=key))
        bucket.total = round(bucket.total + amount, 2)
        bucket.count += 1
        status = customer.project_status or "new"
        bucket.byStatus[status] = round(bucket.byStatus.get(status, 0.0) + amount, 2)
        by_status[status] += amount

    return {
        "total": round(total, 2),
        "count": count,
        "averageDealSize": round(total / count, 2) if count else 0.0,
        "timeline": [buckets[key] for key in sorted(buckets)],
        "byStatus": {status: round(amount, 2) for status, amount in by_status.items()},
    }


async def _converted_between(db, start: date, end: date):
    result = await db.execute(
        select(CustomerModel)
        .where(
            CustomerModel.converted_at >= day_start(start),
            CustomerModel.converted_at <= day_end(end),
            CustomerModel.quote_total.isnot(None),
        )
        .order_by(CustomerModel.converted_at)
    )
    return result.scalars().all()


async def revenue_analytics_service(
    request: Request, start: Optional[date] = None, end: Optional[date] = None, group_by: str = "day"
) -> RevenueAnalytics:
    db = request.state.db
    log = request.app.state.log

    start, end = resolve_range(start, end)
    summary = summarize_revenue(await _converted_between(db, start, end), group_by)
    previous = summarize_revenue(await _converted_between(db, *previous_range(start, end)), group_by)

    await log.log_info("analytics", "Revenue analytics", {"start": start, "end": end, "total": summary["total"]})
    return RevenueAnalytics(
        trend=trend_percentage(summary["total"], previous["total"]),
        dateRange=DateRange(start=start, end=end, groupBy=group_by),
        **summary,
    )


# ────────────── Dashboard ──────────────
async def dashboard_service(request: Request) -> DashboardSummary:
    """Totals over all time for the dashboard tiles."""
    db = request.state.db

    leads_by_status = {status: 0 for status in LEAD_STATUSES}
    rows = await db.execute(select(LeadModel.status, func.count(LeadModel.id)).group_by(LeadModel.status))
    for status, count in rows.all():
        leads_by_status[status] = count

    customers_by_status = {status: 0 for status in PROJECT_STATUSES}
    rows = await db.execute(
        select(CustomerModel.project_status, func.count(CustomerModel.id)).group_by(CustomerModel.project_status)
    )
    for status, count in rows.all():
        customers_by_status[status] = count

    revenue = (await db.execute(select(func.coalesce(func.sum(CustomerModel.quote_total), 0)))).scalar_one()

    total_leads = sum(leads_by_status.values())
    total_customers = sum(customers_by_status.values())
    return DashboardSummary(
        leadsByStatus=leads_by_status,
        customersByStatus=customers_by_status,
        totalLeads=total_leads,
        totalCustomers=total_customers,
        totalRevenue=round(float(revenue or 0), 2),
        conversionRate=round(total_customers / total_leads * 100, 1) if total_leads else None,
    )


# ────────────── Sales per person ──────────────
MONTH_NAMES = ("jan", "feb", "mrt", "apr", "mei", "jun", "jul", "aug", "sep", "okt", "nov", "dec")
QUOTED_STATUSES = ("sent", "accepted")
UNKNOWN_PERSON = "Onbekend"


def period_label(key: str, group_by: str) -> str:
    if group_by == "month":
        year, month = key.split("-")
        return f"{MONTH_NAMES[int(month) - 1]} {year}"
    if group_by == "week":
        return f"Week {key}"
    return key


def sales_person(lead) -> str:
    """The salesperson a lead is credited to: its assignee, else whoever entered it."""
    return (lead.assigned_to or "").strip() or (lead.created_by or "").strip() or UNKNOWN_PERSON


def _stats(counts: dict) -> SalesStats:
    quotes = counts["quoteCount"]
    return SalesStats(
        leadCount=counts["leadCount"],
        quoteCount=quotes,
        totalQuoteAmount=round(counts["totalQuote"], 2),
        avgQuoteAmount=round(counts["totalQuote"] / quotes, 2) if quotes else 0.0,
        convertedCount=counts["convertedCount"],
        convertedRevenue=round(counts["convertedRevenue"], 2),
    )


def summarize_sales(leads: Iterable, quote_amounts: dict, customer_revenue: dict, group_by: str) -> dict:
    """
    Per-person totals and per-period breakdown of the given leads.

    :param quote_amounts: lead id -> highest sent or accepted quote
    :param customer_revenue: lead id -> quote total of the customer made from it
    """
    def empty():
        return {"leadCount": 0, "quoteCount": 0, "totalQuote": 0.0, "convertedCount": 0, "convertedRevenue": 0.0}

    totals: dict = {}
    periods: dict = {}
    lead_count = 0

    for lead in leads:
        lead_count += 1
        person = sales_person(lead)
        key = bucket_key(lead.created_at, group_by)
        rows = (totals.setdefault(person, empty()), periods.setdefault(key, {}).setdefault(person, empty()))

        quote = quote_amounts.get(lead.id, customer_revenue.get(lead.id))
        revenue = customer_revenue.get(lead.id)
        for row in rows:
            row["leadCount"] += 1
            if quote:
                row["quoteCount"] += 1
                row["totalQuote"] += quote
            if revenue:
                row["convertedCount"] += 1
                row["convertedRevenue"] += revenue

    summary = [SalesPersonStats(person=person, **_stats(counts).model_dump()) for person, counts in totals.items()]
    summary.sort(key=lambda stats: stats.convertedRevenue, reverse=True)

    return {
        "summary": summary,
        "byPeriod": [
            SalesPeriod(
                periodKey=key,
                periodLabel=period_label(key, group_by),
                persons={person: _stats(counts) for person, counts in periods[key].items()},
            )
            for key in sorted(periods)
        ],
        "totals": SalesTotals(
            totalLeads=lead_count,
            totalQuoteAmount=round(sum(quote_amounts.values()), 2),
            totalConvertedRevenue=round(sum(customer_revenue.values()), 2),
            totalConvertedCount=sum(1 for amount in customer_revenue.values() if amount > 0),
        ),
    }


async def sales_analytics_service(
    request: Request, start: Optional[date] = None, end: Optional[date] = None, group_by: str = "week"
) -> SalesAnalytics:
    db = request.state.db
    log = request.app.state.log

    start, end = resolve_range(start, end)
    in_range = (LeadModel.created_at >= day_start(start), LeadModel.created_at <= day_end(end))

    leads = (await db.execute(select(LeadModel).where(*in_range).order_by(LeadModel.created_at))).scalars().all()

    rows = await db.execute(
        select(LeadQuote.lead_id, func.max(LeadQuote.total_price))
        .join(LeadModel, LeadModel.id == LeadQuote.lead_id)
        .where(*in_range, LeadQuote.status.in_(QUOTED_STATUSES))
        .group_by(LeadQuote.lead_id)
    )
    quote_amounts = {lead_id: float(amount or 0) for lead_id, amount in rows.all()}

    rows = await db.execute(
        select(CustomerModel.lead_id, CustomerModel.quote_total)
        .join(LeadModel, LeadModel.id == CustomerModel.lead_id)
        .where(*in_range)
    )
    customer_revenue = {lead_id: float(amount or 0) for lead_id, amount in rows.all()}

    summary = summarize_sales(leads, quote_amounts, customer_revenue, group_by)
    await log.log_info("analytics", "Sales analytics", {"start": start, "end": end, "people": len(summary["summary"])})
    return SalesAnalytics(dateRange=DateRange(start=start, end=end, groupBy=group_by), **summary)


# ────────────── Sales targets ──────────────
def progress_pct(revenue: float, target: float) -> int:
    if target <= 0:
        return 0
    return min(999, round(revenue / target * 100))


async def _revenue_today_and_week(db) -> Tuple[float, float]:
    """Revenue of customers converted today and this week (Monday start, UTC); canceled projects excluded."""
    today = utcnow().date()
    week_start = today - timedelta(days=today.weekday())

    result = await db.execute(
        select(CustomerModel.converted_at, CustomerModel.quote_total)
        .where(
            CustomerModel.converted_at >= day_start(week_start),
            CustomerModel.converted_at <= day_end(week_start + timedelta(days=6)),
            CustomerModel.project_status != "canceled",
        )
    )
    revenue_today = revenue_week = 0.0
    for converted_at, quote_total in result.all():
        amount = float(quote_total or 0)
        revenue_week += amount
        if as_utc(converted_at).date() == today:
            revenue_today += amount
    return round(revenue_today, 2), round(revenue_week, 2)


async def read_sales_target_service(admin: AdminContext, request: Request) -> SalesTargetStatus:
    """
    Targets plus revenue. Only user managers see the amounts; everyone else gets
    the progress percentage. Without a sales_targets table everything is zero.
    """
    db = request.state.db
    log = request.app.state.log

    try:
        target = (await db.execute(select(SalesTarget).order_by(SalesTarget.id).limit(1))).scalar_one_or_none()
    except SQLAlchemyError as e:
        if store_error_code(e) != UNDEFINED_TABLE:
            await raise_store_error(request, e, "analytics", "sales_targets", default_message="Fout bij ophalen salesdoelen")
        await db.rollback()
        await log.log_warning("analytics", "sales_targets table missing, returning zero targets")
        return SalesTargetStatus(
            revenue_today=0.0, revenue_this_week=0.0, progress_daily_pct=0, progress_weekly_pct=0
        )

    daily = float(target.daily_target_eur or 0) if target else 0.0
    weekly = float(target.weekly_target_eur or 0) if target else 0.0
    revenue_today, revenue_week = await _revenue_today_and_week(db)

    if admin.has(Capability.MANAGE_USERS):
        return SalesTargetStatus(
            daily_target_eur=daily, weekly_target_eur=weekly,
            revenue_today=revenue_today, revenue_this_week=revenue_week,
        )
    return SalesTargetStatus(
        daily_target_eur=daily, weekly_target_eur=weekly,
        progress_daily_pct=progress_pct(revenue_today, daily),
        progress_weekly_pct=progress_pct(revenue_week, weekly),
    )


async def save_sales_target_service(update: SalesTargetUpdate, admin: AdminContext, request: Request) -> None:
    """Updates the single targets row, creating it (missing targets at 0) the first time."""
    db = request.state.db
    log = request.app.state.log

    data = update.model_dump(exclude_unset=True)
    try:
        target = (await db.execute(select(SalesTarget).order_by(SalesTarget.id).limit(1))).scalar_one_or_none()
        if target is None:
            target = SalesTarget(daily_target_eur=0, weekly_target_eur=0)
            db.add(target)
        for key, value in data.items():
            setattr(target, key, value)
        target.updated_by = admin.email
        target.updated_at = utcnow()
        await db.commit()
    except SQLAlchemyError as e:
        await raise_store_error(request, e, "analytics", "sales_targets", default_message="Fout bij opslaan salesdoelen")

    await log.log_info("analytics", "Sales targets saved", {"fields": sorted(data), "by": admin.email})
