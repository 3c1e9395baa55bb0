# agency_api/routes/analytics.py

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from agency_api.models.admin import Capability
from agency_api.routes.auth import admin_rate_limit, require_permission
from agency_api.schemas.analytics import (
    DashboardSummary, GroupBy, LeadAnalytics, RevenueAnalytics, SalesAnalytics, SalesTargetStatus, SalesTargetUpdate,
)
from agency_api.services.analytics import (
    dashboard_service,
    lead_analytics_service,
    read_sales_target_service,
    revenue_analytics_service,
    sales_analytics_service,
    save_sales_target_service,
)
from agency_api.services.permissions import AdminContext

router = APIRouter()
# mounted under /api/admin
admin_router = APIRouter()

can_analytics = require_permission(Capability.ANALYTICS)
can_customers = require_permission(Capability.CUSTOMERS)
can_manage_users = require_permission(Capability.MANAGE_USERS)


@router.get(
    "/leads",
    response_model=LeadAnalytics,
    summary="Lead timeline, breakdowns and trend",
    responses={
        400: {"description": "startDate after endDate, or unknown groupBy"},
        401: {"description": "No valid session"},
        403: {"description": "Account lacks the analytics capability"},
    }
)
async def lead_analytics(
    request: Request,
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    groupBy: GroupBy = Query("day"),
    admin: AdminContext = Depends(can_analytics),
):
    """
    Defaults to the last 30 days, grouped per day.
    Week buckets start on Monday, month buckets are keyed YYYY-MM.
    """
    return await lead_analytics_service(request, startDate, endDate, groupBy)


@router.get(
    "/revenue",
    response_model=RevenueAnalytics,
    summary="Revenue of customers converted in the range",
    responses={400: {"description": "startDate after endDate, or unknown groupBy"}}
)
async def revenue_analytics(
    request: Request,
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    groupBy: GroupBy = Query("day"),
    admin: AdminContext = Depends(can_analytics),
):
    return await revenue_analytics_service(request, startDate, endDate, groupBy)


@router.get("/dashboard", response_model=DashboardSummary, summary="All-time totals for the dashboard")
async def dashboard(request: Request, admin: AdminContext = Depends(can_analytics)):
    return await dashboard_service(request)


@router.get(
    "/sales",
    response_model=SalesAnalytics,
    summary="Leads, quotes and conversions per salesperson",
    responses={400: {"description": "startDate after endDate, or unknown groupBy"}}
)
async def sales_analytics(
    request: Request,
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    groupBy: GroupBy = Query("week"),
    admin: AdminContext = Depends(can_analytics),
):
    """
    A lead counts for its assignee, else for the admin who entered it, else "Onbekend".
    The quote amount is the highest sent or accepted quote, else the customer's quote total.
    """
    return await sales_analytics_service(request, startDate, endDate, groupBy)


# ────────────── Sales targets ──────────────
@admin_router.get(
    "/sales-target",
    response_model=SalesTargetStatus,
    response_model_exclude_none=True,
    summary="Daily and weekly sales targets with progress",
    responses={
        200: {
            "description": "User managers get the revenue, others only the progress",
            "content": {
                "application/json": {
                    "example": {
                        "daily_target_eur": 500.0,
                        "weekly_target_eur": 2500.0,
                        "progress_daily_pct": 40,
                        "progress_weekly_pct": 72
                    }
                }
            }
        },
        403: {"description": "Account lacks the customers capability"},
    }
)
async def read_sales_target(request: Request, admin: AdminContext = Depends(can_customers)):
    return await read_sales_target_service(admin, request)


@admin_router.put(
    "/sales-target",
    summary="Set the sales targets",
    responses={
        400: {"description": "Negative or unknown field"},
        403: {"description": "Account lacks the manage_users capability"},
    }
)
async def save_sales_target(
    update: SalesTargetUpdate,
    request: Request,
    admin: AdminContext = Depends(can_manage_users),
    _quota=Depends(admin_rate_limit),
):
    await save_sales_target_service(update, admin, request)
    return {"ok": True}
