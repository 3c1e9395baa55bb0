# agency_api/schemas/analytics.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Literal, Optional
from datetime import date

from agency_api.schemas.lead import required

GroupBy = Literal["day", "week", "month"]


class DateRange(BaseModel):
    start: date
    end: date
    groupBy: GroupBy


class LeadBucket(BaseModel):
    date: str
    total: int = 0
    byStatus: Dict[str, int] = Field(default_factory=dict)
    bySource: Dict[str, int] = Field(default_factory=dict)
    byMedium: Dict[str, int] = Field(default_factory=dict)
    byCampaign: Dict[str, int] = Field(default_factory=dict)


class LeadAnalytics(BaseModel):
    total: int
    trend: float
    timeline: List[LeadBucket]
    statusBreakdown: Dict[str, int]
    sourceBreakdown: Dict[str, int]
    mediumBreakdown: Dict[str, int]
    dateRange: DateRange


class RevenueBucket(BaseModel):
    date: str
    total: float = 0.0
    count: int = 0
    byStatus: Dict[str, float] = Field(default_factory=dict)


class RevenueAnalytics(BaseModel):
    total: float
    trend: float
    count: int
    averageDealSize: float
    timeline: List[RevenueBucket]
    byStatus: Dict[str, float]
    dateRange: DateRange


class DashboardSummary(BaseModel):
    leadsByStatus: Dict[str, int]
    customersByStatus: Dict[str, int]
    totalLeads: int
    totalCustomers: int
    totalRevenue: float
    conversionRate: Optional[float] = None


# ────────────── Sales ──────────────
class SalesStats(BaseModel):
    leadCount: int = 0
    quoteCount: int = 0
    totalQuoteAmount: float = 0.0
    avgQuoteAmount: float = 0.0
    convertedCount: int = 0
    convertedRevenue: float = 0.0


class SalesPersonStats(SalesStats):
    person: str


class SalesPeriod(BaseModel):
    periodKey: str
    periodLabel: str
    persons: Dict[str, SalesStats]


class SalesTotals(BaseModel):
    totalLeads: int
    totalQuoteAmount: float
    totalConvertedRevenue: float
    totalConvertedCount: int


class SalesAnalytics(BaseModel):
    summary: List[SalesPersonStats]
    byPeriod: List[SalesPeriod]
    totals: SalesTotals
    dateRange: DateRange


class SalesTargetUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    daily_target_eur: Optional[float] = Field(None, ge=0)
    weekly_target_eur: Optional[float] = Field(None, ge=0)

    @field_validator("daily_target_eur", "weekly_target_eur")
    @classmethod
    def not_null(cls, value, info):
        return required(value, info.field_name)


class SalesTargetStatus(BaseModel):
    """
    Targets with either the exact revenue (user managers) or only the progress
    towards them in percent (everyone else).
    """
    daily_target_eur: float = 0.0
    weekly_target_eur: float = 0.0
    revenue_today: Optional[float] = None
    revenue_this_week: Optional[float] = None
    progress_daily_pct: Optional[int] = None
    progress_weekly_pct: Optional[int] = None
