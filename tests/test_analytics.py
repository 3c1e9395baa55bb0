from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

from sqlalchemy import text

from agency_api.services.analytics import (
    period_label, previous_range, progress_pct, resolve_range, summarize_leads, summarize_revenue, summarize_sales,
    trend_percentage,
)
from agency_api.utils.dates import bucket_key

from conftest import SUPER_EMAIL, create_admin, login, run_db, submit_lead


def at(y, m, d, h=12):
    return datetime(y, m, d, h, tzinfo=timezone.utc)


def test_bucket_keys():
    # 2026-10-18 is a Sunday
    assert bucket_key(at(2026, 10, 18), "day") == "2026-10-18"
    assert bucket_key(at(2026, 10, 18), "week") == "2026-10-12"
    assert bucket_key(at(2026, 10, 12), "week") == "2026-10-12"
    assert bucket_key(at(2026, 10, 18), "month") == "2026-10"
    # naive values from SQLite are UTC
    assert bucket_key(datetime(2026, 1, 1, 23, 59), "day") == "2026-01-01"


def test_trend_percentage():
    assert trend_percentage(15, 10) == 50.0
    assert trend_percentage(1, 3) == -66.7
    assert trend_percentage(4, 0) == 100.0
    assert trend_percentage(0, 0) == 0.0


def test_ranges():
    start, end = resolve_range(date(2026, 10, 1), date(2026, 10, 10))
    assert previous_range(start, end) == (date(2026, 9, 21), date(2026, 9, 30))

    start, end = resolve_range(None, date(2026, 10, 31))
    assert start == date(2026, 10, 1)


def test_summarize_leads():
    leads = [
        SimpleNamespace(created_at=at(2026, 10, 12), status="new", utm_source="google", utm_medium="cpc", utm_campaign="herfst"),
        SimpleNamespace(created_at=at(2026, 10, 14), status="lost", utm_source=None, utm_medium=None, utm_campaign=None),
        SimpleNamespace(created_at=at(2026, 10, 20), status="new", utm_source="google", utm_medium=None, utm_campaign=None),
    ]
    summary = summarize_leads(leads, "week")

    assert summary["total"] == 3
    assert [b.date for b in summary["timeline"]] == ["2026-10-12", "2026-10-19"]
    assert summary["timeline"][0].total == 2
    assert summary["timeline"][0].bySource == {"google": 1}
    assert summary["timeline"][0].byCampaign == {"herfst": 1}
    assert summary["statusBreakdown"] == {"new": 2, "lost": 1}
    assert summary["sourceBreakdown"] == {"google": 2, "direct": 1}
    assert summary["mediumBreakdown"] == {"cpc": 1, "none": 2}


def test_summarize_revenue_skips_customers_without_quote():
    customers = [
        SimpleNamespace(converted_at=at(2026, 3, 2), quote_total=1000.0, project_status="new"),
        SimpleNamespace(converted_at=at(2026, 3, 30), quote_total=2500.5, project_status="completed"),
        SimpleNamespace(converted_at=at(2026, 4, 1), quote_total=None, project_status="new"),
    ]
    summary = summarize_revenue(customers, "month")

    assert summary["total"] == 3500.5
    assert summary["count"] == 2
    assert summary["averageDealSize"] == 1750.25
    assert [b.date for b in summary["timeline"]] == ["2026-03"]
    assert summary["byStatus"] == {"new": 1000.0, "completed": 2500.5}


def test_lead_analytics_endpoint(super_admin):
    submit_lead(super_admin, "a@voorbeeld.be", utm_source="google", utm_medium="cpc")
    submit_lead(super_admin, "b@voorbeeld.be")

    body = super_admin.get("/api/analytics/leads").json()
    assert body["total"] == 2
    assert body["trend"] == 100.0
    assert body["sourceBreakdown"] == {"google": 1, "direct": 1}
    assert body["mediumBreakdown"] == {"cpc": 1, "none": 1}
    assert body["dateRange"]["groupBy"] == "day"
    assert sum(bucket["total"] for bucket in body["timeline"]) == 2


def test_lead_analytics_range_validation(super_admin):
    assert super_admin.get("/api/analytics/leads?startDate=2026-10-10&endDate=2026-10-01").status_code == 400
    assert super_admin.get("/api/analytics/leads?groupBy=year").status_code == 400

    old = (date.today() - timedelta(days=400)).isoformat()
    older = (date.today() - timedelta(days=390)).isoformat()
    submit_lead(super_admin, "c@voorbeeld.be")
    assert super_admin.get(f"/api/analytics/leads?startDate={old}&endDate={older}").json()["total"] == 0


def test_revenue_and_dashboard(super_admin):
    lead = super_admin.post(
        "/api/admin/leads", json={"name": "Tom Maes", "email": "tom@maes.be", "phone": "+32 3 123 45 67"}
    ).json()
    submit_lead(super_admin, "open@voorbeeld.be")
    super_admin.post(f"/api/leads/{lead['id']}/quote", json={"quote_data": {"p": 1}, "total_price": 1999.99})
    super_admin.patch(f"/api/leads/{lead['id']}", json={"status": "converted"})
    super_admin.post(f"/api/leads/{lead['id']}/convert")

    revenue = super_admin.get("/api/analytics/revenue?groupBy=month").json()
    assert revenue["total"] == 1999.99
    assert revenue["count"] == 1
    assert revenue["averageDealSize"] == 1999.99
    assert revenue["byStatus"] == {"new": 1999.99}

    dashboard = super_admin.get("/api/analytics/dashboard").json()
    assert dashboard["totalLeads"] == 2
    assert dashboard["leadsByStatus"]["converted"] == 1
    assert dashboard["leadsByStatus"]["new"] == 1
    assert dashboard["totalCustomers"] == 1
    assert dashboard["customersByStatus"]["new"] == 1
    assert dashboard["totalRevenue"] == 1999.99
    assert dashboard["conversionRate"] == 50.0


# ────────────── Sales per person ──────────────
def lead_row(id, created_at, assigned_to=None, created_by=None):
    return SimpleNamespace(id=id, created_at=created_at, assigned_to=assigned_to, created_by=created_by)


def test_summarize_sales():
    leads = [
        lead_row(1, at(2026, 10, 12), assigned_to="sales@agency.test"),
        lead_row(2, at(2026, 10, 13), created_by="owner@agency.test"),
        lead_row(3, at(2026, 10, 20), assigned_to="sales@agency.test", created_by="owner@agency.test"),
        lead_row(4, at(2026, 10, 21)),
    ]
    summary = summarize_sales(leads, {1: 1000.0, 3: 500.0}, {1: 1000.0, 2: 300.0}, "week")

    assert [s.person for s in summary["summary"]] == ["sales@agency.test", "owner@agency.test", "Onbekend"]
    sales = summary["summary"][0]
    assert (sales.leadCount, sales.quoteCount, sales.totalQuoteAmount, sales.avgQuoteAmount) == (2, 2, 1500.0, 750.0)
    assert (sales.convertedCount, sales.convertedRevenue) == (1, 1000.0)
    # no sent quote: the customer's total counts as the quote
    owner = summary["summary"][1]
    assert (owner.quoteCount, owner.totalQuoteAmount, owner.convertedRevenue) == (1, 300.0, 300.0)

    periods = summary["byPeriod"]
    assert [(p.periodKey, p.periodLabel) for p in periods] == [
        ("2026-10-12", "Week 2026-10-12"), ("2026-10-19", "Week 2026-10-19"),
    ]
    assert set(periods[0].persons) == {"sales@agency.test", "owner@agency.test"}
    assert periods[1].persons["Onbekend"].leadCount == 1

    totals = summary["totals"]
    assert (totals.totalLeads, totals.totalQuoteAmount) == (4, 1500.0)
    assert (totals.totalConvertedRevenue, totals.totalConvertedCount) == (1300.0, 2)


def test_period_labels():
    assert period_label("2026-10", "month") == "okt 2026"
    assert period_label("2026-03-02", "day") == "2026-03-02"


def converted_customer(client, email, total, quote_status="sent"):
    lead = client.post(
        "/api/admin/leads", json={"name": "Lies Wouters", "email": email, "phone": "+32 470 98 76 54"}
    ).json()
    quote = client.post(
        f"/api/leads/{lead['id']}/quote", json={"quote_data": {"p": 1}, "total_price": total}
    ).json()["quote"]
    client.patch(f"/api/leads/{lead['id']}/quote/{quote['id']}", json={"status": quote_status})
    client.patch(f"/api/leads/{lead['id']}", json={"status": "converted"})
    return client.post(f"/api/leads/{lead['id']}/convert").json()["customer"]


def test_sales_endpoint(super_admin):
    converted_customer(super_admin, "lies@wouters.be", 2000)
    submit_lead(super_admin, "web@voorbeeld.be")

    body = super_admin.get("/api/analytics/sales?groupBy=day").json()
    assert body["dateRange"]["groupBy"] == "day"
    assert body["totals"] == {
        "totalLeads": 2, "totalQuoteAmount": 2000.0, "totalConvertedRevenue": 2000.0, "totalConvertedCount": 1,
    }
    first = body["summary"][0]
    assert first["person"] == SUPER_EMAIL
    assert (first["leadCount"], first["quoteCount"], first["convertedRevenue"]) == (1, 1, 2000.0)
    assert body["summary"][1]["person"] == "Onbekend"

    assert super_admin.get("/api/analytics/sales").json()["dateRange"]["groupBy"] == "week"


# ────────────── Sales targets ──────────────
def test_progress_pct():
    assert progress_pct(250, 1000) == 25
    assert progress_pct(50000, 10) == 999
    assert progress_pct(100, 0) == 0


def test_sales_targets_for_managers_and_sellers(super_admin):
    assert super_admin.get("/api/admin/sales-target").json() == {
        "daily_target_eur": 0.0, "weekly_target_eur": 0.0, "revenue_today": 0.0, "revenue_this_week": 0.0,
    }

    response = super_admin.put("/api/admin/sales-target", json={"daily_target_eur": 1000, "weekly_target_eur": 5000})
    assert response.json() == {"ok": True}
    customer = converted_customer(super_admin, "doel@voorbeeld.be", 500)

    assert super_admin.get("/api/admin/sales-target").json() == {
        "daily_target_eur": 1000.0, "weekly_target_eur": 5000.0, "revenue_today": 500.0, "revenue_this_week": 500.0,
    }

    create_admin(super_admin, "seller@agency.test", {"customers": True})
    login(super_admin, "seller@agency.test", "member-password-1")
    assert super_admin.get("/api/admin/sales-target").json() == {
        "daily_target_eur": 1000.0, "weekly_target_eur": 5000.0, "progress_daily_pct": 50, "progress_weekly_pct": 10,
    }
    assert super_admin.put("/api/admin/sales-target", json={"daily_target_eur": 1}).status_code == 403

    # canceled projects do not count
    super_admin.patch(f"/api/customers/{customer['id']}", json={"project_status": "canceled"})
    assert super_admin.get("/api/admin/sales-target").json()["progress_daily_pct"] == 0


def test_sales_target_partial_update_and_validation(super_admin):
    super_admin.put("/api/admin/sales-target", json={"weekly_target_eur": 3000})
    super_admin.put("/api/admin/sales-target", json={"daily_target_eur": 600})
    body = super_admin.get("/api/admin/sales-target").json()
    assert (body["daily_target_eur"], body["weekly_target_eur"]) == (600.0, 3000.0)

    for payload in ({"daily_target_eur": -1}, {"daily_target_eur": None}, {"monthly_target_eur": 10}):
        assert super_admin.put("/api/admin/sales-target", json=payload).status_code == 400


def test_sales_targets_need_customers_capability(super_admin):
    create_admin(super_admin, "leads@agency.test", {"leads": True})
    login(super_admin, "leads@agency.test", "member-password-1")
    assert super_admin.get("/api/admin/sales-target").status_code == 403


def test_sales_targets_without_table(super_admin):
    async def drop(session):
        await session.execute(text("DROP TABLE sales_targets"))
        await session.commit()
    run_db(drop)

    assert super_admin.get("/api/admin/sales-target").json() == {
        "daily_target_eur": 0.0, "weekly_target_eur": 0.0, "revenue_today": 0.0, "revenue_this_week": 0.0,
        "progress_daily_pct": 0, "progress_weekly_pct": 0,
    }
    response = super_admin.put("/api/admin/sales-target", json={"daily_target_eur": 10})
    assert response.status_code == 500
    assert "sales_targets" in response.json()["detail"]
