import pytest

from agency_api.config import settings

from conftest import SUPER_EMAIL, create_admin, login


@pytest.fixture
def customer(super_admin):
    lead = super_admin.post(
        "/api/admin/leads",
        json={"name": "Sofie Claes", "email": "sofie@studio.be", "phone": "+32 9 123 45 67", "company_name": "Studio C"},
    ).json()
    super_admin.post(f"/api/leads/{lead['id']}/quote", json={"quote_data": {"package": "Pro"}, "total_price": 2500})
    super_admin.patch(f"/api/leads/{lead['id']}", json={"status": "converted"})
    return super_admin.post(f"/api/leads/{lead['id']}/convert").json()["customer"]


def test_list_and_filter_customers(super_admin, customer):
    assert [c["id"] for c in super_admin.get("/api/customers").json()] == [customer["id"]]
    assert super_admin.get("/api/customers?project_status=completed").json() == []
    assert super_admin.get("/api/customers?project_status=paused").status_code == 400


def test_patch_whitelisted_fields(super_admin, customer):
    response = super_admin.patch(
        f"/api/customers/{customer['id']}",
        json={"project_status": "in_progress", "bank_account": "BE68539007547034", "assigned_to": SUPER_EMAIL},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["project_status"] == "in_progress"
    assert body["bank_account"] == "BE68539007547034"


def test_patch_rejects_fields_outside_whitelist(super_admin, customer):
    url = f"/api/customers/{customer['id']}"
    assert super_admin.patch(url, json={"lead_id": 99}).status_code == 400
    assert super_admin.patch(url, json={"converted_at": "2020-01-01T00:00:00Z"}).status_code == 400
    assert super_admin.patch(url, json={}).status_code == 400
    assert super_admin.patch(url, json={"email": "geen-adres"}).status_code == 400
    assert super_admin.patch("/api/customers/999", json={"message": "x"}).status_code == 404


def test_customer_lead_link(super_admin, customer):
    lead = super_admin.get(f"/api/admin/customers/{customer['id']}/lead").json()
    assert lead["id"] == customer["lead_id"]
    assert lead["email"] == "sofie@studio.be"


def test_update_log(super_admin, customer):
    url = f"/api/customers/{customer['id']}/updates"
    response = super_admin.post(
        url,
        json={"title": "Design klaar", "description": "Eerste ontwerp opgeleverd", "update_type": "milestone",
              "progress_percentage": 40, "milestone": "Design"},
    )
    assert response.status_code == 201
    assert response.json()["created_by"] == SUPER_EMAIL

    assert super_admin.post(url, json={"title": "x", "description": "y", "progress_percentage": 150}).status_code == 400
    assert super_admin.post(url, json={"title": "", "description": "y"}).status_code == 400

    updates = super_admin.get(url).json()
    assert len(updates) == 1
    assert updates[0]["update_type"] == "milestone"


def test_delete_customer_removes_lead(super_admin, customer):
    super_admin.post(
        f"/api/customers/{customer['id']}/updates",
        json={"title": "Start", "description": "Kick-off"},
    )
    response = super_admin.delete(f"/api/customers/{customer['id']}")
    assert response.status_code == 200
    assert response.json()["lead_deleted"] is True

    assert super_admin.get(f"/api/customers/{customer['id']}").status_code == 404
    assert super_admin.get(f"/api/leads/{customer['lead_id']}").status_code == 404
    assert super_admin.get("/api/leads").json() == []


def test_patch_refuses_null_on_required_fields(super_admin, customer):
    url = f"/api/customers/{customer['id']}"
    for field in ("project_status", "name", "email"):
        response = super_admin.patch(url, json={field: None})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == field

    body = super_admin.patch(url, json={"bank_account": None}).json()
    assert body["bank_account"] is None
    assert body["project_status"] == "new"


def test_customer_files(super_admin, customer):
    url = f"/api/customers/{customer['id']}"
    response = super_admin.post(
        f"{url}/upload",
        files={"file": ("contract.pdf", b"%PDF-1.4 contract", "application/pdf")},
        data={"description": "Getekend contract"},
    )
    assert response.status_code == 201, response.text
    attachment = response.json()
    assert attachment["customer_id"] == customer["id"]
    assert attachment["uploaded_by"] == SUPER_EMAIL
    assert attachment["description"] == "Getekend contract"
    assert attachment["file_url"].startswith(f"{settings.STORAGE_PUBLIC_URL}/customers/{customer['id']}/")
    assert super_admin.get(attachment["file_url"]).content == b"%PDF-1.4 contract"

    assert [a["id"] for a in super_admin.get(f"{url}/attachments").json()] == [attachment["id"]]

    assert super_admin.delete(f"{url}/attachments/{attachment['id']}").status_code == 200
    assert super_admin.get(f"{url}/attachments").json() == []
    assert super_admin.get(attachment["file_url"]).status_code == 404
    assert super_admin.delete(f"{url}/attachments/{attachment['id']}").status_code == 404


def test_customer_upload_limits(super_admin, customer, monkeypatch):
    url = f"/api/customers/{customer['id']}/upload"
    assert super_admin.post(url, files={"file": ("leeg.txt", b"", "text/plain")}).status_code == 400
    assert super_admin.post(url, data={"description": "zonder bestand"}).status_code == 400
    assert super_admin.post("/api/customers/999/upload", files={"file": ("a.txt", b"a", "text/plain")}).status_code == 404

    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 4)
    assert super_admin.post(url, files={"file": ("groot.txt", b"12345", "text/plain")}).status_code == 413


def test_customer_upload_needs_customers_capability(super_admin, customer):
    create_admin(super_admin, "leads-only@agency.test", {"leads": True})
    login(super_admin, "leads-only@agency.test", "member-password-1")
    response = super_admin.post(
        f"/api/customers/{customer['id']}/upload", files={"file": ("a.txt", b"a", "text/plain")}
    )
    assert response.status_code == 403


def test_deleting_customer_removes_its_files(super_admin, customer):
    attachment = super_admin.post(
        f"/api/customers/{customer['id']}/upload", files={"file": ("logo.png", b"png-bytes", "image/png")}
    ).json()
    assert super_admin.delete(f"/api/customers/{customer['id']}").status_code == 200
    assert super_admin.get(attachment["file_url"]).status_code == 404
