import pytest

from agency_api.models.admin import AdminUser, Capability, Role
from agency_api.services.permissions import AdminContext, normalize_permissions, resolve_permissions

from conftest import create_admin, login

PROTECTED = [
    ("get", "/api/leads"),
    ("get", "/api/customers"),
    ("get", "/api/analytics/leads"),
    ("get", "/api/admin/users"),
    ("get", "/api/admin/assignable-users"),
    ("get", "/api/admin/postcode-lookup?postcode=9000"),
]


def test_normalize_permissions_fills_and_coerces():
    perms = normalize_permissions({"leads": 1, "unknown": True})
    assert perms == {
        Capability.LEADS: True,
        Capability.CUSTOMERS: False,
        Capability.ANALYTICS: False,
        Capability.MANAGE_USERS: False,
    }


def test_super_admin_role_resolves_everything():
    account = AdminUser(id=1, email="x@y.be", role=Role.SUPER_ADMIN.value, permissions={})
    assert all(resolve_permissions(account).values())


def test_any_of_versus_all():
    admin = AdminContext(account_id=2, email="a@b.be", role="admin", permissions={Capability.LEADS: True})
    assert admin.allows([Capability.LEADS, Capability.CUSTOMERS], any_of=True)
    assert not admin.allows([Capability.LEADS, Capability.CUSTOMERS])
    assert admin.allows([])


@pytest.mark.parametrize("method,path", PROTECTED)
def test_protected_routes_need_a_session(client, method, path):
    response = getattr(client, method)(path)
    assert response.status_code == 401
    assert response.json()["detail"] == "Niet geautoriseerd. Log in om toegang te krijgen."


@pytest.mark.parametrize("method,path", PROTECTED)
def test_super_admin_passes_every_gate(super_admin, method, path):
    assert getattr(super_admin, method)(path).status_code == 200


def test_lead_route_without_leads_capability_is_forbidden(super_admin):
    create_admin(super_admin, "customers@agency.test", {"customers": True})
    assert login(super_admin, "customers@agency.test", "member-password-1").status_code == 200

    response = super_admin.get("/api/leads")
    assert response.status_code == 403
    assert response.json()["detail"] == "Geen toegang tot dit onderdeel."

    assert super_admin.get("/api/customers").status_code == 200
    assert super_admin.get("/api/admin/users").status_code == 403
    # either leads or customers is enough for the picker and the lookups
    assert super_admin.get("/api/admin/assignable-users").status_code == 200
    assert super_admin.get("/api/admin/postcode-lookup?postcode=9000").status_code == 200


def test_account_without_capabilities(super_admin):
    create_admin(super_admin, "nobody@agency.test", {})
    login(super_admin, "nobody@agency.test", "member-password-1")

    for path in ("/api/leads", "/api/customers", "/api/analytics/dashboard", "/api/admin/assignable-users"):
        assert super_admin.get(path).status_code == 403
    assert super_admin.get("/api/auth/session").json()["permissions"] == {
        "leads": False, "customers": False, "analytics": False, "manage_users": False,
    }


def test_convert_needs_leads_and_customers(super_admin):
    create_admin(super_admin, "sales@agency.test", {"leads": True})
    login(super_admin, "sales@agency.test", "member-password-1")
    assert super_admin.post("/api/leads/1/convert").status_code == 403
