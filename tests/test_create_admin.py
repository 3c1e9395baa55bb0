import pytest

from agency_api.scripts.create_admin import main

from conftest import login


def test_script_creates_and_updates_account(client):
    main(["Ops@Agency.test", "--password", "script-pass-1", "--grant", "leads", "--name", "Ops"])

    assert login(client, "ops@agency.test", "script-pass-1").status_code == 200
    session = client.get("/api/auth/session").json()
    assert session["email"] == "ops@agency.test"
    assert session["permissions"]["leads"] is True
    assert session["permissions"]["customers"] is False

    main(["ops@agency.test", "--password", "script-pass-2", "--super-admin"])
    assert login(client, "ops@agency.test", "script-pass-1").status_code == 401
    assert login(client, "ops@agency.test", "script-pass-2").status_code == 200
    assert client.get("/api/auth/session").json()["permissions"]["manage_users"] is True


def test_script_rejects_short_password(client):
    with pytest.raises(SystemExit):
        main(["ops@agency.test", "--password", "kort"])
