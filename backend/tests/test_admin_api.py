"""Admin endpoints: approval, permission grants, default administrator."""

import uuid

from casetrack.db.models import Permission, UserPermission
from conftest import auth_headers

BASE = "/api/v1/admin"


def test_is_admin(client, admin, make_profile):
    member = make_profile()
    assert client.get(f"{BASE}/is-admin", headers=auth_headers(admin)).json() == {"is_admin": True}
    assert client.get(f"{BASE}/is-admin", headers=auth_headers(member)).json() == {"is_admin": False}


def test_default_admin_email_is_always_enabled_admin(client, make_profile):
    # Settings lowercases DEFAULT_ADMIN_EMAIL ("Owner@Casetrack.test")
    owner = make_profile(email="owner@casetrack.test", is_enabled=False)
    response = client.get(f"{BASE}/is-admin", headers=auth_headers(owner))
    assert response.status_code == 200
    assert response.json() == {"is_admin": True}


def test_enable_user(client, admin, make_profile, db):
    pending = make_profile(email="pending@casetrack.test", is_enabled=False)

    response = client.post(
        f"{BASE}/update-user-access",
        json={"userId": str(pending.id), "isEnabled": True},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    db.refresh(pending)
    assert pending.is_enabled is True


def test_update_user_access_rejects_invalid_payload(client, admin):
    for payload in ({"userId": str(uuid.uuid4())}, {"userId": str(uuid.uuid4()), "isEnabled": "yes"}, {}):
        response = client.post(f"{BASE}/update-user-access", json=payload, headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid payload. Expected userId and isEnabled."


def test_update_user_access_unknown_user(client, admin):
    response = client.post(
        f"{BASE}/update-user-access",
        json={"userId": str(uuid.uuid4()), "isEnabled": False},
        headers=auth_headers(admin),
    )
    assert response.status_code == 404


def test_update_user_access_requires_admin(client, make_profile):
    member = make_profile()
    response = client.post(
        f"{BASE}/update-user-access",
        json={"userId": str(member.id), "isEnabled": False},
        headers=auth_headers(member),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


def test_grant_and_revoke_permission(client, admin, make_profile, db):
    member = make_profile()
    headers = auth_headers(admin)

    granted = client.post(
        f"{BASE}/users/{member.id}/permissions",
        json={"permission": "upload_excel_litigation"},
        headers=headers,
    )
    assert granted.status_code == 200
    assert granted.json()["permissions"] == ["upload_excel_litigation"]

    # granting twice is a no-op
    again = client.post(
        f"{BASE}/users/{member.id}/permissions",
        json={"permission": "upload_excel_litigation"},
        headers=headers,
    )
    assert again.json()["permissions"] == ["upload_excel_litigation"]
    assert db.query(UserPermission).filter(UserPermission.user_id == member.id).count() == 1

    revoked = client.delete(
        f"{BASE}/users/{member.id}/permissions/upload_excel_litigation",
        headers=headers,
    )
    assert revoked.status_code == 200
    assert revoked.json()["permissions"] == []


def test_grant_unknown_permission(client, admin, make_profile):
    member = make_profile()
    response = client.post(
        f"{BASE}/users/{member.id}/permissions",
        json={"permission": "launch_rockets"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


def test_list_users(client, admin, make_profile):
    make_profile(permissions=[Permission.export_reports])
    response = client.get(f"{BASE}/users", headers=auth_headers(admin))

    assert response.status_code == 200
    users = {u["email"]: u for u in response.json()}
    assert users["member@casetrack.test"]["permissions"] == ["export_reports"]
    assert users["admin@casetrack.test"]["is_admin"] is True
    assert len(users["admin@casetrack.test"]["permissions"]) == len(Permission)
