"""Admin routes: guards, user management and the reference selectors."""

import uuid

import pytest

from portal.models import AccessKind, DeviceStatus


def _new_user(**overrides):
    body = {
        "email": "nuevo@salvavidas.es",
        "password": "Desfibrilador1",
        "first_name": "Luis",
        "last_name": "Pérez",
        "access_kind": "DISPOSITIVO",
    }
    body.update(overrides)
    return body


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/api/admin/users"),
        ("get", "/api/admin/users/search?q=ana"),
        ("get", "/api/admin/groups"),
        ("get", "/api/admin/companies"),
        ("get", "/api/admin/devices"),
        ("get", "/api/admin/activity"),
        ("post", "/api/admin/users"),
        ("delete", f"/api/admin/users/{uuid.uuid4()}"),
    ],
)
async def test_non_admin_is_refused(client, factory, auth_headers, method, path):
    user = await factory.user("grupo@salvavidas.es", AccessKind.GROUP, "G-0001")

    kwargs = {"headers": auth_headers(user)}
    if method == "post":
        kwargs["json"] = _new_user()
    response = await getattr(client, method)(path, **kwargs)

    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions"


async def test_create_device_principal(client, factory, admin, auth_headers):
    device = await factory.device("DEA001")

    response = await client.post(
        "/api/admin/users",
        json=_new_user(device_id=str(device.id)),
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["access_kind"] == "DISPOSITIVO"
    assert body["access_id"] == "DEA001"
    assert body["created_by"] == admin.email
    assert "password_hash" not in body


async def test_create_company_principal_without_company(client, factory, admin, auth_headers):
    group = await factory.group("G-0001", "ABANCA")

    response = await client.post(
        "/api/admin/users",
        json=_new_user(access_kind="EMPRESA", group_id=str(group.id)),
        headers=auth_headers(admin),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "MissingRequiredField"


async def test_create_with_unknown_access_kind(client, admin, auth_headers):
    response = await client.post(
        "/api/admin/users",
        json=_new_user(access_kind="SUPERVISOR"),
        headers=auth_headers(admin),
    )
    assert response.status_code == 422


async def test_create_with_taken_email(client, admin, auth_headers):
    response = await client.post(
        "/api/admin/users",
        json=_new_user(email=admin.email, access_kind="ADMIN"),
        headers=auth_headers(admin),
    )
    assert response.status_code == 409
    assert response.json()["code"] == "Conflict"


async def test_update_deactivate_and_delete(client, factory, admin, auth_headers):
    group = await factory.group("G-0001", "ABANCA")
    target = await factory.user("cliente@salvavidas.es", AccessKind.DEVICE, "DEA001")
    headers = auth_headers(admin)

    updated = await client.patch(
        f"/api/admin/users/{target.id}",
        json={"access_kind": "GRUPO", "group_id": str(group.id), "password": ""},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["access_id"] == "G-0001"
    assert updated.json()["group_key"] == "G-0001"

    deactivated = await client.post(f"/api/admin/users/{target.id}/deactivate", headers=headers)
    assert deactivated.status_code == 200
    assert deactivated.json()["active"] is False

    deleted = await client.delete(f"/api/admin/users/{target.id}", headers=headers)
    assert deleted.status_code == 204

    missing = await client.get(f"/api/admin/users/{target.id}", headers=headers)
    assert missing.status_code == 404


async def test_admin_cannot_remove_itself(client, admin, auth_headers):
    headers = auth_headers(admin)

    delete = await client.delete(f"/api/admin/users/{admin.id}", headers=headers)
    deactivate = await client.post(f"/api/admin/users/{admin.id}/deactivate", headers=headers)
    patch = await client.patch(
        f"/api/admin/users/{admin.id}", json={"active": False}, headers=headers
    )

    for response in (delete, deactivate, patch):
        assert response.status_code == 400
        assert response.json()["code"] == "SelfActionForbidden"

    still_there = await client.get(f"/api/admin/users/{admin.id}", headers=headers)
    assert still_there.json()["active"] is True


async def test_search(client, factory, admin, auth_headers):
    await factory.user("maria@clinica.es", AccessKind.DEVICE, "DEA001")
    headers = auth_headers(admin)

    short = await client.get("/api/admin/users/search", params={"q": "m"}, headers=headers)
    found = await client.get("/api/admin/users/search", params={"q": "clinica"}, headers=headers)

    assert short.status_code == 400
    assert short.json()["code"] == "QueryTooShort"
    assert [u["email"] for u in found.json()] == ["maria@clinica.es"]


async def test_selection_reports_stale_keys(client, factory, admin, auth_headers):
    device = await factory.device("DEA001")
    current = await factory.user("dea@salvavidas.es", AccessKind.DEVICE, "DEA001")
    stale = await factory.user("viejo@salvavidas.es", AccessKind.DEVICE, "DEA-RETIRED")
    headers = auth_headers(admin)

    ok = await client.get(f"/api/admin/users/{current.id}/selection", headers=headers)
    warned = await client.get(f"/api/admin/users/{stale.id}/selection", headers=headers)

    assert ok.json()["device_id"] == str(device.id)
    assert ok.json()["warnings"] == []
    assert warned.json()["device_id"] is None
    assert warned.json()["warnings"] == ["Device 'DEA-RETIRED' no longer exists"]


async def test_cascading_selectors(client, factory, admin, auth_headers):
    abanca = await factory.group("G-0001", "ABANCA")
    other = await factory.group("G-0002", "OTHER")
    servicios = await factory.company("C-0001", "ABANCA SERVICIOS", abanca)
    await factory.company("C-0002", "ABANCA SEGUROS", abanca)
    await factory.company("C-0003", "OTHER SA", other)
    await factory.device("DEA001", company_name="ABANCA SERVICIOS")
    await factory.device("DEA002", company_name="ABANCA SEGUROS")
    await factory.device("DEA003", company_name="ABANCA SERVICIOS", status=DeviceStatus.CANCELLED)
    headers = auth_headers(admin)

    groups = await client.get("/api/admin/groups", headers=headers)
    companies = await client.get(
        "/api/admin/companies", params={"group_id": str(abanca.id)}, headers=headers
    )
    devices = await client.get(
        "/api/admin/devices", params={"company_id": str(servicios.id)}, headers=headers
    )
    unknown = await client.get(
        "/api/admin/companies", params={"group_id": str(uuid.uuid4())}, headers=headers
    )

    assert [g["name"] for g in groups.json()] == ["ABANCA", "OTHER"]
    assert [c["company_code"] for c in companies.json()] == ["C-0002", "C-0001"]
    assert companies.json()[0]["group_name"] == "ABANCA"
    assert [d["serial_number"] for d in devices.json()] == ["DEA001"]
    assert unknown.status_code == 404


async def test_activity_log_records_admin_actions(client, factory, admin, auth_headers):
    device = await factory.device("DEA001")
    headers = auth_headers(admin)
    await client.post(
        "/api/admin/users",
        json=_new_user(device_id=str(device.id)),
        headers={**headers, "X-Forwarded-For": "10.0.0.7, 172.16.0.1"},
    )

    response = await client.get("/api/admin/activity", headers=headers)

    entries = response.json()
    assert [e["action"] for e in entries] == ["CREATE_USER"]
    assert entries[0]["user_id"] == str(admin.id)
    assert entries[0]["ip_address"] == "10.0.0.7"
    assert entries[0]["details"]["target_email"] == "nuevo@salvavidas.es"
