"""Tests for admin user management (create / update / deactivate / delete / search)."""

import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from portal.core.errors import (
    Conflict,
    MissingRequiredField,
    NotFound,
    QueryTooShort,
    SelfActionForbidden,
)
from portal.core.security import verify_password
from portal.models import AccessKind, ActivityLog, User
from portal.services import user_service


async def _create(db, actor, **overrides):
    data = {
        "email": "nuevo@salvavidas.es",
        "password": "Desfibrilador1",
        "first_name": "Luis",
        "last_name": "Pérez",
        "access_kind": AccessKind.DEVICE,
    }
    data.update(overrides)
    return await user_service.create_user(actor=actor, db=db, **data)


async def test_create_device_principal_stores_the_serial(factory, admin):
    device = await factory.device("DEA001")

    user = await _create(factory.session, admin, device_id=device.id)

    assert user.access_kind == AccessKind.DEVICE
    assert user.access_id == "DEA001"
    assert user.device_id == device.id
    assert user.created_by == admin.email
    assert verify_password("Desfibrilador1", user.password_hash)

    logs = (await factory.session.execute(select(ActivityLog))).scalars().all()
    assert [log.action for log in logs] == ["CREATE_USER"]
    assert logs[0].details["access_id"] == "DEA001"


async def test_create_company_principal_without_company_fails(factory, admin):
    group = await factory.group("G-0001", "ABANCA")

    with pytest.raises(MissingRequiredField) as exc_info:
        await _create(factory.session, admin, access_kind="EMPRESA", group_id=group.id)
    assert exc_info.value.field == "company"

    emails = (await factory.session.execute(select(User.email))).scalars().all()
    assert "nuevo@salvavidas.es" not in emails


async def test_create_company_principal(factory, admin):
    group = await factory.group("G-0001", "ABANCA")
    company = await factory.company("C-0001", "ABANCA SERVICIOS", group)

    user = await _create(
        factory.session,
        admin,
        access_kind=AccessKind.COMPANY,
        group_id=group.id,
        company_id=company.id,
        can_view_invoices=False,
    )

    assert user.access_id == "C-0001"
    assert user.group_key == "G-0001"
    assert user.can_view_invoices is False


async def test_duplicate_email_is_a_conflict(factory, admin):
    with pytest.raises(Conflict) as exc_info:
        await _create(factory.session, admin, email=admin.email, access_kind=AccessKind.ADMIN)
    assert exc_info.value.status_code == 409


async def test_self_deactivate_and_delete_are_forbidden(factory, admin):
    with pytest.raises(SelfActionForbidden):
        await user_service.deactivate_user(admin.id, admin, factory.session)
    with pytest.raises(SelfActionForbidden):
        await user_service.delete_user(admin.id, admin, factory.session)
    with pytest.raises(SelfActionForbidden):
        await user_service.update_user(admin.id, {"active": False}, admin, factory.session)
    assert admin.active is True


async def test_deactivate_is_a_soft_delete(factory, admin):
    target = await factory.user("cliente@salvavidas.es", AccessKind.DEVICE, "DEA001")

    user = await user_service.deactivate_user(target.id, admin, factory.session)

    assert user.active is False
    assert user.updated_by == admin.email
    assert (await user_service.get_user_by_id(target.id, factory.session)).active is False


async def test_delete_removes_the_row(factory, admin):
    target = await factory.user("cliente@salvavidas.es", AccessKind.DEVICE, "DEA001")

    await user_service.delete_user(target.id, admin, factory.session)

    with pytest.raises(NotFound):
        await user_service.get_user_by_id(target.id, factory.session)


async def test_update_reresolves_the_grant(factory, admin):
    device = await factory.device("DEA001")
    group = await factory.group("G-0001", "ABANCA")
    target = await _create(factory.session, admin, device_id=device.id)

    user = await user_service.update_user(
        target.id,
        {"access_kind": AccessKind.GROUP, "group_id": group.id, "first_name": "Luisa"},
        admin,
        factory.session,
    )

    assert user.access_kind == AccessKind.GROUP
    assert user.access_id == "G-0001"
    assert user.device_id is None
    assert user.first_name == "Luisa"
    assert user.updated_by == admin.email


async def test_update_to_company_without_company_fails(factory, admin):
    device = await factory.device("DEA001")
    group = await factory.group("G-0001", "ABANCA")
    target = await _create(factory.session, admin, device_id=device.id)

    with pytest.raises(MissingRequiredField):
        await user_service.update_user(
            target.id,
            {"access_kind": AccessKind.COMPANY, "group_id": group.id},
            admin,
            factory.session,
        )


async def test_update_resets_password_and_checks_email(factory, admin):
    target = await factory.user("cliente@salvavidas.es", AccessKind.DEVICE, "DEA001")

    user = await user_service.update_user(
        target.id, {"password": "OtraClave99", "email": None}, admin, factory.session
    )
    assert verify_password("OtraClave99", user.password_hash)

    with pytest.raises(Conflict):
        await user_service.update_user(
            target.id, {"email": admin.email}, admin, factory.session
        )


async def test_update_of_missing_user(db, admin):
    with pytest.raises(NotFound):
        await user_service.update_user(uuid.uuid4(), {"first_name": "X"}, admin, db)


@pytest.mark.parametrize("query", ["", "a", "  b  "])
async def test_search_requires_a_minimum_length(db, query):
    with pytest.raises(QueryTooShort) as exc_info:
        await user_service.search_users(query, db)
    assert exc_info.value.status_code == 400


async def test_search_matches_email_and_names(factory, admin):
    await factory.user("maria@salvavidas.es", AccessKind.DEVICE, "DEA001", last_name="Ortega")
    await factory.user("jose@clinica.es", AccessKind.GROUP, "ABANCA", first_name="Ortensia")
    await factory.user("pablo@clinica.es", AccessKind.GROUP, "ABANCA", last_name="Ruiz")

    by_name = await user_service.search_users("Orte", factory.session)
    by_domain = await user_service.search_users("clinica", factory.session)

    assert [u.email for u in by_name] == ["maria@salvavidas.es", "jose@clinica.es"]
    assert [u.email for u in by_domain] == ["jose@clinica.es", "pablo@clinica.es"]


async def test_search_treats_wildcards_literally(factory, admin):
    assert await user_service.search_users("%%", factory.session) == []


async def test_search_is_capped(factory, admin):
    for i in range(5):
        await factory.user(f"cliente{i}@salvavidas.es", AccessKind.DEVICE, f"DEA00{i}")

    found = await user_service.search_users("cliente", factory.session, limit=3)

    assert [u.email for u in found] == [
        "cliente0@salvavidas.es",
        "cliente1@salvavidas.es",
        "cliente2@salvavidas.es",
    ]


async def test_search_orders_access_kinds_alphabetically(factory, admin):
    await factory.user("grupo@clinica.es", AccessKind.GROUP, "G-0001")
    await factory.user("empresa@clinica.es", AccessKind.COMPANY, "C-0001")
    await factory.user("dea@clinica.es", AccessKind.DEVICE, "DEA001")
    await factory.user("admin@clinica.es")

    found = await user_service.search_users("clinica", factory.session)

    assert [u.access_kind.value for u in found] == ["ADMIN", "DISPOSITIVO", "EMPRESA", "GRUPO"]


def test_access_kind_order_is_on_the_stored_string():
    compiled = str(user_service._ACCESS_KIND_ORDER.compile(dialect=postgresql.dialect()))
    assert compiled == "CAST(users.access_kind AS VARCHAR) ASC"


async def test_search_matches_the_query_as_sent(factory, admin):
    await factory.user("jose@clinica.es", AccessKind.GROUP, "ABANCA", last_name="de la Fuente")

    padded = await user_service.search_users("clinica ", factory.session)
    spaced = await user_service.search_users(" Fuente", factory.session)

    assert padded == []
    assert [u.email for u in spaced] == ["jose@clinica.es"]
