"""
Directory service: the reference collections behind the admin
selectors (groups → companies → devices).

These tables are filled by the spreadsheet imports and are read-only
from the portal's point of view.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import NotFound
from portal.models.company import Company
from portal.models.group import Group
from portal.rbac.reference_resolver import available_companies


async def list_groups(db: AsyncSession) -> list[Group]:
    result = await db.execute(select(Group).order_by(Group.name.asc()))
    return list(result.scalars().all())


async def list_companies(
    db: AsyncSession,
    group_id: uuid.UUID | None = None,
) -> list[Company]:
    """
    All companies by name, or only those of one group when the group
    selector is set.
    """
    result = await db.execute(select(Company).order_by(Company.name.asc()))
    companies = list(result.scalars().all())

    if group_id is None:
        return companies

    group = await db.get(Group, group_id)
    if group is None:
        raise NotFound("group")
    return available_companies(companies, group.group_code)
