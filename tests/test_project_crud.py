"""Tests for project hierarchy CRUD."""
import uuid

import pytest

from taskmarket.crud.project import campaign as crud_campaign
from taskmarket.crud.project import project as crud_project
from taskmarket.schemas.project import ProjectCreate, ProjectUpdate


@pytest.mark.asyncio
async def test_get_by_owner(db_session, test_project, employer):
    await crud_project.create(db_session, obj_in=ProjectCreate(name="Other", owner_id="employer-2"))

    owned = await crud_project.get_by_owner(db_session, owner_id=employer.id)
    assert [p.name for p in owned] == ["Launch Campaign"]
    assert len(await crud_project.get_multi(db_session)) == 2
    assert len(await crud_project.get_multi(db_session, skip=1)) == 1


@pytest.mark.asyncio
async def test_update_project(db_session, test_project):
    updated = await crud_project.update(
        db_session, db_obj=test_project, obj_in=ProjectUpdate(category="Growth")
    )

    assert updated.category == "Growth"
    assert updated.name == "Launch Campaign"


@pytest.mark.asyncio
async def test_campaign_resolves_project(db_session, test_project, test_campaign):
    assert await crud_campaign.get_project_id(db_session, campaign_id=test_campaign.id) == test_project.id
    assert await crud_campaign.get_project_id(db_session, campaign_id=uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_remove_project(db_session, test_project):
    project_id = test_project.id

    removed = await crud_project.remove(db_session, id=project_id)

    assert removed.id == project_id
    assert await crud_project.get(db_session, project_id) is None
    assert await crud_project.remove(db_session, id=uuid.uuid4()) is None
