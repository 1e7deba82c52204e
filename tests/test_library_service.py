"""Tests for library items."""
import pytest

from taskmarket.core.exceptions import InvariantViolationError, ValidationError
from taskmarket.crud.project import campaign as crud_campaign
from taskmarket.crud.project import sprint as crud_sprint
from taskmarket.models.task import TaskKind, TaskStatus
from taskmarket.schemas.library import (
    BrandBriefPayload,
    ChecklistItem,
    ChecklistPayload,
    Credential,
    CredentialsPayload,
)
from taskmarket.services.application_service import application_service
from taskmarket.services.library_service import library_service, payload_adapter
from taskmarket.services.task_lifecycle_service import task_lifecycle_service


@pytest.mark.asyncio
async def test_create_checklist_in_empty_project(db_session, test_project, employer):
    project_id = test_project.id
    payload = ChecklistPayload(
        items=[ChecklistItem(id="1", text="Collect logo files"), ChecklistItem(id="2", text="Confirm palette")],
        category="Design",
    )

    item = await library_service.create(
        db_session, project_id, kind=TaskKind.CHECKLIST, title="Onboarding", actor=employer, payload=payload
    )

    assert item.status == TaskStatus.CHECKLIST_LIBRARY
    assert item.kind == TaskKind.CHECKLIST
    assert item.is_library_item
    assert item.is_published is False
    assert item.category == "Design"
    assert item.timeline_messages[0].content == 'checklist library "Onboarding" was created'
    assert item.edit_history[0].action == "Created checklist library"

    sprints = await crud_sprint.get_by_project(db_session, project_id=project_id)
    assert [s.name for s in sprints] == ["Default Sprint"]
    campaigns = await crud_campaign.get_by_sprint(db_session, sprint_id=sprints[0].id)
    assert [c.name for c in campaigns] == ["Library Items"]
    assert item.campaign_id == campaigns[0].id

    typed = library_service.payload_of(item)
    assert isinstance(typed, ChecklistPayload)
    assert [i.text for i in typed.items] == ["Collect logo files", "Confirm palette"]


@pytest.mark.asyncio
async def test_create_uses_existing_campaign(db_session, test_project, test_campaign, employer):
    project_id, campaign_id = test_project.id, test_campaign.id

    item = await library_service.create(
        db_session,
        project_id,
        kind=TaskKind.BRAND_BRIEF,
        title="Acme brand",
        actor=employer,
        payload=BrandBriefPayload(brand_name="Acme", brand_colors=["#ff0000"]),
    )

    assert item.campaign_id == campaign_id
    assert item.timeline_messages[0].content == 'brand brief "Acme brand" was created'
    assert len(await crud_sprint.get_by_project(db_session, project_id=project_id)) == 1


@pytest.mark.asyncio
async def test_payload_kind_must_match(db_session, test_project, employer):
    with pytest.raises(ValidationError):
        await library_service.create(
            db_session,
            test_project.id,
            kind=TaskKind.CHECKLIST,
            title="Wrong payload",
            actor=employer,
            payload=CredentialsPayload(),
        )


@pytest.mark.asyncio
async def test_ordinary_kind_rejected(db_session, test_project, employer):
    with pytest.raises(ValidationError):
        await library_service.create(
            db_session, test_project.id, kind=TaskKind.RECURRING, title="Not a library item", actor=employer
        )


@pytest.mark.asyncio
async def test_update_payload_and_list(db_session, test_project, employer):
    project_id = test_project.id
    item = await library_service.create(
        db_session, project_id, kind=TaskKind.CREDENTIALS, title="Social accounts", actor=employer
    )
    item_id = item.id
    assert library_service.payload_of(item) == CredentialsPayload()

    updated = await library_service.update_payload(
        db_session,
        item_id,
        CredentialsPayload(credentials=[Credential(id="c1", service="Instagram", username="acme", password="s3cret")]),
        employer,
    )
    assert updated.library_payload["credentials"][0]["service"] == "Instagram"
    assert updated.edit_history[-1].action == "Updated credentials library contents"

    with pytest.raises(ValidationError):
        await library_service.update_payload(db_session, item_id, ChecklistPayload(), employer)

    items = await library_service.list_items(db_session, project_id, TaskKind.CREDENTIALS)
    assert [i.id for i in items] == [item_id]
    assert await library_service.list_items(db_session, project_id, TaskKind.CHECKLIST) == []


@pytest.mark.asyncio
async def test_library_items_are_frozen_out_of_the_workflow(db_session, test_project, employer, student):
    item = await library_service.create(
        db_session, test_project.id, kind=TaskKind.RESOURCE_LIBRARY, title="Assets", actor=employer
    )
    item_id = item.id

    with pytest.raises(InvariantViolationError):
        await task_lifecycle_service.update_status(db_session, item_id, TaskStatus.PUBLISHED, employer)
    with pytest.raises(InvariantViolationError):
        await task_lifecycle_service.toggle_publish(db_session, item_id, employer)
    with pytest.raises(InvariantViolationError):
        await application_service.submit(
            db_session, item_id, student_id=student.id, student_name=student.name, student_email=student.email
        )


def test_payload_adapter_discriminates_on_kind():
    payload = payload_adapter.validate_python({"kind": "resource_library", "resources": [], "category": "Links"})
    assert payload.kind == "resource_library"
    assert payload.category == "Links"
