"""Tests for the per-task timeline."""
import uuid

import pytest

from taskmarket.core.exceptions import InvariantViolationError, NotFoundError, ValidationError
from taskmarket.crud.task import task as task_store
from taskmarket.models.task_activity import DELETED_MESSAGE_PLACEHOLDER, ApplicationStatus, UserRole
from taskmarket.services.application_service import application_service
from taskmarket.services.task_lifecycle_service import task_lifecycle_service
from taskmarket.services.timeline_service import timeline_service


async def post(db, task_id, actor, content):
    return await timeline_service.append(
        db, task_id, author_id=actor.id, author_name=actor.name, role=actor.role, content=content
    )


@pytest.mark.asyncio
async def test_messages_kept_in_append_order(db_session, make_task, employer, student):
    task = await make_task()
    task_id = task.id

    for index in range(5):
        author = employer if index % 2 == 0 else student
        await post(db_session, task_id, author, f"message {index}")

    messages = await timeline_service.list_messages(db_session, task_id)
    assert [m.content for m in messages] == [f"message {i}" for i in range(5)]
    assert [m.user_type for m in messages[:2]] == [UserRole.EMPLOYER, UserRole.STUDENT]
    assert all(not m.edited and not m.is_deleted for m in messages)


@pytest.mark.asyncio
async def test_append_requires_content(db_session, make_task, employer):
    task = await make_task()
    with pytest.raises(ValidationError):
        await post(db_session, task.id, employer, "   ")


@pytest.mark.asyncio
async def test_append_to_missing_task(db_session, employer):
    with pytest.raises(NotFoundError):
        await post(db_session, uuid.uuid4(), employer, "hello")


@pytest.mark.asyncio
async def test_author_can_edit(db_session, make_task, student):
    task = await make_task()
    task_id = task.id
    message = await post(db_session, task_id, student, "first draft")

    edited = await timeline_service.edit(
        db_session, task_id, message.id, new_content="final text", editor_id=student.id, editor_role=student.role
    )

    assert edited.content == "final text"
    assert edited.edited is True
    assert edited.edited_at is not None


@pytest.mark.asyncio
async def test_only_author_can_edit(db_session, make_task, employer, student):
    task = await make_task()
    task_id = task.id
    message = await post(db_session, task_id, student, "mine")
    message_id = message.id

    with pytest.raises(InvariantViolationError):
        await timeline_service.edit(
            db_session, task_id, message_id, new_content="hijack", editor_id=employer.id, editor_role=employer.role
        )
    messages = await timeline_service.list_messages(db_session, task_id)
    assert messages[0].content == "mine"


@pytest.mark.asyncio
async def test_delete_replaces_content_and_blocks_edits(db_session, make_task, student):
    task = await make_task()
    task_id = task.id
    message = await post(db_session, task_id, student, "oops")
    message_id = message.id
    await timeline_service.edit(
        db_session, task_id, message_id, new_content="oops, edited", editor_id=student.id, editor_role=student.role
    )

    deleted = await timeline_service.delete(
        db_session, task_id, message_id, actor_id=student.id, actor_role=student.role
    )
    assert deleted.is_deleted is True
    assert deleted.content == DELETED_MESSAGE_PLACEHOLDER
    assert deleted.deleted_at is not None

    with pytest.raises(InvariantViolationError):
        await timeline_service.edit(
            db_session, task_id, message_id, new_content="back again", editor_id=student.id, editor_role=student.role
        )

    messages = await timeline_service.list_messages(db_session, task_id)
    assert len(messages) == 1
    assert messages[0].content == DELETED_MESSAGE_PLACEHOLDER
    assert await timeline_service.list_messages(db_session, task_id, include_deleted=False) == []

    # Deleting again leaves the placeholder in place
    again = await timeline_service.delete(
        db_session, task_id, message_id, actor_id=student.id, actor_role=student.role
    )
    assert again.content == DELETED_MESSAGE_PLACEHOLDER


@pytest.mark.asyncio
async def test_system_messages_are_frozen(db_session, make_task, employer):
    task = await make_task()
    task_id = task.id
    message = await timeline_service.append(
        db_session,
        task_id,
        author_id=employer.id,
        author_name=employer.name,
        role=employer.role,
        content="Automated notice",
        is_system_message=True,
    )
    message_id = message.id

    with pytest.raises(InvariantViolationError):
        await timeline_service.delete(db_session, task_id, message_id, actor_id=employer.id, actor_role=employer.role)


@pytest.mark.asyncio
async def test_completed_task_locks_timeline(db_session, make_task, employer):
    task = await make_task()
    task_id = task.id
    message = await post(db_session, task_id, employer, "before completion")
    message_id = message.id
    await task_lifecycle_service.mark_completed(db_session, task_id, employer)

    with pytest.raises(InvariantViolationError):
        await timeline_service.edit(
            db_session, task_id, message_id, new_content="after", editor_id=employer.id, editor_role=employer.role
        )
    with pytest.raises(InvariantViolationError):
        await timeline_service.delete(db_session, task_id, message_id, actor_id=employer.id, actor_role=employer.role)


@pytest.mark.asyncio
async def test_unknown_message(db_session, make_task, employer):
    task = await make_task()
    with pytest.raises(NotFoundError):
        await timeline_service.edit(
            db_session, task.id, uuid.uuid4(), new_content="x", editor_id=employer.id, editor_role=employer.role
        )


@pytest.mark.asyncio
async def test_post_task_details_once(db_session, make_task, student):
    task = await make_task(
        title="Product photos",
        description="Shoot 20 product photos",
        category="Photography",
        price=2000,
        skills=["photography", "lightroom"],
        video_url="https://youtu.be/dQw4w9WgXcQ",
    )
    task_id = task.id
    application = await application_service.submit(
        db_session, task_id, student_id=student.id, student_name=student.name, student_email=student.email
    )
    await application_service.update_status(
        db_session, task_id, application.id, new_status=ApplicationStatus.APPROVED
    )

    posted = await timeline_service.post_task_details(db_session, task_id)

    contents = [m.content for m in posted]
    assert contents[0] == "Task details: Product photos"
    assert "Budget: 2000 INR (you earn 1800 INR)" in contents
    assert "Required skills: photography, lightroom" in contents
    assert contents[-1].startswith("Welcome to the task timeline!")
    assert all(m.is_system_message for m in posted)

    task = await task_store.require(db_session, task_id)
    assert task.details_posted_to_timeline is True
    assert await timeline_service.post_task_details(db_session, task_id) == []
    task = await task_store.require(db_session, task_id)
    # Assignment notice plus the details
    assert len(task.timeline_messages) == 1 + len(posted)


@pytest.mark.asyncio
async def test_post_task_details_requires_assignment(db_session, make_task):
    task = await make_task()
    task_id = task.id
    with pytest.raises(InvariantViolationError):
        await timeline_service.post_task_details(db_session, task_id)
