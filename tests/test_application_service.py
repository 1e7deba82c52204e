"""Tests for the application workflow."""
import uuid

import pytest

from taskmarket.config import settings
from taskmarket.core.exceptions import InvariantViolationError, NotFoundError
from taskmarket.crud.task import task as task_store
from taskmarket.models.task import AssignmentStatus, TaskStatus
from taskmarket.models.task_activity import ApplicationStatus
from taskmarket.services.application_service import application_service
from taskmarket.services.task_lifecycle_service import task_lifecycle_service


async def apply(db, task_id, student, note=""):
    return await application_service.submit(
        db,
        task_id,
        student_id=student.id,
        student_name=student.name,
        student_email=student.email,
        note=note,
    )


@pytest.mark.asyncio
async def test_submit_appends_pending_application(db_session, make_task, student):
    task = await make_task(price=1500)
    task_id = task.id

    application = await apply(db_session, task_id, student, note="I have done this before")

    assert application.status == ApplicationStatus.PENDING
    assert application.note == "I have done this before"
    task = await task_store.require(db_session, task_id)
    assert [a.student_id for a in task.applications] == [student.id]


@pytest.mark.asyncio
async def test_submit_twice_rejected(db_session, make_task, student):
    task = await make_task()
    task_id = task.id
    await apply(db_session, task_id, student)

    with pytest.raises(InvariantViolationError):
        await apply(db_session, task_id, student)

    task = await task_store.require(db_session, task_id)
    assert len(task.applications) == 1


@pytest.mark.asyncio
async def test_submit_to_missing_task(db_session, student):
    with pytest.raises(NotFoundError):
        await apply(db_session, uuid.uuid4(), student)


@pytest.mark.asyncio
async def test_submit_to_draft_rejected(db_session, make_task, student):
    task = await make_task(status=TaskStatus.DRAFT)
    task_id = task.id
    with pytest.raises(InvariantViolationError):
        await apply(db_session, task_id, student)


@pytest.mark.asyncio
async def test_approval_sets_single_active_assignment(db_session, make_task, employer, student, other_student):
    task = await make_task(price=3000)
    task_id = task.id
    first = await apply(db_session, task_id, student)
    second = await apply(db_session, task_id, other_student)
    first_id, second_id = first.id, second.id

    approved = await application_service.update_status(
        db_session,
        task_id,
        first_id,
        new_status=ApplicationStatus.APPROVED,
        actor_id=employer.id,
        actor_name=employer.name,
    )

    assert approved.status == ApplicationStatus.APPROVED
    task = await task_store.require(db_session, task_id)
    assert task.assignee_id == student.id
    assert task.assignment.student_id == student.id
    assert task.assignment.status == AssignmentStatus.ACTIVE
    assert task.details_posted_to_timeline is False
    assert task.timeline_messages[-1].content == f"{student.name} has been assigned to this task"
    assert task.timeline_messages[-1].is_system_message
    # Competing applications stay pending
    competing = next(a for a in task.applications if a.id == second_id)
    assert competing.status == ApplicationStatus.PENDING

    with pytest.raises(InvariantViolationError):
        await application_service.update_status(
            db_session, task_id, second_id, new_status=ApplicationStatus.APPROVED
        )
    task = await task_store.require(db_session, task_id)
    assert task.assignee_id == student.id


@pytest.mark.asyncio
async def test_reapproving_assigned_student_is_noop(db_session, make_task, student):
    task = await make_task()
    task_id = task.id
    application = await apply(db_session, task_id, student)
    application_id = application.id

    await application_service.update_status(db_session, task_id, application_id, new_status="approved")
    await application_service.update_status(db_session, task_id, application_id, new_status="approved")

    task = await task_store.require(db_session, task_id)
    assignment_messages = [m for m in task.timeline_messages if "assigned" in m.content]
    assert len(assignment_messages) == 1


@pytest.mark.asyncio
async def test_rejecting_assigned_student_rejected(db_session, make_task, student):
    task = await make_task()
    task_id = task.id
    application = await apply(db_session, task_id, student)
    application_id = application.id
    await application_service.update_status(db_session, task_id, application_id, new_status="approved")

    with pytest.raises(InvariantViolationError):
        await application_service.update_status(db_session, task_id, application_id, new_status="rejected")


@pytest.mark.asyncio
async def test_reject_only_marks_application(db_session, make_task, student):
    task = await make_task()
    task_id = task.id
    application = await apply(db_session, task_id, student)
    application_id = application.id
    messages_before = len((await task_store.require(db_session, task_id)).timeline_messages)

    rejected = await application_service.update_status(
        db_session, task_id, application_id, new_status=ApplicationStatus.REJECTED
    )

    assert rejected.status == ApplicationStatus.REJECTED
    task = await task_store.require(db_session, task_id)
    assert task.assignment is None
    assert len(task.timeline_messages) == messages_before
    assert task.edit_history[-1].action == f"Set application of {student.name} to rejected"


@pytest.mark.asyncio
async def test_auto_reject_competing_applications(db_session, make_task, student, other_student, monkeypatch):
    monkeypatch.setattr(settings, "AUTO_REJECT_COMPETING_APPLICATIONS", True)
    task = await make_task()
    task_id = task.id
    first = await apply(db_session, task_id, student)
    await apply(db_session, task_id, other_student)
    first_id = first.id

    await application_service.update_status(db_session, task_id, first_id, new_status="approved")

    task = await task_store.require(db_session, task_id)
    statuses = {a.student_id: a.status for a in task.applications}
    assert statuses == {student.id: ApplicationStatus.APPROVED, other_student.id: ApplicationStatus.REJECTED}


@pytest.mark.asyncio
async def test_unknown_application(db_session, make_task):
    task = await make_task()
    task_id = task.id
    with pytest.raises(NotFoundError):
        await application_service.update_status(db_session, task_id, uuid.uuid4(), new_status="rejected")


@pytest.mark.asyncio
async def test_assigned_task_closed_to_new_applicants(db_session, make_task, employer, student, other_student):
    task = await make_task()
    task_id = task.id
    application = await apply(db_session, task_id, student)
    await application_service.update_status(db_session, task_id, application.id, new_status="approved")

    with pytest.raises(InvariantViolationError):
        await apply(db_session, task_id, other_student)

    await task_lifecycle_service.mark_completed(db_session, task_id, employer)
    with pytest.raises(InvariantViolationError):
        await apply(db_session, task_id, other_student)
