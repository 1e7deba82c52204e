"""Tests for marketplace listings and statistics."""
from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from taskmarket.models.task import TaskKind, TaskStatus
from taskmarket.models.task_activity import ApplicationStatus
from taskmarket.services.application_service import application_service
from taskmarket.services.library_service import library_service
from taskmarket.services.marketplace_service import marketplace_service
from taskmarket.services.task_lifecycle_service import task_lifecycle_service

NOW = datetime(2024, 3, 15, 12, 0, 0)


@pytest_asyncio.fixture
async def marketplace(db_session, test_project, make_task, employer, student):
    """One completed task, one open task, one draft and a library item."""
    done = await make_task(title="Logo", category="Design", price=1000, now=NOW)
    open_task = await make_task(title="Banner", category="Design", price=5000, now=NOW + timedelta(hours=1))
    draft = await make_task(title="Blog post", category="Writing", price=700, status=TaskStatus.DRAFT)
    ids = {"done": done.id, "open": open_task.id, "draft": draft.id, "project": test_project.id}

    application = await application_service.submit(
        db_session, ids["done"], student_id=student.id, student_name=student.name, student_email=student.email
    )
    await application_service.update_status(
        db_session, ids["done"], application.id, new_status=ApplicationStatus.APPROVED
    )
    await task_lifecycle_service.mark_completed(db_session, ids["done"], employer, now=NOW + timedelta(hours=5))
    await library_service.create(db_session, ids["project"], kind=TaskKind.CHECKLIST, title="QA list", actor=employer)
    return ids


@pytest.mark.asyncio
async def test_published_listings(db_session, marketplace):
    published = await marketplace_service.published_tasks(db_session)
    assert {t.id for t in published} == {marketplace["done"], marketplace["open"]}

    featured = await marketplace_service.featured_tasks(db_session, limit=1)
    assert [t.id for t in featured] == [marketplace["open"]]

    design = await marketplace_service.tasks_by_category(db_session, "Design")
    assert len(design) == 2
    assert await marketplace_service.tasks_by_category(db_session, "Writing") == []

    popular = await marketplace_service.popular_categories(db_session)
    assert [(c.name, c.count) for c in popular] == [("Design", 2)]


@pytest.mark.asyncio
async def test_tasks_by_kind(db_session, marketplace):
    ordinary = await marketplace_service.tasks_by_kind(db_session, marketplace["project"], TaskKind.ORDINARY)
    assert len(ordinary) == 3
    checklists = await marketplace_service.tasks_by_kind(db_session, marketplace["project"], "checklist")
    assert [t.title for t in checklists] == ["QA list"]
    assert await marketplace_service.tasks_by_kind(db_session, marketplace["project"], TaskKind.RECURRING) == []


@pytest.mark.asyncio
async def test_student_statistics(db_session, marketplace, employer, student):
    completed = await marketplace_service.student_completed_tasks(db_session, student.id)
    assert len(completed) == 1
    assert completed[0].task.id == marketplace["done"]
    assert completed[0].project_name == "Launch Campaign"
    assert completed[0].category == "Design"
    assert completed[0].earnings == 900

    assert await marketplace_service.student_total_earnings(db_session, student.id) == 900
    assert await marketplace_service.student_task_categories(db_session, student.id) == {"Design": 1}
    assert await marketplace_service.student_employers(db_session, student.id) == [employer.id]
    assert await marketplace_service.student_completed_tasks(db_session, "nobody") == []


@pytest.mark.asyncio
async def test_platform_statistics(db_session, marketplace):
    stats = await marketplace_service.platform_statistics(db_session)

    assert stats.total_employers == 1
    assert stats.total_students == 1
    assert stats.total_tasks == 2
    assert stats.completed_tasks == 1
    assert stats.total_payouts == 6000
    assert stats.average_payout == 3000
    assert stats.total_timeline_messages == 1
    assert stats.average_timeline_messages == 0.5
    assert stats.average_completion_time_hours == pytest.approx(5.0)
    assert stats.task_success_rate == 50.0
    assert stats.active_projects == 1


@pytest.mark.asyncio
async def test_debug_assignment(db_session, marketplace, student):
    info = await marketplace_service.debug_assignment(db_session, marketplace["done"])
    assert info.assignee_id == student.id
    assert info.has_assignment is True
    assert info.assignment_status == "completed"
    assert [a["status"] for a in info.applications] == ["approved"]
