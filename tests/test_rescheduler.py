"""Rolling overdue pending tasks forward."""

from datetime import timedelta

import pytest

from studyplan.db.models import GenerationMode, PlanTask, TaskStatus
from studyplan.errors import NotFound
from studyplan.services.lifecycle import create_plan
from studyplan.services.rescheduler import reschedule_overdue_tasks


@pytest.fixture
async def plan(store, user, today):
    return await create_plan(
        store,
        user.id,
        title="Plan",
        mode=GenerationMode.MANUAL,
        start_date=today - timedelta(days=5),
    )


async def add_task(store, plan, user, day, status=TaskStatus.PENDING, order=0):
    return await store.insert(
        PlanTask(
            plan_id=plan.id,
            user_id=user.id,
            title=f"{status.value} on {day}",
            scheduled_date=day,
            duration_minutes=60,
            status=status.value,
            priority=2,
            order_index=order,
        )
    )


async def test_moves_only_pending_overdue(store, user, plan, today):
    past = today - timedelta(days=3)
    overdue_a = await add_task(store, plan, user, past)
    overdue_b = await add_task(store, plan, user, today - timedelta(days=1), order=1)
    completed = await add_task(store, plan, user, past, TaskStatus.COMPLETED, order=2)
    skipped = await add_task(store, plan, user, past, TaskStatus.SKIPPED, order=3)
    current = await add_task(store, plan, user, today)
    future = await add_task(store, plan, user, today + timedelta(days=2))

    moved = await reschedule_overdue_tasks(store, user.id, plan.id, today=today)

    assert moved == 2
    rows = {t.id: t for t in await store.find(PlanTask, PlanTask.plan_id == plan.id)}
    assert rows[overdue_a.id].scheduled_date == today
    assert rows[overdue_b.id].scheduled_date == today
    assert rows[overdue_a.id].status == TaskStatus.PENDING.value
    assert rows[overdue_b.id].order_index == 1
    assert rows[completed.id].scheduled_date == past
    assert rows[skipped.id].scheduled_date == past
    assert rows[current.id].scheduled_date == today
    assert rows[future.id].scheduled_date == today + timedelta(days=2)


async def test_idempotent(store, user, plan, today):
    await add_task(store, plan, user, today - timedelta(days=2))

    assert await reschedule_overdue_tasks(store, user.id, plan.id, today=today) == 1
    assert await reschedule_overdue_tasks(store, user.id, plan.id, today=today) == 0


async def test_order_index_collisions_are_kept(store, user, plan, today):
    await add_task(store, plan, user, today - timedelta(days=1), order=0)
    await add_task(store, plan, user, today, order=0)

    await reschedule_overdue_tasks(store, user.id, plan.id, today=today)

    todays = await store.find(PlanTask, PlanTask.plan_id == plan.id, PlanTask.scheduled_date == today)
    assert sorted(t.order_index for t in todays) == [0, 0]


async def test_nothing_to_move(store, user, plan, today):
    assert await reschedule_overdue_tasks(store, user.id, plan.id, today=today) == 0


async def test_other_users_plan(store, user, other_user, plan, today):
    with pytest.raises(NotFound):
        await reschedule_overdue_tasks(store, other_user.id, plan.id, today=today)
