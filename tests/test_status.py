"""Progress summaries, day labels and the status narrative."""

from datetime import date, timedelta

import pytest

from studyplan.db.models import GenerationMode, Goal, PlanTask, TaskStatus
from studyplan.errors import NotFound
from studyplan.services.lifecycle import create_plan
from studyplan.services.status import (
    EXAM_DAY_LABEL,
    completion_pct,
    day_label,
    days_left,
    fallback_message,
    get_calendar,
    get_day_tasks,
    get_plan_status,
    status_message,
)
from studyplan.services.text_generation import TextGenerator


@pytest.mark.parametrize(
    "completed, total, expected",
    [(0, 0, 0), (0, 5, 0), (5, 5, 100), (1, 3, 33), (2, 3, 67), (1, 2, 50), (1, 8, 13)],
)
def test_completion_pct(completed, total, expected):
    assert completion_pct(completed, total) == expected


def test_days_left(today):
    assert days_left(today + timedelta(days=5), today) == 5
    assert days_left(today - timedelta(days=2), today) == 0
    assert days_left(None, today) == 0


def test_day_label(today):
    assert day_label(today, today) == "Today"
    assert day_label(today + timedelta(days=1), today) == "Tomorrow"
    assert day_label(date(2026, 3, 4), today) == "Wed, 3/4"
    assert day_label(date(2026, 2, 27), today) == "Fri, 2/27"


class TestFallbackMessage:
    def test_overdue_wins(self):
        message = fallback_message(overdue=2, pct=90, remaining_days=5)
        assert message.startswith("You have 2 overdue tasks and only 5 days left!")

    def test_encouragement_at_eighty(self):
        assert fallback_message(overdue=0, pct=80, remaining_days=4).startswith("Excellent! 80% done")

    def test_push_harder(self):
        message = fallback_message(overdue=0, pct=40, remaining_days=10)
        assert message.endswith("You need to push harder today!")


class TestStatusMessage:
    async def test_fallback_when_generator_fails(self, offline_generator):
        text, source = await status_message(offline_generator, 3, 50, 1)
        assert source == "fallback"
        assert text == fallback_message(1, 50, 3)
        assert len(offline_generator.calls) == 1

    async def test_fallback_without_api_key(self):
        text, source = await status_message(TextGenerator(api_key=""), 3, 90, 0)
        assert source == "fallback"
        assert text.startswith("Excellent!")

    async def test_generated(self, make_generator):
        generator = make_generator("Solid pace. Keep revising kinematics.")
        text, source = await status_message(generator, 10, 40, 0)
        assert (text, source) == ("Solid pace. Keep revising kinematics.", "generated")

        system, user_turn = generator.calls[0]
        assert system["role"] == "system"
        assert "10 days until the exam" in user_turn["content"]

    async def test_unexpected_error_falls_back(self):
        class BrokenGenerator:
            async def generate(self, turns, **kwargs):
                raise RuntimeError("boom")

        _, source = await status_message(BrokenGenerator(), 1, 0, 0)
        assert source == "fallback"


async def add_task(store, plan, user, day, status=TaskStatus.PENDING, minutes=60, order=0, title="Task"):
    return await store.insert(
        PlanTask(
            plan_id=plan.id,
            user_id=user.id,
            subject_name="Physics",
            title=title,
            scheduled_date=day,
            duration_minutes=minutes,
            status=status.value,
            priority=2,
            order_index=order,
        )
    )


class TestPlanStatus:
    async def test_counts_and_timeline(self, store, user, today, offline_generator):
        deadline = today + timedelta(days=4)
        goal = await store.insert(Goal(user_id=user.id, title="Physics exam", target_date=deadline, hours_per_day=2))
        plan = await create_plan(
            store,
            user.id,
            title="Exam Plan: Physics exam",
            mode=GenerationMode.CURRICULUM,
            start_date=today - timedelta(days=1),
            end_date=deadline,
            goal_id=goal.id,
        )
        yesterday = today - timedelta(days=1)
        await add_task(store, plan, user, yesterday, TaskStatus.COMPLETED)
        await add_task(store, plan, user, yesterday, TaskStatus.PENDING, order=1)
        await add_task(store, plan, user, today, TaskStatus.PENDING, minutes=45, order=1, title="Second")
        await add_task(store, plan, user, today, TaskStatus.SKIPPED, order=0, title="First")

        status = await get_plan_status(store, user.id, plan.id, generator=offline_generator, today=today)

        assert status.total_tasks == 4
        assert status.completed_tasks == 1
        assert status.overdue_tasks == 1
        assert status.completion_pct == 25
        assert status.days_left == 4
        assert status.exam_date == deadline
        assert [t.title for t in status.today_tasks] == ["First", "Second"]
        assert status.message_source == "fallback"
        assert status.status_message.startswith("You have 1 overdue tasks")

        labels = [(d.date, d.label, d.task_count) for d in status.day_plans]
        assert labels == [
            (yesterday, "Sun, 3/1", 2),
            (today, "Today", 2),
            (deadline, EXAM_DAY_LABEL, 0),
        ]
        assert status.day_plans[0].is_past
        assert status.day_plans[0].completed_count == 1
        assert status.day_plans[1].total_minutes == 105
        assert status.day_plans[-1].is_exam_day

    async def test_exam_day_with_tasks_is_not_duplicated(self, store, user, today, offline_generator):
        deadline = today + timedelta(days=2)
        plan = await create_plan(
            store, user.id, title="Plan", mode=GenerationMode.MANUAL, start_date=today, end_date=deadline
        )
        await add_task(store, plan, user, deadline)

        status = await get_plan_status(store, user.id, plan.id, generator=offline_generator, today=today)

        exam_days = [d for d in status.day_plans if d.is_exam_day]
        assert len(exam_days) == 1
        assert exam_days[0].task_count == 1

    async def test_empty_plan(self, store, user, today, offline_generator):
        plan = await create_plan(store, user.id, title="Plan", mode=GenerationMode.MANUAL, start_date=today)

        status = await get_plan_status(store, user.id, plan.id, generator=offline_generator, today=today)

        assert status.completion_pct == 0
        assert status.days_left == 0
        assert status.day_plans == []

    async def test_other_users_plan(self, store, user, other_user, today, offline_generator):
        plan = await create_plan(store, user.id, title="Plan", mode=GenerationMode.MANUAL, start_date=today)
        with pytest.raises(NotFound):
            await get_plan_status(store, other_user.id, plan.id, generator=offline_generator, today=today)


class TestDayAndCalendar:
    async def test_day_tasks(self, store, user, today):
        plan = await create_plan(store, user.id, title="Plan", mode=GenerationMode.MANUAL, start_date=today)
        await add_task(store, plan, user, today, TaskStatus.COMPLETED, minutes=30, order=1)
        await add_task(store, plan, user, today, TaskStatus.PENDING, minutes=60, order=0)
        await add_task(store, plan, user, today + timedelta(days=1))

        day = await get_day_tasks(store, user.id, today)

        assert day.plan_id == plan.id
        assert [t.order_index for t in day.tasks] == [0, 1]
        assert (day.completed_count, day.total_count) == (1, 2)
        assert (day.planned_minutes, day.done_minutes) == (90, 30)
        assert day.progress_pct == 50

    async def test_day_without_plan(self, store, user, today):
        day = await get_day_tasks(store, user.id, today)
        assert day.plan_id is None
        assert day.tasks == []
        assert day.progress_pct == 0

    async def test_calendar_runs_to_goal_deadline(self, store, user, today):
        await store.insert(
            Goal(user_id=user.id, title="Exam", target_date=today + timedelta(days=3), hours_per_day=2)
        )
        plan = await create_plan(store, user.id, title="Plan", mode=GenerationMode.MANUAL, start_date=today)
        await add_task(store, plan, user, today + timedelta(days=1))
        await add_task(store, plan, user, today + timedelta(days=1), TaskStatus.COMPLETED, order=1)

        calendar = await get_calendar(store, user.id, today=today)

        assert calendar.title == "Exam"
        assert len(calendar.days) == 4
        assert calendar.days[0].is_today
        assert calendar.days[1].is_tomorrow
        assert calendar.days[1].total_count == 2
        assert (calendar.total_tasks, calendar.completed_tasks, calendar.days_with_tasks) == (2, 1, 1)

    async def test_calendar_default_horizon(self, store, user, today):
        calendar = await get_calendar(store, user.id, today=today)
        assert calendar.title == "Study Plan"
        assert calendar.end_date == today + timedelta(days=90)
        assert len(calendar.days) == 91
