"""Plan progress summaries and the status narrative."""

import logging
from collections import defaultdict
from datetime import date, timedelta
from uuid import UUID

from studyplan.config import get_settings
from studyplan.db.models import Goal, PlanTask, StudyPlan, TaskStatus
from studyplan.db.store import RecordStore
from studyplan.errors import GenerationUnavailable
from studyplan.schemas.plans import (
    CalendarDay,
    CalendarRead,
    DayPlanSummary,
    PlanStatusRead,
    TaskSummary,
)
from studyplan.schemas.tasks import DayTasksRead, TaskRead
from studyplan.services.lifecycle import get_active_goal, get_active_plan
from studyplan.services.text_generation import TextGenerator, text_generator

logger = logging.getLogger(__name__)
settings = get_settings()

EXAM_DAY_LABEL = "Exam Day"
NARRATIVE_SYSTEM_PROMPT = (
    "You are a study coach. Write in clear English. No markdown. Two sentences only."
)


def days_left(deadline: date | None, today: date) -> int:
    """Whole days until the deadline, never negative. 0 without a deadline."""
    if deadline is None:
        return 0
    return max(0, (deadline - today).days)


def completion_pct(completed: int, total: int) -> int:
    """Percentage of completed tasks rounded half up; 0 for an empty plan."""
    if total <= 0:
        return 0
    return (completed * 200 + total) // (2 * total)


def is_overdue(task: PlanTask, today: date) -> bool:
    return task.status == TaskStatus.PENDING.value and task.scheduled_date < today


def day_label(day: date, today: date) -> str:
    """Today, Tomorrow, or a short weekday and date such as "Wed, 10/21"."""
    if day == today:
        return "Today"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    return f"{day:%a}, {day.month}/{day.day}"


def summarize_days(tasks: list[PlanTask], deadline: date | None, today: date) -> list[DayPlanSummary]:
    """
    Group tasks by date, ascending. When the deadline has no tasks of its own a
    zero-task exam-day entry is added so the deadline always shows up.
    """
    by_day: dict[date, list[PlanTask]] = defaultdict(list)
    for task in tasks:
        by_day[task.scheduled_date].append(task)

    days = [
        DayPlanSummary(
            date=day,
            label=day_label(day, today),
            task_count=len(day_tasks),
            completed_count=sum(1 for t in day_tasks if t.status == TaskStatus.COMPLETED.value),
            total_minutes=sum(t.duration_minutes for t in day_tasks),
            is_exam_day=day == deadline,
            is_past=day < today,
        )
        for day, day_tasks in by_day.items()
    ]
    if deadline is not None and deadline not in by_day:
        days.append(
            DayPlanSummary(
                date=deadline,
                label=EXAM_DAY_LABEL,
                task_count=0,
                completed_count=0,
                total_minutes=0,
                is_exam_day=True,
                is_past=deadline < today,
            )
        )
    days.sort(key=lambda d: d.date)
    return days


def fallback_message(overdue: int, pct: int, remaining_days: int) -> str:
    """Deterministic narrative used whenever text generation is unavailable."""
    if overdue > 0:
        return (
            f"You have {overdue} overdue tasks and only {remaining_days} days left! "
            "Move overdue tasks to today and start immediately."
        )
    if pct >= 80:
        return (
            f"Excellent! {pct}% done and the exam is in {remaining_days} days. "
            "Keep up the same pace."
        )
    return (
        f"{pct}% of the plan is done with {remaining_days} days remaining. "
        "You need to push harder today!"
    )


async def status_message(
    generator: TextGenerator,
    remaining_days: int,
    pct: int,
    overdue: int,
) -> tuple[str, str]:
    """
    Two-sentence progress narrative and its source ("generated" or "fallback").

    Never raises for generation problems.
    """
    turns = [
        {"role": "system", "content": NARRATIVE_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f"The student has {remaining_days} days until the exam.\n"
                f"Completed {pct}% of the plan. {overdue} overdue tasks.\n"
                "Write: (1) a quick assessment of the situation. (2) a clear tip or warning."
            ),
        },
    ]
    try:
        text = await generator.generate(
            turns,
            max_tokens=settings.status_narrative_max_tokens,
            temperature=0.5,
            timeout=settings.status_narrative_timeout_seconds,
        )
        return text, "generated"
    except GenerationUnavailable as e:
        logger.warning("Status narrative unavailable, using fallback: %s", e.message)
    except Exception:
        logger.exception("Unexpected error generating status narrative, using fallback")
    return fallback_message(overdue, pct, remaining_days), "fallback"


async def get_plan_status(
    store: RecordStore,
    user_id: UUID,
    plan_id: UUID,
    *,
    generator: TextGenerator = text_generator,
    today: date | None = None,
) -> PlanStatusRead:
    """
    Full status of a plan: counts, today's tasks, day timeline, narrative.

    The deadline comes from the plan's goal when it has one, otherwise from
    the plan's end date.
    """
    today = today or date.today()
    plan = await store.get_owned(StudyPlan, plan_id, user_id)

    goal = None
    if plan.goal_id is not None:
        goal = await store.find_one(Goal, Goal.id == plan.goal_id, Goal.user_id == user_id)
    deadline = goal.target_date if goal and goal.target_date else plan.end_date

    tasks = await store.find(
        PlanTask,
        PlanTask.plan_id == plan.id,
        order_by=(PlanTask.scheduled_date, PlanTask.order_index),
    )

    total = len(tasks)
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED.value)
    overdue = sum(1 for t in tasks if is_overdue(t, today))
    pct = completion_pct(completed, total)
    remaining = days_left(deadline, today)

    message, source = await status_message(generator, remaining, pct, overdue)

    return PlanStatusRead(
        plan_id=plan.id,
        goal_id=plan.goal_id,
        exam_date=deadline,
        days_left=remaining,
        total_tasks=total,
        completed_tasks=completed,
        overdue_tasks=overdue,
        completion_pct=pct,
        today_tasks=[
            TaskSummary.model_validate(t)
            for t in sorted(
                (t for t in tasks if t.scheduled_date == today), key=lambda t: t.order_index
            )
        ],
        day_plans=summarize_days(tasks, deadline, today),
        status_message=message,
        message_source=source,
    )


async def get_day_tasks(store: RecordStore, user_id: UUID, day: date) -> DayTasksRead:
    """Active plan's tasks on ``day`` with that day's progress figures."""
    plan = await get_active_plan(store, user_id)
    tasks = []
    if plan is not None:
        tasks = await store.find(
            PlanTask,
            PlanTask.plan_id == plan.id,
            PlanTask.scheduled_date == day,
            order_by=(PlanTask.order_index,),
        )

    done = [t for t in tasks if t.status == TaskStatus.COMPLETED.value]
    return DayTasksRead(
        date=day,
        plan_id=plan.id if plan else None,
        tasks=[TaskRead.model_validate(t) for t in tasks],
        completed_count=len(done),
        total_count=len(tasks),
        planned_minutes=sum(t.duration_minutes for t in tasks),
        done_minutes=sum(t.actual_duration_minutes or t.duration_minutes for t in done),
        progress_pct=completion_pct(len(done), len(tasks)),
    )


async def get_calendar(store: RecordStore, user_id: UUID, *, today: date | None = None) -> CalendarRead:
    """
    Every day from today to the active goal's deadline, empty days included.

    Without a dated goal the range runs calendar_default_horizon_days ahead.
    """
    today = today or date.today()
    goal = await get_active_goal(store, user_id)
    end = goal.target_date if goal and goal.target_date else None
    if end is None or end < today:
        end = today + timedelta(days=settings.calendar_default_horizon_days)

    plan = await get_active_plan(store, user_id)
    tasks = []
    if plan is not None:
        tasks = await store.find(
            PlanTask,
            PlanTask.plan_id == plan.id,
            PlanTask.scheduled_date >= today,
            PlanTask.scheduled_date <= end,
            order_by=(PlanTask.scheduled_date, PlanTask.order_index),
        )
    by_day: dict[date, list[PlanTask]] = defaultdict(list)
    for task in tasks:
        by_day[task.scheduled_date].append(task)

    days = []
    for offset in range((end - today).days + 1):
        day = today + timedelta(days=offset)
        day_tasks = by_day.get(day, [])
        days.append(
            CalendarDay(
                date=day,
                is_today=day == today,
                is_tomorrow=day == today + timedelta(days=1),
                is_past=day < today,
                tasks=[TaskRead.model_validate(t) for t in day_tasks],
                completed_count=sum(1 for t in day_tasks if t.status == TaskStatus.COMPLETED.value),
                total_count=len(day_tasks),
            )
        )

    return CalendarRead(
        title=goal.title if goal else "Study Plan",
        end_date=end,
        days=days,
        total_tasks=sum(d.total_count for d in days),
        completed_tasks=sum(d.completed_count for d in days),
        days_with_tasks=sum(1 for d in days if d.total_count),
    )
