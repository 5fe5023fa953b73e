"""Roll overdue pending tasks forward to today."""

import logging
from datetime import date
from uuid import UUID

from studyplan.db.models import PlanTask, StudyPlan, TaskStatus
from studyplan.db.store import RecordStore

logger = logging.getLogger(__name__)


async def reschedule_overdue_tasks(
    store: RecordStore,
    user_id: UUID,
    plan_id: UUID,
    *,
    today: date | None = None,
) -> int:
    """
    Move every pending task of the plan dated before today onto today.

    Only scheduled_date changes; status, priority and order_index are kept,
    so a moved task may share an order_index with a task already on today.
    Returns the number of tasks moved. A second call right after returns 0.
    """
    today = today or date.today()
    plan = await store.get_owned(StudyPlan, plan_id, user_id)

    moved = await store.update_by_filter(
        PlanTask,
        [
            PlanTask.plan_id == plan.id,
            PlanTask.user_id == user_id,
            PlanTask.status == TaskStatus.PENDING.value,
            PlanTask.scheduled_date < today,
        ],
        {"scheduled_date": today},
    )
    if moved:
        logger.info("Rescheduled %d overdue task(s) of plan %s to %s", moved, plan.id, today)
    return moved
