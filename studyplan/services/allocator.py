"""
Greedy day allocation of work units.

Two budgets, both a single pass over the ordered queue:

- MinuteBudget: fill each day while the running load stays within the daily
  minutes. A unit longer than the whole budget still gets a day to itself.
  The horizon is fixed; units that do not fit before it are dropped.
- CountBudget: at most ``tasks_per_day`` units per day, no horizon, never drops.

This is not an optimizer. Placement is deterministic and in queue order.
"""

import logging
import math
from datetime import date, timedelta
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from studyplan.services.work_units import WorkUnit

logger = logging.getLogger(__name__)

MAX_TASKS_PER_DAY = 3


class MinuteBudget(BaseModel):
    kind: Literal["minutes"] = "minutes"
    daily_minutes: int = Field(..., gt=0)
    available_days: int = Field(..., ge=1)


class CountBudget(BaseModel):
    kind: Literal["count"] = "count"
    tasks_per_day: int = Field(..., ge=1)


class Assignment(BaseModel):
    """A unit placed on a date at a position within that day."""

    model_config = ConfigDict(frozen=True)

    scheduled_date: date
    unit: WorkUnit
    order_index: int


class Allocation(BaseModel):
    assignments: list[Assignment] = []
    dropped: list[WorkUnit] = []

    @property
    def days_used(self) -> int:
        return len({a.scheduled_date for a in self.assignments})


def study_days_before(deadline: date, first_day: date) -> int:
    """
    Days available for study when the deadline day itself is kept free.

    ``max(1, days_until_deadline - 1)``, where days_until_deadline is itself at
    least 1 so a same-day or past deadline still yields one study day.
    """
    days_until = max(1, (deadline - first_day).days)
    return max(1, days_until - 1)


def tasks_per_day_for(total_units: int, available_days: int) -> int:
    """Spread ``total_units`` evenly over ``available_days``, clamped to 1..3."""
    if total_units <= 0:
        return 1
    per_day = math.ceil(total_units / max(1, available_days))
    return max(1, min(MAX_TASKS_PER_DAY, per_day))


def allocate_by_minutes(units: list[WorkUnit], first_day: date, budget: MinuteBudget) -> Allocation:
    assignments = []
    day_offset = 0
    load = 0
    order = 0

    for position, unit in enumerate(units):
        # Advance when this unit would overflow a day that already has work
        if load > 0 and load + unit.duration_minutes > budget.daily_minutes:
            day_offset += 1
            load = 0
            order = 0
        if day_offset >= budget.available_days:
            dropped = units[position:]
            logger.warning(
                "Minute budget exhausted after %d day(s); dropping %d of %d unit(s)",
                budget.available_days, len(dropped), len(units),
            )
            return Allocation(assignments=assignments, dropped=dropped)

        assignments.append(
            Assignment(
                scheduled_date=first_day + timedelta(days=day_offset),
                unit=unit,
                order_index=order,
            )
        )
        load += unit.duration_minutes
        order += 1

    return Allocation(assignments=assignments)


def allocate_by_count(units: list[WorkUnit], first_day: date, budget: CountBudget) -> Allocation:
    assignments = []
    day_offset = 0
    placed_today = 0

    for unit in units:
        while placed_today >= budget.tasks_per_day:
            day_offset += 1
            placed_today = 0
        assignments.append(
            Assignment(
                scheduled_date=first_day + timedelta(days=day_offset),
                unit=unit,
                order_index=placed_today,
            )
        )
        placed_today += 1

    return Allocation(assignments=assignments)


def allocate(units: list[WorkUnit], first_day: date, budget: MinuteBudget | CountBudget) -> Allocation:
    """Place ``units`` on consecutive days starting at ``first_day``."""
    if budget.kind == "minutes":
        return allocate_by_minutes(units, first_day, budget)
    return allocate_by_count(units, first_day, budget)
