# taskgraph/services/priority.py
"""
Автоматический приоритет, срочность и статус по дедлайну.

Поля заполняются только если они ещё пустые: явное значение всегда выигрывает.
"""
import logging
from datetime import datetime
from typing import Callable, Optional, Tuple

from taskgraph.core.dates import parse_timestamp, utcnow
from taskgraph.schemas.task import Task, TaskPriority, TaskStatus

logger = logging.getLogger("TaskGraph.Priority")

SECONDS_PER_DAY = 86400


def days_left(deadline: datetime, now: datetime) -> int:
    """Целые дни до дедлайна, не меньше нуля."""
    return max(0, int((deadline - now).total_seconds() // SECONDS_PER_DAY))


def priority_for_days(days: int) -> Tuple[TaskPriority, str]:
    if days <= 1:
        return TaskPriority.URGENT, "high"
    if days <= 3:
        return TaskPriority.HIGH, "medium"
    if days <= 7:
        return TaskPriority.MEDIUM, "low"
    return TaskPriority.LOW, "low"


class PriorityStatusAssigner:
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    def _deadline(self, task: Task) -> Optional[datetime]:
        # в deadline может оказаться что угодно из внешнего мира: битое значение = нет дедлайна
        return parse_timestamp(task.deadline)

    def assign(self, task: Task) -> Task:
        now = self.clock()
        deadline = self._deadline(task)

        if task.priority is None:
            if deadline is None:
                task.priority = TaskPriority.MEDIUM
            else:
                task.priority, task.urgency = priority_for_days(days_left(deadline, now))

        if task.status is None:
            if task.completed:
                task.status = TaskStatus.COMPLETED
            elif deadline is not None and now > deadline:
                task.status = TaskStatus.OVERDUE
            else:
                task.status = TaskStatus.TODO
        return task
