# taskgraph/services/hierarchy.py
"""
HierarchyEngine: каскадные правила над иерархией задач.

Правила:
1. Завершение задачи завершает всех её потомков.
2. Когда все подзадачи родителя завершены, родитель завершается сам (и так вверх).
3. Задача, у которой все подзадачи завершены, при переоткрытии переоткрывает
   своих прямых детей (только один уровень).
4. Переоткрытие подзадачи переоткрывает всех завершённых предков до корня.
5. Удаление задачи удаляет всё поддерево и ссылки на него.

Все каскады идут через явный стек/цикл, без рекурсии.
Методы ничего не блокируют сами: вызывающий держит блокировку графа.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Set, Tuple

from taskgraph.core.dates import utcnow
from taskgraph.core.exceptions import (
    DependencyNotSatisfiedError,
    InvalidDateError,
    ParentAlreadyCompletedError,
    ParentNotFoundError,
)
from taskgraph.crud.task import TaskRepository, new_id
from taskgraph.schemas.attachment import AttachmentRecord
from taskgraph.schemas.task import Task, TaskCreate, TaskStatus
from taskgraph.services.priority import PriorityStatusAssigner
from taskgraph.services.uniqueness import UniquenessValidator

logger = logging.getLogger("TaskGraph.Hierarchy")

MANUAL_CAUSE = "Manual"
PARENT_COMPLETED_PREFIX = "ParentCompleted:"
GRANDPARENT_COMPLETED_PREFIX = "GrandParentCompleted:"
ALL_SUBTASKS_COMPLETED = "AllSubtasksCompleted"
DEFAULT_SUBTASK_TITLE = "Subtask"
DEADLINE_PROXIMITY = timedelta(days=1)


class HierarchyEngine:
    def __init__(
        self,
        repository: TaskRepository,
        uniqueness: UniquenessValidator,
        assigner: PriorityStatusAssigner,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.uniqueness = uniqueness
        self.assigner = assigner
        self.clock = clock

    # ============================================================================
    # ЗАВЕРШЕНИЕ
    # ============================================================================

    def check_dependencies(self, task_id: str) -> None:
        for dep_id in self.repository.dependency_ids(task_id):
            if not self.repository.is_completed(dep_id):
                raise DependencyNotSatisfiedError(
                    f"Task depends on '{self.repository.title_of(dep_id)}' which is not completed."
                )

    def _mark_completed(self, task_id: str, cause: str, now: datetime) -> None:
        task = self.repository.get_or_raise(task_id)
        task.completed = True
        task.status = TaskStatus.COMPLETED
        task.termination_cause = cause
        task.completed_at = now
        self.repository.save(task)

    def _all_children_completed(self, task_id: str) -> bool:
        return all(self.repository.is_completed(c) for c in self.repository.children_ids(task_id))

    def complete(self, task_id: str, cause: str = MANUAL_CAUSE) -> Set[str]:
        """
        Завершает задачу с каскадом вниз и вверх. Возвращает id всех изменённых задач.
        """
        self.repository.get_or_raise(task_id)
        self.check_dependencies(task_id)

        now = self.clock()
        changed = {task_id}
        self._mark_completed(task_id, cause, now)

        # Вниз: прямые дети получают ParentCompleted, все глубже получают GrandParentCompleted
        # с исходной причиной, на любой глубине одинаково.
        child_cause = PARENT_COMPLETED_PREFIX + cause
        deeper_cause = GRANDPARENT_COMPLETED_PREFIX + cause
        stack: List[Tuple[str, str]] = [
            (child_id, child_cause) for child_id in reversed(self.repository.children_ids(task_id))
        ]
        while stack:
            current, current_cause = stack.pop()
            if self.repository.is_completed(current):
                continue
            self._mark_completed(current, current_cause, now)
            changed.add(current)
            stack.extend(
                (grandchild, deeper_cause)
                for grandchild in reversed(self.repository.children_ids(current))
            )

        # Вверх: родитель завершается, когда завершены все его подзадачи
        parent_id = self.repository.find_parent_id(task_id)
        while parent_id is not None:
            if self.repository.is_completed(parent_id) or not self._all_children_completed(parent_id):
                break
            self._mark_completed(parent_id, ALL_SUBTASKS_COMPLETED, now)
            changed.add(parent_id)
            parent_id = self.repository.find_parent_id(parent_id)

        self._assign(task_id)
        logger.info(f"Completed task {task_id} ({cause}); cascade touched {len(changed)} task(s)")
        return changed

    # ============================================================================
    # ПЕРЕОТКРЫТИЕ
    # ============================================================================

    def _mark_open(self, task_id: str) -> None:
        task = self.repository.get_or_raise(task_id)
        task.completed = False
        task.status = TaskStatus.TODO
        task.termination_cause = None
        task.completed_at = None
        self.repository.save(task)

    def reopen(self, task_id: str) -> Set[str]:
        """
        "В работу": переоткрывает задачу. Статус при этом ToDo, не InProgress.
        """
        self.repository.get_or_raise(task_id)
        changed = {task_id}

        children = self.repository.children_ids(task_id)
        if children and self.repository.is_completed(task_id) and self._all_children_completed(task_id):
            for child_id in children:
                self._mark_open(child_id)
                changed.add(child_id)

        parent_id = self.repository.find_parent_id(task_id)
        while parent_id is not None and self.repository.is_completed(parent_id):
            self._mark_open(parent_id)
            changed.add(parent_id)
            parent_id = self.repository.find_parent_id(parent_id)

        self._mark_open(task_id)
        self._assign(task_id)
        logger.info(f"Reopened task {task_id}; cascade touched {len(changed)} task(s)")
        return changed

    # ============================================================================
    # УДАЛЕНИЕ
    # ============================================================================

    def delete_subtree(self, task_id: str) -> Tuple[List[str], List[AttachmentRecord]]:
        """
        Удаляет задачу и всех потомков. Возвращает удалённые id и их вложения.
        """
        self.repository.get_or_raise(task_id)
        removed = [task_id] + self.repository.collect_descendants(task_id)
        attachments: List[AttachmentRecord] = []
        # remove() снимает и входящие ссылки: связь с родителем и чужие зависимости
        for node_id in removed:
            attachments.extend(self.repository.remove(node_id))
        logger.info(f"Deleted task {task_id} with {len(removed) - 1} descendant(s)")
        return removed, attachments

    # ============================================================================
    # ПОДЗАДАЧИ
    # ============================================================================

    def _validate_subtask_deadline(self, parent: Task, deadline: Optional[datetime]) -> bool:
        """
        Проверяет окно [создание родителя, дедлайн родителя].
        Возвращает True, если дедлайн подзадачи вплотную к дедлайну родителя.
        """
        if deadline is None:
            return False
        if parent.created_at is not None and deadline < parent.created_at:
            raise InvalidDateError(
                f"Subtask deadline ({deadline.isoformat()}) precedes the parent's creation "
                f"({parent.created_at.isoformat()})."
            )
        if parent.deadline is not None and deadline > parent.deadline:
            raise InvalidDateError(
                f"Subtask deadline ({deadline.isoformat()}) is after the parent's deadline "
                f"({parent.deadline.isoformat()})."
            )
        return parent.deadline is not None and deadline > parent.deadline - DEADLINE_PROXIMITY

    def add_subtask(self, parent_id: str, child_input: TaskCreate) -> Task:
        parent = self.repository.get(parent_id)
        if parent is None:
            raise ParentNotFoundError(f"Parent task {parent_id} not found.")
        if parent.completed:
            raise ParentAlreadyCompletedError(
                "Cannot add a subtask to a parent task that is already completed."
            )

        title = (child_input.title or DEFAULT_SUBTASK_TITLE).strip() or DEFAULT_SUBTASK_TITLE
        self.uniqueness.check_available(title)
        near_parent_deadline = self._validate_subtask_deadline(parent, child_input.deadline)

        if near_parent_deadline:
            self.repository.append_warning(
                parent_id,
                f"Subtask deadline is very close to the parent's deadline ({child_input.deadline.isoformat()})",
            )

        child = Task(
            id=new_id(),
            title=title,
            description=child_input.description or "",
            created_at=self.clock(),
            deadline=child_input.deadline or parent.deadline,
            status=child_input.status,
            priority=child_input.priority,
            category_id=child_input.category_id,
            assignee_id=child_input.assignee_id,
            creator_id=child_input.creator_id,
        )
        if parent.category_id is not None:
            child.category_id = parent.category_id
        if parent.priority is not None:
            child.priority = parent.priority

        self.repository.save(child)
        self.repository.add_child(parent_id, child.id)
        self._assign(child.id)
        logger.info(f"Added subtask {child.id} '{child.title}' to task {parent_id}")
        return self.repository.get_or_raise(child.id)

    def _assign(self, task_id: str) -> None:
        task = self.repository.get_or_raise(task_id)
        self.repository.save(self.assigner.assign(task))
