# taskgraph/services/task_service.py
"""
TaskService: публичный фасад над графом задач.

Каждая операция:
  - выполняется целиком под блокировкой графа (валидация + изменение + каскады);
  - возвращает Result: значение или типизированную ошибку, без исключений наружу;
  - после снятия блокировки отдаёт изменённые задачи в best-effort persistence.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, TypeVar

from taskgraph.core.dates import utcnow
from taskgraph.core.exceptions import (
    AttachmentNotFound,
    BaseAppException,
    DependencyNotSatisfiedError,
    DuplicateTitleError,
    HierarchyConflictError,
    TaskNotFound,
    ValidationError,
)
from taskgraph.core.results import Result
from taskgraph.crud.task import TaskRepository, create_graph_store, new_id
from taskgraph.graph import GraphStore
from taskgraph.schemas.attachment import AttachmentRecord
from taskgraph.schemas.task import (
    Task,
    TaskCreate,
    TaskFilters,
    TaskHierarchy,
    TaskStatus,
    TaskUpdate,
)
from taskgraph.services.blob_storage import BlobStorage
from taskgraph.services.dependency import DependencyValidator
from taskgraph.services.hierarchy import MANUAL_CAUSE, HierarchyEngine
from taskgraph.services.persistence import SnapshotPersistence
from taskgraph.services.priority import PriorityStatusAssigner
from taskgraph.services.uniqueness import UniquenessValidator

logger = logging.getLogger("TaskGraph.Service")

T = TypeVar("T")

DEFAULT_TITLE = "Untitled"

HIERARCHY_RULES: Dict[str, str] = {
    "rule1": "Completing a task completes all of its subtasks, recursively",
    "rule2": "When every subtask of a parent is completed, the parent is completed",
    "rule3": "Reopening a task whose subtasks are all completed reopens its direct subtasks",
    "rule4": "Reopening a subtask reopens every completed ancestor",
    "rule5": "Deleting a task deletes all of its subtasks",
    "rule6": "Task titles are unique (case-insensitive)",
    "rule7": "A task cannot be completed while one of its dependencies is open",
}

# (значение, изменённые id, удалённые id)
Outcome = Tuple[T, Iterable[str], Iterable[str]]


class TaskService:
    def __init__(
        self,
        store: Optional[GraphStore] = None,
        blob_storage: Optional[BlobStorage] = None,
        persistence: Optional[SnapshotPersistence] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store if store is not None else create_graph_store()
        self.repository = TaskRepository(self.store)
        self.uniqueness = UniquenessValidator(self.repository)
        self.dependencies = DependencyValidator(self.repository)
        self.assigner = PriorityStatusAssigner(clock)
        self.engine = HierarchyEngine(self.repository, self.uniqueness, self.assigner, clock)
        self.blobs = blob_storage
        self.persistence = persistence
        self.clock = clock

    # ============================================================================
    # ВНУТРЕННЯЯ КУХНЯ
    # ============================================================================

    def _execute(self, action: Callable[[], Outcome]) -> Result:
        try:
            with self.store.transaction():
                value, changed, deleted = action()
                deleted = list(deleted)
                snapshots = [
                    task for task in (self.repository.get(i) for i in set(changed) if i) if task is not None
                ]
        except BaseAppException as e:
            logger.info(f"Operation rejected ({e.kind.value}): {e.message}")
            return Result.failure(e.kind, e.message)
        self._persist(snapshots, deleted)
        return Result.success(value)

    def _read(self, action: Callable[[], T]) -> Result:
        try:
            with self.store.transaction():
                return Result.success(action())
        except BaseAppException as e:
            return Result.failure(e.kind, e.message)

    def _persist(self, saved: List[Task], deleted: List[str]) -> None:
        if self.persistence is None:
            return
        # ошибки persistence не должны влиять на уже выполненную операцию
        try:
            self.persistence.record(saved, deleted)
        except Exception as e:
            logger.error(f"Snapshot persistence crashed: {e}", exc_info=True)

    # ============================================================================
    # CRUD
    # ============================================================================

    def create(self, data: TaskCreate) -> Result:
        """
        Создать задачу верхнего уровня.
        """
        def action() -> Outcome:
            title = (data.title or DEFAULT_TITLE).strip() or DEFAULT_TITLE
            self.uniqueness.check_available(title)
            task = Task(
                id=new_id(),
                title=title,
                description=data.description or "",
                created_at=self.clock(),
                deadline=data.deadline,
                status=data.status,
                priority=data.priority,
                category_id=data.category_id,
                assignee_id=data.assignee_id,
                creator_id=data.creator_id,
            )
            self.repository.save(self.assigner.assign(task))
            logger.info(f"Created task {task.id} '{task.title}'")
            return self.repository.get_or_raise(task.id), {task.id}, ()

        return self._execute(action)

    def get(self, task_id: str) -> Result:
        return self._read(lambda: self.repository.get_or_raise(task_id))

    def list(self, filters: Optional[TaskFilters] = None) -> Result:
        """
        Список задач с фильтрами по статусу, приоритету, категории и подстроке.
        """
        filters = filters or TaskFilters()

        def action() -> List[Task]:
            tasks = [t for t in self.repository.list() if _matches(t, filters)]
            return sorted(tasks, key=lambda t: (t.created_at is None, t.created_at or utcnow(), t.id))

        return self._read(action)

    def update(self, task_id: str, patch: TaskUpdate) -> Result:
        """
        Частичное обновление. Смена completed запускает соответствующий каскад.
        """
        def action() -> Outcome:
            task = self.repository.get_or_raise(task_id)
            fields = patch.model_dump(exclude_unset=True)

            if fields.get("title") is not None:
                title = fields["title"].strip()
                if not title:
                    raise ValidationError("Task title is required.")
                self.uniqueness.check_available(title, exclude_id=task_id)
                task.title = title

            target_completed = fields.get("completed")
            completing = target_completed is True and not task.completed
            reopening = target_completed is False and task.completed
            effective_completed = task.completed if target_completed is None else target_completed

            new_status = fields.get("status")
            if new_status == TaskStatus.COMPLETED and not effective_completed:
                raise HierarchyConflictError("Status Completed requires the task to be completed.")
            if new_status is not None and new_status != TaskStatus.COMPLETED and effective_completed:
                raise HierarchyConflictError(
                    f"A completed task cannot take status {new_status.value}; reopen it first."
                )
            if completing:
                try:
                    self.engine.check_dependencies(task_id)
                except DependencyNotSatisfiedError as e:
                    raise HierarchyConflictError(e.message)

            for field in ("description", "deadline", "priority", "category_id", "assignee_id", "urgency"):
                if field in fields:
                    setattr(task, field, fields[field] if field != "description" else fields[field] or "")
            if fields.get("warning"):
                task.warnings.append(fields["warning"])
            self.repository.save(task)

            changed: Set[str] = {task_id}
            if completing:
                changed |= self.engine.complete(task_id, fields.get("termination_cause") or MANUAL_CAUSE)
            elif reopening:
                changed |= self.engine.reopen(task_id)

            task = self.repository.get_or_raise(task_id)
            if new_status is not None:
                task.status = new_status
            self.repository.save(self.assigner.assign(task))
            logger.info(f"Updated task {task_id} fields: {sorted(fields)}")
            return self.repository.get_or_raise(task_id), changed, ()

        return self._execute(action)

    def delete(self, task_id: str) -> Result:
        """
        Удалить задачу вместе со всем поддеревом (единственный путь удаления).
        """
        def action() -> Outcome:
            self.repository.get_or_raise(task_id)
            affected = {self.repository.find_parent_id(task_id)}
            for node_id in [task_id] + self.repository.collect_descendants(task_id):
                affected.update(self.repository.dependents_of(node_id))
            removed, attachments = self.engine.delete_subtree(task_id)
            if self.blobs is not None:
                for attachment in attachments:
                    self.blobs.delete(attachment.path)
            return True, affected - set(removed), removed

        return self._execute(action)

    # ============================================================================
    # ИЕРАРХИЯ И ЗАВИСИМОСТИ
    # ============================================================================

    def add_subtask(self, parent_id: str, data: TaskCreate) -> Result:
        def action() -> Outcome:
            child = self.engine.add_subtask(parent_id, data)
            return child, {child.id, parent_id}, ()

        return self._execute(action)

    def add_dependency(self, task_id: str, depends_on_id: str) -> Result:
        def action() -> Outcome:
            self.repository.get_or_raise(task_id)
            if not self.repository.exists(depends_on_id):
                raise TaskNotFound(f"Task {depends_on_id} not found.")
            self.dependencies.check(task_id, depends_on_id)
            if self.repository.add_dependency(task_id, depends_on_id):
                logger.info(f"Task {task_id} now depends on {depends_on_id}")
            return self.repository.get_or_raise(task_id), {task_id}, ()

        return self._execute(action)

    def complete(self, task_id: str, cause: str = MANUAL_CAUSE) -> Result:
        def action() -> Outcome:
            changed = self.engine.complete(task_id, cause or MANUAL_CAUSE)
            return self.repository.get_or_raise(task_id), changed, ()

        return self._execute(action)

    def reopen(self, task_id: str) -> Result:
        def action() -> Outcome:
            changed = self.engine.reopen(task_id)
            return self.repository.get_or_raise(task_id), changed, ()

        return self._execute(action)

    def get_hierarchy(self, task_id: str) -> Result:
        """
        Задача со всем поддеревом, вложенным по уровням.
        """
        def action() -> TaskHierarchy:
            root = self.repository.get_or_raise(task_id)
            nodes: Dict[str, TaskHierarchy] = {}
            for task in [root] + [self.repository.get_or_raise(i) for i in self.repository.collect_descendants(task_id)]:
                node = TaskHierarchy(
                    task=task,
                    has_subtasks=task.has_subtasks,
                    is_subtask=task.parent_id is not None,
                )
                nodes[task.id] = node
                if task.id != task_id and task.parent_id in nodes:
                    nodes[task.parent_id].subtasks.append(node)
            return nodes[task_id]

        return self._read(action)

    # ============================================================================
    # ВЛОЖЕНИЯ
    # ============================================================================

    def add_attachment(self, task_id: str, filename: Optional[str], data: bytes) -> Result:
        def action() -> Outcome:
            self.repository.get_or_raise(task_id)
            if self.blobs is None:
                raise ValidationError("Attachment storage is not configured.")
            attachment_id = new_id()
            name = (filename or "").strip() or f"unnamed_{attachment_id}"
            path = self.blobs.save(attachment_id, name, data)
            record = AttachmentRecord(id=attachment_id, filename=name, path=path)
            self.repository.add_attachment(task_id, record)
            return record, {task_id}, ()

        return self._execute(action)

    def remove_attachment(self, task_id: str, attachment_id: str) -> Result:
        def action() -> Outcome:
            self.repository.get_or_raise(task_id)
            record = self.repository.remove_attachment(task_id, attachment_id)
            if record is None:
                raise AttachmentNotFound(f"Attachment {attachment_id} not found on task {task_id}.")
            if self.blobs is not None:
                self.blobs.delete(record.path)
            logger.info(f"Removed attachment {attachment_id} from task {task_id}")
            return True, {task_id}, ()

        return self._execute(action)

    # ============================================================================
    # УТИЛИТЫ
    # ============================================================================

    def check_title(self, title: str, exclude_id: Optional[str] = None) -> Result:
        def action() -> bool:
            try:
                self.uniqueness.check_available(title, exclude_id=exclude_id)
            except DuplicateTitleError:
                return False
            return True

        return self._read(action)

    @staticmethod
    def rules() -> Dict[str, str]:
        return dict(HIERARCHY_RULES)


def _matches(task: Task, filters: TaskFilters) -> bool:
    if filters.status is not None and (task.status is None or task.status.value != filters.status):
        return False
    if filters.priority is not None and (task.priority is None or task.priority.value != filters.priority):
        return False
    if filters.category is not None and task.category_id != filters.category:
        return False
    if filters.root_only and task.parent_id is not None:
        return False
    if filters.q:
        needle = filters.q.lower()
        if needle not in task.title.lower() and needle not in (task.description or "").lower():
            return False
    return True
