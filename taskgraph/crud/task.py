#taskgraph/crud/task.py
import logging
import uuid
from typing import List, Optional

from taskgraph.core.dates import format_timestamp, parse_timestamp
from taskgraph.core.exceptions import HierarchyConflictError, TaskNotFound
from taskgraph.graph import GraphStore
from taskgraph.schemas.attachment import AttachmentRecord
from taskgraph.schemas.task import Task, TaskPriority, TaskStatus

logger = logging.getLogger("TaskGraph.Tasks")

# Функциональные предикаты (одно значение, перезапись)
TITLE = "title"
DESCRIPTION = "description"
CREATED_AT = "created_at"
DEADLINE = "deadline"
COMPLETED = "completed"
COMPLETED_AT = "completed_at"
TERMINATION_CAUSE = "termination_cause"
URGENCY = "urgency"
STATUS = "status"
PRIORITY = "priority"
CATEGORY = "category"
ASSIGNEE = "assignee"
CREATOR = "creator"
FILENAME = "filename"
FILE_PATH = "file_path"

# Многозначные предикаты (только добавление, без дублей)
HAS_SUBTASK = "has_subtask"
DEPENDS_ON = "depends_on"
HAS_ATTACHMENT = "has_attachment"
WARNING = "warning"

FUNCTIONAL_PREDICATES = (
    TITLE, DESCRIPTION, CREATED_AT, DEADLINE, COMPLETED, COMPLETED_AT, TERMINATION_CAUSE,
    URGENCY, STATUS, PRIORITY, CATEGORY, ASSIGNEE, CREATOR, FILENAME, FILE_PATH,
)
MULTI_VALUED_PREDICATES = (HAS_SUBTASK, DEPENDS_ON, HAS_ATTACHMENT, WARNING)
TASK_PREDICATES = FUNCTIONAL_PREDICATES + MULTI_VALUED_PREDICATES


def new_id() -> str:
    return uuid.uuid4().hex[:8]


def create_graph_store() -> GraphStore:
    """
    Граф, который принимает только предикаты задач и вложений.
    """
    return GraphStore(allowed_predicates=TASK_PREDICATES)


class TaskRepository:
    """
    Отображение Task <-> узлы GraphStore.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    # ---- чтение ----

    def exists(self, task_id: Optional[str]) -> bool:
        return bool(task_id) and self.store.value(task_id, TITLE) is not None

    def get(self, task_id: str) -> Optional[Task]:
        if not self.exists(task_id):
            return None
        return self._to_task(task_id)

    def get_or_raise(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise TaskNotFound(f"Task {task_id} not found.")
        return task

    def task_ids(self) -> List[str]:
        return self.store.subjects(TITLE)

    def list(self) -> List[Task]:
        return [self._to_task(task_id) for task_id in self.task_ids()]

    def title_of(self, task_id: str) -> Optional[str]:
        return self.store.value(task_id, TITLE)

    def is_completed(self, task_id: str) -> bool:
        return self.store.value(task_id, COMPLETED) == "true"

    def children_ids(self, task_id: str) -> List[str]:
        return self.store.objects(task_id, HAS_SUBTASK)

    def dependency_ids(self, task_id: str) -> List[str]:
        return self.store.objects(task_id, DEPENDS_ON)

    def dependents_of(self, task_id: str) -> List[str]:
        return self.store.subjects(DEPENDS_ON, task_id)

    def find_parent_id(self, task_id: str) -> Optional[str]:
        parents = self.store.subjects(HAS_SUBTASK, task_id)
        return parents[0] if parents else None

    def collect_descendants(self, task_id: str) -> List[str]:
        """
        Все потомки по иерархии, pre-order, без рекурсии.
        """
        result: List[str] = []
        stack = list(reversed(self.children_ids(task_id)))
        seen = {task_id}
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            result.append(current)
            stack.extend(reversed(self.children_ids(current)))
        return result

    # ---- запись ----

    def save(self, task: Task) -> Task:
        """
        Записывает задачу. Функциональные поля перезаписываются (None очищает значение),
        многозначные только дополняются.
        """
        store = self.store
        store.add_node(task.id)
        store.set(task.id, TITLE, task.title)
        store.set(task.id, DESCRIPTION, task.description or "")
        store.set(task.id, CREATED_AT, format_timestamp(task.created_at))
        store.set(task.id, DEADLINE, format_timestamp(task.deadline))
        store.set(task.id, COMPLETED, "true" if task.completed else "false")
        store.set(task.id, COMPLETED_AT, format_timestamp(task.completed_at))
        store.set(task.id, TERMINATION_CAUSE, task.termination_cause)
        store.set(task.id, URGENCY, task.urgency)
        store.set(task.id, STATUS, task.status.value if task.status else None)
        store.set(task.id, PRIORITY, task.priority.value if task.priority else None)
        store.set(task.id, CATEGORY, task.category_id)
        store.set(task.id, ASSIGNEE, task.assignee_id)
        store.set(task.id, CREATOR, task.creator_id)

        for child_id in task.subtask_ids:
            self.add_child(task.id, child_id)
        for dep_id in task.dependency_ids:
            store.add(task.id, DEPENDS_ON, dep_id)
        for note in task.warnings:
            store.add(task.id, WARNING, note)
        for attachment in task.attachments:
            self.add_attachment(task.id, attachment)
        return task

    def add_child(self, parent_id: str, child_id: str) -> None:
        current_parent = self.find_parent_id(child_id)
        if current_parent is not None and current_parent != parent_id:
            raise HierarchyConflictError(
                f"Task {child_id} already belongs to parent {current_parent}."
            )
        self.store.add(parent_id, HAS_SUBTASK, child_id)

    def add_dependency(self, task_id: str, depends_on_id: str) -> bool:
        return self.store.add(task_id, DEPENDS_ON, depends_on_id)

    def append_warning(self, task_id: str, note: str) -> None:
        self.store.add(task_id, WARNING, note)

    def add_attachment(self, task_id: str, attachment: AttachmentRecord) -> None:
        self.store.add_node(attachment.id)
        self.store.set(attachment.id, FILENAME, attachment.filename)
        self.store.set(attachment.id, FILE_PATH, attachment.path)
        self.store.add(task_id, HAS_ATTACHMENT, attachment.id)

    def remove_attachment(self, task_id: str, attachment_id: str) -> Optional[AttachmentRecord]:
        if not self.store.contains(task_id, HAS_ATTACHMENT, attachment_id):
            return None
        record = self._to_attachment(attachment_id)
        self.store.remove(task_id, HAS_ATTACHMENT, attachment_id)
        self.store.remove_node(attachment_id)
        return record

    def remove(self, task_id: str) -> List[AttachmentRecord]:
        """
        Удаляет узел задачи, все ссылки на него и его вложения.
        Возвращает записи удалённых вложений, чтобы вызывающий мог убрать файлы.
        """
        attachments = [self._to_attachment(a) for a in self.store.objects(task_id, HAS_ATTACHMENT)]
        for attachment in attachments:
            self.store.remove_node(attachment.id)
        self.store.remove_node(task_id)
        logger.debug(f"Removed task node {task_id}")
        return attachments

    # ---- маппинг ----

    def _to_attachment(self, attachment_id: str) -> AttachmentRecord:
        return AttachmentRecord(
            id=attachment_id,
            filename=self.store.value(attachment_id, FILENAME) or "",
            path=self.store.value(attachment_id, FILE_PATH) or "",
        )

    def _to_task(self, task_id: str) -> Task:
        store = self.store
        status = store.value(task_id, STATUS)
        priority = store.value(task_id, PRIORITY)
        return Task(
            id=task_id,
            title=store.value(task_id, TITLE),
            description=store.value(task_id, DESCRIPTION) or "",
            created_at=parse_timestamp(store.value(task_id, CREATED_AT)),
            deadline=parse_timestamp(store.value(task_id, DEADLINE)),
            completed_at=parse_timestamp(store.value(task_id, COMPLETED_AT)),
            completed=store.value(task_id, COMPLETED) == "true",
            termination_cause=store.value(task_id, TERMINATION_CAUSE),
            warnings=store.objects(task_id, WARNING),
            urgency=store.value(task_id, URGENCY),
            status=_enum_or_none(TaskStatus, status),
            priority=_enum_or_none(TaskPriority, priority),
            category_id=store.value(task_id, CATEGORY),
            assignee_id=store.value(task_id, ASSIGNEE),
            creator_id=store.value(task_id, CREATOR),
            parent_id=self.find_parent_id(task_id),
            subtask_ids=self.children_ids(task_id),
            dependency_ids=self.dependency_ids(task_id),
            attachments=[self._to_attachment(a) for a in store.objects(task_id, HAS_ATTACHMENT)],
        )


def _enum_or_none(enum_cls, raw: Optional[str]):
    if raw is None:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        logger.warning(f"Ignoring unknown {enum_cls.__name__} value: {raw!r}")
        return None
