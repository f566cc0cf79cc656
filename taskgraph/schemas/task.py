#taskgraph/schemas/task.py
from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from taskgraph.core.dates import ensure_utc, utcnow
from taskgraph.schemas.attachment import AttachmentRecord

DUE_SOON_WINDOW = timedelta(days=2)


class TaskStatus(str, Enum):
    TODO = "ToDo"
    IN_PROGRESS = "InProgress"  # допустимое значение, движок его сам не выставляет
    COMPLETED = "Completed"
    OVERDUE = "Overdue"


class TaskPriority(str, Enum):
    URGENT = "Urgent"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class _UTCDeadline(BaseModel):
    @field_validator("deadline", mode="after", check_fields=False)
    @classmethod
    def deadline_to_utc(cls, v):
        return ensure_utc(v) if v is not None else v


class TaskCreate(_UTCDeadline):
    """
    TaskCreate: создание задачи или подзадачи. Неизвестные поля отклоняются.
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, example="Prepare slides", description="Название задачи (уникально)")
    description: Optional[str] = Field(None, example="Slides for Monday", description="Описание")
    deadline: Optional[datetime] = Field(None, example="2026-12-31T18:00:00Z", description="Дедлайн")
    status: Optional[TaskStatus] = Field(None, description="Статус; если не задан, выводится из дедлайна")
    priority: Optional[TaskPriority] = Field(None, description="Приоритет; если не задан, выводится из дедлайна")
    category_id: Optional[str] = Field(None, example="work", description="ID категории")
    assignee_id: Optional[str] = Field(None, example="alice", description="ID исполнителя")
    creator_id: Optional[str] = Field(None, example="bob", description="ID автора")


class TaskUpdate(_UTCDeadline):
    """
    TaskUpdate: частичное обновление задачи (все поля опциональны).
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category_id: Optional[str] = None
    assignee_id: Optional[str] = None
    urgency: Optional[str] = None
    warning: Optional[str] = None
    completed: Optional[bool] = None
    termination_cause: Optional[str] = None


class TaskFilters(BaseModel):
    """
    TaskFilters: фильтры списка задач.
    """
    model_config = ConfigDict(extra="forbid")

    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    q: Optional[str] = None
    root_only: bool = False


class Task(BaseModel):
    """
    Task: полное представление задачи (ответ сервиса).
    """
    id: str
    title: str
    description: str = ""
    created_at: Optional[datetime] = None
    deadline: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed: bool = False
    termination_cause: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    urgency: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category_id: Optional[str] = None
    assignee_id: Optional[str] = None
    creator_id: Optional[str] = None
    parent_id: Optional[str] = None
    subtask_ids: List[str] = Field(default_factory=list)
    dependency_ids: List[str] = Field(default_factory=list)
    attachments: List[AttachmentRecord] = Field(default_factory=list)

    @computed_field
    @property
    def alert(self) -> Optional[str]:
        if self.completed or not isinstance(self.deadline, datetime):
            return None
        now = utcnow()
        if now > self.deadline:
            return "overdue"
        if now + DUE_SOON_WINDOW > self.deadline:
            return "due_soon"
        return None

    @property
    def has_subtasks(self) -> bool:
        return bool(self.subtask_ids)


class TaskHierarchy(BaseModel):
    """
    TaskHierarchy: задача со всем поддеревом подзадач.
    """
    task: Task
    has_subtasks: bool
    is_subtask: bool
    subtasks: List[TaskHierarchy] = Field(default_factory=list)


TaskHierarchy.model_rebuild()
