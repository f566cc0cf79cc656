#taskgraph/models/task.py
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, JSON, Boolean, Index, func
)
from taskgraph.models.base import Base

class TaskSnapshot(Base):
    """
    TaskSnapshot: последний известный снимок задачи из графа (best-effort write-back).
    """
    __tablename__ = "task_snapshots"

    id: str = Column(String(16), primary_key=True, doc="ID задачи в графе")
    title: str = Column(String(255), nullable=False, doc="Название задачи")
    parent_id: str = Column(String(16), nullable=True, doc="ID родительской задачи")
    completed: bool = Column(Boolean, default=False, nullable=False, doc="Завершена ли задача")
    payload: dict = Column(JSON, nullable=False, default=lambda: {}, doc="Полное представление задачи")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата изменения")

    __table_args__ = (
        Index("ix_task_snapshots_parent_id", "parent_id"),
    )

    def __repr__(self):
        return (
            f"<TaskSnapshot(id={self.id}, title='{self.title}', completed={self.completed}, "
            f"parent_id={self.parent_id})>"
        )
