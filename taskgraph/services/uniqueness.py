# taskgraph/services/uniqueness.py
import logging
from typing import Optional

from taskgraph.core.exceptions import DuplicateTitleError
from taskgraph.crud.task import TaskRepository

logger = logging.getLogger("TaskGraph.Uniqueness")


def normalize_title(title: Optional[str]) -> str:
    return (title or "").strip().casefold()


class UniquenessValidator:
    """
    Уникальность названий задач (trim + без учёта регистра) по всему графу.
    """

    def __init__(self, repository: TaskRepository):
        self.repository = repository

    def is_available(self, title: Optional[str], exclude_id: Optional[str] = None) -> bool:
        normalized = normalize_title(title)
        if not normalized:
            return True
        for task_id in self.repository.task_ids():
            if task_id == exclude_id:
                continue
            if normalize_title(self.repository.title_of(task_id)) == normalized:
                return False
        return True

    def check_available(self, title: Optional[str], exclude_id: Optional[str] = None) -> None:
        if exclude_id is not None:
            current = self.repository.title_of(exclude_id)
            # переименование в тот же заголовок (с точностью до регистра) не конфликт
            if current is not None and normalize_title(current) == normalize_title(title):
                return
        if not self.is_available(title, exclude_id):
            logger.info(f"Rejected duplicate title '{title}'")
            raise DuplicateTitleError(
                f"A task titled '{title}' already exists. Please choose a unique title."
            )
