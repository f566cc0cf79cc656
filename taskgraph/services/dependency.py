# taskgraph/services/dependency.py
import logging

from taskgraph.core.exceptions import DependencyCycleError
from taskgraph.crud.task import TaskRepository

logger = logging.getLogger("TaskGraph.Dependencies")


class DependencyValidator:
    """
    Не даёт рёбрам зависимостей образовать цикл.
    """

    def __init__(self, repository: TaskRepository):
        self.repository = repository

    def would_create_cycle(self, task_id: str, depends_on_id: str) -> bool:
        """
        True, если task_id достижима из depends_on_id по существующим зависимостям,
        то есть новое ребро task_id -> depends_on_id замкнуло бы цикл.
        """
        if task_id == depends_on_id:
            return True
        visited = set()
        stack = [depends_on_id]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            for dep_id in self.repository.dependency_ids(current):
                if dep_id == task_id:
                    logger.info(f"Dependency cycle: {depends_on_id} already reaches {task_id}")
                    return True
                if dep_id not in visited:
                    stack.append(dep_id)
        return False

    def check(self, task_id: str, depends_on_id: str) -> None:
        if self.would_create_cycle(task_id, depends_on_id):
            raise DependencyCycleError(
                f"Dependency {task_id} -> {depends_on_id} would create a cycle."
            )
