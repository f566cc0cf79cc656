#taskgraph/api/task.py
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from taskgraph.core.results import ErrorKind, Result
from taskgraph.dependencies import get_task_service
from taskgraph.schemas.attachment import AttachmentRecord
from taskgraph.schemas.response import ErrorDetail, SuccessResponse
from taskgraph.schemas.task import Task, TaskCreate, TaskFilters, TaskHierarchy, TaskUpdate
from taskgraph.services.task_service import TaskService

logger = logging.getLogger("TaskGraph.TasksAPI")

router = APIRouter(prefix="/tasks", tags=["Tasks"])

STATUS_BY_ERROR = {
    ErrorKind.TASK_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.PARENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ATTACHMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.DUPLICATE_TITLE: status.HTTP_409_CONFLICT,
    ErrorKind.PARENT_ALREADY_COMPLETED: status.HTTP_409_CONFLICT,
    ErrorKind.DEPENDENCY_CYCLE: status.HTTP_409_CONFLICT,
    ErrorKind.DEPENDENCY_NOT_SATISFIED: status.HTTP_409_CONFLICT,
    ErrorKind.HIERARCHY_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_DATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.IO_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _unwrap(result: Result):
    if result.ok:
        return result.value
    status_code = STATUS_BY_ERROR.get(result.error, status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error(f"Task operation failed: {result.error.value}: {result.message}")
    raise HTTPException(
        status_code=status_code,
        detail=ErrorDetail(code=result.error.value, message=result.message or "").model_dump(),
    )

# --- Утилиты (объявлены до /{task_id}, чтобы не перехватывались) ---

@router.get("/rules", response_model=Dict[str, str])
def get_rules(service: TaskService = Depends(get_task_service)):
    """
    Описание иерархических правил.
    """
    return service.rules()

@router.get("/check-title/{title}")
def check_title_availability(
    title: str,
    exclude_id: Optional[str] = Query(None),
    service: TaskService = Depends(get_task_service),
):
    """
    Проверить, свободно ли название задачи.
    """
    available = _unwrap(service.check_title(title, exclude_id))
    return {"title": title, "available": available}

# --- CRUD ---

@router.get("/", response_model=List[Task])
def list_tasks(
    task_status: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    root_only: bool = Query(False),
    service: TaskService = Depends(get_task_service),
):
    """
    Получить список задач с фильтрацией и поиском.
    """
    filters = TaskFilters(status=task_status, priority=priority, category=category, q=q, root_only=root_only)
    return _unwrap(service.list(filters))

@router.post("/", response_model=Task, status_code=status.HTTP_201_CREATED)
def create_new_task(data: TaskCreate, service: TaskService = Depends(get_task_service)):
    """
    Создать новую задачу. Название должно быть уникальным.
    """
    return _unwrap(service.create(data))

@router.get("/{task_id}", response_model=Task)
def get_one_task(task_id: str, service: TaskService = Depends(get_task_service)):
    """
    Получить задачу по ID.
    """
    return _unwrap(service.get(task_id))

@router.patch("/{task_id}", response_model=Task)
def update_one_task(task_id: str, data: TaskUpdate, service: TaskService = Depends(get_task_service)):
    """
    Обновить задачу.
    """
    return _unwrap(service.update(task_id, data))

@router.delete("/{task_id}", response_model=SuccessResponse)
def delete_task(task_id: str, service: TaskService = Depends(get_task_service)):
    """
    Удалить задачу (всегда вместе с подзадачами).
    """
    _unwrap(service.delete(task_id))
    return SuccessResponse(result=task_id, detail="Task and its subtasks deleted")

@router.delete("/{task_id}/cascade", response_model=SuccessResponse)
def delete_task_cascade(task_id: str, service: TaskService = Depends(get_task_service)):
    """
    Удалить задачу и все подзадачи. То же самое, что DELETE /tasks/{id}.
    """
    _unwrap(service.delete(task_id))
    return SuccessResponse(result=task_id, detail="Task and its subtasks deleted")

# --- Иерархия ---

@router.post("/{task_id}/subtasks", response_model=Task, status_code=status.HTTP_201_CREATED)
def add_subtask(task_id: str, data: TaskCreate, service: TaskService = Depends(get_task_service)):
    """
    Добавить подзадачу. Она наследует категорию, приоритет и (при отсутствии) дедлайн родителя.
    """
    return _unwrap(service.add_subtask(task_id, data))

@router.get("/{task_id}/hierarchy", response_model=TaskHierarchy)
def get_hierarchy(task_id: str, service: TaskService = Depends(get_task_service)):
    """
    Задача со всеми подзадачами (рекурсивно).
    """
    return _unwrap(service.get_hierarchy(task_id))

@router.post("/{task_id}/dependencies/{depends_on_id}", response_model=Task)
def add_dependency(task_id: str, depends_on_id: str, service: TaskService = Depends(get_task_service)):
    """
    Добавить зависимость: задачу нельзя завершить, пока не завершена depends_on_id.
    """
    return _unwrap(service.add_dependency(task_id, depends_on_id))

# --- Статус ---

@router.post("/{task_id}/complete", response_model=Task)
def complete_task(
    task_id: str,
    cause: str = Query("Manual"),
    service: TaskService = Depends(get_task_service),
):
    """
    Завершить задачу (каскад на подзадачи и, возможно, на родителей).
    """
    return _unwrap(service.complete(task_id, cause))

@router.post("/{task_id}/in-progress", response_model=Task)
def reopen_task(task_id: str, service: TaskService = Depends(get_task_service)):
    """
    Вернуть задачу в работу (статус ToDo, каскад на предков).
    """
    return _unwrap(service.reopen(task_id))

# --- Вложения ---

@router.post("/{task_id}/attachments", response_model=AttachmentRecord, status_code=status.HTTP_201_CREATED)
def add_attachment(
    task_id: str,
    file: UploadFile = File(...),
    service: TaskService = Depends(get_task_service),
):
    """
    Прикрепить файл к задаче.
    """
    data = file.file.read()
    return _unwrap(service.add_attachment(task_id, file.filename, data))

@router.delete("/{task_id}/attachments/{attachment_id}", response_model=SuccessResponse)
def delete_attachment(task_id: str, attachment_id: str, service: TaskService = Depends(get_task_service)):
    """
    Удалить вложение задачи.
    """
    _unwrap(service.remove_attachment(task_id, attachment_id))
    return SuccessResponse(result=attachment_id, detail="Attachment deleted")
