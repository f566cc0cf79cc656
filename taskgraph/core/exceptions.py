# taskgraph/core/exceptions.py

from taskgraph.core.results import ErrorKind


class BaseAppException(Exception):
    """Базовый класс для всех кастомных исключений приложения."""
    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str = "App exception"):
        super().__init__(message)
        self.message = message

# ==== Валидация ====

class ValidationError(BaseAppException):
    """Общая ошибка валидации."""
    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str = "Validation error"):
        super().__init__(message)

class UnknownPropertyError(ValidationError):
    """Запись неизвестного свойства в узел графа."""
    def __init__(self, message: str = "Unknown property"):
        super().__init__(message)

class InvalidDateError(ValidationError):
    """Дедлайн подзадачи вне границ родительской задачи."""
    kind = ErrorKind.INVALID_DATE

    def __init__(self, message: str = "Invalid date"):
        super().__init__(message)

# ==== NotFound ====

class NotFoundError(BaseAppException):
    """Ошибка отсутствия ресурса."""
    kind = ErrorKind.TASK_NOT_FOUND

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)

class TaskNotFound(NotFoundError):
    """Ошибка: задача не найдена."""
    def __init__(self, message: str = "Task not found"):
        super().__init__(message)

class ParentNotFoundError(NotFoundError):
    """Ошибка: родительская задача не найдена."""
    kind = ErrorKind.PARENT_NOT_FOUND

    def __init__(self, message: str = "Parent task not found"):
        super().__init__(message)

class AttachmentNotFound(NotFoundError):
    """Ошибка: вложение не найдено."""
    kind = ErrorKind.ATTACHMENT_NOT_FOUND

    def __init__(self, message: str = "Attachment not found"):
        super().__init__(message)

# ==== Дубликаты ====

class DuplicateTitleError(BaseAppException):
    """Ошибка: задача с таким названием уже существует."""
    kind = ErrorKind.DUPLICATE_TITLE

    def __init__(self, message: str = "Duplicate task title"):
        super().__init__(message)

# ==== Иерархия и зависимости ====

class HierarchyConflictError(BaseAppException):
    """Изменение нарушает иерархические правила."""
    kind = ErrorKind.HIERARCHY_CONFLICT

    def __init__(self, message: str = "Hierarchy conflict"):
        super().__init__(message)

class ParentAlreadyCompletedError(HierarchyConflictError):
    """Нельзя добавить подзадачу к завершённой задаче."""
    kind = ErrorKind.PARENT_ALREADY_COMPLETED

    def __init__(self, message: str = "Parent task already completed"):
        super().__init__(message)

class DependencyCycleError(HierarchyConflictError):
    """Зависимость создала бы цикл."""
    kind = ErrorKind.DEPENDENCY_CYCLE

    def __init__(self, message: str = "Dependency cycle detected"):
        super().__init__(message)

class DependencyNotSatisfiedError(HierarchyConflictError):
    """Есть незавершённые зависимости."""
    kind = ErrorKind.DEPENDENCY_NOT_SATISFIED

    def __init__(self, message: str = "Dependency not satisfied"):
        super().__init__(message)

# ==== Хранилище файлов ====

class BlobStorageError(BaseAppException):
    """Ошибка чтения/записи файла вложения."""
    kind = ErrorKind.IO_FAILURE

    def __init__(self, message: str = "Attachment storage error"):
        super().__init__(message)
