import os
import uuid
from typing import Any, Callable, Generator

import pytest
from fastapi.testclient import TestClient

# Настройки для тестов выставляем ДО импорта settings / app
os.environ["PERSISTENCE_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LOG_LEVEL"] = "DEBUG"

from taskgraph.crud.task import TaskRepository, create_graph_store
from taskgraph.graph import GraphStore
from taskgraph.schemas.task import Task, TaskCreate
from taskgraph.services.blob_storage import BlobStorage
from taskgraph.services.task_service import TaskService
from taskgraph.dependencies import get_task_service
from taskgraph.main import app


@pytest.fixture(scope="function")
def store() -> GraphStore:
    return create_graph_store()


@pytest.fixture(scope="function")
def repository(store: GraphStore) -> TaskRepository:
    return TaskRepository(store)


@pytest.fixture(scope="function")
def blob_storage(tmp_path) -> BlobStorage:
    return BlobStorage(str(tmp_path / "uploads"))


@pytest.fixture(scope="function")
def service(store: GraphStore, blob_storage: BlobStorage) -> TaskService:
    """
    Свежий граф и сервис на каждый тест.
    """
    return TaskService(store=store, blob_storage=blob_storage)


@pytest.fixture(scope="function")
def make_task(service: TaskService) -> Callable[..., Task]:
    """
    Фабрика задач через сервис; по умолчанию уникальное название.
    """
    def _make_task(title: str = None, **fields: Any) -> Task:
        data = TaskCreate(title=title or f"Task {uuid.uuid4().hex[:6]}", **fields)
        result = service.create(data)
        assert result.ok, result.message
        return result.value
    return _make_task


@pytest.fixture(scope="function")
def make_subtask(service: TaskService) -> Callable[..., Task]:
    def _make_subtask(parent_id: str, title: str = None, **fields: Any) -> Task:
        data = TaskCreate(title=title or f"Subtask {uuid.uuid4().hex[:6]}", **fields)
        result = service.add_subtask(parent_id, data)
        assert result.ok, result.message
        return result.value
    return _make_subtask


@pytest.fixture(scope="function")
def client(service: TaskService) -> Generator[TestClient, None, None]:
    """
    TestClient с подменённым сервисом (изолированный граф на тест).
    """
    app.dependency_overrides[get_task_service] = lambda: service
    with TestClient(app) as c:
        yield c
    del app.dependency_overrides[get_task_service]
