from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from taskgraph.database import create_db_engine, create_session_factory
from taskgraph.models.task import TaskSnapshot
from taskgraph.schemas.task import TaskCreate
from taskgraph.services.persistence import SnapshotPersistence
from taskgraph.services.task_service import TaskService


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite:///:memory:")
    factory = create_session_factory(engine)
    yield factory
    engine.dispose()


@pytest.fixture
def persistence(session_factory) -> SnapshotPersistence:
    persistence = SnapshotPersistence(session_factory)
    persistence.init_schema()
    return persistence


def _snapshots(session_factory):
    session = session_factory()
    try:
        return {row.id: row for row in session.query(TaskSnapshot).all()}
    finally:
        session.close()


def test_service_writes_snapshots(store, persistence, session_factory):
    service = TaskService(store=store, persistence=persistence)
    parent = service.create(TaskCreate(title="Persist me")).value
    child = service.add_subtask(parent.id, TaskCreate(title="Persist child")).value

    rows = _snapshots(session_factory)
    assert set(rows) == {parent.id, child.id}
    assert rows[child.id].parent_id == parent.id
    assert rows[parent.id].payload["title"] == "Persist me"
    assert rows[parent.id].payload["subtask_ids"] == [child.id]

    service.complete(parent.id)
    rows = _snapshots(session_factory)
    assert rows[parent.id].completed is True
    assert rows[child.id].completed is True

    service.delete(parent.id)
    assert _snapshots(session_factory) == {}

def test_empty_record_is_noop(persistence):
    assert persistence.record([], []) is True

def test_write_failure_is_logged_and_swallowed(store, caplog):
    session = MagicMock()
    session.commit.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))
    persistence = SnapshotPersistence(lambda: session)
    service = TaskService(store=store, persistence=persistence)

    with caplog.at_level("ERROR", logger="TaskGraph.Persistence"):
        result = service.create(TaskCreate(title="Still created"))

    # операция в памяти не откатывается
    assert result.ok
    assert service.get(result.value.id).ok
    session.rollback.assert_called_once()
    session.close.assert_called_once()
    assert "Snapshot write-back failed" in caplog.text
