# taskgraph/services/persistence.py
import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from taskgraph.models.base import Base
from taskgraph.models.task import TaskSnapshot
from taskgraph.schemas.task import Task

logger = logging.getLogger("TaskGraph.Persistence")


class SnapshotPersistence:
    """
    Best-effort запись снимков задач в БД. Ошибки только логируются:
    состояние в памяти остаётся источником истины и никогда не откатывается.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def init_schema(self) -> None:
        session = self.session_factory()
        try:
            Base.metadata.create_all(bind=session.get_bind())
        finally:
            session.close()

    def record(self, saved: Iterable[Task] = (), deleted_ids: Iterable[str] = ()) -> bool:
        saved = list(saved)
        deleted_ids = list(deleted_ids)
        if not saved and not deleted_ids:
            return True
        session = self.session_factory()
        try:
            for task in saved:
                session.merge(TaskSnapshot(
                    id=task.id,
                    title=task.title,
                    parent_id=task.parent_id,
                    completed=task.completed,
                    payload=task.model_dump(mode="json"),
                ))
            if deleted_ids:
                session.query(TaskSnapshot).filter(TaskSnapshot.id.in_(deleted_ids)).delete(
                    synchronize_session=False
                )
            session.commit()
            logger.debug(f"Persisted {len(saved)} snapshot(s), removed {len(deleted_ids)}")
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Snapshot write-back failed: {e}", exc_info=True)
            return False
        finally:
            session.close()
