# taskgraph/dependencies.py

import logging
from functools import lru_cache
from typing import Optional

from taskgraph.core.settings import settings
from taskgraph.database import create_db_engine, create_session_factory
from taskgraph.services.blob_storage import BlobStorage
from taskgraph.services.persistence import SnapshotPersistence
from taskgraph.services.task_service import TaskService

logger = logging.getLogger("TaskGraph.Dependencies")


def build_persistence() -> Optional[SnapshotPersistence]:
    """
    Snapshot persistence включается только через PERSISTENCE_ENABLED.
    """
    if not settings.PERSISTENCE_ENABLED:
        return None
    persistence = SnapshotPersistence(create_session_factory(create_db_engine(settings.DATABASE_URL)))
    persistence.init_schema()
    logger.info(f"Snapshot persistence enabled ({settings.DATABASE_URL})")
    return persistence


@lru_cache
def get_task_service() -> TaskService:
    """
    Один граф на процесс: сервис создаётся лениво и переиспользуется.
    """
    return TaskService(
        blob_storage=BlobStorage(settings.UPLOAD_DIR),
        persistence=build_persistence(),
    )
