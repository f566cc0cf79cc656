# taskgraph/services/blob_storage.py
import logging
from pathlib import Path

from taskgraph.core.exceptions import BlobStorageError

logger = logging.getLogger("TaskGraph.Blobs")


class BlobStorage:
    """
    Файлы вложений на диске: <upload_dir>/<attachment_id>_<filename>.
    """

    def __init__(self, upload_dir: str):
        self.upload_dir = Path(upload_dir)

    def save(self, attachment_id: str, filename: str, data: bytes) -> str:
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            path = self.upload_dir / f"{attachment_id}_{Path(filename).name}"
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to store attachment {attachment_id}: {e}")
            raise BlobStorageError(f"Error while saving file: {e}")
        logger.info(f"Stored attachment {attachment_id} at {path} ({len(data)} bytes)")
        return str(path)

    def delete(self, path: str) -> bool:
        """
        Удаляет файл. Отсутствующий файл не ошибка; сбой удаления только логируется,
        запись о вложении всё равно снимается.
        """
        if not path:
            return False
        try:
            Path(path).unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.error(f"Failed to delete attachment file {path}: {e}")
            return False
