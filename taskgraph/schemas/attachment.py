#taskgraph/schemas/attachment.py
from pydantic import BaseModel, Field

class AttachmentRecord(BaseModel):
    """
    AttachmentRecord: файл, прикреплённый к одной задаче.
    """
    id: str = Field(..., example="a1b2c3d4", description="ID вложения")
    filename: str = Field(..., example="report.pdf", description="Исходное имя файла")
    path: str = Field(..., example="uploads/a1b2c3d4_report.pdf", description="Путь в хранилище файлов")
