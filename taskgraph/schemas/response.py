#taskgraph/schemas/response.py
from pydantic import BaseModel, Field
from typing import Any, Optional

class ErrorDetail(BaseModel):
    """
    ErrorDetail: описание ошибки операции (machine-readable код + сообщение).
    """
    code: str = Field(..., example="duplicate_title", description="Код ошибки (ErrorKind)")
    message: str = Field(..., example="A task titled 'Report' already exists.", description="Сообщение об ошибке")

class ErrorResponse(BaseModel):
    """
    ErrorResponse: тело ответа с ошибкой.
    """
    detail: ErrorDetail

class SuccessResponse(BaseModel):
    """
    SuccessResponse: ответ с результатом выполнения операции.
    """
    result: Any = Field(..., description="Результат запроса (обычно ID затронутого объекта)")
    detail: Optional[str] = Field(None, example="Operation successful", description="Дополнительная информация")
