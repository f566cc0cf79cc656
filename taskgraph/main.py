# taskgraph/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import os
import logging

from taskgraph.api.task import router as task_router, STATUS_BY_ERROR
from taskgraph.core.exceptions import BaseAppException
from taskgraph.core.settings import settings
from taskgraph.schemas.response import ErrorDetail

# Логирование
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("TaskGraph.App")

app = FastAPI(
    title="TaskGraph API",
    version="1.0.0",
    description="Hierarchical task graph with cascading completion, dependencies and unique titles",
)

# Middlewares
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Роутеры
app.include_router(task_router)

# Health check & root
@app.get("/", tags=["Health"])
def root():
    return {"status": "TaskGraph API is running!"}

@app.get("/health", tags=["Health"])
def health():
    return {
        "status": "OK",
        "service": "Task API with hierarchical rules",
        "unique_titles": "enabled",
    }

@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting TaskGraph API ({settings.ENV})")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Stopping TaskGraph API")

# Сервис возвращает Result, сюда доходят только исключения мимо него
@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    return JSONResponse(
        status_code=STATUS_BY_ERROR.get(exc.kind, 400),
        content={"detail": ErrorDetail(code=exc.kind.value, message=exc.message).model_dump()},
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "taskgraph.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=bool(os.getenv("DEBUG", False))
    )
