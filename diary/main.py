import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from diary.api.v1 import activity_types, logs, programs, schedule
from diary.core.config import settings
from diary.core.errors import StorageError
from diary.db.init_db import init_db
from diary.db.session import engine

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Auto-create tables and the default activity catalog
init_db(engine)

app = FastAPI(title="Activity Diary")

# Include Routers
app.include_router(activity_types.router, prefix="/api/v1/activity-types", tags=["Activity Types"])
app.include_router(programs.router, prefix="/api/v1/programs", tags=["Programs"])
app.include_router(schedule.router, prefix="/api/v1/schedule", tags=["Schedule"])
app.include_router(logs.router, prefix="/api/v1/logs", tags=["Activity Logs"])


@app.exception_handler(StorageError)
def storage_error_handler(request: Request, exc: StorageError):
    # Failed writes are surfaced, the client decides whether to retry
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/")
def root():
    return {"message": "System Operational"}
