import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from diary.api.deps import get_clock, http_error
from diary.core.clock import Clock
from diary.core.config import settings
from diary.core.errors import DiaryError
from diary.db.session import get_db
from diary.schemas.activity import ActivityLogCreate, ActivityLogResponse
from diary.services import activity_log

router = APIRouter()
logger = logging.getLogger(__name__)


# --- 1. RECORD AN AD-HOC ACTIVITY ---
@router.post("/", response_model=ActivityLogResponse, status_code=status.HTTP_201_CREATED)
def create_log(
    log_data: ActivityLogCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Saves the log and bumps the activity type usage count.
    A custom type name creates the type on first use.
    """
    logger.info(f"Creating activity log (type={log_data.activity_type_id or log_data.custom_type_name})")
    try:
        return activity_log.log_activity(db, clock, log_data)
    except DiaryError as exc:
        raise http_error(exc)


# --- 2. LOGS OF A DAY ---
@router.get("/", response_model=List[ActivityLogResponse])
def get_day_logs(
    day: Optional[date] = Query(None, description="YYYY-MM-DD, defaults to today"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Includes entries mirrored from completed programs."""
    return activity_log.logs_for_day(db, day or clock.today())


# --- 3. RECENT HISTORY ---
@router.get("/recent", response_model=List[ActivityLogResponse])
def get_recent_logs(limit: Optional[int] = Query(None, ge=1, le=200), db: Session = Depends(get_db)):
    return activity_log.recent_logs(db, limit or settings.recent_logs_limit)
