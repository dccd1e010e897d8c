import logging
from datetime import date
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from diary.core.clock import Clock
from diary.core.errors import StorageError
from diary.db.session import commit_or_raise
from diary.models.activity import ActivityLog
from diary.schemas.activity import ActivityLogCreate
from diary.services import catalog

logger = logging.getLogger(__name__)


def log_activity(db: Session, clock: Clock, data: ActivityLogCreate) -> ActivityLog:
    """
    Records an ad-hoc activity.

    1. Resolves the type: a custom name creates (or reuses) a catalog entry,
       an id must exist and gets its usage count bumped.
    2. Date and time default to the clock.
    3. Type and log are committed together.
    """
    now = clock.now()
    try:
        if data.custom_type_name:
            activity_type = catalog.find_by_name(db, data.custom_type_name)
            if activity_type is None:
                activity_type = catalog.add_activity_type(db, data.custom_type_name, usage_count=1)
            else:
                catalog.record_usage(db, activity_type.id)
        else:
            activity_type = catalog.get_activity_type(db, data.activity_type_id)
            catalog.record_usage(db, activity_type.id)

        entry = ActivityLog(
            activity_type_id=activity_type.id,
            duration_minutes=data.duration_minutes,
            intensity=data.intensity,
            distance_km=data.distance_km,
            calories=data.calories,
            date=data.date or now.date(),
            time=data.time or now.strftime("%H:%M"),
            notes=(data.notes or "").strip() or None,
        )
        db.add(entry)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError("Could not record activity") from exc

    commit_or_raise(db, "record activity")
    db.refresh(entry)
    logger.info(f"Logged {entry.duration_minutes} min of activity type {entry.activity_type_id} on {entry.date}")
    return entry


def logs_for_day(db: Session, day: date) -> List[ActivityLog]:
    return db.query(ActivityLog)\
        .filter(ActivityLog.date == day)\
        .order_by(ActivityLog.time.asc(), ActivityLog.id.asc())\
        .all()


def recent_logs(db: Session, limit: int) -> List[ActivityLog]:
    return db.query(ActivityLog)\
        .order_by(ActivityLog.date.desc(), ActivityLog.time.desc(), ActivityLog.id.desc())\
        .limit(limit)\
        .all()
