from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from diary.core.clock import Clock
from diary.core.errors import ConfigurationError, DiaryError, NotFoundError, StorageError, ValidationError
from diary.db.session import get_db
from diary.services.schedule import ScheduleService

_clock = Clock()


def get_clock() -> Clock:
    """
    Source of "today". Tests override this dependency with a FixedClock.
    """
    return _clock


def get_schedule_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> ScheduleService:
    return ScheduleService(db, clock)


def http_error(exc: DiaryError) -> HTTPException:
    """Maps service errors onto the HTTP status the routers return."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (ValidationError, ConfigurationError)):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, StorageError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
