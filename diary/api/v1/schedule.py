from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from diary.api.deps import get_schedule_service, http_error
from diary.core.errors import DiaryError
from diary.schemas.program import (
    DayResponse,
    OccurrenceResponse,
    ReconcileRequest,
    ReconcileResponse,
    StatusUpdate,
)
from diary.services.schedule import ScheduleService

router = APIRouter()


@router.get("/day", response_model=DayResponse)
def get_day(
    day: Optional[date] = Query(None, description="YYYY-MM-DD, defaults to today"),
    service: ScheduleService = Depends(get_schedule_service),
):
    """
    Programs due on the day with their status (pending/completed/skipped/partial).
    Programs with a broken rule or activity type are listed under diagnostics.
    Never cached: clients re-fetch after every status change.
    """
    try:
        resolution = service.list_day(day)
    except DiaryError as exc:
        raise http_error(exc)
    return DayResponse.model_validate(resolution, from_attributes=True)


@router.put("/{program_id}/{day}", response_model=OccurrenceResponse)
def set_status(
    program_id: int,
    day: date,
    update: StatusUpdate,
    service: ScheduleService = Depends(get_schedule_service),
):
    """
    Records completed/skipped/partial for a program on a date.
    Repeating the call updates the same occurrence; a completed occurrence
    also appears in the activity log for that day.
    """
    try:
        return service.set_status(
            program_id,
            day,
            update.status,
            actual_duration_minutes=update.actual_duration_minutes,
            notes=update.notes,
            skip_reason=update.skip_reason,
        )
    except DiaryError as exc:
        raise http_error(exc)


@router.delete("/{program_id}/{day}", status_code=status.HTTP_204_NO_CONTENT)
def clear_status(program_id: int, day: date, service: ScheduleService = Depends(get_schedule_service)):
    """Resets the program to pending on that day."""
    try:
        service.clear_status(program_id, day)
    except DiaryError as exc:
        raise http_error(exc)
    return None


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile(request: ReconcileRequest, service: ScheduleService = Depends(get_schedule_service)):
    """
    Repairs mirrored activity logs for a day. Programs that cannot be
    repaired (activity type gone) are listed under unreconciled.
    """
    try:
        return service.reconcile_day(request.day)
    except DiaryError as exc:
        raise http_error(exc)
