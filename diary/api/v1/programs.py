from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from diary.api.deps import get_clock, get_schedule_service, http_error
from diary.core.clock import Clock
from diary.core.errors import DiaryError, ValidationError as RuleError
from diary.db.session import commit_or_raise, get_db
from diary.models.activity import ActivityType
from diary.models.program import ScheduledActivity
from diary.schemas.program import (
    ProgramCreate,
    ProgramDetail,
    ProgramResponse,
    ProgramUpdate,
    WeekSummaryResponse,
)
from diary.services.frequency import FrequencyRule, describe, next_due, normalize_value, parse_rule
from diary.services.schedule import ScheduleService

router = APIRouter()


def _detail(program: ScheduledActivity, today: date) -> ProgramDetail:
    detail = ProgramDetail.model_validate(program)
    try:
        rule = FrequencyRule.from_program(program)
    except RuleError as exc:
        # Stored before validation existed or edited by hand; still viewable
        detail.rule_error = str(exc)
        return detail
    detail.schedule_label = describe(rule)
    detail.next_due = next_due(rule, today) if program.is_active else None
    return detail


def _require_type(db: Session, type_id: int):
    if not db.get(ActivityType, type_id):
        raise HTTPException(status_code=422, detail=f"Activity type {type_id} does not exist")


@router.post("/", response_model=ProgramDetail, status_code=status.HTTP_201_CREATED)
def create_program(
    request: ProgramCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Creates a recurring activity program.

    1. Validation: the rule was normalized by the schema; the activity type must exist.
    2. Start date defaults to today.
    """
    _require_type(db, request.activity_type_id)

    start = request.start_date or clock.today()
    if request.end_date and request.end_date < start:
        raise HTTPException(status_code=422, detail="end_date is before start_date")

    program = ScheduledActivity(
        activity_type_id=request.activity_type_id,
        name=request.name,
        description=request.description,
        duration_minutes=request.duration_minutes,
        frequency_type=request.frequency_type,
        frequency_value=request.frequency_value,
        start_date=start,
        end_date=request.end_date,
        reminder_enabled=request.reminder_enabled,
        reminder_time=request.reminder_time if request.reminder_enabled else None,
        is_active=request.is_active,
    )
    db.add(program)
    try:
        commit_or_raise(db, "create program")
    except DiaryError as exc:
        raise http_error(exc)
    db.refresh(program)
    return _detail(program, clock.today())


@router.get("/", response_model=list[ProgramResponse])
def list_programs(active_only: bool = False, db: Session = Depends(get_db)):
    """Active programs first, newest first within each group."""
    query = db.query(ScheduledActivity)
    if active_only:
        query = query.filter(ScheduledActivity.is_active.is_(True))
    return query.order_by(ScheduledActivity.is_active.desc(), ScheduledActivity.id.desc()).all()


@router.get("/{program_id}", response_model=ProgramDetail)
def get_program(program_id: int, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """
    View a program with its schedule label and next due date.
    Uses joinedload to fetch the activity type in the same query.
    """
    program = db.query(ScheduledActivity)\
        .options(joinedload(ScheduledActivity.activity_type))\
        .filter(ScheduledActivity.id == program_id)\
        .first()

    if not program:
        raise HTTPException(status_code=404, detail="Program not found")
    return _detail(program, clock.today())


@router.put("/{program_id}", response_model=ProgramDetail)
def update_program(
    program_id: int,
    update_data: ProgramUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Partial update. Setting is_active=false is the soft-disable path."""
    program = db.get(ScheduledActivity, program_id)
    if not program:
        raise HTTPException(status_code=404, detail="Program not found")

    changes = update_data.model_dump(exclude_unset=True)

    if changes.get("activity_type_id") is not None:
        _require_type(db, changes["activity_type_id"])
    if "name" in changes:
        changes["name"] = (changes["name"] or "").strip()
        if not changes["name"]:
            raise HTTPException(status_code=422, detail="name must not be blank")

    # Re-validate the rule as a whole, the stored value may belong to the old type
    frequency_type = changes.get("frequency_type", program.frequency_type)
    frequency_value = changes.get("frequency_value", program.frequency_value)
    start_date = changes.get("start_date") or program.start_date
    end_date = changes.get("end_date", program.end_date)
    try:
        frequency_value = normalize_value(frequency_type, frequency_value)
        parse_rule(frequency_type, frequency_value, start_date, end_date)
    except RuleError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    reminder_enabled = changes.get("reminder_enabled", program.reminder_enabled)
    reminder_time = changes.get("reminder_time", program.reminder_time)
    if reminder_enabled and not reminder_time:
        raise HTTPException(status_code=422, detail="reminder_time is required when reminders are enabled")

    for field in ("activity_type_id", "name", "duration_minutes", "is_active"):
        if field in changes and changes[field] is not None:
            setattr(program, field, changes[field])
    if "description" in changes:
        program.description = changes["description"]
    program.frequency_type = frequency_type
    program.frequency_value = frequency_value
    program.start_date = start_date
    program.end_date = end_date
    program.reminder_enabled = reminder_enabled
    program.reminder_time = reminder_time if reminder_enabled else None

    try:
        commit_or_raise(db, "update program")
    except DiaryError as exc:
        raise http_error(exc)
    db.refresh(program)
    return _detail(program, clock.today())


@router.delete("/{program_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_program(program_id: int, db: Session = Depends(get_db)):
    """
    Hard delete. Occurrences go with it (ORM cascade + ON DELETE CASCADE);
    mirrored activity logs stay, detached from the program.
    """
    program = db.get(ScheduledActivity, program_id)
    if not program:
        raise HTTPException(status_code=404, detail="Program not found")

    db.delete(program)
    try:
        commit_or_raise(db, "delete program")
    except DiaryError as exc:
        raise http_error(exc)
    return None


@router.get("/{program_id}/week", response_model=WeekSummaryResponse)
def get_week_summary(
    program_id: int,
    day: Optional[date] = Query(None, description="Any date in the week, defaults to today"),
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.week_summary(program_id, day)
    except DiaryError as exc:
        raise http_error(exc)
