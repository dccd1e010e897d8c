from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
import datetime as dt
from datetime import date, datetime

from diary.core.errors import ValidationError as RuleError
from diary.services.frequency import normalize_value
from diary.schemas.activity import HHMM_PATTERN

FrequencyType = Literal["daily", "weekly", "specific_days", "interval", "monthly"]
OccurrenceStatus = Literal["completed", "skipped", "partial"]


def _check_reminder(enabled: Optional[bool], time: Optional[str]):
    if enabled and not time:
        raise ValueError("reminder_time is required when reminders are enabled")


# --- Program Definition ---
class ProgramCreate(BaseModel):
    """
    A recurring activity program.
    frequency_value: "0,2,4" (Mon/Wed/Fri) for specific_days, "3" for interval.
    """
    activity_type_id: int
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    duration_minutes: int = Field(30, ge=1)

    frequency_type: FrequencyType
    frequency_value: Optional[str] = None
    start_date: Optional[date] = None  # defaults to today
    end_date: Optional[date] = None

    reminder_enabled: bool = False
    reminder_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    is_active: bool = True

    @model_validator(mode="after")
    def check_rule(self):
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("name must not be blank")
        try:
            self.frequency_value = normalize_value(self.frequency_type, self.frequency_value)
        except RuleError as exc:
            raise ValueError(str(exc)) from exc
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date is before start_date")
        _check_reminder(self.reminder_enabled, self.reminder_time)
        return self

class ProgramUpdate(BaseModel):
    # The merged result is re-validated as a whole rule in the router
    activity_type_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    frequency_type: Optional[FrequencyType] = None
    frequency_value: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reminder_enabled: Optional[bool] = None
    reminder_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    is_active: Optional[bool] = None

class ProgramResponse(BaseModel):
    id: int
    activity_type_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    duration_minutes: int
    frequency_type: str
    frequency_value: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    reminder_enabled: bool
    reminder_time: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProgramDetail(ProgramResponse):
    schedule_label: Optional[str] = None
    next_due: Optional[date] = None
    rule_error: Optional[str] = None


# --- Occurrences / Day View ---
class StatusUpdate(BaseModel):
    status: OccurrenceStatus
    actual_duration_minutes: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None
    skip_reason: Optional[str] = None

class OccurrenceResponse(BaseModel):
    id: int
    scheduled_activity_id: int
    date: dt.date
    status: str
    actual_duration_minutes: Optional[int] = None
    notes: Optional[str] = None
    skip_reason: Optional[str] = None

    class Config:
        from_attributes = True

class DayEntryResponse(BaseModel):
    program: ProgramResponse
    status: str  # pending | completed | skipped | partial
    occurrence: Optional[OccurrenceResponse] = None

    class Config:
        from_attributes = True

class DiagnosticResponse(BaseModel):
    program_id: int
    name: str
    kind: str
    message: str

    class Config:
        from_attributes = True

class DayResponse(BaseModel):
    day: date
    entries: List[DayEntryResponse]
    diagnostics: List[DiagnosticResponse] = []

    class Config:
        from_attributes = True

class WeekSummaryResponse(BaseModel):
    program_id: int
    week_start: date
    week_end: date
    scheduled: int
    completed: int
    skipped: int
    partial: int

class ReconcileRequest(BaseModel):
    day: Optional[date] = None

class ReconcileResponse(BaseModel):
    day: date
    repaired: int
    unreconciled: List[int] = []
