from pydantic import BaseModel, Field, model_validator
from typing import Optional
import datetime as dt

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# --- Activity Type Catalog ---
class ActivityTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=80)
    icon: str = "fitness"
    color: str = Field("#FF9800", pattern=r"^#[0-9A-Fa-f]{6}$")

class ActivityTypeResponse(BaseModel):
    id: int
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    is_custom: bool
    usage_count: int

    class Config:
        from_attributes = True


# --- Free Activity Log ---
class ActivityLogCreate(BaseModel):
    """
    Either an existing activity_type_id or a custom_type_name
    (which creates the type on first use).
    """
    activity_type_id: Optional[int] = None
    custom_type_name: Optional[str] = Field(None, max_length=80)
    duration_minutes: int = Field(..., ge=1)
    intensity: int = Field(5, ge=1, le=10)
    distance_km: Optional[float] = Field(None, ge=0)
    calories: Optional[int] = Field(None, ge=0)
    date: Optional[dt.date] = None   # defaults to today
    time: Optional[str] = Field(None, pattern=HHMM_PATTERN)  # defaults to now
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_type_reference(self):
        if self.custom_type_name is not None:
            self.custom_type_name = self.custom_type_name.strip() or None
        if self.activity_type_id is None and self.custom_type_name is None:
            raise ValueError("Provide activity_type_id or custom_type_name")
        return self

class ActivityLogResponse(BaseModel):
    id: int
    activity_type_id: int
    duration_minutes: int
    intensity: int
    distance_km: Optional[float] = None
    calories: Optional[int] = None
    date: dt.date
    time: str
    notes: Optional[str] = None
    scheduled_activity_id: Optional[int] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True
