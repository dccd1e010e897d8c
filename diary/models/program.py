from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from diary.db.base import Base
from diary.models.activity import ActivityType  # noqa: F401  relationship target

FREQUENCY_TYPES = ("daily", "weekly", "specific_days", "interval", "monthly")
OCCURRENCE_STATUSES = ("completed", "skipped", "partial")
PENDING = "pending"


class ScheduledActivity(Base):
    """
    A recurring activity program, e.g. "Morning walk, 30 min, Mon/Wed/Fri".
    """
    __tablename__ = "scheduled_activities"
    __table_args__ = (
        CheckConstraint(
            "frequency_type IN ('daily', 'weekly', 'specific_days', 'interval', 'monthly')",
            name="ck_scheduled_activities_frequency_type",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    activity_type_id = Column(Integer, ForeignKey("activity_types.id", ondelete="SET NULL"), nullable=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    duration_minutes = Column(Integer, default=30, nullable=False)

    frequency_type = Column(String, nullable=False)
    frequency_value = Column(String)  # "0,2,4" for specific_days, "3" for interval
    start_date = Column(Date, nullable=False)
    end_date = Column(Date)

    reminder_enabled = Column(Boolean, default=False, nullable=False)
    reminder_time = Column(String)  # HH:MM
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    activity_type = relationship("ActivityType", back_populates="programs")
    occurrences = relationship(
        "ScheduledActivityLog",
        back_populates="program",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ScheduledActivityLog(Base):
    """
    Status of one program on one date. At most one row per (program, date).
    """
    __tablename__ = "scheduled_activity_logs"
    __table_args__ = (
        UniqueConstraint("scheduled_activity_id", "date", name="uq_scheduled_activity_logs_program_date"),
        CheckConstraint(
            "status IN ('completed', 'skipped', 'partial')",
            name="ck_scheduled_activity_logs_status",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    scheduled_activity_id = Column(
        Integer, ForeignKey("scheduled_activities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(Date, nullable=False, index=True)
    status = Column(String, nullable=False)
    actual_duration_minutes = Column(Integer)
    notes = Column(Text)
    skip_reason = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    program = relationship("ScheduledActivity", back_populates="occurrences")
