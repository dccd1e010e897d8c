from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from diary.db.base import Base


class ActivityType(Base):
    """
    Catalog of activity kinds, shared by free logs and programs.
    """
    __tablename__ = "activity_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    icon = Column(String, default="fitness")
    color = Column(String, default="#FF9800")
    is_custom = Column(Boolean, default=False, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    programs = relationship("ScheduledActivity", back_populates="activity_type")
    logs = relationship("ActivityLog", back_populates="activity_type")


class ActivityLog(Base):
    """
    Free-form activity entry. Rows with scheduled_activity_id set are
    mirrors of a completed program occurrence.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        CheckConstraint("intensity BETWEEN 1 AND 10", name="ck_activity_logs_intensity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    activity_type_id = Column(Integer, ForeignKey("activity_types.id", ondelete="CASCADE"), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    intensity = Column(Integer, default=5, nullable=False)
    distance_km = Column(Float)
    calories = Column(Integer)
    date = Column(Date, nullable=False, index=True)
    time = Column(String, nullable=False)  # HH:MM
    notes = Column(Text)
    scheduled_activity_id = Column(
        Integer, ForeignKey("scheduled_activities.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    activity_type = relationship("ActivityType", back_populates="logs")
