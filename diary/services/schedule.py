"""
Storage-backed scheduling: day view, status changes and the activity-log mirror.

A completed occurrence always has exactly one mirrored ActivityLog row
(scheduled_activity_id = program, same date); any other status has none.
set_status keeps that in the same transaction as the occurrence upsert,
reconcile_day repairs rows that drifted apart.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from diary.core.clock import Clock
from diary.core.config import settings
from diary.core.errors import ConfigurationError, NotFoundError, StorageError, ValidationError
from diary.models.activity import ActivityLog, ActivityType
from diary.models.program import OCCURRENCE_STATUSES, ScheduledActivity, ScheduledActivityLog
from diary.services import catalog
from diary.services.frequency import FrequencyRule, is_due
from diary.services.resolver import DayResolution, check_program, resolve_day

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


@dataclass
class ReconcileReport:
    day: date
    repaired: int = 0
    unreconciled: List[int] = field(default_factory=list)


class ScheduleService:

    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock

    # --- READS ---

    def get_program(self, program_id: int) -> ScheduledActivity:
        program = self.db.get(ScheduledActivity, program_id)
        if not program:
            raise NotFoundError(f"Program {program_id} not found")
        return program

    def known_type_ids(self) -> Set[int]:
        return {type_id for (type_id,) in self.db.query(ActivityType.id).all()}

    def list_day(self, day: Optional[date] = None) -> DayResolution:
        """
        Due programs for `day` (default: today) with their status.
        The result is a snapshot; re-fetch after any write.
        """
        day = day or self.clock.today()
        try:
            programs = self.db.query(ScheduledActivity)\
                .filter(ScheduledActivity.is_active.is_(True))\
                .order_by(ScheduledActivity.id)\
                .all()
            occurrences = self.db.query(ScheduledActivityLog)\
                .filter(ScheduledActivityLog.date == day)\
                .all()
            type_ids = self.known_type_ids()
        except SQLAlchemyError as exc:
            logger.error(f"Could not load schedule for {day}: {exc}")
            raise StorageError(f"Could not load schedule for {day}") from exc

        return resolve_day(programs, occurrences, day, type_ids)

    def get_occurrence(self, program_id: int, day: date) -> Optional[ScheduledActivityLog]:
        return self.db.query(ScheduledActivityLog)\
            .filter(ScheduledActivityLog.scheduled_activity_id == program_id,
                    ScheduledActivityLog.date == day)\
            .populate_existing()\
            .first()

    def week_summary(self, program_id: int, day: Optional[date] = None) -> Dict:
        """Occurrence counts for the Monday-to-Sunday week containing `day`."""
        day = day or self.clock.today()
        week_start = day - timedelta(days=day.weekday())
        week_end = week_start + timedelta(days=6)
        try:
            program = self.get_program(program_id)
            rows = self.db.query(ScheduledActivityLog.status, func.count(ScheduledActivityLog.id))\
                .filter(ScheduledActivityLog.scheduled_activity_id == program_id,
                        ScheduledActivityLog.date >= week_start,
                        ScheduledActivityLog.date <= week_end)\
                .group_by(ScheduledActivityLog.status)\
                .all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not load week summary for program {program_id}") from exc

        rule = FrequencyRule.from_program(program)
        counts = dict(rows)
        return {
            "program_id": program_id,
            "week_start": week_start,
            "week_end": week_end,
            "scheduled": sum(1 for offset in range(7) if is_due(rule, week_start + timedelta(days=offset))),
            "completed": counts.get("completed", 0),
            "skipped": counts.get("skipped", 0),
            "partial": counts.get("partial", 0),
        }

    # --- WRITES ---

    def set_status(self, program_id: int, day: date, status: str,
                   actual_duration_minutes: Optional[int] = None,
                   notes: Optional[str] = None,
                   skip_reason: Optional[str] = None) -> ScheduledActivityLog:
        """
        Records the status of a program on a date.

        Occurrence upsert and mirror reconciliation share one transaction:
        either both land or neither does.
        """
        if status not in OCCURRENCE_STATUSES:
            raise ValidationError(f"Unknown status {status!r}")

        try:
            program = self.get_program(program_id)
            if not program.is_active:
                raise ValidationError(f"Program {program_id} is not active")
            if not check_program(program, day, self.known_type_ids()):
                raise ValidationError(f"Program {program_id} is not scheduled on {day}")

            self._upsert_occurrence(program_id, day, status, actual_duration_minutes, notes, skip_reason)
            occurrence = self.get_occurrence(program_id, day)
            self._sync_mirror(program, day, occurrence)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Failed to set status {status} for program {program_id} on {day}: {exc}")
            raise StorageError(f"Could not save status for program {program_id} on {day}") from exc
        except (ValidationError, ConfigurationError, NotFoundError):
            self.db.rollback()
            raise

        logger.info(f"Set status {status} for program {program_id} on {day}")
        return occurrence

    def clear_status(self, program_id: int, day: date) -> bool:
        """Back to pending: drops the occurrence and its mirror. Returns False if nothing was recorded."""
        try:
            program = self.get_program(program_id)
            occurrence = self.get_occurrence(program_id, day)
            if occurrence is not None:
                self.db.delete(occurrence)
            mirrors_removed = self._sync_mirror(program, day, None)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Could not clear status for program {program_id} on {day}") from exc

        if occurrence is not None:
            logger.info(f"Cleared status for program {program_id} on {day}")
        return occurrence is not None or mirrors_removed

    def reconcile_day(self, day: Optional[date] = None) -> ReconcileReport:
        """
        Idempotent repair of occurrence/mirror drift for one date.
        Reports how many programs had their mirror changed and which ones
        could not be repaired because their activity type is gone.
        """
        day = day or self.clock.today()
        report = ReconcileReport(day=day)
        try:
            occurrences = {
                row.scheduled_activity_id: row
                for row in self.db.query(ScheduledActivityLog).filter(ScheduledActivityLog.date == day).all()
            }
            mirrored_ids = {
                program_id for (program_id,) in self.db.query(ActivityLog.scheduled_activity_id)
                .filter(ActivityLog.date == day, ActivityLog.scheduled_activity_id.isnot(None))
                .distinct()
                .all()
            }
            for program_id in sorted(set(occurrences) | mirrored_ids):
                program = self.db.get(ScheduledActivity, program_id)
                if program is None:
                    continue
                try:
                    if self._sync_mirror(program, day, occurrences.get(program_id)):
                        report.repaired += 1
                except ConfigurationError as exc:
                    logger.warning(f"Cannot reconcile program {program_id} on {day}: {exc}")
                    report.unreconciled.append(program_id)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Could not reconcile activity logs for {day}") from exc

        if report.repaired:
            logger.warning(f"Repaired {report.repaired} mirrored activity log(s) on {day}")
        return report

    # --- INTERNALS ---

    def _upsert_occurrence(self, program_id, day, status, actual_duration_minutes, notes, skip_reason):
        # Single INSERT ... ON CONFLICT statement keyed by (program, date); never read-then-write
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise StorageError(f"Upsert not supported for database dialect {dialect!r}")

        stmt = insert(ScheduledActivityLog).values(
            scheduled_activity_id=program_id,
            date=day,
            status=status,
            actual_duration_minutes=actual_duration_minutes,
            notes=notes,
            skip_reason=skip_reason,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["scheduled_activity_id", "date"],
            set_={
                "status": stmt.excluded.status,
                "actual_duration_minutes": stmt.excluded.actual_duration_minutes,
                "notes": stmt.excluded.notes,
                "skip_reason": stmt.excluded.skip_reason,
                "updated_at": func.now(),
            },
        )
        self.db.execute(stmt)

    def _sync_mirror(self, program: ScheduledActivity, day: date,
                     occurrence: Optional[ScheduledActivityLog]) -> bool:
        """
        Makes the mirrored ActivityLog rows match the occurrence.
        Returns True when anything had to change.
        """
        mirrors = self.db.query(ActivityLog)\
            .filter(ActivityLog.scheduled_activity_id == program.id, ActivityLog.date == day)\
            .order_by(ActivityLog.id)\
            .all()

        if occurrence is None or occurrence.status != "completed":
            for mirror in mirrors:
                self.db.delete(mirror)
            return bool(mirrors)

        if program.activity_type_id is None:
            raise ConfigurationError(f"Program {program.id} has no activity type to log against")

        duration = occurrence.actual_duration_minutes or program.duration_minutes
        if not mirrors:
            self.db.add(ActivityLog(
                activity_type_id=program.activity_type_id,
                duration_minutes=duration,
                intensity=settings.mirror_intensity,
                date=day,
                time=self.clock.now().strftime("%H:%M"),
                notes=occurrence.notes,
                scheduled_activity_id=program.id,
            ))
            catalog.record_usage(self.db, program.activity_type_id)
            return True

        keep, extras = mirrors[0], mirrors[1:]
        changed = bool(extras)
        if keep.duration_minutes != duration:
            keep.duration_minutes = duration
            changed = True
        if keep.activity_type_id != program.activity_type_id:
            keep.activity_type_id = program.activity_type_id
            changed = True
        for extra in extras:
            self.db.delete(extra)
        return changed
