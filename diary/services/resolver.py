"""
Resolves which programs are due on a date and what their status is.

resolve_day works on plain objects (ORM rows or anything with the same
attributes) so it can be exercised without a database.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Collection, Dict, Iterable, List, Optional

from diary.core.errors import ConfigurationError, ValidationError
from diary.models.program import PENDING
from diary.services.frequency import FrequencyRule, is_due

logger = logging.getLogger(__name__)


@dataclass
class DayEntry:
    program: Any
    status: str
    occurrence: Optional[Any] = None


@dataclass
class ProgramDiagnostic:
    program_id: int
    name: str
    kind: str  # "validation" | "configuration"
    message: str


@dataclass
class DayResolution:
    day: date
    entries: List[DayEntry] = field(default_factory=list)
    diagnostics: List[ProgramDiagnostic] = field(default_factory=list)


def check_program(program, on: date, activity_type_ids: Optional[Collection[int]] = None) -> bool:
    """
    Returns whether the program is due on `on`.
    Raises ConfigurationError for a dangling activity type, ValidationError for a bad rule.
    """
    if activity_type_ids is not None:
        if program.activity_type_id is None or program.activity_type_id not in activity_type_ids:
            raise ConfigurationError(
                f"Program {program.id} references missing activity type {program.activity_type_id}"
            )
    return is_due(FrequencyRule.from_program(program), on)


def _sort_key(entry: DayEntry):
    program = entry.program
    reminder = program.reminder_time if program.reminder_enabled and program.reminder_time else None
    return (reminder is None, reminder or "", program.name or "", program.id or 0)


def resolve_day(
    programs: Iterable[Any],
    logs_for_date: Iterable[Any],
    on: date,
    activity_type_ids: Optional[Collection[int]] = None,
) -> DayResolution:
    """
    Builds the day view: one entry per active program due on `on`.

    Status comes from the occurrence row for (program, on) when there is one,
    otherwise the program is pending. A program with a broken rule or type
    reference is reported in diagnostics and skipped; the others still resolve.
    """
    by_program: Dict[int, Any] = {}
    for occurrence in logs_for_date:
        if occurrence.date == on:
            by_program[occurrence.scheduled_activity_id] = occurrence

    resolution = DayResolution(day=on)
    for program in programs:
        if not program.is_active:
            continue
        try:
            due = check_program(program, on, activity_type_ids)
        except ValidationError as exc:
            logger.warning(f"Skipping program {program.id} on {on}: invalid rule ({exc})")
            resolution.diagnostics.append(ProgramDiagnostic(program.id, program.name, "validation", str(exc)))
            continue
        except ConfigurationError as exc:
            logger.warning(f"Skipping program {program.id} on {on}: {exc}")
            resolution.diagnostics.append(ProgramDiagnostic(program.id, program.name, "configuration", str(exc)))
            continue

        if not due:
            continue

        occurrence = by_program.get(program.id)
        status = occurrence.status if occurrence is not None else PENDING
        resolution.entries.append(DayEntry(program=program, status=status, occurrence=occurrence))

    resolution.entries.sort(key=_sort_key)
    return resolution
