"""
Frequency rule evaluation for recurring activity programs.

Everything here is pure: no database, no clock. A rule is parsed once from
the stored program columns and then asked whether a given date is due.
"""
import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import FrozenSet, Optional

from diary.core.errors import ValidationError
from diary.models.program import FREQUENCY_TYPES

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# Daily, weekday and monthly rules repeat within a month; weekly and interval
# rules are stepped directly in next_due.
_NEXT_DUE_HORIZON_DAYS = 62


@dataclass(frozen=True)
class FrequencyRule:
    frequency_type: str
    start_date: date
    end_date: Optional[date] = None
    weekdays: FrozenSet[int] = frozenset()
    interval_days: Optional[int] = None

    @classmethod
    def from_program(cls, program) -> "FrequencyRule":
        """Builds a rule from anything shaped like a ScheduledActivity row."""
        return parse_rule(
            program.frequency_type,
            program.frequency_value,
            program.start_date,
            getattr(program, "end_date", None),
        )


def parse_weekdays(raw: Optional[str]) -> FrozenSet[int]:
    if raw is None or not str(raw).strip():
        raise ValidationError("specific_days requires at least one weekday index")
    days = set()
    for token in str(raw).split(","):
        token = token.strip()
        if not token:
            continue
        try:
            day = int(token)
        except ValueError:
            raise ValidationError(f"Invalid weekday index {token!r}") from None
        if not 0 <= day <= 6:
            raise ValidationError(f"Weekday index {day} out of range 0..6")
        days.add(day)
    if not days:
        raise ValidationError("specific_days requires at least one weekday index")
    return frozenset(days)


def parse_interval(raw: Optional[str]) -> int:
    if raw is None or not str(raw).strip():
        raise ValidationError("interval requires a day count")
    try:
        days = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"Invalid interval {raw!r}") from None
    if days < 1:
        raise ValidationError(f"Interval must be at least 1 day, got {days}")
    return days


def parse_rule(frequency_type: str, frequency_value: Optional[str], start_date: date,
               end_date: Optional[date] = None) -> FrequencyRule:
    """
    Validates the stored rule columns and returns a FrequencyRule.
    Raises ValidationError, never falls back to a default.
    """
    if frequency_type not in FREQUENCY_TYPES:
        raise ValidationError(f"Unknown frequency type {frequency_type!r}")
    if start_date is None:
        raise ValidationError("Rule has no start date")
    if end_date is not None and end_date < start_date:
        raise ValidationError("End date is before start date")

    if frequency_type == "specific_days":
        return FrequencyRule(frequency_type, start_date, end_date, weekdays=parse_weekdays(frequency_value))
    if frequency_type == "interval":
        return FrequencyRule(frequency_type, start_date, end_date, interval_days=parse_interval(frequency_value))
    return FrequencyRule(frequency_type, start_date, end_date)


def normalize_value(frequency_type: str, frequency_value: Optional[str]) -> Optional[str]:
    """Canonical storage form: sorted weekday list, plain integer, or None."""
    if frequency_type == "specific_days":
        return ",".join(str(d) for d in sorted(parse_weekdays(frequency_value)))
    if frequency_type == "interval":
        return str(parse_interval(frequency_value))
    return None


def monthly_due_day(anchor_day: int, year: int, month: int) -> int:
    # Anchors past the end of a short month are clamped to its last day (31st -> Apr 30, Feb 28/29)
    return min(anchor_day, calendar.monthrange(year, month)[1])


def is_due(rule: FrequencyRule, on: date) -> bool:
    if on < rule.start_date:
        return False
    if rule.end_date is not None and on > rule.end_date:
        return False

    elapsed = (on - rule.start_date).days
    kind = rule.frequency_type

    if kind == "daily":
        return True
    if kind == "weekly":
        return elapsed % 7 == 0
    if kind == "specific_days":
        if not rule.weekdays:
            raise ValidationError("specific_days rule has no weekdays")
        return on.weekday() in rule.weekdays
    if kind == "interval":
        if not rule.interval_days or rule.interval_days < 1:
            raise ValidationError("interval rule has no valid day count")
        return elapsed % rule.interval_days == 0
    if kind == "monthly":
        return on.day == monthly_due_day(rule.start_date.day, on.year, on.month)

    raise ValidationError(f"Unknown frequency type {kind!r}")


def is_program_due(program, on: date) -> bool:
    return is_due(FrequencyRule.from_program(program), on)


def next_due(rule: FrequencyRule, after: date) -> Optional[date]:
    """First due date on or after `after`, None once the rule has ended."""
    current = max(after, rule.start_date)
    kind = rule.frequency_type

    if kind in ("weekly", "interval"):
        step = 7 if kind == "weekly" else rule.interval_days
        if not step or step < 1:
            raise ValidationError("interval rule has no valid day count")
        current += timedelta(days=-(current - rule.start_date).days % step)
    else:
        for _ in range(_NEXT_DUE_HORIZON_DAYS):
            if is_due(rule, current):
                break
            current += timedelta(days=1)
        else:
            return None

    if rule.end_date is not None and current > rule.end_date:
        return None
    return current


def describe(rule: FrequencyRule) -> str:
    kind = rule.frequency_type
    if kind == "daily":
        return "Every day"
    if kind == "weekly":
        return f"Weekly on {WEEKDAY_LABELS[rule.start_date.weekday()]}"
    if kind == "specific_days":
        return ", ".join(WEEKDAY_LABELS[d] for d in sorted(rule.weekdays))
    if kind == "interval":
        return "Every day" if rule.interval_days == 1 else f"Every {rule.interval_days} days"
    return f"Monthly on day {rule.start_date.day}"
