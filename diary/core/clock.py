from datetime import date, datetime


class Clock:
    """
    Source of "today" for the scheduling services.
    Routes receive it through the get_clock dependency so tests can pin the date.
    """

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment
