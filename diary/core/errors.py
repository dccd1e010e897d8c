class DiaryError(Exception):
    """Base class for every error raised by the diary services."""


class ValidationError(DiaryError):
    """
    A frequency rule or status change is malformed.
    e.g. 'interval' without a day count, an unknown frequency type,
    or a status recorded on a date the program is not scheduled.
    """


class ConfigurationError(DiaryError):
    """A program references an activity type that does not exist, or a setting is out of range."""


class StorageError(DiaryError):
    """A read or write against the database failed. The transaction was rolled back."""


class NotFoundError(DiaryError):
    pass
