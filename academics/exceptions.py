from django.core.exceptions import ObjectDoesNotExist


class ResultsError(Exception):
    """Base class for errors raised by the results engine."""


class NotFoundError(ResultsError, ObjectDoesNotExist):
    """A student, class, subject or result that the caller referenced does not exist."""


class InvalidStateError(ResultsError):
    """The requested transition is not allowed from the result's current state."""


class StorageError(ResultsError):
    """The database failed while the engine was reading or writing results."""
