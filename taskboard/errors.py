class TaskboardError(Exception):
    """Base class for errors surfaced by the store."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TaskboardError):
    """A required field is missing or malformed."""

    status_code = 400


class NotFound(TaskboardError):
    """The referenced board, list or task does not exist."""

    status_code = 404


class StoreError(TaskboardError):
    """The underlying database failed."""

    status_code = 500
