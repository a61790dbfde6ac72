class ProgressError(Exception):
    """Base class for progress aggregation failures."""


class InvalidAttemptError(ProgressError, ValueError):
    """An attempt record has a shape the engine cannot grade."""

    def __init__(self, message: str, attempt_id: str | None = None):
        self.attempt_id = attempt_id
        if attempt_id is not None:
            message = f"Attempt {attempt_id}: {message}"
        super().__init__(message)


class BlockInvariantError(ProgressError, AssertionError):
    """A block was assembled from the wrong constituents. Always a bug."""
