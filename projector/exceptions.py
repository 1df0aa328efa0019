"""Domain-specific exceptions with user-ready messages for payload projection."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from projector.schemas.projection import WriteResult


class ProjectionException(Exception):
    """Base exception class for projection errors.

    All projection exceptions include a user-ready message and a stable
    error code that callers can match on without parsing the message.
    """

    def __init__(self, message: str, error_code: str) -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class InvalidPathException(ProjectionException):
    """Exception raised when a payload path fails validation."""

    def __init__(self, path: str, cause: str) -> None:
        self.path = path
        self.cause = cause
        message = f"Invalid path {path!r}: {cause}"
        super().__init__(message, error_code="INVALID_PATH")


class TargetNotFoundException(ProjectionException):
    """Exception raised when the target directory does not exist."""

    def __init__(self, target_dir: str) -> None:
        self.target_dir = target_dir
        message = f"Target directory {target_dir} was not found"
        super().__init__(message, error_code="TARGET_NOT_FOUND")


class IOFailureException(ProjectionException):
    """Exception raised when an underlying filesystem operation fails."""

    def __init__(self, operation: str, cause: str, error_code: str = "IO_FAILURE") -> None:
        self.operation = operation
        self.cause = cause
        message = f"Cannot {operation} because the filesystem operation failed: {cause}"
        super().__init__(message, error_code=error_code)


class CleanupIncompleteException(IOFailureException):
    """Exception raised when pruning fails after a successful swap.

    The new version is already active when this is raised; only removal of
    stale links or superseded snapshot directories is incomplete. The
    ``result`` attribute carries the outcome of the write.
    """

    def __init__(self, cause: str, result: "WriteResult") -> None:
        self.result = result
        super().__init__(
            "prune stale projection state", cause, error_code="CLEANUP_INCOMPLETE"
        )
