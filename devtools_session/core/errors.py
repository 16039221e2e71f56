"""Errors raised by the session core.

Each message is meant to be shown to the caller as-is and points at the call
that fixes the situation.
"""

CLOSE_PAGE_ERROR = "The last open page cannot be closed. It is fine to keep it open."
NO_PAGE_SELECTED = "No page selected"
SELECTED_PAGE_CLOSED = (
    "The selected page has been closed. Call list_pages to see open pages."
)
NO_PAGE_FOUND = "No page found"
NO_DIALOG_FOUND = "No open dialog found"
NO_SNAPSHOT = "No snapshot found. Use take_snapshot to capture one."
STALE_SNAPSHOT = (
    "This uid is coming from a stale snapshot. Call take_snapshot to get a fresh snapshot."
)
NO_SUCH_ELEMENT = "No such element found in the snapshot"
SAVE_FILE_ERROR = "Could not save a screenshot to a file"


class SessionError(Exception):
    """Base class for all session core errors."""


class PreconditionError(SessionError):
    """Raised when an operation's precondition does not hold."""


class LastPageError(PreconditionError):
    """Raised when closing the only visible page."""

    def __init__(self, message: str = CLOSE_PAGE_ERROR) -> None:
        super().__init__(message)


class PageNotFoundError(SessionError):
    """Raised when no visible page has the requested id."""

    def __init__(self, message: str = NO_PAGE_FOUND) -> None:
        super().__init__(message)


class SelectionError(SessionError):
    """Raised when the selected page cannot be used."""


class NoSelectionError(SelectionError):
    def __init__(self, message: str = NO_PAGE_SELECTED) -> None:
        super().__init__(message)


class StaleSelectionError(SelectionError):
    def __init__(self, message: str = SELECTED_PAGE_CLOSED) -> None:
        super().__init__(message)


class NoDialogError(SessionError):
    def __init__(self, message: str = NO_DIALOG_FOUND) -> None:
        super().__init__(message)


class SnapshotError(SessionError):
    """Raised when a uid cannot be used against the current snapshot."""


class NoSnapshotError(SnapshotError):
    def __init__(self, message: str = NO_SNAPSHOT) -> None:
        super().__init__(message)


class StaleSnapshotError(SnapshotError):
    def __init__(self, message: str = STALE_SNAPSHOT) -> None:
        super().__init__(message)


class ElementNotFoundError(SnapshotError):
    def __init__(self, message: str = NO_SUCH_ELEMENT) -> None:
        super().__init__(message)


class ElementDetachedError(ElementNotFoundError):
    """Raised when a snapshot node no longer maps to a live element."""


ElementResolutionError = ElementDetachedError


class WaitTimeoutError(SessionError):
    """Raised when a wait primitive gives up."""


class FileSaveError(SessionError, OSError):
    """Raised when persisting a snapshot or screenshot fails.

    The underlying error is available as ``__cause__``.
    """

    def __init__(self, message: str = SAVE_FILE_ERROR) -> None:
        super().__init__(message)
