# copycontext/core/errors.py

class CopyContextError(Exception):
    """Base class for errors raised by copycontext."""

class NoWorkspaceError(CopyContextError):
    """Raised when a snapshot is requested without an open project root."""

class ContentReadError(CopyContextError):
    """Raised by a host when a document's content cannot be read."""
    def __init__(self, path: str, reason: str):
        super().__init__(reason)
        self.path = path
        self.reason = reason
