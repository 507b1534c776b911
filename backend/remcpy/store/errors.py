"""Error taxonomy for the relay.

Every error carries the HTTP status it maps to. Request-path errors are
rendered as plaintext by the exception handler registered in ``remcpy.main``;
``DeleteFailed`` only ever reaches a log line because deletes are asynchronous.
"""


class RelayError(Exception):
    """Base exception for relay errors."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class InvalidIdentifier(RelayError):
    """Raised when the request path does not carry a usable ``@identifier``."""
    def __init__(self, message: str = "Invalid file identifier format. Use /@{identifier}"):
        super().__init__(message, status_code=400)


class MissingFilePart(RelayError):
    """Raised when the upload has no multipart ``file`` field."""
    def __init__(self, message: str = "Error reading provided file"):
        super().__init__(message, status_code=400)


class NotFound(RelayError):
    """Raised when no object is stored under an identifier."""
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__("File not found", status_code=404)


class CreateFailed(RelayError):
    """Raised when the storage entry cannot be created."""
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__("Internal error: file creation", status_code=500)


class WriteFailed(RelayError):
    """Raised when copying the upload into the storage entry is interrupted."""
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__("Internal error: file write failed", status_code=500)


class ReadFailed(RelayError):
    """Raised when an existing entry cannot be opened for reading."""
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__("Error reading provided file", status_code=500)


class StreamError(RelayError):
    """Raised when a download is interrupted after the status line was sent."""
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__("Error streaming file", status_code=500)


class DeleteFailed(RelayError):
    """Raised when a scheduled removal cannot delete its storage entry."""
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Error removing file: {path}", status_code=500)
