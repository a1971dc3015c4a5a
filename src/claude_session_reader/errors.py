"""Exception types raised by the session reader."""


class ClaudeReaderError(Exception):
    """Base class for reader errors surfaced to callers."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class FileScanError(ClaudeReaderError):
    """A single transcript file could not be scanned."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to scan {path}: {reason}")
        self.path = path
        self.reason = reason


class ScanTimeoutError(FileScanError):
    """A line scan ran past its wall-clock deadline."""

    def __init__(self, path: str, timeout: float):
        super().__init__(path, f"timed out after {timeout:g}s")
        self.timeout = timeout


class ChatHistoryReadError(ClaudeReaderError):
    """The project's transcript directory could not be read."""

    def __init__(self, message: str = "Failed to read Claude chat history"):
        super().__init__(message, status_code=500)
