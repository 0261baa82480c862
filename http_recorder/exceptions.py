"""
HTTP recorder exceptions

This module defines the exception hierarchy for the HTTP recorder.
Core errors inherit from HttpRecorderError. Errors surfaced to httpx callers
during replay inherit from httpx.TransportError so they look like any other
failed HTTP call.
"""

from typing import Optional

import httpx


class HttpRecorderError(Exception):
    """
    Base exception for all HTTP recorder errors.

    Catch this to handle any recorder failure generically.

    Args:
        message: Description of the error
        originalError: The original exception that caused this error (optional)
    """

    def __init__(self, message: str, originalError: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.originalError = originalError


class RecorderConfigError(HttpRecorderError):
    """
    Exception raised when recorder configuration is invalid.

    Raised when:
    - The storage path is missing or empty
    - The mode is not one of "record" / "replay"
    - A header source definition in the config file is malformed
    - The config file is missing or is not valid TOML
    """

    pass


class DirectoryCreationError(HttpRecorderError):
    """Exception raised when the storage directory cannot be created."""

    def __init__(self, message: str, directoryPath: str, originalError: Optional[BaseException] = None):
        super().__init__(message, originalError=originalError)
        self.directoryPath = directoryPath


class FileSystemReadError(HttpRecorderError):
    """
    Exception raised when reading the storage directory or a recording fails.

    Args:
        message: Description of the error
        path: Directory or file that could not be read
        operation: Name of the failed operation ("listDirectory" or "readFile")
    """

    def __init__(
        self,
        message: str,
        path: str,
        operation: str,
        originalError: Optional[BaseException] = None,
    ):
        super().__init__(message, originalError=originalError)
        self.path = path
        self.operation = operation


class FileSystemWriteError(HttpRecorderError):
    """Exception raised when a recording file cannot be written."""

    def __init__(
        self,
        message: str,
        filePath: str,
        operation: str,
        originalError: Optional[BaseException] = None,
    ):
        super().__init__(message, originalError=originalError)
        self.filePath = filePath
        self.operation = operation


class TransactionNotFoundError(HttpRecorderError):
    """Exception raised when no stored transaction matches (method, url)."""

    def __init__(self, message: str, method: str, url: str):
        super().__init__(message)
        self.method = method
        self.url = url


class TransactionSerializationError(HttpRecorderError):
    """Exception raised when a whole transaction cannot be (de)serialized."""

    def __init__(self, message: str, operation: str, originalError: Optional[BaseException] = None):
        super().__init__(message, originalError=originalError)
        self.operation = operation


class BodySerializationError(HttpRecorderError):
    """Exception raised when a request or response body cannot be turned into JSON text."""

    def __init__(self, message: str, bodyType: str, originalError: Optional[BaseException] = None):
        super().__init__(message, originalError=originalError)
        self.bodyType = bodyType


class RedactionError(HttpRecorderError):
    """
    Exception raised when a redactor fails.

    Exceptions thrown by user supplied redaction callables are wrapped
    into this error, the original one is available as originalError.
    """

    pass


class NoMatchingRecordingError(httpx.TransportError):
    """Replay-mode failure: there is no recording for the request."""

    def __init__(self, request: httpx.Request):
        super().__init__(f"No matching recording found for {request.method} {request.url}", request=request)


class RecordingReadError(httpx.TransportError):
    """Replay-mode failure: recordings could not be read."""

    def __init__(self, request: httpx.Request, cause: HttpRecorderError):
        super().__init__(f"Recording error: {cause.message}", request=request)
        self.cause = cause
