"""HTTP recording and replay for tests.

This package intercepts httpx traffic at the transport layer. In record mode
real requests go through and every exchange is written, filtered and
redacted, to its own JSON file. In replay mode requests are answered from
those files by exact method and URL match, without touching the network.
"""

from .config import ConfigManager, RecorderConfig, RecorderMode
from .exceptions import (
    BodySerializationError,
    DirectoryCreationError,
    FileSystemReadError,
    FileSystemWriteError,
    HttpRecorderError,
    NoMatchingRecordingError,
    RecorderConfigError,
    RecordingReadError,
    RedactionError,
    TransactionNotFoundError,
    TransactionSerializationError,
)
from .headers import (
    DEFAULT_EXCLUDED_HEADERS,
    EnvHeaderSource,
    HeaderSource,
    StaticHeaderSource,
    createExcludedHeadersSet,
    filterHeaders,
)
from .id_generator import generateTransactionId, generateTransactionIdNow, slugify
from .models import (
    RecordedRequest,
    RecordedResponse,
    RecordedTransaction,
    RedactionContext,
    RedactionResult,
    RedactionType,
)
from .recorder import HttpRecorder
from .recording import RecordingService
from .redaction import (
    DEFAULT_MASK,
    ConditionalRedactor,
    ComposedRedactor,
    FunctionRedactor,
    HeaderRedactor,
    JsonPathRedactor,
    PatternRedactor,
    RedactionService,
    Redactor,
    UrlParamRedactor,
    compose,
    createConditionalRedactor,
    createHeaderRedactor,
    createJsonRedactor,
    createPatternRedactor,
    createUrlParamRedactor,
    maskHeaders,
    maskJson,
    maskUrlParams,
)
from .replay import ReplayService
from .serializer import TransactionSerializer
from .store import FileSystemTransactionStore
from .transports import RecordingTransport, ReplayTransport

__all__ = [
    # Entry points
    "HttpRecorder",
    "RecordingTransport",
    "ReplayTransport",
    # Configuration
    "ConfigManager",
    "RecorderConfig",
    "RecorderMode",
    "EnvHeaderSource",
    "HeaderSource",
    "StaticHeaderSource",
    # Services
    "FileSystemTransactionStore",
    "RecordingService",
    "RedactionService",
    "ReplayService",
    "TransactionSerializer",
    # Headers and ids
    "DEFAULT_EXCLUDED_HEADERS",
    "createExcludedHeadersSet",
    "filterHeaders",
    "generateTransactionId",
    "generateTransactionIdNow",
    "slugify",
    # Redaction
    "DEFAULT_MASK",
    "ComposedRedactor",
    "ConditionalRedactor",
    "FunctionRedactor",
    "HeaderRedactor",
    "JsonPathRedactor",
    "PatternRedactor",
    "Redactor",
    "UrlParamRedactor",
    "compose",
    "createConditionalRedactor",
    "createHeaderRedactor",
    "createJsonRedactor",
    "createPatternRedactor",
    "createUrlParamRedactor",
    "maskHeaders",
    "maskJson",
    "maskUrlParams",
    # Data models
    "RecordedRequest",
    "RecordedResponse",
    "RecordedTransaction",
    "RedactionContext",
    "RedactionResult",
    "RedactionType",
    # Errors
    "BodySerializationError",
    "DirectoryCreationError",
    "FileSystemReadError",
    "FileSystemWriteError",
    "HttpRecorderError",
    "NoMatchingRecordingError",
    "RecorderConfigError",
    "RecordingReadError",
    "RedactionError",
    "TransactionNotFoundError",
    "TransactionSerializationError",
]
