"""Data models for the HTTP recorder.

This module defines the persisted transaction schema (pydantic models, one
JSON file per transaction) and the transient value objects passed through
the redaction pipeline.
"""

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

# <epoch-millis>__<METHOD>_<slug>, METHOD is any upper-cased HTTP token (M-SEARCH, ...)
TRANSACTION_ID_PATTERN = r"^\d+__[A-Z0-9!#$%&'*+.^_`|~-]+_[a-z0-9-]*$"


class RecordedRequest(BaseModel):
    """HTTP request as it was stored.

    The body is optional: a request without a body has no "body" key on disk.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[Any] = None


class RecordedResponse(BaseModel):
    """HTTP response as it was stored.

    The body is always present on disk but may be null.
    """

    model_config = ConfigDict(frozen=True)

    status: int
    headers: Dict[str, str]
    body: Any = None


class RecordedTransaction(BaseModel):
    """Complete recorded HTTP transaction.

    Represents a single request/response pair along with its identifier and
    capture time. Transactions are immutable once written.

    Example:
        {
            "id": "1701945000000__GET_users",
            "request": {"method": "GET", "url": "https://api.example.com/users", "headers": {}},
            "response": {"status": 200, "headers": {}, "body": [{"id": 1}]},
            "timestamp": "2023-12-07T10:30:00.000Z"
        }
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(pattern=TRANSACTION_ID_PATTERN)
    request: RecordedRequest
    response: RecordedResponse
    timestamp: str


class RedactionType(StrEnum):
    """Which side of the transaction a redaction context describes."""

    REQUEST = "request"
    RESPONSE = "response"


@dataclass(frozen=True)
class RedactionContext:
    """Input of a redaction step.

    Attributes:
        method: HTTP method of the request
        url: Full request URL
        headers: Header map of the side being redacted (already filtered by the header policy)
        body: Parsed body (JSON value, text or None)
        type: REQUEST or RESPONSE
        status: Response status code, only set for RESPONSE contexts
    """

    method: str
    url: str
    headers: Dict[str, str]
    type: RedactionType
    body: Any = None
    status: Optional[int] = None

    def withResult(self, result: "RedactionResult") -> "RedactionContext":
        """Return a new context with the non-None fields of result applied."""
        return replace(
            self,
            headers=result.headers if result.headers is not None else self.headers,
            body=result.body if result.body is not None else self.body,
        )


@dataclass(frozen=True)
class RedactionResult:
    """Output of a redaction step.

    A field left as None means "leave unchanged", any other value replaces
    the corresponding context field entirely.
    """

    headers: Optional[Dict[str, str]] = None
    body: Any = None
