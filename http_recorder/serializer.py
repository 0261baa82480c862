"""Serialization of recorded transactions and their bodies.

Bodies travel through the recorder in three shapes: absent (None), text
(str, possibly empty) and structured JSON values. Textual JSON is parsed
for redaction and stored structured, other text passes through unchanged.
None and "" are kept distinct all the way to disk and back.
"""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from . import utils
from .exceptions import BodySerializationError, TransactionSerializationError
from .models import RecordedTransaction

logger = logging.getLogger(__name__)


def _rejectJsonConstant(name: str) -> Any:
    # NaN, Infinity and -Infinity are accepted by json.loads but are not JSON
    raise ValueError(f"Not a JSON value: {name}")


class TransactionSerializer:
    """Converts between in-memory transactions/bodies and their JSON text form."""

    def serialize(self, transaction: RecordedTransaction) -> str:
        """Serialize a transaction to pretty-printed JSON.

        A request without body has no "body" key in the output, the
        response always carries one (possibly null).

        Raises:
            TransactionSerializationError: If the transaction holds values JSON cannot represent
        """
        try:
            data = transaction.model_dump(mode="json")
            if data["request"].get("body") is None:
                data["request"].pop("body", None)
            return utils.jsonDumps(data, indent=2)
        except (TypeError, ValueError) as e:
            raise TransactionSerializationError(
                f"Failed to serialize transaction {transaction.id}: {e}",
                operation="serialize",
                originalError=e,
            ) from e

    def deserialize(self, content: str) -> Optional[RecordedTransaction]:
        """Parse a stored transaction, returning None if the content is not a valid one."""
        try:
            return RecordedTransaction.model_validate_json(content)
        except ValidationError as e:
            logger.debug(f"Not a valid recorded transaction: {e.error_count()} validation errors")
            return None

    def deserializeStrict(self, content: str) -> RecordedTransaction:
        """Parse a stored transaction.

        Raises:
            TransactionSerializationError: If the content is not a valid transaction
        """
        try:
            return RecordedTransaction.model_validate_json(content)
        except ValidationError as e:
            raise TransactionSerializationError(
                f"Failed to deserialize transaction: {e}",
                operation="deserialize",
                originalError=e,
            ) from e

    def parseJsonBody(self, body: Any) -> Any:
        """Parse textual JSON bodies, anything else is returned unchanged.

        Strings that are not valid JSON (including "", "NaN" and "Infinity")
        are returned as-is.
        """
        if not isinstance(body, str):
            return body

        try:
            return json.loads(body, parse_constant=_rejectJsonConstant)
        except ValueError:
            return body

    def serializeBody(self, body: Any) -> str:
        """Serialize a body value to compact JSON text.

        Raises:
            BodySerializationError: If the value cannot be represented as JSON
        """
        try:
            return utils.jsonDumps(body, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise BodySerializationError(
                f"Failed to serialize body: {e}",
                bodyType=type(body).__name__,
                originalError=e,
            ) from e

    def decodeBody(self, content: Optional[bytes], encoding: Optional[str] = None) -> Optional[str]:
        """Decode raw body bytes to text, empty or missing content means no body."""
        if not content:
            return None
        return content.decode(encoding or "utf-8", errors="replace")
