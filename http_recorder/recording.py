"""
Recording orchestrator

Turns a live request and the response it produced into a RecordedTransaction:
bodies are parsed, headers filtered, everything redacted, and the result is
written to its own file in the storage directory.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Set

import httpx

from .config import RecorderConfig
from .id_generator import generateTransactionId
from .models import RecordedRequest, RecordedResponse, RecordedTransaction
from .redaction import RedactionService
from .serializer import TransactionSerializer
from .store import FileSystemTransactionStore

logger = logging.getLogger(__name__)


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def toEpochMillis(now: datetime) -> int:
    return (now - EPOCH) // timedelta(milliseconds=1)


def formatTimestamp(now: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RecordingService:
    """
    Records request/response pairs to the transaction store.

    Every call writes exactly one new file, nothing is ever updated in place.
    Errors are propagated to the caller, the transport decides that they are
    not fatal.
    """

    def __init__(
        self,
        store: Optional[FileSystemTransactionStore] = None,
        serializer: Optional[TransactionSerializer] = None,
        redactionService: Optional[RedactionService] = None,
    ):
        self.serializer = serializer or TransactionSerializer()
        self.store = store or FileSystemTransactionStore(self.serializer)
        self.redactionService = redactionService or RedactionService()

    def extractRequestBody(self, request: httpx.Request) -> Optional[str]:
        """
        Get the request body as text.

        Streaming bodies that were never read and empty bodies both count
        as no body at all.
        """
        try:
            content = request.content
        except httpx.RequestNotRead:
            return None
        return self.serializer.decodeBody(content)

    def prepareFinalRequestBody(self, originalBody: Optional[str], parsedBody: Any, redactedBody: Any) -> Optional[str]:
        """
        Convert the redacted request body back to its stored text form.

        Request bodies are stored as text. A body that was parsed as JSON is
        written back as compact JSON of its (possibly redacted) value, plain
        text is stored as the redactor left it.
        """
        if redactedBody is None:
            return originalBody
        # parseJsonBody() returns its input as-is for non JSON text
        if isinstance(redactedBody, str) and parsedBody is originalBody:
            return redactedBody
        return self.serializer.serializeBody(redactedBody)

    async def recordTransaction(
        self,
        request: httpx.Request,
        response: httpx.Response,
        config: RecorderConfig,
        excludedHeaders: Optional[Set[str]] = None,
        now: Optional[datetime] = None,
    ) -> RecordedTransaction:
        """
        Record a request and its (already read) response.

        Args:
            request: The request as it was sent
            response: The live response, its content must be read already
            config: Recorder configuration (storage path and redaction)
            excludedHeaders: Lowercased header names to drop, defaults to the config's set
            now: Capture time, defaults to the current time

        Returns:
            The transaction as it was written to disk

        Raises:
            DirectoryCreationError: If the storage directory cannot be created
            RedactionError: If the redactor fails
            BodySerializationError: If a redacted body cannot be turned back to JSON
            TransactionSerializationError: If the transaction cannot be serialized
            FileSystemWriteError: If the recording cannot be written
        """
        if now is None:
            now = datetime.now(timezone.utc)
        if excludedHeaders is None:
            excludedHeaders = config.getExcludedHeadersSet()

        method = request.method
        url = str(request.url)
        transactionId = generateTransactionId(method, url, toEpochMillis(now))
        filePath = self.store.getFilePath(config.path, transactionId)

        await self.store.ensureStorageExists(config.path)

        originalRequestBody = self.extractRequestBody(request)
        requestBody = self.serializer.parseJsonBody(originalRequestBody)
        responseBody = self.serializer.parseJsonBody(response.text)

        redactedRequest, redactedResponse = await self.redactionService.applyRedaction(
            method=method,
            url=url,
            requestHeaders=request.headers,
            requestBody=requestBody,
            responseHeaders=response.headers,
            responseBody=responseBody,
            status=response.status_code,
            excludedHeaders=excludedHeaders,
            redaction=config.redaction,
        )

        transaction = RecordedTransaction(
            id=transactionId,
            request=RecordedRequest(
                method=method,
                url=url,
                headers=redactedRequest.headers,
                body=self.prepareFinalRequestBody(originalRequestBody, requestBody, redactedRequest.body),
            ),
            response=RecordedResponse(
                status=response.status_code,
                headers=redactedResponse.headers,
                body=redactedResponse.body,
            ),
            timestamp=formatTimestamp(now),
        )

        await self.store.save(transaction, filePath)
        logger.debug(f"Recorded {method} {url} as {transactionId}")
        return transaction
