"""
Replay orchestrator

Answers requests from recorded transactions. Stateless: every lookup
scans the storage directory again.
"""

import logging
from typing import Optional

import httpx

from .exceptions import TransactionNotFoundError
from .models import RecordedTransaction
from .serializer import TransactionSerializer
from .store import FileSystemTransactionStore

logger = logging.getLogger(__name__)

# Stored bodies are decoded text, these describe the original wire form
REPLAY_DROPPED_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


class ReplayService:
    """Finds recordings for requests and rebuilds httpx responses from them."""

    def __init__(
        self,
        store: Optional[FileSystemTransactionStore] = None,
        serializer: Optional[TransactionSerializer] = None,
    ):
        self.serializer = serializer or TransactionSerializer()
        self.store = store or FileSystemTransactionStore(self.serializer)

    async def findTransaction(self, request: httpx.Request, storagePath: str) -> Optional[RecordedTransaction]:
        """
        Find the recording matching the request method and URL.

        Returns:
            The first matching transaction, or None if there is none

        Raises:
            FileSystemReadError: If the recordings cannot be read
        """
        try:
            return await self.store.findByMethodAndUrl(request.method, str(request.url), storagePath)
        except TransactionNotFoundError:
            return None

    async def findAndReplayTransaction(self, request: httpx.Request, storagePath: str) -> Optional[httpx.Response]:
        """
        Replay the recorded response for a request.

        Returns:
            Synthetic response, or None if nothing was recorded for the request

        Raises:
            FileSystemReadError: If the recordings cannot be read
            BodySerializationError: If a structured body cannot be turned back to JSON
        """
        transaction = await self.findTransaction(request, storagePath)
        if transaction is None:
            return None

        logger.debug(f"Replaying {transaction.id} for {request.method} {request.url}")
        return self.createResponseFromRecording(transaction, request)

    async def hasRecording(self, request: httpx.Request, storagePath: str) -> bool:
        """Check whether a recording exists for the request."""
        return await self.findTransaction(request, storagePath) is not None

    def createResponseFromRecording(
        self, transaction: RecordedTransaction, request: Optional[httpx.Request] = None
    ) -> httpx.Response:
        """
        Build an httpx response from a recorded transaction.

        An empty stored body (null, "" or absent) replays as empty content
        whatever the status code is, so 204/205/304 need no special casing.
        Structured bodies are written out as compact JSON.
        """
        recorded = transaction.response
        body = recorded.body

        if body is None or body == "":
            content = b""
        elif isinstance(body, str):
            content = body.encode("utf-8")
        else:
            content = self.serializer.serializeBody(body).encode("utf-8")

        headers = {
            name: value for name, value in recorded.headers.items() if name.lower() not in REPLAY_DROPPED_HEADERS
        }

        return httpx.Response(
            status_code=recorded.status,
            headers=headers,
            content=content,
            request=request,
        )
