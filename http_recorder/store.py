"""
Filesystem transaction store

This module persists recorded transactions as one pretty-printed JSON file
per transaction, laid out flat in a single directory, and finds them again
by exact (method, url) match.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional

from .exceptions import (
    DirectoryCreationError,
    FileSystemReadError,
    FileSystemWriteError,
    TransactionNotFoundError,
)
from .models import RecordedTransaction
from .serializer import TransactionSerializer

logger = logging.getLogger(__name__)


class FileSystemTransactionStore:
    """
    Filesystem-based transaction store.

    The store exclusively owns its storage directory. Lookups are a linear
    scan: every call lists the directory and reads every *.json file, with
    no index and no caching, so recordings added or removed by hand are
    picked up immediately.

    Features:
    - Idempotent recursive directory creation
    - Unparseable files are skipped during lookup instead of failing it
    - Blocking filesystem work runs in a worker thread

    Example:
        >>> store = FileSystemTransactionStore()
        >>> await store.ensureStorageExists("./recordings")
        >>> await store.save(transaction, store.getFilePath("./recordings", transaction.id))
        >>> found = await store.findByMethodAndUrl("GET", "https://api.example.com/users", "./recordings")
    """

    def __init__(self, serializer: Optional[TransactionSerializer] = None):
        self.serializer = serializer or TransactionSerializer()

    @staticmethod
    def getFilePath(storagePath: str, transactionId: str) -> str:
        """Get the file path of a transaction inside the storage directory."""
        return str(Path(storagePath) / f"{transactionId}.json")

    async def ensureStorageExists(self, storagePath: str) -> None:
        """
        Create the storage directory (and parents) if needed.

        Raises:
            DirectoryCreationError: If the directory cannot be created
        """
        try:
            await asyncio.to_thread(Path(storagePath).mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError(
                f"Failed to create directory '{storagePath}': {e}",
                directoryPath=storagePath,
                originalError=e,
            ) from e

    async def save(self, transaction: RecordedTransaction, filePath: str) -> None:
        """
        Write a transaction to filePath as pretty-printed JSON.

        Raises:
            TransactionSerializationError: If the transaction cannot be serialized
            FileSystemWriteError: If the file cannot be written
        """
        content = self.serializer.serialize(transaction)

        try:
            await asyncio.to_thread(self._writeFile, filePath, content)
        except OSError as e:
            raise FileSystemWriteError(
                f"Failed to write recording '{filePath}': {e}",
                filePath=filePath,
                operation="writeFile",
                originalError=e,
            ) from e

        logger.debug(f"Saved transaction {transaction.id} to {filePath}")

    async def listTransactionFiles(self, storagePath: str) -> List[str]:
        """
        List *.json file names in the storage directory, in directory order.

        Raises:
            FileSystemReadError: If the directory cannot be listed
        """
        try:
            names = await asyncio.to_thread(os.listdir, storagePath)
        except OSError as e:
            raise FileSystemReadError(
                f"Failed to read directory '{storagePath}': {e}",
                path=storagePath,
                operation="listDirectory",
                originalError=e,
            ) from e

        return [name for name in names if name.endswith(".json")]

    async def findByMethodAndUrl(self, method: str, url: str, storagePath: str) -> RecordedTransaction:
        """
        Find the first stored transaction with exactly this method and URL.

        Matching is plain string equality, no normalization of trailing
        slashes, query parameter order or host casing. With several matching
        recordings the first one in directory listing order wins, which is
        filesystem dependent and not necessarily creation order.

        Args:
            method: HTTP method of the incoming request
            url: Full URL of the incoming request
            storagePath: Directory holding the recordings

        Returns:
            The matching RecordedTransaction

        Raises:
            FileSystemReadError: If the directory or a recording file cannot be read
            TransactionNotFoundError: If no recording matches
        """
        for fileName in await self.listTransactionFiles(storagePath):
            filePath = os.path.join(storagePath, fileName)
            try:
                content = await asyncio.to_thread(self._readFile, filePath)
            except OSError as e:
                raise FileSystemReadError(
                    f"Failed to read file '{filePath}': {e}",
                    path=filePath,
                    operation="readFile",
                    originalError=e,
                ) from e
            except UnicodeDecodeError:
                logger.debug(f"Skipping non UTF-8 recording {filePath}")
                continue

            transaction = self.serializer.deserialize(content)
            if transaction is None:
                logger.debug(f"Skipping unparseable recording {filePath}")
                continue

            if transaction.request.method == method and transaction.request.url == url:
                return transaction

        raise TransactionNotFoundError(
            f"No matching transaction found for {method} {url}",
            method=method,
            url=url,
        )

    @staticmethod
    def _writeFile(filePath: str, content: str) -> None:
        with open(filePath, "w", encoding="utf-8") as f:
            f.write(content)

    @staticmethod
    def _readFile(filePath: str) -> str:
        with open(filePath, "r", encoding="utf-8") as f:
            return f.read()
