"""HTTP recorder entry point.

HttpRecorder wires a RecorderConfig to the recording transport, either by
handing out clients or by patching httpx.AsyncClient globally so clients
created by third-party code are intercepted as well.
"""

import logging
from typing import Any, Optional, Type

import httpx

from .config import RecorderConfig
from .transports import RecordingTransport

logger = logging.getLogger(__name__)


class HttpRecorder:
    """Records or replays HTTP traffic according to its configuration.

    Example:
        >>> config = RecorderConfig(path="./recordings", mode=RecorderMode.REPLAY)
        >>> async with HttpRecorder(config) as recorder:
        ...     async with httpx.AsyncClient() as client:
        ...         response = await client.get("https://api.example.com/users")
    """

    def __init__(self, config: RecorderConfig, wrapped: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the recorder.

        Args:
            config: Recorder configuration
            wrapped: Real transport used in record mode, defaults to httpx.AsyncHTTPTransport
        """
        self.config = config
        self.transport = RecordingTransport(config, wrapped=wrapped)
        self.originalClientClass: Optional[Type[httpx.AsyncClient]] = None

    def createClient(self, **kwargs: Any) -> httpx.AsyncClient:
        """Create an httpx client that goes through the recorder.

        Args:
            **kwargs: Passed to httpx.AsyncClient, except transport which is always ours

        Returns:
            An httpx.AsyncClient configured with the recording transport
        """
        kwargs["transport"] = self.transport
        clientClass = self.originalClientClass or httpx.AsyncClient
        return clientClass(**kwargs)

    async def __aenter__(self) -> "HttpRecorder":
        """Enter the async context manager and patch httpx globally.

        Returns:
            The recorder instance
        """
        recorderSelf = self
        self.originalClientClass = httpx.AsyncClient

        class PatchedAsyncClient(httpx.AsyncClient):
            def __init__(self, *args, **kwargs):
                # Force our transport to be used
                kwargs["transport"] = recorderSelf.transport
                super().__init__(*args, **kwargs)

        httpx.AsyncClient = PatchedAsyncClient
        logger.debug(f"Patched httpx.AsyncClient, mode: {self.config.mode}, path: {self.config.path}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit the async context manager and restore httpx.

        Args:
            exc_type: Exception type if an exception occurred
            exc_val: Exception value if an exception occurred
            exc_tb: Exception traceback if an exception occurred
        """
        if self.originalClientClass is not None:
            httpx.AsyncClient = self.originalClientClass
            self.originalClientClass = None
            logger.debug("Restored original httpx.AsyncClient")

    async def aclose(self) -> None:
        """Close the underlying real transport."""
        await self.transport.aclose()
