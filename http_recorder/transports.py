"""Custom httpx transports for recording and replaying HTTP traffic.

RecordingTransport is the single decision point every outbound call goes
through: in record mode it forwards to a real transport and stores the
exchange on the side, in replay mode it answers from recordings only and
never touches the network. ReplayTransport is the bare replayer.
"""

import logging
from typing import Optional

import httpx

from .config import RecorderConfig, RecorderMode
from .exceptions import HttpRecorderError, NoMatchingRecordingError, RecordingReadError
from .headers import mergeHeaders, resolveHeaders
from .recording import RecordingService
from .replay import ReplayService

logger = logging.getLogger(__name__)


async def replayRequest(replayService: ReplayService, request: httpx.Request, storagePath: str) -> httpx.Response:
    """Replay a request, translating every failure into an httpx transport error.

    Raises:
        NoMatchingRecordingError: If nothing was recorded for the request
        RecordingReadError: If the recordings could not be read
    """
    try:
        response = await replayService.findAndReplayTransaction(request, storagePath)
    except HttpRecorderError as e:
        logger.warning(f"Failed to read recordings for {request.method} {request.url}: {e}")
        raise RecordingReadError(request, e) from e

    if response is None:
        logger.warning(f"No matching recording found for {request.method} {request.url} in {storagePath}")
        raise NoMatchingRecordingError(request)

    return response


class RecordingTransport(httpx.AsyncBaseTransport):
    """Custom httpx transport that records or replays HTTP traffic.

    Before anything else the configured dynamic headers are resolved and
    added to the request, headers the request already carries win.

    In record mode the request is forwarded to the wrapped transport, the
    response is read and recorded, and the very same response is returned.
    Recording is best effort: any failure is logged and swallowed so a broken
    recorder never breaks the code under test.

    In replay mode the wrapped transport is never used.
    """

    def __init__(
        self,
        config: RecorderConfig,
        wrapped: Optional[httpx.AsyncBaseTransport] = None,
        recordingService: Optional[RecordingService] = None,
        replayService: Optional[ReplayService] = None,
    ):
        """Initialize the recording transport.

        Args:
            config: Recorder configuration
            wrapped: The real transport to wrap. If None, creates a default AsyncHTTPTransport in record mode.
            recordingService: Recording orchestrator, created if not given
            replayService: Replay orchestrator, created if not given
        """
        self.config = config
        self.excludedHeaders = config.getExcludedHeadersSet()
        if wrapped is None and config.mode == RecorderMode.RECORD:
            wrapped = httpx.AsyncHTTPTransport()
        self.wrapped = wrapped
        self.recordingService = recordingService or RecordingService()
        self.replayService = replayService or ReplayService()

    async def applyDynamicHeaders(self, request: httpx.Request) -> None:
        """Add resolved configured headers the request does not set itself."""
        # httpx.Headers keys are lowercase, request values come last and win
        resolved = {name.lower(): value for name, value in (await resolveHeaders(self.config.headers)).items()}
        merged = mergeHeaders(resolved, request.headers)
        for name in resolved:
            request.headers[name] = merged[name]

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Record or replay a single request depending on the configured mode.

        Args:
            request: The httpx Request to process.

        Returns:
            The live response (record mode) or a synthetic one (replay mode).

        Raises:
            NoMatchingRecordingError: Replay mode, nothing recorded for the request
            RecordingReadError: Replay mode, recordings could not be read
        """
        await self.applyDynamicHeaders(request)

        if self.config.mode == RecorderMode.REPLAY:
            return await replayRequest(self.replayService, request, self.config.path)

        if self.wrapped is None:
            self.wrapped = httpx.AsyncHTTPTransport()

        response = await self.wrapped.handle_async_request(request)
        await response.aread()

        try:
            await self.recordingService.recordTransaction(
                request,
                response,
                self.config,
                excludedHeaders=self.excludedHeaders,
            )
        except Exception as e:
            logger.warning(f"Failed to record transaction for {request.method} {request.url}: {e}")
            logger.exception(e)

        return response

    async def aclose(self) -> None:
        if self.wrapped is not None:
            await self.wrapped.aclose()


class ReplayTransport(httpx.AsyncBaseTransport):
    """Custom httpx transport that only replays recorded HTTP traffic.

    No dynamic headers, no recording, no network.
    """

    def __init__(self, path: str, replayService: Optional[ReplayService] = None):
        self.path = path
        self.replayService = replayService or ReplayService()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await replayRequest(self.replayService, request, self.path)
