"""
Tests for RecordingService, dood!
"""

import json
import os
from datetime import datetime, timezone

import httpx
import pytest

from http_recorder.config import RecorderConfig
from http_recorder.exceptions import DirectoryCreationError, RedactionError
from http_recorder.models import RedactionResult, RedactionType
from http_recorder.recording import RecordingService, formatTimestamp, toEpochMillis
from http_recorder.redaction import DEFAULT_MASK, compose, createJsonRedactor

CAPTURE_TIME = datetime(2023, 12, 7, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def service():
    return RecordingService()


def makeExchange(
    method="GET",
    url="https://api.example.com/users",
    requestContent=None,
    requestHeaders=None,
    status=200,
    responseContent=b'[{"id":1}]',
    responseHeaders=None,
):
    request = httpx.Request(method, url, content=requestContent, headers=requestHeaders)
    response = httpx.Response(status, content=responseContent, headers=responseHeaders, request=request)
    return request, response


def loadSavedFile(storagePath, transactionId):
    with open(os.path.join(storagePath, f"{transactionId}.json"), "r", encoding="utf-8") as f:
        return json.load(f)


class TestTimeHelpers:
    """Test capture time formatting"""

    def testEpochMillis(self):
        """Test exact millisecond conversion"""
        assert toEpochMillis(CAPTURE_TIME) == 1701945000000
        assert toEpochMillis(datetime(1970, 1, 1, 0, 0, 0, 123999, tzinfo=timezone.utc)) == 123

    def testFormatTimestamp(self):
        """Test ISO-8601 with milliseconds and Z suffix"""
        assert formatTimestamp(CAPTURE_TIME) == "2023-12-07T10:30:00.000Z"


class TestRecordTransaction:
    """Test recording a single exchange"""

    @pytest.mark.asyncio
    async def testWritesOneFile(self, service, recordConfig, storagePath):
        """Test that the storage directory is created and one file written"""
        request, response = makeExchange(
            requestHeaders={"Authorization": "Bearer secret", "Accept": "application/json"},
            responseHeaders={"x-request-id": "abc", "Set-Cookie": "s=1", "content-type": "application/json"},
        )
        transaction = await service.recordTransaction(request, response, recordConfig, now=CAPTURE_TIME)

        assert transaction.id == "1701945000000__GET_users"
        assert os.listdir(storagePath) == ["1701945000000__GET_users.json"]

        data = loadSavedFile(storagePath, transaction.id)
        assert data["id"] == "1701945000000__GET_users"
        assert data["timestamp"] == "2023-12-07T10:30:00.000Z"
        assert data["request"]["method"] == "GET"
        assert data["request"]["url"] == "https://api.example.com/users"
        assert "authorization" not in data["request"]["headers"]
        assert data["request"]["headers"]["accept"] == "application/json"
        assert "body" not in data["request"]
        assert data["response"]["status"] == 200
        assert data["response"]["headers"]["x-request-id"] == "abc"
        assert "set-cookie" not in data["response"]["headers"]
        assert data["response"]["body"] == [{"id": 1}]

    @pytest.mark.asyncio
    async def testJsonRequestBodyStoredCompact(self, service, recordConfig, storagePath):
        """Test that JSON request bodies are stored as compact JSON text"""
        request, response = makeExchange(method="POST", requestContent=b'{"name": "bob", "age": 3}')
        transaction = await service.recordTransaction(request, response, recordConfig, now=CAPTURE_TIME)

        assert transaction.id == "1701945000000__POST_users"
        assert loadSavedFile(storagePath, transaction.id)["request"]["body"] == '{"name":"bob","age":3}'

    @pytest.mark.asyncio
    async def testTextBodiesKept(self, service, recordConfig, storagePath):
        """Test that non JSON bodies are stored as text"""
        request, response = makeExchange(method="PUT", requestContent=b"plain=text", responseContent=b"<html/>")
        transaction = await service.recordTransaction(request, response, recordConfig, now=CAPTURE_TIME)

        data = loadSavedFile(storagePath, transaction.id)
        assert data["request"]["body"] == "plain=text"
        assert data["response"]["body"] == "<html/>"

    @pytest.mark.asyncio
    async def testEmptyResponseBody(self, service, recordConfig, storagePath):
        """Test that a 204 with no content is recorded with an empty body"""
        request, response = makeExchange(method="DELETE", status=204, responseContent=b"")
        transaction = await service.recordTransaction(request, response, recordConfig, now=CAPTURE_TIME)
        assert loadSavedFile(storagePath, transaction.id)["response"]["body"] in (None, "")

    @pytest.mark.asyncio
    async def testUnreadStreamingRequestBody(self, service, recordConfig):
        """Test that a streaming request body that was never read counts as no body"""

        async def chunks():
            yield b"chunk"

        request = httpx.Request("POST", "https://x.io/upload", content=chunks())
        response = httpx.Response(200, content=b"ok", request=request)
        transaction = await service.recordTransaction(request, response, recordConfig, now=CAPTURE_TIME)
        assert transaction.request.body is None

    @pytest.mark.asyncio
    async def testRedactionApplied(self, service, storagePath):
        """Test that both sides are redacted before being written"""
        config = RecorderConfig(
            path=storagePath,
            redaction=compose(createJsonRedactor(["password", "0.id"])),
        )
        request, response = makeExchange(method="POST", requestContent=b'{"user":"bob","password":"p"}')
        transaction = await service.recordTransaction(request, response, config, now=CAPTURE_TIME)

        data = loadSavedFile(storagePath, transaction.id)
        assert json.loads(data["request"]["body"]) == {"user": "bob", "password": DEFAULT_MASK}
        assert data["response"]["body"] == [{"id": DEFAULT_MASK}]

    @pytest.mark.asyncio
    async def testCustomExcludedHeaders(self, service, storagePath):
        """Test that configured exclusions are dropped on both sides"""
        config = RecorderConfig(path=storagePath, excludedHeaders=["X-Request-Id"])
        request, response = makeExchange(
            requestHeaders={"x-request-id": "req"}, responseHeaders={"X-Request-Id": "abc"}
        )
        transaction = await service.recordTransaction(request, response, config, now=CAPTURE_TIME)

        assert "x-request-id" not in transaction.request.headers
        assert "x-request-id" not in transaction.response.headers

    @pytest.mark.asyncio
    async def testRedactorSeesBothSides(self, service, storagePath):
        """Test that the redactor gets request then response context"""
        seen = []

        async def spy(context):
            seen.append((context.type, context.status, context.body))
            return RedactionResult()

        config = RecorderConfig(path=storagePath, redaction=spy)
        request, response = makeExchange()
        await service.recordTransaction(request, response, config, now=CAPTURE_TIME)

        assert seen == [(RedactionType.REQUEST, None, None), (RedactionType.RESPONSE, 200, [{"id": 1}])]

    @pytest.mark.asyncio
    async def testRedactionFailurePropagates(self, service, storagePath):
        """Test that errors reach the caller and nothing is written"""

        def broken(context):
            raise RuntimeError("boom")

        config = RecorderConfig(path=storagePath, redaction=broken)
        request, response = makeExchange()
        with pytest.raises(RedactionError):
            await service.recordTransaction(request, response, config, now=CAPTURE_TIME)
        assert os.listdir(storagePath) == []

    @pytest.mark.asyncio
    async def testStorageCreationFailure(self, service, tempDir):
        """Test that an impossible storage path raises DirectoryCreationError"""
        blocker = os.path.join(tempDir, "blocker")
        with open(blocker, "w") as f:
            f.write("x")

        request, response = makeExchange()
        with pytest.raises(DirectoryCreationError):
            await service.recordTransaction(
                request, response, RecorderConfig(path=os.path.join(blocker, "rec")), now=CAPTURE_TIME
            )

    @pytest.mark.asyncio
    async def testDefaultCaptureTime(self, service, recordConfig):
        """Test that the current time is used when none is given"""
        request, response = makeExchange()
        transaction = await service.recordTransaction(request, response, recordConfig)
        assert transaction.timestamp.endswith("Z")
        assert transaction.id.endswith("__GET_users")
