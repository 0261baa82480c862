"""
Pytest configuration and common fixtures for http_recorder tests.

All fixtures follow camelCase naming convention. No test touches the
network: the "real" transport is always an httpx.MockTransport.
"""

import json
import os
import shutil
import tempfile
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from http_recorder import RecorderConfig, RecorderMode

# ============================================================================
# Helpers
# ============================================================================


def writeRecording(
    storagePath: str,
    transactionId: str,
    *,
    method: str = "GET",
    url: str = "https://api.example.com/users",
    status: int = 200,
    headers: Optional[Dict[str, str]] = None,
    body: Any = None,
    omitBody: bool = False,
    requestBody: Any = None,
) -> str:
    """Write a recording file by hand, the way a user or another run would, dood!"""
    request: Dict[str, Any] = {"method": method, "url": url, "headers": {}}
    if requestBody is not None:
        request["body"] = requestBody
    response: Dict[str, Any] = {"status": status, "headers": headers or {}}
    if not omitBody:
        response["body"] = body

    data = {
        "id": transactionId,
        "request": request,
        "response": response,
        "timestamp": "2023-12-07T10:30:00.000Z",
    }
    os.makedirs(storagePath, exist_ok=True)
    filePath = os.path.join(storagePath, f"{transactionId}.json")
    with open(filePath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    return filePath


def readRecordings(storagePath: str) -> List[Dict[str, Any]]:
    """Load every recording file in the directory"""
    result = []
    for name in sorted(os.listdir(storagePath)):
        if name.endswith(".json"):
            with open(os.path.join(storagePath, name), "r", encoding="utf-8") as f:
                result.append(json.load(f))
    return result


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def tempDir():
    """Create a temporary directory for testing, dood!"""
    tmpDir = tempfile.mkdtemp()
    yield tmpDir
    shutil.rmtree(tmpDir, ignore_errors=True)


@pytest.fixture
def storagePath(tempDir):
    """Recording directory that does not exist yet"""
    return os.path.join(tempDir, "recordings")


@pytest.fixture
def sentRequests() -> List[httpx.Request]:
    """Requests that reached the mock network"""
    return []


@pytest.fixture
def usersHandler(sentRequests) -> Callable[[httpx.Request], httpx.Response]:
    """Mock network: GET /users answers a JSON list, everything else echoes"""

    def handler(request: httpx.Request) -> httpx.Response:
        sentRequests.append(request)
        if request.url.path == "/users":
            return httpx.Response(
                200,
                json=[{"id": 1}],
                headers={"x-request-id": "abc", "set-cookie": "session=secret"},
            )
        if request.url.path == "/empty":
            return httpx.Response(204)
        return httpx.Response(201, json={"echo": request.content.decode() or None})

    return handler


@pytest.fixture
def mockTransport(usersHandler) -> httpx.MockTransport:
    """Stand-in for the real network"""
    return httpx.MockTransport(usersHandler)


@pytest.fixture
def recordConfig(storagePath) -> RecorderConfig:
    """Record mode config over the temporary storage"""
    return RecorderConfig(path=storagePath, mode=RecorderMode.RECORD)


@pytest.fixture
def replayConfig(storagePath) -> RecorderConfig:
    """Replay mode config over the temporary storage"""
    return RecorderConfig(path=storagePath, mode=RecorderMode.REPLAY)


@pytest.fixture
def recordingWriter() -> Callable[..., str]:
    """writeRecording() helper as a fixture"""
    return writeRecording


@pytest.fixture
def recordingsReader() -> Callable[[str], List[Dict[str, Any]]]:
    """readRecordings() helper as a fixture"""
    return readRecordings
